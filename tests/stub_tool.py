"""Scriptable stand-in for an external AI CLI, driven by argv or STUB_MODE.

Run as ``python stub_tool.py <mode> [args...]`` or install as an executable
named like a real tool and select behaviour with the ``STUB_MODE`` variable.
"""

from __future__ import annotations

import os
import signal
import sys
import time


def _log_invocation() -> None:
    log_path = os.environ.get("STUB_LOG")
    if log_path:
        with open(log_path, "a", encoding="utf-8") as handle:
            handle.write(" ".join(sys.argv[1:]) + "\n")


def main() -> int:  # noqa: C901, PLR0911, PLR0912
    _log_invocation()
    if "--version" in sys.argv[1:]:
        print(os.environ.get("STUB_VERSION", "2.0.14 (Stub Code)"))
        return 0

    if len(sys.argv) > 1 and sys.argv[1] in _MODES:
        mode, rest = sys.argv[1], sys.argv[2:]
    else:
        mode, rest = os.environ.get("STUB_MODE", "answer"), []

    if mode == "ok":
        print("OK")
        return 0
    if mode == "echo":
        sys.stdout.write(sys.stdin.read())
        return 0
    if mode == "answer":
        prompt = sys.stdin.read()
        sys.stdout.write("\x1b[1mANSWER\x1b[0m\r\n" + prompt + "\n")
        return 0
    if mode == "fail":
        sys.stderr.write((rest[0] if rest else os.environ.get("STUB_STDERR", "boom")) + "\n")
        return int(rest[1]) if len(rest) > 1 else int(os.environ.get("STUB_EXIT", "1"))
    if mode == "stubborn":
        signal.signal(signal.SIGINT, signal.SIG_IGN)
        print("started", flush=True)
        time.sleep(60)
        return 0
    if mode == "hang":
        time.sleep(60)
        return 0
    if mode == "flood":
        size = int(rest[0]) if rest else 100_000
        sys.stdout.write("x" * size)
        return 0
    if mode == "env":
        print(os.environ.get(rest[0] if rest else "STUB_VALUE", ""))
        return 0
    if mode == "selfkill":
        sys.stdout.flush()
        os.kill(os.getpid(), signal.SIGTERM)
        time.sleep(5)
        return 0
    sys.stderr.write(f"unknown stub mode: {mode}\n")
    return 2


_MODES = frozenset(
    {"ok", "echo", "answer", "fail", "stubborn", "hang", "flood", "env", "selfkill"},
)


if __name__ == "__main__":
    sys.exit(main())
