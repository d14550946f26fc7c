"""Shared test fixtures."""

from __future__ import annotations

import stat
import sys
from collections.abc import Callable
from pathlib import Path

import pytest

from llm_cli_providers.config import ExecutionSettings, Settings
from llm_cli_providers.providers.models import Command

STUB_TOOL = Path(__file__).with_name("stub_tool.py")


@pytest.fixture()
def stub_command() -> Callable[..., Command]:
    """Build a command running the stub tool in a given mode."""

    def _build(mode: str, *args: str, stdin: str | None = None, env=None) -> Command:
        return Command(
            argv=(sys.executable, str(STUB_TOOL), mode, *args),
            stdin=stdin,
            env=dict(env or {}),
        )

    return _build


@pytest.fixture()
def fast_execution() -> ExecutionSettings:
    """Execution limits small enough for timeouts in tests."""

    return ExecutionSettings(
        timeout_seconds=30.0,
        grace_seconds=0.5,
        version_timeout_seconds=10.0,
        progress_tick_seconds=0.05,
    )


@pytest.fixture()
def fast_settings(fast_execution: ExecutionSettings) -> Settings:
    return Settings(execution=fast_execution)


@pytest.fixture()
def fake_cli(tmp_path: Path, monkeypatch) -> Callable[[str], Path]:
    """Install the stub tool as an executable named like a real CLI.

    Invocations are appended to ``STUB_LOG``; behaviour is chosen with
    ``STUB_MODE``.
    """

    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    monkeypatch.setenv("STUB_LOG", str(tmp_path / "invocations.log"))
    monkeypatch.delenv("STUB_MODE", raising=False)

    def _install(name: str) -> Path:
        path = bin_dir / name
        path.write_text(
            f"#!{sys.executable}\n" + STUB_TOOL.read_text("utf-8"),
            encoding="utf-8",
        )
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return path

    return _install


@pytest.fixture()
def invocation_log(tmp_path: Path) -> Callable[[], list[str]]:
    """Read back what the fake CLI was called with."""

    def _read() -> list[str]:
        path = tmp_path / "invocations.log"
        if not path.exists():
            return []
        return path.read_text("utf-8").splitlines()

    return _read
