from __future__ import annotations

import os
import signal
import threading

import allure
import pytest

from llm_cli_providers.controllers import _cancel_on_signals

pytestmark = [
    allure.epic("Document Analysis"),
    allure.feature("Signal Cancellation"),
    pytest.mark.skipif(os.name == "nt", reason="requires POSIX signals"),
]


class _RecordingSession:
    def __init__(self) -> None:
        self.cancelled = threading.Event()
        self.calls = 0

    def cancel(self) -> None:
        self.calls += 1
        self.cancelled.set()


def test_signal_handler_defers_cancel_to_relay_thread() -> None:
    session = _RecordingSession()

    with _cancel_on_signals(session) as relay:
        handler = signal.getsignal(signal.SIGINT)
        handler(signal.SIGINT, None)
        handler(signal.SIGTERM, None)

        assert session.cancelled.wait(timeout=2.0) is True
        assert relay.signal_name in ("SIGINT", "SIGTERM")

    assert session.calls == 1


def test_handlers_are_restored_on_exit() -> None:
    original_sigint = signal.getsignal(signal.SIGINT)
    original_sigterm = signal.getsignal(signal.SIGTERM)

    with _cancel_on_signals(_RecordingSession()):
        assert signal.getsignal(signal.SIGINT) is not original_sigint

    assert signal.getsignal(signal.SIGINT) is original_sigint
    assert signal.getsignal(signal.SIGTERM) is original_sigterm


def test_no_cancel_without_signal() -> None:
    session = _RecordingSession()

    with _cancel_on_signals(session):
        pass

    assert session.calls == 0


def test_outside_main_thread_handlers_are_left_alone() -> None:
    original_sigint = signal.getsignal(signal.SIGINT)
    seen: list[object] = []

    def _enter() -> None:
        with _cancel_on_signals(_RecordingSession()):
            seen.append(signal.getsignal(signal.SIGINT))

    worker = threading.Thread(target=_enter)
    worker.start()
    worker.join(timeout=5)

    assert seen == [original_sigint]
