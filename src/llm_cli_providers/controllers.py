"""Controllers for llm-cli commands."""

from __future__ import annotations

import logging
import signal
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, replace
from pathlib import Path

from llm_cli_providers.config import Settings
from llm_cli_providers.providers.errors import ProviderError
from llm_cli_providers.providers.registry import build_provider, detect_providers
from llm_cli_providers.session import AnalysisOutcome, AnalysisSession

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ProvidersCommand:
    """CLI input for provider detection."""

    provider: str | None = None


@dataclass(slots=True)
class AnalyzeCommand:
    """CLI input for one document analysis."""

    provider: str | None
    document_path: Path
    instructions_path: Path
    timeout_seconds: float | None
    locale: str | None


@dataclass(slots=True)
class CommandOutput:
    """Rendered lines plus process exit status."""

    lines: list[str]
    success: bool


class ProviderCliController:
    """CLI controller for provider detection and analysis."""

    def providers(self, command: ProvidersCommand) -> CommandOutput:
        settings = Settings.from_env()
        try:
            settings.validate()
        except ValueError as error:
            return CommandOutput(lines=["Providers:", str(error)], success=False)

        lines = ["Providers:"]
        any_available = False
        for status in detect_providers(settings):
            if command.provider and status.name != command.provider:
                continue
            any_available = any_available or status.available
            state = "available" if status.available else "not installed"
            version = f" version={status.version}" if status.version else ""
            install = (
                f" install={status.install_url}"
                if not status.available and status.install_url
                else ""
            )
            lines.append(
                f"- {status.name} ({status.display_name}): {state}{version}{install}",
            )
        return CommandOutput(lines=lines, success=any_available)

    def analyze(self, command: AnalyzeCommand) -> CommandOutput:
        settings = Settings.from_env()
        if command.locale:
            settings = replace(settings, locale=command.locale)
        try:
            settings.validate()
        except ValueError as error:
            return CommandOutput(lines=["Analysis:", str(error)], success=False)

        try:
            provider = build_provider(command.provider or settings.default_provider, settings)
        except ProviderError as error:
            return CommandOutput(lines=["Analysis:", error.message], success=False)

        session = AnalysisSession(provider)
        with _cancel_on_signals(session):
            outcome = session.analyze(
                document_path=command.document_path,
                instructions_path=command.instructions_path,
                timeout_seconds=command.timeout_seconds,
            )
        return CommandOutput(lines=_render_outcome(outcome), success=outcome.success)


def _render_outcome(outcome: AnalysisOutcome) -> list[str]:
    if outcome.success:
        header = (
            f"Analysis by {outcome.provider} completed in {outcome.execution_seconds:.1f}s"
            + (f" (version {outcome.cli_version})" if outcome.cli_version else "")
        )
        return [header, "", outcome.output]

    lines = [
        f"Analysis by {outcome.provider} failed after {outcome.execution_seconds:.1f}s "
        f"[{outcome.error_kind}]",
        outcome.error or "",
    ]
    lines.extend(f"- {suggestion}" for suggestion in outcome.suggestions)
    return lines


class _SignalCancelRelay:
    """Turns SIGINT/SIGTERM into `session.cancel()` without locking in the handler.

    The handler only sets a flag; a polling thread performs the cancel.
    """

    def __init__(self, session: AnalysisSession, *, poll_seconds: float = 0.1) -> None:
        self._session = session
        self._poll_seconds = poll_seconds
        self._stop_requested = False
        self._closed = False
        self.signal_name: str | None = None
        self._thread = threading.Thread(
            target=self._watch,
            name="llm-cli-signal-relay",
            daemon=True,
        )

    def start(self) -> None:
        self._thread.start()

    def close(self) -> None:
        self._closed = True
        self._thread.join()

    def request_stop(self, signal_name: str) -> None:
        self.signal_name = signal_name
        self._stop_requested = True

    def _watch(self) -> None:
        while not self._closed:
            if self._stop_requested:
                logger.info("Cancelling analysis on signal: signal=%s", self.signal_name)
                self._session.cancel()
                return
            time.sleep(self._poll_seconds)


@contextmanager
def _cancel_on_signals(session: AnalysisSession) -> Iterator[_SignalCancelRelay]:
    relay = _SignalCancelRelay(session)
    if not hasattr(signal, "SIGINT"):
        yield relay
        return

    original_sigint = signal.getsignal(signal.SIGINT)
    original_sigterm = signal.getsignal(signal.SIGTERM)

    def _handler(signum: int, _: object | None) -> None:
        try:
            name = signal.Signals(signum).name
        except ValueError:
            name = str(signum)
        relay.request_stop(name)

    relay.start()
    try:
        try:
            signal.signal(signal.SIGINT, _handler)
            signal.signal(signal.SIGTERM, _handler)
        except ValueError:
            # Signal handlers can only be installed in main thread.
            yield relay
            return
        try:
            yield relay
        finally:
            signal.signal(signal.SIGINT, original_sigint)
            signal.signal(signal.SIGTERM, original_sigterm)
    finally:
        relay.close()
