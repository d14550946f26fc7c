"""File-based document analysis on top of a provider facade."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path

from llm_cli_providers.providers.engine import CancellationToken
from llm_cli_providers.providers.errors import ProviderError, config_error
from llm_cli_providers.providers.facade import CliProvider
from llm_cli_providers.providers.models import LlmRequest, Message, ProgressCallback

logger = logging.getLogger(__name__)

DOCUMENT_PREAMBLE = "Please analyze the following document:\n\n"


@dataclass(slots=True)
class AnalysisOutcome:
    """Result of one analysis, successful or not."""

    success: bool
    provider: str
    execution_seconds: float
    output: str = ""
    cli_version: str | None = None
    raw_stdout: str = ""
    raw_stderr: str = ""
    error: str | None = None
    error_kind: str | None = None
    suggestions: tuple[str, ...] = field(default_factory=tuple)


class AnalysisSession:
    """Run analyses through one provider and allow cancelling the current one."""

    def __init__(self, provider: CliProvider) -> None:
        self.provider = provider
        self._lock = threading.Lock()
        self._cancellation: CancellationToken | None = None

    def cancel(self) -> bool:
        """Cancel the running analysis; False when nothing is running."""

        with self._lock:
            token = self._cancellation
        if token is None:
            return False
        token.cancel()
        return True

    def analyze(
        self,
        *,
        document_path: Path,
        instructions_path: Path,
        timeout_seconds: float | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> AnalysisOutcome:
        """Analyze a text document with instructions loaded from a file."""

        started = time.monotonic()
        token = CancellationToken()
        with self._lock:
            self._cancellation = token
        try:
            request = self._build_request(document_path, instructions_path)
            response = self.provider.send(
                request,
                timeout_seconds=timeout_seconds,
                cancellation=token,
                on_progress=on_progress,
            )
        except ProviderError as error:
            logger.info(
                "Analysis failed: provider=%s kind=%s",
                self.provider.id,
                error.kind.value,
            )
            details = error.technical_details or {}
            return AnalysisOutcome(
                success=False,
                provider=self.provider.id,
                execution_seconds=time.monotonic() - started,
                raw_stderr=str(details.get("stderr") or ""),
                error=error.user_message,
                error_kind=error.kind.value,
                suggestions=error.recovery_suggestions,
            )
        finally:
            with self._lock:
                self._cancellation = None

        return AnalysisOutcome(
            success=True,
            provider=self.provider.id,
            execution_seconds=time.monotonic() - started,
            output=response.content,
            cli_version=self.provider.get_version(),
            raw_stdout=response.meta.raw_stdout,
            raw_stderr=response.meta.raw_stderr,
        )

    def _build_request(self, document_path: Path, instructions_path: Path) -> LlmRequest:
        document = self._read_text(document_path, "document")
        instructions = self._read_text(instructions_path, "instructions")
        return LlmRequest(
            messages=[Message.user(f"{DOCUMENT_PREAMBLE}{document}")],
            instructions=instructions,
            metadata={
                "document_path": str(document_path),
                "instructions_path": str(instructions_path),
            },
        )

    def _read_text(self, path: Path, label: str) -> str:
        if not path.is_file():
            raise config_error(
                self.provider.id,
                f"{label.capitalize()} file not found: {path}",
                hints=self.provider.tool.hints,
                locale=self.provider.settings.locale,
            )
        try:
            return path.read_text("utf-8")
        except (OSError, UnicodeDecodeError) as error:
            raise config_error(
                self.provider.id,
                f"Cannot read {label} file {path}: {error}",
                hints=self.provider.tool.hints,
                locale=self.provider.settings.locale,
                cause=error,
            ) from error
