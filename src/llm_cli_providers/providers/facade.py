"""Provider facade binding one external tool to the shared engine."""

from __future__ import annotations

import logging
import re
import shutil
import threading
import time
from collections.abc import Callable
from dataclasses import replace
from typing import Generic, TypeVar

from llm_cli_providers.config import Settings, is_positive_seconds
from llm_cli_providers.providers.classifier import classify_failure
from llm_cli_providers.providers.engine import CancellationToken, ExecutionEngine
from llm_cli_providers.providers.errors import (
    ProviderError,
    config_error,
    not_installed,
    unknown_error,
)
from llm_cli_providers.providers.models import (
    Command,
    LlmRequest,
    LlmResponse,
    Message,
    ProcessResult,
    ProgressCallback,
    ProviderCapabilities,
    ProviderMeta,
    RequestOptions,
)
from llm_cli_providers.providers.tools.base import ToolSpec

logger = logging.getLogger(__name__)

_VERSION_NUMBER = re.compile(r"(\d+\.\d+\.\d+)")
_STDERR_LOG_LIMIT = 2_000

T = TypeVar("T")


class Memo(Generic[T]):
    """A value computed at most once; later reads return the stored value."""

    def __init__(self, compute: Callable[[], T]) -> None:
        self._compute = compute
        self._lock = threading.Lock()
        self._done = False
        self._value: T | None = None

    @property
    def resolved(self) -> bool:
        return self._done

    def get(self) -> T:
        with self._lock:
            if not self._done:
                self._value = self._compute()
                self._done = True
            return self._value  # type: ignore[return-value]


class CapabilityCache:
    """Availability and version probes owned by one provider instance."""

    def __init__(
        self,
        *,
        resolve_executable: Callable[[], str | None],
        probe_version: Callable[[str], str | None],
    ) -> None:
        self.executable_path: Memo[str | None] = Memo(resolve_executable)
        self.version: Memo[str | None] = Memo(self._version_or_none)
        self._probe_version = probe_version

    def _version_or_none(self) -> str | None:
        path = self.executable_path.get()
        if path is None:
            return None
        return self._probe_version(path)


class CliProvider:
    """One external CLI tool behind the uniform `send` contract.

    Not safe for overlapping `send` calls on the same instance.
    """

    def __init__(
        self,
        tool: ToolSpec,
        *,
        settings: Settings | None = None,
        engine: ExecutionEngine | None = None,
    ) -> None:
        self.tool = tool
        self.settings = settings or Settings()
        self.engine = engine or ExecutionEngine(self.settings.execution)
        self.capability_cache = CapabilityCache(
            resolve_executable=self._resolve_executable,
            probe_version=self._probe_version,
        )

    @property
    def id(self) -> str:
        return self.tool.id

    @property
    def display_name(self) -> str:
        return self.tool.display_name

    @property
    def capabilities(self) -> ProviderCapabilities:
        return self.tool.capabilities

    def is_available(self) -> bool:
        """Whether the executable resolves on PATH; memoized."""

        return self.capability_cache.executable_path.get() is not None

    def get_version(self) -> str | None:
        """Tool version string, or None when unavailable; memoized."""

        return self.capability_cache.version.get()

    def send(
        self,
        request: LlmRequest,
        *,
        timeout_seconds: float | None = None,
        cancellation: CancellationToken | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> LlmResponse:
        """Run the tool for one request; every failure raises `ProviderError`."""

        started = time.monotonic()
        locale = self.settings.locale
        hints = self.tool.hints

        executable = self.capability_cache.executable_path.get()
        if executable is None:
            logger.warning(
                "Provider unavailable: provider=%s executable=%s",
                self.id,
                self.tool.executable,
            )
            raise not_installed(self.id, hints=hints, locale=locale)

        timeout = (
            self.settings.execution.timeout_seconds if timeout_seconds is None else timeout_seconds
        )
        if not is_positive_seconds(timeout):
            raise config_error(
                self.id,
                f"timeout_seconds must be > 0, got {timeout!r}",
                hints=hints,
                locale=locale,
            )

        problem = _request_problem(request)
        if problem is not None:
            raise config_error(self.id, problem, hints=hints, locale=locale)

        command = self._build_command(request).with_executable(executable)
        if request.options.temperature is not None and not self.capabilities.temperature:
            logger.debug("Provider ignores temperature: provider=%s", self.id)
        if request.options.max_tokens is not None and not self.capabilities.max_tokens:
            logger.debug("Provider ignores max_tokens: provider=%s", self.id)

        logger.info(
            "Provider send started: provider=%s messages=%d timeout=%.1fs",
            self.id,
            len(request.messages),
            timeout,
        )
        try:
            result = self.engine.run(
                command,
                timeout_seconds=timeout,
                cancellation=cancellation,
                on_progress=on_progress,
            )
        except Exception as error:  # noqa: BLE001
            logger.exception("Engine failed: provider=%s", self.id)
            raise unknown_error(self.id, error, hints=hints, locale=locale) from error

        if not result.success:
            error = self._classify(result)
            logger.warning(
                "Provider send failed: provider=%s kind=%s state=%s exit_code=%s elapsed=%.2fs",
                self.id,
                error.kind.value,
                result.state.value,
                result.exit_code,
                time.monotonic() - started,
            )
            if result.stderr:
                logger.debug(
                    "Provider stderr: provider=%s stderr=%s",
                    self.id,
                    result.stderr[:_STDERR_LOG_LIMIT],
                )
            raise error

        response = self._build_response(request, result, started)
        logger.info(
            "Provider send completed: provider=%s latency_ms=%d content_chars=%d",
            self.id,
            response.meta.latency_ms,
            len(response.content),
        )
        return response

    def _build_command(self, request: LlmRequest) -> Command:
        try:
            if request.options.model is None and self.tool.default_model:
                request = replace(
                    request,
                    options=replace(request.options, model=self.tool.default_model),
                )
            return self.tool.build_command(request)
        except ValueError as error:
            raise config_error(
                self.id,
                str(error),
                hints=self.tool.hints,
                locale=self.settings.locale,
                cause=error,
            ) from error
        except Exception as error:  # noqa: BLE001
            logger.exception("Command builder failed: provider=%s", self.id)
            raise unknown_error(
                self.id,
                error,
                hints=self.tool.hints,
                locale=self.settings.locale,
            ) from error

    def _classify(self, result: ProcessResult) -> ProviderError:
        locale = self.settings.locale
        if self.tool.parse_error is not None:
            specific = self.tool.parse_error(result, locale)
            if specific is not None:
                return specific
        return classify_failure(
            result,
            provider_id=self.id,
            hints=self.tool.hints,
            locale=locale,
        )

    def _build_response(
        self,
        request: LlmRequest,
        result: ProcessResult,
        started: float,
    ) -> LlmResponse:
        try:
            content = self.tool.normalize_output(result.stdout, result.stderr)
            usage = self.tool.extract_usage(stdout=result.stdout, stderr=result.stderr)
        except Exception as error:  # noqa: BLE001
            logger.exception("Output normalization failed: provider=%s", self.id)
            raise unknown_error(
                self.id,
                error,
                hints=self.tool.hints,
                locale=self.settings.locale,
            ) from error

        options: RequestOptions = request.options
        return LlmResponse(
            message=Message.assistant(content),
            usage=usage,
            meta=ProviderMeta(
                provider_id=self.id,
                latency_ms=int((time.monotonic() - started) * 1000),
                model=options.model or self.tool.default_model,
                raw_stdout=result.stdout,
                raw_stderr=result.stderr,
            ),
        )

    def _resolve_executable(self) -> str | None:
        path = shutil.which(self.tool.executable)
        logger.debug(
            "Resolved executable: provider=%s executable=%s path=%s",
            self.id,
            self.tool.executable,
            path,
        )
        return path

    def _probe_version(self, executable: str) -> str | None:
        result = ExecutionEngine(self.settings.execution).run(
            Command(argv=(executable, *self.tool.version_args)),
            timeout_seconds=self.settings.execution.version_timeout_seconds,
        )
        if not result.success:
            logger.info(
                "Version probe failed: provider=%s state=%s exit_code=%s",
                self.id,
                result.state.value,
                result.exit_code,
            )
            return None
        return parse_version(result.stdout or result.stderr)


def _request_problem(request: object) -> str | None:
    """Describe why a request cannot be sent, or None when it is well formed."""

    if not isinstance(request, LlmRequest):
        return f"Expected LlmRequest, got {type(request).__name__}"
    if not isinstance(request.options, RequestOptions):
        return f"Request options must be RequestOptions, got {type(request.options).__name__}"
    if not isinstance(request.instructions, str):
        return "Request instructions must be a string"
    if not isinstance(request.messages, list) or not all(
        isinstance(message, Message) and isinstance(message.content, str)
        for message in request.messages
    ):
        return "Request messages must be a list of Message with text content"
    return None


def parse_version(output: str) -> str | None:
    """Extract ``x.y.z`` from version output, else its first line."""

    text = output.strip()
    if not text:
        return None
    match = _VERSION_NUMBER.search(text)
    if match is not None:
        return match.group(1)
    return text.splitlines()[0].strip()
