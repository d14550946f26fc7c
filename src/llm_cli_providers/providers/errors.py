"""Provider error taxonomy shared by every CLI tool."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from llm_cli_providers.providers.messages import DEFAULT_LOCALE, ToolHints, render

TECHNICAL_STDERR_LIMIT = 500


class ErrorKind(str, Enum):
    """Stable error classes presented to callers."""

    CONFIG = "CONFIG"
    AUTH = "AUTH"
    NOT_INSTALLED = "NOT_INSTALLED"
    RATE_LIMIT = "RATE_LIMIT"
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
    CONTEXT_LENGTH = "CONTEXT_LENGTH"
    NETWORK = "NETWORK"
    TIMEOUT = "TIMEOUT"
    MODEL_OVERLOADED = "MODEL_OVERLOADED"
    PROVIDER = "PROVIDER"
    CANCELLED = "CANCELLED"
    UNKNOWN = "UNKNOWN"

    @property
    def is_recoverable(self) -> bool:
        return self not in _NON_RECOVERABLE


_NON_RECOVERABLE = frozenset({ErrorKind.PROVIDER, ErrorKind.CANCELLED, ErrorKind.UNKNOWN})


@dataclass(slots=True, eq=False)
class ProviderError(Exception):
    """Normalized failure raised by every provider.

    ``message`` is the technical text for logs; ``user_message`` and
    ``recovery_suggestions`` are localized for display.
    """

    kind: ErrorKind
    provider_id: str
    message: str
    is_recoverable: bool
    user_message: str
    recovery_suggestions: tuple[str, ...] = ()
    technical_details: dict[str, Any] | None = None
    cause: BaseException | None = field(default=None, repr=False)

    def __str__(self) -> str:
        return f"[{self.kind.value}] {self.provider_id}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Serialize the error for structured logs."""

        return {
            "kind": self.kind.value,
            "provider_id": self.provider_id,
            "message": self.message,
            "user_message": self.user_message,
            "is_recoverable": self.is_recoverable,
            "recovery_suggestions": list(self.recovery_suggestions),
            "technical_details": self.technical_details,
            "cause": repr(self.cause) if self.cause is not None else None,
        }


def make_error(  # noqa: PLR0913
    kind: ErrorKind,
    *,
    provider_id: str,
    message: str,
    hints: ToolHints | None = None,
    locale: str = DEFAULT_LOCALE,
    technical_details: dict[str, Any] | None = None,
    cause: BaseException | None = None,
) -> ProviderError:
    """Build a `ProviderError` with catalog messages for the given locale."""

    user_message, suggestions = render(
        kind.value,
        locale=locale,
        hints=hints or ToolHints(display_name=provider_id),
    )
    return ProviderError(
        kind=kind,
        provider_id=provider_id,
        message=message,
        is_recoverable=kind.is_recoverable,
        user_message=user_message,
        recovery_suggestions=suggestions,
        technical_details=technical_details,
        cause=cause,
    )


def not_installed(
    provider_id: str,
    *,
    hints: ToolHints | None = None,
    locale: str = DEFAULT_LOCALE,
    technical_details: dict[str, Any] | None = None,
) -> ProviderError:
    return make_error(
        ErrorKind.NOT_INSTALLED,
        provider_id=provider_id,
        message=f"{provider_id} executable not found",
        hints=hints,
        locale=locale,
        technical_details=technical_details,
    )


def timed_out(
    provider_id: str,
    timeout_seconds: float,
    *,
    hints: ToolHints | None = None,
    locale: str = DEFAULT_LOCALE,
) -> ProviderError:
    return make_error(
        ErrorKind.TIMEOUT,
        provider_id=provider_id,
        message=f"Request timed out after {timeout_seconds:g}s",
        hints=hints,
        locale=locale,
        technical_details={"timeout_seconds": timeout_seconds},
    )


def cancelled(
    provider_id: str,
    *,
    hints: ToolHints | None = None,
    locale: str = DEFAULT_LOCALE,
) -> ProviderError:
    return make_error(
        ErrorKind.CANCELLED,
        provider_id=provider_id,
        message="Request was cancelled",
        hints=hints,
        locale=locale,
    )


def config_error(
    provider_id: str,
    message: str,
    *,
    hints: ToolHints | None = None,
    locale: str = DEFAULT_LOCALE,
    cause: BaseException | None = None,
) -> ProviderError:
    return make_error(
        ErrorKind.CONFIG,
        provider_id=provider_id,
        message=message,
        hints=hints,
        locale=locale,
        cause=cause,
    )


def unknown_error(
    provider_id: str,
    cause: BaseException,
    *,
    hints: ToolHints | None = None,
    locale: str = DEFAULT_LOCALE,
) -> ProviderError:
    return make_error(
        ErrorKind.UNKNOWN,
        provider_id=provider_id,
        message=f"Unexpected {type(cause).__name__}: {cause}",
        hints=hints,
        locale=locale,
        cause=cause,
    )


def truncate_stderr(stderr: str, limit: int = TECHNICAL_STDERR_LIMIT) -> str:
    """Bound raw diagnostics kept in technical details."""

    return stderr[:limit]
