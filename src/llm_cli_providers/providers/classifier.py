"""Deterministic classification of failed CLI runs into provider errors."""

from __future__ import annotations

import re
from dataclasses import dataclass

from llm_cli_providers.providers.errors import (
    ErrorKind,
    ProviderError,
    cancelled,
    make_error,
    not_installed,
    timed_out,
    truncate_stderr,
)
from llm_cli_providers.providers.messages import DEFAULT_LOCALE, ToolHints
from llm_cli_providers.providers.models import ProcessResult

CLASSIFIER_VERSION = 1

_AUTH_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern)
    for pattern in (
        r"\bauth",
        r"\blogin\b",
        r"\blog\s+in\b",
        r"\bunauthorized\b",
        r"\bunauthenticated\b",
        r"\binvalid\s+credentials\b",
        r"\bapi[\s_-]?key\b",
        r"\btoken\s+(?:has\s+)?expired\b",
        r"\bexpired\s+token\b",
        r"please\s+run\s+[\"'`]?[\w.-]+(?:\s+[\w.-]+)*\s+login",
        r"not\s+logged\s+in",
        r"sign\s+in\s+required",
    )
)
_NOT_INSTALLED_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern)
    for pattern in (
        r"command\s+not\s+found",
        r"\bno\s+such\s+file\s+or\s+directory\b",
        r"is\s+not\s+recognized\s+as\s+an\s+internal\s+or\s+external\s+command",
        r"'[\w.-]+'\s+is\s+not\s+recognized",
        r"\bnot\s+installed\b",
        r"\bcannot\s+find\s+command\b",
    )
)
_RATE_LIMIT_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern)
    for pattern in (
        r"\brate[\s_-]?limit",
        r"\btoo\s+many\s+requests\b",
        r"\b429\b",
        r"\bquota\s+exceeded\b",
        r"\brequest\s+limit\b",
        r"\bthrottl",
    )
)
_CONTEXT_LENGTH_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern)
    for pattern in (
        r"\bcontext\s+(?:length|window)\b",
        r"\btoo\s+long\b",
        r"\bexceeds\s+(?:the\s+)?maximum\b",
        r"\binput\s+too\s+large\b",
        r"\btoken\s+limit\b",
        r"\bmaximum\s+tokens\b",
    )
)
_NETWORK_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern)
    for pattern in (
        r"\bnetwork\s+error\b",
        r"\bconnection\s+(?:refused|reset|timeout|timed\s+out|failed)\b",
        r"\bcould\s+not\s+connect\b",
        r"\bcould\s+not\s+resolve\s+host\b",
        r"\bdns\s+(?:lookup\s+)?fail",
        r"\bgetaddrinfo\b",
        r"\beconnrefused\b",
        r"\beconnreset\b",
        r"\betimedout\b",
        r"\benotfound\b",
        r"\bsocket\s+hang\s+up\b",
        r"\b(?:read|connect|socket)\s+timeout\b",
    )
)


@dataclass(slots=True, frozen=True)
class FailureMatch:
    """Which rule classified a failure, for diagnostics."""

    kind: ErrorKind
    rule: str
    pattern: str | None


def match_rule(result: ProcessResult) -> FailureMatch:
    """Return the first matching rule for a failed run.

    Stderr is the primary signal. Stdout is consulted only for
    not-installed text, which some shells print there.
    """

    if result.cancelled:
        return FailureMatch(kind=ErrorKind.CANCELLED, rule="cancelled", pattern=None)
    if result.timed_out:
        return FailureMatch(kind=ErrorKind.TIMEOUT, rule="timed_out", pattern=None)

    stderr = result.stderr.lower()
    stdout = result.stdout.lower()

    pattern = _first_match(stderr, _AUTH_PATTERNS)
    if pattern is not None:
        return FailureMatch(kind=ErrorKind.AUTH, rule="auth", pattern=pattern)

    pattern = _first_match(stderr, _NOT_INSTALLED_PATTERNS) or _first_match(
        stdout,
        _NOT_INSTALLED_PATTERNS,
    )
    if pattern is not None:
        return FailureMatch(kind=ErrorKind.NOT_INSTALLED, rule="not_installed", pattern=pattern)

    pattern = _first_match(stderr, _RATE_LIMIT_PATTERNS)
    if pattern is not None:
        return FailureMatch(kind=ErrorKind.RATE_LIMIT, rule="rate_limit", pattern=pattern)

    pattern = _first_match(stderr, _CONTEXT_LENGTH_PATTERNS)
    if pattern is not None:
        return FailureMatch(kind=ErrorKind.CONTEXT_LENGTH, rule="context_length", pattern=pattern)

    pattern = _first_match(stderr, _NETWORK_PATTERNS)
    if pattern is not None:
        return FailureMatch(kind=ErrorKind.NETWORK, rule="network", pattern=pattern)

    return FailureMatch(kind=ErrorKind.PROVIDER, rule="fallback_provider", pattern=None)


def classify_failure(
    result: ProcessResult,
    *,
    provider_id: str,
    hints: ToolHints | None = None,
    locale: str = DEFAULT_LOCALE,
) -> ProviderError:
    """Classify a failed run into exactly one provider error."""

    matched = match_rule(result)
    details = _technical_details(result, matched)

    if matched.kind is ErrorKind.CANCELLED:
        return cancelled(provider_id, hints=hints, locale=locale)
    if matched.kind is ErrorKind.TIMEOUT:
        return timed_out(provider_id, result.timeout_seconds or 0.0, hints=hints, locale=locale)
    if matched.kind is ErrorKind.NOT_INSTALLED:
        return not_installed(
            provider_id,
            hints=hints,
            locale=locale,
            technical_details=details,
        )

    return make_error(
        matched.kind,
        provider_id=provider_id,
        message=_technical_message(matched.kind, result),
        hints=hints,
        locale=locale,
        technical_details=details,
    )


def _technical_message(kind: ErrorKind, result: ProcessResult) -> str:
    if kind is ErrorKind.AUTH:
        return "Authentication required"
    if kind is ErrorKind.RATE_LIMIT:
        return "Rate limit exceeded"
    if kind is ErrorKind.CONTEXT_LENGTH:
        return "Input exceeds context length"
    if kind is ErrorKind.NETWORK:
        return "Network request failed"
    if result.signal is not None:
        return f"CLI terminated by signal {result.signal}"
    return f"CLI failed with exit code {result.exit_code}"


def _technical_details(result: ProcessResult, matched: FailureMatch) -> dict[str, object]:
    return {
        "classifier_version": CLASSIFIER_VERSION,
        "matched_rule": matched.rule,
        "matched_pattern": matched.pattern,
        "exit_code": result.exit_code,
        "signal": result.signal,
        "stderr": truncate_stderr(result.stderr),
    }


def _first_match(haystack: str, patterns: tuple[re.Pattern[str], ...]) -> str | None:
    for pattern in patterns:
        if pattern.search(haystack):
            return pattern.pattern
    return None
