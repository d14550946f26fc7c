"""Usage extraction helpers for CLI tool output streams."""

from __future__ import annotations

import re

from llm_cli_providers.providers.models import Usage

_JSON_INPUT_TOKENS = re.compile(r'"(?:input|prompt)_tokens"\s*:\s*(\d+)', re.IGNORECASE)
_JSON_OUTPUT_TOKENS = re.compile(r'"(?:output|completion)_tokens"\s*:\s*(\d+)', re.IGNORECASE)
_JSON_TOTAL_TOKENS = re.compile(r'"total_tokens"\s*:\s*(\d+)', re.IGNORECASE)

_CODEX_TOKENS_USED = re.compile(r"tokens used\s*[:\r\n ]+\s*([\d,]+)", re.IGNORECASE)
_INPUT_TOKENS = re.compile(r"(?:input|prompt)[_ ]tokens?\s*[:=]\s*([\d,]+)", re.IGNORECASE)
_OUTPUT_TOKENS = re.compile(r"(?:output|completion)[_ ]tokens?\s*[:=]\s*([\d,]+)", re.IGNORECASE)
_TOTAL_TOKENS = re.compile(r"total[_ ]tokens?\s*[:=]\s*([\d,]+)", re.IGNORECASE)


def extract_usage(*, stdout: str, stderr: str) -> Usage | None:
    """Extract token usage from structured or textual tool output."""

    structured = _extract(
        stdout=stdout,
        stderr=stderr,
        patterns=(_JSON_INPUT_TOKENS, _JSON_OUTPUT_TOKENS, _JSON_TOTAL_TOKENS),
    )
    if structured is not None:
        return structured
    return _extract(
        stdout=stdout,
        stderr=stderr,
        patterns=(_INPUT_TOKENS, _OUTPUT_TOKENS, _TOTAL_TOKENS),
    )


def extract_codex_usage(*, stdout: str, stderr: str) -> Usage | None:
    """Codex prints a bare ``tokens used`` total on stderr."""

    usage = extract_usage(stdout=stdout, stderr=stderr)
    if usage is not None:
        return usage
    total = _extract_int(_CODEX_TOKENS_USED, stderr)
    if total is None:
        return None
    return Usage(total_tokens=total)


def _extract(
    *,
    stdout: str,
    stderr: str,
    patterns: tuple[re.Pattern[str], re.Pattern[str], re.Pattern[str]],
) -> Usage | None:
    input_pattern, output_pattern, total_pattern = patterns
    input_tokens: int | None = None
    output_tokens: int | None = None
    total_tokens: int | None = None

    for text in (stderr, stdout):
        if input_tokens is None:
            input_tokens = _extract_int(input_pattern, text)
        if output_tokens is None:
            output_tokens = _extract_int(output_pattern, text)
        if total_tokens is None:
            total_tokens = _extract_int(total_pattern, text)

    if input_tokens is None and output_tokens is None and total_tokens is None:
        return None
    if total_tokens is None:
        known = [value for value in (input_tokens, output_tokens) if value is not None]
        total_tokens = sum(known) if known else None
    return Usage(
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        total_tokens=total_tokens,
    )


def _extract_int(pattern: re.Pattern[str], text: str) -> int | None:
    match = pattern.search(text)
    if match is None:
        return None
    raw = match.group(1).replace(",", "").strip()
    if not raw.isdigit():
        return None
    return int(raw)
