"""Gemini CLI (``gemini``) adapter."""

from __future__ import annotations

import re

from llm_cli_providers.providers.errors import ErrorKind, ProviderError, make_error, truncate_stderr
from llm_cli_providers.providers.models import (
    Command,
    LlmRequest,
    ProcessResult,
    ProviderCapabilities,
)
from llm_cli_providers.providers.tools.base import (
    ToolSpec,
    model_args,
    prepend_instructions,
    require_conversation,
    strip_terminal_noise,
)

PROVIDER_ID = "gemini-cli"

# Printed on stdout by the CLI before the model answer.
_BANNER_LINES = frozenset({"Loaded cached credentials.", "Data collection is disabled."})
_QUOTA = re.compile(r"daily\s+quota|billing|resource_exhausted", re.IGNORECASE)


def build_command(request: LlmRequest) -> Command:
    """Gemini has no system-prompt flag, so instructions lead the stdin payload."""

    require_conversation(request)
    return Command(
        argv=("gemini", *model_args(request)),
        stdin=prepend_instructions(request),
    )


def normalize_output(stdout: str, stderr: str) -> str:  # noqa: ARG001
    cleaned = strip_terminal_noise(stdout)
    lines = [line for line in cleaned.split("\n") if line.strip() not in _BANNER_LINES]
    return "\n".join(lines).strip()


def parse_error(result: ProcessResult, locale: str) -> ProviderError | None:
    if result.cancelled or result.timed_out:
        return None
    if _QUOTA.search(result.stderr) is None:
        return None
    return make_error(
        ErrorKind.QUOTA_EXCEEDED,
        provider_id=PROVIDER_ID,
        message="Gemini quota exhausted",
        hints=GEMINI.hints,
        locale=locale,
        technical_details={
            "exit_code": result.exit_code,
            "stderr": truncate_stderr(result.stderr),
        },
    )


GEMINI = ToolSpec(
    id=PROVIDER_ID,
    display_name="Gemini (Local CLI)",
    executable="gemini",
    capabilities=ProviderCapabilities(
        streaming=False,
        temperature=True,
        max_tokens=False,
        system_messages=True,
    ),
    build_command=build_command,
    normalize_output=normalize_output,
    parse_error=parse_error,
    login_command="gemini",
    install_command="npm install -g @google/gemini-cli",
    install_url="https://github.com/google-gemini/gemini-cli",
)
