"""Codex CLI (``codex exec``) adapter."""

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
from llm_cli_providers.providers.usage import extract_codex_usage

PROVIDER_ID = "codex-cli"

_USAGE_LIMIT = re.compile(r"usage\s+limit|insufficient_quota|billing", re.IGNORECASE)


def build_command(request: LlmRequest) -> Command:
    """``-`` makes ``codex exec`` read the prompt from stdin."""

    require_conversation(request)
    return Command(
        argv=(
            "codex",
            "exec",
            "-",
            "--color",
            "never",
            "--skip-git-repo-check",
            *model_args(request),
        ),
        stdin=prepend_instructions(request),
        env={"NO_COLOR": "1"},
    )


def normalize_output(stdout: str, stderr: str) -> str:  # noqa: ARG001
    return strip_terminal_noise(stdout)


def parse_error(result: ProcessResult, locale: str) -> ProviderError | None:
    if result.cancelled or result.timed_out:
        return None
    if _USAGE_LIMIT.search(result.stderr) is None:
        return None
    return make_error(
        ErrorKind.QUOTA_EXCEEDED,
        provider_id=PROVIDER_ID,
        message="Codex usage limit reached",
        hints=CODEX.hints,
        locale=locale,
        technical_details={
            "exit_code": result.exit_code,
            "stderr": truncate_stderr(result.stderr),
        },
    )


CODEX = ToolSpec(
    id=PROVIDER_ID,
    display_name="Codex (Local CLI)",
    executable="codex",
    capabilities=ProviderCapabilities(
        streaming=False,
        temperature=False,
        max_tokens=False,
        system_messages=False,
    ),
    build_command=build_command,
    normalize_output=normalize_output,
    parse_error=parse_error,
    extract_usage=extract_codex_usage,
    login_command="codex login",
    install_command="npm install -g @openai/codex",
    install_url="https://github.com/openai/codex",
)
