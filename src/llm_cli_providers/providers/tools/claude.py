"""Claude Code CLI (``claude``) adapter."""

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
    render_conversation,
    require_conversation,
    strip_terminal_noise,
)

PROVIDER_ID = "claude-cli"

_OVERLOADED = re.compile(
    r"overloaded_error|\boverloaded\b|\b(?:status|http|error|code)\b[\s:=]*529\b",
    re.IGNORECASE,
)


def build_command(request: LlmRequest) -> Command:
    """Claude takes instructions through ``--system-prompt``; the conversation goes to stdin."""

    require_conversation(request)
    args = ["claude", "--print", *model_args(request)]
    instructions = request.effective_instructions()
    if instructions:
        args.extend(["--system-prompt", instructions])
    return Command(argv=tuple(args), stdin=render_conversation(request))


def normalize_output(stdout: str, stderr: str) -> str:  # noqa: ARG001
    return strip_terminal_noise(stdout)


def parse_error(result: ProcessResult, locale: str) -> ProviderError | None:
    if result.cancelled or result.timed_out:
        return None
    if _OVERLOADED.search(result.stderr) is None:
        return None
    return make_error(
        ErrorKind.MODEL_OVERLOADED,
        provider_id=PROVIDER_ID,
        message="Claude API is overloaded",
        hints=CLAUDE.hints,
        locale=locale,
        technical_details={
            "exit_code": result.exit_code,
            "stderr": truncate_stderr(result.stderr),
        },
    )


CLAUDE = ToolSpec(
    id=PROVIDER_ID,
    display_name="Claude (Local CLI)",
    executable="claude",
    capabilities=ProviderCapabilities(
        streaming=False,
        temperature=False,
        max_tokens=False,
        system_messages=True,
    ),
    build_command=build_command,
    normalize_output=normalize_output,
    parse_error=parse_error,
    login_command="claude login",
    install_command="npm install -g @anthropic-ai/claude-code",
    install_url="https://docs.anthropic.com/en/docs/claude-code",
)
