"""Tool capability record and helpers shared by command builders."""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass

from llm_cli_providers.providers.errors import ProviderError
from llm_cli_providers.providers.messages import ToolHints
from llm_cli_providers.providers.models import (
    Command,
    LlmRequest,
    ProcessResult,
    ProviderCapabilities,
    Role,
    Usage,
)
from llm_cli_providers.providers.usage import extract_usage

INSTRUCTIONS_SEPARATOR = "\n\n---\n\n"

_ANSI_ESCAPE = re.compile(r"\x1b\[[0-?]*[ -/]*[@-~]|\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)")

BuildCommand = Callable[[LlmRequest], Command]
NormalizeOutput = Callable[[str, str], str]
ParseError = Callable[[ProcessResult, str], ProviderError | None]
ExtractUsage = Callable[..., Usage | None]


@dataclass(slots=True, frozen=True)
class ToolSpec:
    """Everything the facade needs to know about one external tool.

    ``parse_error`` receives the failed result and the locale, and returns a
    tool-specific error or None to fall through to the shared classifier.
    """

    id: str
    display_name: str
    executable: str
    capabilities: ProviderCapabilities
    build_command: BuildCommand
    normalize_output: NormalizeOutput
    parse_error: ParseError | None = None
    extract_usage: ExtractUsage = extract_usage
    version_args: tuple[str, ...] = ("--version",)
    login_command: str | None = None
    install_command: str | None = None
    install_url: str | None = None
    default_model: str | None = None

    @property
    def hints(self) -> ToolHints:
        return ToolHints(
            display_name=self.display_name,
            login_command=self.login_command,
            install_command=self.install_command,
            install_url=self.install_url,
        )


def render_conversation(request: LlmRequest) -> str:
    """Render non-system messages as the stdin payload.

    A lone user message is sent as-is; longer conversations are rendered as
    ``role: content`` blocks separated by blank lines.
    """

    messages = request.conversation()
    if len(messages) == 1 and messages[0].role is Role.USER:
        return messages[0].content
    return "\n\n".join(f"{message.role.value}: {message.content}" for message in messages)


def prepend_instructions(request: LlmRequest) -> str:
    """Payload for tools without a system-prompt flag."""

    conversation = render_conversation(request)
    instructions = request.effective_instructions()
    if not instructions:
        return conversation
    return f"{instructions}{INSTRUCTIONS_SEPARATOR}{conversation}"


def require_conversation(request: LlmRequest) -> None:
    """Raise ValueError for requests with nothing to send."""

    if not request.conversation():
        raise ValueError("Request has no user or assistant message content.")


def strip_terminal_noise(text: str) -> str:
    """Remove ANSI escapes and carriage returns, then trim.

    Stray ESC bytes are dropped after the sequence pass so a second call
    cannot uncover a new sequence.
    """

    cleaned = _ANSI_ESCAPE.sub("", text).replace("\x1b", "")
    return cleaned.replace("\r", "").strip()


def model_args(request: LlmRequest) -> list[str]:
    model = request.options.model
    return ["--model", model] if model else []
