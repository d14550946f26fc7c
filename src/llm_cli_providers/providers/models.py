"""Domain models for CLI provider requests, processes and responses."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any


class Role(str, Enum):
    """Conversation roles accepted by every provider."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class ExecutionState(str, Enum):
    """Lifecycle states of one engine run."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"
    SPAWN_FAILED = "spawn_failed"


@dataclass(slots=True, frozen=True)
class Message:
    """One role-tagged conversation message."""

    role: Role
    content: str

    @classmethod
    def user(cls, content: str) -> Message:
        return cls(role=Role.USER, content=content)

    @classmethod
    def system(cls, content: str) -> Message:
        return cls(role=Role.SYSTEM, content=content)

    @classmethod
    def assistant(cls, content: str) -> Message:
        return cls(role=Role.ASSISTANT, content=content)


@dataclass(slots=True, frozen=True)
class RequestOptions:
    """Advisory execution options; tools ignore what they do not support."""

    temperature: float | None = None
    max_tokens: int | None = None
    stream: bool = False
    model: str | None = None


@dataclass(slots=True)
class LlmRequest:
    """Provider-agnostic analysis request."""

    messages: list[Message]
    instructions: str = ""
    options: RequestOptions = field(default_factory=RequestOptions)
    metadata: dict[str, str] = field(default_factory=dict)

    def effective_instructions(self) -> str:
        """Combine the instructions block with any system-role messages."""

        parts = [self.instructions.strip()] if self.instructions.strip() else []
        parts.extend(
            message.content.strip()
            for message in self.messages
            if message.role is Role.SYSTEM and message.content.strip()
        )
        return "\n\n".join(parts)

    def conversation(self) -> list[Message]:
        """Return non-system messages with content, in order."""

        return [
            message
            for message in self.messages
            if message.role is not Role.SYSTEM and message.content.strip()
        ]


@dataclass(slots=True, frozen=True)
class Command:
    """Concrete invocation of one external tool."""

    argv: tuple[str, ...]
    stdin: str | None = None
    env: dict[str, str] = field(default_factory=dict)
    cwd: str | None = None

    @property
    def executable(self) -> str:
        return self.argv[0]

    def with_executable(self, path: str) -> Command:
        """Return a copy with argv[0] replaced by a resolved executable path."""

        return replace(self, argv=(path, *self.argv[1:]))


@dataclass(slots=True)
class ProcessResult:
    """Terminal outcome of one execution attempt."""

    state: ExecutionState
    success: bool
    exit_code: int | None
    stdout: str
    stderr: str
    signal: str | None = None
    timed_out: bool = False
    cancelled: bool = False
    spawn_failed: bool = False
    timeout_seconds: float | None = None
    duration_seconds: float = 0.0
    stdout_truncated: bool = False
    stderr_truncated: bool = False
    pid: int | None = None


@dataclass(slots=True, frozen=True)
class ProgressUpdate:
    """Estimated progress of a running tool."""

    percent: int
    stage: str
    stdin_bytes: int = 0
    stdout_bytes: int = 0


ProgressCallback = Callable[[ProgressUpdate], None]


@dataclass(slots=True, frozen=True)
class ProviderCapabilities:
    """Optional features a tool honors."""

    streaming: bool = False
    temperature: bool = False
    max_tokens: bool = False
    system_messages: bool = True

    def to_dict(self) -> dict[str, bool]:
        return {
            "streaming": self.streaming,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "system_messages": self.system_messages,
        }


@dataclass(slots=True, frozen=True)
class Usage:
    """Token counters when the tool reports them."""

    input_tokens: int | None = None
    output_tokens: int | None = None
    total_tokens: int | None = None


@dataclass(slots=True)
class ProviderMeta:
    """Diagnostics attached to a response."""

    provider_id: str
    latency_ms: int
    model: str | None = None
    raw_stdout: str = ""
    raw_stderr: str = ""


@dataclass(slots=True)
class LlmResponse:
    """Normalized provider response."""

    message: Message
    meta: ProviderMeta
    usage: Usage | None = None

    @property
    def content(self) -> str:
        return self.message.content

    def to_log_details(self) -> dict[str, Any]:
        """Serialize response diagnostics for logging collaborators."""

        details: dict[str, Any] = {
            "provider_id": self.meta.provider_id,
            "model": self.meta.model,
            "latency_ms": self.meta.latency_ms,
            "content_chars": len(self.message.content),
        }
        if self.usage is not None:
            details["input_tokens"] = self.usage.input_tokens
            details["output_tokens"] = self.usage.output_tokens
            details["total_tokens"] = self.usage.total_tokens
        return details
