"""Runtime configuration for CLI provider execution."""

from __future__ import annotations

import math
import os
from dataclasses import dataclass, field

SUPPORTED_LOCALES = ("en", "da")
_TOOL_NAMES = ("claude", "gemini", "codex")


@dataclass(slots=True)
class ExecutionSettings:
    """Process execution limits shared by every provider."""

    timeout_seconds: float = 300.0
    grace_seconds: float = 2.0
    version_timeout_seconds: float = 10.0
    progress_tick_seconds: float = 0.5
    max_output_bytes: int = 16 * 1024 * 1024


@dataclass(slots=True)
class ToolSettings:
    """Per-tool executable and model overrides."""

    executables: dict[str, str] = field(default_factory=dict)
    models: dict[str, str] = field(default_factory=dict)

    def executable_for(self, tool: str, default: str) -> str:
        """Return configured executable name or path for a tool."""

        return self.executables.get(tool) or default

    def model_for(self, tool: str) -> str | None:
        """Return configured default model for a tool, if any."""

        return self.models.get(tool) or None


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    execution: ExecutionSettings = field(default_factory=ExecutionSettings)
    tools: ToolSettings = field(default_factory=ToolSettings)
    locale: str = "en"
    default_provider: str = "claude"

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment with defaults suited to local use."""

        return cls(
            execution=ExecutionSettings(
                timeout_seconds=float(os.getenv("LLM_CLI_TIMEOUT_SECONDS", "300")),
                grace_seconds=float(os.getenv("LLM_CLI_GRACE_SECONDS", "2.0")),
                version_timeout_seconds=float(
                    os.getenv("LLM_CLI_VERSION_TIMEOUT_SECONDS", "10"),
                ),
                progress_tick_seconds=float(os.getenv("LLM_CLI_PROGRESS_TICK_SECONDS", "0.5")),
                max_output_bytes=int(
                    os.getenv("LLM_CLI_MAX_OUTPUT_BYTES", str(16 * 1024 * 1024)),
                ),
            ),
            tools=ToolSettings(
                executables=_collect_tool_values("EXECUTABLE"),
                models=_collect_tool_values("MODEL"),
            ),
            locale=os.getenv("LLM_CLI_LOCALE", "en").strip().lower(),
            default_provider=os.getenv("LLM_CLI_DEFAULT_PROVIDER", "claude").strip().lower(),
        )

    def validate(self) -> None:
        """Raise configuration error if any value is out of range."""

        execution = self.execution
        if not is_positive_seconds(execution.timeout_seconds):
            raise ValueError("LLM_CLI_TIMEOUT_SECONDS must be > 0.")
        if not math.isfinite(execution.grace_seconds) or execution.grace_seconds < 0:
            raise ValueError("LLM_CLI_GRACE_SECONDS must be >= 0.")
        if not is_positive_seconds(execution.version_timeout_seconds):
            raise ValueError("LLM_CLI_VERSION_TIMEOUT_SECONDS must be > 0.")
        if not is_positive_seconds(execution.progress_tick_seconds):
            raise ValueError("LLM_CLI_PROGRESS_TICK_SECONDS must be > 0.")
        if execution.max_output_bytes <= 0:
            raise ValueError("LLM_CLI_MAX_OUTPUT_BYTES must be a positive integer.")
        if self.locale not in SUPPORTED_LOCALES:
            raise ValueError(
                f"Unsupported LLM_CLI_LOCALE: {self.locale!r}. "
                f"Expected one of: {', '.join(SUPPORTED_LOCALES)}.",
            )
        if self.default_provider not in _TOOL_NAMES:
            raise ValueError(
                f"Unsupported LLM_CLI_DEFAULT_PROVIDER: {self.default_provider!r}. "
                f"Expected one of: {', '.join(_TOOL_NAMES)}.",
            )


def is_positive_seconds(value: float) -> bool:
    """True for a finite duration above zero; rejects NaN, infinity and non-numbers."""

    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and value > 0


def _collect_tool_values(suffix: str) -> dict[str, str]:
    values: dict[str, str] = {}
    for tool in _TOOL_NAMES:
        raw = os.getenv(f"LLM_CLI_{tool.upper()}_{suffix}", "").strip()
        if raw:
            values[tool] = raw
    return values
