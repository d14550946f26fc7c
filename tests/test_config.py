from __future__ import annotations

import math

import allure
import pytest

from llm_cli_providers.config import ExecutionSettings, Settings, ToolSettings

pytestmark = [
    allure.epic("Configuration"),
    allure.feature("Environment Settings"),
]


def test_from_env_defaults(monkeypatch) -> None:
    for name in (
        "LLM_CLI_TIMEOUT_SECONDS",
        "LLM_CLI_GRACE_SECONDS",
        "LLM_CLI_LOCALE",
        "LLM_CLI_DEFAULT_PROVIDER",
        "LLM_CLI_CLAUDE_EXECUTABLE",
        "LLM_CLI_CLAUDE_MODEL",
    ):
        monkeypatch.delenv(name, raising=False)

    settings = Settings.from_env()

    assert settings.execution.timeout_seconds == 300.0
    assert settings.execution.grace_seconds == 2.0
    assert settings.execution.version_timeout_seconds == 10.0
    assert settings.locale == "en"
    assert settings.default_provider == "claude"
    assert settings.tools.executable_for("claude", "claude") == "claude"
    assert settings.tools.model_for("claude") is None
    settings.validate()


def test_from_env_reads_overrides(monkeypatch) -> None:
    monkeypatch.setenv("LLM_CLI_TIMEOUT_SECONDS", "45")
    monkeypatch.setenv("LLM_CLI_GRACE_SECONDS", "0.5")
    monkeypatch.setenv("LLM_CLI_LOCALE", " DA ")
    monkeypatch.setenv("LLM_CLI_DEFAULT_PROVIDER", "Gemini")
    monkeypatch.setenv("LLM_CLI_GEMINI_EXECUTABLE", "/opt/bin/gemini")
    monkeypatch.setenv("LLM_CLI_CODEX_MODEL", "o4-mini")

    settings = Settings.from_env()

    assert settings.execution.timeout_seconds == 45.0
    assert settings.execution.grace_seconds == 0.5
    assert settings.locale == "da"
    assert settings.default_provider == "gemini"
    assert settings.tools.executable_for("gemini", "gemini") == "/opt/bin/gemini"
    assert settings.tools.model_for("codex") == "o4-mini"
    settings.validate()


@pytest.mark.parametrize(
    ("settings", "message"),
    [
        (Settings(execution=ExecutionSettings(timeout_seconds=0)), "LLM_CLI_TIMEOUT_SECONDS"),
        (Settings(execution=ExecutionSettings(timeout_seconds=-5)), "LLM_CLI_TIMEOUT_SECONDS"),
        (
            Settings(execution=ExecutionSettings(timeout_seconds=math.nan)),
            "LLM_CLI_TIMEOUT_SECONDS",
        ),
        (
            Settings(execution=ExecutionSettings(timeout_seconds=math.inf)),
            "LLM_CLI_TIMEOUT_SECONDS",
        ),
        (Settings(execution=ExecutionSettings(grace_seconds=-1)), "LLM_CLI_GRACE_SECONDS"),
        (Settings(execution=ExecutionSettings(grace_seconds=math.nan)), "LLM_CLI_GRACE_SECONDS"),
        (
            Settings(execution=ExecutionSettings(version_timeout_seconds=math.nan)),
            "LLM_CLI_VERSION_TIMEOUT_SECONDS",
        ),
        (
            Settings(execution=ExecutionSettings(progress_tick_seconds=math.nan)),
            "LLM_CLI_PROGRESS_TICK_SECONDS",
        ),
        (Settings(execution=ExecutionSettings(max_output_bytes=0)), "LLM_CLI_MAX_OUTPUT_BYTES"),
        (Settings(locale="fr"), "Unsupported LLM_CLI_LOCALE"),
        (Settings(default_provider="copilot"), "Unsupported LLM_CLI_DEFAULT_PROVIDER"),
    ],
)
def test_validate_rejects_out_of_range_values(settings: Settings, message: str) -> None:
    with pytest.raises(ValueError, match=message):
        settings.validate()


def test_nan_timeout_from_env_is_rejected(monkeypatch) -> None:
    monkeypatch.setenv("LLM_CLI_TIMEOUT_SECONDS", "nan")

    settings = Settings.from_env()

    with pytest.raises(ValueError, match="LLM_CLI_TIMEOUT_SECONDS must be > 0"):
        settings.validate()


def test_zero_grace_is_allowed() -> None:
    Settings(execution=ExecutionSettings(grace_seconds=0)).validate()


def test_blank_tool_override_falls_back_to_default() -> None:
    tools = ToolSettings(executables={"codex": ""}, models={"codex": ""})

    assert tools.executable_for("codex", "codex") == "codex"
    assert tools.model_for("codex") is None
