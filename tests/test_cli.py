from __future__ import annotations

import os
from pathlib import Path

import allure
import pytest
from click.testing import CliRunner

from llm_cli_providers import __version__
from llm_cli_providers.main import llm_cli

pytestmark = [
    allure.epic("Document Analysis"),
    allure.feature("Command Line"),
    pytest.mark.skipif(os.name == "nt", reason="fake CLI relies on a shebang"),
]


@pytest.fixture()
def cli_env(fake_cli, monkeypatch) -> None:
    monkeypatch.setenv("LLM_CLI_CLAUDE_EXECUTABLE", str(fake_cli("claude")))
    monkeypatch.setenv("LLM_CLI_CODEX_EXECUTABLE", str(fake_cli("codex")))
    monkeypatch.setenv("LLM_CLI_GEMINI_EXECUTABLE", "definitely-missing-gemini-binary")
    monkeypatch.setenv("LLM_CLI_GRACE_SECONDS", "0.5")
    monkeypatch.delenv("LLM_CLI_LOCALE", raising=False)
    monkeypatch.delenv("LLM_CLI_DEFAULT_PROVIDER", raising=False)
    monkeypatch.delenv("LLM_CLI_TIMEOUT_SECONDS", raising=False)


def _write_inputs(tmp_path: Path) -> tuple[Path, Path]:
    document = tmp_path / "doc.txt"
    document.write_text("The meeting moved to Friday.", encoding="utf-8")
    instructions = tmp_path / "instructions.txt"
    instructions.write_text("Extract dates.", encoding="utf-8")
    return document, instructions


def test_version_option() -> None:
    result = CliRunner().invoke(llm_cli, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_providers_lists_availability(cli_env) -> None:
    result = CliRunner().invoke(llm_cli, ["providers"])

    assert result.exit_code == 0, result.output
    assert "- claude (Claude (Local CLI)): available version=2.0.14" in result.output
    assert "- gemini (Gemini (Local CLI)): not installed" in result.output
    assert "install=https://github.com/google-gemini/gemini-cli" in result.output


def test_providers_filter_fails_when_provider_missing(cli_env) -> None:
    result = CliRunner().invoke(llm_cli, ["providers", "--provider", "gemini"])

    assert result.exit_code == 1
    assert "claude" not in result.output


def test_analyze_prints_provider_output(cli_env, tmp_path: Path) -> None:
    document, instructions = _write_inputs(tmp_path)

    result = CliRunner().invoke(
        llm_cli,
        [
            "analyze",
            "--provider",
            "codex",
            "--document",
            str(document),
            "--instructions",
            str(instructions),
        ],
    )

    assert result.exit_code == 0, result.output
    assert "Analysis by codex-cli completed" in result.output
    assert "(version 2.0.14)" in result.output
    assert "Extract dates." in result.output
    assert "The meeting moved to Friday." in result.output


def test_analyze_failure_exits_non_zero_with_localized_error(
    cli_env,
    tmp_path: Path,
    monkeypatch,
) -> None:
    monkeypatch.setenv("STUB_MODE", "fail")
    monkeypatch.setenv("STUB_STDERR", "Not logged in. Please run claude login")
    document, instructions = _write_inputs(tmp_path)

    result = CliRunner().invoke(
        llm_cli,
        [
            "analyze",
            "--document",
            str(document),
            "--instructions",
            str(instructions),
            "--locale",
            "da",
        ],
    )

    assert result.exit_code == 1
    assert "[AUTH]" in result.output
    assert "Du skal logge ind på Claude (Local CLI) først" in result.output
    assert '- Kør "claude login" i din terminal' in result.output


def test_analyze_timeout_option(cli_env, tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("STUB_MODE", "hang")
    document, instructions = _write_inputs(tmp_path)

    result = CliRunner().invoke(
        llm_cli,
        [
            "analyze",
            "--provider",
            "claude",
            "--document",
            str(document),
            "--instructions",
            str(instructions),
            "--timeout",
            "1",
        ],
    )

    assert result.exit_code == 1
    assert "[TIMEOUT]" in result.output
    assert "The request took too long" in result.output


def test_invalid_environment_is_reported(cli_env, tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("LLM_CLI_TIMEOUT_SECONDS", "-5")
    document, instructions = _write_inputs(tmp_path)

    result = CliRunner().invoke(
        llm_cli,
        ["analyze", "--document", str(document), "--instructions", str(instructions)],
    )

    assert result.exit_code == 1
    assert "LLM_CLI_TIMEOUT_SECONDS must be > 0." in result.output
