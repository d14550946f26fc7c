from __future__ import annotations

import allure
import pytest

from llm_cli_providers.providers.errors import (
    ErrorKind,
    ProviderError,
    config_error,
    make_error,
    not_installed,
    unknown_error,
)
from llm_cli_providers.providers.messages import CATALOGS, ToolHints, render

pytestmark = [
    allure.epic("Error Taxonomy"),
    allure.feature("Localized Messages"),
]


def test_every_kind_has_a_message_in_every_locale() -> None:
    for locale, catalog in CATALOGS.items():
        for kind in ErrorKind:
            assert kind.value in catalog, f"{locale} is missing {kind.value}"


def test_recoverability_follows_kind() -> None:
    non_recoverable = {kind for kind in ErrorKind if not kind.is_recoverable}

    assert non_recoverable == {ErrorKind.PROVIDER, ErrorKind.CANCELLED, ErrorKind.UNKNOWN}


def test_suggestions_without_hint_values_are_dropped() -> None:
    user_message, suggestions = render(
        "AUTH",
        locale="en",
        hints=ToolHints(display_name="Gemini (Local CLI)"),
    )

    assert user_message == "You need to log in to Gemini (Local CLI) first"
    assert suggestions == ("Check that your subscription is active",)


def test_unknown_locale_falls_back_to_english() -> None:
    user_message, _ = render("TIMEOUT", locale="fr", hints=ToolHints(display_name="x"))

    assert user_message == "The request took too long"


def test_not_installed_renders_install_hints_in_danish() -> None:
    error = not_installed(
        "codex-cli",
        hints=ToolHints(
            display_name="Codex (Local CLI)",
            install_command="npm install -g @openai/codex",
            install_url="https://github.com/openai/codex",
        ),
        locale="da",
    )

    assert error.kind is ErrorKind.NOT_INSTALLED
    assert error.user_message == "Codex (Local CLI) er ikke installeret"
    assert error.recovery_suggestions == (
        "Installer: npm install -g @openai/codex",
        "Se mere på: https://github.com/openai/codex",
    )


def test_provider_error_is_an_exception_with_readable_str() -> None:
    error = config_error("claude-cli", "Document file not found: missing.txt")

    with pytest.raises(ProviderError) as caught:
        raise error

    assert caught.value.kind is ErrorKind.CONFIG
    assert str(caught.value) == "[CONFIG] claude-cli: Document file not found: missing.txt"


def test_unknown_error_keeps_cause_and_serializes() -> None:
    cause = RuntimeError("kaboom")

    error = unknown_error("gemini-cli", cause)
    payload = error.to_dict()

    assert error.cause is cause
    assert error.is_recoverable is False
    assert payload["kind"] == "UNKNOWN"
    assert payload["message"] == "Unexpected RuntimeError: kaboom"
    assert payload["cause"] == "RuntimeError('kaboom')"


def test_make_error_defaults_display_name_to_provider_id() -> None:
    error = make_error(ErrorKind.NETWORK, provider_id="codex-cli", message="offline")

    assert error.user_message == "Could not connect to codex-cli"
    assert error.is_recoverable is True
