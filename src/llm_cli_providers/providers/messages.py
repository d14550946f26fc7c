"""User-facing message catalogs for provider errors."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_LOCALE = "en"


@dataclass(slots=True, frozen=True)
class ToolHints:
    """Tool-specific values substituted into user messages."""

    display_name: str
    login_command: str | None = None
    install_command: str | None = None
    install_url: str | None = None


@dataclass(slots=True, frozen=True)
class CatalogEntry:
    """Localized message and ordered recovery suggestions for one error kind."""

    user_message: str
    suggestions: tuple[str, ...] = ()


_EN: dict[str, CatalogEntry] = {
    "CONFIG": CatalogEntry(
        "The request to {display_name} is not valid",
        ("Check the selected provider and input files", "Check the configured timeout"),
    ),
    "AUTH": CatalogEntry(
        "You need to log in to {display_name} first",
        ('Run "{login_command}" in your terminal', "Check that your subscription is active"),
    ),
    "NOT_INSTALLED": CatalogEntry(
        "{display_name} is not installed",
        ("Install it: {install_command}", "More information: {install_url}"),
    ),
    "RATE_LIMIT": CatalogEntry(
        "Too many requests were sent to {display_name}",
        ("Wait a few minutes and try again", "Upgrade your plan for higher limits"),
    ),
    "QUOTA_EXCEEDED": CatalogEntry(
        "Your {display_name} quota is used up",
        ("Wait until the quota resets", "Check billing and usage limits for your account"),
    ),
    "CONTEXT_LENGTH": CatalogEntry(
        "The document is too long",
        ("Try a shorter document", "Split the document into smaller parts"),
    ),
    "NETWORK": CatalogEntry(
        "Could not connect to {display_name}",
        ("Check your internet connection", "Try again in a moment"),
    ),
    "TIMEOUT": CatalogEntry(
        "The request took too long",
        ("Try again with a shorter document", "Increase the timeout in settings"),
    ),
    "MODEL_OVERLOADED": CatalogEntry(
        "The {display_name} model is overloaded right now",
        ("Try again in a few minutes", "Try another provider"),
    ),
    "PROVIDER": CatalogEntry(
        "{display_name} failed",
        (
            "Try another provider (Claude, Gemini, Codex)",
            "Check the log file for details",
            "Contact support if the problem persists",
        ),
    ),
    "CANCELLED": CatalogEntry("The analysis was cancelled"),
    "UNKNOWN": CatalogEntry(
        "An unexpected error occurred",
        ("Check the log file for details", "Try again"),
    ),
}

_DA: dict[str, CatalogEntry] = {
    "CONFIG": CatalogEntry(
        "Anmodningen til {display_name} er ugyldig",
        ("Tjek den valgte provider og inputfilerne", "Tjek den indstillede timeout"),
    ),
    "AUTH": CatalogEntry(
        "Du skal logge ind på {display_name} først",
        ('Kør "{login_command}" i din terminal', "Tjek at du har et gyldigt abonnement"),
    ),
    "NOT_INSTALLED": CatalogEntry(
        "{display_name} er ikke installeret",
        ("Installer: {install_command}", "Se mere på: {install_url}"),
    ),
    "RATE_LIMIT": CatalogEntry(
        "Du har sendt for mange anmodninger",
        ("Vent et par minutter og prøv igen", "Opgrader dit abonnement for højere grænser"),
    ),
    "QUOTA_EXCEEDED": CatalogEntry(
        "Din kvote hos {display_name} er brugt op",
        ("Vent til kvoten nulstilles", "Tjek betaling og forbrugsgrænser for din konto"),
    ),
    "CONTEXT_LENGTH": CatalogEntry(
        "Dokumentet er for langt",
        ("Prøv med et kortere dokument", "Del dokumentet op i mindre dele"),
    ),
    "NETWORK": CatalogEntry(
        "Kunne ikke oprette forbindelse",
        ("Tjek din internetforbindelse", "Prøv igen om et øjeblik"),
    ),
    "TIMEOUT": CatalogEntry(
        "Anmodningen tog for lang tid",
        ("Prøv igen med et kortere dokument", "Øg timeout i indstillinger"),
    ),
    "MODEL_OVERLOADED": CatalogEntry(
        "Modellen hos {display_name} er overbelastet lige nu",
        ("Prøv igen om et par minutter", "Prøv en anden provider"),
    ),
    "PROVIDER": CatalogEntry(
        "CLI værktøjet fejlede",
        (
            "Prøv med en anden provider (Claude, Gemini, Codex)",
            "Tjek log filen for detaljer",
            "Kontakt support hvis problemet fortsætter",
        ),
    ),
    "CANCELLED": CatalogEntry("Analysen blev afbrudt"),
    "UNKNOWN": CatalogEntry(
        "Der opstod en uventet fejl",
        ("Tjek log filen for detaljer", "Prøv igen"),
    ),
}

CATALOGS: dict[str, dict[str, CatalogEntry]] = {"en": _EN, "da": _DA}


def render(kind: str, *, locale: str, hints: ToolHints) -> tuple[str, tuple[str, ...]]:
    """Return the localized user message and suggestions for an error kind.

    Suggestions referencing a hint the tool does not provide (for example a
    login command) are dropped rather than rendered with a blank.
    """

    catalog = CATALOGS.get(locale, CATALOGS[DEFAULT_LOCALE])
    entry = catalog.get(kind) or catalog["UNKNOWN"]
    values = {
        "display_name": hints.display_name,
        "login_command": hints.login_command,
        "install_command": hints.install_command,
        "install_url": hints.install_url,
    }
    suggestions: list[str] = []
    for template in entry.suggestions:
        if any(f"{{{name}}}" in template and value is None for name, value in values.items()):
            continue
        suggestions.append(template.format(**values))
    return entry.user_message.format(**values), tuple(suggestions)
