"""Provider lookup by name and availability detection."""

from __future__ import annotations

from dataclasses import dataclass, replace

from llm_cli_providers.config import Settings
from llm_cli_providers.providers.errors import config_error
from llm_cli_providers.providers.facade import CliProvider
from llm_cli_providers.providers.tools import TOOLS
from llm_cli_providers.providers.tools.base import ToolSpec

SUPPORTED_PROVIDERS = tuple(TOOLS)


@dataclass(slots=True)
class ProviderStatus:
    """Availability snapshot of one provider."""

    name: str
    provider_id: str
    display_name: str
    available: bool
    version: str | None
    install_url: str | None


def normalize_provider_name(name: str) -> str:
    """Map ``claude``, ``Claude`` or ``claude-cli`` to ``claude``."""

    normalized = name.strip().lower()
    if normalized.endswith("-cli"):
        normalized = normalized[: -len("-cli")]
    return normalized


def resolve_tool(name: str, settings: Settings) -> ToolSpec:
    """Return the tool spec with executable and model overrides applied."""

    normalized = normalize_provider_name(name)
    tool = TOOLS.get(normalized)
    if tool is None:
        raise config_error(
            name,
            f"Unknown provider: {name!r}. Expected one of: {', '.join(SUPPORTED_PROVIDERS)}",
            locale=settings.locale,
        )
    return replace(
        tool,
        executable=settings.tools.executable_for(normalized, tool.executable),
        default_model=settings.tools.model_for(normalized) or tool.default_model,
    )


def build_provider(name: str, settings: Settings | None = None) -> CliProvider:
    """Create a provider facade by name; unknown names raise a CONFIG error."""

    effective = settings or Settings.from_env()
    return CliProvider(resolve_tool(name, effective), settings=effective)


def detect_providers(settings: Settings | None = None) -> list[ProviderStatus]:
    """Probe every supported provider for availability and version."""

    effective = settings or Settings.from_env()
    statuses: list[ProviderStatus] = []
    for name in SUPPORTED_PROVIDERS:
        provider = build_provider(name, effective)
        available = provider.is_available()
        statuses.append(
            ProviderStatus(
                name=name,
                provider_id=provider.id,
                display_name=provider.display_name,
                available=available,
                version=provider.get_version() if available else None,
                install_url=provider.tool.install_url,
            ),
        )
    return statuses
