"""Per-tool command builders, normalizers and error overrides."""

from llm_cli_providers.providers.tools.base import ToolSpec
from llm_cli_providers.providers.tools.claude import CLAUDE
from llm_cli_providers.providers.tools.codex import CODEX
from llm_cli_providers.providers.tools.gemini import GEMINI

TOOLS: dict[str, ToolSpec] = {
    "claude": CLAUDE,
    "gemini": GEMINI,
    "codex": CODEX,
}

__all__ = ["CLAUDE", "CODEX", "GEMINI", "TOOLS", "ToolSpec"]
