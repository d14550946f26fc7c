"""CLI entrypoint for llm-cli-providers."""

import logging
from pathlib import Path

import rich_click as click

from llm_cli_providers import __version__
from llm_cli_providers.config import SUPPORTED_LOCALES
from llm_cli_providers.controllers import (
    AnalyzeCommand,
    ProviderCliController,
    ProvidersCommand,
)
from llm_cli_providers.providers.registry import SUPPORTED_PROVIDERS

click.rich_click.USE_MARKDOWN = True
CONTROLLER = ProviderCliController()


@click.group()
@click.version_option(version=__version__, prog_name="llm-cli")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging level for diagnostics on stderr.",
)
def llm_cli(log_level: str) -> None:
    """Run command-line AI assistants as document analysis backends."""

    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@llm_cli.command("providers")
@click.option(
    "--provider",
    type=click.Choice(SUPPORTED_PROVIDERS),
    default=None,
    help="Only show this provider.",
)
def providers(provider: str | None) -> None:
    """Show which CLI providers are installed and their versions."""

    result = CONTROLLER.providers(ProvidersCommand(provider=provider))
    _emit_lines(result.lines)
    if not result.success:
        raise click.ClickException("No available CLI provider found.")


@llm_cli.command("analyze")
@click.option(
    "--provider",
    type=click.Choice(SUPPORTED_PROVIDERS),
    default=None,
    help="CLI provider to use. Defaults to `LLM_CLI_DEFAULT_PROVIDER`.",
)
@click.option(
    "--document",
    "document_path",
    type=click.Path(path_type=Path, exists=True, dir_okay=False),
    required=True,
    help="Text document to analyze.",
)
@click.option(
    "--instructions",
    "instructions_path",
    type=click.Path(path_type=Path, exists=True, dir_okay=False),
    required=True,
    help="File with system instructions for the analysis.",
)
@click.option(
    "--timeout",
    "timeout_seconds",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Timeout in seconds. Defaults to `LLM_CLI_TIMEOUT_SECONDS` (300).",
)
@click.option(
    "--locale",
    type=click.Choice(SUPPORTED_LOCALES),
    default=None,
    help="Language of error messages.",
)
def analyze(  # noqa: PLR0913
    provider: str | None,
    document_path: Path,
    instructions_path: Path,
    timeout_seconds: float | None,
    locale: str | None,
) -> None:
    """Analyze a document with a CLI provider and print the result."""

    result = CONTROLLER.analyze(
        AnalyzeCommand(
            provider=provider,
            document_path=document_path,
            instructions_path=instructions_path,
            timeout_seconds=timeout_seconds,
            locale=locale,
        ),
    )
    _emit_lines(result.lines)
    if not result.success:
        raise click.ClickException("Analysis failed.")


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    llm_cli()
