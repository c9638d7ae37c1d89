"""Main CLI entry point for tabwright.

This module provides the command-line interface that drives tab
organization and tab analysis actions against the configured provider.
"""

import asyncio
import json
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, List, Optional, Sequence, TypeVar

import click
from rich.console import Console
from rich.markdown import Markdown
from rich.markup import escape
from rich.panel import Panel
from rich.progress import BarColumn, Progress, TextColumn
from rich.table import Table
from rich.tree import Tree

from tabwright import __version__
from tabwright.core.config import ConfigManager, ProviderId, config_manager
from tabwright.core.enriched import (
    BUILTIN_ACTIONS,
    EnrichedResult,
    ExtractionResult,
    PipelinePhase,
    execute_actions,
    resolve_actions,
    run_enriched_actions,
)
from tabwright.core.executor import RequestExecutor
from tabwright.core.fallback import FallbackOrchestrator
from tabwright.core.organize import (
    STRATEGY_RUBRICS,
    Organization,
    OrganizationFailedError,
    TabOrganizer,
)
from tabwright.core.provider_catalog import PROVIDERS
from tabwright.core.providers.errors import ProviderError
from tabwright.core.session import AISession, AIUnavailableError, open_session
from tabwright.host import HttpPageHost
from tabwright.utils.log import default_log_dir, get_logger, init_logger
from tabwright.utils.messages import TabDescriptor

console = Console()
logger = get_logger()

T = TypeVar("T")

_PHASE_LABELS = {
    PipelinePhase.EXTRACTING: "Fetching page content",
    PipelinePhase.THINKING: "Analyzing & reasoning",
    PipelinePhase.GENERATING: "Generating results",
}


@dataclass
class CliState:
    """Objects shared by every subcommand.

    ``executor`` and ``host_transport`` are left unset in normal use; tests
    pass a pre-built state to route HTTP through mock transports.
    """

    config: ConfigManager = config_manager
    executor: Optional[RequestExecutor] = None
    host_transport: Any = None
    verbose: bool = False


def _run(coro: Awaitable[T]) -> T:
    """Run a coroutine, turning domain errors into clean CLI errors."""
    try:
        return asyncio.run(coro)  # type: ignore[arg-type]
    except OrganizationFailedError as exc:
        for violation in exc.failure.violations:
            console.print(f"[yellow]- {escape(violation)}[/yellow]")
        raise click.ClickException(str(exc)) from exc
    except (ProviderError, AIUnavailableError, ValueError) as exc:
        logger.debug(
            "[cli] Command failed: %s",
            type(exc).__name__,
            extra={"error_code": getattr(exc, "error_code", None)},
        )
        raise click.ClickException(str(exc)) from exc


def load_tabs(path: str) -> List[TabDescriptor]:
    """Read a JSON array of {id, title, url} objects."""
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise click.ClickException(f"Could not read tabs file {path}: {exc}") from exc
    if not isinstance(data, list):
        raise click.ClickException("Tabs file must contain a JSON array of tab objects")
    tabs: List[TabDescriptor] = []
    for index, entry in enumerate(data):
        if not isinstance(entry, dict):
            raise click.ClickException(f"Tab entry {index} is not an object")
        try:
            tabs.append(TabDescriptor.from_mapping(entry))
        except ValueError as exc:
            raise click.ClickException(f"Tab entry {index}: {exc}") from exc
    return tabs


def _print_organization(organization: Organization, tabs: Sequence[TabDescriptor]) -> None:
    by_id = {tab.id: tab for tab in tabs}
    tree = Tree("[bold]Tab groups[/bold]")
    for group in organization.groups:
        branch = tree.add(f"[cyan]{escape(group.name)}[/cyan] ({len(group.tab_ids)})")
        for tab_id in group.tab_ids:
            tab = by_id.get(tab_id)
            title = tab.display_title if tab else "Unknown tab"
            branch.add(f"[dim]{tab_id}[/dim] {escape(title)}")
    console.print(tree)
    if organization.explanation:
        console.print(f"\n{escape(organization.explanation)}")


async def _open(state: CliState) -> AISession:
    return await open_session(state.config)


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    envvar="TABWRIGHT_CONFIG",
    help="Settings file (default: ~/.tabwright.json)",
)
@click.option("--verbose", is_flag=True, help="Write debug logs to ~/.tabwright/logs")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[str], verbose: bool) -> None:
    """tabwright - AI-powered browser tab organization"""
    state = ctx.obj if isinstance(ctx.obj, CliState) else CliState()
    if config_path:
        state.config = ConfigManager(Path(config_path))
    state.verbose = verbose or state.config.get_global_config().verbose
    if state.verbose:
        init_logger(default_log_dir())
    ctx.obj = state
    logger.debug(
        "[cli] Starting CLI invocation",
        extra={"command": ctx.invoked_subcommand, "config": str(state.config.global_config_path)},
    )


@cli.command(name="organize")
@click.argument("tabs_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--strategy",
    type=click.Choice(sorted(STRATEGY_RUBRICS)),
    default="smart",
    show_default=True,
    help="Grouping rubric",
)
@click.option("--feedback", type=str, help="Instructions for regrouping")
@click.option("--json", "as_json", is_flag=True, help="Print the organization as JSON")
@click.pass_obj
def organize_cmd(
    state: CliState, tabs_file: str, strategy: str, feedback: Optional[str], as_json: bool
) -> None:
    """Group the tabs in TABS_FILE with the configured model"""
    tabs = load_tabs(tabs_file)

    async def _organize() -> Organization:
        session = await _open(state)
        organizer = TabOrganizer(FallbackOrchestrator(session, state.executor))
        return await organizer.organize(tabs, strategy, feedback)

    with console.status("Organizing tabs...", spinner="dots"):
        organization = _run(_organize())

    if as_json:
        click.echo(json.dumps(organization.to_dict(), indent=2))
    else:
        _print_organization(organization, tabs)


class _ConsoleObserver:
    """Renders enriched pipeline progress with a rich progress bar."""

    def __init__(self, progress: Progress) -> None:
        self.progress = progress
        self.task = progress.add_task("Starting", total=100)

    def on_phase(self, phase: PipelinePhase) -> None:
        self.progress.update(self.task, description=_PHASE_LABELS[phase])

    def on_progress(self, percent: int) -> None:
        self.progress.update(self.task, completed=percent)

    def on_extraction_progress(self, current: int, total: int, result: ExtractionResult) -> None:
        self.progress.update(
            self.task,
            description=f"Fetching page content ({current}/{total}) {result.title or 'Unknown'}",
        )


def _print_enriched(result: EnrichedResult, show_reasoning: bool) -> None:
    summary = result.extraction_summary
    console.print(
        f"[dim]Extracted {summary.successful}/{summary.total} tabs; "
        f"{summary.searchable} left to web search; "
        f"{summary.browser_internal} browser pages skipped "
        f"({result.provider_id}/{result.model})[/dim]\n"
    )
    if show_reasoning and result.reasoning_blocks:
        console.print(
            Panel("\n\n".join(result.reasoning_blocks), title="Reasoning", border_style="dim")
        )
    console.print(Markdown(result.text))


@cli.command(name="act")
@click.argument("tabs_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "-a",
    "--action",
    "action_ids",
    multiple=True,
    required=True,
    type=click.Choice(sorted(BUILTIN_ACTIONS)),
    help="Action to run (repeatable)",
)
@click.option(
    "--enriched/--no-enriched",
    default=None,
    help="Fetch page content and use reasoning/web search (default: the enriched_mode setting)",
)
@click.option("--show-reasoning", is_flag=True, help="Print reasoning blocks when available")
@click.pass_obj
def act_cmd(
    state: CliState,
    tabs_file: str,
    action_ids: Sequence[str],
    enriched: Optional[bool],
    show_reasoning: bool,
) -> None:
    """Run analysis actions over the tabs in TABS_FILE"""
    tabs = load_tabs(tabs_file)
    prompts = resolve_actions(action_ids)
    if enriched is None:
        enriched = state.config.get_global_config().ai.enriched_mode

    if not enriched:

        async def _basic() -> str:
            session = await _open(state)
            return await execute_actions(FallbackOrchestrator(session, state.executor), tabs, prompts)

        with console.status("Running actions...", spinner="dots"):
            text = _run(_basic())
        console.print(Markdown(text))
        return

    host = HttpPageHost(tabs, transport=state.host_transport)
    with Progress(
        TextColumn("{task.description}"),
        BarColumn(),
        TextColumn("{task.percentage:>3.0f}%"),
        console=console,
        transient=True,
    ) as progress:
        observer = _ConsoleObserver(progress)

        async def _enriched() -> EnrichedResult:
            session = await _open(state)
            # --enriched applies to this run even when the setting is off.
            session = session.with_settings(enriched_mode=True)
            return await run_enriched_actions(
                session,
                host,
                [tab.id for tab in tabs],
                prompts,
                observer,
                executor=state.executor,
            )

        result = _run(_enriched())
    _print_enriched(result, show_reasoning)


@cli.command(name="explain")
@click.argument("org_file", type=click.Path(exists=True, dir_okay=False))
@click.pass_obj
def explain_cmd(state: CliState, org_file: str) -> None:
    """Explain an organization previously saved with `organize --json`"""
    try:
        organization = Organization.from_dict(json.loads(Path(org_file).read_text(encoding="utf-8")))
    except (OSError, json.JSONDecodeError, ValueError, TypeError, AttributeError) as exc:
        raise click.ClickException(f"Could not read organization file {org_file}: {exc}") from exc

    async def _explain() -> str:
        session = await _open(state)
        return await TabOrganizer(FallbackOrchestrator(session, state.executor)).explain_organization(
            organization
        )

    console.print(_run(_explain()).strip())


@cli.command(name="providers")
def providers_cmd() -> None:
    """List supported providers and their models"""
    table = Table(title="Providers")
    table.add_column("Provider", style="cyan")
    table.add_column("Model")
    table.add_column("Notes", style="dim")
    for provider in PROVIDERS.values():
        models = provider.model_catalog or ()
        if not models:
            table.add_row(provider.id.value, "(any)", "set custom_endpoint and model")
            continue
        for index, model in enumerate(models):
            notes = []
            if model.id == provider.default_model:
                notes.append("default")
            if model.is_free:
                notes.append("free")
            if model.supports_reasoning_trace:
                notes.append("reasoning")
            if index == 0 and provider.supports_enriched_mode:
                notes.append("enriched mode")
            table.add_row(
                provider.id.value if index == 0 else "",
                f"{model.id} [dim]({escape(model.display_name)})[/dim]",
                ", ".join(notes),
            )
    console.print(table)


@cli.command(name="test-connection")
@click.pass_obj
def test_connection_cmd(state: CliState) -> None:
    """Send a trivial prompt to check the configured provider"""

    async def _check() -> Any:
        session = await _open(state)
        return await TabOrganizer(FallbackOrchestrator(session, state.executor)).test_connection()

    check = _run(_check())
    if check.success:
        console.print(f"[green]Connection OK[/green] Response: {escape(check.response or '')}")
    else:
        raise click.ClickException(f"Connection failed: {check.error}")


@cli.command(name="config")
@click.option(
    "--provider",
    type=click.Choice([p.value for p in ProviderId]),
    help="Select the provider",
)
@click.option("--model", type=str, help="Model id (empty string resets to the provider default)")
@click.option("--endpoint", type=str, help="Base URL for the custom provider")
@click.option("--api-key", type=str, help="Store an API key for the selected provider")
@click.option("--enable/--disable", "enabled", default=None, help="Turn AI features on or off")
@click.option("--enriched/--no-enriched", "enriched_mode", default=None, help="Prefer enriched mode")
@click.pass_obj
def config_cmd(
    state: CliState,
    provider: Optional[str],
    model: Optional[str],
    endpoint: Optional[str],
    api_key: Optional[str],
    enabled: Optional[bool],
    enriched_mode: Optional[bool],
) -> None:
    """Show or update the AI configuration"""
    changes: dict = {}
    if provider is not None:
        changes["provider"] = ProviderId(provider)
        if model is None:
            changes["model"] = ""
    if model is not None:
        changes["model"] = model
    if endpoint is not None:
        changes["custom_endpoint"] = endpoint
    if enabled is not None:
        changes["enabled"] = enabled
    if enriched_mode is not None:
        changes["enriched_mode"] = enriched_mode
    if changes:
        state.config.update_ai_settings(**changes)
        logger.info("[cli] Updated AI settings", extra={"fields": sorted(changes)})
    if api_key is not None:
        selected = state.config.get_global_config().ai.provider
        state.config.save_api_key(selected, api_key)
        logger.info("[cli] Stored API key", extra={"provider": selected.value})

    config = state.config.get_global_config()
    ai = config.ai
    session = AISession.from_settings(ai, credential=state.config.get_api_key(ai.provider))
    availability = session.availability()

    console.print("\n[bold]AI Configuration[/bold]\n")
    console.print(f"Version: {__version__}")
    console.print(f"Settings file: {state.config.global_config_path}")
    console.print(f"Enabled: {ai.enabled}")
    console.print(f"Provider: {session.provider.display_name} ({ai.provider.value})")
    console.print(f"Model: {session.model or 'Not set'}")
    if ai.provider == ProviderId.CUSTOM:
        console.print(f"Custom endpoint: {ai.custom_endpoint or 'Not set'}")
    console.print(f"API Key: {'***' if session.credential else 'Not set'}")
    console.print(f"Enriched mode: {ai.enriched_mode}")
    if availability.available:
        console.print("Status: [green]ready[/green]\n")
    else:
        console.print(f"Status: [yellow]{escape(availability.reason or 'unavailable')}[/yellow]\n")


@cli.command(name="version")
def version_cmd() -> None:
    """Show version information"""
    console.print(f"tabwright version {__version__}")


def main() -> None:
    """Main entry point."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)
    except SystemExit:
        raise
    except (RuntimeError, ValueError, TypeError, OSError, click.ClickException) as e:
        console.print(f"[red]Fatal error: {escape(str(e))}[/red]")
        logger.warning(
            "[cli] Fatal error in main CLI entrypoint: %s: %s",
            type(e).__name__,
            e,
        )
        sys.exit(1)


if __name__ == "__main__":
    main()
