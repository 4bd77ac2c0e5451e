"""Copilot CLI - generate intents or agents, review them, save them.

Usage:
    copilot generate intents "A FAQ for a coffee shop" --avg-count 6 --force-options
    copilot generate agents "A museum guide" --model openai/gpt-4.1-mini
    copilot save --existing-dataset ds_123
    python -m copilot version
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated, Any, Optional

import typer
from dotenv import load_dotenv

# Load .env early for provider selection
load_dotenv()
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm
from rich.table import Table

from copilot import __version__
from copilot.app.config import CopilotConfig, get_config, reload_config
from copilot.core import events
from copilot.core.errors import ConfigurationError
from copilot.core.event_bus import EventBus
from copilot.core.models.extraction import ObjectKind
from copilot.core.models.generation import SessionStatus
from copilot.core.models.staging import DatasetLink, SaveBatchResult, StagingItem
from copilot.core.notifications import Notifier
from copilot.domain.generation.tools import (
    AgentGenerationOptions,
    AgentGenerationTool,
    GenerationTool,
    IntentGenerationOptions,
    IntentGenerationTool,
)
from copilot.domain.persistence import (
    AgentPersister,
    BatchPersistenceOrchestrator,
    DatasetLinker,
    IntentPersister,
)
from copilot.domain.resolution.tag_index import TagIndex
from copilot.domain.session import CopilotSession
from copilot.domain.staging import StagingBuffer
from copilot.infrastructure.llm.provider_factory import ProviderFactory
from copilot.infrastructure.resources import (
    BackendSession,
    agents_client,
    datasets_client,
    intents_client,
)
from copilot.utils.logging import setup_logging

app = typer.Typer(
    name="copilot",
    help="Copilot CLI - generate and persist intents and agents",
    add_completion=False,
)
generate_app = typer.Typer(help="Generate objects with the language model")
app.add_typer(generate_app, name="generate")

console = Console()

_LEVEL_STYLES = {
    "info": "cyan",
    "success": "green",
    "warning": "yellow",
    "error": "red",
}


@app.callback()
def main_callback(
    config_path: Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to configuration file")] = None,
    log_level: Annotated[Optional[str], typer.Option("--log-level", "-l", help="DEBUG, INFO, WARNING or ERROR")] = None,
) -> None:
    """Load configuration and set up logging."""
    config = reload_config(config_path) if config_path else get_config()
    if log_level:
        config.log_level = log_level.upper()
    setup_logging(level=config.log_level, log_dir=config.log_dir, console_output=False)


@app.command("version")
def version() -> None:
    """Show the installed version."""
    console.print(f"copilot {__version__}")


@generate_app.command("intents")
def generate_intents(
    prompt: Annotated[str, typer.Argument(help="What the intents should cover")],
    model: Annotated[Optional[str], typer.Option("--model", "-m", help="LLM model to use")] = None,
    language: Annotated[str, typer.Option("--language", help="Dataset language (en, es)")] = "en",
    avg_count: Annotated[int, typer.Option("--avg-count", help="Average patterns/responses per intent")] = 4,
    force_options: Annotated[bool, typer.Option("--force-options", help="Every intent gets follow-up options")] = False,
    context_variable: Annotated[Optional[list[str]], typer.Option("--context", help="Context variable usable in responses")] = None,
    dataset: Annotated[Optional[str], typer.Option("--dataset", help="Create a dataset with this name and add the intents")] = None,
    existing_dataset: Annotated[Optional[str], typer.Option("--existing-dataset", help="Add the intents to this dataset id")] = None,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Save without asking")] = False,
) -> None:
    """Generate intents, review them and save them to the backend."""
    link = _dataset_link(dataset, existing_dataset)

    tool = IntentGenerationTool(
        IntentGenerationOptions(
            language=language,
            avg_count=avg_count,
            force_options=force_options,
            context_variables=list(context_variable or []),
        )
    )
    _run(tool, prompt, model, link, yes)


@generate_app.command("agents")
def generate_agents(
    prompt: Annotated[str, typer.Argument(help="What kind of agents to create")],
    model: Annotated[Optional[str], typer.Option("--model", "-m", help="LLM model to use")] = None,
    language: Annotated[str, typer.Option("--language", help="Dataset language (en, es)")] = "en",
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Save without asking")] = False,
) -> None:
    """Generate agents, review them and save them to the backend."""
    tool = AgentGenerationTool(AgentGenerationOptions(language=language))
    _run(tool, prompt, model, None, yes)


@app.command("save")
def save_staged(
    file: Annotated[Optional[Path], typer.Option("--file", "-f", help="Staging file (default: the one in the data dir)")] = None,
    dataset: Annotated[Optional[str], typer.Option("--dataset", help="Create a dataset with this name and add the intents")] = None,
    existing_dataset: Annotated[Optional[str], typer.Option("--existing-dataset", help="Add the intents to this dataset id")] = None,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Save without asking")] = False,
) -> None:
    """Save objects kept from an earlier run.

    Intents go to the dataset recorded with them unless a dataset option is given.
    """
    link = _dataset_link(dataset, existing_dataset)
    config = get_config()
    path = file or config.staging_path
    buffer = StagingBuffer.load(path) if path.exists() else StagingBuffer()
    if not len(buffer):
        console.print(f"[yellow]No staged objects in {path}[/yellow]")
        return

    console.print(_items_table(buffer.snapshot()))
    if not yes and not Confirm.ask(f"Save {len(buffer)} object(s)?", default=True):
        return

    try:
        code = asyncio.run(_save_staged(buffer, path, link, yes, config))
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(1)
    if code:
        raise typer.Exit(code)


def _dataset_link(dataset: Optional[str], existing_dataset: Optional[str]) -> Optional[DatasetLink]:
    if dataset and existing_dataset:
        console.print("[red]Error:[/red] use either --dataset or --existing-dataset, not both")
        raise typer.Exit(1)
    if dataset:
        return DatasetLink(mode="new", dataset_name=dataset)
    if existing_dataset:
        return DatasetLink(mode="existing", dataset_id=existing_dataset)
    return None


def _run(
    tool: GenerationTool,
    prompt: str,
    model: Optional[str],
    link: Optional[DatasetLink],
    yes: bool,
) -> None:
    config = get_config()
    console.print(Panel(
        f"[bold]Tool:[/bold] {tool.name}\n"
        f"[bold]Provider:[/bold] {config.llm.provider}\n"
        f"[bold]Model:[/bold] {model or config.llm.model or 'provider default'}\n"
        f"[bold]Dataset:[/bold] {link.label if link else 'none'}",
        title="Copilot",
        border_style="blue",
    ))
    try:
        code = asyncio.run(_generate_and_save(tool, prompt, model, link, yes, config))
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(1)
    if code:
        raise typer.Exit(code)


async def _print_notification(payload: dict[str, Any]) -> None:
    style = _LEVEL_STYLES.get(payload.get("level"), "white")
    description = f" - {payload['description']}" if payload.get("description") else ""
    console.print(f"[{style}]{payload.get('message')}[/{style}]{description}")


def _print_staged(item: StagingItem) -> None:
    console.print(f"  [green]+[/green] {item.kind.value} [bold]{item.label}[/bold]")


def _items_table(items: tuple[StagingItem, ...]) -> Table:
    table = Table(title="Staged objects")
    table.add_column("#", justify="right")
    table.add_column("Kind")
    table.add_column("Identifier", style="bold")
    table.add_column("Details")
    table.add_column("Status")
    for i, item in enumerate(items, 1):
        payload = item.payload
        if item.kind == ObjectKind.INTENT:
            details = f"{len(payload.patterns)} patterns, {len(payload.responses)} responses"
        else:
            details = payload.role
        status = item.status.value if not item.error else f"{item.status.value}: {item.error}"
        table.add_row(str(i), item.kind.value, item.label, details, status)
    return table


def _print_failures(result: SaveBatchResult) -> None:
    for item_id, message in result.failed.items():
        console.print(f"  [red]x[/red] {item_id}: {message}")


def _keep_staged(buffer: StagingBuffer, link: Optional[DatasetLink], path: Path) -> None:
    """Write the buffer for a later ``copilot save``, remembering the dataset of each intent."""
    if link is not None:
        for item in buffer.snapshot():
            if item.kind == ObjectKind.INTENT:
                buffer.set_link(item.id, link)
    buffer.save(path)
    console.print(f"{len(buffer)} object(s) kept in [bold]{path}[/bold]; run [bold]copilot save[/bold] to retry")


async def _generate_and_save(
    tool: GenerationTool,
    prompt: str,
    model: Optional[str],
    link: Optional[DatasetLink],
    yes: bool,
    config: CopilotConfig,
) -> int:
    bus = EventBus()
    await bus.subscribe(events.TOPIC_NOTIFICATION, _print_notification)
    notifier = Notifier(bus)

    provider = ProviderFactory.create(
        config.llm.provider,
        api_key=config.llm.api_key,
        base_url=config.llm.base_url,
        timeout=config.llm.timeout,
        default_model=config.llm.model,
    )
    backend = BackendSession(
        base_url=config.backend.base_url,
        bearer_token=config.backend.bearer_token,
        timeout=config.backend.timeout,
    )
    client = intents_client(backend) if tool.kind == ObjectKind.INTENT else agents_client(backend)

    async with provider, backend:
        session = CopilotSession.from_provider(
            tool,
            provider,
            config=config,
            notifier=notifier,
            event_bus=bus,
            tag_index=TagIndex(client, seed_limit=config.persistence.seed_limit),
            on_object_extracted=_print_staged,
            linker=DatasetLinker(datasets_client(backend), notifier),
        )

        with console.status("Generating..."):
            generation = await session.submit(prompt, model=model)
            await session.wait()
        await bus.drain()

        if generation.status == SessionStatus.ERROR:
            console.print(f"[red]Generation failed:[/red] {generation.error}")
            return 1

        items = session.items
        if not items:
            console.print("[yellow]No objects found in the response.[/yellow]")
            return 0
        console.print(_items_table(items))

        if not yes and not Confirm.ask(f"Save {len(items)} object(s)?", default=True):
            _keep_staged(session.buffer, link, config.staging_path)
            return 0

        if tool.kind == ObjectKind.INTENT:
            persister = IntentPersister(client, notifier, seed_limit=config.persistence.seed_limit)
        else:
            persister = AgentPersister(client, notifier, seed_limit=config.persistence.seed_limit)

        result = await session.save(persister, link=link)
        await bus.drain()
        while result.failed and not yes and Confirm.ask(f"Retry {len(result.failed)} failed object(s)?", default=True):
            result = await session.resume(result)
            await bus.drain()

        if result.setup_error:
            _keep_staged(session.buffer, link, config.staging_path)
            return 1
        if result.failed:
            _print_failures(result)
            _keep_staged(session.buffer, result.options.link, config.staging_path)
            return 1

        console.print(Panel(
            f"Saved [bold]{result.saved}[/bold] object(s)"
            + (f" to {result.options.link.label}" if result.options.link else ""),
            title="Done",
            border_style="green",
        ))
        return 0


async def _save_staged(
    buffer: StagingBuffer,
    path: Path,
    link: Optional[DatasetLink],
    yes: bool,
    config: CopilotConfig,
) -> int:
    bus = EventBus()
    await bus.subscribe(events.TOPIC_NOTIFICATION, _print_notification)
    notifier = Notifier(bus)

    backend = BackendSession(
        base_url=config.backend.base_url,
        bearer_token=config.backend.bearer_token,
        timeout=config.backend.timeout,
    )
    async with backend:
        orchestrator = BatchPersistenceOrchestrator(
            buffer,
            notifier=notifier,
            pacing=config.persistence.to_pacing(),
            linker=DatasetLinker(datasets_client(backend), notifier),
            event_bus=bus,
        )
        seed_limit = config.persistence.seed_limit
        persisters = {
            ObjectKind.INTENT: IntentPersister(intents_client(backend), notifier, seed_limit=seed_limit),
            ObjectKind.AGENT: AgentPersister(agents_client(backend), notifier, seed_limit=seed_limit),
        }

        results = await orchestrator.save_buffer(persisters, link=link)
        await bus.drain()
        saved = sum(result.saved for result in results)
        while len(buffer) and not yes and Confirm.ask(f"Retry {len(buffer)} unsaved object(s)?", default=True):
            results = await orchestrator.save_buffer(persisters)
            await bus.drain()
            saved += sum(result.saved for result in results)

    if len(buffer):
        for result in results:
            _print_failures(result)
        buffer.save(path)
        console.print(f"{len(buffer)} object(s) still kept in [bold]{path}[/bold]")
        return 1

    path.unlink(missing_ok=True)
    console.print(Panel(f"Saved [bold]{saved}[/bold] object(s)", title="Done", border_style="green"))
    return 0


def main() -> None:
    app()


if __name__ == "__main__":
    main()
