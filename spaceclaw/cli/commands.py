"""CLI commands for spaceclaw."""

import asyncio
import logging
import sys

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from spaceclaw import __logo__, __version__

app = typer.Typer(
    name="spaceclaw",
    help=f"{__logo__} spaceclaw - Personal AI Agent",
    no_args_is_help=True,
)

console = Console()

DEFAULT_CHAT = "cli:default"


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} spaceclaw v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
):
    """spaceclaw - Personal AI Agent."""
    pass


def _setup_logging(level: str) -> None:
    """Route loguru and stdlib logging to stderr at the configured level."""
    logger.remove()
    logger.add(sys.stderr, level=level.upper())
    logging.basicConfig(level=level.upper(), stream=sys.stderr)


def _build_agent(config):
    """Wire the stores, memory, tools and provider selection into an AgentLoop."""
    from spaceclaw.agent.context import ContextBuilder
    from spaceclaw.agent.loop import AgentLoop
    from spaceclaw.agent.tools import (
        EchoTool,
        RecallTool,
        RememberTool,
        SoulReadTool,
        SoulUpdateTool,
        ToolRegistry,
    )
    from spaceclaw.memory import CoreMemoryStore, FactExtractor, NoteStore, SemanticMemory
    from spaceclaw.providers import ProviderSelection, build_provider
    from spaceclaw.providers.factory import ProviderConfigError
    from spaceclaw.session import ConversationStore

    db_path = config.db_path
    core = CoreMemoryStore(db_path)
    notes = NoteStore(db_path)
    semantic = SemanticMemory.from_config(config)

    tools = ToolRegistry()
    tools.register(EchoTool())
    tools.register(RememberTool(notes, semantic))
    tools.register(RecallTool(notes, semantic))
    tools.register(SoulReadTool(config.instructions_path))
    tools.register(SoulUpdateTool(config.instructions_path))

    extractor = None
    if config.memory.extraction_enabled:
        try:
            extractor = FactExtractor(
                build_provider("openai", config.memory.extraction_model, config),
                notes,
                semantic,
            )
        except ProviderConfigError as e:
            logger.debug(f"Fact extraction disabled: {e}")

    return AgentLoop(
        selection=ProviderSelection(config, core),
        tools=tools,
        context=ContextBuilder(
            core_memory=core,
            semantic=semantic,
            instructions_file=config.instructions_path,
            retrieval_k=config.memory.retrieval_k,
        ),
        store=ConversationStore(db_path),
        max_iterations=config.agents.defaults.max_tool_iterations,
        fact_extractor=extractor,
    )


# ============================================================================
# Onboard / Setup
# ============================================================================


@app.command()
def onboard():
    """Initialize spaceclaw configuration."""
    from spaceclaw.config.loader import get_config_path, save_config
    from spaceclaw.config.schema import Config

    config_path = get_config_path()

    if config_path.exists():
        console.print(f"[yellow]Config already exists at {config_path}[/yellow]")
        if not typer.confirm("Overwrite?"):
            raise typer.Exit()

    save_config(Config())
    console.print(f"[green]✓[/green] Created config at {config_path}")
    console.print("\nNext: add an API key under [cyan]providers[/cyan], then run "
                  "[cyan]spaceclaw agent -m \"Hello!\"[/cyan]")


@app.command()
def setup():
    """Answer a few questions that become permanent profile facts."""
    from spaceclaw.config.loader import load_config
    from spaceclaw.memory.core import SETUP_STEPS, CoreMemoryStore, save_setup_answer

    config = load_config()
    store = CoreMemoryStore(config.db_path)
    total = len(SETUP_STEPS)

    console.print("🧠 [bold]spaceclaw setup[/bold]\n")
    console.print(
        f"{total} quick questions. Your answers are remembered in every conversation.\n"
        "Type [cyan]skip[/cyan] to skip a question; run [cyan]spaceclaw setup[/cyan] again to update.\n"
    )

    saved = 0
    for i, step in enumerate(SETUP_STEPS, 1):
        answer = typer.prompt(f"[{i}/{total}] {step.question}", default="skip", show_default=False)
        if save_setup_answer(store, step, answer):
            saved += 1
            logger.debug(f"Core memory saved: {step.key}")

    console.print(f"\n[green]✓[/green] Setup complete: {saved}/{total} answers saved")


# ============================================================================
# Agent Commands
# ============================================================================


@app.command()
def agent(
    message: str = typer.Option(None, "--message", "-m", help="Message to send to the agent"),
    chat_id: str = typer.Option(DEFAULT_CHAT, "--chat", "-c", help="Chat ID"),
):
    """Interact with the agent directly."""
    from spaceclaw.config.loader import load_config

    config = load_config()
    _setup_logging(config.logging.level)
    agent_loop = _build_agent(config)
    console.print(f"[dim]Model: {agent_loop.selection.label}[/dim]")

    if message:
        # Single message mode
        async def run_once():
            response = await agent_loop.handle_message(chat_id, message)
            console.print(f"\n{__logo__} {response}")
            await agent_loop.drain()

        asyncio.run(run_once())
    else:
        # Interactive mode
        console.print(f"{__logo__} Interactive mode (Ctrl+C to exit)\n")

        async def run_interactive():
            try:
                while True:
                    try:
                        user_input = console.input("[bold blue]You:[/bold blue] ")
                        if not user_input.strip():
                            continue

                        response = await agent_loop.handle_message(chat_id, user_input)
                        console.print(f"\n{__logo__} {response}\n")
                    except (KeyboardInterrupt, EOFError):
                        console.print("\nGoodbye!")
                        break
            finally:
                await agent_loop.drain()

        asyncio.run(run_interactive())


@app.command()
def model(
    provider_id: str = typer.Argument(None, help="Provider id, e.g. anthropic"),
    model_id: str = typer.Argument(None, help="Model id (defaults to the provider's first model)"),
):
    """Show the active model or switch to another provider/model."""
    from spaceclaw.config.loader import load_config
    from spaceclaw.memory.core import CoreMemoryStore
    from spaceclaw.providers import PROVIDER_CATALOG, ProviderSelection
    from spaceclaw.providers.factory import ProviderConfigError

    config = load_config()
    selection = ProviderSelection(config, CoreMemoryStore(config.db_path))

    if not provider_id:
        console.print(f"🤖 Active model: [bold]{selection.label}[/bold]\n")
        table = Table(title="Available providers & models")
        table.add_column("Provider", style="cyan")
        table.add_column("Models")
        for pid, entry in PROVIDER_CATALOG.items():
            table.add_row(pid, ", ".join(entry["models"]))
        console.print(table)
        console.print("\n[dim]Usage: spaceclaw model <provider> [model][/dim]")
        return

    try:
        selection.switch(provider_id, model_id)
    except ProviderConfigError as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]✓[/green] Switched to [bold]{selection.label}[/bold]")


@app.command()
def clear(
    chat_id: str = typer.Option(DEFAULT_CHAT, "--chat", "-c", help="Chat ID"),
):
    """Forget the conversation history of a chat (notes are kept)."""
    from spaceclaw.config.loader import load_config
    from spaceclaw.session import ConversationStore

    config = load_config()
    removed = ConversationStore(config.db_path).clear(chat_id)
    console.print(f"[green]✓[/green] Cleared {removed} messages from {chat_id}")


@app.command()
def memory():
    """List profile facts and saved notes."""
    from spaceclaw.config.loader import load_config
    from spaceclaw.memory import CoreMemoryStore, NoteStore

    config = load_config()
    facts = CoreMemoryStore(config.db_path).get_all()
    notes = NoteStore(config.db_path).all_notes()

    if not facts and not notes:
        console.print("🧠 Memory is empty.")
        return

    if facts:
        table = Table(title="Owner profile")
        table.add_column("Label", style="cyan")
        table.add_column("Value")
        for fact in facts:
            table.add_row(fact.label, fact.value)
        console.print(table)

    if notes:
        table = Table(title=f"Notes ({len(notes)})")
        table.add_column("Title", style="cyan")
        table.add_column("Body")
        for note in notes:
            body = note.body if len(note.body) <= 80 else note.body[:77] + "..."
            table.add_row(note.title, body)
        console.print(table)


@app.command()
def status():
    """Show spaceclaw status."""
    from spaceclaw.config.loader import get_config_path, load_config
    from spaceclaw.memory.core import CoreMemoryStore
    from spaceclaw.providers import PROVIDER_CATALOG, ProviderSelection
    from spaceclaw.session import ConversationStore

    config_path = get_config_path()
    config = load_config()

    console.print(f"{__logo__} spaceclaw Status\n")
    console.print(f"Config: {config_path} {'[green]✓[/green]' if config_path.exists() else '[red]✗[/red]'}")
    console.print(f"Database: {config.db_path}")

    selection = ProviderSelection(config, CoreMemoryStore(config.db_path))
    console.print(f"Model: {selection.label}")
    console.print(f"Max tool iterations: {config.agents.defaults.max_tool_iterations}")

    for pid, entry in PROVIDER_CATALOG.items():
        has_key = bool(config.get_api_key(pid))
        console.print(f"{entry['name']} API: {'[green]✓[/green]' if has_key else '[dim]not set[/dim]'}")

    memory_state = "[green]✓ enabled[/green]" if config.memory.enabled else "[dim]disabled[/dim]"
    console.print(f"Semantic memory: {memory_state}")

    chats = ConversationStore(config.db_path).list_chats()
    console.print(f"Chats: {len(chats)}")
    for chat in chats[:5]:
        console.print(f"  - {chat['chat_id']} ({chat['messages']} messages)")


if __name__ == "__main__":
    app()
