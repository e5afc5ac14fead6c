"""Ada CLI: main entry point using Typer."""

import asyncio
from pathlib import Path

import typer

from ada.cli.common import ask_consent, console, fail, receipts_table, setup_logging
from ada.cli.inbox_cmd import app as inbox_app
from ada.cli.ledger_cmd import app as ledger_app
from ada.errors import AdaError

app = typer.Typer(
    name="ada",
    help="Turn messy input into plans, then into calendar events, reminders and checklists.",
    no_args_is_help=True,
)

app.add_typer(inbox_app, name="inbox", help="Review plans waiting for confirmation")
app.add_typer(ledger_app, name="ledger", help="Inspect and export the audit ledger")


@app.command()
def init(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Initialize Ada: create directories, config and database tables."""
    setup_logging(verbose)

    async def _init():
        from ada.config import get_settings
        from ada.storage.db import close_db, init_db

        settings = get_settings()
        console.print("[bold]Setting up Ada[/bold]", style="green")

        config_dir = Path.home() / ".config/ada"
        config_dir.mkdir(parents=True, exist_ok=True)
        console.print(f"  Config dir: {config_dir}")

        data_path = Path(settings.general.data_path).expanduser()
        data_path.mkdir(parents=True, exist_ok=True)
        console.print(f"  Data dir:   {data_path}")

        console.print("  Initializing database...")
        await init_db()
        await close_db()
        console.print("  Database ready.")

        config_path = config_dir / "config.toml"
        if not config_path.exists():
            config_path.write_text(
                '[general]\ndata_path = "~/.local/share/ada"\n'
                'db_url = "postgresql+asyncpg://localhost/ada"\n'
                'log_level = "INFO"\n\n'
                "[model]\n"
                'provider = "ollama"  # ollama, anthropic or fixture\n'
                "timeout_seconds = 60\n\n"
                "[anthropic]\n"
                '# api_key = ""  # Or set ANTHROPIC_API_KEY env var\n'
                'model = "claude-haiku-4-5-20251001"\n\n'
                "[ollama]\n"
                'model = "qwen3:4b"\n'
                'base_url = "http://localhost:11434"\n\n'
                "[permissions]\n"
                '# ask, allow or deny\ncalendar = "ask"\nreminders = "ask"\ncamera = "ask"\n'
            )
            console.print(f"  Config written: {config_path}")

        console.print("\n[bold green]Ada initialized![/bold green]")
        console.print('Try: [cyan]ada send "Dentist Tuesday at 3pm"[/cyan]')

    asyncio.run(_init())


async def _submit_and_show(services, session, text: str, conversation_id=None):
    outcome = await services.controller.submit(session, text, conversation_id)
    if outcome.error:
        console.print(f"[red]{outcome.reply}[/red]")
        return outcome

    console.print(outcome.reply)
    if outcome.receipts:
        console.print(receipts_table(outcome.receipts))
    if outcome.status == "awaitingConfirmation":
        console.print(f"[yellow]Run [cyan]ada inbox approve {str(outcome.plan_id)[:8]}[/cyan] to execute.[/yellow]")
    if not outcome.saved:
        console.print("[yellow]Warning: could not save this plan; external changes were kept.[/yellow]")
    return outcome


@app.command()
def send(
    text: str = typer.Argument(help="What you want done, in your own words"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Use the offline model and an in-memory calendar"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Turn one input into a plan and run or park it."""
    setup_logging(verbose)

    async def _send():
        from ada.services.container import build_services
        from ada.storage.db import get_session

        services = build_services(prompt=ask_consent, dry_run=dry_run)
        async with get_session() as session:
            try:
                outcome = await _submit_and_show(services, session, text)
            except AdaError as e:
                fail(e)
        if outcome.error:
            raise typer.Exit(1)

    asyncio.run(_send())


@app.command()
def chat(
    new: bool = typer.Option(False, "--new", help="Start a new conversation instead of resuming"),
    talk: bool = typer.Option(False, "--talk", help="Stream free-form replies instead of making plans"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Use the offline model and an in-memory calendar"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Interactive session. Empty line or Ctrl-D quits."""
    setup_logging(verbose)

    async def _chat():
        from ada.services.container import build_services
        from ada.storage.conversations import load_or_create_conversation
        from ada.storage.db import get_session

        services = build_services(prompt=ask_consent, dry_run=dry_run)
        async with get_session() as session:
            if new:
                conversation = await services.controller.start_new_conversation(session)
            else:
                conversation = await load_or_create_conversation(session)
            conversation_id = conversation.id
            console.print(f"[dim]Conversation: {conversation.title}[/dim]")

        while True:
            try:
                text = await asyncio.to_thread(console.input, "[bold cyan]> [/bold cyan]")
            except EOFError:
                break
            if not text.strip():
                break

            if talk:
                try:
                    async for fragment in services.generator.stream_reply(text):
                        console.print(fragment, end="")
                except AdaError as e:
                    console.print(f"\n[red]{e}[/red]")
                console.print()
                continue

            async with get_session() as session:
                try:
                    await _submit_and_show(services, session, text, conversation_id)
                except AdaError as e:
                    console.print(f"[red]{e}[/red]")

    try:
        asyncio.run(_chat())
    except KeyboardInterrupt:
        console.print("\n[dim]Bye.[/dim]")


@app.command()
def brief(
    dry_run: bool = typer.Option(False, "--dry-run", help="Use the offline model"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Generate today's brief from stored events, tasks and reminders."""
    setup_logging(verbose)

    async def _brief():
        from ada.processing.brief import build_daily_brief, render_brief
        from ada.services.container import build_services
        from ada.storage.db import get_session

        services = build_services(dry_run=dry_run)
        async with get_session() as session:
            try:
                result = await build_daily_brief(session, services.generator)
            except AdaError as e:
                fail(e)
        console.print(render_brief(result))

    asyncio.run(_brief())


@app.command()
def scan(
    file: Path = typer.Argument(help="Text file with scanned/OCR'd content"),
    plan: bool = typer.Option(False, "--plan", help="Also submit the cleaned document as input"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Use the offline model"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Extract tasks, dates and contacts from a scanned document."""
    setup_logging(verbose)

    if not file.exists():
        console.print(f"[red]File not found: {file}[/red]")
        raise typer.Exit(1)

    async def _scan():
        from ada.processing.scan import render_scan, scan_document
        from ada.services.container import build_services
        from ada.storage.db import get_session

        services = build_services(prompt=ask_consent, dry_run=dry_run)
        try:
            content = await scan_document(services.generator, file.read_text())
        except AdaError as e:
            fail(e)
        console.print(render_scan(content))

        if plan:
            async with get_session() as session:
                try:
                    await _submit_and_show(services, session, content.clean_document)
                except AdaError as e:
                    fail(e)

    asyncio.run(_scan())


@app.command()
def status(
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Show plan, item and ledger counts."""
    setup_logging(verbose)

    async def _status():
        from rich.table import Table
        from sqlalchemy import func, select

        from ada.storage.db import get_session
        from ada.storage.models import Conversation, Item, LedgerEntry, Plan

        async with get_session() as session:
            result = await session.execute(select(Plan.status, func.count()).group_by(Plan.status))
            by_status = {row[0]: row[1] for row in result.all()}

            counts = {}
            for model, name in [(Item, "items"), (LedgerEntry, "ledger entries"), (Conversation, "conversations")]:
                result = await session.execute(select(func.count()).select_from(model))
                counts[name] = result.scalar()

        console.print("\n[bold]Ada Status[/bold]\n")
        table = Table(title="Plans")
        table.add_column("Status", style="cyan")
        table.add_column("Count", style="green", justify="right")
        for name in ("draft", "awaitingConfirmation", "executing", "completed", "failed"):
            table.add_row(name, str(by_status.get(name, 0)))
        console.print(table)

        for name, count in counts.items():
            console.print(f"  {name}: {count}")

    asyncio.run(_status())


if __name__ == "__main__":
    app()
