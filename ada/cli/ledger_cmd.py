"""CLI commands for the audit ledger."""

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.table import Table

from ada.cli.common import console

app = typer.Typer(no_args_is_help=True)


@app.command("list")
def list_ledger(
    limit: int = typer.Option(20, "--limit", "-n", help="Max entries"),
):
    """Show recent ledger entries, newest first."""

    async def _list():
        from ada.storage.db import get_session
        from ada.storage.ledger import list_entries

        async with get_session() as session:
            entries = await list_entries(session, limit=limit)
            if not entries:
                console.print("[yellow]Ledger is empty.[/yellow]")
                return

            table = Table(title="Ledger")
            table.add_column("When", style="dim")
            table.add_column("Input", style="cyan")
            table.add_column("Hash", style="dim")
            table.add_column("Actions")
            table.add_column("Results")
            for e in entries:
                table.add_row(
                    e.timestamp.astimezone().strftime("%Y-%m-%d %H:%M"),
                    e.input_preview[:60],
                    e.input_hash[:12],
                    "\n".join(e.actions),
                    "\n".join(e.results),
                )
            console.print(table)

    asyncio.run(_list())


@app.command("export")
def export(
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write to this file instead of stdout"),
):
    """Export the ledger as JSON."""

    async def _export():
        from ada.storage.db import get_session
        from ada.storage.ledger import export_json

        async with get_session() as session:
            data = await export_json(session)

        if output:
            output.write_text(data + "\n")
            console.print(f"Ledger exported to {output}")
        else:
            typer.echo(data)

    asyncio.run(_export())


@app.command("verify")
def verify(
    text: str = typer.Argument(help="Input text to check against the ledger"),
):
    """Check whether some input text was ever processed."""

    async def _verify():
        from ada.storage.db import get_session
        from ada.storage.ledger import list_entries, verify as verify_entry

        async with get_session() as session:
            entries = await list_entries(session)

        matches = [e for e in entries if verify_entry(e, text)]
        if not matches:
            console.print("[yellow]No ledger entry matches that input.[/yellow]")
            raise typer.Exit(1)
        for e in matches:
            console.print(
                f"[green]Match[/green] {e.timestamp.astimezone():%Y-%m-%d %H:%M}: "
                f"{', '.join(e.actions) or '(no actions)'}"
            )

    asyncio.run(_verify())
