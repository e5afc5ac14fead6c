"""Helpers shared by the CLI command modules."""

import asyncio
import logging

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ada.errors import AdaError
from ada.processing.executor import ReceiptView

console = Console()


def setup_logging(verbose: bool = False):
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_time=False)],
    )


async def ask_consent(capability: str) -> bool:
    """Ask on the terminal whether Ada may use ``capability``."""
    return await asyncio.to_thread(
        typer.confirm, f"Allow Ada to access your {capability}?", default=False
    )


def fail(error: AdaError) -> None:
    console.print(f"[red]{error}[/red]")
    raise typer.Exit(1)


def receipts_table(receipts: list[ReceiptView]) -> Table:
    table = Table(title="Receipts")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Action", style="cyan")
    table.add_column("Result")
    for i, r in enumerate(receipts, start=1):
        result = f"[green]{r.summary}[/green]" if r.success else f"[red]{r.summary}[/red]"
        table.add_row(str(i), r.description, result)
    return table
