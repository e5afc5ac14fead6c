"""CLI commands for plans awaiting confirmation and the items they created."""

import asyncio
from typing import Optional
from uuid import UUID

import typer
from rich.table import Table

from ada.cli.common import ask_consent, console, fail, receipts_table
from ada.errors import AdaError

app = typer.Typer(no_args_is_help=True)


def _plans_table(plans, title: str, show_status: bool = False) -> Table:
    table = Table(title=title)
    table.add_column("ID", style="dim")
    table.add_column("Intent", style="cyan")
    if show_status:
        table.add_column("Status")
    table.add_column("Risk")
    table.add_column("Actions", justify="right")
    table.add_column("Created")
    for plan in plans:
        risk = f"[red]{plan.risk_level}[/red]" if plan.risk_level == "sensitive" else plan.risk_level
        row = [str(plan.id)[:8], plan.intent]
        if show_status:
            row.append(plan.status)
        row.extend([
            risk,
            str(len(plan.actions)),
            plan.created_at.astimezone().strftime("%Y-%m-%d %H:%M"),
        ])
        table.add_row(*row)
    return table


@app.command("list")
def list_inbox(
    items: bool = typer.Option(False, "--items", help="List open items instead of pending plans"),
    all_plans: bool = typer.Option(False, "--all", "-a", help="List recent plans in every status"),
    limit: int = typer.Option(50, "--limit", "-n", help="Max plans with --all"),
):
    """List plans waiting for approval."""

    async def _list():
        from ada.storage.db import get_session
        from ada.storage.plans import list_items, list_pending_plans, list_plans

        async with get_session() as session:
            if items:
                open_items = await list_items(session, status="pending")
                if not open_items:
                    console.print("[yellow]No open items.[/yellow]")
                    return
                table = Table(title="Items")
                table.add_column("ID", style="dim")
                table.add_column("Title", style="cyan")
                table.add_column("Kind")
                table.add_column("Priority")
                table.add_column("Due")
                for item in open_items:
                    due = item.due_date.astimezone().strftime("%Y-%m-%d %H:%M") if item.due_date else ""
                    table.add_row(str(item.id)[:8], item.title, item.kind, item.priority, due)
                console.print(table)
                return

            if all_plans:
                plans = await list_plans(session, limit=limit)
                if not plans:
                    console.print("[yellow]No plans yet.[/yellow]")
                    return
                console.print(_plans_table(plans, "Plans", show_status=True))
                return

            plans = await list_pending_plans(session)
            if not plans:
                console.print("[yellow]Inbox is empty.[/yellow]")
                return
            console.print(_plans_table(plans, "Awaiting confirmation"))

    asyncio.run(_list())


@app.command("approve")
def approve(
    plan_id: Optional[str] = typer.Argument(None, help="Plan ID (first 8 chars is enough)"),
    all_pending: bool = typer.Option(False, "--all", "-a", help="Approve every plan awaiting confirmation"),
):
    """Approve a plan and execute it."""
    if not plan_id and not all_pending:
        console.print("[red]Give a plan ID or --all[/red]")
        raise typer.Exit(1)

    async def _approve():
        from ada.services.container import build_services
        from ada.storage.db import get_session
        from ada.storage.plans import find_plan_by_prefix, list_pending_plans

        services = build_services(prompt=ask_consent)

        if all_pending:
            async with get_session() as session:
                plan_ids = [p.id for p in await list_pending_plans(session)]
            if not plan_ids:
                console.print("[yellow]Inbox is empty.[/yellow]")
                return

            failures = 0
            for pid in plan_ids:
                async with get_session() as session:
                    try:
                        outcome = await services.controller.approve(session, pid)
                    except AdaError as e:
                        failures += 1
                        console.print(f"[red]{str(pid)[:8]}: {e}[/red]")
                        continue
                console.print(f"Plan [cyan]{outcome.intent}[/cyan]: {outcome.status}")
                if outcome.receipts:
                    console.print(receipts_table(outcome.receipts))
            console.print(f"\nApproved {len(plan_ids) - failures} of {len(plan_ids)} plans.")
            if failures:
                raise typer.Exit(1)
            return

        async with get_session() as session:
            try:
                plan = await find_plan_by_prefix(session, plan_id)
                outcome = await services.controller.approve(session, plan.id)
            except AdaError as e:
                fail(e)

            console.print(f"Plan [cyan]{outcome.intent}[/cyan]: {outcome.status}")
            if outcome.receipts:
                console.print(receipts_table(outcome.receipts))

    asyncio.run(_approve())


@app.command("dismiss")
def dismiss(
    plan_id: str = typer.Argument(help="Plan ID (first 8 chars is enough)"),
):
    """Dismiss a plan without executing anything."""

    async def _dismiss():
        from ada.services.container import build_services
        from ada.storage.db import get_session
        from ada.storage.plans import find_plan_by_prefix

        services = build_services()
        async with get_session() as session:
            try:
                plan = await find_plan_by_prefix(session, plan_id)
                outcome = await services.controller.dismiss(session, plan.id)
            except AdaError as e:
                fail(e)
            console.print(f"[yellow]{outcome.reply}[/yellow]")

    asyncio.run(_dismiss())


@app.command("delete")
def delete(
    plan_id: str = typer.Argument(help="Plan ID (first 8 chars is enough)"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
):
    """Delete a plan with its items and receipts. Its ledger entry stays."""

    async def _delete():
        from ada.storage.db import get_session
        from ada.storage.plans import delete_plan, find_plan_by_prefix

        async with get_session() as session:
            try:
                plan = await find_plan_by_prefix(session, plan_id)
            except AdaError as e:
                fail(e)

            if plan.status == "executing":
                console.print(f"[red]Plan {str(plan.id)[:8]} is executing; try again when it finishes.[/red]")
                raise typer.Exit(1)
            if not yes and not await asyncio.to_thread(
                typer.confirm, f"Delete plan '{plan.intent}' ({plan.status})?", default=False
            ):
                raise typer.Exit(0)

            await delete_plan(session, plan)
            console.print(f"Deleted: [cyan]{plan.intent}[/cyan]")

    asyncio.run(_delete())


@app.command("complete")
def complete(
    item_id: str = typer.Argument(help="Item ID (first 8 chars is enough)"),
):
    """Mark an item as completed."""

    async def _complete():
        from ada.storage.db import get_session
        from ada.storage.plans import complete_item, list_items

        async with get_session() as session:
            try:
                target = UUID(item_id)
            except ValueError:
                matches = [i for i in await list_items(session, limit=1000) if str(i.id).startswith(item_id)]
                if len(matches) != 1:
                    console.print(f"[red]No unique item matches '{item_id}'[/red]")
                    raise typer.Exit(1)
                target = matches[0].id

            item = await complete_item(session, target)
            if item is None:
                console.print(f"[red]Item {item_id} not found[/red]")
                raise typer.Exit(1)
            console.print(f"Completed: [cyan]{item.title}[/cyan]")

    asyncio.run(_complete())
