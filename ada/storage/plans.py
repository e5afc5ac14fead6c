"""Plan and item queries."""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ada.errors import PlanAlreadyClaimed, PlanNotFound
from ada.storage.models import Item, Plan

logger = logging.getLogger(__name__)


def _plan_query():
    return select(Plan).options(selectinload(Plan.items), selectinload(Plan.receipts))


async def get_plan(session: AsyncSession, plan_id: UUID) -> Plan:
    """Load a plan with its items and receipts, or raise PlanNotFound."""
    result = await session.execute(_plan_query().where(Plan.id == plan_id))
    plan = result.scalar_one_or_none()
    if plan is None:
        raise PlanNotFound(f"Plan {plan_id} not found")
    return plan


async def find_plan_by_prefix(session: AsyncSession, prefix: str) -> Plan:
    """Resolve a full id or the short id prefix printed by the CLI."""
    try:
        return await get_plan(session, UUID(prefix))
    except ValueError:
        pass

    result = await session.execute(_plan_query().order_by(Plan.created_at.desc()))
    matches = [p for p in result.scalars().all() if str(p.id).startswith(prefix)]
    if len(matches) != 1:
        raise PlanNotFound(f"No unique plan matches '{prefix}'")
    return matches[0]


async def list_pending_plans(session: AsyncSession) -> list[Plan]:
    """Plans parked for confirmation, oldest first."""
    result = await session.execute(
        _plan_query()
        .where(Plan.status == "awaitingConfirmation")
        .order_by(Plan.created_at.asc())
    )
    return list(result.scalars().all())


async def claim_plan(session: AsyncSession, plan_id: UUID, target: str) -> None:
    """Move a parked plan to ``target`` in one conditional UPDATE.

    Only one caller can win: the row must still be awaiting confirmation.
    The in-memory Plan is left as loaded so its own transitions still apply.
    """
    result = await session.execute(
        update(Plan)
        .where(Plan.id == plan_id, Plan.status == "awaitingConfirmation")
        .values(status=target)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise PlanAlreadyClaimed(target)


async def list_plans(
    session: AsyncSession,
    status: Optional[str] = None,
    limit: int = 50,
) -> list[Plan]:
    query = _plan_query().order_by(Plan.created_at.desc())
    if status:
        query = query.where(Plan.status == status)
    result = await session.execute(query.limit(limit))
    return list(result.scalars().all())


async def delete_plan(session: AsyncSession, plan: Plan) -> None:
    """Delete a plan; its items and receipts go with it."""
    await session.delete(plan)
    await session.flush()
    logger.info("Deleted plan %s", str(plan.id)[:8])


async def list_items(
    session: AsyncSession,
    kinds: Optional[list[str]] = None,
    status: Optional[str] = None,
    limit: int = 100,
) -> list[Item]:
    query = select(Item).order_by(Item.created_at.desc())
    if kinds:
        query = query.where(Item.kind.in_(kinds))
    if status:
        query = query.where(Item.status == status)
    result = await session.execute(query.limit(limit))
    return list(result.scalars().all())


async def complete_item(session: AsyncSession, item_id: UUID) -> Optional[Item]:
    """Mark an item completed. Returns None if it does not exist."""
    item = await session.get(Item, item_id)
    if item:
        item.set_status("completed")
        await session.flush()
    return item
