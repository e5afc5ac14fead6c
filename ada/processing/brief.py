"""Daily brief: today's events, open tasks and reminders, summarized by the model."""

import logging
from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ada.processing.generator import PlanGenerator
from ada.processing.schemas import DailyBriefOutput
from ada.storage.models import Item

logger = logging.getLogger(__name__)


def _day_bounds(day: date) -> tuple[datetime, datetime]:
    start = datetime(day.year, day.month, day.day).astimezone()
    return start, start + timedelta(days=1)


async def _events_for(session: AsyncSession, day: date) -> list[str]:
    start, end = _day_bounds(day)
    result = await session.execute(
        select(Item).where(
            Item.kind == "event",
            Item.status != "cancelled",
            Item.due_date >= start,
            Item.due_date < end,
        ).order_by(Item.due_date.asc())
    )
    events = []
    for item in result.scalars().all():
        where = f" at {item.location}" if item.location else ""
        events.append(f"{item.title} ({item.due_date.astimezone():%H:%M}{where})")
    return events


async def _open_tasks(session: AsyncSession) -> list[str]:
    result = await session.execute(
        select(Item).where(
            Item.kind.in_(["task", "checklist"]),
            Item.status.in_(["pending", "inProgress"]),
        ).order_by(Item.created_at.asc()).limit(20)
    )
    return [item.title for item in result.scalars().all()]


async def _reminders_due(session: AsyncSession, day: date) -> list[str]:
    _, end = _day_bounds(day)
    result = await session.execute(
        select(Item).where(
            Item.kind == "reminder",
            Item.status == "pending",
            or_(Item.due_date.is_(None), Item.due_date < end),
        ).order_by(Item.created_at.asc()).limit(20)
    )
    reminders = []
    for item in result.scalars().all():
        flag = " (high priority)" if item.priority in ("high", "urgent") else ""
        reminders.append(f"{item.title}{flag}")
    return reminders


async def build_daily_brief(
    session: AsyncSession,
    generator: PlanGenerator,
    target_date: Optional[date] = None,
) -> DailyBriefOutput:
    """Gather the day's items from the store and have the model brief them."""
    today = target_date or date.today()
    events = await _events_for(session, today)
    tasks = await _open_tasks(session)
    reminders = await _reminders_due(session, today)
    logger.info(
        "Briefing %s: %d events, %d tasks, %d reminders",
        today, len(events), len(tasks), len(reminders),
    )
    return await generator.generate_daily_brief(events, tasks, reminders)


def render_brief(brief: DailyBriefOutput) -> str:
    lines = [brief.greeting, "", brief.summary, "", "Top priorities:"]
    lines.extend(f"{i}. {p}" for i, p in enumerate(brief.top_priorities, start=1))

    if brief.upcoming_events:
        lines.extend(["", "Upcoming:"])
        for event in brief.upcoming_events:
            where = f" ({event.location})" if event.location else ""
            lines.append(f"- {event.time} {event.title}{where}")

    if brief.pending_reminders:
        lines.extend(["", "Reminders:"])
        lines.extend(f"- {r}" for r in brief.pending_reminders)
    return "\n".join(lines)
