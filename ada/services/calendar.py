"""Calendar and reminder services.

Each service is the only thing that touches its backend, behind a lock and a
capability check. Callers go through ``request_access`` and the create methods.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional

from ada.errors import AdapterError, CapabilityDenied
from ada.services.backends import CalendarBackend, EventRecord, ReminderRecord
from ada.services.permissions import PermissionsManager

logger = logging.getLogger(__name__)

DEFAULT_EVENT_DURATION = timedelta(hours=1)

# iCalendar / EventKit scale: 1 high, 5 medium, 9 low
REMINDER_PRIORITIES = {"high": 1, "low": 9}
DEFAULT_REMINDER_PRIORITY = 5


@dataclass
class CreatedRecord:
    external_id: str
    summary: str
    start: Optional[datetime] = None
    due: Optional[date] = None


def parse_full_date(value: Optional[str]) -> Optional[date]:
    """Parse an ISO 8601 full date (YYYY-MM-DD)."""
    if not value:
        return None
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except ValueError:
        return None


def parse_time(value: Optional[str]) -> Optional[tuple[int, int]]:
    """Parse ``HH:mm`` (seconds, if present, are ignored)."""
    if not value:
        return None
    parts = value.strip().split(":")
    if len(parts) < 2:
        return None
    try:
        hour, minute = int(parts[0]), int(parts[1])
    except ValueError:
        return None
    if not (0 <= hour < 24 and 0 <= minute < 60):
        return None
    return hour, minute


def _local(day: date, hour: int = 0, minute: int = 0) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute).astimezone()


def resolve_event_window(
    date_string: Optional[str],
    start_time: Optional[str],
    end_time: Optional[str] = None,
) -> tuple[datetime, datetime]:
    """Work out start and end for an event.

    An unparsable date falls back to now. An unparsable start time keeps the
    start of the day; an unparsable end time gives a one-hour event.
    """
    base = parse_full_date(date_string)
    if base is None:
        start = datetime.now().astimezone()
        return start, start + DEFAULT_EVENT_DURATION

    start_parts = parse_time(start_time)
    start = _local(base, *start_parts) if start_parts else _local(base)

    end_parts = parse_time(end_time)
    end = _local(base, *end_parts) if end_parts else start + DEFAULT_EVENT_DURATION
    if end <= start:
        end = start + DEFAULT_EVENT_DURATION
    return start, end


def format_when(value: datetime) -> str:
    return f"{value:%b} {value.day}, {value:%Y} at {value:%H:%M}"


class CalendarService:
    capability = "calendar"

    def __init__(self, backend: CalendarBackend, permissions: PermissionsManager):
        self._backend = backend
        self._permissions = permissions
        self._lock = asyncio.Lock()

    async def request_access(self) -> bool:
        return await self._permissions.request(self.capability)

    async def create_event(
        self,
        title: str,
        date_string: Optional[str],
        start_time: Optional[str],
        end_time: Optional[str] = None,
        location: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> CreatedRecord:
        if not self._permissions.is_granted(self.capability):
            raise CapabilityDenied(self.capability)

        start, end = resolve_event_window(date_string, start_time, end_time)
        record = EventRecord(title=title, start=start, end=end, location=location or None, notes=notes or None)

        async with self._lock:
            try:
                external_id = self._backend.save_event(record)
            except OSError as e:
                raise AdapterError(f"Error creating event: {e}") from e

        summary = f"Event '{title}' created for {format_when(start)}"
        if location:
            summary += f" at {location}"
        logger.info("Created event %s (%s)", title, external_id)
        return CreatedRecord(external_id=external_id, summary=summary, start=start)


class ReminderService:
    capability = "reminders"

    def __init__(self, backend: CalendarBackend, permissions: PermissionsManager):
        self._backend = backend
        self._permissions = permissions
        self._lock = asyncio.Lock()

    async def request_access(self) -> bool:
        return await self._permissions.request(self.capability)

    async def create_reminder(
        self,
        title: str,
        due_date_string: Optional[str] = None,
        priority: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> CreatedRecord:
        if not self._permissions.is_granted(self.capability):
            raise CapabilityDenied(self.capability)

        due = parse_full_date(due_date_string)
        if due_date_string and due is None:
            logger.debug("Ignoring unparsable due date %r for reminder %s", due_date_string, title)

        record = ReminderRecord(
            title=title,
            due=due,
            priority=REMINDER_PRIORITIES.get(priority or "", DEFAULT_REMINDER_PRIORITY),
            notes=notes or None,
        )

        async with self._lock:
            try:
                external_id = self._backend.save_reminder(record)
            except OSError as e:
                raise AdapterError(f"Error creating reminder: {e}") from e

        summary = f"Reminder '{title}' created"
        if due:
            summary += f" due {due.isoformat()}"
        logger.info("Created reminder %s (%s)", title, external_id)
        return CreatedRecord(external_id=external_id, summary=summary, due=due)
