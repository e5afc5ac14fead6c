"""Storage backends behind the calendar and reminder services."""

import logging
import tempfile
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass
class EventRecord:
    title: str
    start: datetime
    end: datetime
    location: Optional[str] = None
    notes: Optional[str] = None


@dataclass
class ReminderRecord:
    title: str
    due: Optional[date] = None
    priority: int = 5
    notes: Optional[str] = None


class CalendarBackend(ABC):
    """A place events and reminders are written to. Returns external ids."""

    @abstractmethod
    def save_event(self, event: EventRecord) -> str: ...

    @abstractmethod
    def save_reminder(self, reminder: ReminderRecord) -> str: ...


class MemoryBackend(CalendarBackend):
    """Keeps everything in lists. ``fail_with`` makes every save raise."""

    def __init__(self, fail_with: Optional[str] = None):
        self.events: dict[str, EventRecord] = {}
        self.reminders: dict[str, ReminderRecord] = {}
        self.fail_with = fail_with

    def save_event(self, event: EventRecord) -> str:
        if self.fail_with:
            raise OSError(self.fail_with)
        external_id = str(uuid.uuid4())
        self.events[external_id] = event
        return external_id

    def save_reminder(self, reminder: ReminderRecord) -> str:
        if self.fail_with:
            raise OSError(self.fail_with)
        external_id = str(uuid.uuid4())
        self.reminders[external_id] = reminder
        return external_id


# --- iCalendar files ---

FOLD_OCTETS = 75


def _escape(text: str) -> str:
    return (
        text.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\n")
        .replace("\r", "\n")
        .replace("\n", "\\n")
    )


def _fold(line: str) -> list[str]:
    """Split a content line into lines of at most 75 octets, continuations led by a space."""
    parts: list[str] = []
    current, size = "", 0
    for char in line:
        width = len(char.encode("utf-8"))
        limit = FOLD_OCTETS if not parts else FOLD_OCTETS - 1
        if current and size + width > limit:
            parts.append(current)
            current, size = "", 0
        current += char
        size += width
    parts.append(current)
    return parts[:1] + [" " + part for part in parts[1:]]


def _utc_stamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


class IcsBackend(CalendarBackend):
    """Appends VEVENTs to ``calendar.ics`` and VTODOs to ``reminders.ics``.

    Any calendar app can subscribe to or import the files.
    """

    def __init__(self, directory: Path):
        self.directory = Path(directory).expanduser()

    @property
    def calendar_path(self) -> Path:
        return self.directory / "calendar.ics"

    @property
    def reminders_path(self) -> Path:
        return self.directory / "reminders.ics"

    def save_event(self, event: EventRecord) -> str:
        uid = f"{uuid.uuid4()}@ada"
        lines = [
            "BEGIN:VEVENT",
            f"UID:{uid}",
            f"DTSTAMP:{_utc_stamp(datetime.now(timezone.utc))}",
            f"DTSTART:{_utc_stamp(event.start)}",
            f"DTEND:{_utc_stamp(event.end)}",
            f"SUMMARY:{_escape(event.title)}",
        ]
        if event.location:
            lines.append(f"LOCATION:{_escape(event.location)}")
        if event.notes:
            lines.append(f"DESCRIPTION:{_escape(event.notes)}")
        lines.append("END:VEVENT")
        self._append(self.calendar_path, lines)
        return uid

    def save_reminder(self, reminder: ReminderRecord) -> str:
        uid = f"{uuid.uuid4()}@ada"
        lines = [
            "BEGIN:VTODO",
            f"UID:{uid}",
            f"DTSTAMP:{_utc_stamp(datetime.now(timezone.utc))}",
            f"SUMMARY:{_escape(reminder.title)}",
            f"PRIORITY:{reminder.priority}",
            "STATUS:NEEDS-ACTION",
        ]
        if reminder.due:
            lines.append(f"DUE;VALUE=DATE:{reminder.due.strftime('%Y%m%d')}")
        if reminder.notes:
            lines.append(f"DESCRIPTION:{_escape(reminder.notes)}")
        lines.append("END:VTODO")
        self._append(self.reminders_path, lines)
        return uid

    def _append(self, path: Path, component: list[str]) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        if path.exists():
            body = path.read_text(encoding="utf-8").rstrip().splitlines()
            if body and body[-1] == "END:VCALENDAR":
                body = body[:-1]
        else:
            body = ["BEGIN:VCALENDAR", "VERSION:2.0", "PRODID:-//Ada//Plan Engine//EN"]
        for line in component:
            body.extend(_fold(line))
        body.append("END:VCALENDAR")
        self._write_atomic(path, "\r\n".join(body) + "\r\n")
        logger.debug("Wrote %s to %s", component[0].split(":", 1)[1], path)

    def _write_atomic(self, path: Path, text: str) -> None:
        """Write to a temp file beside ``path``, then rename it into place."""
        tmp_fd, tmp_path = tempfile.mkstemp(dir=self.directory, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with open(tmp_fd, "w", encoding="utf-8", newline="") as f:
                f.write(text)
            Path(tmp_path).replace(path)
        except Exception:
            Path(tmp_path).unlink(missing_ok=True)
            raise
