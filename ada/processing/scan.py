"""Scanned document extraction."""

import logging

from ada.errors import GenerationError
from ada.processing.generator import PlanGenerator
from ada.processing.schemas import ExtractedContent

logger = logging.getLogger(__name__)


async def scan_document(generator: PlanGenerator, text: str) -> ExtractedContent:
    """Extract tasks, dates, contacts and amounts from OCR'd text."""
    if not text.strip():
        raise GenerationError("Nothing to scan: document is empty")
    return await generator.extract_content(text)


def render_scan(content: ExtractedContent) -> str:
    lines = [f"{content.document_type.capitalize()}: {content.summary}"]

    if content.tasks:
        lines.extend(["", "Tasks:"])
        for task in content.tasks:
            due = f" (due {task.due_date})" if task.due_date else ""
            who = f" [{task.assignee}]" if task.assignee else ""
            mark = "!" if task.priority in ("high", "urgent") else "-"
            lines.append(f"{mark} {task.title}{due}{who}")

    for label, values in (("Dates", content.dates), ("Contacts", content.contacts), ("Amounts", content.amounts)):
        if values:
            lines.append(f"{label}: {', '.join(values)}")
    return "\n".join(lines)
