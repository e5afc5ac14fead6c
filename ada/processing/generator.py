"""Plan generation: turns raw text into a structured plan with a language model."""

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import TypeVar

from pydantic import BaseModel

from ada.errors import GenerationError
from ada.llm.base import LanguageModel
from ada.processing.schemas import DailyBriefOutput, ExtractedContent, GeneratedPlan

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

DEFAULT_TIMEOUT_SECONDS = 60.0

SYSTEM_INSTRUCTIONS = """You are Ada, a personal operations assistant. Your job is to take messy,
unstructured input from the user and produce a clean, structured plan of actions.

You are a task compiler, not a chatbot. Focus on:
- Extracting dates, times, locations, people, and amounts
- Mapping input to concrete actions (create events, reminders, checklists)
- Identifying what needs user confirmation vs. what's safe to execute
- Being precise and never hallucinating actions the user didn't request

Always err on the side of asking for confirmation when the intent is ambiguous."""


def _plan_prompt(text: str) -> str:
    return f'''Parse the following user input and create a structured plan of actions:

"""
{text}
"""

Extract all dates, times, locations, people, and amounts. Map each request to the
appropriate tool (createEvent, createReminder, createChecklist, scanAndExtract,
dailyBrief, inboxToPlan). Use ISO 8601 dates (YYYY-MM-DD) and 24-hour HH:mm times.
Set riskLevel to "none" only when every action is unambiguous and harmless;
otherwise use "needs_confirm", or "sensitive" for anything touching money,
health or other people. Flag anything that needs confirmation.'''


def _scan_prompt(ocr_text: str) -> str:
    return f'''Analyze the following text extracted from a scanned document. Identify the
document type, extract all tasks, dates, contacts, and amounts. Produce a clean,
formatted version of the content.

Scanned text:
"""
{ocr_text}
"""'''


def _brief_prompt(events: list[str], tasks: list[str], reminders: list[str]) -> str:
    return f"""Create a daily briefing. Here is what the user has today:

Events: {", ".join(events) or "none"}
Tasks: {", ".join(tasks) or "none"}
Reminders: {", ".join(reminders) or "none"}

Summarize the day, identify exactly 3 top priorities, and list upcoming events."""


class PlanGenerator:
    """Wraps a language model with Ada's instructions and output schemas.

    Every call starts from the same fixed instructions; nothing carries over
    between calls, so generation has no side effects.
    """

    def __init__(self, model: LanguageModel, timeout: float = DEFAULT_TIMEOUT_SECONDS):
        self.model = model
        self.timeout = timeout

    async def _respond(self, prompt: str, schema: type[T]) -> T:
        try:
            return await asyncio.wait_for(
                self.model.respond(prompt, schema, SYSTEM_INSTRUCTIONS),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error("%s generation timed out after %.0fs", schema.__name__, self.timeout)
            raise GenerationError(f"Generation timed out after {self.timeout:.0f}s") from e

    async def generate_plan(self, text: str) -> GeneratedPlan:
        """Generate a structured plan from user input."""
        if not text.strip():
            raise GenerationError("Nothing to plan: input is empty")
        plan = await self._respond(_plan_prompt(text), GeneratedPlan)
        logger.info(
            "Generated plan '%s': %d actions, risk=%s",
            plan.intent[:50],
            len(plan.actions),
            plan.risk_level,
        )
        return plan

    async def extract_content(self, ocr_text: str) -> ExtractedContent:
        """Extract structured content from scanned or OCR text."""
        content = await self._respond(_scan_prompt(ocr_text), ExtractedContent)
        logger.info("Extracted %s: %d tasks", content.document_type, len(content.tasks))
        return content

    async def generate_daily_brief(
        self,
        events: list[str],
        tasks: list[str],
        reminders: list[str],
    ) -> DailyBriefOutput:
        return await self._respond(_brief_prompt(events, tasks, reminders), DailyBriefOutput)

    async def stream_reply(self, text: str) -> AsyncIterator[str]:
        """Stream a conversational reply. Closing the iterator cancels the stream."""
        async for fragment in self.model.stream(text, SYSTEM_INSTRUCTIONS):
            yield fragment
