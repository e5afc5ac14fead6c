"""Deterministic stand-in model for tests and dry runs."""

import logging
from collections import deque
from collections.abc import AsyncIterator, Callable
from typing import Optional, Union

from pydantic import BaseModel

from ada.errors import GenerationError
from ada.llm.base import LanguageModel, T

logger = logging.getLogger(__name__)

Fixture = Union[BaseModel, Exception, Callable[[str], BaseModel]]


class FixtureModel(LanguageModel):
    """Returns queued fixtures in order.

    A queued exception is raised instead of returned; a queued callable is
    called with the prompt. With nothing queued, ``fallback`` decides, and
    without a fallback the call is a GenerationError.
    """

    name = "fixture"

    def __init__(
        self,
        responses: Optional[list[Fixture]] = None,
        fallback: Optional[Callable[[str, type], BaseModel]] = None,
        stream_chunks: Optional[list[Union[str, Exception]]] = None,
    ):
        self._responses = deque(responses or [])
        self._fallback = fallback
        self._stream_chunks = list(stream_chunks or [])
        self.prompts: list[str] = []

    def queue(self, response: Fixture) -> None:
        self._responses.append(response)

    async def respond(self, prompt: str, schema: type[T], instructions: str) -> T:
        self.prompts.append(prompt)
        if self._responses:
            fixture = self._responses.popleft()
        elif self._fallback is not None:
            fixture = self._fallback(prompt, schema)
        else:
            raise GenerationError("No fixture response queued")

        if isinstance(fixture, Exception):
            raise fixture
        if callable(fixture) and not isinstance(fixture, BaseModel):
            fixture = fixture(prompt)
        if not isinstance(fixture, schema):
            raise GenerationError(f"Fixture is a {type(fixture).__name__}, expected {schema.__name__}")
        return fixture

    async def stream(self, prompt: str, instructions: str) -> AsyncIterator[str]:
        self.prompts.append(prompt)
        for chunk in self._stream_chunks:
            if isinstance(chunk, Exception):
                raise chunk
            yield chunk


def inbox_fallback(prompt: str, schema: type) -> BaseModel:
    """Offline fallback: park every input in the inbox for review.

    Used when the CLI runs with ``--dry-run``; it never schedules anything on
    its own, so every plan it yields needs confirmation.
    """
    from ada.processing.schemas import (
        DailyBriefOutput,
        ExtractedContent,
        GeneratedAction,
        GeneratedPlan,
    )

    text = _quoted_input(prompt)
    if schema is GeneratedPlan:
        return GeneratedPlan(
            intent=f"Review: {text[:60]}",
            actions=[GeneratedAction(tool="inboxToPlan", title=text[:80], requires_confirmation=True)],
            risk_level="needs_confirm",
            summary="Saved to the inbox for review.",
        )
    if schema is ExtractedContent:
        return ExtractedContent(
            document_type="other",
            clean_document=text,
            summary=text.splitlines()[0][:80] if text else "",
        )
    if schema is DailyBriefOutput:
        return DailyBriefOutput(
            greeting="Hello",
            summary="Offline brief.",
            top_priorities=["Review the inbox", "Check today's events", "Clear pending reminders"],
        )
    raise GenerationError(f"No offline fallback for {schema.__name__}")


def _quoted_input(prompt: str) -> str:
    """Pull the user text the generator wraps in triple quotes."""
    parts = prompt.split('"""')
    return parts[1].strip() if len(parts) >= 3 else prompt.strip()
