"""Language model adapter interface."""

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from ada.errors import GenerationError

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


class LanguageModel(ABC):
    """Text in, structured value out. May be unavailable, may fail."""

    name: str = "model"

    @abstractmethod
    async def respond(self, prompt: str, schema: type[T], instructions: str) -> T:
        """Generate a value conforming to ``schema``.

        Raises ModelUnavailable if the backend cannot run, GenerationError if
        it ran but produced nothing valid.
        """

    @abstractmethod
    def stream(self, prompt: str, instructions: str) -> AsyncIterator[str]:
        """Yield response text fragments as they arrive."""


def strip_code_fences(raw_text: str) -> str:
    text = raw_text.strip()
    if text.startswith("```"):
        # Remove opening fence (```json, ```, etc.)
        text = text.split("\n", 1)[1] if "\n" in text else text[3:]
    if text.rstrip().endswith("```"):
        text = text.rstrip()[:-3]
    return text


def parse_structured(raw_text: str, schema: type[T]) -> T:
    """Parse a JSON object out of model text and validate it against ``schema``."""
    try:
        text = strip_code_fences(raw_text)
        start = text.index("{")
        end = text.rindex("}") + 1
        data = json.loads(text[start:end])
    except (json.JSONDecodeError, ValueError) as e:
        logger.warning("Model returned non-JSON output: %s", raw_text[:300])
        raise GenerationError(f"Model output was not valid JSON: {e}") from e
    return validate_structured(data, schema)


def validate_structured(data: dict, schema: type[T]) -> T:
    try:
        return schema.model_validate(data)
    except ValidationError as e:
        logger.warning("Model output did not match %s: %s", schema.__name__, e)
        raise GenerationError(f"Model output did not match {schema.__name__}") from e
