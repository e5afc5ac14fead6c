"""Hosted model backend using the Anthropic API."""

import logging
import time
from collections.abc import AsyncIterator

import anthropic

from ada.errors import GenerationError, ModelUnavailable
from ada.llm.base import LanguageModel, T, validate_structured

logger = logging.getLogger(__name__)


class AnthropicModel(LanguageModel):
    """Structured output via a forced tool call whose input schema is the target schema."""

    name = "anthropic"

    def __init__(self, api_key: str, model: str, max_tokens: int = 2000):
        self.api_key = api_key
        self.model = model
        self.max_tokens = max_tokens
        self._client = None

    def _get_client(self) -> anthropic.AsyncAnthropic:
        if not self.api_key:
            raise ModelUnavailable("No Anthropic API key configured")
        if self._client is None:
            self._client = anthropic.AsyncAnthropic(api_key=self.api_key)
        return self._client

    async def respond(self, prompt: str, schema: type[T], instructions: str) -> T:
        client = self._get_client()
        tool_name = f"emit_{schema.__name__.lower()}"
        start_time = time.time()

        try:
            response = await client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                system=instructions,
                messages=[{"role": "user", "content": prompt}],
                tools=[{
                    "name": tool_name,
                    "description": f"Return the result as a {schema.__name__}.",
                    "input_schema": schema.model_json_schema(),
                }],
                tool_choice={"type": "tool", "name": tool_name},
            )
        except anthropic.APITimeoutError as e:
            raise GenerationError("Anthropic API timed out") from e
        except anthropic.APIConnectionError as e:
            raise ModelUnavailable("Anthropic API is not reachable") from e
        except anthropic.AuthenticationError as e:
            raise ModelUnavailable("Anthropic API key was rejected") from e
        except anthropic.APIStatusError as e:
            raise GenerationError(f"Anthropic API error {e.status_code}") from e

        latency_ms = int((time.time() - start_time) * 1000)
        logger.info(
            "Anthropic %s: %d in / %d out tokens in %dms",
            self.model,
            response.usage.input_tokens,
            response.usage.output_tokens,
            latency_ms,
        )

        for block in response.content:
            if block.type == "tool_use" and block.name == tool_name:
                return validate_structured(block.input, schema)
        raise GenerationError("Anthropic response contained no structured output")

    async def stream(self, prompt: str, instructions: str) -> AsyncIterator[str]:
        client = self._get_client()
        try:
            async with client.messages.stream(
                model=self.model,
                max_tokens=self.max_tokens,
                system=instructions,
                messages=[{"role": "user", "content": prompt}],
            ) as stream:
                async for text in stream.text_stream:
                    yield text
        except anthropic.APITimeoutError as e:
            raise GenerationError("Anthropic API timed out") from e
        except anthropic.APIConnectionError as e:
            raise ModelUnavailable("Anthropic API is not reachable") from e
        except anthropic.APIStatusError as e:
            raise GenerationError(f"Anthropic API error {e.status_code}") from e
