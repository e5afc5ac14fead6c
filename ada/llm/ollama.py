"""Local model backend served by Ollama."""

import json
import logging
from collections.abc import AsyncIterator

import httpx

from ada.errors import GenerationError, ModelUnavailable
from ada.llm.base import LanguageModel, T, parse_structured

logger = logging.getLogger(__name__)


class OllamaModel(LanguageModel):
    """Runs generation against a local Ollama server.

    Structured output uses Ollama's ``format`` parameter with the target JSON
    schema, so decoding is constrained to the schema.
    """

    name = "ollama"

    def __init__(self, base_url: str, model: str, timeout: float = 120.0):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout

    def _payload(self, prompt: str, instructions: str, **extra) -> dict:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": instructions},
                {"role": "user", "content": prompt},
            ],
            **extra,
        }

    async def respond(self, prompt: str, schema: type[T], instructions: str) -> T:
        payload = self._payload(prompt, instructions, stream=False, format=schema.model_json_schema())
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(f"{self.base_url}/api/chat", json=payload)
                response.raise_for_status()
                result = response.json()
        except httpx.ConnectError as e:
            raise ModelUnavailable(f"Ollama is not reachable at {self.base_url}") from e
        except httpx.TimeoutException as e:
            raise GenerationError("Ollama timed out") from e
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                raise ModelUnavailable(f"Model {self.model} is not installed in Ollama") from e
            raise GenerationError(f"Ollama returned HTTP {e.response.status_code}") from e

        raw = result.get("message", {}).get("content", "")
        logger.debug("Ollama %s responded with %d chars", self.model, len(raw))
        return parse_structured(raw, schema)

    async def stream(self, prompt: str, instructions: str) -> AsyncIterator[str]:
        payload = self._payload(prompt, instructions, stream=True)
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                async with client.stream("POST", f"{self.base_url}/api/chat", json=payload) as response:
                    response.raise_for_status()
                    async for line in response.aiter_lines():
                        if not line.strip():
                            continue
                        chunk = json.loads(line)
                        if error := chunk.get("error"):
                            raise GenerationError(f"Ollama stream failed: {error}")
                        if text := chunk.get("message", {}).get("content"):
                            yield text
                        if chunk.get("done"):
                            return
        except httpx.ConnectError as e:
            raise ModelUnavailable(f"Ollama is not reachable at {self.base_url}") from e
        except (httpx.HTTPError, json.JSONDecodeError) as e:
            raise GenerationError(f"Ollama stream failed: {e}") from e
