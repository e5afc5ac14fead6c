"""Build the configured language model."""

import logging
from typing import Optional

from ada.config import Settings, get_settings
from ada.llm.base import LanguageModel

logger = logging.getLogger(__name__)


def build_model(settings: Optional[Settings] = None, dry_run: bool = False) -> LanguageModel:
    settings = settings or get_settings()
    provider = "fixture" if dry_run else settings.model.provider

    if provider == "anthropic":
        from ada.llm.anthropic_model import AnthropicModel

        model: LanguageModel = AnthropicModel(
            api_key=settings.anthropic.api_key,
            model=settings.anthropic.model,
            max_tokens=settings.anthropic.max_tokens,
        )
    elif provider == "fixture":
        from ada.llm.fixture import FixtureModel, inbox_fallback

        model = FixtureModel(fallback=inbox_fallback, stream_chunks=["(offline) ", "No model configured."])
    else:
        from ada.llm.ollama import OllamaModel

        model = OllamaModel(
            base_url=settings.ollama.base_url,
            model=settings.ollama.model,
            timeout=settings.model.timeout_seconds,
        )

    logger.debug("Using %s language model", model.name)
    return model
