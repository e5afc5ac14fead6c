"""Ada configuration management using pydantic-settings."""

from pathlib import Path
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env from project root so ANTHROPIC_API_KEY (and friends) are available
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

Grant = Literal["ask", "allow", "deny"]


class GeneralSettings(BaseSettings):
    data_path: Path = Field(default=Path.home() / ".local/share/ada")
    db_url: str = Field(default="postgresql+asyncpg://localhost/ada")
    log_level: str = "INFO"


class ModelSettings(BaseSettings):
    """Which generative model backs plan generation."""

    model_config = SettingsConfigDict(env_prefix="ADA_MODEL_")

    provider: Literal["ollama", "anthropic", "fixture"] = "ollama"
    timeout_seconds: float = 60.0


class AnthropicSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="ANTHROPIC_")
    api_key: str = ""
    model: str = "claude-haiku-4-5-20251001"
    max_tokens: int = 2000


class OllamaSettings(BaseSettings):
    model: str = "qwen3:4b"
    base_url: str = "http://localhost:11434"


class PermissionSettings(BaseSettings):
    """Standing answers for capability prompts. "ask" prompts once per process."""

    calendar: Grant = "ask"
    reminders: Grant = "ask"
    camera: Grant = "ask"


class Settings(BaseSettings):
    """Top-level settings assembled from subsections."""

    general: GeneralSettings = Field(default_factory=GeneralSettings)
    model: ModelSettings = Field(default_factory=ModelSettings)
    anthropic: AnthropicSettings = Field(default_factory=AnthropicSettings)
    ollama: OllamaSettings = Field(default_factory=OllamaSettings)
    permissions: PermissionSettings = Field(default_factory=PermissionSettings)

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Settings":
        """Load settings from TOML config file, falling back to defaults."""
        if config_path is None:
            config_path = Path.home() / ".config/ada/config.toml"

        if config_path.exists():
            import toml

            data = toml.load(config_path)
            return cls(
                general=GeneralSettings(**data.get("general", {})),
                model=ModelSettings(**data.get("model", {})),
                anthropic=AnthropicSettings(**data.get("anthropic", {})),
                ollama=OllamaSettings(**data.get("ollama", {})),
                permissions=PermissionSettings(**data.get("permissions", {})),
            )

        return cls()


# Module-level singleton
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings
