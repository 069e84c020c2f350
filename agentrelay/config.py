"""Runtime settings for AgentRelay, read from AGENTRELAY_* environment variables."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Bundled UI shipped inside the package
DEFAULT_STATIC_DIR = Path(__file__).resolve().parent / "static"

DEFAULT_PORT = 3001
DEFAULT_MODEL = "gemini-2.0-flash"
DEFAULT_PROMPT = "Just print the word Hello, nothing else."
DEFAULT_TIMEOUT_MS = 120_000
DEFAULT_SEARCH_URL = "https://www.google.com/search?q={query}"


class Settings(BaseSettings):
    """Application settings loaded from environment variables or a .env file."""

    model_config = SettingsConfigDict(
        env_prefix="AGENTRELAY_",
        env_file=".env",
        extra="ignore",
    )

    host: str = "127.0.0.1"
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535)

    # Agentic CLI
    agent_executable: str = "gemini"
    default_model: str = DEFAULT_MODEL
    default_prompt: str = DEFAULT_PROMPT
    agent_timeout_ms: int = Field(default=DEFAULT_TIMEOUT_MS, gt=0)
    enrich_prompts: bool = True

    # Paths
    project_dir: Path | None = None
    static_dir: Path = DEFAULT_STATIC_DIR

    # Browser fallback search; must contain {query}
    search_url: str = DEFAULT_SEARCH_URL

    log_level: str = "INFO"

    @field_validator("search_url")
    @classmethod
    def _require_query_placeholder(cls, value: str) -> str:
        if "{query}" not in value:
            raise ValueError("search_url must contain a {query} placeholder")
        return value


@lru_cache
def get_settings() -> Settings:
    """Get the process-wide settings instance."""
    return Settings()
