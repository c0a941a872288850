"""Server and CLI settings, read from CIVSIM_* environment variables or .env."""
from __future__ import annotations
import logging
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="CIVSIM_", env_file=".env", extra="ignore")

    agent_backend: Literal["llm", "random", "local"] = "llm"
    llm_url: str = "http://localhost:18789"
    llm_model: str = "anthropic/claude-sonnet-4-6"
    anthropic_api_key: Optional[str] = None
    gemini_api_key: Optional[str] = None
    agent_timeout: Optional[float] = 120
    llm_retries: int = 2
    random_seed: int = 0

    default_grid_size: int = 30
    default_max_turns: int = 20
    replay_dir: Optional[Path] = None

    log_level: str = "INFO"
    log_format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@lru_cache
def get_settings() -> Settings:
    return Settings()


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(level=settings.log_level.upper(), format=settings.log_format)
