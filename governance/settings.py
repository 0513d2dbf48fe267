"""Runtime settings, read from ``MRM_*`` environment variables or ``.env``."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="MRM_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    config_dir: Path = Field(default=Path("config"), description="Directory holding rules.yaml and artifacts.yaml")
    log_level: str = Field(default="info")
    log_format: Literal["json", "console"] = Field(default="json")


@lru_cache()
def get_settings() -> Settings:
    """Process-wide settings, read once from the environment and .env."""
    return Settings()
