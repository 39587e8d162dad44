"""
Runtime configuration helpers for the friendship engine.

Loads FRIENDLY_* variables from the environment or from the .env file
located in the project root.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve the project root
BASE_DIR = Path(__file__).resolve().parents[1]

# Absolute path to .env
ENV_PATH = BASE_DIR / ".env"

# Load .env defaults without overriding environment variables provided by the platform
load_dotenv(dotenv_path=ENV_PATH, override=False)


class Settings(BaseSettings):
    database_url: str = Field(default="sqlite+pysqlite:///./friendly.db", alias="FRIENDLY_DATABASE_URL")
    sql_echo: bool = Field(default=False, alias="FRIENDLY_SQL_ECHO")

    # Declaration defaults, used when enable_friendly() is called without options
    default_friendship_class: str = Field(default="Friendship", alias="FRIENDLY_DEFAULT_FRIENDSHIP_CLASS")
    require_acceptance: bool = Field(default=True, alias="FRIENDLY_REQUIRE_ACCEPTANCE")
    key_suffix: str = Field(default="_id", alias="FRIENDLY_KEY_SUFFIX")

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()


__all__ = ["Settings", "get_settings"]
