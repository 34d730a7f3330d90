"""Application configuration via pydantic-settings.

Settings are read from ``PLAYPARTNER_*`` environment variables (or a ``.env``
file).  A module-level ``settings`` singleton is shared by the app, the MCP
server and the admin CLI.
"""
from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

DATA_DIR = Path(__file__).parent / "data"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="PLAYPARTNER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    ENV: Literal["development", "production", "test"] = "development"

    # Database; empty means the SQLite file under DATA_DIR
    DATABASE_URL: str = ""

    # Server
    HOST: str = "127.0.0.1"
    PORT: int = 5000

    # Logging
    LOG_LEVEL: str = "INFO"

    # Dashboard
    RECENT_PARTNERS_LIMIT: int = 10

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"sqlite:///{DATA_DIR / 'playpartner.db'}"


settings = Settings()
