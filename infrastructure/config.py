from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from domain.repositories import DocumentStore
from infrastructure.leetcode.stats_client import DEFAULT_API_URL
from infrastructure.moderation.gemini_moderator import DEFAULT_MODEL


@dataclass
class Settings:
    """Process configuration read from the environment (and `.env`)."""

    discord_token: Optional[str]
    telegram_token: Optional[str]
    db_backend: str
    db_path: str
    database_url: Optional[str]
    leetcode_api_url: str
    leetcode_timeout: float
    gemini_api_key: Optional[str]
    gemini_model: str
    log_level: str


def load_settings() -> Settings:
    load_dotenv()
    return Settings(
        discord_token=os.environ.get("DISCORD_TOKEN"),
        telegram_token=os.environ.get("TELEGRAM_TOKEN"),
        db_backend=os.environ.get("DB_BACKEND", "sqlite").lower(),
        db_path=os.environ.get("DB_PATH", "groups.db"),
        database_url=os.environ.get("DATABASE_URL"),
        leetcode_api_url=os.environ.get("LEETCODE_API_URL", DEFAULT_API_URL),
        leetcode_timeout=float(os.environ.get("LEETCODE_TIMEOUT", "10")),
        gemini_api_key=os.environ.get("GEMINI_API_KEY"),
        gemini_model=os.environ.get("GEMINI_MODEL", DEFAULT_MODEL),
        log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    )


def build_store(settings: Settings) -> DocumentStore:
    if settings.db_backend == "postgres":
        if not settings.database_url:
            raise RuntimeError("DATABASE_URL environment variable is not set.")
        from infrastructure.db.document_store_postgres import PostgresDocumentStore

        return PostgresDocumentStore({"dsn": settings.database_url})

    if settings.db_backend != "sqlite":
        raise RuntimeError(f"Unknown DB_BACKEND: {settings.db_backend}")
    from infrastructure.db.document_store_sqlite import SqliteDocumentStore

    return SqliteDocumentStore(settings.db_path)
