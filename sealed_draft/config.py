from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

REPO_ROOT = Path(__file__).resolve().parents[1]

DATA_RAW = REPO_ROOT / "data" / "raw"
DATA_PROCESSED = REPO_ROOT / "data" / "processed"
CARDS_JSON = DATA_PROCESSED / "setdata.cleaned.json"
DB_PATH = REPO_ROOT / "data" / "sealed_draft.sqlite"


class Settings(BaseSettings):
    """Overridable with SEALED_DRAFT_* environment variables or a .env file."""

    model_config = SettingsConfigDict(env_prefix="SEALED_DRAFT_", env_file=".env", extra="ignore")

    cards_path: Path = CARDS_JSON
    db_path: Path = DB_PATH
    host: str = "127.0.0.1"
    port: int = 8004
    log_level: str = "INFO"


@lru_cache()
def get_settings() -> Settings:
    return Settings()


__all__ = ["REPO_ROOT", "DATA_RAW", "DATA_PROCESSED", "CARDS_JSON", "DB_PATH", "Settings", "get_settings"]
