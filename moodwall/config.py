"""Environment-driven settings.

Values are read once from the process environment (and an optional ``.env``
file at the repo root) and cached for the process lifetime.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

log = logging.getLogger("moodwall.config")

REPO_ROOT = Path(__file__).resolve().parents[1]

DEFAULT_MAX_CARDS = 7
DEFAULT_IMAGE_MAX_KB = 100


class Settings(BaseModel):
    max_cards: int = Field(DEFAULT_MAX_CARDS, ge=1)
    max_image_size_kb: int = Field(DEFAULT_IMAGE_MAX_KB, ge=1)
    spreadsheet_id: str = ""
    sheet_name: str = "cards"
    sa_client_email: str = ""
    sa_private_key: str = ""
    credentials_file: str = ""
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"

    @property
    def max_image_bytes(self) -> int:
        return self.max_image_size_kb * 1024


def _env_int(name: str, default: int, minimum: int = 1) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        log.warning("%s=%r is not an integer, using %s", name, raw, default)
        return default
    if value < minimum:
        log.warning("%s=%s is below %s, using %s", name, value, minimum, default)
        return default
    return value


def _env_log_level(name: str, default: str = "INFO") -> str:
    raw = (os.getenv(name) or "").strip().upper()
    if not raw:
        return default
    if not isinstance(logging.getLevelName(raw), int):
        log.warning("%s=%r is not a logging level, using %s", name, raw, default)
        return default
    return raw


def load_settings() -> Settings:
    load_dotenv(REPO_ROOT / ".env")
    origins = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
    return Settings(
        max_cards=_env_int("MAX_CARDS", DEFAULT_MAX_CARDS),
        max_image_size_kb=_env_int("MAX_IMAGE_SIZE_KB", DEFAULT_IMAGE_MAX_KB),
        spreadsheet_id=os.getenv("GOOGLE_SHEET_ID", ""),
        sheet_name=os.getenv("GOOGLE_SHEET_NAME", "cards") or "cards",
        sa_client_email=os.getenv("GOOGLE_SA_CLIENT_EMAIL", ""),
        # keys pasted into .env usually carry literal "\n" sequences
        sa_private_key=os.getenv("GOOGLE_SA_PRIVATE_KEY", "").replace("\\n", "\n"),
        credentials_file=os.getenv("GOOGLE_APPLICATION_CREDENTIALS", ""),
        cors_origins=origins or ["*"],
        host=os.getenv("HOST", "0.0.0.0"),
        port=_env_int("PORT", 3000),
        log_level=_env_log_level("LOG_LEVEL"),
    )


_SETTINGS_CACHE: Optional[Settings] = None


def get_settings() -> Settings:
    global _SETTINGS_CACHE
    if _SETTINGS_CACHE is None:
        _SETTINGS_CACHE = load_settings()
    return _SETTINGS_CACHE
