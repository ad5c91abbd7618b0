# app/config.py
"""
Zentrale Einstellungen (env-first, optional über eine .env-Datei).

Alle Werte werden einmalig beim Import gelesen; Tests bauen sich bei Bedarf
eigene Settings-Objekte über load_settings() oder direkt per Konstruktor.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

load_dotenv()


@dataclass
class Settings:
    database_url: str = "sqlite:///app/db.sqlite3"
    newsapi_api_key: str = ""
    guardian_api_key: str = ""
    nytimes_api_key: str = ""
    http_timeout: int = 10
    http_retries: int = 2
    max_workers: int = 3
    refresh_seconds: int = 0  # 0 = kein automatischer Abruf
    auth_user_header: str = "X-User-Id"
    log_level: str = "INFO"


def _int_from_env(key: str, default: int, *, allow_zero: bool = False) -> int:
    raw = os.getenv(key)
    if raw is None or str(raw).strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ungültiger Integer-Wert für %s=%s; nutze Default %s", key, raw, default)
        return default
    if value > 0 or (allow_zero and value == 0):
        return value
    logger.warning("Wert für %s=%s außerhalb des gültigen Bereichs; nutze Default %s", key, raw, default)
    return default


def load_settings() -> Settings:
    return Settings(
        database_url=os.getenv("DATABASE_URL") or Settings.database_url,
        newsapi_api_key=os.getenv("NEWSAPI_API_KEY", ""),
        guardian_api_key=os.getenv("GUARDIAN_API_KEY", ""),
        nytimes_api_key=os.getenv("NYTIMES_API_KEY", ""),
        http_timeout=_int_from_env("NEWS_HTTP_TIMEOUT", 10),
        http_retries=_int_from_env("NEWS_HTTP_RETRIES", 2, allow_zero=True),
        max_workers=_int_from_env("NEWS_MAX_WORKERS", 3),
        refresh_seconds=_int_from_env("NEWS_REFRESH_SECONDS", 0, allow_zero=True),
        auth_user_header=os.getenv("AUTH_USER_HEADER") or Settings.auth_user_header,
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
    )


settings: Settings = load_settings()
