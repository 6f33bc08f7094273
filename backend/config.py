from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List

from dotenv import load_dotenv


DEFAULT_ALLOWED_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]


def _float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return float(raw)


def _list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if raw is None:
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass(frozen=True)
class Settings:
    fetch_delay_seconds: float = 1.0
    allowed_origins: List[str] = field(default_factory=lambda: list(DEFAULT_ALLOWED_ORIGINS))
    log_level: str = "INFO"
    api_url: str = "http://localhost:8000"
    host: str = "0.0.0.0"
    port: int = 8000


def load_settings() -> Settings:
    """Build settings from the environment (and a local .env file if present)."""
    load_dotenv()
    return Settings(
        fetch_delay_seconds=_float("FETCH_DELAY_SECONDS", 1.0),
        allowed_origins=_list("ALLOWED_ORIGINS", DEFAULT_ALLOWED_ORIGINS),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        api_url=os.getenv("STOCK_DATA_API_URL", "http://localhost:8000").rstrip("/"),
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
    )
