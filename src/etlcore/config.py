# src/etlcore/config.py
from __future__ import annotations

import os
from dataclasses import dataclass, field

__version__ = "0.1.0"

DEFAULT_USER_AGENT = f"etlcore/{__version__}"


@dataclass(frozen=True)
class HttpSettings:
    timeout_s: float = 30.0
    max_concurrency: int = 10
    retry_attempts: int = 1
    user_agent: str = DEFAULT_USER_AGENT


@dataclass(frozen=True)
class Settings:
    http: HttpSettings = field(default_factory=HttpSettings)
    log_level: str = "INFO"


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name, "").strip()
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}") from None


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name, "").strip()
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {value!r}") from None


def load_settings() -> Settings:
    http = HttpSettings(
        timeout_s=_env_float("ETL_HTTP_TIMEOUT", 30.0),
        max_concurrency=_env_int("ETL_HTTP_MAX_CONCURRENCY", 10),
        retry_attempts=max(1, _env_int("ETL_HTTP_RETRIES", 1)),
        user_agent=os.getenv("ETL_HTTP_USER_AGENT") or DEFAULT_USER_AGENT,
    )
    return Settings(http=http, log_level=os.getenv("ETL_LOG_LEVEL", "INFO").upper())
