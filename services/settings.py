"""
Runtime configuration.

Values come from environment variables, loaded from the project's .env file
first. Database credentials are read by repositories.client on first use, not
here.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Tuple

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DEV_JWT_SECRET = "dev-only-change-me"


@dataclass(frozen=True, slots=True)
class Settings:
    jwt_secret: str
    session_token_ttl_hours: int
    admin_token_ttl_hours: int

    gmail_user: str | None
    gmail_app_password: str | None
    smtp_host: str
    smtp_port: int
    smtp_timeout_seconds: float

    cors_allow_origins: Tuple[str, ...]
    log_level: str


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"Environment variable {name} must be an integer, got {raw!r}") from None


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """Build Settings from the environment once per process."""

    jwt_secret = os.getenv("JWT_SECRET") or DEV_JWT_SECRET
    if jwt_secret == DEV_JWT_SECRET:
        logger.warning("JWT_SECRET is not set; using the development secret")

    origins = os.getenv("CORS_ALLOW_ORIGINS", "*")

    return Settings(
        jwt_secret=jwt_secret,
        session_token_ttl_hours=_int_env("SESSION_TOKEN_TTL_HOURS", 24),
        admin_token_ttl_hours=_int_env("ADMIN_TOKEN_TTL_HOURS", 12),
        gmail_user=os.getenv("GMAIL_USER") or None,
        gmail_app_password=os.getenv("GMAIL_APP_PASSWORD") or None,
        smtp_host=os.getenv("SMTP_HOST", "smtp.gmail.com"),
        smtp_port=_int_env("SMTP_PORT", 465),
        smtp_timeout_seconds=float(_int_env("SMTP_TIMEOUT_SECONDS", 10)),
        cors_allow_origins=tuple(o.strip() for o in origins.split(",") if o.strip()),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


__all__ = ["Settings", "load_settings"]
