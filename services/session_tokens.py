"""
Session tokens (JWT, HS256).

- Lead tokens wrap a successful verification: phone, lead id (if a Lead was
  saved) and funnel source, role "lead".
- Admin tokens authorize the distribution and stats endpoints, role "admin".
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Dict, Optional
from uuid import UUID

import jwt

from domain.time import utc_now
from services.settings import Settings

JWT_ALGORITHM = "HS256"

ROLE_LEAD = "lead"
ROLE_ADMIN = "admin"


class InvalidSessionToken(Exception):
    """Token is missing, malformed, expired, or carries the wrong role."""
    pass


def _encode(settings: Settings, claims: Dict[str, Any], ttl: timedelta, now: datetime) -> str:
    payload = {**claims, "iat": now, "exp": now + ttl}
    return jwt.encode(payload, settings.jwt_secret, algorithm=JWT_ALGORITHM)


def issue_lead_token(
    settings: Settings,
    phone: str,
    lead_id: Optional[UUID],
    source: Optional[str],
    now: datetime | None = None,
) -> str:
    claims = {
        "sub": phone,
        "phone": phone,
        "lead_id": str(lead_id) if lead_id else None,
        "source": source,
        "role": ROLE_LEAD,
    }
    return _encode(settings, claims, timedelta(hours=settings.session_token_ttl_hours), now or utc_now())


def issue_admin_token(settings: Settings, subject: str, now: datetime | None = None) -> str:
    claims = {"sub": subject, "role": ROLE_ADMIN}
    return _encode(settings, claims, timedelta(hours=settings.admin_token_ttl_hours), now or utc_now())


def decode_token(
    settings: Settings,
    token: str,
    *,
    role: Optional[str] = None,
    now: datetime | None = None,
) -> Dict[str, Any]:
    """
    Verify signature and expiry, optionally requiring a role.

    Expiry is checked against `now` (default: the current UTC time), the same
    clock the token was issued with, so callers with an injected clock see
    consistent results.

    Raises:
        InvalidSessionToken
    """
    try:
        claims = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[JWT_ALGORITHM],
            options={"verify_exp": False, "verify_iat": False, "require": ["exp"]},
        )
    except jwt.InvalidTokenError:
        raise InvalidSessionToken("Invalid token") from None

    now = now or utc_now()
    try:
        expires_at = int(claims["exp"])
    except (TypeError, ValueError):
        raise InvalidSessionToken("Invalid token") from None
    if expires_at <= now.timestamp():
        raise InvalidSessionToken("Token expired")

    if role is not None and claims.get("role") != role:
        raise InvalidSessionToken(f"Token does not carry the {role} role")
    return claims


__all__ = [
    "JWT_ALGORITHM",
    "ROLE_LEAD",
    "ROLE_ADMIN",
    "InvalidSessionToken",
    "issue_lead_token",
    "issue_admin_token",
    "decode_token",
]
