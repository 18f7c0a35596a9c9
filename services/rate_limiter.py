"""
Rate limiter for code issuance.

Counts VerificationCode rows for a destination created inside a rolling
one-hour window and compares against a fixed ceiling of 3 sends. Used and
expired codes count too, which is why codes are retained after use.

`check_rate_limit` is a pure read for callers that only want to know.
Issuance itself enforces the same window inside issue_code_atomic(), so the
count and the insert cannot be split by a concurrent request.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from domain.time import require_utc_timestamp, utc_now
from repositories.client import Client
from repositories.verification_code_repository import list_codes_created_since

RATE_LIMIT_WINDOW = timedelta(hours=1)
MAX_CODES_PER_WINDOW = 3


@dataclass(frozen=True, slots=True)
class RateLimitDecision:
    """
    allowed: True if another code may be issued now
    sent_in_window: codes already issued inside the window
    retry_after_seconds: when allowed is False, seconds until the oldest
        code in the window ages out
    """
    allowed: bool
    sent_in_window: int
    retry_after_seconds: Optional[int] = None


def window_start(now: datetime) -> datetime:
    """Codes created strictly after this instant count against the limit."""

    require_utc_timestamp("now", now)
    return now - RATE_LIMIT_WINDOW


def retry_after_seconds(blocking_created_at: datetime, now: datetime) -> int:
    """Whole seconds until `blocking_created_at` leaves the window (at least 1)."""

    wait = (blocking_created_at + RATE_LIMIT_WINDOW - now).total_seconds()
    return max(1, math.ceil(wait))


def check_rate_limit(db: Client, destination: str, now: datetime | None = None) -> RateLimitDecision:
    """
    Decide whether `destination` may be sent another code at `now`.

    Example:
        decision = check_rate_limit(db, "5551234567")
        if not decision.allowed:
            # tell the user to wait decision.retry_after_seconds
    """

    now = now or utc_now()

    codes = list_codes_created_since(db, destination, window_start(now))
    if len(codes) < MAX_CODES_PER_WINDOW:
        return RateLimitDecision(allowed=True, sent_in_window=len(codes))

    # The window reopens once enough of the oldest codes have aged out.
    oldest_blocking = sorted(c.created_at for c in codes)[len(codes) - MAX_CODES_PER_WINDOW]

    return RateLimitDecision(
        allowed=False,
        sent_in_window=len(codes),
        retry_after_seconds=retry_after_seconds(oldest_blocking, now),
    )


def can_issue(db: Client, destination: str, now: datetime | None = None) -> bool:
    return check_rate_limit(db, destination, now).allowed


__all__ = [
    "RATE_LIMIT_WINDOW",
    "MAX_CODES_PER_WINDOW",
    "RateLimitDecision",
    "window_start",
    "retry_after_seconds",
    "check_rate_limit",
    "can_issue",
]
