"""
Domain: one-time passcode records.

Contract excerpts implemented here:
- A VerificationCode is one issued OTP attempt for a normalized destination.
- expires_at - created_at is the channel TTL (10 minutes for gateway channels).
- attempts starts at 0 and is incremented on each wrong guess.
- used is False until a correct guess consumes the code, or until a newer
  code for the same destination invalidates it.
- At most one code per destination is ACTIVE (not used, not expired).
- Records are never deleted except when the transport send fails right after
  insertion (rollback); they are retained for rate limiting and audit.

The persisted `used` flag plus the clock resolve to an explicit CodeState.
Transitions return new instances; nothing here performs I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from uuid import UUID

from .time import require_utc_timestamp

MAX_ATTEMPTS = 5


class CodeState(str, Enum):
    ACTIVE = "active"
    CONSUMED = "consumed"
    EXPIRED = "expired"


@dataclass(frozen=True, slots=True)
class VerificationCode:
    """
    Immutable snapshot of a stored OTP row.

    All timestamps must be passed explicitly; no implicit 'now' is used.
    """

    code_id: UUID
    destination: str
    code: str
    channel: str
    created_at: datetime
    expires_at: datetime
    attempts: int = 0
    used: bool = False

    def __post_init__(self) -> None:
        require_utc_timestamp("created_at", self.created_at)
        require_utc_timestamp("expires_at", self.expires_at)
        if self.expires_at <= self.created_at:
            raise ValueError("expires_at must be after created_at")
        if self.attempts < 0:
            raise ValueError("attempts must be >= 0")

    def state(self, as_of: datetime) -> CodeState:
        require_utc_timestamp("as_of", as_of)
        if self.used:
            return CodeState.CONSUMED
        if self.expires_at <= as_of:
            return CodeState.EXPIRED
        return CodeState.ACTIVE

    def is_active(self, as_of: datetime) -> bool:
        return self.state(as_of) is CodeState.ACTIVE

    @property
    def attempts_exhausted(self) -> bool:
        return self.attempts >= MAX_ATTEMPTS

    @property
    def remaining_attempts(self) -> int:
        return max(0, MAX_ATTEMPTS - self.attempts)

    def matches(self, submitted: str) -> bool:
        # String comparison keeps leading zeros significant ("0042" != "42").
        return self.code == submitted

    def with_attempts(self, attempts: int) -> "VerificationCode":
        return replace(self, attempts=attempts)

    def consumed(self) -> "VerificationCode":
        if self.used:
            raise ValueError("VerificationCode is already consumed")
        return replace(self, used=True)


def remaining_attempts_message(remaining: int) -> str:
    """User-facing text for a wrong guess; the count is part of the message."""

    if remaining <= 0:
        return "No attempts left. Request a new code."
    plural = "s" if remaining != 1 else ""
    return f"That code didn't match. {remaining} attempt{plural} left."
