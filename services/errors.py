"""
Error taxonomy for the verification and distribution core.

Every rejection a caller can see is a CoreError with a stable `kind`, a
human-readable `message`, and a category that tells the UI what to do next:

- input:      malformed destination / code; correct it and try again now
- rate:       rate_limited / too_many_attempts; wait `retry_after_seconds`
- state:      expired / already_delivered; start a new flow
- dependency: send_failed / no_sheets_configured; retry once fixed

LedgerCorruptionError is not a CoreError: it is an internal
consistency violation, never rendered as a structured user response.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorCategory(str, Enum):
    INPUT = "input"
    RATE = "rate"
    STATE = "state"
    DEPENDENCY = "dependency"


class CoreError(Exception):
    """Base class for all user-facing core failures."""

    kind: str = "error"
    category: ErrorCategory = ErrorCategory.INPUT
    status_code: int = 400
    default_message: str = "Request failed"

    def __init__(self, message: Optional[str] = None, *, retry_after_seconds: Optional[int] = None) -> None:
        self.message = message or self.default_message
        self.retry_after_seconds = retry_after_seconds
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {"error": self.kind, "message": self.message}
        if self.retry_after_seconds is not None:
            body["retry_after_seconds"] = self.retry_after_seconds
        return body


# Input errors

class InvalidInputError(CoreError):
    kind = "invalid_input"
    default_message = "Invalid request"


# Rate / attempt errors

class RateLimitedError(CoreError):
    kind = "rate_limited"
    category = ErrorCategory.RATE
    status_code = 429
    default_message = "Too many codes requested. Please wait before trying again."


class TooManyAttemptsError(CoreError):
    kind = "too_many_attempts"
    category = ErrorCategory.RATE
    status_code = 429
    default_message = "Too many attempts. Request a new code."


# State errors

class ExpiredCodeError(CoreError):
    kind = "expired"
    category = ErrorCategory.STATE
    default_message = "Code expired or not found. Request a new one."


class InvalidCodeError(CoreError):
    kind = "invalid_code"
    default_message = "That code didn't match."


class LeadNotFoundError(CoreError):
    kind = "lead_not_found"
    category = ErrorCategory.STATE
    status_code = 404
    default_message = "Lead not found"


class ClientNotFoundError(CoreError):
    kind = "client_not_found"
    category = ErrorCategory.STATE
    status_code = 404
    default_message = "Client not found"


class AlreadyDeliveredError(CoreError):
    kind = "already_delivered"
    category = ErrorCategory.STATE
    status_code = 409
    default_message = "Lead already delivered"


class IllegalTransitionError(CoreError):
    kind = "illegal_transition"
    category = ErrorCategory.STATE
    status_code = 409
    default_message = "Lead is not in a state that allows this action"


# Dependency errors

class SendFailedError(CoreError):
    kind = "send_failed"
    category = ErrorCategory.DEPENDENCY
    status_code = 500
    default_message = "Failed to send verification code. Please try again."


class NoSheetsConfiguredError(CoreError):
    kind = "no_sheets_configured"
    category = ErrorCategory.DEPENDENCY
    default_message = "Client has no Google Sheet configured"


class LedgerCorruptionError(Exception):
    """Lead delivery state and the Delivery audit trail disagree."""


__all__ = [
    "ErrorCategory",
    "CoreError",
    "InvalidInputError",
    "RateLimitedError",
    "TooManyAttemptsError",
    "ExpiredCodeError",
    "InvalidCodeError",
    "LeadNotFoundError",
    "ClientNotFoundError",
    "AlreadyDeliveredError",
    "IllegalTransitionError",
    "SendFailedError",
    "NoSheetsConfiguredError",
    "LedgerCorruptionError",
]
