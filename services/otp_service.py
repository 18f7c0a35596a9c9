"""
OTP issuer and verifier.

Handles:
- Destination / channel validation against the allow-list
- Rate limiting (3 codes per destination per rolling hour)
- Single-active-code invariant (issuing invalidates prior active codes)
- Rollback of the stored code when the transport send fails
- Attempt counting (MAX_ATTEMPTS wrong guesses, then too_many_attempts)
- Atomic consumption of a correct code

Codes are never logged.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional
from uuid import UUID, uuid4

from domain.channel import ACCEPTED_CODE_LENGTHS, resolve_channel
from domain.phone import is_valid_destination, normalize_code, normalize_phone
from domain.time import parse_utc_datetime, utc_now
from domain.verification_code import MAX_ATTEMPTS, VerificationCode, remaining_attempts_message
from repositories.client import Client
from repositories.verification_code_repository import delete_code, issue_code_atomic, verify_code_atomic
from services.code_delivery import CodeSender
from services.errors import (
    ExpiredCodeError,
    InvalidCodeError,
    InvalidInputError,
    RateLimitedError,
    SendFailedError,
    TooManyAttemptsError,
)
from services.rate_limiter import MAX_CODES_PER_WINDOW, retry_after_seconds, window_start

logger = logging.getLogger(__name__)

DEFAULT_CONTACT_NAME = "there"

CodeGenerator = Callable[[int], str]


def generate_code(length: int) -> str:
    """Uniformly random numeric code of `length` digits, zero-padded."""

    return f"{secrets.randbelow(10 ** length):0{length}d}"


@dataclass(frozen=True, slots=True)
class IssuedCode:
    """
    Result of a successful issuance.

    `code` is returned for the caller's own use (tests, internal tooling);
    the HTTP layer never echoes it back to the requester.
    """
    code_id: UUID
    destination: str
    channel: str
    code: str
    expires_at: datetime


@dataclass(frozen=True, slots=True)
class VerifiedCode:
    code_id: UUID
    destination: str
    channel: str
    verified_at: datetime


def _require_destination(raw_destination: Optional[str]) -> str:
    destination = normalize_phone(raw_destination)
    if not is_valid_destination(destination):
        raise InvalidInputError("Please enter a valid 10-digit phone number")
    return destination


def _masked(destination: str) -> str:
    return f"***{destination[-4:]}"


def issue_code(
    db: Client,
    sender: CodeSender,
    raw_destination: Optional[str],
    channel_name: Optional[str],
    name: Optional[str] = None,
    *,
    now: datetime | None = None,
    generate: CodeGenerator = generate_code,
) -> IssuedCode:
    """
    Issue a fresh code for a destination and hand it to the sender.

    Process:
    1. Normalize and validate destination and channel (invalid_input)
    2. In one transaction (issue_code_atomic):
       - rate limit check (rate_limited, with retry time)
       - invalidate every active code for the destination
       - persist the new code (used=false, attempts=0)
    3. Send; on failure delete the new row and raise send_failed

    Raises:
        InvalidInputError, RateLimitedError, SendFailedError
    """

    destination = _require_destination(raw_destination)
    channel = resolve_channel(channel_name)
    if channel is None:
        raise InvalidInputError("Invalid carrier selection")

    now = now or utc_now()

    code = VerificationCode(
        code_id=uuid4(),
        destination=destination,
        code=generate(channel.code_length),
        channel=channel.name,
        created_at=now,
        expires_at=now + channel.ttl,
    )

    result = issue_code_atomic(db, code, window_start(now), MAX_CODES_PER_WINDOW)
    if not result.get("success"):
        if result.get("error") != "rate_limited":
            raise RuntimeError(f"Code issuance failed: {result.get('error')}")

        retry_after = retry_after_seconds(parse_utc_datetime(result["blocking_created_at"]), now)
        logger.warning(
            "Code issuance rate limited",
            extra={
                "destination": _masked(destination),
                "sent_in_window": result.get("sent_in_window"),
                "retry_after_seconds": retry_after,
            },
        )
        raise RateLimitedError(
            "Too many codes requested. Please wait before trying again.",
            retry_after_seconds=retry_after,
        )

    try:
        sender.send(destination, channel, code.code, (name or "").strip() or DEFAULT_CONTACT_NAME)
    except Exception as e:
        logger.error(
            f"Code send failed, rolling back stored code: {e}",
            extra={"destination": _masked(destination), "channel": channel.name, "code_id": str(code.code_id)},
        )
        try:
            delete_code(db, code.code_id)
        except RuntimeError as rollback_error:
            logger.error(
                f"Rollback of unsent code failed: {rollback_error}",
                extra={"code_id": str(code.code_id)},
            )
        raise SendFailedError() from e

    logger.info(
        "Verification code issued",
        extra={
            "destination": _masked(destination),
            "channel": channel.name,
            "invalidated_codes": result.get("invalidated", 0),
        },
    )

    return IssuedCode(
        code_id=code.code_id,
        destination=destination,
        channel=channel.name,
        code=code.code,
        expires_at=code.expires_at,
    )


def verify_code(
    db: Client,
    raw_destination: Optional[str],
    raw_code: Optional[str],
    *,
    now: datetime | None = None,
) -> VerifiedCode:
    """
    Consume a submitted code.

    Process:
    1. Normalize; reject non 4/6-digit codes (invalid_input)
    2. verify_code_atomic locks the newest unused, unexpired code (none: expired)
    3. attempts >= MAX_ATTEMPTS: too_many_attempts, before comparing
    4. Mismatch: attempts++, invalid_code with remaining attempts in the message
    5. Match: used=true, success

    Steps 2-5 run on one locked row, so parallel guesses are counted one by
    one and none of them is compared once the attempts are used up.

    Raises:
        InvalidInputError, ExpiredCodeError, TooManyAttemptsError, InvalidCodeError
    """

    destination = _require_destination(raw_destination)
    submitted = normalize_code(raw_code)
    if len(submitted) not in ACCEPTED_CODE_LENGTHS or not submitted.isdigit():
        raise InvalidInputError("Enter the 4 or 6-digit code we sent you")

    now = now or utc_now()

    result = verify_code_atomic(db, destination, submitted, now, MAX_ATTEMPTS)
    outcome = result.get("result")

    if outcome == "expired":
        raise ExpiredCodeError("Code expired or not found. Request a new one.")

    if outcome == "too_many_attempts":
        logger.warning(
            "Verification blocked after too many attempts",
            extra={"destination": _masked(destination), "code_id": str(result.get("code_id"))},
        )
        raise TooManyAttemptsError("Too many attempts. Request a new code.")

    if outcome == "invalid_code":
        remaining = int(result.get("remaining") or 0)
        logger.warning(
            "Invalid verification code submitted",
            extra={"destination": _masked(destination), "remaining": remaining},
        )
        raise InvalidCodeError(remaining_attempts_message(remaining))

    if outcome != "verified":
        raise RuntimeError(f"Code verification returned an unexpected result: {outcome!r}")

    return VerifiedCode(
        code_id=UUID(str(result["code_id"])),
        destination=destination,
        channel=str(result.get("channel") or ""),
        verified_at=now,
    )


__all__ = [
    "DEFAULT_CONTACT_NAME",
    "CodeGenerator",
    "IssuedCode",
    "VerifiedCode",
    "generate_code",
    "issue_code",
    "verify_code",
]
