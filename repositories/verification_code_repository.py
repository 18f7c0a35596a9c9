"""
Verification code repository (persistence).

Plain table access for VerificationCode rows (insert, rollback delete,
listings and counts) plus the two PostgreSQL functions that carry the
concurrency-sensitive steps:

- issue_code_atomic(): rate window count, invalidation of active codes and
  insert of the new code, serialized per destination
- verify_code_atomic(): attempt check, comparison and increment / consume on
  a locked row

The OTP service turns their JSON results into domain outcomes.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Mapping
from uuid import UUID

from domain.time import parse_utc_datetime, to_iso_utc
from domain.verification_code import VerificationCode
from repositories.client import Client

# Supabase table name for verification codes.
# Keep this aligned with database/migrations/001_verification_core.sql.
_CODES_TABLE: str = "verification_codes"


def _code_to_row(code: VerificationCode) -> dict[str, Any]:
    """Convert a domain VerificationCode to a Supabase row payload."""

    return {
        "code_id": str(code.code_id),
        "phone": code.destination,
        "code": code.code,
        "channel": code.channel,
        "created_at_utc": to_iso_utc(code.created_at, name="created_at"),
        "expires_at_utc": to_iso_utc(code.expires_at, name="expires_at"),
        "attempts": code.attempts,
        "used": code.used,
    }


def _row_to_code(row: Mapping[str, Any]) -> VerificationCode:
    """Convert a Supabase row into a domain VerificationCode."""

    return VerificationCode(
        code_id=UUID(str(row["code_id"])),
        destination=str(row["phone"]),
        # Stored as text; str() guards against a numeric column dropping zeros upstream.
        code=str(row["code"]),
        channel=str(row.get("channel") or ""),
        created_at=parse_utc_datetime(row["created_at_utc"]),
        expires_at=parse_utc_datetime(row["expires_at_utc"]),
        attempts=int(row.get("attempts") or 0),
        used=bool(row.get("used", False)),
    )


def insert_code(db: Client, code: VerificationCode) -> None:
    """
    Insert a new VerificationCode row.

    Raises:
    - RuntimeError if Supabase returns an error response.
    - ValueError for invalid domain values (e.g., timestamps).
    """

    response = db.table(_CODES_TABLE).insert(_code_to_row(code)).execute()
    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to insert verification code: {error}")


def delete_code(db: Client, code_id: UUID) -> None:
    """
    Delete a code row.

    Only used to roll back a code whose transport send failed; issued codes
    are otherwise never deleted.
    """

    response = db.table(_CODES_TABLE).delete().eq("code_id", str(code_id)).execute()
    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to delete verification code: {error}")


def list_codes_created_since(db: Client, destination: str, since: datetime) -> List[VerificationCode]:
    """
    List codes for `destination` created strictly after `since`, oldest first.

    Used by the rate limiter; includes used and expired codes.
    """

    response = (
        db.table(_CODES_TABLE)
        .select("*")
        .eq("phone", destination)
        .gt("created_at_utc", to_iso_utc(since, name="since"))
        .order("created_at_utc")
        .execute()
    )
    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to list verification codes: {error}")

    rows = getattr(response, "data", None) or []
    return [_row_to_code(row) for row in rows]


def _rpc_payload(response: Any, action: str) -> dict[str, Any]:
    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to {action}: {error}")

    data = getattr(response, "data", None)
    if isinstance(data, list):
        data = data[0] if data else None
    if not isinstance(data, dict):
        raise RuntimeError(f"Failed to {action}: unexpected payload {data!r}")
    return data


def issue_code_atomic(
    db: Client,
    code: VerificationCode,
    window_start: datetime,
    max_codes: int,
) -> dict[str, Any]:
    """
    Rate-check, invalidate and insert in one transaction via issue_code_atomic().

    Concurrent issuances for the same destination are serialized by an
    advisory lock, so the window count and the single-active-code rule hold
    under load.

    Returns:
        The function's JSON result: {"success": true, "invalidated", ...} or
        {"success": false, "error": "rate_limited", "blocking_created_at", ...}
    """

    response = db.rpc(
        "issue_code_atomic",
        {
            "p_code_id": str(code.code_id),
            "p_phone": code.destination,
            "p_code": code.code,
            "p_channel": code.channel,
            "p_created_at": to_iso_utc(code.created_at, name="created_at"),
            "p_expires_at": to_iso_utc(code.expires_at, name="expires_at"),
            "p_window_start": to_iso_utc(window_start, name="window_start"),
            "p_max_codes": max_codes,
        },
    ).execute()
    return _rpc_payload(response, "issue verification code")


def verify_code_atomic(
    db: Client,
    destination: str,
    submitted: str,
    as_of: datetime,
    max_attempts: int,
) -> dict[str, Any]:
    """
    Check a submitted code against the newest active code via verify_code_atomic().

    The row is locked for the lookup, the attempt check, the comparison and
    the resulting increment or consumption.

    Returns:
        {"result": "expired"} or
        {"result": "too_many_attempts" | "invalid_code" | "verified",
         "code_id", "channel", "remaining"}
    """

    response = db.rpc(
        "verify_code_atomic",
        {
            "p_phone": destination,
            "p_code": submitted,
            "p_now": to_iso_utc(as_of, name="as_of"),
            "p_max_attempts": max_attempts,
        },
    ).execute()
    return _rpc_payload(response, "verify code")


def count_codes(
    db: Client,
    *,
    used: bool | None = None,
    expired_as_of: datetime | None = None,
) -> int:
    """
    Count codes matching every given filter.

    expired_as_of: only codes whose expires_at is at or before this instant
    """

    query = db.table(_CODES_TABLE).select("code_id", count="exact")
    if used is not None:
        query = query.eq("used", used)
    if expired_as_of is not None:
        query = query.lte("expires_at_utc", to_iso_utc(expired_as_of, name="expired_as_of"))

    response = query.execute()
    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to count verification codes: {error}")

    return int(getattr(response, "count", None) or 0)


def list_high_attempt_codes(db: Client, more_than: int, limit: int = 20) -> List[VerificationCode]:
    """Codes with more than `more_than` wrong guesses, most attempts first."""

    response = (
        db.table(_CODES_TABLE)
        .select("*")
        .gt("attempts", more_than)
        .order("attempts", desc=True)
        .limit(limit)
        .execute()
    )
    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to list verification codes: {error}")

    rows = getattr(response, "data", None) or []
    return [_row_to_code(row) for row in rows]


__all__ = [
    "count_codes",
    "list_high_attempt_codes",
    "insert_code",
    "delete_code",
    "list_codes_created_since",
    "issue_code_atomic",
    "verify_code_atomic",
]
