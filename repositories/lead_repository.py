"""
Lead repository (persistence).

This module provides *only* persistence operations for the Lead domain entity.
No business rules (scoring, disqualification, delivery eligibility) belong here.

Delivery state (delivered, disputed, replaced, replaces_lead_id) is not written
here: deliver_lead_atomic(), dispute_lead_atomic() and replace_lead_atomic()
change the flags together with the buyer counters and the Delivery rows.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Mapping, Optional
from uuid import UUID

from domain.lead import Lead, LeadSource
from domain.time import parse_utc_datetime, to_iso_utc
from repositories.client import Client

# Supabase table name for Lead records.
# Keep this aligned with your database schema.
_LEADS_TABLE: str = "leads"


def _optional_uuid(value: Any) -> Optional[UUID]:
    return UUID(str(value)) if value else None


def _lead_to_row(lead: Lead) -> dict[str, Any]:
    """Convert a domain Lead to a Supabase row payload."""

    return {
        # Core identifiers
        "lead_id": str(lead.lead_id),
        "created_at_utc": to_iso_utc(lead.created_at, name="created_at"),
        "source": lead.source.value,

        # Contact information
        "phone": lead.phone,
        "name": lead.name,
        "email": lead.email,
        "carrier": lead.carrier,
        "state": lead.state_code,

        # Classification
        "injury_type": lead.injury_type,
        "answers": dict(lead.answers),
        "score": lead.score,
        "tier": lead.tier,
        "estimate_low": lead.estimate_low,
        "estimate_high": lead.estimate_high,

        # Delivery state
        "delivered": lead.delivered,
        "client_id": str(lead.client_id) if lead.client_id else None,
        "disputed": lead.disputed,
        "replaced": lead.replaced,
        "replaces_lead_id": str(lead.replaces_lead_id) if lead.replaces_lead_id else None,
    }


def _row_to_lead(row: Mapping[str, Any]) -> Lead:
    """Convert a Supabase row into a domain Lead."""

    return Lead(
        lead_id=UUID(str(row["lead_id"])),
        phone=str(row["phone"]),
        source=LeadSource(str(row["source"])),
        score=int(row.get("score") or 0),
        tier=str(row["tier"]),
        estimate_low=int(row.get("estimate_low") or 0),
        estimate_high=int(row.get("estimate_high") or 0),
        created_at=parse_utc_datetime(row["created_at_utc"]),
        name=row.get("name") or None,
        email=row.get("email") or None,
        carrier=row.get("carrier") or None,
        state_code=row.get("state") or None,
        injury_type=row.get("injury_type") or None,
        answers=row.get("answers") or {},
        delivered=bool(row.get("delivered", False)),
        client_id=_optional_uuid(row.get("client_id")),
        disputed=bool(row.get("disputed", False)),
        replaced=bool(row.get("replaced", False)),
        replaces_lead_id=_optional_uuid(row.get("replaces_lead_id")),
    )


def insert_lead(db: Client, lead: Lead) -> None:
    """
    Insert a Lead into Supabase.

    Raises:
    - RuntimeError if Supabase returns an error response.
    - ValueError/TypeError for invalid domain values (e.g., timestamps).
    """

    payload = _lead_to_row(lead)
    response = db.table(_LEADS_TABLE).insert(payload).execute()
    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to insert lead: {error}")


def get_lead_by_id(db: Client, lead_id: UUID) -> Lead | None:
    """
    Fetch a Lead by ID.

    Returns:
    - Lead if found
    - None if no record exists for the given ID
    """

    response = (
        db.table(_LEADS_TABLE)
        .select("*")
        .eq("lead_id", str(lead_id))
        .limit(1)
        .execute()
    )
    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to fetch lead: {error}")

    rows = getattr(response, "data", None) or []
    if not rows:
        return None
    return _row_to_lead(rows[0])


def list_leads(
    db: Client,
    delivered: bool | None = None,
    created_since: datetime | None = None,
) -> List[Lead]:
    """
    List Leads with optional filtering.

    Args:
    - delivered: filter by the delivered flag (exact match)
    - created_since: only leads created strictly after this UTC timestamp
    """

    query = db.table(_LEADS_TABLE).select("*")
    if delivered is not None:
        query = query.eq("delivered", delivered)
    if created_since is not None:
        query = query.gt("created_at_utc", to_iso_utc(created_since, name="created_since"))

    response = query.order("created_at_utc", desc=True).execute()
    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to list leads: {error}")

    rows = getattr(response, "data", None) or []
    return [_row_to_lead(row) for row in rows]


def count_leads(
    db: Client,
    *,
    tier: str | None = None,
    delivered: bool | None = None,
    disputed: bool | None = None,
    created_since: datetime | None = None,
) -> int:
    """Count Leads matching every given filter (exact count from PostgREST)."""

    query = db.table(_LEADS_TABLE).select("lead_id", count="exact")
    if tier is not None:
        query = query.eq("tier", tier)
    if delivered is not None:
        query = query.eq("delivered", delivered)
    if disputed is not None:
        query = query.eq("disputed", disputed)
    if created_since is not None:
        query = query.gt("created_at_utc", to_iso_utc(created_since, name="created_since"))

    response = query.execute()
    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to count leads: {error}")

    return int(getattr(response, "count", None) or 0)


__all__ = [
    "insert_lead",
    "get_lead_by_id",
    "list_leads",
    "count_leads",
]
