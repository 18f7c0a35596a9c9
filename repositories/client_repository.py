"""
Client repository for managing buyer accounts.

Provides functions to query and create buyer accounts. Counters are never
written from Python; the delivery and replacement PostgreSQL functions
increment them in the same transaction as the ledger change.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional
from uuid import UUID, uuid4

from domain.client import Client
from domain.time import parse_utc_datetime
from repositories.client import Client as SupabaseClient

_CLIENTS_TABLE: str = "clients"


def _row_to_client(row: Mapping[str, Any]) -> Client:
    """Convert a Supabase row into a domain Client."""

    return Client(
        client_id=UUID(str(row["client_id"])),
        name=str(row.get("name") or ""),
        firm=str(row.get("firm") or ""),
        email=str(row["email"]),
        sheets_id=row.get("sheets_id") or None,
        balance=int(row.get("balance") or 0),
        leads_purchased=int(row.get("leads_purchased") or 0),
        leads_delivered=int(row.get("leads_delivered") or 0),
        leads_replaced=int(row.get("leads_replaced") or 0),
        created_at=parse_utc_datetime(row["created_at_utc"]) if row.get("created_at_utc") else None,
    )


def get_client_by_id(db: SupabaseClient, client_id: UUID) -> Optional[Client]:
    """
    Get a client by their ID.

    Args:
        client_id: UUID of the client

    Returns:
        Client domain model or None if not found
    """
    response = (
        db.table(_CLIENTS_TABLE)
        .select("*")
        .eq("client_id", str(client_id))
        .limit(1)
        .execute()
    )

    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to fetch client: {error}")

    rows = getattr(response, "data", None) or []

    if not rows:
        return None

    return _row_to_client(rows[0])


def get_client_by_email(db: SupabaseClient, email: str) -> Optional[Client]:
    """Get a client by their email address (exact match)."""
    response = (
        db.table(_CLIENTS_TABLE)
        .select("*")
        .eq("email", email)
        .limit(1)
        .execute()
    )

    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to fetch client: {error}")

    rows = getattr(response, "data", None) or []
    if not rows:
        return None
    return _row_to_client(rows[0])


def create_client(
    db: SupabaseClient,
    name: str,
    firm: str,
    email: str,
    sheets_id: Optional[str] = None,
    balance: int = 0,
) -> Client:
    """
    Create a new buyer account with zeroed counters.

    Returns:
        The created Client
    """
    client = Client(
        client_id=uuid4(),
        name=name,
        firm=firm,
        email=email,
        sheets_id=sheets_id,
        balance=balance,
        created_at=datetime.now(timezone.utc),
    )

    payload: dict[str, Any] = {
        "client_id": str(client.client_id),
        "name": client.name,
        "firm": client.firm,
        "email": client.email,
        "sheets_id": client.sheets_id,
        "balance": client.balance,
        "leads_purchased": 0,
        "leads_delivered": 0,
        "leads_replaced": 0,
        "created_at_utc": client.created_at.isoformat(),
    }

    response = db.table(_CLIENTS_TABLE).insert(payload).execute()
    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to create client: {error}")

    return client


def list_clients(db: SupabaseClient) -> List[Client]:
    response = db.table(_CLIENTS_TABLE).select("*").execute()
    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to list clients: {error}")

    rows = getattr(response, "data", None) or []
    return [_row_to_client(row) for row in rows]


__all__ = [
    "get_client_by_id",
    "get_client_by_email",
    "create_client",
    "list_clients",
]
