"""
Delivery repository (persistence).

This module provides *only* read operations for Delivery audit rows.
Rows are append-only and are written exclusively by the PostgreSQL functions
that change a lead's delivery state: deliver_lead_atomic() appends the
`delivered` row, dispute_lead_atomic() / replace_lead_atomic() the later
`disputed` / `replaced` rows.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, Set
from uuid import UUID

from domain.delivery import DeliveryStatus
from repositories.client import Client

# Supabase table name for delivery audit rows.
_DELIVERIES_TABLE: str = "deliveries"


def recorded_statuses_by_lead(db: Client) -> Dict[UUID, Set[DeliveryStatus]]:
    """Which audit events (delivered / disputed / replaced) exist for each lead."""

    response = db.table(_DELIVERIES_TABLE).select("lead_id,status").execute()
    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to list deliveries: {error}")

    recorded: Dict[UUID, Set[DeliveryStatus]] = defaultdict(set)
    for row in getattr(response, "data", None) or []:
        recorded[UUID(str(row["lead_id"]))].add(DeliveryStatus(str(row["status"])))
    return dict(recorded)


__all__ = [
    "recorded_statuses_by_lead",
]
