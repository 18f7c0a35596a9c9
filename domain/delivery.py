"""
Domain: Delivery audit records.

Contract excerpts relevant here:
- A Lead is delivered to at most one buyer, exactly once.
- Delivery rows are append-only: one row per successful assignment, never
  mutated after creation. Disputes and replacements append new rows that
  reference the same lead.

Enforcement of at-most-once lives in the storage layer's atomic delivery
primitive; this module only describes the records.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import UUID

from .time import require_utc_timestamp


class DeliveryMethod(str, Enum):
    EMAIL = "email"
    SHEETS = "sheets"
    BOTH = "both"

    @property
    def uses_sheets(self) -> bool:
        return self in (DeliveryMethod.SHEETS, DeliveryMethod.BOTH)

    @property
    def uses_email(self) -> bool:
        return self in (DeliveryMethod.EMAIL, DeliveryMethod.BOTH)


class DeliveryStatus(str, Enum):
    DELIVERED = "delivered"
    DISPUTED = "disputed"
    REPLACED = "replaced"


@dataclass(frozen=True, slots=True)
class Delivery:
    """
    Immutable audit row for one delivery event of a lead.
    """

    delivery_id: UUID
    lead_id: UUID
    client_id: UUID
    method: DeliveryMethod
    delivered_at: datetime
    status: DeliveryStatus = DeliveryStatus.DELIVERED

    def __post_init__(self) -> None:
        require_utc_timestamp("delivered_at", self.delivered_at)
