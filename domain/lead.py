"""
Domain: Lead entity.

Contract excerpts implemented here:
- A Lead is the durable record of a verified prospect, created exactly once by
  the verification-success path and never deleted.
- Classification (score, tier, estimate) is computed at creation and does not
  change afterwards.
- Delivery state is an explicit state machine:

      PENDING --deliver--> DELIVERED --dispute--> DISPUTED --replace--> REPLACED

  Any other transition is illegal and raises IllegalLeadTransition.
- delivered implies client_id is set. Disputes and replacements never reset
  delivered; a replacement lead is a new Lead, never a mutation of this one.

Storage keeps the flat `delivered` / `disputed` / `replaced` flags; `state`
derives the explicit state from them.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional
from uuid import UUID

from .time import require_utc_timestamp


class LeadSource(str, Enum):
    WIDGET = "widget"
    QUIZ = "quiz"


class LeadState(str, Enum):
    PENDING = "pending"
    DELIVERED = "delivered"
    DISPUTED = "disputed"
    REPLACED = "replaced"


class IllegalLeadTransition(ValueError):
    """Raised when a state transition is not allowed from the lead's current state."""

    def __init__(self, lead_id: UUID, current: LeadState, attempted: str) -> None:
        self.lead_id = lead_id
        self.current = current
        self.attempted = attempted
        super().__init__(f"Lead {lead_id} cannot {attempted} from state {current.value}")


@dataclass(frozen=True, slots=True)
class Lead:
    """
    Pure domain entity for a verified Lead.

    Transitions return new instances; the original is left unchanged.
    """

    lead_id: UUID
    phone: str
    source: LeadSource
    score: int
    tier: str
    estimate_low: int
    estimate_high: int
    created_at: datetime

    name: Optional[str] = None
    email: Optional[str] = None
    carrier: Optional[str] = None
    state_code: Optional[str] = None
    injury_type: Optional[str] = None

    # Raw answer fields the score was computed from.
    answers: Mapping[str, Any] = field(default_factory=dict)

    delivered: bool = False
    client_id: Optional[UUID] = None
    disputed: bool = False
    replaced: bool = False
    replaces_lead_id: Optional[UUID] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("created_at", self.created_at)
        if self.delivered and self.client_id is None:
            raise ValueError("a delivered lead must have a client_id")
        if (self.disputed or self.replaced) and not self.delivered:
            raise ValueError("only a delivered lead can be disputed or replaced")
        if self.replaced and not self.disputed:
            raise ValueError("only a disputed lead can be replaced")

    @property
    def state(self) -> LeadState:
        if self.replaced:
            return LeadState.REPLACED
        if self.disputed:
            return LeadState.DISPUTED
        if self.delivered:
            return LeadState.DELIVERED
        return LeadState.PENDING

    def mark_delivered(self, client_id: UUID) -> "Lead":
        if self.state is not LeadState.PENDING:
            raise IllegalLeadTransition(self.lead_id, self.state, "be delivered")
        return replace(self, delivered=True, client_id=client_id)

    def mark_disputed(self) -> "Lead":
        if self.state is not LeadState.DELIVERED:
            raise IllegalLeadTransition(self.lead_id, self.state, "be disputed")
        return replace(self, disputed=True)

    def mark_replaced(self) -> "Lead":
        if self.state is not LeadState.DISPUTED:
            raise IllegalLeadTransition(self.lead_id, self.state, "be replaced")
        return replace(self, replaced=True)


# Fields that never leave the server in an end-user facing response.
INTERNAL_FIELDS = frozenset({
    "score",
    "tier",
    "client_id",
    "delivered",
    "disputed",
    "replaced",
    "replaces_lead_id",
    "estimate_low",
    "estimate_high",
})


def sanitize_lead_for_client(lead: Mapping[str, Any]) -> dict[str, Any]:
    """Copy of a serialized lead with internal scoring and distribution fields removed."""

    return {key: value for key, value in lead.items() if key not in INTERNAL_FIELDS}
