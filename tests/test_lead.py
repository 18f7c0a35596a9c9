"""
Tests for `domain/lead.py`.

Covers contract rules:
- created_at is required and must be a UTC timestamp.
- Delivery state only moves PENDING -> DELIVERED -> DISPUTED -> REPLACED.
- delivered implies client_id; disputes and replacements never reset delivered.
- Internal fields never reach an end-user payload.
"""

from __future__ import annotations

from dataclasses import FrozenInstanceError
from datetime import datetime, timedelta, timezone
from uuid import UUID

import pytest

from domain.lead import (
    INTERNAL_FIELDS,
    IllegalLeadTransition,
    Lead,
    LeadSource,
    LeadState,
    sanitize_lead_for_client,
)

LEAD_ID = UUID("00000000-0000-0000-0000-000000000001")
CLIENT_ID = UUID("00000000-0000-0000-0000-0000000000c1")
T0 = datetime(2025, 1, 1, 0, 0, 0, tzinfo=timezone.utc)


def _lead(**overrides) -> Lead:
    fields = dict(
        lead_id=LEAD_ID,
        phone="5551234567",
        source=LeadSource.WIDGET,
        score=90,
        tier="HOT",
        estimate_low=250_000,
        estimate_high=1_000_000,
        created_at=T0,
    )
    fields.update(overrides)
    return Lead(**fields)


def test_lead_created_at_required() -> None:
    """Verify created_at is required at instantiation."""

    with pytest.raises(TypeError):
        Lead(  # type: ignore[call-arg]
            lead_id=LEAD_ID,
            phone="5551234567",
            source=LeadSource.WIDGET,
            score=10,
            tier="COLD",
            estimate_low=8_000,
            estimate_high=25_000,
        )


def test_lead_created_at_must_be_utc() -> None:
    """Verify created_at must be timezone-aware UTC (offset 0)."""

    with pytest.raises(ValueError):
        _lead(created_at=datetime(2025, 1, 1, 0, 0, 0))

    with pytest.raises(ValueError):
        _lead(created_at=datetime(2025, 1, 1, 0, 0, 0, tzinfo=timezone(timedelta(hours=-5))))


def test_new_lead_is_pending() -> None:
    lead = _lead()

    assert lead.state is LeadState.PENDING
    assert not lead.delivered
    assert lead.client_id is None


def test_full_lifecycle() -> None:
    """Verify the legal path and that each transition returns a new instance."""

    pending = _lead()
    delivered = pending.mark_delivered(CLIENT_ID)
    disputed = delivered.mark_disputed()
    replaced = disputed.mark_replaced()

    assert pending.state is LeadState.PENDING
    assert delivered.state is LeadState.DELIVERED
    assert delivered.client_id == CLIENT_ID
    assert disputed.state is LeadState.DISPUTED
    assert replaced.state is LeadState.REPLACED

    # Disputes and replacements never undo the delivery.
    assert disputed.delivered and replaced.delivered
    assert replaced.client_id == CLIENT_ID


def test_delivered_lead_cannot_be_delivered_again() -> None:
    delivered = _lead().mark_delivered(CLIENT_ID)

    with pytest.raises(IllegalLeadTransition) as exc_info:
        delivered.mark_delivered(UUID("00000000-0000-0000-0000-0000000000c2"))

    assert exc_info.value.current is LeadState.DELIVERED
    assert exc_info.value.lead_id == LEAD_ID


@pytest.mark.parametrize(
    "transition",
    [
        lambda lead: lead.mark_disputed(),
        lambda lead: lead.mark_replaced(),
    ],
)
def test_pending_lead_cannot_skip_delivery(transition) -> None:
    with pytest.raises(IllegalLeadTransition):
        transition(_lead())


def test_replace_requires_dispute() -> None:
    delivered = _lead().mark_delivered(CLIENT_ID)

    with pytest.raises(IllegalLeadTransition):
        delivered.mark_replaced()

    with pytest.raises(IllegalLeadTransition):
        delivered.mark_disputed().mark_replaced().mark_replaced()


def test_inconsistent_flags_are_rejected() -> None:
    """Verify flag combinations outside the state machine cannot be constructed."""

    with pytest.raises(ValueError):
        _lead(delivered=True)

    with pytest.raises(ValueError):
        _lead(disputed=True)

    with pytest.raises(ValueError):
        _lead(delivered=True, client_id=CLIENT_ID, replaced=True)


def test_lead_is_immutable() -> None:
    lead = _lead()

    with pytest.raises(FrozenInstanceError):
        lead.score = 1  # type: ignore[misc]


def test_sanitize_strips_internal_fields() -> None:
    """Verify scoring and distribution fields are removed, contact fields kept."""

    serialized = {
        "lead_id": str(LEAD_ID),
        "phone": "5551234567",
        "name": "Dana",
        "score": 90,
        "tier": "HOT",
        "estimate_low": 1,
        "estimate_high": 2,
        "delivered": True,
        "client_id": str(CLIENT_ID),
        "disputed": False,
        "replaced": False,
        "replaces_lead_id": None,
    }

    sanitized = sanitize_lead_for_client(serialized)

    assert sanitized == {"lead_id": str(LEAD_ID), "phone": "5551234567", "name": "Dana"}
    assert not INTERNAL_FIELDS & sanitized.keys()
    # The input mapping is left untouched.
    assert serialized["score"] == 90
