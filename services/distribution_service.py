"""
Distribution engine: assigns a verified lead to exactly one buyer.

Handles:
- At-most-once delivery through the deliver_lead_atomic() PostgreSQL function
- Buyer notification (email / Google Sheets) after a won claim
- Disputes and replacements as appended audit rows (dispute_lead_atomic(),
  replace_lead_atomic())
- Detection of ledger corruption (delivery flags without their Delivery rows)

deliver_lead_atomic() locks the lead row (FOR UPDATE), checks delivered,
sets delivered / client_id, increments the buyer's leads_delivered and
appends the Delivery row in one transaction. Two concurrent deliver() calls
for the same lead therefore produce exactly one success and one
already_delivered.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from postgrest.exceptions import APIError

from domain.client import Client as BuyerClient
from domain.delivery import Delivery, DeliveryMethod, DeliveryStatus
from domain.lead import IllegalLeadTransition, Lead, LeadState
from domain.time import to_iso_utc, utc_now
from repositories.client import Client
from repositories.client_repository import get_client_by_id
from repositories.delivery_repository import recorded_statuses_by_lead
from repositories.lead_repository import get_lead_by_id, list_leads
from services.errors import (
    AlreadyDeliveredError,
    ClientNotFoundError,
    IllegalTransitionError,
    InvalidInputError,
    LeadNotFoundError,
    LedgerCorruptionError,
    NoSheetsConfiguredError,
)
from services.lead_notifier import LeadNotifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DeliveryResult:
    """
    Result of a won delivery claim.

    errors: notification failures after the claim (the lead stays delivered)
    """
    delivery_id: UUID
    lead_id: UUID
    client_id: UUID
    method: DeliveryMethod
    delivered_at: datetime
    errors: List[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class AtomicDeliveryResult:
    """Result from deliver_lead_atomic PostgreSQL function."""
    success: bool
    delivery_id: Optional[UUID]
    error_code: Optional[str]
    error_message: Optional[str]


def _from_rpc_payload(payload: dict) -> AtomicDeliveryResult:
    if payload.get("success"):
        delivery_id = payload.get("delivery_id")
        return AtomicDeliveryResult(
            success=True,
            delivery_id=UUID(str(delivery_id)) if delivery_id else None,
            error_code=None,
            error_message=None,
        )
    return AtomicDeliveryResult(
        success=False,
        delivery_id=None,
        error_code=payload.get("error"),
        error_message=payload.get("message"),
    )


def _call_ledger_function(db: Client, name: str, params: dict) -> dict:
    """
    Run one of the ledger PostgreSQL functions and return its JSON result.

    Raises:
        RuntimeError: the RPC failed without a structured result
    """

    try:
        response = db.rpc(name, params).execute()
    except APIError as e:
        # supabase-py can surface a JSON function result as an APIError.
        try:
            error_data = e.json() if callable(getattr(e, "json", None)) else {}
        except ValueError:
            error_data = {}
        if isinstance(error_data, dict) and "success" in error_data:
            return error_data
        raise RuntimeError(f"{name} failed: {e}") from e

    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"{name} failed: {error}")

    data = getattr(response, "data", None)
    if isinstance(data, list):
        data = data[0] if data else None
    if not isinstance(data, dict):
        raise RuntimeError(f"{name} returned an unexpected payload: {data!r}")
    return data


def _execute_atomic_delivery(
    db: Client,
    lead_id: UUID,
    client_id: UUID,
    method: DeliveryMethod,
    delivered_at: datetime,
) -> AtomicDeliveryResult:
    """
    Claim a lead for a buyer via deliver_lead_atomic().

    Returns:
        AtomicDeliveryResult with success status and delivery_id or error code
    """

    payload = _call_ledger_function(
        db,
        "deliver_lead_atomic",
        {
            "p_lead_id": str(lead_id),
            "p_client_id": str(client_id),
            "p_method": method.value,
            "p_delivered_at": to_iso_utc(delivered_at, name="delivered_at"),
        },
    )
    return _from_rpc_payload(payload)


_CLAIM_ERRORS = {
    "already_delivered": AlreadyDeliveredError,
    "lead_not_found": LeadNotFoundError,
    "client_not_found": ClientNotFoundError,
}


def _parse_method(method: DeliveryMethod | str) -> DeliveryMethod:
    try:
        return DeliveryMethod(method)
    except ValueError:
        allowed = ", ".join(m.value for m in DeliveryMethod)
        raise InvalidInputError(f"method must be one of: {allowed}") from None


def _notify(notifier: LeadNotifier, client: BuyerClient, lead: Lead, method: DeliveryMethod) -> List[str]:
    errors: List[str] = []
    steps = []
    if method.uses_email:
        steps.append(("email", notifier.send_email))
    if method.uses_sheets:
        steps.append(("sheets", notifier.push_to_sheet))

    for label, step in steps:
        try:
            step(client, lead)
        except Exception as e:
            logger.warning(
                f"Lead {label} notification failed after delivery: {e}",
                extra={"lead_id": str(lead.lead_id), "client_id": str(client.client_id), "step": label},
            )
            errors.append(f"{label}: {e}")
    return errors


def deliver(
    db: Client,
    lead_id: UUID,
    client_id: UUID,
    method: DeliveryMethod | str,
    notifier: LeadNotifier,
    *,
    now: datetime | None = None,
) -> DeliveryResult:
    """
    Deliver a lead to a buyer, at most once.

    Process:
    1. Validate method, lead and client
    2. sheets / both require a spreadsheet on the buyer and a notifier that
       can write to it (no_sheets_configured)
    3. Claim atomically (already_delivered if another caller won)
    4. Notify the buyer; failures are reported in `errors`

    Raises:
        InvalidInputError, LeadNotFoundError, ClientNotFoundError,
        NoSheetsConfiguredError, AlreadyDeliveredError,
        LedgerCorruptionError (claim reported success without a Delivery row)

    Example:
        result = deliver(db, lead_id, client_id, "email", notifier)
        print(result.delivery_id)
    """

    delivery_method = _parse_method(method)

    lead = get_lead_by_id(db, lead_id)
    if lead is None:
        raise LeadNotFoundError(f"Lead not found: {lead_id}")
    if lead.delivered:
        raise AlreadyDeliveredError(f"Lead {lead_id} was already delivered")

    client = get_client_by_id(db, client_id)
    if client is None:
        raise ClientNotFoundError(f"Client not found: {client_id}")

    if delivery_method.uses_sheets:
        if not client.has_sheets():
            raise NoSheetsConfiguredError(f"Client {client_id} has no Google Sheet configured")
        if not notifier.supports_sheets:
            raise NoSheetsConfiguredError("Google Sheets delivery is not configured on this server")

    delivered_at = now or utc_now()
    claim = _execute_atomic_delivery(db, lead_id, client_id, delivery_method, delivered_at)

    if not claim.success:
        error_cls = _CLAIM_ERRORS.get(claim.error_code or "")
        if error_cls is None:
            raise RuntimeError(f"Atomic delivery failed: {claim.error_code}: {claim.error_message}")
        if error_cls is AlreadyDeliveredError:
            logger.warning(
                "Concurrent delivery lost the claim",
                extra={"lead_id": str(lead_id), "client_id": str(client_id)},
            )
        raise error_cls(claim.error_message or None)

    if claim.delivery_id is None:
        logger.critical(
            "Ledger corruption: lead claimed without a Delivery row",
            extra={"lead_id": str(lead_id), "client_id": str(client_id)},
        )
        raise LedgerCorruptionError(f"Lead {lead_id} marked delivered without a Delivery row")

    errors = _notify(notifier, client, lead.mark_delivered(client_id), delivery_method)

    logger.info(
        "Lead delivered",
        extra={
            "lead_id": str(lead_id),
            "client_id": str(client_id),
            "delivery_id": str(claim.delivery_id),
            "method": delivery_method.value,
            "notification_errors": len(errors),
        },
    )

    return DeliveryResult(
        delivery_id=claim.delivery_id,
        lead_id=lead_id,
        client_id=client_id,
        method=delivery_method,
        delivered_at=delivered_at,
        errors=errors,
    )


_TRANSITION_ERRORS = {
    "lead_not_found": LeadNotFoundError,
    "replacement_not_found": LeadNotFoundError,
    "illegal_transition": IllegalTransitionError,
}


def _ledger_row(payload: dict, lead_id: UUID, status: DeliveryStatus, at: datetime) -> Delivery:
    """Turn a dispute / replace function result into the appended Delivery."""

    if not payload.get("success"):
        error_code = payload.get("error") or ""
        message = payload.get("message") or None
        if error_code == "ledger_corruption":
            logger.critical(
                "Ledger corruption: delivered lead has no Delivery row",
                extra={"lead_id": str(lead_id)},
            )
            raise LedgerCorruptionError(f"Lead {lead_id} is delivered but has no Delivery row")
        error_cls = _TRANSITION_ERRORS.get(error_code)
        if error_cls is None:
            raise RuntimeError(f"Ledger update failed: {error_code}: {message}")
        raise error_cls(message)

    return Delivery(
        delivery_id=UUID(str(payload["delivery_id"])),
        lead_id=lead_id,
        client_id=UUID(str(payload["client_id"])),
        method=DeliveryMethod(str(payload["method"])),
        delivered_at=at,
        status=status,
    )


def _require_lead(db: Client, lead_id: UUID) -> Lead:
    lead = get_lead_by_id(db, lead_id)
    if lead is None:
        raise LeadNotFoundError(f"Lead not found: {lead_id}")
    return lead


def dispute(db: Client, lead_id: UUID, *, now: datetime | None = None) -> Delivery:
    """
    Mark a delivered lead as disputed by its buyer.

    DELIVERED -> DISPUTED; delivered and client_id are unchanged. The flag
    and the appended `disputed` Delivery row are written together by
    dispute_lead_atomic().

    Raises:
        LeadNotFoundError, IllegalTransitionError, LedgerCorruptionError
    """

    lead = _require_lead(db, lead_id)
    try:
        lead.mark_disputed()
    except IllegalLeadTransition as e:
        raise IllegalTransitionError(str(e)) from e

    disputed_at = now or utc_now()
    payload = _call_ledger_function(
        db,
        "dispute_lead_atomic",
        {"p_lead_id": str(lead_id), "p_disputed_at": to_iso_utc(disputed_at, name="disputed_at")},
    )
    disputed_row = _ledger_row(payload, lead_id, DeliveryStatus.DISPUTED, disputed_at)

    logger.info(
        "Lead disputed",
        extra={"lead_id": str(lead_id), "client_id": str(disputed_row.client_id)},
    )
    return disputed_row


def replace(
    db: Client,
    lead_id: UUID,
    replacement_lead_id: Optional[UUID] = None,
    *,
    now: datetime | None = None,
) -> Delivery:
    """
    Close a dispute by replacing the lead.

    DISPUTED -> REPLACED. replace_lead_atomic() sets the flag, appends the
    `replaced` Delivery row, increments the buyer's leads_replaced and links
    the replacement in one transaction. The replacement is a separate,
    still-pending Lead (delivered through deliver() like any other).

    Raises:
        LeadNotFoundError, IllegalTransitionError, InvalidInputError,
        LedgerCorruptionError
    """

    lead = _require_lead(db, lead_id)
    try:
        lead.mark_replaced()
    except IllegalLeadTransition as e:
        raise IllegalTransitionError(str(e)) from e

    if replacement_lead_id is not None:
        if replacement_lead_id == lead_id:
            raise InvalidInputError("A lead cannot replace itself")
        replacement = get_lead_by_id(db, replacement_lead_id)
        if replacement is None:
            raise LeadNotFoundError(f"Replacement lead not found: {replacement_lead_id}")
        if replacement.state is not LeadState.PENDING:
            raise IllegalTransitionError(f"Replacement lead {replacement_lead_id} is not pending")

    replaced_at = now or utc_now()
    payload = _call_ledger_function(
        db,
        "replace_lead_atomic",
        {
            "p_lead_id": str(lead_id),
            "p_replacement_lead_id": str(replacement_lead_id) if replacement_lead_id else None,
            "p_replaced_at": to_iso_utc(replaced_at, name="replaced_at"),
        },
    )
    replaced_row = _ledger_row(payload, lead_id, DeliveryStatus.REPLACED, replaced_at)

    logger.info(
        "Lead replaced",
        extra={
            "lead_id": str(lead_id),
            "client_id": str(replaced_row.client_id),
            "replacement_lead_id": str(replacement_lead_id) if replacement_lead_id else None,
        },
    )
    return replaced_row


def _expected_statuses(lead: Lead) -> List[DeliveryStatus]:
    expected = [DeliveryStatus.DELIVERED]
    if lead.disputed:
        expected.append(DeliveryStatus.DISPUTED)
    if lead.replaced:
        expected.append(DeliveryStatus.REPLACED)
    return expected


def find_ledger_inconsistencies(db: Client) -> List[Lead]:
    """
    Delivered leads whose flags are not backed by Delivery rows.

    Every delivered lead needs a `delivered` row; a disputed lead also a
    `disputed` row and a replaced lead a `replaced` row. Each inconsistent
    lead is logged at CRITICAL; reconciliation is a manual step.
    """

    recorded = recorded_statuses_by_lead(db)
    corrupted: List[Lead] = []

    for lead in list_leads(db, delivered=True):
        present = recorded.get(lead.lead_id, set())
        missing = [status.value for status in _expected_statuses(lead) if status not in present]
        if not missing:
            continue
        logger.critical(
            f"Ledger corruption: lead is missing its {', '.join(missing)} Delivery row",
            extra={"lead_id": str(lead.lead_id), "client_id": str(lead.client_id), "missing": missing},
        )
        corrupted.append(lead)

    return corrupted


__all__ = [
    "DeliveryResult",
    "AtomicDeliveryResult",
    "deliver",
    "dispute",
    "replace",
    "find_ledger_inconsistencies",
]
