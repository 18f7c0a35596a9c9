"""
Distribution API Endpoints.

Admin endpoints for delivering leads to buyers and handling disputes.
All require a Bearer token with role=admin.
"""

from uuid import UUID

from fastapi import APIRouter, Depends

from api.dependencies import get_db, get_lead_notifier, require_admin
from api.models import DeliverRequest, DeliverResponse, DeliveryEventResponse, ReplaceRequest
from domain.delivery import Delivery
from repositories.client import Client
from services.distribution_service import deliver, dispute, replace
from services.lead_notifier import LeadNotifier

router = APIRouter(dependencies=[Depends(require_admin)])


def _event_response(event: Delivery) -> DeliveryEventResponse:
    return DeliveryEventResponse(
        delivery_id=event.delivery_id,
        lead_id=event.lead_id,
        client_id=event.client_id,
        method=event.method.value,
        status=event.status.value,
        recorded_at=event.delivered_at,
    )


@router.post(
    "/deliver",
    response_model=DeliverResponse,
    summary="Deliver Lead",
    description="Assign a verified lead to exactly one buyer and notify them."
)
def deliver_lead(
    request: DeliverRequest,
    db: Client = Depends(get_db),
    notifier: LeadNotifier = Depends(get_lead_notifier),
):
    """
    Deliver a lead to a buyer.

    **At-most-once:** the claim is a single database transaction. When two
    deliveries race for the same lead, one succeeds and the other gets
    `409 already_delivered`.

    **Methods:** `email`, `sheets`, `both`. `sheets` and `both` require the
    buyer to have a Google Sheet configured (`400 no_sheets_configured`).

    Notification failures after a successful claim are listed in `errors`;
    the lead stays delivered.

    **Errors:** `404 lead_not_found|client_not_found`, `409 already_delivered`,
    `400 no_sheets_configured|invalid_input`
    """
    result = deliver(db, request.lead_id, request.client_id, request.method, notifier)
    return DeliverResponse(
        success=True,
        delivery_id=result.delivery_id,
        lead_id=result.lead_id,
        client_id=result.client_id,
        method=result.method.value,
        delivered_at=result.delivered_at,
        errors=result.errors,
    )


@router.post(
    "/leads/{lead_id}/dispute",
    response_model=DeliveryEventResponse,
    summary="Dispute Lead",
    description="Mark a delivered lead as disputed by its buyer."
)
def dispute_lead(lead_id: UUID, db: Client = Depends(get_db)):
    """
    **Errors:** `404 lead_not_found`, `409 illegal_transition` (lead not delivered,
    or already disputed)
    """
    return _event_response(dispute(db, lead_id))


@router.post(
    "/leads/{lead_id}/replace",
    response_model=DeliveryEventResponse,
    summary="Replace Lead",
    description="Close a dispute by replacing the lead; increments the buyer's replaced count."
)
def replace_lead(lead_id: UUID, request: ReplaceRequest, db: Client = Depends(get_db)):
    """
    **Errors:** `404 lead_not_found`, `409 illegal_transition` (lead not disputed,
    or replacement lead not pending)
    """
    return _event_response(replace(db, lead_id, request.replacement_lead_id))
