"""
Verification API Endpoints.

Endpoints for requesting and submitting one-time passcodes. A successful
submission with funnel answers scores the lead and saves it.
"""

from dataclasses import asdict
from uuid import UUID

from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder

from api.dependencies import get_code_sender, get_db, get_settings, require_lead_session
from api.models import (
    EstimateResponse,
    IssueCodeRequest,
    IssueCodeResponse,
    KeyFactorResponse,
    LeadProfileResponse,
    VerifyCodeRequest,
    VerifyCodeResponse,
)
from domain.lead import LeadSource, sanitize_lead_for_client
from repositories.client import Client
from repositories.lead_repository import get_lead_by_id
from services.code_delivery import CodeSender
from services.errors import LeadNotFoundError
from services.otp_service import issue_code
from services.settings import Settings
from services.verification_service import LeadSubmission, complete_verification

router = APIRouter()


@router.post(
    "/issue-code",
    response_model=IssueCodeResponse,
    summary="Send Verification Code",
    description="Send a one-time code to a phone number through its carrier's email-to-SMS gateway."
)
def issue_verification_code(
    request: IssueCodeRequest,
    db: Client = Depends(get_db),
    sender: CodeSender = Depends(get_code_sender),
):
    """
    Send a verification code.

    **Rules:**
    - The phone number must normalize to 10 digits
    - The channel must be a known carrier gateway, `MULTI_BLAST` or `SMS_BLAST`
    - At most 3 codes per phone number per hour (`429 rate_limited` with `Retry-After`)
    - A new code invalidates every earlier unused code for the number

    **Errors:** `400 invalid_input`, `429 rate_limited`, `500 send_failed`
    """
    issued = issue_code(db, sender, request.destination, request.channel, request.name)
    return IssueCodeResponse(ok=True, expires_at=issued.expires_at, message="Code sent")


@router.post(
    "/verify-code",
    response_model=VerifyCodeResponse,
    summary="Verify Code",
    description="Verify a code; with answers attached, score the lead and save it."
)
def verify_submitted_code(
    request: VerifyCodeRequest,
    db: Client = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """
    Verify a one-time code.

    **Outcomes:**
    - No `answers`: the phone is verified, no lead is created
    - Disqualified quiz answers: `disqualified=true` with the reason, no lead
    - Otherwise: score, tier and estimate are returned and the lead is saved.
      `lead_saved=false` means verification succeeded but saving failed;
      the code is consumed either way.

    **Errors:** `400 invalid_input|expired|invalid_code`, `429 too_many_attempts`
    """
    submission = None
    if request.answers is not None:
        submission = LeadSubmission(
            source=LeadSource(request.source or LeadSource.WIDGET.value),
            answers=request.answers,
            name=request.name,
            email=request.email,
        )

    outcome = complete_verification(db, settings, request.destination, request.code, submission)

    message = None
    if outcome.disqualification_reason:
        message = outcome.disqualification_message
    elif submission is not None and not outcome.lead_saved:
        message = "Your number is verified, but we couldn't save your case details."

    return VerifyCodeResponse(
        success=True,
        token=outcome.token,
        lead_id=outcome.lead_id,
        lead_saved=outcome.lead_saved,
        score=outcome.score,
        tier=outcome.tier,
        estimate=(
            EstimateResponse(low=outcome.estimate.low, high=outcome.estimate.high)
            if outcome.estimate else None
        ),
        key_factors=[KeyFactorResponse(label=f.label, points=f.points) for f in outcome.key_factors],
        disqualified=outcome.disqualification_reason is not None,
        disqualification_reason=outcome.disqualification_reason,
        message=message,
    )


@router.get(
    "/lead",
    response_model=LeadProfileResponse,
    summary="Get My Lead",
    description="Return the lead saved for the session token from /verify-code, without internal fields."
)
def get_my_lead(
    session: dict = Depends(require_lead_session),
    db: Client = Depends(get_db),
):
    """
    Return the caller's own lead.

    Score, tier, estimate and delivery state are never included.

    **Errors:** `401` without a valid lead token, `404 lead_not_found`
    """
    lead = None
    if session.get("lead_id"):
        lead = get_lead_by_id(db, UUID(session["lead_id"]))
    if lead is None or lead.phone != session.get("phone"):
        raise LeadNotFoundError()

    return LeadProfileResponse(**sanitize_lead_for_client(jsonable_encoder(asdict(lead))))
