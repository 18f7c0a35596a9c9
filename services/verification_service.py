"""
Verification success path.

Ties the OTP verifier to scoring and lead creation:

1. Parse the submitted answers; unknown values are rejected before the
   code is touched
2. Verify and consume the code (services.otp_service.verify_code)
3. No answers: phone verified, no Lead
4. Disqualified quiz answers: code stays consumed, reason returned, no Lead
5. Score, tier and estimate; insert the Lead
6. Issue the session token

A Lead insert that fails after the code was consumed is not retried: the
response is a degraded success (lead_saved=False) and the failure is logged.
Re-running would need a fresh code.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Mapping, Optional
from uuid import UUID, uuid4

from domain.answers import Answers, answers_from_payload
from domain.lead import Lead, LeadSource
from domain.scoring import (
    DISQUALIFIER_MESSAGES,
    EstimateRange,
    KeyFactor,
    calculate_estimate,
    check_disqualifier,
    key_factors,
    score,
)
from domain.time import utc_now
from repositories.client import Client
from repositories.lead_repository import insert_lead
from services.errors import InvalidInputError
from services.otp_service import verify_code
from services.session_tokens import issue_lead_token
from services.settings import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LeadSubmission:
    """
    Answers and contact details sent along with the code.

    answers: raw funnel payload (camelCase keys, e.g. injuryType, lostWages)
    """
    source: LeadSource
    answers: Mapping[str, Any]
    name: Optional[str] = None
    email: Optional[str] = None


@dataclass(frozen=True, slots=True)
class VerificationOutcome:
    """
    Result of a successful verification.

    lead_saved: False when a Lead should have been created but the insert
        failed (degraded success); True otherwise when lead_id is set
    disqualification_reason: set when the quiz answers disqualified the
        submission; no Lead exists in that case
    """
    phone: str
    token: str
    lead_id: Optional[UUID] = None
    lead_saved: bool = False
    score: Optional[int] = None
    tier: Optional[str] = None
    estimate: Optional[EstimateRange] = None
    key_factors: List[KeyFactor] = field(default_factory=list)
    disqualification_reason: Optional[str] = None
    disqualification_message: Optional[str] = None


def _parse_answers(submission: LeadSubmission) -> Answers:
    try:
        return answers_from_payload(submission.source, submission.answers)
    except ValueError as e:
        raise InvalidInputError(str(e)) from e


def _clean(value: Optional[str]) -> Optional[str]:
    text = (value or "").strip()
    return text or None


def complete_verification(
    db: Client,
    settings: Settings,
    raw_destination: Optional[str],
    raw_code: Optional[str],
    submission: Optional[LeadSubmission] = None,
    *,
    now: datetime | None = None,
) -> VerificationOutcome:
    """
    Verify a code and, when answers were submitted, classify and save the Lead.

    Raises:
        InvalidInputError, ExpiredCodeError, TooManyAttemptsError, InvalidCodeError
        (all from the verifier, or invalid answers)
    """

    answers = _parse_answers(submission) if submission is not None else None

    now = now or utc_now()
    verified = verify_code(db, raw_destination, raw_code, now=now)
    phone = verified.destination

    if answers is None:
        logger.info("Phone verified without answers", extra={"channel": verified.channel})
        return VerificationOutcome(
            phone=phone,
            token=issue_lead_token(settings, phone, None, None, now),
        )

    reason = check_disqualifier(answers)
    if reason is not None:
        logger.warning(
            f"Submission disqualified: {reason.value}",
            extra={"source": submission.source.value, "reason": reason.value},
        )
        return VerificationOutcome(
            phone=phone,
            token=issue_lead_token(settings, phone, None, submission.source.value, now),
            disqualification_reason=reason.value,
            disqualification_message=DISQUALIFIER_MESSAGES[reason],
        )

    result = score(answers)
    estimate = calculate_estimate(answers)

    lead = Lead(
        lead_id=uuid4(),
        phone=phone,
        source=submission.source,
        score=result.score,
        tier=result.tier.value,
        estimate_low=estimate.low if estimate else 0,
        estimate_high=estimate.high if estimate else 0,
        created_at=now,
        name=_clean(submission.name),
        email=_clean(submission.email),
        carrier=verified.channel or None,
        state_code=getattr(answers, "state", None),
        injury_type=answers.injury_type.value if answers.injury_type else None,
        answers=dict(submission.answers),
    )

    lead_saved = True
    try:
        insert_lead(db, lead)
    except Exception:
        lead_saved = False
        logger.exception(
            "Lead insert failed after successful verification; code stays consumed",
            extra={"lead_id": str(lead.lead_id), "source": lead.source.value, "tier": lead.tier},
        )

    if lead_saved:
        logger.info(
            "Lead verified",
            extra={
                "lead_id": str(lead.lead_id),
                "source": lead.source.value,
                "score": lead.score,
                "tier": lead.tier,
            },
        )

    return VerificationOutcome(
        phone=phone,
        token=issue_lead_token(
            settings,
            phone,
            lead.lead_id if lead_saved else None,
            lead.source.value,
            now,
        ),
        lead_id=lead.lead_id if lead_saved else None,
        lead_saved=lead_saved,
        score=result.score,
        tier=result.tier.value,
        estimate=estimate,
        key_factors=key_factors(answers),
    )


__all__ = [
    "LeadSubmission",
    "VerificationOutcome",
    "complete_verification",
]
