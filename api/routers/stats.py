"""
Stats API Endpoints.

Read-only dashboard projections. Require a Bearer token with role=admin.
"""

from dataclasses import asdict

from fastapi import APIRouter, Depends

from api.dependencies import get_db, require_admin
from api.models import LeadStatsResponse, SmsStatsResponse
from repositories.client import Client
from services.stats_service import lead_stats, sms_stats

router = APIRouter(dependencies=[Depends(require_admin)])


@router.get(
    "/lead-stats",
    response_model=LeadStatsResponse,
    summary="Lead Pipeline Stats",
    description="Lead counts by tier and delivery state, recent volume, average score."
)
def get_lead_stats(db: Client = Depends(get_db)):
    return LeadStatsResponse(**asdict(lead_stats(db)))


@router.get(
    "/sms-stats",
    response_model=SmsStatsResponse,
    summary="Verification Code Stats",
    description="Code funnel counts, carrier breakdown and codes with many wrong guesses."
)
def get_sms_stats(db: Client = Depends(get_db)):
    return SmsStatsResponse(**asdict(sms_stats(db)))
