"""
Read-only projections over the lead ledger and the code store.

Nothing here writes; the numbers are point-in-time counts for the admin
dashboard.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional
from uuid import UUID

from domain.channel import carrier_label
from domain.scoring import Tier
from domain.time import utc_now
from repositories.client import Client
from repositories.lead_repository import count_leads, list_leads
from repositories.verification_code_repository import count_codes, list_high_attempt_codes

RECENT_WINDOW = timedelta(days=7)
HIGH_ATTEMPTS_THRESHOLD = 2
HIGH_ATTEMPTS_LIMIT = 20


@dataclass(frozen=True, slots=True)
class LeadStats:
    """
    total / verified: every Lead is created by a successful verification,
        so the two are equal; both are kept for the dashboard cards
    recent_7d: leads created in the last 7 days
    """
    total: int
    verified: int
    hot: int
    warm: int
    cold: int
    delivered: int
    disputed: int
    recent_7d: int
    avg_score: int
    sms_sent: int
    sms_used: int


@dataclass(frozen=True, slots=True)
class CarrierCount:
    gateway: str
    label: str
    count: int


@dataclass(frozen=True, slots=True)
class HighAttemptCode:
    code_id: UUID
    phone: str
    channel: str
    attempts: int
    used: bool
    created_at: datetime


@dataclass(frozen=True, slots=True)
class SmsStats:
    total: int
    verified: int
    expired: int
    pending: int
    conversion_rate: int  # percent, rounded
    carrier_breakdown: List[CarrierCount]
    recent_failed: List[HighAttemptCode]


def _percent(part: int, whole: int) -> int:
    return round(part / whole * 100) if whole > 0 else 0


def lead_stats(db: Client, now: Optional[datetime] = None) -> LeadStats:
    now = now or utc_now()

    total = count_leads(db)
    scores = [lead.score for lead in list_leads(db)]
    avg_score = round(sum(scores) / len(scores)) if scores else 0

    return LeadStats(
        total=total,
        verified=total,
        hot=count_leads(db, tier=Tier.HOT.value),
        warm=count_leads(db, tier=Tier.WARM.value),
        cold=count_leads(db, tier=Tier.COLD.value),
        delivered=count_leads(db, delivered=True),
        disputed=count_leads(db, disputed=True),
        recent_7d=count_leads(db, created_since=now - RECENT_WINDOW),
        avg_score=avg_score,
        sms_sent=count_codes(db),
        sms_used=count_codes(db, used=True),
    )


def sms_stats(db: Client, now: Optional[datetime] = None) -> SmsStats:
    """
    Code funnel numbers.

    verified counts used codes, which includes codes invalidated by a resend.
    pending = total - verified - expired (unused codes still inside their TTL).
    """

    now = now or utc_now()

    total = count_codes(db)
    verified = count_codes(db, used=True)
    expired = count_codes(db, used=False, expired_as_of=now)

    carriers = Counter(lead.carrier for lead in list_leads(db) if lead.carrier)
    breakdown = [
        CarrierCount(gateway=gateway, label=carrier_label(gateway), count=count)
        for gateway, count in carriers.most_common()
    ]

    recent_failed = [
        HighAttemptCode(
            code_id=code.code_id,
            phone=code.destination,
            channel=code.channel,
            attempts=code.attempts,
            used=code.used,
            created_at=code.created_at,
        )
        for code in list_high_attempt_codes(db, HIGH_ATTEMPTS_THRESHOLD, HIGH_ATTEMPTS_LIMIT)
    ]

    return SmsStats(
        total=total,
        verified=verified,
        expired=expired,
        pending=total - verified - expired,
        conversion_rate=_percent(verified, total),
        carrier_breakdown=breakdown,
        recent_failed=recent_failed,
    )


__all__ = [
    "LeadStats",
    "SmsStats",
    "CarrierCount",
    "HighAttemptCode",
    "lead_stats",
    "sms_stats",
]
