"""
Domain: lead scoring, tiering and case value estimate.

Pure functions only: identical answers always yield identical
(score, tier, estimate). The Scoring Engine runs synchronously inside the
verification success path.

Scoring is additive over independent factors, each a fixed lookup or
threshold rule:

    injury type          soft_tissue/other 10, fracture 25, tbi 45, spinal 50
    surgery              +40
    hospitalized         +20
    still in treatment   +10
    missed work          +10, plus the higher applicable days bonus
                         (> 30 days: +15, > 7 days: +10)
    lost wages           >= 50k: +25, >= 25k: +20, >= 10k: +15,
                         >= 1k: +10, > 0: +5
    insurance contact    not_yet +10, they_contacted/got_letter +7,
                         yes_i_contacted +5
    fault level          not_at_fault +5, partial +2
    incident recency     within_30_days +10, 1_to_6_months +4,
                         6_to_12_months +2, 1_to_3_years 0

Tiers (inclusive lower bounds): HOT >= 85, WARM >= 45, COLD otherwise.

Estimate:
    low  = round(base_low  * surgery_multiplier) + wages
    high = round(base_high * surgery_multiplier) + wages
with surgery_multiplier = 5 when surgery is reported, and wages the lost
wages rounded and clamped at 0. Surgery multiplies the base range only;
lost wages are added afterwards, unmultiplied.

Quiz answers are checked for disqualifiers before scoring. A disqualified
submission is never scored and never becomes a Lead.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

from .answers import (
    Answers,
    AttorneyStatus,
    FaultLevel,
    IncidentTimeframe,
    InjuryType,
    InsuranceContact,
    WidgetAnswers,
)


class Tier(str, Enum):
    HOT = "HOT"
    WARM = "WARM"
    COLD = "COLD"


class DisqualificationReason(str, Enum):
    HAS_ATTORNEY = "has_attorney"
    FULLY_AT_FAULT = "fully_at_fault"
    OVER_3_YEARS = "over_3_years"
    NO_TREATMENT = "no_treatment"


HOT_THRESHOLD = 85
WARM_THRESHOLD = 45

SURGERY_MULTIPLIER = 5

INJURY_POINTS: Dict[InjuryType, int] = {
    InjuryType.SOFT_TISSUE: 10,
    InjuryType.OTHER: 10,
    InjuryType.FRACTURE: 25,
    InjuryType.TBI: 45,
    InjuryType.SPINAL: 50,
}

SURGERY_POINTS = 40
HOSPITALIZED_POINTS = 20
STILL_IN_TREATMENT_POINTS = 10
MISSED_WORK_POINTS = 10

# (exclusive lower bound in days, bonus); first match wins.
MISSED_DAYS_BONUS: Tuple[Tuple[int, int], ...] = ((30, 15), (7, 10))

# (inclusive lower bound in dollars, bonus); first match wins.
LOST_WAGES_BANDS: Tuple[Tuple[float, int], ...] = (
    (50_000, 25),
    (25_000, 20),
    (10_000, 15),
    (1_000, 10),
)
ANY_LOST_WAGES_POINTS = 5

INSURANCE_POINTS: Dict[InsuranceContact, int] = {
    InsuranceContact.NOT_YET: 10,
    InsuranceContact.THEY_CONTACTED: 7,
    InsuranceContact.GOT_LETTER: 7,
    InsuranceContact.YES_I_CONTACTED: 5,
}

FAULT_POINTS: Dict[FaultLevel, int] = {
    FaultLevel.NOT_AT_FAULT: 5,
    FaultLevel.PARTIAL: 2,
    FaultLevel.FULLY_AT_FAULT: 0,
}

RECENCY_POINTS: Dict[IncidentTimeframe, int] = {
    IncidentTimeframe.WITHIN_30_DAYS: 10,
    IncidentTimeframe.ONE_TO_SIX_MONTHS: 4,
    IncidentTimeframe.SIX_TO_TWELVE_MONTHS: 2,
    IncidentTimeframe.ONE_TO_THREE_YEARS: 0,
    IncidentTimeframe.OVER_THREE_YEARS: 0,
}


@dataclass(frozen=True, slots=True)
class InjuryBaseRange:
    low: int
    high: int
    label: str


# Floor/ceiling estimates per injury category, before surgery or wages.
INJURY_BASE_VALUES: Dict[InjuryType, InjuryBaseRange] = {
    InjuryType.SOFT_TISSUE: InjuryBaseRange(8_000, 25_000, "soft tissue (sprains & whiplash)"),
    InjuryType.FRACTURE: InjuryBaseRange(20_000, 75_000, "broken bone / fracture"),
    InjuryType.SPINAL: InjuryBaseRange(50_000, 200_000, "spinal cord injury"),
    InjuryType.TBI: InjuryBaseRange(75_000, 500_000, "head injury / concussion / TBI"),
}


@dataclass(frozen=True, slots=True)
class EstimateRange:
    low: int
    high: int


@dataclass(frozen=True, slots=True)
class ScoreResult:
    score: int
    tier: Tier


@dataclass(frozen=True, slots=True)
class KeyFactor:
    label: str
    points: int


def score_tier(score: int) -> Tier:
    if score >= HOT_THRESHOLD:
        return Tier.HOT
    if score >= WARM_THRESHOLD:
        return Tier.WARM
    return Tier.COLD


def check_disqualifier(answers: Answers) -> Optional[DisqualificationReason]:
    """
    Return the first disqualification reason that applies, or None.

    Precedence: has_attorney, fully_at_fault, over_3_years, no_treatment.
    Widget answers carry none of these questions and are never disqualified.
    """

    if isinstance(answers, WidgetAnswers):
        return None
    if answers.has_attorney is AttorneyStatus.YES:
        return DisqualificationReason.HAS_ATTORNEY
    if answers.fault_level is FaultLevel.FULLY_AT_FAULT:
        return DisqualificationReason.FULLY_AT_FAULT
    if answers.incident_timeframe is IncidentTimeframe.OVER_THREE_YEARS:
        return DisqualificationReason.OVER_3_YEARS
    if answers.received_treatment is False:
        return DisqualificationReason.NO_TREATMENT
    return None


def _clamped_wages(lost_wages: float) -> int:
    return max(0, round(lost_wages or 0))


def _wage_points(lost_wages: float) -> int:
    wages = _clamped_wages(lost_wages)
    for floor, points in LOST_WAGES_BANDS:
        if wages >= floor:
            return points
    return ANY_LOST_WAGES_POINTS if wages > 0 else 0


def _missed_days_bonus(days: Optional[int]) -> int:
    if days is None:
        return 0
    for floor, points in MISSED_DAYS_BONUS:
        if days > floor:
            return points
    return 0


def _factors(answers: Answers) -> List[KeyFactor]:
    factors: List[KeyFactor] = []

    if answers.injury_type is not None:
        factors.append(KeyFactor(f"Injury: {answers.injury_type.value}", INJURY_POINTS[answers.injury_type]))
    if answers.has_surgery:
        factors.append(KeyFactor("Surgery documented", SURGERY_POINTS))

    wage_points = _wage_points(answers.lost_wages)
    if wage_points:
        factors.append(KeyFactor("Lost wages", wage_points))

    if isinstance(answers, WidgetAnswers):
        return factors

    if answers.hospitalized:
        factors.append(KeyFactor("Hospitalization documented", HOSPITALIZED_POINTS))
    if answers.still_in_treatment:
        factors.append(KeyFactor("Ongoing treatment", STILL_IN_TREATMENT_POINTS))
    if answers.missed_work:
        factors.append(KeyFactor("Missed work documented", MISSED_WORK_POINTS))
        bonus = _missed_days_bonus(answers.missed_work_days)
        if bonus:
            factors.append(KeyFactor(f"{answers.missed_work_days} days of work missed", bonus))
    if answers.insurance_contact is not None and INSURANCE_POINTS[answers.insurance_contact]:
        factors.append(KeyFactor("Insurance contact", INSURANCE_POINTS[answers.insurance_contact]))
    if answers.fault_level is not None and FAULT_POINTS[answers.fault_level]:
        factors.append(KeyFactor("Fault level", FAULT_POINTS[answers.fault_level]))
    if answers.incident_timeframe is not None and RECENCY_POINTS[answers.incident_timeframe]:
        factors.append(KeyFactor("Recent incident", RECENCY_POINTS[answers.incident_timeframe]))

    return factors


def key_factors(answers: Answers) -> List[KeyFactor]:
    """Scoring factors that contributed points, in a stable order."""

    return _factors(answers)


def calculate_score(answers: Answers) -> int:
    return sum(factor.points for factor in _factors(answers))


def score(answers: Answers) -> ScoreResult:
    points = calculate_score(answers)
    return ScoreResult(score=points, tier=score_tier(points))


def calculate_estimate(answers: Answers) -> Optional[EstimateRange]:
    """
    Case value range, or None when no injury type was given.

    "other" injuries are valued conservatively as soft tissue.
    """

    if answers.injury_type is None:
        return None

    injury = answers.injury_type
    if injury is InjuryType.OTHER:
        injury = InjuryType.SOFT_TISSUE

    base = INJURY_BASE_VALUES[injury]
    multiplier = SURGERY_MULTIPLIER if answers.has_surgery else 1
    wages = _clamped_wages(answers.lost_wages)

    return EstimateRange(
        low=round(base.low * multiplier) + wages,
        high=round(base.high * multiplier) + wages,
    )


DISQUALIFIER_MESSAGES: Dict[DisqualificationReason, str] = {
    DisqualificationReason.HAS_ATTORNEY: (
        "You already have an attorney working on this case, so we can't match you with another firm."
    ),
    DisqualificationReason.FULLY_AT_FAULT: (
        "Cases where you were fully at fault are very difficult to settle."
    ),
    DisqualificationReason.OVER_3_YEARS: (
        "This incident may be past the statute of limitations in most states."
    ),
    DisqualificationReason.NO_TREATMENT: (
        "Without medical treatment on record there is usually no claim to pursue."
    ),
}


__all__ = [
    "Tier",
    "DisqualificationReason",
    "EstimateRange",
    "ScoreResult",
    "KeyFactor",
    "INJURY_BASE_VALUES",
    "SURGERY_MULTIPLIER",
    "HOT_THRESHOLD",
    "WARM_THRESHOLD",
    "DISQUALIFIER_MESSAGES",
    "score_tier",
    "check_disqualifier",
    "calculate_score",
    "score",
    "calculate_estimate",
    "key_factors",
]
