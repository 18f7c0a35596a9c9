"""
Domain: quiz answer snapshots.

Two funnels collect classification inputs, and each has its own exhaustively
typed answer variant:

- WidgetAnswers (funnel A, the landing-page case estimator widget):
  injury type, surgery flag, lost wages.
- QuizAnswers (funnel B, the multi-step quiz): the full set of incident,
  treatment, work, insurance and attorney answers.

Both are frozen; an answer snapshot is consumed once by the Scoring Engine
and never mutated. `answers_from_payload` is the single place a loose request
payload is turned into one of the variants; unknown enum values are rejected
there instead of being silently skipped during scoring.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional, Union

from .lead import LeadSource


class InjuryType(str, Enum):
    SOFT_TISSUE = "soft_tissue"
    FRACTURE = "fracture"
    TBI = "tbi"
    SPINAL = "spinal"
    OTHER = "other"


class IncidentType(str, Enum):
    MOTOR_VEHICLE = "motor_vehicle"
    SLIP_FALL = "slip_fall"
    WORKPLACE = "workplace"
    MED_MAL = "med_mal"
    OTHER = "other"


class IncidentTimeframe(str, Enum):
    WITHIN_30_DAYS = "within_30_days"
    ONE_TO_SIX_MONTHS = "1_to_6_months"
    SIX_TO_TWELVE_MONTHS = "6_to_12_months"
    ONE_TO_THREE_YEARS = "1_to_3_years"
    OVER_THREE_YEARS = "over_3_years"


class FaultLevel(str, Enum):
    NOT_AT_FAULT = "not_at_fault"
    PARTIAL = "partial"
    FULLY_AT_FAULT = "fully_at_fault"


class InsuranceContact(str, Enum):
    NOT_YET = "not_yet"
    THEY_CONTACTED = "they_contacted"
    GOT_LETTER = "got_letter"
    YES_I_CONTACTED = "yes_i_contacted"


class AttorneyStatus(str, Enum):
    NO = "no"
    YES = "yes"


@dataclass(frozen=True, slots=True)
class WidgetAnswers:
    """Case estimator widget inputs (funnel A)."""

    injury_type: Optional[InjuryType]
    has_surgery: bool = False
    lost_wages: float = 0

    @property
    def source(self) -> LeadSource:
        return LeadSource.WIDGET


@dataclass(frozen=True, slots=True)
class QuizAnswers:
    """Full quiz inputs (funnel B). None means the question was skipped."""

    incident_type: Optional[IncidentType]
    injury_type: Optional[InjuryType]
    incident_timeframe: Optional[IncidentTimeframe]
    fault_level: Optional[FaultLevel]
    received_treatment: Optional[bool]
    hospitalized: Optional[bool]
    has_surgery: Optional[bool]
    still_in_treatment: Optional[bool]
    missed_work: Optional[bool]
    missed_work_days: Optional[int]
    lost_wages: float
    has_attorney: Optional[AttorneyStatus]
    insurance_contact: Optional[InsuranceContact]
    state: Optional[str] = None

    @property
    def source(self) -> LeadSource:
        return LeadSource.QUIZ


Answers = Union[WidgetAnswers, QuizAnswers]


def _enum_or_none(enum_cls, value: Any, field: str):
    if value is None or value == "":
        return None
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValueError(f"{field} must be one of: {allowed}") from None


def _bool_or_none(value: Any, field: str) -> Optional[bool]:
    if value is None:
        return None
    # Only JSON booleans; strings like "false" or "none" must not read as True.
    if not isinstance(value, bool):
        raise ValueError(f"{field} must be true or false")
    return value


def _number(value: Any, field: str) -> float:
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        raise ValueError(f"{field} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{field} must be a number") from None
    if not math.isfinite(number):
        raise ValueError(f"{field} must be a finite number")
    return number


def _text_or_none(value: Any, field: str) -> Optional[str]:
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ValueError(f"{field} must be text")
    return value


def answers_from_payload(source: LeadSource, payload: Mapping[str, Any]) -> Answers:
    """
    Build the answer variant for `source` from a request payload.

    Payload keys are the camelCase names the funnels post
    (injuryType, hasSurgery, lostWages, ...).

    Raises:
        ValueError: an enum field carries an unknown value, a yes/no field is
            not a boolean, or a numeric field is not a finite number.
    """

    injury_type = _enum_or_none(InjuryType, payload.get("injuryType"), "injuryType")
    lost_wages = _number(payload.get("lostWages"), "lostWages")

    if source is LeadSource.WIDGET:
        return WidgetAnswers(
            injury_type=injury_type,
            has_surgery=_bool_or_none(payload.get("hasSurgery"), "hasSurgery") is True,
            lost_wages=lost_wages,
        )

    missed_work_days = payload.get("missedWorkDays")
    if missed_work_days is not None:
        missed_work_days = int(_number(missed_work_days, "missedWorkDays"))

    return QuizAnswers(
        incident_type=_enum_or_none(IncidentType, payload.get("incidentType"), "incidentType"),
        injury_type=injury_type,
        incident_timeframe=_enum_or_none(
            IncidentTimeframe, payload.get("incidentTimeframe"), "incidentTimeframe"
        ),
        fault_level=_enum_or_none(FaultLevel, payload.get("faultLevel"), "faultLevel"),
        received_treatment=_bool_or_none(payload.get("receivedTreatment"), "receivedTreatment"),
        hospitalized=_bool_or_none(payload.get("hospitalized"), "hospitalized"),
        has_surgery=_bool_or_none(payload.get("hasSurgery"), "hasSurgery"),
        still_in_treatment=_bool_or_none(payload.get("stillInTreatment"), "stillInTreatment"),
        missed_work=_bool_or_none(payload.get("missedWork"), "missedWork"),
        missed_work_days=missed_work_days,
        lost_wages=lost_wages,
        has_attorney=_enum_or_none(AttorneyStatus, payload.get("hasAttorney"), "hasAttorney"),
        insurance_contact=_enum_or_none(
            InsuranceContact, payload.get("insuranceContact"), "insuranceContact"
        ),
        state=_text_or_none(payload.get("state"), "state"),
    )


__all__ = [
    "InjuryType",
    "IncidentType",
    "IncidentTimeframe",
    "FaultLevel",
    "InsuranceContact",
    "AttorneyStatus",
    "WidgetAnswers",
    "QuizAnswers",
    "Answers",
    "answers_from_payload",
]
