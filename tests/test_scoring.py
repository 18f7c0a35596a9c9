"""
Tests for `domain/scoring.py` and `domain/answers.py`.

Covers contract rules:
- Tier boundaries are inclusive: 85 HOT, 84 WARM, 45 WARM, 44 COLD.
- Scoring is additive over the factor table and deterministic.
- Missed-work day bonuses are alternatives (higher tier only).
- Surgery multiplies the base estimate range by 5; lost wages are added to
  both ends afterwards, unmultiplied; negative wages clamp to 0.
- Disqualifiers short-circuit in a fixed order.
"""

from __future__ import annotations

import pytest

from domain.answers import (
    AttorneyStatus,
    FaultLevel,
    IncidentTimeframe,
    IncidentType,
    InjuryType,
    InsuranceContact,
    QuizAnswers,
    WidgetAnswers,
    answers_from_payload,
)
from domain.lead import LeadSource
from domain.scoring import (
    DisqualificationReason,
    EstimateRange,
    Tier,
    calculate_estimate,
    calculate_score,
    check_disqualifier,
    key_factors,
    score,
    score_tier,
)


def quiz(**overrides) -> QuizAnswers:
    """Baseline quiz: soft tissue, not at fault, insurer not contacted, 1-6 months (29 points)."""

    fields = dict(
        incident_type=IncidentType.MOTOR_VEHICLE,
        injury_type=InjuryType.SOFT_TISSUE,
        incident_timeframe=IncidentTimeframe.ONE_TO_SIX_MONTHS,
        fault_level=FaultLevel.NOT_AT_FAULT,
        received_treatment=True,
        hospitalized=False,
        has_surgery=False,
        still_in_treatment=False,
        missed_work=False,
        missed_work_days=None,
        lost_wages=0,
        has_attorney=AttorneyStatus.NO,
        insurance_contact=InsuranceContact.NOT_YET,
    )
    fields.update(overrides)
    return QuizAnswers(**fields)


@pytest.mark.parametrize(
    "points, tier",
    [(150, Tier.HOT), (85, Tier.HOT), (84, Tier.WARM), (45, Tier.WARM), (44, Tier.COLD), (0, Tier.COLD)],
)
def test_score_tier_boundaries(points: int, tier: Tier) -> None:
    """Verify tier thresholds are inclusive lower bounds."""

    assert score_tier(points) is tier


def test_baseline_quiz_score() -> None:
    """Verify the baseline factor sum: 10 + 5 + 10 + 4."""

    assert calculate_score(quiz()) == 29
    assert score(quiz()).tier is Tier.COLD


@pytest.mark.parametrize(
    "answers, expected_score, expected_tier",
    [
        # tbi 45 + surgery 40
        (
            quiz(injury_type=InjuryType.TBI, has_surgery=True, fault_level=FaultLevel.FULLY_AT_FAULT,
                 insurance_contact=None, incident_timeframe=IncidentTimeframe.ONE_TO_THREE_YEARS),
            85,
            Tier.HOT,
        ),
        # tbi 45 + hospitalized 20 + treatment 10 + not_at_fault 5 + 1-6 months 4
        (
            quiz(injury_type=InjuryType.TBI, hospitalized=True, still_in_treatment=True, insurance_contact=None),
            84,
            Tier.WARM,
        ),
        # fracture 25 + hospitalized 20
        (
            quiz(injury_type=InjuryType.FRACTURE, hospitalized=True, fault_level=None,
                 insurance_contact=None, incident_timeframe=None),
            45,
            Tier.WARM,
        ),
        # fracture 25 + treatment 10 + not_at_fault 5 + 1-6 months 4
        (
            quiz(injury_type=InjuryType.FRACTURE, still_in_treatment=True, insurance_contact=None),
            44,
            Tier.COLD,
        ),
    ],
)
def test_scores_at_tier_boundaries(answers: QuizAnswers, expected_score: int, expected_tier: Tier) -> None:
    """Verify concrete answer sets landing exactly on the boundaries."""

    result = score(answers)

    assert result.score == expected_score
    assert result.tier is expected_tier


@pytest.mark.parametrize(
    "days, bonus",
    [(None, 0), (7, 0), (8, 10), (30, 10), (31, 15), (200, 15)],
)
def test_missed_work_day_bonus_uses_higher_tier_only(days, bonus: int) -> None:
    """Verify missed work adds 10 plus at most one day bonus."""

    base = calculate_score(quiz())
    assert calculate_score(quiz(missed_work=True, missed_work_days=days)) == base + 10 + bonus


@pytest.mark.parametrize(
    "wages, points",
    [(-500, 0), (0, 0), (1, 5), (999, 5), (1_000, 10), (9_999, 10), (10_000, 15),
     (25_000, 20), (49_999, 20), (50_000, 25), (1_000_000, 25)],
)
def test_lost_wage_bands(wages: float, points: int) -> None:
    """Verify lost-wage bands cap at +25."""

    assert calculate_score(quiz(lost_wages=wages)) == 29 + points


@pytest.mark.parametrize(
    "contact, points",
    [(InsuranceContact.NOT_YET, 10), (InsuranceContact.THEY_CONTACTED, 7),
     (InsuranceContact.GOT_LETTER, 7), (InsuranceContact.YES_I_CONTACTED, 5), (None, 0)],
)
def test_insurance_contact_points(contact, points: int) -> None:
    """Verify insurance contact contributes a bounded bonus."""

    assert calculate_score(quiz(insurance_contact=contact)) == 19 + points


def test_widget_answers_use_their_factor_subset() -> None:
    """Verify widget answers score injury, surgery and lost wages only."""

    answers = WidgetAnswers(injury_type=InjuryType.SPINAL, has_surgery=True, lost_wages=30_000)

    assert calculate_score(answers) == 50 + 40 + 20
    assert score(answers).tier is Tier.HOT
    assert check_disqualifier(answers) is None


def test_score_is_deterministic() -> None:
    """Verify identical answers always yield identical score, tier and estimate."""

    answers = quiz(injury_type=InjuryType.FRACTURE, has_surgery=True, lost_wages=12_345.6)

    assert score(answers) == score(quiz(injury_type=InjuryType.FRACTURE, has_surgery=True, lost_wages=12_345.6))
    assert calculate_estimate(answers) == calculate_estimate(answers)


def test_key_factors_sum_to_score() -> None:
    """Verify the listed factors account for every point."""

    answers = quiz(hospitalized=True, missed_work=True, missed_work_days=45, lost_wages=5_000)
    factors = key_factors(answers)

    assert sum(f.points for f in factors) == calculate_score(answers)
    assert "Hospitalization documented" in [f.label for f in factors]


def test_spinal_surgery_estimate() -> None:
    """Verify surgery multiplies both ends of the base range by exactly 5."""

    answers = WidgetAnswers(injury_type=InjuryType.SPINAL, has_surgery=True, lost_wages=0)

    assert calculate_estimate(answers) == EstimateRange(low=250_000, high=1_000_000)


def test_lost_wages_added_after_multiplier() -> None:
    """Verify wages are added to both ends, unmultiplied."""

    answers = WidgetAnswers(injury_type=InjuryType.SOFT_TISSUE, has_surgery=True, lost_wages=5_000)

    assert calculate_estimate(answers) == EstimateRange(low=8_000 * 5 + 5_000, high=25_000 * 5 + 5_000)


def test_negative_wages_clamp_to_zero() -> None:
    """Verify negative lost wages do not reduce the estimate."""

    answers = WidgetAnswers(injury_type=InjuryType.FRACTURE, has_surgery=False, lost_wages=-2_500)

    assert calculate_estimate(answers) == EstimateRange(low=20_000, high=75_000)


def test_other_injury_valued_as_soft_tissue_and_missing_injury_has_no_estimate() -> None:
    """Verify 'other' uses the soft tissue range and no injury yields no estimate."""

    assert calculate_estimate(WidgetAnswers(injury_type=InjuryType.OTHER)) == EstimateRange(8_000, 25_000)
    assert calculate_estimate(WidgetAnswers(injury_type=None)) is None


@pytest.mark.parametrize(
    "overrides, reason",
    [
        ({"has_attorney": AttorneyStatus.YES, "fault_level": FaultLevel.FULLY_AT_FAULT},
         DisqualificationReason.HAS_ATTORNEY),
        ({"fault_level": FaultLevel.FULLY_AT_FAULT, "received_treatment": False},
         DisqualificationReason.FULLY_AT_FAULT),
        ({"incident_timeframe": IncidentTimeframe.OVER_THREE_YEARS, "received_treatment": False},
         DisqualificationReason.OVER_3_YEARS),
        ({"received_treatment": False}, DisqualificationReason.NO_TREATMENT),
    ],
)
def test_disqualifier_precedence(overrides, reason: DisqualificationReason) -> None:
    """Verify the first applicable disqualifier wins."""

    assert check_disqualifier(quiz(**overrides)) is reason


def test_unanswered_treatment_does_not_disqualify() -> None:
    """Verify a skipped treatment question is not treated as 'no treatment'."""

    assert check_disqualifier(quiz(received_treatment=None)) is None
    assert check_disqualifier(quiz()) is None


def test_answers_from_payload_builds_variants() -> None:
    """Verify camelCase payloads become the typed variant for their source."""

    widget = answers_from_payload(
        LeadSource.WIDGET, {"injuryType": "spinal", "hasSurgery": True, "lostWages": "1500"}
    )
    assert widget == WidgetAnswers(injury_type=InjuryType.SPINAL, has_surgery=True, lost_wages=1500.0)

    full = answers_from_payload(
        LeadSource.QUIZ,
        {
            "injuryType": "fracture",
            "incidentTimeframe": "within_30_days",
            "faultLevel": "partial",
            "receivedTreatment": True,
            "missedWork": True,
            "missedWorkDays": "12",
            "hasAttorney": "no",
            "insuranceContact": "got_letter",
            "state": "TX",
        },
    )
    assert isinstance(full, QuizAnswers)
    assert full.missed_work_days == 12
    assert full.state == "TX"
    # fracture 25 + missed work 10 + >7 days 10 + got_letter 7 + partial 2 + within 30 days 10
    assert calculate_score(full) == 64


@pytest.mark.parametrize(
    "payload",
    [{"injuryType": "broken_heart"}, {"lostWages": "lots"}, {"faultLevel": "maybe"}],
)
def test_answers_from_payload_rejects_unknown_values(payload) -> None:
    """Verify unrecognized enum values and non-numeric numbers are rejected."""

    with pytest.raises(ValueError):
        answers_from_payload(LeadSource.QUIZ, payload)


@pytest.mark.parametrize(
    "field,value",
    [
        ("receivedTreatment", "none"),
        ("receivedTreatment", "false"),
        ("hasSurgery", "false"),
        ("stillInTreatment", "no"),
        ("missedWork", "no"),
        ("hospitalized", 1),
    ],
)
def test_answers_from_payload_requires_real_booleans(field, value) -> None:
    """Verify yes/no answers only accept JSON booleans, never truthy strings."""

    with pytest.raises(ValueError, match=field):
        answers_from_payload(LeadSource.QUIZ, {"injuryType": "soft_tissue", field: value})


def test_widget_surgery_flag_requires_boolean() -> None:
    with pytest.raises(ValueError, match="hasSurgery"):
        answers_from_payload(LeadSource.WIDGET, {"injuryType": "spinal", "hasSurgery": "false"})

    widget = answers_from_payload(LeadSource.WIDGET, {"injuryType": "spinal"})
    assert widget.has_surgery is False


@pytest.mark.parametrize("value", ["1e400", "inf", "-inf", "nan", float("inf"), True])
@pytest.mark.parametrize("field", ["lostWages", "missedWorkDays"])
def test_answers_from_payload_rejects_non_finite_numbers(field, value) -> None:
    """Verify numbers that cannot be rounded are rejected before scoring."""

    with pytest.raises(ValueError, match=field):
        answers_from_payload(LeadSource.QUIZ, {"missedWork": True, field: value})


def test_answers_from_payload_rejects_non_text_state() -> None:
    with pytest.raises(ValueError, match="state"):
        answers_from_payload(LeadSource.QUIZ, {"state": 42})
