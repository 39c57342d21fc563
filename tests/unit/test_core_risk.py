"""
Unit Tests for the Core Risk Model

Exact logistic arithmetic, tiering on the raw probability, the ±10 band,
input validation order and the documented sign behaviour.
"""
import math
from dataclasses import replace

import numpy as np
import pytest

from epsa.core.scoring import (
    CoreAssessmentInput,
    CoreRiskTier,
    calculate_bmi,
    compute_core_risk,
)
from epsa.core.scoring.core_risk import collect_warnings, tier_for_probability
from epsa.utils import ValidationError


def _logit(age, black, bmi, ipss, exercise, fh, shim):
    return (
        -3.8347
        + 0.0454 * age
        - 0.0253 * black
        + 0.0195 * bmi
        - 0.0292 * ipss
        - 0.5947 * exercise
        - 0.8911 * fh
        - 0.0358 * shim
    )


class TestModelArithmetic:
    """The score follows the published formula exactly."""

    def test_young_healthy_profile(self, young_healthy_input):
        result = compute_core_risk(young_healthy_input)

        expected_logit = _logit(45, 0, 22, 0, 0, 0, 25)
        assert result.logit == pytest.approx(expected_logit, abs=1e-12)
        assert result.logit == pytest.approx(-2.2577, abs=1e-9)
        assert result.probability == pytest.approx(0.0947, abs=1e-4)
        assert result.score_percent == 9
        assert result.risk_tier == CoreRiskTier.MODERATE
        assert result.ipss_total == 0
        assert result.shim_total == 25

    def test_older_symptomatic_profile_scores_lower(self, older_symptomatic_input):
        """Counterintuitive IPSS/family-history signs push this profile down."""
        result = compute_core_risk(older_symptomatic_input)

        assert result.logit == pytest.approx(-3.3532, abs=1e-9)
        assert result.score_percent == 3
        assert result.risk_tier == CoreRiskTier.LOWER
        assert result.ipss_total == 35
        assert result.shim_total == 5

    def test_low_risk_reference_profile(self):
        result = compute_core_risk(CoreAssessmentInput(
            age=40, race="white", bmi=20,
            ipss_answers=[0] * 7, shim_answers=[5] * 5,
            exercise_level=0, family_history_count=0,
        ))
        assert result.logit == pytest.approx(-2.5237, abs=1e-9)
        assert result.score_percent == 7
        assert result.risk_tier == CoreRiskTier.LOWER

    def test_baseline_profile_is_moderate(self):
        result = compute_core_risk(CoreAssessmentInput(
            age=55, race="white", bmi=25,
            ipss_answers=[2] * 7, shim_answers=[3] * 5,
            exercise_level=1, family_history_count=0,
        ))
        assert result.logit == pytest.approx(-2.3907, abs=1e-9)
        assert result.score_percent == 8
        assert result.risk_tier == CoreRiskTier.MODERATE

    def test_high_risk_profile(self, high_risk_input):
        result = compute_core_risk(high_risk_input)

        assert result.logit == pytest.approx(1.2743, abs=1e-9)
        assert result.score_percent == 78
        assert result.risk_tier == CoreRiskTier.HIGHER
        assert result.color == "#C0392B"
        assert "urological" in result.action

    def test_probability_is_logistic_of_logit(self, high_risk_input):
        result = compute_core_risk(high_risk_input)
        assert result.probability == 1 / (1 + math.exp(-result.logit))

    def test_black_race_lowers_logit_by_coefficient(self, young_healthy_input):
        white = compute_core_risk(young_healthy_input)
        black = compute_core_risk(replace(young_healthy_input, race="black"))
        assert black.logit == pytest.approx(white.logit - 0.0253, abs=1e-12)

    def test_race_match_is_case_insensitive(self, young_healthy_input):
        assert replace(young_healthy_input, race="Black").is_black == 1
        assert replace(young_healthy_input, race="hispanic").is_black == 0

    def test_family_history_is_binary(self, young_healthy_input):
        one = compute_core_risk(replace(young_healthy_input, family_history_count=1))
        three = compute_core_risk(replace(young_healthy_input, family_history_count=3))
        assert one.logit == three.logit

    def test_totals_recomputed_from_answers(self, young_healthy_input):
        result = compute_core_risk(replace(
            young_healthy_input,
            ipss_answers=[1, 2, 3, 4, 5, 0, 1],
            shim_answers=[1, 2, 3, 4, 5],
        ))
        assert result.ipss_total == 16
        assert result.shim_total == 15

    def test_form_text_values_match_numbers(self, young_healthy_input):
        as_text = replace(
            young_healthy_input,
            age="45", bmi="22",
            ipss_answers=["0"] * 7, shim_answers=["5"] * 5,
            exercise_level="0", family_history_count="0",
        )
        assert compute_core_risk(as_text) == compute_core_risk(young_healthy_input)

    def test_fractional_age_truncated(self, young_healthy_input):
        assert compute_core_risk(replace(young_healthy_input, age="45.7")).age == 45

    def test_fractional_age_at_upper_bound(self, young_healthy_input):
        assert compute_core_risk(replace(young_healthy_input, age=119.9)).age == 119

    def test_deterministic(self, older_symptomatic_input):
        first = compute_core_risk(older_symptomatic_input)
        second = compute_core_risk(older_symptomatic_input)
        assert first == second
        assert first.to_dict() == second.to_dict()

    def test_echoed_fields(self, young_healthy_input):
        result = compute_core_risk(replace(young_healthy_input, bmi=24.3912))
        assert result.bmi_formatted == "24.4"
        assert result.age == 45
        assert len(result.contributions) == 7


class TestTiersAndBand:
    """Tier cut-offs apply to the raw probability; band is score ± 10."""

    @pytest.mark.parametrize("probability,tier", [
        (0.0, CoreRiskTier.LOWER),
        (0.0799, CoreRiskTier.LOWER),
        (0.08, CoreRiskTier.MODERATE),
        (0.1999, CoreRiskTier.MODERATE),
        (0.20, CoreRiskTier.HIGHER),
        (0.99, CoreRiskTier.HIGHER),
    ])
    def test_tier_thresholds(self, probability, tier):
        assert tier_for_probability(probability) == tier

    def test_band_clamped_at_zero(self, older_symptomatic_input):
        result = compute_core_risk(older_symptomatic_input)
        assert result.confidence_low == 0
        assert result.confidence_high == 13
        assert result.confidence_range == "0%–13%"

    def test_band_clamped_at_hundred(self):
        result = compute_core_risk(CoreAssessmentInput(
            age=120, race="white", bmi=60,
            ipss_answers=[0] * 7, shim_answers=[1] * 5,
            exercise_level=0, family_history_count=0,
        ))
        assert result.score_percent == 93
        assert result.confidence_low == 83
        assert result.confidence_high == 100

    def test_band_matches_formula_across_ages(self, high_risk_input):
        for age in range(18, 121):
            result = compute_core_risk(replace(high_risk_input, age=age, bmi=30))
            assert result.confidence_low == max(0, result.score_percent - 10)
            assert result.confidence_high == min(100, result.score_percent + 10)


class TestMonotonicity:
    """Direction of each continuous or ordinal input, as the coefficients imply."""

    def test_age_never_decreases_score(self, young_healthy_input):
        scores = [
            compute_core_risk(replace(young_healthy_input, age=age)).score_percent
            for age in np.arange(18, 121).tolist()
        ]
        assert all(b >= a for a, b in zip(scores, scores[1:]))

    def test_bmi_never_decreases_score(self, young_healthy_input):
        scores = [
            compute_core_risk(replace(young_healthy_input, bmi=bmi)).score_percent
            for bmi in np.linspace(12.0, 60.0, 97).tolist()
        ]
        assert all(b >= a for a, b in zip(scores, scores[1:]))

    def test_less_exercise_lowers_probability(self, young_healthy_input):
        """The exercise coefficient is negative: 'none' scores below 'regular'."""
        probabilities = [
            compute_core_risk(replace(young_healthy_input, exercise_level=level)).probability
            for level in (0, 1, 2)
        ]
        assert probabilities[0] > probabilities[1] > probabilities[2]


REQUIRED_FIELDS = [
    "age", "bmi", "race", "ipss_answers", "shim_answers",
    "exercise_level", "family_history_count",
]


class TestValidation:
    """Any missing or invalid answer fails the whole assessment."""

    @pytest.mark.parametrize("field_name", REQUIRED_FIELDS)
    def test_missing_field_rejected(self, young_healthy_input, field_name):
        with pytest.raises(ValidationError) as exc_info:
            compute_core_risk(replace(young_healthy_input, **{field_name: None}))
        assert exc_info.value.field == field_name

    @pytest.mark.parametrize("field_name", REQUIRED_FIELDS)
    def test_missing_field_rejected_for_other_valid_profiles(
        self, older_symptomatic_input, high_risk_input, field_name
    ):
        for profile in (older_symptomatic_input, high_risk_input):
            with pytest.raises(ValidationError):
                compute_core_risk(replace(profile, **{field_name: None}))

    def test_first_failing_check_reported(self):
        with pytest.raises(ValidationError) as exc_info:
            compute_core_risk(CoreAssessmentInput())
        assert exc_info.value.field == "age"

        with pytest.raises(ValidationError) as exc_info:
            compute_core_risk(CoreAssessmentInput(age=50))
        assert exc_info.value.field == "bmi"

    @pytest.mark.parametrize("age", [17, 17.9, 120.5, "120.9", 121, "", "abc", True, float("nan")])
    def test_invalid_age(self, young_healthy_input, age):
        with pytest.raises(ValidationError) as exc_info:
            compute_core_risk(replace(young_healthy_input, age=age))
        assert exc_info.value.field == "age"

    @pytest.mark.parametrize("age", [18, 120])
    def test_age_bounds_inclusive(self, young_healthy_input, age):
        assert compute_core_risk(replace(young_healthy_input, age=age)).age == age

    @pytest.mark.parametrize("bmi", [0, -3, "abc", "", float("inf")])
    def test_invalid_bmi(self, young_healthy_input, bmi):
        with pytest.raises(ValidationError) as exc_info:
            compute_core_risk(replace(young_healthy_input, bmi=bmi))
        assert exc_info.value.field == "bmi"

    @pytest.mark.parametrize("race", ["", "   ", 3])
    def test_invalid_race(self, young_healthy_input, race):
        with pytest.raises(ValidationError) as exc_info:
            compute_core_risk(replace(young_healthy_input, race=race))
        assert exc_info.value.field == "race"

    @pytest.mark.parametrize("answers", [
        [0] * 6,
        [0] * 8,
        [0, 0, None, 0, 0, 0, 0],
        "0000000",
        [0, 0, 0, 0, 0, 0, "x"],
        [0, 0, 0, 0, 0, 0, 1.5],
    ])
    def test_invalid_ipss(self, young_healthy_input, answers):
        with pytest.raises(ValidationError) as exc_info:
            compute_core_risk(replace(young_healthy_input, ipss_answers=answers))
        assert exc_info.value.field == "ipss_answers"

    @pytest.mark.parametrize("answers", [[5] * 4, [5] * 6, [5, 5, None, 5, 5]])
    def test_invalid_shim(self, young_healthy_input, answers):
        with pytest.raises(ValidationError) as exc_info:
            compute_core_risk(replace(young_healthy_input, shim_answers=answers))
        assert exc_info.value.field == "shim_answers"

    def test_shim_out_of_nominal_range_accepted(self, young_healthy_input):
        result = compute_core_risk(replace(young_healthy_input, shim_answers=[0, 0, 6, 6, 6]))
        assert result.shim_total == 18

    @pytest.mark.parametrize("level", [3, -1, "some", 0.5])
    def test_invalid_exercise(self, young_healthy_input, level):
        with pytest.raises(ValidationError) as exc_info:
            compute_core_risk(replace(young_healthy_input, exercise_level=level))
        assert exc_info.value.field == "exercise_level"

    @pytest.mark.parametrize("count", [-1, "many", 1.5])
    def test_invalid_family_history(self, young_healthy_input, count):
        with pytest.raises(ValidationError) as exc_info:
            compute_core_risk(replace(young_healthy_input, family_history_count=count))
        assert exc_info.value.field == "family_history_count"

    def test_error_payload(self, young_healthy_input):
        with pytest.raises(ValidationError) as exc_info:
            compute_core_risk(replace(young_healthy_input, age=150))
        payload = exc_info.value.to_dict()
        assert payload["error"] == "VALIDATION_ERROR"
        assert payload["details"] == {"field": "age", "value": 150}


class TestWarnings:
    """Non-fatal notices."""

    def test_clean_input_has_no_warnings(self, young_healthy_input):
        assert collect_warnings(young_healthy_input) == []

    def test_young_age_warning(self, young_healthy_input):
        warnings = collect_warnings(replace(young_healthy_input, age=35))
        assert len(warnings) == 1
        assert warnings[0].startswith("Age under 40")

    def test_outside_validated_range(self, young_healthy_input):
        warnings = collect_warnings(replace(young_healthy_input, age=25))
        assert len(warnings) == 2
        assert any("validated range" in w for w in warnings)

    def test_item_range_warnings(self, young_healthy_input):
        warnings = collect_warnings(replace(
            young_healthy_input,
            ipss_answers=[6, 0, 0, 0, 0, 0, 0],
            shim_answers=[0, 5, 5, 5, 5],
        ))
        assert any(w.startswith("IPSS") for w in warnings)
        assert any(w.startswith("SHIM") for w in warnings)

    def test_warnings_tolerate_bad_input(self):
        assert collect_warnings(CoreAssessmentInput(age="abc", ipss_answers="x")) == []


class TestBmi:
    """BMI from form height and weight."""

    def test_imperial(self):
        assert calculate_bmi(height_ft=5, height_in=10, weight_lb=170) == pytest.approx(24.39, abs=0.01)

    def test_metric(self):
        assert calculate_bmi(height_cm=175, weight_kg=70) == pytest.approx(22.857, abs=0.001)

    def test_metric_preferred(self):
        assert calculate_bmi(
            height_ft=5, height_in=10, weight_lb=170, height_cm=175, weight_kg=70
        ) == pytest.approx(22.857, abs=0.001)

    @pytest.mark.parametrize("kwargs", [
        {},
        {"height_ft": 0, "height_in": 0, "weight_lb": 170},
        {"height_ft": 5, "height_in": 10, "weight_lb": 0},
    ])
    def test_missing_measurements_give_zero(self, kwargs):
        assert calculate_bmi(**kwargs) == 0.0
