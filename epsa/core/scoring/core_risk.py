"""
Core Risk Model: 7-variable logistic regression

    logit = -3.8347
      + 0.0454 × Age (years)
      - 0.0253 × Race_Black (1 = Black, 0 = other)
      + 0.0195 × BMI (kg/m²)
      - 0.0292 × IPSS total (0–35)
      - 0.5947 × Exercise (0 = regular, 1 = some, 2 = none)
      - 0.8911 × Family history (1 = any affected relative, 0 = none)
      - 0.0358 × SHIM total (5–25)

    probability = 1 / (1 + e^(-logit))

Derivation cohort n=100, AUC 0.610, recalibrated to ~15 % screening
prevalence. The Race_Black and IPSS signs are clinically counterintuitive
and a 70-year-old inactive man with a family history scores LOWER. The
coefficients are kept exactly as published; do not "fix" the signs here.

Tiers are cut on the unrounded probability: < 8 % LOWER, < 20 % MODERATE,
otherwise HIGHER. The displayed band is the rounded score ± 10, clamped.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, List, Optional, Sequence, Union

from epsa import config
from epsa.utils import get_logger, ValidationError
from .base import CoreAssessmentResult, CoreRiskTier, VariableContribution

logger = get_logger(__name__)


class ExerciseLevel(IntEnum):
    REGULAR = 0   # 3+ days/week
    SOME    = 1   # 1-2 days/week
    NONE    = 2


# ── Coefficients ─────────────────────────────────────────────────────────────
INTERCEPT       = -3.8347
COEF_AGE        = 0.0454
COEF_RACE_BLACK = -0.0253
COEF_BMI        = 0.0195
COEF_IPSS       = -0.0292
COEF_EXERCISE   = -0.5947
COEF_FAMILY     = -0.8911
COEF_SHIM       = -0.0358

# ── Tier thresholds (probability, not rounded score) ─────────────────────────
LOWER_THRESHOLD    = 0.08
MODERATE_THRESHOLD = 0.20

CONFIDENCE_HALF_WIDTH = 10

# ── Input domain ─────────────────────────────────────────────────────────────
MIN_AGE = 18
MAX_AGE = 120
VALIDATED_MIN_AGE = 30
VALIDATED_MAX_AGE = 95
YOUNG_AGE_WARNING = 40
IPSS_ITEMS = 7
SHIM_ITEMS = 5
IPSS_ITEM_RANGE = (0, 5)
SHIM_ITEM_RANGE = (1, 5)

_TIERS = {
    CoreRiskTier.LOWER: (
        "#27AE60", "Below 8%",
        "Routine screening. Follow standard age-based screening guidance.",
    ),
    CoreRiskTier.MODERATE: (
        "#D4AF37", "8% – 20%",
        "PSA blood testing recommended. Discuss PSA testing with your doctor.",
    ),
    CoreRiskTier.HIGHER: (
        "#C0392B", "Above 20%",
        "PSA testing and urological evaluation are recommended.",
    ),
}


@dataclass(frozen=True)
class CoreAssessmentInput:
    """
    Raw answers from the assessment form.

    Values arrive the way the form collected them (numbers or numeric
    text, possibly missing); `compute_core_risk` validates them.
    """
    age: Any = None
    race: Optional[str] = None
    bmi: Any = None
    ipss_answers: Optional[Sequence[Any]] = None
    shim_answers: Optional[Sequence[Any]] = None
    exercise_level: Union[ExerciseLevel, int, str, None] = None
    family_history_count: Union[int, str, None] = None

    @property
    def is_black(self) -> int:
        return 1 if isinstance(self.race, str) and self.race.strip().lower() == "black" else 0


# ── Parsing helpers ──────────────────────────────────────────────────────────

def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _as_number(value: Any) -> Optional[float]:
    """Parse a form number; None when it is not a finite number."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _as_whole(value: Any) -> Optional[int]:
    """Parse a form answer that must be a whole number."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    number = _as_number(value)
    if number is None or not number.is_integer():
        return None
    return int(number)


def _parse_answers(answers: Any, expected: int, field_name: str, label: str) -> List[int]:
    if answers is None or isinstance(answers, (str, bytes)) or not isinstance(answers, Sequence):
        raise ValidationError(f"{label} responses are required", field=field_name)
    if len(answers) != expected:
        raise ValidationError(
            f"{label} requires exactly {expected} answers",
            field=field_name,
            details={"received": len(answers)},
        )
    parsed = []
    for index, raw in enumerate(answers):
        if _is_missing(raw):
            raise ValidationError(
                f"{label} question {index + 1} is unanswered",
                field=field_name,
                details={"question": index + 1},
            )
        value = _as_whole(raw)
        if value is None:
            raise ValidationError(
                f"{label} answers must be whole numbers",
                field=field_name,
                details={"question": index + 1, "value": raw},
            )
        parsed.append(value)
    return parsed


@dataclass(frozen=True)
class _ValidatedInput:
    age: int
    is_black: int
    bmi: float
    ipss: List[int]
    shim: List[int]
    exercise: int
    family_history_count: int


def validate_core_input(data: CoreAssessmentInput) -> _ValidatedInput:
    """
    Check every required answer in a fixed order; the first failure wins.

    Raises:
        ValidationError: naming the offending field.
    """
    # 1. Age
    if _is_missing(data.age):
        raise ValidationError("Age is required", field="age")
    age_number = _as_number(data.age)
    if age_number is None:
        raise ValidationError("Age must be a number", field="age", details={"value": data.age})
    if age_number < MIN_AGE or age_number > MAX_AGE:
        raise ValidationError(
            f"Age must be between {MIN_AGE} and {MAX_AGE}",
            field="age",
            details={"value": data.age},
        )
    age = int(age_number)

    # 2. BMI
    if _is_missing(data.bmi):
        raise ValidationError("BMI is required", field="bmi")
    bmi = _as_number(data.bmi)
    if bmi is None:
        raise ValidationError("BMI must be a number", field="bmi", details={"value": data.bmi})
    if bmi <= 0:
        raise ValidationError(
            "BMI could not be calculated - please check height and weight",
            field="bmi",
            details={"value": bmi},
        )

    # 3. Race
    if not isinstance(data.race, str) or not data.race.strip():
        raise ValidationError("Race is required", field="race")

    # 4-5. Symptom questionnaires
    ipss = _parse_answers(data.ipss_answers, IPSS_ITEMS, "ipss_answers", "IPSS")
    shim = _parse_answers(data.shim_answers, SHIM_ITEMS, "shim_answers", "SHIM")

    # 6. Exercise
    if _is_missing(data.exercise_level):
        raise ValidationError("Exercise level is required", field="exercise_level")
    exercise = _as_whole(data.exercise_level)
    if exercise not in (ExerciseLevel.REGULAR, ExerciseLevel.SOME, ExerciseLevel.NONE):
        raise ValidationError(
            "Exercise level must be one of: 0 (regular), 1 (some), 2 (none)",
            field="exercise_level",
            details={"value": data.exercise_level},
        )

    # 7. Family history
    if _is_missing(data.family_history_count):
        raise ValidationError("Family history is required", field="family_history_count")
    family = _as_whole(data.family_history_count)
    if family is None or family < 0:
        raise ValidationError(
            "Family history must be a count of affected relatives (0 or more)",
            field="family_history_count",
            details={"value": data.family_history_count},
        )

    return _ValidatedInput(
        age=age,
        is_black=data.is_black,
        bmi=bmi,
        ipss=ipss,
        shim=shim,
        exercise=int(exercise),
        family_history_count=family,
    )


def collect_warnings(data: CoreAssessmentInput) -> List[str]:
    """
    Non-fatal notices about answers the model was not validated on.

    Never raises; unparseable values are left for `validate_core_input`.
    """
    warnings: List[str] = []

    age = _as_number(data.age)
    if age is not None:
        age = int(age)
        if age < YOUNG_AGE_WARNING:
            warnings.append("Age under 40: model may be less validated in very young patients")
        if age < VALIDATED_MIN_AGE or age > VALIDATED_MAX_AGE:
            warnings.append(
                f"Age {age} is outside the validated range "
                f"({VALIDATED_MIN_AGE}–{VALIDATED_MAX_AGE})"
            )

    for answers, (low, high), label in (
        (data.ipss_answers, IPSS_ITEM_RANGE, "IPSS"),
        (data.shim_answers, SHIM_ITEM_RANGE, "SHIM"),
    ):
        if answers is None or isinstance(answers, (str, bytes)) or not isinstance(answers, Sequence):
            continue
        values = [_as_number(a) for a in answers]
        if any(v is not None and (v < low or v > high) for v in values):
            warnings.append(f"{label} answers are expected to be between {low} and {high}")

    return warnings


def calculate_bmi(
    height_ft: Optional[float] = None,
    height_in: Optional[float] = None,
    weight_lb: Optional[float] = None,
    height_cm: Optional[float] = None,
    weight_kg: Optional[float] = None,
) -> float:
    """
    BMI from the form's height/weight inputs.

    Metric inputs win when both are supplied. Returns 0.0 when the height
    or weight is not positive, which the engine then rejects.
    """
    if height_cm and weight_kg:
        metres = height_cm / 100.0
        if metres <= 0 or weight_kg <= 0:
            return 0.0
        return weight_kg / (metres * metres)

    total_inches = (height_ft or 0) * 12 + (height_in or 0)
    if total_inches <= 0 or not weight_lb or weight_lb <= 0:
        return 0.0
    return (weight_lb / (total_inches * total_inches)) * 703


def tier_for_probability(probability: float) -> CoreRiskTier:
    if probability < LOWER_THRESHOLD:
        return CoreRiskTier.LOWER
    if probability < MODERATE_THRESHOLD:
        return CoreRiskTier.MODERATE
    return CoreRiskTier.HIGHER


def _clamp_percent(value: int) -> int:
    return max(0, min(100, value))


def compute_core_risk(data: CoreAssessmentInput) -> CoreAssessmentResult:
    """
    Run the logistic model on one set of answers.

    Args:
        data: Raw form answers.

    Returns:
        CoreAssessmentResult with the rounded score, tier and ±10 band.

    Raises:
        ValidationError: if any required answer is missing or invalid.
    """
    v = validate_core_input(data)

    ipss_total = sum(v.ipss)
    shim_total = sum(v.shim)
    family_binary = 1 if v.family_history_count > 0 else 0

    logit = (
        INTERCEPT
        + COEF_AGE * v.age
        + COEF_RACE_BLACK * v.is_black
        + COEF_BMI * v.bmi
        + COEF_IPSS * ipss_total
        + COEF_EXERCISE * v.exercise
        + COEF_FAMILY * family_binary
        + COEF_SHIM * shim_total
    )
    probability = 1 / (1 + math.exp(-logit))
    score = math.floor(probability * 100 + 0.5)

    tier = tier_for_probability(probability)
    color, score_range, action = _TIERS[tier]

    contributions = (
        VariableContribution("Age", COEF_AGE, v.age),
        VariableContribution("Race (Black/African American)", COEF_RACE_BLACK, v.is_black),
        VariableContribution("BMI", COEF_BMI, v.bmi),
        VariableContribution("IPSS Total Score", COEF_IPSS, ipss_total),
        VariableContribution("Exercise Level", COEF_EXERCISE, v.exercise),
        VariableContribution("Family History", COEF_FAMILY, family_binary),
        VariableContribution("SHIM Total Score", COEF_SHIM, shim_total),
    )

    logger.debug(
        f"Core risk: logit={logit:.4f} p={probability:.4f} "
        f"score={score}% tier={tier.value}"
    )

    return CoreAssessmentResult(
        score_percent=score,
        risk_tier=tier,
        color=color,
        score_range=score_range,
        action=action,
        confidence_low=_clamp_percent(score - CONFIDENCE_HALF_WIDTH),
        confidence_high=_clamp_percent(score + CONFIDENCE_HALF_WIDTH),
        ipss_total=ipss_total,
        shim_total=shim_total,
        bmi_formatted=f"{v.bmi:.1f}",
        age=v.age,
        logit=logit,
        probability=probability,
        model_version=config.MODEL_VERSION,
        contributions=contributions,
    )
