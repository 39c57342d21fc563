"""
Pre-Screening Triage Rules

Decides how urgently a patient should be screened from coarse risk factors.
No probability is produced here: the output is a screening-priority bucket
from an additive point score.

Design principles:
  - Point tables are module-level constants, one per factor.
  - A known prior cancer diagnosis bypasses scoring entirely.
  - Only a negative prior biopsy can subtract points; the total is floored
    at zero.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Type, TypeVar, Union

from epsa.utils import get_logger, ValidationError
from .base import ScreeningPriority, TriageResult

logger = get_logger(__name__)


class AgeBracket(str, Enum):
    AGE_40_49 = "40-49"
    AGE_50_59 = "50-59"
    AGE_60_69 = "60-69"
    AGE_70_PLUS = "70+"


class FamilyHistory(str, Enum):
    NONE = "none"
    ONE_RELATIVE = "1-relative"
    TWO_PLUS_RELATIVES = "2+relatives"


class GeneticRisk(str, Enum):
    NONE = "none"
    KNOWN_MUTATION = "known-mutation"


class TriageRace(str, Enum):
    WHITE_ASIAN = "white-asian"
    HISPANIC = "hispanic"
    BLACK = "black"
    OTHER = "other"


class PriorPsaHistory(str, Enum):
    NEVER = "never"
    NORMAL = "normal"
    ELEVATED = "elevated"
    NOT_SURE = "not-sure"


class PriorBiopsyResult(str, Enum):
    NONE = "none"
    NEGATIVE = "negative"
    CANCER = "cancer"


# ── Point tables ─────────────────────────────────────────────────────────────
AGE_POINTS = {
    AgeBracket.AGE_40_49:   0,
    AgeBracket.AGE_50_59:   1,
    AgeBracket.AGE_60_69:   2,
    AgeBracket.AGE_70_PLUS: 3,
}

FAMILY_HISTORY_POINTS = {
    FamilyHistory.NONE:               0,
    FamilyHistory.ONE_RELATIVE:       2,
    FamilyHistory.TWO_PLUS_RELATIVES: 3,
}

GENETIC_POINTS = {
    GeneticRisk.NONE:           0,
    GeneticRisk.KNOWN_MUTATION: 4,
}

RACE_POINTS = {
    TriageRace.WHITE_ASIAN: 0,
    TriageRace.HISPANIC:    1,
    TriageRace.BLACK:       1,
    TriageRace.OTHER:       0,
}

PRIOR_PSA_POINTS = {
    PriorPsaHistory.NEVER:    0,
    PriorPsaHistory.NORMAL:   0,
    PriorPsaHistory.ELEVATED: 3,
    PriorPsaHistory.NOT_SURE: 1,
}

PRIOR_BIOPSY_POINTS = {
    PriorBiopsyResult.NONE:     0,
    PriorBiopsyResult.NEGATIVE: -1,
}

# Inclusive upper bounds
ROUTINE_MAX_POINTS  = 2
PRIORITY_MAX_POINTS = 5

PRIOR_CANCER_CATEGORY = "prior-cancer"
PRIOR_CANCER_MESSAGE = "You should follow up with your treating physician."

_TIERS = {
    ScreeningPriority.ROUTINE: (
        "Routine Screening", "green",
        "Routine screening is appropriate. Discuss the usual screening schedule with your doctor.",
    ),
    ScreeningPriority.PRIORITY: (
        "Priority Screening Today", "yellow",
        "Your risk factors suggest getting screened today.",
    ),
    ScreeningPriority.HIGH_PRIORITY: (
        "High Priority + Strong Follow-Up Recommended", "red",
        "Your risk factors strongly suggest screening today and a follow-up with a doctor.",
    ),
}

E = TypeVar("E", bound=Enum)


def _coerce(enum_cls: Type[E], value: Any, field_name: str) -> E:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(
            f"{field_name} must be one of: {allowed}",
            field=field_name,
            details={"value": value},
        ) from None


@dataclass(frozen=True)
class PatientFactors:
    """Answers to the pre-screening questionnaire (raw strings or enums)."""
    age_bracket: Union[AgeBracket, str]
    family_history: Union[FamilyHistory, str]
    genetic_risk: Union[GeneticRisk, str]
    race: Union[TriageRace, str]
    prior_psa_history: Union[PriorPsaHistory, str]
    prior_biopsy_result: Union[PriorBiopsyResult, str]
    on_finasteride: bool = False


def priority_for_points(points: int) -> ScreeningPriority:
    """Map a (floored) point total to its screening priority."""
    if points <= ROUTINE_MAX_POINTS:
        return ScreeningPriority.ROUTINE
    if points <= PRIORITY_MAX_POINTS:
        return ScreeningPriority.PRIORITY
    return ScreeningPriority.HIGH_PRIORITY


def assess_screening_priority(factors: PatientFactors) -> TriageResult:
    """
    Triage a patient into routine / priority / high-priority screening.

    Args:
        factors: Pre-screening answers.

    Returns:
        TriageResult. For a prior cancer diagnosis the result has
        category "prior-cancer" and neither priority nor points.

    Raises:
        ValidationError: if any answer is not a recognised option.
    """
    biopsy = _coerce(PriorBiopsyResult, factors.prior_biopsy_result, "prior_biopsy_result")
    if biopsy is PriorBiopsyResult.CANCER:
        logger.debug("Pre-screening: prior cancer diagnosis, skipping point score")
        return TriageResult(
            category=PRIOR_CANCER_CATEGORY,
            priority=None,
            points=None,
            message=PRIOR_CANCER_MESSAGE,
            on_finasteride=bool(factors.on_finasteride),
        )

    age = _coerce(AgeBracket, factors.age_bracket, "age_bracket")
    family = _coerce(FamilyHistory, factors.family_history, "family_history")
    genetic = _coerce(GeneticRisk, factors.genetic_risk, "genetic_risk")
    race = _coerce(TriageRace, factors.race, "race")
    prior_psa = _coerce(PriorPsaHistory, factors.prior_psa_history, "prior_psa_history")

    raw_total = (
        AGE_POINTS[age]
        + FAMILY_HISTORY_POINTS[family]
        + GENETIC_POINTS[genetic]
        + RACE_POINTS[race]
        + PRIOR_PSA_POINTS[prior_psa]
        + PRIOR_BIOPSY_POINTS[biopsy]
    )
    total = max(0, raw_total)

    priority = priority_for_points(total)
    category, color, message = _TIERS[priority]

    logger.debug(f"Pre-screening: {total} pts → {priority.value}")
    return TriageResult(
        category=category,
        priority=priority,
        points=total,
        color=color,
        message=message,
        on_finasteride=bool(factors.on_finasteride),
    )
