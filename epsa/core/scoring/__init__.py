"""
ePSA Scoring Layer

Three stateless engines: pre-screening triage, the core logistic model
and the PSA/MRI point system.

Usage:
    from epsa.core.scoring import EPSAEngine, CoreAssessmentInput

    engine = EPSAEngine()
    result = engine.assess(CoreAssessmentInput(...))
"""
from .base import (
    CoreAssessmentResult,
    CoreRiskTier,
    PostAssessmentResult,
    PostRiskCategory,
    ScreeningPriority,
    TriageResult,
)
from .core_risk import CoreAssessmentInput, ExerciseLevel, calculate_bmi, compute_core_risk
from .engine import EPSAEngine
from .post_assessment import PostAssessmentInput, compute_post_risk, core_score_to_points, psa_points
from .pre_screening import PatientFactors, assess_screening_priority

__all__ = [
    "EPSAEngine",
    "PatientFactors",
    "assess_screening_priority",
    "CoreAssessmentInput",
    "ExerciseLevel",
    "calculate_bmi",
    "compute_core_risk",
    "PostAssessmentInput",
    "compute_post_risk",
    "core_score_to_points",
    "psa_points",
    "TriageResult",
    "ScreeningPriority",
    "CoreAssessmentResult",
    "CoreRiskTier",
    "PostAssessmentResult",
    "PostRiskCategory",
]
