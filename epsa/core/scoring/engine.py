"""
ePSA Assessment Engine

Facade over the three scoring modules, in patient-flow order:

    triage (pre-screening) ──► informational only
    assess (core model)    ──► assess_post (PSA ± MRI points)

Usage:
    from epsa.core.scoring import EPSAEngine, CoreAssessmentInput

    engine = EPSAEngine()
    core = engine.assess(CoreAssessmentInput(age=55, race="white", ...))
    post = engine.assess_post(core_points=60, post_input=PostAssessmentInput(psa_level="3.2"))
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from epsa.utils import get_logger, ValidationError
from .base import CoreAssessmentResult, PostAssessmentResult, TriageResult
from .core_risk import CoreAssessmentInput, collect_warnings, compute_core_risk
from .post_assessment import PostAssessmentInput, compute_post_risk, core_score_to_points
from .pre_screening import PatientFactors, assess_screening_priority

logger = get_logger(__name__)


class EPSAEngine:
    """
    Runs the ePSA scoring modules and logs each outcome.

    Holds no state, so one instance serves concurrent requests.
    """

    def triage(self, factors: PatientFactors) -> TriageResult:
        try:
            result = assess_screening_priority(factors)
        except ValidationError as exc:
            logger.warning(f"EPSAEngine [pre-screening]: rejected input ({exc.details.get('field')}): {exc.message}")
            raise
        if result.is_prior_cancer:
            logger.info("EPSAEngine [pre-screening]: prior cancer, referred to treating physician")
        else:
            logger.info(f"EPSAEngine [pre-screening]: {result.points} pts → {result.priority.value}")
        return result

    def assess(self, data: CoreAssessmentInput) -> CoreAssessmentResult:
        try:
            result = compute_core_risk(data)
        except ValidationError as exc:
            logger.warning(f"EPSAEngine [core]: rejected input ({exc.details.get('field')}): {exc.message}")
            raise
        logger.info(
            f"EPSAEngine [core]: score={result.score_percent}% tier={result.risk_tier.value} "
            f"band={result.confidence_range}"
        )
        return result

    @staticmethod
    def warnings(data: CoreAssessmentInput) -> List[str]:
        return collect_warnings(data)

    def assess_post(
        self,
        post_input: PostAssessmentInput,
        core_points: Optional[int] = None,
        core_score: Optional[float] = None,
    ) -> PostAssessmentResult:
        """
        Score the PSA/MRI step.

        Exactly one of `core_points` or `core_score` must be given; a score
        is converted with the four-band core-score mapping.
        """
        if (core_points is None) == (core_score is None):
            raise ValidationError(
                "Provide exactly one of core_points or core_score",
                field="core_points",
            )
        if core_points is None:
            core_points = core_score_to_points(core_score)
            logger.debug(f"EPSAEngine [post]: core score {core_score}% → {core_points} pts")

        result = compute_post_risk(core_points, post_input)
        logger.info(
            f"EPSAEngine [post]: {result.total_points} pts → {result.risk_category.value}"
            + (" (PI-RADS override)" if result.pirads_overridden else "")
        )
        return result

    @staticmethod
    def summarise(
        core: CoreAssessmentResult,
        post: Optional[PostAssessmentResult] = None,
    ) -> Dict[str, Any]:
        """
        Flat display/export record.

        Example output:
        {
            "score": 9,
            "risk_tier": "MODERATE",
            "confidence_range": "0%–19%",
            "post_risk": "10–20%",
            "next_steps": [...]
        }
        """
        summary: Dict[str, Any] = {
            "score": core.score_percent,
            "risk_tier": core.risk_tier.value,
            "color": core.color,
            "action": core.action,
            "confidence_range": core.confidence_range,
            "model_version": core.model_version,
        }
        if post is not None:
            summary.update({
                "post_risk": post.risk_percent_range,
                "post_category": post.risk_category.value,
                "post_label": post.risk_label,
                "total_points": post.total_points,
                "pirads_overridden": post.pirads_overridden,
                "next_steps": list(post.next_steps),
            })
        return summary
