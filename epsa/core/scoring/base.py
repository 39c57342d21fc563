"""
Scoring Layer — Base Types

Result contracts produced by the three ePSA engines. They are plain frozen
records consumed by the API layer, the CSV export and the PDF report.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class ScreeningPriority(str, Enum):
    """Pre-screening triage bucket."""
    ROUTINE       = "routine"
    PRIORITY      = "priority"
    HIGH_PRIORITY = "high-priority"


class CoreRiskTier(str, Enum):
    """
    Core logistic model tier, cut on the unrounded probability.

    LOWER     – probability < 8 %
    MODERATE  – 8 % ≤ probability < 20 %
    HIGHER    – probability ≥ 20 %
    """
    LOWER    = "LOWER"
    MODERATE = "MODERATE"
    HIGHER   = "HIGHER"


class PostRiskCategory(str, Enum):
    """PSA/MRI point-ladder categories plus the two PI-RADS overrides."""
    LOW              = "low"
    MODERATE         = "moderate"
    HIGH             = "high"
    VERY_HIGH        = "very_high"
    PIRADS4_OVERRIDE = "pirads4_override"
    PIRADS5_OVERRIDE = "pirads5_override"

    @property
    def is_override(self) -> bool:
        return self in (PostRiskCategory.PIRADS4_OVERRIDE, PostRiskCategory.PIRADS5_OVERRIDE)


@dataclass(frozen=True)
class TriageResult:
    """Outcome of the pre-screening triage."""
    category: str                        # e.g. "Priority Screening Today"
    priority: Optional[ScreeningPriority]
    points: Optional[int]
    color: Optional[str] = None
    message: str = ""
    on_finasteride: bool = False

    @property
    def is_prior_cancer(self) -> bool:
        return self.priority is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "priority": self.priority.value if self.priority else None,
            "points": self.points,
            "color": self.color,
            "message": self.message,
            "on_finasteride": self.on_finasteride,
        }


@dataclass(frozen=True)
class VariableContribution:
    """One term of the logit: weight × value."""
    name: str
    weight: float
    value: float

    @property
    def contribution(self) -> float:
        return self.weight * self.value


@dataclass(frozen=True)
class CoreAssessmentResult:
    """
    Output of the 7-variable logistic model.

    `score_percent` is the rounded probability; the tier was chosen from
    `probability` itself, so a score of 8 can still be LOWER.
    """
    score_percent: int
    risk_tier: CoreRiskTier
    color: str
    score_range: str
    action: str
    confidence_low: int
    confidence_high: int
    ipss_total: int
    shim_total: int
    bmi_formatted: str
    age: int
    logit: float
    probability: float
    model_version: str
    contributions: Tuple[VariableContribution, ...] = field(default_factory=tuple)

    @property
    def confidence_range(self) -> str:
        return f"{self.confidence_low}%–{self.confidence_high}%"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score_percent": self.score_percent,
            "risk_tier": self.risk_tier.value,
            "color": self.color,
            "score_range": self.score_range,
            "action": self.action,
            "confidence_low": self.confidence_low,
            "confidence_high": self.confidence_high,
            "confidence_range": self.confidence_range,
            "ipss_total": self.ipss_total,
            "shim_total": self.shim_total,
            "bmi": self.bmi_formatted,
            "age": self.age,
            "model_version": self.model_version,
            "calculation_details": {
                "logit": self.logit,
                "probability": self.probability,
                "variable_contributions": [
                    {
                        "name": c.name,
                        "weight": c.weight,
                        "value": c.value,
                        "contribution": c.contribution,
                    }
                    for c in self.contributions
                ],
            },
        }


@dataclass(frozen=True)
class PostAssessmentResult:
    """Outcome of the PSA ± MRI point system."""
    risk_percent_range: str
    risk_category: PostRiskCategory
    risk_label: str
    risk_class: str
    color: str
    total_points: int
    core_points: int
    psa_points: int
    pirads_points: int
    next_steps: Tuple[str, ...]
    pirads_overridden: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "risk_percent_range": self.risk_percent_range,
            "risk_category": self.risk_category.value,
            "risk_label": self.risk_label,
            "risk_class": self.risk_class,
            "color": self.color,
            "total_points": self.total_points,
            "core_points": self.core_points,
            "psa_points": self.psa_points,
            "pirads_points": self.pirads_points,
            "next_steps": list(self.next_steps),
            "pirads_overridden": self.pirads_overridden,
        }
