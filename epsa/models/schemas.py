"""
Assessment API Models
"""
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional, Union

from epsa.core.scoring import CoreAssessmentInput, PatientFactors, PostAssessmentInput

# Form values arrive as numbers or numeric text
FormNumber = Union[int, float, str]


class PreScreeningRequest(BaseModel):
    """Pre-screening questionnaire answers."""
    age_bracket: str = Field(..., description="40-49, 50-59, 60-69 or 70+")
    family_history: str = Field(..., description="none, 1-relative or 2+relatives")
    genetic_risk: str = Field(default="none", description="none or known-mutation")
    race: str = Field(..., description="white-asian, hispanic, black or other")
    prior_psa_history: str = Field(..., description="never, normal, elevated or not-sure")
    prior_biopsy_result: str = Field(default="none", description="none, negative or cancer")
    on_finasteride: bool = False

    def to_factors(self) -> PatientFactors:
        return PatientFactors(
            age_bracket=self.age_bracket,
            family_history=self.family_history,
            genetic_risk=self.genetic_risk,
            race=self.race,
            prior_psa_history=self.prior_psa_history,
            prior_biopsy_result=self.prior_biopsy_result,
            on_finasteride=self.on_finasteride,
        )


class TriageResponse(BaseModel):
    """Response for pre-screening triage."""
    category: str
    priority: Optional[str] = None
    points: Optional[int] = None
    color: Optional[str] = None
    message: str = ""
    on_finasteride: bool = False


class CoreAssessmentRequest(BaseModel):
    """
    Core assessment answers.

    Fields are optional at the schema level so that missing answers reach
    the engine and come back as a field-specific validation error.
    """
    age: Optional[FormNumber] = None
    race: Optional[str] = None
    bmi: Optional[FormNumber] = None
    height_ft: Optional[float] = Field(default=None, description="Used with height_in/weight_lb when bmi is absent")
    height_in: Optional[float] = None
    weight_lb: Optional[float] = None
    height_cm: Optional[float] = Field(default=None, description="Used with weight_kg when bmi is absent")
    weight_kg: Optional[float] = None
    ipss: Optional[List[Optional[FormNumber]]] = Field(default=None, description="7 answers, 0-5 each")
    shim: Optional[List[Optional[FormNumber]]] = Field(default=None, description="5 answers, 1-5 each")
    exercise: Optional[FormNumber] = Field(default=None, description="0 regular, 1 some, 2 none")
    family_history: Optional[FormNumber] = Field(default=None, description="Number of affected relatives")

    def to_input(self, bmi: Any = None) -> CoreAssessmentInput:
        return CoreAssessmentInput(
            age=self.age,
            race=self.race,
            bmi=self.bmi if bmi is None else bmi,
            ipss_answers=self.ipss,
            shim_answers=self.shim,
            exercise_level=self.exercise,
            family_history_count=self.family_history,
        )


class VariableContributionResponse(BaseModel):
    name: str
    weight: float
    value: float
    contribution: float


class CalculationDetails(BaseModel):
    logit: float
    probability: float
    variable_contributions: List[VariableContributionResponse]


class CoreAssessmentResponse(BaseModel):
    """Response for the core risk model."""
    score_percent: int
    risk_tier: str
    color: str
    score_range: str
    action: str
    confidence_low: int
    confidence_high: int
    confidence_range: str
    ipss_total: int
    shim_total: int
    bmi: str
    age: int
    model_version: str
    calculation_details: CalculationDetails
    warnings: List[str] = []


class PostAssessmentRequest(BaseModel):
    """PSA/MRI step; send either core_points or core_score."""
    core_points: Optional[int] = None
    core_score: Optional[float] = Field(default=None, ge=0, le=100)
    psa: Optional[FormNumber] = Field(default=None, description="PSA in ng/mL")
    know_pirads: bool = False
    pirads: Optional[FormNumber] = None

    def to_input(self) -> PostAssessmentInput:
        return PostAssessmentInput(
            psa_level=self.psa,
            knows_pirads=self.know_pirads,
            pirads_score=self.pirads,
        )


class PostAssessmentResponse(BaseModel):
    """Response for the PSA/MRI point system."""
    risk_percent_range: str
    risk_category: str
    risk_label: str
    risk_class: str
    color: str
    total_points: int
    core_points: int
    psa_points: int
    pirads_points: int
    next_steps: List[str]
    pirads_overridden: bool


class FullAssessmentRequest(BaseModel):
    """Core answers plus an optional PSA/MRI step, for export and reports."""
    patient_id: str = Field(default="ANONYMOUS")
    assessment: CoreAssessmentRequest
    post: Optional[PostAssessmentRequest] = None


class ReportResponse(BaseModel):
    """Response with report info."""
    report_id: str
    pdf_path: str
    generated_at: str
    summary: Dict[str, Any]


class HealthResponse(BaseModel):
    """Health status response."""
    status: str
    version: str
    model_version: str
    uptime_seconds: float
    timestamp: str
