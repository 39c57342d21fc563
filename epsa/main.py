"""
ePSA Risk Assessment - FastAPI Application

API endpoints for:
- Pre-screening triage
- Core risk assessment (7-variable logistic model)
- PSA/MRI post-assessment
- CSV export and patient PDF reports
"""
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse, Response

from typing import Dict, Optional
from datetime import datetime
import os

from epsa import config
from epsa.core.reports import PatientReportGenerator, build_core_rows, build_post_rows, rows_to_csv
from epsa.core.scoring import (
    CoreAssessmentResult,
    EPSAEngine,
    PostAssessmentResult,
    calculate_bmi,
)
from epsa.core.scoring import core_risk, post_assessment, pre_screening
from epsa.models.schemas import (
    CoreAssessmentRequest,
    CoreAssessmentResponse,
    FullAssessmentRequest,
    HealthResponse,
    PostAssessmentRequest,
    PostAssessmentResponse,
    PreScreeningRequest,
    ReportResponse,
    TriageResponse,
)
from epsa.utils import ReportGenerationError, ValidationError, get_logger, setup_logging

setup_logging(config.LOG_LEVEL, config.LOG_FILE or None)
logger = get_logger(__name__)


# ---- FastAPI Application ----

app = FastAPI(
    title=config.API_TITLE,
    description="Prostate cancer risk screening: triage, logistic risk model and PSA/MRI refinement",
    version=config.API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---- In-memory storage (report id -> PDF path) ----
_reports: Dict[str, str] = {}
START_TIME = datetime.now()

_engine = EPSAEngine()
_report_gen: Optional[PatientReportGenerator] = None


def _get_report_generator() -> PatientReportGenerator:
    global _report_gen
    if _report_gen is None:
        _report_gen = PatientReportGenerator(output_dir=config.REPORT_DIR)
        logger.info(f"Report generator ready, writing to {config.REPORT_DIR}")
    return _report_gen


# ---- Error handlers ----

@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=422, content=exc.to_dict())


@app.exception_handler(ReportGenerationError)
async def report_error_handler(request: Request, exc: ReportGenerationError):
    return JSONResponse(status_code=500, content=exc.to_dict())


# ---- Utility Functions ----

def _resolve_bmi(req: CoreAssessmentRequest):
    """Explicit BMI wins; otherwise derive it from height and weight if given."""
    if req.bmi is not None:
        return req.bmi
    if req.height_cm is not None or req.height_ft is not None:
        return calculate_bmi(
            height_ft=req.height_ft,
            height_in=req.height_in,
            weight_lb=req.weight_lb,
            height_cm=req.height_cm,
            weight_kg=req.weight_kg,
        )
    return None


def _run_core(req: CoreAssessmentRequest):
    data = req.to_input(bmi=_resolve_bmi(req))
    return data, _engine.assess(data)


def _run_post(req: PostAssessmentRequest, core: Optional[CoreAssessmentResult] = None) -> PostAssessmentResult:
    core_points, core_score = req.core_points, req.core_score
    if core_points is None and core_score is None and core is not None:
        core_score = core.score_percent
    return _engine.assess_post(req.to_input(), core_points=core_points, core_score=core_score)


def _health() -> HealthResponse:
    return HealthResponse(
        status="healthy",
        version=config.API_VERSION,
        model_version=config.MODEL_VERSION,
        timestamp=datetime.now().isoformat(),
        uptime_seconds=(datetime.now() - START_TIME).total_seconds(),
    )


# ---- API Endpoints ----

@app.get("/", response_model=HealthResponse, tags=["Health"])
async def root():
    """API root - health check."""
    return _health()


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Health check endpoint."""
    return _health()


@app.post("/api/v1/pre-screening", response_model=TriageResponse, tags=["Assessment"])
async def pre_screening_triage(request: PreScreeningRequest):
    """
    Screening-priority triage from coarse risk factors.
    """
    result = _engine.triage(request.to_factors())
    return TriageResponse(**result.to_dict())


@app.post("/api/v1/assessment", response_model=CoreAssessmentResponse, tags=["Assessment"])
async def core_assessment(request: CoreAssessmentRequest):
    """
    Run the 7-variable logistic risk model.

    Missing or invalid answers return 422 with the offending field.
    """
    data, result = _run_core(request)
    return CoreAssessmentResponse(**result.to_dict(), warnings=_engine.warnings(data))


@app.post("/api/v1/post-assessment", response_model=PostAssessmentResponse, tags=["Assessment"])
async def post_assessment_step(request: PostAssessmentRequest):
    """
    Refine risk with PSA and, optionally, PI-RADS.
    """
    result = _run_post(request)
    return PostAssessmentResponse(**result.to_dict())


@app.post("/api/v1/export/csv", tags=["Export"])
async def export_csv(request: FullAssessmentRequest):
    """
    CSV download of an assessment (and its PSA/MRI step when supplied).
    """
    data, core = _run_core(request.assessment)
    rows = build_core_rows(data, core)
    if request.post is not None:
        post = _run_post(request.post, core)
        rows += build_post_rows(request.post.to_input(), core, post, core.model_version)

    filename = f"epsa-{datetime.now().strftime('%Y%m%d-%H%M%S')}.csv"
    return Response(
        content=rows_to_csv(rows),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.post("/api/v1/reports/generate", response_model=ReportResponse, tags=["Reports"])
async def generate_report(request: FullAssessmentRequest):
    """
    Generate a patient PDF report for an assessment.
    """
    _, core = _run_core(request.assessment)
    post = _run_post(request.post, core) if request.post is not None else None

    report = _get_report_generator().generate(core, post, patient_id=request.patient_id)
    _reports[report.report_id] = report.pdf_path
    logger.info(f"Report {report.report_id} registered for patient {request.patient_id}")

    return ReportResponse(
        report_id=report.report_id,
        pdf_path=report.pdf_path or "",
        generated_at=report.generated_at.isoformat(),
        summary=EPSAEngine.summarise(core, post),
    )


@app.get("/api/v1/reports/{report_id}/download", tags=["Reports"])
async def download_report(report_id: str):
    """
    Download a generated PDF report.
    """
    if report_id not in _reports:
        logger.warning(f"Download requested for unknown report {report_id}")
        raise HTTPException(status_code=404, detail="Report not found")

    pdf_path = _reports[report_id]

    if not pdf_path or not os.path.exists(pdf_path):
        raise HTTPException(status_code=404, detail="PDF file not found")

    return FileResponse(
        path=pdf_path,
        media_type="application/pdf",
        filename=f"{report_id}.pdf"
    )


@app.get("/api/v1/model", tags=["Reference"])
async def model_reference():
    """
    Coefficients, thresholds and point tables currently in use.
    """
    return {
        "model_version": config.MODEL_VERSION,
        "core": {
            "intercept": core_risk.INTERCEPT,
            "coefficients": {
                "age": core_risk.COEF_AGE,
                "race_black": core_risk.COEF_RACE_BLACK,
                "bmi": core_risk.COEF_BMI,
                "ipss_total": core_risk.COEF_IPSS,
                "exercise": core_risk.COEF_EXERCISE,
                "family_history": core_risk.COEF_FAMILY,
                "shim_total": core_risk.COEF_SHIM,
            },
            "thresholds": {
                "lower": core_risk.LOWER_THRESHOLD,
                "moderate": core_risk.MODERATE_THRESHOLD,
            },
        },
        "pre_screening": {
            "routine_max_points": pre_screening.ROUTINE_MAX_POINTS,
            "priority_max_points": pre_screening.PRIORITY_MAX_POINTS,
        },
        "post": {
            "psa_ladder": [
                {"max": 1.0, "points": post_assessment.PSA_BELOW_ONE_POINTS, "exclusive": True},
                *({"max": upper, "points": pts} for upper, pts in post_assessment.PSA_LADDER),
                {"max": None, "points": post_assessment.PSA_TOP_POINTS},
            ],
            "pirads_points": {str(k): v for k, v in post_assessment.PIRADS_POINTS.items()},
            "category_max_points": {
                "low": post_assessment.LOW_MAX_POINTS,
                "moderate": post_assessment.MODERATE_MAX_POINTS,
                "high": post_assessment.HIGH_MAX_POINTS,
            },
        },
    }


# ---- Run with uvicorn ----
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
