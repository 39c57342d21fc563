"""
CSV Export

Builds the sectioned rows (Metadata / Inputs / Results) that accompany an
assessment download and renders them as CSV text. Nothing is written to
disk here; the API streams the text back.
"""
from __future__ import annotations

import csv
import io
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from epsa.core.scoring import (
    CoreAssessmentInput,
    CoreAssessmentResult,
    PostAssessmentInput,
    PostAssessmentResult,
)

Row = Dict[str, Any]


def _timestamp(now: Optional[datetime]) -> str:
    return (now or datetime.now(timezone.utc)).isoformat()


def _metadata(form: str, model_version: str, now: Optional[datetime]) -> Row:
    return {
        "Section": "Metadata",
        "Timestamp": _timestamp(now),
        "ModelVersion": model_version,
        "Form": form,
        "ExportedBy": "User",
    }


def build_core_rows(
    data: CoreAssessmentInput,
    result: CoreAssessmentResult,
    now: Optional[datetime] = None,
) -> List[Row]:
    """Rows for the core assessment: answers as entered plus the result."""
    return [
        _metadata("ePSA Part 1", result.model_version, now),
        {
            "Section": "Inputs",
            "Age": data.age,
            "Race": data.race,
            "BMI": data.bmi,
            "FamilyHistory": data.family_history_count,
            "Exercise": data.exercise_level,
            "IPSS_Total": result.ipss_total,
            "SHIM_Total": result.shim_total,
        },
        {
            "Section": "Results",
            "RiskScore": result.score_percent,
            "RiskTier": result.risk_tier.value,
            "ScoreRange": result.score_range,
            "DisplayRange": result.confidence_range,
            "Action": result.action,
            "Color": result.color,
            "ModelVersion": result.model_version,
        },
    ]


def build_post_rows(
    post_input: PostAssessmentInput,
    core_result: Optional[CoreAssessmentResult],
    post_result: PostAssessmentResult,
    model_version: str,
    now: Optional[datetime] = None,
) -> List[Row]:
    """Rows for the PSA/MRI step, with the core result when it is known."""
    rows = [
        _metadata("ePSA Part 2", model_version, now),
        {
            "Section": "Inputs",
            "PSA": post_input.psa_level,
            "KnowPIRADS": post_input.knows_pirads,
            "PI_RADS": post_input.pirads_score,
        },
    ]
    if core_result is not None:
        rows.append({
            "Section": "Pre-Result (Part 1)",
            "PreScore": core_result.score_percent,
            "PreRiskTier": core_result.risk_tier.value,
            "PreScoreRange": core_result.score_range,
            "PreDisplayRange": core_result.confidence_range,
        })
    rows.append({
        "Section": "Post-Result (Educational Summary)",
        "RiskPct": post_result.risk_percent_range,
        "RiskCategory": post_result.risk_label,
        "RiskClass": post_result.risk_class,
        "TotalPoints": post_result.total_points,
        "PrePoints": post_result.core_points,
        "PSAPoints": post_result.psa_points,
        "PI_RADSPoints": post_result.pirads_points,
        "PI_RADSOverridden": post_result.pirads_overridden,
        "ModelVersion": model_version,
    })
    return rows


def rows_to_csv(rows: Sequence[Row]) -> str:
    """
    Render rows as CSV text.

    The header is the union of every row's keys in first-seen order, so
    each section keeps its own columns; cells a row lacks are left empty.
    None becomes an empty cell and every value is quoted.
    """
    if not rows:
        return ""

    header: List[str] = []
    for row in rows:
        for key in row:
            if key not in header:
                header.append(key)

    buffer = io.StringIO()
    writer = csv.DictWriter(
        buffer,
        fieldnames=header,
        quoting=csv.QUOTE_ALL,
        lineterminator="\n",
        restval="",
    )
    writer.writeheader()
    for row in rows:
        writer.writerow({k: ("" if v is None else v) for k, v in row.items()})
    return buffer.getvalue()
