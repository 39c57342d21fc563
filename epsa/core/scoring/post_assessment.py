"""
Post-Assessment (PSA ± MRI) Point Rules

Refines the core risk once a PSA value, and optionally a PI-RADS score, is
known. Points from the core assessment, the PSA ladder and PI-RADS 3 are
added and the total is bucketed into four categories. PI-RADS 4 and 5 are
hard overrides that bypass the ladder.

The core assessment's contribution (`core_points`) is an input here. The
four-band conversion from a core score is available as
`core_score_to_points` for callers that hold only the percentage.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Optional, Tuple

from epsa.utils import get_logger
from .base import PostAssessmentResult, PostRiskCategory

logger = get_logger(__name__)

# ── PSA ladder: (inclusive upper bound ng/mL, points); anything above → 40 ──
PSA_BELOW_ONE_POINTS = 0
PSA_LADDER = (
    (2.5, 5),
    (4.0, 10),
    (10.0, 20),
)
PSA_TOP_POINTS = 40

PIRADS_POINTS = {2: 0, 3: 10}

# ── Category ladder (inclusive upper bound on total points) ─────────────────
LOW_MAX_POINTS      = 40
MODERATE_MAX_POINTS = 80
HIGH_MAX_POINTS     = 120

LEARN_MORE = "Learn more about prostate cancer health."
MOBILE_UNIT = "Find out where the Mount Sinai Mobile Unit is today for a free PSA test."

_CATEGORIES = {
    PostRiskCategory.LOW: dict(
        pct="0–10%",
        label="Low (0–40 pts)",
        risk_class="low-risk",
        color="green",
        steps=(
            "Focus on healthy lifestyle—maintain a balanced diet, exercise regularly, and avoid smoking.",
            "PSA Screening: For most people under 40 or over 70, routine PSA testing may cause more "
            "harm than good. If you're between 55–69 or at higher risk (e.g., African American or "
            "strong family history), you can discuss benefits and risks with your doctor.",
            LEARN_MORE,
            "Check back next year and re-calculate your risk!",
        ),
    ),
    PostRiskCategory.MODERATE: dict(
        pct="10–20%",
        label="Moderate (41–80 pts)",
        risk_class="moderate-risk",
        color="yellow",
        steps=(
            "If you have not already gotten a PSA test, consider getting one, especially if you are "
            "in your 50s or early 60s. PSA testing can help detect prostate cancer early, but can "
            "also lead to overdiagnosis and false alarms. Discuss with your provider to learn more.",
            "If you have added risk factors (African American race, positive family history, or "
            "known genetic mutations), you may want to consider PSA testing starting at age 45.",
            MOBILE_UNIT,
            "Schedule a prostate health evaluation with your doctor.",
            "Focus on improving lifestyle factors like diet, exercise, and quitting smoking.",
            LEARN_MORE,
        ),
    ),
    PostRiskCategory.HIGH: dict(
        pct="20–40%",
        label="High (81–120 pts)",
        risk_class="high-risk",
        color="orange",
        steps=(
            "Discuss PSA screening and genetic testing options with your provider.",
            "If not already done, consider prostate MRI if PSA is elevated (>4 ng/mL).",
            MOBILE_UNIT,
            "Consult with a urologist for personalized guidance.",
            "Continue healthy habits (diet, exercise) and stay informed about active surveillance "
            "vs. definitive treatment options if PSA is elevated.",
            LEARN_MORE,
        ),
    ),
    PostRiskCategory.VERY_HIGH: dict(
        pct="40–70%",
        label="Very High (>120 pts)",
        risk_class="very-high-risk",
        color="red",
        steps=(
            "You may wish to speak with a urologist promptly.",
            "Consider PSA, MRI, and possibly biopsy depending on clinical evaluation.",
            "Genetic testing and counseling are strongly recommended.",
            "Encourage family awareness and screening if applicable.",
            MOBILE_UNIT,
            LEARN_MORE,
        ),
    ),
    PostRiskCategory.PIRADS4_OVERRIDE: dict(
        pct="52% (43–61%)",
        label="Very High-Risk",
        risk_class="very-high-risk",
        color="orange",
        steps=(
            "Discuss PI-RADS 4 lesion on MRI with your urologist.",
            "Strongly advise MRI-targeted biopsy.",
        ),
    ),
    PostRiskCategory.PIRADS5_OVERRIDE: dict(
        pct="89% (76–97%)",
        label="Very High-Risk",
        risk_class="very-high-risk",
        color="red",
        steps=(
            "PI-RADS 5 lesion: Urgent urology referral recommended.",
            "Strongly advise MRI-guided biopsy.",
            "Discuss genetic counseling if needed.",
        ),
    ),
}

_OVERRIDES = {
    4: PostRiskCategory.PIRADS4_OVERRIDE,
    5: PostRiskCategory.PIRADS5_OVERRIDE,
}

# Core score → points: (exclusive upper score, band start score, base pts, span pts, width)
CORE_SCORE_BANDS = (
    (21, 0, 0, 40, 21),
    (31, 21, 40, 40, 10),
    (41, 31, 80, 40, 10),
)
CORE_SCORE_TOP_BAND = (41, 120, 80, 59)

# Leading number of a typed value; trailing units or junk are ignored
_LEADING_FLOAT = re.compile(r"\s*[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")
_LEADING_INT = re.compile(r"\s*[+-]?\d+")


@dataclass(frozen=True)
class PostAssessmentInput:
    """PSA lab value and optional MRI result, as entered on the form."""
    psa_level: Any = None
    knows_pirads: bool = False
    pirads_score: Any = None


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def core_score_to_points(score_percent: float) -> int:
    """
    Convert a core score (0–100 %) into post-assessment points.

    Four piecewise-linear bands: 0–20 % → 0–40 pts, 21–30 % → 40–80,
    31–40 % → 80–120, 41–100 % → 120–200.
    """
    for upper, start, base, span, width in CORE_SCORE_BANDS:
        if score_percent < upper:
            return base + _round_half_up((score_percent - start) / width * span)
    start, base, span, width = CORE_SCORE_TOP_BAND
    return base + _round_half_up((score_percent - start) / width * span)


def parse_psa(value: Any) -> float:
    """
    Form PSA text → ng/mL.

    Reads the leading number the way lab values are typed ("3 ng/mL" → 3.0,
    "1_0" → 1.0). Anything without a leading number counts as 0.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        match = _LEADING_FLOAT.match(value)
        if match is None:
            return 0.0
        number = float(match.group(0))
    else:
        return 0.0
    return number if math.isfinite(number) else 0.0


def psa_points(value: Any) -> int:
    """PSA ladder: <1 → 0, ≤2.5 → 5, ≤4 → 10, ≤10 → 20, above → 40."""
    psa = parse_psa(value)
    if psa < 1:
        return PSA_BELOW_ONE_POINTS
    for upper, points in PSA_LADDER:
        if psa <= upper:
            return points
    return PSA_TOP_POINTS


def _parse_pirads(post_input: PostAssessmentInput) -> Optional[int]:
    if not post_input.knows_pirads:
        return None
    raw = post_input.pirads_score
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, float):
        # 4.0 and 4.9 both read as PI-RADS 4
        return int(raw) if math.isfinite(raw) else None
    match = _LEADING_INT.match(str(raw))
    return int(match.group(0)) if match else None


def category_for_points(total_points: int) -> PostRiskCategory:
    if total_points <= LOW_MAX_POINTS:
        return PostRiskCategory.LOW
    if total_points <= MODERATE_MAX_POINTS:
        return PostRiskCategory.MODERATE
    if total_points <= HIGH_MAX_POINTS:
        return PostRiskCategory.HIGH
    return PostRiskCategory.VERY_HIGH


def _build(
    category: PostRiskCategory,
    core_points: int,
    psa_pts: int,
    pirads_pts: int,
) -> PostAssessmentResult:
    info = _CATEGORIES[category]
    steps: Tuple[str, ...] = info["steps"]
    return PostAssessmentResult(
        risk_percent_range=info["pct"],
        risk_category=category,
        risk_label=info["label"],
        risk_class=info["risk_class"],
        color=info["color"],
        total_points=core_points + psa_pts + pirads_pts,
        core_points=core_points,
        psa_points=psa_pts,
        pirads_points=pirads_pts,
        next_steps=steps,
        pirads_overridden=category.is_override,
    )


def compute_post_risk(core_points: int, post_input: PostAssessmentInput) -> PostAssessmentResult:
    """
    Combine core points with PSA and PI-RADS.

    Never raises for bad lab text: an unparseable PSA scores 0 and an
    unparseable PI-RADS is treated as unknown.

    Args:
        core_points: Points carried over from the core assessment.
        post_input: PSA and PI-RADS answers.

    Returns:
        PostAssessmentResult. On a PI-RADS 4/5 override `total_points`
        is core + PSA points; PI-RADS adds nothing.
    """
    psa_pts = psa_points(post_input.psa_level)
    pirads = _parse_pirads(post_input)

    override = _OVERRIDES.get(pirads) if pirads is not None else None
    if override is not None:
        logger.debug(f"Post-assessment: PI-RADS {pirads} override → {override.value}")
        return _build(override, core_points, psa_pts, 0)

    pirads_pts = PIRADS_POINTS.get(pirads, 0) if pirads is not None else 0
    category = category_for_points(core_points + psa_pts + pirads_pts)

    logger.debug(
        f"Post-assessment: core={core_points} psa={psa_pts} pirads={pirads_pts} "
        f"→ {category.value}"
    )
    return _build(category, core_points, psa_pts, pirads_pts)
