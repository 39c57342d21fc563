"""
Pytest Configuration and Fixtures

Shared answer sets for the ePSA scoring tests.
"""
import pytest
from pathlib import Path
import sys

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from epsa.core.scoring import CoreAssessmentInput, PatientFactors, PostAssessmentInput


@pytest.fixture
def young_healthy_input() -> CoreAssessmentInput:
    """45-year-old, BMI 22, no symptoms, full SHIM, regular exercise, no family history."""
    return CoreAssessmentInput(
        age=45,
        race="white",
        bmi=22,
        ipss_answers=[0, 0, 0, 0, 0, 0, 0],
        shim_answers=[5, 5, 5, 5, 5],
        exercise_level=0,
        family_history_count=0,
    )


@pytest.fixture
def older_symptomatic_input() -> CoreAssessmentInput:
    """70-year-old, BMI 30, IPSS 35, SHIM 5, no exercise, family history."""
    return CoreAssessmentInput(
        age=70,
        race="white",
        bmi=30,
        ipss_answers=[5, 5, 5, 5, 5, 5, 5],
        shim_answers=[1, 1, 1, 1, 1],
        exercise_level=2,
        family_history_count=1,
    )


@pytest.fixture
def high_risk_input() -> CoreAssessmentInput:
    """Profile that lands in the HIGHER tier (old, high BMI, low SHIM)."""
    return CoreAssessmentInput(
        age=95,
        race="white",
        bmi=50,
        ipss_answers=[0, 0, 0, 0, 0, 0, 0],
        shim_answers=[1, 1, 1, 1, 1],
        exercise_level=0,
        family_history_count=0,
    )


@pytest.fixture
def routine_factors() -> PatientFactors:
    return PatientFactors(
        age_bracket="50-59",
        family_history="none",
        genetic_risk="none",
        race="white-asian",
        prior_psa_history="normal",
        prior_biopsy_result="none",
    )


@pytest.fixture
def psa_only_input() -> PostAssessmentInput:
    return PostAssessmentInput(psa_level="3", knows_pirads=False)


@pytest.fixture
def core_payload() -> dict:
    """JSON body for the assessment endpoint."""
    return {
        "age": 55,
        "race": "white",
        "bmi": 25,
        "ipss": [2, 2, 2, 2, 2, 2, 2],
        "shim": [3, 3, 3, 3, 3],
        "exercise": 1,
        "family_history": 0,
    }
