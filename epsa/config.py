"""
ePSA Service — Configuration
============================
Settings come from the environment, with a project-level .env file loaded
first. Model coefficients are not configurable here; they live beside the
engine that uses them.
"""

import os
from pathlib import Path
from typing import List

from dotenv import load_dotenv

from epsa.utils.exceptions import ConfigurationError

# ── Paths ───────────────────────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parent.parent

# ── Load .env ───────────────────────────────────────────────────────────
load_dotenv(PROJECT_ROOT / ".env")

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _split_origins(raw: str) -> List[str]:
    origins = [o.strip() for o in raw.split(",") if o.strip()]
    return origins or ["*"]


LOG_LEVEL: str = os.getenv("EPSA_LOG_LEVEL", "INFO").upper()
LOG_FILE: str = os.getenv("EPSA_LOG_FILE", "")
REPORT_DIR: str = os.getenv("EPSA_REPORT_DIR", "reports")
CORS_ORIGINS: List[str] = _split_origins(os.getenv("EPSA_CORS_ORIGINS", "*"))
MODEL_VERSION: str = os.getenv("EPSA_MODEL_VERSION", "1.0.0")

API_TITLE = "ePSA Risk Assessment API"
API_VERSION = "1.0.0"

if LOG_LEVEL not in _LOG_LEVELS:
    raise ConfigurationError(
        f"EPSA_LOG_LEVEL must be one of {', '.join(_LOG_LEVELS)}, got {LOG_LEVEL!r}",
        setting="EPSA_LOG_LEVEL",
    )
