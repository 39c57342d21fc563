"""
Utilities Package - Logging and Exception Handling
"""
from .logging import get_logger, setup_logging
from .exceptions import (
    EPSAError,
    ConfigurationError,
    ValidationError,
    ReportGenerationError,
)

__all__ = [
    "get_logger",
    "setup_logging",
    "EPSAError",
    "ConfigurationError",
    "ValidationError",
    "ReportGenerationError",
]
