"""
Custom Exception Hierarchy

Every error carries a machine-readable code and a details dict so the API
layer can return it unchanged.
"""
from typing import Optional, Dict, Any


class EPSAError(Exception):
    """Base exception for all ePSA errors."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details
        }


class ConfigurationError(EPSAError):
    """Invalid environment configuration."""

    def __init__(
        self,
        message: str,
        setting: str = "unknown",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="CONFIGURATION_ERROR",
            details={"setting": setting, **(details or {})}
        )
        self.setting = setting


class ValidationError(EPSAError):
    """
    A required assessment answer is missing or outside its domain.

    User-correctable: the caller should ask for the field again rather
    than show a score.
    """

    def __init__(
        self,
        message: str,
        field: str = "unknown",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            details={"field": field, **(details or {})}
        )
        self.field = field


class ReportGenerationError(EPSAError):
    """Errors during report generation."""

    def __init__(
        self,
        message: str,
        report_type: str = "unknown",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="REPORT_ERROR",
            details={"report_type": report_type, **(details or {})}
        )
        self.report_type = report_type
