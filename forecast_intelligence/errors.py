"""
Error Taxonomy for Forecast Intelligence

Exceptions raised across the parsing, validation and projection stages.
Structural and assumption errors abort the pipeline; data quality issues
are reported as warnings and left to the caller.
"""

from typing import Any, Optional


class ForecastIntelligenceError(Exception):
    """Base class for all forecast intelligence errors"""


class MalformedInputError(ForecastIntelligenceError):
    """Raw input is unparseable or structurally inconsistent"""


class MalformedReportError(MalformedInputError):
    """An accounting report payload could not be normalized"""

    def __init__(self, message: str, row_label: Optional[str] = None):
        self.row_label = row_label
        if row_label:
            message = f"{message} (row: {row_label})"
        super().__init__(message)


class DataValidationError(ForecastIntelligenceError):
    """A parsed statement failed validation and cannot be forecast"""

    def __init__(self, result: Any):
        self.result = result
        errors = getattr(result, 'errors', []) or []
        detail = "; ".join(errors) if errors else "completeness below minimum"
        super().__init__(f"Statement failed validation: {detail}")


class InsufficientHistoryError(ForecastIntelligenceError):
    """Too few months of history to fit a trend"""

    def __init__(self, available: int, required: int):
        self.available = available
        self.required = required
        super().__init__(
            f"Trend fitting needs at least {required} months of history, got {available}"
        )


class AssumptionOutOfRangeError(ForecastIntelligenceError, ValueError):
    """A forecast assumption or entry-point argument is outside its valid range"""

    def __init__(self, name: str, value: Any, reason: str):
        self.name = name
        self.value = value
        super().__init__(f"Invalid {name}={value!r}: {reason}")


class ReportFetchError(ForecastIntelligenceError):
    """The accounting provider could not return a report"""

    def __init__(self, report_name: str, message: str, status_code: Optional[int] = None):
        self.report_name = report_name
        self.status_code = status_code
        super().__init__(f"Failed to fetch {report_name}: {message}")


class DataQualityWarning(UserWarning):
    """Non-fatal data quality issue surfaced while proceeding with a forecast"""
