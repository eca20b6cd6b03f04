"""
Integrations Module for Forecast Intelligence

Adapters that fetch raw accounting reports for the forecast pipeline.
"""

from .quickbooks_reports import (
    QuickBooksReportClient,
    QuickBooksEnvironment,
    ForecastInputs
)

__all__ = [
    'QuickBooksReportClient',
    'QuickBooksEnvironment',
    'ForecastInputs',
]
