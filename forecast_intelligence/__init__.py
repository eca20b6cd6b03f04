"""
Forecast Intelligence

Three-scenario P&L and cash flow forecasting for small and mid-sized
businesses, driven by a monthly profit & loss report from an accounting
provider.
"""

from .errors import (
    ForecastIntelligenceError,
    MalformedInputError,
    MalformedReportError,
    DataValidationError,
    InsufficientHistoryError,
    AssumptionOutOfRangeError,
    ReportFetchError,
    DataQualityWarning
)
from .config import (
    ForecastAssumptions,
    WorkingCapitalAssumptions,
    CapexAssumptions,
    FinancingAssumptions,
    CashFlowAssumptions
)
from .parsing import ReportParser, DataValidator, DataValidationResult, ParsedStatement
from .forecasting import (
    TrendAnalyzer,
    ExpenseCategorizer,
    ForecastEngine,
    ServiceBusinessForecaster,
    CashFlowStatementService,
    ScenarioName,
    ScenarioMultiplier,
    ScenarioMultiplierTable
)
from .discovery import DriverDiscoveryService
from .pipeline import ForecastPipeline, ForecastBundle

__version__ = "0.1.0"

__all__ = [
    # Errors
    'ForecastIntelligenceError',
    'MalformedInputError',
    'MalformedReportError',
    'DataValidationError',
    'InsufficientHistoryError',
    'AssumptionOutOfRangeError',
    'ReportFetchError',
    'DataQualityWarning',
    # Assumptions
    'ForecastAssumptions',
    'WorkingCapitalAssumptions',
    'CapexAssumptions',
    'FinancingAssumptions',
    'CashFlowAssumptions',
    # Components
    'ReportParser',
    'DataValidator',
    'DataValidationResult',
    'ParsedStatement',
    'TrendAnalyzer',
    'ExpenseCategorizer',
    'ForecastEngine',
    'ServiceBusinessForecaster',
    'CashFlowStatementService',
    'ScenarioName',
    'ScenarioMultiplier',
    'ScenarioMultiplierTable',
    'DriverDiscoveryService',
    # Pipeline
    'ForecastPipeline',
    'ForecastBundle',
]
