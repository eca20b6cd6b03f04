"""
Forecasting Module for Forecast Intelligence

Trend analysis, expense categorization, three-scenario P&L projection,
the service-business revenue model and the projected cash flow statement.
"""

from .metrics import (
    linear_fit,
    compound_growth_fit,
    coefficient_of_variation,
    correlation,
    percent_changes
)
from .trend_analyzer import (
    TrendAnalyzer,
    TrendDirection,
    ConfidenceLevel,
    RevenueTrendAnalysis,
    CostGroupSummary,
    ExpenseBreakdown
)
from .scenarios import (
    ScenarioName,
    ScenarioMultiplier,
    ScenarioMultiplierTable,
    ScenarioAssumptions,
    shift_confidence
)
from .expense_categorizer import (
    ExpenseCategorizer,
    ExpenseBehavior,
    ExpenseCategory,
    CategorizedExpenses,
    CategoryRule,
    DEFAULT_CATEGORY_RULES,
    InflationKey,
    InflationAssumptions,
    INFLATION_PRESETS,
    SeasonalCostPattern,
    StepChange,
    UncategorizedCosts,
    ForecastingMetrics
)
from .forecast_engine import (
    ForecastEngine,
    ForecastedMonth,
    ProjectionSummary,
    ScenarioProjection,
    UNCATEGORIZED
)
from .service_business_forecaster import (
    ServiceBusinessForecaster,
    ServiceBusinessMetrics,
    ServiceScenarioAssumptions,
    BusinessMaturity
)
from .cash_flow_statement import (
    CashFlowStatementService,
    CashFlowProjection,
    CashFlowMonth,
    CashFlowSummary,
    OperatingActivities,
    InvestingActivities,
    FinancingActivities,
    WorkingCapitalModeler,
    AssetProjectionModeler
)

__all__ = [
    # Statistics
    'linear_fit',
    'compound_growth_fit',
    'coefficient_of_variation',
    'correlation',
    'percent_changes',
    # Trends
    'TrendAnalyzer',
    'TrendDirection',
    'ConfidenceLevel',
    'RevenueTrendAnalysis',
    'CostGroupSummary',
    'ExpenseBreakdown',
    # Scenarios
    'ScenarioName',
    'ScenarioMultiplier',
    'ScenarioMultiplierTable',
    'ScenarioAssumptions',
    'shift_confidence',
    # Expense categorization
    'ExpenseCategorizer',
    'ExpenseBehavior',
    'ExpenseCategory',
    'CategorizedExpenses',
    'CategoryRule',
    'DEFAULT_CATEGORY_RULES',
    'InflationKey',
    'InflationAssumptions',
    'INFLATION_PRESETS',
    'SeasonalCostPattern',
    'StepChange',
    'UncategorizedCosts',
    'ForecastingMetrics',
    # P&L projection
    'ForecastEngine',
    'ForecastedMonth',
    'ProjectionSummary',
    'ScenarioProjection',
    'UNCATEGORIZED',
    # Service business model
    'ServiceBusinessForecaster',
    'ServiceBusinessMetrics',
    'ServiceScenarioAssumptions',
    'BusinessMaturity',
    # Cash flow
    'CashFlowStatementService',
    'CashFlowProjection',
    'CashFlowMonth',
    'CashFlowSummary',
    'OperatingActivities',
    'InvestingActivities',
    'FinancingActivities',
    'WorkingCapitalModeler',
    'AssetProjectionModeler',
]
