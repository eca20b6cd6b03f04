"""
Forecast Pipeline for Forecast Intelligence

Runs the full chain over raw report payloads:
parse -> validate -> trends -> categorize -> P&L scenarios -> cash flow,
plus optional driver discovery. Each run allocates fresh output;
the pipeline holds configuration only.
"""

import logging
import warnings
from dataclasses import dataclass
from typing import Dict, List, Any, Optional

from .config.assumptions import (
    CashFlowAssumptions,
    ForecastAssumptions,
    check_finite,
    check_horizon
)
from .config.settings import get_config
from .discovery.driver_discovery import DriverDiscoveryResult, DriverDiscoveryService
from .errors import AssumptionOutOfRangeError, DataQualityWarning, DataValidationError
from .forecasting.cash_flow_statement import CashFlowProjection, CashFlowStatementService
from .forecasting.expense_categorizer import CategorizedExpenses, ExpenseCategorizer
from .forecasting.forecast_engine import ForecastEngine, ScenarioProjection
from .forecasting.scenarios import ScenarioMultiplierTable, ScenarioName
from .forecasting.service_business_forecaster import ServiceBusinessForecaster
from .forecasting.trend_analyzer import ExpenseBreakdown, RevenueTrendAnalysis, TrendAnalyzer
from .parsing.data_validator import DataValidationResult, DataValidator
from .parsing.models import ParsedStatement
from .parsing.report_parser import ReportParser

logger = logging.getLogger(__name__)

REVENUE_MODELS = ("standard", "service")


@dataclass
class ForecastBundle:
    """Everything one pipeline run produces"""
    statement: ParsedStatement
    validation: DataValidationResult
    revenue_trends: RevenueTrendAnalysis
    expense_breakdown: ExpenseBreakdown
    categorized_expenses: CategorizedExpenses
    pnl_projections: List[ScenarioProjection]
    cash_flow_projections: List[CashFlowProjection]
    current_cash_balance: float
    horizon_months: int
    revenue_model: str
    drivers: Optional[DriverDiscoveryResult] = None

    @property
    def forecast_mode(self) -> str:
        return self.pnl_projections[0].mode if self.pnl_projections else "standard"

    def pnl_for(self, scenario: ScenarioName) -> ScenarioProjection:
        return next(p for p in self.pnl_projections if p.scenario == ScenarioName(scenario))

    def cash_flow_for(self, scenario: ScenarioName) -> CashFlowProjection:
        return next(p for p in self.cash_flow_projections if p.scenario == ScenarioName(scenario))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "statement": self.statement.to_dict(),
            "validation": self.validation.to_dict(),
            "revenue_trends": self.revenue_trends.to_dict(),
            "expense_breakdown": self.expense_breakdown.to_dict(),
            "categorized_expenses": self.categorized_expenses.to_dict(),
            "pnl_projections": [p.to_dict() for p in self.pnl_projections],
            "cash_flow_projections": [p.to_dict() for p in self.cash_flow_projections],
            "current_cash_balance": self.current_cash_balance,
            "horizon_months": self.horizon_months,
            "revenue_model": self.revenue_model,
            "forecast_mode": self.forecast_mode,
            "drivers": self.drivers.to_dict() if self.drivers else None
        }


class ForecastPipeline:
    """
    End-to-end forecast over raw accounting reports.

    Provides:
    - Fatal parse and validation failures before any projection runs
    - Data quality warnings emitted as DataQualityWarning
    - Standard, enhanced or service revenue models
    - Three-scenario P&L and cash flow projections in one bundle

    Example:
    ```python
    pipeline = ForecastPipeline()

    bundle = pipeline.run(pnl_payload, balance_sheet=balance_payload, horizon_months=12)
    baseline = bundle.cash_flow_for(ScenarioName.BASELINE)
    print(baseline.summary.ending_cash_position, baseline.summary.risk_level.value)
    ```
    """

    def __init__(
        self,
        settings: Any = None,
        multipliers: Optional[ScenarioMultiplierTable] = None
    ):
        """
        Initialize pipeline.

        Args:
            settings: Settings class (defaults to get_config())
            multipliers: Scenario multiplier table shared by every stage
        """
        self.settings = settings or get_config()
        self.multipliers = multipliers or ScenarioMultiplierTable()

        s = self.settings
        self.parser = ReportParser(tolerance=s.CONSISTENCY_TOLERANCE)
        self.validator = DataValidator(tolerance=s.CONSISTENCY_TOLERANCE, min_completeness=s.MIN_COMPLETENESS)
        self.trend_analyzer = TrendAnalyzer(min_history_months=s.MIN_HISTORY_MONTHS)
        self.categorizer = ExpenseCategorizer(min_coverage=s.ENHANCED_MODE_MIN_COVERAGE)
        self.forecast_engine = ForecastEngine(self.multipliers, max_horizon_months=s.MAX_HORIZON_MONTHS)
        self.cash_flow_service = CashFlowStatementService(
            trend_analyzer=self.trend_analyzer,
            categorizer=self.categorizer,
            forecast_engine=self.forecast_engine,
            multipliers=self.multipliers,
            max_horizon_months=s.MAX_HORIZON_MONTHS
        )
        self.driver_discovery = DriverDiscoveryService(parser=self.parser)

    def run(
        self,
        pnl_report: Dict[str, Any],
        balance_sheet: Optional[Dict[str, Any]] = None,
        current_cash_balance: Optional[float] = None,
        horizon_months: Optional[int] = None,
        forecast_assumptions: Optional[ForecastAssumptions] = None,
        cash_flow_assumptions: Optional[CashFlowAssumptions] = None,
        revenue_model: str = "standard",
        average_ticket: Optional[float] = None,
        include_drivers: bool = True
    ) -> ForecastBundle:
        """
        Run the full forecast.

        Args:
            pnl_report: Raw monthly Profit & Loss payload
            balance_sheet: Raw Balance Sheet payload used when no cash balance is given
            current_cash_balance: Cash on hand at the start of the horizon
            horizon_months: Months to project (defaults to DEFAULT_HORIZON_MONTHS)
            forecast_assumptions: P&L overrides
            cash_flow_assumptions: Working capital, capex and financing inputs
            revenue_model: "standard" or "service"
            average_ticket: Monthly revenue per customer for the service model
            include_drivers: Also run driver discovery

        Raises:
            MalformedReportError: the report cannot be parsed
            DataValidationError: the statement fails validation
            AssumptionOutOfRangeError: invalid horizon, cash or assumption values
        """
        if revenue_model not in REVENUE_MODELS:
            raise AssumptionOutOfRangeError("revenue_model", revenue_model, f"expected one of {REVENUE_MODELS}")
        if horizon_months is None:
            horizon_months = self.settings.DEFAULT_HORIZON_MONTHS
        check_horizon(horizon_months, self.settings.MAX_HORIZON_MONTHS)
        forecast_assumptions = (forecast_assumptions or ForecastAssumptions()).validate()
        cash_flow_assumptions = (cash_flow_assumptions or CashFlowAssumptions(
            negative_cash_months_threshold=self.settings.NEGATIVE_CASH_MONTHS_THRESHOLD
        )).validate()

        statement = self.parser.parse(pnl_report)
        validation = self.validator.validate(statement)
        if not validation.is_valid:
            logger.error(f"Statement failed validation: {validation.errors}")
            raise DataValidationError(validation)
        for message in validation.warnings:
            warnings.warn(message, DataQualityWarning, stacklevel=2)

        cash = self._resolve_cash(balance_sheet, current_cash_balance)

        trends = self.trend_analyzer.analyze_revenue_trends(statement)
        breakdown = self.trend_analyzer.analyze_expense_structure(statement)
        categorized = self.categorizer.categorize_expenses(
            statement, trends, breakdown, forecast_assumptions.inflation_scenario
        )

        if revenue_model == "service":
            forecaster = ServiceBusinessForecaster(
                average_ticket=average_ticket,
                multipliers=self.multipliers,
                forecast_engine=self.forecast_engine
            )
            pnl = forecaster.generate_three_scenario_forecast(
                statement, trends, breakdown, horizon_months, forecast_assumptions
            )
        elif self._use_enhanced(forecast_assumptions, categorized):
            pnl = self.forecast_engine.generate_enhanced_three_scenario_forecast(
                statement, trends, breakdown, categorized, horizon_months, forecast_assumptions
            )
        else:
            pnl = self.forecast_engine.generate_three_scenario_forecast(
                statement, trends, breakdown, horizon_months, forecast_assumptions
            )

        cash_flows = self.cash_flow_service.generate_three_scenario_cash_flow_projections(
            statement, cash, horizon_months,
            assumptions=cash_flow_assumptions,
            pnl_projections=pnl
        )

        drivers = self.driver_discovery.discover_drivers(statement) if include_drivers else None

        bundle = ForecastBundle(
            statement=statement,
            validation=validation,
            revenue_trends=trends,
            expense_breakdown=breakdown,
            categorized_expenses=categorized,
            pnl_projections=pnl,
            cash_flow_projections=cash_flows,
            current_cash_balance=cash,
            horizon_months=horizon_months,
            revenue_model=revenue_model,
            drivers=drivers
        )
        logger.info(
            f"Forecast complete: {horizon_months} months, {bundle.forecast_mode} mode, "
            f"{len(validation.warnings)} data quality warning(s)"
        )
        return bundle

    def _resolve_cash(
        self,
        balance_sheet: Optional[Dict[str, Any]],
        current_cash_balance: Optional[float]
    ) -> float:
        if current_cash_balance is not None:
            check_finite("current_cash_balance", current_cash_balance)
            return float(current_cash_balance)
        if balance_sheet is None:
            raise AssumptionOutOfRangeError(
                "current_cash_balance", None, "supply a cash balance or a balance sheet"
            )
        return self.parser.extract_cash_balance(balance_sheet)

    def _use_enhanced(self, assumptions: ForecastAssumptions, categorized: CategorizedExpenses) -> bool:
        if assumptions.use_enhanced_mode is not None:
            return assumptions.use_enhanced_mode
        return categorized.forecasting_metrics.enhanced_mode_reliable
