"""
Cash Flow Statement Service for Forecast Intelligence

Converts each scenario's P&L projection into a monthly cash flow
statement: operating activities (net income, depreciation add-back and
working-capital movements), investing activities (capital expenditures)
and financing activities (debt service and owner draws), with a running
cash balance that starts from the supplied current cash position.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Any, Optional, Tuple
import numpy as np

from ..config.assumptions import (
    CashFlowAssumptions,
    ForecastAssumptions,
    WorkingCapitalAssumptions,
    CapexAssumptions,
    check_finite,
    check_horizon
)
from ..parsing.models import ParsedStatement
from ..patterns.risk_classification import RiskLevel, create_cash_flow_risk_classifier
from .expense_categorizer import ExpenseCategorizer
from .forecast_engine import ForecastEngine, ScenarioProjection
from .scenarios import ScenarioName, ScenarioMultiplierTable
from .trend_analyzer import TrendAnalyzer

logger = logging.getLogger(__name__)

DEPRECIATION_PATTERN = re.compile(r"depreciat|amorti", re.IGNORECASE)


@dataclass
class OperatingActivities:
    """Cash from operations; working-capital fields are cash effects"""
    net_income: float
    depreciation: float
    accounts_receivable_change: float
    inventory_change: float
    accounts_payable_change: float
    net_cash_from_operations: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "net_income": self.net_income,
            "depreciation": self.depreciation,
            "accounts_receivable_change": self.accounts_receivable_change,
            "inventory_change": self.inventory_change,
            "accounts_payable_change": self.accounts_payable_change,
            "net_cash_from_operations": self.net_cash_from_operations
        }


@dataclass
class InvestingActivities:
    capital_expenditures: float
    net_cash_from_investing: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "capital_expenditures": self.capital_expenditures,
            "net_cash_from_investing": self.net_cash_from_investing
        }


@dataclass
class FinancingActivities:
    debt_service: float
    owner_draws: float
    net_cash_from_financing: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "debt_service": self.debt_service,
            "owner_draws": self.owner_draws,
            "net_cash_from_financing": self.net_cash_from_financing
        }


@dataclass
class CashFlowMonth:
    """One month of a projected cash flow statement"""
    month: str
    date: date
    revenue: float
    operating: OperatingActivities
    investing: InvestingActivities
    financing: FinancingActivities
    beginning_cash: float
    net_cash_change: float
    ending_cash: float
    balances: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "month": self.month,
            "date": self.date.isoformat(),
            "revenue": self.revenue,
            "operating_activities": self.operating.to_dict(),
            "investing_activities": self.investing.to_dict(),
            "financing_activities": self.financing.to_dict(),
            "beginning_cash": self.beginning_cash,
            "net_cash_change": self.net_cash_change,
            "ending_cash": self.ending_cash,
            "balances": self.balances
        }


@dataclass
class CashFlowSummary:
    """Summary statistics of one scenario's cash flow"""
    ending_cash_position: float
    lowest_cash_position: float
    total_cash_generated: float
    average_monthly_cash_flow: float
    operating_cash_flow_margin: float      # % of revenue
    cash_flow_volatility: float            # std of monthly net change
    negative_cash_flow_months: int
    largest_cash_outflow: float
    months_of_cash_cushion: Optional[float]
    cash_zero_month: Optional[str]
    risk_level: RiskLevel

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ending_cash_position": self.ending_cash_position,
            "lowest_cash_position": self.lowest_cash_position,
            "total_cash_generated": self.total_cash_generated,
            "average_monthly_cash_flow": self.average_monthly_cash_flow,
            "operating_cash_flow_margin": self.operating_cash_flow_margin,
            "cash_flow_volatility": self.cash_flow_volatility,
            "negative_cash_flow_months": self.negative_cash_flow_months,
            "largest_cash_outflow": self.largest_cash_outflow,
            "months_of_cash_cushion": self.months_of_cash_cushion,
            "cash_zero_month": self.cash_zero_month,
            "risk_level": self.risk_level.value
        }


@dataclass
class CashFlowProjection:
    """Projected cash flow statement for one scenario"""
    scenario: ScenarioName
    current_cash_balance: float
    months: List[CashFlowMonth]
    summary: CashFlowSummary
    assumptions: Dict[str, Any]
    warnings: List[str] = field(default_factory=list)

    @property
    def ending_cash(self) -> float:
        return self.summary.ending_cash_position

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scenario": self.scenario.value,
            "current_cash_balance": self.current_cash_balance,
            "months": [m.to_dict() for m in self.months],
            "summary": self.summary.to_dict(),
            "assumptions": self.assumptions,
            "warnings": self.warnings
        }


class WorkingCapitalModeler:
    """Receivable, payable and inventory balances from day-count ratios"""

    def __init__(self, assumptions: WorkingCapitalAssumptions):
        self.assumptions = assumptions

    def balances(
        self,
        revenue: float,
        cash_expenses: float,
        variable_costs: float,
        collection_multiplier: float = 1.0
    ) -> Tuple[float, float, float]:
        """(receivables, inventory, payables) for one month's activity"""
        per_day = 1 / self.assumptions.days_per_month
        receivables = max(0.0, revenue) * self.assumptions.days_sales_outstanding * collection_multiplier * per_day
        inventory = max(0.0, variable_costs) * self.assumptions.days_inventory_outstanding * per_day
        payables = max(0.0, cash_expenses) * self.assumptions.days_payable_outstanding * per_day
        return receivables, inventory, payables


class AssetProjectionModeler:
    """Depreciation add-back and capital expenditures"""

    def __init__(self, assumptions: CapexAssumptions):
        self.assumptions = assumptions

    def monthly_depreciation(self, parsed: ParsedStatement) -> Tuple[float, str, float]:
        """(monthly depreciation, source, implied asset base)"""
        rate = self.assumptions.annual_depreciation_rate / 100
        if self.assumptions.monthly_depreciation is not None:
            amount = self.assumptions.monthly_depreciation
            base = amount * 12 / rate if rate > 0 else 0.0
            return amount, "assumption", base
        if self.assumptions.fixed_asset_base is not None:
            base = self.assumptions.fixed_asset_base
            return base * rate / 12, "asset_base", base

        lines = [line for line in parsed.expenses.detail_lines
                 if DEPRECIATION_PATTERN.search(line.account_name)]
        if lines:
            amount = sum(line.total for line in lines) / max(1, parsed.month_count)
            base = amount * 12 / rate if rate > 0 else 0.0
            return max(0.0, amount), "historical", base
        return 0.0, "none", 0.0

    def capital_expenditure(self, revenue: float, month_index: int, capex_multiplier: float) -> float:
        amount = max(0.0, revenue) * self.assumptions.capex_percent_of_revenue / 100 * capex_multiplier
        cycle = self.assumptions.replacement_cycle_months
        if cycle and (month_index + 1) % cycle == 0:
            amount += self.assumptions.replacement_amount
        return amount


class CashFlowStatementService:
    """
    Builds three-scenario cash flow statements from P&L projections.

    Provides:
    - Operating cash flow with depreciation add-back and working-capital deltas
    - Capital expenditures as % of revenue plus an optional replacement cycle
    - Debt service and owner draws
    - Running cash balance, runway and risk level per scenario

    Example:
    ```python
    service = CashFlowStatementService()

    projections = service.generate_three_scenario_cash_flow_projections(
        statement, current_cash_balance=140000, horizon_months=12
    )
    for projection in projections:
        print(projection.scenario.value, projection.summary.ending_cash_position)
    ```
    """

    def __init__(
        self,
        trend_analyzer: Optional[TrendAnalyzer] = None,
        categorizer: Optional[ExpenseCategorizer] = None,
        forecast_engine: Optional[ForecastEngine] = None,
        multipliers: Optional[ScenarioMultiplierTable] = None,
        max_horizon_months: int = 60
    ):
        """
        Initialize service.

        Args:
            trend_analyzer: Analyzer used when no P&L projections are supplied
            categorizer: Categorizer used when no P&L projections are supplied
            forecast_engine: Engine used when no P&L projections are supplied
            multipliers: Scenario multiplier table shared with the P&L engine
            max_horizon_months: Longest accepted projection horizon
        """
        self.multipliers = multipliers or ScenarioMultiplierTable()
        self.trend_analyzer = trend_analyzer or TrendAnalyzer()
        self.categorizer = categorizer or ExpenseCategorizer()
        self.forecast_engine = forecast_engine or ForecastEngine(self.multipliers, max_horizon_months)
        self.max_horizon_months = max_horizon_months

    def generate_three_scenario_cash_flow_projections(
        self,
        parsed: ParsedStatement,
        current_cash_balance: float,
        horizon_months: int,
        assumptions: Optional[CashFlowAssumptions] = None,
        forecast_assumptions: Optional[ForecastAssumptions] = None,
        pnl_projections: Optional[List[ScenarioProjection]] = None
    ) -> List[CashFlowProjection]:
        """
        Generate one cash flow projection per scenario.

        Args:
            parsed: Parsed historical statement
            current_cash_balance: Cash on hand at the start of the horizon
            horizon_months: Months to project
            assumptions: Working capital, capex and financing inputs
            forecast_assumptions: P&L overrides used when projecting here
            pnl_projections: Precomputed P&L projections (e.g. from the service model)

        Returns:
            Baseline, growth and downturn cash flow projections
        """
        check_finite("current_cash_balance", current_cash_balance)
        check_horizon(horizon_months, self.max_horizon_months)
        assumptions = (assumptions or CashFlowAssumptions()).validate()

        if pnl_projections is None:
            pnl_projections = self._project_pnl(parsed, horizon_months, forecast_assumptions)

        return [
            self.build_cash_flow_projection(parsed, projection, current_cash_balance, assumptions)
            for projection in pnl_projections
        ]

    def build_cash_flow_projection(
        self,
        parsed: ParsedStatement,
        pnl: ScenarioProjection,
        current_cash_balance: float,
        assumptions: Optional[CashFlowAssumptions] = None
    ) -> CashFlowProjection:
        """Convert one scenario's P&L projection into a cash flow statement"""
        check_finite("current_cash_balance", current_cash_balance)
        assumptions = (assumptions or CashFlowAssumptions()).validate()
        multiplier = self.multipliers.get(pnl.scenario)
        warnings: List[str] = []

        working_capital = WorkingCapitalModeler(assumptions.working_capital)
        assets = AssetProjectionModeler(assumptions.capex)
        depreciation, depreciation_source, asset_base = assets.monthly_depreciation(parsed)
        if depreciation_source == "none":
            warnings.append("No depreciation found or supplied; depreciation add-back is zero")

        receivables, inventory, payables = self._opening_balances(
            parsed, working_capital, self._variable_share(pnl), depreciation
        )
        net_fixed_assets = asset_base
        beginning = current_cash_balance

        months = []
        for i, row in enumerate(pnl.projections):
            new_receivables, new_inventory, new_payables = working_capital.balances(
                revenue=row.revenue,
                cash_expenses=row.total_expenses - depreciation,
                variable_costs=row.variable_costs,
                collection_multiplier=multiplier.collection_days
            )
            ar_change = -(new_receivables - receivables)
            inventory_change = -(new_inventory - inventory)
            ap_change = new_payables - payables
            receivables, inventory, payables = new_receivables, new_inventory, new_payables

            operating_cash = row.net_income + depreciation + ar_change + inventory_change + ap_change

            capex = assets.capital_expenditure(row.revenue, i, multiplier.capex)
            net_fixed_assets += capex - depreciation

            financing = assumptions.financing
            owner_draws = financing.monthly_owner_draws + max(0.0, row.net_income) * financing.owner_draw_percent_of_profit / 100
            debt_service = financing.monthly_debt_service

            operating = OperatingActivities(
                net_income=row.net_income,
                depreciation=round(depreciation, 2),
                accounts_receivable_change=round(ar_change, 2),
                inventory_change=round(inventory_change, 2),
                accounts_payable_change=round(ap_change, 2),
                net_cash_from_operations=round(operating_cash, 2)
            )
            investing = InvestingActivities(
                capital_expenditures=round(capex, 2),
                net_cash_from_investing=round(-capex, 2)
            )
            financing_activities = FinancingActivities(
                debt_service=round(debt_service, 2),
                owner_draws=round(owner_draws, 2),
                net_cash_from_financing=round(-debt_service - owner_draws, 2)
            )

            net_change = round(
                operating.net_cash_from_operations
                + investing.net_cash_from_investing
                + financing_activities.net_cash_from_financing,
                2
            )
            ending = beginning + net_change

            months.append(CashFlowMonth(
                month=row.month,
                date=row.date,
                revenue=row.revenue,
                operating=operating,
                investing=investing,
                financing=financing_activities,
                beginning_cash=beginning,
                net_cash_change=net_change,
                ending_cash=ending,
                balances={
                    "accounts_receivable": round(receivables, 2),
                    "inventory": round(inventory, 2),
                    "accounts_payable": round(payables, 2),
                    "net_fixed_assets": round(net_fixed_assets, 2)
                }
            ))
            beginning = ending

        summary = self._summarize(months, pnl, current_cash_balance, assumptions.negative_cash_months_threshold)
        if summary.cash_zero_month:
            warnings.append(f"Cash balance turns negative in {summary.cash_zero_month}")

        logger.info(
            f"Cash flow {pnl.scenario.value}: ending cash {summary.ending_cash_position:,.2f}, "
            f"risk {summary.risk_level.value}"
        )

        return CashFlowProjection(
            scenario=pnl.scenario,
            current_cash_balance=current_cash_balance,
            months=months,
            summary=summary,
            assumptions={
                **assumptions.to_dict(),
                "depreciation_source": depreciation_source,
                "monthly_depreciation": round(depreciation, 2),
                "scenario_multiplier": multiplier.to_dict()
            },
            warnings=pnl.warnings + warnings
        )

    def _project_pnl(
        self,
        parsed: ParsedStatement,
        horizon_months: int,
        forecast_assumptions: Optional[ForecastAssumptions]
    ) -> List[ScenarioProjection]:
        forecast_assumptions = forecast_assumptions or ForecastAssumptions()
        trends = self.trend_analyzer.analyze_revenue_trends(parsed)
        breakdown = self.trend_analyzer.analyze_expense_structure(parsed)
        categorized = self.categorizer.categorize_expenses(
            parsed, trends, breakdown, forecast_assumptions.inflation_scenario
        )

        use_enhanced = forecast_assumptions.use_enhanced_mode
        if use_enhanced is None:
            use_enhanced = categorized.forecasting_metrics.enhanced_mode_reliable

        if use_enhanced:
            return self.forecast_engine.generate_enhanced_three_scenario_forecast(
                parsed, trends, breakdown, categorized, horizon_months, forecast_assumptions
            )
        return self.forecast_engine.generate_three_scenario_forecast(
            parsed, trends, breakdown, horizon_months, forecast_assumptions
        )

    def _opening_balances(
        self,
        parsed: ParsedStatement,
        working_capital: WorkingCapitalModeler,
        variable_share: float,
        depreciation: float
    ) -> Tuple[float, float, float]:
        """Working-capital balances implied by the last historical month"""
        if not parsed.month_count:
            return 0.0, 0.0, 0.0
        revenue = parsed.revenue.monthly_totals[-1]
        expenses = parsed.expenses.monthly_totals[-1]
        return working_capital.balances(
            revenue=revenue,
            cash_expenses=expenses - depreciation,
            variable_costs=revenue * variable_share
        )

    def _variable_share(self, pnl: ScenarioProjection) -> float:
        """Variable costs per unit of revenue under the expense model the rows were built with"""
        for row in pnl.projections:
            if row.revenue > 0:
                return row.variable_costs / row.revenue
        return pnl.assumptions.variable_cost_ratio / 100

    def _summarize(
        self,
        months: List[CashFlowMonth],
        pnl: ScenarioProjection,
        current_cash_balance: float,
        negative_months_threshold: int
    ) -> CashFlowSummary:
        classifier = create_cash_flow_risk_classifier(negative_months_threshold)
        if not months:
            return CashFlowSummary(
                ending_cash_position=current_cash_balance,
                lowest_cash_position=current_cash_balance,
                total_cash_generated=0.0,
                average_monthly_cash_flow=0.0,
                operating_cash_flow_margin=0.0,
                cash_flow_volatility=0.0,
                negative_cash_flow_months=0,
                largest_cash_outflow=0.0,
                months_of_cash_cushion=0.0,
                cash_zero_month=None,
                risk_level=classifier.classify(0, pnl.scenario.value).level
            )

        changes = [m.net_cash_change for m in months]
        operating_total = sum(m.operating.net_cash_from_operations for m in months)
        revenue_total = sum(max(0.0, m.revenue) for m in months)
        average_expense = sum(row.total_expenses for row in pnl.projections) / len(months)
        ending = months[-1].ending_cash
        negative_months = sum(1 for c in changes if c < 0)
        cash_zero = next((m.month for m in months if m.ending_cash < 0), None)

        risk = classifier.classify(negative_months, pnl.scenario.value).level
        if cash_zero is not None:
            risk = RiskLevel.CRITICAL

        return CashFlowSummary(
            ending_cash_position=round(ending, 2),
            lowest_cash_position=round(min(m.ending_cash for m in months), 2),
            total_cash_generated=round(sum(changes), 2),
            average_monthly_cash_flow=round(sum(changes) / len(changes), 2),
            operating_cash_flow_margin=round(operating_total / revenue_total * 100, 2) if revenue_total > 0 else 0.0,
            cash_flow_volatility=round(float(np.std(changes)), 2),
            negative_cash_flow_months=negative_months,
            largest_cash_outflow=round(abs(min(0.0, min(changes))), 2),
            months_of_cash_cushion=round(ending / average_expense, 2) if average_expense > 0 else None,
            cash_zero_month=cash_zero,
            risk_level=risk
        )
