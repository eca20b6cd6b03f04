"""
Forecast Engine for Forecast Intelligence

Projects revenue, expenses and net income forward under the baseline,
growth and downturn scenarios. The standard mode uses the coarse
fixed/variable expense split; the enhanced mode projects each named
expense category with its own behavior and inflation rate.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Any, Optional, Tuple

from dateutil.relativedelta import relativedelta

from ..config.assumptions import ForecastAssumptions, check_finite, check_horizon
from ..parsing.models import ParsedStatement
from .expense_categorizer import CategorizedExpenses, ExpenseBehavior
from .metrics import percent_changes
from .scenarios import (
    ScenarioName,
    ScenarioAssumptions,
    ScenarioMultiplierTable
)
from .trend_analyzer import RevenueTrendAnalysis, ExpenseBreakdown

logger = logging.getLogger(__name__)

UNCATEGORIZED = "Uncategorized"


@dataclass
class ForecastedMonth:
    """One projected month of one scenario"""
    month: str
    date: date
    revenue: float
    variable_costs: float
    fixed_costs: float
    total_expenses: float
    net_income: float
    growth_rate: float                 # % applied this month
    seasonal_factor: float
    expenses_by_category: Optional[Dict[str, float]] = None
    drivers: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "month": self.month,
            "date": self.date.isoformat(),
            "revenue": self.revenue,
            "variable_costs": self.variable_costs,
            "fixed_costs": self.fixed_costs,
            "total_expenses": self.total_expenses,
            "net_income": self.net_income,
            "growth_rate": self.growth_rate,
            "seasonal_factor": self.seasonal_factor
        }
        if self.expenses_by_category is not None:
            result["expenses_by_category"] = self.expenses_by_category
        if self.drivers is not None:
            result["drivers"] = self.drivers
        return result


@dataclass
class ProjectionSummary:
    """Totals and averages over a projection"""
    months: int
    total_projected_revenue: float
    total_projected_expenses: float
    total_net_income: float
    average_monthly_revenue: float
    average_monthly_growth: float
    net_margin: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "months": self.months,
            "total_projected_revenue": self.total_projected_revenue,
            "total_projected_expenses": self.total_projected_expenses,
            "total_net_income": self.total_net_income,
            "average_monthly_revenue": self.average_monthly_revenue,
            "average_monthly_growth": self.average_monthly_growth,
            "net_margin": self.net_margin
        }


@dataclass
class ScenarioProjection:
    """Monthly P&L projection for one scenario"""
    scenario: ScenarioName
    mode: str                          # standard, enhanced or service
    assumptions: ScenarioAssumptions
    projections: List[ForecastedMonth]
    summary: ProjectionSummary
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scenario": self.scenario.value,
            "mode": self.mode,
            "assumptions": self.assumptions.to_dict(),
            "projections": [row.to_dict() for row in self.projections],
            "summary": self.summary.to_dict(),
            "warnings": self.warnings
        }


class ForecastEngine:
    """
    Three-scenario P&L projection engine.

    Provides:
    - Baseline assumptions from revenue trends and the expense split
    - Growth and downturn scenarios from the shared multiplier table
    - Standard (fixed/variable) and enhanced (per-category) expense projection
    - Projection rows from an externally supplied revenue path

    Example:
    ```python
    engine = ForecastEngine()

    scenarios = engine.generate_three_scenario_forecast(
        statement, trends, breakdown, horizon_months=12
    )
    for projection in scenarios:
        print(projection.scenario.value, projection.summary.total_net_income)
    ```
    """

    def __init__(
        self,
        multipliers: Optional[ScenarioMultiplierTable] = None,
        max_horizon_months: int = 60
    ):
        """
        Initialize engine.

        Args:
            multipliers: Scenario multiplier table (defaults to the standard table)
            max_horizon_months: Longest accepted projection horizon
        """
        self.multipliers = multipliers or ScenarioMultiplierTable()
        self.max_horizon_months = max_horizon_months

    def generate_three_scenario_forecast(
        self,
        parsed: ParsedStatement,
        revenue_trends: RevenueTrendAnalysis,
        expense_breakdown: ExpenseBreakdown,
        horizon_months: int,
        assumptions: Optional[ForecastAssumptions] = None
    ) -> List[ScenarioProjection]:
        """
        Project all three scenarios with the fixed/variable expense model.

        Args:
            parsed: Parsed historical statement
            revenue_trends: Revenue trend analysis
            expense_breakdown: Coarse fixed/variable split
            horizon_months: Months to project (0 yields empty projections)
            assumptions: Optional overrides

        Returns:
            Baseline, growth and downturn projections, in that order
        """
        check_horizon(horizon_months, self.max_horizon_months)
        baseline = self.build_baseline_assumptions(revenue_trends, expense_breakdown, assumptions)

        results = []
        for name in self.multipliers.scenarios:
            scenario = self.multipliers.apply(baseline, name)
            revenue_path, warnings = self._revenue_path(parsed, scenario, horizon_months)
            results.append(self.project_from_revenue(
                parsed, scenario, revenue_path,
                fixed_base=expense_breakdown.fixed.monthly_average,
                warnings=warnings
            ))

        self._log_results(results, "standard")
        return results

    def generate_enhanced_three_scenario_forecast(
        self,
        parsed: ParsedStatement,
        revenue_trends: RevenueTrendAnalysis,
        expense_breakdown: ExpenseBreakdown,
        categorized: CategorizedExpenses,
        horizon_months: int,
        assumptions: Optional[ForecastAssumptions] = None
    ) -> List[ScenarioProjection]:
        """
        Project all three scenarios with per-category expense behavior.

        Each category follows its own inflation rate; seasonal categories
        follow their calendar-month indices and stepped categories continue
        from their latest run-rate. Rows carry expenses_by_category.
        """
        check_horizon(horizon_months, self.max_horizon_months)
        baseline = self.build_baseline_assumptions(revenue_trends, expense_breakdown, assumptions)

        results = []
        for name in self.multipliers.scenarios:
            scenario = self.multipliers.apply(baseline, name)
            revenue_path, warnings = self._revenue_path(parsed, scenario, horizon_months)
            if not categorized.forecasting_metrics.enhanced_mode_reliable:
                warnings.append(
                    f"Category coverage is {categorized.forecasting_metrics.categorized_percentage:.0%}; "
                    "category-level expenses may be unreliable"
                )
            results.append(self.project_from_revenue(
                parsed, scenario, revenue_path,
                categorized=categorized,
                warnings=warnings
            ))

        self._log_results(results, "enhanced")
        return results

    def build_baseline_assumptions(
        self,
        revenue_trends: RevenueTrendAnalysis,
        expense_breakdown: ExpenseBreakdown,
        assumptions: Optional[ForecastAssumptions] = None
    ) -> ScenarioAssumptions:
        """Baseline scenario parameters from history plus overrides"""
        overrides = (assumptions or ForecastAssumptions()).validate()

        growth = overrides.baseline_growth_rate
        if growth is None:
            growth = revenue_trends.recommended_growth_rate
        variable_ratio = overrides.variable_cost_ratio
        if variable_ratio is None:
            variable_ratio = expense_breakdown.variable.as_percent_of_revenue
            if variable_ratio > 100:
                logger.warning(f"Variable cost ratio {variable_ratio:.1f}% capped at 100%")
                variable_ratio = 100.0

        check_finite("baseline_growth_rate", growth, minimum=-100.0)
        check_finite("variable_cost_ratio", variable_ratio, minimum=0.0)

        return ScenarioAssumptions(
            scenario=ScenarioName.BASELINE,
            monthly_growth_rate=growth,
            variable_cost_ratio=variable_ratio,
            fixed_cost_inflation=overrides.fixed_cost_inflation,
            confidence_level=revenue_trends.confidence_level.value,
            seasonal_adjustments=revenue_trends.seasonal_adjustments()
        )

    def project_from_revenue(
        self,
        parsed: ParsedStatement,
        scenario: ScenarioAssumptions,
        revenue_path: List[float],
        fixed_base: Optional[float] = None,
        categorized: Optional[CategorizedExpenses] = None,
        drivers: Optional[List[Dict[str, Any]]] = None,
        warnings: Optional[List[str]] = None,
        mode: Optional[str] = None
    ) -> ScenarioProjection:
        """
        Build projection rows for a given monthly revenue path.

        Expenses follow the category model when `categorized` is given and
        the fixed/variable model otherwise.
        """
        start = self.first_projected_month(parsed)
        previous_revenue = parsed.revenue.monthly_totals[-1] if parsed.month_count else 0.0
        notes = list(warnings or [])
        if fixed_base is None:
            fixed_base = self._fixed_base_from_history(parsed, scenario)
        variable_scale = 1.0
        if categorized is not None:
            variable_scale = self._variable_scale(categorized, scenario, notes)

        rows = []
        for i, raw_revenue in enumerate(revenue_path):
            month_date = start + relativedelta(months=i)
            if categorized is not None:
                by_category = self._category_expenses(
                    categorized, scenario, raw_revenue, month_date, i, variable_scale
                )
                variable = sum(v for name, v in by_category.items()
                               if self._is_variable(categorized, name))
                fixed = sum(by_category.values()) - variable
            else:
                by_category = None
                variable = raw_revenue * scenario.variable_cost_ratio / 100
                fixed = fixed_base * self._inflation_factor(scenario.fixed_cost_inflation, i)

            revenue = round(raw_revenue, 2)
            variable = round(variable, 2)
            fixed = round(fixed, 2)
            total = round(variable + fixed, 2)
            growth = (raw_revenue - previous_revenue) / abs(previous_revenue) * 100 if previous_revenue else 0.0
            previous_revenue = raw_revenue

            rows.append(ForecastedMonth(
                month=month_date.strftime('%b %Y'),
                date=month_date,
                revenue=revenue,
                variable_costs=variable,
                fixed_costs=fixed,
                total_expenses=total,
                net_income=round(revenue - total, 2),
                growth_rate=round(growth, 4),
                seasonal_factor=round(scenario.seasonal_factor(month_date.month), 4),
                expenses_by_category=by_category,
                drivers=drivers[i] if drivers else None
            ))

        history = list(parsed.revenue.monthly_totals[-1:])
        return ScenarioProjection(
            scenario=scenario.scenario,
            mode=mode or ("enhanced" if categorized is not None else "standard"),
            assumptions=scenario,
            projections=rows,
            summary=self.summarize(rows, history),
            warnings=notes
        )

    def first_projected_month(self, parsed: ParsedStatement) -> date:
        """The month after the last reported month"""
        if parsed.period.month_dates:
            last = parsed.period.month_dates[-1]
        else:
            last = parsed.period.end_date.replace(day=1)
        return last.replace(day=1) + relativedelta(months=1)

    def summarize(self, rows: List[ForecastedMonth], history: Optional[List[float]] = None) -> ProjectionSummary:
        """Totals over the projection; revenue is floored at zero for display"""
        if not rows:
            return ProjectionSummary(0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0)

        revenue = sum(max(0.0, row.revenue) for row in rows)
        expenses = sum(row.total_expenses for row in rows)
        net_income = sum(row.net_income for row in rows)
        changes = percent_changes(list(history or []) + [row.revenue for row in rows])

        return ProjectionSummary(
            months=len(rows),
            total_projected_revenue=round(revenue, 2),
            total_projected_expenses=round(expenses, 2),
            total_net_income=round(net_income, 2),
            average_monthly_revenue=round(revenue / len(rows), 2),
            average_monthly_growth=round(sum(changes) / len(changes), 4) if changes else 0.0,
            net_margin=round(net_income / revenue * 100, 2) if revenue > 0 else 0.0
        )

    def _revenue_path(
        self,
        parsed: ParsedStatement,
        scenario: ScenarioAssumptions,
        horizon_months: int
    ) -> Tuple[List[float], List[str]]:
        """Deseasonalized base compounded monthly, then seasonally adjusted"""
        warnings: List[str] = []
        base = self.revenue_base(parsed, scenario, warnings)
        start = self.first_projected_month(parsed)

        path = []
        trend = base
        for i in range(horizon_months):
            trend *= 1 + scenario.monthly_growth_rate / 100
            month_date = start + relativedelta(months=i)
            path.append(trend * scenario.seasonal_factor(month_date.month))
        return path, warnings

    def revenue_base(
        self,
        parsed: ParsedStatement,
        scenario: ScenarioAssumptions,
        warnings: List[str]
    ) -> float:
        """Last month's revenue with its seasonal adjustment removed"""
        totals = parsed.revenue.monthly_totals
        if not totals:
            return 0.0

        factor = scenario.seasonal_factor(parsed.period.month_dates[-1].month)
        base = totals[-1] / factor if factor > 0 else totals[-1]
        average = sum(totals) / len(totals)
        if base <= 0 < average:
            warnings.append(
                f"Last month revenue was {totals[-1]:,.2f}; projecting from the "
                f"historical average of {average:,.2f} instead"
            )
            logger.warning(f"Non-positive revenue base, using average {average:.2f}")
            base = average
        return base

    def _fixed_base_from_history(self, parsed: ParsedStatement, scenario: ScenarioAssumptions) -> float:
        """Historical expenses not explained by the variable cost ratio"""
        months = max(1, parsed.month_count)
        variable = parsed.revenue.grand_total * scenario.variable_cost_ratio / 100
        return max(0.0, (parsed.expenses.grand_total - variable) / months)

    def _inflation_factor(self, annual_rate: float, month_index: int) -> float:
        """Annual rate compounded monthly through the given projected month"""
        return (1 + annual_rate / 100) ** ((month_index + 1) / 12)

    def _category_expenses(
        self,
        categorized: CategorizedExpenses,
        scenario: ScenarioAssumptions,
        revenue: float,
        month_date: date,
        month_index: int,
        variable_scale: float = 1.0
    ) -> Dict[str, float]:
        multiplier = self.multipliers.get(scenario.scenario)
        expenses: Dict[str, float] = {}

        for category in categorized.categories:
            inflation = self._inflation_factor(
                category.inflation_rate * multiplier.fixed_cost_inflation, month_index
            )
            if category.behavior == ExpenseBehavior.VARIABLE:
                amount = revenue * category.revenue_scaling * multiplier.variable_cost * variable_scale
            elif category.behavior == ExpenseBehavior.SEASONAL:
                amount = category.monthly_average * category.seasonal_pattern.index_for(month_date.month) * inflation
            elif category.behavior == ExpenseBehavior.STEPPED:
                amount = category.run_rate * inflation
            else:
                amount = category.monthly_average * inflation
            expenses[category.name] = round(amount, 2)

        if categorized.uncategorized.accounts:
            expenses[UNCATEGORIZED] = round(
                categorized.uncategorized.monthly_average
                * self._inflation_factor(scenario.fixed_cost_inflation, month_index),
                2
            )
        return expenses

    def _variable_scale(
        self,
        categorized: CategorizedExpenses,
        scenario: ScenarioAssumptions,
        warnings: List[str]
    ) -> float:
        """Factor holding combined variable categories at or below 100% of revenue"""
        ratio = sum(
            c.revenue_scaling for c in categorized.categories if c.behavior == ExpenseBehavior.VARIABLE
        )
        effective = ratio * self.multipliers.get(scenario.scenario).variable_cost
        if effective <= 1.0:
            return 1.0
        if ratio > 1.0:
            warnings.append(f"Variable cost ratio {ratio * 100:.1f}% capped at 100%")
            logger.warning(f"Variable cost ratio {ratio * 100:.1f}% capped at 100%")
        return 1.0 / effective

    def _is_variable(self, categorized: CategorizedExpenses, name: str) -> bool:
        category = categorized.get(name)
        return category is not None and category.behavior == ExpenseBehavior.VARIABLE

    def _log_results(self, results: List[ScenarioProjection], mode: str) -> None:
        for projection in results:
            logger.info(
                f"{mode} {projection.scenario.value}: {projection.summary.months} months, "
                f"net income {projection.summary.total_net_income:,.2f}"
            )
