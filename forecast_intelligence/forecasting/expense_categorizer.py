"""
Expense Categorizer for Forecast Intelligence

Refines the coarse fixed/variable split into named cost categories with
a behavior classification (fixed, variable, seasonal, stepped) and a
category-specific inflation rate. Category names come from an ordered
rule table matched against account names; lines no rule matches are
tracked as uncategorized spend.
"""

import logging
import re
from dataclasses import dataclass, field, asdict
from datetime import date
from typing import Dict, List, Any, Optional, Pattern, Tuple
from enum import Enum
import numpy as np

from ..errors import AssumptionOutOfRangeError
from ..parsing.models import ParsedStatement, FinancialLine
from .metrics import coefficient_of_variation, correlation
from .trend_analyzer import RevenueTrendAnalysis, ExpenseBreakdown, MONTH_NAMES

logger = logging.getLogger(__name__)


class ExpenseBehavior(Enum):
    """How a cost category responds to revenue and time"""
    FIXED = "fixed"
    VARIABLE = "variable"
    SEASONAL = "seasonal"
    STEPPED = "stepped"


class InflationKey(Enum):
    """Price index a category's costs follow"""
    GENERAL = "general"
    LABOR = "labor"
    MATERIAL = "material"
    UTILITY = "utility"
    RENT = "rent"
    INSURANCE = "insurance"
    VARIABLE = "variable"


@dataclass(frozen=True)
class InflationAssumptions:
    """Annual inflation rates (%) by price index"""
    scenario: str
    general: float
    labor: float
    material: float
    utility: float
    rent: float
    insurance: float
    variable: float

    def rate_for(self, key: InflationKey) -> float:
        return getattr(self, key.value)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


INFLATION_PRESETS = {
    "baseline": InflationAssumptions(
        scenario="baseline", general=3.2, labor=4.5, material=3.5,
        utility=4.2, rent=3.8, insurance=5.0, variable=2.8
    ),
    "high_inflation": InflationAssumptions(
        scenario="high_inflation", general=6.0, labor=7.0, material=7.5,
        utility=8.0, rent=5.5, insurance=8.0, variable=5.0
    ),
    "low_inflation": InflationAssumptions(
        scenario="low_inflation", general=2.0, labor=3.0, material=2.0,
        utility=2.5, rent=2.5, insurance=3.5, variable=1.8
    ),
}


@dataclass(frozen=True)
class CategoryRule:
    """Account-name pattern mapped to a category, default behavior and price index"""
    category: str
    pattern: Pattern
    default_behavior: ExpenseBehavior
    inflation_key: InflationKey

    def matches(self, account_name: str) -> bool:
        return bool(self.pattern.search(account_name))


def _rule(category: str, pattern: str, behavior: ExpenseBehavior, key: InflationKey) -> CategoryRule:
    return CategoryRule(category, re.compile(pattern, re.IGNORECASE), behavior, key)


# Evaluated in order; the first match wins
DEFAULT_CATEGORY_RULES = [
    _rule("Depreciation & Amortization", r"depreciat|amorti",
          ExpenseBehavior.FIXED, InflationKey.GENERAL),
    _rule("Insurance", r"insurance",
          ExpenseBehavior.FIXED, InflationKey.INSURANCE),
    _rule("Labor & Wages", r"payroll|wage|salar|labou?r|bonus|commission|employee|benefit|staff|contractor",
          ExpenseBehavior.FIXED, InflationKey.LABOR),
    _rule("Facilities & Rent", r"\brent|lease|facilit|occupancy|property tax|building|janitorial",
          ExpenseBehavior.FIXED, InflationKey.RENT),
    _rule("Cost of Materials", r"cost of goods|cogs|cost of sales|material|suppl|inventory|merchandise|parts",
          ExpenseBehavior.VARIABLE, InflationKey.MATERIAL),
    _rule("Utilities & Communications", r"utilit|electric|water|\bgas\b|phone|internet|telecom",
          ExpenseBehavior.FIXED, InflationKey.UTILITY),
    _rule("Marketing & Sales", r"marketing|advertis|promotion|\bseo\b|sponsor",
          ExpenseBehavior.FIXED, InflationKey.GENERAL),
    _rule("Transportation", r"vehicle|fuel|\bauto|mileage|travel|freight|shipping|delivery",
          ExpenseBehavior.VARIABLE, InflationKey.VARIABLE),
    _rule("Professional Services", r"legal|accounting|bookkeep|consult|professional|audit|attorney",
          ExpenseBehavior.FIXED, InflationKey.GENERAL),
    _rule("Technology & Software", r"software|subscription|saas|computer|hosting|technology",
          ExpenseBehavior.FIXED, InflationKey.GENERAL),
]


@dataclass
class SeasonalCostPattern:
    """Calendar-month concentration of a seasonal category"""
    peak_months: List[int]
    peak_multiplier: float
    monthly_indices: Dict[int, float]

    def index_for(self, month: int) -> float:
        return self.monthly_indices.get(month, 1.0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "peak_months": [MONTH_NAMES[m - 1] for m in self.peak_months],
            "peak_multiplier": self.peak_multiplier,
            "monthly_indices": {str(k): v for k, v in self.monthly_indices.items()}
        }


@dataclass
class StepChange:
    """A discrete jump in a category's run-rate"""
    month: str
    index: int
    run_rate_before: float
    run_rate_after: float
    change_percent: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ExpenseCategory:
    """Named group of expense accounts sharing a behavior"""
    name: str
    accounts: List[str]
    behavior: ExpenseBehavior
    total: float
    monthly_average: float
    run_rate: float
    variability: float               # coefficient of variation
    revenue_correlation: float
    revenue_scaling: float           # category spend / revenue
    inflation_key: InflationKey
    inflation_rate: float            # % per year
    coarse_behavior: str
    seasonal_pattern: Optional[SeasonalCostPattern] = None
    step_change: Optional[StepChange] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "accounts": self.accounts,
            "behavior": self.behavior.value,
            "total": self.total,
            "monthly_average": self.monthly_average,
            "run_rate": self.run_rate,
            "variability": self.variability,
            "revenue_correlation": self.revenue_correlation,
            "revenue_scaling": self.revenue_scaling,
            "inflation_key": self.inflation_key.value,
            "inflation_rate": self.inflation_rate,
            "coarse_behavior": self.coarse_behavior,
            "seasonal_pattern": self.seasonal_pattern.to_dict() if self.seasonal_pattern else None,
            "step_change": self.step_change.to_dict() if self.step_change else None
        }


@dataclass
class UncategorizedCosts:
    """Residual spend no rule matched"""
    accounts: List[str]
    total: float
    monthly_average: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ForecastingMetrics:
    """Coverage and quality of the categorization"""
    categorized_percentage: float    # share of expense spend (0-1)
    average_correlation: float
    inflation_coverage: float        # share of categorized spend on a specific price index
    category_count: int
    enhanced_mode_reliable: bool

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class CategorizedExpenses:
    """Result of expense categorization"""
    categories: List[ExpenseCategory]
    uncategorized: UncategorizedCosts
    total_expenses: float
    inflation_assumptions: InflationAssumptions
    forecasting_metrics: ForecastingMetrics
    warnings: List[str] = field(default_factory=list)

    @property
    def uncategorized_costs(self) -> float:
        return self.uncategorized.total

    def get(self, name: str) -> Optional[ExpenseCategory]:
        for category in self.categories:
            if category.name == name:
                return category
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "categories": [c.to_dict() for c in self.categories],
            "uncategorized": self.uncategorized.to_dict(),
            "total_expenses": self.total_expenses,
            "inflation_assumptions": self.inflation_assumptions.to_dict(),
            "forecasting_metrics": self.forecasting_metrics.to_dict(),
            "warnings": self.warnings
        }


class ExpenseCategorizer:
    """
    Groups expense lines into behavioral cost categories.

    Provides:
    - Ordered keyword rule table with an uncategorized fallback
    - Behavior detection: stepped, variable, seasonal, fixed
    - Inflation rate per category from a selectable preset
    - Coverage metrics gating the category-level forecast

    Example:
    ```python
    categorizer = ExpenseCategorizer()

    result = categorizer.categorize_expenses(statement, trends, breakdown)
    for category in result.categories:
        print(f"{category.name}: {category.behavior.value} @ {category.inflation_rate}%")

    print(f"Coverage: {result.forecasting_metrics.categorized_percentage:.0%}")
    ```
    """

    def __init__(
        self,
        rules: Optional[List[CategoryRule]] = None,
        variable_correlation_threshold: float = 0.7,
        fixed_cv_threshold: float = 0.15,
        step_min_change: float = 0.05,
        step_separation: float = 5.0,
        seasonal_peak_ratio: float = 1.5,
        min_coverage: float = 0.75,
        high_inflation_volatility: float = 0.5
    ):
        """
        Initialize categorizer.

        Args:
            rules: Ordered category rules (defaults to DEFAULT_CATEGORY_RULES)
            variable_correlation_threshold: |r| with revenue above which spend is variable
            fixed_cv_threshold: Coefficient of variation below which spend is fixed
            step_min_change: Minimum relative run-rate change counted as a step
            step_separation: Required jump size relative to the spread within each segment
            seasonal_peak_ratio: Peak month / average ratio that signals seasonality
            min_coverage: Categorized share required for the category-level forecast
            high_inflation_volatility: Revenue volatility that selects the high inflation preset
        """
        self.rules = list(rules) if rules is not None else list(DEFAULT_CATEGORY_RULES)
        self.variable_correlation_threshold = variable_correlation_threshold
        self.fixed_cv_threshold = fixed_cv_threshold
        self.step_min_change = step_min_change
        self.step_separation = step_separation
        self.seasonal_peak_ratio = seasonal_peak_ratio
        self.min_coverage = min_coverage
        self.high_inflation_volatility = high_inflation_volatility

    def categorize_expenses(
        self,
        statement: ParsedStatement,
        trends: RevenueTrendAnalysis,
        breakdown: ExpenseBreakdown,
        inflation_scenario: Optional[str] = None
    ) -> CategorizedExpenses:
        """
        Categorize a statement's expense lines.

        Args:
            statement: Parsed statement
            trends: Revenue trend analysis
            breakdown: Coarse fixed/variable split
            inflation_scenario: Preset name; None selects from revenue volatility

        Returns:
            CategorizedExpenses
        """
        inflation = self._select_inflation(trends, inflation_scenario)
        revenue = list(statement.revenue.monthly_totals)
        dates = list(statement.period.month_dates)
        months = max(1, statement.month_count)
        warnings: List[str] = []

        grouped: Dict[str, Tuple[CategoryRule, List[FinancialLine]]] = {}
        uncategorized: List[FinancialLine] = []
        for line in statement.expenses.detail_lines:
            rule = self._match_rule(line.account_name)
            if rule is None:
                uncategorized.append(line)
                logger.debug(f"No category rule for '{line.account_name}'")
                continue
            grouped.setdefault(rule.category, (rule, []))[1].append(line)

        revenue_total = statement.revenue.grand_total
        categories = []
        for rule in self.rules:
            if rule.category not in grouped:
                continue
            lines = grouped[rule.category][1]
            categories.append(
                self._build_category(rule, lines, revenue, revenue_total, dates,
                                     statement.period.months, breakdown, inflation)
            )

        total = sum(line.total for line in statement.expenses.detail_lines)
        categorized_total = sum(c.total for c in categories)
        uncategorized_total = sum(line.total for line in uncategorized)

        if uncategorized:
            warnings.append(
                f"{len(uncategorized)} expense account(s) did not match a category: "
                f"{', '.join(line.account_name for line in uncategorized)}"
            )

        metrics = self._forecasting_metrics(categories, categorized_total, total)
        if not metrics.enhanced_mode_reliable:
            warnings.append(
                f"Only {metrics.categorized_percentage:.0%} of spend categorized; "
                f"category-level forecast needs {self.min_coverage:.0%}"
            )

        logger.info(
            f"Categorized {len(categories)} categories covering "
            f"{metrics.categorized_percentage:.0%} of expenses ({inflation.scenario} inflation)"
        )

        return CategorizedExpenses(
            categories=categories,
            uncategorized=UncategorizedCosts(
                accounts=[line.account_name for line in uncategorized],
                total=uncategorized_total,
                monthly_average=uncategorized_total / months
            ),
            total_expenses=total,
            inflation_assumptions=inflation,
            forecasting_metrics=metrics,
            warnings=warnings
        )

    def _select_inflation(
        self,
        trends: RevenueTrendAnalysis,
        scenario: Optional[str]
    ) -> InflationAssumptions:
        if scenario is not None:
            if scenario not in INFLATION_PRESETS:
                raise AssumptionOutOfRangeError(
                    "inflation_scenario", scenario,
                    f"must be one of {', '.join(INFLATION_PRESETS)}"
                )
            return INFLATION_PRESETS[scenario]
        if trends.volatility_score > self.high_inflation_volatility:
            return INFLATION_PRESETS["high_inflation"]
        return INFLATION_PRESETS["baseline"]

    def _match_rule(self, account_name: str) -> Optional[CategoryRule]:
        for rule in self.rules:
            if rule.matches(account_name):
                return rule
        return None

    def _build_category(
        self,
        rule: CategoryRule,
        lines: List[FinancialLine],
        revenue: List[float],
        revenue_total: float,
        dates: List[date],
        labels: Tuple[str, ...],
        breakdown: ExpenseBreakdown,
        inflation: InflationAssumptions
    ) -> ExpenseCategory:
        series = [float(v) for v in np.sum([line.values for line in lines], axis=0)]
        total = sum(line.total for line in lines)
        monthly_average = float(np.mean(series)) if series else 0.0
        r = correlation(series, revenue)
        cv = coefficient_of_variation(series)

        behavior, seasonal, step = self._classify_behavior(series, r, cv, dates, labels, rule)
        if behavior == ExpenseBehavior.STEPPED:
            run_rate = step.run_rate_after
        else:
            run_rate = monthly_average

        logger.debug(f"Category '{rule.category}': {behavior.value} (r={r:.2f}, cv={cv:.2f})")

        return ExpenseCategory(
            name=rule.category,
            accounts=[line.account_name for line in lines],
            behavior=behavior,
            total=total,
            monthly_average=round(monthly_average, 2),
            run_rate=round(run_rate, 2),
            variability=round(cv, 4),
            revenue_correlation=round(r, 4),
            revenue_scaling=total / revenue_total if revenue_total > 0 else 0.0,
            inflation_key=rule.inflation_key,
            inflation_rate=inflation.rate_for(rule.inflation_key),
            coarse_behavior=self._coarse_behavior(lines, breakdown),
            seasonal_pattern=seasonal,
            step_change=step
        )

    def _classify_behavior(
        self,
        series: List[float],
        r: float,
        cv: float,
        dates: List[date],
        labels: Tuple[str, ...],
        rule: CategoryRule
    ) -> Tuple[ExpenseBehavior, Optional[SeasonalCostPattern], Optional[StepChange]]:
        """Stepped, then variable, then seasonal, then fixed; else the rule default"""
        if len(series) < 3:
            return rule.default_behavior, None, None

        step = self._detect_step(series, labels)
        if step is not None:
            return ExpenseBehavior.STEPPED, None, step

        if abs(r) > self.variable_correlation_threshold:
            return ExpenseBehavior.VARIABLE, None, None

        seasonal = self._detect_seasonal(series, dates)
        if seasonal is not None:
            return ExpenseBehavior.SEASONAL, seasonal, None

        if cv < self.fixed_cv_threshold:
            return ExpenseBehavior.FIXED, None, None

        return rule.default_behavior, None, None

    def _detect_step(self, series: List[float], labels: Tuple[str, ...]) -> Optional[StepChange]:
        """Largest run-rate jump between two internally flat segments"""
        n = len(series)
        best: Optional[StepChange] = None
        for k in range(2, n - 1):
            before, after = series[:k], series[k:]
            mean_before = float(np.mean(before))
            mean_after = float(np.mean(after))
            if mean_before <= 0:
                continue
            change = (mean_after - mean_before) / mean_before
            if abs(change) < self.step_min_change:
                continue
            spread = max(float(np.std(before)), float(np.std(after)))
            if spread > 0 and abs(mean_after - mean_before) / spread < self.step_separation:
                continue
            if best is None or abs(change) * 100 > abs(best.change_percent):
                best = StepChange(
                    month=labels[k] if k < len(labels) else str(k),
                    index=k,
                    run_rate_before=round(mean_before, 2),
                    run_rate_after=round(mean_after, 2),
                    change_percent=round(change * 100, 2)
                )
        return best

    def _detect_seasonal(self, series: List[float], dates: List[date]) -> Optional[SeasonalCostPattern]:
        """Spend concentrated in a few calendar months"""
        if len(series) < 6:
            return None
        mean_val = float(np.mean(series))
        if mean_val <= 0:
            return None

        by_month: Dict[int, List[float]] = {}
        for value, month_date in zip(series, dates):
            by_month.setdefault(month_date.month, []).append(value)
        averages = {month: float(np.mean(values)) for month, values in sorted(by_month.items())}

        peak_value = max(averages.values())
        if peak_value <= mean_val * self.seasonal_peak_ratio:
            return None

        peaks = [m for m, v in averages.items() if v > mean_val * 1.3]
        if len(peaks) > max(1, len(averages) // 3):
            return None

        return SeasonalCostPattern(
            peak_months=peaks,
            peak_multiplier=round(peak_value / mean_val, 4),
            monthly_indices={m: round(v / mean_val, 4) for m, v in averages.items()}
        )

    def _coarse_behavior(self, lines: List[FinancialLine], breakdown: ExpenseBreakdown) -> str:
        variable = set(breakdown.variable.accounts)
        flags = {line.account_name in variable for line in lines}
        if flags == {True}:
            return "variable"
        if flags == {False}:
            return "fixed"
        return "mixed"

    def _forecasting_metrics(
        self,
        categories: List[ExpenseCategory],
        categorized_total: float,
        total: float
    ) -> ForecastingMetrics:
        categorized_pct = categorized_total / total if total else 0.0
        specific = sum(c.total for c in categories if c.inflation_key != InflationKey.GENERAL)
        return ForecastingMetrics(
            categorized_percentage=round(categorized_pct, 6),
            average_correlation=round(
                float(np.mean([abs(c.revenue_correlation) for c in categories])), 4
            ) if categories else 0.0,
            inflation_coverage=round(specific / categorized_total, 4) if categorized_total else 0.0,
            category_count=len(categories),
            enhanced_mode_reliable=categorized_pct >= self.min_coverage
        )
