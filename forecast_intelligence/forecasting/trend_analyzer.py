"""
Trend Analyzer for Forecast Intelligence

Analyzes historical revenue and expense series to derive the growth,
seasonality and volatility assumptions that drive the scenario forecasts,
and splits expenses into a coarse fixed/variable structure.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Any, Tuple
from enum import Enum
import numpy as np

from ..errors import InsufficientHistoryError
from ..parsing.models import ParsedStatement
from .metrics import (
    linear_fit,
    compound_growth_fit,
    correlation,
    percent_changes
)

logger = logging.getLogger(__name__)

MONTH_NAMES = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
               "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


class TrendDirection(Enum):
    """Direction of trend"""
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"
    VOLATILE = "volatile"


class ConfidenceLevel(Enum):
    """Confidence in the recommended growth rate"""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass
class RevenueTrendAnalysis:
    """Result of revenue trend analysis"""
    data_points: int
    monthly_growth_rates: List[float]        # % month over month
    average_growth_rate: float               # % per month
    recommended_growth_rate: float           # % per month, damped and capped
    annualized_growth_rate: float            # % per year implied by the recommendation
    fit_method: str
    slope: float
    r_squared: float
    trend_direction: TrendDirection
    seasonality_score: float
    seasonal_indices: Dict[int, float]       # calendar month -> ratio to moving baseline
    volatility_score: float
    peak_months: List[int]
    low_months: List[int]
    quarterly_totals: List[float]
    average_monthly_revenue: float
    average_monthly_expenses: float
    average_net_margin: float                # % of revenue
    confidence_level: ConfidenceLevel
    confidence_score: float
    anomalies: List[Dict[str, Any]] = field(default_factory=list)
    insights: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def has_seasonality(self) -> bool:
        return bool(self.peak_months or self.low_months)

    def seasonal_adjustments(self) -> Dict[int, float]:
        """Adjustment per calendar month; 1.0 outside detected peak and low months"""
        adjustments = {month: 1.0 for month in range(1, 13)}
        for month in self.peak_months + self.low_months:
            adjustments[month] = self.seasonal_indices.get(month, 1.0)
        return adjustments

    def to_dict(self) -> Dict[str, Any]:
        return {
            "data_points": self.data_points,
            "monthly_growth_rates": self.monthly_growth_rates,
            "average_growth_rate": self.average_growth_rate,
            "recommended_growth_rate": self.recommended_growth_rate,
            "annualized_growth_rate": self.annualized_growth_rate,
            "fit_method": self.fit_method,
            "slope": self.slope,
            "r_squared": self.r_squared,
            "trend_direction": self.trend_direction.value,
            "seasonality_score": self.seasonality_score,
            "seasonal_indices": {str(k): v for k, v in self.seasonal_indices.items()},
            "volatility_score": self.volatility_score,
            "peak_months": [MONTH_NAMES[m - 1] for m in self.peak_months],
            "low_months": [MONTH_NAMES[m - 1] for m in self.low_months],
            "quarterly_totals": self.quarterly_totals,
            "average_monthly_revenue": self.average_monthly_revenue,
            "average_monthly_expenses": self.average_monthly_expenses,
            "average_net_margin": self.average_net_margin,
            "confidence_level": self.confidence_level.value,
            "confidence_score": self.confidence_score,
            "anomalies": self.anomalies,
            "insights": self.insights,
            "warnings": self.warnings
        }


@dataclass
class CostGroupSummary:
    """Aggregate of the lines in one coarse cost bucket"""
    accounts: List[str]
    total: float
    monthly_average: float
    as_percent_of_revenue: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "accounts": self.accounts,
            "total": self.total,
            "monthly_average": self.monthly_average,
            "as_percent_of_revenue": self.as_percent_of_revenue
        }


@dataclass
class ExpenseBreakdown:
    """Coarse fixed/variable split of expense lines"""
    fixed: CostGroupSummary
    variable: CostGroupSummary
    correlations: Dict[str, float]
    total_expenses: float
    correlation_threshold: float
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fixed": self.fixed.to_dict(),
            "variable": self.variable.to_dict(),
            "correlations": self.correlations,
            "total_expenses": self.total_expenses,
            "correlation_threshold": self.correlation_threshold,
            "warnings": self.warnings
        }


class TrendAnalyzer:
    """
    Analyzes monthly statement series for trends, seasonality, and volatility.

    Provides:
    - Compound or linear growth fit over a trailing window
    - Seasonal indices against a 12-month moving baseline
    - Volatility of month-over-month changes
    - Conservative recommended growth rate with confidence level
    - Coarse fixed/variable expense split by revenue correlation

    Example:
    ```python
    analyzer = TrendAnalyzer()

    trends = analyzer.analyze_revenue_trends(statement)
    breakdown = analyzer.analyze_expense_structure(statement)

    print(f"Growth: {trends.recommended_growth_rate}%/month ({trends.confidence_level.value})")
    print(f"Variable costs: {breakdown.variable.as_percent_of_revenue}% of revenue")
    ```
    """

    def __init__(
        self,
        min_history_months: int = 3,
        trailing_window: int = 12,
        anomaly_threshold: float = 2.0,  # Standard deviations
        seasonality_threshold: float = 0.0025,
        variable_cost_threshold: float = 0.5,
        growth_cap: Tuple[float, float] = (-10.0, 15.0)
    ):
        """
        Initialize analyzer.

        Args:
            min_history_months: Fewest months accepted for trend fitting
            trailing_window: Months used for the growth fit
            anomaly_threshold: Z-score threshold for anomaly detection
            seasonality_threshold: Minimum index variance before peaks/lows are reported
            variable_cost_threshold: |r| above which an expense line is variable
            growth_cap: Bounds for the recommended monthly growth rate (%)
        """
        self.min_history_months = min_history_months
        self.trailing_window = trailing_window
        self.anomaly_threshold = anomaly_threshold
        self.seasonality_threshold = seasonality_threshold
        self.variable_cost_threshold = variable_cost_threshold
        self.growth_cap = growth_cap

    def analyze_revenue_trends(self, statement: ParsedStatement) -> RevenueTrendAnalysis:
        """
        Analyze the revenue series of a parsed statement.

        Falls back to low-confidence defaults when history is too short.

        Args:
            statement: Parsed profit & loss statement

        Returns:
            RevenueTrendAnalysis
        """
        values = list(statement.revenue.monthly_totals)
        dates = list(statement.period.month_dates)

        try:
            rate, r_squared, method = self._fit_growth(values)
        except InsufficientHistoryError as e:
            logger.warning(f"Revenue trend degraded to defaults: {e}")
            return self._minimal_result(statement, str(e))

        slope, _, _ = linear_fit(values)
        growth_rates = [round(g, 2) for g in percent_changes(values)]
        volatility = self._calculate_volatility(values)
        seasonality_score, indices = self._seasonal_indices(values, dates)
        peak_months, low_months = self._peak_and_low_months(seasonality_score, indices)
        direction = self._trend_direction(slope, values, volatility)

        recommended = self._recommend_growth(rate, volatility, len(values))
        confidence_score = self._confidence_score(len(values), r_squared, volatility)
        confidence = self._confidence_level(confidence_score, len(values))
        anomalies = self._detect_anomalies(values, dates)

        avg_revenue, avg_expenses, net_margin = self._averages(statement)

        result = RevenueTrendAnalysis(
            data_points=len(values),
            monthly_growth_rates=growth_rates,
            average_growth_rate=round(float(np.mean(growth_rates)), 2) if growth_rates else 0.0,
            recommended_growth_rate=round(recommended, 4),
            annualized_growth_rate=round(((1 + recommended / 100) ** 12 - 1) * 100, 2),
            fit_method=method,
            slope=round(slope, 4),
            r_squared=round(r_squared, 4),
            trend_direction=direction,
            seasonality_score=round(seasonality_score, 6),
            seasonal_indices={m: round(v, 4) for m, v in indices.items()},
            volatility_score=round(volatility, 4),
            peak_months=peak_months,
            low_months=low_months,
            quarterly_totals=self._quarterly_totals(values),
            average_monthly_revenue=avg_revenue,
            average_monthly_expenses=avg_expenses,
            average_net_margin=net_margin,
            confidence_level=confidence,
            confidence_score=round(confidence_score, 4),
            anomalies=anomalies
        )
        result.insights = self._generate_insights(result)

        logger.info(
            f"Revenue trend: {recommended:.2f}%/month via {method} "
            f"(R²={r_squared:.2f}, confidence={confidence.value})"
        )
        return result

    def analyze_expense_structure(self, statement: ParsedStatement) -> ExpenseBreakdown:
        """
        Split expense lines into fixed and variable buckets.

        A line is variable when its correlation with revenue exceeds the
        configured threshold in absolute value, fixed otherwise.
        """
        revenue = list(statement.revenue.monthly_totals)
        months = max(1, statement.month_count)
        warnings: List[str] = []

        short_history = statement.month_count < self.min_history_months
        if short_history:
            warnings.append(
                f"Only {statement.month_count} month(s) of history; all expenses treated as fixed"
            )

        correlations: Dict[str, float] = {}
        fixed_accounts: List[str] = []
        variable_accounts: List[str] = []
        fixed_total = 0.0
        variable_total = 0.0

        for line in statement.expenses.detail_lines:
            r = 0.0 if short_history else correlation(line.values, revenue)
            correlations[line.account_name] = round(r, 4)
            if abs(r) > self.variable_cost_threshold:
                variable_accounts.append(line.account_name)
                variable_total += line.total
            else:
                fixed_accounts.append(line.account_name)
                fixed_total += line.total
            logger.debug(f"Expense '{line.account_name}' r={r:.2f}")

        revenue_total = statement.revenue.grand_total

        def pct_of_revenue(amount: float) -> float:
            return round(amount / revenue_total * 100, 4) if revenue_total > 0 else 0.0

        return ExpenseBreakdown(
            fixed=CostGroupSummary(
                accounts=fixed_accounts,
                total=round(fixed_total, 2),
                monthly_average=round(fixed_total / months, 2),
                as_percent_of_revenue=pct_of_revenue(fixed_total)
            ),
            variable=CostGroupSummary(
                accounts=variable_accounts,
                total=round(variable_total, 2),
                monthly_average=round(variable_total / months, 2),
                as_percent_of_revenue=pct_of_revenue(variable_total)
            ),
            correlations=correlations,
            total_expenses=round(statement.expenses.grand_total, 2),
            correlation_threshold=self.variable_cost_threshold,
            warnings=warnings
        )

    def _fit_growth(self, values: List[float]) -> Tuple[float, float, str]:
        """Monthly growth % and fit quality over the trailing window"""
        if len(values) < self.min_history_months:
            raise InsufficientHistoryError(len(values), self.min_history_months)

        window = values[-self.trailing_window:]
        compound = compound_growth_fit(window)
        if compound is not None:
            rate, r_squared = compound
            return rate, r_squared, "compound"

        slope, _, r_squared = linear_fit(window)
        mean_val = float(np.mean(window))
        rate = slope / abs(mean_val) * 100 if mean_val != 0 else 0.0
        return rate, r_squared, "linear"

    def _calculate_volatility(self, values: List[float]) -> float:
        """Spread of month-over-month deltas relative to the revenue level"""
        mean_val = np.mean(values)
        if mean_val == 0 or len(values) < 2:
            return 0.0
        return float(np.std(np.diff(values)) / abs(mean_val))

    def _seasonal_indices(
        self,
        values: List[float],
        dates: List[date]
    ) -> Tuple[float, Dict[int, float]]:
        """Average ratio of each calendar month to its 12-month moving baseline"""
        n = len(values)
        if n < 12:
            return 0.0, {}

        ratios: Dict[int, List[float]] = {}
        for i, (value, month_date) in enumerate(zip(values, dates)):
            start = min(max(i - 6, 0), n - 12)
            window = values[start:start + 12]
            slope, intercept, _ = linear_fit(window)
            baseline = intercept + slope * (i - start)
            if baseline <= 0:
                continue
            ratios.setdefault(month_date.month, []).append(value / baseline)

        if len(ratios) < 4:
            return 0.0, {}

        indices = {month: float(np.mean(r)) for month, r in sorted(ratios.items())}
        return float(np.var(list(indices.values()))), indices

    def _peak_and_low_months(
        self,
        seasonality_score: float,
        indices: Dict[int, float]
    ) -> Tuple[List[int], List[int]]:
        """Calendar months more than one standard deviation from 1.0"""
        if not indices or seasonality_score < self.seasonality_threshold:
            return [], []
        spread = float(np.std(list(indices.values())))
        peaks = [m for m, v in indices.items() if v > 1 + spread]
        lows = [m for m, v in indices.items() if v < 1 - spread]
        return peaks, lows

    def _trend_direction(
        self,
        slope: float,
        values: List[float],
        volatility: float
    ) -> TrendDirection:
        y_mean = float(np.mean(values))
        if volatility > 0.25:
            return TrendDirection.VOLATILE
        if abs(slope) < abs(y_mean) * 0.01:  # <1% of mean per period
            return TrendDirection.STABLE
        return TrendDirection.INCREASING if slope > 0 else TrendDirection.DECREASING

    def _recommend_growth(self, rate: float, volatility: float, data_points: int) -> float:
        """Damp the fitted rate for volatility and short history, then cap"""
        if volatility > 0.5:
            rate *= 0.7
        elif volatility > 0.3:
            rate *= 0.85
        if data_points < 6:
            rate *= 0.8
        low, high = self.growth_cap
        return max(low, min(high, rate))

    def _confidence_score(self, data_points: int, r_squared: float, volatility: float) -> float:
        data_score = min(data_points / 12, 1.0)
        stability = 1 - min(volatility / 0.5, 1.0)
        return 0.4 * data_score + 0.4 * r_squared + 0.2 * stability

    def _confidence_level(self, score: float, data_points: int) -> ConfidenceLevel:
        if data_points < 6:
            return ConfidenceLevel.LOW
        if score >= 0.75:
            return ConfidenceLevel.HIGH
        if score >= 0.5:
            return ConfidenceLevel.MEDIUM
        return ConfidenceLevel.LOW

    def _quarterly_totals(self, values: List[float]) -> List[float]:
        return [round(sum(values[i:i + 3]), 2) for i in range(0, len(values), 3)]

    def _averages(self, statement: ParsedStatement) -> Tuple[float, float, float]:
        months = max(1, statement.month_count)
        revenue_total = statement.revenue.grand_total
        margin = statement.net_income.total / revenue_total * 100 if revenue_total > 0 else 0.0
        return (
            round(revenue_total / months, 2),
            round(statement.expenses.grand_total / months, 2),
            round(margin, 2)
        )

    def _detect_anomalies(self, values: List[float], dates: List[date]) -> List[Dict[str, Any]]:
        """Detect anomalous months using z-score"""
        std_val = np.std(values)
        if std_val == 0:
            return []
        mean_val = np.mean(values)

        anomalies = []
        for i, (value, month_date) in enumerate(zip(values, dates)):
            z_score = (value - mean_val) / std_val
            if abs(z_score) > self.anomaly_threshold:
                anomalies.append({
                    "index": i,
                    "date": month_date.isoformat(),
                    "value": value,
                    "z_score": round(float(z_score), 2),
                    "type": "high" if z_score > 0 else "low"
                })
        return anomalies

    def _generate_insights(self, result: RevenueTrendAnalysis) -> List[str]:
        """Generate human-readable insights"""
        insights = []

        if result.trend_direction == TrendDirection.INCREASING:
            insights.append(f"Revenue shows an upward trend ({result.recommended_growth_rate:+.1f}% per month)")
        elif result.trend_direction == TrendDirection.DECREASING:
            insights.append(f"Revenue shows a downward trend ({result.recommended_growth_rate:+.1f}% per month)")
        elif result.trend_direction == TrendDirection.VOLATILE:
            insights.append("Revenue is highly volatile - treat projections as a range")
        else:
            insights.append("Revenue is relatively stable")

        if result.peak_months:
            names = ", ".join(MONTH_NAMES[m - 1] for m in result.peak_months)
            insights.append(f"Seasonal peaks in {names}")
        if result.low_months:
            names = ", ".join(MONTH_NAMES[m - 1] for m in result.low_months)
            insights.append(f"Seasonal lows in {names} - plan cash reserves ahead of them")

        if result.average_net_margin < 0:
            insights.append(f"Operating at a loss ({result.average_net_margin:.1f}% net margin)")

        if result.anomalies:
            insights.append(
                f"Detected {len(result.anomalies)} unusual month(s) - check for one-off events or data issues"
            )

        return insights

    def _minimal_result(self, statement: ParsedStatement, reason: str) -> RevenueTrendAnalysis:
        """Low-confidence defaults for insufficient history"""
        values = list(statement.revenue.monthly_totals)
        avg_revenue, avg_expenses, net_margin = self._averages(statement)
        return RevenueTrendAnalysis(
            data_points=len(values),
            monthly_growth_rates=[round(g, 2) for g in percent_changes(values)],
            average_growth_rate=0.0,
            recommended_growth_rate=0.0,
            annualized_growth_rate=0.0,
            fit_method="none",
            slope=0.0,
            r_squared=0.0,
            trend_direction=TrendDirection.STABLE,
            seasonality_score=0.0,
            seasonal_indices={},
            volatility_score=0.0,
            peak_months=[],
            low_months=[],
            quarterly_totals=self._quarterly_totals(values),
            average_monthly_revenue=avg_revenue,
            average_monthly_expenses=avg_expenses,
            average_net_margin=net_margin,
            confidence_level=ConfidenceLevel.LOW,
            confidence_score=0.0,
            insights=["Insufficient data for trend analysis - using flat growth"],
            warnings=[reason]
        )
