"""
Driver Discovery Service for Forecast Intelligence

Scores each historical revenue and expense line on materiality,
variability, predictability, growth impact and data quality, selects the
lines worth forecasting individually, and recommends a forecast method
for each. Output is advisory; no other component reads it.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Any, Optional, Union
from enum import Enum

import numpy as np

from ..parsing.models import FinancialLine, ParsedStatement
from ..parsing.report_parser import ReportParser
from ..forecasting.metrics import coefficient_of_variation, correlation, linear_fit
from ..patterns.risk_classification import RiskLevel, create_confidence_classifier
from ..patterns.weighted_scoring import (
    ScoreResult,
    WeightedScoringEngine,
    create_driver_scoring_engine
)

logger = logging.getLogger(__name__)


class ForecastMethod(Enum):
    """Recommended way to forecast a driver"""
    REVENUE_DRIVEN = "revenue-driven"
    TREND = "trend"
    FIXED = "fixed"
    MANUAL = "manual"


# Risk of a low-confidence forecast, inverted into a confidence label
CONFIDENCE_BY_RISK = {
    RiskLevel.LOW: "high",
    RiskLevel.MEDIUM: "medium",
    RiskLevel.HIGH: "low",
    RiskLevel.CRITICAL: "low",
}

CONFIDENCE_POINTS = {"high": 0.8, "medium": 0.6, "low": 0.4}


@dataclass
class LineItemAnalysis:
    """Raw 0-1 scores for one P&L line"""
    name: str
    category: str                      # revenue or expense
    account_id: Optional[str]
    monthly_values: List[float]
    total: float
    average_monthly_value: float
    materiality: float
    variability: float
    predictability: float
    growth_impact: float
    data_quality: float
    revenue_correlation: float

    def score_inputs(self) -> Dict[str, float]:
        return {
            "materiality": self.materiality,
            "variability": self.variability,
            "predictability": self.predictability,
            "growth_impact": self.growth_impact,
            "data_quality": self.data_quality
        }


@dataclass
class SuggestedMethod:
    """Forecast method with its parameters"""
    method: ForecastMethod
    parameters: Dict[str, float]
    confidence: float
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "method": self.method.value,
            "parameters": self.parameters,
            "confidence": self.confidence,
            "reason": self.reason
        }


@dataclass
class DiscoveredDriver:
    """A line item selected to carry forecast responsibility"""
    name: str
    category: str
    account_id: Optional[str]
    impact_score: float                # 0-100 composite
    grade: str
    materiality: float                 # 0-100
    variability: float                 # 0-100
    predictability: float              # 0-100
    growth_impact: float               # 0-100
    data_quality: float                # 0-100
    revenue_correlation: float
    coverage: float                    # % of revenue or expenses
    business_type: str
    trend: str                         # growing, declining or stable
    annual_growth_rate: float          # %
    confidence: str
    confidence_score: float            # 0-100
    suggested_method: SuggestedMethod
    monthly_values: List[float] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "category": self.category,
            "account_id": self.account_id,
            "impact_score": self.impact_score,
            "grade": self.grade,
            "materiality": self.materiality,
            "variability": self.variability,
            "predictability": self.predictability,
            "growth_impact": self.growth_impact,
            "data_quality": self.data_quality,
            "revenue_correlation": self.revenue_correlation,
            "coverage": self.coverage,
            "business_type": self.business_type,
            "trend": self.trend,
            "annual_growth_rate": self.annual_growth_rate,
            "confidence": self.confidence,
            "confidence_score": self.confidence_score,
            "suggested_method": self.suggested_method.to_dict(),
            "monthly_values": self.monthly_values,
            "notes": self.notes
        }


@dataclass
class ExcludedItem:
    name: str
    category: str
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "category": self.category, "reason": self.reason}


@dataclass
class DriverRecommendations:
    primary: List[DiscoveredDriver]
    secondary: List[DiscoveredDriver]
    excluded: List[ExcludedItem]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "primary_drivers": [d.name for d in self.primary],
            "secondary_drivers": [d.name for d in self.secondary],
            "excluded_items": [item.to_dict() for item in self.excluded]
        }


@dataclass
class DriverDiscoverySummary:
    lines_analyzed: int
    drivers_found: int
    business_coverage: float           # %
    average_confidence: float          # 0-100
    months_analyzed: int
    data_quality: str                  # excellent, good, fair or poor

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lines_analyzed": self.lines_analyzed,
            "drivers_found": self.drivers_found,
            "business_coverage": self.business_coverage,
            "average_confidence": self.average_confidence,
            "months_analyzed": self.months_analyzed,
            "data_quality": self.data_quality
        }


@dataclass
class DriverDiscoveryResult:
    """Complete driver discovery output"""
    drivers: List[DiscoveredDriver]
    summary: DriverDiscoverySummary
    recommendations: DriverRecommendations
    period_start: date
    period_end: date

    def to_dict(self) -> Dict[str, Any]:
        return {
            "drivers": [d.to_dict() for d in self.drivers],
            "summary": self.summary.to_dict(),
            "recommendations": self.recommendations.to_dict(),
            "period": {
                "start_date": self.period_start.isoformat(),
                "end_date": self.period_end.isoformat()
            }
        }


class DriverDiscoveryService:
    """
    Finds the P&L lines that should drive a forecast.

    Provides:
    - Per-line materiality, variability, predictability, growth and data scores
    - Weighted composite ranking and selection thresholds
    - Recommended forecast method per driver
    - Primary / secondary / excluded recommendations

    Example:
    ```python
    service = DriverDiscoveryService()

    result = service.discover_drivers(statement)   # or a raw report dict
    for driver in result.recommendations.primary:
        print(driver.name, driver.suggested_method.method.value)
    ```
    """

    def __init__(
        self,
        scoring_engine: Optional[WeightedScoringEngine] = None,
        parser: Optional[ReportParser] = None,
        minimum_score: float = 0.2,
        minimum_materiality: float = 0.005,
        minimum_data_quality: float = 0.05,
        revenue_correlation_threshold: float = 0.7,
        fixed_cv_threshold: float = 0.15,
        primary_count: int = 5
    ):
        """
        Initialize service.

        Args:
            scoring_engine: Composite scoring engine (defaults to the driver weights)
            parser: Parser used when a raw report payload is supplied
            minimum_score: Composite score (0-1) a line must exceed
            minimum_materiality: Share of the business a line must exceed
            minimum_data_quality: Share of active months a line must exceed
            revenue_correlation_threshold: Correlation above which an expense is revenue-driven
            fixed_cv_threshold: Coefficient of variation below which a line is fixed
            primary_count: Number of top drivers recommended as primary
        """
        self.scoring_engine = scoring_engine or create_driver_scoring_engine()
        self.parser = parser or ReportParser()
        self.confidence_classifier = create_confidence_classifier()
        self.minimum_score = minimum_score
        self.minimum_materiality = minimum_materiality
        self.minimum_data_quality = minimum_data_quality
        self.revenue_correlation_threshold = revenue_correlation_threshold
        self.fixed_cv_threshold = fixed_cv_threshold
        self.primary_count = primary_count

    def discover_drivers(self, data: Union[ParsedStatement, Dict[str, Any]]) -> DriverDiscoveryResult:
        """
        Analyze every detail line and rank candidate drivers.

        Args:
            data: A ParsedStatement or a raw profit & loss report payload

        Returns:
            DriverDiscoveryResult sorted by impact score
        """
        statement = data if isinstance(data, ParsedStatement) else self.parser.parse(data)

        analyses: List[LineItemAnalysis] = []
        excluded: List[ExcludedItem] = []
        for category, group in (("revenue", statement.revenue), ("expense", statement.expenses)):
            for line in group.detail_lines:
                if not line.account_name.strip():
                    continue
                analysis = self.analyze_line_item(line, category, statement)
                if analysis is None:
                    excluded.append(ExcludedItem(line.account_name, category, "No material activity"))
                else:
                    analyses.append(analysis)

        drivers = []
        for analysis in analyses:
            result = self.scoring_engine.score(analysis.score_inputs(), entity_id=analysis.name)
            composite = result.overall_score / 100
            logger.debug(
                f"{analysis.name}: score {composite:.3f}, materiality {analysis.materiality:.3f}, "
                f"data quality {analysis.data_quality:.2f}"
            )
            reason = self._exclusion_reason(analysis, composite)
            if reason:
                excluded.append(ExcludedItem(analysis.name, analysis.category, reason))
                continue
            drivers.append(self._build_driver(analysis, result, statement.revenue.grand_total))

        drivers.sort(key=lambda d: d.impact_score, reverse=True)
        recommendations = DriverRecommendations(
            primary=drivers[:self.primary_count],
            secondary=drivers[self.primary_count:],
            excluded=excluded
        )

        summary = DriverDiscoverySummary(
            lines_analyzed=len(analyses),
            drivers_found=len(drivers),
            business_coverage=round(self._business_coverage(drivers), 1),
            average_confidence=self._average_confidence(drivers),
            months_analyzed=statement.month_count,
            data_quality=self._assess_data_quality(drivers)
        )
        logger.info(
            f"Driver discovery: {summary.drivers_found} drivers from {summary.lines_analyzed} lines, "
            f"{summary.business_coverage}% coverage"
        )

        return DriverDiscoveryResult(
            drivers=drivers,
            summary=summary,
            recommendations=recommendations,
            period_start=statement.period.start_date,
            period_end=statement.period.end_date
        )

    def analyze_line_item(
        self,
        line: FinancialLine,
        category: str,
        statement: ParsedStatement
    ) -> Optional[LineItemAnalysis]:
        """Raw scores for one line, or None when it has no meaningful activity"""
        values = line.values
        group = statement.revenue if category == "revenue" else statement.expenses
        business_total = group.grand_total
        if not values or abs(line.total) < 1 or business_total == 0:
            return None

        cv = coefficient_of_variation(values)
        _, _, r_squared = linear_fit(values) if len(values) >= 3 else (0.0, 0.0, 0.0)
        growth = self._annualized_growth(values, min_months=6)

        return LineItemAnalysis(
            name=line.account_name,
            category=category,
            account_id=line.account_id,
            monthly_values=list(values),
            total=line.total,
            average_monthly_value=float(np.mean(values)),
            materiality=abs(line.total) / abs(business_total),
            variability=min(cv, 5.0) / 5.0,
            predictability=r_squared,
            growth_impact=min(abs(growth) * 5, 1.0),
            data_quality=sum(1 for v in values if v != 0) / len(values),
            revenue_correlation=correlation(values, list(statement.revenue.monthly_totals))
        )

    def suggest_method(self, analysis: LineItemAnalysis, revenue_total: float) -> SuggestedMethod:
        """Pick a forecast method from the line's statistical profile"""
        values = analysis.monthly_values

        if analysis.category == "expense" and analysis.revenue_correlation > self.revenue_correlation_threshold:
            ratio = analysis.total / revenue_total if revenue_total else 0.0
            return SuggestedMethod(
                ForecastMethod.REVENUE_DRIVEN,
                {"percent_of_revenue": round(ratio * 100, 2)},
                round(analysis.revenue_correlation, 2),
                "Moves with revenue"
            )

        if analysis.predictability > 0.8 and analysis.variability < 0.2:
            slope, _, _ = linear_fit(values)
            return SuggestedMethod(
                ForecastMethod.TREND,
                {"monthly_change": round(slope, 2)},
                round(analysis.predictability, 2),
                "Follows a steady trend"
            )

        if analysis.variability > 0.5:
            return SuggestedMethod(
                ForecastMethod.MANUAL,
                {
                    "conservative_value": round(float(np.percentile(values, 25)), 2),
                    "base_value": round(analysis.average_monthly_value, 2),
                    "aggressive_value": round(float(np.percentile(values, 75)), 2)
                },
                0.6,
                "Too irregular to extrapolate; set a scenario range"
            )

        if analysis.variability * 5 < self.fixed_cv_threshold:
            return SuggestedMethod(
                ForecastMethod.FIXED,
                {"monthly_amount": round(analysis.average_monthly_value, 2)},
                0.7,
                "Stable month to month"
            )

        return SuggestedMethod(
            ForecastMethod.TREND,
            {"annual_growth_rate": round(self._annualized_growth(values) * 100, 2)},
            0.5,
            "No stronger pattern; extend the recent growth rate"
        )

    def _build_driver(
        self,
        analysis: LineItemAnalysis,
        score: ScoreResult,
        revenue_total: float
    ) -> DiscoveredDriver:
        confidence_score = np.mean([
            analysis.predictability,
            analysis.data_quality,
            min(analysis.materiality * 2, 1.0),
            1 - analysis.variability
        ]) * 100
        classification = self.confidence_classifier.classify(confidence_score, entity_id=analysis.name)
        annual_growth = self._annualized_growth(analysis.monthly_values)

        return DiscoveredDriver(
            name=analysis.name,
            category=analysis.category,
            account_id=analysis.account_id,
            impact_score=round(score.overall_score, 1),
            grade=score.grade,
            materiality=round(analysis.materiality * 100, 1),
            variability=round(analysis.variability * 100, 1),
            predictability=round(analysis.predictability * 100, 1),
            growth_impact=round(analysis.growth_impact * 100, 1),
            data_quality=round(analysis.data_quality * 100, 1),
            revenue_correlation=round(analysis.revenue_correlation, 4),
            coverage=round(analysis.materiality * 100, 2),
            business_type=self._business_type(analysis),
            trend="growing" if annual_growth > 0.05 else "declining" if annual_growth < -0.05 else "stable",
            annual_growth_rate=round(annual_growth * 100, 2),
            confidence=CONFIDENCE_BY_RISK[classification.level],
            confidence_score=round(float(confidence_score), 1),
            suggested_method=self.suggest_method(analysis, revenue_total),
            monthly_values=analysis.monthly_values,
            notes=score.notes
        )

    def _exclusion_reason(self, analysis: LineItemAnalysis, composite: float) -> Optional[str]:
        if analysis.materiality <= self.minimum_materiality:
            return f"Immaterial ({analysis.materiality * 100:.2f}% of {analysis.category})"
        if analysis.data_quality <= self.minimum_data_quality:
            return "Too few months with activity"
        if composite <= self.minimum_score:
            return f"Low driver score ({composite:.2f})"
        return None

    def _business_type(self, analysis: LineItemAnalysis) -> str:
        if analysis.category == "revenue":
            return "recurring_revenue" if analysis.variability < 0.2 else "variable_revenue"
        if analysis.revenue_correlation > self.revenue_correlation_threshold:
            return "variable_cost"
        return "fixed_cost"

    def _annualized_growth(self, values: List[float], min_months: int = 12) -> float:
        """First active month to last month, annualized, as a fraction"""
        if len(values) < min_months:
            return 0.0
        start = next((i for i, v in enumerate(values) if v != 0), None)
        if start is None:
            return 0.0
        first = values[start]
        last = values[-1]
        years = (len(values) - start) / 12
        return float((abs(last) / abs(first)) ** (1 / years) - 1)

    def _business_coverage(self, drivers: List[DiscoveredDriver]) -> float:
        """Average of revenue and expense coverage, capped at 100%"""
        revenue = sum(d.coverage for d in drivers if d.category == "revenue")
        expenses = sum(d.coverage for d in drivers if d.category == "expense")
        return min((revenue + expenses) / 2, 100.0)

    def _average_confidence(self, drivers: List[DiscoveredDriver]) -> float:
        if not drivers:
            return 0.0
        return round(float(np.mean([CONFIDENCE_POINTS[d.confidence] for d in drivers])) * 100, 1)

    def _assess_data_quality(self, drivers: List[DiscoveredDriver]) -> str:
        if not drivers:
            return "poor"
        average = float(np.mean([d.data_quality for d in drivers]))
        if average > 85:
            return "excellent"
        if average > 70:
            return "good"
        if average > 50:
            return "fair"
        return "poor"
