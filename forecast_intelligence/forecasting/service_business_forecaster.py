"""
Service Business Forecaster for Forecast Intelligence

Alternative revenue model for recurring-customer service businesses.
Revenue is projected from an implied customer base (acquisition minus
churn) and revenue per customer, shaped by seasonality and clipped at a
capacity ceiling. Expenses and the output shape are shared with the
ForecastEngine so the result feeds the cash flow statement unchanged.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, List, Any, Optional, Tuple
from enum import Enum

from dateutil.relativedelta import relativedelta

from ..config.assumptions import ForecastAssumptions, check_finite, check_horizon
from ..parsing.models import ParsedStatement
from .forecast_engine import ForecastEngine, ScenarioProjection
from .scenarios import ScenarioName, ScenarioAssumptions, ScenarioMultiplierTable
from .trend_analyzer import RevenueTrendAnalysis, ExpenseBreakdown

logger = logging.getLogger(__name__)


class BusinessMaturity(Enum):
    """Lifecycle stage inferred from the revenue growth rate"""
    STARTUP = "startup"
    GROWTH = "growth"
    MATURE = "mature"
    DECLINING = "declining"


GROWTH_POTENTIAL_BASE = {
    BusinessMaturity.STARTUP: 80.0,
    BusinessMaturity.GROWTH: 70.0,
    BusinessMaturity.MATURE: 45.0,
    BusinessMaturity.DECLINING: 25.0,
}

MARKET_SATURATION = {
    BusinessMaturity.STARTUP: 0.1,
    BusinessMaturity.GROWTH: 0.3,
    BusinessMaturity.MATURE: 0.6,
    BusinessMaturity.DECLINING: 0.8,
}

COMPETITIVE_DECAY = {
    BusinessMaturity.STARTUP: 0.001,
    BusinessMaturity.GROWTH: 0.002,
    BusinessMaturity.MATURE: 0.004,
    BusinessMaturity.DECLINING: 0.004,
}


@dataclass
class ServiceBusinessMetrics:
    """Customer and capacity profile implied by historical revenue"""
    average_monthly_revenue: float
    revenue_volatility: float
    seasonal_peak_multiplier: float
    average_revenue_per_customer: float
    estimated_customers: float
    customer_acquisition_rate: float     # % of customers added per month
    retention_rate: float                # % of customers kept per month
    capacity_utilization: float          # 0-1
    monthly_capacity: float              # revenue ceiling per month
    business_maturity: BusinessMaturity
    growth_potential_score: float        # 0-100
    market_saturation: float             # 0-1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "average_monthly_revenue": self.average_monthly_revenue,
            "revenue_volatility": self.revenue_volatility,
            "seasonal_peak_multiplier": self.seasonal_peak_multiplier,
            "average_revenue_per_customer": self.average_revenue_per_customer,
            "estimated_customers": self.estimated_customers,
            "customer_acquisition_rate": self.customer_acquisition_rate,
            "retention_rate": self.retention_rate,
            "capacity_utilization": self.capacity_utilization,
            "monthly_capacity": self.monthly_capacity,
            "business_maturity": self.business_maturity.value,
            "growth_potential_score": self.growth_potential_score,
            "market_saturation": self.market_saturation
        }


@dataclass
class ServiceScenarioAssumptions:
    """Customer-driven parameters for one scenario"""
    scenario: ScenarioName
    customer_acquisition_rate: float
    retention_rate: float
    arpc_growth_rate: float              # % per month
    competitive_decay: float             # fraction of ARPC lost per month
    capacity_expansion_months: List[int] = field(default_factory=list)
    capacity_expansion_percent: float = 0.0

    @property
    def churn_rate(self) -> float:
        return 100 - self.retention_rate

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scenario": self.scenario.value,
            "customer_acquisition_rate": self.customer_acquisition_rate,
            "retention_rate": self.retention_rate,
            "arpc_growth_rate": self.arpc_growth_rate,
            "competitive_decay": self.competitive_decay,
            "capacity_expansion_months": self.capacity_expansion_months,
            "capacity_expansion_percent": self.capacity_expansion_percent
        }


class ServiceBusinessForecaster:
    """
    Customer-count revenue model for service businesses.

    Provides:
    - Implied customer base and revenue per customer
    - Acquisition/retention dynamics per scenario
    - Capacity ceiling with planned expansions
    - ScenarioProjection output compatible with the cash flow statement

    Example:
    ```python
    forecaster = ServiceBusinessForecaster(average_ticket=350)

    scenarios = forecaster.generate_three_scenario_forecast(
        statement, trends, breakdown, horizon_months=12
    )
    constrained = [row for row in scenarios[1].projections
                   if row.drivers["capacity_constrained"]]
    ```
    """

    def __init__(
        self,
        average_ticket: Optional[float] = None,
        arpc_annual_growth: float = 3.0,
        capacity_expansion_percent: float = 25.0,
        multipliers: Optional[ScenarioMultiplierTable] = None,
        forecast_engine: Optional[ForecastEngine] = None
    ):
        """
        Initialize forecaster.

        Args:
            average_ticket: Average monthly revenue per customer; None estimates it
            arpc_annual_growth: Price growth per customer (% per year)
            capacity_expansion_percent: Capacity added at each planned expansion
            multipliers: Scenario multiplier table shared with the P&L engine
            forecast_engine: Engine used for expense projection
        """
        if average_ticket is not None:
            check_finite("average_ticket", average_ticket, minimum=0.01)
        self.average_ticket = average_ticket
        self.arpc_annual_growth = arpc_annual_growth
        self.capacity_expansion_percent = capacity_expansion_percent
        self.multipliers = multipliers or ScenarioMultiplierTable()
        self.forecast_engine = forecast_engine or ForecastEngine(self.multipliers)

    def analyze_metrics(
        self,
        parsed: ParsedStatement,
        revenue_trends: RevenueTrendAnalysis
    ) -> ServiceBusinessMetrics:
        """Estimate the customer and capacity profile behind historical revenue"""
        average = revenue_trends.average_monthly_revenue
        volatility = revenue_trends.volatility_score
        peak = max(revenue_trends.seasonal_indices.values()) if revenue_trends.seasonal_indices else 1.0

        if self.average_ticket is not None:
            arpc = self.average_ticket
        else:
            arpc = min(500.0, max(200.0, average / 50))
        customers = average / arpc if average > 0 else 0.0

        retention = max(70.0, 90.0 - volatility * 10)
        churn = 100 - retention
        growth = revenue_trends.recommended_growth_rate
        acquisition = min(15.0 + churn, max(0.0, churn + growth))

        utilization = max(50.0, 75.0 - max(0.0, peak - 1) * 15 - volatility * 10) / 100
        capacity = average / utilization if average > 0 else 0.0

        maturity = self._maturity(growth)
        potential = min(100.0, GROWTH_POTENTIAL_BASE[maturity] + (1 - utilization) * 40)

        metrics = ServiceBusinessMetrics(
            average_monthly_revenue=round(average, 2),
            revenue_volatility=round(volatility, 4),
            seasonal_peak_multiplier=round(peak, 4),
            average_revenue_per_customer=round(arpc, 2),
            estimated_customers=round(customers, 1),
            customer_acquisition_rate=round(acquisition, 4),
            retention_rate=round(retention, 4),
            capacity_utilization=round(utilization, 4),
            monthly_capacity=round(capacity, 2),
            business_maturity=maturity,
            growth_potential_score=round(potential, 1),
            market_saturation=MARKET_SATURATION[maturity]
        )
        logger.info(
            f"Service metrics: ~{metrics.estimated_customers} customers at "
            f"{metrics.average_revenue_per_customer:,.2f}, {maturity.value} stage"
        )
        return metrics

    def create_scenario_assumptions(
        self,
        metrics: ServiceBusinessMetrics,
        scenario: ScenarioName
    ) -> ServiceScenarioAssumptions:
        """Apply the shared scenario multipliers to the customer model"""
        multiplier = self.multipliers.get(scenario)
        if metrics.business_maturity in (BusinessMaturity.STARTUP, BusinessMaturity.GROWTH):
            expansions = [6, 12]
        else:
            expansions = [9]

        return ServiceScenarioAssumptions(
            scenario=ScenarioName(scenario),
            customer_acquisition_rate=metrics.customer_acquisition_rate * multiplier.customer_acquisition,
            retention_rate=min(99.5, metrics.retention_rate * multiplier.retention),
            arpc_growth_rate=((1 + self.arpc_annual_growth / 100) ** (1 / 12) - 1) * 100 * multiplier.growth,
            competitive_decay=COMPETITIVE_DECAY[metrics.business_maturity],
            capacity_expansion_months=expansions,
            capacity_expansion_percent=self.capacity_expansion_percent * multiplier.capacity_expansion
        )

    def generate_revenue_projections(
        self,
        parsed: ParsedStatement,
        metrics: ServiceBusinessMetrics,
        service: ServiceScenarioAssumptions,
        scenario: ScenarioAssumptions,
        horizon_months: int
    ) -> Tuple[List[float], List[Dict[str, Any]]]:
        """Monthly revenue path and per-month customer/capacity detail"""
        start = self.forecast_engine.first_projected_month(parsed)
        customers = metrics.estimated_customers
        arpc = metrics.average_revenue_per_customer
        capacity = metrics.monthly_capacity

        revenue_path: List[float] = []
        details: List[Dict[str, Any]] = []
        for i in range(horizon_months):
            month_date = start + relativedelta(months=i)
            if (i + 1) in service.capacity_expansion_months:
                capacity *= 1 + service.capacity_expansion_percent / 100

            saturation_effect = max(0.7, 1 - metrics.market_saturation * (i + 1) / 24)
            new_customers = customers * service.customer_acquisition_rate / 100 * saturation_effect
            lost_customers = customers * service.churn_rate / 100
            customers = max(0.0, customers + new_customers - lost_customers)

            decay = max(0.8, (1 - service.competitive_decay) ** (i + 1))
            effective_arpc = arpc * (1 + service.arpc_growth_rate / 100) ** (i + 1) * decay

            demand = customers * effective_arpc * scenario.seasonal_factor(month_date.month)
            constrained = demand > capacity
            revenue = min(demand, capacity)

            revenue_path.append(revenue)
            details.append({
                "customers": round(customers, 1),
                "new_customers": round(new_customers, 1),
                "lost_customers": round(lost_customers, 1),
                "average_revenue_per_customer": round(effective_arpc, 2),
                "demand": round(demand, 2),
                "capacity": round(capacity, 2),
                "capacity_utilization": round(revenue / capacity, 4) if capacity > 0 else 0.0,
                "capacity_constrained": constrained
            })
        return revenue_path, details

    def generate_three_scenario_forecast(
        self,
        parsed: ParsedStatement,
        revenue_trends: RevenueTrendAnalysis,
        expense_breakdown: ExpenseBreakdown,
        horizon_months: int,
        assumptions: Optional[ForecastAssumptions] = None
    ) -> List[ScenarioProjection]:
        """
        Project all three scenarios with the customer-driven revenue model.

        Returns:
            Baseline, growth and downturn projections (mode "service")
        """
        check_horizon(horizon_months, self.forecast_engine.max_horizon_months)
        metrics = self.analyze_metrics(parsed, revenue_trends)
        baseline = self.forecast_engine.build_baseline_assumptions(
            revenue_trends, expense_breakdown, assumptions
        )

        results = []
        for name in self.multipliers.scenarios:
            service = self.create_scenario_assumptions(metrics, name)
            scenario = replace(
                self.multipliers.apply(baseline, name),
                monthly_growth_rate=round(service.customer_acquisition_rate - service.churn_rate, 4)
            )
            revenue_path, details = self.generate_revenue_projections(
                parsed, metrics, service, scenario, horizon_months
            )

            warnings = []
            constrained = sum(1 for d in details if d["capacity_constrained"])
            if constrained:
                warnings.append(f"Demand exceeds capacity in {constrained} month(s); revenue clipped")

            projection = self.forecast_engine.project_from_revenue(
                parsed, scenario, revenue_path,
                fixed_base=expense_breakdown.fixed.monthly_average,
                drivers=details,
                warnings=warnings,
                mode="service"
            )
            results.append(projection)
            logger.info(
                f"service {name.value}: net income {projection.summary.total_net_income:,.2f}, "
                f"{constrained} constrained month(s)"
            )

        return results

    def _maturity(self, growth_rate: float) -> BusinessMaturity:
        if growth_rate > 10:
            return BusinessMaturity.STARTUP
        if growth_rate > 3:
            return BusinessMaturity.GROWTH
        if growth_rate > -2:
            return BusinessMaturity.MATURE
        return BusinessMaturity.DECLINING
