"""
Unit tests for the customer-driven service business forecaster.
"""
import dataclasses

import pytest

from forecast_intelligence.errors import AssumptionOutOfRangeError
from forecast_intelligence.forecasting import (
    BusinessMaturity,
    ScenarioName,
    ServiceBusinessForecaster,
    TrendAnalyzer,
)

DRIVER_KEYS = {
    "customers",
    "new_customers",
    "lost_customers",
    "average_revenue_per_customer",
    "demand",
    "capacity",
    "capacity_utilization",
    "capacity_constrained",
}


@pytest.fixture
def analysis(steady_statement):
    analyzer = TrendAnalyzer()
    return (
        analyzer.analyze_revenue_trends(steady_statement),
        analyzer.analyze_expense_structure(steady_statement),
    )


def by_scenario(projections):
    return {p.scenario: p for p in projections}


class TestServiceMetrics:
    """Test the implied customer and capacity profile."""

    def test_estimated_customer_base(self, steady_statement, analysis):
        trends, _ = analysis
        metrics = ServiceBusinessForecaster().analyze_metrics(steady_statement, trends)
        assert metrics.average_revenue_per_customer == 500.0
        assert metrics.estimated_customers == pytest.approx(90.0, abs=0.5)
        assert metrics.business_maturity == BusinessMaturity.MATURE
        assert metrics.market_saturation == 0.6

    def test_retention_and_acquisition(self, steady_statement, analysis):
        trends, _ = analysis
        metrics = ServiceBusinessForecaster().analyze_metrics(steady_statement, trends)
        churn = 100 - metrics.retention_rate
        assert metrics.retention_rate == pytest.approx(90.0, abs=0.1)
        assert metrics.customer_acquisition_rate == pytest.approx(
            churn + trends.recommended_growth_rate, abs=1e-3
        )

    def test_capacity_sits_above_average_revenue(self, steady_statement, analysis):
        trends, _ = analysis
        metrics = ServiceBusinessForecaster().analyze_metrics(steady_statement, trends)
        assert 0.5 <= metrics.capacity_utilization <= 0.75
        assert metrics.monthly_capacity == pytest.approx(
            metrics.average_monthly_revenue / metrics.capacity_utilization, rel=1e-3
        )

    def test_average_ticket_override(self, steady_statement, analysis):
        trends, _ = analysis
        metrics = ServiceBusinessForecaster(average_ticket=1000.0).analyze_metrics(steady_statement, trends)
        assert metrics.average_revenue_per_customer == 1000.0
        assert metrics.estimated_customers == pytest.approx(45.0, abs=0.5)

    @pytest.mark.parametrize("ticket", [0.0, -10.0, float("nan")])
    def test_invalid_average_ticket(self, ticket):
        with pytest.raises(AssumptionOutOfRangeError):
            ServiceBusinessForecaster(average_ticket=ticket)

    @pytest.mark.parametrize(
        "growth,maturity",
        [
            (12.0, BusinessMaturity.STARTUP),
            (5.0, BusinessMaturity.GROWTH),
            (0.0, BusinessMaturity.MATURE),
            (-4.0, BusinessMaturity.DECLINING),
        ],
    )
    def test_maturity_from_growth(self, steady_statement, analysis, growth, maturity):
        trends, _ = analysis
        trends = dataclasses.replace(trends, recommended_growth_rate=growth)
        metrics = ServiceBusinessForecaster().analyze_metrics(steady_statement, trends)
        assert metrics.business_maturity == maturity


class TestScenarioAssumptions:
    """Test scenario multipliers on the customer model."""

    def test_growth_and_downturn_shift_customer_dynamics(self, steady_statement, analysis):
        trends, _ = analysis
        forecaster = ServiceBusinessForecaster()
        metrics = forecaster.analyze_metrics(steady_statement, trends)
        growth = forecaster.create_scenario_assumptions(metrics, ScenarioName.GROWTH)
        downturn = forecaster.create_scenario_assumptions(metrics, ScenarioName.DOWNTURN)
        assert growth.customer_acquisition_rate == pytest.approx(metrics.customer_acquisition_rate * 1.3)
        assert downturn.customer_acquisition_rate == pytest.approx(metrics.customer_acquisition_rate * 0.6)
        assert growth.churn_rate < downturn.churn_rate
        assert growth.capacity_expansion_percent == pytest.approx(37.5)
        assert downturn.capacity_expansion_percent == pytest.approx(12.5)

    def test_expansion_schedule_follows_maturity(self, steady_statement, analysis):
        trends, _ = analysis
        forecaster = ServiceBusinessForecaster()
        mature = forecaster.analyze_metrics(steady_statement, trends)
        young = forecaster.analyze_metrics(
            steady_statement, dataclasses.replace(trends, recommended_growth_rate=12.0)
        )
        assert forecaster.create_scenario_assumptions(mature, ScenarioName.BASELINE).capacity_expansion_months == [9]
        assert forecaster.create_scenario_assumptions(young, ScenarioName.BASELINE).capacity_expansion_months == [6, 12]


class TestServiceForecast:
    """Test the three-scenario service projection."""

    def test_projection_shape(self, steady_statement, analysis):
        trends, breakdown = analysis
        projections = ServiceBusinessForecaster().generate_three_scenario_forecast(
            steady_statement, trends, breakdown, 12
        )
        assert [p.scenario for p in projections] == [
            ScenarioName.BASELINE, ScenarioName.GROWTH, ScenarioName.DOWNTURN
        ]
        for projection in projections:
            assert projection.mode == "service"
            assert len(projection.projections) == 12
            assert all(set(row.drivers) == DRIVER_KEYS for row in projection.projections)

    def test_revenue_never_exceeds_capacity(self, steady_statement, analysis):
        trends, breakdown = analysis
        for projection in ServiceBusinessForecaster().generate_three_scenario_forecast(
                steady_statement, trends, breakdown, 24):
            for row in projection.projections:
                assert row.drivers["capacity_utilization"] <= 1.0
                assert row.revenue <= row.drivers["capacity"] + 0.01

    def test_growth_scenario_hits_capacity(self, steady_statement, analysis):
        trends, breakdown = analysis
        scenarios = by_scenario(ServiceBusinessForecaster().generate_three_scenario_forecast(
            steady_statement, trends, breakdown, 12
        ))
        growth = scenarios[ScenarioName.GROWTH]
        constrained = [row for row in growth.projections if row.drivers["capacity_constrained"]]
        assert constrained
        assert all(row.drivers["capacity_utilization"] == 1.0 for row in constrained)
        assert any("exceeds capacity" in w for w in growth.warnings)

    def test_downturn_loses_customers(self, steady_statement, analysis):
        trends, breakdown = analysis
        scenarios = by_scenario(ServiceBusinessForecaster().generate_three_scenario_forecast(
            steady_statement, trends, breakdown, 12
        ))
        downturn = scenarios[ScenarioName.DOWNTURN].projections
        assert downturn[-1].drivers["customers"] < downturn[0].drivers["customers"]
        assert not any(row.drivers["capacity_constrained"] for row in downturn)
        assert (scenarios[ScenarioName.DOWNTURN].summary.total_projected_revenue
                < scenarios[ScenarioName.GROWTH].summary.total_projected_revenue)

    def test_scenario_growth_rate_is_net_customer_change(self, steady_statement, analysis):
        trends, breakdown = analysis
        forecaster = ServiceBusinessForecaster()
        metrics = forecaster.analyze_metrics(steady_statement, trends)
        baseline = forecaster.generate_three_scenario_forecast(steady_statement, trends, breakdown, 3)[0]
        service = forecaster.create_scenario_assumptions(metrics, ScenarioName.BASELINE)
        assert baseline.assumptions.monthly_growth_rate == pytest.approx(
            service.customer_acquisition_rate - service.churn_rate, abs=1e-4
        )

    def test_expenses_follow_the_fixed_variable_model(self, steady_statement, analysis):
        trends, breakdown = analysis
        row = ServiceBusinessForecaster().generate_three_scenario_forecast(
            steady_statement, trends, breakdown, 1
        )[0].projections[0]
        assert row.fixed_costs == pytest.approx(20300.0 * 1.03 ** (1 / 12), abs=0.01)
        assert row.variable_costs == pytest.approx(row.revenue * 0.30, abs=1.0)

    def test_zero_horizon(self, steady_statement, analysis):
        trends, breakdown = analysis
        projections = ServiceBusinessForecaster().generate_three_scenario_forecast(
            steady_statement, trends, breakdown, 0
        )
        assert all(p.projections == [] for p in projections)

    def test_negative_horizon(self, steady_statement, analysis):
        trends, breakdown = analysis
        with pytest.raises(AssumptionOutOfRangeError):
            ServiceBusinessForecaster().generate_three_scenario_forecast(
                steady_statement, trends, breakdown, -3
            )
