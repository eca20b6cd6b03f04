"""
Unit tests for revenue trend and expense structure analysis.
"""
from datetime import date

import pytest

from forecast_intelligence.demo_data import build_profit_and_loss_report
from forecast_intelligence.forecasting import ConfidenceLevel, TrendAnalyzer, TrendDirection


@pytest.fixture
def analyzer():
    return TrendAnalyzer()


class TestRevenueTrends:
    """Test growth fitting, confidence and direction."""

    def test_compound_growth_is_recovered(self, analyzer, steady_statement):
        trends = analyzer.analyze_revenue_trends(steady_statement)
        assert trends.fit_method == "compound"
        assert trends.recommended_growth_rate == pytest.approx(2.0, abs=0.01)
        assert trends.r_squared == pytest.approx(1.0, abs=1e-3)
        assert trends.annualized_growth_rate == pytest.approx(26.82, abs=0.2)

    def test_steady_growth_has_high_confidence(self, analyzer, steady_statement):
        trends = analyzer.analyze_revenue_trends(steady_statement)
        assert trends.confidence_level == ConfidenceLevel.HIGH
        assert trends.trend_direction == TrendDirection.INCREASING
        assert trends.data_points == 12
        assert len(trends.monthly_growth_rates) == 11

    def test_steady_growth_is_not_seasonal(self, analyzer, steady_statement):
        trends = analyzer.analyze_revenue_trends(steady_statement)
        assert not trends.has_seasonality
        assert trends.peak_months == []
        assert set(trends.seasonal_adjustments().values()) == {1.0}

    def test_averages_and_quarters(self, analyzer, steady_statement):
        trends = analyzer.analyze_revenue_trends(steady_statement)
        assert trends.average_monthly_revenue == pytest.approx(45000.0, abs=5.0)
        assert len(trends.quarterly_totals) == 4
        assert sum(trends.quarterly_totals) == pytest.approx(steady_statement.revenue.grand_total, abs=0.05)
        assert trends.average_net_margin > 0

    def test_seasonal_peaks_and_lows(self, analyzer, seasonal_statement):
        trends = analyzer.analyze_revenue_trends(seasonal_statement)
        assert trends.has_seasonality
        assert 6 in trends.peak_months
        assert 1 in trends.low_months
        assert trends.seasonal_adjustments()[6] > 1.2
        assert trends.seasonal_adjustments()[1] < 0.7
        assert any("Seasonal peaks" in insight for insight in trends.insights)

    def test_short_history_degrades_to_defaults(self, analyzer, parser, short_report):
        trends = analyzer.analyze_revenue_trends(parser.parse(short_report))
        assert trends.fit_method == "none"
        assert trends.recommended_growth_rate == 0.0
        assert trends.confidence_level == ConfidenceLevel.LOW
        assert trends.warnings

    def test_confidence_is_low_under_six_months(self, analyzer, parser):
        report = build_profit_and_loss_report(
            date(2025, 1, 1),
            {"Service Revenue": [10000.0, 10200.0, 10404.0, 10612.08, 10824.32]},
            {"Rent or Lease": [2000.0] * 5},
        )
        trends = analyzer.analyze_revenue_trends(parser.parse(report))
        assert trends.confidence_level == ConfidenceLevel.LOW
        # short history damps the fitted rate
        assert trends.recommended_growth_rate == pytest.approx(1.6, abs=0.01)

    def test_anomalous_month_is_flagged(self, analyzer, parser):
        revenue = [10000.0] * 12
        revenue[7] = 30000.0
        report = build_profit_and_loss_report(
            date(2025, 1, 1), {"Service Revenue": revenue}, {"Rent or Lease": [2000.0] * 12}
        )
        trends = analyzer.analyze_revenue_trends(parser.parse(report))
        assert [a["index"] for a in trends.anomalies] == [7]
        assert trends.anomalies[0]["type"] == "high"

    def test_growth_is_capped(self, parser):
        revenue = [round(1000.0 * 1.4 ** i, 2) for i in range(12)]
        report = build_profit_and_loss_report(
            date(2025, 1, 1), {"Service Revenue": revenue}, {"Rent or Lease": [200.0] * 12}
        )
        trends = TrendAnalyzer(growth_cap=(-10.0, 15.0)).analyze_revenue_trends(parser.parse(report))
        assert trends.recommended_growth_rate <= 15.0

    def test_to_dict_uses_month_names(self, analyzer, seasonal_statement):
        data = analyzer.analyze_revenue_trends(seasonal_statement).to_dict()
        assert "Jun" in data["peak_months"]
        assert data["confidence_level"] in {"high", "medium", "low"}


class TestExpenseStructure:
    """Test the coarse fixed/variable split."""

    def test_revenue_linked_costs_are_variable(self, analyzer, steady_statement):
        breakdown = analyzer.analyze_expense_structure(steady_statement)
        assert breakdown.variable.accounts == ["Materials and Supplies"]
        assert breakdown.variable.as_percent_of_revenue == pytest.approx(30.0, abs=0.01)
        assert breakdown.correlations["Materials and Supplies"] == pytest.approx(1.0, abs=1e-3)

    def test_flat_costs_are_fixed(self, analyzer, steady_statement):
        breakdown = analyzer.analyze_expense_structure(steady_statement)
        assert set(breakdown.fixed.accounts) == {
            "Payroll Expenses", "Rent or Lease", "Utilities", "Insurance"
        }
        assert breakdown.fixed.monthly_average == pytest.approx(20300.0)

    def test_totals_add_up(self, analyzer, steady_statement):
        breakdown = analyzer.analyze_expense_structure(steady_statement)
        assert breakdown.fixed.total + breakdown.variable.total == pytest.approx(
            breakdown.total_expenses, abs=0.05
        )

    def test_short_history_treats_everything_as_fixed(self, analyzer, parser, short_report):
        breakdown = analyzer.analyze_expense_structure(parser.parse(short_report))
        assert breakdown.variable.accounts == []
        assert breakdown.fixed.accounts == ["Payroll Expenses"]
        assert breakdown.warnings

    def test_zero_revenue_percentages(self, analyzer, parser, zero_revenue_report):
        breakdown = analyzer.analyze_expense_structure(parser.parse(zero_revenue_report))
        assert breakdown.fixed.as_percent_of_revenue == 0.0
        assert breakdown.variable.as_percent_of_revenue == 0.0
