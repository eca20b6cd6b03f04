"""
Unit tests for three-scenario cash flow statements.
"""
import json
from dataclasses import replace
from datetime import date

import pytest

from forecast_intelligence.config import (
    CapexAssumptions,
    CashFlowAssumptions,
    FinancingAssumptions,
    WorkingCapitalAssumptions,
)
from forecast_intelligence.demo_data import build_profit_and_loss_report
from forecast_intelligence.errors import AssumptionOutOfRangeError
from forecast_intelligence.forecasting import (
    CashFlowStatementService,
    ExpenseCategorizer,
    ForecastEngine,
    ScenarioName,
    TrendAnalyzer,
)
from forecast_intelligence.patterns import RiskLevel


@pytest.fixture
def service():
    return CashFlowStatementService()


def by_scenario(projections):
    return {p.scenario: p for p in projections}


class TestCashContinuity:
    """Test the running cash balance."""

    def test_first_month_starts_from_current_cash(self, service, steady_statement):
        for projection in service.generate_three_scenario_cash_flow_projections(
                steady_statement, 140000.0, 12):
            assert projection.months[0].beginning_cash == 140000.0
            assert projection.current_cash_balance == 140000.0

    def test_ending_is_beginning_plus_change(self, service, steady_statement):
        for projection in service.generate_three_scenario_cash_flow_projections(
                steady_statement, 140000.0, 12):
            for month in projection.months:
                assert month.ending_cash == month.beginning_cash + month.net_cash_change

    def test_months_chain_together(self, service, steady_statement):
        baseline = service.generate_three_scenario_cash_flow_projections(steady_statement, 140000.0, 12)[0]
        for previous, current in zip(baseline.months[:-1], baseline.months[1:]):
            assert current.beginning_cash == previous.ending_cash
        assert baseline.ending_cash == pytest.approx(baseline.months[-1].ending_cash, abs=0.01)

    def test_net_change_is_sum_of_activities(self, service, steady_statement):
        baseline = service.generate_three_scenario_cash_flow_projections(steady_statement, 140000.0, 6)[0]
        for month in baseline.months:
            total = (month.operating.net_cash_from_operations
                     + month.investing.net_cash_from_investing
                     + month.financing.net_cash_from_financing)
            assert month.net_cash_change == pytest.approx(total, abs=0.01)

    def test_operating_cash_reconciles(self, service, steady_statement):
        baseline = service.generate_three_scenario_cash_flow_projections(steady_statement, 140000.0, 3)[0]
        op = baseline.months[0].operating
        expected = (op.net_income + op.depreciation + op.accounts_receivable_change
                    + op.inventory_change + op.accounts_payable_change)
        assert op.net_cash_from_operations == pytest.approx(expected, abs=0.05)

    def test_zero_horizon(self, service, steady_statement):
        for projection in service.generate_three_scenario_cash_flow_projections(
                steady_statement, 5000.0, 0):
            assert projection.months == []
            assert projection.summary.ending_cash_position == 5000.0
            assert projection.summary.risk_level == RiskLevel.LOW


class TestScenarios:
    """Test scenario ordering and risk grading."""

    def test_baseline_ends_between_downturn_and_growth(self, service, steady_statement):
        scenarios = by_scenario(
            service.generate_three_scenario_cash_flow_projections(steady_statement, 140000.0, 12)
        )
        downturn = scenarios[ScenarioName.DOWNTURN].ending_cash
        baseline = scenarios[ScenarioName.BASELINE].ending_cash
        growth = scenarios[ScenarioName.GROWTH].ending_cash
        assert downturn < baseline < growth

    def test_profitable_business_is_low_risk(self, service, steady_statement):
        baseline = service.generate_three_scenario_cash_flow_projections(steady_statement, 140000.0, 12)[0]
        assert baseline.summary.risk_level == RiskLevel.LOW
        assert baseline.summary.cash_zero_month is None
        assert baseline.summary.negative_cash_flow_months == 0

    def test_loss_making_business_runs_out_of_cash(self, service, parser, loss_making_report):
        statement = parser.parse(loss_making_report)
        baseline = service.generate_three_scenario_cash_flow_projections(statement, 15000.0, 12)[0]
        summary = baseline.summary
        assert summary.cash_zero_month == "Feb 2026"
        assert summary.risk_level == RiskLevel.CRITICAL
        assert summary.lowest_cash_position < 0
        assert any("turns negative" in w for w in baseline.warnings)

    def test_negative_month_threshold(self, parser, loss_making_report):
        statement = parser.parse(loss_making_report)
        assumptions = CashFlowAssumptions(negative_cash_months_threshold=12)
        baseline = CashFlowStatementService().generate_three_scenario_cash_flow_projections(
            statement, 1_000_000.0, 12, assumptions=assumptions
        )[0]
        assert baseline.summary.negative_cash_flow_months == 12
        assert baseline.summary.risk_level == RiskLevel.MEDIUM

    def test_precomputed_pnl_projections_are_used(self, service, steady_statement):
        analyzer = TrendAnalyzer()
        pnl = ForecastEngine().generate_three_scenario_forecast(
            steady_statement,
            analyzer.analyze_revenue_trends(steady_statement),
            analyzer.analyze_expense_structure(steady_statement),
            4
        )
        projections = service.generate_three_scenario_cash_flow_projections(
            steady_statement, 140000.0, 4, pnl_projections=pnl
        )
        for cash, source in zip(projections, pnl):
            assert cash.scenario == source.scenario
            assert [m.operating.net_income for m in cash.months] == [r.net_income for r in source.projections]


class TestAssumptions:
    """Test working capital, capex and financing inputs."""

    def test_missing_depreciation_is_warned(self, service, steady_statement):
        baseline = service.generate_three_scenario_cash_flow_projections(steady_statement, 140000.0, 3)[0]
        assert baseline.assumptions["depreciation_source"] == "none"
        assert any("depreciation" in w.lower() for w in baseline.warnings)

    def test_historical_depreciation_is_added_back(self, service, parser, steady_accounts):
        expenses = dict(steady_accounts["expenses"], **{"Depreciation Expense": [1000.0] * 12})
        statement = parser.parse(build_profit_and_loss_report(
            date(2025, 1, 1), steady_accounts["revenue"], expenses, cogs=steady_accounts["cogs"]
        ))
        baseline = service.generate_three_scenario_cash_flow_projections(statement, 140000.0, 3)[0]
        assert baseline.assumptions["depreciation_source"] == "historical"
        assert baseline.months[0].operating.depreciation == pytest.approx(1000.0)

    def test_explicit_monthly_depreciation(self, service, steady_statement):
        assumptions = CashFlowAssumptions(capex=CapexAssumptions(monthly_depreciation=2500.0))
        baseline = service.generate_three_scenario_cash_flow_projections(
            steady_statement, 140000.0, 2, assumptions=assumptions
        )[0]
        assert baseline.assumptions["depreciation_source"] == "assumption"
        assert all(m.operating.depreciation == 2500.0 for m in baseline.months)

    def test_debt_service_reduces_cash(self, service, steady_statement):
        plain = service.generate_three_scenario_cash_flow_projections(steady_statement, 140000.0, 12)[0]
        financed = service.generate_three_scenario_cash_flow_projections(
            steady_statement, 140000.0, 12,
            assumptions=CashFlowAssumptions(financing=FinancingAssumptions(monthly_debt_service=1000.0))
        )[0]
        assert plain.ending_cash - financed.ending_cash == pytest.approx(12000.0, abs=0.05)
        assert financed.months[0].financing.net_cash_from_financing == -1000.0

    def test_owner_draws_follow_profit(self, service, steady_statement):
        assumptions = CashFlowAssumptions(financing=FinancingAssumptions(owner_draw_percent_of_profit=50.0))
        baseline = service.generate_three_scenario_cash_flow_projections(
            steady_statement, 140000.0, 1, assumptions=assumptions
        )[0]
        month = baseline.months[0]
        assert month.financing.owner_draws == pytest.approx(month.operating.net_income * 0.5, abs=0.01)

    def test_replacement_cycle_adds_capex(self, service, steady_statement):
        assumptions = CashFlowAssumptions(
            capex=CapexAssumptions(replacement_cycle_months=6, replacement_amount=5000.0)
        )
        baseline = service.generate_three_scenario_cash_flow_projections(
            steady_statement, 140000.0, 12, assumptions=assumptions
        )[0]
        capex = [m.investing.capital_expenditures for m in baseline.months]
        assert capex[5] - capex[4] > 4900
        assert capex[11] - capex[10] > 4900
        assert capex[6] < 5000

    def test_slower_collections_tie_up_cash(self, service, steady_statement):
        fast = service.generate_three_scenario_cash_flow_projections(steady_statement, 140000.0, 1)[0]
        slow = service.generate_three_scenario_cash_flow_projections(
            steady_statement, 140000.0, 1,
            assumptions=CashFlowAssumptions(
                working_capital=WorkingCapitalAssumptions(days_sales_outstanding=60.0)
            )
        )[0]
        assert slow.months[0].balances["accounts_receivable"] > fast.months[0].balances["accounts_receivable"]

    def test_opening_inventory_follows_projected_expense_model(self, service, steady_statement):
        analyzer = TrendAnalyzer()
        trends = analyzer.analyze_revenue_trends(steady_statement)
        breakdown = analyzer.analyze_expense_structure(steady_statement)
        categorized = ExpenseCategorizer().categorize_expenses(steady_statement, trends, breakdown)
        baseline = ForecastEngine().generate_enhanced_three_scenario_forecast(
            steady_statement, trends, breakdown, categorized, 1
        )[0]
        skewed = replace(baseline, assumptions=replace(baseline.assumptions, variable_cost_ratio=90.0))

        expected = service.build_cash_flow_projection(steady_statement, baseline, 140000.0)
        actual = service.build_cash_flow_projection(steady_statement, skewed, 140000.0)
        assert actual.months[0].operating.inventory_change == expected.months[0].operating.inventory_change

        row = baseline.projections[0]
        last_revenue = steady_statement.revenue.monthly_totals[-1]
        opening = last_revenue * row.variable_costs / row.revenue * 10.0 / 30.0
        assert expected.months[0].operating.inventory_change == pytest.approx(
            -(row.variable_costs * 10.0 / 30.0 - opening), abs=0.01
        )

    @pytest.mark.parametrize("cash", [float("nan"), float("inf"), "100"])
    def test_invalid_cash_balance(self, service, steady_statement, cash):
        with pytest.raises(AssumptionOutOfRangeError):
            service.generate_three_scenario_cash_flow_projections(steady_statement, cash, 12)

    def test_invalid_working_capital(self, service, steady_statement):
        assumptions = CashFlowAssumptions(
            working_capital=WorkingCapitalAssumptions(days_sales_outstanding=-5.0)
        )
        with pytest.raises(AssumptionOutOfRangeError):
            service.generate_three_scenario_cash_flow_projections(
                steady_statement, 140000.0, 12, assumptions=assumptions
            )

    def test_to_dict_is_json_serializable(self, service, steady_statement):
        projections = service.generate_three_scenario_cash_flow_projections(steady_statement, 140000.0, 3)
        payload = json.dumps([p.to_dict() for p in projections])
        assert '"risk_level": "low"' in payload
