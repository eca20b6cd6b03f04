"""
Unit tests for settings and forecast assumption objects.
"""
import logging

import pytest

from forecast_intelligence.config import (
    CapexAssumptions,
    CashFlowAssumptions,
    FinancingAssumptions,
    ForecastAssumptions,
    WorkingCapitalAssumptions,
    check_finite,
    check_horizon,
    configure_logging,
    get_config,
    settings,
)
from forecast_intelligence.errors import AssumptionOutOfRangeError


class TestSettings:
    """Test environment-based configuration selection."""

    @pytest.mark.parametrize("env,expected", [
        ("testing", "TestingConfig"),
        ("production", "ProductionConfig"),
        ("development", "DevelopmentConfig"),
        ("unknown", "DevelopmentConfig"),
    ])
    def test_get_config(self, monkeypatch, env, expected):
        monkeypatch.setenv("FORECAST_ENV", env)
        assert get_config().__name__ == expected

    def test_default_environment(self, monkeypatch):
        monkeypatch.delenv("FORECAST_ENV", raising=False)
        assert get_config() is settings.DevelopmentConfig

    def test_defaults(self):
        cfg = settings.TestingConfig
        assert cfg.DEFAULT_HORIZON_MONTHS == 12
        assert cfg.MAX_HORIZON_MONTHS == 60
        assert cfg.NEGATIVE_CASH_MONTHS_THRESHOLD == 2
        assert cfg.TESTING

    def test_configure_logging(self, monkeypatch):
        monkeypatch.setenv("FORECAST_ENV", "testing")
        configure_logging("debug")
        logging.getLogger("forecast_intelligence").debug("configured")


class TestValidationHelpers:
    """Test numeric and horizon checks."""

    @pytest.mark.parametrize("value", [0, 1.5, -2, 1e9])
    def test_finite_numbers_pass(self, value):
        assert check_finite("x", value) == float(value)

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), "3", None, True])
    def test_invalid_numbers(self, value):
        with pytest.raises(AssumptionOutOfRangeError):
            check_finite("x", value)

    def test_bounds(self):
        with pytest.raises(AssumptionOutOfRangeError, match="must be >= 0"):
            check_finite("rate", -1.0, minimum=0.0)
        with pytest.raises(AssumptionOutOfRangeError, match="must be <= 100"):
            check_finite("rate", 101.0, maximum=100.0)

    def test_out_of_range_is_a_value_error(self):
        with pytest.raises(ValueError):
            check_finite("x", float("nan"))

    @pytest.mark.parametrize("horizon", [0, 1, 60])
    def test_valid_horizons(self, horizon):
        assert check_horizon(horizon, 60) == horizon

    @pytest.mark.parametrize("horizon", [-1, 61, 12.0, "12", False])
    def test_invalid_horizons(self, horizon):
        with pytest.raises(AssumptionOutOfRangeError) as excinfo:
            check_horizon(horizon, 60)
        assert excinfo.value.name == "horizon_months"


class TestForecastAssumptions:
    """Test P&L override objects."""

    def test_defaults_are_valid(self):
        assumptions = ForecastAssumptions().validate()
        assert assumptions.baseline_growth_rate is None
        assert assumptions.fixed_cost_inflation == 3.0

    def test_from_dict_ignores_unknown_keys(self):
        assumptions = ForecastAssumptions.from_dict({"baseline_growth_rate": 1.5, "colour": "blue"})
        assert assumptions.baseline_growth_rate == 1.5

    def test_from_empty(self):
        assert ForecastAssumptions.from_dict(None) == ForecastAssumptions()

    def test_unknown_inflation_scenario(self):
        with pytest.raises(AssumptionOutOfRangeError):
            ForecastAssumptions(inflation_scenario="stagflation").validate()

    def test_growth_floor(self):
        with pytest.raises(AssumptionOutOfRangeError):
            ForecastAssumptions(baseline_growth_rate=-150.0).validate()

    def test_round_trip_dict(self):
        data = ForecastAssumptions(variable_cost_ratio=40.0).to_dict()
        assert data["variable_cost_ratio"] == 40.0


class TestCashFlowAssumptions:
    """Test cash flow input objects."""

    def test_defaults(self):
        assumptions = CashFlowAssumptions().validate()
        assert assumptions.working_capital.days_sales_outstanding == 35.0
        assert assumptions.capex.annual_depreciation_rate == 15.0
        assert assumptions.financing.monthly_debt_service == 0.0

    def test_nested_from_dict(self):
        assumptions = CashFlowAssumptions.from_dict({
            "working_capital": {"days_sales_outstanding": 45},
            "capex": {"replacement_cycle_months": 12, "replacement_amount": 8000.0},
            "financing": {"monthly_owner_draws": 2000.0, "bank": "ignored"},
            "negative_cash_months_threshold": 3,
        })
        assert assumptions.working_capital.days_sales_outstanding == 45
        assert assumptions.working_capital.days_payable_outstanding == 30.0
        assert assumptions.capex.replacement_cycle_months == 12
        assert assumptions.financing.monthly_owner_draws == 2000.0
        assert assumptions.negative_cash_months_threshold == 3

    @pytest.mark.parametrize("assumptions", [
        WorkingCapitalAssumptions(days_per_month=0.0),
        CapexAssumptions(capex_percent_of_revenue=120.0),
        CapexAssumptions(replacement_cycle_months=0),
        CapexAssumptions(replacement_cycle_months=True),
        FinancingAssumptions(owner_draw_percent_of_profit=101.0),
        FinancingAssumptions(monthly_debt_service=float("inf")),
    ])
    def test_invalid_components(self, assumptions):
        with pytest.raises(AssumptionOutOfRangeError):
            assumptions.validate()

    def test_negative_threshold(self):
        with pytest.raises(AssumptionOutOfRangeError):
            CashFlowAssumptions(negative_cash_months_threshold=-1).validate()
