"""
Unit tests for the scenario multiplier table.
"""
import pytest

from forecast_intelligence.forecasting import (
    ScenarioAssumptions,
    ScenarioMultiplier,
    ScenarioMultiplierTable,
    ScenarioName,
    shift_confidence,
)


def baseline_assumptions(rate, **overrides):
    fields = dict(
        scenario=ScenarioName.BASELINE,
        monthly_growth_rate=rate,
        variable_cost_ratio=30.0,
        fixed_cost_inflation=3.0,
        confidence_level="high",
        seasonal_adjustments={6: 1.4, 12: 0.6},
    )
    fields.update(overrides)
    return ScenarioAssumptions(**fields)


class TestScenarioGrowthRates:
    """Test per-scenario monthly growth rates."""

    @pytest.mark.parametrize("baseline,growth,downturn", [
        (2.0, 3.0, -2.0),
        (10.0, 15.0, -3.0),
        (0.0, 0.0, -2.0),
        (-2.0, -2.0, -4.0),
        (-10.0, -10.0, -12.0),
    ])
    def test_default_rates(self, baseline, growth, downturn):
        table = ScenarioMultiplierTable()
        assert table.growth_rate(baseline, ScenarioName.BASELINE) == baseline
        assert table.growth_rate(baseline, ScenarioName.GROWTH) == pytest.approx(growth)
        assert table.growth_rate(baseline, ScenarioName.DOWNTURN) == pytest.approx(downturn)

    @pytest.mark.parametrize("baseline", [-25.0, -3.0, -0.5, 0.0, 0.5, 4.0, 40.0])
    def test_downturn_below_baseline_below_growth(self, baseline):
        table = ScenarioMultiplierTable()
        downturn = table.growth_rate(baseline, ScenarioName.DOWNTURN)
        growth = table.growth_rate(baseline, ScenarioName.GROWTH)
        assert downturn < 0
        assert downturn < baseline <= growth

    def test_downturn_without_ceiling(self):
        table = ScenarioMultiplierTable({
            ScenarioName.DOWNTURN: ScenarioMultiplier(growth=0.5)
        })
        assert table.growth_rate(4.0, ScenarioName.DOWNTURN) == pytest.approx(2.0)
        assert table.growth_rate(-4.0, ScenarioName.DOWNTURN) == pytest.approx(-4.0)

    def test_growth_override_never_undercuts_baseline(self):
        table = ScenarioMultiplierTable({ScenarioName.GROWTH: ScenarioMultiplier(growth=0.5)})
        assert table.growth_rate(2.0, ScenarioName.GROWTH) == 2.0

    def test_string_scenario_names(self):
        assert ScenarioMultiplierTable().growth_rate(0.0, "downturn") == -2.0


class TestApply:
    """Test deriving scenario assumptions from the baseline."""

    def test_apply_uses_scenario_rates(self):
        table = ScenarioMultiplierTable()
        downturn = table.apply(baseline_assumptions(0.0), ScenarioName.DOWNTURN)
        assert downturn.scenario == ScenarioName.DOWNTURN
        assert downturn.monthly_growth_rate == -2.0
        assert downturn.variable_cost_ratio == pytest.approx(31.5)
        assert downturn.fixed_cost_inflation == 3.0
        assert downturn.confidence_level == "medium"

    def test_seasonal_adjustments_are_shared(self):
        growth = ScenarioMultiplierTable().apply(baseline_assumptions(1.0), ScenarioName.GROWTH)
        assert growth.seasonal_adjustments == {6: 1.4, 12: 0.6}

    def test_variable_ratio_is_capped(self):
        downturn = ScenarioMultiplierTable().apply(
            baseline_assumptions(1.0, variable_cost_ratio=99.0), ScenarioName.DOWNTURN
        )
        assert downturn.variable_cost_ratio == 100.0

    def test_to_dict_lists_ceiling(self):
        data = ScenarioMultiplierTable().to_dict()
        assert data["downturn"]["growth_ceiling"] == -2.0
        assert data["growth"]["growth_ceiling"] is None


class TestConfidenceShift:
    """Test confidence notches."""

    @pytest.mark.parametrize("level,notches,expected", [
        ("high", -1, "medium"),
        ("low", -1, "low"),
        ("medium", 5, "high"),
        ("unknown", 1, "medium"),
    ])
    def test_shift(self, level, notches, expected):
        assert shift_confidence(level, notches) == expected
