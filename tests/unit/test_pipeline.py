"""
Unit tests for the end-to-end forecast pipeline.
"""
import copy
import json
import warnings

import pytest

from forecast_intelligence import (
    AssumptionOutOfRangeError,
    DataQualityWarning,
    DataValidationError,
    ForecastAssumptions,
    ForecastPipeline,
    MalformedReportError,
    ScenarioName,
)
from forecast_intelligence.config import settings


@pytest.fixture
def pipeline():
    return ForecastPipeline(settings=settings.TestingConfig)


class TestForecastPipeline:
    """Test a full run over raw report payloads."""

    def test_full_run(self, pipeline, steady_report, balance_sheet):
        bundle = pipeline.run(steady_report, balance_sheet=balance_sheet)
        assert bundle.current_cash_balance == 140000.0
        assert bundle.horizon_months == 12
        assert bundle.forecast_mode == "enhanced"
        assert [p.scenario for p in bundle.pnl_projections] == list(ScenarioName)
        assert [p.scenario for p in bundle.cash_flow_projections] == list(ScenarioName)
        assert bundle.validation.is_valid
        assert bundle.drivers.summary.drivers_found == 3

    def test_scenario_lookup(self, pipeline, steady_report):
        bundle = pipeline.run(steady_report, current_cash_balance=50000.0, horizon_months=6)
        baseline = bundle.cash_flow_for(ScenarioName.BASELINE)
        assert baseline.scenario == ScenarioName.BASELINE
        assert baseline.months[0].beginning_cash == 50000.0
        assert bundle.pnl_for("growth").scenario == ScenarioName.GROWTH

    def test_cash_flow_follows_pnl(self, pipeline, steady_report, balance_sheet):
        bundle = pipeline.run(steady_report, balance_sheet=balance_sheet, horizon_months=3)
        for scenario in ScenarioName:
            pnl = bundle.pnl_for(scenario)
            cash = bundle.cash_flow_for(scenario)
            assert [m.operating.net_income for m in cash.months] == [r.net_income for r in pnl.projections]

    def test_runs_are_repeatable(self, pipeline, steady_report, balance_sheet):
        first = pipeline.run(steady_report, balance_sheet=balance_sheet).to_dict()
        second = pipeline.run(steady_report, balance_sheet=balance_sheet).to_dict()
        assert first == second

    def test_inputs_are_not_mutated(self, pipeline, steady_report, balance_sheet):
        original = copy.deepcopy(steady_report)
        pipeline.run(steady_report, balance_sheet=balance_sheet)
        assert steady_report == original

    def test_bundle_serializes(self, pipeline, steady_report, balance_sheet):
        data = json.loads(json.dumps(pipeline.run(steady_report, balance_sheet=balance_sheet).to_dict()))
        assert data["forecast_mode"] == "enhanced"
        assert len(data["cash_flow_projections"]) == 3
        assert data["drivers"]["summary"]["drivers_found"] == 3

    def test_standard_mode_override(self, pipeline, steady_report):
        bundle = pipeline.run(
            steady_report,
            current_cash_balance=10000.0,
            forecast_assumptions=ForecastAssumptions(use_enhanced_mode=False)
        )
        assert bundle.forecast_mode == "standard"

    def test_service_model(self, pipeline, steady_report, balance_sheet):
        bundle = pipeline.run(steady_report, balance_sheet=balance_sheet, revenue_model="service")
        assert bundle.forecast_mode == "service"
        assert bundle.revenue_model == "service"
        assert "customers" in bundle.pnl_projections[0].projections[0].drivers

    def test_zero_horizon(self, pipeline, steady_report, balance_sheet):
        bundle = pipeline.run(steady_report, balance_sheet=balance_sheet, horizon_months=0)
        assert all(p.projections == [] for p in bundle.pnl_projections)
        assert all(p.months == [] for p in bundle.cash_flow_projections)

    def test_drivers_are_optional(self, pipeline, steady_report, balance_sheet):
        bundle = pipeline.run(steady_report, balance_sheet=balance_sheet, include_drivers=False)
        assert bundle.drivers is None
        assert bundle.to_dict()["drivers"] is None

    def test_clean_data_emits_no_warnings(self, pipeline, steady_report, balance_sheet):
        with warnings.catch_warnings():
            warnings.simplefilter("error", DataQualityWarning)
            pipeline.run(steady_report, balance_sheet=balance_sheet)


class TestPipelineFailures:
    """Test fatal errors and data quality warnings."""

    def test_zero_revenue_warns(self, pipeline, zero_revenue_report):
        with pytest.warns(DataQualityWarning, match="zero revenue"):
            bundle = pipeline.run(zero_revenue_report, current_cash_balance=20000.0)
        assert bundle.validation.is_valid

    def test_empty_report_fails_validation(self, pipeline, steady_report, balance_sheet):
        report = copy.deepcopy(steady_report)
        report["Report"]["Rows"]["Row"] = []
        with pytest.raises(DataValidationError) as excinfo:
            pipeline.run(report, balance_sheet=balance_sheet)
        assert not excinfo.value.result.is_valid

    def test_malformed_report(self, pipeline, balance_sheet):
        with pytest.raises(MalformedReportError):
            pipeline.run({"Report": {"Header": {}}}, balance_sheet=balance_sheet)

    def test_cash_is_required(self, pipeline, steady_report):
        with pytest.raises(AssumptionOutOfRangeError):
            pipeline.run(steady_report)

    def test_non_finite_cash(self, pipeline, steady_report):
        with pytest.raises(AssumptionOutOfRangeError):
            pipeline.run(steady_report, current_cash_balance=float("nan"))

    def test_unknown_revenue_model(self, pipeline, steady_report):
        with pytest.raises(AssumptionOutOfRangeError):
            pipeline.run(steady_report, current_cash_balance=1000.0, revenue_model="subscription")

    @pytest.mark.parametrize("horizon", [-1, 61])
    def test_horizon_bounds(self, pipeline, steady_report, horizon):
        with pytest.raises(AssumptionOutOfRangeError):
            pipeline.run(steady_report, current_cash_balance=1000.0, horizon_months=horizon)
