"""
Unit tests for statement data validation.
"""
import copy
import dataclasses
from datetime import date

import pytest

from forecast_intelligence.demo_data import build_profit_and_loss_report
from forecast_intelligence.parsing import DataValidator


@pytest.fixture
def validator():
    return DataValidator()


class TestDataValidator:
    """Test completeness and consistency checks."""

    def test_clean_statement_is_valid(self, validator, steady_statement):
        result = validator.validate(steady_statement)
        assert result.is_valid
        assert result.completeness == 1.0
        assert result.expected_months == 12
        assert result.months_with_data == 12
        assert result.months_missing == []
        assert result.mathematical_consistency
        assert result.errors == []
        assert result.warnings == []

    def test_zero_revenue_is_a_warning_not_an_error(self, validator, parser, zero_revenue_report):
        result = validator.validate(parser.parse(zero_revenue_report))
        assert result.is_valid
        assert any("zero revenue" in w for w in result.warnings)

    def test_statement_without_revenue_lines(self, validator, parser, zero_revenue_report):
        report = copy.deepcopy(zero_revenue_report)
        report["Report"]["Rows"]["Row"] = report["Report"]["Rows"]["Row"][1:]
        result = validator.validate(parser.parse(report))
        assert result.is_valid
        assert any("No revenue lines" in w for w in result.warnings)

    def test_statement_without_any_lines_is_invalid(self, validator, parser, zero_revenue_report):
        report = copy.deepcopy(zero_revenue_report)
        report["Report"]["Rows"]["Row"] = []
        result = validator.validate(parser.parse(report))
        assert not result.is_valid
        assert any("no revenue or expense lines" in e for e in result.errors)

    def test_missing_months_reduce_completeness(self, validator, parser, steady_report):
        report = copy.deepcopy(steady_report)
        report["Report"]["Header"]["EndPeriod"] = "2026-06-30"
        result = validator.validate(parser.parse(report))
        assert result.expected_months == 18
        assert result.completeness == pytest.approx(12 / 18, abs=1e-4)
        assert not result.is_valid
        assert any("Missing 6 months" in w for w in result.warnings)

    def test_inactive_months_are_listed(self, validator, parser):
        report = build_profit_and_loss_report(
            date(2025, 1, 1),
            {"Service Revenue": [5000.0, 0.0, 5200.0]},
            {"Rent or Lease": [1000.0, 0.0, 1000.0]},
        )
        result = validator.validate(parser.parse(report))
        assert result.months_missing == ["Feb 2025"]
        assert result.months_with_data == 2
        assert result.is_valid

    def test_inconsistent_group_totals_fail(self, validator, steady_statement):
        totals = list(steady_statement.revenue.monthly_totals)
        totals[0] += 500.0
        broken = dataclasses.replace(
            steady_statement,
            revenue=dataclasses.replace(steady_statement.revenue, monthly_totals=tuple(totals))
        )
        result = validator.validate(broken)
        assert not result.is_valid
        assert not result.mathematical_consistency
        assert any("month 1" in e for e in result.errors)

    def test_net_income_mismatch_fails(self, validator, steady_statement):
        broken = dataclasses.replace(
            steady_statement,
            net_income=dataclasses.replace(
                steady_statement.net_income, total=steady_statement.net_income.total + 10.0
            )
        )
        result = validator.validate(broken)
        assert not result.mathematical_consistency
        assert any("Net income" in e for e in result.errors)

    def test_tolerance_absorbs_rounding(self, steady_statement):
        drifted = dataclasses.replace(
            steady_statement,
            net_income=dataclasses.replace(
                steady_statement.net_income, total=steady_statement.net_income.total + 0.004
            )
        )
        assert DataValidator(tolerance=0.01).validate(drifted).is_valid

    def test_parser_warnings_are_forwarded(self, validator, parser, steady_report):
        report = copy.deepcopy(steady_report)
        report["Report"]["Rows"]["Row"][0]["Rows"]["Row"][0]["ColData"][-1]["value"] = "1.00"
        result = validator.validate(parser.parse(report))
        assert result.is_valid
        assert any(w.startswith("Parser:") for w in result.warnings)


class TestDataQualityReport:
    """Test the plain-text data quality report."""

    def test_valid_report(self, validator, steady_statement):
        text = validator.generate_data_quality_report(validator.validate(steady_statement))
        assert "Status: VALID" in text
        assert "Completeness: 100%" in text
        assert "Data is complete and consistent." in text

    def test_invalid_report_lists_errors(self, validator, parser, zero_revenue_report):
        report = copy.deepcopy(zero_revenue_report)
        report["Report"]["Rows"]["Row"] = []
        text = validator.generate_data_quality_report(validator.validate(parser.parse(report)))
        assert "Status: INVALID" in text
        assert "Errors:" in text
        assert "Mathematical consistency: PASS" in text

    def test_result_to_dict(self, validator, steady_statement):
        data = validator.validate(steady_statement).to_dict()
        assert data["is_valid"] is True
        assert data["completeness"] == 1.0
