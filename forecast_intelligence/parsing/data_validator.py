"""
Data Validator for Forecast Intelligence

Checks completeness and arithmetic consistency of a parsed statement
before it is used for forecasting. The validator never raises; it
reports errors and warnings for the caller to act on.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Any

from .models import ParsedStatement, LineGroup

logger = logging.getLogger(__name__)


@dataclass
class DataValidationResult:
    """Outcome of validating a parsed statement"""
    is_valid: bool
    completeness: float
    expected_months: int
    months_with_data: int
    months_missing: List[str]
    mathematical_consistency: bool
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "completeness": self.completeness,
            "expected_months": self.expected_months,
            "months_with_data": self.months_with_data,
            "months_missing": self.months_missing,
            "mathematical_consistency": self.mathematical_consistency,
            "warnings": self.warnings,
            "errors": self.errors
        }


class DataValidator:
    """
    Validates parsed statements for completeness and internal consistency.

    Provides:
    - Completeness against the report period bounds
    - Detection of months with no activity
    - Independent recomputation of monthly and grand totals
    - Net income consistency check
    - Plain-text data quality report

    Example:
    ```python
    validator = DataValidator()

    result = validator.validate(statement)
    if not result.is_valid:
        print(validator.generate_data_quality_report(result))
    ```
    """

    def __init__(self, tolerance: float = 0.01, min_completeness: float = 0.8):
        """
        Initialize validator.

        Args:
            tolerance: Allowed drift when cross-checking sums
            min_completeness: Minimum share of expected months required for a valid result
        """
        self.tolerance = tolerance
        self.min_completeness = min_completeness

    def validate(self, statement: ParsedStatement) -> DataValidationResult:
        """
        Validate a parsed statement.

        Args:
            statement: Output of ReportParser.parse

        Returns:
            DataValidationResult
        """
        warnings: List[str] = []
        errors: List[str] = []

        expected = self._expected_months(statement)
        actual = statement.month_count
        completeness = min(1.0, actual / expected) if expected else 0.0

        if actual < expected:
            warnings.append(f"Missing {expected - actual} months of data")

        months_missing = [
            month for month, rev, exp in zip(
                statement.period.months,
                statement.revenue.monthly_totals,
                statement.expenses.monthly_totals
            )
            if rev == 0 and exp == 0
        ]
        if months_missing:
            warnings.append(f"No activity recorded in {len(months_missing)} month(s): {', '.join(months_missing)}")

        consistent = True
        for name, group in (("Revenue", statement.revenue), ("Expense", statement.expenses)):
            group_errors = self._check_group(name, group)
            if group_errors:
                consistent = False
                errors.extend(group_errors)

        net_expected = statement.revenue.grand_total - statement.expenses.grand_total
        if abs(net_expected - statement.net_income.total) > self.tolerance:
            consistent = False
            errors.append(
                f"Net income calculation error: expected {net_expected:,.2f}, "
                f"reported {statement.net_income.total:,.2f}"
            )

        if not statement.revenue.detail_lines:
            warnings.append("No revenue lines found; treating as zero revenue")
        elif statement.revenue.grand_total <= 0:
            warnings.append("Total revenue is zero or negative (zero revenue)")

        if not statement.expenses.detail_lines:
            warnings.append("No expense lines found")
        elif statement.expenses.grand_total <= 0:
            warnings.append("Total expenses are zero or negative")

        if not statement.revenue.detail_lines and not statement.expenses.detail_lines:
            errors.append("Report contains no revenue or expense lines")

        for parse_warning in statement.metadata.parse_warnings:
            warnings.append(f"Parser: {parse_warning}")

        is_valid = not errors and completeness >= self.min_completeness

        result = DataValidationResult(
            is_valid=is_valid,
            completeness=round(completeness, 4),
            expected_months=expected,
            months_with_data=actual - len(months_missing),
            months_missing=months_missing,
            mathematical_consistency=consistent,
            warnings=warnings,
            errors=errors
        )

        logger.info(
            f"Validation: valid={is_valid}, completeness={completeness:.0%}, "
            f"{len(warnings)} warning(s), {len(errors)} error(s)"
        )
        return result

    def _expected_months(self, statement: ParsedStatement) -> int:
        """Calendar months spanned by the report period, inclusive"""
        start = statement.period.start_date
        end = statement.period.end_date
        months = (end.year - start.year) * 12 + (end.month - start.month) + 1
        return max(1, months)

    def _check_group(self, name: str, group: LineGroup) -> List[str]:
        """Recompute totals from detail lines"""
        errors = []
        detail = group.detail_lines

        for i, reported in enumerate(group.monthly_totals):
            computed = sum(line.monthly_values[i].value for line in detail)
            if abs(computed - reported) > self.tolerance:
                errors.append(
                    f"{name} total for month {i + 1} is {reported:,.2f} but lines sum to {computed:,.2f}"
                )

        computed_total = sum(line.total for line in detail)
        if abs(computed_total - group.grand_total) > self.tolerance:
            errors.append(
                f"{name} calculation error: grand total {group.grand_total:,.2f} "
                f"but lines sum to {computed_total:,.2f}"
            )

        for line in detail:
            line_sum = sum(line.values)
            if abs(line_sum - line.total) > self.tolerance:
                errors.append(f"{name} line '{line.account_name}' total does not match its months")

        return errors

    def generate_data_quality_report(self, result: DataValidationResult) -> str:
        """Render a validation result as plain text for display"""
        lines = [
            "Data Quality Report",
            "===================",
            f"Status: {'VALID' if result.is_valid else 'INVALID'}",
            f"Completeness: {result.completeness:.0%} "
            f"({result.months_with_data} of {result.expected_months} months with data)",
            f"Mathematical consistency: {'PASS' if result.mathematical_consistency else 'FAIL'}",
        ]

        if result.errors:
            lines.append("")
            lines.append("Errors:")
            lines.extend(f"  - {error}" for error in result.errors)

        if result.warnings:
            lines.append("")
            lines.append("Warnings:")
            lines.extend(f"  - {warning}" for warning in result.warnings)

        if result.is_valid and not result.warnings:
            lines.append("")
            lines.append("Data is complete and consistent.")

        return "\n".join(lines)
