"""
Statement Models for Forecast Intelligence

Immutable, flat time-series representation of a monthly accounting report.
Produced by the report parser and consumed by every downstream stage.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Any, Optional, Tuple
from enum import Enum


class LineType(Enum):
    """Role of a line in the statement"""
    REVENUE = "revenue"
    EXPENSE = "expense"
    SUMMARY = "summary"


@dataclass(frozen=True)
class MonthlyValue:
    """One account value for one reporting month"""
    month: str          # e.g. "Jan 2025"
    value: float
    date: date          # first day of the month

    def to_dict(self) -> Dict[str, Any]:
        return {
            "month": self.month,
            "value": self.value,
            "date": self.date.isoformat()
        }


@dataclass(frozen=True)
class FinancialLine:
    """A single account row with one value per reporting month"""
    account_name: str
    monthly_values: Tuple[MonthlyValue, ...]
    total: float
    level: int
    line_type: LineType
    account_id: Optional[str] = None

    @property
    def values(self) -> List[float]:
        return [mv.value for mv in self.monthly_values]

    @property
    def is_summary(self) -> bool:
        return self.line_type == LineType.SUMMARY

    def to_dict(self) -> Dict[str, Any]:
        return {
            "account_name": self.account_name,
            "account_id": self.account_id,
            "monthly_values": [mv.to_dict() for mv in self.monthly_values],
            "total": self.total,
            "level": self.level,
            "type": self.line_type.value
        }


@dataclass(frozen=True)
class LineGroup:
    """Revenue or expense lines with their aggregates"""
    lines: Tuple[FinancialLine, ...]
    monthly_totals: Tuple[float, ...]
    grand_total: float

    @property
    def detail_lines(self) -> List[FinancialLine]:
        """Lines that contribute to aggregates (summary rows excluded)"""
        return [line for line in self.lines if not line.is_summary]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lines": [line.to_dict() for line in self.lines],
            "monthly_totals": list(self.monthly_totals),
            "grand_total": self.grand_total
        }


@dataclass(frozen=True)
class NetIncomeSeries:
    """Revenue minus expenses per month"""
    monthly_values: Tuple[MonthlyValue, ...]
    total: float

    @property
    def values(self) -> List[float]:
        return [mv.value for mv in self.monthly_values]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "monthly_values": [mv.to_dict() for mv in self.monthly_values],
            "total": self.total
        }


@dataclass(frozen=True)
class ReportPeriod:
    """Reporting window and its ordered month labels"""
    start_date: date
    end_date: date
    months: Tuple[str, ...]
    month_dates: Tuple[date, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "months": list(self.months),
            "month_dates": [d.isoformat() for d in self.month_dates]
        }


@dataclass(frozen=True)
class StatementMetadata:
    """Header information and parse diagnostics"""
    currency: str
    report_basis: str
    columns_count: int
    lines_count: int
    report_name: str = "ProfitAndLoss"
    parse_warnings: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "currency": self.currency,
            "report_basis": self.report_basis,
            "columns_count": self.columns_count,
            "lines_count": self.lines_count,
            "report_name": self.report_name,
            "parse_warnings": list(self.parse_warnings)
        }


@dataclass(frozen=True)
class ParsedStatement:
    """Normalized monthly profit & loss statement"""
    period: ReportPeriod
    revenue: LineGroup
    expenses: LineGroup
    net_income: NetIncomeSeries
    metadata: StatementMetadata

    @property
    def month_count(self) -> int:
        return len(self.period.months)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "period": self.period.to_dict(),
            "revenue": self.revenue.to_dict(),
            "expenses": self.expenses.to_dict(),
            "net_income": self.net_income.to_dict(),
            "metadata": self.metadata.to_dict()
        }
