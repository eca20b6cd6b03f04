"""
Report Parser for Forecast Intelligence

Normalizes a nested monthly accounting report (QuickBooks Online report
JSON: Header / Columns / Rows) into a flat ParsedStatement. The raw row
dictionaries are first converted into a typed row tree, which is then
walked depth-first to classify account rows by their top-level section.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Any, Optional, Tuple, Union

from dateutil.parser import isoparse
from dateutil.relativedelta import relativedelta

from ..errors import MalformedReportError
from .models import (
    LineType,
    MonthlyValue,
    FinancialLine,
    LineGroup,
    NetIncomeSeries,
    ReportPeriod,
    StatementMetadata,
    ParsedStatement
)

logger = logging.getLogger(__name__)

# Top-level section group keys used by the provider
SECTION_GROUPS = {
    "Income": LineType.REVENUE,
    "OtherIncome": LineType.REVENUE,
    "COGS": LineType.EXPENSE,
    "Expenses": LineType.EXPENSE,
    "OtherExpenses": LineType.EXPENSE,
}

# Fallback classification by section header when no group key is present
SECTION_LABELS = {
    "income": LineType.REVENUE,
    "revenue": LineType.REVENUE,
    "sales": LineType.REVENUE,
    "other income": LineType.REVENUE,
    "cost of goods sold": LineType.EXPENSE,
    "cost of sales": LineType.EXPENSE,
    "expenses": LineType.EXPENSE,
    "operating expenses": LineType.EXPENSE,
    "other expenses": LineType.EXPENSE,
}

# Derived sections that only carry subtotals
DERIVED_GROUPS = {"GrossProfit", "NetOperatingIncome", "NetOtherIncome", "NetIncome"}

CASH_SECTION_GROUPS = {"BankAccounts"}
CASH_SECTION_LABELS = {"bank accounts", "cash and cash equivalents", "cash"}

MONTH_LABEL_FORMATS = ("%b %Y", "%B %Y", "%b. %Y", "%Y-%m")


# =============================================================================
# Typed row tree
# =============================================================================

@dataclass(frozen=True)
class DataRow:
    """Terminal account row"""
    label: str
    cells: Tuple[str, ...]
    account_id: Optional[str] = None


@dataclass(frozen=True)
class SummaryRow:
    """Subtotal row closing a section"""
    label: str
    cells: Tuple[str, ...]


@dataclass(frozen=True)
class Section:
    """Grouping row holding child rows and an optional subtotal"""
    header: str
    group: Optional[str]
    children: Tuple['Row', ...] = field(default_factory=tuple)
    summary: Optional[SummaryRow] = None


Row = Union[Section, DataRow, SummaryRow]


def _object(value: Any, what: str, label: Optional[str] = None) -> Dict[str, Any]:
    """Nested payload object; null reads as empty"""
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise MalformedReportError(f"{what} must be an object, got {type(value).__name__}", row_label=label)
    return value


def _objects(value: Any, what: str, label: Optional[str] = None) -> List[Dict[str, Any]]:
    """Payload list of objects; null reads as empty"""
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, dict) for item in value):
        raise MalformedReportError(f"{what} must be a list of objects", row_label=label)
    return value


def _child_rows(container: Dict[str, Any], label: Optional[str] = None) -> List[Dict[str, Any]]:
    return _objects(_object(container.get('Rows'), 'Rows', label).get('Row'), 'Rows', label)


def _cells_of(value: Any, what: str, label: Optional[str] = None) -> List[Dict[str, Any]]:
    return _objects(_object(value, what, label).get('ColData'), f"{what} ColData", label)


def _col_values(col_data: List[Dict[str, Any]]) -> Tuple[str, ...]:
    return tuple(str(cell.get('value', '') if cell.get('value') is not None else '') for cell in col_data)


def build_row(raw: Dict[str, Any], column_count: int) -> Row:
    """
    Convert one raw provider row into the typed row tree.

    Args:
        raw: Row dictionary from the report payload
        column_count: Number of columns declared in the report header

    Returns:
        Section, DataRow or SummaryRow
    """
    if not isinstance(raw, dict):
        raise MalformedReportError(f"Row must be an object, got {type(raw).__name__}")

    row_type = raw.get('type', '')
    if row_type == 'Section' or 'Rows' in raw or 'Header' in raw or (
            'Summary' in raw and 'ColData' not in raw):
        header_cells = _cells_of(raw.get('Header'), 'Section header')
        header = str(header_cells[0].get('value', '')) if header_cells else ''

        children = tuple(
            build_row(child, column_count)
            for child in _child_rows(raw, header)
        )

        summary = None
        if 'Summary' in raw:
            summary_cells = _cells_of(raw['Summary'], 'Summary', header)
            label = str(summary_cells[0].get('value', '')) if summary_cells else f"Total {header}"
            _check_width(summary_cells, column_count, label)
            summary = SummaryRow(label=label, cells=_col_values(summary_cells))

        return Section(header=header, group=raw.get('group'), children=children, summary=summary)

    if raw.get('ColData') is None:
        raise MalformedReportError(f"Unrecognized row type '{row_type}'")
    col_data = _objects(raw['ColData'], 'ColData')

    label = str(col_data[0].get('value', '')) if col_data else ''
    _check_width(col_data, column_count, label)
    account_id = col_data[0].get('id') if col_data else None
    return DataRow(label=label, cells=_col_values(col_data), account_id=account_id)


def _check_width(cells: List[Dict[str, Any]], column_count: int, label: str) -> None:
    if len(cells) != column_count:
        raise MalformedReportError(
            f"Row has {len(cells)} columns but the header declares {column_count}",
            row_label=label
        )


def parse_amount(raw: Any) -> float:
    """
    Parse a provider amount string.

    Handles thousands separators, currency symbols, parenthesized negatives
    and the blank/dash placeholders used for empty months.
    """
    if raw is None:
        return 0.0
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        value = float(raw)
    else:
        text = str(raw).strip()
        if text in ('', '-', '--'):
            return 0.0
        negative = text.startswith('(') and text.endswith(')')
        cleaned = text.strip('()').replace(',', '').replace('$', '').replace(' ', '')
        try:
            value = float(cleaned)
        except ValueError:
            raise MalformedReportError(f"Unparseable amount {raw!r}")
        if negative:
            value = -abs(value)

    if not math.isfinite(value):
        raise MalformedReportError(f"Non-finite amount {raw!r}")
    return value


# =============================================================================
# Parser
# =============================================================================

@dataclass
class _ColumnLayout:
    """Resolved positions of the month and total columns"""
    width: int
    month_indexes: List[int]
    month_labels: List[str]
    month_dates: List[date]
    total_index: Optional[int]


class ReportParser:
    """
    Normalizes monthly profit & loss reports into ParsedStatement objects.

    Provides:
    - Typed row-tree construction with column-width checks
    - Revenue/expense classification by top-level section
    - Monthly totals that exclude summary rows
    - Total-column cross-checks recorded as parse warnings
    - Cash balance extraction from balance sheet snapshots

    Example:
    ```python
    parser = ReportParser()

    statement = parser.parse(pnl_payload)
    print(statement.revenue.grand_total)

    cash = parser.extract_cash_balance(balance_sheet_payload)
    ```
    """

    def __init__(self, tolerance: float = 0.01):
        """
        Initialize parser.

        Args:
            tolerance: Allowed drift between the reported total column and the computed total
        """
        self.tolerance = tolerance

    def parse(self, payload: Dict[str, Any]) -> ParsedStatement:
        """
        Parse a monthly profit & loss report.

        Args:
            payload: Report JSON, bare or wrapped in {"Report": ...}

        Returns:
            ParsedStatement

        Raises:
            MalformedReportError: bad period bounds, column mismatch or unparseable amounts
        """
        report = self._unwrap(payload)
        header = _object(report.get('Header'), 'Report header')

        start_date = self._parse_period_bound(header, 'StartPeriod')
        end_date = self._parse_period_bound(header, 'EndPeriod')
        if end_date < start_date:
            raise MalformedReportError(f"Report period ends ({end_date}) before it starts ({start_date})")

        warnings: List[str] = []
        layout = self._resolve_columns(report, start_date, warnings)

        tree = [build_row(raw, layout.width) for raw in _child_rows(report)]

        revenue_lines: List[FinancialLine] = []
        expense_lines: List[FinancialLine] = []
        for row in tree:
            line_type = self._classify_section(row)
            if line_type is None:
                if isinstance(row, Section) and row.group not in DERIVED_GROUPS and row.children:
                    warnings.append(f"Skipped unclassified section '{row.header}'")
                    logger.warning(f"Skipping unclassified report section '{row.header}'")
                continue
            target = revenue_lines if line_type == LineType.REVENUE else expense_lines
            self._visit(row, line_type, 0, layout, target, warnings)

        revenue = self._build_group(revenue_lines, len(layout.month_labels))
        expenses = self._build_group(expense_lines, len(layout.month_labels))
        net_income = self._build_net_income(revenue, expenses, layout)

        metadata = StatementMetadata(
            currency=header.get('Currency') or 'USD',
            report_basis=header.get('ReportBasis') or 'Unknown',
            columns_count=len(layout.month_labels),
            lines_count=len(revenue_lines) + len(expense_lines),
            report_name=header.get('ReportName') or 'ProfitAndLoss',
            parse_warnings=tuple(warnings)
        )

        logger.info(
            f"Parsed {metadata.lines_count} lines across {metadata.columns_count} months "
            f"({start_date} to {end_date})"
        )

        return ParsedStatement(
            period=ReportPeriod(
                start_date=start_date,
                end_date=end_date,
                months=tuple(layout.month_labels),
                month_dates=tuple(layout.month_dates)
            ),
            revenue=revenue,
            expenses=expenses,
            net_income=net_income,
            metadata=metadata
        )

    def extract_cash_balance(self, payload: Dict[str, Any]) -> float:
        """
        Extract the current cash position from a balance sheet snapshot.

        Uses the subtotal of the bank accounts section (or cash and cash
        equivalents), taken from the last column of the report.

        Raises:
            MalformedReportError: when no cash section exists
        """
        report = self._unwrap(payload)
        columns = _objects(_object(report.get('Columns'), 'Columns').get('Column'), 'Columns')
        if not columns:
            raise MalformedReportError("Balance sheet declares no columns")

        tree = [build_row(raw, len(columns)) for raw in _child_rows(report)]
        section = self._find_cash_section(tree)
        if section is None:
            raise MalformedReportError("Balance sheet has no bank accounts or cash section")

        if section.summary is not None:
            balance = parse_amount(section.summary.cells[-1])
        else:
            balance = sum(self._sum_last_cells(section))

        logger.info(f"Extracted cash balance {balance:,.2f} from '{section.header}'")
        return balance

    # ----- header and columns -----

    def _unwrap(self, payload: Any) -> Dict[str, Any]:
        if not isinstance(payload, dict):
            raise MalformedReportError(f"Report payload must be an object, got {type(payload).__name__}")
        report = payload.get('Report', payload)
        if not isinstance(report, dict):
            raise MalformedReportError("Report envelope does not contain an object")
        return report

    def _parse_period_bound(self, header: Dict[str, Any], key: str) -> date:
        raw = header.get(key)
        if not raw:
            raise MalformedReportError(f"Report header is missing {key}")
        try:
            return isoparse(str(raw)).date()
        except (ValueError, OverflowError):
            raise MalformedReportError(f"Report header {key} is not a date: {raw!r}")

    def _resolve_columns(
        self,
        report: Dict[str, Any],
        start_date: date,
        warnings: List[str]
    ) -> _ColumnLayout:
        """Locate month columns and the optional total column"""
        columns = _objects(_object(report.get('Columns'), 'Columns').get('Column'), 'Columns')
        if not columns:
            raise MalformedReportError("Report declares no columns")

        month_indexes: List[int] = []
        month_labels: List[str] = []
        month_dates: List[date] = []
        total_index = None

        for index, column in enumerate(columns):
            title = str(column.get('ColTitle', '') or '').strip()
            col_type = column.get('ColType', '')
            if index == 0 or col_type == 'Account':
                continue
            if title.lower() == 'total':
                total_index = index
                continue

            position = len(month_indexes)
            month_date = self._column_date(column, title)
            if month_date is None:
                month_date = start_date.replace(day=1) + relativedelta(months=position)
                warnings.append(
                    f"Column {index} has no recognizable month; assumed {month_date.strftime('%b %Y')}"
                )
            month_indexes.append(index)
            month_labels.append(title or month_date.strftime('%b %Y'))
            month_dates.append(month_date)

        if not month_indexes:
            raise MalformedReportError("Report has no monthly data columns")

        return _ColumnLayout(
            width=len(columns),
            month_indexes=month_indexes,
            month_labels=month_labels,
            month_dates=month_dates,
            total_index=total_index
        )

    def _column_date(self, column: Dict[str, Any], title: str) -> Optional[date]:
        """Month start from column metadata or its title"""
        for meta in _objects(column.get('MetaData'), 'Column MetaData'):
            if meta.get('Name') == 'StartDate' and meta.get('Value'):
                try:
                    return isoparse(meta['Value']).date().replace(day=1)
                except ValueError:
                    break

        for fmt in MONTH_LABEL_FORMATS:
            try:
                return datetime.strptime(title, fmt).date()
            except ValueError:
                continue
        return None

    # ----- tree walk -----

    def _classify_section(self, row: Row) -> Optional[LineType]:
        if not isinstance(row, Section):
            return None
        if row.group in SECTION_GROUPS:
            return SECTION_GROUPS[row.group]
        if row.group in DERIVED_GROUPS:
            return None
        return SECTION_LABELS.get(row.header.strip().lower())

    def _visit(
        self,
        row: Row,
        line_type: LineType,
        level: int,
        layout: _ColumnLayout,
        out: List[FinancialLine],
        warnings: List[str]
    ) -> None:
        """Depth-first walk emitting one line per data or summary row"""
        if isinstance(row, Section):
            for child in row.children:
                self._visit(child, line_type, level + 1, layout, out, warnings)
            if row.summary is not None:
                out.append(self._make_line(row.summary.label, row.summary.cells, level,
                                           LineType.SUMMARY, None, layout, warnings))
        elif isinstance(row, DataRow):
            out.append(self._make_line(row.label, row.cells, level, line_type,
                                       row.account_id, layout, warnings))
        else:
            out.append(self._make_line(row.label, row.cells, level, LineType.SUMMARY,
                                       None, layout, warnings))

    def _make_line(
        self,
        label: str,
        cells: Tuple[str, ...],
        level: int,
        line_type: LineType,
        account_id: Optional[str],
        layout: _ColumnLayout,
        warnings: List[str]
    ) -> FinancialLine:
        monthly = tuple(
            MonthlyValue(month=month, value=parse_amount(cells[index]), date=month_date)
            for index, month, month_date in zip(layout.month_indexes, layout.month_labels, layout.month_dates)
        )
        total = sum(mv.value for mv in monthly)

        if layout.total_index is not None and cells[layout.total_index].strip():
            reported = parse_amount(cells[layout.total_index])
            if abs(reported - total) > self.tolerance:
                warnings.append(
                    f"Total column for '{label}' is {reported:,.2f} but months sum to {total:,.2f}"
                )
                logger.warning(f"Total column drift on '{label}': {reported} vs {total}")

        return FinancialLine(
            account_name=label,
            monthly_values=monthly,
            total=total,
            level=level,
            line_type=line_type,
            account_id=account_id
        )

    def _build_group(self, lines: List[FinancialLine], month_count: int) -> LineGroup:
        monthly_totals = [0.0] * month_count
        for line in lines:
            if line.is_summary:
                continue
            for i, value in enumerate(line.values):
                monthly_totals[i] += value
        return LineGroup(
            lines=tuple(lines),
            monthly_totals=tuple(monthly_totals),
            grand_total=sum(monthly_totals)
        )

    def _build_net_income(
        self,
        revenue: LineGroup,
        expenses: LineGroup,
        layout: _ColumnLayout
    ) -> NetIncomeSeries:
        monthly = tuple(
            MonthlyValue(month=month, value=rev - exp, date=month_date)
            for month, month_date, rev, exp in zip(
                layout.month_labels, layout.month_dates,
                revenue.monthly_totals, expenses.monthly_totals
            )
        )
        return NetIncomeSeries(monthly_values=monthly, total=sum(mv.value for mv in monthly))

    # ----- balance sheet -----

    def _find_cash_section(self, rows: List[Row]) -> Optional[Section]:
        for row in rows:
            if not isinstance(row, Section):
                continue
            if row.group in CASH_SECTION_GROUPS or row.header.strip().lower() in CASH_SECTION_LABELS:
                return row
            found = self._find_cash_section(list(row.children))
            if found is not None:
                return found
        return None

    def _sum_last_cells(self, section: Section) -> List[float]:
        values = []
        for child in section.children:
            if isinstance(child, DataRow):
                values.append(parse_amount(child.cells[-1]))
            elif isinstance(child, Section):
                if child.summary is not None:
                    values.append(parse_amount(child.summary.cells[-1]))
                else:
                    values.extend(self._sum_last_cells(child))
        return values
