"""
Parsing Module for Forecast Intelligence

Report normalization and data quality validation.
"""

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
from .report_parser import (
    ReportParser,
    Section,
    DataRow,
    SummaryRow,
    build_row,
    parse_amount
)
from .data_validator import (
    DataValidator,
    DataValidationResult
)

__all__ = [
    # Models
    'LineType',
    'MonthlyValue',
    'FinancialLine',
    'LineGroup',
    'NetIncomeSeries',
    'ReportPeriod',
    'StatementMetadata',
    'ParsedStatement',
    # Parser
    'ReportParser',
    'Section',
    'DataRow',
    'SummaryRow',
    'build_row',
    'parse_amount',
    # Validator
    'DataValidator',
    'DataValidationResult',
]
