"""
Shared fixtures for the forecast intelligence test suite.

All reports are built deterministically from demo_data helpers so the
tests never touch the network or a random generator.
"""
from datetime import date

import pytest

from forecast_intelligence.demo_data import build_balance_sheet, build_profit_and_loss_report
from forecast_intelligence.parsing import ReportParser

START = date(2025, 1, 1)

# Landscaping-style calendar shape (Jan..Dec)
SEASONAL_SHAPE = [0.45, 0.50, 0.80, 1.20, 1.40, 1.45, 1.40, 1.35, 1.15, 0.95, 0.75, 0.60]


def growth_series(base, rate, months):
    """Compounding monthly series rounded to cents"""
    return [round(base * (1 + rate) ** i, 2) for i in range(months)]


def make_steady_accounts(months=12):
    revenue = growth_series(40262.0, 0.02, months)
    return {
        "revenue": {"Service Revenue": revenue},
        "cogs": {"Materials and Supplies": [round(v * 0.3, 2) for v in revenue]},
        "expenses": {
            "Payroll Expenses": [15000.0] * months,
            "Rent or Lease": [4000.0] * months,
            "Utilities": [800.0] * months,
            "Insurance": [500.0] * months,
        },
    }


@pytest.fixture
def parser():
    """Report parser with default settings."""
    return ReportParser()


@pytest.fixture
def steady_accounts():
    """Account series for the steady 2% growth company."""
    return make_steady_accounts()


@pytest.fixture
def steady_report(steady_accounts):
    """12 months of 2% monthly growth with a fixed overhead base"""
    accounts = steady_accounts
    return build_profit_and_loss_report(
        START, accounts["revenue"], accounts["expenses"], cogs=accounts["cogs"]
    )


@pytest.fixture
def steady_statement(parser, steady_report):
    """Parsed steady report."""
    return parser.parse(steady_report)


@pytest.fixture
def balance_sheet():
    """Balance sheet holding 140,000 of cash."""
    return build_balance_sheet({"Checking": 140000.0}, date(2024, 12, 31))


@pytest.fixture
def seasonal_report():
    """24 months of flat revenue with a strong summer peak"""
    revenue = [round(50000.0 * SEASONAL_SHAPE[i % 12], 2) for i in range(24)]
    return build_profit_and_loss_report(
        START,
        {"Landscaping Services": revenue},
        {"Payroll Expenses": [14000.0] * 24, "Rent or Lease": [3000.0] * 24},
        cogs={"Materials and Supplies": [round(v * 0.25, 2) for v in revenue]},
    )


@pytest.fixture
def seasonal_statement(parser, seasonal_report):
    """Parsed seasonal report."""
    return parser.parse(seasonal_report)


@pytest.fixture
def zero_revenue_report():
    """Twelve months of expenses and no revenue."""
    return build_profit_and_loss_report(
        START,
        {"Sales": [0.0] * 12},
        {"Payroll Expenses": [9000.0] * 12, "Rent or Lease": [2500.0] * 12},
    )


@pytest.fixture
def loss_making_report():
    """Flat revenue that never covers expenses"""
    return build_profit_and_loss_report(
        START,
        {"Service Revenue": [10000.0] * 12},
        {"Payroll Expenses": [16000.0] * 12, "Rent or Lease": [4000.0] * 12},
    )


@pytest.fixture
def short_report():
    """Two months of history."""
    return build_profit_and_loss_report(
        START,
        {"Service Revenue": [20000.0, 21000.0]},
        {"Payroll Expenses": [9000.0, 9000.0]},
    )
