"""
Demo Data Generator for Forecast Intelligence

Builds QuickBooks-shaped report payloads (monthly Profit & Loss and a
Balance Sheet snapshot) either from explicit monthly series or from
seeded industry profiles. Output feeds ReportParser directly, so demos
and tests exercise the same path as live provider data.
"""

import random
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional, Any

from dateutil.relativedelta import relativedelta

from .config.assumptions import WorkingCapitalAssumptions

# Industry configurations with realistic financial profiles
INDUSTRY_PROFILES = {
    "professional_services": {
        "name": "Professional Services",
        "revenue_range": (50000, 200000),
        "gross_margin": (0.60, 0.75),
        "payroll_ratio": (0.40, 0.55),
        "dso_range": (35, 60),
        "dpo_range": (20, 35),
        "growth_rate": (0.02, 0.08),
        "seasonality": [1.0, 0.95, 1.05, 1.10, 1.05, 0.95, 0.85, 0.90, 1.05, 1.15, 1.10, 0.85],
        "example_companies": ["Apex Consulting Group", "Clarity Legal Partners", "Summit Accounting Solutions"]
    },
    "manufacturing": {
        "name": "Manufacturing",
        "revenue_range": (100000, 500000),
        "gross_margin": (0.25, 0.40),
        "payroll_ratio": (0.20, 0.30),
        "dso_range": (40, 65),
        "dpo_range": (35, 55),
        "growth_rate": (0.01, 0.05),
        "seasonality": [0.90, 0.85, 0.95, 1.05, 1.10, 1.15, 1.05, 1.00, 1.05, 1.10, 1.00, 0.80],
        "example_companies": ["Precision Parts Inc", "GreenTech Manufacturing", "Midwest Tool & Die"]
    },
    "retail": {
        "name": "Retail",
        "revenue_range": (75000, 300000),
        "gross_margin": (0.35, 0.50),
        "payroll_ratio": (0.15, 0.25),
        "dso_range": (5, 15),
        "dpo_range": (25, 45),
        "growth_rate": (0.00, 0.06),
        "seasonality": [0.70, 0.75, 0.85, 0.90, 0.95, 0.90, 0.85, 0.90, 0.95, 1.05, 1.35, 1.85],
        "example_companies": ["Urban Home Furnishings", "Outdoor Adventure Gear", "Sweet Delights Bakery"]
    },
    "landscaping": {
        "name": "Landscaping",
        "revenue_range": (30000, 120000),
        "gross_margin": (0.40, 0.55),
        "payroll_ratio": (0.30, 0.40),
        "dso_range": (15, 35),
        "dpo_range": (20, 35),
        "growth_rate": (0.02, 0.06),
        "seasonality": [0.45, 0.50, 0.80, 1.20, 1.40, 1.45, 1.40, 1.35, 1.15, 0.95, 0.75, 0.60],
        "example_companies": ["GreenScape Services", "Evergreen Lawn & Garden", "Stonepath Landscaping"]
    },
    "construction": {
        "name": "Construction",
        "revenue_range": (150000, 600000),
        "gross_margin": (0.20, 0.35),
        "payroll_ratio": (0.25, 0.40),
        "dso_range": (50, 80),
        "dpo_range": (40, 60),
        "growth_rate": (0.02, 0.07),
        "seasonality": [0.60, 0.65, 0.85, 1.10, 1.25, 1.30, 1.25, 1.20, 1.10, 0.95, 0.75, 0.55],
        "example_companies": ["Cornerstone Builders", "EcoHome Construction", "Metro Electrical Services"]
    }
}


@dataclass
class DemoCompany:
    """Generated report payloads plus the working-capital profile behind them"""
    name: str
    industry: str
    profit_and_loss: Dict[str, Any]
    balance_sheet: Dict[str, Any]
    cash_balance: float
    working_capital: WorkingCapitalAssumptions


def _amount(value: float) -> str:
    return f"{value:.2f}"


def _month_starts(start: date, months: int) -> List[date]:
    first = start.replace(day=1)
    return [first + relativedelta(months=i) for i in range(months)]


def _data_row(name: str, values: List[float], account_id: str, include_total: bool) -> Dict[str, Any]:
    cells = [{"value": name, "id": account_id}] + [{"value": _amount(v)} for v in values]
    if include_total:
        cells.append({"value": _amount(sum(values))})
    return {"type": "Data", "ColData": cells}


def _summary(label: str, totals: List[float], include_total: bool) -> Dict[str, Any]:
    cells = [{"value": label}] + [{"value": _amount(v)} for v in totals]
    if include_total:
        cells.append({"value": _amount(sum(totals))})
    return {"ColData": cells}


def _column_totals(accounts: Dict[str, List[float]], months: int) -> List[float]:
    return [sum(values[i] for values in accounts.values()) for i in range(months)]


def build_profit_and_loss_report(
    start: date,
    revenue: Dict[str, List[float]],
    expenses: Dict[str, List[float]],
    cogs: Optional[Dict[str, List[float]]] = None,
    include_total: bool = True,
    currency: str = "USD",
    basis: str = "Accrual"
) -> Dict[str, Any]:
    """
    Build a monthly Profit & Loss payload in the QuickBooks report shape.

    Args:
        start: First reported month
        revenue: Income account name -> monthly amounts
        expenses: Operating expense account name -> monthly amounts
        cogs: Optional cost of goods sold accounts
        include_total: Append the provider's "Total" column
        currency: Header currency
        basis: Header report basis

    Returns:
        {"Report": {...}} envelope
    """
    series = list(revenue.values()) + list(expenses.values()) + list((cogs or {}).values())
    months = len(series[0]) if series else 0
    if any(len(values) != months for values in series):
        raise ValueError("All account series must have the same number of months")
    if months == 0:
        raise ValueError("At least one month of data is required")

    dates = _month_starts(start, months)
    end = dates[-1] + relativedelta(months=1) - relativedelta(days=1)

    columns = [{"ColTitle": "", "ColType": "Account"}]
    for month_date in dates:
        month_end = month_date + relativedelta(months=1) - relativedelta(days=1)
        columns.append({
            "ColTitle": month_date.strftime("%b %Y"),
            "ColType": "Money",
            "MetaData": [
                {"Name": "StartDate", "Value": month_date.isoformat()},
                {"Name": "EndDate", "Value": month_end.isoformat()}
            ]
        })
    if include_total:
        columns.append({"ColTitle": "Total", "ColType": "Money"})

    next_id = iter(range(1, 10000))
    rows = []

    def section(header: str, group: str, accounts: Dict[str, List[float]]) -> List[float]:
        totals = _column_totals(accounts, months)
        rows.append({
            "type": "Section",
            "group": group,
            "Header": {"ColData": [{"value": header}] + [{"value": ""}] * (len(columns) - 1)},
            "Rows": {"Row": [
                _data_row(name, list(values), str(next(next_id)), include_total)
                for name, values in accounts.items()
            ]},
            "Summary": _summary(f"Total {header}", totals, include_total)
        })
        return totals

    income_totals = section("Income", "Income", revenue)
    cogs_totals = [0.0] * months
    if cogs:
        cogs_totals = section("Cost of Goods Sold", "COGS", cogs)
        gross = [i - c for i, c in zip(income_totals, cogs_totals)]
        rows.append({"type": "Section", "group": "GrossProfit",
                     "Summary": _summary("Gross Profit", gross, include_total)})
    expense_totals = section("Expenses", "Expenses", expenses)

    net = [i - c - e for i, c, e in zip(income_totals, cogs_totals, expense_totals)]
    rows.append({"type": "Section", "group": "NetIncome",
                 "Summary": _summary("Net Income", net, include_total)})

    return {
        "Report": {
            "Header": {
                "ReportName": "ProfitAndLoss",
                "ReportBasis": basis,
                "StartPeriod": dates[0].isoformat(),
                "EndPeriod": end.isoformat(),
                "SummarizeColumnsBy": "Month",
                "Currency": currency
            },
            "Columns": {"Column": columns},
            "Rows": {"Row": rows}
        }
    }


def build_balance_sheet(bank_accounts: Dict[str, float], as_of: date, currency: str = "USD") -> Dict[str, Any]:
    """Build a single-column Balance Sheet snapshot holding the bank accounts section"""
    total = sum(bank_accounts.values())
    bank_section = {
        "type": "Section",
        "group": "BankAccounts",
        "Header": {"ColData": [{"value": "Bank Accounts"}, {"value": ""}]},
        "Rows": {"Row": [
            {"type": "Data", "ColData": [{"value": name, "id": str(i + 1)}, {"value": _amount(balance)}]}
            for i, (name, balance) in enumerate(bank_accounts.items())
        ]},
        "Summary": {"ColData": [{"value": "Total Bank Accounts"}, {"value": _amount(total)}]}
    }
    return {
        "Report": {
            "Header": {
                "ReportName": "BalanceSheet",
                "StartPeriod": as_of.replace(day=1).isoformat(),
                "EndPeriod": as_of.isoformat(),
                "Currency": currency
            },
            "Columns": {"Column": [
                {"ColTitle": "", "ColType": "Account"},
                {"ColTitle": "Total", "ColType": "Money"}
            ]},
            "Rows": {"Row": [{
                "type": "Section",
                "group": "TotalAssets",
                "Header": {"ColData": [{"value": "ASSETS"}, {"value": ""}]},
                "Rows": {"Row": [{
                    "type": "Section",
                    "group": "CurrentAssets",
                    "Header": {"ColData": [{"value": "Current Assets"}, {"value": ""}]},
                    "Rows": {"Row": [bank_section]}
                }]}
            }]}
        }
    }


class DemoDataGenerator:
    """
    Generate seeded demo reports for Forecast Intelligence.

    Example:
        generator = DemoDataGenerator(seed=7)

        company = generator.generate_company(industry="landscaping", months=24)
        bundle = ForecastPipeline().run(company.profit_and_loss,
                                        balance_sheet=company.balance_sheet)
    """

    def __init__(self, seed: Optional[int] = None):
        """Initialize generator with optional random seed for reproducibility"""
        self._random = random.Random(seed)

    def generate_company(
        self,
        industry: str = "professional_services",
        months: int = 12,
        start: Optional[date] = None,
        company_name: Optional[str] = None
    ) -> DemoCompany:
        """
        Generate P&L and balance sheet payloads for one company.

        Args:
            industry: Industry type (see INDUSTRY_PROFILES)
            months: Months of history
            start: First reported month (defaults to `months` months before this month)
            company_name: Optional custom name
        """
        rng = self._random
        profile = INDUSTRY_PROFILES.get(industry, INDUSTRY_PROFILES["professional_services"])
        if start is None:
            start = date.today().replace(day=1) - relativedelta(months=months)

        base_revenue = rng.uniform(*profile["revenue_range"])
        gross_margin = rng.uniform(*profile["gross_margin"])
        payroll_ratio = rng.uniform(*profile["payroll_ratio"])
        monthly_growth = rng.uniform(*profile["growth_rate"]) / 12

        services, products, materials = [], [], []
        payroll, rent, utilities, marketing, insurance, software = [], [], [], [], [], []
        for month_date in _month_starts(start, months):
            offset = len(services)
            seasonality = profile["seasonality"][month_date.month - 1]
            revenue = base_revenue * seasonality * (1 + monthly_growth) ** offset
            revenue *= rng.uniform(0.95, 1.05)

            services.append(round(revenue * 0.8, 2))
            products.append(round(revenue * 0.2, 2))
            materials.append(round(revenue * (1 - gross_margin), 2))
            payroll.append(round(base_revenue * payroll_ratio * rng.uniform(0.98, 1.02), 2))
            rent.append(round(base_revenue * 0.08, 2))
            utilities.append(round(base_revenue * 0.02 * rng.uniform(0.9, 1.1), 2))
            marketing.append(round(revenue * rng.uniform(0.03, 0.06), 2))
            insurance.append(round(base_revenue * 0.015, 2))
            software.append(round(base_revenue * 0.01, 2))

        pnl = build_profit_and_loss_report(
            start,
            revenue={"Service Revenue": services, "Product Sales": products},
            cogs={"Materials and Supplies": materials},
            expenses={
                "Payroll Expenses": payroll,
                "Rent or Lease": rent,
                "Utilities": utilities,
                "Advertising & Marketing": marketing,
                "Insurance": insurance,
                "Software Subscriptions": software
            }
        )

        cash = round(base_revenue * rng.uniform(1.0, 3.0), 2)
        as_of = start.replace(day=1) + relativedelta(months=months) - relativedelta(days=1)
        balance_sheet = build_balance_sheet(
            {"Operating Checking": round(cash * 0.8, 2), "Savings": round(cash * 0.2, 2)},
            as_of
        )

        return DemoCompany(
            name=company_name or rng.choice(profile["example_companies"]),
            industry=industry,
            profit_and_loss=pnl,
            balance_sheet=balance_sheet,
            cash_balance=round(cash * 0.8, 2) + round(cash * 0.2, 2),
            working_capital=WorkingCapitalAssumptions(
                days_sales_outstanding=round(rng.uniform(*profile["dso_range"]), 1),
                days_payable_outstanding=round(rng.uniform(*profile["dpo_range"]), 1)
            )
        )


def generate_profit_and_loss_report(
    industry: str = "professional_services",
    months: int = 12,
    seed: Optional[int] = None,
    start: Optional[date] = None
) -> Dict[str, Any]:
    """Convenience wrapper returning only the P&L payload"""
    return DemoDataGenerator(seed).generate_company(industry, months, start).profit_and_loss
