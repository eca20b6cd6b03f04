"""
Forecast Assumptions

Override objects accepted by the forecasting entry points. Every field has
a documented default so the whole pipeline is callable with no overrides.
Rates are expressed in percent (3.0 means 3%) unless the field name says
otherwise; day counts are calendar days.
"""

import math
from dataclasses import dataclass, field, fields, asdict
from typing import Dict, Any, Optional

from ..errors import AssumptionOutOfRangeError

INFLATION_SCENARIOS = ("baseline", "high_inflation", "low_inflation")


def check_finite(name: str, value: Any, minimum: Optional[float] = None,
                 maximum: Optional[float] = None) -> float:
    """Reject non-numeric, non-finite or out-of-bounds values"""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise AssumptionOutOfRangeError(name, value, "must be a number")
    if not math.isfinite(value):
        raise AssumptionOutOfRangeError(name, value, "must be finite")
    if minimum is not None and value < minimum:
        raise AssumptionOutOfRangeError(name, value, f"must be >= {minimum}")
    if maximum is not None and value > maximum:
        raise AssumptionOutOfRangeError(name, value, f"must be <= {maximum}")
    return float(value)


def check_horizon(horizon_months: Any, maximum: int) -> int:
    """Validate a projection horizon in months"""
    if isinstance(horizon_months, bool) or not isinstance(horizon_months, int):
        raise AssumptionOutOfRangeError("horizon_months", horizon_months, "must be an integer")
    if horizon_months < 0:
        raise AssumptionOutOfRangeError("horizon_months", horizon_months, "must not be negative")
    if horizon_months > maximum:
        raise AssumptionOutOfRangeError("horizon_months", horizon_months, f"must be <= {maximum}")
    return horizon_months


def _from_dict(cls, data: Optional[Dict[str, Any]]):
    """Build a flat assumptions dataclass, ignoring unknown keys"""
    data = data or {}
    known = {f.name for f in fields(cls)}
    return cls(**{k: v for k, v in data.items() if k in known})


@dataclass
class ForecastAssumptions:
    """P&L projection overrides"""
    baseline_growth_rate: Optional[float] = None   # % per month; None uses the trend recommendation
    variable_cost_ratio: Optional[float] = None    # % of revenue; None uses the expense breakdown
    fixed_cost_inflation: float = 3.0              # % per year, compounded monthly
    inflation_scenario: Optional[str] = None       # None selects from revenue volatility
    use_enhanced_mode: Optional[bool] = None       # None decides from categorization coverage

    def validate(self) -> 'ForecastAssumptions':
        if self.baseline_growth_rate is not None:
            check_finite("baseline_growth_rate", self.baseline_growth_rate, minimum=-100.0)
        if self.variable_cost_ratio is not None:
            check_finite("variable_cost_ratio", self.variable_cost_ratio, minimum=0.0, maximum=100.0)
        check_finite("fixed_cost_inflation", self.fixed_cost_inflation, minimum=-100.0)
        if self.inflation_scenario is not None and self.inflation_scenario not in INFLATION_SCENARIOS:
            raise AssumptionOutOfRangeError(
                "inflation_scenario", self.inflation_scenario,
                f"must be one of {', '.join(INFLATION_SCENARIOS)}"
            )
        return self

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'ForecastAssumptions':
        return _from_dict(cls, data).validate()


@dataclass
class WorkingCapitalAssumptions:
    """Day-count ratios driving receivables, payables and inventory"""
    days_sales_outstanding: float = 35.0
    days_payable_outstanding: float = 30.0
    days_inventory_outstanding: float = 10.0
    days_per_month: float = 30.0

    def validate(self) -> 'WorkingCapitalAssumptions':
        check_finite("days_sales_outstanding", self.days_sales_outstanding, minimum=0.0)
        check_finite("days_payable_outstanding", self.days_payable_outstanding, minimum=0.0)
        check_finite("days_inventory_outstanding", self.days_inventory_outstanding, minimum=0.0)
        check_finite("days_per_month", self.days_per_month, minimum=1.0)
        return self


@dataclass
class CapexAssumptions:
    """Fixed asset, depreciation and capital expenditure inputs"""
    annual_depreciation_rate: float = 15.0           # % of the fixed asset base per year
    fixed_asset_base: Optional[float] = None         # None estimates from depreciation expense lines
    monthly_depreciation: Optional[float] = None     # explicit add-back, overrides the base
    capex_percent_of_revenue: float = 2.0
    replacement_cycle_months: Optional[int] = None   # e.g. 12 buys replacement_amount every year
    replacement_amount: float = 0.0

    def validate(self) -> 'CapexAssumptions':
        check_finite("annual_depreciation_rate", self.annual_depreciation_rate, minimum=0.0, maximum=100.0)
        if self.fixed_asset_base is not None:
            check_finite("fixed_asset_base", self.fixed_asset_base, minimum=0.0)
        if self.monthly_depreciation is not None:
            check_finite("monthly_depreciation", self.monthly_depreciation, minimum=0.0)
        check_finite("capex_percent_of_revenue", self.capex_percent_of_revenue, minimum=0.0, maximum=100.0)
        if self.replacement_cycle_months is not None:
            if (isinstance(self.replacement_cycle_months, bool)
                    or not isinstance(self.replacement_cycle_months, int)
                    or self.replacement_cycle_months < 1):
                raise AssumptionOutOfRangeError(
                    "replacement_cycle_months", self.replacement_cycle_months,
                    "must be a positive integer"
                )
        check_finite("replacement_amount", self.replacement_amount, minimum=0.0)
        return self


@dataclass
class FinancingAssumptions:
    """Debt service and owner withdrawals; zero unless specified"""
    monthly_debt_service: float = 0.0
    monthly_owner_draws: float = 0.0
    owner_draw_percent_of_profit: float = 0.0

    def validate(self) -> 'FinancingAssumptions':
        check_finite("monthly_debt_service", self.monthly_debt_service, minimum=0.0)
        check_finite("monthly_owner_draws", self.monthly_owner_draws, minimum=0.0)
        check_finite("owner_draw_percent_of_profit", self.owner_draw_percent_of_profit,
                     minimum=0.0, maximum=100.0)
        return self


@dataclass
class CashFlowAssumptions:
    """Bundle of cash-flow statement inputs"""
    working_capital: WorkingCapitalAssumptions = field(default_factory=WorkingCapitalAssumptions)
    capex: CapexAssumptions = field(default_factory=CapexAssumptions)
    financing: FinancingAssumptions = field(default_factory=FinancingAssumptions)
    negative_cash_months_threshold: int = 2

    def validate(self) -> 'CashFlowAssumptions':
        self.working_capital.validate()
        self.capex.validate()
        self.financing.validate()
        check_finite("negative_cash_months_threshold", self.negative_cash_months_threshold, minimum=0)
        return self

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'CashFlowAssumptions':
        data = data or {}
        result = cls(
            working_capital=_from_dict(WorkingCapitalAssumptions, data.get('working_capital')),
            capex=_from_dict(CapexAssumptions, data.get('capex')),
            financing=_from_dict(FinancingAssumptions, data.get('financing')),
        )
        if 'negative_cash_months_threshold' in data:
            result.negative_cash_months_threshold = data['negative_cash_months_threshold']
        return result.validate()
