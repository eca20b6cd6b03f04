"""
Forecast Scenarios

The three canonical scenarios and the single multiplier table that
defines how growth and downturn perturb the baseline. The P&L engine,
the service-business revenue model and the cash-flow statement all read
scenario semantics from here.
"""

import logging
from dataclasses import dataclass, field, replace, asdict
from typing import Dict, List, Any, Optional
from enum import Enum

logger = logging.getLogger(__name__)


class ScenarioName(Enum):
    """Canonical forecast scenarios"""
    BASELINE = "baseline"
    GROWTH = "growth"
    DOWNTURN = "downturn"


CONFIDENCE_ORDER = ["low", "medium", "high"]


@dataclass(frozen=True)
class ScenarioMultiplier:
    """Relative perturbations applied to baseline assumptions"""
    growth: float = 1.0
    variable_cost: float = 1.0
    fixed_cost_inflation: float = 1.0
    seasonal_amplitude: float = 1.0
    customer_acquisition: float = 1.0
    retention: float = 1.0
    capacity_expansion: float = 1.0
    capex: float = 1.0
    collection_days: float = 1.0
    confidence_shift: int = 0   # notches relative to the baseline confidence
    growth_ceiling: Optional[float] = None  # % per month, relative to a non-negative baseline

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ScenarioAssumptions:
    """Parameters driving one scenario's P&L projection"""
    scenario: ScenarioName
    monthly_growth_rate: float        # % per month
    variable_cost_ratio: float        # % of revenue
    fixed_cost_inflation: float       # % per year
    confidence_level: str
    seasonal_adjustments: Dict[int, float] = field(default_factory=dict)

    def seasonal_factor(self, month: int) -> float:
        return self.seasonal_adjustments.get(month, 1.0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scenario": self.scenario.value,
            "monthly_growth_rate": self.monthly_growth_rate,
            "variable_cost_ratio": self.variable_cost_ratio,
            "fixed_cost_inflation": self.fixed_cost_inflation,
            "confidence_level": self.confidence_level,
            "seasonal_adjustments": {str(k): v for k, v in sorted(self.seasonal_adjustments.items())}
        }


class ScenarioMultiplierTable:
    """
    Scenario multipliers keyed by scenario name.

    Fixed-cost inflation and seasonal amplitude are shared across scenarios
    by default, so the scenarios order as downturn <= baseline <= growth on
    net income.

    Growth never projects below the baseline rate. The downturn rate is
    capped by its growth ceiling (-2% per month by default), shifted down
    by the baseline rate when the baseline itself is declining, so flat and
    shrinking businesses still get a downturn below their baseline.

    Example:
    ```python
    table = ScenarioMultiplierTable()
    growth = table.apply(baseline_assumptions, ScenarioName.GROWTH)

    custom = ScenarioMultiplierTable({
        ScenarioName.GROWTH: ScenarioMultiplier(growth=2.0, variable_cost=0.9)
    })
    ```
    """

    DEFAULT_MULTIPLIERS = {
        ScenarioName.BASELINE: ScenarioMultiplier(),
        ScenarioName.GROWTH: ScenarioMultiplier(
            growth=1.5,
            variable_cost=0.95,
            customer_acquisition=1.3,
            retention=1.02,
            capacity_expansion=1.5,
            capex=1.2,
            collection_days=0.95,
            confidence_shift=-1
        ),
        ScenarioName.DOWNTURN: ScenarioMultiplier(
            growth=-0.3,
            variable_cost=1.05,
            customer_acquisition=0.6,
            retention=0.97,
            capacity_expansion=0.5,
            capex=0.8,
            collection_days=1.1,
            confidence_shift=-1,
            growth_ceiling=-2.0
        ),
    }

    def __init__(self, overrides: Optional[Dict[ScenarioName, ScenarioMultiplier]] = None):
        self._multipliers = dict(self.DEFAULT_MULTIPLIERS)
        for name, multiplier in (overrides or {}).items():
            self._multipliers[ScenarioName(name)] = multiplier

    @property
    def scenarios(self) -> List[ScenarioName]:
        return [ScenarioName.BASELINE, ScenarioName.GROWTH, ScenarioName.DOWNTURN]

    def get(self, scenario: ScenarioName) -> ScenarioMultiplier:
        return self._multipliers[ScenarioName(scenario)]

    def apply(self, baseline: ScenarioAssumptions, scenario: ScenarioName) -> ScenarioAssumptions:
        """Derive a scenario's assumptions from the baseline"""
        multiplier = self.get(scenario)
        adjustments = {
            month: 1 + (factor - 1) * multiplier.seasonal_amplitude
            for month, factor in baseline.seasonal_adjustments.items()
        }
        return replace(
            baseline,
            scenario=ScenarioName(scenario),
            monthly_growth_rate=self.growth_rate(baseline.monthly_growth_rate, scenario),
            variable_cost_ratio=min(100.0, max(0.0, baseline.variable_cost_ratio * multiplier.variable_cost)),
            fixed_cost_inflation=baseline.fixed_cost_inflation * multiplier.fixed_cost_inflation,
            confidence_level=shift_confidence(baseline.confidence_level, multiplier.confidence_shift),
            seasonal_adjustments=adjustments
        )

    def growth_rate(self, baseline_rate: float, scenario: ScenarioName) -> float:
        """Monthly revenue growth rate (%) for a scenario"""
        scenario = ScenarioName(scenario)
        multiplier = self.get(scenario)
        rate = baseline_rate * multiplier.growth
        if multiplier.growth_ceiling is not None:
            rate = min(rate, multiplier.growth_ceiling + min(0.0, baseline_rate))
        if scenario == ScenarioName.GROWTH:
            rate = max(rate, baseline_rate)
        elif scenario == ScenarioName.DOWNTURN:
            rate = min(rate, baseline_rate)
        return rate

    def to_dict(self) -> Dict[str, Any]:
        return {name.value: self.get(name).to_dict() for name in self.scenarios}


def shift_confidence(level: str, notches: int) -> str:
    index = CONFIDENCE_ORDER.index(level) if level in CONFIDENCE_ORDER else 0
    return CONFIDENCE_ORDER[max(0, min(len(CONFIDENCE_ORDER) - 1, index + notches))]
