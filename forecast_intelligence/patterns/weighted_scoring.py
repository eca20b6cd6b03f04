"""
Weighted Scoring Pattern - Forecast Intelligence

Configurable multi-component scoring engine. Each component maps a raw
metric onto a 0-100 scale and contributes by weight to a composite
score. Used to rank P&L line items as candidate forecast drivers.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any
from enum import Enum
import logging

logger = logging.getLogger(__name__)


class ScoreDirection(Enum):
    """Whether higher values are better or worse."""
    HIGHER_IS_BETTER = "higher_is_better"
    LOWER_IS_BETTER = "lower_is_better"


@dataclass
class ScoreComponent:
    """Definition of a single scoring component."""
    name: str
    weight: float  # 0.0 to 1.0, all weights should sum to 1.0
    direction: ScoreDirection = ScoreDirection.HIGHER_IS_BETTER
    min_value: float = 0.0
    max_value: float = 1.0
    description: str = ""

    def normalize(self, value: float) -> float:
        """Normalize a value to 0-100 scale."""
        if self.max_value == self.min_value:
            return 100.0 if value >= self.max_value else 0.0

        value = max(self.min_value, min(self.max_value, value))
        normalized = ((value - self.min_value) / (self.max_value - self.min_value)) * 100

        if self.direction == ScoreDirection.LOWER_IS_BETTER:
            normalized = 100 - normalized

        return round(normalized, 2)


@dataclass
class ScoreResult:
    """Result of scoring one entity."""
    entity_id: str
    overall_score: float               # 0-100
    grade: str
    component_scores: Dict[str, float]
    component_details: Dict[str, Dict[str, Any]]
    notes: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entity_id": self.entity_id,
            "overall_score": self.overall_score,
            "grade": self.grade,
            "component_scores": self.component_scores,
            "component_details": self.component_details,
            "notes": self.notes
        }


class WeightedScoringEngine:
    """
    A configurable multi-component weighted scoring engine.

    Example for forecast drivers:
    ```python
    engine = WeightedScoringEngine([
        ScoreComponent("materiality", weight=0.6, description="Share of the business"),
        ScoreComponent("predictability", weight=0.4, description="Trend fit (R squared)"),
    ])

    result = engine.score({"materiality": 0.35, "predictability": 0.9}, entity_id="Payroll")
    print(result.overall_score, result.grade)
    ```
    """

    DEFAULT_GRADE_THRESHOLDS = {
        80: "A",
        60: "B",
        40: "C",
        20: "D",
        0: "F"
    }

    def __init__(
        self,
        components: List[ScoreComponent],
        grade_thresholds: Optional[Dict[int, str]] = None,
        weak_component_threshold: float = 25.0
    ):
        self.components = {c.name: c for c in components}
        self.grade_thresholds = grade_thresholds or self.DEFAULT_GRADE_THRESHOLDS
        self.weak_component_threshold = weak_component_threshold

        total_weight = sum(c.weight for c in components)
        if total_weight <= 0:
            raise ValueError("Component weights must sum to a positive value")
        if abs(total_weight - 1.0) > 0.01:
            logger.warning(f"Component weights sum to {total_weight}, not 1.0. Normalizing...")
            for c in components:
                c.weight = c.weight / total_weight

    def score(
        self,
        values: Dict[str, float],
        entity_id: str = "unknown"
    ) -> ScoreResult:
        """Calculate weighted score for an entity."""
        component_scores = {}
        component_details = {}
        weighted_sum = 0.0

        for name, component in self.components.items():
            raw_value = values.get(name)

            if raw_value is None:
                logger.warning(f"Missing value for component '{name}' on {entity_id}, using min value")
                raw_value = component.min_value

            normalized = component.normalize(raw_value)
            component_scores[name] = normalized

            weighted_contribution = normalized * component.weight
            weighted_sum += weighted_contribution

            component_details[name] = {
                "raw_value": raw_value,
                "normalized_score": normalized,
                "weight": component.weight,
                "weighted_contribution": round(weighted_contribution, 2),
                "direction": component.direction.value,
                "description": component.description
            }

        overall_score = round(weighted_sum, 2)
        return ScoreResult(
            entity_id=entity_id,
            overall_score=overall_score,
            grade=self._determine_grade(overall_score),
            component_scores=component_scores,
            component_details=component_details,
            notes=self._weak_components(component_scores)
        )

    def _determine_grade(self, score: float) -> str:
        """Determine letter grade from score."""
        for threshold, grade in sorted(self.grade_thresholds.items(), reverse=True):
            if score >= threshold:
                return grade
        return "F"

    def _weak_components(self, component_scores: Dict[str, float]) -> List[str]:
        notes = []
        for name, score in component_scores.items():
            if score < self.weak_component_threshold:
                component = self.components[name]
                notes.append(f"Weak {name} ({score:.0f}/100) - {component.description}")
        return notes

    def get_component_summary(self) -> Dict[str, Dict[str, Any]]:
        """Get summary of all scoring components."""
        return {
            name: {
                "weight": c.weight,
                "weight_percent": f"{c.weight * 100:.0f}%",
                "direction": c.direction.value,
                "range": f"{c.min_value} - {c.max_value}",
                "description": c.description
            }
            for name, c in self.components.items()
        }


# =============================================================================
# Factory Functions for Forecast Intelligence
# =============================================================================

def create_driver_scoring_engine(
    weights: Optional[Dict[str, float]] = None
) -> WeightedScoringEngine:
    """Score a P&L line item's suitability as a forecast driver (inputs on 0-1)."""
    weights = {
        "materiality": 0.30,
        "variability": 0.20,
        "predictability": 0.20,
        "growth_impact": 0.20,
        "data_quality": 0.10,
        **(weights or {})
    }
    components = [
        ScoreComponent(
            name="materiality",
            weight=weights["materiality"],
            description="Share of total revenue or total expenses"
        ),
        ScoreComponent(
            name="variability",
            weight=weights["variability"],
            description="Month-to-month variation (coefficient of variation, capped at 5)"
        ),
        ScoreComponent(
            name="predictability",
            weight=weights["predictability"],
            description="How closely the line follows a linear trend (R squared)"
        ),
        ScoreComponent(
            name="growth_impact",
            weight=weights["growth_impact"],
            description="Size of annualized growth or decline"
        ),
        ScoreComponent(
            name="data_quality",
            weight=weights["data_quality"],
            description="Share of months with recorded activity"
        ),
    ]

    return WeightedScoringEngine(components)
