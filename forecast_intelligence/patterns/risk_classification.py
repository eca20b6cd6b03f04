"""
Risk Classification Pattern - Forecast Intelligence

Converts a continuous risk measure into a discrete risk level. Used to
grade projected cash flow by the number of months with negative net cash
change, and driver forecast confidence by score.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any
from enum import Enum
import logging

logger = logging.getLogger(__name__)


class RiskLevel(Enum):
    """Standard risk levels"""
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def priority(self) -> int:
        """Numeric priority (lower = more urgent)."""
        return {
            RiskLevel.CRITICAL: 1,
            RiskLevel.HIGH: 2,
            RiskLevel.MEDIUM: 3,
            RiskLevel.LOW: 4
        }[self]


@dataclass
class RiskThreshold:
    """A half-open band [min_score, max_score) mapped to a level."""
    level: RiskLevel
    min_score: float
    max_score: float
    description: str = ""
    action_required: str = ""


@dataclass
class RiskClassification:
    """Result of classifying a score."""
    entity_id: str
    score: float
    level: RiskLevel
    description: str
    action_required: str
    factors: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entity_id": self.entity_id,
            "score": self.score,
            "level": self.level.value,
            "level_priority": self.level.priority,
            "description": self.description,
            "action_required": self.action_required,
            "factors": self.factors
        }


class RiskClassifier:
    """
    Classifies continuous scores into discrete risk levels.

    Supports two scoring directions:
    - higher_is_riskier: High scores = high risk (e.g. count of negative cash months)
    - lower_is_riskier: Low scores = high risk (e.g. a 0-100 confidence score)

    Example for projected cash flow:
    ```python
    classifier = create_cash_flow_risk_classifier(negative_months_threshold=2)

    result = classifier.classify(score=3, entity_id="baseline")
    print(result.level.value)  # "high"
    ```
    """

    DIRECTIONS = ("higher_is_riskier", "lower_is_riskier")

    def __init__(
        self,
        thresholds: List[RiskThreshold],
        direction: str = "higher_is_riskier"
    ):
        if not thresholds:
            raise ValueError("At least one threshold must be defined")
        if direction not in self.DIRECTIONS:
            raise ValueError(f"Unknown direction '{direction}', expected one of {self.DIRECTIONS}")
        self.direction = direction
        self.thresholds = sorted(thresholds, key=lambda t: t.min_score)
        self._validate_thresholds()

    def _validate_thresholds(self) -> None:
        """Warn about gaps or overlaps between bands, and bands ordered against the direction."""
        for current, next_t in zip(self.thresholds[:-1], self.thresholds[1:]):
            if current.max_score != next_t.min_score:
                logger.warning(
                    f"Threshold gap/overlap between {current.level.value} "
                    f"({current.max_score}) and {next_t.level.value} ({next_t.min_score})"
                )
            if self.direction == "higher_is_riskier":
                out_of_order = next_t.level.priority > current.level.priority
            else:
                out_of_order = next_t.level.priority < current.level.priority
            if out_of_order:
                logger.warning(
                    f"Band {current.level.value} -> {next_t.level.value} at {next_t.min_score} "
                    f"runs against {self.direction}"
                )

    def classify(
        self,
        score: float,
        entity_id: str = "unknown",
        factors: Optional[List[Dict[str, Any]]] = None
    ) -> RiskClassification:
        """Classify a score into a risk level."""
        min_score = self.thresholds[0].min_score
        max_score = self.thresholds[-1].max_score
        clamped = max(min_score, min(max_score, score))

        matched = None
        for threshold in self.thresholds:
            if threshold.min_score <= clamped < threshold.max_score:
                matched = threshold
                break

        if matched is None:
            matched = self.thresholds[-1] if clamped >= max_score else self.thresholds[0]

        return RiskClassification(
            entity_id=entity_id,
            score=round(score, 2),
            level=matched.level,
            description=matched.description,
            action_required=matched.action_required,
            factors=factors or []
        )

    def get_threshold_summary(self) -> List[Dict[str, Any]]:
        """Get summary of configured thresholds."""
        return [
            {
                "level": t.level.value,
                "min_score": t.min_score,
                "max_score": t.max_score if math.isfinite(t.max_score) else None,
                "description": t.description,
                "action_required": t.action_required
            }
            for t in self.thresholds
        ]


# =============================================================================
# Factory Functions for Forecast Intelligence
# =============================================================================

def create_cash_flow_risk_classifier(negative_months_threshold: int = 2) -> RiskClassifier:
    """Grade a projection by its count of negative net-cash-change months."""
    thresholds = [
        RiskThreshold(RiskLevel.LOW, 0, 1,
                      "Cash generation positive every month",
                      "Routine monitoring"),
        RiskThreshold(RiskLevel.MEDIUM, 1, negative_months_threshold + 1,
                      "Occasional months of cash burn",
                      "Plan timing of large outflows"),
        RiskThreshold(RiskLevel.HIGH, negative_months_threshold + 1, math.inf,
                      "Repeated months of cash burn",
                      "Build reserves or arrange a credit line"),
    ]
    return RiskClassifier(thresholds, direction="higher_is_riskier")


def create_confidence_classifier() -> RiskClassifier:
    """Grade a 0-100 forecast confidence score (low score = risky)."""
    thresholds = [
        RiskThreshold(RiskLevel.HIGH, 0, 40, "Low forecast confidence", "Forecast manually"),
        RiskThreshold(RiskLevel.MEDIUM, 40, 70, "Moderate forecast confidence", "Review monthly"),
        RiskThreshold(RiskLevel.LOW, 70, 100.0001, "High forecast confidence", "Automate"),
    ]
    return RiskClassifier(thresholds, direction="lower_is_riskier")
