"""
Patterns Module for Forecast Intelligence

Reusable analytical patterns: weighted scoring and risk classification.
"""

from .risk_classification import (
    RiskClassifier,
    RiskLevel,
    RiskThreshold,
    RiskClassification,
    create_cash_flow_risk_classifier,
    create_confidence_classifier
)

from .weighted_scoring import (
    WeightedScoringEngine,
    ScoreComponent,
    ScoreDirection,
    ScoreResult,
    create_driver_scoring_engine
)

__all__ = [
    # Risk Classification
    'RiskClassifier',
    'RiskLevel',
    'RiskThreshold',
    'RiskClassification',
    'create_cash_flow_risk_classifier',
    'create_confidence_classifier',
    # Weighted Scoring
    'WeightedScoringEngine',
    'ScoreComponent',
    'ScoreDirection',
    'ScoreResult',
    'create_driver_scoring_engine',
]
