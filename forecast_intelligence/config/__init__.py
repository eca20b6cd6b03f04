"""
Configuration Module for Forecast Intelligence

Environment settings and forecast assumption objects.
"""

from .settings import (
    Config,
    DevelopmentConfig,
    ProductionConfig,
    TestingConfig,
    config,
    get_config,
    configure_logging
)
from .assumptions import (
    ForecastAssumptions,
    WorkingCapitalAssumptions,
    CapexAssumptions,
    FinancingAssumptions,
    CashFlowAssumptions,
    INFLATION_SCENARIOS,
    check_finite,
    check_horizon
)

__all__ = [
    # Settings
    'Config',
    'DevelopmentConfig',
    'ProductionConfig',
    'TestingConfig',
    'config',
    'get_config',
    'configure_logging',
    # Assumptions
    'ForecastAssumptions',
    'WorkingCapitalAssumptions',
    'CapexAssumptions',
    'FinancingAssumptions',
    'CashFlowAssumptions',
    'INFLATION_SCENARIOS',
    'check_finite',
    'check_horizon',
]
