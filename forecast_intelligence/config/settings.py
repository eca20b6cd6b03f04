"""
Configuration settings for Forecast Intelligence
"""

import os
import logging
from typing import Optional


def _env_int(name: str, default: int) -> int:
    return int(os.environ.get(name, default))


def _env_float(name: str, default: float) -> float:
    return float(os.environ.get(name, default))


class Config:
    """Base configuration"""
    # App
    APP_NAME = "Forecast Intelligence"
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_FORMAT = '%(asctime)s %(levelname)s [%(name)s] %(message)s'

    # Forecast horizon
    DEFAULT_HORIZON_MONTHS = _env_int('DEFAULT_HORIZON_MONTHS', 12)
    MAX_HORIZON_MONTHS = _env_int('MAX_HORIZON_MONTHS', 60)

    # Data quality
    CONSISTENCY_TOLERANCE = _env_float('CONSISTENCY_TOLERANCE', 0.01)
    MIN_COMPLETENESS = _env_float('MIN_COMPLETENESS', 0.8)
    MIN_HISTORY_MONTHS = _env_int('MIN_HISTORY_MONTHS', 3)

    # Expense categorization
    ENHANCED_MODE_MIN_COVERAGE = _env_float('ENHANCED_MODE_MIN_COVERAGE', 0.75)

    # Cash flow risk
    NEGATIVE_CASH_MONTHS_THRESHOLD = _env_int('NEGATIVE_CASH_MONTHS_THRESHOLD', 2)

    # QuickBooks reports
    QUICKBOOKS_ENVIRONMENT = os.environ.get('QUICKBOOKS_ENVIRONMENT', 'sandbox')
    QUICKBOOKS_MINOR_VERSION = os.environ.get('QUICKBOOKS_MINOR_VERSION', '65')
    QUICKBOOKS_TIMEOUT_SECONDS = _env_float('QUICKBOOKS_TIMEOUT_SECONDS', 30.0)


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'DEBUG')


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    QUICKBOOKS_ENVIRONMENT = os.environ.get('QUICKBOOKS_ENVIRONMENT', 'production')


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    LOG_LEVEL = 'WARNING'
    DEFAULT_HORIZON_MONTHS = 12
    MAX_HORIZON_MONTHS = 60
    CONSISTENCY_TOLERANCE = 0.01
    MIN_COMPLETENESS = 0.8
    MIN_HISTORY_MONTHS = 3
    ENHANCED_MODE_MIN_COVERAGE = 0.75
    NEGATIVE_CASH_MONTHS_THRESHOLD = 2


# Config mapping
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}


def get_config():
    """Get config based on environment"""
    env = os.environ.get('FORECAST_ENV', 'development')
    return config.get(env, config['default'])


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging for scripts and services embedding the package"""
    settings = get_config()
    logging.basicConfig(
        level=getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO),
        format=settings.LOG_FORMAT
    )
