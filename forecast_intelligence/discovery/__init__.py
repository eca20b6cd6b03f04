"""
Discovery Module for Forecast Intelligence

Ranks historical P&L lines as candidate forecast drivers.
"""

from .driver_discovery import (
    DriverDiscoveryService,
    DriverDiscoveryResult,
    DriverDiscoverySummary,
    DriverRecommendations,
    DiscoveredDriver,
    ExcludedItem,
    ForecastMethod,
    LineItemAnalysis,
    SuggestedMethod
)

__all__ = [
    'DriverDiscoveryService',
    'DriverDiscoveryResult',
    'DriverDiscoverySummary',
    'DriverRecommendations',
    'DiscoveredDriver',
    'ExcludedItem',
    'ForecastMethod',
    'LineItemAnalysis',
    'SuggestedMethod',
]
