"""
Tank Analytics - consumption analytics and predictive alerting for fuel tanks.

Turns raw tank readings into rolling consumption rates, trends, days-to-empty
predictions, staleness detection and urgency tiers.
"""

from tank_analytics.models import (
    FleetAnalyticsReport,
    RawReading,
    TankAnalytics,
    TankConfig,
    ThresholdOverrides,
)
from tank_analytics.orchestrators import OrchestratorConfig, TankAnalyticsOrchestrator

__version__ = "1.0.0"

__all__ = [
    "FleetAnalyticsReport",
    "OrchestratorConfig",
    "RawReading",
    "TankAnalytics",
    "TankAnalyticsOrchestrator",
    "TankConfig",
    "ThresholdOverrides",
]
