"""Domain dataclasses, enums and pydantic boundary models."""

from .analytics_models import (
    ConsumptionEstimate,
    ConsumptionPattern,
    Confidence,
    DepletionForecast,
    DepletionInterval,
    FleetAnalyticsReport,
    Freshness,
    InvalidTankConfigError,
    InvalidThresholdOverridesError,
    NormalizationResult,
    Observation,
    RawReading,
    ReadingSource,
    RefillSummary,
    TankAnalytics,
    TankConfig,
    ThresholdOverrides,
    Trend,
    TrendResult,
    Urgency,
    UrgencySummary,
    UrgencyThresholds,
)
from .validation import RawReadingIn, TankConfigIn, ThresholdOverridesIn

__all__ = [
    "ConsumptionEstimate",
    "ConsumptionPattern",
    "Confidence",
    "DepletionForecast",
    "DepletionInterval",
    "FleetAnalyticsReport",
    "Freshness",
    "InvalidTankConfigError",
    "InvalidThresholdOverridesError",
    "NormalizationResult",
    "Observation",
    "RawReading",
    "RawReadingIn",
    "ReadingSource",
    "RefillSummary",
    "TankAnalytics",
    "TankConfig",
    "TankConfigIn",
    "ThresholdOverrides",
    "ThresholdOverridesIn",
    "Trend",
    "TrendResult",
    "Urgency",
    "UrgencySummary",
    "UrgencyThresholds",
]
