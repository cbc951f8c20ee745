"""
Tank Analytics Settings
Centralized configuration from environment variables

Every tunable of the analytics engine lives here. Values come from the
environment (or a .env file) so deployments can tune windows and thresholds
without code changes.
"""

import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from dotenv import load_dotenv

from tank_analytics.models.analytics_models import ReadingSource, UrgencyThresholds

# Load environment variables
load_dotenv()


def _get_env(key: str, default: str = "", required: bool = False) -> str:
    """Get environment variable with optional requirement enforcement."""
    value = os.getenv(key, default)
    if required and not value:
        raise ValueError(f"Required environment variable {key} is not set!")
    return value


def _get_env_int(key: str, default: int) -> int:
    """Get integer environment variable."""
    return int(os.getenv(key, str(default)))


def _get_env_float(key: str, default: float) -> float:
    """Get float environment variable."""
    return float(os.getenv(key, str(default)))


def _get_env_bool(key: str, default: bool = False) -> bool:
    """Get boolean environment variable."""
    return os.getenv(key, str(default)).lower() in ("true", "1", "yes")


# =============================================================================
# ANALYTICS SETTINGS
# =============================================================================
@dataclass
class AnalyticsSettings:
    """Windows and sensitivities for consumption, trend and alert analysis."""

    lookback_days: int = field(
        default_factory=lambda: _get_env_int("ANALYTICS_LOOKBACK_DAYS", 90)
    )
    rolling_window_days: int = field(
        default_factory=lambda: _get_env_int("ANALYTICS_ROLLING_WINDOW_DAYS", 7)
    )
    short_window_hours: int = field(
        default_factory=lambda: _get_env_int("ANALYTICS_SHORT_WINDOW_HOURS", 24)
    )
    long_window_days: int = field(
        default_factory=lambda: _get_env_int("ANALYTICS_LONG_WINDOW_DAYS", 30)
    )

    # Refill detection: rise above this % of capacity is a delivery, not noise
    refill_noise_tolerance_pct: float = field(
        default_factory=lambda: _get_env_float("ANALYTICS_REFILL_TOLERANCE_PCT", 2.0)
    )

    # Trend: last N periods vs the N before, flapping guard epsilon
    trend_epsilon: float = field(
        default_factory=lambda: _get_env_float("ANALYTICS_TREND_EPSILON", 0.05)
    )
    trend_period_hours: int = field(
        default_factory=lambda: _get_env_int("ANALYTICS_TREND_PERIOD_HOURS", 24)
    )
    trend_periods: int = field(
        default_factory=lambda: _get_env_int("ANALYTICS_TREND_PERIODS", 3)
    )
    variability_cv_threshold: float = field(
        default_factory=lambda: _get_env_float("ANALYTICS_VARIABILITY_CV", 0.5)
    )

    # Order planning
    delivery_lead_days: float = field(
        default_factory=lambda: _get_env_float("ANALYTICS_DELIVERY_LEAD_DAYS", 4.0)
    )

    # Alerts
    unusual_consumption_ratio: float = field(
        default_factory=lambda: _get_env_float("ANALYTICS_UNUSUAL_RATIO", 1.5)
    )
    min_reliability_score: float = field(
        default_factory=lambda: _get_env_float("ANALYTICS_MIN_RELIABILITY", 80.0)
    )


# =============================================================================
# URGENCY SETTINGS
# =============================================================================
@dataclass
class UrgencySettings:
    """System-default urgency thresholds (tenants may override fill percents)."""

    critical_fill_pct: float = field(
        default_factory=lambda: _get_env_float("URGENCY_CRITICAL_FILL_PCT", 15.0)
    )
    urgent_fill_pct: float = field(
        default_factory=lambda: _get_env_float("URGENCY_URGENT_FILL_PCT", 20.0)
    )
    warning_fill_pct: float = field(
        default_factory=lambda: _get_env_float("URGENCY_WARNING_FILL_PCT", 30.0)
    )
    critical_days: float = field(
        default_factory=lambda: _get_env_float("URGENCY_CRITICAL_DAYS", 3.0)
    )
    urgent_days: float = field(
        default_factory=lambda: _get_env_float("URGENCY_URGENT_DAYS", 5.0)
    )
    warning_days: float = field(
        default_factory=lambda: _get_env_float("URGENCY_WARNING_DAYS", 7.0)
    )

    def to_thresholds(self) -> UrgencyThresholds:
        return UrgencyThresholds(
            critical_fill_pct=self.critical_fill_pct,
            urgent_fill_pct=self.urgent_fill_pct,
            warning_fill_pct=self.warning_fill_pct,
            critical_days=self.critical_days,
            urgent_days=self.urgent_days,
            warning_days=self.warning_days,
        )


# =============================================================================
# STALENESS SETTINGS
# =============================================================================
@dataclass
class StalenessSettings:
    """Expected reporting cadence per source, in hours."""

    telemetry_hours: float = field(
        default_factory=lambda: _get_env_float("STALENESS_TELEMETRY_HOURS", 6.0)
    )
    third_party_gauge_hours: float = field(
        default_factory=lambda: _get_env_float("STALENESS_GAUGE_HOURS", 24.0)
    )
    manual_dip_hours: float = field(
        default_factory=lambda: _get_env_float("STALENESS_MANUAL_DIP_HOURS", 168.0)
    )

    def interval_hours(self) -> Dict[ReadingSource, float]:
        return {
            ReadingSource.TELEMETRY: self.telemetry_hours,
            ReadingSource.THIRD_PARTY_GAUGE: self.third_party_gauge_hours,
            ReadingSource.MANUAL_DIP: self.manual_dip_hours,
        }


# =============================================================================
# FLEET SETTINGS
# =============================================================================
@dataclass
class FleetSettings:
    """Fleet-wide run configuration."""

    max_workers: int = field(default_factory=lambda: _get_env_int("FLEET_MAX_WORKERS", 8))
    tenant_overrides_file: Optional[str] = field(
        default_factory=lambda: _get_env("TENANT_OVERRIDES_FILE") or None
    )


# =============================================================================
# APPLICATION SETTINGS
# =============================================================================
@dataclass
class AppSettings:
    """General application settings."""

    debug: bool = field(default_factory=lambda: _get_env_bool("DEBUG", False))
    log_level: str = field(default_factory=lambda: _get_env("LOG_LEVEL", "INFO"))
    log_format: str = field(default_factory=lambda: _get_env("LOG_FORMAT", "console"))
    version: str = "1.0.0"


# =============================================================================
# GLOBAL SETTINGS INSTANCE
# =============================================================================
class Settings:
    """Global settings container - singleton pattern."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialize()
        return cls._instance

    def _initialize(self):
        """Initialize all settings."""
        self.analytics = AnalyticsSettings()
        self.urgency = UrgencySettings()
        self.staleness = StalenessSettings()
        self.fleet = FleetSettings()
        self.app = AppSettings()

    def validate(self) -> List[str]:
        """Validate settings and return list of warnings."""
        warnings = []

        urgency = self.urgency
        if not urgency.critical_fill_pct <= urgency.urgent_fill_pct <= urgency.warning_fill_pct:
            warnings.append("Urgency fill thresholds are not ordered critical <= urgent <= warning")

        if not urgency.critical_days <= urgency.urgent_days <= urgency.warning_days:
            warnings.append("Urgency day thresholds are not ordered critical <= urgent <= warning")

        if self.analytics.rolling_window_days > self.analytics.lookback_days:
            warnings.append("Rolling window is longer than the lookback window")

        if self.fleet.max_workers < 1:
            warnings.append("FLEET_MAX_WORKERS must be at least 1")

        if self.fleet.tenant_overrides_file and not os.path.exists(
            self.fleet.tenant_overrides_file
        ):
            warnings.append(
                f"Tenant overrides file not found: {self.fleet.tenant_overrides_file}"
            )

        return warnings

    def to_dict(self) -> Dict:
        """Export settings as dictionary (for debugging)."""
        return {
            "version": self.app.version,
            "debug": self.app.debug,
            "lookback_days": self.analytics.lookback_days,
            "rolling_window_days": self.analytics.rolling_window_days,
            "critical_fill_pct": self.urgency.critical_fill_pct,
            "warning_fill_pct": self.urgency.warning_fill_pct,
            "max_workers": self.fleet.max_workers,
            "tenant_overrides_file": self.fleet.tenant_overrides_file,
        }


def get_settings() -> Settings:
    """Get global settings instance."""
    return Settings()


def reload_settings() -> Settings:
    """Drop the cached instance and re-read the environment."""
    Settings._instance = None
    return Settings()
