"""
Tank Analytics Data Models
==========================

All dataclasses and enums shared by the consumption analytics services and
the tank analytics orchestrator.

Engine values are kept at full precision. Rounding happens only in the
``to_dict()`` methods, which are the presentation boundary.

Author: Tank Analytics Team
Version: 1.0.0
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union


# ══════════════════════════════════════════════════════════════════════════════
# ENUMS
# ══════════════════════════════════════════════════════════════════════════════


class ReadingSource(str, Enum):
    """Where a fuel-level reading came from"""
    TELEMETRY = "telemetry"
    MANUAL_DIP = "manual_dip"
    THIRD_PARTY_GAUGE = "third_party_gauge"

    @classmethod
    def parse(cls, value: Union[str, "ReadingSource"]) -> "ReadingSource":
        """
        Resolve a source name, accepting the vendor aliases used by feeds.

        Raises:
            ValueError: if the value is not a known source or alias
        """
        if isinstance(value, ReadingSource):
            return value
        if not isinstance(value, str):
            raise ValueError(f"Unknown reading source: {value!r}")

        key = value.strip().lower().replace("-", "_").replace(" ", "_")
        if key in _SOURCE_ALIASES:
            return _SOURCE_ALIASES[key]
        return cls(key)


_SOURCE_ALIASES = {
    "agbot": ReadingSource.TELEMETRY,
    "device": ReadingSource.TELEMETRY,
    "sensor": ReadingSource.TELEMETRY,
    "smartfill": ReadingSource.THIRD_PARTY_GAUGE,
    "gauge": ReadingSource.THIRD_PARTY_GAUGE,
    "dip": ReadingSource.MANUAL_DIP,
    "manual": ReadingSource.MANUAL_DIP,
}


class Trend(str, Enum):
    """Direction of consumption between two sub-periods"""
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


class ConsumptionPattern(str, Enum):
    REGULAR = "regular"
    VARIABLE = "variable"


class Freshness(str, Enum):
    """How far the latest observation lags its source's reporting cadence"""
    FRESH = "fresh"
    STALE = "stale"
    VERY_STALE = "very_stale"
    CRITICAL = "critical"
    UNKNOWN = "unknown"


class Urgency(str, Enum):
    """Single ordinal tier used by dashboards, map markers and alert emails"""
    OK = "ok"
    WARNING = "warning"
    URGENT = "urgent"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        """Higher rank = more urgent"""
        return _URGENCY_RANK[self]


_URGENCY_RANK = {
    Urgency.OK: 0,
    Urgency.WARNING: 1,
    Urgency.URGENT: 2,
    Urgency.CRITICAL: 3,
}


class Confidence(str, Enum):
    """How much data backs a consumption figure"""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# ══════════════════════════════════════════════════════════════════════════════
# ERRORS
# ══════════════════════════════════════════════════════════════════════════════


class InvalidTankConfigError(ValueError):
    """Tank capacity/threshold configuration is internally inconsistent."""


class InvalidThresholdOverridesError(ValueError):
    """Tenant threshold overrides are out of range or contradictory."""


# ══════════════════════════════════════════════════════════════════════════════
# INPUTS
# ══════════════════════════════════════════════════════════════════════════════


@dataclass
class RawReading:
    """
    One raw reading row as delivered by storage or a vendor feed.

    Fields are deliberately loose: timestamps may be strings or epoch seconds,
    sources may use vendor names and flags may arrive as "true"/"0" strings.
    The ReadingNormalizer makes sense of them.
    """
    timestamp: Any
    source: Any
    level_percent: Optional[float] = None
    level_litres: Optional[float] = None
    tank_id: Optional[str] = None
    is_refill: Any = False
    device_online: Any = None
    ingested_at: Any = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RawReading":
        """Build from a storage row, ignoring unknown columns"""
        return cls(
            timestamp=data.get("timestamp"),
            source=data.get("source"),
            level_percent=data.get("level_percent"),
            level_litres=data.get("level_litres"),
            tank_id=data.get("tank_id"),
            is_refill=data.get("is_refill", False),
            device_online=data.get("device_online"),
            ingested_at=data.get("ingested_at"),
        )


@dataclass
class TankConfig:
    """
    Capacity and threshold configuration for one tank.

    Thresholds may be given in litres or as a percent of capacity. Litres win
    when both are present.

    Raises:
        InvalidTankConfigError: on non-positive capacity, a percent outside
            0-100, a threshold above capacity, or minimum above safe fill.
    """
    tank_id: str
    capacity_litres: Optional[float] = None
    safe_fill_litres: Optional[float] = None
    minimum_level_litres: Optional[float] = None
    safe_fill_percent: Optional[float] = None
    minimum_level_percent: Optional[float] = None
    tenant_id: Optional[str] = None
    # Per-source reporting cadence in hours; missing sources use settings defaults
    expected_interval_hours: Dict[ReadingSource, float] = field(default_factory=dict)

    def __post_init__(self):
        if self.capacity_litres is not None and self.capacity_litres <= 0:
            raise InvalidTankConfigError(
                f"Tank {self.tank_id}: capacity must be positive, got {self.capacity_litres}"
            )

        for name in ("safe_fill_percent", "minimum_level_percent"):
            value = getattr(self, name)
            if value is not None and not 0 <= value <= 100:
                raise InvalidTankConfigError(
                    f"Tank {self.tank_id}: {name} must be within 0-100, got {value}"
                )

        for name in ("safe_fill_litres", "minimum_level_litres"):
            value = getattr(self, name)
            if value is None:
                continue
            if value < 0:
                raise InvalidTankConfigError(
                    f"Tank {self.tank_id}: {name} cannot be negative, got {value}"
                )
            if self.capacity_litres is not None and value > self.capacity_litres:
                raise InvalidTankConfigError(
                    f"Tank {self.tank_id}: {name} ({value}) exceeds capacity "
                    f"({self.capacity_litres})"
                )

        try:
            self.expected_interval_hours = {
                ReadingSource.parse(source): float(hours)
                for source, hours in self.expected_interval_hours.items()
            }
        except (TypeError, ValueError) as e:
            raise InvalidTankConfigError(
                f"Tank {self.tank_id}: invalid expected interval: {e}"
            ) from e
        for source, hours in self.expected_interval_hours.items():
            if hours <= 0:
                raise InvalidTankConfigError(
                    f"Tank {self.tank_id}: expected interval for {source.value} must be positive"
                )

        minimum = self.resolved_minimum_litres()
        safe = self.resolved_safe_fill_litres()
        if minimum is not None and safe is not None and minimum > safe:
            raise InvalidTankConfigError(
                f"Tank {self.tank_id}: minimum level ({minimum}) exceeds safe fill ({safe})"
            )
        if (
            self.minimum_level_percent is not None
            and self.safe_fill_percent is not None
            and self.minimum_level_percent > self.safe_fill_percent
        ):
            raise InvalidTankConfigError(
                f"Tank {self.tank_id}: minimum percent exceeds safe fill percent"
            )

    def resolved_minimum_litres(self) -> Optional[float]:
        if self.minimum_level_litres is not None:
            return self.minimum_level_litres
        if self.minimum_level_percent is not None and self.capacity_litres is not None:
            return self.minimum_level_percent / 100 * self.capacity_litres
        return None

    def resolved_safe_fill_litres(self) -> Optional[float]:
        if self.safe_fill_litres is not None:
            return self.safe_fill_litres
        if self.safe_fill_percent is not None and self.capacity_litres is not None:
            return self.safe_fill_percent / 100 * self.capacity_litres
        return None


def _check_fill_order(
    critical: Optional[float], urgent: Optional[float], warning: Optional[float]
) -> None:
    """Set fill thresholds must satisfy critical <= urgent <= warning."""
    pairs = (
        ("critical_fill_pct", critical, "urgent_fill_pct", urgent),
        ("urgent_fill_pct", urgent, "warning_fill_pct", warning),
        ("critical_fill_pct", critical, "warning_fill_pct", warning),
    )
    for low_name, low, high_name, high in pairs:
        if low is not None and high is not None and low > high:
            raise InvalidThresholdOverridesError(
                f"{low_name} ({low}) cannot exceed {high_name} ({high})"
            )


@dataclass(frozen=True)
class ThresholdOverrides:
    """Per-tenant fill-percent thresholds from customer preferences"""
    critical_fill_pct: Optional[float] = None
    urgent_fill_pct: Optional[float] = None
    warning_fill_pct: Optional[float] = None

    def __post_init__(self):
        for name in ("critical_fill_pct", "urgent_fill_pct", "warning_fill_pct"):
            value = getattr(self, name)
            if value is not None and not 0 <= value <= 100:
                raise InvalidThresholdOverridesError(
                    f"{name} must be within 0-100, got {value}"
                )
        _check_fill_order(self.critical_fill_pct, self.urgent_fill_pct, self.warning_fill_pct)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ThresholdOverrides":
        return cls(
            critical_fill_pct=data.get("critical_fill_pct"),
            urgent_fill_pct=data.get("urgent_fill_pct"),
            warning_fill_pct=data.get("warning_fill_pct"),
        )


@dataclass(frozen=True)
class UrgencyThresholds:
    """Resolved thresholds the UrgencyClassifier evaluates against"""
    critical_fill_pct: float = 15.0
    urgent_fill_pct: float = 20.0
    warning_fill_pct: float = 30.0
    critical_days: float = 3.0
    urgent_days: float = 5.0
    warning_days: float = 7.0

    def with_overrides(self, overrides: Optional[ThresholdOverrides]) -> "UrgencyThresholds":
        """
        Return a copy with any set override values applied.

        Raises:
            InvalidThresholdOverridesError: if the merged fill thresholds are
                not ordered critical <= urgent <= warning
        """
        if overrides is None:
            return self
        changes = {
            name: getattr(overrides, name)
            for name in ("critical_fill_pct", "urgent_fill_pct", "warning_fill_pct")
            if getattr(overrides, name) is not None
        }
        if not changes:
            return self
        resolved = replace(self, **changes)
        _check_fill_order(
            resolved.critical_fill_pct, resolved.urgent_fill_pct, resolved.warning_fill_pct
        )
        return resolved


# ══════════════════════════════════════════════════════════════════════════════
# INTERMEDIATE RESULTS
# ══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class Observation:
    """One canonical fuel-level measurement for one tank"""
    tank_id: str
    timestamp: datetime
    source: ReadingSource
    level_percent: Optional[float] = None
    level_litres: Optional[float] = None
    is_refill: bool = False
    device_online: Optional[bool] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tank_id": self.tank_id,
            "timestamp": self.timestamp.isoformat(),
            "source": self.source.value,
            "level_percent": _round(self.level_percent, 1),
            "level_litres": _round(self.level_litres, 1),
            "is_refill": self.is_refill,
            "device_online": self.device_online,
        }


@dataclass
class NormalizationResult:
    observations: List[Observation] = field(default_factory=list)
    rows_rejected: int = 0
    duplicates_dropped: int = 0


@dataclass(frozen=True)
class DepletionInterval:
    """Consumption between two consecutive observations of one depletion run"""
    start: datetime
    end: datetime
    rate_litres_per_day: float


@dataclass
class ConsumptionEstimate:
    """Output of the ConsumptionEstimator"""
    rolling_avg_litres_per_day: Optional[float] = None
    rate_24h_litres_per_day: Optional[float] = None
    rate_30d_litres_per_day: Optional[float] = None
    previous_period_consumption_litres: Optional[float] = None
    observation_count: int = 0
    window_coverage: float = 0.0
    confidence: Confidence = Confidence.LOW
    low_confidence: bool = True
    intervals: List[DepletionInterval] = field(default_factory=list)


@dataclass
class TrendResult:
    """Output of the TrendAnalyzer"""
    trend: Trend = Trend.STABLE
    consumption_pattern: ConsumptionPattern = ConsumptionPattern.REGULAR
    current_rate_litres_per_day: Optional[float] = None
    previous_rate_litres_per_day: Optional[float] = None
    rate_change_litres_per_day: Optional[float] = None
    coefficient_of_variation: Optional[float] = None
    low_confidence: bool = True

    @classmethod
    def insufficient(cls) -> "TrendResult":
        """Fallback used when there is not enough data to compare periods"""
        return cls()


@dataclass
class DepletionForecast:
    """Output of the DepletionPredictor"""
    current_level_litres: Optional[float] = None
    minimum_level_litres: Optional[float] = None
    days_to_minimum: Optional[float] = None
    estimated_depletion_date: Optional[date] = None
    days_to_empty: Optional[float] = None
    refill_volume_litres: Optional[float] = None
    recommended_order_date: Optional[date] = None


@dataclass
class RefillSummary:
    """Refill history derived from refill-flagged observations"""
    last_refill_at: Optional[datetime] = None
    refill_count: int = 0
    refill_frequency_days: Optional[float] = None
    predicted_next_refill_at: Optional[datetime] = None
    last_refill_volume_litres: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "last_refill_at": _iso(self.last_refill_at),
            "refill_count": self.refill_count,
            "refill_frequency_days": _round(self.refill_frequency_days, 1),
            "predicted_next_refill_at": _iso(self.predicted_next_refill_at),
            "last_refill_volume_litres": _round(self.last_refill_volume_litres, 0),
        }


# ══════════════════════════════════════════════════════════════════════════════
# OUTPUTS
# ══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class TankAnalytics:
    """
    Immutable per-tank analytics snapshot.

    Recomputed on every request from the observation window and discarded
    after use. Consumers read it through ``to_dict()``.
    """
    tank_id: str
    computed_at: datetime
    tenant_id: Optional[str] = None

    # Current state
    current_level_percent: Optional[float] = None
    current_level_litres: Optional[float] = None
    last_observation_at: Optional[datetime] = None

    # Consumption
    rolling_avg_consumption_litres_per_day: Optional[float] = None
    consumption_24h_litres_per_day: Optional[float] = None
    consumption_30d_litres_per_day: Optional[float] = None
    previous_period_consumption_litres: Optional[float] = None

    # Depletion
    days_to_minimum: Optional[float] = None
    estimated_depletion_date: Optional[date] = None
    days_to_empty: Optional[float] = None
    refill_volume_litres: Optional[float] = None
    recommended_order_date: Optional[date] = None

    # Classification
    trend: Trend = Trend.STABLE
    consumption_pattern: ConsumptionPattern = ConsumptionPattern.REGULAR
    rate_change_litres_per_day: Optional[float] = None
    freshness: Freshness = Freshness.UNKNOWN
    urgency: Urgency = Urgency.OK

    # Data quality
    confidence: Confidence = Confidence.LOW
    low_confidence: bool = True
    reliability_score: float = 0.0
    observation_count: int = 0
    rows_rejected: int = 0

    # Alerts
    unusual_consumption_alert: bool = False
    device_connectivity_alert: bool = False

    refills: RefillSummary = field(default_factory=RefillSummary)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return {
            "tank_id": self.tank_id,
            "tenant_id": self.tenant_id,
            "computed_at": self.computed_at.isoformat(),
            "current_level_percent": _round(self.current_level_percent, 1),
            "current_level_litres": _round(self.current_level_litres, 0),
            "last_observation_at": _iso(self.last_observation_at),
            "rolling_avg_consumption_litres_per_day": _round(
                self.rolling_avg_consumption_litres_per_day, 1
            ),
            "consumption_24h_litres_per_day": _round(self.consumption_24h_litres_per_day, 1),
            "consumption_30d_litres_per_day": _round(self.consumption_30d_litres_per_day, 1),
            "previous_period_consumption_litres": _round(
                self.previous_period_consumption_litres, 1
            ),
            "days_to_minimum": _round(self.days_to_minimum, 1),
            "estimated_depletion_date": _iso(self.estimated_depletion_date),
            "days_to_empty": _round(self.days_to_empty, 1),
            "refill_volume_litres": _round(self.refill_volume_litres, 0),
            "recommended_order_date": _iso(self.recommended_order_date),
            "trend": self.trend.value,
            "consumption_pattern": self.consumption_pattern.value,
            "rate_change_litres_per_day": _round(self.rate_change_litres_per_day, 1),
            "freshness": self.freshness.value,
            "urgency": self.urgency.value,
            "confidence": self.confidence.value,
            "low_confidence": self.low_confidence,
            "reliability_score": round(self.reliability_score, 1),
            "observation_count": self.observation_count,
            "rows_rejected": self.rows_rejected,
            "unusual_consumption_alert": self.unusual_consumption_alert,
            "device_connectivity_alert": self.device_connectivity_alert,
            "refills": self.refills.to_dict(),
        }


@dataclass
class UrgencySummary:
    """Count of tanks per urgency tier"""
    critical: int = 0
    urgent: int = 0
    warning: int = 0
    ok: int = 0

    @property
    def total(self) -> int:
        return self.critical + self.urgent + self.warning + self.ok

    def to_dict(self) -> Dict[str, int]:
        return {
            "critical": self.critical,
            "urgent": self.urgent,
            "warning": self.warning,
            "ok": self.ok,
            "total": self.total,
        }


@dataclass
class FleetAnalyticsReport:
    """Fleet-wide result: analytics sorted most urgent first"""
    generated_at: datetime
    tanks: List[TankAnalytics] = field(default_factory=list)
    summary: UrgencySummary = field(default_factory=UrgencySummary)
    failed_tanks: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "generated_at": self.generated_at.isoformat(),
            "summary": self.summary.to_dict(),
            "tanks": [t.to_dict() for t in self.tanks],
            "failed_tanks": dict(self.failed_tanks),
        }


# ══════════════════════════════════════════════════════════════════════════════
# HELPERS
# ══════════════════════════════════════════════════════════════════════════════


def _round(value: Optional[float], digits: int) -> Optional[float]:
    return round(value, digits) if value is not None else None


def _iso(value: Optional[Union[date, datetime]]) -> Optional[str]:
    return value.isoformat() if value is not None else None
