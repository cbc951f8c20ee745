"""
╔═══════════════════════════════════════════════════════════════════════════════╗
║                    PYDANTIC BOUNDARY MODELS                                    ║
║                    Input Validation Before The Analytics Core                  ║
╚═══════════════════════════════════════════════════════════════════════════════╝

Request-side models used by callers (handlers, scheduled jobs, CSV imports)
to reject bad configuration and malformed rows before they reach the engine.
Each model converts to its domain dataclass with ``to_domain()``.
"""

from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .analytics_models import (
    RawReading,
    ReadingSource,
    TankConfig,
    ThresholdOverrides,
)


# ═══════════════════════════════════════════════════════════════════════════════
# CONFIGURATION MODELS
# ═══════════════════════════════════════════════════════════════════════════════


class TankConfigIn(BaseModel):
    """Validate tank capacity and threshold configuration"""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "tank_id": "TK-0042",
                "capacity_litres": 10000,
                "safe_fill_litres": 9000,
                "minimum_level_litres": 2000,
                "tenant_id": "acme",
            }
        }
    )

    tank_id: str = Field(..., min_length=1, max_length=64)
    capacity_litres: Optional[float] = Field(default=None, gt=0)
    safe_fill_litres: Optional[float] = Field(default=None, ge=0)
    minimum_level_litres: Optional[float] = Field(default=None, ge=0)
    safe_fill_percent: Optional[float] = Field(default=None, ge=0, le=100)
    minimum_level_percent: Optional[float] = Field(default=None, ge=0, le=100)
    tenant_id: Optional[str] = None
    expected_interval_hours: Dict[ReadingSource, float] = Field(default_factory=dict)

    @field_validator("expected_interval_hours", mode="before")
    @classmethod
    def parse_source_keys(cls, v):
        if not v:
            return {}
        if not isinstance(v, dict):
            return v
        return {ReadingSource.parse(source): hours for source, hours in v.items()}

    @field_validator("expected_interval_hours")
    @classmethod
    def intervals_positive(cls, v):
        for source, hours in v.items():
            if hours <= 0:
                raise ValueError(f"expected interval for {source.value} must be positive")
        return v

    @model_validator(mode="after")
    def thresholds_consistent(self):
        capacity = self.capacity_litres
        for name in ("safe_fill_litres", "minimum_level_litres"):
            value = getattr(self, name)
            if value is not None and capacity is not None and value > capacity:
                raise ValueError(f"{name} exceeds capacity_litres")

        minimum = self.minimum_level_litres
        if minimum is None and self.minimum_level_percent is not None and capacity:
            minimum = self.minimum_level_percent / 100 * capacity
        safe = self.safe_fill_litres
        if safe is None and self.safe_fill_percent is not None and capacity:
            safe = self.safe_fill_percent / 100 * capacity
        if minimum is not None and safe is not None and minimum > safe:
            raise ValueError("minimum level exceeds safe fill level")
        return self

    def to_domain(self) -> TankConfig:
        return TankConfig(**self.model_dump())


class ThresholdOverridesIn(BaseModel):
    """Validate per-tenant urgency threshold overrides"""

    model_config = ConfigDict(
        json_schema_extra={"example": {"critical_fill_pct": 10, "warning_fill_pct": 25}}
    )

    critical_fill_pct: Optional[float] = Field(default=None, ge=0, le=100)
    urgent_fill_pct: Optional[float] = Field(default=None, ge=0, le=100)
    warning_fill_pct: Optional[float] = Field(default=None, ge=0, le=100)

    @model_validator(mode="after")
    def thresholds_ordered(self):
        ordered = [
            (name, getattr(self, name))
            for name in ("critical_fill_pct", "urgent_fill_pct", "warning_fill_pct")
            if getattr(self, name) is not None
        ]
        for (low_name, low), (high_name, high) in zip(ordered, ordered[1:]):
            if low > high:
                raise ValueError(f"{low_name} cannot exceed {high_name}")
        return self

    def to_domain(self) -> ThresholdOverrides:
        return ThresholdOverrides(**self.model_dump())


# ═══════════════════════════════════════════════════════════════════════════════
# READING MODELS
# ═══════════════════════════════════════════════════════════════════════════════


class RawReadingIn(BaseModel):
    """Validate one raw reading row at the ingestion boundary"""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "timestamp": "2025-03-01T06:00:00Z",
                "source": "telemetry",
                "level_percent": 62.5,
            }
        }
    )

    timestamp: datetime
    source: ReadingSource
    level_percent: Optional[float] = Field(default=None, ge=0, le=100)
    level_litres: Optional[float] = Field(default=None, ge=0)
    tank_id: Optional[str] = None
    is_refill: bool = False
    device_online: Optional[bool] = None
    ingested_at: Optional[datetime] = None

    @field_validator("source", mode="before")
    @classmethod
    def resolve_source_alias(cls, v):
        return ReadingSource.parse(v)

    @model_validator(mode="after")
    def has_a_level(self):
        if self.level_percent is None and self.level_litres is None:
            raise ValueError("reading must carry level_percent or level_litres")
        return self

    def to_domain(self) -> RawReading:
        return RawReading(**self.model_dump())
