"""
Reading Normalizer Service

Turns heterogeneous raw reading rows (telemetry percentages, manual dip
litres, third-party gauge feeds, delivery records) into one canonical,
time-ordered Observation sequence per tank.

v1.0.0 Features:
- Vendor source aliases (agbot, smartfill, dip, ...)
- Litres <-> percent conversion when capacity is known
- Duplicate (source, timestamp) rows collapse to the last ingested write
- Refill detection with a configurable noise tolerance
- Malformed rows are dropped and counted, never raised

Author: Tank Analytics Team
"""

import math
from dataclasses import replace
from datetime import datetime
from typing import Any, Iterable, List, Mapping, Optional, Tuple, Union

import structlog

from tank_analytics.models.analytics_models import (
    NormalizationResult,
    Observation,
    RawReading,
    ReadingSource,
    TankConfig,
)
from tank_analytics.timezone_utils import UTC, parse_timestamp

logger = structlog.get_logger(__name__)

RawRow = Union[RawReading, Mapping[str, Any]]

_SOURCE_ORDER = {source: index for index, source in enumerate(ReadingSource)}
_NEVER = datetime.min.replace(tzinfo=UTC)


class ReadingNormalizer:
    """
    Canonicalizes raw rows for one tank.

    Example Usage:
        normalizer = ReadingNormalizer()
        result = normalizer.normalize(tank, rows)
        for obs in result.observations:
            print(obs.timestamp, obs.level_litres, obs.is_refill)
    """

    DEFAULT_CONFIG = {
        "refill_noise_tolerance_pct": 2.0,  # % of capacity (or percent points)
    }

    def __init__(self, refill_noise_tolerance_pct: Optional[float] = None):
        """
        Args:
            refill_noise_tolerance_pct: Level rise (as % of capacity) above which
                an observation is treated as a refill (default 2.0)
        """
        self.refill_noise_tolerance_pct = (
            refill_noise_tolerance_pct
            if refill_noise_tolerance_pct is not None
            else self.DEFAULT_CONFIG["refill_noise_tolerance_pct"]
        )

    def normalize(self, tank: TankConfig, rows: Iterable[RawRow]) -> NormalizationResult:
        """
        Build the canonical Observation sequence for ``tank``.

        Args:
            tank: Tank configuration (capacity drives unit conversion)
            rows: Raw reading rows, as RawReading objects or plain dicts

        Returns:
            NormalizationResult with time-ordered observations and the number
            of rejected and duplicate rows
        """
        result = NormalizationResult()
        parsed: List[Tuple[Observation, datetime, int]] = []

        for position, row in enumerate(rows or []):
            if isinstance(row, RawReading):
                reading = row
            elif isinstance(row, Mapping):
                reading = RawReading.from_dict(row)
            else:
                logger.warning(
                    "Dropping reading of unsupported type",
                    tank_id=tank.tank_id,
                    row_type=type(row).__name__,
                )
                result.rows_rejected += 1
                continue

            observation = self._to_observation(tank, reading)
            if observation is None:
                result.rows_rejected += 1
                continue
            ingested_at = parse_timestamp(reading.ingested_at) or _NEVER
            parsed.append((observation, ingested_at, position))

        # Last-ingested wins per (source, timestamp)
        latest = {}
        for observation, ingested_at, position in parsed:
            key = (observation.source, observation.timestamp)
            current = latest.get(key)
            if current is None or (ingested_at, position) >= (current[1], current[2]):
                latest[key] = (observation, ingested_at, position)
        result.duplicates_dropped = len(parsed) - len(latest)

        ordered = sorted(
            (entry[0] for entry in latest.values()),
            key=lambda o: (o.timestamp, _SOURCE_ORDER[o.source]),
        )
        result.observations = self._flag_refills(tank, ordered)

        logger.debug(
            "Readings normalized",
            tank_id=tank.tank_id,
            observations=len(result.observations),
            rows_rejected=result.rows_rejected,
            duplicates_dropped=result.duplicates_dropped,
        )
        return result

    def _to_observation(self, tank: TankConfig, reading: RawReading) -> Optional[Observation]:
        """Parse one row; None (with a warning) if it is unusable."""
        if reading.tank_id is not None and str(reading.tank_id) != tank.tank_id:
            logger.warning(
                "Dropping reading for another tank",
                tank_id=tank.tank_id,
                row_tank_id=reading.tank_id,
            )
            return None

        timestamp = parse_timestamp(reading.timestamp)
        if timestamp is None:
            logger.warning(
                "Dropping reading with unparseable timestamp",
                tank_id=tank.tank_id,
                timestamp=str(reading.timestamp),
            )
            return None

        try:
            source = ReadingSource.parse(reading.source)
        except ValueError:
            logger.warning(
                "Dropping reading with unknown source",
                tank_id=tank.tank_id,
                source=str(reading.source),
            )
            return None

        percent = _as_float(reading.level_percent)
        litres = _as_float(reading.level_litres)
        if percent is None and litres is None:
            logger.warning(
                "Dropping reading without a usable level",
                tank_id=tank.tank_id,
                timestamp=timestamp.isoformat(),
            )
            return None
        if (percent is not None and not 0 <= percent <= 100) or (
            litres is not None and litres < 0
        ):
            logger.warning(
                "Dropping reading with out-of-range level",
                tank_id=tank.tank_id,
                level_percent=percent,
                level_litres=litres,
            )
            return None

        capacity = tank.capacity_litres
        if litres is None and capacity is not None:
            litres = percent / 100 * capacity
        elif percent is None and capacity is not None:
            percent = min(100.0, litres / capacity * 100)

        return Observation(
            tank_id=tank.tank_id,
            timestamp=timestamp,
            source=source,
            level_percent=percent,
            level_litres=litres,
            is_refill=_as_bool(reading.is_refill) or False,
            device_online=_as_bool(reading.device_online),
        )

    def _flag_refills(
        self, tank: TankConfig, observations: List[Observation]
    ) -> List[Observation]:
        """
        Mark observations whose level rose beyond the noise tolerance.

        Levels only fall while a tank is consumed, so any net rise larger than
        sensor noise means fuel was delivered in between.
        """
        flagged = []
        previous: Optional[Observation] = None
        for observation in observations:
            if not observation.is_refill and previous is not None:
                if self._rise_exceeds_tolerance(tank, previous, observation):
                    observation = replace(observation, is_refill=True)
            flagged.append(observation)
            previous = observation
        return flagged

    def _rise_exceeds_tolerance(
        self, tank: TankConfig, previous: Observation, current: Observation
    ) -> bool:
        if (
            previous.level_litres is not None
            and current.level_litres is not None
            and tank.capacity_litres is not None
        ):
            tolerance = self.refill_noise_tolerance_pct / 100 * tank.capacity_litres
            return current.level_litres - previous.level_litres > tolerance

        if previous.level_percent is not None and current.level_percent is not None:
            return current.level_percent - previous.level_percent > self.refill_noise_tolerance_pct

        # Litres-only without capacity: no scale to judge noise against
        return False


def _as_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


_TRUE_STRINGS = {"true", "1", "yes", "y", "t"}
_FALSE_STRINGS = {"false", "0", "no", "n", "f"}


def _as_bool(value: Any) -> Optional[bool]:
    """Flag from a bool, 0/1 number or CSV/JSON string; None when unrecognised."""
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        if value in (0, 1):
            return bool(value)
        return None
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
    return None
