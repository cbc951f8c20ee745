"""
Staleness Classifier Service

Decides how fresh a tank's latest observation is relative to the expected
reporting cadence of its source, and scores how reliably the tank has been
reporting over the analysis window.

Author: Tank Analytics Team
"""

from datetime import datetime, timedelta
from typing import Dict, Optional, Sequence

import structlog

from tank_analytics.models.analytics_models import (
    Freshness,
    Observation,
    ReadingSource,
    TankConfig,
)

logger = structlog.get_logger(__name__)


class StalenessClassifier:
    """
    Freshness state machine over the age of the most recent observation.

        age <= 1x interval  -> fresh
        age <= 3x interval  -> stale
        age <= 7x interval  -> very_stale
        beyond that         -> critical (also when the device reports offline)
        no data / interval  -> unknown

    Example Usage:
        classifier = StalenessClassifier()
        freshness = classifier.classify(
            now=now,
            last_timestamp=obs.timestamp,
            source=ReadingSource.TELEMETRY,
            expected_interval=timedelta(hours=6),
        )
    """

    DEFAULT_INTERVAL_HOURS = {
        ReadingSource.TELEMETRY: 6.0,
        ReadingSource.THIRD_PARTY_GAUGE: 24.0,
        ReadingSource.MANUAL_DIP: 168.0,
    }

    STALE_MULTIPLIER = 1
    VERY_STALE_MULTIPLIER = 3
    CRITICAL_MULTIPLIER = 7

    # Reliability scoring
    GAP_MULTIPLIER = 2  # gaps longer than 2x the cadence are penalized
    MAX_GAP_PENALTY = 10.0

    def __init__(self, expected_interval_hours: Optional[Dict[ReadingSource, float]] = None):
        """
        Args:
            expected_interval_hours: Default cadence per source, in hours.
                Tank-level intervals take priority over these.
        """
        self.expected_interval_hours = dict(
            expected_interval_hours or self.DEFAULT_INTERVAL_HOURS
        )

    def expected_interval(
        self, source: ReadingSource, tank: Optional[TankConfig] = None
    ) -> Optional[timedelta]:
        """Cadence for ``source``: tank override first, then defaults."""
        hours = None
        if tank is not None:
            hours = tank.expected_interval_hours.get(source)
        if hours is None:
            hours = self.expected_interval_hours.get(source)
        if hours is None or hours <= 0:
            return None
        return timedelta(hours=hours)

    def classify(
        self,
        now: datetime,
        last_timestamp: Optional[datetime],
        source: Optional[ReadingSource],
        expected_interval: Optional[timedelta],
        device_online: Optional[bool] = None,
    ) -> Freshness:
        """
        Pure freshness classification.

        Examples:
            >>> now = datetime(2025, 3, 10, tzinfo=timezone.utc)
            >>> StalenessClassifier().classify(
            ...     now, now - timedelta(days=10), ReadingSource.TELEMETRY, timedelta(hours=6)
            ... )
            <Freshness.CRITICAL: 'critical'>
        """
        if last_timestamp is None or source is None:
            return Freshness.UNKNOWN
        if device_online is False:
            return Freshness.CRITICAL
        if expected_interval is None or expected_interval <= timedelta(0):
            return Freshness.UNKNOWN

        age = now - last_timestamp
        if age <= expected_interval * self.STALE_MULTIPLIER:
            return Freshness.FRESH
        if age <= expected_interval * self.VERY_STALE_MULTIPLIER:
            return Freshness.STALE
        if age <= expected_interval * self.CRITICAL_MULTIPLIER:
            return Freshness.VERY_STALE
        return Freshness.CRITICAL

    def classify_tank(
        self, tank: TankConfig, observations: Sequence[Observation], now: datetime
    ) -> Freshness:
        """Classify a tank from its latest observation."""
        if not observations:
            return Freshness.UNKNOWN

        last = observations[-1]
        freshness = self.classify(
            now=now,
            last_timestamp=last.timestamp,
            source=last.source,
            expected_interval=self.expected_interval(last.source, tank),
            device_online=last.device_online,
        )
        logger.debug(
            "Freshness classified",
            tank_id=tank.tank_id,
            source=last.source.value,
            age_hours=round((now - last.timestamp).total_seconds() / 3600, 1),
            freshness=freshness.value,
        )
        return freshness

    def reliability_score(
        self, tank: TankConfig, observations: Sequence[Observation]
    ) -> float:
        """
        Data reliability score (0-100).

        Percent of observations whose device was online, minus a penalty of
        ``min(10, gap / interval - 1)`` for every same-source gap longer than
        twice the expected interval. Zero observations score 0.
        """
        if not observations:
            return 0.0

        online = sum(1 for o in observations if o.device_online is not False)
        score = online / len(observations) * 100

        last_seen: Dict[ReadingSource, datetime] = {}
        penalty = 0.0
        for observation in observations:
            previous = last_seen.get(observation.source)
            last_seen[observation.source] = observation.timestamp
            if previous is None:
                continue
            interval = self.expected_interval(observation.source, tank)
            if interval is None:
                continue
            gap = observation.timestamp - previous
            if gap > interval * self.GAP_MULTIPLIER:
                penalty += min(self.MAX_GAP_PENALTY, gap / interval - 1)

        return max(0.0, min(100.0, score - penalty))
