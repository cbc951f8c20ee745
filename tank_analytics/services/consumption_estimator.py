"""
Consumption Estimator Service

Estimates litres/day consumption from a canonical Observation sequence,
robust to refills and sensor noise.

Algorithm:
1. Split the sequence into depletion runs at every refill observation.
2. Inside each run, every pair of consecutive litre readings gives an
   interval rate ``(previous - current) / days``, clamped at zero.
3. Windowed averages are time-weighted: each interval contributes its rate
   weighted by how much of it overlaps the window.

Percent-only tanks with unknown capacity have no litre readings and get
``None`` rates rather than a percent/day figure.

Author: Tank Analytics Team
"""

from datetime import datetime, timedelta
from typing import List, Optional, Sequence

import structlog

from tank_analytics.models.analytics_models import (
    Confidence,
    ConsumptionEstimate,
    DepletionInterval,
    Observation,
)
from tank_analytics.timezone_utils import days_between, start_of_day

logger = structlog.get_logger(__name__)


class ConsumptionEstimator:
    """
    Rolling consumption rates over 7-day, 24-hour and 30-day windows.

    Example Usage:
        estimator = ConsumptionEstimator()
        estimate = estimator.estimate(observations, now)
        print(f"{estimate.rolling_avg_litres_per_day:.0f} L/day")
    """

    DEFAULT_CONFIG = {
        "rolling_window_days": 7,
        "short_window_hours": 24,
        "long_window_days": 30,
    }

    # (min observations, min window coverage)
    HIGH_CONFIDENCE = (7, 0.7)
    MEDIUM_CONFIDENCE = (5, 0.5)

    def __init__(
        self,
        rolling_window_days: Optional[float] = None,
        short_window_hours: Optional[float] = None,
        long_window_days: Optional[float] = None,
    ):
        self.rolling_window = timedelta(
            days=rolling_window_days or self.DEFAULT_CONFIG["rolling_window_days"]
        )
        self.short_window = timedelta(
            hours=short_window_hours or self.DEFAULT_CONFIG["short_window_hours"]
        )
        self.long_window = timedelta(
            days=long_window_days or self.DEFAULT_CONFIG["long_window_days"]
        )

    # ─────────────────────────────────────────────────────────────────────
    # Building blocks
    # ─────────────────────────────────────────────────────────────────────

    def depletion_runs(self, observations: Sequence[Observation]) -> List[List[Observation]]:
        """
        Partition observations into runs between refills.

        A run ends at the observation immediately before a refill; the refill
        observation opens the next run.
        """
        runs: List[List[Observation]] = []
        current: List[Observation] = []
        for observation in observations:
            if observation.is_refill and current:
                runs.append(current)
                current = []
            current.append(observation)
        if current:
            runs.append(current)
        return runs

    def interval_rates(self, observations: Sequence[Observation]) -> List[DepletionInterval]:
        """Per-interval consumption rates, never spanning a refill."""
        intervals = []
        for run in self.depletion_runs(observations):
            with_litres = [o for o in run if o.level_litres is not None]
            for previous, current in zip(with_litres, with_litres[1:]):
                days = days_between(previous.timestamp, current.timestamp)
                if days <= 0:
                    continue
                rate = (previous.level_litres - current.level_litres) / days
                intervals.append(
                    DepletionInterval(
                        start=previous.timestamp,
                        end=current.timestamp,
                        rate_litres_per_day=max(0.0, rate),
                    )
                )
        return intervals

    @staticmethod
    def _overlap_days(interval: DepletionInterval, start: datetime, end: datetime) -> float:
        return max(0.0, days_between(max(start, interval.start), min(end, interval.end)))

    def windowed_rate(
        self, intervals: Sequence[DepletionInterval], start: datetime, end: datetime
    ) -> Optional[float]:
        """Time-weighted mean rate over [start, end]; None without overlap."""
        weighted = 0.0
        covered = 0.0
        for interval in intervals:
            overlap = self._overlap_days(interval, start, end)
            if overlap > 0:
                weighted += interval.rate_litres_per_day * overlap
                covered += overlap
        if covered <= 0:
            return None
        return weighted / covered

    def consumption_between(
        self, intervals: Sequence[DepletionInterval], start: datetime, end: datetime
    ) -> Optional[float]:
        """Litres consumed within [start, end]; None without overlap."""
        total = 0.0
        overlapped = False
        for interval in intervals:
            overlap = self._overlap_days(interval, start, end)
            if overlap > 0:
                total += interval.rate_litres_per_day * overlap
                overlapped = True
        return total if overlapped else None

    def coverage(
        self, intervals: Sequence[DepletionInterval], start: datetime, end: datetime
    ) -> float:
        """Fraction of [start, end] covered by intervals (0-1)."""
        window_days = days_between(start, end)
        if window_days <= 0:
            return 0.0
        covered = sum(self._overlap_days(i, start, end) for i in intervals)
        return min(1.0, covered / window_days)

    # ─────────────────────────────────────────────────────────────────────
    # Estimate
    # ─────────────────────────────────────────────────────────────────────

    def estimate(self, observations: Sequence[Observation], now: datetime) -> ConsumptionEstimate:
        """
        Compute every consumption figure for one tank.

        Args:
            observations: Canonical observations (time-ordered) in the lookback window
            now: Reference time; nothing here reads the clock

        Returns:
            ConsumptionEstimate. With fewer than two litre readings in the
            7-day window the rolling average is 0.0 and ``low_confidence`` is set;
            with no litre readings at all every rate is None.
        """
        observations = [o for o in observations if o.timestamp <= now]
        with_litres = [o for o in observations if o.level_litres is not None]
        window_start = now - self.rolling_window
        in_window = [o for o in with_litres if o.timestamp >= window_start]

        if not with_litres:
            logger.debug(
                "No litre readings; consumption unknown",
                observations=len(observations),
            )
            return ConsumptionEstimate(observation_count=len(in_window))

        intervals = self.interval_rates(observations)

        rolling = self._window_figure(intervals, with_litres, window_start, now)
        rate_24h = self._window_figure(intervals, with_litres, now - self.short_window, now)
        rate_30d = self._window_figure(intervals, with_litres, now - self.long_window, now)

        today = start_of_day(now)
        previous_day = self.consumption_between(intervals, today - timedelta(days=1), today)

        coverage = self.coverage(intervals, window_start, now)
        confidence = self._confidence(len(in_window), coverage)

        estimate = ConsumptionEstimate(
            rolling_avg_litres_per_day=rolling,
            rate_24h_litres_per_day=rate_24h,
            rate_30d_litres_per_day=rate_30d,
            previous_period_consumption_litres=previous_day,
            observation_count=len(in_window),
            window_coverage=coverage,
            confidence=confidence,
            low_confidence=len(in_window) < 2,
            intervals=intervals,
        )

        logger.debug(
            "Consumption estimated",
            rolling_avg=round(rolling, 2),
            intervals=len(intervals),
            observations_in_window=len(in_window),
            confidence=confidence.value,
        )
        return estimate

    def _window_figure(
        self,
        intervals: Sequence[DepletionInterval],
        with_litres: Sequence[Observation],
        start: datetime,
        end: datetime,
    ) -> float:
        points = sum(1 for o in with_litres if start <= o.timestamp <= end)
        if points < 2:
            return 0.0
        rate = self.windowed_rate(intervals, start, end)
        return rate if rate is not None else 0.0

    def _confidence(self, points: int, coverage: float) -> Confidence:
        if points >= self.HIGH_CONFIDENCE[0] and coverage >= self.HIGH_CONFIDENCE[1]:
            return Confidence.HIGH
        if points >= self.MEDIUM_CONFIDENCE[0] and coverage >= self.MEDIUM_CONFIDENCE[1]:
            return Confidence.MEDIUM
        return Confidence.LOW
