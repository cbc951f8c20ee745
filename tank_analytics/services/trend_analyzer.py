"""
Trend Analyzer Service

Classifies period-over-period consumption direction and labels the
consumption pattern as regular or variable.

Author: Tank Analytics Team
"""

from datetime import datetime, timedelta
from typing import Optional, Sequence

import numpy as np
import structlog

from tank_analytics.models.analytics_models import (
    ConsumptionPattern,
    DepletionInterval,
    Trend,
    TrendResult,
)
from tank_analytics.services.consumption_estimator import ConsumptionEstimator

logger = structlog.get_logger(__name__)


class TrendAnalyzer:
    """
    Compares the last N periods against the N periods before them.

    ``increasing`` when current > previous x (1 + epsilon), ``decreasing`` when
    current < previous x (1 - epsilon), otherwise ``stable``. The pattern is
    ``variable`` when the coefficient of variation of interval rates exceeds
    the threshold.

    Example Usage:
        analyzer = TrendAnalyzer()
        result = analyzer.analyze(estimate.intervals, now)
        # result.trend = Trend.INCREASING, result.rate_change_litres_per_day = 120.0
    """

    DEFAULT_CONFIG = {
        "epsilon": 0.05,
        "period_hours": 24,
        "periods": 3,
        "variability_cv_threshold": 0.5,
    }

    def __init__(
        self,
        epsilon: Optional[float] = None,
        period_hours: Optional[float] = None,
        periods: Optional[int] = None,
        variability_cv_threshold: Optional[float] = None,
        estimator: Optional[ConsumptionEstimator] = None,
    ):
        self.epsilon = epsilon if epsilon is not None else self.DEFAULT_CONFIG["epsilon"]
        self.period = timedelta(hours=period_hours or self.DEFAULT_CONFIG["period_hours"])
        self.periods = periods or self.DEFAULT_CONFIG["periods"]
        self.variability_cv_threshold = (
            variability_cv_threshold
            if variability_cv_threshold is not None
            else self.DEFAULT_CONFIG["variability_cv_threshold"]
        )
        self.estimator = estimator or ConsumptionEstimator()

    def analyze(
        self,
        intervals: Sequence[DepletionInterval],
        now: datetime,
        window_start: Optional[datetime] = None,
    ) -> TrendResult:
        """
        Args:
            intervals: Depletion intervals from the ConsumptionEstimator
            now: Reference time
            window_start: Start of the lookback window for the pattern label
                (all intervals when None)

        Returns:
            TrendResult. Trend is ``stable`` with ``low_confidence`` when either
            sub-period has no data.
        """
        span = self.period * self.periods
        current = self.estimator.windowed_rate(intervals, now - span, now)
        previous = self.estimator.windowed_rate(intervals, now - 2 * span, now - span)

        pattern, cv = self.classify_pattern(intervals, window_start, now)

        if current is None or previous is None:
            return TrendResult(
                trend=Trend.STABLE,
                consumption_pattern=pattern,
                current_rate_litres_per_day=current,
                previous_rate_litres_per_day=previous,
                coefficient_of_variation=cv,
                low_confidence=True,
            )

        trend = self.classify_trend(current, previous)
        logger.debug(
            "Trend analyzed",
            current_rate=round(current, 2),
            previous_rate=round(previous, 2),
            trend=trend.value,
            pattern=pattern.value,
        )
        return TrendResult(
            trend=trend,
            consumption_pattern=pattern,
            current_rate_litres_per_day=current,
            previous_rate_litres_per_day=previous,
            rate_change_litres_per_day=current - previous,
            coefficient_of_variation=cv,
            low_confidence=False,
        )

    def classify_trend(self, current: float, previous: float) -> Trend:
        """
        Examples:
            >>> TrendAnalyzer().classify_trend(110.0, 100.0)
            <Trend.INCREASING: 'increasing'>
            >>> TrendAnalyzer().classify_trend(103.0, 100.0)
            <Trend.STABLE: 'stable'>
        """
        if current > previous * (1 + self.epsilon):
            return Trend.INCREASING
        if current < previous * (1 - self.epsilon):
            return Trend.DECREASING
        return Trend.STABLE

    def classify_pattern(
        self,
        intervals: Sequence[DepletionInterval],
        window_start: Optional[datetime],
        now: datetime,
    ):
        """Return (pattern, coefficient of variation or None)."""
        rates = np.array(
            [
                i.rate_litres_per_day
                for i in intervals
                if i.start < now and (window_start is None or i.end > window_start)
            ],
            dtype=float,
        )
        if rates.size < 2:
            return ConsumptionPattern.REGULAR, None

        mean = float(np.mean(rates))
        if mean <= 0:
            return ConsumptionPattern.REGULAR, None

        cv = float(np.std(rates)) / mean
        if cv > self.variability_cv_threshold:
            return ConsumptionPattern.VARIABLE, cv
        return ConsumptionPattern.REGULAR, cv
