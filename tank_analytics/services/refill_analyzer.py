"""
Refill Analyzer Service

Summarizes delivery history from refill-flagged observations: when the last
refill happened, how often refills occur, when the next one is due and how
much the last one delivered.
"""

from datetime import timedelta
from typing import Optional, Sequence

import numpy as np
import structlog

from tank_analytics.models.analytics_models import Observation, RefillSummary

logger = structlog.get_logger(__name__)


class RefillAnalyzer:
    """Refill pattern analysis over one tank's observation window."""

    def summarize(self, observations: Sequence[Observation]) -> RefillSummary:
        refill_indexes = [i for i, o in enumerate(observations) if o.is_refill]
        if not refill_indexes:
            return RefillSummary()

        refills = [observations[i] for i in refill_indexes]
        last_index = refill_indexes[-1]
        last = observations[last_index]

        frequency_days = None
        predicted_next = None
        if len(refills) >= 2:
            gaps = np.diff([r.timestamp.timestamp() for r in refills]) / 86400.0
            frequency_days = float(np.mean(gaps))
            predicted_next = last.timestamp + timedelta(days=frequency_days)

        summary = RefillSummary(
            last_refill_at=last.timestamp,
            refill_count=len(refills),
            refill_frequency_days=frequency_days,
            predicted_next_refill_at=predicted_next,
            last_refill_volume_litres=self._delivered_volume(observations, last_index),
        )

        logger.debug(
            "Refill pattern analyzed",
            refill_count=summary.refill_count,
            frequency_days=frequency_days,
        )
        return summary

    @staticmethod
    def _delivered_volume(observations: Sequence[Observation], index: int) -> Optional[float]:
        """Rise in litres from the reading before the refill, if both are known."""
        refill = observations[index]
        if refill.level_litres is None:
            return None
        for previous in reversed(observations[:index]):
            if previous.level_litres is not None:
                rise = refill.level_litres - previous.level_litres
                return rise if rise > 0 else None
        return None
