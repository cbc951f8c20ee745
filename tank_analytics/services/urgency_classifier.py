"""
Urgency Classifier Service

Combines fill percentage, days-to-minimum and freshness into the single
urgency tier shared by dashboards, map markers and alert emails.

v1.0.0 Features:
- First-match-wins tier table (critical > urgent > warning > ok)
- Per-tenant fill threshold overrides merged before classification
- Fleet sorting (most urgent first, then lowest fill)
- Urgency summary counts

Author: Tank Analytics Team
"""

from typing import Iterable, List, Optional

import structlog

from tank_analytics.models.analytics_models import (
    Freshness,
    TankAnalytics,
    ThresholdOverrides,
    Urgency,
    UrgencySummary,
    UrgencyThresholds,
)

logger = structlog.get_logger(__name__)


class UrgencyClassifier:
    """
    Deterministic urgency tier table.

    Rules, evaluated in order:
        critical  freshness critical, days <= critical_days, or fill < critical_fill_pct
        urgent    fill < urgent_fill_pct or days <= urgent_days
        warning   fill < warning_fill_pct or days <= warning_days
        ok        otherwise

    A missing fill percent or days value simply never matches its rule.

    Example Usage:
        classifier = UrgencyClassifier()
        urgency = classifier.classify(
            fill_percent=50.0,
            days_to_minimum=2.0,
            freshness=Freshness.FRESH,
        )
        # urgency = Urgency.CRITICAL
    """

    def __init__(self, thresholds: Optional[UrgencyThresholds] = None):
        """
        Args:
            thresholds: System-default thresholds (15/20/30 % and 3/5/7 days)
        """
        self.thresholds = thresholds or UrgencyThresholds()

    def resolve_thresholds(
        self, overrides: Optional[ThresholdOverrides] = None
    ) -> UrgencyThresholds:
        """System defaults with any tenant overrides applied."""
        return self.thresholds.with_overrides(overrides)

    def classify(
        self,
        fill_percent: Optional[float],
        days_to_minimum: Optional[float],
        freshness: Freshness,
        overrides: Optional[ThresholdOverrides] = None,
    ) -> Urgency:
        """
        Classify one tank.

        Args:
            fill_percent: Current fill (0-100), None if unknown
            days_to_minimum: Days until minimum level, None if not depleting
            freshness: Freshness of the latest observation
            overrides: Tenant threshold overrides

        Returns:
            Urgency tier

        Examples:
            >>> classifier = UrgencyClassifier()
            >>> classifier.classify(50.0, 2.0, Freshness.FRESH)
            <Urgency.CRITICAL: 'critical'>
            >>> classifier.classify(25.0, None, Freshness.FRESH)
            <Urgency.WARNING: 'warning'>
        """
        t = self.resolve_thresholds(overrides)

        def fill_below(threshold: float) -> bool:
            return fill_percent is not None and fill_percent < threshold

        def days_within(threshold: float) -> bool:
            return days_to_minimum is not None and days_to_minimum <= threshold

        if (
            freshness == Freshness.CRITICAL
            or days_within(t.critical_days)
            or fill_below(t.critical_fill_pct)
        ):
            return Urgency.CRITICAL
        if fill_below(t.urgent_fill_pct) or days_within(t.urgent_days):
            return Urgency.URGENT
        if fill_below(t.warning_fill_pct) or days_within(t.warning_days):
            return Urgency.WARNING
        return Urgency.OK

    @staticmethod
    def sort_key(analytics: TankAnalytics):
        """Most urgent first, then lowest fill (unknown fill last), then id."""
        fill = analytics.current_level_percent
        return (
            -analytics.urgency.rank,
            fill if fill is not None else float("inf"),
            analytics.tank_id,
        )

    def sort_by_urgency(self, analytics: Iterable[TankAnalytics]) -> List[TankAnalytics]:
        return sorted(analytics, key=self.sort_key)

    def summarize(self, analytics: Iterable[TankAnalytics]) -> UrgencySummary:
        """Count tanks per urgency tier."""
        summary = UrgencySummary()
        for item in analytics:
            if item.urgency == Urgency.CRITICAL:
                summary.critical += 1
            elif item.urgency == Urgency.URGENT:
                summary.urgent += 1
            elif item.urgency == Urgency.WARNING:
                summary.warning += 1
            else:
                summary.ok += 1

        logger.debug("Urgency summary calculated", **summary.to_dict())
        return summary
