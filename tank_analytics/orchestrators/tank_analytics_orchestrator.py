"""
╔═══════════════════════════════════════════════════════════════════════════════╗
║                    TANK ANALYTICS ORCHESTRATOR v1.0.0                          ║
║                                                                                ║
║       Thin orchestration layer over the consumption analytics services        ║
║                                                                                ║
╠═══════════════════════════════════════════════════════════════════════════════╣
║  PIPELINE (per tank):                                                          ║
║  ReadingNormalizer -> StalenessClassifier + ConsumptionEstimator               ║
║  -> TrendAnalyzer -> DepletionPredictor -> UrgencyClassifier                   ║
║                                                                                ║
║  FLEET: independent per-tank runs in a thread pool, sorted most urgent first  ║
╚═══════════════════════════════════════════════════════════════════════════════╝

Every computation is a pure function of (tank config, raw rows, overrides,
now). Nothing reads the clock and nothing is cached here; callers cache the
returned snapshots if they need to.

Author: Tank Analytics Team
Version: 1.0.0
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

import structlog

from tank_analytics.models.analytics_models import (
    FleetAnalyticsReport,
    Observation,
    TankAnalytics,
    TankConfig,
    ThresholdOverrides,
    TrendResult,
)
from tank_analytics.services.consumption_estimator import ConsumptionEstimator
from tank_analytics.services.depletion_predictor import DepletionPredictor
from tank_analytics.services.reading_normalizer import RawRow, ReadingNormalizer
from tank_analytics.services.refill_analyzer import RefillAnalyzer
from tank_analytics.services.staleness_classifier import StalenessClassifier
from tank_analytics.services.trend_analyzer import TrendAnalyzer
from tank_analytics.services.urgency_classifier import UrgencyClassifier
from tank_analytics.structured_logging import log_execution
from tank_analytics.timezone_utils import ensure_aware

logger = structlog.get_logger(__name__)


@dataclass
class OrchestratorConfig:
    """Configuration for TankAnalyticsOrchestrator."""

    lookback_days: int = 90
    max_workers: int = 8
    unusual_consumption_ratio: float = 1.5
    min_reliability_score: float = 80.0


class TankAnalyticsOrchestrator:
    """
    Combines the analytics services into one TankAnalytics record per tank.

    Services:
    - ReadingNormalizer: raw rows -> canonical observations
    - StalenessClassifier: freshness and reliability score
    - ConsumptionEstimator: rolling consumption rates
    - TrendAnalyzer: trend and consumption pattern
    - DepletionPredictor: days to minimum and order planning
    - UrgencyClassifier: urgency tier, fleet sorting and summary
    - RefillAnalyzer: refill history

    Example Usage:
        orchestrator = TankAnalyticsOrchestrator()
        analytics = orchestrator.analyze_tank(tank, rows, now)
        report = orchestrator.analyze_fleet(tanks, rows_by_tank, now)
    """

    VERSION = "1.0.0"

    def __init__(
        self,
        normalizer: Optional[ReadingNormalizer] = None,
        staleness_classifier: Optional[StalenessClassifier] = None,
        consumption_estimator: Optional[ConsumptionEstimator] = None,
        trend_analyzer: Optional[TrendAnalyzer] = None,
        depletion_predictor: Optional[DepletionPredictor] = None,
        urgency_classifier: Optional[UrgencyClassifier] = None,
        refill_analyzer: Optional[RefillAnalyzer] = None,
        config: Optional[OrchestratorConfig] = None,
    ):
        """
        Initialize the orchestrator with its services.

        Every service is optional and created with defaults when None, so
        tests can inject only the pieces they care about.
        """
        self.config = config or OrchestratorConfig()

        self.normalizer = normalizer or ReadingNormalizer()
        self.staleness_classifier = staleness_classifier or StalenessClassifier()
        self.consumption_estimator = consumption_estimator or ConsumptionEstimator()
        self.trend_analyzer = trend_analyzer or TrendAnalyzer(
            estimator=self.consumption_estimator
        )
        self.depletion_predictor = depletion_predictor or DepletionPredictor()
        self.urgency_classifier = urgency_classifier or UrgencyClassifier()
        self.refill_analyzer = refill_analyzer or RefillAnalyzer()

        logger.debug("TankAnalyticsOrchestrator initialized", version=self.VERSION)

    # ─────────────────────────────────────────────────────────────────────
    # Single tank
    # ─────────────────────────────────────────────────────────────────────

    def analyze_tank(
        self,
        tank: TankConfig,
        rows: Optional[Iterable[RawRow]],
        now: datetime,
        overrides: Optional[ThresholdOverrides] = None,
    ) -> TankAnalytics:
        """
        Compute the analytics snapshot for one tank.

        Args:
            tank: Validated tank configuration
            rows: Raw reading rows for this tank (any order, duplicates allowed)
            now: Reference time (naive values are treated as UTC)
            overrides: Tenant urgency threshold overrides

        Returns:
            Immutable TankAnalytics. Sparse or empty data degrades to
            unknown/None fields instead of raising.
        """
        now = ensure_aware(now)
        normalized = self.normalizer.normalize(tank, rows or [])

        past = [o for o in normalized.observations if o.timestamp <= now]
        lookback_start = now - timedelta(days=self.config.lookback_days)
        window = [o for o in past if o.timestamp >= lookback_start]
        latest = past[-1] if past else None

        estimate = self.consumption_estimator.estimate(window, now)
        if estimate.low_confidence:
            trend = TrendResult.insufficient()
        else:
            trend = self.trend_analyzer.analyze(estimate.intervals, now, lookback_start)

        current_litres = latest.level_litres if latest else None
        current_percent = latest.level_percent if latest else None

        forecast = self.depletion_predictor.predict_for_tank(
            tank, current_litres, estimate.rolling_avg_litres_per_day, now
        )
        freshness = self.staleness_classifier.classify_tank(tank, past, now)
        reliability = self.staleness_classifier.reliability_score(tank, window)
        urgency = self.urgency_classifier.classify(
            fill_percent=current_percent,
            days_to_minimum=forecast.days_to_minimum,
            freshness=freshness,
            overrides=overrides,
        )

        analytics = TankAnalytics(
            tank_id=tank.tank_id,
            tenant_id=tank.tenant_id,
            computed_at=now,
            current_level_percent=current_percent,
            current_level_litres=current_litres,
            last_observation_at=latest.timestamp if latest else None,
            rolling_avg_consumption_litres_per_day=estimate.rolling_avg_litres_per_day,
            consumption_24h_litres_per_day=estimate.rate_24h_litres_per_day,
            consumption_30d_litres_per_day=estimate.rate_30d_litres_per_day,
            previous_period_consumption_litres=estimate.previous_period_consumption_litres,
            days_to_minimum=forecast.days_to_minimum,
            estimated_depletion_date=forecast.estimated_depletion_date,
            days_to_empty=forecast.days_to_empty,
            refill_volume_litres=forecast.refill_volume_litres,
            recommended_order_date=forecast.recommended_order_date,
            trend=trend.trend,
            consumption_pattern=trend.consumption_pattern,
            rate_change_litres_per_day=trend.rate_change_litres_per_day,
            freshness=freshness,
            urgency=urgency,
            confidence=estimate.confidence,
            low_confidence=estimate.low_confidence,
            reliability_score=reliability,
            observation_count=len(window),
            rows_rejected=normalized.rows_rejected,
            unusual_consumption_alert=self._unusual_consumption(
                estimate.rolling_avg_litres_per_day, estimate.rate_30d_litres_per_day
            ),
            device_connectivity_alert=bool(window)
            and reliability < self.config.min_reliability_score,
            refills=self.refill_analyzer.summarize(window),
        )

        logger.debug(
            "Tank analyzed",
            tank_id=tank.tank_id,
            urgency=urgency.value,
            freshness=freshness.value,
            days_to_minimum=forecast.days_to_minimum,
            observations=len(window),
        )
        return analytics

    def _unusual_consumption(
        self, rate_7d: Optional[float], rate_30d: Optional[float]
    ) -> bool:
        if rate_7d is None or rate_30d is None or rate_30d <= 0:
            return False
        return rate_7d > self.config.unusual_consumption_ratio * rate_30d

    # ─────────────────────────────────────────────────────────────────────
    # Fleet
    # ─────────────────────────────────────────────────────────────────────

    @log_execution(logger=logger, level="debug")
    def analyze_fleet(
        self,
        tanks: Sequence[TankConfig],
        readings_by_tank: Mapping[str, Iterable[RawRow]],
        now: datetime,
        overrides_by_tenant: Optional[Mapping[str, ThresholdOverrides]] = None,
    ) -> FleetAnalyticsReport:
        """
        Analyze every tank independently and build the fleet report.

        Args:
            tanks: Tank configurations
            readings_by_tank: Raw rows keyed by tank_id (missing = no data)
            now: Reference time shared by every tank
            overrides_by_tenant: Threshold overrides keyed by tenant_id

        Returns:
            FleetAnalyticsReport sorted most urgent first. A tank that fails
            unexpectedly is logged and listed in ``failed_tanks``; the rest of
            the fleet is still returned.
        """
        now = ensure_aware(now)
        overrides_by_tenant = overrides_by_tenant or {}
        results: List[TankAnalytics] = []
        failed: Dict[str, str] = {}

        workers = max(1, min(self.config.max_workers, len(tanks) or 1))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {
                tank.tank_id: executor.submit(
                    self.analyze_tank,
                    tank,
                    readings_by_tank.get(tank.tank_id, []),
                    now,
                    overrides_by_tenant.get(tank.tenant_id) if tank.tenant_id else None,
                )
                for tank in tanks
            }
            for tank_id, future in futures.items():
                try:
                    results.append(future.result())
                except Exception as e:
                    logger.error(
                        "Tank analytics failed",
                        tank_id=tank_id,
                        error=str(e),
                        exc_info=True,
                    )
                    failed[tank_id] = str(e)

        ordered = self.urgency_classifier.sort_by_urgency(results)
        summary = self.urgency_classifier.summarize(ordered)

        logger.info(
            "Fleet analytics complete",
            tanks=len(tanks),
            analyzed=len(ordered),
            failed=len(failed),
            critical=summary.critical,
            urgent=summary.urgent,
            warning=summary.warning,
        )
        return FleetAnalyticsReport(
            generated_at=now,
            tanks=ordered,
            summary=summary,
            failed_tanks=failed,
        )
