"""
Configuration helper for the Service Layer Architecture

Builds services and the orchestrator from Settings, and loads per-tenant
threshold overrides from YAML.

Usage:
    from tank_analytics.config_helper import setup_architecture

    services, orchestrator, overrides = setup_architecture()
    report = orchestrator.analyze_fleet(tanks, rows_by_tank, now, overrides)
"""

from pathlib import Path
from typing import Any, Dict, Optional, Union

import structlog
import yaml

from tank_analytics.models.analytics_models import (
    InvalidThresholdOverridesError,
    ThresholdOverrides,
    UrgencyThresholds,
)
from tank_analytics.settings import Settings, get_settings

logger = structlog.get_logger(__name__)


def load_tenant_overrides(
    path: Optional[Union[str, Path]],
    thresholds: Optional[UrgencyThresholds] = None,
) -> Dict[str, ThresholdOverrides]:
    """
    Load per-tenant urgency threshold overrides from a YAML file.

    Expected shape:
        tenants:
          acme:
            critical_fill_pct: 10
            warning_fill_pct: 25

    A missing or unreadable file yields no overrides. A tenant entry with
    invalid values is skipped; the remaining tenants still load.

    Args:
        path: YAML file path, or None
        thresholds: System thresholds each tenant is merged onto. A tenant
            whose merged fill thresholds are out of order is skipped

    Returns:
        Dict of tenant_id -> ThresholdOverrides
    """
    if not path:
        return {}

    file_path = Path(path)
    try:
        with file_path.open("r", encoding="utf-8") as handle:
            document = yaml.safe_load(handle) or {}
    except FileNotFoundError:
        logger.warning("Tenant overrides file not found", path=str(file_path))
        return {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Tenant overrides file unreadable", path=str(file_path), error=str(e))
        return {}

    tenants = document.get("tenants") if isinstance(document, dict) else None
    if not isinstance(tenants, dict):
        logger.warning("Tenant overrides file has no 'tenants' mapping", path=str(file_path))
        return {}

    overrides = {}
    for tenant_id, values in tenants.items():
        if not isinstance(values, dict):
            logger.warning("Skipping malformed tenant overrides", tenant_id=str(tenant_id))
            continue
        try:
            tenant_overrides = ThresholdOverrides.from_dict(values)
            if thresholds is not None:
                thresholds.with_overrides(tenant_overrides)
            overrides[str(tenant_id)] = tenant_overrides
        except (InvalidThresholdOverridesError, TypeError) as e:
            logger.warning(
                "Skipping invalid tenant overrides",
                tenant_id=str(tenant_id),
                error=str(e),
            )

    logger.info("Tenant overrides loaded", path=str(file_path), tenants=len(overrides))
    return overrides


def create_services(settings: Optional[Settings] = None) -> Dict[str, Any]:
    """
    Create all service instances configured from settings.

    Args:
        settings: Optional Settings. If None, uses get_settings()

    Returns:
        Dict with service instances:
        {
            'normalizer': ReadingNormalizer,
            'staleness': StalenessClassifier,
            'consumption': ConsumptionEstimator,
            'trend': TrendAnalyzer,
            'depletion': DepletionPredictor,
            'urgency': UrgencyClassifier,
            'refill': RefillAnalyzer,
        }
    """
    from tank_analytics.services import (
        ConsumptionEstimator,
        DepletionPredictor,
        ReadingNormalizer,
        RefillAnalyzer,
        StalenessClassifier,
        TrendAnalyzer,
        UrgencyClassifier,
    )

    settings = settings or get_settings()
    analytics = settings.analytics

    consumption = ConsumptionEstimator(
        rolling_window_days=analytics.rolling_window_days,
        short_window_hours=analytics.short_window_hours,
        long_window_days=analytics.long_window_days,
    )

    return {
        "normalizer": ReadingNormalizer(
            refill_noise_tolerance_pct=analytics.refill_noise_tolerance_pct,
        ),
        "staleness": StalenessClassifier(
            expected_interval_hours=settings.staleness.interval_hours(),
        ),
        "consumption": consumption,
        "trend": TrendAnalyzer(
            epsilon=analytics.trend_epsilon,
            period_hours=analytics.trend_period_hours,
            periods=analytics.trend_periods,
            variability_cv_threshold=analytics.variability_cv_threshold,
            estimator=consumption,
        ),
        "depletion": DepletionPredictor(
            delivery_lead_days=analytics.delivery_lead_days,
        ),
        "urgency": UrgencyClassifier(thresholds=settings.urgency.to_thresholds()),
        "refill": RefillAnalyzer(),
    }


def create_orchestrator(services: Dict[str, Any], settings: Optional[Settings] = None):
    """
    Create TankAnalyticsOrchestrator with all dependencies.

    Args:
        services: Dict from create_services()
        settings: Optional Settings. If None, uses get_settings()

    Returns:
        TankAnalyticsOrchestrator instance
    """
    from tank_analytics.orchestrators import OrchestratorConfig, TankAnalyticsOrchestrator

    settings = settings or get_settings()

    config = OrchestratorConfig(
        lookback_days=settings.analytics.lookback_days,
        max_workers=settings.fleet.max_workers,
        unusual_consumption_ratio=settings.analytics.unusual_consumption_ratio,
        min_reliability_score=settings.analytics.min_reliability_score,
    )

    return TankAnalyticsOrchestrator(
        normalizer=services["normalizer"],
        staleness_classifier=services["staleness"],
        consumption_estimator=services["consumption"],
        trend_analyzer=services["trend"],
        depletion_predictor=services["depletion"],
        urgency_classifier=services["urgency"],
        refill_analyzer=services["refill"],
        config=config,
    )


# Quick setup function for convenience
def setup_architecture(settings: Optional[Settings] = None):
    """
    One-liner to set up the entire architecture.

    Returns:
        Tuple of (services, orchestrator, tenant_overrides)

    Example:
        services, orchestrator, overrides = setup_architecture()
        report = orchestrator.analyze_fleet(tanks, rows_by_tank, now, overrides)
    """
    settings = settings or get_settings()
    for warning in settings.validate():
        logger.warning("Settings check", detail=warning)

    services = create_services(settings)
    orchestrator = create_orchestrator(services, settings)
    overrides = load_tenant_overrides(
        settings.fleet.tenant_overrides_file, settings.urgency.to_thresholds()
    )

    return services, orchestrator, overrides
