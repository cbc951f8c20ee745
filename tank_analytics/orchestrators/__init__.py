"""Orchestrator layer for coordinating the analytics services."""

from .tank_analytics_orchestrator import OrchestratorConfig, TankAnalyticsOrchestrator

__all__ = [
    "OrchestratorConfig",
    "TankAnalyticsOrchestrator",
]
