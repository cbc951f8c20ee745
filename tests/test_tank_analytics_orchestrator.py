"""
Tests for TankAnalyticsOrchestrator

End-to-end scenarios over the full pipeline: raw rows in, TankAnalytics out.
"""

import json
import random
from datetime import date, timedelta

import pytest

from tank_analytics.models import (
    Freshness,
    TankConfig,
    ThresholdOverrides,
    Trend,
    Urgency,
)
from tank_analytics.orchestrators import OrchestratorConfig, TankAnalyticsOrchestrator
from tank_analytics.services import ReadingNormalizer
from tests.fixtures.tank_fixtures import NOW, make_rows


@pytest.fixture
def orchestrator():
    return TankAnalyticsOrchestrator()


def _tank(tank_id, tenant_id=None):
    return TankConfig(
        tank_id=tank_id,
        capacity_litres=10000,
        safe_fill_litres=9000,
        minimum_level_litres=2000,
        tenant_id=tenant_id,
    )


class TestAnalyzeTank:
    """Single-tank scenarios"""

    def test_linear_depletion(self, orchestrator, standard_tank, linear_depletion_rows):
        """8,000 -> 6,000 L over 4 days: 500 L/day, 8 days to 2,000 L"""
        analytics = orchestrator.analyze_tank(standard_tank, linear_depletion_rows, NOW)

        assert analytics.rolling_avg_consumption_litres_per_day == pytest.approx(500.0)
        assert analytics.days_to_minimum == pytest.approx(8.0)
        assert analytics.estimated_depletion_date == date(2025, 3, 18)
        assert analytics.current_level_litres == pytest.approx(6000)
        assert analytics.current_level_percent == pytest.approx(60.0)
        assert analytics.freshness == Freshness.FRESH
        assert analytics.urgency == Urgency.OK
        assert analytics.refill_volume_litres == pytest.approx(3000)
        assert analytics.recommended_order_date == date(2025, 3, 14)
        assert analytics.observation_count == 5
        assert analytics.low_confidence is False

    def test_refill_excluded_from_rate(self, orchestrator, standard_tank, refill_rows):
        analytics = orchestrator.analyze_tank(standard_tank, refill_rows, NOW)

        assert analytics.rolling_avg_consumption_litres_per_day == pytest.approx(500.0)
        assert analytics.days_to_minimum == pytest.approx(12.0)
        assert analytics.refills.refill_count == 1
        assert analytics.refills.last_refill_at == NOW - timedelta(days=2)
        assert analytics.refills.last_refill_volume_litres == pytest.approx(8000)

    def test_stale_telemetry_is_critical(self, orchestrator, standard_tank, stale_telemetry_rows):
        """10-day-old telemetry at 60% fill"""
        analytics = orchestrator.analyze_tank(standard_tank, stale_telemetry_rows, NOW)

        assert analytics.freshness == Freshness.CRITICAL
        assert analytics.urgency == Urgency.CRITICAL
        assert analytics.current_level_percent == pytest.approx(60.0)
        assert analytics.low_confidence is True

    def test_fast_depletion_is_critical(self, orchestrator, standard_tank):
        """1,500 L/day from 5,000 L reaches 2,000 L in 2 days"""
        rows = make_rows([8000, 6500, 5000])
        analytics = orchestrator.analyze_tank(standard_tank, rows, NOW)

        assert analytics.days_to_minimum == pytest.approx(2.0)
        assert analytics.urgency == Urgency.CRITICAL

    def test_no_rows(self, orchestrator, standard_tank):
        """Missing data propagates as None, never as zero"""
        analytics = orchestrator.analyze_tank(standard_tank, [], NOW)

        assert analytics.current_level_litres is None
        assert analytics.current_level_percent is None
        assert analytics.last_observation_at is None
        assert analytics.rolling_avg_consumption_litres_per_day is None
        assert analytics.days_to_minimum is None
        assert analytics.estimated_depletion_date is None
        assert analytics.freshness == Freshness.UNKNOWN
        assert analytics.urgency == Urgency.OK
        assert analytics.trend == Trend.STABLE
        assert analytics.low_confidence is True
        assert analytics.reliability_score == 0.0
        assert analytics.device_connectivity_alert is False
        assert analytics.observation_count == 0

    def test_none_rows(self, orchestrator, standard_tank):
        analytics = orchestrator.analyze_tank(standard_tank, None, NOW)
        assert analytics.freshness == Freshness.UNKNOWN

    def test_percent_only_tank(self, orchestrator, percent_only_tank):
        rows = make_rows([60, 55], unit="percent")
        analytics = orchestrator.analyze_tank(percent_only_tank, rows, NOW)

        assert analytics.current_level_percent == pytest.approx(55.0)
        assert analytics.current_level_litres is None
        assert analytics.rolling_avg_consumption_litres_per_day is None
        assert analytics.days_to_minimum is None
        assert analytics.freshness == Freshness.FRESH
        assert analytics.urgency == Urgency.OK

    def test_rejected_rows_counted(self, orchestrator, standard_tank, linear_depletion_rows):
        rows = linear_depletion_rows + [
            {"timestamp": "not a date", "source": "telemetry", "level_litres": 5000},
            {"timestamp": NOW, "source": "carrier-pigeon", "level_litres": 5000},
        ]
        analytics = orchestrator.analyze_tank(standard_tank, rows, NOW)

        assert analytics.rows_rejected == 2
        assert analytics.rolling_avg_consumption_litres_per_day == pytest.approx(500.0)

    def test_future_rows_ignored(self, orchestrator, standard_tank, linear_depletion_rows):
        rows = linear_depletion_rows + make_rows([100], end=NOW + timedelta(days=1))
        analytics = orchestrator.analyze_tank(standard_tank, rows, NOW)

        assert analytics.current_level_litres == pytest.approx(6000)

    def test_naive_now_treated_as_utc(self, orchestrator, standard_tank, linear_depletion_rows):
        aware = orchestrator.analyze_tank(standard_tank, linear_depletion_rows, NOW)
        naive = orchestrator.analyze_tank(
            standard_tank, linear_depletion_rows, NOW.replace(tzinfo=None)
        )
        assert naive == aware

    def test_tenant_overrides(self, orchestrator, standard_tank):
        rows = make_rows([1200])
        default = orchestrator.analyze_tank(standard_tank, rows, NOW)
        relaxed = orchestrator.analyze_tank(
            standard_tank, rows, NOW, ThresholdOverrides(critical_fill_pct=10)
        )

        assert default.urgency == Urgency.CRITICAL
        assert relaxed.urgency == Urgency.URGENT

    def test_string_false_refill_flag(self, orchestrator, standard_tank):
        rows = make_rows([8000, 7500, 7000])
        rows[1]["is_refill"] = "false"
        analytics = orchestrator.analyze_tank(standard_tank, rows, NOW)

        assert analytics.refills.refill_count == 0
        assert analytics.rolling_avg_consumption_litres_per_day == pytest.approx(500.0)

    def test_string_offline_device_is_critical(self, orchestrator, standard_tank):
        rows = make_rows([5000], end=NOW - timedelta(hours=1), device_online="false")
        analytics = orchestrator.analyze_tank(standard_tank, rows, NOW)

        assert analytics.freshness == Freshness.CRITICAL


class TestDeterminism:
    """Same inputs, same snapshot"""

    def test_repeatable(self, orchestrator, standard_tank, refill_rows):
        first = orchestrator.analyze_tank(standard_tank, refill_rows, NOW)
        second = orchestrator.analyze_tank(standard_tank, refill_rows, NOW)
        assert first == second

    def test_row_order_irrelevant(self, orchestrator, standard_tank, refill_rows):
        shuffled = list(refill_rows)
        random.Random(7).shuffle(shuffled)

        assert orchestrator.analyze_tank(standard_tank, shuffled, NOW) == orchestrator.analyze_tank(
            standard_tank, refill_rows, NOW
        )

    def test_duplicate_rows_irrelevant(self, orchestrator, standard_tank, linear_depletion_rows):
        doubled = linear_depletion_rows + [dict(r) for r in linear_depletion_rows]

        assert orchestrator.analyze_tank(standard_tank, doubled, NOW) == orchestrator.analyze_tank(
            standard_tank, linear_depletion_rows, NOW
        )


class TestAlerts:
    """Consumption and connectivity alerts"""

    def test_unusual_consumption(self, orchestrator, standard_tank):
        """A week at 300 L/day after a month at 100 L/day"""
        levels = [9000 - 100 * i for i in range(31)] + [6000 - 300 * (j + 1) for j in range(7)]
        analytics = orchestrator.analyze_tank(standard_tank, make_rows(levels), NOW)

        assert analytics.rolling_avg_consumption_litres_per_day == pytest.approx(300.0)
        assert analytics.consumption_30d_litres_per_day == pytest.approx(4400 / 30)
        assert analytics.unusual_consumption_alert is True

    def test_steady_consumption_no_alert(self, orchestrator, standard_tank, linear_depletion_rows):
        analytics = orchestrator.analyze_tank(standard_tank, linear_depletion_rows, NOW)
        assert analytics.unusual_consumption_alert is False

    def test_connectivity_alert(self, orchestrator, standard_tank):
        rows = make_rows([8000, 7500, 7000], device_online=False)
        analytics = orchestrator.analyze_tank(standard_tank, rows, NOW)

        assert analytics.device_connectivity_alert is True
        assert analytics.freshness == Freshness.CRITICAL

    def test_healthy_device_no_alert(self, orchestrator, standard_tank, linear_depletion_rows):
        analytics = orchestrator.analyze_tank(standard_tank, linear_depletion_rows, NOW)

        assert analytics.reliability_score == pytest.approx(88.0)
        assert analytics.device_connectivity_alert is False


class _FailingNormalizer(ReadingNormalizer):
    def normalize(self, tank, rows):
        if tank.tank_id == "TK-BAD":
            raise RuntimeError("corrupt reading store")
        return super().normalize(tank, rows)


class TestAnalyzeFleet:
    """Fleet report"""

    @pytest.fixture
    def fleet(self):
        tanks = [_tank("TK-001", "acme"), _tank("TK-002", "acme"), _tank("TK-003")]
        readings = {
            "TK-001": make_rows([8000, 7500, 7000, 6500, 6000]),
            "TK-002": make_rows([8000, 6500, 5000]),
        }
        return tanks, readings

    def test_sorted_most_urgent_first(self, orchestrator, fleet):
        tanks, readings = fleet
        report = orchestrator.analyze_fleet(tanks, readings, NOW)

        assert [t.tank_id for t in report.tanks] == ["TK-002", "TK-001", "TK-003"]
        assert report.tanks[0].urgency == Urgency.CRITICAL

    def test_summary(self, orchestrator, fleet):
        tanks, readings = fleet
        report = orchestrator.analyze_fleet(tanks, readings, NOW)

        assert report.summary.critical == 1
        assert report.summary.ok == 2
        assert report.summary.total == 3
        assert report.failed_tanks == {}

    def test_matches_single_tank_analysis(self, orchestrator, fleet):
        tanks, readings = fleet
        report = orchestrator.analyze_fleet(tanks, readings, NOW)
        by_id = {t.tank_id: t for t in report.tanks}

        assert by_id["TK-001"] == orchestrator.analyze_tank(tanks[0], readings["TK-001"], NOW)

    def test_failure_isolated(self, fleet):
        tanks, readings = fleet
        orchestrator = TankAnalyticsOrchestrator(normalizer=_FailingNormalizer())
        report = orchestrator.analyze_fleet(tanks + [_tank("TK-BAD")], readings, NOW)

        assert set(report.failed_tanks) == {"TK-BAD"}
        assert "corrupt reading store" in report.failed_tanks["TK-BAD"]
        assert len(report.tanks) == 3

    def test_tenant_overrides_applied(self, orchestrator):
        tanks = [_tank("TK-A", "acme"), _tank("TK-B", "other")]
        readings = {"TK-A": make_rows([1200]), "TK-B": make_rows([1200])}
        report = orchestrator.analyze_fleet(
            tanks, readings, NOW, {"acme": ThresholdOverrides(critical_fill_pct=10)}
        )
        by_id = {t.tank_id: t for t in report.tanks}

        assert by_id["TK-A"].urgency == Urgency.URGENT
        assert by_id["TK-B"].urgency == Urgency.CRITICAL

    def test_empty_fleet(self, orchestrator):
        report = orchestrator.analyze_fleet([], {}, NOW)

        assert report.tanks == []
        assert report.summary.total == 0

    def test_single_worker(self, fleet):
        tanks, readings = fleet
        orchestrator = TankAnalyticsOrchestrator(config=OrchestratorConfig(max_workers=1))
        report = orchestrator.analyze_fleet(tanks, readings, NOW)

        assert [t.tank_id for t in report.tanks] == ["TK-002", "TK-001", "TK-003"]

    def test_report_serializes_to_json(self, orchestrator, fleet):
        tanks, readings = fleet
        data = orchestrator.analyze_fleet(tanks, readings, NOW).to_dict()
        decoded = json.loads(json.dumps(data))

        assert decoded["summary"]["total"] == 3
        assert decoded["tanks"][0]["tank_id"] == "TK-002"
        assert decoded["tanks"][0]["urgency"] == "critical"
        assert decoded["tanks"][1]["estimated_depletion_date"] == "2025-03-18"
        assert decoded["tanks"][2]["days_to_minimum"] is None
