"""
Tests for StalenessClassifier
"""

from datetime import timedelta

import pytest

from tank_analytics.models import Freshness, Observation, ReadingSource, TankConfig
from tank_analytics.services import StalenessClassifier
from tests.fixtures.tank_fixtures import NOW

SIX_HOURS = timedelta(hours=6)


def _obs(hours_ago, source=ReadingSource.TELEMETRY, online=None):
    return Observation(
        tank_id="TK-001",
        timestamp=NOW - timedelta(hours=hours_ago),
        source=source,
        level_litres=5000,
        device_online=online,
    )


class TestClassify:
    """Pure freshness table"""

    @pytest.mark.parametrize(
        "age_hours,expected",
        [
            (0, Freshness.FRESH),
            (6, Freshness.FRESH),
            (6.1, Freshness.STALE),
            (18, Freshness.STALE),
            (18.5, Freshness.VERY_STALE),
            (42, Freshness.VERY_STALE),
            (42.5, Freshness.CRITICAL),
            (240, Freshness.CRITICAL),
        ],
    )
    def test_age_boundaries(self, age_hours, expected):
        """Multiples of a 6-hour telemetry cadence"""
        result = StalenessClassifier().classify(
            now=NOW,
            last_timestamp=NOW - timedelta(hours=age_hours),
            source=ReadingSource.TELEMETRY,
            expected_interval=SIX_HOURS,
        )
        assert result == expected

    def test_offline_device_is_critical(self):
        """Explicit offline report wins even for a fresh reading"""
        result = StalenessClassifier().classify(
            NOW, NOW, ReadingSource.TELEMETRY, SIX_HOURS, device_online=False
        )
        assert result == Freshness.CRITICAL

    def test_no_observation_is_unknown(self):
        assert (
            StalenessClassifier().classify(NOW, None, None, SIX_HOURS) == Freshness.UNKNOWN
        )

    def test_unconfigured_interval_is_unknown(self):
        result = StalenessClassifier().classify(
            NOW, NOW - timedelta(days=30), ReadingSource.TELEMETRY, None
        )
        assert result == Freshness.UNKNOWN

    def test_future_timestamp_is_fresh(self):
        result = StalenessClassifier().classify(
            NOW, NOW + timedelta(hours=1), ReadingSource.TELEMETRY, SIX_HOURS
        )
        assert result == Freshness.FRESH

    def test_deterministic(self):
        classifier = StalenessClassifier()
        args = (NOW, NOW - timedelta(hours=20), ReadingSource.TELEMETRY, SIX_HOURS)
        assert {classifier.classify(*args) for _ in range(10)} == {Freshness.VERY_STALE}


class TestClassifyTank:
    """Classification from a tank's observation list"""

    def test_ten_day_old_telemetry_is_critical(self, standard_tank):
        freshness = StalenessClassifier().classify_tank(standard_tank, [_obs(240)], NOW)
        assert freshness == Freshness.CRITICAL

    def test_manual_dip_uses_weekly_cadence(self, standard_tank):
        """Two-day-old dip is fresh; same age telemetry would be very stale"""
        dip = _obs(48, source=ReadingSource.MANUAL_DIP)
        assert StalenessClassifier().classify_tank(standard_tank, [dip], NOW) == Freshness.FRESH

    def test_uses_latest_observation(self, standard_tank):
        observations = [_obs(240), _obs(1)]
        assert (
            StalenessClassifier().classify_tank(standard_tank, observations, NOW)
            == Freshness.FRESH
        )

    def test_empty_is_unknown(self, standard_tank):
        assert StalenessClassifier().classify_tank(standard_tank, [], NOW) == Freshness.UNKNOWN

    def test_tank_interval_overrides_default(self):
        tank = TankConfig(
            tank_id="TK-SLOW",
            capacity_litres=5000,
            expected_interval_hours={"telemetry": 48},
        )
        freshness = StalenessClassifier().classify_tank(tank, [_obs(30)], NOW)
        assert freshness == Freshness.FRESH

    def test_custom_default_intervals(self, standard_tank):
        classifier = StalenessClassifier(expected_interval_hours={ReadingSource.TELEMETRY: 1})
        assert classifier.classify_tank(standard_tank, [_obs(2)], NOW) == Freshness.STALE

    def test_source_without_interval_is_unknown(self, standard_tank):
        classifier = StalenessClassifier(expected_interval_hours={ReadingSource.TELEMETRY: 6})
        dip = _obs(1, source=ReadingSource.MANUAL_DIP)
        assert classifier.classify_tank(standard_tank, [dip], NOW) == Freshness.UNKNOWN


class TestReliabilityScore:
    """0-100 data reliability score"""

    def test_regular_online_reporting_scores_100(self, standard_tank):
        observations = [_obs(h) for h in (24, 18, 12, 6, 0)]
        assert StalenessClassifier().reliability_score(standard_tank, observations) == 100.0

    def test_offline_share_reduces_score(self, standard_tank):
        observations = [_obs(18), _obs(12, online=False), _obs(6), _obs(0)]
        assert StalenessClassifier().reliability_score(
            standard_tank, observations
        ) == pytest.approx(75.0)

    def test_long_gap_penalized(self, standard_tank):
        """24 h gap on 6 h cadence costs 24/6 - 1 = 3 points"""
        observations = [_obs(30), _obs(6), _obs(0)]
        assert StalenessClassifier().reliability_score(
            standard_tank, observations
        ) == pytest.approx(97.0)

    def test_gap_penalty_capped(self, standard_tank):
        observations = [_obs(600), _obs(0)]
        assert StalenessClassifier().reliability_score(
            standard_tank, observations
        ) == pytest.approx(90.0)

    def test_gaps_measured_per_source(self, standard_tank):
        """A weekly dip between telemetry readings is not a telemetry gap"""
        observations = [
            _obs(12),
            _obs(9, source=ReadingSource.MANUAL_DIP),
            _obs(6),
            _obs(0),
        ]
        assert StalenessClassifier().reliability_score(standard_tank, observations) == 100.0

    def test_floored_at_zero(self, standard_tank):
        observations = [_obs(h, online=False) for h in (600, 300, 0)]
        assert StalenessClassifier().reliability_score(standard_tank, observations) == 0.0

    def test_no_observations_scores_zero(self, standard_tank):
        assert StalenessClassifier().reliability_score(standard_tank, []) == 0.0
