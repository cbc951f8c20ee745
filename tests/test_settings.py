"""
Tests for Settings Module
Centralized configuration tests
"""

import os
from unittest.mock import patch

from tank_analytics.models import ReadingSource, UrgencyThresholds


class TestAnalyticsSettings:
    """Analytics windows and sensitivities"""

    def test_default_values(self):
        from tank_analytics.settings import AnalyticsSettings

        settings = AnalyticsSettings()
        assert settings.lookback_days == 90
        assert settings.rolling_window_days == 7
        assert settings.short_window_hours == 24
        assert settings.long_window_days == 30
        assert settings.refill_noise_tolerance_pct == 2.0
        assert settings.trend_epsilon == 0.05
        assert settings.delivery_lead_days == 4.0
        assert settings.unusual_consumption_ratio == 1.5
        assert settings.min_reliability_score == 80.0

    def test_env_override(self):
        from tank_analytics.settings import AnalyticsSettings

        with patch.dict(
            os.environ,
            {"ANALYTICS_ROLLING_WINDOW_DAYS": "14", "ANALYTICS_TREND_EPSILON": "0.1"},
        ):
            settings = AnalyticsSettings()
            assert settings.rolling_window_days == 14
            assert settings.trend_epsilon == 0.1


class TestUrgencySettings:
    """System-default urgency thresholds"""

    def test_defaults_match_thresholds(self):
        from tank_analytics.settings import UrgencySettings

        assert UrgencySettings().to_thresholds() == UrgencyThresholds()

    def test_env_override(self):
        from tank_analytics.settings import UrgencySettings

        with patch.dict(os.environ, {"URGENCY_CRITICAL_FILL_PCT": "10"}):
            assert UrgencySettings().to_thresholds().critical_fill_pct == 10.0


class TestStalenessSettings:
    """Reporting cadence"""

    def test_interval_hours(self):
        from tank_analytics.settings import StalenessSettings

        assert StalenessSettings().interval_hours() == {
            ReadingSource.TELEMETRY: 6.0,
            ReadingSource.THIRD_PARTY_GAUGE: 24.0,
            ReadingSource.MANUAL_DIP: 168.0,
        }


class TestFleetSettings:
    """Fleet run settings"""

    def test_defaults(self):
        from tank_analytics.settings import FleetSettings

        settings = FleetSettings()
        assert settings.max_workers == 8
        assert settings.tenant_overrides_file is None

    def test_overrides_file_from_env(self):
        from tank_analytics.settings import FleetSettings

        with patch.dict(os.environ, {"TENANT_OVERRIDES_FILE": "/etc/tanks/tenants.yaml"}):
            assert FleetSettings().tenant_overrides_file == "/etc/tanks/tenants.yaml"


class TestAppSettings:
    """General app settings"""

    def test_debug_flag(self):
        from tank_analytics.settings import AppSettings

        with patch.dict(os.environ, {"DEBUG": "true"}):
            assert AppSettings().debug is True
        with patch.dict(os.environ, {"DEBUG": "no"}):
            assert AppSettings().debug is False


class TestSettingsSingleton:
    """Global settings container"""

    def test_singleton(self):
        from tank_analytics.settings import get_settings

        assert get_settings() is get_settings()

    def test_reload_rereads_environment(self):
        from tank_analytics.settings import get_settings, reload_settings

        first = get_settings()
        with patch.dict(os.environ, {"FLEET_MAX_WORKERS": "2"}):
            reloaded = reload_settings()

        assert reloaded is not first
        assert reloaded.fleet.max_workers == 2

    def test_defaults_validate_cleanly(self):
        from tank_analytics.settings import get_settings

        assert get_settings().validate() == []

    def test_validate_warnings(self, tmp_path):
        from tank_analytics.settings import reload_settings

        env = {
            "URGENCY_CRITICAL_FILL_PCT": "40",
            "ANALYTICS_ROLLING_WINDOW_DAYS": "120",
            "FLEET_MAX_WORKERS": "0",
            "TENANT_OVERRIDES_FILE": str(tmp_path / "missing.yaml"),
        }
        with patch.dict(os.environ, env):
            warnings = reload_settings().validate()

        assert len(warnings) == 4
        assert any("missing.yaml" in w for w in warnings)

    def test_to_dict(self):
        from tank_analytics.settings import get_settings

        data = get_settings().to_dict()
        assert data["version"] == "1.0.0"
        assert data["critical_fill_pct"] == 15.0
