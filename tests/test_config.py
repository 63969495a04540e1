"""
Tests for settings and logging setup.
"""

import json
import pytest
import structlog
from zoneinfo import ZoneInfo
import sys
import os

# Add parent directory to path to import modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from nscg_schedule import config
from nscg_schedule.config import ScheduleSettings, get_settings
from nscg_schedule.logging import get_logger, setup_logging


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch, tmp_path):
    # Keep a developer's .env and NSCG_ variables out of the tests
    monkeypatch.chdir(tmp_path)
    for key in list(os.environ):
        if key.startswith("NSCG_"):
            monkeypatch.delenv(key)
    monkeypatch.setattr(config, "_settings", None)


class TestSettings:
    """Test environment driven settings."""

    def test_defaults(self):
        """Test the defaults used by the watch surfaces."""
        settings = ScheduleSettings()

        assert settings.horizon_days == 14
        assert settings.grace_minutes == 6
        assert settings.timeline_window_days == 2
        assert settings.zone == ZoneInfo("Europe/London")

    def test_environment_override(self, monkeypatch):
        """Test NSCG_ variables override the defaults."""
        monkeypatch.setenv("NSCG_HORIZON_DAYS", "7")
        monkeypatch.setenv("NSCG_TIMEZONE", "Europe/Paris")

        settings = ScheduleSettings()

        assert settings.horizon_days == 7
        assert settings.zone == ZoneInfo("Europe/Paris")

    def test_invalid_horizon(self):
        """Test a non-positive horizon raises a validation error."""
        with pytest.raises(ValueError, match="day counts must be greater than 0"):
            ScheduleSettings(horizon_days=0)

    def test_negative_grace(self):
        """Test a negative grace period raises a validation error."""
        with pytest.raises(ValueError, match="grace_minutes cannot be negative"):
            ScheduleSettings(grace_minutes=-1)

    def test_unknown_timezone(self):
        """Test an unknown zone name raises a validation error."""
        with pytest.raises(ValueError, match="unknown time zone"):
            ScheduleSettings(timezone="Mars/Olympus_Mons")

    def test_singleton(self):
        """Test get_settings returns the same instance."""
        assert get_settings() is get_settings()


class TestLogging:
    """Test structlog configuration."""

    @pytest.fixture(autouse=True)
    def reset_structlog(self):
        yield
        structlog.reset_defaults()

    def test_json_output(self, capsys):
        """Test JSON lines carry the event name, level and context."""
        setup_logging(json_output=True, log_level="DEBUG")

        get_logger("tests").info("timetable_saved", days=3)

        line = capsys.readouterr().err.strip().splitlines()[-1]
        record = json.loads(line)
        assert record["event"] == "timetable_saved"
        assert record["level"] == "info"
        assert record["days"] == 3

    def test_level_filtering(self, capsys):
        """Test messages below the configured level are dropped."""
        setup_logging(json_output=True, log_level="WARNING")

        get_logger("tests").info("events_built", count=2)

        assert capsys.readouterr().err == ""
