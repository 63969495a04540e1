"""Engine configuration loaded from environment variables.

Variables use the ``NSCG_`` prefix (e.g. ``NSCG_HORIZON_DAYS=7``) and may
also be placed in a ``.env`` file in the working directory.
"""

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import pydantic
from pydantic import Field
from pydantic_settings import BaseSettings


class ScheduleSettings(BaseSettings):
    """Settings shared by every surface that calls the merge engine."""

    horizon_days: int = Field(
        default=14,
        description="Days after today for which lessons and exams are turned into events",
    )
    grace_minutes: int = Field(
        default=6,
        description="Events that ended less than this many minutes ago are still built",
    )
    timeline_window_days: int = Field(
        default=2,
        description="Length of the segmented timeline window, from local midnight today",
    )
    timezone: str = Field(
        default="Europe/London",
        description="IANA time zone the timetable's wall-clock times are expressed in",
    )

    # Persistence
    cache_dir: str = Field(
        default="data/cache",
        description="Directory holding the last synced timetable JSON",
    )

    # Logging
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format",
    )
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    model_config = {
        "env_prefix": "NSCG_",
        "case_sensitive": False,
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @pydantic.field_validator("horizon_days", "timeline_window_days")
    @classmethod
    def validate_positive_days(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("day counts must be greater than 0")
        return v

    @pydantic.field_validator("grace_minutes")
    @classmethod
    def validate_grace(cls, v: int) -> int:
        if v < 0:
            raise ValueError("grace_minutes cannot be negative")
        return v

    @pydantic.field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"unknown time zone {v!r}")
        return v

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


_settings: ScheduleSettings | None = None


def get_settings() -> ScheduleSettings:
    """Get the settings singleton, reading the environment on first use."""
    global _settings
    if _settings is None:
        _settings = ScheduleSettings()
    return _settings
