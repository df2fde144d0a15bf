from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Mapping

from ..core.constants import (
    DEFAULT_AUTOBACKUP_INTERVAL_MIN,
    DEFAULT_AUTOSAVE_INTERVAL_SEC,
    DEFAULT_BACKUP_RETENTION,
    DEFAULT_MAX_PERIODS,
    SETTINGS_ID,
)

# Python attribute -> stored camelCase key.
_FIELD_KEYS = {
    "school_name": "schoolName",
    "teacher_name": "teacherName",
    "class_name_default": "classNameDefault",
    "autosave_interval_sec": "autosaveIntervalSec",
    "autobackup_interval_min": "autobackupIntervalMin",
    "backup_retention": "backupRetention",
    "max_periods_per_day": "maxPeriodsPerDay",
    "school_start_time": "schoolStartTime",
    "late_threshold_min": "lateThresholdMin",
}


@dataclass(frozen=True)
class Settings:
    """Application settings, stored as the singleton ``settings/default`` record."""

    school_name: str = ""
    teacher_name: str = ""
    class_name_default: str = "6-1"
    autosave_interval_sec: int = DEFAULT_AUTOSAVE_INTERVAL_SEC
    autobackup_interval_min: int = DEFAULT_AUTOBACKUP_INTERVAL_MIN
    backup_retention: int = DEFAULT_BACKUP_RETENTION
    max_periods_per_day: int = DEFAULT_MAX_PERIODS
    school_start_time: str = "09:00"
    late_threshold_min: int = 10

    def to_record(self) -> dict:
        record = {"id": SETTINGS_ID}
        for f in fields(self):
            record[_FIELD_KEYS[f.name]] = getattr(self, f.name)
        return record

    @classmethod
    def from_record(cls, r: Mapping[str, Any]) -> "Settings":
        defaults = cls()
        values = {}
        for name, key in _FIELD_KEYS.items():
            values[name] = r.get(key, getattr(defaults, name))
        return cls(**values)

    @staticmethod
    def field_names() -> tuple[str, ...]:
        return tuple(_FIELD_KEYS)
