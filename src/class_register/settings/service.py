from __future__ import annotations

import dataclasses
import logging
import re

from ..common.validators import require_int_in_range
from ..core.constants import MAX_PERIOD, MIN_PERIOD, SETTINGS_ID
from ..core.enums import EntityType, HistoryAction
from ..core.exceptions import ValidationError
from ..history.repository import HistoryRepository
from ..storage.adapter import SETTINGS, PersistenceAdapter
from .model import Settings

logger = logging.getLogger(__name__)

_TIME_PATTERN = re.compile(r"^\d{2}:\d{2}$")


class SettingsService:
    def __init__(self, adapter: PersistenceAdapter, history: HistoryRepository):
        self._adapter = adapter
        self._history = history

    def get_settings(self) -> Settings:
        record = self._adapter.get(SETTINGS, SETTINGS_ID)
        if record is not None:
            return Settings.from_record(record)

        settings = Settings()
        self._adapter.insert(SETTINGS, settings.to_record())
        self._history.append(
            action=HistoryAction.CREATE,
            entity_type=EntityType.SETTINGS,
            entity_id=SETTINGS_ID,
            changes={"initialized": True},
        )
        logger.info("Default settings created")
        return settings

    def update_settings(self, **changes) -> Settings:
        unknown = set(changes) - set(Settings.field_names())
        if unknown:
            raise ValidationError(f"Unknown settings: {', '.join(sorted(unknown))}")

        current = self.get_settings()
        updated = dataclasses.replace(current, **changes)
        validate_settings(updated)

        self._adapter.update(SETTINGS, SETTINGS_ID, updated.to_record())
        self._history.append(
            action=HistoryAction.UPDATE,
            entity_type=EntityType.SETTINGS,
            entity_id=SETTINGS_ID,
            changes={"before": current.to_record(), "after": updated.to_record()},
        )
        return updated


def validate_settings(s: Settings) -> None:
    require_int_in_range(s.autosave_interval_sec, "autosave interval (sec)", 1, 86400)
    require_int_in_range(s.autobackup_interval_min, "auto-backup interval (min)", 1, 7 * 24 * 60)
    require_int_in_range(s.backup_retention, "backup retention", 1, 1000)
    require_int_in_range(s.max_periods_per_day, "periods per day", MIN_PERIOD, MAX_PERIOD)
    require_int_in_range(s.late_threshold_min, "late threshold (min)", 0, 240)
    if not _TIME_PATTERN.match(str(s.school_start_time)):
        raise ValidationError("school start time must use the HH:MM format")
