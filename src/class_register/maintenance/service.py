from __future__ import annotations

import json
import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable

from ..common.datetime_utils import days_before, now_ms, parse_iso_date
from ..core.constants import (
    HISTORY_RETENTION_DAYS,
    NOTIFICATION_RETENTION_DAYS,
    OPTIMIZE_ENTRY_THRESHOLD,
)
from ..history.repository import HistoryRepository
from ..notifications.repository import NotificationRepository
from ..storage.adapter import ATTENDANCE_ENTRIES, COLLECTIONS, STUDENTS, PersistenceAdapter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DatabaseIntegrity:
    issues: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.issues


@dataclass(frozen=True)
class DatabaseSize:
    counts: dict[str, int]
    estimated_bytes: int

    @property
    def estimated_size(self) -> str:
        size = float(self.estimated_bytes)
        for unit in ("B", "KB", "MB"):
            if size < 1024:
                return f"{size:.1f} {unit}" if unit != "B" else f"{int(size)} B"
            size /= 1024
        return f"{size:.1f} GB"


class MaintenanceService:
    """Housekeeping: retention cleanup of logs and a few consistency checks."""

    def __init__(
        self,
        adapter: PersistenceAdapter,
        history: HistoryRepository,
        notifications: NotificationRepository,
        *,
        clock: Callable[[], int] = now_ms,
    ):
        self._adapter = adapter
        self._history = history
        self._notifications = notifications
        self._clock = clock

    def cleanup_old_history(self, days: int = HISTORY_RETENTION_DAYS) -> int:
        deleted = self._history.delete_older_than(days_before(self._clock(), days))
        logger.info("Deleted %d history log(s) older than %d days", deleted, days)
        return deleted

    def cleanup_read_notifications(self, days: int = NOTIFICATION_RETENTION_DAYS) -> int:
        deleted = self._notifications.delete_read_older_than(days_before(self._clock(), days))
        logger.info("Deleted %d read notification(s) older than %d days", deleted, days)
        return deleted

    def validate_database_integrity(self) -> DatabaseIntegrity:
        students = self._adapter.query(STUDENTS)
        entries = self._adapter.query(ATTENDANCE_ENTRIES)
        issues: list[str] = []

        known = {s["id"] for s in students}
        orphans = sum(1 for e in entries if e.get("studentId") not in known)
        if orphans:
            issues.append(f"{orphans} attendance record(s) reference missing students")

        slots = Counter((s.get("className"), s.get("number")) for s in students if s.get("active"))
        for (class_name, number), count in sorted(slots.items(), key=lambda kv: (str(kv[0][0]), kv[0][1] or 0)):
            if count > 1:
                issues.append(f"Class {class_name} has {count} active students with number {number}")

        bad_dates = 0
        for e in entries:
            try:
                parse_iso_date(str(e.get("date")))
            except ValueError:
                bad_dates += 1
        if bad_dates:
            issues.append(f"{bad_dates} attendance record(s) have an invalid date")

        if issues:
            logger.warning("Database integrity issues: %s", "; ".join(issues))
        return DatabaseIntegrity(issues=issues)

    def get_database_size(self) -> DatabaseSize:
        counts: dict[str, int] = {}
        estimated = 0
        for name in COLLECTIONS:
            records = self._adapter.query(name)
            counts[name] = len(records)
            estimated += sum(len(json.dumps(r, ensure_ascii=False).encode("utf-8")) for r in records)
        return DatabaseSize(counts=counts, estimated_bytes=estimated)

    def optimize(self, threshold: int = OPTIMIZE_ENTRY_THRESHOLD) -> bool:
        """Run retention cleanup once the attendance table grows past ``threshold``.

        Returns True when cleanup ran.
        """

        entry_count = len(self._adapter.query(ATTENDANCE_ENTRIES))
        if entry_count <= threshold:
            return False

        logger.info("Optimizing: %d attendance entries exceed %d", entry_count, threshold)
        self.cleanup_old_history()
        self.cleanup_read_notifications()
        self._adapter.flush()
        return True
