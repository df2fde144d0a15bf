from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, Optional, Sequence

from ..common.datetime_utils import now_ms
from ..core.enums import BackupStage, BackupType, EntityType, HistoryAction
from ..core.exceptions import DomainError, NotFoundError, ValidationError
from ..history.repository import HistoryRepository
from ..notifications.service import NotificationService, records_failure
from ..settings.service import SettingsService
from ..storage.adapter import (
    ATTENDANCE_ENTRIES,
    HISTORY_LOGS,
    SETTINGS,
    STUDENTS,
    PersistenceAdapter,
)
from .model import BackupFile, IntegrityReport, RestoreResult, RestoreStats, Snapshot
from .repository import BackupFileRepository
from .sink import BackupSink
from .snapshot import (
    canonical_entry,
    canonical_settings,
    canonical_student,
    create_snapshot,
    parse_payload,
    validate_snapshot_integrity,
)

logger = logging.getLogger(__name__)


class BackupService:
    """Use case: snapshot the register, keep the newest N snapshots, restore one.

    A backup moves through ``BackupStage``: the payload is serialized, written
    to the sink, its metadata registered, and older snapshots beyond the
    retention count are pruned. Restores run in a single transaction.
    """

    def __init__(
        self,
        adapter: PersistenceAdapter,
        backups: BackupFileRepository,
        sink: BackupSink,
        settings: SettingsService,
        history: HistoryRepository,
        notifier: Optional[NotificationService] = None,
        *,
        clock: Callable[[], int] = now_ms,
    ):
        self._adapter = adapter
        self._backups = backups
        self._sink = sink
        self._settings = settings
        self._history = history
        self._notifier = notifier
        self._clock = clock

    # ------------------------------------------------------------------
    # Creating snapshots
    # ------------------------------------------------------------------

    def _stage(self, stage: BackupStage, filename: str) -> None:
        logger.debug("Backup %s: %s", filename, stage.value)

    def _create(self, backup_type: BackupType, description: Optional[str]) -> BackupFile:
        logger.debug("Backup %s: %s", backup_type.value, BackupStage.PENDING.value)
        retention = self._settings.get_settings().backup_retention
        snapshot: Snapshot = create_snapshot(
            self._adapter.query(STUDENTS),
            self._adapter.query(ATTENDANCE_ENTRIES),
            self._adapter.query(SETTINGS),
            now=self._clock(),
            backup_type=backup_type,
            description=description,
        )
        metadata = snapshot.metadata
        self._stage(BackupStage.SERIALIZED, metadata.filename)

        self._sink.save(metadata.filename, snapshot.payload)
        self._stage(BackupStage.PERSISTED, metadata.filename)

        try:
            self._backups.add(metadata)
        except Exception:
            # Without metadata the payload would never be pruned.
            self._discard_payload(metadata.filename)
            raise
        self._stage(BackupStage.REGISTERED, metadata.filename)

        logger.info("Backup created: %s (%d bytes)", metadata.filename, metadata.size)
        self.prune(retention)
        return metadata

    @records_failure("Backup failed")
    def create_manual_backup(self, description: Optional[str] = None) -> BackupFile:
        metadata = self._create(BackupType.MANUAL, description)
        if self._notifier is not None:
            self._notifier.success("Backup created", f"Manual backup {metadata.filename} was saved")
        return metadata

    def create_auto_backup(self) -> Optional[BackupFile]:
        """Scheduled backup. Failures are recorded as notifications, never raised."""

        try:
            return self._create(BackupType.AUTO, "Automatic backup")
        except Exception as exc:
            logger.exception("Automatic backup failed")
            if self._notifier is not None:
                self._notifier.error("Automatic backup failed", str(exc))
            return None

    def _discard_payload(self, filename: str) -> None:
        try:
            self._sink.delete(filename)
        except DomainError:
            logger.exception("Could not delete backup payload %s", filename)

    def prune(self, retention: int) -> list[BackupFile]:
        """Delete the oldest snapshots beyond ``retention``. Count-based only."""

        backups = list(self._backups.list_oldest_first())
        excess = len(backups) - max(int(retention), 0)
        if excess <= 0:
            return []

        pruned = backups[:excess]
        for backup in pruned:
            self._backups.delete_by_id(backup.id)
            self._discard_payload(backup.filename)
            self._stage(BackupStage.PRUNED, backup.filename)
        logger.info("Pruned %d old backup(s), keeping %d", len(pruned), retention)
        return pruned

    # ------------------------------------------------------------------
    # Managing snapshots
    # ------------------------------------------------------------------

    def list_backups(self) -> Sequence[BackupFile]:
        return list(reversed(self._backups.list_oldest_first()))

    def get_backup(self, backup_id: str) -> BackupFile:
        backup = self._backups.get_by_id(backup_id)
        if not backup:
            raise NotFoundError(f"Backup {backup_id!r} does not exist")
        return backup

    @records_failure("Delete backup failed")
    def delete_backup(self, backup_id: str) -> bool:
        backup = self.get_backup(backup_id)
        self._backups.delete_by_id(backup.id)
        self._discard_payload(backup.filename)
        return True

    def read_backup(self, backup_id: str) -> str:
        return self._sink.load(self.get_backup(backup_id).filename)

    # ------------------------------------------------------------------
    # Restoring
    # ------------------------------------------------------------------

    def validate_snapshot(self, text: str) -> IntegrityReport:
        return validate_snapshot_integrity(parse_payload(text))

    def _put(self, collection: str, record: Mapping[str, Any], *, skip_duplicates: bool) -> bool:
        record_id = str(record["id"])
        if self._adapter.get(collection, record_id) is not None:
            if skip_duplicates:
                return False
            # Replace whole; fields missing from the snapshot must not survive.
            self._adapter.delete(collection, record_id)
        self._adapter.insert(collection, record)
        return True

    @staticmethod
    def _records(data: Mapping[str, Any], key: str) -> list:
        value = data.get(key)
        if value is None:
            return []
        if not isinstance(value, list):
            raise ValidationError(f"Backup field {key!r} must be a list")
        return value

    def restore_snapshot(
        self,
        data: Mapping[str, Any],
        *,
        overwrite: bool = False,
        skip_duplicates: bool = True,
    ) -> RestoreStats:
        """Apply a parsed payload atomically. Any error rolls the whole restore back.

        Every record is loaded through its model first. Records that are
        malformed or hold invalid values are skipped and counted in ``skipped``.
        A restored record replaces the stored one with the same id.
        """

        students = self._records(data, "students")
        entries = self._records(data, "attendanceEntries")
        settings = self._records(data, "settings")

        restored = {STUDENTS: 0, ATTENDANCE_ENTRIES: 0, SETTINGS: 0}
        skipped = 0

        with self._adapter.transaction(STUDENTS, ATTENDANCE_ENTRIES, SETTINGS, HISTORY_LOGS):
            if overwrite:
                for collection in (ATTENDANCE_ENTRIES, STUDENTS):
                    for record in self._adapter.query(collection):
                        self._adapter.delete(collection, record["id"])

            for collection, records, canonical, skip in (
                (STUDENTS, students, canonical_student, skip_duplicates),
                (ATTENDANCE_ENTRIES, entries, canonical_entry, skip_duplicates),
                (SETTINGS, settings, canonical_settings, False),
            ):
                for raw in records:
                    record = canonical(raw)
                    if record is None:
                        skipped += 1
                    elif self._put(collection, record, skip_duplicates=skip):
                        restored[collection] += 1
                    else:
                        skipped += 1

            stats = RestoreStats(
                students=restored[STUDENTS],
                attendance_entries=restored[ATTENDANCE_ENTRIES],
                settings=restored[SETTINGS],
                skipped=skipped,
            )
            self._history.append(
                action=HistoryAction.BULK_IMPORT,
                entity_type=EntityType.STUDENT,
                entity_id="restore",
                changes={
                    "restoredStudents": stats.students,
                    "restoredAttendances": stats.attendance_entries,
                    "restoredSettings": stats.settings,
                    "skipped": stats.skipped,
                    "overwrite": bool(overwrite),
                    "exportedAt": data.get("exportedAt"),
                },
            )

        logger.info(
            "Restored %d student(s), %d attendance entr(ies), %d skipped",
            stats.students,
            stats.attendance_entries,
            stats.skipped,
        )
        return stats

    def restore_from_backup(
        self,
        text: str,
        *,
        overwrite: bool = False,
        skip_duplicates: bool = True,
        validate_integrity: bool = True,
        force: bool = False,
    ) -> RestoreResult:
        """Parse, check and restore a serialized snapshot.

        Integrity problems stop the restore before anything is mutated unless
        ``force`` is set. The issues are returned either way.
        """

        issues: list[str] = []
        try:
            data = parse_payload(text)
            if validate_integrity:
                report = validate_snapshot_integrity(data)
                issues = report.issues
                if not report.is_valid:
                    logger.warning("Backup integrity issues: %s", "; ".join(issues))
                    if not force:
                        raise ValidationError("Backup integrity check failed: " + "; ".join(issues))

            stats = self.restore_snapshot(data, overwrite=overwrite, skip_duplicates=skip_duplicates)
        except DomainError as exc:
            if self._notifier is not None:
                self._notifier.error("Restore failed", str(exc))
            return RestoreResult(
                success=False,
                message=str(exc),
                issues=issues,
            )

        message = (
            f"Restored {stats.students} student(s) and {stats.attendance_entries} attendance record(s)"
        )
        if self._notifier is not None:
            self._notifier.success("Restore completed", message)
        return RestoreResult(success=True, message=message, stats=stats, issues=issues)

    def restore_backup(self, backup_id: str, **options) -> RestoreResult:
        """Restore one of the registered snapshots from the sink."""

        return self.restore_from_backup(self.read_backup(backup_id), **options)
