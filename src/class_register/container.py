from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .backup.repository import BackupFileRepository
from .backup.service import BackupService
from .backup.sink import BackupSink
from .common.datetime_utils import now_ms
from .core.exceptions import ValidationError
from .database.connection import DBConfig, DatabaseConnection
from .history.repository import HistoryRepository
from .maintenance.service import MaintenanceService
from .notifications.repository import NotificationRepository
from .notifications.service import NotificationService
from .settings.service import SettingsService
from .storage.adapter import PersistenceAdapter
from .storage.local_adapter import LocalAdapter
from .storage.mysql_adapter import MySQLAdapter
from .students.repository import StudentRepository
from .students.roster import RosterService
from .students.service import StudentService


@dataclass(frozen=True)
class Container:
    adapter: PersistenceAdapter

    students_repo: StudentRepository
    attendance_repo: AttendanceRepository
    history_repo: HistoryRepository
    notifications_repo: NotificationRepository
    backups_repo: BackupFileRepository

    notification_service: NotificationService
    settings_service: SettingsService
    student_service: StudentService
    roster_service: RosterService
    attendance_service: AttendanceService
    backup_service: BackupService
    maintenance_service: MaintenanceService


def build_adapter(*, backend: str, data_file: Optional[str] = None, db_config: Optional[dict] = None) -> PersistenceAdapter:
    backend = (backend or "local").lower()
    if backend == "local":
        return LocalAdapter(data_file or None)
    if backend == "mysql":
        return MySQLAdapter(DatabaseConnection(DBConfig.from_dict(db_config or {})))
    raise ValidationError(f"Unknown storage backend: {backend!r}")


def build_container(
    *,
    adapter: PersistenceAdapter,
    sink: BackupSink,
    clock: Callable[[], int] = now_ms,
) -> Container:
    students_repo = StudentRepository(adapter)
    attendance_repo = AttendanceRepository(adapter)
    history_repo = HistoryRepository(adapter, clock=clock)
    notifications_repo = NotificationRepository(adapter)
    backups_repo = BackupFileRepository(adapter)

    notification_service = NotificationService(notifications_repo, clock=clock)
    settings_service = SettingsService(adapter, history_repo)
    student_service = StudentService(
        adapter,
        students_repo,
        attendance_repo,
        history_repo,
        notification_service,
        clock=clock,
    )
    roster_service = RosterService(student_service, students_repo, history_repo)
    attendance_service = AttendanceService(
        adapter,
        attendance_repo,
        students_repo,
        history_repo,
        notification_service,
        clock=clock,
    )
    backup_service = BackupService(
        adapter,
        backups_repo,
        sink,
        settings_service,
        history_repo,
        notification_service,
        clock=clock,
    )
    maintenance_service = MaintenanceService(adapter, history_repo, notifications_repo, clock=clock)

    return Container(
        adapter=adapter,
        students_repo=students_repo,
        attendance_repo=attendance_repo,
        history_repo=history_repo,
        notifications_repo=notifications_repo,
        backups_repo=backups_repo,
        notification_service=notification_service,
        settings_service=settings_service,
        student_service=student_service,
        roster_service=roster_service,
        attendance_service=attendance_service,
        backup_service=backup_service,
        maintenance_service=maintenance_service,
    )

