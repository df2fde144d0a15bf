from __future__ import annotations

from enum import Enum


class AttendanceStatus(str, Enum):
    """Attendance states recorded for a student on a date (or a single period)."""

    PRESENT = "present"
    LATE = "late"
    EARLY_LEAVE = "early-leave"
    ABSENT = "absent"

    @property
    def priority(self) -> int:
        return STATUS_PRIORITY[self]

    @property
    def requires_period(self) -> bool:
        return self in (AttendanceStatus.LATE, AttendanceStatus.EARLY_LEAVE)


# Higher value wins when several entries exist for one student on one day.
STATUS_PRIORITY = {
    AttendanceStatus.ABSENT: 4,
    AttendanceStatus.EARLY_LEAVE: 3,
    AttendanceStatus.LATE: 2,
    AttendanceStatus.PRESENT: 1,
}


class HistoryAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    BULK_IMPORT = "bulk_import"


class EntityType(str, Enum):
    STUDENT = "student"
    ATTENDANCE = "attendance"
    SETTINGS = "settings"


class NotificationType(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class BackupType(str, Enum):
    MANUAL = "manual"
    AUTO = "auto"


class BackupStage(str, Enum):
    """Lifecycle of one backup: pending -> serialized -> persisted -> registered -> pruned."""

    PENDING = "pending"
    SERIALIZED = "serialized"
    PERSISTED = "persisted"
    REGISTERED = "registered"
    PRUNED = "pruned"
