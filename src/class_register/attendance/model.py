from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from ..core.enums import AttendanceStatus


@dataclass(frozen=True)
class AttendanceEntry:
    """Domain entity: one attendance record for a student, date and optional period.

    ``period`` is None for a whole-day record. At most one entry exists per
    (student_id, date, period).
    """

    id: str
    date: str
    period: Optional[int]
    student_id: str
    status: AttendanceStatus
    timestamp: int
    last_modified: int
    reason: Optional[str] = None

    def to_record(self) -> dict:
        return {
            "id": self.id,
            "date": self.date,
            "period": self.period,
            "studentId": self.student_id,
            "status": self.status.value,
            "reason": self.reason,
            "timestamp": self.timestamp,
            "lastModified": self.last_modified,
        }

    @classmethod
    def from_record(cls, r: Mapping[str, Any]) -> "AttendanceEntry":
        period = r.get("period")
        return cls(
            id=str(r["id"]),
            date=r["date"],
            period=int(period) if period is not None else None,
            student_id=str(r["studentId"]),
            status=AttendanceStatus(r["status"]),
            reason=r.get("reason"),
            timestamp=int(r.get("timestamp") or 0),
            last_modified=int(r.get("lastModified") or 0),
        )


@dataclass(frozen=True)
class AttendanceInput:
    """What a caller submits to record attendance (before ids/timestamps exist)."""

    student_id: str
    date: str
    status: AttendanceStatus | str
    period: Optional[int] = None
    reason: Optional[str] = None


@dataclass(frozen=True)
class DaySummary:
    date: str
    total_students: int
    present: int
    absent: int
    late: int
    early_leave: int
    present_rate: float

    @property
    def recorded_students(self) -> int:
        return self.present + self.absent + self.late + self.early_leave


@dataclass(frozen=True)
class StudentStats:
    student_id: str
    total_days: int
    present_days: int
    absent_days: int
    late_days: int
    early_leave_days: int
    present_rate: float


@dataclass(frozen=True)
class AttendanceFilter:
    date_from: Optional[str] = None
    date_to: Optional[str] = None
    periods: tuple[int, ...] = ()
    statuses: tuple[AttendanceStatus, ...] = ()
    student_ids: tuple[str, ...] = ()
    class_names: tuple[str, ...] = ()


@dataclass(frozen=True)
class BulkFailure:
    input: AttendanceInput
    error: str


@dataclass(frozen=True)
class BulkResult:
    success: list[AttendanceEntry] = field(default_factory=list)
    failed: list[BulkFailure] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.success) + len(self.failed)
