from __future__ import annotations

from typing import Optional, Sequence

from ..storage.adapter import ATTENDANCE_ENTRIES, PersistenceAdapter
from .model import AttendanceEntry


class AttendanceRepository:
    def __init__(self, adapter: PersistenceAdapter):
        self._adapter = adapter

    def get_by_id(self, entry_id: str) -> Optional[AttendanceEntry]:
        record = self._adapter.get(ATTENDANCE_ENTRIES, entry_id)
        return AttendanceEntry.from_record(record) if record else None

    def find_by_slot(self, student_id: str, date: str, period: Optional[int]) -> Optional[AttendanceEntry]:
        rows = self._adapter.query(
            ATTENDANCE_ENTRIES,
            where={"studentId": student_id, "date": date, "period": period},
        )
        return AttendanceEntry.from_record(rows[0]) if rows else None

    def list_for_student_and_date(self, student_id: str, date: str) -> Sequence[AttendanceEntry]:
        rows = self._adapter.query(ATTENDANCE_ENTRIES, where={"studentId": student_id, "date": date})
        return [AttendanceEntry.from_record(r) for r in rows]

    def list_for_date(self, date: str) -> Sequence[AttendanceEntry]:
        return [AttendanceEntry.from_record(r) for r in self._adapter.query(ATTENDANCE_ENTRIES, where={"date": date})]

    def list_for_student_between(self, student_id: str, date_from: str, date_to: str) -> Sequence[AttendanceEntry]:
        # ISO dates compare correctly as strings.
        rows = self._adapter.query(
            ATTENDANCE_ENTRIES,
            where={"studentId": student_id},
            predicate=lambda r: date_from <= r["date"] <= date_to,
        )
        return [AttendanceEntry.from_record(r) for r in rows]

    def list_for_student(self, student_id: str) -> Sequence[AttendanceEntry]:
        rows = self._adapter.query(ATTENDANCE_ENTRIES, where={"studentId": student_id})
        return [AttendanceEntry.from_record(r) for r in rows]

    def list_all(self) -> Sequence[AttendanceEntry]:
        return [AttendanceEntry.from_record(r) for r in self._adapter.query(ATTENDANCE_ENTRIES)]

    def create(self, entry: AttendanceEntry) -> AttendanceEntry:
        self._adapter.insert(ATTENDANCE_ENTRIES, entry.to_record())
        return entry

    def update_status(
        self,
        entry_id: str,
        *,
        status: str,
        reason: Optional[str],
        last_modified: int,
    ) -> AttendanceEntry:
        record = self._adapter.update(
            ATTENDANCE_ENTRIES,
            entry_id,
            {"status": status, "reason": reason, "lastModified": last_modified},
        )
        return AttendanceEntry.from_record(record)

    def delete_by_id(self, entry_id: str) -> bool:
        return self._adapter.delete(ATTENDANCE_ENTRIES, entry_id)
