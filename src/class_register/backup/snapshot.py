"""Snapshot serialization and structural validation of backup payloads.

Payload shape (JSON)::

    {
      "students": [...],
      "attendanceEntries": [...],
      "settings": [...],
      "exportedAt": 1757808000000,
      "version": "1.0.0",
      "description": "...",
      "type": "manual" | "auto"
    }
"""
from __future__ import annotations

import dataclasses
import hashlib
import json
import uuid
from typing import Any, Mapping, Optional, Sequence

from ..attendance.model import AttendanceEntry, AttendanceInput
from ..attendance.resolution import validate_entry
from ..common.datetime_utils import timestamp_slug
from ..core.constants import BACKUP_FORMAT_VERSION, SETTINGS_ID
from ..core.enums import BackupType
from ..core.exceptions import DomainError, IntegrityWarning, ValidationError
from ..settings.model import Settings
from ..settings.service import validate_settings
from ..students.model import Student
from ..students.service import validate_student_input
from .model import BackupFile, IntegrityReport, Snapshot

STUDENT_REQUIRED_FIELDS = ("id", "name", "number", "className")
ATTENDANCE_REQUIRED_FIELDS = ("id", "date", "studentId", "status")

# Older exports named the attendance array "attendances".
LEGACY_ATTENDANCE_KEY = "attendances"


def compute_checksum(payload: str) -> str:
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def backup_filename(backup_type: BackupType, created_at: int, backup_id: str) -> str:
    prefix = "backup_manual" if backup_type == BackupType.MANUAL else "backup"
    return f"{prefix}_{timestamp_slug(created_at)}_{backup_id[:8]}.json"


def create_snapshot(
    students: Sequence[Mapping[str, Any]],
    attendance_entries: Sequence[Mapping[str, Any]],
    settings: Sequence[Mapping[str, Any]],
    *,
    now: int,
    backup_type: BackupType = BackupType.MANUAL,
    description: Optional[str] = None,
) -> Snapshot:
    data = {
        "students": list(students),
        "attendanceEntries": list(attendance_entries),
        "settings": list(settings),
        "exportedAt": int(now),
        "version": BACKUP_FORMAT_VERSION,
        "type": BackupType(backup_type).value,
    }
    if description:
        data["description"] = description

    payload = json.dumps(data, ensure_ascii=False, indent=2)
    backup_id = str(uuid.uuid4())
    metadata = BackupFile(
        id=backup_id,
        filename=backup_filename(BackupType(backup_type), now, backup_id),
        created_at=int(now),
        size=len(payload.encode("utf-8")),
        checksum=compute_checksum(payload),
    )
    return Snapshot(metadata=metadata, payload=payload)


def parse_payload(text: str) -> dict:
    try:
        data = json.loads(text)
    except ValueError as exc:
        raise ValidationError("Backup file is not valid JSON") from exc
    if not isinstance(data, dict):
        raise ValidationError("Backup file must contain a JSON object")

    if "attendanceEntries" not in data and LEGACY_ATTENDANCE_KEY in data:
        data["attendanceEntries"] = data.pop(LEGACY_ATTENDANCE_KEY)
    return data


def is_well_formed(record: Any, required: Sequence[str]) -> bool:
    if not isinstance(record, Mapping):
        return False
    return all(record.get(name) not in (None, "") for name in required)


# Raised by the model constructors on malformed field values.
_RECORD_ERRORS = (DomainError, AttributeError, KeyError, TypeError, ValueError)


def canonical_student(record: Any) -> Optional[dict]:
    """The stored form of a snapshot student, or None if it would not load."""

    if not is_well_formed(record, STUDENT_REQUIRED_FIELDS):
        return None
    try:
        student = Student.from_record(record)
        number, name, class_name, grade = validate_student_input(
            number=student.number,
            name=student.name,
            class_name=student.class_name,
            grade=student.grade,
        )
    except _RECORD_ERRORS:
        return None
    return dataclasses.replace(student, number=number, name=name, class_name=class_name, grade=grade).to_record()


def canonical_entry(record: Any) -> Optional[dict]:
    """The stored form of a snapshot attendance entry, or None if it would not load.

    Entries go through the same checks as a live edit: known status, real
    calendar date, period in range and required for late and early leave.
    """

    if not is_well_formed(record, ATTENDANCE_REQUIRED_FIELDS):
        return None
    try:
        entry = AttendanceEntry.from_record(record)
        v = validate_entry(
            AttendanceInput(
                student_id=entry.student_id,
                date=entry.date,
                status=entry.status,
                period=entry.period,
                reason=entry.reason,
            )
        )
    except _RECORD_ERRORS:
        return None
    return dataclasses.replace(entry, date=v.date, reason=v.reason).to_record()


def canonical_settings(record: Any) -> Optional[dict]:
    if not isinstance(record, Mapping) or record.get("id") != SETTINGS_ID:
        return None
    try:
        settings = Settings.from_record(record)
        validate_settings(settings)
    except _RECORD_ERRORS:
        return None
    return settings.to_record()


def validate_snapshot_integrity(data: Mapping[str, Any]) -> IntegrityReport:
    """Structural checks only. Bad records are counted and reported, not rejected."""

    warnings: list[IntegrityWarning] = []
    students = data.get("students")
    entries = data.get("attendanceEntries")
    exported_at = data.get("exportedAt")

    if not isinstance(students, list):
        warnings.append(IntegrityWarning("students", "Student data is missing or not a list"))
    if not isinstance(entries, list):
        warnings.append(IntegrityWarning("attendance", "Attendance data is missing or not a list"))
    if isinstance(exported_at, bool) or not isinstance(exported_at, (int, float)):
        warnings.append(IntegrityWarning("exportedAt", "Export timestamp is missing or not a number"))

    if isinstance(students, list):
        bad = sum(1 for s in students if not is_well_formed(s, STUDENT_REQUIRED_FIELDS))
        if bad:
            warnings.append(IntegrityWarning("students", f"{bad} student record(s) are missing required fields", bad))

    if isinstance(entries, list):
        shaped = [e for e in entries if is_well_formed(e, ATTENDANCE_REQUIRED_FIELDS)]
        bad = len(entries) - len(shaped)
        if bad:
            warnings.append(
                IntegrityWarning("attendance", f"{bad} attendance record(s) are missing required fields", bad)
            )
        invalid = sum(1 for e in shaped if canonical_entry(e) is None)
        if invalid:
            warnings.append(
                IntegrityWarning("attendance", f"{invalid} attendance record(s) have invalid values", invalid)
            )

    return IntegrityReport(warnings=warnings)
