"""Attendance resolution rules.

Pure functions: validate an entry, pick the authoritative status of a day and
aggregate days into summaries. Nothing here touches storage.
"""
from __future__ import annotations

from collections import Counter, defaultdict
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional, Sequence

from ..common.validators import require_iso_date, require_non_empty
from ..core.constants import MAX_PERIOD, MIN_PERIOD
from ..core.enums import AttendanceStatus
from ..core.exceptions import ValidationError
from .model import AttendanceEntry, AttendanceInput, DaySummary, StudentStats


@dataclass(frozen=True)
class ValidatedInput:
    student_id: str
    date: str
    status: AttendanceStatus
    period: Optional[int]
    reason: Optional[str]


def coerce_status(value) -> AttendanceStatus:
    if value is None or value == "":
        raise ValidationError("status is required")
    try:
        return AttendanceStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in AttendanceStatus)
        raise ValidationError(f"status must be one of: {allowed}")


def validate_entry(data: AttendanceInput) -> ValidatedInput:
    student_id = require_non_empty(data.student_id, "student id")
    date = require_iso_date(data.date, "date")
    status = coerce_status(data.status)

    period = data.period
    if period is not None:
        if isinstance(period, bool) or not isinstance(period, int):
            raise ValidationError("period must be an integer")
        if period < MIN_PERIOD or period > MAX_PERIOD:
            raise ValidationError(f"period must be between {MIN_PERIOD} and {MAX_PERIOD}")

    if status.requires_period and period is None:
        raise ValidationError(f"'{status.value}' must be recorded for a specific period")

    reason = data.reason.strip() if isinstance(data.reason, str) and data.reason.strip() else None
    return ValidatedInput(student_id=student_id, date=date, status=status, period=period, reason=reason)


def resolve_final_status(entries: Iterable[AttendanceEntry]) -> AttendanceStatus:
    """Fold a day's entries into one status: absent > early-leave > late > present.

    The first entry seeds the fold; only a strictly higher priority replaces it.
    No entries at all means ordinary attendance.
    """

    final: Optional[AttendanceStatus] = None
    for entry in entries:
        if final is None or entry.status.priority > final.priority:
            final = entry.status
    return final if final is not None else AttendanceStatus.PRESENT


def _rate(part: int, whole: int) -> float:
    if whole <= 0:
        return 0.0
    return round(part / whole * 100, 2)


def summarize_day(
    date: str,
    student_ids: Sequence[str],
    entries: Iterable[AttendanceEntry],
) -> DaySummary:
    """Students without any entry count toward the total only, not toward any status."""

    by_student: Mapping[str, list[AttendanceEntry]] = defaultdict(list)
    for entry in entries:
        by_student[entry.student_id].append(entry)

    counts: Counter = Counter()
    for student_id in student_ids:
        day_entries = by_student.get(student_id)
        if not day_entries:
            continue
        counts[resolve_final_status(day_entries)] += 1

    recorded = sum(counts.values())
    return DaySummary(
        date=date,
        total_students=len(student_ids),
        present=counts[AttendanceStatus.PRESENT],
        absent=counts[AttendanceStatus.ABSENT],
        late=counts[AttendanceStatus.LATE],
        early_leave=counts[AttendanceStatus.EARLY_LEAVE],
        present_rate=_rate(counts[AttendanceStatus.PRESENT], recorded),
    )


def summarize_student(student_id: str, entries: Iterable[AttendanceEntry]) -> StudentStats:
    by_date: dict[str, list[AttendanceEntry]] = defaultdict(list)
    for entry in entries:
        by_date[entry.date].append(entry)

    counts = Counter(resolve_final_status(day) for day in by_date.values())
    total_days = len(by_date)
    return StudentStats(
        student_id=student_id,
        total_days=total_days,
        present_days=counts[AttendanceStatus.PRESENT],
        absent_days=counts[AttendanceStatus.ABSENT],
        late_days=counts[AttendanceStatus.LATE],
        early_leave_days=counts[AttendanceStatus.EARLY_LEAVE],
        present_rate=_rate(counts[AttendanceStatus.PRESENT], total_days),
    )
