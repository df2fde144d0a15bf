from __future__ import annotations

import logging
import uuid
from typing import Callable, Iterable, Optional, Sequence

from ..common.datetime_utils import now_ms
from ..common.validators import require_iso_date, require_non_empty
from ..core.constants import BULK_ENTITY_ID, DEFAULT_MAX_PERIODS, DEFAULT_PAGE_SIZE
from ..core.enums import AttendanceStatus, EntityType, HistoryAction
from ..core.exceptions import DomainError, NotFoundError, ValidationError
from ..history.repository import HistoryRepository
from ..notifications.service import NotificationService, records_failure
from ..storage.adapter import ATTENDANCE_ENTRIES, HISTORY_LOGS, PersistenceAdapter
from ..students.repository import StudentRepository
from .model import (
    AttendanceEntry,
    AttendanceFilter,
    AttendanceInput,
    BulkFailure,
    BulkResult,
    DaySummary,
    StudentStats,
)
from .policies.base import EditPlan, EditPolicy
from .policies.early_leave_policy import EarlyLeaveCascadePolicy
from .policies.partial_absence_policy import PartialAbsencePolicy
from .repository import AttendanceRepository
from .resolution import (
    ValidatedInput,
    coerce_status,
    resolve_final_status,
    summarize_day,
    summarize_student,
    validate_entry,
)

logger = logging.getLogger(__name__)


class AttendanceService:
    """Use case: record attendance and report on it.

    Writes go through ``upsert_entry`` so the one-entry-per-(student, date,
    period) rule and the history trail hold for single, bulk and policy-driven
    edits alike. Calls are applied one at a time, in order.
    """

    def __init__(
        self,
        adapter: PersistenceAdapter,
        attendance: AttendanceRepository,
        students: StudentRepository,
        history: HistoryRepository,
        notifier: Optional[NotificationService] = None,
        *,
        clock: Callable[[], int] = now_ms,
    ):
        self._adapter = adapter
        self._attendance = attendance
        self._students = students
        self._history = history
        self._notifier = notifier
        self._clock = clock

    # ------------------------------------------------------------------
    # Single entries
    # ------------------------------------------------------------------

    def validate_entry(self, data: AttendanceInput) -> ValidatedInput:
        return validate_entry(data)

    @records_failure("Save attendance failed")
    def upsert_entry(self, data: AttendanceInput) -> AttendanceEntry:
        v = validate_entry(data)
        if not self._students.get_by_id(v.student_id):
            raise NotFoundError(f"Student {v.student_id!r} does not exist")

        # The entry and its history record land together or not at all.
        with self._adapter.transaction(ATTENDANCE_ENTRIES, HISTORY_LOGS):
            return self._write_entry(v)

    def _write_entry(self, v: ValidatedInput) -> AttendanceEntry:
        now = self._clock()
        existing = self._attendance.find_by_slot(v.student_id, v.date, v.period)

        if existing:
            updated = self._attendance.update_status(
                existing.id,
                status=v.status.value,
                reason=v.reason,
                last_modified=now,
            )
            # Logged even when nothing changed; see DESIGN.md.
            self._history.append(
                action=HistoryAction.UPDATE,
                entity_type=EntityType.ATTENDANCE,
                entity_id=existing.id,
                changes={
                    "from": {"status": existing.status.value, "reason": existing.reason},
                    "to": {"status": v.status.value, "reason": v.reason},
                },
                timestamp=now,
            )
            return updated

        entry = AttendanceEntry(
            id=str(uuid.uuid4()),
            date=v.date,
            period=v.period,
            student_id=v.student_id,
            status=v.status,
            reason=v.reason,
            timestamp=now,
            last_modified=now,
        )
        self._attendance.create(entry)
        self._history.append(
            action=HistoryAction.CREATE,
            entity_type=EntityType.ATTENDANCE,
            entity_id=entry.id,
            changes=entry.to_record(),
            timestamp=now,
        )
        return entry

    def get_entry(self, entry_id: str) -> AttendanceEntry:
        entry = self._attendance.get_by_id(entry_id)
        if not entry:
            raise NotFoundError(f"Attendance entry {entry_id!r} does not exist")
        return entry

    @records_failure("Delete attendance failed")
    def delete_attendance(self, entry_id: str) -> bool:
        entry = self.get_entry(entry_id)
        with self._adapter.transaction(ATTENDANCE_ENTRIES, HISTORY_LOGS):
            self._attendance.delete_by_id(entry_id)
            self._history.append(
                action=HistoryAction.DELETE,
                entity_type=EntityType.ATTENDANCE,
                entity_id=entry_id,
                changes=entry.to_record(),
            )
        return True

    # ------------------------------------------------------------------
    # Bulk edits
    # ------------------------------------------------------------------

    def _apply_plan(self, student_id: str, date: str, plan: EditPlan, *, removal_reason: str) -> list[AttendanceEntry]:
        for entry in plan.removals:
            self._attendance.delete_by_id(entry.id)
            self._history.append(
                action=HistoryAction.DELETE,
                entity_type=EntityType.ATTENDANCE,
                entity_id=entry.id,
                changes={"reason": removal_reason, "entry": entry.to_record()},
            )

        written: list[AttendanceEntry] = []
        for w in plan.writes:
            written.append(
                self.upsert_entry(
                    AttendanceInput(student_id=student_id, date=date, period=w.period, status=w.status, reason=w.reason)
                )
            )
        return written

    def apply_policy(self, student_id: str, date: str, policy: EditPolicy, *, removal_reason: str = "") -> list[AttendanceEntry]:
        student_id = require_non_empty(student_id, "student id")
        date = require_iso_date(date)
        existing = self._attendance.list_for_student_and_date(student_id, date)
        with self._adapter.transaction(ATTENDANCE_ENTRIES, HISTORY_LOGS):
            return self._apply_plan(student_id, date, policy.plan(existing), removal_reason=removal_reason)

    @records_failure("Early-leave cascade failed")
    def cascade_early_leave(
        self,
        student_id: str,
        date: str,
        from_period: int,
        max_periods: int = DEFAULT_MAX_PERIODS,
        reason: Optional[str] = None,
    ) -> list[AttendanceEntry]:
        policy = EarlyLeaveCascadePolicy(from_period=from_period, max_periods=max_periods, reason=reason)
        written = self.apply_policy(student_id, date, policy)
        logger.info("Early leave for %s on %s: %d period(s) marked", student_id, date, len(written))
        return written

    @records_failure("Partial absence failed")
    def reconcile_partial_absence(self, student_id: str, date: str, present_periods: Iterable[int]) -> list[AttendanceEntry]:
        policy = PartialAbsencePolicy.attending(present_periods)
        return self.apply_policy(
            student_id,
            date,
            policy,
            removal_reason="whole-day absence superseded by partial attendance",
        )

    def bulk_upsert(self, inputs: Iterable[AttendanceInput]) -> BulkResult:
        success: list[AttendanceEntry] = []
        failed: list[BulkFailure] = []
        items = list(inputs)

        for item in items:
            try:
                success.append(self.upsert_entry(item))
            except DomainError as exc:
                failed.append(BulkFailure(input=item, error=str(exc)))

        self._history.append(
            action=HistoryAction.BULK_IMPORT,
            entity_type=EntityType.ATTENDANCE,
            entity_id=BULK_ENTITY_ID,
            changes={"successCount": len(success), "failedCount": len(failed), "totalCount": len(items)},
        )
        if failed:
            logger.warning("Bulk attendance: %d of %d item(s) failed", len(failed), len(items))
        return BulkResult(success=success, failed=failed)

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    def final_status_for(self, student_id: str, date: str) -> AttendanceStatus:
        return resolve_final_status(self._attendance.list_for_student_and_date(student_id, require_iso_date(date)))

    def compute_day_summary(self, date: str, class_name: Optional[str] = None) -> DaySummary:
        date = require_iso_date(date)
        students = self._students.list(class_name=class_name, active=True)
        return summarize_day(date, [s.id for s in students], self._attendance.list_for_date(date))

    def compute_student_stats(self, student_id: str, date_from: str, date_to: str) -> StudentStats:
        date_from = require_iso_date(date_from, "date from")
        date_to = require_iso_date(date_to, "date to")
        if date_from > date_to:
            raise ValidationError("date from must not be after date to")
        if not self._students.get_by_id(student_id):
            raise NotFoundError(f"Student {student_id!r} does not exist")

        entries = self._attendance.list_for_student_between(student_id, date_from, date_to)
        return summarize_student(student_id, entries)

    def get_filtered_attendances(
        self,
        flt: AttendanceFilter,
        *,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> tuple[list[AttendanceEntry], int]:
        """Entries matching ``flt``, newest date first, plus the total match count.

        Whole-day entries always pass a period filter.
        """

        student_ids = set(flt.student_ids)
        if flt.class_names:
            in_classes = {s.id for s in self._students.list() if s.class_name in set(flt.class_names)}
            student_ids = (student_ids & in_classes) if student_ids else in_classes
            if not student_ids:
                return [], 0

        statuses = {coerce_status(s) for s in flt.statuses}

        def matches(e: AttendanceEntry) -> bool:
            if flt.date_from and e.date < flt.date_from:
                return False
            if flt.date_to and e.date > flt.date_to:
                return False
            if flt.periods and e.period is not None and e.period not in flt.periods:
                return False
            if statuses and e.status not in statuses:
                return False
            if student_ids and e.student_id not in student_ids:
                return False
            return True

        hits = [e for e in self._attendance.list_all() if matches(e)]
        hits.sort(key=lambda e: (e.date, e.period or 0), reverse=True)
        start = max(int(offset), 0)
        return hits[start : start + max(int(limit), 0)], len(hits)

    def list_for_day(self, student_id: str, date: str) -> Sequence[AttendanceEntry]:
        entries = list(self._attendance.list_for_student_and_date(student_id, require_iso_date(date)))
        entries.sort(key=lambda e: (e.period is not None, e.period or 0))
        return entries
