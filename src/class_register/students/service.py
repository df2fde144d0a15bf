from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from typing import Callable, Iterable, Mapping, Optional, Sequence

from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import now_ms
from ..common.validators import require_int_in_range, require_max_length, require_non_empty
from ..core.constants import (
    BULK_ENTITY_ID,
    MAX_GRADE,
    MAX_NAME_LENGTH,
    MAX_ROLL_NUMBER,
    MIN_GRADE,
    MIN_ROLL_NUMBER,
)
from ..core.enums import EntityType, HistoryAction
from ..core.exceptions import DomainError, NotFoundError, ValidationError
from ..history.repository import HistoryRepository
from ..notifications.service import NotificationService, records_failure
from ..storage.adapter import ATTENDANCE_ENTRIES, HISTORY_LOGS, STUDENTS, PersistenceAdapter
from .model import BulkStudentResult, ClassStatistics, Student, StudentFailure, StudentInput
from .repository import StudentRepository

logger = logging.getLogger(__name__)

_UPDATABLE = {"number", "name", "class_name", "grade", "active"}


def validate_student_input(
    *,
    number: int,
    name: str,
    class_name: str,
    grade: int,
) -> tuple[int, str, str, int]:
    name = require_max_length(require_non_empty(name, "name"), "name", MAX_NAME_LENGTH)
    class_name = require_non_empty(class_name, "class")
    number = require_int_in_range(number, "roll number", MIN_ROLL_NUMBER, MAX_ROLL_NUMBER)
    grade = require_int_in_range(grade, "grade", MIN_GRADE, MAX_GRADE)
    return number, name, class_name, grade


class StudentService:
    """Use case: manage the class roster.

    Roll numbers are unique per class among *active* students only, so a
    number can be reassigned once its previous holder is deactivated.
    """

    def __init__(
        self,
        adapter: PersistenceAdapter,
        students: StudentRepository,
        attendance: AttendanceRepository,
        history: HistoryRepository,
        notifier: Optional[NotificationService] = None,
        *,
        clock: Callable[[], int] = now_ms,
    ):
        self._adapter = adapter
        self._students = students
        self._attendance = attendance
        self._history = history
        self._notifier = notifier
        self._clock = clock

    def _ensure_number_free(self, class_name: str, number: int, *, exclude_id: Optional[str] = None) -> None:
        holder = self._students.find_active_by_number(class_name, number, exclude_id=exclude_id)
        if holder:
            raise ValidationError(f"Class {class_name} already has an active student with number {number}")

    def get_student(self, student_id: str) -> Student:
        student = self._students.get_by_id(student_id)
        if not student:
            raise NotFoundError(f"Student {student_id!r} does not exist")
        return student

    @records_failure("Add student failed")
    def add_student(self, data: StudentInput | Mapping) -> Student:
        if isinstance(data, Mapping):
            data = StudentInput(**data)

        number, name, class_name, grade = validate_student_input(
            number=data.number, name=data.name, class_name=data.class_name, grade=data.grade
        )
        if data.active:
            self._ensure_number_free(class_name, number)

        now = self._clock()
        student = Student(
            id=str(uuid.uuid4()),
            number=number,
            name=name,
            class_name=class_name,
            grade=grade,
            active=bool(data.active),
            created_at=now,
            updated_at=now,
        )
        self._students.create(student)
        self._history.append(
            action=HistoryAction.CREATE,
            entity_type=EntityType.STUDENT,
            entity_id=student.id,
            changes=student.to_record(),
            timestamp=now,
        )
        return student

    @records_failure("Update student failed")
    def update_student(self, student_id: str, **changes) -> Student:
        unknown = set(changes) - _UPDATABLE
        if unknown:
            raise ValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}")

        existing = self.get_student(student_id)
        candidate = replace(existing, **changes)
        number, name, class_name, grade = validate_student_input(
            number=candidate.number, name=candidate.name, class_name=candidate.class_name, grade=candidate.grade
        )
        candidate = replace(candidate, number=number, name=name, class_name=class_name, grade=grade)

        slot_changed = (candidate.class_name, candidate.number) != (existing.class_name, existing.number)
        if candidate.active and (slot_changed or not existing.active):
            self._ensure_number_free(candidate.class_name, candidate.number, exclude_id=student_id)

        now = self._clock()
        candidate = replace(candidate, updated_at=now)
        after = candidate.to_record()
        updated = self._students.update(student_id, {k: v for k, v in after.items() if k not in ("id", "createdAt")})
        self._history.append(
            action=HistoryAction.UPDATE,
            entity_type=EntityType.STUDENT,
            entity_id=student_id,
            changes={"before": existing.to_record(), "after": after},
            timestamp=now,
        )
        return updated

    @records_failure("Deactivate student failed")
    def deactivate_student(self, student_id: str, reason: Optional[str] = None) -> Student:
        self.get_student(student_id)
        now = self._clock()
        student = self._students.update(student_id, {"active": False, "updatedAt": now})
        self._history.append(
            action=HistoryAction.UPDATE,
            entity_type=EntityType.STUDENT,
            entity_id=student_id,
            changes={"deactivated": True, "reason": reason or "deactivated"},
            timestamp=now,
        )
        return student

    @records_failure("Reactivate student failed")
    def reactivate_student(self, student_id: str) -> Student:
        existing = self.get_student(student_id)
        if existing.active:
            return existing

        self._ensure_number_free(existing.class_name, existing.number, exclude_id=student_id)
        now = self._clock()
        student = self._students.update(student_id, {"active": True, "updatedAt": now})
        self._history.append(
            action=HistoryAction.UPDATE,
            entity_type=EntityType.STUDENT,
            entity_id=student_id,
            changes={"reactivated": True},
            timestamp=now,
        )
        return student

    @records_failure("Delete student failed")
    def delete_student(self, student_id: str) -> int:
        """Hard-delete a student together with all of their attendance entries.

        Returns the number of attendance entries removed.
        """

        existing = self.get_student(student_id)
        with self._adapter.transaction(STUDENTS, ATTENDANCE_ENTRIES, HISTORY_LOGS):
            entries = self._attendance.list_for_student(student_id)
            for entry in entries:
                self._attendance.delete_by_id(entry.id)
            self._students.delete_by_id(student_id)
            self._history.append(
                action=HistoryAction.DELETE,
                entity_type=EntityType.STUDENT,
                entity_id=student_id,
                changes={"student": existing.to_record(), "attendanceDeleted": len(entries)},
            )
        logger.info("Deleted student %s with %d attendance entries", student_id, len(entries))
        return len(entries)

    def get_students(
        self,
        *,
        class_name: Optional[str] = None,
        active: Optional[bool] = None,
        sort_by: str = "number",
        descending: bool = False,
    ) -> Sequence[Student]:
        if sort_by not in {"number", "name"}:
            raise ValidationError("sort_by must be 'number' or 'name'")
        students = list(self._students.list(class_name=class_name, active=active))
        students.sort(key=lambda s: (getattr(s, sort_by), s.class_name), reverse=descending)
        return students

    def search_students(
        self,
        term: str,
        *,
        class_name: Optional[str] = None,
        active: Optional[bool] = None,
    ) -> Sequence[Student]:
        students = self.get_students(class_name=class_name, active=active)
        needle = (term or "").strip().lower()
        if not needle:
            return students

        if needle.isdigit():
            return [s for s in students if needle in str(s.number)]
        return [s for s in students if needle in s.name.lower()]

    def add_bulk_students(self, inputs: Iterable[StudentInput | Mapping]) -> BulkStudentResult:
        success: list[Student] = []
        failed: list[StudentFailure] = []
        items = list(inputs)

        for item in items:
            try:
                success.append(self.add_student(item))
            except (DomainError, TypeError) as exc:
                failed.append(StudentFailure(input=item, error=str(exc)))

        self._history.append(
            action=HistoryAction.BULK_IMPORT,
            entity_type=EntityType.STUDENT,
            entity_id=BULK_ENTITY_ID,
            changes={"successCount": len(success), "failedCount": len(failed), "totalCount": len(items)},
        )
        return BulkStudentResult(success=success, failed=failed)

    def get_class_statistics(self) -> Sequence[ClassStatistics]:
        groups: dict[str, list[int]] = {}
        for s in self._students.list():
            total_active = groups.setdefault(s.class_name, [0, 0])
            total_active[0] += 1
            if s.active:
                total_active[1] += 1

        return [
            ClassStatistics(
                class_name=name,
                total_students=total,
                active_students=active,
                inactive_students=total - active,
            )
            for name, (total, active) in sorted(groups.items())
        ]

    @records_failure("Reorder roll numbers failed")
    def reorder_student_numbers(self, class_name: str) -> int:
        """Renumber the active students of a class 1..n by name, atomically."""

        class_name = require_non_empty(class_name, "class")
        students = sorted(self._students.list(class_name=class_name, active=True), key=lambda s: s.name)
        now = self._clock()

        with self._adapter.transaction(STUDENTS, HISTORY_LOGS):
            for index, student in enumerate(students, start=1):
                self._students.update(student.id, {"number": index, "updatedAt": now})
            self._history.append(
                action=HistoryAction.BULK_IMPORT,
                entity_type=EntityType.STUDENT,
                entity_id="reorder",
                changes={"className": class_name, "reorderedCount": len(students)},
                timestamp=now,
            )
        return len(students)
