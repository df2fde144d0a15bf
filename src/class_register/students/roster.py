"""CSV roster import/export.

Rows are ``number, name, className, grade``; the last two columns fall back
to caller-supplied defaults when empty or missing.
"""
from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from ..core.constants import BULK_ENTITY_ID, DEFAULT_GRADE
from ..core.enums import EntityType, HistoryAction
from ..core.exceptions import DomainError, ValidationError
from ..history.repository import HistoryRepository
from .model import Student, StudentInput
from .repository import StudentRepository
from .service import StudentService

logger = logging.getLogger(__name__)

ROSTER_FIELDS = ["number", "name", "className", "grade"]


@dataclass(frozen=True)
class RowFailure:
    row: int
    data: list[str]
    error: str


@dataclass(frozen=True)
class ImportSummary:
    total: int
    successful: int
    failed: int
    skipped: int


@dataclass(frozen=True)
class RosterImportResult:
    success: list[Student]
    failed: list[RowFailure]
    summary: ImportSummary


def _parse_int(value: Optional[str]) -> Optional[int]:
    try:
        return int((value or "").strip())
    except ValueError:
        return None


class RosterService:
    def __init__(self, service: StudentService, students: StudentRepository, history: HistoryRepository):
        self._service = service
        self._students = students
        self._history = history

    def _row_to_input(self, row: list[str], *, default_class_name: str, default_grade: int) -> StudentInput:
        if len(row) < 2:
            raise ValidationError("number and name are required")

        number = _parse_int(row[0])
        if number is None or number < 1:
            raise ValidationError(f"invalid roll number: {row[0]!r}")

        name = row[1].strip()
        if not name:
            raise ValidationError("name is required")

        class_name = (row[2].strip() if len(row) > 2 else "") or default_class_name
        if not class_name:
            raise ValidationError("class is missing")

        grade = _parse_int(row[3]) if len(row) > 3 else None
        return StudentInput(number=number, name=name, class_name=class_name, grade=grade or default_grade)

    def import_roster_csv(
        self,
        text: str,
        *,
        overwrite: bool = False,
        skip_header: bool = True,
        default_class_name: str = "",
        default_grade: int = DEFAULT_GRADE,
    ) -> RosterImportResult:
        """Import students row by row; bad rows are reported, never raised.

        A row whose (class, number) already belongs to an active student is
        skipped, or applied to that student when ``overwrite`` is set.
        """

        rows = [r for r in csv.reader(io.StringIO(text)) if any(cell.strip() for cell in r)]
        first_row = 1
        if skip_header and rows:
            rows = rows[1:]
            first_row = 2

        success: list[Student] = []
        failed: list[RowFailure] = []
        skipped = 0

        for offset, row in enumerate(rows):
            try:
                data = self._row_to_input(row, default_class_name=default_class_name, default_grade=default_grade)
                existing = self._students.find_active_by_number(data.class_name, data.number)
                if existing and not overwrite:
                    skipped += 1
                    continue
                if existing:
                    success.append(self._service.update_student(existing.id, name=data.name, grade=data.grade))
                else:
                    success.append(self._service.add_student(data))
            except DomainError as exc:
                failed.append(RowFailure(row=first_row + offset, data=list(row), error=str(exc)))

        summary = ImportSummary(total=len(rows), successful=len(success), failed=len(failed), skipped=skipped)
        self._history.append(
            action=HistoryAction.BULK_IMPORT,
            entity_type=EntityType.STUDENT,
            entity_id=BULK_ENTITY_ID,
            changes={
                "source": "csv",
                "totalCount": summary.total,
                "successCount": summary.successful,
                "failedCount": summary.failed,
                "skippedCount": summary.skipped,
            },
        )
        logger.info("Roster import: %d added/updated, %d failed, %d skipped", len(success), len(failed), skipped)
        return RosterImportResult(success=success, failed=failed, summary=summary)

    @staticmethod
    def export_roster_csv(students: Iterable[Student]) -> str:
        out = io.StringIO()
        writer = csv.DictWriter(out, fieldnames=ROSTER_FIELDS, lineterminator="\n")
        writer.writeheader()
        for s in students:
            row: dict[str, Any] = {"number": s.number, "name": s.name, "className": s.class_name, "grade": s.grade}
            writer.writerow(row)
        return out.getvalue()
