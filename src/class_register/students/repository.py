from __future__ import annotations

from typing import Optional, Sequence

from ..storage.adapter import STUDENTS, PersistenceAdapter
from .model import Student


class StudentRepository:
    def __init__(self, adapter: PersistenceAdapter):
        self._adapter = adapter

    def get_by_id(self, student_id: str) -> Optional[Student]:
        record = self._adapter.get(STUDENTS, student_id)
        return Student.from_record(record) if record else None

    def find_active_by_number(
        self, class_name: str, number: int, *, exclude_id: Optional[str] = None
    ) -> Optional[Student]:
        rows = self._adapter.query(
            STUDENTS,
            where={"className": class_name, "number": int(number), "active": True},
            predicate=(lambda r: r["id"] != exclude_id) if exclude_id else None,
        )
        return Student.from_record(rows[0]) if rows else None

    def list(self, *, class_name: Optional[str] = None, active: Optional[bool] = None) -> Sequence[Student]:
        where: dict = {}
        if class_name is not None:
            where["className"] = class_name
        if active is not None:
            where["active"] = bool(active)
        return [Student.from_record(r) for r in self._adapter.query(STUDENTS, where=where or None)]

    def create(self, student: Student) -> Student:
        self._adapter.insert(STUDENTS, student.to_record())
        return student

    def update(self, student_id: str, fields: dict) -> Student:
        record = self._adapter.update(STUDENTS, student_id, fields)
        return Student.from_record(record)

    def delete_by_id(self, student_id: str) -> bool:
        return self._adapter.delete(STUDENTS, student_id)
