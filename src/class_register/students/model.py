from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Mapping


@dataclass(frozen=True)
class Student:
    """Domain entity: a student on the class roster.

    Withdrawn or transferred students are kept with ``active=False``; they are
    never hard-deleted by normal roster work.
    """

    id: str
    number: int
    name: str
    class_name: str
    grade: int
    active: bool
    created_at: int
    updated_at: int

    def to_record(self) -> dict:
        return {
            "id": self.id,
            "number": self.number,
            "name": self.name,
            "className": self.class_name,
            "grade": self.grade,
            "active": self.active,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_record(cls, r: Mapping[str, Any]) -> "Student":
        return cls(
            id=str(r["id"]),
            number=int(r["number"]),
            name=r["name"],
            class_name=r["className"],
            grade=int(r["grade"]),
            active=bool(r.get("active", True)),
            created_at=int(r.get("createdAt") or 0),
            updated_at=int(r.get("updatedAt") or 0),
        )


@dataclass(frozen=True)
class StudentInput:
    number: int
    name: str
    class_name: str
    grade: int
    active: bool = True

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class ClassStatistics:
    class_name: str
    total_students: int
    active_students: int
    inactive_students: int


@dataclass(frozen=True)
class StudentFailure:
    input: Any
    error: str


@dataclass(frozen=True)
class BulkStudentResult:
    success: list[Student]
    failed: list[StudentFailure]
