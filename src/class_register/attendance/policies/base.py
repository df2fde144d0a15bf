from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional, Sequence

from ...core.enums import AttendanceStatus
from ..model import AttendanceEntry


@dataclass(frozen=True)
class PlannedWrite:
    period: Optional[int]
    status: AttendanceStatus
    reason: Optional[str] = None


@dataclass(frozen=True)
class EditPlan:
    """What a policy wants done to one student's day: removals first, then writes."""

    removals: list[AttendanceEntry] = field(default_factory=list)
    writes: list[PlannedWrite] = field(default_factory=list)


class EditPolicy(ABC):
    """Strategy Pattern: encapsulate one bulk-editing rule for a student's day."""

    @abstractmethod
    def plan(self, existing: Sequence[AttendanceEntry]) -> EditPlan:
        raise NotImplementedError
