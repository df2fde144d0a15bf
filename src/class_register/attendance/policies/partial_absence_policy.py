from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from ...common.validators import require_int_in_range
from ...core.constants import MAX_PERIOD, MIN_PERIOD, PARTIAL_ABSENCE_MAX_PERIODS, PARTIAL_ABSENCE_REASON
from ...core.enums import AttendanceStatus
from ..model import AttendanceEntry
from .base import EditPlan, EditPolicy, PlannedWrite


@dataclass(frozen=True)
class PartialAbsencePolicy(EditPolicy):
    """Student attended only ``present_periods``: fill the other periods with absences.

    A whole-day absence is superseded and removed. Periods that already carry
    any entry (e.g. a documented late arrival) are left untouched.
    """

    present_periods: frozenset[int]
    max_periods: int = PARTIAL_ABSENCE_MAX_PERIODS

    @classmethod
    def attending(cls, periods: Iterable[int], max_periods: int = PARTIAL_ABSENCE_MAX_PERIODS) -> "PartialAbsencePolicy":
        checked = frozenset(require_int_in_range(p, "present period", MIN_PERIOD, MAX_PERIOD) for p in periods)
        return cls(present_periods=checked, max_periods=max_periods)

    def plan(self, existing: Sequence[AttendanceEntry]) -> EditPlan:
        removals = [e for e in existing if e.period is None and e.status == AttendanceStatus.ABSENT]
        covered = {e.period for e in existing if e.period is not None}

        writes = [
            PlannedWrite(period=period, status=AttendanceStatus.ABSENT, reason=PARTIAL_ABSENCE_REASON)
            for period in range(1, self.max_periods + 1)
            if period not in self.present_periods and period not in covered
        ]
        return EditPlan(removals=removals, writes=writes)
