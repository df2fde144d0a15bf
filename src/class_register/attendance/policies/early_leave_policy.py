from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from ...common.validators import require_int_in_range
from ...core.constants import DEFAULT_MAX_PERIODS, MAX_PERIOD, MIN_PERIOD
from ...core.enums import AttendanceStatus
from ..model import AttendanceEntry
from .base import EditPlan, EditPolicy, PlannedWrite


@dataclass(frozen=True)
class EarlyLeaveCascadePolicy(EditPolicy):
    """Leaving during ``from_period`` marks every later period of the day as early-leave.

    One entry per remaining period is written (not a day-level flag) so
    per-period reports stay accurate. Existing entries for those periods are
    overwritten.
    """

    from_period: int
    max_periods: int = DEFAULT_MAX_PERIODS
    reason: Optional[str] = None

    def __post_init__(self):
        require_int_in_range(self.from_period, "from period", MIN_PERIOD, MAX_PERIOD)
        require_int_in_range(self.max_periods, "max periods", MIN_PERIOD, MAX_PERIOD)

    @property
    def effective_reason(self) -> str:
        return self.reason or f"early leave after period {self.from_period}"

    def plan(self, existing: Sequence[AttendanceEntry]) -> EditPlan:
        writes = [
            PlannedWrite(period=period, status=AttendanceStatus.EARLY_LEAVE, reason=self.effective_reason)
            for period in range(self.from_period + 1, self.max_periods + 1)
        ]
        return EditPlan(writes=writes)
