from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from ..attendance.model import AttendanceRecord
from ..core.enums import AttendanceStatus, Collection, ConditionType, DataFlag, EffectiveStatus
from ..employees.model import Employee
from ..leave.model import LeaveRequest
from ..requests.model import ConditionReport
from ..roster.model import RosterAssignment


@dataclass(frozen=True)
class WorkDuration:
    """Worked minutes for one record; `provisional` while measured against now."""

    minutes: int
    provisional: bool = False
    flags: frozenset[DataFlag] = frozenset()


@dataclass(frozen=True)
class DayInputs:
    """Everything the precedence rules look at for one employee-day.

    `unknown` names collections whose latest read failed; a rule that needs
    one of them cannot decide.
    """

    employee: Employee
    work_date: date
    assignment: Optional[RosterAssignment] = None
    leave: Optional[LeaveRequest] = None
    record: Optional[AttendanceRecord] = None
    condition: Optional[ConditionReport] = None
    unknown: frozenset[Collection] = frozenset()


@dataclass(frozen=True)
class DayStatus:
    employee_id: str
    employee_name: str
    work_date: date
    status: EffectiveStatus
    rule: str
    late_minutes: int = 0
    shift_name: Optional[str] = None
    shift_color: Optional[str] = None
    leave_type: Optional[str] = None
    hidden_attendance_status: Optional[AttendanceStatus] = None
    reported_condition: Optional[ConditionType] = None
    duration: Optional[WorkDuration] = None
    flags: frozenset[DataFlag] = field(default_factory=frozenset)


@dataclass(frozen=True)
class DailyStats:
    work_date: date
    total_employees: int
    present: int
    late: int
    on_break: int
    absent: int
    missing_punch: int
    on_leave: int
    off_day: int
    not_yet_clocked_in: int
    unknown: int
    attendance_rate: float
    total_overtime_hours: float

    @property
    def attendance_rate_percent(self) -> int:
        return int(round(self.attendance_rate * 100))


@dataclass(frozen=True)
class RangeStats:
    start: date
    end: date
    days: tuple[DailyStats, ...]

    @property
    def average_attendance_rate(self) -> float:
        if not self.days:
            return 0.0
        return sum(d.attendance_rate for d in self.days) / len(self.days)


@dataclass(frozen=True)
class DayBoard:
    """Derived view of one day for every active employee.

    `stats` is None when attendance is unknown; an empty day and a failed
    attendance read are never reported the same way.
    """

    work_date: date
    statuses: tuple[DayStatus, ...]
    stats: Optional[DailyStats]
    unknown_sources: frozenset[Collection]
    computed_at: datetime
