from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Mapping, Optional

from ..attendance.model import AttendanceRecord
from ..core.constants import UNKNOWN_SHIFT_NAME
from ..core.enums import Collection, ConditionStatus, DataFlag, EffectiveStatus
from ..common.datetime_utils import minutes_between
from ..employees.model import Employee
from ..leave.model import LeaveRequest
from ..requests.model import ConditionReport
from ..roster.model import RosterAssignment
from ..shifts.model import Shift
from .model import DayInputs, DayStatus, WorkDuration
from .rules import evaluate

logger = logging.getLogger(__name__)


def compute_work_duration(
    record: AttendanceRecord,
    *,
    now: datetime,
    max_break_minutes: Optional[int] = None,
) -> WorkDuration:
    """Worked minutes: (check-out or now) - check-in - breaks.

    An open record is measured against `now` and marked provisional; if its day
    is already over it is also a missing punch. A negative result (check-out
    before check-in) is clamped to zero and flagged.
    """
    if record.check_in_time is None:
        return WorkDuration(minutes=0)

    flags: set[DataFlag] = set()
    end = record.check_out_time or now
    elapsed = minutes_between(record.check_in_time, end)

    break_minutes = record.break_duration
    if record.check_out_time is None and record.break_started_at is not None:
        break_minutes += max(0, minutes_between(record.break_started_at, now))

    provisional = record.check_out_time is None
    if provisional:
        flags.add(DataFlag.PROVISIONAL)
        if record.work_date < now.date():
            flags.add(DataFlag.MISSING_PUNCH)

    minutes = elapsed - break_minutes
    if minutes < 0:
        logger.debug(
            "Negative work duration for %s on %s (%s min), clamped to 0",
            record.employee_id,
            record.work_date,
            minutes,
        )
        flags.add(DataFlag.NEGATIVE_DURATION)
        minutes = 0

    if max_break_minutes is not None and break_minutes > max_break_minutes:
        flags.add(DataFlag.BREAK_EXCEEDED)

    return WorkDuration(minutes=minutes, provisional=provisional, flags=frozenset(flags))


def _shift_display(
    assignment: Optional[RosterAssignment],
    shifts: Optional[Mapping[str, Shift]],
) -> tuple[Optional[str], Optional[str], bool]:
    """Name and color shown for the day's shift, and whether it failed to resolve.

    The assignment's own copy wins over the live Shift; a past roster keeps the
    shift as it was when assigned.
    """
    if assignment is None or assignment.is_off_day:
        return None, None, False

    missing = False
    name = assignment.shift_name
    color = assignment.shift_color
    if assignment.shift_id and shifts is not None and assignment.shift_id not in shifts:
        missing = True
    if not name:
        live = shifts.get(assignment.shift_id) if (shifts is not None and assignment.shift_id) else None
        if live is not None:
            name, color = live.shift_name, color or live.color
        else:
            missing = True
    if missing and not name:
        name = UNKNOWN_SHIFT_NAME
    return name, color, missing


def derive_day_status(
    employee: Employee,
    work_date: date,
    roster_assignment: Optional[RosterAssignment] = None,
    approved_leave: Optional[LeaveRequest] = None,
    attendance_record: Optional[AttendanceRecord] = None,
    *,
    now: datetime,
    condition: Optional[ConditionReport] = None,
    unknown: frozenset[Collection] = frozenset(),
    max_break_minutes: Optional[int] = None,
    shifts: Optional[Mapping[str, Shift]] = None,
) -> DayStatus:
    """Single effective status of one employee on one day.

    Precedence: approved leave > punch record > roster off day > absence
    (past days) > not yet clocked in. A punch hidden by leave is kept on
    `hidden_attendance_status`.
    """
    inputs = DayInputs(
        employee=employee,
        work_date=work_date,
        assignment=roster_assignment,
        leave=approved_leave,
        record=attendance_record,
        condition=condition,
        unknown=frozenset(unknown),
    )
    status, rule = evaluate(inputs, now.date())

    flags: set[DataFlag] = set()
    if status == EffectiveStatus.UNKNOWN:
        flags.add(DataFlag.SOURCE_UNKNOWN)

    shift_name, shift_color, shift_missing = _shift_display(roster_assignment, shifts)
    if shift_missing:
        flags.add(DataFlag.SHIFT_NOT_FOUND)

    duration = None
    late_minutes = 0
    hidden = None
    if attendance_record is not None and Collection.ATTENDANCE not in unknown:
        duration = compute_work_duration(attendance_record, now=now, max_break_minutes=max_break_minutes)
        flags.update(duration.flags)
        late_minutes = attendance_record.late_minutes
        if status == EffectiveStatus.ON_LEAVE:
            hidden = attendance_record.status

    reported = None
    if condition is not None and condition.status != ConditionStatus.REJECTED:
        reported = condition.condition_type

    return DayStatus(
        employee_id=employee.employee_id,
        employee_name=employee.name,
        work_date=work_date,
        status=status,
        rule=rule,
        late_minutes=late_minutes,
        shift_name=shift_name,
        shift_color=shift_color,
        leave_type=approved_leave.leave_type if status == EffectiveStatus.ON_LEAVE and approved_leave else None,
        hidden_attendance_status=hidden,
        reported_condition=reported,
        duration=duration,
        flags=frozenset(flags),
    )
