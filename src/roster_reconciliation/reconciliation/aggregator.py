from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, Mapping, Optional, Sequence

from ..attendance.model import AttendanceRecord
from ..core.enums import AttendanceStatus, Collection, ConditionStatus, EffectiveStatus
from ..core.exceptions import StoreUnavailableError, ValidationError
from ..common.datetime_utils import iter_days
from ..employees.model import Employee
from ..leave.model import LeaveRequest, approved_leave_for
from ..requests.model import ConditionReport
from ..roster.model import RosterAssignment
from ..shifts.model import Shift
from .model import DailyStats, DayStatus, RangeStats
from .reconciler import derive_day_status


def index_by_employee(records: Iterable, work_date: date) -> dict[str, object]:
    """Records of one day keyed by employee id (roster or attendance)."""
    return {r.employee_id: r for r in records if r.work_date == work_date}


def conditions_by_employee(reports: Iterable[ConditionReport], work_date: date) -> dict[str, ConditionReport]:
    """Newest non-rejected condition report per employee for the day."""
    out: dict[str, ConditionReport] = {}
    for report in reports:
        if report.work_date != work_date or report.status == ConditionStatus.REJECTED:
            continue
        current = out.get(report.employee_id)
        if current is None or report.created_at > current.created_at:
            out[report.employee_id] = report
    return out


def derive_statuses(
    employees: Sequence[Employee],
    day_records: Mapping[str, AttendanceRecord],
    *,
    work_date: date,
    now: datetime,
    roster: Optional[Mapping[str, RosterAssignment]] = None,
    leaves: Iterable[LeaveRequest] = (),
    conditions: Optional[Mapping[str, ConditionReport]] = None,
    unknown: frozenset[Collection] = frozenset(),
    shifts: Optional[Mapping[str, Shift]] = None,
    max_break_minutes: Optional[int] = None,
) -> list[DayStatus]:
    roster = roster or {}
    conditions = conditions or {}
    leaves = list(leaves)
    return [
        derive_day_status(
            e,
            work_date,
            roster.get(e.employee_id),
            approved_leave_for(leaves, e.employee_id, work_date),
            day_records.get(e.employee_id),
            now=now,
            condition=conditions.get(e.employee_id),
            unknown=unknown,
            max_break_minutes=max_break_minutes,
            shifts=shifts,
        )
        for e in employees
    ]


def summarize(
    employees: Sequence[Employee],
    day_records: Mapping[str, AttendanceRecord],
    *,
    work_date: date,
    now: datetime,
    roster: Optional[Mapping[str, RosterAssignment]] = None,
    leaves: Iterable[LeaveRequest] = (),
    unknown: frozenset[Collection] = frozenset(),
    statuses: Optional[Sequence[DayStatus]] = None,
) -> DailyStats:
    """Fleet-wide counts for one day.

    Pure: the same inputs always give the same DailyStats. Absent counts only
    employees derived as Absent, so Off Day, On Leave and today's
    not-yet-clocked-in employees stay out of it. Raises StoreUnavailableError
    when attendance is unknown.
    """
    if Collection.ATTENDANCE in unknown:
        raise StoreUnavailableError(Collection.ATTENDANCE)

    if statuses is None:
        statuses = derive_statuses(
            employees,
            day_records,
            work_date=work_date,
            now=now,
            roster=roster,
            leaves=leaves,
            unknown=unknown,
        )

    counts: dict[EffectiveStatus, int] = {}
    for s in statuses:
        counts[s.status] = counts.get(s.status, 0) + 1

    active_ids = {e.employee_id for e in employees}
    records = [r for eid, r in day_records.items() if eid in active_ids]

    total = len(employees)
    present = counts.get(EffectiveStatus.PRESENT, 0) + counts.get(EffectiveStatus.LATE, 0)
    missing_punch = sum(
        1 for r in records if r.check_out_time is None and r.status != AttendanceStatus.ON_BREAK
    )
    overtime_minutes = sum(r.overtime_minutes for r in records)

    return DailyStats(
        work_date=work_date,
        total_employees=total,
        present=present,
        late=counts.get(EffectiveStatus.LATE, 0),
        on_break=counts.get(EffectiveStatus.ON_BREAK, 0),
        absent=counts.get(EffectiveStatus.ABSENT, 0),
        missing_punch=missing_punch,
        on_leave=counts.get(EffectiveStatus.ON_LEAVE, 0),
        off_day=counts.get(EffectiveStatus.OFF_DAY, 0),
        not_yet_clocked_in=counts.get(EffectiveStatus.NOT_YET_CLOCKED_IN, 0),
        unknown=counts.get(EffectiveStatus.UNKNOWN, 0),
        attendance_rate=(present / total) if total else 0.0,
        total_overtime_hours=round(overtime_minutes / 60, 1),
    )


def summarize_range(
    employees: Sequence[Employee],
    attendance: Iterable[AttendanceRecord],
    *,
    start: date,
    end: date,
    now: datetime,
    rosters: Iterable[RosterAssignment] = (),
    leaves: Iterable[LeaveRequest] = (),
    unknown: frozenset[Collection] = frozenset(),
) -> RangeStats:
    if end < start:
        raise ValidationError("end date must not be before start date")

    attendance = list(attendance)
    rosters = list(rosters)
    leaves = list(leaves)
    days = tuple(
        summarize(
            employees,
            index_by_employee(attendance, day),
            work_date=day,
            now=now,
            roster=index_by_employee(rosters, day),
            leaves=leaves,
            unknown=unknown,
        )
        for day in iter_days(start, end)
    )
    return RangeStats(start=start, end=end, days=days)
