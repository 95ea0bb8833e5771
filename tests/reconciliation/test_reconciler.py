from datetime import date, datetime, time

from roster_reconciliation.attendance.model import AttendanceRecord
from roster_reconciliation.core.constants import UNKNOWN_SHIFT_NAME
from roster_reconciliation.core.enums import (
    AttendanceStatus,
    Collection,
    ConditionStatus,
    ConditionType,
    DataFlag,
    EffectiveStatus,
    RequestStatus,
    RosterStatus,
)
from roster_reconciliation.employees.model import Employee
from roster_reconciliation.leave.model import LeaveRequest
from roster_reconciliation.reconciliation.reconciler import compute_work_duration, derive_day_status
from roster_reconciliation.requests.model import ConditionReport
from roster_reconciliation.roster.model import RosterAssignment
from roster_reconciliation.shifts.model import Shift

DAY = date(2024, 3, 4)
EMP = Employee(employee_id="e1", name="Alice")
MORNING = Shift(shift_id="morning", shift_name="Morning", start_time=time(8, 0), end_time=time(16, 0))
ON_DUTY = RosterAssignment(
    employee_id="e1",
    work_date=DAY,
    status=RosterStatus.ON_DUTY,
    shift_id="morning",
    shift_name="Morning",
    shift_color="#3b82f6",
    start_time=time(8, 0),
    end_time=time(16, 0),
)
LATE_RECORD = AttendanceRecord(
    employee_id="e1",
    work_date=DAY,
    check_in_time=datetime(2024, 3, 4, 8, 12),
    check_out_time=None,
    status=AttendanceStatus.LATE,
    late_minutes=12,
)
LEAVE = LeaveRequest(
    request_id="l1",
    employee_id="e1",
    start_date=date(2024, 3, 1),
    end_date=date(2024, 3, 10),
    status=RequestStatus.APPROVED,
    leave_type="Annual",
)


def _record(check_in, check_out=None, *, work_date=DAY, break_duration=0, **kw):
    return AttendanceRecord(
        employee_id="e1",
        work_date=work_date,
        check_in_time=check_in,
        check_out_time=check_out,
        status=kw.pop("status", AttendanceStatus.PRESENT),
        break_duration=break_duration,
        **kw,
    )


def test_late_record_on_assigned_shift_is_late():
    now = datetime(2024, 3, 4, 10, 0)
    status = derive_day_status(EMP, DAY, ON_DUTY, None, LATE_RECORD, now=now)

    assert status.status == EffectiveStatus.LATE
    assert status.late_minutes == 12
    assert status.shift_name == "Morning"
    assert status.shift_color == "#3b82f6"


def test_approved_leave_hides_punch_but_keeps_it():
    now = datetime(2024, 3, 4, 10, 0)
    status = derive_day_status(EMP, DAY, ON_DUTY, LEAVE, LATE_RECORD, now=now)

    assert status.status == EffectiveStatus.ON_LEAVE
    assert status.rule == "approved_leave"
    assert status.leave_type == "Annual"
    assert status.hidden_attendance_status == AttendanceStatus.LATE


def test_leave_wins_for_every_combination_of_other_sources():
    now = datetime(2024, 3, 20, 9, 0)
    off = RosterAssignment(employee_id="e1", work_date=DAY, status=RosterStatus.OFF_DAY)
    for assignment in (None, ON_DUTY, off):
        for record in (None, LATE_RECORD):
            status = derive_day_status(EMP, DAY, assignment, LEAVE, record, now=now)
            assert status.status == EffectiveStatus.ON_LEAVE


def test_no_sources_past_day_is_absent_today_is_not_yet_clocked_in():
    assert derive_day_status(EMP, DAY, now=datetime(2024, 3, 5, 9, 0)).status == EffectiveStatus.ABSENT
    assert derive_day_status(EMP, DAY, now=datetime(2024, 3, 4, 23, 59)).status == EffectiveStatus.NOT_YET_CLOCKED_IN


def test_future_day_is_not_yet_clocked_in():
    status = derive_day_status(EMP, date(2024, 3, 8), now=datetime(2024, 3, 4, 9, 0))
    assert status.status == EffectiveStatus.NOT_YET_CLOCKED_IN


def test_on_duty_without_punch_in_past_is_absent():
    status = derive_day_status(EMP, DAY, ON_DUTY, now=datetime(2024, 3, 5, 9, 0))
    assert status.status == EffectiveStatus.ABSENT
    assert status.shift_name == "Morning"


def test_unknown_attendance_is_flagged_not_absent():
    status = derive_day_status(
        EMP,
        DAY,
        ON_DUTY,
        now=datetime(2024, 3, 5, 9, 0),
        unknown=frozenset({Collection.ATTENDANCE}),
    )
    assert status.status == EffectiveStatus.UNKNOWN
    assert DataFlag.SOURCE_UNKNOWN in status.flags


def test_deleted_shift_keeps_denormalized_name_and_flags_it():
    status = derive_day_status(EMP, DAY, ON_DUTY, now=datetime(2024, 3, 4, 9, 0), shifts={})
    assert status.shift_name == "Morning"
    assert DataFlag.SHIFT_NOT_FOUND in status.flags


def test_unresolvable_shift_gets_placeholder():
    bare = RosterAssignment(employee_id="e1", work_date=DAY, status=RosterStatus.ON_DUTY, shift_id="gone")
    status = derive_day_status(EMP, DAY, bare, now=datetime(2024, 3, 4, 9, 0), shifts={"morning": MORNING})
    assert status.shift_name == UNKNOWN_SHIFT_NAME
    assert DataFlag.SHIFT_NOT_FOUND in status.flags


def test_live_shift_is_not_rejoined_over_denormalized_copy():
    renamed = Shift(shift_id="morning", shift_name="Early", start_time=time(7, 0), end_time=time(15, 0))
    status = derive_day_status(EMP, DAY, ON_DUTY, now=datetime(2024, 3, 4, 9, 0), shifts={"morning": renamed})
    assert status.shift_name == "Morning"
    assert not status.flags


def test_sick_report_is_informational():
    report = ConditionReport(
        report_id="c1",
        employee_id="e1",
        employee_name="Alice",
        work_date=DAY,
        condition_type=ConditionType.SICK,
        status=ConditionStatus.ACKNOWLEDGED,
        created_at=datetime(2024, 3, 4, 7, 0),
    )
    status = derive_day_status(EMP, DAY, ON_DUTY, now=datetime(2024, 3, 5, 9, 0), condition=report)
    assert status.status == EffectiveStatus.ABSENT
    assert status.reported_condition == ConditionType.SICK


def test_duration_of_closed_record_subtracts_breaks():
    record = _record(datetime(2024, 3, 4, 8, 0), datetime(2024, 3, 4, 16, 30), break_duration=30)
    duration = compute_work_duration(record, now=datetime(2024, 3, 4, 20, 0))

    assert duration.minutes == 480
    assert duration.provisional is False
    assert duration.flags == frozenset()


def test_duration_of_open_record_is_provisional_against_now():
    record = _record(datetime(2024, 3, 4, 8, 0))
    duration = compute_work_duration(record, now=datetime(2024, 3, 4, 10, 15))

    assert duration.minutes == 135
    assert duration.provisional is True
    assert DataFlag.PROVISIONAL in duration.flags
    assert DataFlag.MISSING_PUNCH not in duration.flags


def test_open_record_from_previous_day_is_missing_punch():
    record = _record(datetime(2024, 3, 4, 8, 0))
    duration = compute_work_duration(record, now=datetime(2024, 3, 5, 8, 0))

    assert duration.minutes == 24 * 60
    assert DataFlag.MISSING_PUNCH in duration.flags
    assert DataFlag.PROVISIONAL in duration.flags


def test_checkout_before_checkin_is_clamped_and_flagged():
    record = _record(datetime(2024, 3, 4, 16, 0), datetime(2024, 3, 4, 8, 0))
    duration = compute_work_duration(record, now=datetime(2024, 3, 4, 20, 0))

    assert duration.minutes == 0
    assert DataFlag.NEGATIVE_DURATION in duration.flags


def test_ongoing_break_is_not_counted_as_work():
    record = _record(
        datetime(2024, 3, 4, 8, 0),
        status=AttendanceStatus.ON_BREAK,
        break_started_at=datetime(2024, 3, 4, 9, 30),
        resume_status=AttendanceStatus.PRESENT,
    )
    duration = compute_work_duration(record, now=datetime(2024, 3, 4, 10, 0))
    assert duration.minutes == 90


def test_long_break_is_flagged():
    record = _record(datetime(2024, 3, 4, 8, 0), datetime(2024, 3, 4, 17, 0), break_duration=75)
    duration = compute_work_duration(record, now=datetime(2024, 3, 4, 20, 0), max_break_minutes=60)
    assert DataFlag.BREAK_EXCEEDED in duration.flags


def test_day_status_carries_duration_flags():
    record = _record(datetime(2024, 3, 4, 8, 0))
    status = derive_day_status(EMP, DAY, ON_DUTY, None, record, now=datetime(2024, 3, 5, 9, 0))
    assert status.status == EffectiveStatus.PRESENT
    assert DataFlag.MISSING_PUNCH in status.flags
    assert status.duration is not None and status.duration.provisional
