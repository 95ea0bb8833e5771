from datetime import date, datetime, time

import pytest

from roster_reconciliation.attendance.service import AttendanceService
from roster_reconciliation.common.datetime_utils import FixedClock
from roster_reconciliation.core.enums import AttendanceStatus, Collection
from roster_reconciliation.core.exceptions import ActionFailedError, NotFoundError, ValidationError
from roster_reconciliation.requests.service import ConditionReportService
from roster_reconciliation.roster.service import AssignmentService
from roster_reconciliation.shifts.model import Shift

DAY = date(2024, 3, 4)
NEXT_DAY = date(2024, 3, 5)


def at(hour, minute=0, day=DAY):
    return datetime.combine(day, time(hour, minute))


@pytest.fixture
def conditions(store, clock):
    return ConditionReportService(store, clock=clock)


@pytest.fixture
def punches(store, clock, conditions):
    return AttendanceService(store, conditions=conditions, clock=clock, grace_minutes=0, daily_target_hours=8)


@pytest.fixture
def on_morning_shift(store):
    AssignmentService(store).set_assignment(employee_id="e1", work_date=DAY, choice="morning")


def test_checkin_twelve_minutes_after_shift_start_is_late(punches, on_morning_shift):
    record = punches.check_in("e1", now=at(8, 12))

    assert record.status == AttendanceStatus.LATE
    assert record.late_minutes == 12


def test_checkin_on_time(punches, on_morning_shift):
    record = punches.check_in("e1", now=at(7, 55))
    assert record.status == AttendanceStatus.PRESENT
    assert record.late_minutes == 0


def test_checkin_without_assignment_is_present(punches):
    record = punches.check_in("e2", now=at(11, 0))
    assert record.status == AttendanceStatus.PRESENT
    assert record.late_minutes == 0


def test_grace_period(store, clock, on_morning_shift):
    svc = AttendanceService(store, clock=clock, grace_minutes=5)
    assert svc.check_in("e1", now=at(8, 5)).status == AttendanceStatus.PRESENT


def test_acknowledged_late_report_is_not_flagged_late(punches, conditions, on_morning_shift):
    report = conditions.submit(employee_id="e1", work_date=DAY, condition_type="Late", estimated_arrival_time="09:30")
    conditions.acknowledge(report_id=report.report_id)

    record = punches.check_in("e1", now=at(9, 20))
    assert record.status == AttendanceStatus.PRESENT


def test_pending_late_report_does_not_excuse(punches, conditions, on_morning_shift):
    conditions.submit(employee_id="e1", work_date=DAY, condition_type="Late", estimated_arrival_time="09:30")
    record = punches.check_in("e1", now=at(9, 20))
    assert record.status == AttendanceStatus.LATE
    assert record.late_minutes == 80


def test_checkin_refusals(punches):
    with pytest.raises(NotFoundError):
        punches.check_in("ghost", now=at(8, 0))
    with pytest.raises(ValidationError):
        punches.check_in("e3", now=at(8, 0))

    punches.check_in("e1", now=at(8, 0))
    with pytest.raises(ValidationError):
        punches.check_in("e1", now=at(8, 30))


def test_break_restores_previous_status_and_accumulates(punches, on_morning_shift):
    punches.check_in("e1", now=at(8, 12))
    on_break = punches.start_break("e1", now=at(12, 0))
    assert on_break.status == AttendanceStatus.ON_BREAK

    with pytest.raises(ValidationError):
        punches.start_break("e1", now=at(12, 5))

    back = punches.end_break("e1", now=at(12, 45))
    assert back.status == AttendanceStatus.LATE
    assert back.break_duration == 45

    with pytest.raises(ValidationError):
        punches.end_break("e1", now=at(12, 50))


def test_checkout_overtime_against_shift_length(punches, on_morning_shift):
    punches.check_in("e1", now=at(8, 0))
    punches.start_break("e1", now=at(12, 0))
    punches.end_break("e1", now=at(12, 30))
    record = punches.check_out("e1", now=at(17, 0))

    # 9h on site - 30m break = 8h30 worked against an 8h shift
    assert record.overtime_minutes == 30
    assert record.early_leave_minutes == 0
    assert record.check_out_time == at(17, 0)


def test_checkout_while_on_break_closes_break(punches):
    punches.check_in("e2", now=at(8, 0))
    punches.start_break("e2", now=at(15, 0))
    record = punches.check_out("e2", now=at(15, 20))

    assert record.status == AttendanceStatus.PRESENT
    assert record.break_duration == 20
    assert record.overtime_minutes == 0


def test_early_leave_against_shift_end_and_authorized_departure(punches, conditions, on_morning_shift):
    punches.check_in("e1", now=at(8, 0))
    assert punches.check_out("e1", now=at(15, 0)).early_leave_minutes == 60


def test_authorized_departure_is_not_early_leave(store, punches, conditions, on_morning_shift):
    report = conditions.submit(employee_id="e1", work_date=DAY, condition_type="EarlyDeparture", departure_time="15:00")
    conditions.acknowledge(report_id=report.report_id)

    punches.check_in("e1", now=at(8, 0))
    assert punches.check_out("e1", now=at(15, 0)).early_leave_minutes == 0


def test_checkout_twice_is_refused(punches):
    punches.check_in("e2", now=at(8, 0))
    punches.check_out("e2", now=at(16, 0))
    with pytest.raises(ValidationError):
        punches.check_out("e2", now=at(16, 5))


@pytest.fixture
def on_night_shift(store):
    store.put_shift(Shift(shift_id="night", shift_name="Night", start_time=time(22, 0), end_time=time(6, 0), color="#1e293b"))
    AssignmentService(store).set_assignment(employee_id="e1", work_date=DAY, choice="night")


def test_overnight_shift_checks_out_after_midnight(punches, store, on_night_shift):
    punches.check_in("e1", now=at(22, 0))
    punches.start_break("e1", now=at(2, 0, day=NEXT_DAY))
    punches.end_break("e1", now=at(2, 30, day=NEXT_DAY))
    record = punches.check_out("e1", now=at(6, 30, day=NEXT_DAY))

    assert record.work_date == DAY
    assert record.check_out_time == at(6, 30, day=NEXT_DAY)
    assert record.break_duration == 30
    assert record.early_leave_minutes == 0
    assert record.overtime_minutes == 0
    assert store.get_attendance_record(employee_id="e1", work_date=NEXT_DAY) is None


def test_overnight_early_leave_measured_against_next_morning(punches, on_night_shift):
    punches.check_in("e1", now=at(22, 0))
    assert punches.check_out("e1", now=at(5, 0, day=NEXT_DAY)).early_leave_minutes == 60


def test_day_shift_left_open_is_not_closed_the_next_day(punches, on_morning_shift):
    punches.check_in("e1", now=at(8, 0))
    with pytest.raises(ValidationError):
        punches.check_out("e1", now=at(9, 0, day=NEXT_DAY))


def test_auto_clock_out_closes_only_stale_open_records(punches, store):
    punches.check_in("e1", now=at(8, 0))
    punches.check_in("e2", now=at(10, 0))

    closed = punches.auto_clock_out(DAY, now=at(17, 0))

    assert [r.employee_id for r in closed] == ["e1"]
    e1 = store.get_attendance_record(employee_id="e1", work_date=DAY)
    assert e1.status == AttendanceStatus.AUTO_CLOCK_OUT
    assert e1.check_out_time == at(16, 0)
    assert store.get_attendance_record(employee_id="e2", work_date=DAY).is_open
    # absent employees never get a record
    assert store.get_attendance_record(employee_id="e3", work_date=DAY) is None


def test_uses_clock_when_now_not_given(store):
    clock = FixedClock(at(8, 3))
    svc = AttendanceService(store, clock=clock)
    assert svc.check_in("e2").check_in_time == at(8, 3)


def test_store_failure_names_the_action(punches, store):
    store.fail(Collection.ATTENDANCE)
    with pytest.raises(ActionFailedError) as exc:
        punches.check_in("e1", now=at(8, 0))
    assert str(exc.value) == "could not record check-in"
