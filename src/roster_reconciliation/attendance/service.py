from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Optional

from ..common.actions import store_action
from ..common.datetime_utils import Clock, SystemClock, minutes_between
from ..core.constants import DEFAULT_DAILY_TARGET_HOURS, DEFAULT_LATE_GRACE_MINUTES
from ..core.enums import AttendanceStatus, Collection
from ..core.exceptions import NotFoundError, ValidationError
from ..requests.model import PreAuthorization
from ..requests.service import ConditionReportService
from ..roster.model import RosterAssignment
from ..store.base import RecordStore
from .factory import AttendanceStrategyFactory
from .model import AttendanceRecord

logger = logging.getLogger(__name__)


def _shift_window(work_date: date, assignment: RosterAssignment) -> tuple[datetime, datetime]:
    start = datetime.combine(work_date, assignment.start_time)
    end = datetime.combine(work_date, assignment.end_time)
    if end <= start:
        end += timedelta(days=1)
    return start, end


def _is_overnight(assignment: Optional[RosterAssignment]) -> bool:
    return (
        assignment is not None
        and assignment.has_shift
        and assignment.start_time is not None
        and assignment.end_time is not None
        and assignment.end_time <= assignment.start_time
    )


class AttendanceService:
    """Punch write path: check-in, breaks, check-out and the daily auto clock-out."""

    def __init__(
        self,
        store: RecordStore,
        *,
        conditions: Optional[ConditionReportService] = None,
        strategy_factory: Optional[AttendanceStrategyFactory] = None,
        clock: Optional[Clock] = None,
        grace_minutes: int = DEFAULT_LATE_GRACE_MINUTES,
        daily_target_hours: float = DEFAULT_DAILY_TARGET_HOURS,
    ):
        self._store = store
        self._conditions = conditions
        self._factory = strategy_factory or AttendanceStrategyFactory()
        self._clock = clock or SystemClock()
        self._grace_minutes = int(grace_minutes)
        self._daily_target_minutes = int(float(daily_target_hours) * 60)

    def _pre_authorization(self, employee_id: str, work_date: date) -> Optional[PreAuthorization]:
        if self._conditions is None:
            return None
        return self._conditions.pre_authorization(employee_id=employee_id, work_date=work_date)

    def _open_record(self, employee_id: str, now: datetime) -> AttendanceRecord:
        """Return the record to punch against at ``now``.

        Today's record wins. An overnight shift started yesterday keeps its record
        open past midnight, so that record is used when today has none.
        """
        today = now.date()
        record = self._store.get_attendance_record(employee_id=employee_id, work_date=today)
        if not record:
            record = self._overnight_record(employee_id, today - timedelta(days=1))
        if not record:
            raise ValidationError("No check-in recorded today")
        if record.check_out_time is not None:
            raise ValidationError("Already checked out today")
        return record

    def _overnight_record(self, employee_id: str, yesterday: date) -> Optional[AttendanceRecord]:
        assignment = self._store.get_roster_assignment(employee_id=employee_id, work_date=yesterday)
        if not _is_overnight(assignment):
            return None
        record = self._store.get_attendance_record(employee_id=employee_id, work_date=yesterday)
        if record is None or record.check_out_time is not None:
            return None
        return record

    def check_in(self, employee_id: str, *, now: Optional[datetime] = None) -> AttendanceRecord:
        now = now or self._clock.now()
        today = now.date()

        with store_action("record check-in"):
            employee = self._store.get_employee(employee_id)
            if not employee:
                raise NotFoundError("Employee", employee_id)
            if not employee.is_active:
                raise ValidationError(f"Cannot check in while status is {employee.status.value}")

            if self._store.get_attendance_record(employee_id=employee_id, work_date=today):
                raise ValidationError("Already checked in today")

            assignment = self._store.get_roster_assignment(employee_id=employee_id, work_date=today)
            expected_start = self._factory.expected_start(
                today=today,
                assignment=assignment,
                pre_authorization=self._pre_authorization(employee_id, today),
            )
            strategy = self._factory.for_checkin(now=now, expected_start=expected_start, grace_minutes=self._grace_minutes)
            decision = strategy.decide_checkin(
                now=now,
                expected_start=expected_start,
                late_minutes=self._factory.late_minutes(now=now, expected_start=expected_start),
            )

            record = AttendanceRecord(
                employee_id=employee_id,
                employee_name=employee.name,
                work_date=today,
                check_in_time=now,
                check_out_time=None,
                status=decision.status,
                late_minutes=decision.late_minutes,
            )
            self._store.put_attendance_record(record)

        logger.info("%s checked in at %s (%s)", employee_id, now.strftime("%H:%M"), record.status.value)
        return record

    def start_break(self, employee_id: str, *, now: Optional[datetime] = None) -> AttendanceRecord:
        now = now or self._clock.now()

        with store_action("start break"):
            record = self._open_record(employee_id, now)
            if record.status == AttendanceStatus.ON_BREAK:
                raise ValidationError("Break already started")

            record = replace(
                record,
                status=AttendanceStatus.ON_BREAK,
                break_started_at=now,
                resume_status=record.status,
            )
            self._store.put_attendance_record(record)
        return record

    def end_break(self, employee_id: str, *, now: Optional[datetime] = None) -> AttendanceRecord:
        now = now or self._clock.now()

        with store_action("end break"):
            record = self._open_record(employee_id, now)
            if record.status != AttendanceStatus.ON_BREAK:
                raise ValidationError("No break in progress")

            record = self._close_break(record, now)
            self._store.put_attendance_record(record)
        return record

    @staticmethod
    def _close_break(record: AttendanceRecord, now: datetime) -> AttendanceRecord:
        if record.status != AttendanceStatus.ON_BREAK:
            return record
        taken = max(0, minutes_between(record.break_started_at, now)) if record.break_started_at else 0
        return replace(
            record,
            status=record.resume_status or AttendanceStatus.PRESENT,
            break_duration=record.break_duration + taken,
            break_started_at=None,
            resume_status=None,
        )

    def check_out(self, employee_id: str, *, now: Optional[datetime] = None) -> AttendanceRecord:
        now = now or self._clock.now()

        with store_action("record check-out"):
            record = self._close_break(self._open_record(employee_id, now), now)
            work_date = record.work_date
            assignment = self._store.get_roster_assignment(employee_id=employee_id, work_date=work_date)
            pre_auth = self._pre_authorization(employee_id, work_date)

            record = replace(
                record,
                check_out_time=now,
                overtime_minutes=self._overtime_minutes(record, now, assignment),
                early_leave_minutes=self._early_leave_minutes(work_date, now, assignment, pre_auth),
            )
            self._store.put_attendance_record(record)

        logger.info("%s checked out at %s", employee_id, now.strftime("%H:%M"))
        return record

    def _overtime_minutes(self, record: AttendanceRecord, check_out: datetime, assignment: Optional[RosterAssignment]) -> int:
        if record.check_in_time is None:
            return 0
        worked = minutes_between(record.check_in_time, check_out) - record.break_duration
        expected = self._daily_target_minutes
        if assignment is not None and assignment.has_shift and assignment.end_time is not None:
            start, end = _shift_window(record.work_date, assignment)
            expected = minutes_between(start, end)
        return max(0, worked - expected)

    @staticmethod
    def _early_leave_minutes(
        work_date: date,
        check_out: datetime,
        assignment: Optional[RosterAssignment],
        pre_auth: Optional[PreAuthorization],
    ) -> int:
        if assignment is None or not assignment.has_shift or assignment.end_time is None:
            return 0
        start, end = _shift_window(work_date, assignment)
        if pre_auth is not None and pre_auth.departure_time is not None:
            end = datetime.combine(work_date, pre_auth.departure_time)
            if end < start:
                end += timedelta(days=1)
        if check_out < end:
            return minutes_between(check_out, end)
        return 0

    def auto_clock_out(self, work_date: date, *, now: Optional[datetime] = None) -> list[AttendanceRecord]:
        """Close records still open a full target workday after check-in.

        Employees without a check-in get no record; absence stays the absence
        of a record.
        """
        now = now or self._clock.now()
        closed: list[AttendanceRecord] = []

        with store_action("auto clock-out"):
            records = self._store.get_snapshot(Collection.ATTENDANCE).require()
            for record in records:
                if record.work_date != work_date or not record.is_open or record.check_in_time is None:
                    continue
                clock_out_at = record.check_in_time + timedelta(minutes=self._daily_target_minutes)
                if now < clock_out_at:
                    continue

                updated = replace(
                    self._close_break(record, clock_out_at),
                    check_out_time=clock_out_at,
                    status=AttendanceStatus.AUTO_CLOCK_OUT,
                )
                self._store.put_attendance_record(updated)
                closed.append(updated)

        logger.info("Auto clock-out for %s closed %d record(s)", work_date.isoformat(), len(closed))
        return closed
