from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from datetime import date, datetime
from typing import Any, Callable, Optional, Sequence

import mysql.connector

from ..attendance.model import AttendanceRecord
from ..common.datetime_utils import now_local
from ..core.constants import DEFAULT_SHIFT_COLOR
from ..core.enums import (
    AttendanceStatus,
    Collection,
    ConditionStatus,
    ConditionType,
    EmployeeStatus,
    RequestStatus,
    RosterStatus,
)
from ..core.exceptions import StoreUnavailableError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import all_rows, db_cursor, first_row, to_time
from ..employees.model import Employee
from ..leave.model import LeaveRequest
from ..requests.model import ConditionReport, ShiftSwapRequest
from ..roster.model import RosterAssignment
from ..shifts.model import Shift
from .base import CollectionSnapshot, ErrorCallback, SnapshotCallback, Subscription

logger = logging.getLogger(__name__)


def _employee(r: dict) -> Employee:
    return Employee(
        employee_id=str(r["employee_id"]),
        name=r["name"],
        status=EmployeeStatus(r["status"]),
        shift_id=r.get("shift_id"),
        department=r.get("department"),
    )


def _shift(r: dict) -> Shift:
    return Shift(
        shift_id=str(r["shift_id"]),
        shift_name=r["shift_name"],
        start_time=to_time(r["start_time"]),
        end_time=to_time(r["end_time"]),
        color=r.get("color") or DEFAULT_SHIFT_COLOR,
    )


def _roster(r: dict) -> RosterAssignment:
    return RosterAssignment(
        employee_id=str(r["employee_id"]),
        work_date=r["work_date"],
        status=RosterStatus(r["status"]),
        employee_name=r.get("employee_name"),
        shift_id=r.get("shift_id"),
        shift_name=r.get("shift_name"),
        shift_color=r.get("shift_color"),
        start_time=to_time(r.get("start_time")),
        end_time=to_time(r.get("end_time")),
    )


def _leave(r: dict) -> LeaveRequest:
    return LeaveRequest(
        request_id=str(r["request_id"]),
        employee_id=str(r["employee_id"]),
        start_date=r["start_date"],
        end_date=r["end_date"],
        status=RequestStatus(r["status"]),
        leave_type=r.get("leave_type") or "Annual",
        employee_name=r.get("employee_name"),
    )


def _attendance(r: dict) -> AttendanceRecord:
    resume = r.get("resume_status")
    return AttendanceRecord(
        employee_id=str(r["employee_id"]),
        work_date=r["work_date"],
        check_in_time=r.get("check_in_time"),
        check_out_time=r.get("check_out_time"),
        status=AttendanceStatus(r["status"]),
        late_minutes=int(r.get("late_minutes") or 0),
        break_duration=int(r.get("break_duration") or 0),
        overtime_minutes=int(r.get("overtime_minutes") or 0),
        early_leave_minutes=int(r.get("early_leave_minutes") or 0),
        break_started_at=r.get("break_started_at"),
        resume_status=AttendanceStatus(resume) if resume else None,
        employee_name=r.get("employee_name"),
    )


def _swap(r: dict) -> ShiftSwapRequest:
    return ShiftSwapRequest(
        request_id=str(r["request_id"]),
        requester_id=str(r["requester_id"]),
        requester_name=r["requester_name"],
        work_date=r["work_date"],
        shift_name=r["shift_name"],
        reason=r["reason"],
        status=RequestStatus(r["status"]),
        created_at=r["created_at"],
        shift_id=r.get("shift_id"),
        reviewed_at=r.get("reviewed_at"),
        reviewed_by=r.get("reviewed_by"),
        admin_note=r.get("admin_note"),
    )


def _condition(r: dict) -> ConditionReport:
    return ConditionReport(
        report_id=str(r["report_id"]),
        employee_id=str(r["employee_id"]),
        employee_name=r["employee_name"],
        work_date=r["work_date"],
        condition_type=ConditionType(r["condition_type"]),
        status=ConditionStatus(r["status"]),
        created_at=r["created_at"],
        reason=r.get("reason"),
        attachment_url=r.get("attachment_url"),
        estimated_arrival_time=to_time(r.get("estimated_arrival_time")),
        departure_time=to_time(r.get("departure_time")),
        acknowledged_at=r.get("acknowledged_at"),
        reviewed_by=r.get("reviewed_by"),
    )


_TABLES: dict[Collection, tuple[str, str, Callable[[dict], Any]]] = {
    Collection.EMPLOYEES: ("employees", "employee_id", _employee),
    Collection.SHIFTS: ("shifts", "shift_id", _shift),
    Collection.ROSTERS: ("roster_assignments", "work_date, employee_id", _roster),
    Collection.LEAVE_REQUESTS: ("leave_requests", "start_date, request_id", _leave),
    Collection.ATTENDANCE: ("attendance_records", "work_date, employee_id", _attendance),
    Collection.SWAP_REQUESTS: ("shift_swap_requests", "created_at DESC", _swap),
    Collection.CONDITION_REPORTS: ("condition_reports", "created_at DESC", _condition),
}


class MySQLRecordStore:
    """MySQL-backed record store for one organization.

    MySQL cannot push changes, so subscribers are notified after writes made
    through this adapter and whenever `refresh()` re-reads the collections.
    """

    def __init__(self, conn_factory: DatabaseConnection, *, organization_id: str):
        self._conn_factory = conn_factory
        self._org = str(organization_id)
        self._lock = threading.Lock()
        self._subscribers: dict[Collection, list[Subscription]] = {c: [] for c in Collection}

    @contextmanager
    def _cursor(self, collection: Collection):
        try:
            with db_cursor(self._conn_factory) as (conn, cur):
                yield conn, cur
        except mysql.connector.Error as e:
            logger.warning("MySQL error on %s: %s", collection.value, e)
            raise StoreUnavailableError(collection, e) from e

    # -------- subscriptions --------
    def subscribe(
        self,
        collection: Collection,
        on_snapshot: SnapshotCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Subscription:
        sub = Subscription(collection=collection, on_snapshot=on_snapshot, on_error=on_error, _release=self._release)
        with self._lock:
            self._subscribers[collection].append(sub)
        sub.deliver(self.get_snapshot(collection))
        return sub

    def _release(self, sub: Subscription) -> None:
        with self._lock:
            subs = self._subscribers[sub.collection]
            if sub in subs:
                subs.remove(sub)

    def _notify(self, collection: Collection) -> None:
        with self._lock:
            subs = list(self._subscribers[collection])
        if not subs:
            return
        snapshot = self.get_snapshot(collection)
        for sub in subs:
            try:
                sub.deliver(snapshot)
            except Exception:
                logger.exception("Subscriber to %s failed", collection.value)

    def refresh(self) -> None:
        """Re-read every subscribed collection and push the snapshots."""
        for collection in Collection:
            self._notify(collection)

    def get_snapshot(self, collection: Collection) -> CollectionSnapshot:
        table, order_by, mapper = _TABLES[collection]
        try:
            with self._cursor(collection) as (_, cur):
                cur.execute(f"SELECT * FROM {table} WHERE organization_id=%s ORDER BY {order_by}", (self._org,))
                records = tuple(mapper(r) for r in all_rows(cur))
        except StoreUnavailableError as e:
            return CollectionSnapshot(collection=collection, error=e.cause or e, received_at=now_local())
        return CollectionSnapshot(collection=collection, records=records, received_at=now_local())

    def _select_one(self, collection: Collection, where: str, params: tuple):
        table, _, mapper = _TABLES[collection]
        with self._cursor(collection) as (_, cur):
            cur.execute(f"SELECT * FROM {table} WHERE organization_id=%s AND {where}", (self._org, *params))
            r = first_row(cur)
            return mapper(r) if r else None

    # -------- single-path reads --------
    def get_employee(self, employee_id: str) -> Optional[Employee]:
        return self._select_one(Collection.EMPLOYEES, "employee_id=%s", (employee_id,))

    def get_shift(self, shift_id: str) -> Optional[Shift]:
        return self._select_one(Collection.SHIFTS, "shift_id=%s", (shift_id,))

    def get_roster_assignment(self, *, employee_id: str, work_date: date) -> Optional[RosterAssignment]:
        return self._select_one(Collection.ROSTERS, "work_date=%s AND employee_id=%s", (work_date, employee_id))

    def get_attendance_record(self, *, employee_id: str, work_date: date) -> Optional[AttendanceRecord]:
        return self._select_one(Collection.ATTENDANCE, "work_date=%s AND employee_id=%s", (work_date, employee_id))

    def list_leave_requests(self, *, employee_id: Optional[str] = None) -> Sequence[LeaveRequest]:
        clauses = ["organization_id=%s"]
        params: list[object] = [self._org]
        if employee_id is not None:
            clauses.append("employee_id=%s")
            params.append(employee_id)
        where = " AND ".join(clauses)
        with self._cursor(Collection.LEAVE_REQUESTS) as (_, cur):
            cur.execute(f"SELECT * FROM leave_requests WHERE {where} ORDER BY start_date", tuple(params))
            return [_leave(r) for r in all_rows(cur)]

    def get_swap_request(self, request_id: str) -> Optional[ShiftSwapRequest]:
        return self._select_one(Collection.SWAP_REQUESTS, "request_id=%s", (request_id,))

    def list_swap_requests(
        self,
        *,
        status: Optional[RequestStatus] = None,
        requester_id: Optional[str] = None,
        limit: int = 200,
    ) -> Sequence[ShiftSwapRequest]:
        clauses = ["organization_id=%s"]
        params: list[object] = [self._org]
        if status is not None:
            clauses.append("status=%s")
            params.append(status.value)
        if requester_id is not None:
            clauses.append("requester_id=%s")
            params.append(requester_id)
        params.append(int(limit))
        where = " AND ".join(clauses)
        with self._cursor(Collection.SWAP_REQUESTS) as (_, cur):
            cur.execute(
                f"SELECT * FROM shift_swap_requests WHERE {where} ORDER BY created_at DESC LIMIT %s",
                tuple(params),
            )
            return [_swap(r) for r in all_rows(cur)]

    def get_condition_report(self, report_id: str) -> Optional[ConditionReport]:
        return self._select_one(Collection.CONDITION_REPORTS, "report_id=%s", (report_id,))

    def list_condition_reports(
        self,
        *,
        status: Optional[ConditionStatus] = None,
        employee_id: Optional[str] = None,
        work_date: Optional[date] = None,
        limit: int = 200,
    ) -> Sequence[ConditionReport]:
        clauses = ["organization_id=%s"]
        params: list[object] = [self._org]
        if status is not None:
            clauses.append("status=%s")
            params.append(status.value)
        if employee_id is not None:
            clauses.append("employee_id=%s")
            params.append(employee_id)
        if work_date is not None:
            clauses.append("work_date=%s")
            params.append(work_date)
        params.append(int(limit))
        where = " AND ".join(clauses)
        with self._cursor(Collection.CONDITION_REPORTS) as (_, cur):
            cur.execute(
                f"SELECT * FROM condition_reports WHERE {where} ORDER BY created_at DESC LIMIT %s",
                tuple(params),
            )
            return [_condition(r) for r in all_rows(cur)]

    # -------- single-path writes --------
    def put_roster_assignment(self, assignment: RosterAssignment) -> None:
        a = assignment
        with self._cursor(Collection.ROSTERS) as (_, cur):
            cur.execute(
                """
                REPLACE INTO roster_assignments(
                    organization_id, work_date, employee_id, status, employee_name,
                    shift_id, shift_name, shift_color, start_time, end_time
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    self._org,
                    a.work_date,
                    a.employee_id,
                    a.status.value,
                    a.employee_name,
                    a.shift_id,
                    a.shift_name,
                    a.shift_color,
                    a.start_time,
                    a.end_time,
                ),
            )
        self._notify(Collection.ROSTERS)

    def delete_roster_assignment(self, *, employee_id: str, work_date: date) -> bool:
        with self._cursor(Collection.ROSTERS) as (_, cur):
            cur.execute(
                "DELETE FROM roster_assignments WHERE organization_id=%s AND work_date=%s AND employee_id=%s",
                (self._org, work_date, employee_id),
            )
            removed = cur.rowcount > 0
        if removed:
            self._notify(Collection.ROSTERS)
        return removed

    def put_attendance_record(self, record: AttendanceRecord) -> None:
        r = record
        with self._cursor(Collection.ATTENDANCE) as (_, cur):
            cur.execute(
                """
                REPLACE INTO attendance_records(
                    organization_id, work_date, employee_id, employee_name,
                    check_in_time, check_out_time, status, late_minutes, break_duration,
                    overtime_minutes, early_leave_minutes, break_started_at, resume_status
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    self._org,
                    r.work_date,
                    r.employee_id,
                    r.employee_name,
                    r.check_in_time,
                    r.check_out_time,
                    r.status.value,
                    int(r.late_minutes),
                    int(r.break_duration),
                    int(r.overtime_minutes),
                    int(r.early_leave_minutes),
                    r.break_started_at,
                    r.resume_status.value if r.resume_status else None,
                ),
            )
        self._notify(Collection.ATTENDANCE)

    def add_swap_request(self, request: ShiftSwapRequest) -> None:
        q = request
        with self._cursor(Collection.SWAP_REQUESTS) as (_, cur):
            cur.execute(
                """
                INSERT INTO shift_swap_requests(
                    organization_id, request_id, requester_id, requester_name, work_date,
                    shift_id, shift_name, reason, status, created_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    self._org,
                    q.request_id,
                    q.requester_id,
                    q.requester_name,
                    q.work_date,
                    q.shift_id,
                    q.shift_name,
                    q.reason,
                    q.status.value,
                    q.created_at,
                ),
            )
        self._notify(Collection.SWAP_REQUESTS)

    def add_condition_report(self, report: ConditionReport) -> None:
        c = report
        with self._cursor(Collection.CONDITION_REPORTS) as (_, cur):
            cur.execute(
                """
                INSERT INTO condition_reports(
                    organization_id, report_id, employee_id, employee_name, work_date,
                    condition_type, status, created_at, reason, attachment_url,
                    estimated_arrival_time, departure_time
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    self._org,
                    c.report_id,
                    c.employee_id,
                    c.employee_name,
                    c.work_date,
                    c.condition_type.value,
                    c.status.value,
                    c.created_at,
                    c.reason,
                    c.attachment_url,
                    c.estimated_arrival_time,
                    c.departure_time,
                ),
            )
        self._notify(Collection.CONDITION_REPORTS)

    def transition_swap_request(
        self,
        *,
        request_id: str,
        expected: RequestStatus,
        status: RequestStatus,
        reviewed_at: datetime,
        reviewed_by: Optional[str] = None,
        admin_note: Optional[str] = None,
    ) -> bool:
        with self._cursor(Collection.SWAP_REQUESTS) as (_, cur):
            cur.execute(
                """
                UPDATE shift_swap_requests
                SET status=%s, reviewed_at=%s, reviewed_by=%s, admin_note=%s
                WHERE organization_id=%s AND request_id=%s AND status=%s
                """,
                (status.value, reviewed_at, reviewed_by, admin_note, self._org, request_id, expected.value),
            )
            applied = cur.rowcount > 0
        if applied:
            self._notify(Collection.SWAP_REQUESTS)
        return applied

    def transition_condition_report(
        self,
        *,
        report_id: str,
        expected: ConditionStatus,
        status: ConditionStatus,
        acknowledged_at: datetime,
        reviewed_by: Optional[str] = None,
    ) -> bool:
        with self._cursor(Collection.CONDITION_REPORTS) as (_, cur):
            cur.execute(
                """
                UPDATE condition_reports
                SET status=%s, acknowledged_at=%s, reviewed_by=%s
                WHERE organization_id=%s AND report_id=%s AND status=%s
                """,
                (status.value, acknowledged_at, reviewed_by, self._org, report_id, expected.value),
            )
            applied = cur.rowcount > 0
        if applied:
            self._notify(Collection.CONDITION_REPORTS)
        return applied
