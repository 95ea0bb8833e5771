from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import date, datetime
from typing import Any, Optional, Sequence

from ..attendance.model import AttendanceRecord
from ..common.datetime_utils import now_local
from ..core.enums import Collection, ConditionStatus, RequestStatus
from ..core.exceptions import StoreUnavailableError
from ..employees.model import Employee
from ..leave.model import LeaveRequest
from ..requests.model import ConditionReport, ShiftSwapRequest
from ..roster.model import RosterAssignment
from ..shifts.model import Shift
from .base import CollectionSnapshot, ErrorCallback, SnapshotCallback, Subscription, record_key

logger = logging.getLogger(__name__)


class InMemoryRecordStore:
    """Push-based in-process store.

    Every write delivers a fresh snapshot of the written collection to its
    subscribers, synchronously and outside the lock. `fail`/`recover`
    simulate losing and regaining connectivity for one collection.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._data: dict[Collection, dict[Any, Any]] = {c: {} for c in Collection}
        self._subscribers: dict[Collection, list[Subscription]] = {c: [] for c in Collection}
        self._failures: dict[Collection, BaseException] = {}

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

    def subscriber_count(self, collection: Collection) -> int:
        with self._lock:
            return len(self._subscribers[collection])

    def get_snapshot(self, collection: Collection) -> CollectionSnapshot:
        with self._lock:
            error = self._failures.get(collection)
            if error is not None:
                return CollectionSnapshot(collection=collection, error=error, received_at=now_local())
            items = sorted(self._data[collection].items(), key=lambda kv: str(kv[0]))
            return CollectionSnapshot(
                collection=collection,
                records=tuple(v for _, v in items),
                received_at=now_local(),
            )

    def _notify(self, collection: Collection) -> None:
        snapshot = self.get_snapshot(collection)
        with self._lock:
            subs = list(self._subscribers[collection])
        for sub in subs:
            try:
                sub.deliver(snapshot)
            except Exception:
                logger.exception("Subscriber to %s failed", collection.value)

    # -------- failure simulation --------
    def fail(self, collection: Collection, error: Optional[BaseException] = None) -> None:
        with self._lock:
            self._failures[collection] = error or ConnectionError(f"{collection.value} unreachable")
        logger.warning("Store collection %s marked unavailable", collection.value)
        self._notify(collection)

    def recover(self, collection: Collection) -> None:
        with self._lock:
            self._failures.pop(collection, None)
        self._notify(collection)

    def _check(self, collection: Collection) -> None:
        error = self._failures.get(collection)
        if error is not None:
            raise StoreUnavailableError(collection, error)

    def _get(self, collection: Collection, key) -> Optional[Any]:
        with self._lock:
            self._check(collection)
            return self._data[collection].get(key)

    def _put(self, collection: Collection, record: Any) -> None:
        with self._lock:
            self._check(collection)
            self._data[collection][record_key(collection, record)] = record
        self._notify(collection)

    # -------- reference data (written by the HR module) --------
    def put_employee(self, employee: Employee) -> None:
        self._put(Collection.EMPLOYEES, employee)

    def put_shift(self, shift: Shift) -> None:
        self._put(Collection.SHIFTS, shift)

    def delete_shift(self, shift_id: str) -> bool:
        with self._lock:
            self._check(Collection.SHIFTS)
            removed = self._data[Collection.SHIFTS].pop(shift_id, None) is not None
        if removed:
            self._notify(Collection.SHIFTS)
        return removed

    def put_leave_request(self, leave: LeaveRequest) -> None:
        self._put(Collection.LEAVE_REQUESTS, leave)

    # -------- single-path reads --------
    def get_employee(self, employee_id: str) -> Optional[Employee]:
        return self._get(Collection.EMPLOYEES, employee_id)

    def get_shift(self, shift_id: str) -> Optional[Shift]:
        return self._get(Collection.SHIFTS, shift_id)

    def get_roster_assignment(self, *, employee_id: str, work_date: date) -> Optional[RosterAssignment]:
        return self._get(Collection.ROSTERS, (work_date, employee_id))

    def get_attendance_record(self, *, employee_id: str, work_date: date) -> Optional[AttendanceRecord]:
        return self._get(Collection.ATTENDANCE, (work_date, employee_id))

    def list_leave_requests(self, *, employee_id: Optional[str] = None) -> Sequence[LeaveRequest]:
        with self._lock:
            self._check(Collection.LEAVE_REQUESTS)
            items = list(self._data[Collection.LEAVE_REQUESTS].values())
        return [r for r in items if employee_id is None or r.employee_id == employee_id]

    def get_swap_request(self, request_id: str) -> Optional[ShiftSwapRequest]:
        return self._get(Collection.SWAP_REQUESTS, request_id)

    def list_swap_requests(
        self,
        *,
        status: Optional[RequestStatus] = None,
        requester_id: Optional[str] = None,
        limit: int = 200,
    ) -> Sequence[ShiftSwapRequest]:
        with self._lock:
            self._check(Collection.SWAP_REQUESTS)
            items = list(self._data[Collection.SWAP_REQUESTS].values())
        items = [
            r
            for r in items
            if (status is None or r.status == status) and (requester_id is None or r.requester_id == requester_id)
        ]
        items.sort(key=lambda r: r.created_at, reverse=True)
        return items[:limit]

    def get_condition_report(self, report_id: str) -> Optional[ConditionReport]:
        return self._get(Collection.CONDITION_REPORTS, report_id)

    def list_condition_reports(
        self,
        *,
        status: Optional[ConditionStatus] = None,
        employee_id: Optional[str] = None,
        work_date: Optional[date] = None,
        limit: int = 200,
    ) -> Sequence[ConditionReport]:
        with self._lock:
            self._check(Collection.CONDITION_REPORTS)
            items = list(self._data[Collection.CONDITION_REPORTS].values())
        items = [
            r
            for r in items
            if (status is None or r.status == status)
            and (employee_id is None or r.employee_id == employee_id)
            and (work_date is None or r.work_date == work_date)
        ]
        items.sort(key=lambda r: r.created_at, reverse=True)
        return items[:limit]

    # -------- single-path writes --------
    def put_roster_assignment(self, assignment: RosterAssignment) -> None:
        self._put(Collection.ROSTERS, assignment)

    def delete_roster_assignment(self, *, employee_id: str, work_date: date) -> bool:
        with self._lock:
            self._check(Collection.ROSTERS)
            removed = self._data[Collection.ROSTERS].pop((work_date, employee_id), None) is not None
        if removed:
            self._notify(Collection.ROSTERS)
        return removed

    def put_attendance_record(self, record: AttendanceRecord) -> None:
        self._put(Collection.ATTENDANCE, record)

    def add_swap_request(self, request: ShiftSwapRequest) -> None:
        self._put(Collection.SWAP_REQUESTS, request)

    def add_condition_report(self, report: ConditionReport) -> None:
        self._put(Collection.CONDITION_REPORTS, report)

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
        with self._lock:
            self._check(Collection.SWAP_REQUESTS)
            current = self._data[Collection.SWAP_REQUESTS].get(request_id)
            if current is None or current.status != expected:
                return False
            self._data[Collection.SWAP_REQUESTS][request_id] = replace(
                current,
                status=status,
                reviewed_at=reviewed_at,
                reviewed_by=reviewed_by,
                admin_note=admin_note,
            )
        self._notify(Collection.SWAP_REQUESTS)
        return True

    def transition_condition_report(
        self,
        *,
        report_id: str,
        expected: ConditionStatus,
        status: ConditionStatus,
        acknowledged_at: datetime,
        reviewed_by: Optional[str] = None,
    ) -> bool:
        with self._lock:
            self._check(Collection.CONDITION_REPORTS)
            current = self._data[Collection.CONDITION_REPORTS].get(report_id)
            if current is None or current.status != expected:
                return False
            self._data[Collection.CONDITION_REPORTS][report_id] = replace(
                current,
                status=status,
                acknowledged_at=acknowledged_at,
                reviewed_by=reviewed_by,
            )
        self._notify(Collection.CONDITION_REPORTS)
        return True
