from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Optional, Protocol, Sequence

from ..attendance.model import AttendanceRecord
from ..core.enums import Collection, ConditionStatus, RequestStatus
from ..core.exceptions import StoreUnavailableError
from ..employees.model import Employee
from ..leave.model import LeaveRequest
from ..requests.model import ConditionReport, ShiftSwapRequest
from ..roster.model import RosterAssignment
from ..shifts.model import Shift


@dataclass(frozen=True)
class CollectionSnapshot:
    """Latest state of one collection, or the failure that prevented reading it.

    A failed snapshot means "unknown"; it must never be read as an empty
    collection.
    """

    collection: Collection
    records: tuple = ()
    error: Optional[BaseException] = None
    received_at: Optional[datetime] = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    def require(self) -> tuple:
        if self.error is not None:
            raise StoreUnavailableError(self.collection, self.error)
        return self.records


SnapshotCallback = Callable[[CollectionSnapshot], None]
ErrorCallback = Callable[[Collection, BaseException], None]


@dataclass(eq=False)
class Subscription:
    """Handle returned by `RecordStore.subscribe`; release it when done."""

    collection: Collection
    on_snapshot: SnapshotCallback
    on_error: Optional[ErrorCallback] = None
    _release: Optional[Callable[["Subscription"], None]] = field(default=None, repr=False)
    active: bool = True

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        if self._release is not None:
            self._release(self)

    def deliver(self, snapshot: CollectionSnapshot) -> None:
        if not self.active:
            return
        if snapshot.failed:
            if self.on_error is not None:
                self.on_error(self.collection, snapshot.error)
            else:
                self.on_snapshot(snapshot)
            return
        self.on_snapshot(snapshot)


class RecordStore(Protocol):
    """Eventually consistent, multi-writer record source with change notification.

    Reads and writes raise `StoreUnavailableError` on connectivity failure;
    the adapter owns any retry policy.
    """

    def subscribe(
        self,
        collection: Collection,
        on_snapshot: SnapshotCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Subscription:
        raise NotImplementedError

    def get_snapshot(self, collection: Collection) -> CollectionSnapshot:
        raise NotImplementedError

    # Single-path reads
    def get_employee(self, employee_id: str) -> Optional[Employee]:
        raise NotImplementedError

    def get_shift(self, shift_id: str) -> Optional[Shift]:
        raise NotImplementedError

    def get_roster_assignment(self, *, employee_id: str, work_date: date) -> Optional[RosterAssignment]:
        raise NotImplementedError

    def get_attendance_record(self, *, employee_id: str, work_date: date) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def list_leave_requests(self, *, employee_id: Optional[str] = None) -> Sequence[LeaveRequest]:
        raise NotImplementedError

    def get_swap_request(self, request_id: str) -> Optional[ShiftSwapRequest]:
        raise NotImplementedError

    def list_swap_requests(
        self,
        *,
        status: Optional[RequestStatus] = None,
        requester_id: Optional[str] = None,
        limit: int = 200,
    ) -> Sequence[ShiftSwapRequest]:
        raise NotImplementedError

    def get_condition_report(self, report_id: str) -> Optional[ConditionReport]:
        raise NotImplementedError

    def list_condition_reports(
        self,
        *,
        status: Optional[ConditionStatus] = None,
        employee_id: Optional[str] = None,
        work_date: Optional[date] = None,
        limit: int = 200,
    ) -> Sequence[ConditionReport]:
        raise NotImplementedError

    # Single-path writes
    def put_roster_assignment(self, assignment: RosterAssignment) -> None:
        raise NotImplementedError

    def delete_roster_assignment(self, *, employee_id: str, work_date: date) -> bool:
        raise NotImplementedError

    def put_attendance_record(self, record: AttendanceRecord) -> None:
        raise NotImplementedError

    def add_swap_request(self, request: ShiftSwapRequest) -> None:
        raise NotImplementedError

    def add_condition_report(self, report: ConditionReport) -> None:
        raise NotImplementedError

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
        """Conditional write: applies only while the stored status is `expected`."""

        raise NotImplementedError

    def transition_condition_report(
        self,
        *,
        report_id: str,
        expected: ConditionStatus,
        status: ConditionStatus,
        acknowledged_at: datetime,
        reviewed_by: Optional[str] = None,
    ) -> bool:
        """Conditional write: applies only while the stored status is `expected`."""

        raise NotImplementedError


def record_key(collection: Collection, record: Any):
    if collection == Collection.EMPLOYEES:
        return record.employee_id
    if collection == Collection.SHIFTS:
        return record.shift_id
    if collection in (Collection.ROSTERS, Collection.ATTENDANCE):
        return (record.work_date, record.employee_id)
    if collection in (Collection.LEAVE_REQUESTS, Collection.SWAP_REQUESTS):
        return record.request_id
    if collection == Collection.CONDITION_REPORTS:
        return record.report_id
    raise ValueError(f"Unknown collection: {collection!r}")
