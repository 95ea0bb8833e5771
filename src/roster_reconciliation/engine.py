from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional

from .attendance.model import AttendanceRecord
from .common.datetime_utils import Clock, SystemClock
from .core.constants import DEFAULT_MAX_BREAK_MINUTES, DEFAULT_REFRESH_INTERVAL_SECONDS
from .core.enums import Collection
from .core.exceptions import NotFoundError, StoreUnavailableError
from .employees.model import Employee, active_employees
from .leave.model import LeaveRequest, approved_leave_for
from .reconciliation.aggregator import conditions_by_employee, derive_statuses, index_by_employee, summarize
from .reconciliation.model import DailyStats, DayBoard, DayStatus, WorkDuration
from .reconciliation.reconciler import compute_work_duration, derive_day_status
from .store.base import CollectionSnapshot, RecordStore, Subscription

logger = logging.getLogger(__name__)

BoardListener = Callable[[DayBoard], None]
ErrorListener = Callable[[BaseException], None]


class RefreshTicker(threading.Thread):
    """Calls `callback` every `interval` seconds until stopped."""

    def __init__(self, interval: float, callback: Callable[[], None]):
        super().__init__(name="roster-refresh", daemon=True)
        self.interval = interval
        self.callback = callback
        self._stopped = threading.Event()

    def run(self) -> None:
        while not self._stopped.wait(self.interval):
            try:
                self.callback()
            except Exception:
                logger.exception("Periodic refresh failed")

    def stop(self) -> None:
        self._stopped.set()


@dataclass(frozen=True)
class _DayView:
    employees: tuple[Employee, ...]
    all_employees: dict[str, Employee]
    roster: dict
    attendance: dict
    leaves: tuple[LeaveRequest, ...]
    conditions: dict
    shifts: Optional[dict]
    unknown: frozenset[Collection]


class RosterEngine:
    """Live reconciliation over the latest snapshot of every collection.

    Nothing is kept incrementally: each inbound snapshot replaces the previous
    one for its collection and the watched day is recomputed from scratch.
    Reads work before `start()` by pulling snapshots from the store directly.
    """

    def __init__(
        self,
        store: RecordStore,
        *,
        clock: Optional[Clock] = None,
        organization_id: Optional[str] = None,
        max_break_minutes: int = DEFAULT_MAX_BREAK_MINUTES,
        refresh_interval_seconds: float = DEFAULT_REFRESH_INTERVAL_SECONDS,
    ):
        self.store = store
        self.clock = clock or SystemClock()
        self.organization_id = organization_id
        self.max_break_minutes = max_break_minutes
        self.refresh_interval_seconds = refresh_interval_seconds

        self._lock = threading.RLock()
        self._snapshots: dict[Collection, CollectionSnapshot] = {}
        self._subscriptions: list[Subscription] = []
        self._listeners: list[tuple[BoardListener, Optional[ErrorListener]]] = []
        self._watched: Optional[date] = None
        self._ticker: Optional[RefreshTicker] = None
        self._started = False
        self._computed_seq = 0
        self._delivered_seq = 0
        self._delivery_lock = threading.RLock()

    # -------- lifecycle --------
    def start(self, *, with_ticker: bool = True) -> "RosterEngine":
        with self._lock:
            if self._started:
                return self
            self._started = True
        for collection in Collection:
            sub = self.store.subscribe(collection, self._on_snapshot, self._on_error)
            self._subscriptions.append(sub)
        if with_ticker and self.refresh_interval_seconds > 0:
            self._ticker = RefreshTicker(self.refresh_interval_seconds, self.tick)
            self._ticker.start()
        logger.info("Roster engine started (%s subscriptions)", len(self._subscriptions))
        self._recompute()
        return self

    def stop(self) -> None:
        with self._lock:
            if not self._started:
                return
            self._started = False
            subs, self._subscriptions = self._subscriptions, []
            ticker, self._ticker = self._ticker, None
        for sub in subs:
            sub.unsubscribe()
        if ticker is not None:
            ticker.stop()
            ticker.join(timeout=self.refresh_interval_seconds + 1)
        with self._lock:
            self._snapshots.clear()
        logger.info("Roster engine stopped")

    def __enter__(self) -> "RosterEngine":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    @property
    def running(self) -> bool:
        return self._started

    # -------- listeners --------
    def watch(self, work_date: Optional[date]) -> None:
        """Day pushed to listeners; None follows the clock's current day."""
        with self._lock:
            self._watched = work_date
        self._recompute()

    def watched_date(self) -> date:
        return self._watched or self.clock.now().date()

    def add_listener(self, on_board: BoardListener, on_error: Optional[ErrorListener] = None) -> Callable[[], None]:
        entry = (on_board, on_error)
        with self._lock:
            self._listeners.append(entry)

        def remove() -> None:
            with self._lock:
                if entry in self._listeners:
                    self._listeners.remove(entry)

        return remove

    # -------- inbound --------
    def _on_snapshot(self, snapshot: CollectionSnapshot) -> None:
        with self._lock:
            self._snapshots[snapshot.collection] = snapshot
        self._recompute()

    def _on_error(self, collection: Collection, error: BaseException) -> None:
        logger.warning("Subscription to %s failed: %s", collection.value, error)
        with self._lock:
            self._snapshots[collection] = CollectionSnapshot(collection=collection, error=error)
        self._recompute()

    def tick(self) -> None:
        """Periodic re-evaluation; elapsed time moves without any record changing."""
        refresh = getattr(self.store, "refresh", None)
        if callable(refresh):
            refresh()
        else:
            self._recompute()

    def _recompute(self) -> None:
        with self._lock:
            if not self._started or not self._listeners:
                return
            self._computed_seq += 1
            seq = self._computed_seq

        board: Optional[DayBoard] = None
        failure: Optional[StoreUnavailableError] = None
        try:
            board = self.get_day_board(self.watched_date())
        except StoreUnavailableError as e:
            failure = e
        except Exception:
            logger.exception("Recomputing the watched day failed")
            return

        # Concurrent recomputes (ticker and writers) must not deliver out of order.
        with self._delivery_lock:
            if seq <= self._delivered_seq:
                logger.debug("Dropped stale board #%s (already delivered #%s)", seq, self._delivered_seq)
                return
            self._delivered_seq = seq
            with self._lock:
                listeners = list(self._listeners)
            for on_board, on_error in listeners:
                try:
                    if failure is None:
                        on_board(board)
                    elif on_error is not None:
                        on_error(failure)
                except Exception:
                    logger.exception("Board listener failed")

    # -------- snapshot access --------
    def _snapshot(self, collection: Collection) -> CollectionSnapshot:
        with self._lock:
            snapshot = self._snapshots.get(collection) if self._started else None
        if snapshot is None:
            snapshot = self.store.get_snapshot(collection)
        return snapshot

    def _view(self, work_date: date) -> _DayView:
        snaps = {c: self._snapshot(c) for c in Collection}
        unknown = frozenset(c for c, s in snaps.items() if s.failed)

        # Without employees there is nobody to reconcile.
        everyone = snaps[Collection.EMPLOYEES].require()

        def records(collection: Collection) -> tuple:
            return () if collection in unknown else snaps[collection].records

        return _DayView(
            employees=tuple(active_employees(everyone, organization_id=self.organization_id)),
            all_employees={e.employee_id: e for e in everyone},
            roster=index_by_employee(records(Collection.ROSTERS), work_date),
            attendance=index_by_employee(records(Collection.ATTENDANCE), work_date),
            leaves=tuple(records(Collection.LEAVE_REQUESTS)),
            conditions=conditions_by_employee(records(Collection.CONDITION_REPORTS), work_date),
            shifts=None if Collection.SHIFTS in unknown else {s.shift_id: s for s in records(Collection.SHIFTS)},
            unknown=unknown,
        )

    # -------- outbound derived reads --------
    def get_day_board(self, work_date: date) -> DayBoard:
        now = self.clock.now()
        view = self._view(work_date)
        statuses = derive_statuses(
            view.employees,
            view.attendance,
            work_date=work_date,
            now=now,
            roster=view.roster,
            leaves=view.leaves,
            conditions=view.conditions,
            unknown=view.unknown,
            shifts=view.shifts,
            max_break_minutes=self.max_break_minutes,
        )
        stats = None
        if Collection.ATTENDANCE not in view.unknown:
            stats = summarize(
                view.employees,
                view.attendance,
                work_date=work_date,
                now=now,
                unknown=view.unknown,
                statuses=statuses,
            )
        return DayBoard(
            work_date=work_date,
            statuses=tuple(statuses),
            stats=stats,
            unknown_sources=view.unknown,
            computed_at=now,
        )

    def get_day_status(self, employee_id: str, work_date: date) -> DayStatus:
        view = self._view(work_date)
        employee = view.all_employees.get(employee_id)
        if employee is None:
            raise NotFoundError("Employee", employee_id)
        return derive_day_status(
            employee,
            work_date,
            view.roster.get(employee_id),
            approved_leave_for(view.leaves, employee_id, work_date),
            view.attendance.get(employee_id),
            now=self.clock.now(),
            condition=view.conditions.get(employee_id),
            unknown=view.unknown,
            max_break_minutes=self.max_break_minutes,
            shifts=view.shifts,
        )

    def get_daily_stats(self, work_date: date) -> DailyStats:
        board = self.get_day_board(work_date)
        if board.stats is None:
            raise StoreUnavailableError(Collection.ATTENDANCE)
        return board.stats

    def get_work_duration(self, employee_id: str, work_date: date) -> Optional[WorkDuration]:
        """Worked minutes for the day; None when the employee has no punch record."""
        snapshot = self._snapshot(Collection.ATTENDANCE)
        record: Optional[AttendanceRecord] = index_by_employee(snapshot.require(), work_date).get(employee_id)
        if record is None:
            return None
        return compute_work_duration(record, now=self.clock.now(), max_break_minutes=self.max_break_minutes)

