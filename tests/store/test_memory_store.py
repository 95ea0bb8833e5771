from datetime import date, datetime

import pytest

from roster_reconciliation.core.enums import Collection, RequestStatus, RosterStatus
from roster_reconciliation.core.exceptions import StoreUnavailableError
from roster_reconciliation.requests.model import ShiftSwapRequest
from roster_reconciliation.roster.model import RosterAssignment

DAY = date(2024, 3, 4)


def _swap(request_id="s1", status=RequestStatus.PENDING):
    return ShiftSwapRequest(
        request_id=request_id,
        requester_id="e1",
        requester_name="Alice",
        work_date=DAY,
        shift_name="Morning",
        reason="swap",
        status=status,
        created_at=datetime(2024, 3, 1, 9, 0),
    )


def test_subscribe_delivers_current_snapshot_then_changes(store):
    seen = []
    sub = store.subscribe(Collection.ROSTERS, seen.append)

    assert len(seen) == 1
    assert seen[0].records == ()

    store.put_roster_assignment(RosterAssignment(employee_id="e1", work_date=DAY, status=RosterStatus.OFF_DAY))
    assert len(seen) == 2
    assert len(seen[1].records) == 1

    sub.unsubscribe()
    sub.unsubscribe()
    store.delete_roster_assignment(employee_id="e1", work_date=DAY)
    assert len(seen) == 2
    assert store.subscriber_count(Collection.ROSTERS) == 0


def test_failure_is_delivered_as_error_not_empty(store):
    errors = []
    snapshots = []
    store.subscribe(Collection.ATTENDANCE, snapshots.append, lambda c, e: errors.append((c, e)))

    store.fail(Collection.ATTENDANCE)

    assert len(snapshots) == 1
    assert errors and errors[0][0] == Collection.ATTENDANCE
    assert store.get_snapshot(Collection.ATTENDANCE).failed
    with pytest.raises(StoreUnavailableError):
        store.get_snapshot(Collection.ATTENDANCE).require()
    with pytest.raises(StoreUnavailableError):
        store.get_attendance_record(employee_id="e1", work_date=DAY)

    store.recover(Collection.ATTENDANCE)
    assert len(snapshots) == 2
    assert not snapshots[-1].failed



def test_raising_subscriber_does_not_starve_the_next_one(store):
    def broken(snapshot):
        if snapshot.records:
            raise RuntimeError("subscriber bug")

    seen = []
    store.subscribe(Collection.ROSTERS, broken)
    store.subscribe(Collection.ROSTERS, seen.append)

    store.put_roster_assignment(RosterAssignment(employee_id="e1", work_date=DAY, status=RosterStatus.OFF_DAY))

    assert len(seen) == 2
    assert len(seen[-1].records) == 1
    assert store.get_roster_assignment(employee_id="e1", work_date=DAY) is not None

def test_failure_is_isolated_per_collection(store):
    store.fail(Collection.ATTENDANCE)
    assert not store.get_snapshot(Collection.ROSTERS).failed
    assert store.get_employee("e1").name == "Alice"


def test_conditional_transition(store):
    store.add_swap_request(_swap())
    now = datetime(2024, 3, 2, 9, 0)

    assert store.transition_swap_request(
        request_id="s1", expected=RequestStatus.PENDING, status=RequestStatus.APPROVED, reviewed_at=now
    )
    assert not store.transition_swap_request(
        request_id="s1", expected=RequestStatus.PENDING, status=RequestStatus.REJECTED, reviewed_at=now
    )
    assert store.get_swap_request("s1").status == RequestStatus.APPROVED
    assert not store.transition_swap_request(
        request_id="missing", expected=RequestStatus.PENDING, status=RequestStatus.REJECTED, reviewed_at=now
    )
