from datetime import date

import pytest

from roster_reconciliation.core.enums import Collection, RequestStatus
from roster_reconciliation.leave.model import LeaveRequest
from roster_reconciliation.main import create_app


@pytest.fixture
def client(monkeypatch, store, clock):
    monkeypatch.setenv("APP_ENV", "testing")
    app = create_app(store=store, clock=clock)
    return app.test_client()


def test_board_and_stats(client):
    res = client.get("/api/days/2024-03-04/board")
    assert res.status_code == 200
    body = res.get_json()
    assert body["success"] is True
    assert [s["employee_id"] for s in body["data"]["statuses"]] == ["e1", "e2"]

    stats = client.get("/api/days/2024-03-04/stats").get_json()["data"]
    assert stats["total_employees"] == 2
    assert stats["attendance_rate_percent"] == 0


def test_bad_date_is_400(client):
    res = client.get("/api/days/04-03-2024/stats")
    assert res.status_code == 400
    assert res.get_json()["success"] is False


def test_roster_punch_and_status_flow(client):
    res = client.put("/api/roster/2024-03-04/e1", json={"shift_id": "morning"})
    assert res.status_code == 200
    assert res.get_json()["data"]["shift_name"] == "Morning"

    res = client.post("/api/attendance/e1/check-in")
    assert res.status_code == 200
    record = res.get_json()["data"]
    assert record["status"] == "Late"
    assert record["late_minutes"] == 120

    status = client.get("/api/days/2024-03-04/employees/e1/status").get_json()["data"]
    assert status["status"] == "Late"
    assert status["shift_name"] == "Morning"

    duration = client.get("/api/days/2024-03-04/employees/e1/duration").get_json()["data"]
    assert duration["minutes"] == 0
    assert duration["provisional"] is True

    assert client.delete("/api/roster/2024-03-04/e1").get_json()["data"] == {"removed": True}


def test_unknown_employee_is_404(client):
    assert client.get("/api/days/2024-03-04/employees/ghost/status").status_code == 404
    assert client.put("/api/roster/2024-03-04/ghost", json={"off_day": True}).status_code == 404


def test_swap_conflict_is_409_with_current_status(client):
    client.put("/api/roster/2024-03-04/e1", json={"shift_id": "morning"})
    created = client.post(
        "/api/swap-requests",
        json={"requester_id": "e1", "work_date": "2024-03-04", "reason": "Dentist"},
    )
    assert created.status_code == 201
    request_id = created.get_json()["data"]["request_id"]

    assert client.post(f"/api/swap-requests/{request_id}/approve", json={"reviewer_id": "a"}).status_code == 200
    res = client.post(f"/api/swap-requests/{request_id}/reject", json={"reviewer_id": "b"})

    assert res.status_code == 409
    assert res.get_json()["current_status"] == "Approved"
    assert client.get("/api/swap-requests").get_json()["data"] == []


def test_condition_report_flow(client):
    created = client.post(
        "/api/condition-reports",
        json={"employee_id": "e2", "work_date": "2024-03-04", "condition_type": "Late", "estimated_arrival_time": "10:30"},
    )
    assert created.status_code == 201
    report = created.get_json()["data"]
    assert report["estimated_arrival_time"] == "10:30"

    res = client.post(f"/api/condition-reports/{report['report_id']}/acknowledge")
    assert res.get_json()["data"]["status"] == "Acknowledged"
    assert client.post(f"/api/condition-reports/{report['report_id']}/reject").status_code == 409


def test_leave_covered_assignment_is_400(client, store):
    store.put_leave_request(
        LeaveRequest(request_id="l1", employee_id="e1", start_date=date(2024, 3, 4), end_date=date(2024, 3, 4), status=RequestStatus.APPROVED)
    )
    res = client.put("/api/roster/2024-03-04/e1", json={"shift_id": "morning"})
    assert res.status_code == 400
    assert client.put("/api/roster/2024-03-04/e1", json={"shift_id": "morning", "force": True}).status_code == 200


def test_unavailable_attendance_is_503(client, store):
    store.fail(Collection.ATTENDANCE)
    res = client.get("/api/days/2024-03-04/stats")
    assert res.status_code == 503
    assert res.get_json()["success"] is False


def test_failed_write_is_502_naming_action(client, store):
    store.fail(Collection.ATTENDANCE)
    res = client.post("/api/attendance/e1/check-in")
    assert res.status_code == 502
    assert res.get_json()["message"] == "could not record check-in"


def test_unknown_punch_is_404(client):
    assert client.post("/api/attendance/e1/teleport").status_code == 404
