from __future__ import annotations

import logging
from datetime import date

from flask import Flask, jsonify, request
from werkzeug.exceptions import BadRequest

from ..common.datetime_utils import parse_iso_date
from ..container import Container
from ..core.exceptions import (
    ActionFailedError,
    ConflictError,
    DomainError,
    NotFoundError,
    StoreUnavailableError,
    ValidationError,
)
from ..roster.model import OFF_DAY
from .serializers import to_json

logger = logging.getLogger(__name__)


def _error(message: str, status: int, **extra):
    body = {"success": False, "message": message}
    body.update(extra)
    return jsonify(body), status


def _ok(data=None, status: int = 200):
    return jsonify({"success": True, "data": to_json(data)}), status


def _day(value: str) -> date:
    return parse_iso_date(value)


def _payload() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise BadRequest("JSON body must be an object")
    return data


def register(app: Flask, container: Container) -> None:
    engine = container.engine

    @app.errorhandler(ValidationError)
    def _validation(e: ValidationError):
        return _error(str(e), 400)

    @app.errorhandler(NotFoundError)
    def _not_found(e: NotFoundError):
        return _error(str(e), 404)

    @app.errorhandler(ConflictError)
    def _conflict(e: ConflictError):
        return _error(str(e), 409, current_status=e.current_status)

    @app.errorhandler(StoreUnavailableError)
    def _unavailable(e: StoreUnavailableError):
        return _error(str(e), 503)

    @app.errorhandler(ActionFailedError)
    def _action_failed(e: ActionFailedError):
        return _error(str(e), 502)

    @app.errorhandler(DomainError)
    def _domain(e: DomainError):
        return _error(str(e), 400)

    @app.errorhandler(BadRequest)
    def _bad_request(e: BadRequest):
        return _error(e.description or "Bad request", 400)

    # -------- derived reads --------
    @app.route("/api/days/<work_date>/board", methods=["GET"], endpoint="day_board")
    def day_board(work_date: str):
        return _ok(engine.get_day_board(_day(work_date)))

    @app.route("/api/days/<work_date>/stats", methods=["GET"], endpoint="day_stats")
    def day_stats(work_date: str):
        return _ok(engine.get_daily_stats(_day(work_date)))

    @app.route("/api/days/<work_date>/employees/<employee_id>/status", methods=["GET"], endpoint="day_status")
    def day_status(work_date: str, employee_id: str):
        return _ok(engine.get_day_status(employee_id, _day(work_date)))

    @app.route("/api/days/<work_date>/employees/<employee_id>/duration", methods=["GET"], endpoint="work_duration")
    def work_duration(work_date: str, employee_id: str):
        return _ok(engine.get_work_duration(employee_id, _day(work_date)))

    # -------- assignment editor --------
    @app.route("/api/roster/<work_date>/<employee_id>", methods=["PUT"], endpoint="set_assignment")
    def set_assignment(work_date: str, employee_id: str):
        data = _payload()
        if data.get("off_day"):
            choice = OFF_DAY
        else:
            choice = str(data.get("shift_id") or "")
        assignment = container.assignment_service.set_assignment(
            employee_id=employee_id,
            work_date=_day(work_date),
            choice=choice,
            force=bool(data.get("force", False)),
        )
        return _ok(assignment)

    @app.route("/api/roster/<work_date>/<employee_id>", methods=["DELETE"], endpoint="clear_assignment")
    def clear_assignment(work_date: str, employee_id: str):
        removed = container.assignment_service.clear_assignment(employee_id=employee_id, work_date=_day(work_date))
        return _ok({"removed": removed})

    # -------- swap requests --------
    @app.route("/api/swap-requests", methods=["GET"], endpoint="list_swap_requests")
    def list_swap_requests():
        employee_id = request.args.get("employee_id")
        if employee_id:
            return _ok(container.swap_service.list_for_employee(employee_id))
        return _ok(container.swap_service.list_pending())

    @app.route("/api/swap-requests", methods=["POST"], endpoint="submit_swap_request")
    def submit_swap_request():
        data = _payload()
        created = container.swap_service.submit(
            requester_id=str(data.get("requester_id") or ""),
            work_date=_day(str(data.get("work_date") or "")),
            reason=str(data.get("reason") or ""),
        )
        return _ok(created, 201)

    @app.route("/api/swap-requests/<request_id>/<decision>", methods=["POST"], endpoint="decide_swap_request")
    def decide_swap_request(request_id: str, decision: str):
        data = _payload()
        kwargs = dict(
            request_id=request_id,
            reviewer_id=data.get("reviewer_id"),
            admin_note=str(data.get("admin_note") or ""),
        )
        if decision == "approve":
            return _ok(container.swap_service.approve(**kwargs))
        if decision == "reject":
            return _ok(container.swap_service.reject(**kwargs))
        return _error(f"Unknown decision {decision!r}", 404)

    # -------- condition reports --------
    @app.route("/api/condition-reports", methods=["GET"], endpoint="list_condition_reports")
    def list_condition_reports():
        employee_id = request.args.get("employee_id")
        if employee_id:
            return _ok(container.condition_service.list_for_employee(employee_id))
        return _ok(container.condition_service.list_pending())

    @app.route("/api/condition-reports", methods=["POST"], endpoint="submit_condition_report")
    def submit_condition_report():
        data = _payload()
        created = container.condition_service.submit(
            employee_id=str(data.get("employee_id") or ""),
            work_date=_day(str(data.get("work_date") or "")),
            condition_type=str(data.get("condition_type") or ""),
            reason=data.get("reason"),
            attachment_url=data.get("attachment_url"),
            estimated_arrival_time=data.get("estimated_arrival_time"),
            departure_time=data.get("departure_time"),
        )
        return _ok(created, 201)

    @app.route("/api/condition-reports/<report_id>/<decision>", methods=["POST"], endpoint="decide_condition_report")
    def decide_condition_report(report_id: str, decision: str):
        reviewer_id = _payload().get("reviewer_id")
        if decision == "acknowledge":
            return _ok(container.condition_service.acknowledge(report_id=report_id, reviewer_id=reviewer_id))
        if decision == "reject":
            return _ok(container.condition_service.reject(report_id=report_id, reviewer_id=reviewer_id))
        return _error(f"Unknown decision {decision!r}", 404)

    # -------- punches --------
    punches = {
        "check-in": container.attendance_service.check_in,
        "break-start": container.attendance_service.start_break,
        "break-end": container.attendance_service.end_break,
        "check-out": container.attendance_service.check_out,
    }

    @app.route("/api/attendance/<employee_id>/<action>", methods=["POST"], endpoint="punch")
    def punch(employee_id: str, action: str):
        handler = punches.get(action)
        if handler is None:
            return _error(f"Unknown punch {action!r}", 404)
        record = handler(employee_id)
        logger.debug("Punch %s recorded for %s", action, employee_id)
        return _ok(record)
