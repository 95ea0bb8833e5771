from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import date, time
from typing import Optional, Sequence, Union

from ..common.actions import store_action
from ..common.datetime_utils import Clock, SystemClock, parse_hhmm
from ..common.validators import optional_text, require_non_empty
from ..core.enums import ConditionStatus, ConditionType, RequestStatus, RosterStatus
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..store.base import RecordStore
from .model import ConditionReport, PreAuthorization, ShiftSwapRequest

logger = logging.getLogger(__name__)


def _new_id() -> str:
    return uuid.uuid4().hex


def _coerce_time(value: Union[time, str, None]) -> Optional[time]:
    if value is None or isinstance(value, time):
        return value
    return parse_hhmm(value)


class SwapRequestService:
    """Shift-swap proposals: Pending -> Approved | Rejected (terminal).

    Approval only records the decision; applying the change to the roster
    is a separate step through the assignment editor.
    """

    def __init__(self, store: RecordStore, *, clock: Optional[Clock] = None):
        self._store = store
        self._clock = clock or SystemClock()

    def submit(self, *, requester_id: str, work_date: date, reason: str) -> ShiftSwapRequest:
        reason = require_non_empty(reason, "Reason")

        with store_action("submit swap request"):
            employee = self._store.get_employee(requester_id)
            if not employee:
                raise NotFoundError("Employee", requester_id)

            assignment = self._store.get_roster_assignment(employee_id=requester_id, work_date=work_date)
            if not assignment or assignment.status != RosterStatus.ON_DUTY:
                raise ValidationError(f"No assigned shift on {work_date.isoformat()} to swap")

            request = ShiftSwapRequest(
                request_id=_new_id(),
                requester_id=requester_id,
                requester_name=employee.name,
                work_date=work_date,
                shift_id=assignment.shift_id,
                shift_name=assignment.shift_name or "Assigned Shift",
                reason=reason,
                status=RequestStatus.PENDING,
                created_at=self._clock.now(),
            )
            self._store.add_swap_request(request)

        logger.info("Swap request %s submitted by %s for %s", request.request_id, requester_id, work_date)
        return request

    def approve(self, *, request_id: str, reviewer_id: Optional[str] = None, admin_note: str = "") -> ShiftSwapRequest:
        return self._decide(request_id, RequestStatus.APPROVED, reviewer_id, admin_note, action="approve swap request")

    def reject(self, *, request_id: str, reviewer_id: Optional[str] = None, admin_note: str = "") -> ShiftSwapRequest:
        return self._decide(request_id, RequestStatus.REJECTED, reviewer_id, admin_note, action="reject swap request")

    def _decide(
        self,
        request_id: str,
        status: RequestStatus,
        reviewer_id: Optional[str],
        admin_note: str,
        *,
        action: str,
    ) -> ShiftSwapRequest:
        with store_action(action):
            req = self._store.get_swap_request(request_id)
            if not req:
                raise NotFoundError("Swap request", request_id)
            if req.is_terminal:
                logger.warning("Refused to %s %s: already %s", action, request_id, req.status.value)
                raise ConflictError(f"Swap request already {req.status.value}", current_status=req.status.value)

            reviewed_at = self._clock.now()
            note = optional_text(admin_note)
            applied = self._store.transition_swap_request(
                request_id=request_id,
                expected=RequestStatus.PENDING,
                status=status,
                reviewed_at=reviewed_at,
                reviewed_by=reviewer_id,
                admin_note=note,
            )
            if not applied:
                # Another reviewer decided between our read and the conditional write.
                current = self._store.get_swap_request(request_id)
                current_status = current.status.value if current else None
                logger.warning("Refused to %s %s: concurrently set to %s", action, request_id, current_status)
                raise ConflictError(f"Swap request already {current_status}", current_status=current_status)

        logger.info("Swap request %s %s by %s", request_id, status.value, reviewer_id or "-")
        return replace(req, status=status, reviewed_at=reviewed_at, reviewed_by=reviewer_id, admin_note=note)

    def list_pending(self) -> Sequence[ShiftSwapRequest]:
        return self._store.list_swap_requests(status=RequestStatus.PENDING, limit=500)

    def list_for_employee(self, employee_id: str) -> Sequence[ShiftSwapRequest]:
        return self._store.list_swap_requests(requester_id=employee_id)


class ConditionReportService:
    """Self-reported conditions: Pending -> Acknowledged | Rejected (terminal)."""

    def __init__(self, store: RecordStore, *, clock: Optional[Clock] = None):
        self._store = store
        self._clock = clock or SystemClock()

    def submit(
        self,
        *,
        employee_id: str,
        work_date: date,
        condition_type: Union[ConditionType, str],
        reason: Optional[str] = None,
        attachment_url: Optional[str] = None,
        estimated_arrival_time: Union[time, str, None] = None,
        departure_time: Union[time, str, None] = None,
    ) -> ConditionReport:
        try:
            ctype = ConditionType(condition_type)
        except ValueError:
            raise ValidationError(f"Unknown condition type {condition_type!r}")

        arrival = _coerce_time(estimated_arrival_time) if ctype == ConditionType.LATE else None
        departure = _coerce_time(departure_time) if ctype == ConditionType.EARLY_DEPARTURE else None

        with store_action("submit condition report"):
            employee = self._store.get_employee(employee_id)
            if not employee:
                raise NotFoundError("Employee", employee_id)

            report = ConditionReport(
                report_id=_new_id(),
                employee_id=employee_id,
                employee_name=employee.name,
                work_date=work_date,
                condition_type=ctype,
                status=ConditionStatus.PENDING,
                created_at=self._clock.now(),
                reason=optional_text(reason),
                attachment_url=optional_text(attachment_url),
                estimated_arrival_time=arrival,
                departure_time=departure,
            )
            self._store.add_condition_report(report)

        logger.info("Condition report %s (%s) submitted by %s", report.report_id, ctype.value, employee_id)
        return report

    def acknowledge(self, *, report_id: str, reviewer_id: Optional[str] = None) -> ConditionReport:
        return self._decide(report_id, ConditionStatus.ACKNOWLEDGED, reviewer_id, action="acknowledge condition report")

    def reject(self, *, report_id: str, reviewer_id: Optional[str] = None) -> ConditionReport:
        return self._decide(report_id, ConditionStatus.REJECTED, reviewer_id, action="reject condition report")

    def _decide(
        self,
        report_id: str,
        status: ConditionStatus,
        reviewer_id: Optional[str],
        *,
        action: str,
    ) -> ConditionReport:
        with store_action(action):
            report = self._store.get_condition_report(report_id)
            if not report:
                raise NotFoundError("Condition report", report_id)
            if report.is_terminal:
                logger.warning("Refused to %s %s: already %s", action, report_id, report.status.value)
                raise ConflictError(f"Condition report already {report.status.value}", current_status=report.status.value)

            decided_at = self._clock.now()
            applied = self._store.transition_condition_report(
                report_id=report_id,
                expected=ConditionStatus.PENDING,
                status=status,
                acknowledged_at=decided_at,
                reviewed_by=reviewer_id,
            )
            if not applied:
                current = self._store.get_condition_report(report_id)
                current_status = current.status.value if current else None
                logger.warning("Refused to %s %s: concurrently set to %s", action, report_id, current_status)
                raise ConflictError(f"Condition report already {current_status}", current_status=current_status)

        logger.info("Condition report %s %s by %s", report_id, status.value, reviewer_id or "-")
        return replace(report, status=status, acknowledged_at=decided_at, reviewed_by=reviewer_id)

    def pre_authorization(self, *, employee_id: str, work_date: date) -> Optional[PreAuthorization]:
        """Arrival/departure deviations a manager acknowledged for that day."""
        reports = self._store.list_condition_reports(
            status=ConditionStatus.ACKNOWLEDGED,
            employee_id=employee_id,
            work_date=work_date,
        )
        arrival = None
        departure = None
        # newest first: the latest acknowledged report wins
        for r in reports:
            if arrival is None and r.condition_type == ConditionType.LATE and r.estimated_arrival_time:
                arrival = r.estimated_arrival_time
            if departure is None and r.condition_type == ConditionType.EARLY_DEPARTURE and r.departure_time:
                departure = r.departure_time

        if arrival is None and departure is None:
            return None
        return PreAuthorization(arrival_time=arrival, departure_time=departure)

    def list_pending(self) -> Sequence[ConditionReport]:
        return self._store.list_condition_reports(status=ConditionStatus.PENDING, limit=500)

    def list_for_employee(self, employee_id: str) -> Sequence[ConditionReport]:
        return self._store.list_condition_reports(employee_id=employee_id)
