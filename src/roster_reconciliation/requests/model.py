from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional

from ..core.enums import ConditionStatus, ConditionType, RequestStatus


@dataclass(frozen=True)
class ShiftSwapRequest:
    request_id: str
    requester_id: str
    requester_name: str
    work_date: date
    shift_name: str
    reason: str
    status: RequestStatus
    created_at: datetime
    shift_id: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[str] = None
    admin_note: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status != RequestStatus.PENDING


@dataclass(frozen=True)
class ConditionReport:
    report_id: str
    employee_id: str
    employee_name: str
    work_date: date
    condition_type: ConditionType
    status: ConditionStatus
    created_at: datetime
    reason: Optional[str] = None
    attachment_url: Optional[str] = None
    estimated_arrival_time: Optional[time] = None
    departure_time: Optional[time] = None
    acknowledged_at: Optional[datetime] = None
    reviewed_by: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status != ConditionStatus.PENDING


@dataclass(frozen=True)
class PreAuthorization:
    """Manager-acknowledged deviation from the shift's nominal hours."""

    arrival_time: Optional[time] = None
    departure_time: Optional[time] = None
