from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional

from ..core.enums import RequestStatus


@dataclass(frozen=True)
class LeaveRequest:
    request_id: str
    employee_id: str
    start_date: date
    end_date: date
    status: RequestStatus
    leave_type: str = "Annual"
    employee_name: Optional[str] = None

    @property
    def is_approved(self) -> bool:
        return self.status == RequestStatus.APPROVED

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


def approved_leave_for(leaves: Iterable[LeaveRequest], employee_id: str, day: date) -> Optional[LeaveRequest]:
    """First approved leave of the employee whose range covers the day."""
    for leave in leaves:
        if leave.employee_id == employee_id and leave.is_approved and leave.covers(day):
            return leave
    return None
