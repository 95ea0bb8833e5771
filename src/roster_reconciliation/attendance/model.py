from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import AttendanceStatus


@dataclass(frozen=True)
class AttendanceRecord:
    """Punch record of one employee on one day.

    Created on the first punch; an absent employee has no record at all.
    """

    employee_id: str
    work_date: date
    check_in_time: Optional[datetime]
    check_out_time: Optional[datetime]
    status: AttendanceStatus
    late_minutes: int = 0
    break_duration: int = 0
    overtime_minutes: int = 0
    early_leave_minutes: int = 0
    break_started_at: Optional[datetime] = None
    resume_status: Optional[AttendanceStatus] = None
    employee_name: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.check_out_time is None
