from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time
from typing import Optional

from ..core.enums import RosterStatus


@dataclass(frozen=True)
class RosterAssignment:
    """Planned status of one employee on one day.

    Shift fields are copied from the Shift when the assignment is written and
    are not re-synced afterwards, so past rosters keep the shift as it was.
    """

    employee_id: str
    work_date: date
    status: RosterStatus
    employee_name: Optional[str] = None
    shift_id: Optional[str] = None
    shift_name: Optional[str] = None
    shift_color: Optional[str] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None

    @property
    def is_off_day(self) -> bool:
        return self.status == RosterStatus.OFF_DAY

    @property
    def has_shift(self) -> bool:
        return self.status == RosterStatus.ON_DUTY and self.start_time is not None


class OffDay:
    """Marker choice for the assignment editor."""

    def __repr__(self) -> str:
        return "OFF_DAY"


OFF_DAY = OffDay()
