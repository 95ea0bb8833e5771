from __future__ import annotations

from datetime import datetime
from typing import Optional

from ...core.enums import AttendanceStatus
from .base import AttendanceStrategy, StatusDecision


class NormalStrategy(AttendanceStrategy):
    """On time, within grace, or no shift to be late against."""

    def decide_checkin(self, *, now: datetime, expected_start: Optional[datetime], late_minutes: int) -> StatusDecision:
        return StatusDecision(status=AttendanceStatus.PRESENT)
