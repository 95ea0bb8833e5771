from __future__ import annotations

from datetime import datetime
from typing import Optional

from ...core.enums import AttendanceStatus
from .base import AttendanceStrategy, StatusDecision


class LateStrategy(AttendanceStrategy):
    """Late check-in."""

    def decide_checkin(self, *, now: datetime, expected_start: Optional[datetime], late_minutes: int) -> StatusDecision:
        return StatusDecision(status=AttendanceStatus.LATE, late_minutes=max(0, int(late_minutes)))
