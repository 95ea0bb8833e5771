from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional

from ..requests.model import PreAuthorization
from ..roster.model import RosterAssignment
from .strategies.base import AttendanceStrategy
from .strategies.late_strategy import LateStrategy
from .strategies.normal_strategy import NormalStrategy


@dataclass
class AttendanceStrategyFactory:
    """Factory Pattern: choose appropriate strategy based on rules."""

    def expected_start(
        self,
        *,
        today: date,
        assignment: Optional[RosterAssignment],
        pre_authorization: Optional[PreAuthorization] = None,
    ) -> Optional[datetime]:
        """Start time the check-in is measured against, or None without an assigned shift.

        An acknowledged late-arrival report moves the start to the authorized
        arrival time (never earlier than the shift start).
        """
        if assignment is None or not assignment.has_shift:
            return None

        start = datetime.combine(today, assignment.start_time)
        if pre_authorization is not None and pre_authorization.arrival_time is not None:
            start = max(start, datetime.combine(today, pre_authorization.arrival_time))
        return start

    def late_minutes(self, *, now: datetime, expected_start: Optional[datetime]) -> int:
        """Minutes past the expected start; any part of a started minute counts."""
        if expected_start is None or now <= expected_start:
            return 0
        return math.ceil((now - expected_start).total_seconds() / 60)

    def for_checkin(self, *, now: datetime, expected_start: Optional[datetime], grace_minutes: int) -> AttendanceStrategy:
        if expected_start is None:
            return NormalStrategy()

        # Seconds matter: 08:00:45 is past an 08:00 start with no grace.
        if now <= expected_start + timedelta(minutes=grace_minutes):
            return NormalStrategy()
        return LateStrategy()
