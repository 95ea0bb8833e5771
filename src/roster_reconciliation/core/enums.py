from __future__ import annotations

from enum import Enum


class EmployeeStatus(str, Enum):
    """Lifecycle status owned by the HR module."""

    ACTIVE = "Active"
    INACTIVE = "Inactive"
    ON_LEAVE = "On Leave"
    TERMINATED = "Terminated"


class RosterStatus(str, Enum):
    ON_DUTY = "On Duty"
    OFF_DAY = "Off Day"


class AttendanceStatus(str, Enum):
    """Status stored on an attendance record, set at punch time."""

    PRESENT = "Present"
    LATE = "Late"
    ON_BREAK = "On Break"
    AUTO_CLOCK_OUT = "Auto Clock-out"


class EffectiveStatus(str, Enum):
    """Single derived state for one employee on one day."""

    ON_LEAVE = "On Leave"
    PRESENT = "Present"
    LATE = "Late"
    ON_BREAK = "On Break"
    AUTO_CLOCK_OUT = "Auto Clock-out"
    OFF_DAY = "Off Day"
    ABSENT = "Absent"
    NOT_YET_CLOCKED_IN = "Not Yet Clocked In"
    UNKNOWN = "Unknown"


class RequestStatus(str, Enum):
    """Approval states shared by leave and shift-swap requests."""

    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class ConditionStatus(str, Enum):
    PENDING = "Pending"
    ACKNOWLEDGED = "Acknowledged"
    REJECTED = "Rejected"


class ConditionType(str, Enum):
    SICK = "Sick"
    WFH = "WFH"
    LATE = "Late"
    EARLY_DEPARTURE = "EarlyDeparture"
    EMERGENCY = "Emergency"


class Collection(str, Enum):
    """Independently subscribed record collections of one organization."""

    EMPLOYEES = "employees"
    SHIFTS = "shifts"
    ROSTERS = "rosters"
    LEAVE_REQUESTS = "leave_requests"
    ATTENDANCE = "attendance"
    SWAP_REQUESTS = "swap_requests"
    CONDITION_REPORTS = "condition_reports"


class DataFlag(str, Enum):
    """Data-quality conditions carried next to an otherwise valid status."""

    MISSING_PUNCH = "missing_punch"
    NEGATIVE_DURATION = "negative_duration"
    PROVISIONAL = "provisional"
    BREAK_EXCEEDED = "break_exceeded"
    SHIFT_NOT_FOUND = "shift_not_found"
    SOURCE_UNKNOWN = "source_unknown"
