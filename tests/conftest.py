from __future__ import annotations

from datetime import date, datetime, time

import pytest

from roster_reconciliation.common.datetime_utils import FixedClock
from roster_reconciliation.core.enums import EmployeeStatus
from roster_reconciliation.employees.model import Employee
from roster_reconciliation.shifts.model import Shift
from roster_reconciliation.store.memory import InMemoryRecordStore

WORK_DATE = date(2024, 3, 4)
MORNING = Shift(shift_id="morning", shift_name="Morning", start_time=time(8, 0), end_time=time(16, 0), color="#3b82f6")
EVENING = Shift(shift_id="evening", shift_name="Evening", start_time=time(16, 0), end_time=time(23, 0), color="#f97316")


@pytest.fixture
def fixed_now() -> datetime:
    # Monday 2024-03-04, mid-morning
    return datetime(2024, 3, 4, 10, 0, 0)


@pytest.fixture
def clock(fixed_now) -> FixedClock:
    return FixedClock(fixed_now)


@pytest.fixture
def store() -> InMemoryRecordStore:
    s = InMemoryRecordStore()
    s.put_employee(Employee(employee_id="test-org", name="Acme Ltd"))
    s.put_employee(Employee(employee_id="e1", name="Alice", shift_id="morning"))
    s.put_employee(Employee(employee_id="e2", name="Bao", shift_id="morning"))
    s.put_employee(Employee(employee_id="e3", name="Chen", status=EmployeeStatus.INACTIVE))
    s.put_shift(MORNING)
    s.put_shift(EVENING)
    return s
