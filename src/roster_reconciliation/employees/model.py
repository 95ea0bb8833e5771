from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import EmployeeStatus


@dataclass(frozen=True)
class Employee:
    """Employee identity as seen by the engine (read-only, owned by HR)."""

    employee_id: str
    name: str
    status: EmployeeStatus = EmployeeStatus.ACTIVE
    shift_id: Optional[str] = None
    department: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status == EmployeeStatus.ACTIVE


def active_employees(employees, *, organization_id: Optional[str] = None) -> list[Employee]:
    """Active employees, excluding the organization's own root record."""
    return [
        e
        for e in employees
        if e.is_active and (organization_id is None or e.employee_id != organization_id)
    ]
