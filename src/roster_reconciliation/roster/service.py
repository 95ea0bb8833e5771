from __future__ import annotations

import logging
from datetime import date
from typing import Union

from ..common.actions import store_action
from ..core.enums import RosterStatus
from ..core.exceptions import LeaveCoverageError, NotFoundError, ValidationError
from ..leave.model import approved_leave_for
from ..store.base import RecordStore
from .model import OffDay, RosterAssignment

logger = logging.getLogger(__name__)


class AssignmentService:
    """Manager write path for roster assignments."""

    def __init__(self, store: RecordStore):
        self._store = store

    def set_assignment(
        self,
        *,
        employee_id: str,
        work_date: date,
        choice: Union[OffDay, str],
        force: bool = False,
    ) -> RosterAssignment:
        """Create or overwrite the assignment; `choice` is OFF_DAY or a shift id.

        On-Duty assignments on a day covered by approved leave are refused
        unless `force` is set, because leave would hide them.
        """
        if not isinstance(choice, OffDay) and not (isinstance(choice, str) and choice.strip()):
            raise ValidationError("Choose a shift or Off Day")

        with store_action("set roster assignment"):
            employee = self._store.get_employee(employee_id)
            if not employee:
                raise NotFoundError("Employee", employee_id)

            if isinstance(choice, OffDay):
                assignment = RosterAssignment(
                    employee_id=employee_id,
                    employee_name=employee.name,
                    work_date=work_date,
                    status=RosterStatus.OFF_DAY,
                )
            else:
                shift = self._store.get_shift(choice.strip())
                if not shift:
                    raise NotFoundError("Shift", choice)

                leave = approved_leave_for(self._store.list_leave_requests(employee_id=employee_id), employee_id, work_date)
                if leave is not None:
                    if not force:
                        logger.warning(
                            "Refused On-Duty assignment for %s on %s: approved leave %s",
                            employee_id,
                            work_date,
                            leave.request_id,
                        )
                        raise LeaveCoverageError(employee_id, work_date)
                    logger.warning("On-Duty assignment for %s on %s is hidden by approved leave", employee_id, work_date)

                # Shift fields are copied now and never re-synced.
                assignment = RosterAssignment(
                    employee_id=employee_id,
                    employee_name=employee.name,
                    work_date=work_date,
                    status=RosterStatus.ON_DUTY,
                    shift_id=shift.shift_id,
                    shift_name=shift.shift_name,
                    shift_color=shift.color,
                    start_time=shift.start_time,
                    end_time=shift.end_time,
                )

            self._store.put_roster_assignment(assignment)

        logger.info("Roster %s on %s set to %s", employee_id, work_date, assignment.shift_name or assignment.status.value)
        return assignment

    def clear_assignment(self, *, employee_id: str, work_date: date) -> bool:
        """Remove the record entirely, so "no assignment" differs from Off Day.

        Returns False when there was nothing to clear.
        """
        with store_action("clear roster assignment"):
            removed = self._store.delete_roster_assignment(employee_id=employee_id, work_date=work_date)

        if removed:
            logger.info("Roster %s on %s cleared", employee_id, work_date)
        return removed
