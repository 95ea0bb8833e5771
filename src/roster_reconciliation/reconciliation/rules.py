"""Status precedence as an ordered decision table.

The first rule that returns a status wins:

    1. approved_leave      -> On Leave
    2. attendance_record   -> the record's own status
    3. roster_off_day      -> Off Day
    4. absent              -> Absent (past day, no punch)
    5. not_yet_clocked_in  -> Not Yet Clocked In

A rule whose source collection is unknown stops evaluation with Unknown.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional, Sequence

from ..core.enums import Collection, EffectiveStatus
from .model import DayInputs

RuleFn = Callable[[DayInputs, date], Optional[EffectiveStatus]]


@dataclass(frozen=True)
class PrecedenceRule:
    name: str
    requires: Optional[Collection]
    apply: RuleFn


def _approved_leave(inputs: DayInputs, today: date) -> Optional[EffectiveStatus]:
    leave = inputs.leave
    if leave is not None and leave.is_approved and leave.covers(inputs.work_date):
        return EffectiveStatus.ON_LEAVE
    return None


def _attendance_record(inputs: DayInputs, today: date) -> Optional[EffectiveStatus]:
    if inputs.record is None:
        return None
    return EffectiveStatus(inputs.record.status.value)


def _roster_off_day(inputs: DayInputs, today: date) -> Optional[EffectiveStatus]:
    if inputs.assignment is not None and inputs.assignment.is_off_day:
        return EffectiveStatus.OFF_DAY
    return None


def _absent(inputs: DayInputs, today: date) -> Optional[EffectiveStatus]:
    if inputs.work_date < today:
        return EffectiveStatus.ABSENT
    return None


def _not_yet_clocked_in(inputs: DayInputs, today: date) -> Optional[EffectiveStatus]:
    return EffectiveStatus.NOT_YET_CLOCKED_IN


PRECEDENCE_RULES: tuple[PrecedenceRule, ...] = (
    PrecedenceRule("approved_leave", Collection.LEAVE_REQUESTS, _approved_leave),
    PrecedenceRule("attendance_record", Collection.ATTENDANCE, _attendance_record),
    PrecedenceRule("roster_off_day", Collection.ROSTERS, _roster_off_day),
    PrecedenceRule("absent", None, _absent),
    PrecedenceRule("not_yet_clocked_in", None, _not_yet_clocked_in),
)


def evaluate(
    inputs: DayInputs,
    today: date,
    rules: Sequence[PrecedenceRule] = PRECEDENCE_RULES,
) -> tuple[EffectiveStatus, str]:
    """Return the winning status and the name of the rule that produced it."""
    for rule in rules:
        if rule.requires is not None and rule.requires in inputs.unknown:
            return EffectiveStatus.UNKNOWN, rule.name
        status = rule.apply(inputs, today)
        if status is not None:
            return status, rule.name
    return EffectiveStatus.UNKNOWN, "no_rule"
