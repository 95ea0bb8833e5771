from __future__ import annotations

from dataclasses import dataclass
from datetime import time

from ..core.constants import DEFAULT_SHIFT_COLOR


@dataclass(frozen=True)
class Shift:
    """Shift reference data: a time-of-day window not bound to any date."""

    shift_id: str
    shift_name: str
    start_time: time
    end_time: time
    color: str = DEFAULT_SHIFT_COLOR
