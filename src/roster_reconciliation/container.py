from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Union

from .attendance.factory import AttendanceStrategyFactory
from .attendance.service import AttendanceService
from .common.datetime_utils import Clock, SystemClock
from .core.constants import (
    DEFAULT_DAILY_TARGET_HOURS,
    DEFAULT_LATE_GRACE_MINUTES,
    DEFAULT_MAX_BREAK_MINUTES,
    DEFAULT_REFRESH_INTERVAL_SECONDS,
)
from .database.bootstrap import apply_schema
from .database.connection import DBConfig, DatabaseConnection
from .engine import RosterEngine
from .requests.service import ConditionReportService, SwapRequestService
from .roster.service import AssignmentService
from .store.memory import InMemoryRecordStore
from .store.mysql_store import MySQLRecordStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Container:
    store: Union[InMemoryRecordStore, MySQLRecordStore]
    clock: Clock

    engine: RosterEngine
    assignment_service: AssignmentService
    swap_service: SwapRequestService
    condition_service: ConditionReportService
    attendance_service: AttendanceService


def _build_store(settings, organization_id: str):
    backend = str(getattr(settings, "STORE_BACKEND", "memory")).lower()
    if backend == "memory":
        return InMemoryRecordStore()
    if backend != "mysql":
        raise ValueError(f"Unknown STORE_BACKEND: {backend!r}")

    db_config = getattr(settings, "DB_CONFIG")
    config = DBConfig.from_dict(db_config)
    conn = DatabaseConnection.get_instance(config)
    if bool(getattr(settings, "AUTO_INIT_DB", False)):
        apply_schema(conn, database=config.database)
    logger.info(
        "Using MySQL store %s@%s:%s/%s",
        config.user,
        config.host,
        config.port,
        config.database,
    )
    return MySQLRecordStore(conn, organization_id=organization_id)


def build_container(settings, *, store=None, clock: Optional[Clock] = None) -> Container:
    """Wire services from a settings module; `store`/`clock` override for tests."""
    organization_id = str(getattr(settings, "ORGANIZATION_ID", ""))
    clock = clock or SystemClock()
    store = store if store is not None else _build_store(settings, organization_id)

    condition_service = ConditionReportService(store, clock=clock)
    swap_service = SwapRequestService(store, clock=clock)
    assignment_service = AssignmentService(store)
    attendance_service = AttendanceService(
        store,
        conditions=condition_service,
        strategy_factory=AttendanceStrategyFactory(),
        clock=clock,
        grace_minutes=int(getattr(settings, "LATE_GRACE_MINUTES", DEFAULT_LATE_GRACE_MINUTES)),
        daily_target_hours=int(getattr(settings, "DAILY_TARGET_HOURS", DEFAULT_DAILY_TARGET_HOURS)),
    )
    engine = RosterEngine(
        store,
        clock=clock,
        organization_id=organization_id or None,
        max_break_minutes=int(getattr(settings, "MAX_BREAK_MINUTES", DEFAULT_MAX_BREAK_MINUTES)),
        refresh_interval_seconds=float(
            getattr(settings, "REFRESH_INTERVAL_SECONDS", DEFAULT_REFRESH_INTERVAL_SECONDS)
        ),
    )

    return Container(
        store=store,
        clock=clock,
        engine=engine,
        assignment_service=assignment_service,
        swap_service=swap_service,
        condition_service=condition_service,
        attendance_service=attendance_service,
    )
