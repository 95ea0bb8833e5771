from __future__ import annotations

from typing import Optional


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class LeaveCoverageError(ValidationError):
    """Raised when an On-Duty assignment targets a day covered by approved leave."""

    def __init__(self, employee_id: str, work_date) -> None:
        super().__init__(f"{employee_id} is on approved leave on {work_date.isoformat()}; the assignment would be hidden")
        self.employee_id = employee_id
        self.work_date = work_date


class NotFoundError(DomainError):
    """Raised when a referenced shift, employee or request does not resolve."""

    def __init__(self, entity: str, key: object) -> None:
        super().__init__(f"{entity} {key!s} not found")
        self.entity = entity
        self.key = key


class ConflictError(DomainError):
    """Raised when a workflow record is already in a terminal state."""

    def __init__(self, message: str, *, current_status: Optional[str] = None) -> None:
        super().__init__(message)
        self.current_status = current_status


class StoreUnavailableError(DomainError):
    """A collection could not be read; its data is unknown, not empty."""

    def __init__(self, collection, cause: Optional[BaseException] = None) -> None:
        name = getattr(collection, "value", collection)
        super().__init__(f"{name} data is unavailable")
        self.collection = collection
        self.cause = cause


class ActionFailedError(DomainError):
    """A write against the record store failed."""

    def __init__(self, action: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(f"could not {action}")
        self.action = action
        self.cause = cause
