"""Exception types shared by the attendance core and the Flask layer."""
from __future__ import annotations

from typing import Optional


class AttendanceError(RuntimeError):
    """Base class for attendance failures that callers may want to report."""


class StoreUnavailable(AttendanceError):
    """Raised when the persistent store cannot be reached or is locked."""


class EmployeeNotFound(AttendanceError):
    """Raised when a write targets an employee that is not registered."""

    def __init__(self, emp_id: str) -> None:
        super().__init__(f"Employee {emp_id} not found")
        self.emp_id = emp_id


class DuplicateEmployee(AttendanceError):
    """Raised when registering an employee code that already exists."""

    def __init__(self, emp_id: str) -> None:
        super().__init__(f"Employee ID {emp_id} already exists")
        self.emp_id = emp_id


class DuplicateAttendance(AttendanceError):
    """Raised by the store when (emp_id, date) already has a Present row."""


class InvalidPayload(ValueError):
    """Raised when a write payload is missing fields or carries malformed values."""

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field
