"""Idempotent, day-scoped write path for attendance records."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, time
from enum import Enum
from typing import Any, Dict, Optional, Protocol

from core.attendance.models import AttendanceRecord, AttendanceStatus, RecordRequest
from core.errors import DuplicateAttendance, InvalidPayload


class AttendanceStore(Protocol):
    def insert_attendance(self, emp_id: str, attendance_date: date, status: str,
                          photo: Optional[str] = None) -> Dict[str, Any]:
        ...


class RecordStatus(str, Enum):
    CREATED = "created"
    ALREADY_MARKED = "already_marked"


@dataclass(frozen=True)
class RecordResult:
    status: RecordStatus
    record: Optional[AttendanceRecord] = None

    @property
    def created(self) -> bool:
        return self.status is RecordStatus.CREATED


class AttendanceRecorder:
    """Records at most one Present row per (employee, day).

    The existence check and the insert are a single statement at the store:
    the store's unique constraint on (emp_id, attendance_date) rejects the
    second writer, which is reported here as ``ALREADY_MARKED``. Time of day
    is always stamped by the store; a caller-supplied time is ignored.
    """

    def __init__(self, store: AttendanceStore, logger: Optional[logging.Logger] = None) -> None:
        self._store = store
        self._logger = logger or logging.getLogger(__name__)

    def record(
        self,
        emp_id: str,
        on_date: date,
        time_of_day: Optional[time] = None,
        status: AttendanceStatus = AttendanceStatus.PRESENT,
        photo: Optional[str] = None,
    ) -> RecordResult:
        emp_id = (emp_id or "").strip()
        if not emp_id or on_date is None:
            raise InvalidPayload("Missing emp_id or date")
        if AttendanceStatus(status) is not AttendanceStatus.PRESENT:
            raise InvalidPayload("Only 'Present' attendance can be recorded", field="status")
        if time_of_day is not None:
            self._logger.debug(
                "[Recorder] Ignoring client time %s for %s, the store stamps check-in time",
                time_of_day,
                emp_id,
            )

        try:
            row = self._store.insert_attendance(
                emp_id,
                on_date,
                AttendanceStatus.PRESENT.value,
                photo=photo,
            )
        except DuplicateAttendance:
            self._logger.info("[Recorder] %s already marked present on %s", emp_id, on_date.isoformat())
            return RecordResult(status=RecordStatus.ALREADY_MARKED)

        record = AttendanceRecord.from_row(row)
        self._logger.info(
            "[Recorder] Marked %s present on %s at %s",
            record.emp_id,
            record.date.isoformat(),
            record.time.isoformat() if record.time else "-",
        )
        return RecordResult(status=RecordStatus.CREATED, record=record)

    def record_request(self, request: RecordRequest) -> RecordResult:
        return self.record(
            request.emp_id,
            request.date,
            time_of_day=request.time,
            status=request.status,
            photo=request.photo,
        )
