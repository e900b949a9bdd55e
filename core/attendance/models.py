"""Value types for the attendance core.

Payloads crossing the API boundary are parsed into these types once, so the
recorder, the timeline and the aggregator never deal with loose strings.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from core.errors import InvalidPayload

DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M:%S"


class AttendanceStatus(str, Enum):
    PRESENT = "Present"
    ABSENT = "Absent"


def parse_date(value: Any) -> Optional[date]:
    """Parse ``YYYY-MM-DD`` (optionally followed by ``T...``) into a date.

    Returns None for empty or unparsable input instead of raising.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    text = text.split("T", 1)[0].split(" ", 1)[0]
    try:
        return datetime.strptime(text, DATE_FORMAT).date()
    except ValueError:
        return None


def parse_time(value: Any) -> Optional[time]:
    if value is None:
        return None
    if isinstance(value, time):
        return value.replace(microsecond=0)
    text = str(value).strip()
    if not text:
        return None
    for fmt in (TIME_FORMAT, "%H:%M"):
        try:
            return datetime.strptime(text, fmt).time()
        except ValueError:
            continue
    return None


def format_date(value: Optional[date]) -> Optional[str]:
    return value.strftime(DATE_FORMAT) if value else None


def format_time(value: Optional[time]) -> Optional[str]:
    return value.strftime(TIME_FORMAT) if value else None


@dataclass(frozen=True)
class Employee:
    id: Optional[int]
    emp_id: str
    name: str
    department: Optional[str] = None
    join_date: Optional[date] = None
    raw_join_date: Optional[str] = None
    active: bool = True
    photo: Optional[str] = None
    descriptor_count: int = 0

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Employee":
        raw_join = row.get("join_date")
        return cls(
            id=row.get("id"),
            emp_id=row["emp_id"],
            name=row.get("name") or row["emp_id"],
            department=row.get("department"),
            join_date=parse_date(raw_join),
            raw_join_date=str(raw_join) if raw_join is not None else None,
            active=bool(row.get("is_active", 1)),
            photo=row.get("photo"),
            descriptor_count=int(row.get("descriptor_count") or 0),
        )

    def to_dict(self, include_photo: bool = False) -> Dict[str, Any]:
        payload = {
            "id": self.id,
            "emp_id": self.emp_id,
            "name": self.name,
            "department": self.department,
            "join_date": format_date(self.join_date) or self.raw_join_date,
            "active": self.active,
            "has_photo": bool(self.photo),
            "descriptor_count": self.descriptor_count,
        }
        if include_photo:
            payload["photo"] = self.photo
        return payload


@dataclass(frozen=True)
class AttendanceRecord:
    id: int
    emp_id: str
    date: date
    time: Optional[time]
    status: AttendanceStatus = AttendanceStatus.PRESENT
    photo: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "AttendanceRecord":
        record_date = parse_date(row.get("attendance_date") or row.get("date"))
        if record_date is None:
            raise ValueError(f"Attendance row {row.get('id')} has no usable date")
        return cls(
            id=int(row["id"]),
            emp_id=row["emp_id"],
            date=record_date,
            time=parse_time(row.get("check_in_time") or row.get("time")),
            status=AttendanceStatus(row.get("status") or AttendanceStatus.PRESENT.value),
            photo=row.get("photo"),
        )

    def to_dict(self, include_photo: bool = True) -> Dict[str, Any]:
        payload = {
            "id": self.id,
            "emp_id": self.emp_id,
            "date": format_date(self.date),
            "time": format_time(self.time),
            "status": self.status.value,
        }
        if include_photo:
            payload["photo"] = self.photo
        return payload


@dataclass(frozen=True)
class DailyTimelineEntry:
    emp_id: str
    date: date
    status: AttendanceStatus
    record: Optional[AttendanceRecord] = None

    @property
    def is_present(self) -> bool:
        return self.status is AttendanceStatus.PRESENT

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.record.id if self.record else f"absent-{format_date(self.date)}",
            "emp_id": self.emp_id,
            "date": format_date(self.date),
            "time": format_time(self.record.time) if self.record else None,
            "status": self.status.value,
        }


def _first(payload: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = payload.get(key)
        if value is not None and value != "":
            return value
    return None


@dataclass(frozen=True)
class RecordRequest:
    """Validated body of a *record attendance* call."""

    emp_id: str
    date: date
    time: Optional[time] = None
    status: AttendanceStatus = AttendanceStatus.PRESENT
    photo: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Optional[Mapping[str, Any]]) -> "RecordRequest":
        payload = payload or {}
        emp_id = _first(payload, "emp_id", "empId", "employeeId", "employee_id")
        raw_date = _first(payload, "date")
        if emp_id is None or raw_date is None:
            raise InvalidPayload("Missing emp_id or date")

        record_date = parse_date(raw_date)
        if record_date is None:
            raise InvalidPayload(f"Invalid date {raw_date!r}, expected YYYY-MM-DD", field="date")

        raw_time = _first(payload, "time")
        record_time = None
        if raw_time is not None:
            record_time = parse_time(raw_time)
            if record_time is None:
                raise InvalidPayload(f"Invalid time {raw_time!r}, expected HH:MM:SS", field="time")

        raw_status = _first(payload, "status") or AttendanceStatus.PRESENT.value
        if str(raw_status).strip().lower() != AttendanceStatus.PRESENT.value.lower():
            raise InvalidPayload("Only 'Present' attendance can be recorded", field="status")

        photo = _first(payload, "photo")
        if photo is not None and not isinstance(photo, str):
            raise InvalidPayload("photo must be a base64 string", field="photo")

        return cls(
            emp_id=str(emp_id).strip(),
            date=record_date,
            time=record_time,
            photo=photo,
        )


@dataclass
class EmployeePayload:
    """Validated body of an employee create/update call."""

    emp_id: Optional[str]
    name: Optional[str] = None
    department: Optional[str] = None
    join_date: Optional[date] = None
    photo: Optional[str] = None
    active: Optional[bool] = None
    provided: set = field(default_factory=set)

    @classmethod
    def from_payload(cls, payload: Optional[Mapping[str, Any]], *, require_all: bool) -> "EmployeePayload":
        payload = payload or {}
        provided = set()

        emp_id = _first(payload, "emp_id", "empId")
        name = _first(payload, "name")
        department = _first(payload, "department")
        raw_join = _first(payload, "join_date", "joinDate")
        photo = _first(payload, "photo")
        active = payload.get("active")

        if require_all and (emp_id is None or name is None):
            raise InvalidPayload("Missing emp_id or name")

        join_date = None
        if raw_join is not None:
            join_date = parse_date(raw_join)
            if join_date is None:
                raise InvalidPayload(f"Invalid join_date {raw_join!r}, expected YYYY-MM-DD", field="join_date")

        for key, value in (("name", name), ("department", department),
                           ("join_date", join_date), ("photo", photo)):
            if value is not None:
                provided.add(key)
        if active is not None:
            provided.add("active")
            if isinstance(active, str):
                active = active.strip().lower() in ("1", "true", "yes", "on")
            else:
                active = bool(active)

        return cls(
            emp_id=str(emp_id).strip() if emp_id is not None else None,
            name=str(name).strip() if name is not None else None,
            department=str(department).strip() if department is not None else None,
            join_date=join_date,
            photo=photo,
            active=active,
            provided=provided,
        )
