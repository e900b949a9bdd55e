"""Counts and percentages over reconstructed timelines."""
from __future__ import annotations

import calendar
import math
from dataclasses import dataclass, field
from datetime import date, time, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence

from core.attendance.models import AttendanceRecord, DailyTimelineEntry, format_date
from core.attendance.timeline import iter_dates

DEFAULT_LATE_AFTER = time(9, 30)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def percent(part: int, whole: int) -> int:
    if whole <= 0:
        return 0
    return round_half_up(part / whole * 100)


@dataclass(frozen=True)
class DateWindow:
    start: date
    end: date

    def __post_init__(self):
        if self.start > self.end:
            raise ValueError(f"Window start {self.start} is after end {self.end}")

    @classmethod
    def for_day(cls, day: date) -> "DateWindow":
        return cls(day, day)

    @classmethod
    def trailing(cls, days: int, today: date) -> "DateWindow":
        days = max(int(days), 1)
        return cls(today - timedelta(days=days - 1), today)

    @classmethod
    def month_to_date(cls, today: date) -> "DateWindow":
        return cls(today.replace(day=1), today)

    @classmethod
    def whole_month(cls, today: date) -> "DateWindow":
        last_day = calendar.monthrange(today.year, today.month)[1]
        return cls(today.replace(day=1), today.replace(day=last_day))

    @property
    def is_single_day(self) -> bool:
        return self.start == self.end

    def days(self) -> List[date]:
        return list(iter_dates(self.start, self.end))

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


@dataclass(frozen=True)
class DailyBucket:
    date: date
    present: int = 0
    absent: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"date": format_date(self.date), "present": self.present, "absent": self.absent}


@dataclass(frozen=True)
class AttendanceSummary:
    window: DateWindow
    total_employees: int
    present_count: int
    absent_count: int
    percent: int
    daily_buckets: List[DailyBucket] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start": format_date(self.window.start),
            "end": format_date(self.window.end),
            "total_employees": self.total_employees,
            "present_count": self.present_count,
            "absent_count": self.absent_count,
            "percent": self.percent,
            "daily_buckets": [bucket.to_dict() for bucket in self.daily_buckets],
        }


def aggregate(
    entries: Iterable[DailyTimelineEntry],
    window: DateWindow,
    employee_filter: Optional[Iterable[str]] = None,
    roster: Optional[Sequence[str]] = None,
) -> AttendanceSummary:
    """Summarize timeline entries that fall inside ``window``.

    For a single-day window ``present_count`` is the number of distinct
    employees present and ``absent_count`` is the remainder of the roster.
    For longer windows both counts are taken from the entries themselves.
    """
    allowed = set(employee_filter) if employee_filter is not None else None

    in_window = [
        e for e in entries
        if window.contains(e.date) and (allowed is None or e.emp_id in allowed)
    ]

    if roster is not None:
        members = {emp_id for emp_id in roster if allowed is None or emp_id in allowed}
    else:
        members = {e.emp_id for e in in_window}
    total_employees = len(members)

    present_entries = sum(1 for e in in_window if e.is_present)
    absent_entries = len(in_window) - present_entries

    if window.is_single_day:
        present_count = len({e.emp_id for e in in_window if e.is_present})
        absent_count = max(total_employees - present_count, 0)
        buckets = [DailyBucket(window.start, present_count, absent_count)]
    else:
        present_count = present_entries
        absent_count = absent_entries
        buckets = daily_buckets(in_window, window)

    return AttendanceSummary(
        window=window,
        total_employees=total_employees,
        present_count=present_count,
        absent_count=absent_count,
        percent=percent(present_entries, len(in_window)),
        daily_buckets=buckets,
    )


def daily_buckets(entries: Iterable[DailyTimelineEntry], window: DateWindow) -> List[DailyBucket]:
    """One bucket per day of ``window``; days without entries get zero counts."""
    present: Dict[date, int] = {}
    absent: Dict[date, int] = {}
    for entry in entries:
        if not window.contains(entry.date):
            continue
        target = present if entry.is_present else absent
        target[entry.date] = target.get(entry.date, 0) + 1
    return [DailyBucket(day, present.get(day, 0), absent.get(day, 0)) for day in window.days()]


def count_working_days(start: date, end: date) -> int:
    """Monday to Friday inclusive of both ends."""
    if start > end:
        return 0
    return sum(1 for day in iter_dates(start, end) if day.weekday() < 5)


def count_late_entries(records: Iterable[AttendanceRecord], late_after: time = DEFAULT_LATE_AFTER) -> int:
    return sum(1 for r in records if r.time is not None and r.time > late_after)


def monthly_summary(timeline: Iterable[DailyTimelineEntry], today: date) -> Dict[str, Any]:
    """Working-day summary of the current calendar month for one employee.

    Working days cover the whole month (Mon-Fri); present days are counted
    from the timeline, so weekend check-ins still count as present.
    """
    month = DateWindow.whole_month(today)
    working_days = count_working_days(month.start, month.end)
    present_days = sum(1 for e in timeline if e.is_present and month.contains(e.date))
    return {
        "month_label": month.start.strftime("%B %Y"),
        "working_days": working_days,
        "present": present_days,
        "absent": max(working_days - present_days, 0),
        "attendance_pct": round(present_days / working_days * 100, 2) if working_days else 0,
    }
