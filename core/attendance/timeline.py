"""Reconstruction of gap-free daily Present/Absent timelines.

Only Present rows are ever stored; every other day between an employee's
start date and today is an implied Absent. Reconstruction makes those days
explicit so statistics and charts can count them.

Start date resolution is one fixed chain, used by every caller:

1. the employee's join date, when it is a valid calendar date;
2. otherwise the earliest date among the employee's own records;
3. otherwise a bounded window of ``fallback_days`` days ending today.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Dict, Iterable, Iterator, List

from core.attendance.models import AttendanceRecord, AttendanceStatus, DailyTimelineEntry, parse_date

DEFAULT_FALLBACK_DAYS = 7

START_FROM_JOIN_DATE = "join_date"
START_FROM_FIRST_RECORD = "first_record"
START_FROM_FALLBACK_WINDOW = "fallback_window"


@dataclass(frozen=True)
class StartDate:
    value: date
    source: str


def iter_dates(start: date, end: date) -> Iterator[date]:
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def resolve_start_date(
    join_date: Any,
    records: Iterable[AttendanceRecord],
    today: date,
    fallback_days: int = DEFAULT_FALLBACK_DAYS,
) -> StartDate:
    parsed = parse_date(join_date)
    if parsed is not None:
        return StartDate(parsed, START_FROM_JOIN_DATE)

    dates = [r.date for r in records if r.date is not None]
    if dates:
        return StartDate(min(dates), START_FROM_FIRST_RECORD)

    window = max(int(fallback_days), 1)
    return StartDate(today - timedelta(days=window - 1), START_FROM_FALLBACK_WINDOW)


def reconstruct(
    emp_id: str,
    join_date: Any,
    actual_records: Iterable[AttendanceRecord],
    today: date,
    *,
    descending: bool = False,
    fallback_days: int = DEFAULT_FALLBACK_DAYS,
) -> List[DailyTimelineEntry]:
    """One entry per calendar day from the resolved start date to ``today``."""
    own_records = [r for r in actual_records if r.emp_id == emp_id]
    start = resolve_start_date(join_date, own_records, today, fallback_days).value

    by_date: Dict[date, AttendanceRecord] = {}
    for record in own_records:
        if record.status is not AttendanceStatus.PRESENT:
            continue
        if start <= record.date <= today and record.date not in by_date:
            by_date[record.date] = record

    timeline = []
    for day in iter_dates(start, today):
        record = by_date.get(day)
        if record is not None:
            timeline.append(DailyTimelineEntry(emp_id, day, AttendanceStatus.PRESENT, record))
        else:
            timeline.append(DailyTimelineEntry(emp_id, day, AttendanceStatus.ABSENT))

    if descending:
        timeline.reverse()
    return timeline


def reconstruct_many(
    employees: Iterable[Any],
    records: Iterable[AttendanceRecord],
    today: date,
    *,
    fallback_days: int = DEFAULT_FALLBACK_DAYS,
) -> Dict[str, List[DailyTimelineEntry]]:
    """Reconstruct ascending timelines for every employee in ``employees``.

    ``employees`` are objects with ``emp_id`` and ``join_date`` attributes.
    """
    grouped: Dict[str, List[AttendanceRecord]] = {}
    for record in records:
        grouped.setdefault(record.emp_id, []).append(record)

    result: Dict[str, List[DailyTimelineEntry]] = {}
    for employee in employees:
        emp_records = grouped.get(employee.emp_id, [])
        join_value = employee.join_date or getattr(employee, "raw_join_date", None)
        result[employee.emp_id] = reconstruct(
            employee.emp_id,
            join_value,
            emp_records,
            today,
            fallback_days=fallback_days,
        )
    return result


def flatten(timelines: Dict[str, List[DailyTimelineEntry]]) -> List[DailyTimelineEntry]:
    entries: List[DailyTimelineEntry] = []
    for emp_id in sorted(timelines):
        entries.extend(timelines[emp_id])
    return entries
