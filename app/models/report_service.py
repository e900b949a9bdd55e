"""
Report Service - Thống kê và báo cáo điểm danh
Builds timelines from stored rows and runs them through the aggregator
"""
from datetime import date, time, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple

from core.attendance import aggregator, timeline
from core.attendance.aggregator import DateWindow
from core.attendance.models import AttendanceRecord, DailyTimelineEntry, Employee, parse_time
from core.errors import EmployeeNotFound


class ReportService:
    """Service tổng hợp dashboard, thống kê theo ngày và theo nhân viên"""

    def __init__(
        self,
        database,
        today: Callable[[], date] = date.today,
        fallback_days: int = timeline.DEFAULT_FALLBACK_DAYS,
        late_after: Optional[time] = None,
        recent_limit: int = 5,
        logger=None,
    ):
        self.db = database
        self.today = today
        self.fallback_days = fallback_days
        self.late_after = late_after or aggregator.DEFAULT_LATE_AFTER
        self.recent_limit = recent_limit
        self.logger = logger

    @classmethod
    def from_config(cls, database, config, logger=None, today: Callable[[], date] = date.today):
        late_after = parse_time(config.get('LATE_AFTER')) or aggregator.DEFAULT_LATE_AFTER
        return cls(
            database,
            today=today,
            fallback_days=int(config.get('JOIN_DATE_FALLBACK_DAYS', timeline.DEFAULT_FALLBACK_DAYS)),
            late_after=late_after,
            recent_limit=int(config.get('RECENT_LOG_LIMIT', 5)),
            logger=logger,
        )

    # === DỮ LIỆU NGUỒN ===
    def employees(self, active_only: bool = True) -> List[Employee]:
        return [Employee.from_row(row) for row in self.db.get_all_employees(active_only=active_only)]

    def get_employee(self, emp_id: str) -> Employee:
        row = self.db.get_employee(emp_id)
        if row is None:
            raise EmployeeNotFound(emp_id)
        return Employee.from_row(row)

    def records(self, emp_id: Optional[str] = None, start_date=None, end_date=None) -> List[AttendanceRecord]:
        rows = self.db.get_attendance(
            emp_id=emp_id,
            start_date=start_date,
            end_date=end_date,
            include_photo=False,
        )
        return [AttendanceRecord.from_row(row) for row in rows]

    def _roster_entries(self, today: date) -> Tuple[List[Employee], List[DailyTimelineEntry]]:
        employees = self.employees(active_only=True)
        timelines = timeline.reconstruct_many(
            employees,
            self.records(end_date=today),
            today,
            fallback_days=self.fallback_days,
        )
        return employees, timeline.flatten(timelines)

    # === TIMELINE ===
    def employee_timeline(self, emp_id: str, descending: bool = False) -> Dict[str, Any]:
        employee = self.get_employee(emp_id)
        today = self.today()
        records = self.records(emp_id=emp_id)
        join_value = employee.join_date or employee.raw_join_date
        start = timeline.resolve_start_date(join_value, records, today, self.fallback_days)
        entries = timeline.reconstruct(
            emp_id,
            join_value,
            records,
            today,
            descending=descending,
            fallback_days=self.fallback_days,
        )
        return {
            'employee': employee.to_dict(),
            'effective_start': start.value.isoformat(),
            'start_source': start.source,
            'entries': [entry.to_dict() for entry in entries],
        }

    # === DASHBOARD ===
    def dashboard_summary(self) -> Dict[str, Any]:
        """Số liệu hôm nay, tỷ lệ tháng đến hiện tại và các lượt chấm công gần nhất"""
        today = self.today()
        employees, entries = self._roster_entries(today)
        roster = [e.emp_id for e in employees]

        today_summary = aggregator.aggregate(entries, DateWindow.for_day(today), roster=roster)
        month_summary = aggregator.aggregate(entries, DateWindow.month_to_date(today), roster=roster)

        active_ids = set(roster)
        today_records = [r for r in self.records(start_date=today, end_date=today) if r.emp_id in active_ids]
        names = {e.emp_id: e.name for e in employees}
        recent = self.db.get_attendance(include_photo=False, limit=self.recent_limit)

        return {
            'date': today.isoformat(),
            'total_employees': today_summary.total_employees,
            'present_today': today_summary.present_count,
            'absent_today': today_summary.absent_count,
            'late_entries': aggregator.count_late_entries(today_records, self.late_after),
            'late_after': self.late_after.strftime('%H:%M:%S'),
            'monthly_percent': month_summary.percent,
            'recent_logs': [
                dict(AttendanceRecord.from_row(row).to_dict(include_photo=False),
                     name=names.get(row['emp_id']))
                for row in recent
            ],
        }

    def daily_breakdown(self, days: int = 7) -> Dict[str, Any]:
        """Present/Absent theo từng ngày trong N ngày gần nhất"""
        today = self.today()
        employees, entries = self._roster_entries(today)
        window = DateWindow.trailing(days, today)
        summary = aggregator.aggregate(entries, window, roster=[e.emp_id for e in employees])
        return summary.to_dict()

    def employee_stats(self, emp_id: str) -> Dict[str, Any]:
        """Tổng số ngày, 30 ngày gần nhất và tổng kết tháng của một nhân viên"""
        employee = self.get_employee(emp_id)
        today = self.today()
        join_value = employee.join_date or employee.raw_join_date
        entries = timeline.reconstruct(
            emp_id,
            join_value,
            self.records(emp_id=emp_id),
            today,
            fallback_days=self.fallback_days,
        )

        last_30 = DateWindow(today - timedelta(days=29), today)
        recent = aggregator.aggregate(entries, last_30, roster=[emp_id])

        return {
            'employee': employee.to_dict(),
            'total_entries': len(entries),
            'total_present': sum(1 for e in entries if e.is_present),
            'last_30_days': {
                'present': recent.present_count,
                'absent': recent.absent_count,
                'percent': recent.percent,
            },
            'monthly': aggregator.monthly_summary(entries, today),
        }
