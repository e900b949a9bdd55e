"""
Attendance Tracker - Quản lý logic điểm danh
Record path shared by the HTTP API and the capture sessions
"""
from datetime import date, time
from typing import List, Optional

from core.attendance.models import AttendanceRecord, RecordRequest
from core.attendance.recorder import AttendanceRecorder, RecordResult
from core.errors import StoreUnavailable
from logging_config import face_recognition_logger


class AttendanceTracker:
    """Service quản lý logic điểm danh"""

    def __init__(self, database, event_broadcaster=None, logger=None):
        self.db = database
        self.recorder = AttendanceRecorder(database, logger=logger)
        self.event_broadcaster = event_broadcaster
        self.logger = logger

    def mark_attendance(
        self,
        emp_id: str,
        on_date: date,
        time_of_day: Optional[time] = None,
        photo: Optional[str] = None,
        station: Optional[str] = None,
        distance: Optional[float] = None,
    ) -> RecordResult:
        """
        Ghi điểm danh Present cho (emp_id, ngày).
        Returns: RecordResult CREATED hoặc ALREADY_MARKED
        """
        result = self.recorder.record(emp_id, on_date, time_of_day=time_of_day, photo=photo)

        face_recognition_logger.log_attendance_marked(
            emp_id,
            on_date.isoformat(),
            already_marked=not result.created,
        )
        self._notify(emp_id, result, station, distance)
        return result

    def record_request(self, request: RecordRequest, station: Optional[str] = None) -> RecordResult:
        return self.mark_attendance(
            request.emp_id,
            request.date,
            time_of_day=request.time,
            photo=request.photo,
            station=station,
        )

    def _notify(self, emp_id, result: RecordResult, station, distance):
        if not self.event_broadcaster:
            return
        # Bản ghi đã commit; lỗi tra tên chỉ ảnh hưởng nội dung thông báo
        try:
            employee = self.db.get_employee(emp_id)
        except StoreUnavailable as exc:
            if self.logger:
                self.logger.warning(f"[Attendance] Name lookup failed for {emp_id}: {exc}")
            employee = None
        name = employee.get('name') if employee else emp_id
        record = result.record.to_dict(include_photo=False) if result.record else None
        self.event_broadcaster.broadcast_attendance_update(
            emp_id,
            name,
            result.status.value,
            record=record,
            station=station,
            distance=distance,
        )

    def get_records(self, emp_id=None, start_date=None, end_date=None,
                    include_photo=True) -> List[AttendanceRecord]:
        """Bản ghi điểm danh, mới nhất trước"""
        rows = self.db.get_attendance(
            emp_id=emp_id,
            start_date=start_date,
            end_date=end_date,
            include_photo=include_photo,
        )
        return [AttendanceRecord.from_row(row) for row in rows]
