"""
Models Package - Business logic models
Centralized business logic separated from Flask routes
"""

from .attendance_tracker import AttendanceTracker
from .capture_service import CaptureService
from .event_broadcaster import EventBroadcaster
from .face_recognition_manager import FaceRecognitionManager
from .report_service import ReportService

__all__ = [
    'AttendanceTracker',
    'CaptureService',
    'EventBroadcaster',
    'FaceRecognitionManager',
    'ReportService',
]
