"""
Global service references
Khởi tạo trong app/__init__.py (create_app), routes đọc qua module này
"""

database = None
face_recognition_manager = None
attendance_tracker = None
report_service = None
capture_service = None
event_broadcaster = None
