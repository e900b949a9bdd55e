"""
Configuration constants và settings
Read from the environment (and a local .env file) once at import time
"""
import os

from dotenv import load_dotenv

load_dotenv()

# Flask
SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
MAX_CONTENT_LENGTH = int(os.getenv('MAX_CONTENT_LENGTH', str(16 * 1024 * 1024)))  # 16MB

# Database
DATABASE_PATH = os.getenv('DATABASE_PATH', 'attendance_system.db')
DATABASE_TIMEOUT = float(os.getenv('DATABASE_TIMEOUT', '5'))

# Logging
LOG_DIR = os.getenv('LOG_DIR', 'logs')
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

# Face recognition configuration
FACE_RECOGNITION_THRESHOLD = float(os.getenv('FACE_RECOGNITION_THRESHOLD', '0.6'))
FACE_DETECTION_MODEL = os.getenv('FACE_DETECTION_MODEL', 'hog')  # 'hog' hoặc 'cnn'

# Capture loop configuration
COOLDOWN_SECONDS = float(os.getenv('COOLDOWN_SECONDS', '5'))
CAPTURE_INTERVAL_SECONDS = float(os.getenv('CAPTURE_INTERVAL_SECONDS', '3'))

# Camera configuration
CAMERA_INDEX = int(os.getenv('CAMERA_INDEX', '0'))
CAMERA_WIDTH = int(os.getenv('CAMERA_WIDTH', '640'))
CAMERA_HEIGHT = int(os.getenv('CAMERA_HEIGHT', '480'))
CAMERA_WARMUP_FRAMES = int(os.getenv('CAMERA_WARMUP_FRAMES', '3'))
CAMERA_BUFFER_SIZE = int(os.getenv('CAMERA_BUFFER_SIZE', '2'))

# Reporting
JOIN_DATE_FALLBACK_DAYS = max(1, int(os.getenv('JOIN_DATE_FALLBACK_DAYS', '7')))
LATE_AFTER = os.getenv('LATE_AFTER', '09:30:00')
RECENT_LOG_LIMIT = max(1, int(os.getenv('RECENT_LOG_LIMIT', '5')))


def as_dict():
    """Tất cả giá trị cấu hình (tên viết hoa) dưới dạng dict cho app.config"""
    return {
        name: value
        for name, value in globals().items()
        if name.isupper()
    }
