"""
Cấu hình logging cho hệ thống chấm công
Logging setup and domain loggers for the attendance tracker
"""

import logging
import logging.handlers
from datetime import datetime
from pathlib import Path

_installed_handlers = []

def setup_logging(app, log_level='INFO', log_dir='logs', max_log_size=10*1024*1024, backup_count=5):
    """
    Thiết lập logging cho ứng dụng Flask

    Args:
        app: Flask app instance
        log_level: Mức độ log (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Thư mục chứa file log
        max_log_size: Kích thước tối đa của file log (bytes)
        backup_count: Số lượng file log backup
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    level = getattr(logging, str(log_level).upper(), logging.INFO)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(module)s:%(lineno)d - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    file_handler = logging.handlers.RotatingFileHandler(
        log_dir / 'attendance_system.log',
        maxBytes=max_log_size,
        backupCount=backup_count,
        encoding='utf-8'
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)

    error_handler = logging.handlers.RotatingFileHandler(
        log_dir / 'errors.log',
        maxBytes=max_log_size,
        backupCount=backup_count,
        encoding='utf-8'
    )
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Xóa handlers do lần gọi trước cài đặt (create_app có thể được gọi nhiều lần)
    for handler in _installed_handlers:
        root_logger.removeHandler(handler)
        handler.close()
    _installed_handlers[:] = [file_handler, console_handler, error_handler]

    for handler in _installed_handlers:
        root_logger.addHandler(handler)

    # Logger riêng cho nhận diện, database và API
    for name in ('face_recognition', 'database', 'api'):
        logging.getLogger(name).setLevel(level)

    app.logger.setLevel(level)

    app.logger.info("=" * 50)
    app.logger.info("ATTENDANCE TRACKER STARTUP")
    app.logger.info(f"Timestamp: {datetime.now().isoformat()}")
    app.logger.info(f"Log Level: {logging.getLevelName(level)}")
    app.logger.info(f"Log Directory: {log_dir.absolute()}")
    app.logger.info("=" * 50)


class FaceRecognitionLogger:
    """Logger chuyên dụng cho nhận diện khuôn mặt"""

    def __init__(self):
        self.logger = logging.getLogger('face_recognition')

    def log_face_recognized(self, emp_id, distance, station=None):
        station_info = f", Station: {station}" if station else ""
        self.logger.info(f"Face recognized - Employee: {emp_id}, Distance: {distance:.3f}{station_info}")

    def log_no_match(self, station=None):
        station_info = f" - Station: {station}" if station else ""
        self.logger.info(f"Face not recognized{station_info}")

    def log_attendance_marked(self, emp_id, attendance_date, already_marked=False):
        state = "ALREADY MARKED" if already_marked else "MARKED"
        self.logger.info(f"Attendance {state} - Employee: {emp_id}, Date: {attendance_date}")

    def log_recognition_error(self, error_message):
        self.logger.error(f"Recognition error - {error_message}")


class DatabaseLogger:
    """Logger chuyên dụng cho database operations"""

    def __init__(self):
        self.logger = logging.getLogger('database')

    def log_query(self, query_type, table, duration=None):
        duration_info = f", Duration: {duration:.3f}s" if duration else ""
        self.logger.debug(f"DB Query - Type: {query_type}, Table: {table}{duration_info}")

    def log_error(self, operation, error_message):
        self.logger.error(f"DB Error - Operation: {operation}, Error: {error_message}")


class APILogger:
    """Logger chuyên dụng cho API calls"""

    def __init__(self):
        self.logger = logging.getLogger('api')

    def log_request(self, method, endpoint, ip_address=None):
        ip_info = f", IP: {ip_address}" if ip_address else ""
        self.logger.info(f"API Request - {method} {endpoint}{ip_info}")

    def log_error(self, endpoint, error_message, status_code=500):
        self.logger.error(f"API Error - {endpoint}, Status: {status_code}, Error: {error_message}")


# Các instance logger toàn cục
face_recognition_logger = FaceRecognitionLogger()
database_logger = DatabaseLogger()
api_logger = APILogger()


def get_client_ip(request):
    """Lấy IP address của client"""
    if request.headers.get('X-Forwarded-For'):
        return request.headers.get('X-Forwarded-For').split(',')[0].strip()
    elif request.headers.get('X-Real-IP'):
        return request.headers.get('X-Real-IP')
    else:
        return request.remote_addr


def log_request_info(request):
    """Log thông tin request"""
    ip_address = get_client_ip(request)
    api_logger.log_request(request.method, request.endpoint, ip_address=ip_address)
    return ip_address
