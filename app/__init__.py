"""
App package initialization
Khởi tạo Flask application và cấu hình
"""
import os
from datetime import date

from flask import Flask

from app import config
from app import globals as app_globals
from app.models import (
    AttendanceTracker,
    CaptureService,
    EventBroadcaster,
    FaceRecognitionManager,
    ReportService,
)
from core.inference.extractor import FaceEmbeddingExtractor
from core.vision.camera_manager import CameraConfig
from database import DatabaseManager
from logging_config import setup_logging


def _camera_config(settings):
    return CameraConfig(
        index=int(settings['CAMERA_INDEX']),
        width=int(settings['CAMERA_WIDTH']) or None,
        height=int(settings['CAMERA_HEIGHT']) or None,
        warmup_frames=int(settings['CAMERA_WARMUP_FRAMES']),
        buffer_size=int(settings['CAMERA_BUFFER_SIZE']),
    )


def create_app(config_overrides=None, extractor=None, camera_factory=None, today=None):
    """Factory function để tạo Flask application

    Args:
        config_overrides: dict ghi đè các giá trị trong app.config
        extractor: embedding extractor thay cho face_recognition (tests)
        camera_factory: hàm tạo frame source từ CameraConfig
        today: hàm trả về ngày hiện tại cho thống kê và ghi điểm danh
    """
    app = Flask(__name__)

    app.config.update(config.as_dict())
    if config_overrides:
        app.config.update(config_overrides)

    setup_logging(app, log_level=app.config['LOG_LEVEL'], log_dir=app.config['LOG_DIR'])

    app.logger.info(f"[STARTUP] Working directory: {os.getcwd()}")
    app.logger.info(f"[STARTUP] Database path: {os.path.abspath(app.config['DATABASE_PATH'])}")

    today = today or date.today

    # =============================================================================
    # INITIALIZE SERVICES
    # =============================================================================

    # 1. Database
    app_globals.database = DatabaseManager(
        app.config['DATABASE_PATH'],
        timeout=app.config['DATABASE_TIMEOUT'],
    )

    # 2. EventBroadcaster
    app_globals.event_broadcaster = EventBroadcaster(logger=app.logger)

    # 3. FaceRecognitionManager + gallery
    app_globals.face_recognition_manager = FaceRecognitionManager(
        app_globals.database,
        extractor or FaceEmbeddingExtractor(detection_model=app.config['FACE_DETECTION_MODEL']),
        threshold=app.config['FACE_RECOGNITION_THRESHOLD'],
        logger=app.logger,
    )
    app_globals.face_recognition_manager.load_known_faces()

    # 4. AttendanceTracker
    app_globals.attendance_tracker = AttendanceTracker(
        app_globals.database,
        event_broadcaster=app_globals.event_broadcaster,
        logger=app.logger,
    )

    # 5. ReportService
    app_globals.report_service = ReportService.from_config(
        app_globals.database,
        app.config,
        logger=app.logger,
        today=today,
    )

    # 6. CaptureService
    app_globals.capture_service = CaptureService(
        app_globals.face_recognition_manager,
        app_globals.attendance_tracker,
        cooldown_seconds=app.config['COOLDOWN_SECONDS'],
        interval_seconds=app.config['CAPTURE_INTERVAL_SECONDS'],
        camera_config=_camera_config(app.config),
        camera_factory=camera_factory,
        today=today,
        event_broadcaster=app_globals.event_broadcaster,
        logger=app.logger,
    )
    app.logger.info("[STARTUP] All services initialized")

    # Đăng ký middleware
    from app.middleware.api import register_api_middleware
    register_api_middleware(app)

    # Đăng ký blueprints
    from app.routes import register_blueprints
    register_blueprints(app)

    return app
