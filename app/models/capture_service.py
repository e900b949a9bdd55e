"""
Capture Service - Quản lý các trạm chấm công bằng camera
One CaptureSession per station: browser stations push frames over HTTP,
server stations poll a local OpenCV camera in a background thread
"""
import functools
import threading
from datetime import date
from typing import Any, Callable, Dict, List, Optional

from core.attendance.cooldown import CooldownController
from core.errors import InvalidPayload
from core.inference.extractor import decode_base64_image
from core.vision.camera_manager import CameraConfig, CameraManager
from core.vision.capture_session import CaptureSession, TickOutcome, TickStatus
from logging_config import face_recognition_logger


class CaptureService:
    """Registry of capture sessions keyed by station id"""

    def __init__(
        self,
        face_recognition_manager,
        attendance_tracker,
        cooldown_seconds: float = 5.0,
        interval_seconds: float = 3.0,
        camera_config: Optional[CameraConfig] = None,
        camera_factory: Optional[Callable[[CameraConfig], Any]] = None,
        today: Callable[[], date] = date.today,
        clock: Optional[Callable[[], float]] = None,
        event_broadcaster=None,
        logger=None,
    ):
        self.faces = face_recognition_manager
        self.tracker = attendance_tracker
        self.event_broadcaster = event_broadcaster
        self.cooldown_seconds = cooldown_seconds
        self.interval_seconds = interval_seconds
        self.camera_config = camera_config or CameraConfig()
        self.camera_factory = camera_factory or CameraManager
        self.today = today
        self.clock = clock
        self.logger = logger

        self._sessions: Dict[str, CaptureSession] = {}
        self._lock = threading.Lock()

    def _build_session(self, station_id: str, frame_source=None,
                       cooldown: Optional[CooldownController] = None) -> CaptureSession:
        return CaptureSession(
            station_id,
            extractor=self.faces.extractor,
            matcher=self.faces.matcher,
            gallery=self.faces.gallery,
            record=functools.partial(self.tracker.mark_attendance, station=station_id),
            frame_source=frame_source,
            cooldown=cooldown or CooldownController(self.cooldown_seconds, clock=self.clock),
            interval_seconds=self.interval_seconds,
            today=self.today,
            logger=self.logger,
            on_outcome=functools.partial(self._log_outcome, station_id),
        )

    @staticmethod
    def _log_outcome(station_id: str, outcome: TickOutcome):
        """Ghi log nhận diện cho mỗi lượt có kết quả khớp hoặc không khớp"""
        if outcome.status is TickStatus.NO_MATCH:
            face_recognition_logger.log_no_match(station=station_id)
        elif outcome.status is TickStatus.ERROR:
            face_recognition_logger.log_recognition_error(f"{station_id}: {outcome.message}")
        elif outcome.match is not None and outcome.status is not TickStatus.SUPPRESSED:
            face_recognition_logger.log_face_recognized(
                outcome.match.emp_id, outcome.match.distance, station=station_id
            )

    def _announce(self, message: str):
        if self.event_broadcaster:
            self.event_broadcaster.broadcast_system_message(message)

    def get_session(self, station_id: str) -> Optional[CaptureSession]:
        with self._lock:
            return self._sessions.get(station_id)

    def get_or_create_session(self, station_id: str) -> CaptureSession:
        with self._lock:
            session = self._sessions.get(station_id)
            if session is None:
                session = self._build_session(station_id)
                self._sessions[station_id] = session
                if self.logger:
                    self.logger.info(f"[Capture] Registered station {station_id}")
            return session

    def push_frame(self, station_id: str, image_data: Optional[str],
                   keep_photo: bool = True) -> TickOutcome:
        """Chạy một lượt nhận diện trên ảnh base64 do trình duyệt gửi lên"""
        if not image_data or not isinstance(image_data, str):
            raise InvalidPayload("Missing image", field="image")
        try:
            frame = decode_base64_image(image_data)
        except ValueError as exc:
            raise InvalidPayload(str(exc), field="image") from exc

        session = self.get_or_create_session(station_id)
        return session.tick(frame=frame, photo=image_data if keep_photo else None)

    def start(self, station_id: str, camera_index: Optional[int] = None) -> bool:
        """Bật vòng lặp camera phía server cho trạm; False nếu đã chạy"""
        with self._lock:
            existing = self._sessions.get(station_id)
            if existing is not None and existing.is_running():
                return False

            config = CameraConfig(
                index=self.camera_config.index if camera_index is None else int(camera_index),
                width=self.camera_config.width,
                height=self.camera_config.height,
                warmup_frames=self.camera_config.warmup_frames,
                buffer_size=self.camera_config.buffer_size,
            )
            camera = self.camera_factory(config)
            cooldown = existing.cooldown if existing is not None else None
            session = self._build_session(station_id, frame_source=camera, cooldown=cooldown)
            # Start trong lock: lần gọi start thứ hai phải thấy session đang chạy
            started = session.start()
            self._sessions[station_id] = session

        if started:
            self._announce(f"Station {station_id} started")
        return started

    def stop(self, station_id: str) -> bool:
        session = self.get_session(station_id)
        if session is None or not session.is_running():
            return False
        session.stop()
        self._announce(f"Station {station_id} stopped")
        return True

    def list_sessions(self) -> List[Dict[str, Any]]:
        with self._lock:
            sessions = list(self._sessions.values())
        return [session.status() for session in sessions]

    def shutdown(self):
        with self._lock:
            sessions = list(self._sessions.values())
        for session in sessions:
            if session.is_running():
                session.stop()
        if self.event_broadcaster:
            self.event_broadcaster.cleanup()
