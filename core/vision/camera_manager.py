"""OpenCV camera used as the frame source of a capture session."""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Optional

import cv2
import numpy as np


logger = logging.getLogger(__name__)


class CameraError(RuntimeError):
    """Raised when camera operations fail."""


@dataclass
class CameraConfig:
    index: int = 0
    width: Optional[int] = None
    height: Optional[int] = None
    warmup_frames: int = 3
    buffer_size: Optional[int] = 2


class CameraManager:
    """Owns one ``cv2.VideoCapture`` and hands out RGB frames."""

    def __init__(self, config: Optional[CameraConfig] = None):
        self.config = config or CameraConfig()
        self._capture: Optional[cv2.VideoCapture] = None
        self._lock = threading.Lock()

    def _open_locked(self) -> cv2.VideoCapture:
        if self._capture is not None and self._capture.isOpened():
            return self._capture

        capture = cv2.VideoCapture(self.config.index)
        if not capture or not capture.isOpened():
            raise CameraError(f"Cannot open camera index {self.config.index}")

        if self.config.width:
            capture.set(cv2.CAP_PROP_FRAME_WIDTH, self.config.width)
        if self.config.height:
            capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self.config.height)
        if self.config.buffer_size is not None and hasattr(cv2, "CAP_PROP_BUFFERSIZE"):
            capture.set(cv2.CAP_PROP_BUFFERSIZE, self.config.buffer_size)

        logger.info(
            "Camera %s ready: %sx%s",
            self.config.index,
            int(capture.get(cv2.CAP_PROP_FRAME_WIDTH)),
            int(capture.get(cv2.CAP_PROP_FRAME_HEIGHT)),
        )
        for _ in range(max(0, self.config.warmup_frames)):
            capture.read()
            time.sleep(0.05)

        self._capture = capture
        return capture

    def read(self) -> np.ndarray:
        """Grab one frame, converted from OpenCV's BGR to RGB."""
        with self._lock:
            capture = self._open_locked()
            ret, frame = capture.read()
        if not ret or frame is None:
            raise CameraError("Unable to read frame from camera")
        return cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)

    def __call__(self) -> np.ndarray:
        return self.read()

    def is_open(self) -> bool:
        with self._lock:
            return bool(self._capture is not None and self._capture.isOpened())

    def release(self) -> None:
        with self._lock:
            capture, self._capture = self._capture, None
        if capture is not None:
            capture.release()
