"""Timer-driven check-in loop for a single camera station.

Every tick runs one sequential attempt:

    frame -> embedding -> identity match -> cooldown gate -> record

A session never runs two attempts at once. Ticks that arrive while an
attempt is still in flight (from the background timer or from frames pushed
by a browser station) return ``busy`` immediately.
"""
from __future__ import annotations

import logging
import threading
import time
from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Dict, Optional

import numpy as np

from core.attendance.cooldown import CooldownController
from core.attendance.recorder import RecordResult, RecordStatus
from core.errors import AttendanceError
from core.inference.extractor import NoFaceDetected
from core.inference.matcher import Gallery, IdentityMatcher, MatchResult

FrameSource = Callable[[], np.ndarray]
RecordFn = Callable[..., RecordResult]


class TickStatus(str, Enum):
    BUSY = "busy"
    NO_FRAME = "no_frame"
    NO_FACE = "no_face"
    NO_MATCH = "no_match"
    SUPPRESSED = "suppressed"
    CREATED = "created"
    ALREADY_MARKED = "already_marked"
    STORE_ERROR = "store_error"
    ERROR = "error"


@dataclass(frozen=True)
class TickOutcome:
    status: TickStatus
    match: Optional[MatchResult] = None
    result: Optional[RecordResult] = None
    message: Optional[str] = None
    at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"status": self.status.value}
        if self.match is not None:
            payload.update(self.match.to_dict())
        if self.result is not None and self.result.record is not None:
            payload["record"] = self.result.record.to_dict(include_photo=False)
        if self.message:
            payload["message"] = self.message
        if self.at is not None:
            payload["at"] = self.at.isoformat(timespec="seconds")
        return payload


class CaptureSession:
    """One capture station: owns its cooldown and its in-flight guard."""

    def __init__(
        self,
        session_id: str,
        *,
        extractor: Any,
        matcher: IdentityMatcher,
        gallery: Gallery,
        record: RecordFn,
        frame_source: Optional[FrameSource] = None,
        cooldown: Optional[CooldownController] = None,
        interval_seconds: float = 3.0,
        today: Callable[[], date] = date.today,
        logger: Optional[logging.Logger] = None,
        on_outcome: Optional[Callable[[TickOutcome], None]] = None,
    ) -> None:
        self.session_id = session_id
        self._extractor = extractor
        self._matcher = matcher
        self._gallery = gallery
        self._record = record
        self._frame_source = frame_source
        self.cooldown = cooldown or CooldownController()
        self.interval_seconds = max(float(interval_seconds), 0.1)
        self._today = today
        self._logger = logger or logging.getLogger(__name__)
        self._on_outcome = on_outcome

        self._in_flight = threading.Lock()
        self._state_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._counts: Counter = Counter()
        self._last_outcome: Optional[TickOutcome] = None

    # ------------------------------------------------------------------
    # Single attempt
    # ------------------------------------------------------------------
    def tick(self, frame: Optional[np.ndarray] = None, photo: Optional[str] = None) -> TickOutcome:
        if not self._in_flight.acquire(blocking=False):
            outcome = TickOutcome(TickStatus.BUSY, message="Previous attempt still in flight")
            self._remember(outcome)
            return outcome
        try:
            outcome = self._attempt(frame, photo)
        finally:
            self._in_flight.release()
        self._remember(outcome)
        if self._on_outcome is not None:
            self._on_outcome(outcome)
        return outcome

    def _attempt(self, frame: Optional[np.ndarray], photo: Optional[str]) -> TickOutcome:
        now = datetime.now()
        if frame is None:
            if self._frame_source is None:
                return TickOutcome(TickStatus.NO_FRAME, message="No frame source", at=now)
            try:
                frame = self._frame_source()
            except Exception as exc:
                self._logger.warning("[Capture %s] Frame capture failed: %s", self.session_id, exc)
                return TickOutcome(TickStatus.NO_FRAME, message=str(exc), at=now)

        try:
            embedding = self._extractor.extract(frame)
        except NoFaceDetected:
            return TickOutcome(TickStatus.NO_FACE, at=now)

        try:
            match = self._matcher.match(embedding, self._gallery)
        except ValueError as exc:
            self._logger.error("[Capture %s] Cannot match embedding: %s", self.session_id, exc)
            return TickOutcome(TickStatus.ERROR, message=str(exc), at=now)

        if match is None:
            self._logger.debug("[Capture %s] Face not recognized", self.session_id)
            return TickOutcome(TickStatus.NO_MATCH, at=now)

        if not self.cooldown.should_record(match.emp_id):
            self._logger.debug(
                "[Capture %s] %s suppressed for %.1fs",
                self.session_id,
                match.emp_id,
                self.cooldown.remaining(match.emp_id),
            )
            return TickOutcome(TickStatus.SUPPRESSED, match=match, at=now)

        try:
            result = self._record(match.emp_id, self._today(), photo=photo)
        except AttendanceError as exc:
            # Failed writes leave the cooldown untouched so the next tick retries
            self._logger.error(
                "[Capture %s] Could not record %s: %s", self.session_id, match.emp_id, exc
            )
            return TickOutcome(TickStatus.STORE_ERROR, match=match, message=str(exc), at=now)

        self.cooldown.mark(match.emp_id)
        status = TickStatus.CREATED if result.status is RecordStatus.CREATED else TickStatus.ALREADY_MARKED
        return TickOutcome(status, match=match, result=result, at=now)

    def _remember(self, outcome: TickOutcome) -> None:
        with self._state_lock:
            self._counts[outcome.status.value] += 1
            self._last_outcome = outcome

    # ------------------------------------------------------------------
    # Background loop
    # ------------------------------------------------------------------
    def start(self) -> bool:
        with self._state_lock:
            if self._thread is not None and self._thread.is_alive():
                return False
            if self._frame_source is None:
                raise RuntimeError(f"Capture session {self.session_id} has no frame source")
            self._stop_event.clear()
            self._thread = threading.Thread(
                target=self._run,
                name=f"capture-{self.session_id}",
                daemon=True,
            )
            self._thread.start()
        self._logger.info(
            "[Capture %s] Started, polling every %.1fs", self.session_id, self.interval_seconds
        )
        return True

    def _run(self) -> None:
        while not self._stop_event.is_set():
            started = time.monotonic()
            try:
                self.tick()
            except Exception:
                self._logger.exception("[Capture %s] Unexpected error during tick", self.session_id)
            elapsed = time.monotonic() - started
            self._stop_event.wait(max(self.interval_seconds - elapsed, 0.0))

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop_event.set()
        with self._state_lock:
            thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout if timeout is not None else self.interval_seconds + 5)
        release = getattr(self._frame_source, "release", None)
        if callable(release):
            release()
        self._logger.info("[Capture %s] Stopped", self.session_id)

    def is_running(self) -> bool:
        with self._state_lock:
            return self._thread is not None and self._thread.is_alive()

    def status(self) -> Dict[str, Any]:
        with self._state_lock:
            last = self._last_outcome.to_dict() if self._last_outcome else None
            counts = dict(self._counts)
        return {
            "session_id": self.session_id,
            "running": self.is_running(),
            "interval_seconds": self.interval_seconds,
            "cooldown_seconds": self.cooldown.cooldown_seconds,
            "suppressed": self.cooldown.suppressed_ids(),
            "counts": counts,
            "last_outcome": last,
        }
