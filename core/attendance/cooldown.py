"""Per-session duplicate suppression for recognized identities."""
from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Union

Clock = Callable[[], float]


@dataclass(frozen=True)
class Idle:
    name = "idle"


@dataclass(frozen=True)
class Suppressed:
    emp_id: str
    marked_at: float
    name = "suppressed"


CooldownState = Union[Idle, Suppressed]


class CooldownController:
    """Suppresses repeat marks of the same identity inside a short window.

    Each capture session owns one controller. Suppression is tracked per
    identity, so a different employee is never held back, and it lapses
    purely by elapsed time on ``clock``.
    """

    def __init__(self, cooldown_seconds: float = 5.0, clock: Optional[Clock] = None) -> None:
        self.cooldown_seconds = max(float(cooldown_seconds), 0.0)
        self._clock = clock or time.monotonic
        self._marked: Dict[str, float] = {}
        self._lock = threading.Lock()

    def _prune_locked(self, now: float) -> None:
        expired = [emp_id for emp_id, at in self._marked.items() if now - at >= self.cooldown_seconds]
        for emp_id in expired:
            del self._marked[emp_id]

    def state(self, emp_id: str) -> CooldownState:
        with self._lock:
            now = self._clock()
            self._prune_locked(now)
            marked_at = self._marked.get(emp_id)
        if marked_at is None:
            return Idle()
        return Suppressed(emp_id=emp_id, marked_at=marked_at)

    def should_record(self, emp_id: str) -> bool:
        return isinstance(self.state(emp_id), Idle)

    def remaining(self, emp_id: str) -> float:
        current = self.state(emp_id)
        if isinstance(current, Idle):
            return 0.0
        return max(self.cooldown_seconds - (self._clock() - current.marked_at), 0.0)

    def mark(self, emp_id: str) -> Suppressed:
        with self._lock:
            now = self._clock()
            self._marked[emp_id] = now
        return Suppressed(emp_id=emp_id, marked_at=now)

    def reset(self) -> None:
        with self._lock:
            self._marked.clear()

    def suppressed_ids(self):
        with self._lock:
            self._prune_locked(self._clock())
            return sorted(self._marked)
