"""Nearest-neighbour identity matching over a gallery of labeled descriptors.

The gallery is a thread-safe snapshot holder so that capture sessions can keep
matching while the registry reloads descriptors after an employee changes.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

logger = logging.getLogger(__name__)

DEFAULT_MATCH_THRESHOLD = 0.6


@dataclass(frozen=True)
class LabeledDescriptor:
    emp_id: str
    embedding: np.ndarray

    @classmethod
    def from_bytes(cls, emp_id: str, blob: bytes, dtype: str = "float64") -> "LabeledDescriptor":
        return cls(emp_id=emp_id, embedding=np.frombuffer(blob, dtype=dtype).copy())


@dataclass(frozen=True)
class MatchResult:
    emp_id: str
    distance: float

    def to_dict(self) -> Dict[str, Any]:
        return {"emp_id": self.emp_id, "distance": round(self.distance, 4)}


class Gallery:
    """Thread-safe holder for the descriptor matrix and its labels."""

    def __init__(self, descriptors: Iterable[LabeledDescriptor] = ()) -> None:
        self._matrix: Optional[np.ndarray] = None
        self._labels: List[str] = []
        self._lock = threading.RLock()
        self._version = 0
        self._last_loaded: Optional[datetime] = None
        descriptors = list(descriptors)
        if descriptors:
            self.replace(descriptors)

    def replace(self, descriptors: Iterable[LabeledDescriptor]) -> None:
        descriptors = [d for d in descriptors if d.embedding is not None and d.embedding.size]
        if descriptors:
            dims = {d.embedding.shape[-1] for d in descriptors}
            if len(dims) != 1:
                raise ValueError(f"Gallery descriptors have mixed dimensions: {sorted(dims)}")
            matrix = np.vstack([np.asarray(d.embedding, dtype="float64").ravel() for d in descriptors])
        else:
            matrix = None
        with self._lock:
            self._matrix = matrix
            self._labels = [d.emp_id for d in descriptors]
            self._version += 1
            self._last_loaded = datetime.now()

    def snapshot(self) -> Tuple[Optional[np.ndarray], List[str]]:
        with self._lock:
            return self._matrix, list(self._labels)

    def count(self) -> int:
        with self._lock:
            return len(self._labels)

    def employee_ids(self) -> List[str]:
        with self._lock:
            return sorted(set(self._labels))

    def is_empty(self) -> bool:
        return self.count() == 0

    def describe(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "descriptors": len(self._labels),
                "employees": len(set(self._labels)),
                "version": self._version,
                "last_loaded": self._last_loaded.isoformat() if self._last_loaded else None,
            }


class IdentityMatcher:
    """Best-of-N Euclidean matcher with a fixed acceptance threshold.

    Each employee's effective distance is the minimum over all of their
    descriptors; the employee with the smallest effective distance wins and
    is accepted only when that distance is within ``threshold``. Equal
    distances are resolved by the smallest ``emp_id``.
    """

    def __init__(self, threshold: float = DEFAULT_MATCH_THRESHOLD) -> None:
        self.threshold = float(threshold)

    def effective_distances(self, query: Sequence[float], gallery: Gallery) -> Dict[str, float]:
        matrix, labels = gallery.snapshot()
        if matrix is None or not labels:
            return {}

        vector = np.asarray(query, dtype="float64").ravel()
        if vector.shape[0] != matrix.shape[1]:
            raise ValueError(
                f"Query embedding has {vector.shape[0]} dimensions, gallery expects {matrix.shape[1]}"
            )

        distances = np.linalg.norm(matrix - vector, axis=1)
        best: Dict[str, float] = {}
        for emp_id, distance in zip(labels, distances):
            value = float(distance)
            if emp_id not in best or value < best[emp_id]:
                best[emp_id] = value
        return best

    def match(self, query: Sequence[float], gallery: Gallery) -> Optional[MatchResult]:
        best = self.effective_distances(query, gallery)
        if not best:
            logger.debug("[Matcher] Gallery is empty, nothing to match against")
            return None

        emp_id, distance = min(best.items(), key=lambda item: (item[1], item[0]))
        if distance <= self.threshold:
            logger.debug("[Matcher] Match %s at distance %.4f", emp_id, distance)
            return MatchResult(emp_id=emp_id, distance=distance)

        logger.debug(
            "[Matcher] Rejected best candidate %s: distance %.4f > threshold %.3f",
            emp_id,
            distance,
            self.threshold,
        )
        return None
