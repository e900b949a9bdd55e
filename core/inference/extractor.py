"""Face embedding extraction backed by the ``face_recognition`` library.

The extractor is a black box to the rest of the core: an RGB image goes in,
zero or one 128-d vector comes out. ``face_recognition`` (dlib) is imported
lazily so that importing this module stays cheap.
"""

from __future__ import annotations

import base64
import binascii
import io
import logging
from typing import Any, Optional

import numpy as np
from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)


class NoFaceDetected(Exception):
    """Raised when an image holds no usable face."""


def decode_base64_image(image_data: str) -> np.ndarray:
    """Decode a base64 (or data-URL) image into an RGB ``uint8`` array."""
    if not image_data:
        raise ValueError("Missing image data")
    if "," in image_data and image_data.lstrip().startswith("data:"):
        image_data = image_data.split(",", 1)[1]
    try:
        raw = base64.b64decode(image_data, validate=False)
    except (binascii.Error, ValueError) as exc:
        raise ValueError("Invalid image: cannot decode base64 data") from exc
    try:
        with Image.open(io.BytesIO(raw)) as img:
            return np.array(img.convert("RGB"))
    except (UnidentifiedImageError, OSError) as exc:
        raise ValueError(f"Invalid image: {exc}") from exc


class FaceEmbeddingExtractor:
    """Wraps ``face_recognition.face_locations`` + ``face_encodings``."""

    def __init__(self, detection_model: str = "hog", num_jitters: int = 1) -> None:
        self.detection_model = detection_model
        self.num_jitters = num_jitters
        self._backend: Any = None

    def _load_backend(self):
        if self._backend is None:
            import face_recognition

            self._backend = face_recognition
        return self._backend

    def extract(self, rgb_image: np.ndarray) -> np.ndarray:
        """Return the embedding of the largest face in ``rgb_image``."""
        backend = self._load_backend()
        locations = backend.face_locations(rgb_image, model=self.detection_model)
        if not locations:
            raise NoFaceDetected("No face found in frame")

        # (top, right, bottom, left); keep the largest box when several faces are visible
        largest = max(locations, key=lambda box: (box[2] - box[0]) * (box[1] - box[3]))
        encodings = backend.face_encodings(
            rgb_image,
            known_face_locations=[largest],
            num_jitters=self.num_jitters,
        )
        if not encodings:
            raise NoFaceDetected("Face found but could not be encoded")
        return np.asarray(encodings[0], dtype="float64")

    def extract_from_base64(self, image_data: str) -> np.ndarray:
        return self.extract(decode_base64_image(image_data))

    def try_extract_from_base64(self, image_data: Optional[str]) -> Optional[np.ndarray]:
        """Like ``extract_from_base64`` but returns None for photos without a usable face."""
        if not image_data:
            return None
        try:
            return self.extract_from_base64(image_data)
        except NoFaceDetected:
            logger.info("[Extractor] No detectable face in reference photo")
        except ValueError as exc:
            logger.warning("[Extractor] Unreadable reference photo: %s", exc)
        return None
