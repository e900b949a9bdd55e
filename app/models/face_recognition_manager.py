"""
Face Recognition Manager - Quản lý nhận diện khuôn mặt
Owns the in-memory gallery and the enrollment of reference photos
"""
from typing import Any, Dict, List, Optional

import numpy as np

from core.inference.matcher import Gallery, IdentityMatcher, LabeledDescriptor
from logging_config import face_recognition_logger


class FaceRecognitionManager:
    """Service quản lý gallery khuôn mặt và nhận diện"""

    def __init__(self, database, extractor, threshold: float = 0.6, logger=None):
        self.db = database
        self.extractor = extractor
        self.matcher = IdentityMatcher(threshold=threshold)
        self.gallery = Gallery()
        self.logger = logger

    def load_known_faces(self) -> Dict[str, Any]:
        """Tải lại toàn bộ descriptor của nhân viên đang hoạt động vào gallery"""
        rows = self.db.get_all_descriptors()
        descriptors: List[LabeledDescriptor] = []
        skipped = 0
        for emp_id, blob in rows:
            try:
                descriptor = LabeledDescriptor.from_bytes(emp_id, blob)
            except ValueError as exc:
                face_recognition_logger.log_recognition_error(f"Corrupt descriptor for {emp_id}: {exc}")
                skipped += 1
                continue
            if descriptor.embedding.size == 0:
                skipped += 1
                continue
            descriptors.append(descriptor)

        try:
            self.gallery.replace(descriptors)
        except ValueError as exc:
            # Gallery cũ vẫn được giữ nguyên
            face_recognition_logger.log_recognition_error(f"Gallery reload rejected: {exc}")
            raise

        summary = self.gallery.describe()
        summary['skipped'] = skipped
        if self.logger:
            self.logger.info(
                f"[FaceRecognition] Loaded {summary['descriptors']} descriptors "
                f"for {summary['employees']} employees"
            )
        return summary

    def encode_photo(self, photo: Optional[str]) -> Optional[np.ndarray]:
        """Embedding của ảnh base64, hoặc None nếu ảnh không có khuôn mặt dùng được"""
        return self.extractor.try_extract_from_base64(photo)

    def enroll_photo(self, emp_id: str, photo: Optional[str], replace: bool = False,
                     source: str = 'photo') -> bool:
        """Lưu embedding của một ảnh tham chiếu cho nhân viên.

        With ``replace=True`` the employee's existing descriptors are swapped
        for this one; a photo without a usable face then leaves the employee
        unmatchable until a new photo is enrolled.
        """
        embedding = self.encode_photo(photo)
        if embedding is None:
            if replace:
                self.db.replace_descriptors(emp_id, [])
            if self.logger:
                self.logger.warning(f"[FaceRecognition] No usable face in photo for {emp_id}")
            return False

        blob = np.asarray(embedding, dtype='float64').tobytes()
        if replace:
            self.db.replace_descriptors(emp_id, [blob], source=source)
        else:
            self.db.add_descriptor(emp_id, blob, source=source)

        if self.logger:
            self.logger.info(f"[FaceRecognition] Enrolled reference photo for {emp_id}")
        return True

    def get_stats(self) -> Dict[str, Any]:
        stats = self.gallery.describe()
        stats['threshold'] = self.matcher.threshold
        stats['known_ids'] = self.gallery.employee_ids()[:10]
        return stats
