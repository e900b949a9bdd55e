from app.models.face_recognition_manager import FaceRecognitionManager


def test_corrupt_descriptor_is_skipped_on_load(db, extractor, embeddings):
    db.add_employee('E1', 'Eve', join_date='2024-01-01')
    db.add_employee('E2', 'Sam', join_date='2024-01-01')
    db.add_descriptor('E1', embeddings[(255, 0, 0)].tobytes())
    db.add_descriptor('E2', b'\x00' * 13)

    manager = FaceRecognitionManager(db, extractor)
    summary = manager.load_known_faces()

    assert summary['descriptors'] == 1
    assert summary['skipped'] == 1
    assert manager.gallery.employee_ids() == ['E1']
