import numpy as np
import pytest

from core.inference.matcher import Gallery, IdentityMatcher, LabeledDescriptor


def descriptor(emp_id, *values):
    return LabeledDescriptor(emp_id, np.array(values, dtype='float64'))


@pytest.fixture
def gallery():
    return Gallery([
        descriptor('E1', 0.0, 0.0, 0.0),
        descriptor('E1', 1.0, 1.0, 1.0),
        descriptor('E2', 3.0, 0.0, 0.0),
    ])


def test_identical_embedding_matches_with_zero_distance(gallery):
    result = IdentityMatcher(0.6).match([3.0, 0.0, 0.0], gallery)
    assert result.emp_id == 'E2'
    assert result.distance == 0.0


def test_effective_distance_is_minimum_over_descriptors(gallery):
    distances = IdentityMatcher().effective_distances([0.9, 1.0, 1.0], gallery)
    assert distances['E1'] == pytest.approx(0.1)
    assert distances['E2'] == pytest.approx(np.linalg.norm([2.1, 1.0, 1.0]))


def test_best_candidate_beyond_threshold_is_unknown(gallery):
    assert IdentityMatcher(0.6).match([1.5, 0.0, 0.0], gallery) is None


def test_threshold_is_inclusive(gallery):
    result = IdentityMatcher(0.5).match([3.5, 0.0, 0.0], gallery)
    assert result is not None
    assert result.emp_id == 'E2'


def test_empty_gallery_is_unknown():
    assert IdentityMatcher(10.0).match([0.0, 0.0], Gallery()) is None


def test_ties_go_to_smallest_emp_id():
    tied = Gallery([descriptor('B', 1.0, 0.0), descriptor('A', -1.0, 0.0)])
    result = IdentityMatcher(2.0).match([0.0, 0.0], tied)
    assert result.emp_id == 'A'


def test_dimension_mismatch_raises(gallery):
    with pytest.raises(ValueError):
        IdentityMatcher().match([0.0, 0.0], gallery)


def test_mixed_dimensions_rejected_on_replace():
    with pytest.raises(ValueError):
        Gallery([descriptor('E1', 0.0, 0.0), descriptor('E2', 0.0, 0.0, 0.0)])


def test_replace_swaps_snapshot_and_bumps_version(gallery):
    before = gallery.describe()
    gallery.replace([descriptor('E9', 1.0, 2.0, 3.0)])
    after = gallery.describe()

    assert before['employees'] == 2
    assert after['descriptors'] == 1
    assert after['version'] == before['version'] + 1
    assert gallery.employee_ids() == ['E9']


def test_descriptor_round_trips_through_bytes():
    vector = np.linspace(-1, 1, 128)
    restored = LabeledDescriptor.from_bytes('E1', vector.tobytes())
    assert np.array_equal(restored.embedding, vector)
