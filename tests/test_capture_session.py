import threading
from datetime import date

import pytest

from core.attendance.cooldown import CooldownController
from core.attendance.recorder import RecordResult, RecordStatus
from core.errors import StoreUnavailable
from core.inference.matcher import Gallery, IdentityMatcher, LabeledDescriptor
from core.vision.capture_session import CaptureSession, TickStatus

DAY = date(2024, 3, 1)


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class RecordingStore:
    """Stands in for the recorder: first call per (emp, day) creates."""

    def __init__(self):
        self.calls = []
        self.seen = set()
        self.fail_with = None

    def __call__(self, emp_id, on_date, photo=None):
        self.calls.append((emp_id, on_date, photo))
        if self.fail_with is not None:
            raise self.fail_with
        key = (emp_id, on_date)
        if key in self.seen:
            return RecordResult(RecordStatus.ALREADY_MARKED)
        self.seen.add(key)
        return RecordResult(RecordStatus.CREATED)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return RecordingStore()


@pytest.fixture
def session(extractor, embeddings, store, clock):
    gallery = Gallery([
        LabeledDescriptor('E1', embeddings[(255, 0, 0)]),
        LabeledDescriptor('E2', embeddings[(0, 255, 0)]),
    ])
    return CaptureSession(
        'desk-1',
        extractor=extractor,
        matcher=IdentityMatcher(0.6),
        gallery=gallery,
        record=store,
        cooldown=CooldownController(5, clock=clock),
        today=lambda: DAY,
    )


def test_recognized_face_is_recorded(session, store, make_frame):
    outcome = session.tick(make_frame('red'), photo='snapshot')
    assert outcome.status is TickStatus.CREATED
    assert outcome.match.emp_id == 'E1'
    assert store.calls == [('E1', DAY, 'snapshot')]


def test_no_face_skips_matching_and_recording(session, store, make_frame):
    assert session.tick(make_frame('gray')).status is TickStatus.NO_FACE
    assert store.calls == []


def test_unknown_face_is_not_recorded(session, store, make_frame):
    assert session.tick(make_frame('blue')).status is TickStatus.NO_MATCH
    assert store.calls == []


def test_cooldown_suppresses_same_identity(session, store, clock, make_frame):
    session.tick(make_frame('red'))
    clock.now = 4.0
    outcome = session.tick(make_frame('red'))

    assert outcome.status is TickStatus.SUPPRESSED
    assert len(store.calls) == 1


def test_other_identity_proceeds_during_cooldown(session, store, clock, make_frame):
    session.tick(make_frame('red'))
    clock.now = 1.0
    assert session.tick(make_frame('green')).status is TickStatus.CREATED
    assert [c[0] for c in store.calls] == ['E1', 'E2']


def test_same_identity_after_window_reaches_recorder(session, store, clock, make_frame):
    session.tick(make_frame('red'))
    clock.now = 5.0
    outcome = session.tick(make_frame('red'))

    assert outcome.status is TickStatus.ALREADY_MARKED
    assert len(store.calls) == 2


def test_store_failure_does_not_start_cooldown(session, store, make_frame):
    store.fail_with = StoreUnavailable('locked')
    assert session.tick(make_frame('red')).status is TickStatus.STORE_ERROR

    store.fail_with = None
    assert session.tick(make_frame('red')).status is TickStatus.CREATED
    assert len(store.calls) == 2


def test_tick_without_frame_source_reports_no_frame(session):
    assert session.tick().status is TickStatus.NO_FRAME


def test_busy_while_attempt_in_flight(embeddings, store, make_frame):
    entered = threading.Event()
    release = threading.Event()

    class SlowExtractor:
        def extract(self, frame):
            entered.set()
            release.wait(5)
            return embeddings[(255, 0, 0)]

    session = CaptureSession(
        'desk-2',
        extractor=SlowExtractor(),
        matcher=IdentityMatcher(0.6),
        gallery=Gallery([LabeledDescriptor('E1', embeddings[(255, 0, 0)])]),
        record=store,
        today=lambda: DAY,
    )

    worker = threading.Thread(target=session.tick, args=(make_frame('red'),))
    worker.start()
    assert entered.wait(5)
    try:
        assert session.tick(make_frame('red')).status is TickStatus.BUSY
    finally:
        release.set()
        worker.join(5)

    assert len(store.calls) == 1
    assert session.status()['counts'] == {'busy': 1, 'created': 1}


def test_background_loop_polls_frame_source(extractor, embeddings, store, make_frame):
    frames = [make_frame('gray'), make_frame('red'), make_frame('red')]
    polled = threading.Event()

    class Camera:
        released = False

        def __call__(self):
            if not frames:
                polled.set()
                raise RuntimeError('no more frames')
            return frames.pop(0)

        def release(self):
            Camera.released = True

    session = CaptureSession(
        'desk-3',
        extractor=extractor,
        matcher=IdentityMatcher(0.6),
        gallery=Gallery([LabeledDescriptor('E1', embeddings[(255, 0, 0)])]),
        record=store,
        frame_source=Camera(),
        cooldown=CooldownController(60),
        interval_seconds=0.1,
        today=lambda: DAY,
    )

    assert session.start()
    assert not session.start()
    assert polled.wait(5)
    session.stop()

    assert not session.is_running()
    assert Camera.released
    assert store.calls == [('E1', DAY, None)]
    counts = session.status()['counts']
    assert counts['no_face'] == 1
    assert counts['suppressed'] == 1
    assert counts['no_frame'] >= 1


def test_start_requires_frame_source(session):
    with pytest.raises(RuntimeError):
        session.start()


def test_outcome_serializes_match(session, make_frame):
    payload = session.tick(make_frame('red')).to_dict()
    assert payload['status'] == 'created'
    assert payload['emp_id'] == 'E1'
    assert payload['distance'] == 0.0
    assert 'at' in payload


def test_outcome_callback_sees_every_attempt(extractor, embeddings, store, make_frame):
    seen = []
    session = CaptureSession(
        'desk-3',
        extractor=extractor,
        matcher=IdentityMatcher(0.6),
        gallery=Gallery([LabeledDescriptor('E1', embeddings[(255, 0, 0)])]),
        record=store,
        today=lambda: DAY,
        on_outcome=seen.append,
    )

    session.tick(make_frame('red'))
    session.tick(make_frame('blue'))

    assert [o.status for o in seen] == [TickStatus.CREATED, TickStatus.NO_MATCH]
    assert seen[0].match.emp_id == 'E1'
