import base64
import io
from datetime import date

import numpy as np
import pytest
from PIL import Image

from app import create_app
from app import globals as app_globals
from core.inference.extractor import FaceEmbeddingExtractor, NoFaceDetected
from database import DatabaseManager

TODAY = date(2024, 1, 5)

COLORS = {
    'red': (255, 0, 0),
    'green': (0, 255, 0),
    'blue': (0, 0, 255),
    'gray': (128, 128, 128),
}


def _unit(index, dims=128):
    vector = np.zeros(dims, dtype='float64')
    vector[index] = 1.0
    return vector


class FakeExtractor(FaceEmbeddingExtractor):
    """Maps the colour of a solid image to a fixed embedding; unknown colours have no face."""

    def __init__(self, embeddings):
        super().__init__()
        self.embeddings = embeddings
        self.calls = 0

    def extract(self, rgb_image):
        self.calls += 1
        key = tuple(int(v) for v in np.asarray(rgb_image)[0, 0][:3])
        if key not in self.embeddings:
            raise NoFaceDetected("no face")
        return np.asarray(self.embeddings[key], dtype='float64')


class FakeCamera:
    def __init__(self, config, frames=None):
        self.config = config
        self.frames = list(frames or [])
        self.released = False

    def __call__(self):
        if not self.frames:
            raise RuntimeError("camera exhausted")
        return self.frames.pop(0)

    def release(self):
        self.released = True


@pytest.fixture
def embeddings():
    return {
        COLORS['red']: _unit(0),
        COLORS['green']: _unit(1),
        COLORS['blue']: _unit(2),
    }


@pytest.fixture
def extractor(embeddings):
    return FakeExtractor(embeddings)


@pytest.fixture
def make_frame():
    def _make(color, size=8):
        return np.full((size, size, 3), COLORS[color], dtype=np.uint8)
    return _make


@pytest.fixture
def make_photo(make_frame):
    def _make(color):
        buffer = io.BytesIO()
        Image.fromarray(make_frame(color)).save(buffer, format='PNG')
        encoded = base64.b64encode(buffer.getvalue()).decode('ascii')
        return f"data:image/png;base64,{encoded}"
    return _make


@pytest.fixture
def db(tmp_path):
    return DatabaseManager(tmp_path / 'attendance.db', timeout=5)


@pytest.fixture
def app(tmp_path, extractor):
    app = create_app(
        {
            'TESTING': True,
            'DATABASE_PATH': str(tmp_path / 'app.db'),
            'LOG_DIR': str(tmp_path / 'logs'),
            'LOG_LEVEL': 'WARNING',
            'COOLDOWN_SECONDS': 60,
            'CAPTURE_INTERVAL_SECONDS': 0.1,
        },
        extractor=extractor,
        camera_factory=FakeCamera,
        today=lambda: TODAY,
    )
    yield app
    app_globals.capture_service.shutdown()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def add_employee(client):
    def _add(emp_id, name, join_date='2024-01-01', photo=None, **extra):
        payload = {'emp_id': emp_id, 'name': name, 'join_date': join_date}
        if photo is not None:
            payload['photo'] = photo
        payload.update(extra)
        response = client.post('/api/employees', json=payload)
        assert response.status_code == 201, response.get_json()
        return response.get_json()['data']
    return _add
