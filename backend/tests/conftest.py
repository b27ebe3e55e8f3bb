import base64
import io
import threading

import numpy as np
import pytest
from fastapi.testclient import TestClient
from PIL import Image

from gym_kiosk.main import create_app
from gym_kiosk.models.face import BoundingBox, DetectedFace
from gym_kiosk.models.member import Member, MembershipStatus
from gym_kiosk.services.media_service import MediaService
from gym_kiosk.services.member_repository import InMemoryMemberRepository
from gym_kiosk.services.model_loader import DetectorLoader
from gym_kiosk.utils.config import settings

EMBEDDING_SIZE = 128


def unit_vector(index, size=EMBEDDING_SIZE):
    vec = np.zeros(size)
    vec[index] = 1.0
    return vec.tolist()


def detected(descriptor, x=0.1):
    return DetectedFace(
        box=BoundingBox(x=x, y=0.15, width=0.25, height=0.4),
        descriptor=descriptor
    )


def create_test_image():
    """Create a test image as a data URL"""
    img = Image.new('RGB', (640, 480), color='red')
    img_bytes = io.BytesIO()
    img.save(img_bytes, format='JPEG')
    return "data:image/jpeg;base64," + base64.b64encode(img_bytes.getvalue()).decode()


class FakeDetector:
    """Returns a fixed set of faces for every frame."""

    def __init__(self, faces=None, error=None):
        self.faces = faces or []
        self.error = error
        self.calls = 0
        self.called = threading.Event()

    def detect(self, image):
        self.calls += 1
        self.called.set()
        if self.error is not None:
            raise self.error
        return list(self.faces)


class FakeCamera:

    def __init__(self):
        self.opened = False
        self.released = False

    def open(self):
        self.opened = True

    def read(self):
        return np.zeros((48, 64, 3), dtype=np.uint8)

    def release(self):
        self.released = True


@pytest.fixture
def repository():
    return InMemoryMemberRepository()


@pytest.fixture
def enrolled_member(repository):
    member = Member(
        first_name="John",
        last_name="Doe",
        status=MembershipStatus.ACTIVE,
        face_embedding=unit_vector(0)
    )
    return repository.create_member(member)


@pytest.fixture
def detector():
    return FakeDetector()


@pytest.fixture
def auth_headers(monkeypatch):
    monkeypatch.setattr(settings, "API_TOKEN", "test_token")
    return {"Authorization": "Bearer test_token"}


@pytest.fixture
def client(repository, detector, monkeypatch):
    for name in ("CLOUD_NAME", "CLOUD_API_KEY", "CLOUD_API_SECRET"):
        monkeypatch.delenv(name, raising=False)

    app = create_app(
        repository=repository,
        detector_loader=DetectorLoader.preloaded(detector),
        media=MediaService()
    )
    with TestClient(app) as test_client:
        yield test_client
