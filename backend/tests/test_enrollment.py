import math

import pytest

from gym_kiosk.exceptions import EmbeddingDimensionError, NonFiniteEmbeddingError
from gym_kiosk.models.kiosk import EnrollRequest
from gym_kiosk.models.member import MembershipStatus
from gym_kiosk.services.enrollment import enroll_member
from gym_kiosk.services.media_service import MediaService, decode_data_url
from gym_kiosk.services.member_repository import InMemoryMemberRepository


class RecordingMedia(MediaService):

    def __init__(self):
        self.enabled = True
        self.uploads = []

    def upload_image(self, image_bytes, filename):
        self.uploads.append((image_bytes, filename))
        return f"https://media.example.com/{filename}"


def test_enrollment_stores_descriptor_verbatim():
    repository = InMemoryMemberRepository()

    member = enroll_member(
        repository,
        None,
        EnrollRequest(first_name="Sam", descriptor=[0.1, 0.2, 0.3])
    )

    stored = repository.get_member(member.id)
    assert stored.face_embedding == [0.1, 0.2, 0.3]
    assert stored.status == MembershipStatus.TRIAL
    assert stored.programs == ["Trial"]
    assert stored.attendance_count == 1
    assert stored.last_name == ""

    visits = repository.list_attendance(member.id)
    assert [v.class_name for v in visits] == ["First Visit"]


def test_enrollment_without_descriptor():
    repository = InMemoryMemberRepository()

    member = enroll_member(repository, None, EnrollRequest(first_name="Sam", last_name="Lee"))

    assert repository.get_member(member.id).face_embedding is None
    assert member.full_name == "Sam Lee"


def test_enrollment_rejects_wrong_descriptor_size():
    repository = InMemoryMemberRepository()

    with pytest.raises(EmbeddingDimensionError):
        enroll_member(repository, None, EnrollRequest(first_name="Sam", descriptor=[0.1]), embedding_size=128)

    assert repository.list_members() == []


def test_enrollment_rejects_non_finite_descriptor():
    repository = InMemoryMemberRepository()

    for bad in ([math.nan, 0.1], [math.inf, 0.1]):
        with pytest.raises(NonFiniteEmbeddingError):
            enroll_member(repository, None, EnrollRequest(first_name="Sam", descriptor=bad))

    assert repository.list_members() == []


def test_enrollment_uploads_profile_image():
    repository = InMemoryMemberRepository()
    media = RecordingMedia()

    member = enroll_member(
        repository,
        media,
        EnrollRequest(first_name="Sam", profile_image="data:image/jpeg;base64,aGVsbG8=")
    )

    assert media.uploads == [(b"hello", f"members/{member.id}/profile.jpg")]
    assert repository.get_member(member.id).profile_image.startswith("https://media.example.com/")


def test_decode_data_url():
    assert decode_data_url("data:image/png;base64,aGVsbG8=") == b"hello"
    assert decode_data_url("aGVsbG8=") == b"hello"
