import asyncio
import math
import time

import pytest

from gym_kiosk.exceptions import EmbeddingDimensionError, NonFiniteEmbeddingError
from gym_kiosk.models.member import Member
from gym_kiosk.services.embeddings import EmbeddingService, UpdateStatus, blend_embedding
from gym_kiosk.services.matcher import euclidean_distance
from gym_kiosk.services.member_repository import InMemoryMemberRepository


class SlowRepository(InMemoryMemberRepository):
    """Widens the read-modify-write window of an embedding update."""

    def get_member(self, member_id):
        member = super().get_member(member_id)
        time.sleep(0.05)
        return member


def test_blend_without_prior_embedding_is_verbatim():
    assert blend_embedding(None, [0.25, -0.5, 1.0]) == [0.25, -0.5, 1.0]


def test_blend_weights_old_and_new():
    assert blend_embedding([1.0, 0.0], [0.0, 1.0]) == pytest.approx([0.7, 0.3])


def test_blend_of_identical_vectors_is_unchanged():
    d = [0.1, 0.2, 0.3]
    assert blend_embedding(d, d) == pytest.approx(d)


def test_blend_rejects_length_mismatch():
    with pytest.raises(EmbeddingDimensionError):
        blend_embedding([1.0, 0.0], [1.0, 0.0, 0.0])


def test_repeated_blend_converges_without_overshoot():
    observed = [0.0, 1.0]
    current = [1.0, 0.0]
    previous = euclidean_distance(current, observed)

    for _ in range(30):
        current = blend_embedding(current, observed)
        distance = euclidean_distance(current, observed)
        assert distance < previous
        assert distance == pytest.approx(previous * 0.7)
        assert 0.0 <= current[1] <= 1.0
        previous = distance

    assert current != observed
    assert current == pytest.approx(observed, abs=1e-4)


@pytest.mark.asyncio
async def test_update_stores_first_descriptor():
    repository = InMemoryMemberRepository()
    member = repository.create_member(Member(first_name="Ana"))
    service = EmbeddingService(repository)

    status = await service.update_embedding(member.id, [0.5, 0.25])

    assert status == UpdateStatus.STORED
    assert repository.get_embedding(member.id) == [0.5, 0.25]


@pytest.mark.asyncio
async def test_update_blends_existing_embedding():
    repository = InMemoryMemberRepository()
    member = repository.create_member(Member(first_name="Ana", face_embedding=[1.0, 0.0]))
    service = EmbeddingService(repository)

    status = await service.update_embedding(member.id, [0.0, 1.0])

    assert status == UpdateStatus.LEARNED
    assert repository.get_embedding(member.id) == pytest.approx([0.7, 0.3])


@pytest.mark.asyncio
async def test_update_unknown_member_never_creates_one():
    repository = InMemoryMemberRepository()
    service = EmbeddingService(repository)

    status = await service.update_embedding("missing", [0.0, 1.0])

    assert status == UpdateStatus.NOT_FOUND
    assert repository.list_members() == []


@pytest.mark.asyncio
async def test_update_validates_configured_size():
    repository = InMemoryMemberRepository()
    member = repository.create_member(Member(first_name="Ana"))
    service = EmbeddingService(repository, embedding_size=4)

    with pytest.raises(EmbeddingDimensionError):
        await service.update_embedding(member.id, [0.0, 1.0])

    assert repository.get_embedding(member.id) is None


@pytest.mark.asyncio
async def test_concurrent_updates_for_same_member_are_serialized():
    repository = SlowRepository()
    member = repository.create_member(Member(first_name="Ana"))
    service = EmbeddingService(repository)
    first, second = [1.0, 0.0], [0.0, 1.0]

    statuses = await asyncio.gather(
        service.update_embedding(member.id, first),
        service.update_embedding(member.id, second)
    )

    assert sorted(s.value for s in statuses) == ["learned", "stored"]
    stored = repository.get_embedding(member.id)
    assert stored in (
        pytest.approx(blend_embedding(first, second)),
        pytest.approx(blend_embedding(second, first))
    )
    assert len(service._locks) == 0


@pytest.mark.asyncio
async def test_update_rejects_non_finite_descriptor():
    repository = InMemoryMemberRepository()
    member = repository.create_member(Member(first_name="Ana", face_embedding=[1.0, 0.0]))
    service = EmbeddingService(repository)

    for bad in ([math.nan, 0.0], [0.0, math.inf]):
        with pytest.raises(NonFiniteEmbeddingError):
            await service.update_embedding(member.id, bad)

    assert repository.get_embedding(member.id) == [1.0, 0.0]


@pytest.mark.asyncio
async def test_non_finite_stored_embedding_is_replaced():
    repository = InMemoryMemberRepository()
    member = repository.create_member(Member(first_name="Ana", face_embedding=[math.nan, 0.0]))
    service = EmbeddingService(repository)

    status = await service.update_embedding(member.id, [0.0, 1.0])

    assert status == UpdateStatus.STORED
    assert repository.get_embedding(member.id) == [0.0, 1.0]


@pytest.mark.asyncio
async def test_member_locks_are_released_after_updates():
    repository = InMemoryMemberRepository()
    member = repository.create_member(Member(first_name="Ana"))
    service = EmbeddingService(repository)

    await service.update_embedding(member.id, [1.0, 0.0])
    for i in range(10):
        await service.update_embedding(f"missing-{i}", [1.0, 0.0])

    assert len(service._locks) == 0
