import asyncio
import logging
import math
from enum import Enum
from typing import List, Optional, Sequence

from gym_kiosk.exceptions import EmbeddingDimensionError, NonFiniteEmbeddingError
from gym_kiosk.models.member import MemberEmbedding, MembershipStatus
from gym_kiosk.services.locks import MemberLocks
from gym_kiosk.services.member_repository import MemberRepository

logger = logging.getLogger(__name__)

# Blend weights for stored vs. newly observed descriptor
OLD_WEIGHT = 0.7
NEW_WEIGHT = 0.3


class UpdateStatus(str, Enum):
    STORED = "stored"
    LEARNED = "learned"
    NOT_FOUND = "not_found"


def check_embedding(descriptor: Sequence[float], embedding_size: Optional[int] = None):
    if embedding_size is not None and len(descriptor) != embedding_size:
        raise EmbeddingDimensionError(embedding_size, len(descriptor))
    if not all(math.isfinite(v) for v in descriptor):
        raise NonFiniteEmbeddingError()


def blend_embedding(
    current: Optional[Sequence[float]],
    observed: Sequence[float]
) -> List[float]:
    if current is None:
        return [float(v) for v in observed]

    if len(current) != len(observed):
        raise EmbeddingDimensionError(len(current), len(observed))

    return [
        old * OLD_WEIGHT + new * NEW_WEIGHT
        for old, new in zip(current, observed)
    ]


class EmbeddingService:

    def __init__(self, repository: MemberRepository, embedding_size: Optional[int] = None):
        self.repository = repository
        self.embedding_size = embedding_size
        self._locks = MemberLocks()

    def validate(self, descriptor: Sequence[float]):
        check_embedding(descriptor, self.embedding_size)

    async def list_embeddings(
        self,
        statuses: Optional[Sequence[MembershipStatus]] = None
    ) -> List[MemberEmbedding]:
        return await asyncio.to_thread(self.repository.list_embeddings, statuses)

    async def update_embedding(self, member_id: str, descriptor: Sequence[float]) -> UpdateStatus:
        """
        Fold a freshly observed descriptor into the member's stored embedding.

        The first descriptor is stored verbatim; later ones are blended
        0.7 old / 0.3 new. Updates for the same member are serialized.
        Never creates a member.
        """
        self.validate(descriptor)

        async with self._locks.hold(member_id):
            member = await asyncio.to_thread(self.repository.get_member, member_id)
            if member is None:
                logger.warning(f"Embedding update skipped, member not found: {member_id}")
                return UpdateStatus.NOT_FOUND

            current = member.face_embedding
            if current is not None and not all(math.isfinite(v) for v in current):
                logger.warning(f"Replacing non-finite stored embedding for member {member_id}")
                current = None

            updated = blend_embedding(current, descriptor)

            saved = await asyncio.to_thread(self.repository.set_embedding, member_id, updated)
            if not saved:
                logger.warning(f"Member disappeared during embedding update: {member_id}")
                return UpdateStatus.NOT_FOUND

        if current is None:
            logger.info(f"Embedding stored for member {member_id}")
            return UpdateStatus.STORED

        logger.info(f"Embedding updated (learned) for member {member_id}")
        return UpdateStatus.LEARNED
