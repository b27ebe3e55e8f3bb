import logging
import numpy as np
from typing import List, Sequence

from gym_kiosk.exceptions import EmbeddingDimensionError, NonFiniteEmbeddingError
from gym_kiosk.models.face import DetectedFace, KnownFace, MatchedFace, UnknownFace
from gym_kiosk.models.member import MemberEmbedding

logger = logging.getLogger(__name__)

# Lower is stricter
MATCH_THRESHOLD = 0.55


def euclidean_distance(descriptor1: Sequence[float], descriptor2: Sequence[float]) -> float:
    a = np.asarray(descriptor1, dtype=np.float64)
    b = np.asarray(descriptor2, dtype=np.float64)
    if a.shape != b.shape:
        raise EmbeddingDimensionError(len(b), len(a))
    return float(np.linalg.norm(a - b))


def match_faces(
    detected_faces: List[DetectedFace],
    members: List[MemberEmbedding],
    threshold: float = MATCH_THRESHOLD
) -> List[MatchedFace]:
    """
    Assign each detected face to the closest enrolled member.

    A face is matched when its nearest stored embedding lies strictly
    closer than ``threshold``; otherwise it is returned as unknown.
    Members without an embedding, or with NaN/inf values in it, are
    never candidates. Exact distance ties go to the lowest member id.
    Output order follows the input.
    """
    candidates = [m for m in members if m.embedding is not None]

    if not detected_faces:
        return []

    if not candidates:
        return [UnknownFace(box=f.box, descriptor=f.descriptor) for f in detected_faces]

    size = len(candidates[0].embedding)
    for member in candidates:
        if len(member.embedding) != size:
            raise EmbeddingDimensionError(size, len(member.embedding))

    stored = np.asarray([m.embedding for m in candidates], dtype=np.float64)

    finite = np.isfinite(stored).all(axis=1)
    if not finite.all():
        skipped = [m.member_id for m, ok in zip(candidates, finite) if not ok]
        logger.warning(f"Ignoring non-finite embedding(s) for member(s): {skipped}")
        candidates = [m for m, ok in zip(candidates, finite) if ok]
        stored = stored[finite]

    if not candidates:
        return [UnknownFace(box=f.box, descriptor=f.descriptor) for f in detected_faces]

    results: List[MatchedFace] = []
    for face in detected_faces:
        if len(face.descriptor) != size:
            raise EmbeddingDimensionError(size, len(face.descriptor))

        descriptor = np.asarray(face.descriptor, dtype=np.float64)
        if not np.isfinite(descriptor).all():
            raise NonFiniteEmbeddingError()

        distances = np.linalg.norm(stored - descriptor, axis=1)

        best_distance = float(distances.min())
        tied = np.flatnonzero(distances == best_distance)
        best = min((candidates[i] for i in tied), key=lambda m: m.member_id)

        if best_distance < threshold:
            results.append(KnownFace(
                box=face.box,
                descriptor=face.descriptor,
                member_id=best.member_id,
                label=best.label,
                confidence=max(0.0, 1.0 - best_distance / threshold),
                distance=best_distance
            ))
        else:
            results.append(UnknownFace(box=face.box, descriptor=face.descriptor))

    logger.debug(
        f"Matched {sum(not r.is_unknown for r in results)}/{len(results)} face(s) "
        f"against {len(candidates)} embedding(s)"
    )
    return results
