from .face import BoundingBox, DetectedFace, KnownFace, UnknownFace, MatchedFace
from .member import (
    AttendanceRecord,
    BeltRank,
    CheckInMethod,
    ClassSession,
    ClassUpdate,
    Member,
    MemberCreate,
    MemberEmbedding,
    MemberUpdate,
    MembershipStatus,
)

__all__ = [
    "AttendanceRecord",
    "BeltRank",
    "BoundingBox",
    "CheckInMethod",
    "ClassSession",
    "ClassUpdate",
    "DetectedFace",
    "KnownFace",
    "MatchedFace",
    "Member",
    "MemberCreate",
    "MemberEmbedding",
    "MemberUpdate",
    "MembershipStatus",
    "UnknownFace",
]
