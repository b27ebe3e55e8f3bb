import logging
from datetime import datetime
from typing import Optional

from gym_kiosk.models.kiosk import EnrollRequest
from gym_kiosk.models.member import (
    AttendanceRecord,
    BeltRank,
    CheckInMethod,
    Member,
    MembershipStatus,
)
from gym_kiosk.services.embeddings import check_embedding
from gym_kiosk.services.media_service import MediaService
from gym_kiosk.services.member_repository import MemberRepository

logger = logging.getLogger(__name__)

FIRST_VISIT_CLASS = "First Visit"


def enroll_member(
    repository: MemberRepository,
    media: Optional[MediaService],
    request: EnrollRequest,
    embedding_size: Optional[int] = None,
    now: Optional[datetime] = None
) -> Member:
    """
    Create a trial member from an unrecognized kiosk face.

    The captured descriptor, if any, becomes the initial embedding as-is.
    The enrollment visit is recorded as the member's first check-in.
    """
    descriptor = request.descriptor
    if descriptor is not None:
        check_embedding(descriptor, embedding_size)

    now = now or datetime.now()
    member = Member(
        first_name=request.first_name,
        last_name=request.last_name or "",
        email=request.email or None,
        phone=request.phone or None,
        face_embedding=[float(v) for v in descriptor] if descriptor is not None else None,
        belt_rank=BeltRank.WHITE,
        status=MembershipStatus.TRIAL,
        programs=["Trial"],
        join_date=now,
        attendance_count=1,
        last_check_in=now
    )

    if request.profile_image:
        if media is not None:
            member.profile_image = media.store_profile_image(request.profile_image, member.id)
        else:
            member.profile_image = request.profile_image

    repository.create_member(member)
    repository.add_attendance(AttendanceRecord(
        member_id=member.id,
        class_name=FIRST_VISIT_CLASS,
        check_in_time=now,
        check_in_method=CheckInMethod.FACIAL
    ))

    logger.info(
        f"Enrolled {member.full_name} ({member.id}), "
        f"embedding {'stored' if member.face_embedding else 'absent'}"
    )
    return member
