import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from gym_kiosk.models.member import AttendanceRecord, CheckInMethod, Member
from gym_kiosk.services.locks import ThreadMemberLocks
from gym_kiosk.services.member_repository import MemberRepository
from gym_kiosk.services.schedule import day_of_week, find_current_class

logger = logging.getLogger(__name__)

DEFAULT_CLASS_NAME = "Open Mat"


class CheckInStatus(Enum):
    SUCCESS = "success"
    ALREADY_CHECKED_IN = "already_checked_in"
    NOT_FOUND = "not_found"


@dataclass
class CheckInResult:
    status: CheckInStatus
    member: Optional[Member] = None
    record: Optional[AttendanceRecord] = None

    @property
    def success(self) -> bool:
        return self.status == CheckInStatus.SUCCESS


class AttendanceRecorder:
    """
    Writes attendance for recognized members.

    A member checked in less than ``cooldown_minutes`` ago is reported
    as already checked in instead of getting a second record. Check-ins
    for the same member are serialized within the process.
    """

    def __init__(
        self,
        repository: MemberRepository,
        cooldown_minutes: int = 60,
        lead_minutes: int = 15
    ):
        self.repository = repository
        self.cooldown = timedelta(minutes=cooldown_minutes)
        self.lead_minutes = lead_minutes
        self._locks = ThreadMemberLocks()

    def record_check_in(
        self,
        member_id: str,
        method: CheckInMethod = CheckInMethod.FACIAL,
        now: Optional[datetime] = None
    ) -> CheckInResult:
        now = now or datetime.now()

        with self._locks.hold(member_id):
            return self._record(member_id, method, now)

    def _record(self, member_id: str, method: CheckInMethod, now: datetime) -> CheckInResult:
        member = self.repository.get_member(member_id)
        if member is None:
            logger.warning(f"Check-in for unknown member: {member_id}")
            return CheckInResult(CheckInStatus.NOT_FOUND)

        if member.last_check_in is not None and now - member.last_check_in < self.cooldown:
            logger.info(f"Member {member_id} already checked in at {member.last_check_in.isoformat()}")
            return CheckInResult(CheckInStatus.ALREADY_CHECKED_IN, member=member)

        if not self.repository.mark_checked_in(member.id, now):
            # deleted between the read and the write
            return CheckInResult(CheckInStatus.NOT_FOUND)

        current = find_current_class(
            self.repository.list_classes(day_of_week(now)),
            now,
            self.lead_minutes
        )
        record = self.repository.add_attendance(AttendanceRecord(
            member_id=member.id,
            class_id=current.id if current else None,
            class_name=current.name if current else DEFAULT_CLASS_NAME,
            check_in_time=now,
            check_in_method=method
        ))

        member.attendance_count += 1
        member.last_check_in = now

        logger.info(f"Checked in {member.full_name} ({member.id}) for {record.class_name}")
        return CheckInResult(CheckInStatus.SUCCESS, member=member, record=record)
