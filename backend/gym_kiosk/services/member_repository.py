from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional
import logging
import threading

from gym_kiosk.models.member import (
    AttendanceRecord,
    ClassSession,
    Member,
    MemberEmbedding,
    MembershipStatus,
)

logger = logging.getLogger(__name__)


class MemberRepository(ABC):
    """Storage for members, their face embeddings, attendance and classes."""

    @abstractmethod
    def get_member(self, member_id: str) -> Optional[Member]:
        ...

    @abstractmethod
    def list_members(self, statuses: Optional[Iterable[MembershipStatus]] = None) -> List[Member]:
        ...

    @abstractmethod
    def create_member(self, member: Member) -> Member:
        ...

    @abstractmethod
    def update_member(self, member_id: str, changes: Dict[str, Any]) -> Optional[Member]:
        """Apply field changes and return the updated member. None if missing."""

    @abstractmethod
    def delete_member(self, member_id: str) -> bool:
        """Remove the member with its embedding and attendance. False if missing."""

    @abstractmethod
    def set_embedding(self, member_id: str, embedding: List[float]) -> bool:
        """Replace the stored embedding in full. False if the member is missing."""

    @abstractmethod
    def mark_checked_in(self, member_id: str, when: datetime) -> bool:
        """Bump attendance_count and last_check_in. False if the member is missing."""

    @abstractmethod
    def add_attendance(self, record: AttendanceRecord) -> AttendanceRecord:
        ...

    @abstractmethod
    def list_attendance(self, member_id: str) -> List[AttendanceRecord]:
        ...

    @abstractmethod
    def list_classes(self, day_of_week: Optional[int] = None) -> List[ClassSession]:
        ...

    @abstractmethod
    def create_class(self, session: ClassSession) -> ClassSession:
        ...

    @abstractmethod
    def update_class(self, class_id: str, changes: Dict[str, Any]) -> Optional[ClassSession]:
        ...

    @abstractmethod
    def delete_class(self, class_id: str) -> bool:
        ...

    def get_embedding(self, member_id: str) -> Optional[List[float]]:
        member = self.get_member(member_id)
        return member.face_embedding if member else None

    def list_embeddings(
        self,
        statuses: Optional[Iterable[MembershipStatus]] = None
    ) -> List[MemberEmbedding]:
        return [
            MemberEmbedding(
                member_id=m.id,
                first_name=m.first_name,
                last_name=m.last_name,
                embedding=m.face_embedding
            )
            for m in self.list_members(statuses)
        ]


class InMemoryMemberRepository(MemberRepository):
    """Process-local repository used when Firestore is not configured."""

    def __init__(self):
        self._lock = threading.RLock()
        self._members: Dict[str, Member] = {}
        self._attendance: List[AttendanceRecord] = []
        self._classes: Dict[str, ClassSession] = {}
        logger.info("Using in-memory member repository")

    def get_member(self, member_id: str) -> Optional[Member]:
        with self._lock:
            member = self._members.get(member_id)
            return member.model_copy(deep=True) if member else None

    def list_members(self, statuses: Optional[Iterable[MembershipStatus]] = None) -> List[Member]:
        wanted = set(statuses) if statuses is not None else None
        with self._lock:
            return [
                m.model_copy(deep=True)
                for m in sorted(self._members.values(), key=lambda m: m.join_date, reverse=True)
                if wanted is None or m.status in wanted
            ]

    def create_member(self, member: Member) -> Member:
        with self._lock:
            self._members[member.id] = member.model_copy(deep=True)
        logger.info(f"Member created: {member.id}")
        return member

    def update_member(self, member_id: str, changes: Dict[str, Any]) -> Optional[Member]:
        with self._lock:
            member = self._members.get(member_id)
            if member is None:
                return None
            updated = Member.model_validate({**member.model_dump(), **changes, 'id': member_id})
            self._members[member_id] = updated
        logger.info(f"Member updated: {member_id}")
        return updated.model_copy(deep=True)

    def delete_member(self, member_id: str) -> bool:
        with self._lock:
            if self._members.pop(member_id, None) is None:
                return False
            self._attendance = [a for a in self._attendance if a.member_id != member_id]
        logger.info(f"Member deleted: {member_id}")
        return True

    def set_embedding(self, member_id: str, embedding: List[float]) -> bool:
        with self._lock:
            member = self._members.get(member_id)
            if member is None:
                return False
            member.face_embedding = list(embedding)
        return True

    def mark_checked_in(self, member_id: str, when: datetime) -> bool:
        with self._lock:
            member = self._members.get(member_id)
            if member is None:
                return False
            member.attendance_count += 1
            member.last_check_in = when
        return True

    def add_attendance(self, record: AttendanceRecord) -> AttendanceRecord:
        with self._lock:
            self._attendance.append(record.model_copy(deep=True))
        return record

    def list_attendance(self, member_id: str) -> List[AttendanceRecord]:
        with self._lock:
            return [
                a.model_copy(deep=True)
                for a in sorted(self._attendance, key=lambda a: a.check_in_time, reverse=True)
                if a.member_id == member_id
            ]

    def list_classes(self, day_of_week: Optional[int] = None) -> List[ClassSession]:
        with self._lock:
            sessions = [
                c.model_copy(deep=True) for c in self._classes.values()
                if day_of_week is None or c.day_of_week == day_of_week
            ]
        return sorted(sessions, key=lambda c: (c.day_of_week, c.start_time))

    def create_class(self, session: ClassSession) -> ClassSession:
        with self._lock:
            self._classes[session.id] = session.model_copy(deep=True)
        logger.info(f"Class created: {session.name} ({session.id})")
        return session

    def update_class(self, class_id: str, changes: Dict[str, Any]) -> Optional[ClassSession]:
        with self._lock:
            session = self._classes.get(class_id)
            if session is None:
                return None
            updated = ClassSession.model_validate({**session.model_dump(), **changes, 'id': class_id})
            self._classes[class_id] = updated
            return updated.model_copy(deep=True)

    def delete_class(self, class_id: str) -> bool:
        with self._lock:
            if self._classes.pop(class_id, None) is None:
                return False
        logger.info(f"Class deleted: {class_id}")
        return True
