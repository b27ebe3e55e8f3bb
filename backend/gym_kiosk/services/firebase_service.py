import firebase_admin
from firebase_admin import credentials, firestore
from google.api_core.exceptions import NotFound
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional
import logging

from gym_kiosk.models.member import (
    AttendanceRecord,
    ClassSession,
    Member,
    MembershipStatus,
)
from gym_kiosk.services.member_repository import MemberRepository

logger = logging.getLogger(__name__)

MEMBERS = 'members'
ATTENDANCE = 'attendance'
CLASSES = 'classes'


class FirestoreMemberRepository(MemberRepository):

    def __init__(self, credentials_path: str, project_id: Optional[str] = None):

        try:
            cred = credentials.Certificate(credentials_path)
            if not firebase_admin._apps:
                options = {'projectId': project_id} if project_id else None
                firebase_admin.initialize_app(cred, options)

            self.db = firestore.client()
            logger.info("Firebase initialized successfully")
        except Exception as e:
            logger.error(f"Firebase initialization failed: {str(e)}")
            raise

    def get_member(self, member_id: str) -> Optional[Member]:
        doc = self.db.collection(MEMBERS).document(member_id).get()
        if not doc.exists:
            return None
        return Member.model_validate({**doc.to_dict(), 'id': doc.id})

    def list_members(self, statuses: Optional[Iterable[MembershipStatus]] = None) -> List[Member]:
        query = self.db.collection(MEMBERS)

        if statuses is not None:
            query = query.where('status', 'in', [MembershipStatus(s).value for s in statuses])

        members = []
        for doc in query.stream():
            members.append(Member.model_validate({**doc.to_dict(), 'id': doc.id}))
        return members

    def create_member(self, member: Member) -> Member:
        try:
            data = member.model_dump(mode='json', exclude={'id'})
            data['created_at'] = firestore.SERVER_TIMESTAMP
            self.db.collection(MEMBERS).document(member.id).set(data)
            logger.info(f"Member saved: {member.id}")
            return member
        except Exception as e:
            logger.error(f"Member save failed: {str(e)}")
            raise

    def update_member(self, member_id: str, changes: Dict[str, Any]) -> Optional[Member]:
        member = self.get_member(member_id)
        if member is None:
            return None

        updated = Member.model_validate({**member.model_dump(), **changes, 'id': member_id})
        data = updated.model_dump(mode='json', include=set(changes) - {'id'})
        data['updated_at'] = firestore.SERVER_TIMESTAMP
        try:
            self.db.collection(MEMBERS).document(member_id).update(data)
        except NotFound:
            return None

        logger.info(f"Member updated: {member_id}")
        return updated

    def delete_member(self, member_id: str) -> bool:
        doc_ref = self.db.collection(MEMBERS).document(member_id)
        if not doc_ref.get().exists:
            return False

        for doc in self.db.collection(ATTENDANCE).where('member_id', '==', member_id).stream():
            doc.reference.delete()
        doc_ref.delete()

        logger.info(f"Member deleted: {member_id}")
        return True

    def set_embedding(self, member_id: str, embedding: List[float]) -> bool:
        try:
            self.db.collection(MEMBERS).document(member_id).update({
                'face_embedding': [float(v) for v in embedding],
                'updated_at': firestore.SERVER_TIMESTAMP
            })
            return True
        except NotFound:
            return False

    def mark_checked_in(self, member_id: str, when: datetime) -> bool:
        try:
            self.db.collection(MEMBERS).document(member_id).update({
                'attendance_count': firestore.Increment(1),
                'last_check_in': when.isoformat(),
                'updated_at': firestore.SERVER_TIMESTAMP
            })
            return True
        except NotFound:
            return False

    def add_attendance(self, record: AttendanceRecord) -> AttendanceRecord:
        try:
            data = record.model_dump(mode='json', exclude={'id'})
            data['created_at'] = firestore.SERVER_TIMESTAMP
            self.db.collection(ATTENDANCE).document(record.id).set(data)
            return record
        except Exception as e:
            logger.error(f"Attendance save failed: {str(e)}")
            raise

    def list_attendance(self, member_id: str) -> List[AttendanceRecord]:
        query = (
            self.db.collection(ATTENDANCE)
            .where('member_id', '==', member_id)
            .order_by('check_in_time', direction=firestore.Query.DESCENDING)
        )
        return [
            AttendanceRecord.model_validate({**doc.to_dict(), 'id': doc.id})
            for doc in query.stream()
        ]

    def list_classes(self, day_of_week: Optional[int] = None) -> List[ClassSession]:
        query = self.db.collection(CLASSES)
        if day_of_week is not None:
            query = query.where('day_of_week', '==', day_of_week)

        sessions = [
            ClassSession.model_validate({**doc.to_dict(), 'id': doc.id})
            for doc in query.stream()
        ]
        return sorted(sessions, key=lambda c: (c.day_of_week, c.start_time))

    def create_class(self, session: ClassSession) -> ClassSession:
        try:
            data = session.model_dump(mode='json', exclude={'id'})
            data['created_at'] = firestore.SERVER_TIMESTAMP
            self.db.collection(CLASSES).document(session.id).set(data)
            logger.info(f"Class saved: {session.id}")
            return session
        except Exception as e:
            logger.error(f"Class save failed: {str(e)}")
            raise

    def update_class(self, class_id: str, changes: Dict[str, Any]) -> Optional[ClassSession]:
        doc = self.db.collection(CLASSES).document(class_id).get()
        if not doc.exists:
            return None

        session = ClassSession.model_validate({**doc.to_dict(), **changes, 'id': class_id})
        data = session.model_dump(mode='json', include=set(changes) - {'id'})
        data['updated_at'] = firestore.SERVER_TIMESTAMP
        try:
            doc.reference.update(data)
        except NotFound:
            return None

        logger.info(f"Class updated: {class_id}")
        return session

    def delete_class(self, class_id: str) -> bool:
        doc_ref = self.db.collection(CLASSES).document(class_id)
        if not doc_ref.get().exists:
            return False
        doc_ref.delete()
        logger.info(f"Class deleted: {class_id}")
        return True
