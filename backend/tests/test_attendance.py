import threading
import time
from datetime import datetime, timedelta

from gym_kiosk.models.member import ClassSession, Member
from gym_kiosk.services.attendance import AttendanceRecorder, CheckInStatus
from gym_kiosk.services.member_repository import InMemoryMemberRepository
from gym_kiosk.services.schedule import DAY_NAMES, build_timetable, day_of_week, find_current_class

# 2026-10-19 is a Monday
MONDAY_6PM = datetime(2026, 10, 19, 18, 0)


def evening_class(**overrides):
    data = dict(name="Adults Gi", day_of_week=1, start_time="18:00", duration_minutes=60)
    data.update(overrides)
    return ClassSession(**data)


def test_day_of_week_starts_on_sunday():
    assert day_of_week(datetime(2026, 10, 18)) == 0
    assert day_of_week(MONDAY_6PM) == 1
    assert day_of_week(datetime(2026, 10, 24)) == 6


def test_class_is_current_from_lead_time_until_end():
    classes = [evening_class()]

    assert find_current_class(classes, MONDAY_6PM - timedelta(minutes=15)) is not None
    assert find_current_class(classes, MONDAY_6PM + timedelta(minutes=60)) is not None
    assert find_current_class(classes, MONDAY_6PM - timedelta(minutes=16)) is None
    assert find_current_class(classes, MONDAY_6PM + timedelta(minutes=61)) is None


def test_longer_lead_time():
    classes = [evening_class()]

    assert find_current_class(classes, MONDAY_6PM - timedelta(minutes=30), lead_minutes=30) is not None


def test_inactive_and_other_day_classes_ignored():
    classes = [evening_class(is_active=False), evening_class(day_of_week=2)]

    assert find_current_class(classes, MONDAY_6PM) is None


def test_record_check_in_uses_current_class():
    repository = InMemoryMemberRepository()
    session = repository.create_class(evening_class())
    member = repository.create_member(Member(first_name="Ana"))
    recorder = AttendanceRecorder(repository)

    result = recorder.record_check_in(member.id, now=MONDAY_6PM)

    assert result.status == CheckInStatus.SUCCESS
    assert result.record.class_id == session.id
    assert result.record.class_name == "Adults Gi"
    stored = repository.get_member(member.id)
    assert stored.attendance_count == 1
    assert stored.last_check_in == MONDAY_6PM
    assert len(repository.list_attendance(member.id)) == 1


def test_record_check_in_defaults_to_open_mat():
    repository = InMemoryMemberRepository()
    member = repository.create_member(Member(first_name="Ana"))

    result = AttendanceRecorder(repository).record_check_in(member.id, now=MONDAY_6PM)

    assert result.record.class_name == "Open Mat"
    assert result.record.class_id is None


def test_record_check_in_unknown_member():
    result = AttendanceRecorder(InMemoryMemberRepository()).record_check_in("missing")

    assert result.status == CheckInStatus.NOT_FOUND
    assert result.member is None


def test_second_check_in_within_cooldown():
    repository = InMemoryMemberRepository()
    member = repository.create_member(Member(first_name="Ana"))
    recorder = AttendanceRecorder(repository, cooldown_minutes=60)

    recorder.record_check_in(member.id, now=MONDAY_6PM)
    again = recorder.record_check_in(member.id, now=MONDAY_6PM + timedelta(minutes=30))
    later = recorder.record_check_in(member.id, now=MONDAY_6PM + timedelta(minutes=61))

    assert again.status == CheckInStatus.ALREADY_CHECKED_IN
    assert later.status == CheckInStatus.SUCCESS
    assert repository.get_member(member.id).attendance_count == 2


def test_delete_member_removes_attendance():
    repository = InMemoryMemberRepository()
    member = repository.create_member(Member(first_name="Ana", face_embedding=[0.1]))
    AttendanceRecorder(repository).record_check_in(member.id, now=MONDAY_6PM)

    assert repository.delete_member(member.id)
    assert repository.get_member(member.id) is None
    assert repository.list_attendance(member.id) == []
    assert repository.list_embeddings() == []
    assert not repository.delete_member(member.id)


class VanishingRepository(InMemoryMemberRepository):
    """Member is deleted right before the check-in is written."""

    def mark_checked_in(self, member_id, when):
        self.delete_member(member_id)
        return super().mark_checked_in(member_id, when)


class SlowReadRepository(InMemoryMemberRepository):

    def get_member(self, member_id):
        member = super().get_member(member_id)
        time.sleep(0.05)
        return member


def test_member_deleted_mid_check_in_leaves_no_attendance():
    repository = VanishingRepository()
    member = repository.create_member(Member(first_name="Ana"))

    result = AttendanceRecorder(repository).record_check_in(member.id, now=MONDAY_6PM)

    assert result.status == CheckInStatus.NOT_FOUND
    assert repository.list_attendance(member.id) == []


def test_simultaneous_check_ins_record_one_visit():
    repository = SlowReadRepository()
    member = repository.create_member(Member(first_name="Ana"))
    recorder = AttendanceRecorder(repository, cooldown_minutes=60)
    results = []

    def check_in():
        results.append(recorder.record_check_in(member.id, now=MONDAY_6PM))

    threads = [threading.Thread(target=check_in) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(r.status.value for r in results) == ["already_checked_in", "success"]
    assert len(repository.list_attendance(member.id)) == 1
    assert repository.get_member(member.id).attendance_count == 1
    assert len(recorder._locks) == 0


def test_timetable_groups_active_classes_by_day():
    classes = [
        evening_class(name="Late", start_time="19:30", program_type="Gi"),
        evening_class(name="Early", start_time="06:00"),
        evening_class(name="Cancelled", is_active=False),
        evening_class(name="Open Mat", day_of_week=6, start_time="10:00", duration_minutes=120),
    ]

    timetable = build_timetable(classes)

    assert list(timetable) == DAY_NAMES
    assert [c["name"] for c in timetable["Monday"]] == ["Early", "Late"]
    assert timetable["Monday"][1]["type"] == "Gi"
    assert timetable["Saturday"][0]["duration"] == 120
    assert timetable["Sunday"] == []
