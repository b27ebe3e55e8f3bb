from datetime import datetime
from typing import Dict, Iterable, List, Optional

from gym_kiosk.models.member import ClassSession

DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


def day_of_week(now: datetime) -> int:
    """Weekday with Sunday as 0, matching ClassSession.day_of_week."""
    return (now.weekday() + 1) % 7


def _minutes(start_time: str) -> int:
    hours, minutes = start_time.split(":")
    return int(hours) * 60 + int(minutes)


def find_current_class(
    classes: Iterable[ClassSession],
    now: datetime,
    lead_minutes: int = 15
) -> Optional[ClassSession]:
    """
    Return the class running at ``now``.

    A class counts as current from ``lead_minutes`` before its start
    until its end. The earliest-starting match wins.
    """
    today = day_of_week(now)
    current_minutes = now.hour * 60 + now.minute

    candidates = sorted(
        (c for c in classes if c.is_active and c.day_of_week == today),
        key=lambda c: c.start_time
    )

    for session in candidates:
        start = _minutes(session.start_time)
        end = start + (session.duration_minutes or 60)
        if start - lead_minutes <= current_minutes <= end:
            return session

    return None


def build_timetable(classes: Iterable[ClassSession]) -> Dict[str, List[dict]]:
    """Active classes grouped by day name, Sunday first, each day ordered by start time."""
    timetable: Dict[str, List[dict]] = {day: [] for day in DAY_NAMES}

    for session in sorted(classes, key=lambda c: (c.day_of_week, c.start_time)):
        if not session.is_active:
            continue
        timetable[DAY_NAMES[session.day_of_week]].append({
            "time": session.start_time,
            "name": session.name,
            "coach": session.coach,
            "level": session.level,
            "duration": session.duration_minutes,
            "type": session.program_type
        })

    return timetable
