"""
Training syllabus helpers: turning the multi-week calendar into ordered
slots and suggesting the next session for a team.

Days of the week follow Python's convention: 0 = Monday ... 6 = Sunday.
"""

from datetime import datetime, timedelta, date
from typing import List, Optional, Dict, Any

from .models import TrainingSyllabus, SyllabusSlot, Team, Session
from .storage import StorageManager


def get_syllabus_slots(syllabus: Optional[TrainingSyllabus]) -> List[SyllabusSlot]:
    """Every day with a theme, in week then day order"""
    if not syllabus:
        return []
    slots = []
    for week in sorted(syllabus.weeks, key=lambda w: w.week_index):
        for day in sorted(week.days, key=lambda d: d.day_of_week):
            if day.theme is not None:
                slots.append(SyllabusSlot(week_index=week.week_index, day_of_week=day.day_of_week, theme=day.theme))
    return slots


def get_first_syllabus_slot(syllabus: Optional[TrainingSyllabus]) -> Optional[SyllabusSlot]:
    slots = get_syllabus_slots(syllabus)
    return slots[0] if slots else None


def get_next_syllabus_slot(syllabus: Optional[TrainingSyllabus], week_index: int, day_of_week: int) -> Optional[SyllabusSlot]:
    """The slot after (week_index, day_of_week), wrapping to the first slot"""
    slots = get_syllabus_slots(syllabus)
    if not slots:
        return None
    for slot in slots:
        if (slot.week_index, slot.day_of_week) > (week_index, day_of_week):
            return slot
    return slots[0]


def get_next_day_of_week(after: datetime, day_of_week: int) -> date:
    """First date strictly after `after` that falls on day_of_week"""
    days_ahead = (day_of_week - after.weekday()) % 7 or 7
    return (after + timedelta(days=days_ahead)).date()


def slot_to_session_fields(slot: SyllabusSlot) -> Dict[str, Any]:
    """Session fields recording which syllabus slot a session was planned from"""
    return {
        'syllabus_week_index': slot.week_index,
        'syllabus_day_of_week': slot.day_of_week,
        'theme_block_id': slot.theme.block_id,
        'theme_snapshot': slot.theme,
    }


def suggest_next_session(storage: StorageManager, team: Team, now: Optional[datetime] = None) -> Optional[Dict[str, Any]]:
    """Next syllabus slot for a team with a suggested date and title.

    Continues after the team's latest syllabus session (the date is the next
    matching weekday after that session); starts from the first slot, dated
    from today, when there is none. Returns None when the team has no syllabus with
    themed days.
    """
    syllabus = storage.get_syllabus(team.club_id, team.id) or storage.get_syllabus(team.club_id)
    slots = get_syllabus_slots(syllabus)
    if not slots:
        return None

    after = now or datetime.now()
    latest: Optional[Session] = storage.get_latest_syllabus_session(team.id)
    slot = None
    if latest is not None:
        after = latest.session_datetime
        slot = get_next_syllabus_slot(syllabus, latest.syllabus_week_index, latest.syllabus_day_of_week)
    if slot is None:
        slot = slots[0]

    return {
        'slot': slot,
        'slot_index': next(i for i, s in enumerate(slots) if (s.week_index, s.day_of_week) == (slot.week_index, slot.day_of_week)),
        'slots': slots,
        'suggested_date': get_next_day_of_week(after, slot.day_of_week).isoformat(),
        'title': slot.theme.block_name,
    }
