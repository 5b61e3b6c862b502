"""
Player analytics: IDP progress, attendance, session history, IDP
priorities, feedback insights, block recommendations and training balance.
"""

import logging
from datetime import datetime
from typing import Optional, List, Dict, Any

from ..defaults import ATTRIBUTE_CATEGORIES, CATEGORY_LABELS, CATEGORY_COLORS
from ..models import AttendanceStatus, PlayerIDP, PlayerTrainingEvent, Sentiment
from ..storage import StorageManager
from ..utils import parse_optional_datetime, days_between
from .display import calculate_trend, format_idp_duration, calculate_training_progress
from .scoring import player_idp_score, gap_status, score_blocks, candidate_blocks

logger = logging.getLogger(__name__)


def _in_range(value: Optional[str], start: Optional[datetime], end: Optional[datetime]) -> bool:
    dt = parse_optional_datetime(value)
    if dt is None:
        return False
    if start and dt < start:
        return False
    if end and dt > end:
        return False
    return True


def _idp_events(idp: PlayerIDP, events: List[PlayerTrainingEvent]) -> List[PlayerTrainingEvent]:
    """Events on the IDP attribute that fall inside the IDP's lifetime"""
    start = parse_optional_datetime(idp.started_at)
    end = parse_optional_datetime(idp.ended_at)
    result = []
    for event in events:
        if event.attribute_key != idp.attribute_key:
            continue
        when = parse_optional_datetime(event.created_at)
        if when is None:
            continue
        # Events are dated by session day, so compare dates for the start bound
        if start and when.date() < start.date():
            continue
        if end and when > end:
            continue
        result.append(event)
    return result


def _mention_counts(storage: StorageManager, player_id: str) -> Dict[str, Dict[str, int]]:
    counts: Dict[str, Dict[str, int]] = {}
    for note in storage.get_player_notes(player_id):
        if not note.attribute_key or not note.sentiment:
            continue
        entry = counts.setdefault(note.attribute_key, {'positive': 0, 'neutral': 0, 'negative': 0})
        entry[note.sentiment.value] += 1
    return counts


def get_player_idp_progress(storage: StorageManager, player_id: str, active_only: bool = False,
                            now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """Progress for each of a player's IDPs, active ones first"""
    idps = storage.get_active_idps(player_id) if active_only else storage.get_player_idps(player_id)
    events = storage.get_player_training_events(player_id)
    mentions = _mention_counts(storage, player_id)
    attribute_names = storage.get_attribute_names()

    progress = []
    for idp in idps:
        trained = _idp_events(idp, events)
        last = max((parse_optional_datetime(e.created_at) for e in trained), default=None)
        counts = mentions.get(idp.attribute_key, {'positive': 0, 'neutral': 0, 'negative': 0})
        sessions = len({e.session_id for e in trained})
        progress.append({
            'idp_id': idp.id,
            'attribute_key': idp.attribute_key,
            'attribute_name': attribute_names.get(idp.attribute_key, idp.attribute_key),
            'priority': idp.priority,
            'notes': idp.notes,
            'started_at': idp.started_at,
            'ended_at': idp.ended_at,
            'is_active': idp.is_active,
            'duration': format_idp_duration(idp.started_at, idp.ended_at, now),
            'training_sessions': sessions,
            'total_weight': round(sum(e.weight for e in trained), 2),
            'training_progress': calculate_training_progress(sessions),
            'last_trained_at': last.isoformat() if last else None,
            'days_since_trained': days_between(last, now) if last else None,
            'positive_mentions': counts['positive'],
            'neutral_mentions': counts['neutral'],
            'negative_mentions': counts['negative'],
            'trend': calculate_trend(counts['positive'], counts['negative'], counts['neutral']),
        })
    return progress


def get_player_attendance_summary(storage: StorageManager, player_id: str, start_date: Optional[datetime] = None,
                                  end_date: Optional[datetime] = None) -> Dict[str, Any]:
    records = storage.get_player_attendance(player_id)
    sessions = storage.get_sessions_by_ids(r.session_id for r in records)
    records = [
        r for r in records
        if r.session_id in sessions and _in_range(sessions[r.session_id].session_date, start_date, end_date)
    ]
    attended = sum(1 for r in records if r.status == AttendanceStatus.PRESENT)
    return {
        'total_sessions': len(records),
        'attended': attended,
        'absent': len(records) - attended,
        'attendance_percentage': round(attended / len(records) * 100, 1) if records else 0.0,
    }


def get_player_training_events(storage: StorageManager, player_id: str,
                               attribute_key: Optional[str] = None) -> List[Dict[str, Any]]:
    """Training events newest first, with the session they came from"""
    events = storage.get_player_training_events(player_id)
    if attribute_key:
        events = [e for e in events if e.attribute_key == attribute_key]
    sessions = storage.get_sessions_by_ids(e.session_id for e in events)
    return [
        {
            'id': e.id,
            'attribute_key': e.attribute_key,
            'weight': e.weight,
            'created_at': e.created_at,
            'session_id': e.session_id,
            'session_title': sessions[e.session_id].title if e.session_id in sessions else None,
        }
        for e in events
    ]


def get_idp_training_sessions(storage: StorageManager, idp_id: str) -> List[Dict[str, Any]]:
    """Sessions that trained an IDP during its lifetime, newest first"""
    idp = storage.get_idp(idp_id)
    if not idp:
        return []
    trained = _idp_events(idp, storage.get_player_training_events(idp.player_id))
    sessions = storage.get_sessions_by_ids(e.session_id for e in trained)
    weights: Dict[str, float] = {}
    for event in trained:
        weights[event.session_id] = max(weights.get(event.session_id, 0.0), event.weight)

    result = [
        {
            'session_id': session.id,
            'title': session.title,
            'session_date': session.session_date,
            'duration': session.duration,
            'weight': weights[session.id],
        }
        for session in sessions.values()
    ]
    result.sort(key=lambda s: s['session_date'], reverse=True)
    return result


def _player_session_rows(storage: StorageManager, player_id: str) -> List[Dict[str, Any]]:
    records = {r.session_id: r for r in storage.get_player_attendance(player_id)}
    sessions = sorted(storage.get_sessions_by_ids(records).values(), key=lambda s: s.session_date, reverse=True)
    session_ids = [s.id for s in sessions]

    feedback = storage.get_feedback_for_sessions(session_ids)
    notes_by_feedback = {n.session_feedback_id: n for n in storage.get_player_notes(player_id)}
    assignments = storage.get_assignments_for_sessions(session_ids)
    blocks = storage.get_blocks_by_ids(a.block_id for a in assignments)
    exclusions = storage.get_exclusions_for_assignments(a.id for a in assignments)
    trained: Dict[str, List[str]] = {}
    for event in storage.get_player_training_events(player_id):
        trained.setdefault(event.session_id, []).append(event.attribute_key)

    rows = []
    for session in sessions:
        record = records[session.id]
        session_feedback = feedback.get(session.id)
        note = notes_by_feedback.get(session_feedback.id) if session_feedback else None
        session_blocks = sorted(
            (a for a in assignments if a.session_id == session.id and a.block_id in blocks),
            key=lambda a: (a.position, a.slot_index),
        )
        rows.append({
            'session_id': session.id,
            'title': session.title,
            'session_date': session.session_date,
            'duration': session.duration,
            'status': record.status.value,
            'attendance_notes': record.notes,
            'feedback_note': note.note if note else None,
            'feedback_sentiment': note.sentiment.value if note and note.sentiment else None,
            'blocks': [
                {'block_id': a.block_id, 'title': blocks[a.block_id].title}
                for a in session_blocks if player_id not in exclusions.get(a.id, set())
            ],
            'attributes_trained': sorted(set(trained.get(session.id, []))),
        })
    return rows


def get_player_sessions(storage: StorageManager, player_id: str, limit: int = 20,
                        offset: int = 0) -> List[Dict[str, Any]]:
    """Sessions the player was recorded for, newest first, with blocks, note and trained attributes"""
    return _player_session_rows(storage, player_id)[offset:offset + limit]


def get_player_sessions_count(storage: StorageManager, player_id: str) -> int:
    return len(storage.get_player_attendance(player_id))


def get_player_idp_priorities(storage: StorageManager, player_id: str,
                              now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """Active IDPs scored by how badly they need training, most urgent first"""
    priorities = []
    for entry in get_player_idp_progress(storage, player_id, active_only=True, now=now):
        score = player_idp_score(entry['priority'], entry['days_since_trained'], entry['training_sessions'])
        priorities.append({
            'idp_id': entry['idp_id'],
            'attribute_key': entry['attribute_key'],
            'attribute_name': entry['attribute_name'],
            'priority': entry['priority'],
            'training_sessions': entry['training_sessions'],
            'days_since_trained': entry['days_since_trained'],
            'last_trained_date': entry['last_trained_at'],
            'idp_score': score,
            'gap_status': gap_status(score),
        })
    priorities.sort(key=lambda p: (-p['idp_score'], p['priority']))
    return priorities


def _feedback_rows(storage: StorageManager, player_id: str, attribute_key: Optional[str],
                   sentiment: Optional[str], start_date: Optional[datetime],
                   end_date: Optional[datetime]) -> List[Dict[str, Any]]:
    """Every note about the player across all teams they were coached in, newest note first"""
    notes = storage.get_player_notes(player_id)
    feedback = storage.get_feedback_by_ids(n.session_feedback_id for n in notes)
    sessions = storage.get_sessions_by_ids(f.session_id for f in feedback.values())
    attribute_names = storage.get_attribute_names()
    wanted_sentiment = Sentiment(sentiment) if sentiment else None

    rows = []
    for note in notes:
        record = feedback.get(note.session_feedback_id)
        session = sessions.get(record.session_id) if record else None
        if session is None:
            continue
        if attribute_key and note.attribute_key != attribute_key:
            continue
        if wanted_sentiment and note.sentiment != wanted_sentiment:
            continue
        if (start_date or end_date) and not _in_range(session.session_date, start_date, end_date):
            continue
        rows.append({
            'id': note.id,
            'note': note.note,
            'attribute_key': note.attribute_key,
            'attribute_name': attribute_names.get(note.attribute_key) if note.attribute_key else None,
            'sentiment': note.sentiment.value if note.sentiment else None,
            'session_id': session.id,
            'session_title': session.title,
            'session_date': session.session_date,
            'created_at': note.created_at,
        })
    rows.sort(key=lambda r: r['created_at'], reverse=True)
    return rows


def get_player_feedback_insights(storage: StorageManager, player_id: str, attribute_key: Optional[str] = None,
                                 sentiment: Optional[str] = None, start_date: Optional[datetime] = None,
                                 end_date: Optional[datetime] = None, limit: int = 20,
                                 offset: int = 0) -> List[Dict[str, Any]]:
    """Coach notes about a player, most recently written first.

    Raises ValueError for an unknown sentiment filter.
    """
    rows = _feedback_rows(storage, player_id, attribute_key, sentiment, start_date, end_date)
    return rows[offset:offset + limit]


def get_player_feedback_count(storage: StorageManager, player_id: str, attribute_key: Optional[str] = None,
                              sentiment: Optional[str] = None, start_date: Optional[datetime] = None,
                              end_date: Optional[datetime] = None) -> int:
    return len(_feedback_rows(storage, player_id, attribute_key, sentiment, start_date, end_date))


def get_recent_feedback_notes(storage: StorageManager, player_id: str, limit: int = 5) -> List[Dict[str, Any]]:
    return get_player_feedback_insights(storage, player_id, limit=limit)


def get_player_block_recommendations(storage: StorageManager, player_id: str, limit: int = 5,
                                     now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """Blocks ranked by how well they cover this player's IDP needs"""
    player = storage.get_player(player_id)
    if not player:
        return []
    priorities = get_player_idp_priorities(storage, player_id, now)
    if not priorities:
        return []

    idp_scores = {p['attribute_key']: p['idp_score'] / 100 for p in priorities}
    players_by_attribute = {key: [(player.id, player.name)] for key in idp_scores}
    blocks = candidate_blocks(storage.get_all_blocks(), player.club_id)
    attributes = storage.get_attributes_for_blocks(b.id for b in blocks)
    return score_blocks(blocks, attributes, idp_scores, players_by_attribute, storage.get_attribute_names(), limit)


def get_player_training_balance(storage: StorageManager, player_id: str, start_date: Optional[datetime] = None,
                                end_date: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """Training events and weight per Four Corners category"""
    categories = storage.get_attribute_categories()
    totals = {c: {'events': 0, 'weight': 0.0} for c in ATTRIBUTE_CATEGORIES}
    for event in storage.get_player_training_events(player_id):
        category = categories.get(event.attribute_key)
        if category not in totals:
            continue
        if (start_date or end_date) and not _in_range(event.created_at, start_date, end_date):
            continue
        totals[category]['events'] += 1
        totals[category]['weight'] += event.weight

    total_weight = sum(t['weight'] for t in totals.values())
    return [
        {
            'category': category,
            'label': CATEGORY_LABELS[category],
            'color': CATEGORY_COLORS[category],
            'events': totals[category]['events'],
            'total_weight': round(totals[category]['weight'], 2),
            'percentage': round(totals[category]['weight'] / total_weight * 100) if total_weight else 0,
        }
        for category in ATTRIBUTE_CATEGORIES
    ]
