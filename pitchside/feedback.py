"""
Post-session feedback: attendance, team and player notes, and the training
events derived from them.
"""

import logging
from typing import List, Dict, Any, Optional

from .models import (
    Session, SessionFeedback, PlayerFeedbackNote, PlayerTrainingEvent, AttendanceStatus, Sentiment,
)
from .storage import StorageManager

logger = logging.getLogger(__name__)


def load_feedback_modal_data(storage: StorageManager, session: Session) -> Dict[str, Any]:
    """Everything needed to edit feedback for a session.

    Every team player starts as present with an empty note; saved attendance
    and notes are laid over those defaults.
    """
    feedback = storage.get_session_feedback(session.id)
    attendance = {a.player_id: a for a in storage.get_session_attendance(session.id)}
    notes = {n.player_id: n for n in storage.get_feedback_notes(feedback.id)} if feedback else {}

    players = []
    for player in storage.get_team_players(session.team_id):
        record = attendance.get(player.id)
        note = notes.get(player.id)
        players.append({
            'player_id': player.id,
            'name': player.name,
            'position': player.position,
            'status': record.status.value if record else AttendanceStatus.PRESENT.value,
            'note': note.note if note else '',
            'attribute_key': note.attribute_key if note else None,
            'sentiment': note.sentiment.value if note and note.sentiment else None,
        })

    return {
        'session_id': session.id,
        'feedback_id': feedback.id if feedback else None,
        'team_feedback': feedback.team_feedback if feedback else '',
        'overall_rating': feedback.overall_rating if feedback else None,
        'players': players,
    }


def generate_training_events(storage: StorageManager, session: Session) -> List[PlayerTrainingEvent]:
    """Rebuild the training events of a session.

    A present player is credited with an attribute when a block they were not
    excluded from trains one of their active IDP attributes. The weight is the
    attribute's relevance; one event per player and attribute, highest weight.
    """
    present = [
        a.player_id for a in storage.get_session_attendance(session.id)
        if a.status == AttendanceStatus.PRESENT
    ]
    idps_by_player = storage.get_active_idps_for_players(present)
    assignments = storage.get_session_assignments(session.id)
    attributes = storage.get_attributes_for_blocks(a.block_id for a in assignments)
    exclusions = storage.get_exclusions_for_assignments(a.id for a in assignments)

    best: Dict[tuple, float] = {}
    for player_id in present:
        idp_keys = {idp.attribute_key for idp in idps_by_player.get(player_id, [])}
        if not idp_keys:
            continue
        for assignment in assignments:
            if player_id in exclusions.get(assignment.id, set()):
                continue
            for attribute in attributes.get(assignment.block_id, []):
                if attribute.attribute_key in idp_keys:
                    key = (player_id, attribute.attribute_key)
                    best[key] = max(best.get(key, 0.0), attribute.relevance)

    created_at = session.session_date
    events = [
        PlayerTrainingEvent(
            player_id=player_id, session_id=session.id, attribute_key=attribute_key,
            weight=weight, created_at=created_at,
        )
        for (player_id, attribute_key), weight in best.items()
    ]
    storage.replace_session_training_events(session.id, events)
    return events


def save_all_feedback(storage: StorageManager, session: Session, coach_id: str,
                      team_feedback: Optional[str], player_feedback: List[Dict[str, Any]],
                      overall_rating: Optional[int] = None, transcript: Optional[str] = None,
                      audio_url: Optional[str] = None) -> Dict[str, Any]:
    """Save session feedback, attendance and player notes, then derive training events"""
    team_player_ids = {p.id for p in storage.get_team_players(session.team_id)}

    # Validate everything before writing anything
    feedback = SessionFeedback(
        session_id=session.id,
        coach_id=coach_id,
        team_feedback=(team_feedback or '').strip() or None,
        overall_rating=overall_rating,
        transcript=transcript,
        audio_url=audio_url,
    )
    known_attributes = storage.get_attribute_names()
    entries = []
    for item in player_feedback:
        if not isinstance(item, dict):
            raise ValueError('Each player feedback entry must be an object')
        player_id = item.get('player_id')
        if player_id not in team_player_ids:
            raise ValueError(f'Player {player_id} is not in this team')
        status = AttendanceStatus(item.get('status') or AttendanceStatus.PRESENT.value)
        sentiment = Sentiment(item['sentiment']) if item.get('sentiment') else None
        note = item.get('note') or ''
        if not isinstance(note, str):
            raise ValueError('Note must be text')
        attribute_key = item.get('attribute_key') or None
        if attribute_key is not None and (not isinstance(attribute_key, str) or attribute_key not in known_attributes):
            raise ValueError(f'Unknown attribute: {attribute_key}')
        entries.append((player_id, status, note.strip(), attribute_key, sentiment))

    feedback = storage.save_session_feedback(feedback)

    notes = []
    for player_id, status, note, attribute_key, sentiment in entries:
        storage.mark_attendance(session.id, player_id, status)
        if note:
            notes.append(PlayerFeedbackNote(
                session_feedback_id=feedback.id, player_id=player_id, note=note,
                attribute_key=attribute_key, sentiment=sentiment,
            ))
    storage.replace_feedback_notes(feedback.id, notes)

    # Feedback is already stored; a failed rebuild leaves the previous events in place
    try:
        events = generate_training_events(storage, session)
    except (ValueError, RuntimeError) as e:
        logger.error("Training events for session %s could not be generated: %s", session.id, e, exc_info=True)
        events = []
    logger.info("Saved feedback for session %s: %d notes, %d training events",
                session.id, len(notes), len(events))
    return {'feedback': feedback, 'notes_saved': len(notes), 'training_events': len(events)}
