"""
Which players take part in each block of a session, and the IDP context
used when writing player-specific coaching points.

Players are included in every block by default; an exclusion record takes
a player out of one block assignment.
"""

from datetime import datetime
from typing import List, Dict, Any, Optional, Iterable

from .models import Sentiment
from .storage import StorageManager
from .utils import parse_optional_datetime, days_between


def toggle_player_inclusion(storage: StorageManager, assignment_id: str, player_id: str) -> bool:
    """Flip a player's inclusion in a block; returns True when now included"""
    if player_id in storage.get_exclusions(assignment_id):
        storage.remove_exclusion(assignment_id, player_id)
        return True
    storage.add_exclusion(assignment_id, player_id)
    return False


def set_block_exclusions(storage: StorageManager, assignment_id: str, player_ids: Iterable[str]) -> List[str]:
    return storage.set_exclusions(assignment_id, player_ids)


def get_exclusion_count(storage: StorageManager, assignment_id: str) -> int:
    return len(storage.get_exclusions(assignment_id))


def get_block_players(storage: StorageManager, assignment_id: str, team_id: str) -> List[Dict[str, Any]]:
    excluded = set(storage.get_exclusions(assignment_id))
    return [
        {'id': p.id, 'name': p.name, 'position': p.position, 'included': p.id not in excluded}
        for p in storage.get_team_players(team_id)
    ]


def get_players_with_idp_context(storage: StorageManager, team_id: str,
                                 now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """Team players with their active IDPs and training/feedback context.

    For each active IDP: whole days since the latest training event on that
    attribute (None when never trained), the number of distinct sessions that
    trained it, and positive/negative feedback mentions of it.
    """
    players = storage.get_team_players(team_id)
    player_ids = [p.id for p in players]
    idps_by_player = storage.get_active_idps_for_players(player_ids)

    events_by_key: Dict[tuple, list] = {}
    for event in storage.get_training_events_for_players(player_ids):
        events_by_key.setdefault((event.player_id, event.attribute_key), []).append(event)

    mentions: Dict[tuple, Dict[str, int]] = {}
    for note in storage.get_notes_for_players(player_ids):
        if not note.attribute_key or not note.sentiment:
            continue
        counts = mentions.setdefault((note.player_id, note.attribute_key), {'positive': 0, 'negative': 0})
        if note.sentiment == Sentiment.POSITIVE:
            counts['positive'] += 1
        elif note.sentiment == Sentiment.NEGATIVE:
            counts['negative'] += 1

    result = []
    for player in players:
        idps = []
        for idp in idps_by_player.get(player.id, []):
            events = events_by_key.get((player.id, idp.attribute_key), [])
            latest = max((parse_optional_datetime(e.created_at) for e in events if e.created_at), default=None)
            counts = mentions.get((player.id, idp.attribute_key), {'positive': 0, 'negative': 0})
            idps.append({
                'idp_id': idp.id,
                'attribute_key': idp.attribute_key,
                'priority': idp.priority,
                'days_since_trained': days_between(latest, now) if latest else None,
                'training_sessions': len({e.session_id for e in events}),
                'positive_mentions': counts['positive'],
                'negative_mentions': counts['negative'],
            })
        result.append({'id': player.id, 'name': player.name, 'position': player.position, 'idps': idps})
    return result
