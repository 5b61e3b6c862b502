"""
Team analytics: training summary, IDP gaps, Four Corners breakdown,
player matrix, weekly trend, block usage and block recommendations.

Every function works on the team's sessions that already took place,
optionally limited to a [start_date, end_date] range over session_date.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional, List, Dict, Any

from ..defaults import ATTRIBUTE_CATEGORIES, CATEGORY_LABELS, CATEGORY_COLORS
from ..models import AttendanceStatus, Session
from ..storage import StorageManager
from ..utils import week_start
from .scoring import filter_sessions, team_gap_score, gap_status, score_blocks, candidate_blocks

logger = logging.getLogger(__name__)


def _team_sessions(storage: StorageManager, team_id: str, start_date: Optional[datetime],
                   end_date: Optional[datetime], now: Optional[datetime]) -> List[Session]:
    return filter_sessions(storage.get_team_sessions(team_id), start_date, end_date, now)


def _attendance_percentage(records) -> float:
    if not records:
        return 0.0
    present = sum(1 for r in records if r.status == AttendanceStatus.PRESENT)
    return round(present / len(records) * 100, 1)


def get_team_training_summary(storage: StorageManager, team_id: str, start_date: Optional[datetime] = None,
                              end_date: Optional[datetime] = None, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Overview numbers for a team.

    A session counts as completed once feedback was saved for it.
    idp_coverage_rate is the percentage of active IDPs (player, attribute)
    trained at least once in the range.
    """
    sessions = _team_sessions(storage, team_id, start_date, end_date, now)
    session_ids = [s.id for s in sessions]
    feedback = storage.get_feedback_for_sessions(session_ids)
    completed = [s for s in sessions if s.id in feedback]

    players = storage.get_team_players(team_id)
    player_ids = [p.id for p in players]
    idps = [idp for group in storage.get_active_idps_for_players(player_ids).values() for idp in group]

    in_range = set(session_ids)
    trained = {
        (e.player_id, e.attribute_key)
        for e in storage.get_training_events_for_players(player_ids)
        if e.session_id in in_range
    }
    covered = sum(1 for idp in idps if (idp.player_id, idp.attribute_key) in trained)

    return {
        'sessions_completed': len(completed),
        'total_training_minutes': sum(s.duration for s in completed),
        'total_players': len(players),
        'avg_attendance_percentage': _attendance_percentage(storage.get_attendance_for_sessions(session_ids)),
        'active_idps': len(idps),
        'unique_idp_attributes': len({idp.attribute_key for idp in idps}),
        'idp_coverage_rate': round(covered / len(idps) * 100, 1) if idps else 0.0,
    }


def get_team_idp_gaps(storage: StorageManager, team_id: str, start_date: Optional[datetime] = None,
                      end_date: Optional[datetime] = None, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """One row per attribute that is someone's active IDP, most urgent first"""
    sessions = _team_sessions(storage, team_id, start_date, end_date, now)
    session_index = {s.id: i for i, s in enumerate(sessions)}
    total_sessions = len(sessions)

    players = storage.get_team_players(team_id)
    names = {p.id: p.name for p in players}
    idps_by_player = storage.get_active_idps_for_players(names)
    attribute_names = storage.get_attribute_names()

    holders: Dict[str, List[str]] = {}
    for player in players:
        for idp in idps_by_player.get(player.id, []):
            holders.setdefault(idp.attribute_key, []).append(player.id)

    trained_in: Dict[str, set] = {}
    for event in storage.get_training_events_for_players(names):
        if event.session_id in session_index and event.player_id in holders.get(event.attribute_key, []):
            trained_in.setdefault(event.attribute_key, set()).add(event.session_id)

    gaps = []
    for attribute_key, player_ids in holders.items():
        trained = trained_in.get(attribute_key, set())
        if trained:
            last_index = max(session_index[sid] for sid in trained)
            sessions_since = total_sessions - 1 - last_index
            last_trained_date = sessions[last_index].session_date
        else:
            sessions_since = total_sessions
            last_trained_date = None
        score = team_gap_score(sessions_since, total_sessions, len(trained), len(player_ids), len(players))
        gaps.append({
            'attribute_key': attribute_key,
            'attribute_name': attribute_names.get(attribute_key, attribute_key),
            'players_with_idp': len(player_ids),
            'player_ids': player_ids,
            'player_names': [names[pid] for pid in player_ids],
            'training_sessions': len(trained),
            'total_sessions': total_sessions,
            'sessions_since_trained': sessions_since,
            'last_trained_date': last_trained_date,
            'priority_score': score,
            'gap_status': gap_status(score),
        })

    gaps.sort(key=lambda g: (-g['priority_score'], g['attribute_name']))
    return gaps


def get_team_attribute_breakdown(storage: StorageManager, team_id: str, start_date: Optional[datetime] = None,
                                 end_date: Optional[datetime] = None, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """Training opportunities per Four Corners category.

    Each present player taking part in a block earns one opportunity per
    block attribute. All four categories are returned, in catalogue order.
    """
    sessions = _team_sessions(storage, team_id, start_date, end_date, now)
    session_ids = [s.id for s in sessions]
    categories = storage.get_attribute_categories()

    present: Dict[str, set] = {}
    for record in storage.get_attendance_for_sessions(session_ids):
        if record.status == AttendanceStatus.PRESENT:
            present.setdefault(record.session_id, set()).add(record.player_id)

    assignments = storage.get_assignments_for_sessions(session_ids)
    attributes = storage.get_attributes_for_blocks({a.block_id for a in assignments})
    exclusions = storage.get_exclusions_for_assignments(a.id for a in assignments)

    totals = {c: {'total_opportunities': 0, 'blocks': set(), 'attributes': set()} for c in ATTRIBUTE_CATEGORIES}
    for assignment in assignments:
        participants = len(present.get(assignment.session_id, set()) - exclusions.get(assignment.id, set()))
        for attribute in attributes.get(assignment.block_id, []):
            category = categories.get(attribute.attribute_key)
            if category not in totals:
                continue
            totals[category]['total_opportunities'] += participants
            totals[category]['blocks'].add(assignment.id)
            totals[category]['attributes'].add(attribute.attribute_key)

    return [
        {
            'category': category,
            'label': CATEGORY_LABELS[category],
            'color': CATEGORY_COLORS[category],
            'total_opportunities': totals[category]['total_opportunities'],
            'block_count': len(totals[category]['blocks']),
            'attribute_count': len(totals[category]['attributes']),
        }
        for category in ATTRIBUTE_CATEGORIES
    ]


def get_team_player_matrix(storage: StorageManager, team_id: str, start_date: Optional[datetime] = None,
                           end_date: Optional[datetime] = None, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """Per player: attendance and their most, mid and least trained IDP"""
    sessions = _team_sessions(storage, team_id, start_date, end_date, now)
    session_ids = {s.id for s in sessions}
    players = storage.get_team_players(team_id)
    player_ids = [p.id for p in players]
    idps_by_player = storage.get_active_idps_for_players(player_ids)
    attribute_names = storage.get_attribute_names()

    attendance: Dict[str, List] = {}
    for record in storage.get_attendance_for_sessions(session_ids):
        attendance.setdefault(record.player_id, []).append(record)

    trained: Dict[tuple, set] = {}
    for event in storage.get_training_events_for_players(player_ids):
        if event.session_id in session_ids:
            trained.setdefault((event.player_id, event.attribute_key), set()).add(event.session_id)

    def idp_entry(player_id, idp):
        return {
            'attribute_key': idp.attribute_key,
            'attribute_name': attribute_names.get(idp.attribute_key, idp.attribute_key),
            'priority': idp.priority,
            'training_sessions': len(trained.get((player_id, idp.attribute_key), set())),
        }

    rows = []
    for player in players:
        records = attendance.get(player.id, [])
        attended = sum(1 for r in records if r.status == AttendanceStatus.PRESENT)
        idps = sorted(
            (idp_entry(player.id, idp) for idp in idps_by_player.get(player.id, [])),
            key=lambda i: (-i['training_sessions'], i['priority']),
        )
        rows.append({
            'player_id': player.id,
            'player_name': player.name,
            'position': player.position,
            'sessions_attended': attended,
            'total_sessions': len(records),
            'attendance_percentage': _attendance_percentage(records),
            'idp_count': len(idps),
            'most_trained_idp': idps[0] if idps else None,
            'mid_trained_idp': idps[1] if len(idps) == 3 else None,
            'least_trained_idp': idps[-1] if len(idps) > 1 else None,
        })
    return rows


def get_team_training_trend(storage: StorageManager, team_id: str, weeks: int = 12,
                            now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """Weekly points (Monday start) for the last `weeks` weeks, oldest first"""
    now = now or datetime.now()
    first_week = week_start(now) - timedelta(weeks=weeks - 1)
    start = datetime.combine(first_week, datetime.min.time())
    sessions = _team_sessions(storage, team_id, start, None, now)
    session_ids = [s.id for s in sessions]

    attendance: Dict[str, List] = {}
    for record in storage.get_attendance_for_sessions(session_ids):
        attendance.setdefault(record.session_id, []).append(record)
    player_ids = [p.id for p in storage.get_team_players(team_id)]
    events_per_session: Dict[str, int] = {}
    for event in storage.get_training_events_for_players(player_ids):
        events_per_session[event.session_id] = events_per_session.get(event.session_id, 0) + 1

    points = []
    for offset in range(weeks):
        monday = first_week + timedelta(weeks=offset)
        in_week = [s for s in sessions if week_start(s.session_datetime) == monday]
        records = [r for s in in_week for r in attendance.get(s.id, [])]
        points.append({
            'week_start': monday.isoformat(),
            'sessions': len(in_week),
            'total_minutes': sum(s.duration for s in in_week),
            'attendance_percentage': _attendance_percentage(records),
            'training_events': sum(events_per_session.get(s.id, 0) for s in in_week),
        })
    return points


def get_team_session_block_usage(storage: StorageManager, team_id: str, start_date: Optional[datetime] = None,
                                 end_date: Optional[datetime] = None, limit: int = 10,
                                 now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """Most used blocks: distinct sessions using each block, latest use"""
    sessions = {s.id: s for s in _team_sessions(storage, team_id, start_date, end_date, now)}
    usage: Dict[str, Dict[str, Any]] = {}
    for assignment in storage.get_assignments_for_sessions(sessions):
        entry = usage.setdefault(assignment.block_id, {'sessions': set(), 'last_used': None})
        entry['sessions'].add(assignment.session_id)
        session_date = sessions[assignment.session_id].session_date
        if entry['last_used'] is None or session_date > entry['last_used']:
            entry['last_used'] = session_date

    blocks = storage.get_blocks_by_ids(usage)
    attributes = storage.get_attributes_for_blocks(usage)
    rows = [
        {
            'block_id': block_id,
            'title': blocks[block_id].title,
            'duration': blocks[block_id].duration,
            'usage_count': len(entry['sessions']),
            'last_used': entry['last_used'],
            'attributes': [a.attribute_key for a in attributes.get(block_id, [])],
        }
        for block_id, entry in usage.items() if block_id in blocks
    ]
    rows.sort(key=lambda r: (-r['usage_count'], r['title'].lower()))
    return rows[:limit]


def get_team_block_recommendations(storage: StorageManager, team_id: str, start_date: Optional[datetime] = None,
                                   end_date: Optional[datetime] = None, limit: int = 10,
                                   now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """Blocks ranked by the team IDP gaps they address"""
    team = storage.get_team(team_id)
    if not team:
        return []
    gaps = get_team_idp_gaps(storage, team_id, start_date, end_date, now)
    if not gaps:
        return []

    idp_scores = {g['attribute_key']: g['priority_score'] / 100 for g in gaps}
    players_by_attribute = {
        g['attribute_key']: list(zip(g['player_ids'], g['player_names'])) for g in gaps
    }
    blocks = candidate_blocks(storage.get_all_blocks(), team.club_id)
    attributes = storage.get_attributes_for_blocks(b.id for b in blocks)
    recommendations = score_blocks(
        blocks, attributes, idp_scores, players_by_attribute, storage.get_attribute_names(), limit,
    )
    logger.debug("Scored %d candidate blocks for team %s", len(blocks), team_id)
    return recommendations
