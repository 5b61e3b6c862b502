"""
Priority scoring for IDP training gaps and block recommendations.

Scores are on a 0-100 scale: >= 70 is urgent, >= 40 is due, below that
the attribute is on track.
"""

from datetime import datetime
from typing import Optional, List, Dict, Any, Iterable, Tuple

from ..models import Session, SessionBlock, SessionBlockAttribute, OrderType, BlockSource

URGENT_THRESHOLD = 70
DUE_THRESHOLD = 40

PRIORITY_WEIGHTS = {1: 1.0, 2: 0.85, 3: 0.7}
# Days without training after which an IDP counts as fully stale
STALE_AFTER_DAYS = 21
# Training sessions after which an IDP counts as well covered
WELL_COVERED_SESSIONS = 10


def gap_status(score: float) -> str:
    if score >= URGENT_THRESHOLD:
        return 'urgent'
    if score >= DUE_THRESHOLD:
        return 'due'
    return 'on_track'


def team_gap_score(sessions_since_trained: int, total_sessions: int, training_sessions: int,
                   players_with_idp: int, total_players: int) -> int:
    """How badly the team needs to train one IDP attribute.

    Half of the score is recency (sessions since it was last trained as a
    share of all sessions), 30% is how rarely it was trained, 20% is the
    share of the squad that has it as an IDP.
    """
    if total_sessions == 0:
        recency, rarity = 1.0, 1.0
    else:
        recency = min(sessions_since_trained / total_sessions, 1.0)
        rarity = 1.0 - min(training_sessions / total_sessions, 1.0)
    share = players_with_idp / total_players if total_players else 0.0
    return round(100 * (0.5 * recency + 0.3 * rarity + 0.2 * share))


def player_idp_score(priority: int, days_since_trained: Optional[int], training_sessions: int) -> int:
    """How badly one player's IDP needs training, scaled by its priority"""
    recency = 1.0 if days_since_trained is None else min(days_since_trained / STALE_AFTER_DAYS, 1.0)
    exposure_gap = 1.0 - min(training_sessions / WELL_COVERED_SESSIONS, 1.0)
    weight = PRIORITY_WEIGHTS.get(priority, PRIORITY_WEIGHTS[3])
    return round(100 * weight * (0.7 * recency + 0.3 * exposure_gap))


def filter_sessions(sessions: Iterable[Session], start: Optional[datetime] = None,
                    end: Optional[datetime] = None, now: Optional[datetime] = None) -> List[Session]:
    """Sessions that already took place within [start, end], oldest first"""
    now = now or datetime.now()
    result = []
    for session in sessions:
        dt = session.session_datetime
        if dt > now:
            continue
        if start and dt < start:
            continue
        if end and dt > end:
            continue
        result.append(session)
    result.sort(key=lambda s: s.session_date)
    return result


def score_blocks(blocks: Iterable[SessionBlock],
                 attributes_by_block: Dict[str, List[SessionBlockAttribute]],
                 idp_scores: Dict[str, float],
                 players_by_attribute: Dict[str, List[Tuple[str, str]]],
                 attribute_names: Dict[str, str],
                 limit: int = 10) -> List[Dict[str, Any]]:
    """Rank blocks by how much IDP need they address.

    block_score is the sum of idp_score x relevance over the block's
    attributes that are someone's IDP (idp_score on a 0-1 scale);
    priority_score rescales block_score against the best block to 0-100.
    """
    scored = []
    for block in blocks:
        attributes = attributes_by_block.get(block.id, [])
        breakdown = []
        impacted = {}
        block_score = 0.0
        for attribute in attributes:
            idp_score = idp_scores.get(attribute.attribute_key)
            if not idp_score:
                continue
            contribution = idp_score * attribute.relevance
            block_score += contribution
            players = players_by_attribute.get(attribute.attribute_key, [])
            for player_id, player_name in players:
                impacted[player_id] = player_name
            breakdown.append({
                'attribute_key': attribute.attribute_key,
                'attribute_name': attribute_names.get(attribute.attribute_key, attribute.attribute_key),
                'order_type': attribute.order_type.value,
                'relevance': attribute.relevance,
                'idp_score': round(idp_score, 3),
                'contribution': round(contribution, 3),
                'player_count': len(players),
            })
        if block_score <= 0:
            continue
        scored.append({
            'block_id': block.id,
            'title': block.title,
            'description': block.description,
            'duration': block.duration,
            'first_order_attributes': [a.attribute_key for a in attributes if a.order_type == OrderType.FIRST],
            'second_order_attributes': [a.attribute_key for a in attributes if a.order_type == OrderType.SECOND],
            'block_score': round(block_score, 3),
            'idp_impact_count': len(breakdown),
            'impacted_players': [{'id': pid, 'name': name} for pid, name in sorted(impacted.items(), key=lambda i: i[1])],
            'idp_breakdown': sorted(breakdown, key=lambda b: b['contribution'], reverse=True),
        })

    scored.sort(key=lambda b: (-b['block_score'], b['title'].lower()))
    top_score = scored[0]['block_score'] if scored else 0
    for entry in scored:
        entry['priority_score'] = round(entry['block_score'] / top_score * 100) if top_score else 0
    return scored[:limit]


def candidate_blocks(blocks: Iterable[SessionBlock], club_id: Optional[str]) -> List[SessionBlock]:
    """Blocks a club can use: its own plus public and system blocks"""
    return [
        b for b in blocks
        if (club_id and b.club_id == club_id) or b.is_public or b.source == BlockSource.SYSTEM
    ]
