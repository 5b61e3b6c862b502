"""
Request helpers shared by the blueprints: storage lookup, JSON errors and
club tenancy checks.

Every record a coach can reach belongs to their club; the require_*
helpers raise AccessError, which the app turns into a JSON error response.
"""

from datetime import datetime, timedelta
from typing import Optional, Tuple

from flask import current_app, jsonify, request
from flask_login import current_user

from .models import ClubMembership, ClubRole, Team, Player, Session, SessionBlockAssignment
from .storage import StorageManager
from .utils import parse_datetime


class AccessError(Exception):
    def __init__(self, message: str, status_code: int = 403):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class InvalidRequest(AccessError):
    """Malformed client input; answered with 400"""

    def __init__(self, message: str):
        super().__init__(message, 400)


def get_storage() -> StorageManager:
    return current_app.extensions['storage']


def error_response(message, status: int = 400):
    errors = message if isinstance(message, list) else [message]
    return jsonify({'success': False, 'errors': errors}), status


def get_json_body() -> dict:
    """The request's JSON object; an absent body reads as empty"""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidRequest('Request body must be a JSON object')
    return data


def require_membership(storage: StorageManager) -> ClubMembership:
    membership = storage.get_membership(current_user.id)
    if not membership:
        raise AccessError('You are not a member of a club', 403)
    return membership


def require_role(storage: StorageManager, *roles: ClubRole) -> ClubMembership:
    membership = require_membership(storage)
    if membership.role not in roles:
        raise AccessError('You do not have permission to do this', 403)
    return membership


def can_manage(membership: ClubMembership) -> bool:
    return membership.role in (ClubRole.HEAD_COACH, ClubRole.ADMIN)


def require_team(storage: StorageManager, team_id: str) -> Tuple[Team, ClubMembership]:
    membership = require_membership(storage)
    team = storage.get_team(team_id)
    if not team:
        raise AccessError('Team not found', 404)
    if team.club_id != membership.club_id:
        raise AccessError('Team not found', 404)
    return team, membership


def require_player(storage: StorageManager, player_id: str) -> Tuple[Player, ClubMembership]:
    membership = require_membership(storage)
    player = storage.get_player(player_id)
    if not player or player.club_id != membership.club_id:
        raise AccessError('Player not found', 404)
    return player, membership


def require_session(storage: StorageManager, session_id: str) -> Tuple[Session, ClubMembership]:
    membership = require_membership(storage)
    session = storage.get_session(session_id)
    if not session or session.club_id != membership.club_id:
        raise AccessError('Session not found', 404)
    return session, membership


def require_assignment(storage: StorageManager, assignment_id: str) -> Tuple[SessionBlockAssignment, Session]:
    assignment = storage.get_assignment(assignment_id)
    if not assignment:
        raise AccessError('Block assignment not found', 404)
    session, _ = require_session(storage, assignment.session_id)
    return assignment, session


def date_arg(name: str, end_of_day: bool = False) -> Optional[datetime]:
    """Optional ISO date query parameter; a bare end date covers the whole day"""
    value = request.args.get(name, '').strip()
    if not value:
        return None
    dt = parse_datetime(value)
    if end_of_day and len(value) == 10:
        dt = dt + timedelta(days=1) - timedelta(seconds=1)
    return dt


def int_arg(name: str, default: int, maximum: Optional[int] = None) -> int:
    value = request.args.get(name, type=int)
    if value is None or value < 0:
        return default
    return min(value, maximum) if maximum else value
