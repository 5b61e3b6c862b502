"""
Club and team methodology routes: game model zones, training syllabus,
methodology entries, positional profiles, training rule toggles, and the
onboarding checklist.

Club-level methodology is edited by the head coach or an admin; every
coach of the club may edit a team's own copy.
"""

from flask import Blueprint, request, jsonify, current_app
from flask_login import login_required, current_user

from .access import (
    AccessError, get_storage, error_response, get_json_body, require_membership, require_team, can_manage,
)
from .models import (
    GameModelZones, TrainingSyllabus, PlayingMethodology, TrainingMethodology, PositionalProfile,
)
from .syllabus import get_syllabus_slots
from .utils import email_prefix

methodology_bp = Blueprint('methodology', __name__, url_prefix='/api')

METHODOLOGY_KINDS = {
    'playing': (PlayingMethodology, ('title', 'description', 'zones', 'display_order', 'is_active')),
    'training': (TrainingMethodology, ('title', 'description', 'syllabus', 'display_order', 'is_active')),
    'profiles': (PositionalProfile, ('position_key', 'custom_position_name', 'attributes', 'display_order', 'is_active')),
}


def _scope(storage, team_id=None):
    """Resolve (club_id, team_id) for a read or write, checking tenancy"""
    membership = require_membership(storage)
    if team_id:
        team, _ = require_team(storage, team_id)
        return membership, team.id
    return membership, None


def _require_club_editor(membership):
    if not can_manage(membership):
        raise AccessError('Only the head coach or an admin can change club methodology', 403)


def _kind(kind):
    if kind not in METHODOLOGY_KINDS:
        raise AccessError('Unknown methodology type', 404)
    return METHODOLOGY_KINDS[kind]


# ----------------------------------------------------------------------
# Game model zones and syllabus
# ----------------------------------------------------------------------

@methodology_bp.route('/club/zones', methods=['GET'])
@methodology_bp.route('/teams/<team_id>/zones', methods=['GET'])
@login_required
def get_zones(team_id=None):
    storage = get_storage()
    membership, team_id = _scope(storage, team_id)
    zones = storage.get_zones(membership.club_id, team_id)
    return jsonify({'success': True, 'zones': zones.model_dump(mode='json')})


@methodology_bp.route('/club/zones', methods=['PUT'])
@methodology_bp.route('/teams/<team_id>/zones', methods=['PUT'])
@login_required
def save_zones(team_id=None):
    storage = get_storage()
    membership, team_id = _scope(storage, team_id)
    if team_id is None:
        _require_club_editor(membership)
    data = get_json_body()
    try:
        zones = GameModelZones(zones=data.get('zones') or [])
        entry = storage.save_zones(membership.club_id, zones, team_id, current_user.id)
        return jsonify({'success': True, 'zones': zones.model_dump(mode='json'), 'methodology_id': entry.id})
    except (ValueError, TypeError, KeyError) as e:
        return error_response(f'Invalid game model: {e}', 400)
    except Exception as e:
        current_app.logger.error(f"Error saving zones: {e}", exc_info=True)
        return error_response('Failed to save game model', 500)


@methodology_bp.route('/club/syllabus', methods=['GET'])
@methodology_bp.route('/teams/<team_id>/syllabus', methods=['GET'])
@login_required
def get_syllabus(team_id=None):
    storage = get_storage()
    membership, team_id = _scope(storage, team_id)
    syllabus = storage.get_syllabus(membership.club_id, team_id)
    return jsonify({
        'success': True,
        'syllabus': syllabus.model_dump(mode='json') if syllabus else None,
        'slots': [s.model_dump(mode='json') for s in get_syllabus_slots(syllabus)],
    })


@methodology_bp.route('/club/syllabus', methods=['PUT'])
@methodology_bp.route('/teams/<team_id>/syllabus', methods=['PUT'])
@login_required
def save_syllabus(team_id=None):
    storage = get_storage()
    membership, team_id = _scope(storage, team_id)
    if team_id is None:
        _require_club_editor(membership)
    data = get_json_body()
    try:
        syllabus = TrainingSyllabus(weeks=data.get('weeks') or [])
        entry = storage.save_syllabus(membership.club_id, syllabus, team_id, current_user.id)
        return jsonify({'success': True, 'syllabus': syllabus.model_dump(mode='json'), 'methodology_id': entry.id})
    except (ValueError, TypeError, KeyError) as e:
        return error_response(f'Invalid syllabus: {e}', 400)
    except Exception as e:
        current_app.logger.error(f"Error saving syllabus: {e}", exc_info=True)
        return error_response('Failed to save syllabus', 500)


# ----------------------------------------------------------------------
# Methodology entries
# ----------------------------------------------------------------------

def _require_entry(storage, kind, entry_id):
    membership = require_membership(storage)
    entry = storage.get_methodology_entry(kind, entry_id)
    if not entry or entry.club_id != membership.club_id:
        raise AccessError('Entry not found', 404)
    if entry.team_id is None:
        _require_club_editor(membership)
    return entry


@methodology_bp.route('/methodology/<kind>', methods=['GET'])
@login_required
def list_methodology(kind):
    _kind(kind)
    storage = get_storage()
    membership, team_id = _scope(storage, request.args.get('team_id'))
    entries = storage.get_methodology(kind, membership.club_id, team_id)
    return jsonify({'success': True, 'entries': [e.model_dump(mode='json') for e in entries]})


@methodology_bp.route('/methodology/<kind>', methods=['POST'])
@login_required
def create_methodology(kind):
    model_cls, fields = _kind(kind)
    storage = get_storage()
    data = get_json_body()
    membership, team_id = _scope(storage, data.get('team_id'))
    if team_id is None:
        _require_club_editor(membership)
    try:
        values = {f: data[f] for f in fields if f in data}
        if 'created_by_coach_id' in model_cls.model_fields:
            values['created_by_coach_id'] = current_user.id
        entry = model_cls(club_id=membership.club_id, team_id=team_id, **values)
        storage.save_methodology_entry(kind, entry)
        return jsonify({'success': True, 'entry': entry.model_dump(mode='json')}), 201
    except (ValueError, TypeError, KeyError) as e:
        return error_response(str(e), 400)


@methodology_bp.route('/methodology/<kind>/<entry_id>', methods=['PUT'])
@login_required
def update_methodology(kind, entry_id):
    model_cls, fields = _kind(kind)
    storage = get_storage()
    entry = _require_entry(storage, kind, entry_id)
    data = get_json_body()
    try:
        updated = model_cls(**{**entry.model_dump(), **{f: data[f] for f in fields if f in data}})
        storage.save_methodology_entry(kind, updated)
        return jsonify({'success': True, 'entry': updated.model_dump(mode='json')})
    except (ValueError, TypeError, KeyError) as e:
        return error_response(str(e), 400)


@methodology_bp.route('/methodology/<kind>/<entry_id>', methods=['DELETE'])
@login_required
def delete_methodology(kind, entry_id):
    _kind(kind)
    storage = get_storage()
    entry = _require_entry(storage, kind, entry_id)
    storage.delete_methodology_entry(kind, entry.id)
    return jsonify({'success': True})


@methodology_bp.route('/teams/<team_id>/methodology/<kind>/revert', methods=['POST'])
@login_required
def revert_methodology(team_id, kind):
    """Throw away the team's own entries of a kind and copy the club's back"""
    _kind(kind)
    storage = get_storage()
    team, _ = require_team(storage, team_id)
    if kind == 'playing':
        copied = storage.revert_team_playing_methodology(team.id, team.club_id)
    elif kind == 'profiles':
        copied = storage.revert_team_positional_profiles(team.id, team.club_id)
    else:
        copied = storage.revert_team_methodology(kind, team.id, team.club_id)
    current_app.logger.info(f"Team {team.id} reverted {kind} methodology ({copied} entries)")
    return jsonify({'success': True, 'copied': copied})


@methodology_bp.route('/teams/<team_id>/rule-toggles', methods=['GET'])
@login_required
def list_rule_toggles(team_id):
    storage = get_storage()
    team, _ = require_team(storage, team_id)
    toggles = storage.get_rule_toggles(team.id)
    return jsonify({'success': True, 'toggles': [t.model_dump(mode='json') for t in toggles]})


@methodology_bp.route('/teams/<team_id>/rule-toggles/<training_rule_id>', methods=['PUT'])
@login_required
def set_rule_toggle(team_id, training_rule_id):
    storage = get_storage()
    team, _ = require_team(storage, team_id)
    data = get_json_body()
    if not isinstance(data.get('is_enabled'), bool):
        return error_response('is_enabled must be true or false', 400)
    toggle = storage.set_rule_toggle(team.id, training_rule_id, data['is_enabled'])
    return jsonify({'success': True, 'toggle': toggle.model_dump(mode='json')})


# ----------------------------------------------------------------------
# Onboarding
# ----------------------------------------------------------------------

def get_onboarding_progress(storage, coach):
    """Checklist of the setup steps a new coach has finished"""
    has_profile = bool(coach.name and coach.name.strip() and coach.name.strip() != email_prefix(coach.email))
    progress = {
        'has_profile': has_profile,
        'has_game_model': False,
        'has_training_syllabus': False,
        'has_positional_profiles': False,
        'has_team': False,
    }
    membership = storage.get_membership(coach.id)
    if membership:
        club_id = membership.club_id
        progress['has_game_model'] = bool(storage.get_zones(club_id).zones)
        progress['has_training_syllabus'] = bool(get_syllabus_slots(storage.get_syllabus(club_id)))
        progress['has_positional_profiles'] = bool(storage.get_methodology('profiles', club_id))
        progress['has_team'] = bool(storage.get_club_teams(club_id))
    return progress


@methodology_bp.route('/onboarding', methods=['GET'])
@login_required
def onboarding_progress():
    storage = get_storage()
    coach = storage.get_coach(current_user.id)
    if not coach:
        return error_response('Coach not found', 404)
    progress = get_onboarding_progress(storage, coach)
    return jsonify({
        'success': True,
        'progress': progress,
        'completed_steps': sum(1 for done in progress.values() if done),
        'total_steps': len(progress),
        'onboarding_completed': coach.onboarding_completed,
    })


@methodology_bp.route('/onboarding/complete', methods=['POST'])
@login_required
def complete_onboarding():
    storage = get_storage()
    coach = storage.get_coach(current_user.id)
    if not coach:
        return error_response('Coach not found', 404)
    coach.onboarding_completed = True
    storage.save_coach(coach)
    current_app.logger.info(f"Coach {coach.id} completed onboarding")
    return jsonify({'success': True, 'coach': coach.model_dump(mode='json')})
