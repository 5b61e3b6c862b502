"""
Session planning routes: sessions, their blocks and simultaneous-practice
groups, block participation, attendance and post-session feedback.
"""

from flask import Blueprint, request, jsonify, current_app
from flask_login import login_required, current_user

from .access import (
    AccessError, get_storage, error_response, get_json_body, require_membership, require_team, require_session,
    require_assignment, int_arg,
)
from .block_attendance import (
    toggle_player_inclusion, set_block_exclusions, get_exclusion_count, get_block_players,
    get_players_with_idp_context,
)
from .blocks import (
    get_blocks_for_picker, is_block_visible, assign_block_to_session, create_and_assign_block,
    edit_block_with_copy_on_write, add_simultaneous_practice, remove_from_group, update_assignment_positions,
    update_group_positions, sync_group_duration, get_session_blocks, EDITABLE_BLOCK_FIELDS,
)
from .feedback import load_feedback_modal_data, save_all_feedback
from .models import Session, SessionBlock, SessionBlockAttribute, AttendanceStatus, AttributeSource
from .syllabus import suggest_next_session, slot_to_session_fields
from .utils import validate_session_data

session_bp = Blueprint('sessions', __name__, url_prefix='/api')

SESSION_FIELDS = (
    'title', 'content', 'session_date', 'duration', 'age_group', 'skill_level', 'player_count', 'notes',
    'syllabus_week_index', 'syllabus_day_of_week', 'theme_block_id', 'theme_snapshot',
)


def _session_payload(storage, session):
    data = session.model_dump(mode='json')
    data['blocks'] = get_session_blocks(storage, session.id)
    data['has_feedback'] = storage.get_session_feedback(session.id) is not None
    return data


def _parse_attributes(storage, items):
    known = storage.get_attribute_names()
    attributes = []
    for item in items or []:
        if not isinstance(item, dict):
            raise ValueError('Each attribute must be an object')
        if item.get('attribute_key') not in known:
            raise ValueError(f"Unknown attribute: {item.get('attribute_key')}")
        attributes.append(SessionBlockAttribute(
            block_id='pending',
            attribute_key=item['attribute_key'],
            relevance=float(item.get('relevance', 1.0)),
            order_type=item.get('order_type') or 'first',
            source=item.get('source') or AttributeSource.COACH,
        ))
    return attributes


def _require_own_block(storage, block_id):
    block = storage.get_block(block_id)
    if not block:
        raise AccessError('Block not found', 404)
    if block.creator_id != current_user.id:
        raise AccessError('Only the creator can change this block', 403)
    return block


def _require_visible_block(storage, block_id, membership):
    block = storage.get_block(block_id) if isinstance(block_id, str) else None
    if not block or not is_block_visible(block, current_user.id, membership.club_id):
        raise AccessError('Block not found', 404)
    return block


# ----------------------------------------------------------------------
# Sessions
# ----------------------------------------------------------------------

@session_bp.route('/sessions', methods=['GET'])
@login_required
def list_sessions():
    storage = get_storage()
    require_membership(storage)
    team_id = request.args.get('team_id')
    if team_id:
        team, _ = require_team(storage, team_id)
        sessions = storage.get_team_sessions(team.id)
    else:
        sessions = storage.get_sessions(current_user.id)
    feedback = storage.get_feedback_for_sessions(s.id for s in sessions)
    return jsonify({
        'success': True,
        'sessions': [{**s.model_dump(mode='json'), 'has_feedback': s.id in feedback} for s in sessions],
    })


@session_bp.route('/sessions', methods=['POST'])
@login_required
def create_session():
    """Plan a session; unset details are taken from the team"""
    storage = get_storage()
    data = get_json_body()
    if not data.get('team_id'):
        return error_response('Team ID is required', 400)
    team, membership = require_team(storage, data['team_id'])
    errors = validate_session_data(data)
    if errors:
        return error_response(errors, 400)

    try:
        fields = {f: data[f] for f in SESSION_FIELDS if data.get(f) not in (None, '')}
        fields.setdefault('duration', team.session_duration or 60)
        fields.setdefault('age_group', team.age_group)
        fields.setdefault('skill_level', team.skill_level)
        fields.setdefault('player_count', team.player_count)
        session = Session(club_id=membership.club_id, team_id=team.id, coach_id=current_user.id, **fields)
        storage.save_session(session)
        current_app.logger.info(f"Session {session.id} created for team {team.id}")
        return jsonify({'success': True, 'session': _session_payload(storage, session)}), 201
    except (ValueError, TypeError, KeyError) as e:
        return error_response(f'Invalid session data: {e}', 400)
    except Exception as e:
        current_app.logger.error(f"Error creating session: {e}", exc_info=True)
        return error_response('Failed to create session', 500)


@session_bp.route('/sessions/<session_id>', methods=['GET'])
@login_required
def get_session(session_id):
    storage = get_storage()
    session, _ = require_session(storage, session_id)
    return jsonify({'success': True, 'session': _session_payload(storage, session)})


@session_bp.route('/sessions/<session_id>', methods=['PUT'])
@login_required
def update_session(session_id):
    storage = get_storage()
    session, _ = require_session(storage, session_id)
    data = get_json_body()
    errors = validate_session_data({**session.model_dump(), **data})
    if errors:
        return error_response(errors, 400)

    try:
        changes = {f: data[f] for f in SESSION_FIELDS if f in data}
        updated = Session(**{**session.model_dump(), **changes})
        storage.save_session(updated)
        return jsonify({'success': True, 'session': _session_payload(storage, updated)})
    except (ValueError, TypeError, KeyError) as e:
        return error_response(f'Invalid session data: {e}', 400)
    except Exception as e:
        current_app.logger.error(f"Error updating session {session_id}: {e}", exc_info=True)
        return error_response('Failed to update session', 500)


@session_bp.route('/sessions/<session_id>', methods=['DELETE'])
@login_required
def delete_session(session_id):
    storage = get_storage()
    session, _ = require_session(storage, session_id)
    try:
        storage.delete_session(session.id)
        current_app.logger.info(f"Session {session.id} deleted by {current_user.id}")
        return jsonify({'success': True})
    except Exception as e:
        current_app.logger.error(f"Error deleting session {session_id}: {e}", exc_info=True)
        return error_response('Failed to delete session', 500)


@session_bp.route('/teams/<team_id>/sessions/upcoming', methods=['GET'])
@login_required
def upcoming_sessions(team_id):
    storage = get_storage()
    team, _ = require_team(storage, team_id)
    sessions = storage.get_upcoming_sessions(team.id, limit=int_arg('limit', 10, maximum=50))
    return jsonify({'success': True, 'sessions': [s.model_dump(mode='json') for s in sessions]})


@session_bp.route('/teams/<team_id>/sessions/suggested', methods=['GET'])
@login_required
def suggested_session(team_id):
    """Next syllabus slot with a suggested date, ready to prefill a new session"""
    storage = get_storage()
    team, _ = require_team(storage, team_id)
    suggestion = suggest_next_session(storage, team)
    if suggestion is None:
        return jsonify({'success': True, 'suggestion': None})

    slot = suggestion['slot']
    return jsonify({
        'success': True,
        'suggestion': {
            'title': suggestion['title'],
            'session_date': suggestion['suggested_date'],
            'slot_index': suggestion['slot_index'],
            'total_slots': len(suggestion['slots']),
            'session_fields': {
                k: (v.model_dump(mode='json') if hasattr(v, 'model_dump') else v)
                for k, v in slot_to_session_fields(slot).items()
            },
        },
    })


# ----------------------------------------------------------------------
# Blocks
# ----------------------------------------------------------------------

@session_bp.route('/blocks', methods=['GET'])
@login_required
def list_blocks():
    """Blocks for the picker: the coach's own, the club's and the defaults"""
    storage = get_storage()
    membership = require_membership(storage)
    picker = get_blocks_for_picker(storage, current_user.id, membership.club_id)
    return jsonify({
        'success': True,
        **{group: [b.model_dump(mode='json') for b in blocks] for group, blocks in picker.items()},
    })


@session_bp.route('/sessions/<session_id>/blocks', methods=['GET'])
@login_required
def list_session_blocks(session_id):
    storage = get_storage()
    session, _ = require_session(storage, session_id)
    return jsonify({'success': True, 'blocks': get_session_blocks(storage, session.id)})


@session_bp.route('/sessions/<session_id>/blocks', methods=['POST'])
@login_required
def create_session_block(session_id):
    """Create a new block and place it in the session"""
    storage = get_storage()
    session, membership = require_session(storage, session_id)
    data = get_json_body()
    try:
        fields = {f: data[f] for f in EDITABLE_BLOCK_FIELDS if f in data}
        block = SessionBlock(creator_id=current_user.id, club_id=membership.club_id, **fields)
        attributes = _parse_attributes(storage, data.get('attributes'))
        block, assignment = create_and_assign_block(
            storage, block, session.id, position=data.get('position'),
            slot_index=int(data.get('slot_index') or 0), attributes=attributes,
        )
        return jsonify({
            'success': True,
            'block': block.model_dump(mode='json'),
            'assignment': assignment.model_dump(mode='json'),
        }), 201
    except (ValueError, TypeError, KeyError) as e:
        return error_response(str(e), 400)
    except Exception as e:
        current_app.logger.error(f"Error creating block for session {session_id}: {e}", exc_info=True)
        return error_response('Failed to create block', 500)


@session_bp.route('/sessions/<session_id>/assignments', methods=['POST'])
@login_required
def assign_block(session_id):
    storage = get_storage()
    session, membership = require_session(storage, session_id)
    data = get_json_body()
    if not data.get('block_id'):
        return error_response('Block ID is required', 400)
    block = _require_visible_block(storage, data['block_id'], membership)
    try:
        assignment = assign_block_to_session(storage, session.id, block.id, position=data.get('position'))
        return jsonify({'success': True, 'assignment': assignment.model_dump(mode='json')}), 201
    except (ValueError, TypeError, KeyError) as e:
        return error_response(str(e), 400)


@session_bp.route('/assignments/<assignment_id>', methods=['DELETE'])
@login_required
def remove_assignment(assignment_id):
    storage = get_storage()
    assignment, _ = require_assignment(storage, assignment_id)
    remove_from_group(storage, assignment.id)
    return jsonify({'success': True})


@session_bp.route('/blocks/<block_id>', methods=['PUT'])
@login_required
def update_block(block_id):
    """Edit a block; non-creators edit a private copy for their session"""
    storage = get_storage()
    membership = require_membership(storage)
    data = get_json_body()
    assignment_id = data.get('assignment_id')
    _require_visible_block(storage, block_id, membership)
    if assignment_id:
        require_assignment(storage, assignment_id)
    updates = data.get('updates') or {}
    if not isinstance(updates, dict):
        return error_response('Updates must be an object', 400)

    try:
        result = edit_block_with_copy_on_write(
            storage, block_id, assignment_id, current_user.id, membership.club_id, updates,
        )
        if 'attributes' in data:
            storage.save_block_attributes(result['block'].id, _parse_attributes(storage, data['attributes']))
        return jsonify({
            'success': True,
            'block': result['block'].model_dump(mode='json'),
            'copied': result['copied'],
            'assignment': result['assignment'].model_dump(mode='json') if result['assignment'] else None,
        })
    except (ValueError, TypeError, KeyError) as e:
        return error_response(str(e), 400)
    except Exception as e:
        current_app.logger.error(f"Error updating block {block_id}: {e}", exc_info=True)
        return error_response('Failed to update block', 500)


@session_bp.route('/blocks/<block_id>', methods=['DELETE'])
@login_required
def delete_block(block_id):
    storage = get_storage()
    block = _require_own_block(storage, block_id)
    storage.delete_block(block.id)
    return jsonify({'success': True})


@session_bp.route('/blocks/<block_id>/attributes', methods=['GET'])
@login_required
def get_block_attributes(block_id):
    storage = get_storage()
    block = _require_visible_block(storage, block_id, require_membership(storage))
    attributes = storage.get_block_attributes(block.id)
    return jsonify({'success': True, 'attributes': [a.model_dump(mode='json') for a in attributes]})


@session_bp.route('/blocks/<block_id>/attributes', methods=['PUT'])
@login_required
def save_block_attributes(block_id):
    storage = get_storage()
    block = _require_own_block(storage, block_id)
    try:
        attributes = _parse_attributes(storage, get_json_body().get('attributes'))
        saved = storage.save_block_attributes(block.id, attributes)
        return jsonify({'success': True, 'attributes': [a.model_dump(mode='json') for a in saved]})
    except (ValueError, TypeError, KeyError) as e:
        return error_response(str(e), 400)


@session_bp.route('/sessions/<session_id>/assignments/positions', methods=['PUT'])
@login_required
def update_positions(session_id):
    storage = get_storage()
    session, _ = require_session(storage, session_id)
    updates = get_json_body().get('updates')
    if not isinstance(updates, list):
        return error_response('Updates must be a list', 400)
    try:
        assignments = update_assignment_positions(storage, session.id, updates)
        return jsonify({'success': True, 'assignments': [a.model_dump(mode='json') for a in assignments]})
    except (ValueError, TypeError, KeyError) as e:
        return error_response(str(e), 400)


@session_bp.route('/sessions/<session_id>/groups', methods=['PUT'])
@login_required
def reorder_groups(session_id):
    storage = get_storage()
    session, _ = require_session(storage, session_id)
    positions = get_json_body().get('positions')
    if not isinstance(positions, list):
        return error_response('Positions must be a list', 400)
    try:
        assignments = update_group_positions(storage, session.id, [int(p) for p in positions])
        return jsonify({'success': True, 'assignments': [a.model_dump(mode='json') for a in assignments]})
    except (ValueError, TypeError, KeyError) as e:
        return error_response(str(e), 400)


@session_bp.route('/sessions/<session_id>/simultaneous', methods=['POST'])
@login_required
def add_simultaneous(session_id):
    """Run a second block alongside the block at a position"""
    storage = get_storage()
    session, membership = require_session(storage, session_id)
    data = get_json_body()
    if not data.get('block_id') or data.get('position') is None:
        return error_response('Block ID and position are required', 400)
    block = _require_visible_block(storage, data['block_id'], membership)
    try:
        assignment = add_simultaneous_practice(storage, session.id, block.id, int(data['position']))
        return jsonify({'success': True, 'assignment': assignment.model_dump(mode='json')}), 201
    except (ValueError, TypeError, KeyError) as e:
        return error_response(str(e), 400)


@session_bp.route('/sessions/<session_id>/groups/<int:position>/duration', methods=['PUT'])
@login_required
def sync_duration(session_id, position):
    storage = get_storage()
    session, _ = require_session(storage, session_id)
    try:
        duration = int(get_json_body()['duration'])
        blocks = sync_group_duration(storage, session.id, position, duration)
        return jsonify({'success': True, 'blocks': [b.model_dump(mode='json') for b in blocks]})
    except (ValueError, TypeError, KeyError) as e:
        return error_response(f'Invalid duration: {e}', 400)


# ----------------------------------------------------------------------
# Block participation
# ----------------------------------------------------------------------

@session_bp.route('/assignments/<assignment_id>/players', methods=['GET'])
@login_required
def block_players(assignment_id):
    storage = get_storage()
    assignment, session = require_assignment(storage, assignment_id)
    return jsonify({
        'success': True,
        'players': get_block_players(storage, assignment.id, session.team_id),
        'excluded_count': get_exclusion_count(storage, assignment.id),
    })


@session_bp.route('/assignments/<assignment_id>/players/<player_id>/toggle', methods=['POST'])
@login_required
def toggle_block_player(assignment_id, player_id):
    storage = get_storage()
    assignment, session = require_assignment(storage, assignment_id)
    player = storage.get_player(player_id)
    if not player or player.team_id != session.team_id:
        return error_response('Player not found', 404)
    included = toggle_player_inclusion(storage, assignment.id, player.id)
    return jsonify({'success': True, 'included': included})


@session_bp.route('/assignments/<assignment_id>/exclusions', methods=['PUT'])
@login_required
def set_exclusions(assignment_id):
    storage = get_storage()
    assignment, session = require_assignment(storage, assignment_id)
    player_ids = get_json_body().get('player_ids')
    if not isinstance(player_ids, list):
        return error_response('Player IDs must be a list', 400)
    team_player_ids = {p.id for p in storage.get_team_players(session.team_id)}
    unknown = [pid for pid in player_ids if pid not in team_player_ids]
    if unknown:
        return error_response(f"Players not in this team: {', '.join(map(str, unknown))}", 400)
    excluded = set_block_exclusions(storage, assignment.id, player_ids)
    return jsonify({'success': True, 'excluded_player_ids': excluded})


@session_bp.route('/teams/<team_id>/players/idp-context', methods=['GET'])
@login_required
def players_idp_context(team_id):
    storage = get_storage()
    team, _ = require_team(storage, team_id)
    return jsonify({'success': True, 'players': get_players_with_idp_context(storage, team.id)})


# ----------------------------------------------------------------------
# Attendance
# ----------------------------------------------------------------------

def _require_team_player(storage, session, player_id):
    player = storage.get_player(player_id)
    if not player or player.team_id != session.team_id:
        raise AccessError('Player not found', 404)
    return player


@session_bp.route('/sessions/<session_id>/attendance', methods=['GET'])
@login_required
def get_attendance(session_id):
    storage = get_storage()
    session, _ = require_session(storage, session_id)
    records = storage.get_session_attendance(session.id)
    return jsonify({'success': True, 'attendance': [a.model_dump(mode='json') for a in records]})


@session_bp.route('/sessions/<session_id>/attendance/init', methods=['POST'])
@login_required
def init_attendance(session_id):
    """Mark every team player without a record as present"""
    storage = get_storage()
    session, _ = require_session(storage, session_id)
    records = storage.initialize_attendance(session.id, [p.id for p in storage.get_team_players(session.team_id)])
    return jsonify({'success': True, 'attendance': [a.model_dump(mode='json') for a in records]})


@session_bp.route('/sessions/<session_id>/attendance/<player_id>', methods=['PUT'])
@login_required
def mark_attendance(session_id, player_id):
    storage = get_storage()
    session, _ = require_session(storage, session_id)
    player = _require_team_player(storage, session, player_id)
    data = get_json_body()
    try:
        status = AttendanceStatus(data.get('status'))
    except ValueError:
        return error_response('Status must be present or absent', 400)
    record = storage.mark_attendance(session.id, player.id, status, data.get('notes'))
    return jsonify({'success': True, 'attendance': record.model_dump(mode='json')})


@session_bp.route('/sessions/<session_id>/attendance/<player_id>/notes', methods=['PUT'])
@login_required
def attendance_notes(session_id, player_id):
    storage = get_storage()
    session, _ = require_session(storage, session_id)
    player = _require_team_player(storage, session, player_id)
    notes = (get_json_body().get('notes') or '').strip() or None
    if not storage.update_attendance_notes(session.id, player.id, notes):
        return error_response('Attendance not recorded for this player', 404)
    return jsonify({'success': True})


@session_bp.route('/sessions/<session_id>/attendance/<player_id>', methods=['DELETE'])
@login_required
def delete_attendance(session_id, player_id):
    storage = get_storage()
    session, _ = require_session(storage, session_id)
    if not storage.delete_attendance(session.id, player_id):
        return error_response('Attendance not recorded for this player', 404)
    return jsonify({'success': True})


# ----------------------------------------------------------------------
# Feedback
# ----------------------------------------------------------------------

@session_bp.route('/sessions/<session_id>/feedback', methods=['GET'])
@login_required
def get_feedback(session_id):
    storage = get_storage()
    session, _ = require_session(storage, session_id)
    return jsonify({'success': True, **load_feedback_modal_data(storage, session)})


@session_bp.route('/sessions/<session_id>/feedback', methods=['POST'])
@login_required
def save_feedback(session_id):
    """Save team feedback, attendance and player notes; rebuilds training events"""
    storage = get_storage()
    session, _ = require_session(storage, session_id)
    data = get_json_body()
    player_feedback = data.get('player_feedback') or []
    if not isinstance(player_feedback, list):
        return error_response('Player feedback must be a list', 400)

    try:
        result = save_all_feedback(
            storage, session, current_user.id,
            team_feedback=data.get('team_feedback'),
            player_feedback=player_feedback,
            overall_rating=data.get('overall_rating'),
            transcript=data.get('transcript'),
            audio_url=data.get('audio_url'),
        )
        return jsonify({
            'success': True,
            'feedback': result['feedback'].model_dump(mode='json'),
            'notes_saved': result['notes_saved'],
            'training_events': result['training_events'],
        })
    except (ValueError, TypeError, KeyError) as e:
        return error_response(str(e), 400)
    except Exception as e:
        current_app.logger.error(f"Error saving feedback for session {session_id}: {e}", exc_info=True)
        return error_response('Failed to save feedback', 500)
