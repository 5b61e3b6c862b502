"""
Team and player analytics endpoints.

Date ranges come from the optional start_date / end_date query parameters
(ISO dates); an end date without a time covers the whole day.
"""

from flask import Blueprint, request, jsonify, current_app
from flask_login import login_required

from . import analytics
from .access import AccessError, get_storage, error_response, require_team, require_player, date_arg, int_arg
from .config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE

analytics_bp = Blueprint('analytics', __name__, url_prefix='/api/analytics')


def _date_range():
    return date_arg('start_date'), date_arg('end_date', end_of_day=True)


@analytics_bp.errorhandler(ValueError)
def handle_value_error(e):
    return error_response(str(e), 400)


# ----------------------------------------------------------------------
# Team
# ----------------------------------------------------------------------

@analytics_bp.route('/teams/<team_id>/summary', methods=['GET'])
@login_required
def team_summary(team_id):
    storage = get_storage()
    team, _ = require_team(storage, team_id)
    start, end = _date_range()
    return jsonify({'success': True, 'summary': analytics.get_team_training_summary(storage, team.id, start, end)})


@analytics_bp.route('/teams/<team_id>/idp-gaps', methods=['GET'])
@login_required
def team_idp_gaps(team_id):
    storage = get_storage()
    team, _ = require_team(storage, team_id)
    start, end = _date_range()
    return jsonify({'success': True, 'gaps': analytics.get_team_idp_gaps(storage, team.id, start, end)})


@analytics_bp.route('/teams/<team_id>/attribute-breakdown', methods=['GET'])
@login_required
def team_attribute_breakdown(team_id):
    storage = get_storage()
    team, _ = require_team(storage, team_id)
    start, end = _date_range()
    return jsonify({
        'success': True,
        'breakdown': analytics.get_team_attribute_breakdown(storage, team.id, start, end),
    })


@analytics_bp.route('/teams/<team_id>/player-matrix', methods=['GET'])
@login_required
def team_player_matrix(team_id):
    storage = get_storage()
    team, _ = require_team(storage, team_id)
    start, end = _date_range()
    return jsonify({'success': True, 'players': analytics.get_team_player_matrix(storage, team.id, start, end)})


@analytics_bp.route('/teams/<team_id>/trend', methods=['GET'])
@login_required
def team_trend(team_id):
    storage = get_storage()
    team, _ = require_team(storage, team_id)
    weeks = int_arg('weeks', 12, maximum=52) or 12
    return jsonify({'success': True, 'trend': analytics.get_team_training_trend(storage, team.id, weeks)})


@analytics_bp.route('/teams/<team_id>/block-usage', methods=['GET'])
@login_required
def team_block_usage(team_id):
    storage = get_storage()
    team, _ = require_team(storage, team_id)
    start, end = _date_range()
    limit = int_arg('limit', 10, maximum=MAX_PAGE_SIZE)
    return jsonify({
        'success': True,
        'blocks': analytics.get_team_session_block_usage(storage, team.id, start, end, limit),
    })


@analytics_bp.route('/teams/<team_id>/block-recommendations', methods=['GET'])
@login_required
def team_block_recommendations(team_id):
    storage = get_storage()
    team, _ = require_team(storage, team_id)
    start, end = _date_range()
    limit = int_arg('limit', 10, maximum=MAX_PAGE_SIZE)
    try:
        recommendations = analytics.get_team_block_recommendations(storage, team.id, start, end, limit)
        return jsonify({'success': True, 'recommendations': recommendations})
    except Exception as e:
        current_app.logger.error(f"Error building block recommendations for {team_id}: {e}", exc_info=True)
        return error_response('Failed to build recommendations', 500)


# ----------------------------------------------------------------------
# Player
# ----------------------------------------------------------------------

@analytics_bp.route('/players/<player_id>/idp-progress', methods=['GET'])
@login_required
def player_idp_progress(player_id):
    storage = get_storage()
    player, _ = require_player(storage, player_id)
    active_only = request.args.get('active_only') in ('1', 'true')
    return jsonify({
        'success': True,
        'idps': analytics.get_player_idp_progress(storage, player.id, active_only=active_only),
    })


@analytics_bp.route('/players/<player_id>/attendance', methods=['GET'])
@login_required
def player_attendance(player_id):
    storage = get_storage()
    player, _ = require_player(storage, player_id)
    start, end = _date_range()
    return jsonify({
        'success': True,
        'attendance': analytics.get_player_attendance_summary(storage, player.id, start, end),
    })


@analytics_bp.route('/players/<player_id>/training-events', methods=['GET'])
@login_required
def player_training_events(player_id):
    storage = get_storage()
    player, _ = require_player(storage, player_id)
    events = analytics.get_player_training_events(storage, player.id, request.args.get('attribute_key') or None)
    return jsonify({'success': True, 'events': events})


@analytics_bp.route('/idps/<idp_id>/sessions', methods=['GET'])
@login_required
def idp_sessions(idp_id):
    storage = get_storage()
    idp = storage.get_idp(idp_id)
    if not idp:
        raise AccessError('IDP not found', 404)
    require_player(storage, idp.player_id)
    return jsonify({'success': True, 'sessions': analytics.get_idp_training_sessions(storage, idp.id)})


@analytics_bp.route('/players/<player_id>/sessions', methods=['GET'])
@login_required
def player_sessions(player_id):
    storage = get_storage()
    player, _ = require_player(storage, player_id)
    limit = int_arg('limit', DEFAULT_PAGE_SIZE, maximum=MAX_PAGE_SIZE)
    offset = int_arg('offset', 0)
    return jsonify({
        'success': True,
        'sessions': analytics.get_player_sessions(storage, player.id, limit, offset),
        'total': analytics.get_player_sessions_count(storage, player.id),
    })


@analytics_bp.route('/players/<player_id>/idp-priorities', methods=['GET'])
@login_required
def player_idp_priorities(player_id):
    storage = get_storage()
    player, _ = require_player(storage, player_id)
    return jsonify({'success': True, 'priorities': analytics.get_player_idp_priorities(storage, player.id)})


@analytics_bp.route('/players/<player_id>/feedback', methods=['GET'])
@login_required
def player_feedback(player_id):
    """Paged feedback notes, filterable by attribute, sentiment and date"""
    storage = get_storage()
    player, _ = require_player(storage, player_id)
    start, end = _date_range()
    filters = {
        'attribute_key': request.args.get('attribute_key') or None,
        'sentiment': request.args.get('sentiment') or None,
        'start_date': start,
        'end_date': end,
    }
    limit = int_arg('limit', DEFAULT_PAGE_SIZE, maximum=MAX_PAGE_SIZE)
    offset = int_arg('offset', 0)
    return jsonify({
        'success': True,
        'notes': analytics.get_player_feedback_insights(storage, player.id, limit=limit, offset=offset, **filters),
        'total': analytics.get_player_feedback_count(storage, player.id, **filters),
    })


@analytics_bp.route('/players/<player_id>/feedback/recent', methods=['GET'])
@login_required
def player_recent_feedback(player_id):
    storage = get_storage()
    player, _ = require_player(storage, player_id)
    limit = int_arg('limit', 5, maximum=MAX_PAGE_SIZE)
    return jsonify({'success': True, 'notes': analytics.get_recent_feedback_notes(storage, player.id, limit)})


@analytics_bp.route('/players/<player_id>/block-recommendations', methods=['GET'])
@login_required
def player_block_recommendations(player_id):
    storage = get_storage()
    player, _ = require_player(storage, player_id)
    limit = int_arg('limit', 5, maximum=MAX_PAGE_SIZE)
    return jsonify({
        'success': True,
        'recommendations': analytics.get_player_block_recommendations(storage, player.id, limit),
    })


@analytics_bp.route('/players/<player_id>/training-balance', methods=['GET'])
@login_required
def player_training_balance(player_id):
    storage = get_storage()
    player, _ = require_player(storage, player_id)
    start, end = _date_range()
    return jsonify({
        'success': True,
        'balance': analytics.get_player_training_balance(storage, player.id, start, end),
    })
