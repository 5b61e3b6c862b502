"""
Club, coach, invite, team, player, IDP, rule, facility and report routes
"""

from io import BytesIO
from datetime import datetime, timedelta

from flask import Blueprint, request, jsonify, send_file, current_app
from flask_login import login_required, current_user

from .access import (
    AccessError, get_storage, error_response, get_json_body, require_membership, require_role,
    can_manage, require_team, require_player,
)
from .auth import send_invite_email
from .config import INVITE_EXPIRY_DAYS
from .extensions import limiter
from .models import Club, ClubRole, Team, Player, CoachingRule
from .reports import build_player_report_data, generate_player_report
from .utils import (
    TIMESTAMP_FORMAT, is_valid_email, validate_team_data, validate_player_data, generate_report_filename,
)

bp = Blueprint('main', __name__, url_prefix='/api')

TEAM_FIELDS = ('name', 'age_group', 'gender', 'skill_level', 'player_count', 'session_duration', 'sessions_per_week')
PLAYER_FIELDS = ('name', 'age', 'gender', 'position', 'team_id')


def _dump(items):
    return [item.model_dump(mode='json') for item in items]


def _clean_fields(data, fields):
    """Copy the allowed fields, turning empty strings into None"""
    return {f: (None if data[f] == '' else data[f]) for f in fields if f in data}


# ----------------------------------------------------------------------
# Club
# ----------------------------------------------------------------------

@bp.route('/club', methods=['GET'])
@login_required
def get_club():
    storage = get_storage()
    membership = require_membership(storage)
    club = storage.get_club(membership.club_id)
    if not club:
        return error_response('Club not found', 404)
    return jsonify({
        'success': True,
        'club': club.model_dump(mode='json'),
        'membership': membership.model_dump(mode='json'),
        'teams': _dump(storage.get_club_teams(club.id)),
    })


@bp.route('/clubs', methods=['POST'])
@login_required
def create_club():
    """Create a club; the caller becomes its head coach"""
    storage = get_storage()
    if storage.get_membership(current_user.id):
        return error_response('You are already a member of a club', 409)

    data = get_json_body()
    try:
        Club(name=data.get('name'))
        club = storage.create_club(data['name'].strip(), current_user.id, logo_url=data.get('logo_url'))
        current_app.logger.info(f"Coach {current_user.id} created club {club.id}")
        return jsonify({
            'success': True,
            'club': club.model_dump(mode='json'),
            'membership': storage.get_membership(current_user.id).model_dump(mode='json'),
        }), 201
    except (ValueError, TypeError, KeyError) as e:
        return error_response(str(e), 400)
    except Exception as e:
        current_app.logger.error(f"Error creating club: {e}", exc_info=True)
        return error_response('Failed to create club', 500)


@bp.route('/club', methods=['PUT'])
@login_required
def update_club():
    storage = get_storage()
    membership = require_role(storage, ClubRole.HEAD_COACH)
    club = storage.get_club(membership.club_id)
    if not club:
        return error_response('Club not found', 404)

    data = get_json_body()
    try:
        updated = Club(**{**club.model_dump(), **_clean_fields(data, ('name', 'logo_url'))})
        storage.save_club(updated)
        return jsonify({'success': True, 'club': updated.model_dump(mode='json')})
    except (ValueError, TypeError, KeyError) as e:
        return error_response(str(e), 400)
    except Exception as e:
        current_app.logger.error(f"Error updating club {club.id}: {e}", exc_info=True)
        return error_response('Failed to update club', 500)


@bp.route('/club', methods=['DELETE'])
@login_required
def delete_club():
    storage = get_storage()
    membership = require_role(storage, ClubRole.HEAD_COACH)
    try:
        storage.delete_club(membership.club_id)
        current_app.logger.info(f"Club {membership.club_id} deleted by {current_user.id}")
        return jsonify({'success': True})
    except Exception as e:
        current_app.logger.error(f"Error deleting club {membership.club_id}: {e}", exc_info=True)
        return error_response('Failed to delete club', 500)


# ----------------------------------------------------------------------
# Coaches
# ----------------------------------------------------------------------

@bp.route('/club/coaches', methods=['GET'])
@login_required
def list_coaches():
    storage = get_storage()
    membership = require_membership(storage)
    coaches = []
    for member in storage.get_club_memberships(membership.club_id):
        coach = storage.get_coach(member.coach_id)
        if not coach:
            continue
        coaches.append({
            'coach': coach.model_dump(mode='json'),
            'role': member.role.value,
            'joined_at': member.joined_at,
            'teams': [{'id': t.id, 'name': t.name} for t in storage.get_coach_teams(coach.id)],
        })
    return jsonify({'success': True, 'coaches': coaches})


@bp.route('/club/coaches/<coach_id>/role', methods=['PUT'])
@login_required
def update_coach_role(coach_id):
    storage = get_storage()
    membership = require_role(storage, ClubRole.HEAD_COACH)
    data = get_json_body()
    try:
        role = ClubRole(data.get('role'))
    except ValueError:
        return error_response('Role must be admin or coach', 400)
    if role == ClubRole.HEAD_COACH:
        return error_response('Use transfer to change the head coach', 400)
    if coach_id == current_user.id:
        return error_response('You cannot change your own role', 400)

    target = storage.get_membership(coach_id)
    if not target or target.club_id != membership.club_id:
        return error_response('Coach not found', 404)
    target.role = role
    storage.save_membership(target)
    return jsonify({'success': True, 'membership': target.model_dump(mode='json')})


@bp.route('/club/coaches/<coach_id>', methods=['DELETE'])
@login_required
def remove_coach(coach_id):
    storage = get_storage()
    membership = require_role(storage, ClubRole.HEAD_COACH, ClubRole.ADMIN)
    target = storage.get_membership(coach_id)
    if not target or target.club_id != membership.club_id:
        return error_response('Coach not found', 404)
    if target.role == ClubRole.HEAD_COACH:
        return error_response('The head coach cannot be removed', 400)
    if membership.role == ClubRole.ADMIN and target.role == ClubRole.ADMIN:
        return error_response('Only the head coach can remove an admin', 403)

    storage.remove_membership(membership.club_id, coach_id)
    current_app.logger.info(f"Coach {coach_id} removed from club {membership.club_id}")
    return jsonify({'success': True})


@bp.route('/club/transfer', methods=['POST'])
@login_required
def transfer_head_coach():
    storage = get_storage()
    membership = require_role(storage, ClubRole.HEAD_COACH)
    coach_id = get_json_body().get('coach_id')
    if not coach_id or coach_id == current_user.id:
        return error_response('Choose another coach of the club', 400)
    if not storage.transfer_head_coach(membership.club_id, current_user.id, coach_id):
        return error_response('Coach not found', 404)
    current_app.logger.info(f"Head coach of {membership.club_id} transferred to {coach_id}")
    return jsonify({'success': True})


@bp.route('/profile', methods=['PUT'])
@login_required
def update_profile():
    storage = get_storage()
    coach = storage.get_coach(current_user.id)
    if not coach:
        return error_response('Coach not found', 404)
    data = get_json_body()
    for field in ('name', 'position', 'profile_picture'):
        if field in data:
            value = data[field]
            setattr(coach, field, value.strip() if isinstance(value, str) and value.strip() else None)
    storage.save_coach(coach)
    return jsonify({'success': True, 'coach': coach.model_dump(mode='json')})


# ----------------------------------------------------------------------
# Invites
# ----------------------------------------------------------------------

def _invite_is_open(invite) -> bool:
    return not invite.expires_at or invite.expires_at > datetime.now().strftime(TIMESTAMP_FORMAT)


@bp.route('/invites', methods=['POST'])
@login_required
def create_invite():
    storage = get_storage()
    membership = require_role(storage, ClubRole.HEAD_COACH, ClubRole.ADMIN)
    data = get_json_body()
    email = (data.get('email') or '').strip().lower()
    if not is_valid_email(email):
        return error_response('Invalid email format', 400)

    existing = storage.get_coach_by_email(email)
    if existing and storage.get_membership(existing.id):
        return error_response('This email is already a member of a club', 400)

    try:
        expires_at = (datetime.now() + timedelta(days=INVITE_EXPIRY_DAYS)).strftime(TIMESTAMP_FORMAT)
        invite = storage.create_invite(membership.club_id, current_user.id, email, expires_at=expires_at)
        club = storage.get_club(membership.club_id)
        inviter = storage.get_coach(current_user.id)
        email_sent = send_invite_email(invite, club.name, inviter.name if inviter else None)
        return jsonify({'success': True, 'invite': invite.model_dump(mode='json'), 'email_sent': email_sent}), 201
    except (ValueError, TypeError, KeyError) as e:
        return error_response(str(e), 400)
    except Exception as e:
        current_app.logger.error(f"Error creating invite: {e}", exc_info=True)
        return error_response('Failed to create invite', 500)


@bp.route('/invites', methods=['GET'])
@login_required
def list_invites():
    storage = get_storage()
    membership = require_role(storage, ClubRole.HEAD_COACH, ClubRole.ADMIN)
    return jsonify({'success': True, 'invites': _dump(storage.get_pending_invites(membership.club_id))})


@bp.route('/invites/<invite_id>', methods=['DELETE'])
@login_required
def revoke_invite(invite_id):
    storage = get_storage()
    membership = require_role(storage, ClubRole.HEAD_COACH, ClubRole.ADMIN)
    if not storage.revoke_invite(invite_id, membership.club_id):
        return error_response('Invite not found', 404)
    return jsonify({'success': True})


@bp.route('/invites/validate/<token>', methods=['GET'])
@limiter.limit("30 per minute")
def validate_invite(token):
    """Invite and club details for the invite landing page; no sign-in needed"""
    storage = get_storage()
    invite = storage.get_invite_by_token(token.strip())
    if not invite or not _invite_is_open(invite):
        return error_response('Invalid or expired invite', 404)
    club = storage.get_club(invite.club_id)
    if not club:
        return error_response('Invalid or expired invite', 404)
    return jsonify({
        'success': True,
        'invite': {'id': invite.id, 'email': invite.email, 'used_at': invite.used_at, 'created_at': invite.created_at},
        'club': {'id': club.id, 'name': club.name, 'logo_url': club.logo_url},
    })


@bp.route('/invites/check-email', methods=['POST'])
@limiter.limit("30 per minute")
def check_invite_email():
    storage = get_storage()
    data = get_json_body()
    email = (data.get('email') or '').strip().lower()
    if not email:
        return error_response('Email is required', 400)
    coach = storage.get_coach_by_email(email)
    has_club = bool(coach and storage.get_membership(coach.id))
    matches = None
    if data.get('token'):
        invite = storage.get_invite_by_token(data['token'].strip())
        matches = bool(invite and invite.email == email)
    return jsonify({'success': True, 'has_club': has_club, 'matches_invite': matches})


@bp.route('/invites/redeem', methods=['POST'])
@login_required
def redeem_invite():
    """Join the inviting club as a coach"""
    storage = get_storage()
    token = (get_json_body().get('token') or '').strip()
    invite = storage.get_invite_by_token(token)
    if not invite or not _invite_is_open(invite):
        return error_response('This invite is no longer valid', 400)
    if invite.used_at:
        return error_response('This invite has already been used', 400)
    if invite.email != (current_user.email or '').lower():
        return error_response('Your email does not match the invite', 403)
    if storage.get_membership(current_user.id):
        return error_response('You are already a member of a club', 409)

    try:
        membership = storage.add_membership(invite.club_id, current_user.id, ClubRole.COACH)
        storage.mark_invite_used(invite.id)
        club = storage.get_club(invite.club_id)
        current_app.logger.info(f"Coach {current_user.id} joined club {invite.club_id} by invite")
        return jsonify({
            'success': True,
            'membership': membership.model_dump(mode='json'),
            'club': {'id': club.id, 'name': club.name, 'logo_url': club.logo_url} if club else None,
        })
    except Exception as e:
        current_app.logger.error(f"Error redeeming invite: {e}", exc_info=True)
        return error_response('Failed to join club', 500)


# ----------------------------------------------------------------------
# Teams
# ----------------------------------------------------------------------

@bp.route('/teams', methods=['GET'])
@login_required
def list_teams():
    storage = get_storage()
    membership = require_membership(storage)
    if request.args.get('mine') in ('1', 'true'):
        teams = storage.get_coach_teams(current_user.id)
    else:
        teams = storage.get_club_teams(membership.club_id)
    return jsonify({'success': True, 'teams': _dump(teams)})


@bp.route('/teams', methods=['POST'])
@login_required
def create_team():
    """Create a team, assign the creator and seed it with the club methodology"""
    storage = get_storage()
    membership = require_membership(storage)
    data = get_json_body()
    errors = validate_team_data(data)
    if errors:
        return error_response(errors, 400)

    try:
        team = Team(club_id=membership.club_id, created_by_coach_id=current_user.id,
                    **_clean_fields(data, TEAM_FIELDS))
        storage.save_team(team)
        storage.assign_coach_to_team(team.id, current_user.id)
        copied = storage.copy_club_methodology_to_team(team.id, membership.club_id, current_user.id)
        current_app.logger.info(f"Team {team.id} created with {copied} methodology entries")
        return jsonify({'success': True, 'team': team.model_dump(mode='json')}), 201
    except (ValueError, TypeError, KeyError) as e:
        return error_response(f'Invalid team data: {e}', 400)
    except Exception as e:
        current_app.logger.error(f"Error creating team: {e}", exc_info=True)
        return error_response('Failed to create team', 500)


@bp.route('/teams/<team_id>', methods=['GET'])
@login_required
def get_team(team_id):
    storage = get_storage()
    team, _ = require_team(storage, team_id)
    return jsonify({
        'success': True,
        'team': team.model_dump(mode='json'),
        'coaches': _dump(storage.get_team_coaches(team.id)),
        'players': _dump(storage.get_team_players(team.id)),
    })


@bp.route('/teams/<team_id>', methods=['PUT'])
@login_required
def update_team(team_id):
    storage = get_storage()
    team, _ = require_team(storage, team_id)
    data = get_json_body()
    errors = validate_team_data({**team.model_dump(), **data})
    if errors:
        return error_response(errors, 400)
    try:
        updated = Team(**{**team.model_dump(), **_clean_fields(data, TEAM_FIELDS)})
        storage.save_team(updated)
        return jsonify({'success': True, 'team': updated.model_dump(mode='json')})
    except (ValueError, TypeError, KeyError) as e:
        return error_response(f'Invalid team data: {e}', 400)
    except Exception as e:
        current_app.logger.error(f"Error updating team {team_id}: {e}", exc_info=True)
        return error_response('Failed to update team', 500)


@bp.route('/teams/<team_id>', methods=['DELETE'])
@login_required
def delete_team(team_id):
    storage = get_storage()
    team, membership = require_team(storage, team_id)
    if not can_manage(membership) and team.created_by_coach_id != current_user.id:
        return error_response('You do not have permission to delete this team', 403)
    storage.delete_team(team.id)
    current_app.logger.info(f"Team {team.id} deleted by {current_user.id}")
    return jsonify({'success': True})


@bp.route('/teams/<team_id>/coaches', methods=['POST'])
@login_required
def assign_team_coach(team_id):
    storage = get_storage()
    team, membership = require_team(storage, team_id)
    if not can_manage(membership):
        return error_response('You do not have permission to do this', 403)
    coach_id = get_json_body().get('coach_id')
    target = storage.get_membership(coach_id) if coach_id else None
    if not target or target.club_id != team.club_id:
        return error_response('Coach not found', 404)
    assignment = storage.assign_coach_to_team(team.id, coach_id)
    return jsonify({'success': True, 'assignment': assignment.model_dump(mode='json')})


@bp.route('/teams/<team_id>/coaches/<coach_id>', methods=['DELETE'])
@login_required
def unassign_team_coach(team_id, coach_id):
    storage = get_storage()
    team, membership = require_team(storage, team_id)
    if not can_manage(membership) and coach_id != current_user.id:
        return error_response('You do not have permission to do this', 403)
    if not storage.unassign_coach_from_team(team.id, coach_id):
        return error_response('Coach is not assigned to this team', 404)
    return jsonify({'success': True})


# ----------------------------------------------------------------------
# Players and IDPs
# ----------------------------------------------------------------------

def _check_idp_keys(storage, entries):
    known = set(storage.get_attribute_names())
    unknown = [e.get('attribute_key') for e in entries if e.get('attribute_key') not in known]
    if unknown:
        raise ValueError(f"Unknown attribute: {', '.join(str(k) for k in unknown)}")


@bp.route('/players', methods=['GET'])
@login_required
def list_players():
    storage = get_storage()
    membership = require_membership(storage)
    team_id = request.args.get('team_id')
    if team_id:
        require_team(storage, team_id)
    players = storage.get_players(membership.club_id, team_id)
    idps = storage.get_active_idps_for_players(p.id for p in players)
    return jsonify({
        'success': True,
        'players': [{**p.model_dump(mode='json'), 'idps': _dump(idps.get(p.id, []))} for p in players],
    })


@bp.route('/players', methods=['POST'])
@login_required
def create_player():
    storage = get_storage()
    membership = require_membership(storage)
    data = get_json_body()
    errors = validate_player_data(data)
    if errors:
        return error_response(errors, 400)
    if data.get('team_id'):
        require_team(storage, data['team_id'])

    try:
        player = Player(club_id=membership.club_id, **_clean_fields(data, PLAYER_FIELDS))
        entries = data.get('idps') or []
        _check_idp_keys(storage, entries)
        storage.save_player(player)
        idps = storage.set_player_idps(player.id, entries) if entries else []
        return jsonify({'success': True, 'player': player.model_dump(mode='json'), 'idps': _dump(idps)}), 201
    except (ValueError, TypeError, KeyError) as e:
        return error_response(f'Invalid player data: {e}', 400)
    except Exception as e:
        current_app.logger.error(f"Error creating player: {e}", exc_info=True)
        return error_response('Failed to create player', 500)


@bp.route('/players/<player_id>', methods=['GET'])
@login_required
def get_player(player_id):
    storage = get_storage()
    player, _ = require_player(storage, player_id)
    return jsonify({
        'success': True,
        'player': player.model_dump(mode='json'),
        'idps': _dump(storage.get_player_idps(player.id)),
    })


@bp.route('/players/<player_id>', methods=['PUT'])
@login_required
def update_player(player_id):
    storage = get_storage()
    player, _ = require_player(storage, player_id)
    data = get_json_body()
    errors = validate_player_data({**player.model_dump(), **data})
    if errors:
        return error_response(errors, 400)
    if data.get('team_id'):
        require_team(storage, data['team_id'])

    try:
        updated = Player(**{**player.model_dump(), **_clean_fields(data, PLAYER_FIELDS)})
        if 'idps' in data:
            _check_idp_keys(storage, data['idps'] or [])
        storage.save_player(updated)
        if 'idps' in data:
            storage.set_player_idps(updated.id, data['idps'] or [])
        return jsonify({
            'success': True,
            'player': updated.model_dump(mode='json'),
            'idps': _dump(storage.get_active_idps(updated.id)),
        })
    except (ValueError, TypeError, KeyError) as e:
        return error_response(f'Invalid player data: {e}', 400)
    except Exception as e:
        current_app.logger.error(f"Error updating player {player_id}: {e}", exc_info=True)
        return error_response('Failed to update player', 500)


@bp.route('/players/<player_id>', methods=['DELETE'])
@login_required
def delete_player(player_id):
    storage = get_storage()
    player, _ = require_player(storage, player_id)
    storage.delete_player(player.id)
    return jsonify({'success': True})


@bp.route('/players/<player_id>/idps', methods=['GET'])
@login_required
def list_player_idps(player_id):
    storage = get_storage()
    player, _ = require_player(storage, player_id)
    return jsonify({'success': True, 'idps': _dump(storage.get_player_idps(player.id))})


@bp.route('/players/<player_id>/idps', methods=['PUT'])
@login_required
def set_player_idps(player_id):
    """Replace the active IDP set; dropped attributes are ended, not deleted"""
    storage = get_storage()
    player, _ = require_player(storage, player_id)
    entries = get_json_body().get('idps')
    if entries is None:
        return error_response('IDPs are required', 400)
    errors = validate_player_data({'name': player.name, 'idps': entries})
    if errors:
        return error_response(errors, 400)
    try:
        _check_idp_keys(storage, entries)
        idps = storage.set_player_idps(player.id, entries)
        return jsonify({'success': True, 'idps': _dump(idps)})
    except (ValueError, TypeError, KeyError) as e:
        return error_response(str(e), 400)
    except Exception as e:
        current_app.logger.error(f"Error saving IDPs for {player_id}: {e}", exc_info=True)
        return error_response('Failed to save IDPs', 500)


def _require_idp(storage, idp_id):
    idp = storage.get_idp(idp_id)
    if not idp:
        raise AccessError('IDP not found', 404)
    require_player(storage, idp.player_id)
    return idp


@bp.route('/idps/<idp_id>/end', methods=['POST'])
@login_required
def end_idp(idp_id):
    storage = get_storage()
    idp = _require_idp(storage, idp_id)
    if not storage.end_idp(idp.id):
        return error_response('IDP has already ended', 400)
    return jsonify({'success': True, 'idp': storage.get_idp(idp.id).model_dump(mode='json')})


@bp.route('/idps/<idp_id>', methods=['DELETE'])
@login_required
def delete_idp(idp_id):
    storage = get_storage()
    idp = _require_idp(storage, idp_id)
    storage.delete_idp(idp.id)
    return jsonify({'success': True})


@bp.route('/players/<player_id>/report', methods=['GET'])
@login_required
@limiter.limit("20 per hour")
def player_report(player_id):
    """Player development report as a PDF download"""
    storage = get_storage()
    player, _ = require_player(storage, player_id)
    team_id = request.args.get('team_id') or player.team_id
    if not team_id:
        return error_response('Team ID is required', 400)
    require_team(storage, team_id)

    try:
        data = build_player_report_data(storage, player.id, team_id)
        buffer = BytesIO()
        generate_player_report(data, buffer)
        buffer.seek(0)
        response = send_file(
            buffer,
            mimetype='application/pdf',
            as_attachment=True,
            download_name=generate_report_filename(player.name),
        )
        response.headers['Cache-Control'] = 'no-store'
        return response
    except ValueError as e:
        return error_response(str(e), 404)
    except Exception as e:
        current_app.logger.error(f"Error generating report for {player_id}: {e}", exc_info=True)
        return error_response('Failed to generate report', 500)


# ----------------------------------------------------------------------
# Coaching rules
# ----------------------------------------------------------------------

def _require_rule(storage, rule_id):
    rule = storage.get_rule(rule_id)
    if not rule or rule.coach_id != current_user.id:
        raise AccessError('Rule not found', 404)
    return rule


@bp.route('/rules', methods=['GET'])
@login_required
def list_rules():
    storage = get_storage()
    team_id = request.args.get('team_id')
    result = {'success': True, 'global_rules': _dump(storage.get_global_rules(current_user.id))}
    if team_id:
        require_team(storage, team_id)
        result['team_rules'] = _dump(storage.get_team_rules(current_user.id, team_id))
    return jsonify(result)


@bp.route('/rules', methods=['POST'])
@login_required
def create_rule():
    storage = get_storage()
    data = get_json_body()
    if data.get('team_id'):
        require_team(storage, data['team_id'])
    try:
        rule = CoachingRule(coach_id=current_user.id, team_id=data.get('team_id') or None,
                            content=data.get('content'))
        storage.save_rule(rule)
        return jsonify({'success': True, 'rule': rule.model_dump(mode='json')}), 201
    except (ValueError, TypeError, KeyError) as e:
        return error_response(str(e), 400)


@bp.route('/rules/<rule_id>', methods=['PUT'])
@login_required
def update_rule(rule_id):
    storage = get_storage()
    rule = _require_rule(storage, rule_id)
    data = get_json_body()
    try:
        updated = CoachingRule(**{**rule.model_dump(), **_clean_fields(data, ('content', 'is_active'))})
        storage.save_rule(updated)
        return jsonify({'success': True, 'rule': updated.model_dump(mode='json')})
    except (ValueError, TypeError, KeyError) as e:
        return error_response(str(e), 400)


@bp.route('/rules/<rule_id>/toggle', methods=['POST'])
@login_required
def toggle_rule(rule_id):
    storage = get_storage()
    rule = _require_rule(storage, rule_id)
    rule = storage.toggle_rule(rule.id)
    return jsonify({'success': True, 'rule': rule.model_dump(mode='json')})


@bp.route('/rules/<rule_id>', methods=['DELETE'])
@login_required
def delete_rule(rule_id):
    storage = get_storage()
    rule = _require_rule(storage, rule_id)
    storage.delete_rule(rule.id)
    return jsonify({'success': True})


# ----------------------------------------------------------------------
# Facilities and system defaults
# ----------------------------------------------------------------------

@bp.route('/teams/<team_id>/facilities', methods=['GET'])
@login_required
def get_facilities(team_id):
    storage = get_storage()
    team, _ = require_team(storage, team_id)
    facility = storage.get_team_facilities(team.id)
    return jsonify({'success': True, 'facilities': facility.model_dump(mode='json') if facility else None})


@bp.route('/teams/<team_id>/facilities', methods=['PUT'])
@login_required
def save_facilities(team_id):
    storage = get_storage()
    team, _ = require_team(storage, team_id)
    data = get_json_body()
    try:
        facility = storage.save_team_facilities(
            team.id,
            space_type=data.get('space_type') or None,
            custom_space=data.get('custom_space') or None,
            equipment=data.get('equipment') or [],
            other_factors=data.get('other_factors') or None,
        )
        return jsonify({'success': True, 'facilities': facility.model_dump(mode='json')})
    except (ValueError, TypeError, KeyError) as e:
        return error_response(f'Invalid facilities data: {e}', 400)


@bp.route('/system-defaults', methods=['GET'])
@login_required
def system_defaults():
    storage = get_storage()
    defaults = storage.get_system_defaults(request.args.get('category'))
    return jsonify({'success': True, 'defaults': _dump(defaults)})
