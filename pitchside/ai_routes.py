"""
AI routes: drill content generation and the session planning chat.
"""

import json

from flask import Blueprint, jsonify, current_app
from flask_login import login_required, current_user

from .access import get_storage, error_response, get_json_body, require_session, require_team
from .ai import AIServiceError, invoke_claude, strip_code_fences
from .ai.prompts import (
    build_description_prompt, build_coaching_points_prompt, build_outcomes_prompt, build_coach_system_prompt,
    build_chat_messages,
)
from .extensions import limiter
from .models import GameModelZones, SessionThemeSnapshot

ai_bp = Blueprint('ai', __name__, url_prefix='/api/ai')

BLOCK_CONTENT_TYPES = ('description', 'coaching_points', 'first_order_outcomes', 'second_order_outcomes')
MAX_OUTCOMES = 3


def _ai_error_response(e: AIServiceError, fallback: str):
    if e.status_code == 401:
        return error_response('Authentication failed. Please check your Bedrock credentials.', 401)
    if e.status_code == 429:
        return error_response('Rate limit exceeded. Please try again in a moment.', 429)
    return error_response(fallback, 500)


def _text(data, key):
    value = data.get(key)
    return value.strip() if isinstance(value, str) else ''


def _valid_attributes(items):
    """Outcome candidates must be {'key', 'name'} objects with an optional category"""
    if not isinstance(items, list) or not items:
        return False
    return all(
        isinstance(a, dict)
        and isinstance(a.get('key'), str) and a['key']
        and isinstance(a.get('name'), str)
        and isinstance(a.get('category') or '', str)
        for a in items
    )


def _parse_outcomes(content, available_attributes):
    """Valid attribute keys from a JSON array answer, at most three"""
    parsed = json.loads(content)
    if not isinstance(parsed, list):
        raise ValueError('Response is not an array')
    valid_keys = {a.get('key') for a in available_attributes}
    return [key for key in parsed if isinstance(key, str) and key in valid_keys][:MAX_OUTCOMES]


@ai_bp.route('/generate-block-content', methods=['POST'])
@login_required
@limiter.limit("30 per minute")
def generate_block_content():
    """Generate a drill description, coaching points or outcome attributes"""
    data = get_json_body()
    content_type = data.get('type')
    title = _text(data, 'title')
    description = _text(data, 'description')
    available_attributes = data.get('available_attributes')

    if not content_type or not title:
        return error_response('Missing required fields: type and title are required', 400)
    if content_type not in BLOCK_CONTENT_TYPES:
        return error_response(f"Invalid type: must be one of {', '.join(BLOCK_CONTENT_TYPES)}", 400)
    if content_type == 'coaching_points' and not description:
        return error_response('Description is required when generating coaching points', 400)
    players = data.get('players')
    if players is not None and not (isinstance(players, list) and all(isinstance(p, dict) for p in players)):
        return error_response('Players must be a list of objects', 400)
    is_outcomes = content_type in ('first_order_outcomes', 'second_order_outcomes')
    if is_outcomes:
        if not description:
            return error_response('Description is required when generating outcomes', 400)
        if not _valid_attributes(available_attributes):
            return error_response('Available attributes are required when generating outcomes', 400)

    try:
        game_model = GameModelZones(**data['game_model']) if data.get('game_model') else None
        session_theme = SessionThemeSnapshot(**data['session_theme']) if data.get('session_theme') else None
    except (ValueError, TypeError) as e:
        return error_response(f'Invalid context: {e}', 400)

    if content_type == 'description':
        system_prompt = build_description_prompt(title, game_model, session_theme)
        user_message = f'Generate a training drill description for: "{title}"'
    elif content_type == 'coaching_points':
        system_prompt = build_coaching_points_prompt(title, description, game_model, session_theme,
                                                     players)
        user_message = f'Generate coaching points for the drill: "{title}"'
    else:
        order_type = 'first' if content_type == 'first_order_outcomes' else 'second'
        system_prompt = build_outcomes_prompt(order_type, title, description, available_attributes)
        user_message = f'Select {order_type}-order outcomes for the drill: "{title}"'

    try:
        answer = invoke_claude([{'role': 'user', 'content': user_message}], system_prompt, model='haiku')
    except AIServiceError as e:
        current_app.logger.error(f"Block content generation failed: {e}", exc_info=True)
        return _ai_error_response(e, 'Failed to generate content')

    content = strip_code_fences(answer)
    result = {'success': True, 'content': content}
    if is_outcomes:
        try:
            outcomes = _parse_outcomes(content, available_attributes)
        except ValueError:
            current_app.logger.warning(f"Failed to parse outcomes response: {content[:200]}")
            return error_response('Failed to parse AI response. Please try again.', 422)
        if not outcomes:
            return error_response('No valid outcomes were generated. Please try again.', 422)
        result['outcomes'] = outcomes

    current_app.logger.info(
        f"Block content generated: type={content_type}, coach={current_user.id}, length={len(content)}"
    )
    return jsonify(result)


@ai_bp.route('/coach', methods=['POST'])
@login_required
@limiter.limit("30 per minute")
def coach_chat():
    """Answer a question about a session plan, or rewrite the plan on request"""
    data = get_json_body()
    session_id = data.get('session_id')
    team_id = data.get('team_id')
    message = (data.get('message') or '').strip()
    if not session_id or not team_id or not message:
        return error_response('Missing required fields', 400)

    storage = get_storage()
    session, _ = require_session(storage, session_id)
    team, _ = require_team(storage, team_id)

    global_rules = [{'content': r.content} for r in storage.get_global_rules(current_user.id) if r.is_active]
    team_rules = [{'content': r.content} for r in storage.get_team_rules(current_user.id, team.id) if r.is_active]
    system_prompt = build_coach_system_prompt(
        {'id': session.id, 'title': session.title, 'date': session.session_date, 'team_id': session.team_id},
        {
            'name': team.name,
            'age_group': team.age_group,
            'skill_level': team.skill_level,
            'player_count': team.player_count,
            'session_duration': team.session_duration,
        },
        global_rules,
        team_rules,
    )
    current_content = data.get('current_content')
    if current_content is None:
        current_content = session.content
    messages = build_chat_messages(data.get('conversation_history'), current_content, message)

    try:
        answer = invoke_claude(messages, system_prompt, model='sonnet')
    except AIServiceError as e:
        current_app.logger.error(f"Coach chat failed: {e}", exc_info=True)
        return _ai_error_response(e, 'Failed to process request')

    try:
        parsed = json.loads(strip_code_fences(answer))
    except ValueError:
        current_app.logger.error(f"Failed to parse coach response: {answer[:200]}")
        return error_response('Invalid AI response format', 500)
    if not isinstance(parsed, dict) or not parsed.get('intent') or not parsed.get('message'):
        return error_response('Missing required fields', 500)

    intent = parsed['intent']
    if intent == 'change' and not parsed.get('updated_session'):
        return error_response('Missing session content for change request', 500)

    result = {'success': True, 'intent': intent, 'message': parsed['message']}
    if intent == 'change':
        result['updatedPlan'] = parsed['updated_session']
    current_app.logger.info(f"Coach chat answered: session={session.id}, intent={intent}")
    return jsonify(result)
