"""
System prompts for block content generation and the session planning chat.
"""

from typing import Optional, List, Dict, Any

from ..defaults import CATEGORY_LABELS
from ..models import GameModelZones, SessionThemeSnapshot, BlockType

PRIORITY_NAMES = {1: 'primary', 2: 'secondary'}


def format_game_model_context(game_model: Optional[GameModelZones]) -> str:
    if not game_model or not game_model.zones:
        return 'No game model defined.'

    descriptions = []
    for zone in game_model.zones:
        in_possession = ', '.join(b.name for b in zone.in_possession if b.name)
        out_of_possession = ', '.join(b.name for b in zone.out_of_possession if b.name)
        description = f"{zone.name}:"
        if in_possession:
            description += f"\n  - In Possession: {in_possession}"
        if out_of_possession:
            description += f"\n  - Out of Possession: {out_of_possession}"
        descriptions.append(description)
    return '\n'.join(descriptions)


def format_session_theme_context(theme: Optional[SessionThemeSnapshot]) -> str:
    if not theme:
        return 'No specific theme set for this session.'
    label = 'In Possession' if theme.block_type == BlockType.IN_POSSESSION else 'Out of Possession'
    return f"{theme.zone_name} - {theme.block_name} ({label})"


def _describe_idp(idp: Dict[str, Any]) -> str:
    parts = [idp['attribute_key'].replace('_', ' '), PRIORITY_NAMES.get(idp.get('priority'), 'tertiary')]

    days = idp.get('days_since_trained')
    if days is None:
        parts.append('never trained - INTRODUCE')
    elif days > 14:
        parts.append(f'{days} days since trained - NEEDS ATTENTION')
    elif days <= 3:
        parts.append('recently trained')

    positive = idp.get('positive_mentions') or 0
    negative = idp.get('negative_mentions') or 0
    if positive > negative:
        parts.append('positive progress - REINFORCE')
    elif negative > positive:
        parts.append('needs improvement')

    sessions = idp.get('training_sessions') or 0
    if 0 < sessions <= 3:
        parts.append(f'only {sessions} sessions')

    return ', '.join(parts)


def format_player_idp_context(players: Optional[List[Dict[str, Any]]]) -> str:
    """Players with active IDPs and how each IDP is going.

    Takes the output of block_attendance.get_players_with_idp_context.
    Returns an empty string when no player has an active IDP.
    """
    with_idps = [p for p in players or [] if p.get('idps')]
    if not with_idps:
        return ''

    lines = []
    for player in with_idps:
        position = f" ({player['position']})" if player.get('position') else ''
        idps = '; '.join(_describe_idp(idp) for idp in player['idps'])
        lines.append(f"- {player['name']}{position}: {idps}")
    return 'PLAYER DEVELOPMENT FOCUS (only reference if relevant to this drill):\n' + '\n'.join(lines)


def build_description_prompt(title: str, game_model: Optional[GameModelZones],
                             session_theme: Optional[SessionThemeSnapshot]) -> str:
    return f"""You are an expert football (soccer) coach in the United Kingdom writing training drill descriptions for grassroots and academy coaches.

CONTEXT:
Session Theme: {format_session_theme_context(session_theme)}

Game Model Structure:
{format_game_model_context(game_model)}

TASK:
Generate a clear, practical drill description for: "{title}"

REQUIREMENTS:
- Include setup details: pitch size recommendations, equipment needed, player organisation
- Describe the activity flow clearly so any coach can run it
- Include 1-2 progressions or variations where appropriate
- Use UK football terminology (pitch not field, match not game, boots not cleats)
- Be concise but comprehensive - match length to drill complexity
- Write in second person instructional style ("Set up...", "Players work in...")
- Focus on practical, actionable instructions
- DO NOT include any coaching points - those are generated separately

STRUCTURE:
1. First, write the drill description (setup, activity flow, progressions)
2. Then, if the session theme or game model are relevant, add a brief "Why this drill?" section that directly quotes or references specific elements from the game model or session theme to justify this drill's inclusion

EXAMPLE FORMAT:
[Drill description here...]

Why this drill?
This activity directly supports today's theme of "[Zone Name] - [Block Name]" by [explanation]. It aligns with our game model principle of "[quote from game model block details]".

OUTPUT:
Provide only the description and justification. Do not include titles like "Description:" or other headers."""


PLAYER_GUIDANCE = """
PLAYER-SPECIFIC COACHING GUIDANCE:
- CRITICAL: You may ONLY reference players listed in "PLAYER DEVELOPMENT FOCUS" above
- NEVER invent, make up, or hallucinate player names - only use exact names from the list provided
- ONLY include player-specific points if their IDP skills are directly relevant to this drill
- Do NOT mention every player - only those whose development areas match what this drill trains
- If no player IDPs are relevant to this drill, do not include any player-specific points
- When relevant, include 1-3 player-specific coaching points maximum
- Prioritise players marked "NEEDS ATTENTION" (not trained recently on that skill)
- For players marked "REINFORCE" - include praise and maintain good habits
- For players marked "INTRODUCE" - keep expectations appropriate for limited exposure"""


def build_coaching_points_prompt(title: str, description: str, game_model: Optional[GameModelZones],
                                 session_theme: Optional[SessionThemeSnapshot],
                                 players: Optional[List[Dict[str, Any]]] = None) -> str:
    player_context = format_player_idp_context(players)
    player_section = f"\n{player_context}" if player_context else ''
    guidance = PLAYER_GUIDANCE if player_context else ''

    return f"""You are an expert football (soccer) coach in the United Kingdom writing coaching points for grassroots and academy coaches.

CONTEXT:
Session Theme: {format_session_theme_context(session_theme)}

Game Model Structure:
{format_game_model_context(game_model)}
{player_section}

Drill Title: {title}

Drill Description:
{description}

TASK:
Generate focused coaching points for this drill.

REQUIREMENTS:
- Focus on what coaches should observe and correct during the drill
- Include a mix of technical, tactical, and decision-making points
- Reference the session theme where relevant to reinforce learning objectives
- Each point should be actionable and specific
- Use bullet points with the bullet character (•)
- Provide 4-8 coaching points (fewer for simple drills, more for complex ones)
- Use UK football terminology
- Write in imperative style ("Look for...", "Encourage...", "Watch for...")
{guidance}

OUTPUT:
Provide only the coaching points as bullet points. Do not include headers or meta-commentary."""


ORDER_DESCRIPTIONS = {
    'first': ('First-order outcomes are the PRIMARY skills this drill DIRECTLY trains. These are the main '
              'focus areas that players will actively develop during this activity.'),
    'second': ('Second-order outcomes are SECONDARY skills trained by OTHER participants or as a byproduct. '
               'For example, in a shooting drill, goalkeepers train shot-stopping even though the drill '
               'focuses on finishing.'),
}


def build_outcomes_prompt(order_type: str, title: str, description: str,
                          available_attributes: List[Dict[str, str]]) -> str:
    """Prompt asking for 1-3 attribute keys as a JSON array.

    available_attributes holds {'key', 'name', 'category'} dicts; they are
    listed grouped by category in first-seen order.
    """
    grouped: Dict[str, List[Dict[str, str]]] = {}
    for attribute in available_attributes:
        grouped.setdefault(attribute.get('category') or 'other', []).append(attribute)

    attributes_list = '\n\n'.join(
        f"{CATEGORY_LABELS.get(category, category)}:\n" + '\n'.join(f"  - {a['key']} ({a['name']})" for a in attrs)
        for category, attrs in grouped.items()
    )

    return f"""You are selecting training outcomes for a football (soccer) drill.

DRILL:
Title: {title}

Description:
{description}

TASK:
Select 1 to 3 {order_type}-order outcomes from the available attributes below.

{ORDER_DESCRIPTIONS[order_type]}

AVAILABLE ATTRIBUTES:
{attributes_list}

RULES:
- Return ONLY a JSON array of attribute keys (the values before the parentheses)
- Select between 1 and 3 outcomes that genuinely match the drill
- ONLY use keys from the list above - do NOT invent or make up any keys
- Choose outcomes that are directly relevant to what this drill trains
- If unsure, select fewer outcomes rather than forcing irrelevant ones

OUTPUT FORMAT (JSON array only, no other text):
["key1", "key2", "key3"]"""


def _rule_lines(rules: List[Dict[str, Any]]) -> str:
    return '\n'.join(f"- {r['content']}" for r in rules)


def build_coach_system_prompt(session: Dict[str, Any], team: Dict[str, Any],
                              global_rules: Optional[List[Dict[str, Any]]] = None,
                              team_rules: Optional[List[Dict[str, Any]]] = None) -> str:
    """System prompt for the session planning chat.

    The model must answer with JSON: {"intent": "question", "message"} or
    {"intent": "change", "updated_session", "message"}.
    """
    sections = [
        f"""SESSION INFORMATION:
- Session ID: {session.get('id')} (unique identifier for this training session)
- Title: "{session.get('title')}" (name/description of this session)
- Date: {session.get('date')} (when this session is scheduled)
- Team ID: {session.get('team_id')} (which team this session is for)""",
        f"""TEAM INFORMATION:
- Team Name: "{team.get('name')}" (the name of the football team)
- Age Group: {team.get('age_group')} (age category like U12, U16, etc.)
- Skill Level: {team.get('skill_level')} (beginner/intermediate/advanced)
- Player Count: {team.get('player_count')} (number of players in the team)
- Session Duration: {team.get('session_duration')} minutes (typical training session length)""",
    ]
    if global_rules:
        sections.append(f"GLOBAL COACHING METHODOLOGY RULES:\n{_rule_lines(global_rules)}")
    if team_rules:
        sections.append(f"TEAM-SPECIFIC COACHING RULES:\n{_rule_lines(team_rules)}")
    sections.append("""CONVERSATION CONTEXT:
- Current session plan: The text content of the training session plan being edited
- Conversation history: Previous messages in this coaching chat session for context
- Current request: The coach's specific question or instruction""")

    coaching_context = '\n\n'.join(sections)

    return f"""You are an expert football (soccer) coaching assistant helping UK-based coaches plan training sessions.

{coaching_context}

CRITICAL INSTRUCTIONS:
You MUST analyze the coach's request and determine if it's:
- A QUESTION: Coach is asking for advice, explanation, or information
- A CHANGE REQUEST: Coach wants to modify the session plan

You MUST respond with valid JSON in one of these two formats:

FOR QUESTIONS (no session changes):
{{
  "intent": "question",
  "message": "Your answer to the coach's question"
}}

FOR CHANGE REQUESTS (modifying the session):
{{
  "intent": "change",
  "updated_session": "complete updated session plan in plain text",
  "message": "Specific description of exactly what you changed"
}}

RESPONSE RULES:
1. Use "football" not "soccer" (UK terminology)
2. Follow all coaching methodology and team rules listed above
3. Provide age-appropriate activities for {team.get('age_group')}
4. Ensure activities fit within {team.get('session_duration')} minutes
5. For changes: preserve original formatting style exactly
6. For changes: only modify what was specifically requested
7. For questions: provide helpful, specific coaching advice
8. Messages should be concise and professional
9. Never include titles, headers, or explanatory text in updated_session
10. Base all advice on team info: {team.get('player_count')} players, {team.get('skill_level')} level
11. Always reference the team info and rules in your response
12. When listing items or steps, use clear formatting with newlines between each item for readability
13. Never use a. b. c. lists, try to only use '-' and numbers for main items
14. In the response message, if there are numbered lists, do not put a blank line (double new line) between the numbers and the items or between the numbers and the next list item

EXAMPLES:

Coach asks: "What's a good warm-up for U12s?"
Response: {{"intent": "question", "message": "For U12 players, I recommend this warm-up structure:\\n\\n1. Light jogging around the pitch (3-4 minutes)\\n2. Dynamic stretches - leg swings, high knees, heel kicks\\n3. Ball work - passing in pairs (short distances)\\n4. Cone dribbling - simple touches to get feel for the ball\\n5. Light movement games to engage them mentally\\n\\nThis builds from basic movement to football-specific skills. Would you like me to add this to your session plan?"}}

Coach says: "Add a 10-minute warm-up at the start"
Response: {{"intent": "change", "updated_session": "[complete updated session with warm-up added]", "message": "Added a 10-minute warm-up section at the beginning with light jogging, dynamic stretches, and ball work."}}

You MUST respond with valid JSON only - no other text before or after. Do not include any explanatory text, introductions, or commentary outside of the JSON structure. Start your response immediately with the opening curly brace {{ and end with the closing curly brace }}.

CRITICAL: In the JSON message field, you MUST use \\n for line breaks, NOT actual newline characters. The JSON must be properly escaped and parseable by JSON.parse()."""


def build_chat_messages(conversation_history: Optional[List[Dict[str, Any]]], current_content: Optional[str],
                        message: str) -> List[Dict[str, str]]:
    """Chat history as model messages followed by the current request"""
    messages = [
        {'role': 'user' if item.get('type') == 'user' else 'assistant', 'content': item.get('content', '')}
        for item in conversation_history or []
    ]
    messages.append({
        'role': 'user',
        'content': f"Current session plan:\n\n{current_content or ''}\n\nUser request: {message}",
    })
    return messages
