"""
Team and player analytics over sessions, attendance, IDPs and training events.
"""

from .team import (
    get_team_training_summary,
    get_team_idp_gaps,
    get_team_attribute_breakdown,
    get_team_player_matrix,
    get_team_training_trend,
    get_team_session_block_usage,
    get_team_block_recommendations,
)
from .player import (
    get_player_idp_progress,
    get_player_attendance_summary,
    get_player_training_events,
    get_idp_training_sessions,
    get_player_sessions,
    get_player_sessions_count,
    get_player_idp_priorities,
    get_player_feedback_insights,
    get_player_feedback_count,
    get_recent_feedback_notes,
    get_player_block_recommendations,
    get_player_training_balance,
)

__all__ = [
    'get_team_training_summary',
    'get_team_idp_gaps',
    'get_team_attribute_breakdown',
    'get_team_player_matrix',
    'get_team_training_trend',
    'get_team_session_block_usage',
    'get_team_block_recommendations',
    'get_player_idp_progress',
    'get_player_attendance_summary',
    'get_player_training_events',
    'get_idp_training_sessions',
    'get_player_sessions',
    'get_player_sessions_count',
    'get_player_idp_priorities',
    'get_player_feedback_insights',
    'get_player_feedback_count',
    'get_recent_feedback_notes',
    'get_player_block_recommendations',
    'get_player_training_balance',
]
