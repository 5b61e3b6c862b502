"""
Formatting helpers shared by the analytics endpoints and the player report.
"""

from datetime import datetime
from typing import Optional, List, Dict, Any

from ..utils import parse_optional_datetime, days_between, format_minutes_display

RED = '#ef4444'
AMBER = '#f59e0b'
GREEN = '#22c55e'
GREY = '#6b7280'


def format_training_time(minutes: int) -> str:
    return format_minutes_display(minutes)


def get_gap_status_color(status: str) -> str:
    return {'urgent': RED, 'due': AMBER, 'on_track': GREEN}.get(status, GREY)


def get_gap_status_label(status: str) -> str:
    return {
        'urgent': 'Needs Attention',
        'due': 'Recommended Soon',
        'on_track': 'Recently Trained',
    }.get(status, status)


def format_sessions_ago(sessions_since: int, total_sessions: int) -> Dict[str, Any]:
    """Pieces of the "Last trained N sessions ago" label"""
    if total_sessions == 0:
        return {'prefix': '', 'count': None, 'suffix': 'No sessions in selected period'}
    if sessions_since >= total_sessions:
        return {'prefix': '', 'count': None, 'suffix': 'Never in selected period'}
    if sessions_since == 0:
        return {'prefix': 'Last trained', 'count': None, 'suffix': 'last session'}
    return {
        'prefix': 'Last trained',
        'count': sessions_since,
        'suffix': 'session ago' if sessions_since == 1 else 'sessions ago',
    }


def format_time_ago(value: Optional[str], now: Optional[datetime] = None) -> str:
    """Relative time such as Yesterday or 3 weeks ago"""
    then = parse_optional_datetime(value)
    if then is None:
        return 'Never trained'
    diff_days = days_between(then, now)
    if diff_days <= 0:
        return 'Today'
    if diff_days == 1:
        return 'Yesterday'
    if diff_days < 7:
        return f'{diff_days} days ago'
    if diff_days < 14:
        return '1 week ago'
    if diff_days < 30:
        return f'{diff_days // 7} weeks ago'
    if diff_days < 60:
        return '1 month ago'
    return f'{diff_days // 30} months ago'


def get_trend_display(trend: str) -> Dict[str, str]:
    return {
        'improving': {'icon': '↑', 'color': GREEN, 'label': 'Improving'},
        'stable': {'icon': '→', 'color': GREY, 'label': 'Stable'},
        'declining': {'icon': '↓', 'color': RED, 'label': 'Needs Focus'},
    }.get(trend, {'icon': '→', 'color': GREY, 'label': 'Stable'})


def get_attendance_color(percentage: float) -> str:
    if percentage >= 85:
        return GREEN
    if percentage >= 70:
        return AMBER
    return RED


def get_priority_level(score: float) -> str:
    if score >= 70:
        return 'high'
    if score >= 40:
        return 'medium'
    return 'low'


def get_priority_color(score: float) -> str:
    return {'high': RED, 'medium': AMBER, 'low': GREEN}[get_priority_level(score)]


def calculate_category_percentage(breakdown: List[Dict[str, Any]], category: str) -> int:
    """Share of all training opportunities that fell into one category"""
    total = sum(b.get('total_opportunities', 0) for b in breakdown)
    if total == 0:
        return 0
    for entry in breakdown:
        if entry.get('category') == category:
            return round(entry.get('total_opportunities', 0) / total * 100)
    return 0


def calculate_trend(positive_mentions: int, negative_mentions: int, neutral_mentions: int = 0) -> str:
    """improving / stable / declining from feedback sentiment counts"""
    total = positive_mentions + negative_mentions + neutral_mentions
    if total == 0:
        return 'stable'
    if positive_mentions / total > 0.6:
        return 'improving'
    if negative_mentions / total > 0.4:
        return 'declining'
    return 'stable'


def format_weight_as_percentage(weight: float) -> str:
    return f'{round(weight * 100)}%'


def calculate_training_progress(training_sessions: int, max_expected_sessions: int = 20) -> int:
    if max_expected_sessions == 0:
        return 0
    return min(100, round(training_sessions / max_expected_sessions * 100))


def format_idp_duration(started_at: str, ended_at: Optional[str] = None, now: Optional[datetime] = None) -> str:
    start = parse_optional_datetime(started_at)
    if start is None:
        return ''
    end = parse_optional_datetime(ended_at) or now or datetime.now()
    diff_days = max(days_between(start, end), 0)
    if diff_days < 7:
        return f"{diff_days} day{'s' if diff_days != 1 else ''}"
    if diff_days < 30:
        weeks = diff_days // 7
        return f"{weeks} week{'s' if weeks != 1 else ''}"
    months = diff_days // 30
    return f"{months} month{'s' if months != 1 else ''}"


def get_priority_label(priority: int) -> str:
    return {1: 'Primary', 2: 'Secondary', 3: 'Tertiary'}.get(priority, f'Priority {priority}')


def get_sentiment_color(sentiment: Optional[str]) -> str:
    return {'positive': GREEN, 'negative': RED, 'neutral': AMBER}.get(sentiment, GREY)
