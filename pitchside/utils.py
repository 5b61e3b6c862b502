from datetime import datetime, date, timedelta
from typing import List, Dict, Any, Optional
import re
import secrets


TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S"
DISPLAY_DATE_FORMAT = "%d %b %Y"


def new_id() -> str:
    """Generate a record id: creation timestamp plus a random suffix"""
    return f"{datetime.now().strftime('%Y%m%d_%H%M%S')}_{secrets.token_hex(4)}"


def now_iso() -> str:
    """Current local time as an ISO-8601 string (seconds precision)"""
    return datetime.now().strftime(TIMESTAMP_FORMAT)


def parse_datetime(value: Any) -> datetime:
    """Parse an ISO date or datetime into a naive local datetime.

    Accepts "YYYY-MM-DD", "YYYY-MM-DDTHH:MM[:SS]" and offset/"Z" suffixed
    values. Aware values are converted to local time.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    else:
        if not value or not str(value).strip():
            raise ValueError('Date is required')
        text = str(value).strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            raise ValueError(f'Invalid date "{value}": expected YYYY-MM-DD or YYYY-MM-DDTHH:MM')
    if dt.tzinfo is not None:
        dt = dt.astimezone().replace(tzinfo=None)
    return dt


def normalize_datetime(value: Any) -> str:
    """Normalize a date input to the stored ISO format"""
    return parse_datetime(value).strftime(TIMESTAMP_FORMAT)


def parse_optional_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == '':
        return None
    try:
        return parse_datetime(value)
    except ValueError:
        return None


def days_between(earlier: datetime, later: Optional[datetime] = None) -> int:
    """Whole days elapsed from earlier to later (floor)"""
    later = later or datetime.now()
    return int((later - earlier).total_seconds() // 86400)


def format_date_for_display(value: Any) -> str:
    """Format an ISO date string as "dd MMM yyyy" for reports"""
    dt = parse_optional_datetime(value)
    if dt is None:
        return str(value) if value else ""
    return dt.strftime(DISPLAY_DATE_FORMAT)


def format_date_for_input(value: Any) -> str:
    """Format an ISO date string for HTML date inputs (YYYY-MM-DD)"""
    dt = parse_optional_datetime(value)
    return dt.strftime("%Y-%m-%d") if dt else ""


def week_start(dt: datetime) -> date:
    """Monday of the week containing dt"""
    return (dt - timedelta(days=dt.weekday())).date()


def email_prefix(email: Optional[str]) -> str:
    if not email:
        return ""
    return email.split('@')[0]


EMAIL_PATTERN = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'


def is_valid_email(email: Optional[str]) -> bool:
    return bool(email) and re.match(EMAIL_PATTERN, email) is not None


def validate_team_data(data: Dict[str, Any]) -> List[str]:
    """Validate team form data and return list of errors"""
    errors = []

    if not data.get('name') or not str(data.get('name')).strip():
        errors.append("Team name is required")

    for field in ['player_count', 'session_duration', 'sessions_per_week']:
        value = data.get(field)
        if value is None or value == '':
            continue
        try:
            int_val = int(value)
            if int_val < 0:
                errors.append(f"{field.replace('_', ' ').title()} must be non-negative")
        except (ValueError, TypeError):
            errors.append(f"{field.replace('_', ' ').title()} must be a valid number")

    return errors


def validate_player_data(data: Dict[str, Any]) -> List[str]:
    """Validate player form data and return list of errors"""
    errors = []

    if not data.get('name') or not str(data.get('name')).strip():
        errors.append("Player name is required")

    age = data.get('age')
    if age is not None and age != '':
        try:
            if int(age) < 0:
                errors.append("Age must be non-negative")
        except (ValueError, TypeError):
            errors.append("Age must be a valid number")

    idps = data.get('idps')
    if idps is not None:
        if not isinstance(idps, list):
            errors.append("IDPs must be a list")
        elif len(idps) > 3:
            errors.append("A player can have at most 3 active IDPs")
        elif any(not isinstance(i, dict) for i in idps):
            errors.append("Each IDP must be an object")

    return errors


def validate_session_data(data: Dict[str, Any]) -> List[str]:
    """Validate session form data and return list of errors"""
    errors = []

    if not data.get('title') or not str(data.get('title')).strip():
        errors.append("Title is required")

    if not data.get('session_date'):
        errors.append("Session date is required")
    else:
        try:
            parse_datetime(data['session_date'])
        except ValueError as e:
            errors.append(str(e))

    duration = data.get('duration')
    if duration is not None and duration != '':
        try:
            if int(duration) <= 0:
                errors.append("Duration must be positive")
        except (ValueError, TypeError):
            errors.append("Duration must be a valid number")

    return errors


def sanitize_filename(filename: str) -> str:
    """Sanitize filename for safe file operations"""
    # Remove or replace invalid characters
    filename = re.sub(r'[<>:"/\\|?*\s]', '_', filename)
    # Remove multiple underscores
    filename = re.sub(r'_+', '_', filename)
    # Remove leading/trailing underscores and dots
    filename = filename.strip('_.')
    return filename


def generate_report_filename(player_name: str) -> str:
    """Generate player report filename"""
    date_str = datetime.now().strftime("%Y%m%d")
    return sanitize_filename(f"{player_name}_Development_Report_{date_str}.pdf")


def format_minutes_display(minutes: int) -> str:
    """Format minutes for display (e.g. 45m, 2h, 1h 30m)"""
    if minutes < 60:
        return f"{minutes}m"
    hours = minutes // 60
    remaining = minutes % 60
    if remaining == 0:
        return f"{hours}h"
    return f"{hours}h {remaining}m"


def humanize_key(key: str) -> str:
    """Turn an attribute key like first_touch into a display name"""
    return key.replace('_', ' ').title() if key else ""
