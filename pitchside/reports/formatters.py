"""
Formatting utilities for the player report.

All formatting must be consistent across report sections.
"""

from datetime import datetime
from typing import Optional

from ..utils import format_date_for_display


def format_percentage(value: float) -> str:
    """Format a 0-100 percentage to 1 decimal place"""
    return f"{value:.1f}%"


def format_idp_period(started_at: str, ended_at: Optional[str] = None) -> str:
    """
    Format the lifetime of an IDP.

    Args:
        started_at: ISO start timestamp
        ended_at: ISO end timestamp, None while the IDP is active

    Returns:
        "01 Sep 2025 - present" or "01 Sep 2025 - 15 Dec 2025"
    """
    start = format_date_for_display(started_at) or "Not recorded"
    end = format_date_for_display(ended_at) if ended_at else "present"
    return f"{start} - {end}"


def truncate_text(text: Optional[str], max_length: int = 50) -> str:
    if not text:
        return ""
    if len(text) <= max_length:
        return text
    return text[:max_length - 3] + "..."


def get_report_generation_date() -> str:
    """Current date for the report footer (DD MMM YYYY)"""
    return datetime.now().strftime("%d %b %Y")
