"""Display helpers for notification text."""

from datetime import datetime, timezone
from typing import Optional

ELLIPSIS = "..."


def truncate_snippet(text: Optional[str], limit: int = 50) -> str:
    """Cut text to `limit` characters, appending an ellipsis when cut."""
    if not text:
        return ""
    if len(text) > limit:
        return f"{text[:limit]}{ELLIPSIS}"
    return text


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit if count == 1 else unit + 's'} ago"


def format_time_ago(date: Optional[datetime], now: Optional[datetime] = None) -> str:
    """
    Format a timestamp relative to now (e.g. "2 hours ago").

    Months are 30 days and years 12 months. Future timestamps read as
    "Just now".
    """
    if date is None:
        return "Recently"

    now = now or datetime.now(timezone.utc)
    seconds = int((now - date).total_seconds())

    if seconds < 60:
        return "Just now"

    minutes = seconds // 60
    if minutes < 60:
        return _plural(minutes, "minute")

    hours = minutes // 60
    if hours < 24:
        return _plural(hours, "hour")

    days = hours // 24
    if days < 30:
        return _plural(days, "day")

    months = days // 30
    if months < 12:
        return _plural(months, "month")

    return _plural(months // 12, "year")
