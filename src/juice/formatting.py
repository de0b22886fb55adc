"""Human-readable formatting of timestamps, durations, sizes and dates."""

from __future__ import annotations

from datetime import date, datetime, time

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
DATE_FORMAT = "%Y-%m-%d"

KB = 1024
MB = KB * 1024


def format_size(size_bytes: int) -> str:
    """Render a byte count as B, KB or MB."""
    if size_bytes >= MB:
        return f"{size_bytes / MB:.1f} MB"
    if size_bytes >= KB:
        return f"{size_bytes / KB:.1f} KB"
    return f"{size_bytes} B"


def format_timestamp(timestamp: int) -> str:
    """Render a Unix timestamp in local time, or 'Invalid' if out of range."""
    try:
        return datetime.fromtimestamp(timestamp).strftime(TIMESTAMP_FORMAT)
    except (OverflowError, OSError, ValueError):
        return "Invalid"


def format_duration(first: int, last: int) -> str:
    """Render the span between two timestamps at a coarse resolution."""
    seconds = last - first
    days, seconds = divmod(seconds, 86400)
    hours, seconds = divmod(seconds, 3600)
    minutes = seconds // 60

    if days > 0:
        return f"{days} days {hours} hours"
    if hours > 0:
        return f"{hours} hours {minutes} mins"
    return f"{minutes} mins"


def parse_date(text: str) -> date | None:
    """Parse a YYYY-MM-DD string, returning None if it does not parse."""
    try:
        return datetime.strptime(text.strip(), DATE_FORMAT).date()
    except ValueError:
        return None


def date_to_timestamp(day: date) -> int:
    """Unix timestamp of local midnight at the start of ``day``."""
    return int(datetime.combine(day, time.min).timestamp())
