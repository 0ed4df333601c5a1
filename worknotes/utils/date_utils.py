"""
Date/time utilities
All timestamps are ISO-8601 strings in UTC, all grouping dates are YYYY-MM-DD
"""

import re
from datetime import datetime, timezone, date as date_cls
from typing import Optional, Tuple

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TODAY_COMMAND = re.compile(r"^/today$", re.IGNORECASE)
DATE_COMMAND = re.compile(r"^/(\d{2})-(\d{2})-(\d{2})$")

# Unparseable timestamps sort before everything else
EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def get_current_datetime() -> datetime:
    """
    Get current datetime in UTC

    Returns:
        Current datetime object with UTC timezone
    """
    return datetime.now(timezone.utc)


def now_iso() -> str:
    """
    Get current timestamp as ISO-8601 string

    Example: "2024-06-01T09:30:00.123456+00:00"
    """
    return get_current_datetime().isoformat()


def get_today_date() -> str:
    """
    Get current date string (YYYY-MM-DD)

    Returns:
        Current date as string in format YYYY-MM-DD
    """
    return get_current_datetime().strftime("%Y-%m-%d")


def format_date(value: date_cls) -> str:
    return value.strftime("%Y-%m-%d")


def is_date_key(value: str) -> bool:
    """Check that a string looks like a YYYY-MM-DD grouping key"""
    return isinstance(value, str) and bool(DATE_PATTERN.match(value))


def parse_timestamp(value: Optional[str]) -> datetime:
    """
    Parse an ISO-8601 timestamp for recency comparison

    Naive timestamps are treated as UTC; missing or invalid values
    return the earliest possible datetime.
    """
    if not value:
        return EPOCH
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (TypeError, ValueError):
        return EPOCH
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def process_date_command(text: str) -> Tuple[bool, Optional[str]]:
    """
    Recognize date switch commands typed into the task input

    Supported forms: "/today" and "/DD-MM-YY" (years in the 2000s)

    Args:
        text: Raw input text

    Returns:
        (is_date_command, date) where date is YYYY-MM-DD or None
    """
    text = text.strip()
    if TODAY_COMMAND.match(text):
        return True, get_today_date()

    match = DATE_COMMAND.match(text)
    if match:
        day, month, year = (int(part) for part in match.groups())
        try:
            target = date_cls(2000 + year, month, day)
        except ValueError:
            return False, None
        return True, format_date(target)

    return False, None
