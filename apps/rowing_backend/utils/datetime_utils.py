"""
Datetime utility functions.
Provides replacements for deprecated datetime functions.
"""

from datetime import date, datetime
from typing import Union
import pytz


def utcnow() -> datetime:
    """
    Get current UTC datetime using pytz.UTC.

    Returns:
        Current UTC datetime with pytz timezone information
    """
    return datetime.now(pytz.UTC)


def parse_match_date(date_input: Union[str, date, datetime]) -> date:
    """
    Normalize a match date to a ``date``.

    Accepts ISO strings ("2026-03-14"), US strings ("3/14/2026" or
    "03/14/2026"), ``date`` and ``datetime`` objects.

    Raises:
        ValueError: If the input cannot be parsed
    """
    if isinstance(date_input, datetime):
        return date_input.date()
    if isinstance(date_input, date):
        return date_input

    if not isinstance(date_input, str):
        raise ValueError(f"Expected string or date, got {type(date_input)}")

    date_str = date_input.strip()

    # Try ISO format first (YYYY-MM-DD)
    if "-" in date_str and len(date_str) == 10 and date_str[4] == "-":
        try:
            return datetime.strptime(date_str, "%Y-%m-%d").date()
        except ValueError:
            pass

    # Try US format with slashes (M/D/YYYY or MM/DD/YYYY)
    if "/" in date_str:
        try:
            return datetime.strptime(date_str, "%m/%d/%Y").date()
        except ValueError:
            pass

    raise ValueError(f"Unrecognized date format: {date_input!r}")
