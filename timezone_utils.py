# timezone_utils.py
"""
Mill-local time (IST unless LOCAL_TIMEZONE says otherwise).

Lift timestamps, report day bounds and backup names all use local time, so
a lift made at 00:30 IST belongs to that day and not the previous UTC one.
"""

import os
from datetime import date, datetime, timezone
from typing import Optional

import pytz
from dotenv import load_dotenv

load_dotenv()

LOCAL_TIMEZONE = pytz.timezone(os.getenv("LOCAL_TIMEZONE", "Asia/Kolkata"))


def get_local_time() -> datetime:
    """Current time in the local timezone"""
    return datetime.now(timezone.utc).astimezone(LOCAL_TIMEZONE)


def local_today() -> date:
    return get_local_time().date()


def parse_iso_datetime(value: str) -> Optional[datetime]:
    """
    Parse an ISO date or timestamp as stored in the ledgers.

    Accepts ``2024-11-02``, ``2024-11-02T10:15:00`` and the ``Z`` suffixed
    form written by browsers. Naive values are taken as local time. Returns
    an aware datetime in local time, or None when the value cannot be parsed.
    """
    if not value:
        return None
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return LOCAL_TIMEZONE.localize(parsed)
    return parsed.astimezone(LOCAL_TIMEZONE)


def format_iso_date(value: str, format_str: str = "%d-%m-%Y") -> str:
    """Format a stored ISO date/timestamp for display, falling back to the raw text."""
    parsed = parse_iso_datetime(value)
    if parsed is None:
        return str(value or "")
    return parsed.strftime(format_str)
