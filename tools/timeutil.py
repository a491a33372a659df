"""
Timestamp helpers — every stored timestamp is an ISO-8601 string in UTC.
"""

import re
from datetime import date, datetime, timezone
from typing import Optional

# Fractional seconds beyond microseconds (RFC 3339 allows nanoseconds)
_EXTRA_FRACTION = re.compile(r"(\.\d{6})\d+")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_now_iso() -> str:
    return utc_now().isoformat()


def parse_timestamp(value: str) -> Optional[datetime]:
    """
    Parse an ISO-8601 / RFC 3339 string into an aware UTC datetime.

    Accepts a trailing "Z", nanosecond precision and plain dates
    ("2024-07-20" is midnight UTC). Naive values are taken as UTC.

    Returns:
        The datetime, or None if the string is not a timestamp.
    """
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    text = _EXTRA_FRACTION.sub(r"\1", text)

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        try:
            parsed = datetime.combine(date.fromisoformat(text), datetime.min.time())
        except ValueError:
            return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def to_rfc3339(moment: datetime) -> str:
    """Format a datetime the way the document store expects ("...Z")."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
