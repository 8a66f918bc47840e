"""
Defensive parsing and display helpers shared by the source adapters.

Upstream payloads are loosely typed. Anything missing or malformed maps to
None, and None always renders as the literal "N/A" rather than 0 or blank.
"""

import math
import re
from datetime import datetime, timezone
from typing import Any, Optional

NA = "N/A"

_TIME_FORMATS = (
    "%Y-%m-%dT%H:%MZ",
    "%Y-%m-%dT%H:%M:%SZ",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%b-%d %H:%M",   # NEO feed close_approach_date_full
    "%Y/%m/%d",         # Open Astronomy Catalog discoverdate
    "%Y-%m-%d",
)

_HEADING = re.compile(r'##\s*')
_BREAK = re.compile(r'<br\s*/?>', re.IGNORECASE)


def to_float(value: Any) -> Optional[float]:
    """Best-effort float conversion; None for missing, malformed or non-finite input."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(str(value).replace(',', '')) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def format_number(value: Any, precision: int = 1, unit: str = "", thousands: bool = False) -> str:
    """
    Render a numeric value with fixed precision.

    Args:
        value: Number, numeric string or None
        precision: Digits after the decimal point
        unit: Suffix appended directly ("°") or after a space (" km")
        thousands: Group thousands with commas

    Returns:
        The formatted value, or "N/A" when the value is unknown
    """
    number = to_float(value)
    if number is None:
        return NA
    pattern = f",.{precision}f" if thousands else f".{precision}f"
    return f"{number:{pattern}}{unit}"


def first_present(record: dict, *keys: str) -> Any:
    """Return the first non-empty value among keys, or None."""
    for key in keys:
        value = record.get(key)
        if value not in (None, "", [], {}):
            return value
    return None


def clean_note(text: Optional[str]) -> str:
    """Turn DONKI markup (## headings, <br> tags) into plain multi-line text."""
    if not text:
        return ""
    text = _HEADING.sub('\n', str(text))
    text = _BREAK.sub('\n', text)
    return text.strip()


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse the assorted timestamp shapes the upstream feeds use.

    Unix seconds, ISO 8601 (with or without "Z"), and a few fixed formats are
    accepted. Naive results are taken as UTC. Returns None when unparseable.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    else:
        text = str(value).strip()
        if not text:
            return None
        parsed = None
        iso = text[:-1] + "+00:00" if text.endswith("Z") else text
        try:
            parsed = datetime.fromisoformat(iso)
        except ValueError:
            for fmt in _TIME_FORMATS:
                try:
                    parsed = datetime.strptime(text, fmt)
                    break
                except ValueError:
                    continue
        if parsed is None:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
