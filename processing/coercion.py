"""
Value/Date Coercion - Turn raw feed cells into numbers and calendar dates.

Feeds arrive with locale noise: currency symbols, percent signs, thousands
separators, comma decimals, and a zoo of "missing" markers. Everything here
returns None instead of raising, so a bad cell only drops that one row from
that one series.
"""

import math
import re
from datetime import date, datetime, timezone
from typing import Any, Optional


# Markers that mean "no observation" rather than zero
MISSING_SENTINELS = {'', '-', '.', 'n/a', 'na', '#n/a', 'null', 'none', 'nan'}

_CURRENCY_RE = re.compile(r'zł|[$€£¥%]', re.IGNORECASE)
_WHITESPACE_RE = re.compile(r'\s+')
_COMMA_DECIMAL_RE = re.compile(r'^[-+]?\d+,\d{1,2}$')

# D/M/YYYY with '/', '-' or '.' separators
_DAY_FIRST_RE = re.compile(r'^(\d{1,2})[/.\-](\d{1,2})[/.\-](\d{4})$')

# Non-ISO forms a browser's Date() accepts natively
_NATIVE_FORMATS = ['%m/%d/%Y', '%Y/%m/%d', '%b %d %Y', '%b %d, %Y', '%d %b %Y', '%B %d, %Y']

_EPOCH = date(1970, 1, 1)


def parse_number(raw: Any) -> Optional[float]:
    """
    Parse a raw cell into a float.

    Examples:
        "1,234,567" -> 1234567.0   (thousands separators dropped)
        "12,34"     -> 12.34       (trailing comma decimal)
        "$4.2%"     -> 4.2
        "N/A", "-"  -> None
    """
    if raw is None or isinstance(raw, bool):
        return None

    if isinstance(raw, (int, float)):
        value = float(raw)
        return value if math.isfinite(value) else None

    text = str(raw).strip()
    if text.lower() in MISSING_SENTINELS:
        return None

    text = _CURRENCY_RE.sub('', text)
    text = _WHITESPACE_RE.sub('', text)
    if not text:
        return None

    if _COMMA_DECIMAL_RE.match(text):
        text = text.replace(',', '.')
    else:
        text = text.replace(',', '')

    try:
        value = float(text)
    except ValueError:
        return None

    return value if math.isfinite(value) else None


def _parse_native(text: str) -> Optional[date]:
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass

    try:
        parsed = datetime.fromisoformat(text.replace('Z', '+00:00'))
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(timezone.utc)
        return parsed.date()
    except ValueError:
        pass

    for fmt in _NATIVE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    return None


def parse_date(raw: Any) -> Optional[date]:
    """
    Parse a raw cell into a calendar date.

    Native parsing runs first; when it fails a day-first D/M/YYYY form is
    normalized to YYYY-MM-DD and retried.
    """
    if raw is None:
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw

    text = str(raw).strip()
    if not text:
        return None

    parsed = _parse_native(text)
    if parsed is not None:
        return parsed

    match = _DAY_FIRST_RE.match(text)
    if match:
        day, month, year = match.groups()
        return _parse_native(f"{year}-{int(month):02d}-{int(day):02d}")

    return None


def to_timestamp(day: date) -> int:
    """Seconds since epoch for UTC midnight of the given date."""
    return (day - _EPOCH).days * 86400


def timestamp_to_label(ts: int) -> str:
    """YYYY-MM-DD label for a date-truncated timestamp."""
    return datetime.fromtimestamp(int(ts), tz=timezone.utc).strftime('%Y-%m-%d')
