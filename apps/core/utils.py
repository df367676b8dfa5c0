"""
Utility functions for the Brokerage Portal

Common helpers used across forms, services and views.
"""
import re
from datetime import UTC, date, datetime

_NON_DIGITS = re.compile(r'[^0-9]')
_NON_DECIMAL = re.compile(r'[^0-9.]')


def digits_only(value: str | None) -> str:
    """
    Strip everything except digits.

    Example:
        digits_only('1abc2c00') -> '1200'
    """
    return _NON_DIGITS.sub('', value or '')


def decimal_only(value: str | None) -> str:
    """
    Keep digits and a single decimal point.

    Any further points are dropped and their digits joined onto the
    fractional part: '1.2.3' -> '1.23'.
    """
    cleaned = _NON_DECIMAL.sub('', value or '')
    parts = cleaned.split('.')
    if len(parts) > 2:
        cleaned = parts[0] + '.' + ''.join(parts[1:])
    return cleaned


def parse_number(value: str | None) -> float | None:
    """Parse numeric text, returning None when empty or unparsable."""
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    try:
        return float(text)
    except ValueError:
        return None


def to_timestamp(value: str | None, default_now: bool = False) -> str | None:
    """
    Serialize a date or datetime string as a full ISO-8601 UTC timestamp.

    Blank or unparsable input gives None, or the current time when
    default_now is set.
    """
    text = (value or '').strip()
    parsed: datetime | None = None

    if text:
        try:
            parsed = datetime.fromisoformat(text.replace('Z', '+00:00'))
        except ValueError:
            parsed = None

    if parsed is None:
        if not default_now:
            return None
        parsed = datetime.now(UTC)

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)

    return parsed.astimezone(UTC).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def to_date_input(value: str | None) -> str:
    """Reduce an API timestamp to the YYYY-MM-DD form the date inputs use."""
    text = (value or '').strip()
    if not text:
        return ''
    try:
        return datetime.fromisoformat(text.replace('Z', '+00:00')).date().isoformat()
    except ValueError:
        try:
            return date.fromisoformat(text[:10]).isoformat()
        except ValueError:
            return ''
