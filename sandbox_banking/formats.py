"""
Timestamp format used by sandbox import documents.

Dates are UTC with millisecond precision, e.g. ``2016-01-27T14:03:11.000Z``.
"""

from datetime import datetime, timezone
import re

# Pattern as published to API consumers
DATE_PATTERN = "yyyy-MM-dd'T'HH:mm:ss.SSS'Z'"

_STRPTIME_FORMAT = "%Y-%m-%dT%H:%M:%S.%f"
_TIMESTAMP_SHAPE = re.compile(r'^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$')


def parse_timestamp(value: str) -> datetime:
    """
    Parse a timestamp in DATE_PATTERN into an aware UTC datetime.

    Parsing is strict: exactly three fraction digits, a literal trailing Z,
    and in-range calendar/clock fields.

    Raises:
        ValueError: If the value does not match the pattern
    """
    if not isinstance(value, str) or not _TIMESTAMP_SHAPE.match(value):
        raise ValueError(f"'{value}' does not match {DATE_PATTERN}")
    parsed = datetime.strptime(value[:-1], _STRPTIME_FORMAT)
    return parsed.replace(tzinfo=timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Render an aware datetime back into DATE_PATTERN"""
    utc_value = value.astimezone(timezone.utc)
    return utc_value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc_value.microsecond // 1000:03d}Z"
