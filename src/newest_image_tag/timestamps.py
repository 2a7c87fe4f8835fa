"""RFC 3339 timestamp parsing and formatting.

Registries write manifest history timestamps with nanosecond precision
(``2021-06-01T12:30:45.123456789Z``). Python datetimes stop at microseconds,
so parsed values are Timestamp instances: datetimes that carry the remaining
three digits in ``nanosecond`` and compare on them.

Formatting follows Go's RFC3339Nano layout: up to nine fractional digits,
trailing zeros dropped, ``Z`` for UTC.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta
from typing import Any

from newest_image_tag.errors import TimestampParseError

_RFC3339_RE = re.compile(
    r"^(?P<base>\d{4}-\d{2}-\d{2}[Tt ]\d{2}:\d{2}:\d{2})"
    r"(?:\.(?P<fraction>\d+))?"
    r"(?P<offset>[Zz]|[+-]\d{2}:\d{2})$"
)


class Timestamp(datetime):
    """Timezone-aware datetime with nanosecond precision.

    ``nanosecond`` holds the sub-microsecond remainder (0-999). Equality and
    ordering take it into account; a plain datetime compares as if its
    nanosecond were 0.

    Examples:
        >>> a = parse_rfc3339("2022-01-01T00:00:00.000000001Z")
        >>> b = parse_rfc3339("2022-01-01T00:00:00.000000002Z")
        >>> a < b
        True
    """

    _nanosecond: int

    def __new__(cls, *args: Any, nanosecond: int = 0, **kwargs: Any) -> Timestamp:
        if not 0 <= nanosecond < 1000:
            msg = f"nanosecond must be in 0..999, got {nanosecond}"
            raise ValueError(msg)
        self = super().__new__(cls, *args, **kwargs)
        self._nanosecond = nanosecond
        return self

    @classmethod
    def from_datetime(cls, value: datetime, nanosecond: int = 0) -> Timestamp:
        """Return *value* as a Timestamp with the given sub-microsecond part."""
        return cls(
            value.year,
            value.month,
            value.day,
            value.hour,
            value.minute,
            value.second,
            value.microsecond,
            value.tzinfo,
            fold=value.fold,
            nanosecond=nanosecond,
        )

    @property
    def nanosecond(self) -> int:
        return self._nanosecond

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, datetime):
            return NotImplemented
        return datetime.__eq__(self, other) is True and self._nanosecond == _nanosecond_of(other)

    def __ne__(self, other: object) -> bool:
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    __hash__ = datetime.__hash__

    def __lt__(self, other: datetime) -> bool:
        if not isinstance(other, datetime):
            return NotImplemented
        if datetime.__eq__(self, other) is True:
            return self._nanosecond < _nanosecond_of(other)
        return datetime.__lt__(self, other)

    def __le__(self, other: datetime) -> bool:
        if not isinstance(other, datetime):
            return NotImplemented
        if datetime.__eq__(self, other) is True:
            return self._nanosecond <= _nanosecond_of(other)
        return datetime.__lt__(self, other)

    def __gt__(self, other: datetime) -> bool:
        if not isinstance(other, datetime):
            return NotImplemented
        if datetime.__eq__(self, other) is True:
            return self._nanosecond > _nanosecond_of(other)
        return datetime.__gt__(self, other)

    def __ge__(self, other: datetime) -> bool:
        if not isinstance(other, datetime):
            return NotImplemented
        if datetime.__eq__(self, other) is True:
            return self._nanosecond >= _nanosecond_of(other)
        return datetime.__gt__(self, other)

    def __repr__(self) -> str:
        return f"Timestamp({format_rfc3339(self)!r})"


def _nanosecond_of(value: datetime) -> int:
    return value.nanosecond if isinstance(value, Timestamp) else 0


def parse_rfc3339(value: object) -> Timestamp:
    """Parse an RFC 3339 timestamp, keeping up to nanosecond precision.

    Args:
        value: Timestamp string, e.g. ``2022-01-01T00:00:00.000000001Z``.

    Returns:
        Timezone-aware Timestamp. Digits beyond the ninth are dropped.

    Raises:
        TimestampParseError: If value is not a string in RFC 3339 form.

    Example:
        >>> ts = parse_rfc3339("2022-01-01T00:00:00.123456789Z")
        >>> ts.microsecond, ts.nanosecond
        (123456, 789)
    """
    if not isinstance(value, str):
        raise TimestampParseError(value, "not a string")

    match = _RFC3339_RE.match(value.strip())
    if match is None:
        raise TimestampParseError(value)

    fraction = (match.group("fraction") or "")[:9].ljust(9, "0")
    offset = match.group("offset")
    if offset in ("Z", "z"):
        offset = "+00:00"

    normalized = f"{match.group('base').replace(' ', 'T').replace('t', 'T')}.{fraction[:6]}{offset}"
    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError as e:
        raise TimestampParseError(value, str(e)) from e
    return Timestamp.from_datetime(parsed, int(fraction[6:]))


def format_rfc3339(value: datetime) -> str:
    """Format a timezone-aware datetime in RFC3339Nano form.

    UTC values use the ``Z`` suffix so the output matches what registries
    emit. ``parse_rfc3339(format_rfc3339(dt)) == dt`` for any aware datetime.

    Raises:
        TimestampParseError: If value is naive.

    Example:
        >>> format_rfc3339(parse_rfc3339("2021-06-01T00:00:00.500000000Z"))
        '2021-06-01T00:00:00.5Z'
    """
    offset = value.utcoffset()
    if value.tzinfo is None or offset is None:
        raise TimestampParseError(value.isoformat(), "missing a UTC offset")

    digits = f"{value.microsecond:06d}{_nanosecond_of(value):03d}".rstrip("0")
    fraction = f".{digits}" if digits else ""
    return f"{value.isoformat(timespec='seconds')[:19]}{fraction}{_format_offset(offset)}"


def _format_offset(offset: timedelta) -> str:
    if not offset:
        return "Z"
    sign = "-" if offset < timedelta(0) else "+"
    minutes = abs(offset) // timedelta(minutes=1)
    return f"{sign}{minutes // 60:02d}:{minutes % 60:02d}"


__all__ = ["Timestamp", "format_rfc3339", "parse_rfc3339"]
