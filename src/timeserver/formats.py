"""
=============================================================================
TIMESTAMP FORMATS
=============================================================================

The whole "protocol" of a time server is one line of text. This module
decides what that line looks like.

Three variants are supported. They differ in which clock zone they
show and in how they mark it:

    ┌──────────┬────────────────────────────┬─────────────────────────────┐
    │ Variant  │ Example                    │ strftime pattern            │
    ├──────────┼────────────────────────────┼─────────────────────────────┤
    │ A LOCAL  │ 2021-08-16 18:27:51 -0400  │ %Y-%m-%d %H:%M:%S %z        │
    │ B UTC    │ 2021-08-16T23:25:39z       │ %Y-%m-%dT%H:%M:%Sz  (UTC)   │
    │ C ZONE   │ 2021-08-16 18:27:51 (EDT)  │ %Y-%m-%d %H:%M:%S (%Z)      │
    └──────────┴────────────────────────────┴─────────────────────────────┘

Variant B always converts to UTC first. The trailing lowercase "z" is a
literal character, NOT a UTC offset: "23:25:39z" means "this is UTC".

Variants A and C print the time in whatever zone the datetime already
carries. A naive datetime (no tzinfo) is taken to be system local time.

=============================================================================
WHY AWARE DATETIMES?
=============================================================================

    datetime.now()               → 2021-08-16 18:27:51      (naive!)
    datetime.now().astimezone()  → 2021-08-16 18:27:51-04:00 (aware)

A naive datetime has no idea what zone it is in, so "%z" and "%Z"
render as empty strings. The default clock therefore returns an aware
local datetime. Tests inject their own clock with a fixed zone.

=============================================================================
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Callable


Clock = Callable[[], datetime]


class TimestampFormat(Enum):
    """
    Supported timestamp line formats.

    The value is the name used on the command line and in
    the TIMESERVER_FORMAT environment variable.
    """
    LOCAL = "local"            # Variant A: 2021-08-16 18:27:51 -0400
    UTC = "utc"                # Variant B: 2021-08-16T23:25:39z
    LOCAL_ZONE = "local-zone"  # Variant C: 2021-08-16 18:27:51 (EDT)

    @property
    def pattern(self) -> str:
        """The strftime/strptime pattern for this format."""
        return _PATTERNS[self]

    @classmethod
    def from_name(cls, name: str) -> "TimestampFormat":
        """
        Look up a format by its name (case-insensitive).

        Accepts both the value ("local-zone") and the member name
        ("LOCAL_ZONE").

        Raises:
            ValueError: If the name is not a known format.
        """
        key = name.strip().lower()
        for fmt in cls:
            if key in (fmt.value, fmt.name.lower()):
                return fmt
        choices = ", ".join(fmt.value for fmt in cls)
        raise ValueError(f"Unknown timestamp format: {name!r} (choose from {choices})")


_PATTERNS = {
    TimestampFormat.LOCAL: "%Y-%m-%d %H:%M:%S %z",
    TimestampFormat.UTC: "%Y-%m-%dT%H:%M:%Sz",
    TimestampFormat.LOCAL_ZONE: "%Y-%m-%d %H:%M:%S (%Z)",
}


def local_now() -> datetime:
    """Default clock: the current wall-clock time as an aware local datetime."""
    return datetime.now().astimezone()


def format_timestamp(dt: datetime, fmt: TimestampFormat = TimestampFormat.UTC) -> str:
    """
    Format a datetime as a timestamp line (without the line terminator).

    Args:
        dt: The time to format. Naive values are treated as local time.
        fmt: Which variant to produce.

    Returns:
        The formatted string, e.g. "2021-08-16T23:25:39z".

    Example:
        >>> edt = timezone(timedelta(hours=-4), "EDT")
        >>> t = datetime(2021, 8, 16, 18, 27, 51, tzinfo=edt)
        >>> format_timestamp(t, TimestampFormat.UTC)
        '2021-08-16T22:27:51z'
        >>> format_timestamp(t, TimestampFormat.LOCAL_ZONE)
        '2021-08-16 18:27:51 (EDT)'
    """
    if dt.tzinfo is None:
        dt = dt.astimezone()

    if fmt is TimestampFormat.UTC:
        dt = dt.astimezone(timezone.utc)

    return dt.strftime(fmt.pattern)


def parse_timestamp(text: str, fmt: TimestampFormat = TimestampFormat.UTC) -> datetime:
    """
    Parse a timestamp line produced by format_timestamp().

    Useful for clients (and tests) that want to check what they received.
    Trailing whitespace, including the line terminator, is ignored.

    Returns:
        An aware datetime for LOCAL and UTC. LOCAL_ZONE only carries a zone
        abbreviation, which cannot be turned back into an offset reliably,
        so the result is naive.

    Raises:
        ValueError: If the text does not match the format.
    """
    text = text.rstrip()

    if fmt is TimestampFormat.UTC:
        return datetime.strptime(text, fmt.pattern).replace(tzinfo=timezone.utc)

    if fmt is TimestampFormat.LOCAL:
        return datetime.strptime(text, fmt.pattern)

    # "2021-08-16 18:27:51 (EDT)" → strip the "(EDT)" suffix
    head, sep, zone = text.rpartition(" (")
    if not sep or not zone.endswith(")") or len(zone) < 2:
        raise ValueError(f"time data {text!r} does not match format {fmt.pattern!r}")
    return datetime.strptime(head, "%Y-%m-%d %H:%M:%S")
