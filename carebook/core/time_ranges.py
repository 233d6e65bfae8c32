"""Date and time arithmetic for slot boundaries and overlap tests.

All instants handled by the scheduling core are timezone-aware. Naive values
coming from callers or from databases without timezone support are
interpreted in a known zone before they enter the core.
"""

import re
from datetime import UTC, date, datetime, time, timedelta, tzinfo

_CLOCK_RE = re.compile(r"^(\d{2}):(\d{2})$")


def parse_clock(value: str) -> time:
    """
    Parse an "HH:MM" wall-clock string.

    Args:
        value: Clock string such as "09:30"

    Returns:
        Parsed time of day

    Raises:
        ValueError: If the string is not a valid 24-hour clock
    """
    match = _CLOCK_RE.match(value) if isinstance(value, str) else None
    if not match:
        raise ValueError(f"Invalid clock value {value!r}, expected HH:MM")

    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise ValueError(f"Invalid clock value {value!r}, expected HH:MM")
    return time(hour, minute)


def ensure_aware(moment: datetime, tz: tzinfo) -> datetime:
    """Attach `tz` to a naive datetime, or convert an aware one into `tz`."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=tz)
    return moment.astimezone(tz)


def from_storage(moment: datetime | None) -> datetime | None:
    """Normalize a stored timestamp; naive values are stored as UTC."""
    if moment is None:
        return None
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment


def local_day(value: date | datetime, tz: tzinfo) -> date:
    """Calendar day of `value` in the scheduling zone; time of day is ignored."""
    if isinstance(value, datetime):
        return ensure_aware(value, tz).date()
    return value


def day_bounds(day: date, tz: tzinfo) -> tuple[datetime, datetime]:
    """Inclusive first and last instant of `day`."""
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day, time.max, tzinfo=tz)
    return start, end


def at_clock(day: date, clock: time, tz: tzinfo) -> datetime:
    """Instant of `clock` on `day`."""
    return datetime.combine(day, clock, tzinfo=tz)


def end_of(start: datetime, minutes: int) -> datetime:
    """End of an interval of `minutes` starting at `start`."""
    return start + timedelta(minutes=minutes)


def overlaps(
    start_a: datetime,
    end_a: datetime,
    start_b: datetime,
    end_b: datetime,
) -> bool:
    """Half-open interval overlap: touching intervals do not overlap."""
    return start_a < end_b and end_a > start_b


def weekday_index(day: date) -> int:
    """Day of week with 0 = Sunday through 6 = Saturday."""
    return (day.weekday() + 1) % 7
