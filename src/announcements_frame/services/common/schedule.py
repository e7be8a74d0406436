"""
Announcements Frame - Weekly Display Schedule

The schedule is a table of weekday -> list of "HH:MM-HH:MM" ranges, written
in announcements.conf as:

    mon = 08:00-12:00,14:00-17:00
    sat = 09:00-13:00

Ranges include their start minute and exclude their end minute, and cannot
cross midnight (split them into two days instead). A range that does not
parse, or whose end is not after its start, is skipped on its own; the other
ranges of that day still apply. Overlapping ranges are not rejected.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)

# Config keys, indexed by datetime.weekday() (0 = Monday)
DAY_KEYS = ('mon', 'tue', 'wed', 'thu', 'fri', 'sat', 'sun')

MINUTES_PER_DAY = 24 * 60

_TIME_RE = re.compile(r'^(\d{1,2}):(\d{2})$')


@dataclass(frozen=True)
class TimeRange:
    """Half-open [start, end) range in minutes since midnight."""
    start: int
    end: int

    def contains(self, minute: int) -> bool:
        return self.start <= minute < self.end

    def __str__(self) -> str:
        return f"{format_minutes(self.start)}-{format_minutes(self.end)}"


@dataclass(frozen=True)
class ScheduleTable:
    """Parsed weekly schedule. Days missing from the config are absent from `days`."""
    days: Dict[str, Tuple[TimeRange, ...]] = field(default_factory=dict)

    def ranges_for(self, day_key: str) -> Tuple[TimeRange, ...]:
        return self.days.get(day_key, ())

    @classmethod
    def from_config_values(cls, values: Mapping[str, Optional[str]]) -> 'ScheduleTable':
        """
        Build a table from raw day-key values (e.g. {'mon': '08:00-12:00'}).

        Keys other than mon..sun are ignored; a None value means the day is
        not configured at all.
        """
        days = {}
        for day_key in DAY_KEYS:
            raw = values.get(day_key)
            if raw is None:
                continue
            days[day_key] = parse_ranges(raw, day_key)
        return cls(days=days)


def format_minutes(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def parse_time(text: str) -> Optional[int]:
    """
    Convert 'HH:MM' to minutes since midnight.

    Leading zeros are plain decimal ('08:09' is 489). '24:00' is accepted so a
    range can run to the end of the day.

    Returns:
        Minutes since midnight, or None if the text is not a valid time.
    """
    match = _TIME_RE.match(text)
    if not match:
        return None

    hours = int(match.group(1), 10)
    minutes = int(match.group(2), 10)
    if minutes > 59:
        return None
    if hours > 24 or (hours == 24 and minutes != 0):
        return None
    return hours * 60 + minutes


def parse_range(text: str) -> Optional[TimeRange]:
    """Parse one 'HH:MM-HH:MM' range; None if malformed or end <= start."""
    parts = text.split('-')
    if len(parts) != 2:
        return None

    start = parse_time(parts[0])
    end = parse_time(parts[1])
    if start is None or end is None:
        return None
    if end <= start:
        return None
    return TimeRange(start=start, end=end)


def parse_ranges(value: str, day_key: str = '') -> Tuple[TimeRange, ...]:
    """
    Parse a comma-separated list of ranges, skipping malformed ones.

    Whitespace anywhere in the value is ignored.
    """
    compact = re.sub(r'\s+', '', value)
    ranges = []
    for chunk in compact.split(','):
        if not chunk:
            continue
        time_range = parse_range(chunk)
        if time_range is None:
            logger.warning(f"Skipping malformed schedule range for {day_key or 'day'}: '{chunk}'")
            continue
        ranges.append(time_range)
    return tuple(ranges)


def day_key_for(moment: datetime) -> str:
    return DAY_KEYS[moment.weekday()]


def minutes_since_midnight(moment: datetime) -> int:
    return moment.hour * 60 + moment.minute


def is_active_now(table: ScheduleTable, now: Optional[datetime] = None) -> bool:
    """
    Check whether the display should be showing announcements at `now`.

    Args:
        table: Parsed weekly schedule
        now: Local wall-clock time (defaults to datetime.now())

    Returns:
        True if any well-formed range for today's weekday contains the
        current minute; False if today has no entry, an empty entry, or no
        matching range.
    """
    if now is None:
        now = datetime.now()

    ranges = table.ranges_for(day_key_for(now))
    if not ranges:
        return False

    current = minutes_since_midnight(now)
    return any(time_range.contains(current) for time_range in ranges)
