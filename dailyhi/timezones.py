# dailyhi/timezones.py
"""Maps a UTC instant to the timezone bucket whose local delivery hour is now."""

import logging
from datetime import datetime, timezone
from functools import lru_cache
from zoneinfo import ZoneInfo, available_timezones

from dailyhi.errors import InvalidTimezone

logger = logging.getLogger(__name__)

MIN_OFFSET = -12
MAX_OFFSET = 14
DELIVERY_HOUR = 6


def validate_offset(value):
    """Coerce value to an int offset in -12..+14 or raise InvalidTimezone."""
    if isinstance(value, bool):
        raise InvalidTimezone(f"Timezone offset must be an integer, got {value!r}")
    try:
        offset = int(value)
    except (TypeError, ValueError, OverflowError):
        raise InvalidTimezone(f"Timezone offset must be an integer, got {value!r}")
    if isinstance(value, float) and value != offset:
        raise InvalidTimezone(f"Timezone offset must be whole hours, got {value!r}")
    if not MIN_OFFSET <= offset <= MAX_OFFSET:
        raise InvalidTimezone(f"Timezone offset {offset} outside {MIN_OFFSET}..{MAX_OFFSET}")
    return offset


def as_utc(instant=None):
    """Return instant as an aware UTC datetime; naive values are taken as UTC."""
    if instant is None:
        return datetime.now(timezone.utc)
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


def bucket_for(instant, delivery_hour=DELIVERY_HOUR):
    """Return the offset whose local clock reads delivery_hour at instant.

    The result is in -11..+12. At 14:00 UTC this is -8, at 02:00 UTC it is +4.
    """
    hour = as_utc(instant).hour
    offset = (delivery_hour - hour) % 24
    if offset > 12:
        offset -= 24
    return offset


def buckets_for(instant, delivery_hour=DELIVERY_HOUR):
    """Return every real-world offset (-12..+14) whose local hour is delivery_hour.

    The primary bucket comes first. Offsets -12, +13 and +14 share a local
    hour with +12, -11 and -10 and are only reachable through this list.
    """
    primary = bucket_for(instant, delivery_hour)
    buckets = [primary]
    for candidate in (primary - 24, primary + 24):
        if MIN_OFFSET <= candidate <= MAX_OFFSET:
            buckets.append(candidate)
    return buckets


@lru_cache(maxsize=1)
def _zone_names():
    return tuple(sorted(available_timezones()))


def timezone_identifier_for(offset, instant=None):
    """Return the first IANA zone whose UTC offset at instant equals offset hours.

    Returns None when no zone matches; callers treat that as "nothing to do".
    """
    at = as_utc(instant)
    wanted = offset * 3600
    for name in _zone_names():
        try:
            utcoffset = at.astimezone(ZoneInfo(name)).utcoffset()
        except (KeyError, ValueError, OSError):
            continue
        if utcoffset is not None and int(utcoffset.total_seconds()) == wanted:
            return name
    logger.warning(f"No timezone identifier matches offset {offset:+d}")
    return None


def local_time(instant, zone_name):
    """Convert instant to wall-clock time in zone_name."""
    return as_utc(instant).astimezone(ZoneInfo(zone_name))
