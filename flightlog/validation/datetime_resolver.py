"""
Timezone datetime resolver.

Leg times are entered as a calendar date and a separate time of day, both
in the local time of the airport they refer to. This module is the single
place where such a pair becomes an instant. The zone always comes from the
airport, never from the machine or the browser.

Accepted inputs:
    dates    'YYYY-MM-DD' (a full ISO datetime is truncated to its date)
    times    'HH:MM', 'HH:MM:SS', 'h:MM AM', 'h:MM PM'
    instants ISO 8601 with offset or 'Z' (import path)
"""

from datetime import date, datetime, time, timezone
from typing import Optional, Tuple, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from flightlog.config import config
from flightlog.errors import InvalidTimeFormat

_TIME_FORMATS = ('%H:%M', '%H:%M:%S', '%I:%M %p', '%I:%M%p', '%I:%M:%S %p')


def get_zone(tz_id: str) -> ZoneInfo:
    """Return the IANA zone, raising InvalidTimeFormat for unknown ids."""
    if not tz_id:
        raise InvalidTimeFormat('Missing timezone')
    try:
        return ZoneInfo(tz_id)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise InvalidTimeFormat(f'Unknown timezone: {tz_id}') from e


def parse_local_date(value: Union[str, date]) -> date:
    """Parse a calendar date string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value or not isinstance(value, str):
        raise InvalidTimeFormat(f'Invalid date: {value!r}')

    text = value.strip()
    if 'T' in text:
        text = text.split('T', 1)[0]
    try:
        return date.fromisoformat(text)
    except ValueError as e:
        raise InvalidTimeFormat(f'Invalid date: {value!r}') from e


def parse_time_of_day(value: Union[str, time]) -> time:
    """Parse a wall-clock time string in 24h or 12h notation."""
    if isinstance(value, time):
        return value
    if not value or not isinstance(value, str):
        raise InvalidTimeFormat(f'Invalid time: {value!r}')

    text = value.strip().upper()
    for fmt in _TIME_FORMATS:
        try:
            return datetime.strptime(text, fmt).time()
        except ValueError:
            continue

    raise InvalidTimeFormat(f'Invalid time: {value!r}')


def merge(
    local_date: Union[str, date],
    local_time: Union[str, time],
    tz_id: str,
) -> datetime:
    """
    Combine a local date and time of day into an aware instant in ``tz_id``.

    Ambiguous wall-clock times (the repeated hour when clocks go back)
    resolve to the first occurrence. Times that never happen (the skipped
    hour when clocks go forward) are rejected.
    """
    zone = get_zone(tz_id)
    naive = datetime.combine(parse_local_date(local_date), parse_time_of_day(local_time))
    local = naive.replace(tzinfo=zone, fold=0)

    # A non-existent local time does not survive a round trip through UTC
    round_trip = local.astimezone(timezone.utc).astimezone(zone).replace(tzinfo=None)
    if round_trip != naive:
        raise InvalidTimeFormat(f'{naive.isoformat()} does not exist in {tz_id}')

    return local


def to_utc(instant: datetime) -> datetime:
    """Convert to UTC. Naive values are taken to be UTC already."""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


def decompose(instant: datetime, tz_id: str) -> Tuple[date, time]:
    """Split an instant into the local date and time of day in ``tz_id``."""
    local = to_utc(instant).astimezone(get_zone(tz_id))
    return local.date(), local.time().replace(tzinfo=None)


def minimum_epoch() -> date:
    return date(config.validation.min_epoch_year, 1, 1)


def is_before_minimum_epoch(value: Union[date, datetime]) -> bool:
    """True for dates that are obviously wrong (before the configured epoch)."""
    if isinstance(value, datetime):
        value = to_utc(value).date()
    return value < minimum_epoch()


def parse_instant(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO 8601 instant and return it in UTC.

    Values without an offset are rejected; None and '' give None.
    """
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return to_utc(value)
    if not isinstance(value, str):
        raise InvalidTimeFormat(f'Invalid datetime: {value!r}')

    text = value.strip()
    if text.endswith('Z') or text.endswith('z'):
        text = text[:-1] + '+00:00'
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as e:
        raise InvalidTimeFormat(f'Invalid datetime: {value!r}') from e

    if parsed.tzinfo is None:
        raise InvalidTimeFormat(f'Datetime without offset: {value!r}')

    return parsed.astimezone(timezone.utc)
