# steelvault/services/date_utils.py
import logging
import re
from datetime import datetime, date, timedelta

import pytz

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = 'Asia/Kolkata'
GRANULARITIES = ('day', 'week', 'month', 'year')

_TIMESTAMP_PATTERN = re.compile(
    r'^(?P<base>\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}(?::\d{2})?)'
    r'(?:\.(?P<fraction>\d+))?'
    r'(?P<offset>[+-]\d{2}(?::?\d{2})?)?$'
)


def get_server_timezone(name=None):
    """
    Resolve the timezone used for calendar bucketing.

    Falls back to the default zone when the configured name is unknown rather
    than failing a dashboard request over a typo in the environment.
    """
    try:
        return pytz.timezone(name or DEFAULT_TIMEZONE)
    except pytz.UnknownTimeZoneError:
        logger.warning(f"Unknown timezone '{name}', falling back to {DEFAULT_TIMEZONE}")
        return pytz.timezone(DEFAULT_TIMEZONE)


def utc_now():
    return datetime.now(pytz.UTC)


def _parse_iso(text):
    """
    ISO-8601 parse that also takes the forms Postgres prints on older Pythons:
    short offsets ('+00'), offsets without a colon and 1-5 digit fractions.
    """
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass

    match = _TIMESTAMP_PATTERN.match(text)
    if not match:
        return None
    normalized = match.group('base')
    if match.group('fraction'):
        normalized += '.' + (match.group('fraction') + '000000')[:6]
    offset = match.group('offset')
    if offset:
        sign, digits = offset[0], offset[1:].replace(':', '')
        normalized += f"{sign}{digits[:2]}:{(digits[2:] or '00')[:2]}"
    try:
        return datetime.fromisoformat(normalized)
    except ValueError:
        return None


def parse_timestamp(value):
    """
    Parse a timestamp read from a table row into an aware UTC datetime.

    Accepts datetime, date and ISO-8601 strings (with or without 'Z' or an
    offset). Naive values are taken as UTC, which is how the tables store them.

    Returns:
        datetime or None: None for empty or unparseable values
    """
    if value is None or value == '':
        return None

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        dt = _parse_iso(value.strip())
        if dt is None:
            logger.debug(f"Unparseable timestamp value: {value!r}")
            return None
    else:
        return None

    if dt.tzinfo is None:
        return pytz.UTC.localize(dt)
    return dt.astimezone(pytz.UTC)


def parse_date(value):
    """Parse a calendar date (YYYY-MM-DD or a longer ISO timestamp) for date columns."""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        raise ValueError(f"Invalid date format: {value!r}")


def local_date(value, tz=None):
    """
    Calendar date of a row value as seen in ``tz``.

    Timestamps (naive ones taken as UTC) are converted first; plain dates are
    returned as they are. Without ``tz`` the UTC date is used.
    """
    if isinstance(value, datetime) or (isinstance(value, str) and len(value.strip()) > 10):
        ts = parse_timestamp(value)
        if ts is None:
            raise ValueError(f"Invalid timestamp format: {value!r}")
        return ts.astimezone(tz or pytz.UTC).date()
    return parse_date(value)


def days_since(value, now=None):
    """
    Fractional days elapsed between a row timestamp and now.

    Returns:
        float or None: None when the value cannot be parsed
    """
    ts = parse_timestamp(value)
    if ts is None:
        return None
    now = now or utc_now()
    if now.tzinfo is None:
        now = pytz.UTC.localize(now)
    return (now - ts).total_seconds() / 86400.0


def bucket_start(day, granularity):
    """
    First calendar day of the bucket containing ``day``.

    Weeks start on Monday.
    """
    if granularity == 'day':
        return day
    if granularity == 'week':
        return day - timedelta(days=day.weekday())
    if granularity == 'month':
        return day.replace(day=1)
    if granularity == 'year':
        return day.replace(month=1, day=1)
    raise ValueError(f"Unknown granularity '{granularity}', expected one of {', '.join(GRANULARITIES)}")

