import datetime
import logging
import re

logger = logging.getLogger(__name__)

DATE_KEY_FORMAT = "%Y-%m-%d"
DATE_KEY_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# Weekday indices as stored with habits: 0 = Sunday ... 6 = Saturday
SUNDAY = 0
SATURDAY = 6
ALL_DAYS = [0, 1, 2, 3, 4, 5, 6]


def _parse_date_key(date_key):
    if not isinstance(date_key, str) or not DATE_KEY_PATTERN.match(date_key):
        return None
    try:
        return datetime.datetime.strptime(date_key, DATE_KEY_FORMAT).date()
    except ValueError:
        return None


def is_valid_date_key(value):
    """True if value is a YYYY-MM-DD string naming a real calendar date."""
    return _parse_date_key(value) is not None


def today_key(reference):
    """
    Format a reference day as a date key.
    Uses the wall-clock fields of the value (datetime, date or an existing key),
    never a UTC conversion.
    """
    if isinstance(reference, str):
        if is_valid_date_key(reference):
            return reference
        logger.debug("Unparseable reference date: %r", reference)
        return None
    # datetime is a subclass of date, so this covers both
    if isinstance(reference, datetime.date):
        return f"{reference.year:04d}-{reference.month:02d}-{reference.day:02d}"
    logger.debug("Unsupported reference date type: %r", type(reference))
    return None


def add_days(date_key, days):
    """
    Shift a date key by N days.
    The key is treated as a plain calendar date so the arithmetic never drifts
    across a DST boundary.
    """
    parsed = _parse_date_key(date_key)
    if parsed is None:
        logger.debug("Cannot shift malformed date key: %r", date_key)
        return date_key
    try:
        days = int(days)
    except (TypeError, ValueError):
        logger.debug("Non-numeric day offset %r, treating as 0", days)
        days = 0
    try:
        shifted = parsed + datetime.timedelta(days=days)
    except OverflowError:
        logger.debug("Day offset %d out of range for %s", days, date_key)
        return date_key
    return shifted.strftime(DATE_KEY_FORMAT)


def weekday_index(date_key):
    """Weekday of a date key with 0 = Sunday, or None if the key is malformed."""
    parsed = _parse_date_key(date_key)
    if parsed is None:
        return None
    # date.weekday() is Monday = 0
    return (parsed.weekday() + 1) % 7


def normalize_date_keys(values):
    """Keep valid date keys only, deduplicated and sorted ascending."""
    if values is None or isinstance(values, str):
        return []
    try:
        candidates = list(values)
    except TypeError:
        return []
    return sorted({value for value in candidates if is_valid_date_key(value)})


def normalize_frequency_days(value):
    """
    Clean up a habit's weekday schedule.
    Anything that is not a list/tuple/set means every day. Entries that are not
    integers between 0 and 6 are dropped; an empty result also means every day.
    """
    if not isinstance(value, (list, tuple, set, frozenset)):
        return list(ALL_DAYS)

    parsed = set()
    for day in value:
        if isinstance(day, bool):
            logger.debug("Dropping boolean frequency day %r", day)
            continue
        try:
            number = float(day)
        except (TypeError, ValueError):
            logger.debug("Dropping unparseable frequency day %r", day)
            continue
        if not number.is_integer() or not 0 <= number <= 6:
            logger.debug("Dropping out of range frequency day %r", day)
            continue
        parsed.add(int(number))

    return sorted(parsed) if parsed else list(ALL_DAYS)


def is_scheduled_on(frequency_days, date_key):
    """Check if a habit with the given schedule is due on the given date key."""
    weekday = weekday_index(date_key)
    if weekday is None:
        return False
    return weekday in normalize_frequency_days(frequency_days)
