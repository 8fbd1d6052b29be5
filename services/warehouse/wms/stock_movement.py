"""
Seven-day stock movement reconstructed from item locations.

Items sitting in a shipment carry the shipment id as their location, e.g.
IN20250601093015123: a two letter direction followed by the
YYYYMMDDHHMMSS the id was minted at. Decoding those ids gives the day the
movement happened without needing a movement history table.
"""
import logging
from datetime import date, timedelta
from typing import Iterable, Optional

logger = logging.getLogger(__name__)

DAY_LABELS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]

INBOUND_PREFIX = "IN"
OUTBOUND_PREFIX = "OU"

# Offset and width of the YYYYMMDDHHMMSS block inside a location
STAMP_OFFSET = 2
STAMP_LENGTH = 14
MIN_ENCODED_LENGTH = STAMP_OFFSET + STAMP_LENGTH
WINDOW_DAYS = 7


def decode_location_date(location: str) -> Optional[date]:
    """
    Extract the calendar date encoded in a shipment-id location.

    Args:
        location: Item location string

    Out-of-range months and days roll over into the neighbouring month or
    year (month 13 is January of the next year, day 0 the last day of the
    previous month), the way browser clients build dates from the same id.

    Returns:
        The encoded date, or None when the location is too short or the
        year/month/day fragments are not numeric
    """
    if len(location) < MIN_ENCODED_LENGTH:
        return None
    stamp = location[STAMP_OFFSET:STAMP_OFFSET + STAMP_LENGTH]
    year, month, day = stamp[0:4], stamp[4:6], stamp[6:8]
    if not (year.isascii() and year.isdigit() and month.isascii() and month.isdigit()
            and day.isascii() and day.isdigit()):
        return None
    extra_years, month_index = divmod(int(month) - 1, 12)
    try:
        first_of_month = date(int(year) + extra_years, month_index + 1, 1)
        return first_of_month + timedelta(days=int(day) - 1)
    except (ValueError, OverflowError):
        return None


def reconstruct_stock_movement(items: Iterable, today: date = None) -> dict:
    """
    Sum item quantities into Monday-first inbound and outbound buckets.

    Only items whose location starts with IN or OU are counted. An item whose
    location decodes to a date in the last seven days lands on that weekday;
    older or future dates are left out. Locations that cannot be decoded are
    counted on today's bucket.

    Args:
        items: Objects with `location` and `quantity` attributes
        today: Reference date (defaults to the local current date)

    Returns:
        dict with "days" (labels), "inbound" and "outbound" (7 ints each)
    """
    today = today or date.today()
    today_index = today.weekday()
    inbound = [0] * WINDOW_DAYS
    outbound = [0] * WINDOW_DAYS

    for item in items:
        location = item.location or ""
        if location.startswith(INBOUND_PREFIX):
            buckets = inbound
        elif location.startswith(OUTBOUND_PREFIX):
            buckets = outbound
        else:
            continue

        quantity = item.quantity or 0
        moved_on = decode_location_date(location)
        if moved_on is None:
            buckets[today_index] += quantity
            continue

        days_diff = (today - moved_on).days
        if 0 <= days_diff < WINDOW_DAYS:
            buckets[(today_index - days_diff + WINDOW_DAYS) % WINDOW_DAYS] += quantity
        else:
            logger.debug(f"Location {location} is outside the {WINDOW_DAYS}-day window")

    return {"days": list(DAY_LABELS), "inbound": inbound, "outbound": outbound}
