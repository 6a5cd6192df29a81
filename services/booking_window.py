"""Booking window calculation.

Booking for a tee time opens ``opens_days_before`` calendar days ahead of the
event at the ``opens_time`` wall clock of the league's timezone, and closes
``closes_days_before`` days ahead at ``closes_time``. Each end is resolved
against the IANA database for its own calendar date, so a window that
straddles a daylight-saving change gets the correct UTC offset on each side.

Everything here is pure: no database access and no clock reads.
"""
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from services.errors import ValidationError
from utils.clock import isoformat_utc

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")


@dataclass(frozen=True)
class BookingWindow:
    opens_at: datetime  # aware, UTC
    closes_at: datetime  # aware, UTC

    def as_iso(self):
        return isoformat_utc(self.opens_at), isoformat_utc(self.closes_at)


def parse_time(value) -> time:
    """Accept ``HH:MM`` or ``HH:MM:SS`` (or a ``time``) and return a naive ``time``."""
    if isinstance(value, time):
        return value.replace(microsecond=0, tzinfo=None)

    match = _TIME_RE.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise ValidationError(f"Invalid time '{value}'. Use HH:MM or HH:MM:SS")

    hour, minute, second = int(match.group(1)), int(match.group(2)), int(match.group(3) or 0)
    if hour > 23 or minute > 59 or second > 59:
        raise ValidationError(f"Invalid time '{value}'. Use HH:MM or HH:MM:SS")
    return time(hour, minute, second)


def format_time(value: time) -> str:
    return value.strftime("%H:%M")


def parse_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid date '{value}'. Use YYYY-MM-DD")


def get_zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, TypeError):
        raise ValidationError(f"Unknown timezone '{name}'")


def validate_offsets(opens_days_before, closes_days_before):
    for label, value in (("booking_opens_days_before", opens_days_before),
                         ("booking_closes_days_before", closes_days_before)):
        if not isinstance(value, int) or isinstance(value, bool) or value < 0:
            raise ValidationError(f"{label} must be a non-negative integer")

    if opens_days_before <= closes_days_before:
        raise ValidationError("Booking must open more days before the event than it closes")


def local_to_utc(day: date, wall_time, zone) -> datetime:
    """Resolve a wall-clock time on ``day`` in ``zone`` to an aware UTC instant.

    Nonexistent or repeated wall times around a DST change resolve with
    ``fold=0``, i.e. with the offset in force before the transition.
    """
    if not isinstance(zone, ZoneInfo):
        zone = get_zone(zone)
    local = datetime.combine(day, parse_time(wall_time), tzinfo=zone)
    return local.astimezone(timezone.utc)


def compute_window(event_date, opens_days_before, opens_time,
                   closes_days_before, closes_time, tz_name) -> BookingWindow:
    event_day = parse_date(event_date)
    validate_offsets(opens_days_before, closes_days_before)
    zone = get_zone(tz_name)

    opens_day = event_day - timedelta(days=opens_days_before)
    closes_day = event_day - timedelta(days=closes_days_before)

    return BookingWindow(
        opens_at=local_to_utc(opens_day, opens_time, zone),
        closes_at=local_to_utc(closes_day, closes_time, zone),
    )


def window_for_template(template, event_date) -> BookingWindow:
    return compute_window(
        event_date,
        template.booking_opens_days_before,
        template.booking_opens_time,
        template.booking_closes_days_before,
        template.booking_closes_time,
        template.timezone,
    )
