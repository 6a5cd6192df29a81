"""Read-side projection of tee time capacity.

Availability is always recomputed from the reservations that are loaded at
the moment of the read; nothing here is cached between requests.
"""
import logging
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError

from models.tee_time import TeeTime
from services.booking_window import parse_date
from services.errors import UpstreamError, ValidationError
from utils.clock import to_naive_utc, utcnow

logger = logging.getLogger(__name__)

OPEN = "open"
NOT_YET_OPEN = "not_yet_open"
CLOSED = "closed"


@dataclass(frozen=True)
class Availability:
    reserved_slots: int
    available_slots: int
    is_bookable: bool
    booking_status: str


def booking_status(tee_time, now=None) -> str:
    """Window is half-open: bookable from ``opens_at`` up to, not including, ``closes_at``."""
    now = to_naive_utc(now) if now is not None else utcnow()
    opens_at = to_naive_utc(tee_time.booking_opens_at)
    closes_at = to_naive_utc(tee_time.booking_closes_at)

    if opens_at is not None and now < opens_at:
        return NOT_YET_OPEN
    if closes_at is not None and now >= closes_at:
        return CLOSED
    return OPEN


def compute_availability(tee_time, reservations, now=None) -> Availability:
    reserved = sum(r.slots for r in reservations)
    available = max(0, tee_time.max_slots - reserved)
    status = booking_status(tee_time, now)
    return Availability(
        reserved_slots=reserved,
        available_slots=available,
        is_bookable=bool(tee_time.is_available) and available > 0 and status == OPEN,
        booking_status=status,
    )


def get_availability_for_date(day, now=None):
    """Return ``[(tee_time, Availability)]`` for every tee time on ``day``, earliest first."""
    day = parse_date(day)
    try:
        tee_times = TeeTime.query.filter_by(date=day).order_by(TeeTime.time.asc()).all()
    except SQLAlchemyError as exc:
        logger.exception("Failed to load tee times for %s", day)
        raise UpstreamError() from exc

    return [(tt, compute_availability(tt, tt.reservations, now)) for tt in tee_times]


def get_availability_for_range(start, end, now=None):
    start, end = parse_date(start), parse_date(end)
    if end < start:
        raise ValidationError("end must not be before start")

    try:
        tee_times = (
            TeeTime.query
            .filter(TeeTime.date >= start, TeeTime.date <= end)
            .order_by(TeeTime.date.asc(), TeeTime.time.asc())
            .all()
        )
    except SQLAlchemyError as exc:
        logger.exception("Failed to load tee times between %s and %s", start, end)
        raise UpstreamError() from exc

    return [(tt, compute_availability(tt, tt.reservations, now)) for tt in tee_times]
