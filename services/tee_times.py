"""Manual tee time administration outside of template generation."""
import logging
from dataclasses import dataclass, field
from datetime import datetime

from flask import current_app
from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError

from models import db
from models.reservation import Reservation
from models.tee_time import TeeTime
from services.booking_window import (
    format_time, get_zone, parse_date, parse_time, window_for_template,
)
from services.errors import NoActiveSeasonError, NotFoundError, UpstreamError, ValidationError
from services.schedule import MAX_SLOTS_LIMIT, get_template
from services.seasons import active_season
from services.transaction import atomic
from utils.clock import to_naive_utc

logger = logging.getLogger(__name__)


@dataclass
class ManualCreateResult:
    created: list = field(default_factory=list)
    skipped: list = field(default_factory=list)

    @property
    def message(self):
        if not self.created:
            return f"All selected times already exist. Existing times: {', '.join(self.skipped)}"
        msg = f"Created {len(self.created)} tee times"
        if self.skipped:
            msg += f". Skipped {len(self.skipped)} existing times: {', '.join(self.skipped)}"
        return msg


def get_tee_time(tee_time_id: int) -> TeeTime:
    try:
        tee_time = db.session.get(TeeTime, tee_time_id)
    except SQLAlchemyError as exc:
        logger.exception("Failed to load tee time %s", tee_time_id)
        raise UpstreamError() from exc
    if tee_time is None:
        raise NotFoundError("Tee time not found")
    return tee_time


def bump_version(tee_time_id: int):
    """Mark the tee time's capacity picture as changed for in-flight admissions."""
    db.session.execute(
        update(TeeTime)
        .where(TeeTime.id == tee_time_id)
        .values(version=TeeTime.version + 1)
        .execution_options(synchronize_session=False)
    )


def create_manual_tee_times(day, times, max_slots=None) -> ManualCreateResult:
    """Create tee times for ``day`` at each of ``times`` that does not exist yet.

    Rows belong to the active season; when that season has a template the
    booking window is stamped from it, otherwise the rows have no window.
    """
    day = parse_date(day)
    if not isinstance(times, list) or not times:
        raise ValidationError("times must be a non-empty list")
    slots = sorted({parse_time(t) for t in times})

    if max_slots is None:
        max_slots = current_app.config.get("DEFAULT_MAX_SLOTS", 4)
    if not isinstance(max_slots, int) or isinstance(max_slots, bool) or not 1 <= max_slots <= MAX_SLOTS_LIMIT:
        raise ValidationError(f"max_slots must be between 1 and {MAX_SLOTS_LIMIT}")

    try:
        season = active_season()
    except NoActiveSeasonError:
        season = None
    template = get_template(season.id) if season else None
    window = window_for_template(template, day) if template else None

    result = ManualCreateResult()
    with atomic("create manual tee times", date=str(day)):
        existing = {
            tt.time for tt in TeeTime.query.filter(TeeTime.date == day, TeeTime.time.in_(slots)).all()
        }
        for slot in slots:
            if slot in existing:
                result.skipped.append(format_time(slot))
                continue
            db.session.add(TeeTime(
                date=day,
                time=slot,
                max_slots=max_slots,
                is_available=True,
                season=season.year if season else None,
                booking_opens_at=to_naive_utc(window.opens_at) if window else None,
                booking_closes_at=to_naive_utc(window.closes_at) if window else None,
            ))
            result.created.append(format_time(slot))

    logger.info("Manual tee times for %s: created=%s skipped=%s", day, result.created, result.skipped)
    return result


def delete_tee_time(tee_time_id: int):
    with atomic("delete tee time", tee_time_id=tee_time_id):
        get_tee_time(tee_time_id)
        # the reservation check and the delete are one statement
        booked = select(Reservation.id).where(Reservation.tee_time_id == tee_time_id).exists()
        result = db.session.execute(
            delete(TeeTime)
            .where(TeeTime.id == tee_time_id, ~booked)
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount != 1:
            raise ValidationError(
                "Cannot delete tee time with existing reservations. Please delete the reservations first."
            )

    logger.info("Deleted tee time %s", tee_time_id)


def set_tee_time_available(tee_time_id: int, is_available: bool) -> TeeTime:
    if not isinstance(is_available, bool):
        raise ValidationError("is_available must be true or false")

    with atomic("toggle tee time", tee_time_id=tee_time_id):
        tee_time = get_tee_time(tee_time_id)
        tee_time.is_available = is_available
        tee_time.version = TeeTime.version + 1
    return tee_time


def upcoming_dates(today=None):
    """Distinct tee time dates from ``today`` on for the active season."""
    try:
        season = active_season()
    except NoActiveSeasonError:
        return []

    if today is None:
        zone = get_zone(current_app.config.get("LEAGUE_TIMEZONE", "America/New_York"))
        today = datetime.now(zone).date()
    today = parse_date(today)
    try:
        rows = db.session.execute(
            select(TeeTime.date)
            .where(TeeTime.season == season.year, TeeTime.date >= today)
            .distinct()
            .order_by(TeeTime.date.asc())
        ).scalars().all()
    except SQLAlchemyError as exc:
        logger.exception("Failed to load upcoming tee time dates")
        raise UpstreamError() from exc
    return list(rows)
