"""Season lifecycle and the active-season context every other query is scoped by."""
import logging

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError

from models import db
from models.season import Season
from models.tee_time import TeeTime
from services.booking_window import parse_date
from services.errors import (
    AlreadyExistsError, NoActiveSeasonError, NotFoundError, UpstreamError, ValidationError,
    ConflictError,
)
from services.transaction import atomic
from utils.clock import utcnow

logger = logging.getLogger(__name__)


def list_seasons():
    try:
        return Season.query.order_by(Season.year.desc()).all()
    except SQLAlchemyError as exc:
        logger.exception("Failed to list seasons")
        raise UpstreamError() from exc


def get_season(season_id: int) -> Season:
    try:
        season = db.session.get(Season, season_id)
    except SQLAlchemyError as exc:
        logger.exception("Failed to load season %s", season_id)
        raise UpstreamError() from exc
    if season is None:
        raise NotFoundError("Season not found")
    return season


def get_season_by_year(year: int) -> Season:
    season = Season.query.filter_by(year=year).first()
    if season is None:
        raise NotFoundError(f"Season {year} not found")
    return season


def active_season() -> Season:
    try:
        season = Season.query.filter_by(is_active=True).first()
    except SQLAlchemyError as exc:
        logger.exception("Failed to load the active season")
        raise UpstreamError() from exc
    if season is None:
        raise NoActiveSeasonError()
    return season


def _validate_range(start_date, end_date):
    start, end = parse_date(start_date), parse_date(end_date)
    if start > end:
        raise ValidationError("start_date must be on or before end_date")
    return start, end


def create_season(year, name, start_date, end_date) -> Season:
    if not isinstance(year, int) or isinstance(year, bool) or not 1900 <= year <= 9999:
        raise ValidationError("year must be a four digit integer")
    name = (name or "").strip() or f"{year} Season"
    start, end = _validate_range(start_date, end_date)

    with atomic("create season", year=year):
        if Season.query.filter_by(year=year).first():
            raise AlreadyExistsError(f"Season {year} already exists")
        season = Season(year=year, name=name, start_date=start, end_date=end, is_active=False)
        db.session.add(season)

    logger.info("Created season %s (%s - %s)", year, start, end)
    return season


def update_season_dates(season_id: int, start_date, end_date) -> Season:
    start, end = _validate_range(start_date, end_date)
    with atomic("update season dates", season_id=season_id):
        season = get_season(season_id)
        season.start_date = start
        season.end_date = end
    return season


def _swap_active(season_id: int) -> Season:
    with atomic("activate season", season_id=season_id):
        # Lock every season row so concurrent swaps serialise on PostgreSQL
        seasons = db.session.execute(select(Season).with_for_update()).scalars().all()
        if not any(s.id == season_id for s in seasons):
            raise NotFoundError("Season not found")

        now = utcnow()
        db.session.execute(
            update(Season)
            .where(Season.id != season_id, Season.is_active.is_(True))
            .values(is_active=False, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        db.session.execute(
            update(Season)
            .where(Season.id == season_id)
            .values(is_active=True, updated_at=now)
            .execution_options(synchronize_session=False)
        )
    return get_season(season_id)


def set_active(season_id: int) -> Season:
    """Deactivate every other season and activate ``season_id`` in one commit."""
    try:
        season = _swap_active(season_id)
    except ConflictError:
        logger.warning("Season activation for %s raced another admin; retrying once", season_id)
        season = _swap_active(season_id)

    logger.info("Season %s is now active", season.year)
    return season


def deactivate_season(season_id: int) -> Season:
    with atomic("deactivate season", season_id=season_id):
        season = get_season(season_id)
        season.is_active = False
    return season


def delete_season(season_id: int):
    with atomic("delete season", season_id=season_id):
        season = get_season(season_id)
        year = season.year
        if season.is_active:
            raise ValidationError("Cannot delete the active season")

        # reservations always hang off a tee time, so tee times are the data to guard
        has_tee_times = select(TeeTime.id).where(TeeTime.season == year).exists()
        if db.session.scalar(select(has_tee_times)):
            raise ValidationError("Cannot delete season with existing data")

        if season.template is not None:
            db.session.delete(season.template)
            db.session.flush()
        result = db.session.execute(
            delete(Season)
            .where(Season.id == season_id, Season.is_active.is_(False), ~has_tee_times)
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount != 1:
            raise ValidationError("Cannot delete season with existing data")

    logger.info("Deleted season %s", year)
