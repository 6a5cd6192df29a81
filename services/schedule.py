"""Weekly schedule templates and their expansion into dated tee times."""
import logging
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from models import db
from models.schedule_template import ScheduleTemplate
from models.tee_time import TeeTime
from services.booking_window import (
    format_time, get_zone, parse_time, validate_offsets, window_for_template,
)
from services.errors import (
    ConflictError, EmptyScheduleError, NotFoundError, UpstreamError, ValidationError,
)
from services.seasons import get_season
from services.transaction import atomic
from utils.clock import to_naive_utc

logger = logging.getLogger(__name__)

# day_of_week uses 0 = Sunday ... 6 = Saturday
WEEKDAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")

MAX_SLOTS_LIMIT = 100


@dataclass(frozen=True)
class GenerationResult:
    created: int
    updated: int
    weeks: int

    @property
    def message(self):
        return (
            f"Generated {self.created} new tee times and updated {self.updated} "
            f"existing ones across {self.weeks} weeks."
        )


def iter_weekday_dates(start, end, day_of_week):
    """Yield every date in ``[start, end]`` falling on ``day_of_week``."""
    python_weekday = (day_of_week + 6) % 7
    current = start + timedelta(days=(python_weekday - start.weekday()) % 7)
    while current <= end:
        yield current
        current += timedelta(days=7)


class ScheduleExpansion:
    """Lazy ``(date, time)`` pairs for a template over a date range.

    Ordered by date, then time. Iterating again starts over.
    """

    def __init__(self, template, start, end):
        self.day_of_week = template.day_of_week
        self.slots = sorted(parse_time(s) for s in template.time_slots)
        self.start = start
        self.end = end

    def dates(self):
        return list(iter_weekday_dates(self.start, self.end, self.day_of_week))

    def __iter__(self):
        for day in iter_weekday_dates(self.start, self.end, self.day_of_week):
            for slot in self.slots:
                yield day, slot


def expand(template, start, end) -> ScheduleExpansion:
    return ScheduleExpansion(template, start, end)


def _int_field(data, name, default, minimum=None, maximum=None):
    value = data.get(name, default)
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValidationError(f"{name} must be an integer")
    if minimum is not None and value < minimum:
        raise ValidationError(f"{name} must be at least {minimum}")
    if maximum is not None and value > maximum:
        raise ValidationError(f"{name} must be at most {maximum}")
    return value


def normalize_time_slots(slots):
    if not isinstance(slots, list) or not slots:
        raise ValidationError("time_slots must be a non-empty list")

    parsed = [parse_time(s) for s in slots]
    if any(t.second for t in parsed):
        raise ValidationError("time_slots must be whole minutes (HH:MM)")
    if len(set(parsed)) != len(parsed):
        raise ValidationError("time_slots must not contain duplicates")
    return [format_time(t) for t in sorted(parsed)]


def validate_template_fields(data: dict) -> dict:
    cfg = current_app.config

    day_of_week = _int_field(data, "day_of_week", None, 0, 6)
    time_slots = normalize_time_slots(data.get("time_slots"))
    max_slots = _int_field(data, "max_slots", cfg.get("DEFAULT_MAX_SLOTS", 4), 1, MAX_SLOTS_LIMIT)

    opens_days = data.get("booking_opens_days_before", cfg.get("DEFAULT_BOOKING_OPENS_DAYS_BEFORE", 7))
    closes_days = data.get("booking_closes_days_before", cfg.get("DEFAULT_BOOKING_CLOSES_DAYS_BEFORE", 2))
    validate_offsets(opens_days, closes_days)

    opens_time = parse_time(data.get("booking_opens_time", cfg.get("DEFAULT_BOOKING_OPENS_TIME", "21:00")))
    closes_time = parse_time(data.get("booking_closes_time", cfg.get("DEFAULT_BOOKING_CLOSES_TIME", "18:00")))

    tz_name = data.get("timezone") or cfg.get("LEAGUE_TIMEZONE", "America/New_York")
    get_zone(tz_name)

    return {
        "day_of_week": day_of_week,
        "time_slots": time_slots,
        "max_slots": max_slots,
        "booking_opens_days_before": opens_days,
        "booking_opens_time": format_time(opens_time),
        "booking_closes_days_before": closes_days,
        "booking_closes_time": format_time(closes_time),
        "timezone": tz_name,
    }


def get_template(season_id: int):
    try:
        return ScheduleTemplate.query.filter_by(season_id=season_id).first()
    except SQLAlchemyError as exc:
        logger.exception("Failed to load template for season %s", season_id)
        raise UpstreamError() from exc


def save_template(season_id: int, data: dict) -> ScheduleTemplate:
    """Create or update the season's template."""
    fields = validate_template_fields(data)

    with atomic("save template", season_id=season_id):
        get_season(season_id)
        template = ScheduleTemplate.query.filter_by(season_id=season_id).first()
        if template is None:
            template = ScheduleTemplate(season_id=season_id)
            db.session.add(template)
        for name, value in fields.items():
            setattr(template, name, value)

    logger.info(
        "Saved template for season %s: %s %s",
        season_id, WEEKDAY_NAMES[fields["day_of_week"]], ", ".join(fields["time_slots"]),
    )
    return template


def _generate(season_id: int) -> GenerationResult:
    with atomic("generate schedule", season_id=season_id):
        season = get_season(season_id)

        # Holding the template row serialises regeneration for a season
        template = db.session.execute(
            select(ScheduleTemplate)
            .where(ScheduleTemplate.season_id == season_id)
            .with_for_update()
        ).scalar_one_or_none()
        if template is None:
            raise NotFoundError("No template found for this season. Save a template first.")

        expansion = expand(template, season.start_date, season.end_date)
        dates = expansion.dates()
        if not dates:
            raise EmptyScheduleError()

        existing = {
            (tt.date, tt.time): tt
            for tt in TeeTime.query.filter(TeeTime.date.in_(dates)).all()
        }
        windows = {}
        created = updated = 0

        for day, slot in expansion:
            if day not in windows:
                windows[day] = window_for_template(template, day)
            window = windows[day]

            tee_time = existing.get((day, slot))
            if tee_time is None:
                tee_time = TeeTime(date=day, time=slot)
                db.session.add(tee_time)
                created += 1
            else:
                tee_time.version = TeeTime.version + 1
                updated += 1

            tee_time.season = season.year
            tee_time.max_slots = template.max_slots
            tee_time.is_available = True
            tee_time.booking_opens_at = to_naive_utc(window.opens_at)
            tee_time.booking_closes_at = to_naive_utc(window.closes_at)

    return GenerationResult(created=created, updated=updated, weeks=len(dates))


def generate_schedule_from_template(season_id: int) -> GenerationResult:
    """Upsert one tee time per ``(date, time)`` the season's template produces.

    Existing rows keep their identity and reservations; only capacity, season
    and booking window are refreshed, and they are re-enabled.
    """
    try:
        result = _generate(season_id)
    except ConflictError:
        logger.warning("Schedule generation for season %s raced another run; retrying once", season_id)
        result = _generate(season_id)

    logger.info("Season %s schedule: %s", season_id, result.message)
    return result
