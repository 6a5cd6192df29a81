from datetime import date, datetime, time
from types import SimpleNamespace

import pytest

from models import db
from models.reservation import Reservation
from models.tee_time import TeeTime
from services import schedule, seasons
from services.errors import EmptyScheduleError, NotFoundError, ValidationError

FRIDAY_TEMPLATE = {"day_of_week": 5, "time_slots": ["15:50", "15:40"], "max_slots": 4}


def all_tee_times():
    return TeeTime.query.order_by(TeeTime.date.asc(), TeeTime.time.asc()).all()


def test_iter_weekday_dates_uses_sunday_zero():
    sundays = list(schedule.iter_weekday_dates(date(2025, 6, 1), date(2025, 6, 15), 0))
    assert sundays == [date(2025, 6, 1), date(2025, 6, 8), date(2025, 6, 15)]

    saturdays = list(schedule.iter_weekday_dates(date(2025, 6, 1), date(2025, 6, 15), 6))
    assert saturdays == [date(2025, 6, 7), date(2025, 6, 14)]


def test_expansion_is_ordered_and_restartable():
    template = SimpleNamespace(day_of_week=5, time_slots=["15:50", "15:40"])
    expansion = schedule.expand(template, date(2025, 5, 23), date(2025, 5, 30))

    first = list(expansion)
    assert first == [
        (date(2025, 5, 23), time(15, 40)),
        (date(2025, 5, 23), time(15, 50)),
        (date(2025, 5, 30), time(15, 40)),
        (date(2025, 5, 30), time(15, 50)),
    ]
    assert list(expansion) == first


def test_save_template_normalizes_and_fills_defaults(season):
    template = schedule.save_template(season.id, FRIDAY_TEMPLATE)

    assert template.time_slots == ["15:40", "15:50"]
    assert template.booking_opens_days_before == 7
    assert template.booking_opens_time == "21:00"
    assert template.booking_closes_days_before == 2
    assert template.booking_closes_time == "18:00"
    assert template.timezone == "America/New_York"


def test_save_template_accepts_zero_seconds(season):
    template = schedule.save_template(season.id, dict(FRIDAY_TEMPLATE, time_slots=["15:50:00", "08:05"]))
    assert template.time_slots == ["08:05", "15:50"]


def test_save_template_updates_in_place(season):
    first = schedule.save_template(season.id, FRIDAY_TEMPLATE)
    second = schedule.save_template(season.id, dict(FRIDAY_TEMPLATE, max_slots=2))

    assert first.id == second.id
    assert second.max_slots == 2


@pytest.mark.parametrize("changes", [
    {"day_of_week": 7},
    {"day_of_week": None},
    {"time_slots": []},
    {"time_slots": ["15:40", "15:40:00"]},
    {"time_slots": ["15:40:30"]},
    {"time_slots": ["3:40pm"]},
    {"max_slots": 0},
    {"booking_opens_days_before": 2, "booking_closes_days_before": 2},
    {"timezone": "Nowhere/Special"},
])
def test_save_template_rejects_invalid_fields(season, changes):
    with pytest.raises(ValidationError):
        schedule.save_template(season.id, dict(FRIDAY_TEMPLATE, **changes))


def test_generates_every_friday_of_the_season(season):
    schedule.save_template(season.id, FRIDAY_TEMPLATE)

    result = schedule.generate_schedule_from_template(season.id)

    assert (result.created, result.updated, result.weeks) == (30, 0, 15)
    rows = all_tee_times()
    assert len(rows) == 30
    assert (rows[0].date, rows[0].time) == (date(2025, 5, 23), time(15, 40))
    assert (rows[-1].date, rows[-1].time) == (date(2025, 8, 29), time(15, 50))
    assert all(r.date.weekday() == 4 for r in rows)
    assert all(r.season == 2025 and r.max_slots == 4 and r.is_available for r in rows)

    # 2025-05-16 21:00 EDT and 2025-05-21 18:00 EDT
    assert rows[0].booking_opens_at == datetime(2025, 5, 17, 1, 0)
    assert rows[0].booking_closes_at == datetime(2025, 5, 21, 22, 0)


def test_regeneration_is_idempotent_and_keeps_reservations(season, player):
    schedule.save_template(season.id, FRIDAY_TEMPLATE)
    schedule.generate_schedule_from_template(season.id)

    first = all_tee_times()[0]
    first_id, first_version = first.id, first.version
    first.is_available = False
    db.session.add(Reservation(tee_time_id=first.id, user_id=player.id, slots=2,
                               player_names=["Guest"], play_for_money=[False, False]))
    db.session.commit()

    schedule.save_template(season.id, dict(FRIDAY_TEMPLATE, max_slots=6))
    result = schedule.generate_schedule_from_template(season.id)

    assert (result.created, result.updated) == (0, 30)
    rows = all_tee_times()
    assert len(rows) == 30
    refreshed = db.session.get(TeeTime, first_id)
    assert refreshed.max_slots == 6
    assert refreshed.is_available is True
    assert refreshed.version > first_version
    assert Reservation.query.filter_by(tee_time_id=first_id).count() == 1


def test_generation_with_no_matching_dates_is_a_noop(ctx):
    season = seasons.create_season(2030, None, "2030-05-01", "2030-05-03")  # Wed - Fri
    schedule.save_template(season.id, {"day_of_week": 0, "time_slots": ["08:00"]})

    with pytest.raises(EmptyScheduleError):
        schedule.generate_schedule_from_template(season.id)
    assert TeeTime.query.count() == 0


def test_generation_requires_a_template(season):
    with pytest.raises(NotFoundError):
        schedule.generate_schedule_from_template(season.id)


def test_generation_for_unknown_season(ctx):
    with pytest.raises(NotFoundError):
        schedule.generate_schedule_from_template(999)
