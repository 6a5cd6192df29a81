from datetime import date, datetime, time, timezone

import pytest

from services.booking_window import (
    compute_window, local_to_utc, parse_date, parse_time, validate_offsets,
)
from services.errors import ValidationError

NY = "America/New_York"


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


def test_summer_window_uses_daylight_offset():
    window = compute_window("2025-05-15", 7, "21:00", 2, "18:00", NY)

    # 2025-05-08 21:00 EDT, 2025-05-13 18:00 EDT
    assert window.opens_at == utc(2025, 5, 9, 1, 0)
    assert window.closes_at == utc(2025, 5, 13, 22, 0)
    assert window.as_iso() == ("2025-05-09T01:00:00Z", "2025-05-13T22:00:00Z")


def test_winter_window_uses_standard_offset():
    window = compute_window("2025-01-15", 7, "21:00", 2, "18:00", NY)

    assert window.opens_at == utc(2025, 1, 9, 2, 0)
    assert window.closes_at == utc(2025, 1, 13, 23, 0)


def test_window_straddling_spring_forward_gets_offset_per_end():
    # DST starts 2025-03-09 in New York
    window = compute_window(date(2025, 3, 12), 7, "21:00", 2, "18:00", NY)

    assert window.opens_at == utc(2025, 3, 6, 2, 0)
    assert window.closes_at == utc(2025, 3, 10, 22, 0)


def test_seconds_form_matches_minutes_form():
    short = compute_window("2025-06-06", 7, "21:00", 2, "18:00", NY)
    long = compute_window("2025-06-06", 7, "21:00:00", 2, "18:00:00", NY)
    assert short == long


def test_nonexistent_wall_time_resolves_with_pre_transition_offset():
    assert local_to_utc(date(2025, 3, 9), "02:30", NY) == utc(2025, 3, 9, 7, 30)


def test_repeated_wall_time_resolves_to_first_occurrence():
    assert local_to_utc(date(2025, 11, 2), "01:30", NY) == utc(2025, 11, 2, 5, 30)


def test_other_zone():
    window = compute_window("2025-07-04", 3, "08:00", 1, "08:00", "Europe/London")
    assert window.opens_at == utc(2025, 7, 1, 7, 0)
    assert window.closes_at == utc(2025, 7, 3, 7, 0)


@pytest.mark.parametrize("opens, closes", [(2, 2), (1, 2), (-1, 0), (7, -1), ("7", 2), (True, 0)])
def test_rejects_bad_offsets(opens, closes):
    with pytest.raises(ValidationError):
        validate_offsets(opens, closes)


def test_rejects_unknown_timezone():
    with pytest.raises(ValidationError):
        compute_window("2025-05-15", 7, "21:00", 2, "18:00", "Mars/Olympus_Mons")


@pytest.mark.parametrize("value", ["24:00", "9pm", "12:60", "", None, "12:00:61"])
def test_parse_time_rejects_garbage(value):
    with pytest.raises(ValidationError):
        parse_time(value)


def test_parse_time_accepts_both_forms():
    assert parse_time("7:05") == time(7, 5)
    assert parse_time("15:40:30") == time(15, 40, 30)


def test_parse_date():
    assert parse_date("2025-05-23") == date(2025, 5, 23)
    assert parse_date(datetime(2025, 5, 23, 10, 0)) == date(2025, 5, 23)
    with pytest.raises(ValidationError):
        parse_date("05/23/2025")
