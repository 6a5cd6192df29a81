import threading
from datetime import datetime, timedelta, timezone

import pytest

from models import db
from models.reservation import Reservation
from models.tee_time import TeeTime
from services import reservations
from services.errors import ConflictError, LeagueError, NotFoundError, ValidationError
from security.rbac import PLAYER

from conftest import NOW, make_tee_time, make_user


def admit(tee_time, user, slots=1, **kwargs):
    kwargs.setdefault("player_names", [f"Guest {i}" for i in range(1, slots)])
    kwargs.setdefault("play_for_money", [False] * slots)
    kwargs.setdefault("now", NOW)
    return reservations.admit(tee_time.id, user.id, slots, **kwargs)


def reserved_slots(tee_time_id):
    return sum(r.slots for r in Reservation.query.filter_by(tee_time_id=tee_time_id).all())


def test_admits_within_capacity(tee_time, player):
    result = admit(tee_time, player, slots=2, play_for_money=[True, False])

    assert result.admitted
    assert result.available_slots == 2
    assert result.reservation.player_names == ["Guest 1"]
    assert result.reservation.play_for_money == [True, False]
    assert reserved_slots(tee_time.id) == 2


def test_rejects_more_than_remaining_capacity(tee_time, player):
    assert admit(tee_time, player, slots=3).admitted

    result = admit(tee_time, player, slots=2)

    assert not result.admitted
    assert result.reason == reservations.INSUFFICIENT_CAPACITY
    assert result.available_slots == 1
    assert result.message.endswith("Only 1 slot available.")
    assert reserved_slots(tee_time.id) == 3


def test_window_boundaries(tee_time, player):
    closes = tee_time.booking_closes_at
    opens = tee_time.booking_opens_at

    at_close = admit(tee_time, player, now=closes)
    assert at_close.reason == reservations.OUTSIDE_BOOKING_WINDOW

    before_open = admit(tee_time, player, now=opens - timedelta(seconds=1))
    assert before_open.reason == reservations.OUTSIDE_BOOKING_WINDOW

    assert admit(tee_time, player, now=closes - timedelta(seconds=1)).admitted
    assert admit(tee_time, player, now=opens).admitted


def test_disabled_tee_time_is_rejected(ctx, player):
    tee_time = make_tee_time(is_available=False)
    result = admit(tee_time, player)
    assert result.reason == reservations.INSTANCE_DISABLED
    assert result.available_slots == 4


def test_window_is_checked_before_capacity(tee_time, player):
    result = admit(tee_time, player, slots=5, now=tee_time.booking_closes_at)
    assert result.reason == reservations.OUTSIDE_BOOKING_WINDOW


def test_sequential_full_bookings_admit_exactly_one(tee_time, player):
    results = [admit(tee_time, player, slots=4) for _ in range(5)]

    assert sum(r.admitted for r in results) == 1
    rejected = [r for r in results if not r.admitted]
    assert all(r.reason == reservations.INSUFFICIENT_CAPACITY for r in rejected)
    assert all(r.available_slots == 0 for r in rejected)
    assert reserved_slots(tee_time.id) == 4


def test_concurrent_full_bookings_never_overbook(app, tee_time):
    users = [make_user(f"racer{i}@example.com", PLAYER) for i in range(4)]
    tee_time_id = tee_time.id
    outcomes = []
    barrier = threading.Barrier(len(users))

    def book(user_id):
        with app.app_context():
            barrier.wait()
            try:
                outcomes.append(reservations.admit(
                    tee_time_id, user_id, 4,
                    player_names=["A", "B", "C"], play_for_money=[False] * 4, now=NOW,
                ))
            except LeagueError as exc:
                outcomes.append(exc)
            finally:
                db.session.remove()

    threads = [threading.Thread(target=book, args=(u.id,)) for u in users]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    admitted = [o for o in outcomes if getattr(o, "admitted", False)]
    assert len(outcomes) == len(users)
    assert len(admitted) == 1
    rejected = [o for o in outcomes if not getattr(o, "admitted", False)]
    assert all(getattr(o, "reason", None) == reservations.INSUFFICIENT_CAPACITY for o in rejected)
    db.session.expire_all()
    assert reserved_slots(tee_time_id) == 4


def test_concurrent_single_slot_bookings_fill_exactly(app, tee_time):
    tee_time_id = tee_time.id
    user_ids = [make_user(f"golfer{i}@example.com", PLAYER).id for i in range(10)]
    outcomes = []
    barrier = threading.Barrier(len(user_ids))

    def book(user_id):
        with app.app_context():
            barrier.wait()
            try:
                outcomes.append(reservations.admit(tee_time_id, user_id, 1, now=NOW))
            except LeagueError as exc:
                outcomes.append(exc)
            finally:
                db.session.remove()

    threads = [threading.Thread(target=book, args=(u,)) for u in user_ids]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(outcomes) == 10
    assert all(isinstance(o, reservations.AdmissionResult) for o in outcomes)
    admitted = [o for o in outcomes if o.admitted]
    rejected = [o for o in outcomes if not o.admitted]
    assert len(admitted) == 4
    assert all(o.reason == reservations.INSUFFICIENT_CAPACITY for o in rejected)
    assert all(o.available_slots == 0 for o in rejected)
    db.session.expire_all()
    assert reserved_slots(tee_time_id) == 4


def test_stale_snapshot_claims_while_room_remains(tee_time):
    first = reservations.take_snapshot(tee_time.id, NOW)
    second = reservations.take_snapshot(tee_time.id, NOW)

    assert reservations.claim_capacity(first, 2) is True
    assert reservations.claim_capacity(second, 2) is True
    db.session.rollback()


def test_claim_rechecks_availability_and_window(tee_time):
    snapshot = reservations.take_snapshot(tee_time.id, NOW)
    tee_time.is_available = False
    db.session.flush()
    assert reservations.claim_capacity(snapshot, 1) is False
    db.session.rollback()

    late = reservations.take_snapshot(tee_time.id, tee_time.booking_closes_at)
    assert reservations.claim_capacity(late, 1) is False
    db.session.rollback()


def test_capacity_taken_after_snapshot_is_rejected_with_reason(tee_time, player, admin, monkeypatch):
    real_snapshot = reservations.take_snapshot
    taken = []

    def snapshot_then_fill(tee_time_id, now):
        snapshot = real_snapshot(tee_time_id, now)
        if not taken:
            taken.append(True)
            db.session.add(Reservation(tee_time_id=tee_time_id, user_id=admin.id, slots=3,
                                       player_names=["A", "B"], play_for_money=[False] * 3))
            db.session.flush()
        return snapshot

    monkeypatch.setattr(reservations, "take_snapshot", snapshot_then_fill)

    result = admit(tee_time, player, slots=2)

    assert not result.admitted
    assert result.reason == reservations.INSUFFICIENT_CAPACITY
    assert result.available_slots == 1


def test_claim_rechecks_capacity_in_sql(tee_time, player):
    snapshot = reservations.take_snapshot(tee_time.id, NOW)
    db.session.add(Reservation(tee_time_id=tee_time.id, user_id=player.id, slots=3,
                               player_names=["A", "B"], play_for_money=[False] * 3))
    db.session.flush()

    assert reservations.claim_capacity(snapshot, 2) is False
    assert reservations.claim_capacity(snapshot, 1) is True
    db.session.rollback()


def test_lost_race_is_retried_once(tee_time, player, monkeypatch):
    real_claim = reservations.claim_capacity
    calls = []

    def flaky_claim(snapshot, slots):
        calls.append(snapshot.tee_time.id)
        if len(calls) == 1:
            return False
        return real_claim(snapshot, slots)

    monkeypatch.setattr(reservations, "claim_capacity", flaky_claim)

    assert admit(tee_time, player, slots=2).admitted
    assert len(calls) == 2
    assert reserved_slots(tee_time.id) == 2


def test_second_lost_race_surfaces_conflict(tee_time, player, monkeypatch):
    monkeypatch.setattr(reservations, "claim_capacity", lambda snapshot, slots: False)

    with pytest.raises(ConflictError):
        admit(tee_time, player, slots=2)
    assert reserved_slots(tee_time.id) == 0


def test_idempotency_key_replays_the_same_reservation(tee_time, player):
    first = admit(tee_time, player, slots=2, idempotency_key="abc-123")
    again = admit(tee_time, player, slots=2, idempotency_key="abc-123")

    assert first.admitted and not first.replayed
    assert again.admitted and again.replayed
    assert again.reservation.id == first.reservation.id
    assert reserved_slots(tee_time.id) == 2


def test_idempotency_key_is_bound_to_one_tee_time(ctx, player):
    tee_time = make_tee_time()
    other = make_tee_time(at=tee_time.time.replace(minute=50))
    admit(tee_time, player, idempotency_key="key-1")

    with pytest.raises(ValidationError):
        admit(other, player, idempotency_key="key-1")


@pytest.mark.parametrize("slots, names, money", [
    (0, [], []),
    (True, [], [True]),
    ("2", ["A"], [False, False]),
    (2, [], [False, False]),
    (2, ["A", "B"], [False, False]),
    (2, [""], [False, False]),
    (2, ["A"], [False]),
    (2, ["A"], ["yes", False]),
])
def test_rejects_malformed_requests(tee_time, player, slots, names, money):
    with pytest.raises(ValidationError):
        reservations.admit(tee_time.id, player.id, slots, player_names=names,
                           play_for_money=money, now=NOW)


def test_play_for_money_defaults_to_no(tee_time, player):
    result = reservations.admit(tee_time.id, player.id, 2, player_names=["A"], now=NOW)
    assert result.reservation.play_for_money == [False, False]


def test_unknown_tee_time(ctx, player):
    with pytest.raises(NotFoundError):
        reservations.admit(404, player.id, 1, now=NOW)


def test_owner_cancel_frees_capacity(tee_time, player):
    booked = admit(tee_time, player, slots=4)
    version = db.session.get(TeeTime, tee_time.id).version

    cancelled = reservations.cancel_reservation(booked.reservation.id, player.id)

    assert cancelled.slots == 4
    assert reserved_slots(tee_time.id) == 0
    db.session.expire_all()
    assert db.session.get(TeeTime, tee_time.id).version == version + 1
    assert admit(tee_time, player, slots=4).admitted


def test_cancel_by_stranger_is_not_found(tee_time, player, admin):
    stranger = make_user("stranger@example.com", PLAYER)
    booked = admit(tee_time, player)

    with pytest.raises(NotFoundError):
        reservations.cancel_reservation(booked.reservation.id, stranger.id)

    reservations.cancel_reservation(booked.reservation.id, admin.id, requester_is_admin=True)
    assert reserved_slots(tee_time.id) == 0


def test_lists(tee_time, player, admin):
    admit(tee_time, player)
    admit(tee_time, admin, slots=2)

    mine = reservations.list_user_reservations(player.id)
    assert [r.user_id for r in mine] == [player.id]
    assert len(reservations.list_all_reservations()) == 2


def test_aware_now_is_normalized(tee_time, player):
    aware = datetime(2025, 5, 10, 12, 0, tzinfo=timezone.utc)
    assert admit(tee_time, player, now=aware).admitted
