"""Reservation admission and cancellation.

``admit`` is the only code path that writes a reservation. Within a single
transaction it loads the tee time (row-locked where the store supports it),
recomputes availability from the committed reservations, decides, and then
claims capacity with one conditional UPDATE that re-checks availability, the
booking window and the remaining capacity in SQL. If that UPDATE matches no
row, the request is judged again against what is committed now: a request
that no longer fits is rejected with its reason, anything else is rolled back
and the whole admission is retried once from a fresh read.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import func, or_, select, update
from sqlalchemy.orm import joinedload

from models import db
from models.reservation import Reservation
from models.tee_time import TeeTime
from services.availability import OPEN, Availability, compute_availability
from services.errors import ConflictError, NotFoundError, ValidationError
from services.tee_times import bump_version, get_tee_time
from services.transaction import atomic
from utils.clock import to_naive_utc, utcnow

logger = logging.getLogger(__name__)

OUTSIDE_BOOKING_WINDOW = "OUTSIDE_BOOKING_WINDOW"
INSTANCE_DISABLED = "INSTANCE_DISABLED"
INSUFFICIENT_CAPACITY = "INSUFFICIENT_CAPACITY"

REJECTION_MESSAGES = {
    OUTSIDE_BOOKING_WINDOW: "Booking is not open for this tee time",
    INSTANCE_DISABLED: "This tee time is not available for booking",
    INSUFFICIENT_CAPACITY: "Not enough available slots",
}

IDEMPOTENCY_KEY_MAX = 64


@dataclass(frozen=True)
class AdmissionRequest:
    tee_time_id: int
    user_id: int
    slots: int
    player_names: list
    play_for_money: list
    idempotency_key: Optional[str] = None


@dataclass(frozen=True)
class AdmissionResult:
    reservation: Optional[Reservation]
    reason: Optional[str]
    available_slots: int
    replayed: bool = False

    @property
    def admitted(self) -> bool:
        return self.reservation is not None

    @property
    def message(self) -> str:
        if self.admitted:
            return "Reservation confirmed"
        msg = REJECTION_MESSAGES[self.reason]
        if self.reason == INSUFFICIENT_CAPACITY:
            noun = "slot" if self.available_slots == 1 else "slots"
            msg += f". Only {self.available_slots} {noun} available."
        return msg


@dataclass(frozen=True)
class CapacitySnapshot:
    tee_time: TeeTime
    now: datetime
    availability: Availability


@dataclass(frozen=True)
class CancelledReservation:
    id: int
    tee_time_id: int
    user_id: int
    slots: int


def validate_request(tee_time_id, user_id, slots, player_names, play_for_money,
                     idempotency_key=None) -> AdmissionRequest:
    if not isinstance(slots, int) or isinstance(slots, bool) or slots < 1:
        raise ValidationError("slots must be a positive integer")

    player_names = [] if player_names is None else player_names
    if not isinstance(player_names, list) or not all(isinstance(n, str) and n.strip() for n in player_names):
        raise ValidationError("player_names must be a list of names")
    if len(player_names) != slots - 1:
        raise ValidationError(f"player_names must list {slots - 1} additional players")

    play_for_money = [False] * slots if play_for_money is None else play_for_money
    if not isinstance(play_for_money, list) or not all(isinstance(p, bool) for p in play_for_money):
        raise ValidationError("play_for_money must be a list of true/false values")
    if len(play_for_money) != slots:
        raise ValidationError(f"play_for_money must have {slots} entries")

    if idempotency_key is not None:
        if not isinstance(idempotency_key, str) or not 0 < len(idempotency_key.strip()) <= IDEMPOTENCY_KEY_MAX:
            raise ValidationError(f"idempotency_key must be 1-{IDEMPOTENCY_KEY_MAX} characters")
        idempotency_key = idempotency_key.strip()

    return AdmissionRequest(
        tee_time_id=tee_time_id,
        user_id=user_id,
        slots=slots,
        player_names=[n.strip() for n in player_names],
        play_for_money=list(play_for_money),
        idempotency_key=idempotency_key,
    )


def decide(tee_time, availability: Availability, requested_slots: int) -> Optional[str]:
    """Return the rejection reason for a request, or None when it may be admitted."""
    if availability.booking_status != OPEN:
        return OUTSIDE_BOOKING_WINDOW
    if not tee_time.is_available:
        return INSTANCE_DISABLED
    if requested_slots > availability.available_slots:
        return INSUFFICIENT_CAPACITY
    return None


def take_snapshot(tee_time_id: int, now) -> CapacitySnapshot:
    tee_time = db.session.execute(
        select(TeeTime)
        .where(TeeTime.id == tee_time_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()
    if tee_time is None:
        raise NotFoundError("Tee time not found")

    reservations = Reservation.query.filter_by(tee_time_id=tee_time_id).all()
    return CapacitySnapshot(
        tee_time=tee_time,
        now=now,
        availability=compute_availability(tee_time, reservations, now),
    )


def claim_capacity(snapshot: CapacitySnapshot, slots: int) -> bool:
    """Bump the tee time's version if it is still bookable at ``snapshot.now``
    and the committed reservations still leave room for ``slots``."""
    tee_time_id = snapshot.tee_time.id
    now = snapshot.now
    reserved = (
        select(func.coalesce(func.sum(Reservation.slots), 0))
        .where(Reservation.tee_time_id == tee_time_id)
        .scalar_subquery()
    )
    result = db.session.execute(
        update(TeeTime)
        .where(
            TeeTime.id == tee_time_id,
            TeeTime.is_available.is_(True),
            or_(TeeTime.booking_opens_at.is_(None), TeeTime.booking_opens_at <= now),
            or_(TeeTime.booking_closes_at.is_(None), TeeTime.booking_closes_at > now),
            TeeTime.max_slots >= reserved + slots,
        )
        .values(version=TeeTime.version + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def _find_replay(request: AdmissionRequest):
    if request.idempotency_key is None:
        return None
    existing = Reservation.query.filter_by(
        user_id=request.user_id, idempotency_key=request.idempotency_key
    ).first()
    if existing is not None and existing.tee_time_id != request.tee_time_id:
        raise ValidationError("idempotency_key was already used for a different tee time")
    return existing


def _admit_once(request: AdmissionRequest, now) -> AdmissionResult:
    with atomic("admit reservation", tee_time_id=request.tee_time_id, user_id=request.user_id):
        replay = _find_replay(request)
        snapshot = take_snapshot(request.tee_time_id, now)
        availability = snapshot.availability

        if replay is not None:
            return AdmissionResult(replay, None, availability.available_slots, replayed=True)

        reason = decide(snapshot.tee_time, availability, request.slots)
        if reason is not None:
            return AdmissionResult(None, reason, availability.available_slots)

        if not claim_capacity(snapshot, request.slots):
            current = take_snapshot(request.tee_time_id, now)
            reason = decide(current.tee_time, current.availability, request.slots)
            if reason is not None:
                return AdmissionResult(None, reason, current.availability.available_slots)
            raise ConflictError()

        reservation = Reservation(
            tee_time_id=request.tee_time_id,
            user_id=request.user_id,
            slots=request.slots,
            player_names=request.player_names,
            play_for_money=request.play_for_money,
            idempotency_key=request.idempotency_key,
        )
        db.session.add(reservation)
        db.session.flush()
        remaining = take_snapshot(request.tee_time_id, now).availability.available_slots

    return AdmissionResult(reservation, None, remaining)


def admit(tee_time_id, user_id, slots, player_names=None, play_for_money=None,
          idempotency_key=None, now=None) -> AdmissionResult:
    """Admit or reject a booking request.

    Business-rule rejections come back as a result carrying the reason and the
    current ``available_slots``; malformed input raises ``ValidationError`` and
    an unknown tee time ``NotFoundError``. A lost race is retried once before
    ``ConflictError`` is raised.
    """
    get_tee_time(tee_time_id)
    request = validate_request(tee_time_id, user_id, slots, player_names, play_for_money, idempotency_key)
    now = to_naive_utc(now) if now is not None else utcnow()

    try:
        result = _admit_once(request, now)
    except ConflictError:
        logger.warning("Admission for tee time %s lost a race; retrying once", tee_time_id)
        result = _admit_once(request, now)

    if result.admitted:
        logger.info(
            "Admitted %s slots on tee time %s for user %s%s",
            request.slots, tee_time_id, user_id, " (replayed)" if result.replayed else "",
        )
    else:
        logger.info(
            "Rejected %s slots on tee time %s for user %s: %s (available=%s)",
            request.slots, tee_time_id, user_id, result.reason, result.available_slots,
        )
    return result


def cancel_reservation(reservation_id: int, requester_id: int, requester_is_admin=False) -> CancelledReservation:
    """Delete a reservation if the requester owns it or is an admin."""
    with atomic("cancel reservation", reservation_id=reservation_id, requester_id=requester_id):
        reservation = db.session.get(Reservation, reservation_id)
        if reservation is None or (reservation.user_id != requester_id and not requester_is_admin):
            raise NotFoundError("Reservation not found")

        cancelled = CancelledReservation(
            id=reservation.id,
            tee_time_id=reservation.tee_time_id,
            user_id=reservation.user_id,
            slots=reservation.slots,
        )
        db.session.delete(reservation)
        db.session.flush()
        bump_version(cancelled.tee_time_id)

    logger.info("Cancelled reservation %s (%s slots on tee time %s)",
                cancelled.id, cancelled.slots, cancelled.tee_time_id)
    return cancelled


def list_user_reservations(user_id: int):
    return (
        Reservation.query
        .options(joinedload(Reservation.tee_time))
        .filter_by(user_id=user_id)
        .order_by(Reservation.created_at.desc())
        .all()
    )


def list_all_reservations(limit=200):
    return (
        Reservation.query
        .options(joinedload(Reservation.tee_time), joinedload(Reservation.user))
        .order_by(Reservation.created_at.desc())
        .limit(limit)
        .all()
    )
