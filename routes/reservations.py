from flask import Blueprint, request, jsonify, g

from routes.serializers import serialize_reservation
from security.rbac import ADMIN, is_admin, require_roles
from services import reservations
from services.errors import PermissionDeniedError, ValidationError
from utils.audit import log_event
from utils.auth_context import login_required
from utils.emailer import send_reservation_confirmation

reservation_bp = Blueprint("reservation", __name__, url_prefix="/reservations")


def _format_time(value):
    # 15:40 -> 3:40 PM
    return value.strftime("%I:%M %p").lstrip("0")


def _format_date(value):
    return f"{value.strftime('%B')} {value.day}, {value.year}"


def _confirmation_message(reservation):
    tee_time = reservation.tee_time
    players = "player" if reservation.slots == 1 else "players"
    return (
        f"Your tee time has been confirmed for {_format_date(tee_time.date)} "
        f"at {_format_time(tee_time.time)} with {reservation.slots} {players}."
    )


def _send_confirmation(reservation, message):
    ok, error = send_reservation_confirmation(g.user, reservation, message)
    log_event(
        "RESERVATION_CONFIRMATION_EMAIL",
        user_id=g.user.id,
        entity="reservation",
        entity_id=reservation.id,
        metadata={"sent": ok, "error": error},
    )


# ---------- PLAYERS: book a tee time ----------
@reservation_bp.post("")
@login_required
def create_reservation():
    data = request.get_json(silent=True) or {}
    tee_time_id = data.get("tee_time_id")
    if not isinstance(tee_time_id, int) or isinstance(tee_time_id, bool):
        raise ValidationError("tee_time_id must be an integer")

    # Members can only book for themselves
    user_id = data.get("user_id")
    if user_id is not None and user_id != g.user.id:
        raise PermissionDeniedError("You can only make reservations for yourself")

    result = reservations.admit(
        tee_time_id,
        g.user.id,
        data.get("slots"),
        player_names=data.get("player_names"),
        play_for_money=data.get("play_for_money"),
        idempotency_key=data.get("idempotency_key") or request.headers.get("Idempotency-Key"),
    )

    if not result.admitted:
        log_event(
            "RESERVATION_REJECTED",
            user_id=g.user.id,
            entity="tee_time",
            entity_id=tee_time_id,
            metadata={"reason": result.reason, "requested": data.get("slots"),
                      "available_slots": result.available_slots},
        )
        return jsonify(
            error=result.message,
            reason=result.reason,
            available_slots=result.available_slots,
        ), 409

    reservation = result.reservation
    message = _confirmation_message(reservation)
    if result.replayed:
        return jsonify(
            reservation=serialize_reservation(reservation),
            confirmation_message=message,
            replayed=True,
        ), 200

    log_event("RESERVATION_CREATE", user_id=g.user.id, entity="reservation", entity_id=reservation.id,
              metadata={"tee_time_id": tee_time_id, "slots": reservation.slots})
    _send_confirmation(reservation, message)

    return jsonify(
        reservation=serialize_reservation(reservation),
        confirmation_message=message,
        available_slots=result.available_slots,
    ), 201


# ---------- PLAYERS / ADMIN: cancel ----------
@reservation_bp.delete("/<int:reservation_id>")
@login_required
def cancel_reservation(reservation_id: int):
    cancelled = reservations.cancel_reservation(reservation_id, g.user.id, is_admin(g.user))

    action = "RESERVATION_CANCEL" if cancelled.user_id == g.user.id else "ADMIN_RESERVATION_CANCEL"
    log_event(action, user_id=g.user.id, entity="reservation", entity_id=cancelled.id,
              metadata={"tee_time_id": cancelled.tee_time_id, "slots": cancelled.slots})
    return jsonify(message="Reservation cancelled"), 200


# ---------- PLAYERS: view my reservations ----------
@reservation_bp.get("/me")
@login_required
def my_reservations():
    rows = reservations.list_user_reservations(g.user.id)
    return jsonify([serialize_reservation(r) for r in rows]), 200


# ---------- ADMIN: list all reservations ----------
@reservation_bp.get("")
@require_roles(ADMIN)
def list_all_reservations():
    rows = reservations.list_all_reservations()
    return jsonify([serialize_reservation(r, include_user=True) for r in rows]), 200
