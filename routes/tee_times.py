from flask import Blueprint, request, jsonify, g

from routes.serializers import serialize_availability
from security.rbac import ADMIN, require_roles
from services import availability, tee_times
from utils.audit import log_event
from utils.auth_context import login_required

tee_time_bp = Blueprint("tee_time", __name__, url_prefix="/tee-times")


# ---------- PLAYERS: view availability ----------
@tee_time_bp.get("")
@login_required
def availability_for_date():
    date_str = request.args.get("date")
    if not date_str:
        return jsonify(error="date is required. Use YYYY-MM-DD"), 400

    rows = availability.get_availability_for_date(date_str)
    return jsonify([serialize_availability(tt, av) for tt, av in rows]), 200


@tee_time_bp.get("/dates")
@login_required
def upcoming_dates():
    return jsonify([d.isoformat() for d in tee_times.upcoming_dates()]), 200


# ---------- ADMIN: manage tee times ----------
@tee_time_bp.get("/range")
@require_roles(ADMIN)
def tee_times_in_range():
    start = request.args.get("start")
    end = request.args.get("end")
    if not start or not end:
        return jsonify(error="start and end are required. Use YYYY-MM-DD"), 400

    rows = availability.get_availability_for_range(start, end)
    return jsonify([serialize_availability(tt, av) for tt, av in rows]), 200


@tee_time_bp.post("")
@require_roles(ADMIN)
def create_manual_tee_times():
    data = request.get_json(silent=True) or {}
    date_str = data.get("date")
    if not date_str:
        return jsonify(error="date is required"), 400

    result = tee_times.create_manual_tee_times(date_str, data.get("times"), data.get("max_slots"))
    if not result.created:
        return jsonify(error=result.message, skipped=result.skipped), 409

    log_event("TEE_TIME_CREATE", user_id=g.user.id, entity="tee_time", entity_id=date_str,
              metadata={"created": result.created, "skipped": result.skipped})
    return jsonify(message=result.message, created=result.created, skipped=result.skipped), 201


@tee_time_bp.delete("/<int:tee_time_id>")
@require_roles(ADMIN)
def delete_tee_time(tee_time_id: int):
    tee_times.delete_tee_time(tee_time_id)
    log_event("TEE_TIME_DELETE", user_id=g.user.id, entity="tee_time", entity_id=tee_time_id)
    return jsonify(message="Tee time deleted"), 200


@tee_time_bp.post("/<int:tee_time_id>/availability")
@require_roles(ADMIN)
def set_availability(tee_time_id: int):
    data = request.get_json(silent=True) or {}
    tee_time = tee_times.set_tee_time_available(tee_time_id, data.get("is_available"))
    log_event("TEE_TIME_TOGGLE", user_id=g.user.id, entity="tee_time", entity_id=tee_time_id,
              metadata={"is_available": tee_time.is_available})
    return jsonify(id=tee_time.id, is_available=tee_time.is_available), 200
