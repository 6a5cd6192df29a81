from flask import Blueprint, jsonify, g, request

from routes.serializers import serialize_season, serialize_template
from security.rbac import ADMIN, require_roles
from services import schedule, seasons
from services.errors import EmptyScheduleError
from utils.audit import log_event

season_bp = Blueprint("season", __name__, url_prefix="/seasons")


@season_bp.get("/active")
def get_active_season():
    season = seasons.active_season()
    return jsonify(serialize_season(season)), 200


# ---------- ADMIN: season lifecycle ----------
@season_bp.get("")
@require_roles(ADMIN)
def list_seasons():
    return jsonify([serialize_season(s) for s in seasons.list_seasons()]), 200


@season_bp.post("")
@require_roles(ADMIN)
def create_season():
    data = request.get_json(silent=True) or {}
    season = seasons.create_season(
        data.get("year"),
        data.get("name"),
        data.get("start_date"),
        data.get("end_date"),
    )
    log_event("SEASON_CREATE", user_id=g.user.id, entity="season", entity_id=season.id,
              metadata={"year": season.year})
    return jsonify(serialize_season(season)), 201


@season_bp.patch("/<int:season_id>")
@require_roles(ADMIN)
def update_season_dates(season_id: int):
    data = request.get_json(silent=True) or {}
    season = seasons.update_season_dates(season_id, data.get("start_date"), data.get("end_date"))
    log_event("SEASON_UPDATE", user_id=g.user.id, entity="season", entity_id=season_id,
              metadata={"start_date": season.start_date, "end_date": season.end_date})
    return jsonify(serialize_season(season)), 200


@season_bp.delete("/<int:season_id>")
@require_roles(ADMIN)
def delete_season(season_id: int):
    seasons.delete_season(season_id)
    log_event("SEASON_DELETE", user_id=g.user.id, entity="season", entity_id=season_id)
    return jsonify(message="Season deleted"), 200


@season_bp.post("/<int:season_id>/activate")
@require_roles(ADMIN)
def activate_season(season_id: int):
    season = seasons.set_active(season_id)
    log_event("SEASON_ACTIVATE", user_id=g.user.id, entity="season", entity_id=season_id)
    return jsonify(serialize_season(season)), 200


@season_bp.post("/<int:season_id>/deactivate")
@require_roles(ADMIN)
def deactivate_season(season_id: int):
    season = seasons.deactivate_season(season_id)
    log_event("SEASON_DEACTIVATE", user_id=g.user.id, entity="season", entity_id=season_id)
    return jsonify(serialize_season(season)), 200


# ---------- ADMIN: weekly template + generation ----------
@season_bp.get("/<int:season_id>/template")
@require_roles(ADMIN)
def get_template(season_id: int):
    seasons.get_season(season_id)
    template = schedule.get_template(season_id)
    if template is None:
        return jsonify(template=None), 200
    return jsonify(template=serialize_template(template)), 200


@season_bp.put("/<int:season_id>/template")
@require_roles(ADMIN)
def save_template(season_id: int):
    data = request.get_json(silent=True) or {}
    template = schedule.save_template(season_id, data)
    log_event("TEMPLATE_SAVE", user_id=g.user.id, entity="season", entity_id=season_id,
              metadata={"day_of_week": template.day_of_week, "time_slots": template.time_slots})
    return jsonify(template=serialize_template(template)), 200


@season_bp.post("/<int:season_id>/generate-schedule")
@require_roles(ADMIN)
def generate_schedule(season_id: int):
    try:
        result = schedule.generate_schedule_from_template(season_id)
    except EmptyScheduleError as exc:
        return jsonify(message=exc.message, created=0, updated=0, weeks=0), 200

    log_event("SCHEDULE_GENERATE", user_id=g.user.id, entity="season", entity_id=season_id,
              metadata={"created": result.created, "updated": result.updated, "weeks": result.weeks})
    return jsonify(
        message=result.message,
        created=result.created,
        updated=result.updated,
        weeks=result.weeks,
    ), 200
