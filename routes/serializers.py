from security.rbac import ADMIN
from services.booking_window import format_time
from utils.clock import isoformat_utc


def serialize_season(s):
    return {
        "id": s.id,
        "year": s.year,
        "name": s.name,
        "start_date": s.start_date.isoformat(),
        "end_date": s.end_date.isoformat(),
        "is_active": s.is_active,
        "created_at": s.created_at.isoformat(),
        "updated_at": s.updated_at.isoformat(),
    }


def serialize_template(t):
    return {
        "id": t.id,
        "season_id": t.season_id,
        "day_of_week": t.day_of_week,
        "time_slots": list(t.time_slots),
        "max_slots": t.max_slots,
        "booking_opens_days_before": t.booking_opens_days_before,
        "booking_opens_time": t.booking_opens_time,
        "booking_closes_days_before": t.booking_closes_days_before,
        "booking_closes_time": t.booking_closes_time,
        "timezone": t.timezone,
        "updated_at": t.updated_at.isoformat(),
    }


def serialize_availability(tee_time, availability):
    return {
        "id": tee_time.id,
        "date": tee_time.date.isoformat(),
        "time_slot": format_time(tee_time.time),
        "season": tee_time.season,
        "max_slots": tee_time.max_slots,
        "is_available": tee_time.is_available,
        "reserved_slots": availability.reserved_slots,
        "available_slots": availability.available_slots,
        "is_bookable": availability.is_bookable,
        "booking_status": availability.booking_status,
        "booking_opens_at": isoformat_utc(tee_time.booking_opens_at),
        "booking_closes_at": isoformat_utc(tee_time.booking_closes_at),
    }


def serialize_reservation(r, include_user=False):
    out = {
        "id": r.id,
        "tee_time_id": r.tee_time_id,
        "user_id": r.user_id,
        "slots": r.slots,
        "player_names": list(r.player_names or []),
        "play_for_money": list(r.play_for_money or []),
        "created_at": r.created_at.isoformat(),
        "tee_time": {
            "date": r.tee_time.date.isoformat(),
            "time_slot": format_time(r.tee_time.time),
        } if r.tee_time else None,
    }
    if include_user:
        out["user"] = {
            "name": r.user.name if r.user else None,
            "email": r.user.email if r.user else None,
        }
    return out


def serialize_user(u):
    return {
        "id": u.id,
        "email": u.email,
        "name": u.name,
        "roles": sorted(r.name for r in u.roles),
        "is_admin": any(r.name == ADMIN for r in u.roles),
        "created_at": u.created_at.isoformat(),
    }


def serialize_audit_log(r):
    return {
        "id": r.id,
        "created_at": r.created_at.isoformat(),
        "user_id": r.user_id,
        "action": r.action,
        "entity": r.entity,
        "entity_id": r.entity_id,
        "ip": r.ip,
        "user_agent": r.user_agent,
        "metadata": r.details,
    }
