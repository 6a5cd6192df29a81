from flask import Blueprint, jsonify, request

from models.audit_log import AuditLog
from routes.serializers import serialize_audit_log
from security.rbac import ADMIN, require_roles

audit_bp = Blueprint("audit", __name__, url_prefix="/admin")

DEFAULT_LIMIT = 200
MAX_LIMIT = 500


@audit_bp.get("/audit-logs")
@require_roles(ADMIN)
def list_audit_logs():
    limit = max(1, min(request.args.get("limit", DEFAULT_LIMIT, type=int), MAX_LIMIT))

    q = AuditLog.query
    for field in ("action", "entity", "entity_id"):
        value = request.args.get(field)
        if value:
            q = q.filter(getattr(AuditLog, field) == value)
    user_id = request.args.get("user_id", type=int)
    if user_id is not None:
        q = q.filter(AuditLog.user_id == user_id)

    rows = q.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit).all()
    return jsonify([serialize_audit_log(r) for r in rows]), 200
