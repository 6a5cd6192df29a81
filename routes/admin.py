from flask import Blueprint, jsonify, g, request

from models import db
from models.user import User, Role
from routes.serializers import serialize_user
from security.rbac import ADMIN, ROLES, is_admin, require_roles
from services.errors import NotFoundError, PermissionDeniedError, ValidationError
from utils.audit import log_event

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")

USER_LIST_LIMIT = 200


def _admin_count() -> int:
    return User.query.filter(User.roles.any(Role.name == ADMIN)).count()


@admin_bp.get("/users")
@require_roles(ADMIN)
def list_users():
    q = User.query
    role = (request.args.get("role") or "").strip().upper()
    if role:
        q = q.filter(User.roles.any(Role.name == role))

    users = q.order_by(User.created_at.desc()).limit(USER_LIST_LIMIT).all()
    return jsonify([serialize_user(u) for u in users]), 200


@admin_bp.post("/users/<int:user_id>/roles")
@require_roles(ADMIN)
def update_user_roles(user_id: int):
    data = request.get_json(silent=True) or {}
    requested = data.get("roles")
    if not isinstance(requested, list) or not requested:
        raise ValidationError("roles must be a non-empty list")

    names = {r.strip().upper() for r in requested if isinstance(r, str) and r.strip()}
    unknown = sorted(names - set(ROLES))
    if not names or unknown:
        raise ValidationError("Unknown role(s)", details={"missing": unknown})

    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")

    if is_admin(user) and ADMIN not in names:
        if user.id == g.user.id:
            raise PermissionDeniedError("Cannot remove your own ADMIN role")
        if _admin_count() <= 1:
            raise PermissionDeniedError("Cannot remove the last ADMIN")

    user.roles = Role.query.filter(Role.name.in_(names)).all()
    db.session.commit()

    log_event("ADMIN_UPDATE_ROLES", user_id=g.user.id, entity="user", entity_id=user.id,
              metadata={"roles": sorted(names)})
    return jsonify(message="Roles updated", roles=sorted(names)), 200
