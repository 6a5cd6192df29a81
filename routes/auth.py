from flask import Blueprint, request, jsonify, g

from models import db
from models.user import User, Role
from routes.serializers import serialize_user
from security.csrf import clear_csrf_token, issue_csrf_token
from security.password import check_password_strength, hash_password, verify_password
from security.rbac import PLAYER
from security.session import clear_session_cookie, close_session, open_session, set_session_cookie
from services.errors import AlreadyExistsError, AuthenticationError, ValidationError
from utils.audit import log_event
from utils.auth_context import login_required

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")

EMAIL_MAX = 255
NAME_MAX = 120


def _normalize_email(value) -> str:
    return value.strip().lower() if isinstance(value, str) else ""


def _valid_email(email: str) -> str:
    local, _, domain = email.partition("@")
    if not local or "." not in domain or len(email) > EMAIL_MAX:
        raise ValidationError("Invalid email")
    return email


@auth_bp.post("/register")
def register():
    data = request.get_json(silent=True) or {}
    email = _valid_email(_normalize_email(data.get("email")))
    password = check_password_strength(data.get("password"))
    name = data.get("name").strip() if isinstance(data.get("name"), str) else ""
    if len(name) > NAME_MAX:
        raise ValidationError(f"Name must be at most {NAME_MAX} characters")

    if User.query.filter_by(email=email).first():
        log_event("REGISTER_FAIL_EMAIL_EXISTS", metadata={"email": email})
        raise AlreadyExistsError("Email already registered")

    user = User(email=email, password_hash=hash_password(password), name=name or None)
    user.roles = Role.query.filter_by(name=PLAYER).all()
    db.session.add(user)
    db.session.commit()

    log_event("REGISTER_SUCCESS", user_id=user.id, entity="user", entity_id=user.id)
    return jsonify(message="Registered successfully", id=user.id), 201


@auth_bp.post("/login")
def login():
    data = request.get_json(silent=True) or {}
    email = _normalize_email(data.get("email"))

    user = User.query.filter_by(email=email).first() if email else None
    if user is None or not verify_password(data.get("password"), user.password_hash):
        log_event("LOGIN_FAIL", user_id=user.id if user else None, metadata={"email": email})
        raise AuthenticationError("Invalid credentials")

    # one live session per member
    token, revoked = open_session(user)
    log_event("LOGIN_SUCCESS", user_id=user.id, metadata={"revoked_sessions": revoked})

    resp = jsonify(message="Login OK", user=serialize_user(user))
    set_session_cookie(resp, token)
    issue_csrf_token(resp)
    return resp, 200


@auth_bp.get("/me")
@login_required
def me():
    return jsonify(serialize_user(g.user)), 200


@auth_bp.post("/logout")
@login_required
def logout():
    close_session()
    log_event("LOGOUT", user_id=g.user.id)

    resp = jsonify(message="Logged out")
    clear_session_cookie(resp)
    clear_csrf_token(resp)
    return resp, 200
