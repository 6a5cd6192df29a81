"""Server-side login sessions.

The browser only ever holds a random token in an HttpOnly cookie. The
``sessions`` table stores its SHA-256 digest along with an absolute expiry and
the last time it was seen, which drives the idle timeout.
"""
import hashlib
import secrets
from datetime import timedelta

from flask import current_app, request

from models import db
from models.session import Session
from utils.audit import client_ip
from utils.clock import utcnow


def _digest(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _cookie_name():
    return current_app.config.get("AUTH_COOKIE_NAME", "golfleague_session")


def _lifetime():
    return current_app.config.get("SESSION_LIFETIME_SECONDS", 8 * 60 * 60)


def open_session(user):
    """Revoke the user's live sessions and start a fresh one.

    Returns ``(raw_token, revoked_count)``; only the digest is persisted.
    """
    revoked = (
        Session.query
        .filter_by(user_id=user.id, revoked=False)
        .update({"revoked": True}, synchronize_session=False)
    )

    now = utcnow()
    token = secrets.token_urlsafe(32)
    db.session.add(Session(
        user_id=user.id,
        token_hash=_digest(token),
        created_at=now,
        last_seen_at=now,
        expires_at=now + timedelta(seconds=_lifetime()),
        ip=client_ip(),
        user_agent=(request.headers.get("User-Agent") or "")[:255] or None,
    ))
    db.session.commit()
    return token, revoked


def current_session():
    """The live session named by this request's cookie, or None. Touches its idle timer."""
    token = request.cookies.get(_cookie_name())
    if not token:
        return None

    sess = Session.query.filter_by(token_hash=_digest(token), revoked=False).first()
    now = utcnow()
    idle = timedelta(seconds=current_app.config.get("IDLE_TIMEOUT_SECONDS", 60 * 60))
    if sess is None or not sess.is_live(now, idle):
        return None

    sess.last_seen_at = now
    db.session.commit()
    return sess


def close_session() -> bool:
    token = request.cookies.get(_cookie_name())
    if not token:
        return False
    closed = (
        Session.query
        .filter_by(token_hash=_digest(token), revoked=False)
        .update({"revoked": True}, synchronize_session=False)
    )
    db.session.commit()
    return closed > 0


def set_session_cookie(resp, token: str):
    cfg = current_app.config
    resp.set_cookie(
        _cookie_name(),
        token,
        max_age=_lifetime(),
        httponly=True,
        secure=cfg.get("SESSION_COOKIE_SECURE", False),
        samesite=cfg.get("SESSION_COOKIE_SAMESITE", "Lax"),
        path="/",
    )
    return resp


def clear_session_cookie(resp):
    resp.delete_cookie(_cookie_name(), path="/")
    return resp
