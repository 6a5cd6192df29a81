from functools import wraps

from flask import g

from models import db
from models.user import User
from security.session import current_session
from services.errors import AuthenticationError


def load_current_user():
    """before_request hook: resolve the session cookie into ``g.session`` / ``g.user``."""
    g.session = current_session()
    g.user = db.session.get(User, g.session.user_id) if g.session is not None else None


def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if getattr(g, "user", None) is None:
            raise AuthenticationError()
        return fn(*args, **kwargs)
    return wrapper
