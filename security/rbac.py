from functools import wraps

from flask import g

from services.errors import AuthenticationError, PermissionDeniedError

PLAYER = "PLAYER"
ADMIN = "ADMIN"
ROLES = (PLAYER, ADMIN)


def role_names(user) -> set:
    if user is None:
        return set()
    return {r.name for r in user.roles}


def has_role(user, role_name: str) -> bool:
    return role_name in role_names(user)


def is_admin(user) -> bool:
    return has_role(user, ADMIN)


def require_roles(*allowed: str):
    """Route decorator: the signed-in user must hold at least one of ``allowed``.

    Usage: @require_roles(ADMIN)
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user = getattr(g, "user", None)
            if user is None:
                raise AuthenticationError()
            if role_names(user).isdisjoint(allowed):
                raise PermissionDeniedError()
            return fn(*args, **kwargs)
        return wrapper
    return decorator
