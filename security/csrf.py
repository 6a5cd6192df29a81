"""Double-submit CSRF check for cookie-authenticated, state-changing requests."""
import secrets

from flask import current_app, g, request

from services.errors import PermissionDeniedError

CSRF_COOKIE = "csrf_token"
CSRF_HEADER = "X-CSRF-Token"
UNSAFE_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


def issue_csrf_token(resp):
    # readable by the client so it can echo it back in the header
    resp.set_cookie(
        CSRF_COOKIE,
        secrets.token_urlsafe(32),
        httponly=False,
        secure=current_app.config.get("SESSION_COOKIE_SECURE", False),
        samesite=current_app.config.get("SESSION_COOKIE_SAMESITE", "Lax"),
        path="/",
    )
    return resp


def clear_csrf_token(resp):
    resp.delete_cookie(CSRF_COOKIE, path="/")
    return resp


def csrf_protect(exempt_paths=frozenset()):
    if request.method not in UNSAFE_METHODS or request.path in exempt_paths:
        return
    # anonymous requests carry no ambient credentials
    if getattr(g, "user", None) is None:
        return

    cookie_token = request.cookies.get(CSRF_COOKIE) or ""
    header_token = request.headers.get(CSRF_HEADER) or ""
    if not cookie_token or not secrets.compare_digest(cookie_token, header_token):
        raise PermissionDeniedError("CSRF validation failed")
