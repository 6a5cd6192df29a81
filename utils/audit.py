"""Business events appended to ``audit_logs``."""
import json
import logging

from flask import has_request_context, request

from models import db
from models.audit_log import AuditLog

logger = logging.getLogger(__name__)


def client_ip():
    # first X-Forwarded-For hop is the original client
    forwarded = request.headers.get("X-Forwarded-For", "")
    return forwarded.split(",")[0].strip() or request.remote_addr


def log_event(action: str, user_id=None, entity=None, entity_id=None, metadata=None):
    """Write one audit row and commit it.

    Outside a request (CLI commands) the client ip and user agent stay empty.
    """
    row = AuditLog(
        action=action,
        user_id=user_id,
        entity=entity,
        entity_id=None if entity_id is None else str(entity_id),
        metadata_json=json.dumps(metadata, default=str, sort_keys=True) if metadata else None,
    )
    if has_request_context():
        row.ip = client_ip()
        row.user_agent = (request.headers.get("User-Agent") or "")[:255] or None

    db.session.add(row)
    db.session.commit()
    logger.debug("audit %s user=%s %s=%s", action, user_id, entity, entity_id)
    return row
