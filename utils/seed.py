import logging

from sqlalchemy import select

from models import db
from models.user import Role
from security.rbac import ROLES

logger = logging.getLogger(__name__)


def seed_roles():
    """Insert whichever league roles are missing; returns their names."""
    existing = set(db.session.scalars(select(Role.name)))
    missing = [name for name in ROLES if name not in existing]
    if missing:
        db.session.add_all([Role(name=name) for name in missing])
        db.session.commit()
        logger.info("Seeded roles: %s", ", ".join(missing))
    return missing
