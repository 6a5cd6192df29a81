import logging
from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from models import db
from services.errors import ConflictError, LeagueError, UpstreamError

logger = logging.getLogger(__name__)


@contextmanager
def atomic(description: str, **context):
    """Run the block as one unit of work: commit on success, roll back on any error.

    Integrity violations surface as ``ConflictError`` (a concurrent writer got
    there first); any other store failure is logged and becomes ``UpstreamError``.
    """
    try:
        yield db.session
        db.session.commit()
    except LeagueError:
        db.session.rollback()
        raise
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("%s hit an integrity conflict %s: %s", description, context, exc.orig)
        raise ConflictError() from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("%s failed %s", description, context)
        raise UpstreamError() from exc
    except Exception:
        db.session.rollback()
        raise
