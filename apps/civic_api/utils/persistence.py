"""Session commit helper mapping store failures onto StoreError."""
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from apps.civic_api import db
from apps.civic_api.utils.security import StoreError


def commit_session(action: str):
    """Commit the unit of work or roll it back and raise StoreError.

    Everything added since the last commit is discarded together, so an
    issue never persists without its first update and notification.
    """
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Failed to {action}: {type(e).__name__}: {e}")
        raise StoreError(details=str(e))


def flush_session(action: str):
    """Flush pending rows to obtain ids without committing."""
    try:
        db.session.flush()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Failed to {action}: {type(e).__name__}: {e}")
        raise StoreError(details=str(e))
