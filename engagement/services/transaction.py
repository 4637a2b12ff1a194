"""
Unit-of-work helper shared by the lifecycle services.
"""
import logging
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from engagement.core.exceptions import DatabaseError, EngagementError

logger = logging.getLogger(__name__)


@contextmanager
def atomic(session: Session, operation: str = "operation", notifier=None):
    """
    Run the enclosed block as one transaction.

    Commits on success. Any failure rolls back every write made inside the
    block and drops whatever the block queued on ``notifier``; business-rule
    errors propagate unchanged, database failures are re-raised as
    ``DatabaseError`` with a generic message.
    """
    try:
        yield session
        session.commit()
    except EngagementError:
        session.rollback()
        if notifier is not None:
            notifier.discard()
        raise
    except SQLAlchemyError as exc:
        session.rollback()
        if notifier is not None:
            notifier.discard()
        logger.exception("%s failed and was rolled back", operation)
        raise DatabaseError(f"Database error during {operation}") from exc
    except Exception:
        session.rollback()
        if notifier is not None:
            notifier.discard()
        raise
