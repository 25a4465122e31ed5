"""
Transaction scope for multi-step domain operations.

Every manager operation that reads then writes runs inside ``unit_of_work``:
commit on success, rollback on any exception. Nothing inside the block may
commit on its own.
"""

from contextlib import contextmanager
from sqlalchemy.exc import SQLAlchemyError
from fleet_dispatch import db
from fleet_dispatch.buisness.dispatching.errors import DispatchDomainError, StorageError
from fleet_dispatch.logger import get_logger

logger = get_logger("fleet_dispatch.domain.core.unit_of_work")


@contextmanager
def unit_of_work(operation: str):
    """
    Run a block as one atomic transaction on ``db.session``.

    Args:
        operation: Short label used in log lines and StorageError messages

    Raises:
        DispatchDomainError: Re-raised unchanged after rollback
        StorageError: When the database rejects a statement or the commit
    """
    session = db.session
    try:
        yield session
        session.commit()
        logger.debug(f"{operation}: committed")
    except DispatchDomainError as e:
        session.rollback()
        logger.debug(f"{operation}: rolled back ({e.code})")
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"{operation}: storage failure, rolled back: {e}")
        raise StorageError(f"{operation} failed: {e.__class__.__name__}") from e
    except Exception:
        session.rollback()
        logger.exception(f"{operation}: unexpected failure, rolled back")
        raise
