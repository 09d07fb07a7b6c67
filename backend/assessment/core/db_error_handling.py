"""
Database error handling utilities.

This module provides a reusable context manager for handling database
errors consistently across the services. It centralizes the common
pattern of:
1. Rolling back the database session on error
2. Logging the error with context
3. Raising PersistenceError

Domain errors (AssessmentError subclasses) raised inside the block are
re-raised unchanged after the rollback, so a failed precondition never
leaves a half-written transaction behind.

Usage:
    from assessment.core.db_error_handling import handle_db_error

    with handle_db_error(db, "submit attempt"):
        attempt.status = AttemptStatus.SUBMITTED
        db.commit()
"""

import logging
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy.orm import Session

from assessment.core.errors import AssessmentError, PersistenceError


logger = logging.getLogger(__name__)


@contextmanager
def handle_db_error(
    db: Session,
    operation_name: str,
    *,
    detail_template: Optional[str] = None,
    log_level: int = logging.ERROR,
) -> Generator[None, None, None]:
    """Context manager for handling database errors consistently.

    Args:
        db: The SQLAlchemy database session to rollback on error.
        operation_name: Human-readable name of the operation for error messages
            and logging (e.g., "start attempt", "grade answer").
        detail_template: Optional custom template for the error message.
            If provided, should contain {operation_name} and optionally {error}.
            Defaults to "Failed to {operation_name}: {error}".
        log_level: Logging level for error messages. Defaults to logging.ERROR.

    Raises:
        AssessmentError: Re-raised unchanged, with the session rolled back.
        PersistenceError: On any other exception, with the session rolled back.

    Example:
        >>> with handle_db_error(db, "publish test"):
        ...     test.is_published = True
        ...     db.commit()
    """
    try:
        yield
    except AssessmentError:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()

        if detail_template:
            detail = detail_template.format(operation_name=operation_name, error=str(e))
        else:
            detail = None

        logger.log(
            log_level,
            f"Database error during {operation_name}: {e}",
            exc_info=True,
        )

        raise PersistenceError(operation_name, e, detail) from e
