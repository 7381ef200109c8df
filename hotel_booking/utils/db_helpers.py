"""
Database Helper Utilities for Concurrency Control

Provides:
- Database dialect detection (PostgreSQL vs SQLite)
- Row locking helpers
- Compare-and-set updates evaluated by the database
"""

import logging
from typing import Dict, Optional, TypeVar, Type, Any
from sqlalchemy import update
from sqlalchemy.orm import Session
from sqlalchemy.exc import OperationalError

from ..exceptions import ConflictError, NotFoundError

logger = logging.getLogger(__name__)

T = TypeVar('T')


def is_postgres(db: Session) -> bool:
    """Check if the database is PostgreSQL"""
    try:
        dialect = db.bind.dialect.name
        return dialect == 'postgresql'
    except AttributeError:
        return False


def acquire_row_lock(
    db: Session,
    model: Type[T],
    filter_condition,
    nowait: bool = False,
    skip_locked: bool = False
) -> Optional[T]:
    """
    Acquire a row-level lock on a database record.

    Args:
        db: Database session
        model: SQLAlchemy model class
        filter_condition: Filter to find the row
        nowait: If True, raise error immediately if lock unavailable (PostgreSQL only)
        skip_locked: If True, skip locked rows (PostgreSQL only)

    Returns:
        The locked model instance, or None if not found

    Raises:
        OperationalError: If nowait=True and row is locked by another transaction

    Example:
        room = acquire_row_lock(db, Room, Room.id == room_id, nowait=True)
    """
    query = db.query(model).filter(filter_condition)

    # Only apply locking on PostgreSQL
    if is_postgres(db):
        if skip_locked:
            query = query.with_for_update(skip_locked=True)
        elif nowait:
            query = query.with_for_update(nowait=True)
        else:
            query = query.with_for_update()

    return query.first()


def acquire_row_lock_or_fail(
    db: Session,
    model: Type[T],
    filter_condition,
    error_message: str = "Resource is locked"
) -> T:
    """
    Acquire a row-level lock or raise a domain error.

    Uses nowait=True to fail fast if the row is held by another transaction.

    Raises:
        NotFoundError: If row not found
        ConflictError: If row is locked by another transaction
    """
    try:
        result = acquire_row_lock(db, model, filter_condition, nowait=True)
    except OperationalError as e:
        if "lock" in str(e).lower():
            logger.warning(f"Lock contention on {model.__name__}: {e}")
            db.rollback()
            raise ConflictError(error_message)
        raise

    if result is None:
        raise NotFoundError(f"{model.__name__} not found")

    return result


def get_pending_with_skip_locked(
    db: Session,
    model: Type[T],
    filter_condition,
    order_by=None,
    limit: int = 50
) -> list:
    """
    Get pending records with skip_locked to prevent worker race conditions.

    Useful for background sweeps running in more than one process.
    """
    query = db.query(model).filter(filter_condition)

    if order_by is not None:
        query = query.order_by(order_by)

    # Only apply skip_locked on PostgreSQL
    if is_postgres(db):
        query = query.with_for_update(skip_locked=True)

    return query.limit(limit).all()


def guarded_update(
    db: Session,
    model: Type[T],
    filter_condition,
    values: Dict[str, Any],
) -> int:
    """
    Run a single ``UPDATE ... WHERE`` and return the number of rows matched.

    The guard in ``filter_condition`` is evaluated by the database in the same
    statement as the write, so two concurrent callers can never both pass it.

    Example:
        guarded_update(
            db, PromotionalCode,
            and_(PromotionalCode.id == code_id, PromotionalCode.used_count < PromotionalCode.usage_limit),
            {"used_count": PromotionalCode.used_count + 1},
        )
    """
    stmt = (
        update(model)
        .where(filter_condition)
        .values(values)
        .execution_options(synchronize_session=False)
    )
    result = db.execute(stmt)
    return result.rowcount or 0

