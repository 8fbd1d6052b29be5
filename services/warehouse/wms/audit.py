"""
Audit logging for the Warehouse service.

Every item and shipment mutation appends one ActivityLog row. Mutations pass
commit=False so the log row is committed in the same transaction as the
change it describes.
"""
import logging
from datetime import datetime
from typing import Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import cache, models
from .config import WORKER_NAME_CACHE_TTL
from .exceptions import InternalError
from .schemas import ActionType

logger = logging.getLogger(__name__)

SYSTEM_USER_NAME = "System"
UNKNOWN_USER_NAME = "Unknown User"


def resolve_user_name(db: Session, user_id: Optional[str]) -> str:
    """
    Turn an actor id into a display name.

    Args:
        db: Database session
        user_id: Worker id as a string, or None for the system

    Returns:
        The worker's username, "System" when user_id is None, or
        "Unknown User" when the id does not resolve
    """
    if user_id is None:
        return SYSTEM_USER_NAME

    key = cache.worker_name_key(user_id)
    cached = cache.get_cache(key)
    if cached is not None:
        return cached

    try:
        worker_id = int(user_id)
    except (TypeError, ValueError):
        return UNKNOWN_USER_NAME

    try:
        username = db.query(models.Worker.username).filter(models.Worker.id == worker_id).scalar()
    except SQLAlchemyError as e:
        logger.warning(f"Could not look up worker {user_id}: {e}")
        return UNKNOWN_USER_NAME

    if username is None:
        return UNKNOWN_USER_NAME
    cache.set_cache(key, username, WORKER_NAME_CACHE_TTL)
    return username


def log_activity(
    db: Session,
    action_type: ActionType,
    description: str,
    item_sku: Optional[str] = None,
    user_id: Optional[str] = None,
    commit: bool = True
) -> models.ActivityLog:
    """
    Append an activity log entry.

    Args:
        db: Database session
        action_type: Kind of mutation being recorded
        description: Human-readable description
        item_sku: SKU or shipment id the entry refers to (optional)
        user_id: Acting worker id (optional, None means system)
        commit: Commit immediately; pass False to join the caller's transaction

    Returns:
        The ActivityLog row (ids are only assigned once committed)

    Raises:
        InternalError: if a standalone commit fails
    """
    entry = models.ActivityLog(
        action_type=ActionType(action_type).value,
        description=description,
        item_sku=item_sku,
        user_id=user_id,
        user_name=resolve_user_name(db, user_id),
        timestamp=datetime.utcnow()
    )
    db.add(entry)
    if not commit:
        return entry

    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Failed to write activity log '{description}'")
        raise InternalError() from e
    db.refresh(entry)
    logger.info(f"Activity logged: {entry.id} - {entry.action_type}")
    return entry
