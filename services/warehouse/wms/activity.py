"""
Read-side queries over the activity log.

All queries order newest first; ties on timestamp fall back to the id so
entries written in the same instant keep insertion order.
"""
from typing import List, Optional, Tuple
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from . import models

LIKE_ESCAPE = "\\"


def _newest_first(query):
    return query.order_by(models.ActivityLog.timestamp.desc(), models.ActivityLog.id.desc())


def get_recent(db: Session, count: int = 5) -> List[models.ActivityLog]:
    """Return the `count` most recent entries."""
    return _newest_first(db.query(models.ActivityLog)).limit(count).all()


def get_by_type(db: Session, action_type: str, count: int = 10) -> List[models.ActivityLog]:
    """Return the newest entries whose action type matches, ignoring case."""
    query = db.query(models.ActivityLog).filter(
        func.lower(models.ActivityLog.action_type) == action_type.lower()
    )
    return _newest_first(query).limit(count).all()


def get_by_item(db: Session, sku: str, count: int = 10) -> List[models.ActivityLog]:
    """Return the newest entries referring to a SKU or shipment id."""
    query = db.query(models.ActivityLog).filter(models.ActivityLog.item_sku == sku)
    return _newest_first(query).limit(count).all()


def get_by_user(db: Session, user_id: str, count: int = 10) -> List[models.ActivityLog]:
    """Return the newest entries written on behalf of a worker."""
    query = db.query(models.ActivityLog).filter(models.ActivityLog.user_id == user_id)
    return _newest_first(query).limit(count).all()


def escape_like(text: str) -> str:
    return (
        text.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def search_and_paginate(
    db: Session,
    type_filter: Optional[str] = None,
    search_text: Optional[str] = None,
    page: int = 1,
    page_size: int = 100
) -> Tuple[List[models.ActivityLog], bool]:
    """
    Return one page of entries, optionally filtered by type and search text.

    The search is a case-insensitive substring match over description,
    item SKU and user name. One row beyond the page is read so has_more
    reports whether another page really exists.

    Args:
        db: Database session
        type_filter: Action type to keep, ignoring case (optional)
        search_text: Text to look for (optional)
        page: 1-based page number
        page_size: Entries per page

    Returns:
        Tuple of (entries on this page, has_more)
    """
    query = db.query(models.ActivityLog)
    if type_filter:
        query = query.filter(func.lower(models.ActivityLog.action_type) == type_filter.lower())
    if search_text:
        pattern = f"%{escape_like(search_text)}%"
        query = query.filter(or_(
            models.ActivityLog.description.ilike(pattern, escape=LIKE_ESCAPE),
            models.ActivityLog.item_sku.ilike(pattern, escape=LIKE_ESCAPE),
            models.ActivityLog.user_name.ilike(pattern, escape=LIKE_ESCAPE),
        ))

    rows = _newest_first(query).offset((page - 1) * page_size).limit(page_size + 1).all()
    return rows[:page_size], len(rows) > page_size
