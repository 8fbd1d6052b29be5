"""
Item key generation.

Item SKUs are generated or de-duplicated server-side; shipment ids are
always supplied by the caller and never pass through here.
"""
import logging
import random
import time
from sqlalchemy.orm import Session

from . import models
from .config import SKU_PREFIX, SKU_MAX_ATTEMPTS
from .exceptions import ConflictError

logger = logging.getLogger(__name__)

AUTO_GENERATE = "AUTO-GENERATE"

_random = random.SystemRandom()


def time_fragment(digits: int) -> str:
    """Last `digits` digits of the current time in 100ns ticks, zero padded."""
    ticks = time.time_ns() // 100
    return str(ticks % (10 ** digits)).zfill(digits)


def item_exists(db: Session, sku: str) -> bool:
    return db.query(models.Item.sku).filter(models.Item.sku == sku).first() is not None


def generate_unique_sku(db: Session, prefix: str = SKU_PREFIX, max_attempts: int = SKU_MAX_ATTEMPTS) -> str:
    """
    Build a SKU of the form PREFIX-NNNN-TTT that no stored item uses yet.

    Args:
        db: Database session
        prefix: Leading part of the SKU
        max_attempts: Candidates to try before giving up

    Returns:
        An unused SKU

    Raises:
        ConflictError: if every candidate was already taken
    """
    for _ in range(max_attempts):
        candidate = f"{prefix}-{_random.randint(1000, 9999)}-{time_fragment(3)}"
        if not item_exists(db, candidate):
            return candidate
    logger.warning(f"Gave up generating a SKU with prefix '{prefix}' after {max_attempts} attempts")
    raise ConflictError(f"Unable to allocate a unique SKU with prefix '{prefix}'.")


def resolve_item_sku(db: Session, requested: str = None, prefix: str = None,
                     max_attempts: int = SKU_MAX_ATTEMPTS) -> str:
    """
    Decide the SKU a new item is stored under.

    An empty request or AUTO-GENERATE gets a generated SKU. A requested SKU
    that is already taken is renamed to REQUESTED-NNNN rather than rejected.

    Args:
        db: Database session
        requested: SKU asked for by the caller (may be empty)
        prefix: Prefix for generated SKUs (defaults to the configured one)
        max_attempts: Candidates to try before giving up

    Returns:
        A SKU no stored item uses

    Raises:
        ConflictError: if no free SKU was found within max_attempts
    """
    requested = (requested or "").strip()
    if not requested or requested == AUTO_GENERATE:
        return generate_unique_sku(db, prefix or SKU_PREFIX, max_attempts)

    if not item_exists(db, requested):
        return requested

    for _ in range(max_attempts):
        candidate = f"{requested}-{time_fragment(4)}"
        if not item_exists(db, candidate):
            logger.warning(f"SKU '{requested}' already exists, storing item as '{candidate}'")
            return candidate
        # Same tick twice in a row would repeat the candidate
        time.sleep(0.0001)
    raise ConflictError(f"Unable to allocate a unique SKU for '{requested}'.")
