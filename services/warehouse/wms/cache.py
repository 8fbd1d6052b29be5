"""
Redis caching utilities for the Warehouse service.

Caches worker display names so audit logging does not hit the workers
table for every mutation. Any Redis failure is logged and treated as a miss.
"""
import json
import logging
from typing import Optional, Any
import redis
from .config import REDIS_URL

logger = logging.getLogger(__name__)

# Initialize Redis client (None when caching is disabled)
redis_client = redis.from_url(REDIS_URL, decode_responses=True) if REDIS_URL else None


def worker_name_key(user_id: str) -> str:
    return f"worker_name:{user_id}"


def get_cache(key: str) -> Optional[Any]:
    """
    Get a value from Redis cache.

    Args:
        key: Cache key

    Returns:
        Cached value or None if not found
    """
    if redis_client is None:
        return None
    try:
        value = redis_client.get(key)
        if value:
            return json.loads(value)
        return None
    except (redis.RedisError, ValueError) as e:
        logger.warning(f"Cache get error for {key}: {e}")
        return None

def set_cache(key: str, value: Any, ttl: int = 300) -> bool:
    """
    Set a value in Redis cache with TTL.

    Args:
        key: Cache key
        value: Value to cache (will be JSON serialized)
        ttl: Time to live in seconds

    Returns:
        True if successful, False otherwise
    """
    if redis_client is None:
        return False
    try:
        redis_client.setex(key, ttl, json.dumps(value))
        return True
    except redis.RedisError as e:
        logger.warning(f"Cache set error for {key}: {e}")
        return False

def delete_cache(key: str) -> bool:
    """
    Delete a key from Redis cache.

    Args:
        key: Cache key to delete

    Returns:
        True if successful, False otherwise
    """
    if redis_client is None:
        return False
    try:
        redis_client.delete(key)
        return True
    except redis.RedisError as e:
        logger.warning(f"Cache delete error for {key}: {e}")
        return False
