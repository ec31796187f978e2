"""
Cache decorators for function result caching, plus the key helpers the
services use to invalidate cached event data.
"""
import hashlib
import json
from functools import wraps
from typing import Callable, Any
from sqlalchemy.ext.asyncio import AsyncSession
from memberhub.cache.redis_client import cache
from memberhub.core.config import settings
from memberhub.core.logging import logger

EVENTS_LIST_PREFIX = "events:list"
EVENTS_COUNT_PREFIX = "events:count"
EVENTS_DETAIL_PREFIX = "events:detail"


def cached(key_prefix: str, expire: int = None):
    """
    Cache an async function's JSON-serialisable result.

    Args:
        key_prefix: Prefix for the cache key
        expire: TTL in seconds (defaults to ``settings.EVENTS_CACHE_TTL``)

    Usage:
        @cached(EVENTS_LIST_PREFIX)
        async def list_events(db, limit=20):
            ...
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> Any:
            cache_key = f"{key_prefix}:{_generate_key_from_args(args, kwargs)}"

            cached_value = await cache.get(cache_key)
            if cached_value is not None:
                logger.debug(f"Cache hit for key: {cache_key}")
                return cached_value

            logger.debug(f"Cache miss for key: {cache_key}")
            result = await func(*args, **kwargs)
            if result is not None:
                await cache.set(cache_key, result, expire or settings.EVENTS_CACHE_TTL)
            return result
        return wrapper
    return decorator


def event_detail_key(event_id) -> str:
    """Detail entries are keyed by the bare event id so they can be dropped directly."""
    return f"{EVENTS_DETAIL_PREFIX}:{event_id}"


async def invalidate_event_cache(event_id=None) -> None:
    """Drop list/count pages and, when given, one event's detail entry."""
    await cache.delete_pattern(f"{EVENTS_LIST_PREFIX}:*")
    await cache.delete_pattern(f"{EVENTS_COUNT_PREFIX}:*")
    if event_id is not None:
        await cache.delete(event_detail_key(event_id))


def _generate_key_from_args(args: tuple, kwargs: dict) -> str:
    """MD5 of the call arguments, ignoring database sessions."""
    filtered_args = [arg for arg in args if not isinstance(arg, AsyncSession)]
    key_data = {
        "args": [str(arg) for arg in filtered_args],
        "kwargs": {k: str(v) for k, v in kwargs.items() if not isinstance(v, AsyncSession)},
    }
    key_string = json.dumps(key_data, sort_keys=True)
    return hashlib.md5(key_string.encode()).hexdigest()
