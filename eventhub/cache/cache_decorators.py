"""
Cache decorators for easy function result caching.
"""
import hashlib
import json
from functools import wraps
from typing import Callable, Any
from sqlalchemy.ext.asyncio import AsyncSession
from eventhub.cache.redis_client import cache
from eventhub.core.logging import logger


def cached(key_prefix: str, expire: int = 300):
    """
    Decorator to cache async function results with configurable TTL.

    Args:
        key_prefix: Prefix for the cache key; invalidate with ``f"{key_prefix}:*"``
        expire: Expiration time in seconds (default: 300 = 5 minutes)

    Usage:
        @cached('events:public', expire=300)
        async def list_public_events(db, status=None, search=None):
            return events
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
            await cache.set(cache_key, result, expire)
            return result
        return wrapper
    return decorator


def _generate_key_from_args(args: tuple, kwargs: dict) -> str:
    """MD5 of the call arguments, ignoring database sessions."""
    key_data = {
        'args': [str(arg) for arg in args if not isinstance(arg, AsyncSession)],
        'kwargs': {k: str(v) for k, v in kwargs.items() if not isinstance(v, AsyncSession)},
    }
    key_string = json.dumps(key_data, sort_keys=True)
    return hashlib.md5(key_string.encode()).hexdigest()
