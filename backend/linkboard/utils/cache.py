"""
Redis key-value helpers shared by sessions and password reset tokens.
"""
import json
import logging
from typing import Optional, Any

import redis.asyncio as redis

from linkboard.config import settings

logger = logging.getLogger(__name__)


def create_redis_client(url: str = settings.REDIS_URL) -> redis.Redis:
    """Build the shared client; connections are opened lazily on first command."""
    return redis.from_url(
        url,
        decode_responses=True,
        socket_connect_timeout=5,
        socket_timeout=5
    )


redis_client = create_redis_client()


class CacheManager:
    """Async Redis cache manager with TTL support and JSON values."""

    def __init__(self, client: Optional[redis.Redis] = None):
        self.client = client or redis_client

    async def get(self, key: str) -> Optional[Any]:
        """Get value from cache."""
        try:
            value = await self.client.get(key)
            if value is not None:
                return json.loads(value)
            return None
        except Exception as e:
            logger.error(f"Cache get error for key {key}: {e}")
            return None

    async def set(self, key: str, value: Any, ttl: int = 300) -> bool:
        """
        Set value in cache with TTL.

        Args:
            key: Cache key
            value: Value to cache (will be JSON serialized)
            ttl: Time to live in seconds (default: 5 minutes)
        """
        try:
            serialized = json.dumps(value, default=str)
            await self.client.setex(key, ttl, serialized)
            return True
        except Exception as e:
            logger.error(f"Cache set error for key {key}: {e}")
            return False

    async def delete(self, key: str) -> bool:
        """Delete key from cache. False means the delete itself failed."""
        try:
            await self.client.delete(key)
            return True
        except Exception as e:
            logger.error(f"Cache delete error for key {key}: {e}")
            return False

    async def pop(self, key: str) -> Optional[Any]:
        """
        Atomically read and delete a key (Redis GETDEL).

        Two callers racing on the same key never both see the value.
        """
        try:
            value = await self.client.getdel(key)
            if value is not None:
                return json.loads(value)
            return None
        except Exception as e:
            logger.error(f"Cache pop error for key {key}: {e}")
            return None

    async def ping(self) -> bool:
        try:
            return bool(await self.client.ping())
        except Exception as e:
            logger.error(f"Cache ping failed: {e}")
            return False


# Global cache manager instance
cache = CacheManager()


def get_cache() -> CacheManager:
    return cache


# Cache key builders
def reset_token_cache_key(token: str) -> str:
    """Build cache key for a password reset token."""
    return f"{settings.RESET_TOKEN_PREFIX}{token}"


def session_cache_key(session_id: str) -> str:
    """Build cache key for a server-side session."""
    return f"{settings.SESSION_KEY_PREFIX}{session_id}"
