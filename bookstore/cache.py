"""Redis cache for book snapshots.

The cache is best-effort: every failure is logged and reported to the caller
as a miss, so the store alone can serve every request.
"""
import json
import logging
from typing import Any, Optional

import redis

logger = logging.getLogger(__name__)

COLLECTION_KEY = "books:all"


def book_key(book_id: int) -> str:
    """Cache key for a single book."""
    return f"book:{book_id}"


class BookCache:
    """Redis-backed cache with TTL and pattern invalidation."""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        default_ttl: int = 300,
        timeout: float = 1.0,
        client: Optional[redis.Redis] = None
    ):
        """
        Initialize cache; no connection is made until connect().

        Args:
            host: Redis host
            port: Redis port
            default_ttl: Seconds before an entry expires
            timeout: Socket connect/operation timeout in seconds
            client: Pre-built Redis client (tests)
        """
        self.host = host
        self.port = port
        self.default_ttl = default_ttl
        self.timeout = timeout
        self.client = client
        self.connected = False

    def connect(self) -> bool:
        """
        Connect once. On failure the cache stays disabled for the life of
        the process.

        Returns:
            True if Redis answered PING
        """
        if self.client is None:
            self.client = redis.Redis(
                host=self.host,
                port=self.port,
                socket_connect_timeout=self.timeout,
                socket_timeout=self.timeout,
                decode_responses=True
            )
        try:
            self.client.ping()
        except redis.RedisError as e:
            logger.warning(f"Redis connection failed (caching disabled): {e}")
            self.connected = False
            return False

        self.connected = True
        logger.info(f"Redis connected successfully ({self.host}:{self.port})")
        return True

    @property
    def is_connected(self) -> bool:
        return self.connected

    def get(self, key: str) -> Optional[Any]:
        """Return the decoded value, or None on miss or any cache failure."""
        if not self.connected:
            return None
        try:
            cached = self.client.get(key)
            if cached is None:
                return None
            return json.loads(cached)
        except (redis.RedisError, ValueError, TypeError) as e:
            logger.warning(f"Cache get error for {key}: {e}")
            return None

    def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> bool:
        """Store a JSON-encoded value with a TTL. Returns False on failure."""
        if not self.connected:
            return False
        ttl = ttl_seconds if ttl_seconds is not None else self.default_ttl
        try:
            self.client.setex(key, ttl, json.dumps(value))
            logger.debug(f"Cached {key} (TTL: {ttl}s)")
            return True
        except (redis.RedisError, ValueError, TypeError) as e:
            logger.warning(f"Cache set error for {key}: {e}")
            return False

    def invalidate(self, pattern: Optional[str] = None) -> bool:
        """
        Delete every key matching pattern, plus the collection key.

        Args:
            pattern: Redis glob pattern; a plain key matches itself

        Returns:
            False if the cache is unavailable or the delete failed
        """
        if not self.connected:
            return False
        try:
            keys = [COLLECTION_KEY]
            if pattern:
                keys.extend(self.client.scan_iter(match=pattern))
            self.client.delete(*keys)
            logger.debug(f"Invalidated {len(keys)} cache key(s)")
            return True
        except redis.RedisError as e:
            logger.warning(f"Cache invalidate error: {e}")
            return False

    def ping(self) -> bool:
        """Readiness probe; never raises."""
        if not self.connected:
            return False
        try:
            return bool(self.client.ping())
        except redis.RedisError as e:
            logger.warning(f"Redis ping failed: {e}")
            return False

    def close(self):
        """Close the Redis connection."""
        if self.client is not None:
            try:
                self.client.close()
            except redis.RedisError as e:
                logger.warning(f"Error closing Redis connection: {e}")
            self.client = None
        if self.connected:
            self.connected = False
            logger.info("Redis connection closed")
