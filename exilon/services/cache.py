"""Application cache backed by the cache_entries table."""

import json
import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

from exilon.db import get_session, CacheEntry

logger = logging.getLogger(__name__)

# Keys that must be dropped whenever an extension is enabled, disabled,
# installed or removed.
EXTENSION_CACHE_KEYS = [
    "settings",
    "plugins",
    "admin.navigation",
    "extension_updates_plugins",
    "extension_updates_themes",
]

_MISSING = object()


class CacheService:
    """Key/value cache with per-entry time-to-live."""

    def __init__(self, clock: Callable[[], datetime] = None):
        """
        Initialize the cache.

        Args:
            clock: Returns the current UTC time (overridable in tests)
        """
        self._now = clock or datetime.utcnow

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a cached value.

        Args:
            key: Cache key
            default: Returned when the key is missing or expired

        Returns:
            The decoded value
        """
        with get_session() as session:
            entry = session.query(CacheEntry).filter_by(key=key).first()
            if not entry:
                return default

            if entry.expires_at is not None and entry.expires_at <= self._now():
                session.delete(entry)
                return default

            try:
                return json.loads(entry.value)
            except (TypeError, ValueError):
                logger.warning(f"Discarding undecodable cache entry: {key}")
                session.delete(entry)
                return default

    def has(self, key: str) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def put(self, key: str, value: Any, ttl: Optional[int] = None):
        """
        Store a value.

        Args:
            key: Cache key
            value: JSON-serializable value
            ttl: Lifetime in seconds, None to keep it until forgotten
        """
        expires_at = self._now() + timedelta(seconds=ttl) if ttl is not None else None
        payload = json.dumps(value)

        with get_session() as session:
            entry = session.query(CacheEntry).filter_by(key=key).first()
            if entry:
                entry.value = payload
                entry.expires_at = expires_at
            else:
                session.add(CacheEntry(key=key, value=payload, expires_at=expires_at))

    def forever(self, key: str, value: Any):
        self.put(key, value, ttl=None)

    def remember(self, key: str, ttl: Optional[int], callback: Callable[[], Any]) -> Any:
        """Return the cached value, computing and storing it on a miss."""
        value = self.get(key, _MISSING)
        if value is not _MISSING:
            return value

        value = callback()
        self.put(key, value, ttl)
        return value

    def forget(self, *keys: str) -> int:
        """Remove keys. Returns how many entries were deleted."""
        with get_session() as session:
            return session.query(CacheEntry).filter(CacheEntry.key.in_(keys)).delete(synchronize_session=False)

    def forget_prefix(self, prefix: str) -> int:
        """Remove every key starting with `prefix`."""
        with get_session() as session:
            return (
                session.query(CacheEntry)
                .filter(CacheEntry.key.startswith(prefix, autoescape=True))
                .delete(synchronize_session=False)
            )

    def flush(self):
        """Remove everything."""
        with get_session() as session:
            count = session.query(CacheEntry).delete()
        logger.info(f"Cache flushed ({count} entries)")

    def clear_extension_caches(self):
        """Drop the caches that depend on which extensions are present or enabled."""
        self.forget(*EXTENSION_CACHE_KEYS)
