"""Cache-aside lookup of tag creation times.

Tag creation times never change once a tag is pushed (a re-push produces a
new value, which expires old entries through the TTL), so they are cached
per ``image:tag`` in a key/value store.

Cache Flow:
    | Store state           | Action                                 |
    |-----------------------|----------------------------------------|
    | hit, parseable        | return cached value                    |
    | hit, unparseable      | treat as miss, overwrite               |
    | miss                  | fetch from registry, write with TTL    |
    | read fails            | log, treat as miss, still write        |
    | write fails           | log, return fetched value              |
    | no store (disabled)   | fetch from registry                    |

Cache failures never fail a resolution.

Stored Value Format:
    RFC3339Nano, e.g. ``2021-06-01T12:30:45.123456789Z``. Trailing zero
    fraction digits are dropped.

Example:
    >>> store = RedisTagDateStore(CacheConfig(enabled=True))
    >>> resolver = CacheAsideResolver(registry, store, ttl_seconds=604800)
    >>> resolver.get_tag_date("quay.io/org/app", ref, "1.1")
"""

from __future__ import annotations

import threading
import time
from typing import TYPE_CHECKING, Protocol

import redis
import structlog

from newest_image_tag.config import DEFAULT_CACHE_TTL_SECONDS, CacheConfig
from newest_image_tag.errors import CacheBackendError, TimestampParseError
from newest_image_tag.timestamps import format_rfc3339, parse_rfc3339

if TYPE_CHECKING:
    from datetime import datetime

    from newest_image_tag.reference import ImageReference
    from newest_image_tag.registry import RegistryClient

logger = structlog.get_logger(__name__)


def cache_key(image: str, tag: str) -> str:
    """Return the cache key for *tag* of *image*.

    Example:
        >>> cache_key("quay.io/org/app", "1.1")
        'quay.io/org/app:1.1'
    """
    return f"{image}:{tag}"


class TagDateStore(Protocol):
    """Key/value store holding serialized tag creation times.

    Implementations must be safe to share across worker threads and raise
    CacheBackendError when the backend cannot serve a request.
    """

    def get(self, key: str) -> str | None:
        """Return the stored value, or None on a clean miss."""
        ...

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store *value* under *key* for *ttl_seconds*."""
        ...


class RedisTagDateStore:
    """TagDateStore backed by Redis.

    Uses ``GET key`` and ``SET key value EX ttl``. redis-py clients draw
    connections from a pool, so one instance serves every worker thread.
    """

    def __init__(self, config: CacheConfig | None = None, *, client: redis.Redis | None = None) -> None:
        """Initialize RedisTagDateStore.

        Args:
            config: Connection settings. Uses defaults if None.
            client: Pre-built Redis client; overrides the connection settings.
        """
        self._config = config or CacheConfig()
        if client is None:
            password = self._config.password.get_secret_value() if self._config.password else None
            client = redis.Redis(
                host=self._config.host,
                port=self._config.port,
                db=self._config.db,
                password=password or None,
                socket_timeout=self._config.socket_timeout_seconds,
                socket_connect_timeout=self._config.socket_timeout_seconds,
                decode_responses=True,
            )
        self._client = client
        logger.debug(
            "redis_store_initialized",
            host=self._config.host,
            port=self._config.port,
            db=self._config.db,
        )

    def get(self, key: str) -> str | None:
        try:
            value = self._client.get(key)
        except redis.RedisError as e:
            raise CacheBackendError("get", key, str(e)) from e
        if value is None:
            return None
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return str(value)

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            self._client.set(key, value, ex=ttl_seconds)
        except redis.RedisError as e:
            raise CacheBackendError("set", key, str(e)) from e

    def close(self) -> None:
        """Release pooled connections."""
        self._client.close()


class InMemoryTagDateStore:
    """Thread-safe in-process TagDateStore with per-key expiry.

    ``fail_reads`` and ``fail_writes`` make every get/set raise
    CacheBackendError, which lets callers exercise the degraded paths.

    Example:
        >>> store = InMemoryTagDateStore()
        >>> store.set("quay.io/org/app:1.1", "2021-06-01T00:00:00Z", 60)
        >>> store.get("quay.io/org/app:1.1")
        '2021-06-01T00:00:00Z'
    """

    def __init__(self, *, fail_reads: bool = False, fail_writes: bool = False) -> None:
        self._entries: dict[str, tuple[str, float]] = {}
        self._lock = threading.Lock()
        self.fail_reads = fail_reads
        self.fail_writes = fail_writes
        self.get_calls = 0
        self.set_calls = 0

    def get(self, key: str) -> str | None:
        with self._lock:
            self.get_calls += 1
            if self.fail_reads:
                raise CacheBackendError("get", key, "store unavailable")
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if time.monotonic() >= expires_at:
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        with self._lock:
            self.set_calls += 1
            if self.fail_writes:
                raise CacheBackendError("set", key, "store unavailable")
            self._entries[key] = (value, time.monotonic() + ttl_seconds)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def close(self) -> None:
        with self._lock:
            self._entries.clear()


class CacheAsideResolver:
    """Resolve tag creation times through an optional cache.

    Attributes:
        registry: Client used on cache misses.
        store: Backing store, or None when caching is disabled.
        ttl_seconds: Lifetime of written entries.
    """

    def __init__(
        self,
        registry: RegistryClient,
        store: TagDateStore | None = None,
        ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS,
    ) -> None:
        self._registry = registry
        self._store = store
        self._ttl_seconds = ttl_seconds

    @property
    def registry(self) -> RegistryClient:
        return self._registry

    @property
    def store(self) -> TagDateStore | None:
        return self._store

    @property
    def ttl_seconds(self) -> int:
        return self._ttl_seconds

    def get_tag_date(
        self,
        image: str,
        ref: ImageReference,
        tag: str,
        *,
        cancel_event: threading.Event | None = None,
    ) -> datetime:
        """Return the creation time of *tag*, from the cache when possible.

        Args:
            image: Image string as given by the caller; forms the cache key.
            ref: Parsed reference used for registry requests.
            tag: Tag to resolve.
            cancel_event: Passed through to the registry fetch.

        Returns:
            Timezone-aware creation time.

        Raises:
            NewestTagError: Registry failures on a miss. Cache failures are
                logged and never raised.
        """
        store = self._store
        if store is None:
            return self._registry.get_tag_date(ref, tag, cancel_event=cancel_event)

        key = cache_key(image, tag)
        cached = self._read(store, key)
        if cached is not None:
            return cached

        created_at = self._registry.get_tag_date(ref, tag, cancel_event=cancel_event)
        self._write(store, key, created_at)
        return created_at

    def _read(self, store: TagDateStore, key: str) -> datetime | None:
        try:
            raw = store.get(key)
        except CacheBackendError as e:
            logger.warning("tag_cache_read_failed", key=key, error=str(e))
            return None

        if raw is None:
            logger.debug("tag_cache_miss", key=key)
            return None

        try:
            created_at = parse_rfc3339(raw)
        except TimestampParseError:
            logger.warning("tag_cache_value_invalid", key=key, value=raw)
            return None

        logger.debug("tag_cache_hit", key=key)
        return created_at

    def _write(self, store: TagDateStore, key: str, created_at: datetime) -> None:
        try:
            store.set(key, format_rfc3339(created_at), self._ttl_seconds)
        except CacheBackendError as e:
            logger.warning("tag_cache_write_failed", key=key, error=str(e))
            return
        logger.debug("tag_cache_stored", key=key, ttl_seconds=self._ttl_seconds)


__all__ = [
    "CacheAsideResolver",
    "InMemoryTagDateStore",
    "RedisTagDateStore",
    "TagDateStore",
    "cache_key",
]
