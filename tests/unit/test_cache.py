"""Unit tests for the cache-aside layer and cache stores."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest
import redis
from pydantic import SecretStr

from newest_image_tag.cache import (
    CacheAsideResolver,
    InMemoryTagDateStore,
    RedisTagDateStore,
    cache_key,
)
from newest_image_tag.config import CacheConfig
from newest_image_tag.errors import CacheBackendError, HTTPStatusError
from newest_image_tag.fetcher import RetryingFetcher
from newest_image_tag.reference import parse_image_reference
from newest_image_tag.registry import RegistryClient
from newest_image_tag.timestamps import Timestamp
from testing.fixtures.registry import IMAGE, FakeRegistry

REF = parse_image_reference(IMAGE)
CREATED = Timestamp(2021, 6, 1, 12, 30, 45, 123456, tzinfo=timezone.utc, nanosecond=789)


@pytest.fixture
def registry(fake_registry: FakeRegistry) -> FakeRegistry:
    """Provide a fake registry holding org/app:1.1."""
    fake_registry.add_image("org/app", {"1.1": "2021-06-01T12:30:45.123456789Z"})
    return fake_registry


def _resolver(registry: FakeRegistry, store: InMemoryTagDateStore | None) -> CacheAsideResolver:
    client = RegistryClient(RetryingFetcher(transport=registry.transport))
    return CacheAsideResolver(client, store, ttl_seconds=60)


class TestCacheKey:
    """Tests for cache_key."""

    def test_key_is_image_colon_tag(self) -> None:
        """Test the key joins the caller's image string and tag."""
        assert cache_key("nginx", "1.25") == "nginx:1.25"


class TestCacheAsideResolver:
    """Tests for CacheAsideResolver.get_tag_date."""

    def test_miss_fetches_and_stores(
        self, registry: FakeRegistry, memory_store: InMemoryTagDateStore
    ) -> None:
        """Test a miss fetches from the registry and writes the value."""
        created = _resolver(registry, memory_store).get_tag_date(IMAGE, REF, "1.1")

        assert created == CREATED
        assert memory_store.get(f"{IMAGE}:1.1") == "2021-06-01T12:30:45.123456789Z"
        assert registry.count("/manifests/1.1") == 1

    def test_second_lookup_is_served_from_cache(
        self, registry: FakeRegistry, memory_store: InMemoryTagDateStore
    ) -> None:
        """Test resolving twice gives identical times with one registry fetch."""
        resolver = _resolver(registry, memory_store)

        first = resolver.get_tag_date(IMAGE, REF, "1.1")
        second = resolver.get_tag_date(IMAGE, REF, "1.1")

        assert first == second
        assert registry.count("/manifests/1.1") == 1

    def test_hit_skips_registry(
        self, registry: FakeRegistry, memory_store: InMemoryTagDateStore
    ) -> None:
        """Test a pre-populated entry is returned without any request."""
        memory_store.set(f"{IMAGE}:1.1", "2020-01-01T00:00:00Z", 60)

        created = _resolver(registry, memory_store).get_tag_date(IMAGE, REF, "1.1")

        assert created == datetime(2020, 1, 1, tzinfo=timezone.utc)
        assert registry.count() == 0

    def test_unparseable_value_is_a_miss(
        self, registry: FakeRegistry, memory_store: InMemoryTagDateStore
    ) -> None:
        """Test a corrupt cached value is ignored and overwritten."""
        memory_store.set(f"{IMAGE}:1.1", "garbage", 60)

        created = _resolver(registry, memory_store).get_tag_date(IMAGE, REF, "1.1")

        assert created == CREATED
        assert memory_store.get(f"{IMAGE}:1.1") == "2021-06-01T12:30:45.123456789Z"

    def test_read_failure_falls_back_and_still_writes(self, registry: FakeRegistry) -> None:
        """Test a failing read is treated as a miss and the write is attempted."""
        store = InMemoryTagDateStore(fail_reads=True)

        created = _resolver(registry, store).get_tag_date(IMAGE, REF, "1.1")

        assert created == CREATED
        assert store.set_calls == 1
        assert len(store) == 1

    def test_write_failure_is_ignored(self, registry: FakeRegistry) -> None:
        """Test a failing write still returns the fetched value."""
        store = InMemoryTagDateStore(fail_writes=True)

        created = _resolver(registry, store).get_tag_date(IMAGE, REF, "1.1")

        assert created == CREATED
        assert len(store) == 0

    def test_disabled_cache_always_fetches(self, registry: FakeRegistry) -> None:
        """Test without a store every lookup goes to the registry."""
        resolver = _resolver(registry, None)

        resolver.get_tag_date(IMAGE, REF, "1.1")
        resolver.get_tag_date(IMAGE, REF, "1.1")

        assert registry.count("/manifests/1.1") == 2

    def test_registry_errors_propagate_and_nothing_is_cached(
        self, registry: FakeRegistry, memory_store: InMemoryTagDateStore
    ) -> None:
        """Test registry failures surface and leave the cache empty."""
        registry.fail("/manifests/1.1", 404)

        with pytest.raises(HTTPStatusError):
            _resolver(registry, memory_store).get_tag_date(IMAGE, REF, "1.1")

        assert len(memory_store) == 0

    def test_uses_configured_ttl(self, registry: FakeRegistry) -> None:
        """Test writes carry the resolver's TTL."""
        store = MagicMock()
        store.get.return_value = None
        client = RegistryClient(RetryingFetcher(transport=registry.transport))

        CacheAsideResolver(client, store, ttl_seconds=3600).get_tag_date(IMAGE, REF, "1.1")

        store.set.assert_called_once_with(f"{IMAGE}:1.1", "2021-06-01T12:30:45.123456789Z", 3600)


class TestInMemoryTagDateStore:
    """Tests for InMemoryTagDateStore."""

    def test_clean_miss(self, memory_store: InMemoryTagDateStore) -> None:
        """Test an unknown key returns None."""
        assert memory_store.get("nope") is None

    def test_entries_expire(self, memory_store: InMemoryTagDateStore) -> None:
        """Test entries disappear after their TTL."""
        with patch("newest_image_tag.cache.time.monotonic", return_value=100.0):
            memory_store.set("k", "v", 10)
        with patch("newest_image_tag.cache.time.monotonic", return_value=109.0):
            assert memory_store.get("k") == "v"
        with patch("newest_image_tag.cache.time.monotonic", return_value=110.0):
            assert memory_store.get("k") is None

    def test_failure_switches(self) -> None:
        """Test fail_reads and fail_writes raise CacheBackendError."""
        store = InMemoryTagDateStore(fail_reads=True, fail_writes=True)

        with pytest.raises(CacheBackendError, match="'get'"):
            store.get("k")
        with pytest.raises(CacheBackendError, match="'set'"):
            store.set("k", "v", 1)


class TestRedisTagDateStore:
    """Tests for RedisTagDateStore with a mocked redis client."""

    def test_get_and_set(self) -> None:
        """Test GET and SET EX are issued against the client."""
        client = MagicMock()
        client.get.return_value = "2021-06-01T00:00:00.000000Z"
        store = RedisTagDateStore(CacheConfig(), client=client)

        assert store.get("nginx:1.25") == "2021-06-01T00:00:00.000000Z"
        store.set("nginx:1.25", "2021-06-01T00:00:00.000000Z", 604800)

        client.get.assert_called_once_with("nginx:1.25")
        client.set.assert_called_once_with("nginx:1.25", "2021-06-01T00:00:00.000000Z", ex=604800)

    def test_missing_key(self) -> None:
        """Test a nil reply is a clean miss."""
        client = MagicMock()
        client.get.return_value = None

        assert RedisTagDateStore(client=client).get("nginx:1.25") is None

    def test_bytes_reply_is_decoded(self) -> None:
        """Test a bytes reply is decoded as UTF-8."""
        client = MagicMock()
        client.get.return_value = b"2021-06-01T00:00:00Z"

        assert RedisTagDateStore(client=client).get("k") == "2021-06-01T00:00:00Z"

    @pytest.mark.parametrize("operation", ["get", "set"])
    def test_redis_errors_are_wrapped(self, operation: str) -> None:
        """Test redis errors surface as CacheBackendError."""
        client = MagicMock()
        getattr(client, operation).side_effect = redis.ConnectionError("connection refused")
        store = RedisTagDateStore(client=client)

        with pytest.raises(CacheBackendError, match="connection refused") as exc_info:
            if operation == "get":
                store.get("k")
            else:
                store.set("k", "v", 1)

        assert exc_info.value.operation == operation

    def test_builds_client_from_config(self) -> None:
        """Test connection settings are passed to redis.Redis."""
        config = CacheConfig(
            host="redis.internal",
            port=6380,
            db=2,
            password=SecretStr("pw"),
            socket_timeout_seconds=2,
        )

        with patch("newest_image_tag.cache.redis.Redis") as mock_redis:
            RedisTagDateStore(config)

        mock_redis.assert_called_once_with(
            host="redis.internal",
            port=6380,
            db=2,
            password="pw",
            socket_timeout=2,
            socket_connect_timeout=2,
            decode_responses=True,
        )

    def test_close(self) -> None:
        """Test close releases the client."""
        client = MagicMock()

        RedisTagDateStore(client=client).close()

        client.close.assert_called_once_with()
