"""Tests for the session cache."""

import pytest
import pytest_asyncio

from app.cache.memory import MemoryCacheBackend


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestMemoryCacheBackend:
    """Tests for MemoryCacheBackend."""

    @pytest_asyncio.fixture
    async def cache(self) -> MemoryCacheBackend:
        """Provide a fresh memory cache for each test."""
        return MemoryCacheBackend(default_ttl=3600)

    @pytest.mark.asyncio
    async def test_set_and_get(self, cache: MemoryCacheBackend) -> None:
        """Test basic set and get operations."""
        await cache.set("test_key", {"data": "value"})
        result = await cache.get("test_key")

        assert result == {"data": "value"}

    @pytest.mark.asyncio
    async def test_get_nonexistent(self, cache: MemoryCacheBackend) -> None:
        """Test getting a nonexistent key."""
        assert await cache.get("nonexistent") is None

    @pytest.mark.asyncio
    async def test_exists_and_delete(self, cache: MemoryCacheBackend) -> None:
        """Deleting a key removes it; deleting twice reports absence."""
        await cache.set("delete_key", "value")
        assert await cache.exists("delete_key") is True

        assert await cache.delete("delete_key") is True
        assert await cache.exists("delete_key") is False
        assert await cache.delete("delete_key") is False

    @pytest.mark.asyncio
    async def test_clear_only_touches_namespaced_keys(self, cache: MemoryCacheBackend) -> None:
        """Clear drops SafeFlow keys and keeps foreign ones."""
        await cache.set("safeflow:key1", "value1")
        await cache.set("safeflow:key2", "value2")
        await cache.set("other:key", "value3")

        await cache.clear()

        assert await cache.exists("safeflow:key1") is False
        assert await cache.exists("safeflow:key2") is False
        assert await cache.exists("other:key") is True

    @pytest.mark.asyncio
    async def test_ping(self, cache: MemoryCacheBackend) -> None:
        """Memory cache is always reachable."""
        assert await cache.ping() is True

    def test_key_generation(self, cache: MemoryCacheBackend) -> None:
        """Keys are namespaced and address-insensitive to case."""
        assert cache.discovery_key("0xABCD") == "safeflow:discovery:0xabcd"
        assert cache.bundle_key(137, "0xABCD") == "safeflow:bundle:137:0xabcd"


class TestExpiry:
    """TTL behaviour against an injected clock."""

    @pytest.mark.asyncio
    async def test_entry_expires_after_ttl(self) -> None:
        """An entry is served until its TTL passes."""
        clock = FakeClock()
        cache = MemoryCacheBackend(default_ttl=60, clock=clock)
        await cache.set("safeflow:k", "v")

        clock.now += 59
        assert await cache.get("safeflow:k") == "v"

        clock.now += 1
        assert await cache.get("safeflow:k") is None

    @pytest.mark.asyncio
    async def test_zero_ttl_never_expires(self) -> None:
        """A TTL of 0 keeps the entry for the life of the process."""
        clock = FakeClock()
        cache = MemoryCacheBackend(default_ttl=60, clock=clock)
        await cache.set("safeflow:k", "v", ttl=0)

        clock.now += 10_000
        assert await cache.get("safeflow:k") == "v"

    @pytest.mark.asyncio
    async def test_cleanup_expired(self) -> None:
        """Expired entries are evicted in bulk."""
        clock = FakeClock()
        cache = MemoryCacheBackend(default_ttl=10, clock=clock)
        await cache.set("safeflow:a", 1)
        await cache.set("safeflow:b", 2, ttl=100)

        clock.now += 50

        assert await cache.cleanup_expired() == 1
        assert await cache.get("safeflow:b") == 2

    @pytest.mark.asyncio
    async def test_writes_sweep_unread_expired_keys(self) -> None:
        """Keys never read again are evicted by later writes."""
        clock = FakeClock()
        cache = MemoryCacheBackend(default_ttl=300, clock=clock, sweep_interval=60)

        for n in range(1000):
            await cache.set(f"safeflow:discovery:{n}", n)
            clock.now += 10

        # 30 live entries plus at most one sweep interval of expired ones
        assert len(cache._store) <= 37
        assert await cache.get("safeflow:discovery:999") == 999
        assert await cache.get("safeflow:discovery:0") is None

    @pytest.mark.asyncio
    async def test_no_sweep_before_interval(self) -> None:
        """Expired keys wait for the next sweep window."""
        clock = FakeClock()
        cache = MemoryCacheBackend(default_ttl=5, clock=clock, sweep_interval=60)
        await cache.set("safeflow:a", 1)

        clock.now += 10
        await cache.set("safeflow:b", 2)
        assert "safeflow:a" in cache._store

        clock.now += 60
        await cache.set("safeflow:c", 3)
        assert set(cache._store) == {"safeflow:c"}
