"""Unit tests for the search result cache."""

import pytest

from lead_discovery.models.search import SearchOptions, SearchResult
from lead_discovery.search.cache import QueryCache, make_cache_key

RESULTS = [
    SearchResult(url="https://smile-dental.example.com/", title="Smile Dental", rank=1),
    SearchResult(url="https://bright-teeth.example.com/", title="Bright Teeth", rank=2, metadata={"age": "1d"}),
]


class FakeClock:
    def __init__(self):
        self.now = 1_700_000_000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(tmp_path, clock) -> QueryCache:
    return QueryCache(str(tmp_path / "cache"), ttl_seconds=3600, clock=clock)


def test_cache_key_ignores_option_order():
    assert make_cache_key("q", {"a": 1, "b": 2}) == make_cache_key("q", {"b": 2, "a": 1})
    assert make_cache_key("q", {"a": 1}) != make_cache_key("q", {"a": 2})
    assert make_cache_key("q", SearchOptions(location="Austin")) == make_cache_key("q", {"location": "Austin"})
    assert make_cache_key("q", None) == make_cache_key("q", {}) == "q:{}"


@pytest.mark.asyncio
async def test_round_trip(cache):
    options = SearchOptions(location="Austin", max_results=10)
    await cache.set("dentist", options, RESULTS)

    cached = await cache.get("dentist", options)

    assert cached == RESULTS


@pytest.mark.asyncio
async def test_miss_for_other_options(cache):
    await cache.set("dentist", {"location": "Austin"}, RESULTS)

    assert await cache.get("dentist", {"location": "Denver"}) is None
    assert await cache.get("dentist") is None


@pytest.mark.asyncio
async def test_expired_entry_is_deleted(cache, clock):
    """Test that an entry older than the TTL is never returned."""
    await cache.set("dentist", None, RESULTS)

    clock.now += 3600
    assert await cache.get("dentist") == RESULTS

    clock.now += 1
    assert await cache.get("dentist") is None
    assert cache.get_stats()["total_entries"] == 0


@pytest.mark.asyncio
async def test_set_refreshes_timestamp(cache, clock):
    await cache.set("dentist", None, RESULTS)
    clock.now += 3000
    await cache.set("dentist", None, RESULTS[:1])
    clock.now += 3000

    assert await cache.get("dentist") == RESULTS[:1]


@pytest.mark.asyncio
async def test_corrupt_file_is_a_miss(cache):
    await cache.set("dentist", None, RESULTS)
    for cache_file in cache.cache_dir.glob("*.json"):
        cache_file.write_text("{not json", encoding="utf-8")

    assert await cache.get("dentist") is None
    assert list(cache.cache_dir.glob("*.json")) == []


@pytest.mark.asyncio
async def test_delete(cache):
    await cache.set("dentist", None, RESULTS)
    await cache.delete("dentist")
    assert await cache.get("dentist") is None


@pytest.mark.asyncio
async def test_cleanup_removes_only_expired(cache, clock):
    await cache.set("old", None, RESULTS)
    clock.now += 3000
    await cache.set("fresh", None, RESULTS)
    clock.now += 1000

    removed = await cache.cleanup()

    assert removed == 1
    assert await cache.get("old") is None
    assert await cache.get("fresh") == RESULTS


def test_stats(cache):
    stats = cache.get_stats()
    assert stats["total_entries"] == 0
    assert stats["ttl_seconds"] == 3600
