"""TTL cache for search results."""
import asyncio
import hashlib
import json
import logging
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import BaseModel, ValidationError as PydanticValidationError

from ..core.exceptions import QueryCacheError
from ..core.logging import get_logger
from ..models.search import CacheEntry, SearchResult

DEFAULT_TTL_SECONDS = 24 * 60 * 60

Options = Union[BaseModel, Dict[str, Any], None]


def make_cache_key(query: str, options: Options = None) -> str:
    """
    Build the cache key for a query and its options.

    Options are serialized with sorted keys at every level, so two option
    sets that differ only in key order share a key. Unset options are left
    out.
    """
    if isinstance(options, BaseModel):
        options = options.model_dump(exclude_none=True)
    options = {k: v for k, v in (options or {}).items() if v is not None}
    return f"{query}:{json.dumps(options, sort_keys=True, default=str)}"


class QueryCache:
    """
    File-backed cache of search results keyed by (query, options).

    Features:
    - One JSON file per key, named by the SHA-256 of the key
    - Entries older than the TTL are never returned and are deleted on read
    - Per-key locks; different keys never contend
    - Sweep of expired entries
    """

    def __init__(
        self,
        cache_dir: str,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Optional[Callable[[], float]] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.cache_dir = Path(cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self.ttl_seconds = ttl_seconds
        self._clock = clock or time.time
        self._locks: Dict[str, asyncio.Lock] = {}
        self.logger = logger or get_logger("query_cache")

    def _get_lock(self, cache_key: str) -> asyncio.Lock:
        lock = self._locks.get(cache_key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[cache_key] = lock
        return lock

    def _get_cache_file(self, cache_key: str) -> Path:
        digest = hashlib.sha256(cache_key.encode("utf-8")).hexdigest()
        return self.cache_dir / f"{digest}.json"

    def _is_expired(self, timestamp: float) -> bool:
        return self._clock() - timestamp > self.ttl_seconds

    async def get(self, query: str, options: Options = None) -> Optional[List[SearchResult]]:
        """
        Return cached results, or None on a miss or an expired entry.

        Raises:
            QueryCacheError: If the cache file cannot be read
        """
        cache_key = make_cache_key(query, options)
        cache_file = self._get_cache_file(cache_key)

        async with self._get_lock(cache_key):
            if not cache_file.exists():
                return None

            try:
                entry = CacheEntry.model_validate_json(cache_file.read_text(encoding="utf-8"))
            except (PydanticValidationError, ValueError) as e:
                self.logger.warning(f"Invalid cache file {cache_file}: {e}")
                self._remove(cache_file)
                return None
            except OSError as e:
                self.logger.error(f"Failed to read cache for '{query}': {e}")
                raise QueryCacheError("Failed to get from cache", e) from e

            if self._is_expired(entry.timestamp):
                self.logger.debug(f"Cache expired for '{query}'")
                self._remove(cache_file)
                return None

            self.logger.debug(f"Cache hit for '{query}'")
            return entry.results

    async def set(self, query: str, options: Options, results: List[SearchResult]):
        """
        Store results, replacing any existing entry and refreshing its timestamp.

        Raises:
            QueryCacheError: If the cache file cannot be written
        """
        cache_key = make_cache_key(query, options)
        cache_file = self._get_cache_file(cache_key)
        entry = CacheEntry(cache_key=cache_key, results=list(results), timestamp=self._clock())

        async with self._get_lock(cache_key):
            try:
                tmp_file = cache_file.with_suffix(".tmp")
                tmp_file.write_text(entry.model_dump_json(indent=2), encoding="utf-8")
                tmp_file.replace(cache_file)
            except OSError as e:
                self.logger.error(f"Failed to cache results for '{query}': {e}")
                raise QueryCacheError("Failed to set cache", e) from e

        self.logger.debug(f"Cached {len(entry.results)} results for '{query}'")

    async def delete(self, query: str, options: Options = None):
        """
        Remove one entry.

        Raises:
            QueryCacheError: If the cache file cannot be removed
        """
        cache_key = make_cache_key(query, options)
        async with self._get_lock(cache_key):
            try:
                self._get_cache_file(cache_key).unlink(missing_ok=True)
            except OSError as e:
                self.logger.error(f"Failed to delete cache entry for '{query}': {e}")
                raise QueryCacheError("Failed to delete from cache", e) from e
        self.logger.debug(f"Cache entry deleted for '{query}'")

    def _remove(self, cache_file: Path):
        try:
            cache_file.unlink(missing_ok=True)
        except OSError as e:
            self.logger.error(f"Failed to remove cache file {cache_file}: {e}")

    async def cleanup(self) -> int:
        """
        Delete every entry older than the TTL.

        Returns:
            Number of entries removed
        """
        self.logger.info("Cleaning up expired cache entries")

        removed = 0
        for cache_file in self.cache_dir.glob("*.json"):
            try:
                entry = CacheEntry.model_validate_json(cache_file.read_text(encoding="utf-8"))
                expired = self._is_expired(entry.timestamp)
            except (PydanticValidationError, ValueError) as e:
                self.logger.warning(f"Invalid cache file {cache_file}: {e}")
                expired = True
            except OSError as e:
                raise QueryCacheError("Failed to cleanup cache", e) from e

            if expired:
                self._remove(cache_file)
                removed += 1

        self.logger.info(f"Removed {removed} expired cache entries")
        return removed

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        files = list(self.cache_dir.glob("*.json"))
        return {
            "total_entries": len(files),
            "total_size_bytes": sum(f.stat().st_size for f in files),
            "cache_dir": str(self.cache_dir),
            "ttl_seconds": self.ttl_seconds
        }
