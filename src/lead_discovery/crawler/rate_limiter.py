"""Per-key request spacing for crawls and API clients."""
import asyncio
import logging
import time
from typing import Awaitable, Callable, Dict, Optional

from ..core.logging import get_logger


class RateLimiter:
    """
    Enforces a minimum interval between requests sharing a key.

    Keys are usually host names. Callers for the same key are serialized by a
    per-key lock so concurrent workers queue behind each other instead of all
    waking at once. Keys never contend with each other.
    """

    def __init__(
        self,
        default_delay_ms: int = 1000,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
        clock: Optional[Callable[[], float]] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.default_delay_ms = max(0, default_delay_ms)
        self._sleep = sleep or asyncio.sleep
        self._clock = clock or time.monotonic
        self._delays: Dict[str, int] = {}
        self._last: Dict[str, float] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self.logger = logger or get_logger("rate_limiter")

    def _get_lock(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    def set_delay(self, key: str, delay_ms: int):
        """Override the minimum interval for one key."""
        self._delays[key] = max(0, int(delay_ms))
        self.logger.debug(f"Rate limit for {key} set to {delay_ms}ms")

    def get_delay(self, key: str) -> int:
        """Return the interval in milliseconds applied to ``key``."""
        return self._delays.get(key, self.default_delay_ms)

    async def wait(self, key: str) -> float:
        """
        Suspend until a request for ``key`` may proceed.

        Args:
            key: Rate-limit bucket, typically a host

        Returns:
            Seconds spent waiting. Internal failures are logged and treated
            as no wait.
        """
        try:
            async with self._get_lock(key):
                delay = self.get_delay(key) / 1000.0
                waited = 0.0
                last = self._last.get(key)
                if last is not None:
                    elapsed = self._clock() - last
                    if elapsed < delay:
                        waited = delay - elapsed
                        self.logger.debug(f"Rate limiting {key}: waiting {waited:.3f}s")
                        await self._sleep(waited)
                self._last[key] = self._clock()
                return waited
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.logger.warning(f"Rate limiter failed for {key}, proceeding without delay: {e}")
            return 0.0

    def reset(self, key: Optional[str] = None):
        """Forget request history for one key, or for all keys."""
        if key is None:
            self._last.clear()
        else:
            self._last.pop(key, None)
