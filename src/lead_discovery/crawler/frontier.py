"""Breadth-first URL frontier with visited-set deduplication."""
import asyncio
import logging
from collections import deque
from typing import Deque, Optional, Set

from ..models.crawl_result import CrawlTask
from ..utils.url_utils import try_normalize_url
from ..core.logging import get_logger


class URLFrontier:
    """
    FIFO queue of crawl tasks for one crawl session.

    A URL is marked visited when it is enqueued, so every normalized URL is
    handed out at most once. All mutations happen under one
    ``asyncio.Condition``, which also lets workers wait for new work and
    detect when the crawl is finished (nothing queued, nothing in flight).
    """

    def __init__(
        self,
        max_depth: int = 2,
        max_pages: Optional[int] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.max_depth = max_depth
        self.max_pages = max_pages
        self._queue: Deque[CrawlTask] = deque()
        self._visited: Set[str] = set()
        self._in_flight = 0
        self._stopped = False
        self._condition = asyncio.Condition()
        self.logger = logger or get_logger("frontier")

    @property
    def size(self) -> int:
        return len(self._queue)

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @property
    def visited_count(self) -> int:
        return len(self._visited)

    @property
    def stopped(self) -> bool:
        return self._stopped

    def has_visited(self, url: str) -> bool:
        normalized = try_normalize_url(url)
        return normalized is not None and normalized in self._visited

    async def enqueue(
        self,
        url: str,
        depth: int = 0,
        origin: Optional[str] = None,
        retry_count: int = 0
    ) -> bool:
        """
        Add a URL to the frontier.

        Args:
            url: Absolute URL
            depth: Link distance from the seed
            origin: Seed URL, defaults to ``url``
            retry_count: Attempts already spent on this URL

        Returns:
            True if a task was queued, False if it was dropped
        """
        normalized = try_normalize_url(url)
        if normalized is None:
            self.logger.debug(f"Dropping invalid URL: {url}")
            return False

        if depth > self.max_depth:
            self.logger.debug(f"Dropping {normalized}: depth {depth} exceeds {self.max_depth}")
            return False

        async with self._condition:
            if self._stopped:
                return False
            if normalized in self._visited:
                self.logger.debug(f"Dropping {normalized}: already seen")
                return False
            if self.max_pages is not None and len(self._visited) >= self.max_pages:
                self.logger.debug(f"Dropping {normalized}: page budget of {self.max_pages} spent")
                return False

            self._visited.add(normalized)
            self._queue.append(CrawlTask(
                url=normalized,
                depth=depth,
                origin=origin or normalized,
                retry_count=retry_count
            ))
            self.logger.debug(f"Queued {normalized} (depth={depth}, queue size={len(self._queue)})")
            self._condition.notify()
            return True

    async def dequeue(self) -> Optional[CrawlTask]:
        """Pop the oldest task without waiting, or None if the queue is empty."""
        async with self._condition:
            if self._stopped or not self._queue:
                return None
            self._in_flight += 1
            return self._queue.popleft()

    async def get(self) -> Optional[CrawlTask]:
        """
        Wait for the next task.

        Returns:
            The next task, or None once the frontier is exhausted (empty with
            nothing in flight) or stopped
        """
        async with self._condition:
            while not self._queue and self._in_flight > 0 and not self._stopped:
                await self._condition.wait()

            if self._stopped or not self._queue:
                self._condition.notify_all()
                return None

            self._in_flight += 1
            return self._queue.popleft()

    async def task_done(self):
        """Mark a dispatched task as finished."""
        async with self._condition:
            self._in_flight = max(0, self._in_flight - 1)
            self._condition.notify_all()

    async def stop(self):
        """Stop handing out tasks and wake every waiter."""
        async with self._condition:
            self._stopped = True
            self._queue.clear()
            self._condition.notify_all()
        self.logger.info("Frontier stopped")
