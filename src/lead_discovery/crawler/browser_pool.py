"""
Pool of headless browser sessions backed by Crawl4AI.
"""
from typing import Awaitable, Callable, Deque, Dict, List, Optional, Any
from collections import deque
from contextlib import asynccontextmanager
from datetime import datetime
from enum import Enum
from urllib.parse import urljoin
import asyncio
import logging
import uuid

from crawl4ai import AsyncWebCrawler, BrowserConfig, CrawlerRunConfig, CacheMode

from ..core.exceptions import BrowserPoolError, NavigationError
from ..core.logging import get_logger


class SessionStatus(str, Enum):
    """Browser session states."""
    IDLE = "idle"
    BUSY = "busy"
    ERROR = "error"


class BrowserSession:
    """
    One headless browser and the page it last navigated to.

    The session is not safe for concurrent use; the pool hands it to a single
    holder at a time.
    """

    def __init__(
        self,
        session_id: str,
        browser_config: BrowserConfig,
        logger: Optional[logging.Logger] = None
    ):
        self.id = session_id
        self.browser_config = browser_config
        self.status = SessionStatus.IDLE
        self.last_active = datetime.utcnow()
        self.error_count = 0
        self.logger = logger or get_logger("browser_pool")
        self._crawler: Optional[AsyncWebCrawler] = None
        self._result: Optional[Any] = None
        self._url: Optional[str] = None

    async def start(self):
        """Launch the underlying browser."""
        self._crawler = AsyncWebCrawler(config=self.browser_config)
        await self._crawler.__aenter__()
        self.logger.debug(f"Browser session {self.id} started")

    async def navigate(self, url: str, timeout_ms: int = 30000):
        """
        Load a URL in this session.

        Args:
            url: Target URL
            timeout_ms: Page load timeout passed to the browser

        Raises:
            NavigationError: If the page could not be loaded
        """
        if self._crawler is None:
            raise NavigationError(f"Browser session {self.id} is not started", url=url)

        self._result = None
        self._url = url
        run_config = CrawlerRunConfig(
            cache_mode=CacheMode.BYPASS,
            page_timeout=timeout_ms,
            verbose=False
        )
        result = await self._crawler.arun(url=url, config=run_config)

        if not result.success:
            raise NavigationError(result.error_message or f"Navigation to {url} failed", url=url)

        self._result = result
        self.last_active = datetime.utcnow()
        return result

    async def get_content(self) -> str:
        """Return the HTML of the current page."""
        if self._result is None:
            return ""
        return self._result.html or ""

    async def evaluate_links(self) -> List[str]:
        """Return absolute hrefs of every link on the current page."""
        if self._result is None:
            return []

        links = self._result.links or {}
        hrefs = []
        for kind in ("internal", "external"):
            for link in links.get(kind, []):
                href = link.get("href") if isinstance(link, dict) else link
                if href:
                    hrefs.append(urljoin(self._url, href))
        return hrefs

    def resource_count(self) -> int:
        """Number of media resources the current page referenced."""
        if self._result is None:
            return 0
        media = self._result.media or {}
        return sum(len(items) for items in media.values() if isinstance(items, list))

    async def ping(self) -> bool:
        """Whether the browser is still up and usable."""
        if self._crawler is None:
            return False
        return bool(getattr(self._crawler, "ready", True))

    async def close(self):
        """Shut down the browser."""
        if self._crawler is not None:
            crawler, self._crawler = self._crawler, None
            await crawler.__aexit__(None, None, None)
            self.logger.debug(f"Browser session {self.id} closed")


SessionFactory = Callable[[str], Awaitable[BrowserSession]]


class BrowserPool:
    """
    Bounded pool of reusable browser sessions.

    Features:
    - Lazy session creation up to ``pool_size``
    - Waiters block on a condition until a session frees up
    - Sessions retired after ``max_session_errors`` failures
    - Periodic health check evicting idle sessions whose browser died
    - Scoped acquisition through ``session()``
    """

    def __init__(
        self,
        pool_size: int = 3,
        max_session_errors: int = 2,
        headless: bool = True,
        user_agent: Optional[str] = None,
        session_factory: Optional[SessionFactory] = None,
        health_check_interval: float = 30.0,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
        logger: Optional[logging.Logger] = None
    ):
        if pool_size < 1:
            raise ValueError("pool_size must be at least 1")

        self.pool_size = pool_size
        self.max_session_errors = max_session_errors
        self.health_check_interval = health_check_interval
        self._sleep = sleep or asyncio.sleep
        self._health_task: Optional[asyncio.Task] = None
        self.logger = logger or get_logger("browser_pool")
        browser_kwargs: Dict[str, Any] = {
            "headless": headless,
            "viewport_width": 1920,
            "viewport_height": 1080,
            "browser_type": "chromium"
        }
        if user_agent:
            browser_kwargs["user_agent"] = user_agent
        self.browser_config = BrowserConfig(**browser_kwargs)
        self._session_factory = session_factory or self._create_session
        self._sessions: Dict[str, BrowserSession] = {}
        self._idle: Deque[BrowserSession] = deque()
        self._pending = 0
        self._closed = False
        self._condition = asyncio.Condition()

    async def _create_session(self, session_id: str) -> BrowserSession:
        session = BrowserSession(session_id, self.browser_config, logger=self.logger)
        await session.start()
        return session

    @property
    def size(self) -> int:
        """Sessions currently alive."""
        return len(self._sessions)

    @property
    def idle_count(self) -> int:
        return len(self._idle)

    @property
    def busy_count(self) -> int:
        return sum(1 for s in self._sessions.values() if s.status == SessionStatus.BUSY)

    async def get_driver(self) -> BrowserSession:
        """
        Acquire a session, waiting until one is idle or can be created.

        Raises:
            BrowserPoolError: If the pool is shut down or a browser fails to launch
        """
        async with self._condition:
            while True:
                if self._closed:
                    raise BrowserPoolError("Browser pool is shut down")
                if self._idle:
                    session = self._idle.popleft()
                    session.status = SessionStatus.BUSY
                    return session
                if len(self._sessions) + self._pending < self.pool_size:
                    self._pending += 1
                    break
                await self._condition.wait()

        session_id = uuid.uuid4().hex[:12]
        try:
            session = await self._session_factory(session_id)
        except Exception as e:
            async with self._condition:
                self._pending -= 1
                self._condition.notify()
            self.logger.error(f"Failed to create browser session: {e}")
            raise BrowserPoolError(f"Failed to create browser session: {e}") from e

        async with self._condition:
            self._pending -= 1
            if self._closed:
                self._condition.notify_all()
                closed = True
            else:
                closed = False
                session.status = SessionStatus.BUSY
                self._sessions[session.id] = session

        if closed:
            await session.close()
            raise BrowserPoolError("Browser pool is shut down")

        self.logger.info(f"Created browser session {session.id} ({len(self._sessions)}/{self.pool_size})")
        return session

    async def release_driver(self, session: BrowserSession, error: Optional[BaseException] = None):
        """
        Return a session to the pool.

        Args:
            session: Session obtained from ``get_driver``
            error: Failure raised while the session was held, if any
        """
        retire = False
        async with self._condition:
            if self._sessions.get(session.id) is not session:
                return

            session.last_active = datetime.utcnow()
            if error is not None:
                session.error_count += 1
                self.logger.warning(
                    f"Browser session {session.id} error "
                    f"{session.error_count}/{self.max_session_errors}: {error}"
                )

            if session.error_count >= self.max_session_errors:
                session.status = SessionStatus.ERROR
                del self._sessions[session.id]
                retire = True
            else:
                session.status = SessionStatus.IDLE
                self._idle.append(session)

            self._condition.notify()

        if retire:
            self.logger.info(f"Retiring browser session {session.id}")
            try:
                await session.close()
            except Exception as e:
                self.logger.error(f"Error closing browser session {session.id}: {e}")

    @asynccontextmanager
    async def session(self):
        """Hold a session for the duration of an ``async with`` block."""
        driver = await self.get_driver()
        try:
            yield driver
        except asyncio.CancelledError:
            await self.release_driver(driver)
            raise
        except Exception as e:
            await self.release_driver(driver, error=e)
            raise
        else:
            await self.release_driver(driver)

    async def check_health(self) -> int:
        """
        Ping idle sessions and evict the ones that fail.

        Sessions handed out while the check runs are left alone; their holder
        reports failures through ``release_driver``.

        Returns:
            Number of sessions evicted
        """
        async with self._condition:
            idle = list(self._idle)

        unhealthy = []
        for session in idle:
            try:
                healthy = await session.ping()
            except Exception as e:
                self.logger.warning(f"Health check of browser session {session.id} failed: {e}")
                healthy = False
            if not healthy:
                unhealthy.append(session)

        evicted = []
        async with self._condition:
            for session in unhealthy:
                if session not in self._idle:
                    continue
                self._idle.remove(session)
                del self._sessions[session.id]
                session.status = SessionStatus.ERROR
                evicted.append(session)
            if evicted:
                self._condition.notify(len(evicted))

        for session in evicted:
            self.logger.warning(f"Evicting unhealthy browser session {session.id}")
            try:
                await session.close()
            except Exception as e:
                self.logger.error(f"Error closing browser session {session.id}: {e}")

        return len(evicted)

    async def _health_loop(self):
        while not self._closed:
            await self._sleep(self.health_check_interval)
            try:
                await self.check_health()
            except Exception as e:
                self.logger.error(f"Browser pool health check failed: {e}", exc_info=True)

    async def start_health_checks(self):
        """Run ``check_health`` every ``health_check_interval`` seconds until shutdown."""
        if self.health_check_interval <= 0 or self._health_task is not None:
            return
        self._health_task = asyncio.create_task(self._health_loop())
        self.logger.info(f"Browser health checks every {self.health_check_interval:.0f}s")

    async def shutdown(self):
        """Close every session and fail any pending waiters."""
        if self._health_task is not None:
            task, self._health_task = self._health_task, None
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

        async with self._condition:
            self._closed = True
            sessions = list(self._sessions.values())
            self._sessions.clear()
            self._idle.clear()
            self._condition.notify_all()

        results = await asyncio.gather(*[s.close() for s in sessions], return_exceptions=True)
        for session, result in zip(sessions, results):
            if isinstance(result, Exception):
                self.logger.error(f"Error closing browser session {session.id}: {result}")

        self.logger.info(f"Browser pool shut down ({len(sessions)} sessions closed)")
