"""Pytest fixtures for lead discovery tests."""

import asyncio
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple
from unittest.mock import AsyncMock

import pytest

from lead_discovery.core.exceptions import NavigationError
from lead_discovery.crawler.browser_pool import BrowserPool, SessionStatus
from lead_discovery.search.storage import QueryStorage


class FakeSession:
    """In-memory stand-in for a browser session."""

    def __init__(self, session_id: str, browser: "FakeBrowser"):
        self.id = session_id
        self.status = SessionStatus.IDLE
        self.error_count = 0
        self.last_active = None
        self.closed = False
        self.healthy = True
        self._browser = browser
        self._current: Optional[str] = None

    async def navigate(self, url: str, timeout_ms: int = 30000):
        self._browser.navigations.append(url)
        gate = self._browser.gates.get(url)
        if gate is not None:
            await gate.wait()
        pending = self._browser.failures.get(url)
        if pending:
            raise pending.pop(0)
        if url not in self._browser.pages:
            raise NavigationError(f"net::ERR_NAME_NOT_RESOLVED at {url}", url=url)
        self._current = url

    async def get_content(self) -> str:
        if self._current is None:
            return ""
        if self._current in self._browser.broken_extraction:
            raise RuntimeError("Execution context was destroyed")
        return self._browser.pages[self._current][0]

    async def evaluate_links(self) -> List[str]:
        if self._current is None:
            return []
        if self._current in self._browser.broken_extraction:
            raise RuntimeError("Execution context was destroyed")
        return list(self._browser.pages[self._current][1])

    def resource_count(self) -> int:
        return 0

    async def ping(self) -> bool:
        return self.healthy

    async def close(self):
        self.closed = True


class FakeBrowser:
    """Scripted pages and failures shared by every FakeSession."""

    def __init__(self):
        self.pages: Dict[str, Tuple[str, List[str]]] = {}
        self.failures: Dict[str, List[BaseException]] = {}
        self.gates: Dict[str, asyncio.Event] = {}
        self.broken_extraction: Set[str] = set()
        self.navigations: List[str] = []
        self.sessions: List[FakeSession] = []

    def add_page(self, url: str, body: str = "", links: Optional[List[str]] = None):
        self.pages[url] = (f"<html><body>{body}</body></html>", links or [])

    def fail(self, url: str, *errors: BaseException):
        self.failures.setdefault(url, []).extend(errors)

    def hold(self, url: str) -> asyncio.Event:
        """Block navigations to ``url`` until the returned event is set."""
        gate = asyncio.Event()
        self.gates[url] = gate
        return gate

    def break_extraction(self, url: str):
        """Make content and link reads fail after ``url`` has loaded."""
        self.broken_extraction.add(url)

    async def factory(self, session_id: str) -> FakeSession:
        session = FakeSession(session_id, self)
        self.sessions.append(session)
        return session


@pytest.fixture
def fake_browser() -> FakeBrowser:
    return FakeBrowser()


@pytest.fixture
def browser_pool(fake_browser) -> BrowserPool:
    return BrowserPool(pool_size=2, max_session_errors=2, session_factory=fake_browser.factory)


@pytest.fixture
def no_sleep() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def storage(tmp_path: Path) -> QueryStorage:
    return QueryStorage(str(tmp_path / "leads.db"))


@pytest.fixture
def chat_client() -> AsyncMock:
    """Chat client; set ``create_chat_completion.side_effect`` to script replies."""
    client = AsyncMock()
    client.create_chat_completion = AsyncMock()
    return client
