"""Unit tests for the browser session pool."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from lead_discovery.core.exceptions import BrowserPoolError, NavigationError
from lead_discovery.crawler.browser_pool import BrowserPool, BrowserSession, SessionStatus


@pytest.mark.asyncio
async def test_sessions_are_created_lazily_and_reused(browser_pool, fake_browser):
    assert browser_pool.size == 0

    session = await browser_pool.get_driver()
    assert session.status == SessionStatus.BUSY
    assert browser_pool.busy_count == 1
    await browser_pool.release_driver(session)

    again = await browser_pool.get_driver()
    assert again is session
    assert len(fake_browser.sessions) == 1


@pytest.mark.asyncio
async def test_pool_size_caps_concurrent_sessions(browser_pool, fake_browser):
    """Test that a third caller waits until a session is released."""
    first = await browser_pool.get_driver()
    second = await browser_pool.get_driver()
    assert browser_pool.size == 2

    waiter = asyncio.create_task(browser_pool.get_driver())
    await asyncio.sleep(0)
    assert not waiter.done()

    await browser_pool.release_driver(first)
    third = await asyncio.wait_for(waiter, timeout=1)

    assert third is first
    assert len(fake_browser.sessions) == 2
    await browser_pool.release_driver(second)
    await browser_pool.release_driver(third)
    assert browser_pool.idle_count == 2


@pytest.mark.asyncio
async def test_session_retired_after_error_budget(browser_pool):
    session = await browser_pool.get_driver()
    await browser_pool.release_driver(session, error=NavigationError("boom"))
    assert session.error_count == 1
    assert session.status == SessionStatus.IDLE

    session = await browser_pool.get_driver()
    await browser_pool.release_driver(session, error=NavigationError("boom again"))

    assert session.status == SessionStatus.ERROR
    assert session.closed is True
    assert browser_pool.size == 0

    replacement = await browser_pool.get_driver()
    assert replacement is not session


@pytest.mark.asyncio
async def test_session_context_manager_counts_errors(browser_pool):
    with pytest.raises(NavigationError):
        async with browser_pool.session() as session:
            raise NavigationError("net::ERR_CONNECTION_REFUSED")

    assert session.error_count == 1
    assert browser_pool.idle_count == 1

    async with browser_pool.session() as reused:
        assert reused is session
    assert reused.error_count == 1


@pytest.mark.asyncio
async def test_factory_failure_raises_pool_error_and_frees_slot(fake_browser):
    calls = 0

    async def flaky_factory(session_id):
        nonlocal calls
        calls += 1
        if calls == 1:
            raise RuntimeError("browser crashed on launch")
        return await fake_browser.factory(session_id)

    pool = BrowserPool(pool_size=1, session_factory=flaky_factory)

    with pytest.raises(BrowserPoolError, match="browser crashed"):
        await pool.get_driver()

    session = await pool.get_driver()
    assert pool.size == 1
    await pool.release_driver(session)


@pytest.mark.asyncio
async def test_shutdown_closes_sessions_and_fails_waiters(fake_browser):
    pool = BrowserPool(pool_size=1, session_factory=fake_browser.factory)
    session = await pool.get_driver()

    waiter = asyncio.create_task(pool.get_driver())
    await asyncio.sleep(0)

    await pool.shutdown()

    with pytest.raises(BrowserPoolError):
        await asyncio.wait_for(waiter, timeout=1)
    assert session.closed is True
    assert pool.size == 0

    with pytest.raises(BrowserPoolError):
        await pool.get_driver()


@pytest.mark.asyncio
async def test_release_of_unknown_session_is_ignored(browser_pool, fake_browser):
    stranger = await fake_browser.factory("stranger")
    await browser_pool.release_driver(stranger, error=RuntimeError("x"))
    assert browser_pool.idle_count == 0
    assert stranger.error_count == 0


@pytest.mark.asyncio
async def test_session_released_when_holder_is_cancelled(browser_pool, fake_browser):
    entered = asyncio.Event()

    async def hold_forever():
        async with browser_pool.session():
            entered.set()
            await asyncio.Event().wait()

    holder = asyncio.create_task(hold_forever())
    await asyncio.wait_for(entered.wait(), timeout=1)
    assert browser_pool.busy_count == 1

    holder.cancel()
    with pytest.raises(asyncio.CancelledError):
        await holder

    assert browser_pool.busy_count == 0
    assert browser_pool.idle_count == 1
    assert fake_browser.sessions[0].error_count == 0


@pytest.mark.asyncio
async def test_health_check_evicts_dead_idle_sessions(browser_pool, fake_browser):
    """Test that only idle sessions failing their ping are evicted."""
    idle = await browser_pool.get_driver()
    busy = await browser_pool.get_driver()
    await browser_pool.release_driver(idle)
    idle.healthy = False
    busy.healthy = False

    evicted = await browser_pool.check_health()

    assert evicted == 1
    assert idle.closed is True
    assert idle.status == SessionStatus.ERROR
    assert busy.closed is False
    assert browser_pool.size == 1

    replacement = await browser_pool.get_driver()
    assert replacement is not idle
    assert len(fake_browser.sessions) == 3


@pytest.mark.asyncio
async def test_health_check_treats_ping_errors_as_unhealthy(browser_pool):
    session = await browser_pool.get_driver()
    await browser_pool.release_driver(session)
    session.ping = AsyncMock(side_effect=RuntimeError("Target closed"))

    assert await browser_pool.check_health() == 1
    assert browser_pool.idle_count == 0


@pytest.mark.asyncio
async def test_health_checks_run_until_shutdown(fake_browser):
    intervals = []

    async def tick(seconds):
        intervals.append(seconds)
        await asyncio.sleep(0)

    pool = BrowserPool(pool_size=1, session_factory=fake_browser.factory, health_check_interval=30, sleep=tick)
    session = await pool.get_driver()
    await pool.release_driver(session)
    session.healthy = False

    await pool.start_health_checks()
    for _ in range(50):
        if session.closed:
            break
        await asyncio.sleep(0)

    assert session.closed is True
    assert intervals[0] == 30

    await pool.shutdown()
    assert pool._health_task is None


@pytest.mark.asyncio
async def test_health_checks_disabled_with_zero_interval(fake_browser):
    pool = BrowserPool(pool_size=1, session_factory=fake_browser.factory, health_check_interval=0)
    await pool.start_health_checks()
    assert pool._health_task is None


def test_invalid_pool_size():
    with pytest.raises(ValueError):
        BrowserPool(pool_size=0)


@pytest.mark.asyncio
async def test_browser_session_wraps_crawl4ai():
    """Test BrowserSession navigation through a mocked AsyncWebCrawler."""
    with patch("lead_discovery.crawler.browser_pool.AsyncWebCrawler") as mock_crawler_class:
        mock_crawler = AsyncMock()
        mock_crawler_class.return_value = mock_crawler

        mock_result = MagicMock()
        mock_result.success = True
        mock_result.html = "<html><body>Hello</body></html>"
        mock_result.links = {
            "internal": [{"href": "/about"}],
            "external": [{"href": "https://partner.example.org/"}],
        }
        mock_result.media = {"images": [{"src": "a.png"}, {"src": "b.png"}], "videos": []}
        mock_crawler.arun.return_value = mock_result

        session = BrowserSession("s1", browser_config=MagicMock())
        await session.start()
        await session.navigate("https://example.com/", timeout_ms=5000)

        assert await session.get_content() == "<html><body>Hello</body></html>"
        assert await session.evaluate_links() == [
            "https://example.com/about",
            "https://partner.example.org/",
        ]
        assert session.resource_count() == 2
        assert await session.ping() is True

        await session.close()
        mock_crawler.__aexit__.assert_awaited_once()
        assert await session.ping() is False


@pytest.mark.asyncio
async def test_browser_session_navigation_failure():
    with patch("lead_discovery.crawler.browser_pool.AsyncWebCrawler") as mock_crawler_class:
        mock_crawler = AsyncMock()
        mock_crawler_class.return_value = mock_crawler

        mock_result = MagicMock()
        mock_result.success = False
        mock_result.error_message = "net::ERR_NAME_NOT_RESOLVED"
        mock_crawler.arun.return_value = mock_result

        session = BrowserSession("s1", browser_config=MagicMock())
        await session.start()

        with pytest.raises(NavigationError, match="ERR_NAME_NOT_RESOLVED"):
            await session.navigate("https://missing.invalid/")
        assert await session.get_content() == ""
