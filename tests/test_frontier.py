"""Unit tests for the URL frontier."""

import asyncio

import pytest

from lead_discovery.crawler.frontier import URLFrontier


@pytest.mark.asyncio
async def test_enqueue_normalizes_and_deduplicates():
    """Test that equivalent URLs are queued once."""
    frontier = URLFrontier(max_depth=2)

    assert await frontier.enqueue("https://Example.com/about/") is True
    assert await frontier.enqueue("https://example.com/about#team") is False
    assert await frontier.enqueue("https://example.com:443/about") is False

    assert frontier.size == 1
    assert frontier.has_visited("HTTPS://EXAMPLE.COM/about")

    task = await frontier.dequeue()
    assert task.url == "https://example.com/about"
    assert task.origin == "https://example.com/about"
    assert task.depth == 0


@pytest.mark.asyncio
async def test_enqueue_drops_invalid_and_too_deep():
    """Test invalid URLs and depth overflow are dropped."""
    frontier = URLFrontier(max_depth=1)

    assert await frontier.enqueue("ftp://example.com/file") is False
    assert await frontier.enqueue("not a url") is False
    assert await frontier.enqueue("https://example.com/deep", depth=2) is False
    assert await frontier.enqueue("https://example.com/ok", depth=1) is True
    assert frontier.size == 1


@pytest.mark.asyncio
async def test_page_budget():
    """Test that max_pages caps the number of distinct URLs queued."""
    frontier = URLFrontier(max_depth=2, max_pages=2)

    assert await frontier.enqueue("https://example.com/1")
    assert await frontier.enqueue("https://example.com/2")
    assert not await frontier.enqueue("https://example.com/3")
    assert frontier.visited_count == 2


@pytest.mark.asyncio
async def test_fifo_order():
    frontier = URLFrontier()
    for path in ("a", "b", "c"):
        await frontier.enqueue(f"https://example.com/{path}")

    urls = [(await frontier.dequeue()).url for _ in range(3)]
    assert urls == ["https://example.com/a", "https://example.com/b", "https://example.com/c"]
    assert await frontier.dequeue() is None


@pytest.mark.asyncio
async def test_get_returns_none_when_exhausted():
    frontier = URLFrontier()
    assert await frontier.get() is None


@pytest.mark.asyncio
async def test_get_waits_for_work_from_in_flight_task():
    """Test that a waiting worker receives links discovered by a busy one."""
    frontier = URLFrontier()
    await frontier.enqueue("https://example.com/")
    first = await frontier.get()
    assert frontier.in_flight == 1

    waiter = asyncio.create_task(frontier.get())
    await asyncio.sleep(0)
    assert not waiter.done()

    await frontier.enqueue("https://example.com/next", depth=1, origin=first.url)
    task = await asyncio.wait_for(waiter, timeout=1)
    assert task.url == "https://example.com/next"
    assert task.origin == "https://example.com/"


@pytest.mark.asyncio
async def test_task_done_releases_waiters_when_finished():
    frontier = URLFrontier()
    await frontier.enqueue("https://example.com/")
    await frontier.get()

    waiter = asyncio.create_task(frontier.get())
    await asyncio.sleep(0)
    await frontier.task_done()

    assert await asyncio.wait_for(waiter, timeout=1) is None
    assert frontier.in_flight == 0


@pytest.mark.asyncio
async def test_stop_clears_queue_and_rejects_new_urls():
    frontier = URLFrontier()
    await frontier.enqueue("https://example.com/a")
    await frontier.stop()

    assert frontier.stopped
    assert frontier.size == 0
    assert await frontier.enqueue("https://example.com/b") is False
    assert await frontier.get() is None
