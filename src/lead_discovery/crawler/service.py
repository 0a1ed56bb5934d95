"""
Website crawler: breadth-first crawling on top of the browser pool.
"""
from typing import Awaitable, Callable, List, Optional, Tuple
import asyncio
import logging
import re
import time

from .browser_pool import BrowserPool, BrowserSession
from .config import CrawlConfig
from .frontier import URLFrontier
from .rate_limiter import RateLimiter
from .robots import RobotsTxtParser
from ..core.exceptions import BrowserPoolError
from ..core.logging import get_logger
from ..models.crawl_result import (
    CrawlError,
    CrawlErrorCode,
    CrawlMetrics,
    CrawlTask,
    PageMetrics,
    PageResult,
    TaskState,
)
from ..utils.content_utils import html_to_text
from ..utils.url_utils import get_domain, is_same_domain, try_normalize_url

# Checked in order; browser net:: codes take precedence over free text.
NET_ERROR_MARKERS: List[Tuple[str, CrawlErrorCode]] = [
    ("net::ERR_CONNECTION_REFUSED", CrawlErrorCode.CONNECTION_REFUSED),
    ("net::ERR_NAME_NOT_RESOLVED", CrawlErrorCode.DNS_ERROR),
    ("net::ERR_SSL_PROTOCOL_ERROR", CrawlErrorCode.SSL_ERROR),
    ("net::ERR_CERT_", CrawlErrorCode.SSL_ERROR),
    ("net::ERR_TOO_MANY_REDIRECTS", CrawlErrorCode.TOO_MANY_REDIRECTS),
    ("net::ERR_PROXY_CONNECTION_FAILED", CrawlErrorCode.PROXY_ERROR),
    ("net::ERR_CONNECTION_TIMED_OUT", CrawlErrorCode.TIMEOUT),
    ("net::ERR_TIMED_OUT", CrawlErrorCode.TIMEOUT),
]

# Matched case-insensitively on word boundaries against free-text messages
TEXT_ERROR_MARKERS: List[Tuple["re.Pattern", CrawlErrorCode]] = [
    (re.compile(pattern, re.IGNORECASE), code)
    for pattern, code in [
        (r"\bconnection refused\b", CrawlErrorCode.CONNECTION_REFUSED),
        (r"\beconnrefused\b", CrawlErrorCode.CONNECTION_REFUSED),
        (r"\bdns lookup failed\b", CrawlErrorCode.DNS_ERROR),
        (r"\bname or service not known\b", CrawlErrorCode.DNS_ERROR),
        (r"\bgetaddrinfo\b", CrawlErrorCode.DNS_ERROR),
        (r"\bssl(?:error)?\b", CrawlErrorCode.SSL_ERROR),
        (r"\bcertificate\b", CrawlErrorCode.SSL_ERROR),
        (r"\btoo many redirects\b", CrawlErrorCode.TOO_MANY_REDIRECTS),
        (r"\bproxy(?:error)?\b", CrawlErrorCode.PROXY_ERROR),
        (r"\btimed out\b", CrawlErrorCode.TIMEOUT),
        (r"\btimeout(?:error)?\b", CrawlErrorCode.TIMEOUT),
    ]
]

CONNECTION_RESET_MARKERS = ("net::ERR_CONNECTION_RESET", "connection reset", "econnreset")


def classify_error(message: str) -> CrawlErrorCode:
    """
    Map a navigation error message to an error code.

    Args:
        message: Error text raised by the browser or the crawler

    Returns:
        The matching CrawlErrorCode, UNKNOWN if nothing matches
    """
    if not message:
        return CrawlErrorCode.UNKNOWN

    for marker, code in NET_ERROR_MARKERS:
        if marker in message:
            return code

    for pattern, code in TEXT_ERROR_MARKERS:
        if pattern.search(message):
            return code

    return CrawlErrorCode.UNKNOWN


def is_transient(message: str, code: Optional[CrawlErrorCode] = None) -> bool:
    """Whether a failure is worth another attempt."""
    code = code or classify_error(message)
    if code != CrawlErrorCode.UNKNOWN:
        return True
    lowered = (message or "").lower()
    return any(marker.lower() in lowered for marker in CONNECTION_RESET_MARKERS)


class WebsiteCrawler:
    """
    Breadth-first website crawler.

    Features:
    - Bounded worker concurrency over a shared frontier
    - robots.txt compliance and per-host rate limiting
    - Retries with configurable backoff for transient failures
    - Same-domain link filtering and page budget
    - Per-crawl metrics
    """

    def __init__(
        self,
        browser_pool: BrowserPool,
        config: Optional[CrawlConfig] = None,
        rate_limiter: Optional[RateLimiter] = None,
        robots_parser: Optional[RobotsTxtParser] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.browser_pool = browser_pool
        self.config = config or CrawlConfig()
        self.logger = logger or get_logger("crawler")
        self.rate_limiter = rate_limiter or RateLimiter(
            default_delay_ms=self.config.default_delay_ms,
            logger=self.logger
        )
        self.robots_parser = robots_parser or RobotsTxtParser(
            user_agent=self.config.user_agent,
            logger=self.logger
        )
        self._sleep = sleep or asyncio.sleep
        self._frontiers: List[URLFrontier] = []
        self._stopped = False
        self.metrics = CrawlMetrics()

    async def stop(self):
        """Stop dequeuing new URLs; in-flight fetches run to completion."""
        self._stopped = True
        for frontier in list(self._frontiers):
            await frontier.stop()
        self.logger.info("Crawler stop requested")

    async def _is_allowed(self, url: str) -> bool:
        if not self.config.respect_robots_txt:
            return True
        return await self.robots_parser.is_allowed(url)

    async def _apply_rate_limit(self, url: str):
        host = get_domain(url) or url
        if self.config.respect_robots_txt:
            crawl_delay = await self.robots_parser.get_crawl_delay(url)
            if crawl_delay is not None:
                delay_ms = max(int(crawl_delay * 1000), self.config.default_delay_ms)
                if self.rate_limiter.get_delay(host) != delay_ms:
                    self.rate_limiter.set_delay(host, delay_ms)
        await self.rate_limiter.wait(host)

    async def _extract(self, session: BrowserSession, url: str) -> Tuple[str, str, List[str]]:
        """Read html, text and links from the loaded page; failures yield empty values."""
        try:
            html = await session.get_content()
            content = html_to_text(html)
        except Exception as e:
            self.logger.error(f"Content extraction failed for {url}: {e}")
            html, content = "", ""

        try:
            links = await session.evaluate_links()
        except Exception as e:
            self.logger.error(f"Link extraction failed for {url}: {e}")
            links = []

        return html, content, links

    async def _fetch_page(self, task: CrawlTask, metrics: Optional[CrawlMetrics] = None) -> PageResult:
        """
        Fetch one URL, retrying transient failures.

        Returns:
            PageResult for the terminal attempt
        """
        if metrics is None:
            metrics = self.metrics
        attempts = task.retry_count
        state = TaskState.QUEUED
        timeout_s = self.config.timeout_ms / 1000.0

        while True:
            attempts += 1
            state = TaskState.FETCHING
            started = time.perf_counter()
            try:
                async with self.browser_pool.session() as session:
                    await asyncio.wait_for(
                        session.navigate(task.url, timeout_ms=self.config.timeout_ms),
                        timeout=timeout_s
                    )
                    load_time_ms = (time.perf_counter() - started) * 1000
                    html, content, links = await self._extract(session, task.url)
                    resource_count = session.resource_count()

                state = TaskState.SUCCEEDED
                self.logger.debug(f"{state.value}: {task.url} in {load_time_ms:.0f}ms")
                return PageResult(
                    url=task.url,
                    content=content,
                    links=links,
                    depth=task.depth,
                    metrics=PageMetrics(
                        load_time_ms=load_time_ms,
                        size=len(html.encode("utf-8")),
                        resource_count=resource_count
                    )
                )

            except asyncio.TimeoutError:
                message = f"Navigation timeout of {self.config.timeout_ms} ms exceeded"
            except BrowserPoolError as e:
                state = TaskState.FAILED
                self.logger.error(f"{state.value}: no browser session for {task.url}: {e.message}")
                return PageResult(
                    url=task.url,
                    depth=task.depth,
                    error=CrawlError(message=e.message, code=CrawlErrorCode.UNKNOWN, retries=attempts)
                )
            except Exception as e:
                message = str(e) or e.__class__.__name__

            code = classify_error(message)
            if is_transient(message, code) and attempts < self.config.max_retries and not self._stopped:
                state = TaskState.RETRYING
                delay = self.config.retry_delay_for(attempts)
                metrics.retry_count += 1
                self.logger.warning(
                    f"{state.value}: {task.url} failed ({code.value}), attempt "
                    f"{attempts}/{self.config.max_retries}, next in {delay:.1f}s: {message}"
                )
                await self._sleep(delay)
                if not self._stopped:
                    continue
                self.logger.info(f"Crawler stopped during backoff, not retrying {task.url}")

            state = TaskState.FAILED
            self.logger.error(
                f"{state.value}: giving up on {task.url} after {attempts} attempt(s) ({code.value}): {message}"
            )
            return PageResult(
                url=task.url,
                depth=task.depth,
                error=CrawlError(message=message, code=code, retries=attempts)
            )

    async def _process_task(
        self,
        task: CrawlTask,
        frontier: URLFrontier,
        results: List[PageResult],
        metrics: CrawlMetrics
    ):
        if not await self._is_allowed(task.url):
            metrics.skipped_count += 1
            self.logger.debug(f"Skipping {task.url} (disallowed by robots.txt)")
            return

        await self._apply_rate_limit(task.url)

        result = await self._fetch_page(task, metrics)
        results.append(result)
        self._record(result, metrics)

        if result.error is not None or task.depth >= frontier.max_depth:
            return

        for link in result.links:
            if self.config.same_domain_only and not is_same_domain(link, task.origin):
                continue
            await frontier.enqueue(link, depth=task.depth + 1, origin=task.origin)

    @staticmethod
    def _record(result: PageResult, metrics: CrawlMetrics):
        metrics.pages_processed += 1
        if result.error is not None:
            metrics.error_count += 1
        if result.metrics is not None:
            metrics.total_size += result.metrics.size
            successes = metrics.pages_processed - metrics.error_count
            metrics.average_load_time_ms += (
                result.metrics.load_time_ms - metrics.average_load_time_ms
            ) / successes

    async def _worker(
        self,
        worker_id: int,
        frontier: URLFrontier,
        results: List[PageResult],
        metrics: CrawlMetrics
    ):
        while True:
            task = await frontier.get()
            if task is None:
                break
            try:
                await self._process_task(task, frontier, results, metrics)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self.logger.error(f"Worker {worker_id} failed on {task.url}: {e}", exc_info=True)
            finally:
                await frontier.task_done()

    async def crawl(self, start_url: str) -> List[PageResult]:
        """
        Crawl a site starting from ``start_url``.

        Args:
            start_url: Seed URL

        Returns:
            PageResults in completion order; robots-skipped URLs produce none
        """
        seed = try_normalize_url(start_url)
        if seed is None:
            self.logger.warning(f"Not crawling invalid URL: {start_url}")
            return []

        metrics = CrawlMetrics()
        frontier = URLFrontier(
            max_depth=self.config.max_depth,
            max_pages=self.config.max_pages,
            logger=self.logger
        )
        if self._stopped:
            await frontier.stop()
        self._frontiers.append(frontier)

        results: List[PageResult] = []
        started = time.perf_counter()
        self.logger.info(f"Starting crawl from {seed} (max_depth={self.config.max_depth})")

        try:
            await frontier.enqueue(seed, depth=0, origin=seed)
            workers = [
                asyncio.create_task(self._worker(i, frontier, results, metrics))
                for i in range(self.config.max_concurrency)
            ]
            try:
                await asyncio.gather(*workers)
            except asyncio.CancelledError:
                for worker in workers:
                    worker.cancel()
                await asyncio.gather(*workers, return_exceptions=True)
                raise
        finally:
            self._frontiers.remove(frontier)
            metrics.total_time_ms = (time.perf_counter() - started) * 1000
            self.metrics = metrics

        self.logger.info(
            f"Crawl of {seed} complete: {metrics.pages_processed} pages, "
            f"{metrics.error_count} errors, {metrics.skipped_count} skipped"
        )
        return results

    async def crawl_batch(
        self,
        urls: List[str],
        max_concurrent: int = 3
    ) -> List[List[PageResult]]:
        """
        Crawl several sites with bounded concurrency.

        Args:
            urls: Seed URLs
            max_concurrent: Sites crawled at once

        Returns:
            One result list per seed, in input order
        """
        self.logger.info(f"Starting batch crawl of {len(urls)} sites with concurrency={max_concurrent}")
        semaphore = asyncio.Semaphore(max_concurrent)

        async def crawl_with_semaphore(url: str) -> List[PageResult]:
            async with semaphore:
                return await self.crawl(url)

        results = await asyncio.gather(
            *[crawl_with_semaphore(url) for url in urls],
            return_exceptions=True
        )

        batch_results = []
        for url, result in zip(urls, results):
            if isinstance(result, Exception):
                self.logger.error(f"Exception crawling {url}: {result}")
                batch_results.append([PageResult(
                    url=url,
                    error=CrawlError(message=str(result), code=classify_error(str(result)))
                )])
            else:
                batch_results.append(result)

        return batch_results
