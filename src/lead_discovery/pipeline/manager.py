"""Orchestrator for the lead discovery pipeline."""
import asyncio
import logging
import math
import time
from typing import List, Optional

from ..analyzer.content_processor import ContentProcessor
from ..analyzer.website_analyzer import WebsiteAnalyzer
from ..core.config import Settings
from ..core.exceptions import CrawlDisallowedError, QueryCacheError
from ..core.logging import get_logger
from ..crawler.browser_pool import BrowserPool
from ..crawler.config import CrawlConfig
from ..crawler.rate_limiter import RateLimiter
from ..crawler.robots import RobotsTxtParser
from ..crawler.service import WebsiteCrawler
from ..llm.client import ChatClient
from ..models.analysis import AnalysisContext
from ..models.query import QueryGeneratorOptions
from ..models.requests import GoalRequest
from ..models.responses import GoalResponse, LeadResult
from ..models.search import SearchOptions, SearchResult
from ..search.brave import BraveSearch
from ..search.cache import QueryCache
from ..search.query_generator import QueryGenerator
from ..search.storage import QueryStorage
from ..utils.url_utils import deduplicate_urls


class LeadDiscoveryPipeline:
    """
    Orchestrator for goal → queries → search → crawl → analysis.

    The pipeline owns the browser pool, the cache, the storage and the
    external clients for its whole lifetime; ``shutdown()`` releases them.
    """

    def __init__(
        self,
        query_generator: QueryGenerator,
        search_client: BraveSearch,
        cache: QueryCache,
        storage: QueryStorage,
        crawler: Optional[WebsiteCrawler] = None,
        analyzer: Optional[WebsiteAnalyzer] = None,
        browser_pool: Optional[BrowserPool] = None,
        max_queries: int = 5,
        max_concurrent_analyses: int = 3,
        logger: Optional[logging.Logger] = None
    ):
        self.query_generator = query_generator
        self.search_client = search_client
        self.cache = cache
        self.storage = storage
        self.crawler = crawler
        self.analyzer = analyzer
        self.browser_pool = browser_pool
        self.max_queries = max_queries
        self.max_concurrent_analyses = max_concurrent_analyses
        self.logger = logger or get_logger("pipeline")
        self._started = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "LeadDiscoveryPipeline":
        """Build a pipeline and all of its collaborators from settings."""
        logger = get_logger("pipeline")

        chat_client = ChatClient(
            api_key=settings.LLM_API_KEY,
            model=settings.LLM_MODEL_NAME,
            base_url=settings.LLM_BASE_URL,
            timeout=settings.LLM_TIMEOUT,
            max_retries=settings.LLM_MAX_RETRIES
        )
        browser_pool = BrowserPool(
            pool_size=settings.BROWSER_POOL_SIZE,
            max_session_errors=settings.BROWSER_MAX_SESSION_ERRORS,
            health_check_interval=settings.BROWSER_HEALTH_CHECK_INTERVAL,
            headless=settings.CRAWLER_HEADLESS,
            user_agent=settings.CRAWLER_USER_AGENT
        )
        crawl_config = CrawlConfig(
            max_concurrency=settings.CRAWLER_MAX_CONCURRENT,
            max_depth=settings.CRAWLER_MAX_DEPTH,
            max_pages=settings.CRAWLER_MAX_PAGES,
            max_retries=settings.CRAWLER_MAX_RETRIES,
            retry_delay_ms=settings.CRAWLER_RETRY_DELAY_MS,
            backoff=settings.CRAWLER_BACKOFF,
            timeout_ms=settings.CRAWLER_TIMEOUT_MS,
            default_delay_ms=settings.CRAWLER_DEFAULT_DELAY_MS,
            user_agent=settings.CRAWLER_USER_AGENT,
            respect_robots_txt=settings.CRAWLER_RESPECT_ROBOTS_TXT,
            same_domain_only=settings.CRAWLER_SAME_DOMAIN_ONLY
        )
        # Crawler and analyzer load pages from the same hosts
        rate_limiter = RateLimiter(default_delay_ms=settings.CRAWLER_DEFAULT_DELAY_MS)
        robots_parser = RobotsTxtParser(user_agent=settings.CRAWLER_USER_AGENT)

        return cls(
            query_generator=QueryGenerator(
                chat_client,
                default_max_queries=settings.QUERY_MAX_QUERIES,
                quality_threshold=settings.QUERY_QUALITY_THRESHOLD
            ),
            search_client=BraveSearch(
                api_key=settings.BRAVE_API_KEY,
                base_url=settings.BRAVE_API_URL,
                timeout=settings.BRAVE_TIMEOUT,
                rate_limiter=RateLimiter(default_delay_ms=settings.BRAVE_MIN_INTERVAL_MS)
            ),
            cache=QueryCache(settings.QUERY_CACHE_DIR, ttl_seconds=settings.QUERY_CACHE_TTL_SECONDS),
            storage=QueryStorage(settings.STORAGE_DB_PATH),
            crawler=WebsiteCrawler(
                browser_pool,
                config=crawl_config,
                rate_limiter=rate_limiter,
                robots_parser=robots_parser
            ),
            analyzer=WebsiteAnalyzer(
                browser_pool,
                chat_client,
                content_processor=ContentProcessor(),
                robots_parser=robots_parser if settings.CRAWLER_RESPECT_ROBOTS_TXT else None,
                rate_limiter=rate_limiter,
                timeout_ms=settings.CRAWLER_TIMEOUT_MS,
                max_content_chars=settings.ANALYZER_MAX_CONTENT_CHARS
            ),
            browser_pool=browser_pool,
            max_queries=settings.QUERY_MAX_QUERIES,
            max_concurrent_analyses=settings.ANALYZER_MAX_CONCURRENT,
            logger=logger
        )

    async def start(self):
        """Mark the pipeline ready; browser sessions are created on demand."""
        if self.browser_pool is not None:
            await self.browser_pool.start_health_checks()
        self._started = True
        self.logger.info("Lead discovery pipeline started")

    async def shutdown(self):
        """Stop crawls, close browser sessions and HTTP clients."""
        if self.crawler is not None:
            await self.crawler.stop()
        if self.browser_pool is not None:
            await self.browser_pool.shutdown()
        await self.search_client.close()
        self._started = False
        self.logger.info("Lead discovery pipeline shut down")

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.shutdown()

    async def process_goal(self, request: GoalRequest) -> GoalResponse:
        """
        Turn a business goal into leads.

        Args:
            request: Validated goal request

        Returns:
            GoalResponse with deduplicated leads, analyzed when requested

        Raises:
            QueryGenerationError: If no queries could be generated
            SearchError: If a search call fails
            QueryStorageError: If the query or its results cannot be saved
        """
        started = time.perf_counter()
        self.logger.info(f"Processing goal: '{request.goal}' (max_results={request.max_results})")

        max_queries = min(math.ceil(request.max_results / 2), self.max_queries)
        generation = await self.query_generator.generate_queries(
            request.goal,
            QueryGeneratorOptions(
                location=request.location,
                max_queries=max_queries,
                expand_queries=request.expand_queries
            )
        )
        generation_ms = (time.perf_counter() - started) * 1000

        query_id = self.storage.save_query(
            request.goal,
            SearchOptions(
                target_industry=generation.target_industry,
                service_offering=generation.service_offering,
                location=generation.location,
                max_results=request.max_results
            ),
            user_id=request.user_id,
            execution_time_ms=generation_ms,
            metadata={"queries": generation.queries}
        )

        try:
            per_query = math.ceil(request.max_results / len(generation.queries))
            search_options = SearchOptions(
                target_industry=generation.target_industry,
                service_offering=generation.service_offering,
                location=request.location,
                max_results=per_query
            )

            collected: List[SearchResult] = []
            for query in generation.queries:
                collected.extend(await self._cached_search(query, search_options))

            results = deduplicate_urls(collected, url_of=lambda result: result.url)[:request.max_results]
            self.storage.save_results(query_id, results)

            leads = [LeadResult.from_search_result(result) for result in results]
            if request.analyze and self.analyzer is not None:
                await self._analyze_leads(
                    leads,
                    AnalysisContext(
                        target_industry=generation.target_industry,
                        service_offering=generation.service_offering
                    ),
                    query_id
                )
        except Exception:
            self.storage.record_outcome(query_id, success=False)
            raise

        execution_ms = (time.perf_counter() - started) * 1000
        self.storage.record_outcome(query_id, success=True, execution_time_ms=execution_ms)

        self.logger.info(
            f"Goal processed: {len(leads)} leads from {len(generation.queries)} queries "
            f"in {execution_ms:.0f}ms"
        )
        return GoalResponse(
            success=True,
            query_id=query_id,
            queries=generation.queries,
            target_industry=generation.target_industry,
            service_offering=generation.service_offering,
            leads=leads,
            total_results=len(leads),
            execution_time_ms=execution_ms,
            message=f"Found {len(leads)} leads"
        )

    async def _cached_search(self, query: str, options: SearchOptions) -> List[SearchResult]:
        try:
            cached = await self.cache.get(query, options)
        except QueryCacheError as e:
            self.logger.warning(f"Cache lookup failed for '{query}', searching directly: {e.message}")
            cached = None

        if cached is not None:
            return cached

        results = await self.search_client.search(query, options)

        try:
            await self.cache.set(query, options, results)
        except QueryCacheError as e:
            self.logger.warning(f"Could not cache results for '{query}': {e.message}")

        return results

    async def _analyze_leads(self, leads: List[LeadResult], context: AnalysisContext, query_id: int):
        semaphore = asyncio.Semaphore(self.max_concurrent_analyses)

        async def analyze(lead: LeadResult):
            async with semaphore:
                if not await self.analyzer.is_allowed(lead.url):
                    self._skip(lead, "Disallowed by robots.txt")
                    return

                pages = None
                if self.crawler is not None:
                    try:
                        pages = await self.crawler.crawl(lead.url)
                    except Exception as e:
                        self.logger.error(f"Crawl failed for lead {lead.url}: {e}")
                        lead.error = f"Crawl failed: {e}"
                        return

                try:
                    lead.analysis = await self.analyzer.analyze_website(lead.url, context, pages)
                    self.storage.save_analysis(lead.analysis, query_id=query_id)
                except CrawlDisallowedError as e:
                    self._skip(lead, e.message)
                except Exception as e:
                    self.logger.error(f"Analysis failed for lead {lead.url}: {e}")
                    lead.error = f"Analysis failed: {e}"

        await asyncio.gather(*[analyze(lead) for lead in leads])
        analyzed = sum(1 for lead in leads if lead.analysis is not None)
        skipped = sum(1 for lead in leads if lead.skipped)
        self.logger.info(f"Analyzed {analyzed}/{len(leads)} leads ({skipped} skipped)")

    def _skip(self, lead: LeadResult, reason: str):
        self.logger.info(f"Skipping lead {lead.url}: {reason}")
        lead.skipped = True
        lead.skip_reason = reason
