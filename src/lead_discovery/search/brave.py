"""Brave web search API client."""
import logging
from typing import Any, Dict, List, Optional

import httpx

from ..core.exceptions import SearchError
from ..core.logging import get_logger
from ..crawler.rate_limiter import RateLimiter
from ..models.search import SearchOptions, SearchResult

BRAVE_API_URL = "https://api.search.brave.com/res/v1/web/search"
DEFAULT_COUNT = 20
MAX_COUNT = 50
RATE_LIMIT_KEY = "brave-api"


class BraveSearch:
    """
    Wraps the Brave web search API into SearchResult lists.

    Requests are spaced by a RateLimiter (500ms, i.e. 2 requests per second,
    by default). Every failure surfaces as ``SearchError``.
    """

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = BRAVE_API_URL,
        timeout: float = 10.0,
        rate_limiter: Optional[RateLimiter] = None,
        client: Optional[httpx.AsyncClient] = None,
        logger: Optional[logging.Logger] = None
    ):
        if not api_key:
            raise SearchError("BRAVE_API_KEY is required")

        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self.logger = logger or get_logger("brave_search")
        self.rate_limiter = rate_limiter or RateLimiter(default_delay_ms=500, logger=self.logger)
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self):
        """Close the underlying HTTP client if this instance created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    @staticmethod
    def _validate_count(count: Optional[int]) -> int:
        if not count:
            return DEFAULT_COUNT
        return min(max(1, count), MAX_COUNT)

    def _build_params(self, query: str, options: SearchOptions) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "q": query,
            "format": "json",
            "count": self._validate_count(options.max_results),
        }

        if options.offset:
            params["offset"] = options.offset
        if options.language:
            params["language"] = options.language
        if options.country:
            params["country"] = options.country
        if options.safesearch:
            params["safesearch"] = options.safesearch

        if options.location:
            params["q"] += f" location:{options.location}"

        return params

    @staticmethod
    def _process_result(result: Dict[str, Any], position: int) -> SearchResult:
        return SearchResult(
            url=result["url"],
            title=result.get("title") or "",
            snippet=result.get("description") or "",
            rank=result.get("rank") or position,
            relevance_score=result.get("relevance_score") or 0.0,
            metadata={
                "deep_links": result.get("deep_links") or [],
                "favicon": result.get("favicon") or (result.get("meta_url") or {}).get("favicon"),
                "age": result.get("age"),
                "language": result.get("language"),
                "family_friendly": result.get("family_friendly"),
                "additional_properties": dict(result.get("additional_properties") or {}),
            }
        )

    async def search(self, query: str, options: Optional[SearchOptions] = None) -> List[SearchResult]:
        """
        Run a web search.

        Args:
            query: Search text
            options: Search options

        Returns:
            Results in API order

        Raises:
            SearchError: On HTTP, transport or response-format failures
        """
        options = options or SearchOptions()
        params = self._build_params(query, options)
        headers = {
            "Accept": "application/json",
            "X-Subscription-Token": self.api_key,
        }

        await self.rate_limiter.wait(RATE_LIMIT_KEY)

        try:
            response = await self._get_client().get(
                self.base_url,
                params=params,
                headers=headers,
                timeout=self.timeout
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            reason = f"status {status}"
            try:
                detail = e.response.json().get("message")
            except (ValueError, AttributeError):
                detail = None
            if detail:
                reason += f" ({detail})"
            self.logger.error(f"Brave search failed for '{query}': {reason}")
            raise SearchError(f"Search failed: {reason}", e) from e
        except httpx.RequestError as e:
            self.logger.error(f"Brave search failed for '{query}': no response ({e})")
            raise SearchError(f"Search failed: no response received from search API ({e})", e) from e
        except ValueError as e:
            self.logger.error(f"Brave search returned invalid JSON for '{query}': {e}")
            raise SearchError("Search failed: invalid response format from search API", e) from e

        web = data.get("web") if isinstance(data, dict) else None
        raw_results = web.get("results") if isinstance(web, dict) else None
        if not isinstance(raw_results, list):
            self.logger.error(f"Brave search response for '{query}' has no web.results")
            raise SearchError("Search failed: invalid response format from search API")

        try:
            results = [
                self._process_result(item, position)
                for position, item in enumerate(raw_results, start=1)
            ]
        except (KeyError, TypeError, ValueError) as e:
            self.logger.error(f"Brave search returned malformed results for '{query}': {e}")
            raise SearchError("Search failed: invalid response format from search API", e) from e

        self.logger.info(f"Search for '{query}' returned {len(results)} results (total: {web.get('total', 0)})")
        return results
