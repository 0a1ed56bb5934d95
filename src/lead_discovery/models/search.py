"""Search request and result models."""
from typing import Optional, Dict, List, Any, Literal
from pydantic import BaseModel, ConfigDict, Field


class SearchOptions(BaseModel):
    """Options forwarded to the search API and folded into cache keys."""
    target_industry: Optional[str] = None
    service_offering: Optional[str] = None
    location: Optional[str] = None
    max_results: Optional[int] = Field(default=None, ge=1)
    offset: Optional[int] = Field(default=None, ge=0)
    language: Optional[str] = None
    country: Optional[str] = None
    safesearch: Optional[Literal["strict", "moderate", "off"]] = None


class SearchResult(BaseModel):
    """A single web search hit."""
    model_config = ConfigDict(frozen=True)

    url: str
    title: str = ""
    snippet: str = ""
    rank: int = 0
    relevance_score: float = 0.0
    metadata: Dict[str, Any] = Field(default_factory=dict)


class CacheEntry(BaseModel):
    """Cached search results for one (query, options) key."""
    cache_key: str
    results: List[SearchResult] = Field(default_factory=list)
    timestamp: float = Field(..., description="Unix time of the last write")


class RankedCount(BaseModel):
    """A label with its frequency, used in analytics."""
    name: str
    count: int


class QueryAnalytics(BaseModel):
    """Aggregated query statistics over a timeframe."""
    total_queries: int = 0
    average_result_count: float = 0.0
    top_industries: List[RankedCount] = Field(default_factory=list)
    top_services: List[RankedCount] = Field(default_factory=list)
    query_success_rate: float = 0.0
    average_execution_time_ms: float = 0.0
