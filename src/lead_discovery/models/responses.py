"""API response schemas."""
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field
from datetime import datetime, timezone
from .search import SearchResult
from .analysis import AnalysisResult


class LeadResult(BaseModel):
    """A search hit plus its optional analysis."""
    url: str
    title: str = ""
    snippet: str = ""
    rank: int = 0
    analysis: Optional[AnalysisResult] = None
    error: Optional[str] = None
    skipped: bool = False
    skip_reason: Optional[str] = None

    @classmethod
    def from_search_result(cls, result: SearchResult) -> "LeadResult":
        return cls(url=result.url, title=result.title, snippet=result.snippet, rank=result.rank)


class GoalResponse(BaseModel):
    """Response schema for goal processing."""
    success: bool
    query_id: Optional[int] = None
    queries: List[str] = Field(default_factory=list)
    target_industry: str = ""
    service_offering: str = ""
    leads: List[LeadResult] = Field(default_factory=list)
    total_results: int = 0
    execution_time_ms: float = 0.0
    message: str = ""
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class RecentQuery(BaseModel):
    """A stored query as returned by the history endpoints."""
    id: int
    query_text: str
    target_industry: Optional[str] = None
    service_offering: Optional[str] = None
    location: Optional[str] = None
    user_id: Optional[str] = None
    max_results: Optional[int] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[str] = None
    execution_time_ms: Optional[float] = None
    total_results: Optional[int] = None
    success: Optional[bool] = None
