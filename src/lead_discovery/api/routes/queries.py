"""Search history endpoints."""
from typing import List

from fastapi import APIRouter, Depends, Query

from ...models.analysis import AnalysisResult
from ...models.responses import RecentQuery
from ...models.search import QueryAnalytics, SearchResult
from ...pipeline.manager import LeadDiscoveryPipeline
from ..dependencies import get_pipeline


router = APIRouter()


@router.get(
    "/queries/recent",
    response_model=List[RecentQuery],
    summary="List recent queries"
)
async def recent_queries(
    limit: int = Query(default=10, ge=1, le=100),
    pipeline: LeadDiscoveryPipeline = Depends(get_pipeline)
) -> List[RecentQuery]:
    """Newest stored goals with their outcome."""
    return [RecentQuery.model_validate(row) for row in pipeline.storage.get_recent_queries(limit)]


@router.get(
    "/queries/{query_id}/results",
    response_model=List[SearchResult],
    summary="Search results of a query"
)
async def query_results(
    query_id: int,
    pipeline: LeadDiscoveryPipeline = Depends(get_pipeline)
) -> List[SearchResult]:
    """Stored search results of one query, ordered by rank."""
    return pipeline.storage.get_results_for_query(query_id)


@router.get(
    "/queries/{query_id}/analyses",
    response_model=List[AnalysisResult],
    summary="Website analyses of a query"
)
async def query_analyses(
    query_id: int,
    pipeline: LeadDiscoveryPipeline = Depends(get_pipeline)
) -> List[AnalysisResult]:
    """Stored website analyses produced for one query."""
    return pipeline.storage.get_analyses_for_query(query_id)


@router.get(
    "/analytics",
    response_model=QueryAnalytics,
    summary="Query analytics"
)
async def query_analytics(
    timeframe: str = Query(default="day", description="One of day, week, month"),
    pipeline: LeadDiscoveryPipeline = Depends(get_pipeline)
) -> QueryAnalytics:
    """Aggregate counts, success rate and top industries for a timeframe."""
    return pipeline.storage.get_query_analytics(timeframe)
