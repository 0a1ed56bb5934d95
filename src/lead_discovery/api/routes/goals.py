"""Goal processing endpoints."""
from fastapi import APIRouter, Depends, status

from ...core.logging import logger
from ...models.requests import GoalRequest
from ...models.responses import GoalResponse
from ...pipeline.manager import LeadDiscoveryPipeline
from ..dependencies import get_pipeline


router = APIRouter()


@router.post(
    "/process",
    response_model=GoalResponse,
    status_code=status.HTTP_200_OK,
    summary="Turn a business goal into leads",
    description="Generate search queries for the goal, search the web and optionally analyze each lead"
)
async def process_goal(
    request: GoalRequest,
    pipeline: LeadDiscoveryPipeline = Depends(get_pipeline)
) -> GoalResponse:
    """
    Process a natural-language business goal.

    Pipeline errors propagate to the registered exception handlers.
    """
    logger.info(f"Goal request received (analyze={request.analyze}, max_results={request.max_results})")
    return await pipeline.process_goal(request)
