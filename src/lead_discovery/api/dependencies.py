"""FastAPI dependencies."""
from fastapi import HTTPException, Request, status

from ..pipeline.manager import LeadDiscoveryPipeline


def get_pipeline(request: Request) -> LeadDiscoveryPipeline:
    """
    Return the pipeline created by the application lifespan.

    Raises:
        HTTPException: 503 when the pipeline could not be configured
    """
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Lead discovery pipeline is not configured"
        )
    return pipeline
