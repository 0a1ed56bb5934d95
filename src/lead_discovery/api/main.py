"""
FastAPI application for the lead discovery API.
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import time
from contextlib import asynccontextmanager

from ..core.config import settings
from ..core.exceptions import LeadDiscoveryError
from ..core.logging import logger
from ..pipeline.manager import LeadDiscoveryPipeline
from .exceptions import exception_handlers
from .middleware import add_process_time_header
from .routes import goals, health, queries


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the pipeline on startup and drain it on shutdown."""
    logger.info("Starting Lead Discovery API")
    try:
        pipeline = LeadDiscoveryPipeline.from_settings(settings)
        await pipeline.start()
    except LeadDiscoveryError as e:
        logger.error(f"Pipeline unavailable: {e.message}")
        pipeline = None
    app.state.pipeline = pipeline

    yield

    if pipeline is not None:
        await pipeline.shutdown()
    app.state.pipeline = None
    logger.info("Shutting down Lead Discovery API")


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    description="Goal-driven lead discovery: query generation, web search, crawling and website analysis",
    version=settings.APP_VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
    exception_handlers=exception_handlers
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add custom middleware
app.middleware("http")(add_process_time_header)


# Include routers
app.include_router(
    goals.router,
    prefix=f"{settings.API_V1_PREFIX}/goals",
    tags=["goals"]
)

app.include_router(
    queries.router,
    prefix=settings.API_V1_PREFIX,
    tags=["queries"]
)

app.include_router(
    health.router,
    prefix=settings.API_V1_PREFIX,
    tags=["health"]
)


# Health check endpoint
@app.get("/health", tags=["health"])
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": time.time(),
        "version": settings.APP_VERSION
    }


# Root endpoint
@app.get("/", tags=["root"])
async def root():
    """Root endpoint with API information."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "health": "/health"
    }


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)

    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "type": "internal_error"
        }
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "lead_discovery.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
