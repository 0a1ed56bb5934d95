"""Request/response middleware."""
import time
from fastapi import Request
from ..core.logging import logger


async def add_process_time_header(request: Request, call_next):
    """
    Time each request, log it and report the duration in ``X-Process-Time``.

    Args:
        request: FastAPI request object
        call_next: Next middleware callable

    Returns:
        Response with added processing time header
    """
    start_time = time.perf_counter()

    try:
        response = await call_next(request)
    except Exception as exc:
        elapsed = time.perf_counter() - start_time
        logger.error(f"{request.method} {request.url.path} failed after {elapsed:.3f}s: {exc}")
        raise

    elapsed = time.perf_counter() - start_time
    response.headers["X-Process-Time"] = f"{elapsed:.4f}"
    logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed:.3f}s)")
    return response
