"""Exception handlers mapping pipeline errors to JSON responses."""
from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse

from ..core.exceptions import ExternalServiceError, LeadDiscoveryError, ValidationError
from ..core.logging import logger


def _error_response(exc: LeadDiscoveryError, status_code: int, error_type: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "detail": exc.message,
            "type": error_type,
            "details": exc.details
        }
    )


async def validation_exception_handler(request: Request, exc: ValidationError):
    """Handle invalid input to a pipeline component."""
    logger.warning(f"Validation error on {request.url.path}: {exc.message}")
    return _error_response(exc, 400, "validation_error")


async def external_service_exception_handler(request: Request, exc: ExternalServiceError):
    """Handle failures of the search API or the text-generation service."""
    logger.error(f"External service '{exc.service}' failed: {exc.message}")
    return _error_response(exc, 502, "external_service_error")


async def pipeline_exception_handler(request: Request, exc: LeadDiscoveryError):
    """Handle any other pipeline error."""
    logger.error(f"Pipeline error: {exc.message}", extra={"details": exc.details})
    return _error_response(exc, exc.status_code, "pipeline_error")


async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions with proper logging."""
    logger.warning(
        f"HTTP error: {exc.status_code} - {exc.detail}",
        extra={"path": str(request.url), "method": request.method}
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.detail,
            "type": "http_error"
        }
    )


# Exception handler registry
exception_handlers = {
    ValidationError: validation_exception_handler,
    ExternalServiceError: external_service_exception_handler,
    LeadDiscoveryError: pipeline_exception_handler,
    HTTPException: http_exception_handler,
}
