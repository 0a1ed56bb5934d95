"""Exception hierarchy for the lead discovery pipeline."""
from typing import Any, Dict, Optional


class LeadDiscoveryError(Exception):
    """Base exception for pipeline errors."""

    def __init__(self, message: str, status_code: int = 500, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(LeadDiscoveryError):
    """Bad input to a component. Never retried."""

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        details = dict(details or {})
        if field:
            details["field"] = field
        super().__init__(message, status_code=400, details=details)
        self.field = field


class ProcessingError(ValidationError):
    """Raised when HTML content cannot be processed."""

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message, details={"source": source} if source else None)
        self.source = source


class NavigationError(LeadDiscoveryError):
    """A page navigation failed inside a browser session."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message, status_code=502, details={"url": url} if url else None)
        self.url = url


class BrowserPoolError(LeadDiscoveryError):
    """The browser pool could not hand out a session."""

    def __init__(self, message: str):
        super().__init__(message, status_code=503)


class ExternalServiceError(LeadDiscoveryError):
    """A hosted dependency (search API, text generation) failed."""

    def __init__(self, message: str, service: str, original_error: Optional[BaseException] = None):
        super().__init__(message, status_code=502, details={"service": service})
        self.service = service
        self.original_error = original_error


class SearchError(ExternalServiceError):
    """Raised when the search API call fails."""

    def __init__(self, message: str, original_error: Optional[BaseException] = None):
        super().__init__(message, service="brave_search", original_error=original_error)


class LLMError(ExternalServiceError):
    """Raised when the text-generation service fails."""

    def __init__(self, message: str, original_error: Optional[BaseException] = None):
        super().__init__(message, service="llm", original_error=original_error)


class QueryGenerationError(ExternalServiceError):
    """Raised when no usable search queries could be generated."""

    def __init__(self, cause: str, original_error: Optional[BaseException] = None):
        super().__init__(
            f"Failed to generate search queries: {cause}",
            service="query_generator",
            original_error=original_error
        )
        self.cause = cause


class AnalysisError(LeadDiscoveryError):
    """Raised when a website analysis cannot be completed."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message, status_code=500, details={"url": url} if url else None)
        self.url = url


class CrawlDisallowedError(LeadDiscoveryError):
    """robots.txt forbids fetching the URL. A policy skip, not a failure."""

    def __init__(self, url: str):
        super().__init__(f"Disallowed by robots.txt: {url}", status_code=403, details={"url": url})
        self.url = url


class QueryCacheError(LeadDiscoveryError):
    """Raised when the query cache cannot be read or written."""

    def __init__(self, message: str, original_error: Optional[BaseException] = None):
        super().__init__(message)
        self.original_error = original_error


class QueryStorageError(LeadDiscoveryError):
    """Raised when persisting or reading queries and results fails."""

    def __init__(self, message: str, original_error: Optional[BaseException] = None):
        super().__init__(message)
        self.original_error = original_error
