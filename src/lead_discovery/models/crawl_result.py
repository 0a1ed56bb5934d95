"""Data models for crawl tasks and page results."""
from typing import Optional, List
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field


class CrawlErrorCode(str, Enum):
    """Closed taxonomy of navigation failures."""
    CONNECTION_REFUSED = "CONNECTION_REFUSED"
    DNS_ERROR = "DNS_ERROR"
    SSL_ERROR = "SSL_ERROR"
    TOO_MANY_REDIRECTS = "TOO_MANY_REDIRECTS"
    PROXY_ERROR = "PROXY_ERROR"
    TIMEOUT = "TIMEOUT"
    UNKNOWN = "UNKNOWN"


class TaskState(str, Enum):
    """Lifecycle of a single crawl task."""
    QUEUED = "queued"
    FETCHING = "fetching"
    RETRYING = "retrying"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class CrawlTask(BaseModel):
    """A URL waiting in (or dispatched from) the frontier."""
    url: str = Field(..., description="Normalized absolute URL")
    depth: int = Field(default=0, ge=0, description="Link distance from the seed URL")
    origin: str = Field(..., description="Seed URL this task descends from")
    retry_count: int = Field(default=0, ge=0, description="Failed attempts so far")


class CrawlError(BaseModel):
    """Terminal failure attached to a page result."""
    model_config = ConfigDict(frozen=True)

    message: str
    code: CrawlErrorCode = CrawlErrorCode.UNKNOWN
    retries: int = 0


class PageMetrics(BaseModel):
    """Timing and size information for one fetch."""
    model_config = ConfigDict(frozen=True)

    load_time_ms: float = 0.0
    size: int = 0
    resource_count: int = 0


class PageResult(BaseModel):
    """Outcome of the terminal attempt at fetching one URL."""
    model_config = ConfigDict(frozen=True)

    url: str = Field(..., description="Fetched URL")
    content: str = Field(default="", description="Extracted text content")
    links: List[str] = Field(default_factory=list, description="Absolute outgoing links")
    depth: int = Field(default=0, ge=0)
    error: Optional[CrawlError] = Field(default=None, description="Set when the fetch failed")
    metrics: Optional[PageMetrics] = None

    @property
    def success(self) -> bool:
        return self.error is None


class CrawlMetrics(BaseModel):
    """Aggregate counters for one crawl session."""
    pages_processed: int = 0
    error_count: int = 0
    skipped_count: int = 0
    retry_count: int = 0
    total_time_ms: float = 0.0
    average_load_time_ms: float = 0.0
    total_size: int = 0
