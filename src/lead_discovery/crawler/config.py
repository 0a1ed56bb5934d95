"""
Configuration models for the website crawler.
"""
from typing import Optional
from pydantic import BaseModel, Field
from enum import Enum


class BackoffPolicy(str, Enum):
    """How the retry delay grows with each failed attempt."""
    FIXED = "fixed"
    LINEAR = "linear"
    EXPONENTIAL = "exponential"


class CrawlConfig(BaseModel):
    """Configuration for one crawl session."""
    max_concurrency: int = Field(
        default=5,
        ge=1,
        le=20,
        description="Maximum pages fetched at once"
    )
    max_depth: int = Field(
        default=2,
        ge=0,
        le=5,
        description="Maximum link depth to follow"
    )
    max_pages: Optional[int] = Field(
        default=25,
        ge=1,
        description="Maximum pages to queue per crawl (None for no limit)"
    )
    max_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Maximum navigation attempts per URL"
    )
    retry_delay_ms: int = Field(
        default=1000,
        ge=0,
        description="Base delay between attempts"
    )
    backoff: BackoffPolicy = Field(
        default=BackoffPolicy.LINEAR,
        description="Retry delay growth policy"
    )
    timeout_ms: int = Field(
        default=30000,
        ge=1000,
        le=300000,
        description="Per-navigation timeout"
    )
    default_delay_ms: int = Field(
        default=1000,
        ge=0,
        description="Minimum interval between requests to one host"
    )
    user_agent: str = Field(
        default="LeadDiscoveryBot/1.0",
        description="User agent used for robots.txt matching"
    )
    respect_robots_txt: bool = Field(
        default=True,
        description="Skip URLs disallowed by robots.txt"
    )
    same_domain_only: bool = Field(
        default=True,
        description="Only follow links on the seed URL's host"
    )

    def retry_delay_for(self, attempt: int) -> float:
        """
        Delay in seconds before the attempt following ``attempt``.

        Args:
            attempt: 1-based number of the attempt that just failed
        """
        base = self.retry_delay_ms / 1000.0
        if self.backoff == BackoffPolicy.FIXED:
            return base
        if self.backoff == BackoffPolicy.EXPONENTIAL:
            return base * (2 ** (attempt - 1))
        return base * attempt
