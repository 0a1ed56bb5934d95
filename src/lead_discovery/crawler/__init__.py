"""Polite, bounded website crawling."""

from .browser_pool import BrowserPool, BrowserSession
from .config import BackoffPolicy, CrawlConfig
from .frontier import URLFrontier
from .rate_limiter import RateLimiter
from .robots import RobotsTxtParser
from .service import WebsiteCrawler

__all__ = [
    "BackoffPolicy",
    "BrowserPool",
    "BrowserSession",
    "CrawlConfig",
    "RateLimiter",
    "RobotsTxtParser",
    "URLFrontier",
    "WebsiteCrawler",
]
