"""Application configuration using Pydantic Settings."""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List


class Settings(BaseSettings):
    """Application settings."""

    # Application
    APP_NAME: str = "Lead Discovery Pipeline"
    APP_VERSION: str = "1.0.0"
    APP_ENV: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "./logs"
    LOG_TO_FILE: bool = True

    # API
    API_V1_PREFIX: str = "/api/v1"
    CORS_ORIGINS: List[str] = ["*"]

    # Crawler
    CRAWLER_MAX_CONCURRENT: int = 5
    CRAWLER_MAX_DEPTH: int = 2
    CRAWLER_MAX_PAGES: int = 25
    CRAWLER_MAX_RETRIES: int = 3
    CRAWLER_RETRY_DELAY_MS: int = 1000
    CRAWLER_BACKOFF: str = "linear"
    CRAWLER_TIMEOUT_MS: int = 30000
    CRAWLER_DEFAULT_DELAY_MS: int = 1000
    CRAWLER_USER_AGENT: str = "LeadDiscoveryBot/1.0"
    CRAWLER_HEADLESS: bool = True
    CRAWLER_RESPECT_ROBOTS_TXT: bool = True
    CRAWLER_SAME_DOMAIN_ONLY: bool = True

    # Browser pool
    BROWSER_POOL_SIZE: int = 3
    BROWSER_MAX_SESSION_ERRORS: int = 2
    BROWSER_HEALTH_CHECK_INTERVAL: float = 30.0

    # Brave Search
    BRAVE_API_KEY: Optional[str] = None
    BRAVE_API_URL: str = "https://api.search.brave.com/res/v1/web/search"
    BRAVE_TIMEOUT: float = 10.0
    BRAVE_MIN_INTERVAL_MS: int = 500

    # Query cache
    QUERY_CACHE_DIR: str = "./cache/queries"
    QUERY_CACHE_TTL_SECONDS: int = 24 * 60 * 60

    # Storage
    STORAGE_DB_PATH: str = "./storage/leads.db"

    # Text generation (OpenAI-compatible endpoint)
    LLM_BASE_URL: Optional[str] = None
    LLM_API_KEY: str = "changeme"
    LLM_MODEL_NAME: str = "gpt-4o-mini"
    LLM_TIMEOUT: float = 30.0
    LLM_MAX_RETRIES: int = 3

    # Query generation
    QUERY_MAX_QUERIES: int = 5
    QUERY_QUALITY_THRESHOLD: float = 0.7

    # Website analysis
    ANALYZER_MAX_CONCURRENT: int = 3
    ANALYZER_MAX_CONTENT_CHARS: int = 12000

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )


settings = Settings()
