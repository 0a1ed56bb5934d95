"""Query generation, web search, caching and storage."""

from .brave import BraveSearch
from .cache import QueryCache
from .query_generator import QueryGenerator
from .storage import QueryStorage

__all__ = ["BraveSearch", "QueryCache", "QueryGenerator", "QueryStorage"]
