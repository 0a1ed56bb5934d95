"""HTML processing and website analysis."""

from .content_processor import ContentProcessor
from .metadata_extractor import MetadataExtractor
from .website_analyzer import WebsiteAnalyzer

__all__ = ["ContentProcessor", "MetadataExtractor", "WebsiteAnalyzer"]
