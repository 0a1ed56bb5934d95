"""Processed page content."""
from typing import List
from pydantic import BaseModel, Field


class LinkRef(BaseModel):
    """An absolute link with its anchor text."""
    url: str
    text: str = ""


class ImageRef(BaseModel):
    """An absolute image URL with its alt text."""
    url: str
    alt: str = ""


class ProcessedContent(BaseModel):
    """Normalized views of one HTML document."""
    text: str = ""
    html: str = ""
    xml: str = ""
    title: str = ""
    description: str = ""
    links: List[LinkRef] = Field(default_factory=list)
    images: List[ImageRef] = Field(default_factory=list)
