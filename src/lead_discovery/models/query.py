"""Query generation models.

The text-generation service answers with free-form JSON. These models are the
schema that JSON must satisfy before the pipeline trusts it.
"""
from typing import Optional, List, Any
from pydantic import BaseModel, Field, field_validator


class QueryGeneratorOptions(BaseModel):
    """Caller-provided knobs for query generation."""
    location: Optional[str] = None
    max_queries: Optional[int] = None
    prioritize_local: bool = True
    exclude_keywords: List[str] = Field(default_factory=list)
    include_keywords: List[str] = Field(default_factory=list)
    expand_queries: bool = False


class QueryMetadata(BaseModel):
    """Confidence scores and keyword hints returned with the queries."""
    industry_confidence: float = Field(default=0.0, alias="industryConfidence", ge=0.0, le=1.0)
    service_confidence: float = Field(default=0.0, alias="serviceConfidence", ge=0.0, le=1.0)
    suggested_keywords: List[str] = Field(default_factory=list, alias="suggestedKeywords")
    location_specific: bool = Field(default=False, alias="locationSpecific")

    model_config = {"populate_by_name": True}


class GeneratedQueries(BaseModel):
    """Raw shape of the query-generation response."""
    queries: List[Any]
    target_industry: str = Field(..., alias="targetIndustry", min_length=1)
    service_offering: str = Field(..., alias="serviceOffering", min_length=1)
    location: Optional[str] = None
    metadata: QueryMetadata = Field(default_factory=QueryMetadata)

    model_config = {"populate_by_name": True}

    @field_validator("location", mode="before")
    @classmethod
    def blank_location_is_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class QueryScore(BaseModel):
    """One entry of the query-scoring response."""
    query: str
    score: float = Field(..., ge=0.0, le=1.0)
    feedback: str = ""


class QueryGenerationResult(BaseModel):
    """Cleaned queries plus industry and service classification."""
    queries: List[str] = Field(..., min_length=1)
    target_industry: str
    service_offering: str
    location: Optional[str] = None
    metadata: QueryMetadata = Field(default_factory=QueryMetadata)
