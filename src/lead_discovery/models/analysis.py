"""Website analysis models."""
from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel, Field, field_validator


class ContactInfo(BaseModel):
    """Contact details found on a business website."""
    phone: Optional[str] = None
    address: Optional[str] = None
    social_media: List[str] = Field(default_factory=list, alias="socialMedia")

    model_config = {"populate_by_name": True}


class BusinessMetadata(BaseModel):
    """Structured business profile produced by the analysis prompt."""
    title: str = ""
    description: str = ""
    industry: str = ""
    services: List[str] = Field(default_factory=list)
    contact_info: ContactInfo = Field(default_factory=ContactInfo, alias="contactInfo")
    technologies: List[str] = Field(default_factory=list)

    model_config = {"populate_by_name": True}

    @field_validator("services", "technologies", mode="before")
    @classmethod
    def string_as_list(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return value


class BusinessAnalysis(BaseModel):
    """Raw shape of the analysis response."""
    summary: str = Field(..., min_length=1)
    metadata: BusinessMetadata = Field(default_factory=BusinessMetadata)


class AnalysisContext(BaseModel):
    """What the user sells and to whom."""
    target_industry: str
    service_offering: str


class AnalysisResult(BaseModel):
    """Analysis of a single prospect website."""
    url: str
    summary: str
    emails: List[str] = Field(default_factory=list)
    suggested_email: str = ""
    metadata: BusinessMetadata = Field(default_factory=BusinessMetadata)
    analyzed_at: datetime = Field(default_factory=datetime.utcnow)
