"""API request schemas."""
from typing import Optional
from pydantic import BaseModel, Field, field_validator


class GoalRequest(BaseModel):
    """Request schema for processing a business goal."""
    goal: str = Field(..., min_length=1, description="Natural-language description of the prospects to find")
    max_results: int = Field(default=20, ge=1, le=50, description="Maximum number of leads to return")
    location: Optional[str] = Field(default=None, description="Geographic focus for the search")
    analyze: bool = Field(default=False, description="Crawl and analyze each lead after searching")
    expand_queries: bool = Field(default=False, description="Broaden and score queries before searching")
    user_id: Optional[str] = Field(default=None, description="Opaque caller identifier stored with the query")

    @field_validator("goal")
    @classmethod
    def goal_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Goal is required")
        return value
