"""
Schemas for crawler API endpoints.
"""
from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class ProviderResponse(BaseModel):
    """Response schema for a news provider."""
    name: str
    display_name: str
    requires_api_key: bool
    available: bool
    enabled: bool


class ProviderListResponse(BaseModel):
    """Response schema for list of providers."""
    providers: List[ProviderResponse]
    total: int


class SearchRequest(BaseModel):
    """Request schema for starting a search."""
    keywords: List[str] = Field(..., min_length=1, description="Keywords, searched separately")
    from_date: date = Field(..., description="First publication day, inclusive")
    to_date: date = Field(..., description="Last publication day, inclusive")
    providers: Optional[List[str]] = Field(
        default=None, description="Provider names; the enabled providers when omitted"
    )
    export: bool = Field(default=False, description="Write results to the export database")

    @field_validator("keywords")
    @classmethod
    def strip_keywords(cls, value: List[str]) -> List[str]:
        keywords = [k.strip() for k in value if k and k.strip()]
        if not keywords:
            raise ValueError("At least one non-empty keyword is required")
        return keywords

    @model_validator(mode="after")
    def check_range(self) -> "SearchRequest":
        if self.to_date < self.from_date:
            raise ValueError("to_date must not be before from_date")
        return self


class SearchTaskResponse(BaseModel):
    """Response schema for a started search."""
    task_id: str
    status: str
    providers: List[str]
    message: str


class SearchStatusResponse(BaseModel):
    """Response schema for search status."""
    model_config = ConfigDict(from_attributes=True)

    task_id: str
    keywords: List[str]
    from_date: datetime
    to_date: datetime
    providers: List[str]
    status: str
    article_counts: Dict[str, int] = {}
    total_articles: int = 0
    articles_exported: int = 0
    created_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error_message: Optional[str] = None


class ArticleResponse(BaseModel):
    """Response schema for an acquired article."""
    url: str
    title: str
    subtitle: Optional[str] = None
    publication_date: Optional[datetime] = None
    full_text: Optional[str] = None
    full_text_html: Optional[str] = None
    keywords: List[str] = []


class SearchResultsResponse(BaseModel):
    """Response schema for the articles of a finished search."""
    task_id: str
    status: str
    articles: Dict[str, List[ArticleResponse]]
    total: int
