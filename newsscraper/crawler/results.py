"""
Response models of the supported news APIs.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from newsscraper.crawler.api import ApiArticle, ApiResult
from newsscraper.crawler.article import Article


class GuardianFields(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    trail_text: Optional[str] = Field(None, alias="trailText")
    body: Optional[str] = None


class GuardianArticle(ApiArticle):
    """Guardian content item; the body HTML arrives with the search result."""
    web_url: str = Field(..., alias="webUrl")
    web_title: str = Field("", alias="webTitle")
    web_publication_date: Optional[datetime] = Field(None, alias="webPublicationDate")
    fields: Optional[GuardianFields] = None

    def to_article(self) -> Article:
        fields = self.fields or GuardianFields()
        return Article(
            url=self.web_url,
            title=self.web_title,
            subtitle=fields.trail_text,
            publication_date=self.web_publication_date,
            full_text_html=fields.body,
        )


class GuardianResult(ApiResult):
    items: List[GuardianArticle] = Field(default_factory=list, alias="results")
    total: int = Field(0, alias="total")


class ZeitArticle(ApiArticle):
    href: str
    title: str = ""
    subtitle: Optional[str] = None
    release_date: Optional[datetime] = None

    def to_article(self) -> Article:
        return Article(
            url=self.href,
            title=self.title,
            subtitle=self.subtitle,
            publication_date=self.release_date,
        )


class ZeitResult(ApiResult):
    items: List[ZeitArticle] = Field(default_factory=list, alias="matches")
    total: int = Field(0, alias="found")
