"""
Keyword search over paginated JSON APIs.
"""
import json
import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Type

from pydantic import BaseModel, ConfigDict, ValidationError

from newsscraper.crawler.article import Article, ArticleMap, merge_discovered
from newsscraper.crawler.exceptions import FetchError, ParseError
from newsscraper.crawler.fetch import DocumentFetcher
from newsscraper.crawler.pagination import SearchURLBuilder

logger = logging.getLogger(__name__)


class ApiArticle(BaseModel):
    """One item of an API response; subclasses map provider field names."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    def to_article(self) -> Article:
        raise NotImplementedError


class ApiResult(BaseModel):
    """
    Response envelope of one API page.

    Subclasses narrow ``items`` to their item type and alias both fields
    to the provider's JSON names.
    """
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    items: List[ApiArticle] = []
    total: int = 0


def decode_envelope(
    raw: bytes,
    result_model: Type[ApiResult],
    root_element: Optional[str] = None,
) -> ApiResult:
    """
    Deserialize an API response body.

    Args:
        raw: The response body
        result_model: Envelope type to validate against
        root_element: Name of a field wrapping the envelope, if any

    Raises:
        ParseError: on malformed JSON, a missing root element or an
            envelope not matching ``result_model``
    """
    try:
        data = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ParseError(f"Malformed JSON: {e}") from e

    if root_element is not None:
        if not isinstance(data, dict) or root_element not in data:
            raise ParseError(f"Root element {root_element!r} missing from response")
        data = data[root_element]

    try:
        return result_model.model_validate(data)
    except ValidationError as e:
        raise ParseError(f"Unexpected response structure: {e}") from e


class ApiStrategy:
    """
    Offset paginated API search.

    Paging continues while ``offset + page_size`` is below the total declared
    by the most recent response.
    """

    def __init__(
        self,
        fetcher: DocumentFetcher,
        search_url: SearchURLBuilder,
        result_model: Type[ApiResult],
        page_size: int,
        root_element: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        if page_size < 1:
            raise ValueError("page_size must be at least 1")
        self.fetcher = fetcher
        self.search_url = search_url
        self.result_model = result_model
        self.page_size = page_size
        self.root_element = root_element
        self.headers = headers

    async def search_paged(
        self,
        keyword: str,
        from_date: datetime,
        to_date: datetime,
        articles: ArticleMap,
    ) -> int:
        """
        Fetch all result pages of one keyword into ``articles``.

        Returns:
            Number of pages requested
        """
        offset = 0
        pages = 0

        while True:
            url = self.search_url(keyword, from_date, to_date, offset, self.page_size)
            pages += 1

            try:
                raw = await self.fetcher.fetch_bytes(url, headers=self.headers)
                result = decode_envelope(raw, self.result_model, self.root_element)
            except FetchError as e:
                logger.error("Error when processing url %s for keyword %s: %s", url, keyword, e.cause)
                break
            except ParseError as e:
                logger.error("Unable to read API response from %s for keyword %s: %s", url, keyword, e)
                break

            for item in result.items:
                try:
                    article = item.to_article()
                except (ValueError, TypeError) as e:
                    logger.warning("Skipping unusable API item from %s: %s", url, e)
                    continue
                merge_discovered(articles, article, keyword)

            if offset + self.page_size >= result.total:
                break
            offset += self.page_size

        return pages

    async def discover(
        self,
        keywords: Sequence[str],
        from_date: datetime,
        to_date: datetime,
    ) -> ArticleMap:
        articles: ArticleMap = {}
        for keyword in keywords:
            logger.info("Start fetching for keyword %s", keyword)
            pages = await self.search_paged(keyword, from_date, to_date, articles)
            logger.info("Fetched %d page(s) for keyword %s", pages, keyword)
        return articles
