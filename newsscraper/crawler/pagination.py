"""
Keyword search over paginated HTML result pages.

Two flavors exist. A predictive strategy can compute the address of page N
from the keyword, the date range and the offset alone. A reactive strategy
only knows the first address and has to follow the "next" link found on
the current page.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional, Sequence
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from newsscraper.crawler.article import ArticleMap, merge_article
from newsscraper.crawler.exceptions import FetchError
from newsscraper.crawler.fetch import DocumentFetcher

logger = logging.getLogger(__name__)

# (keyword, from_date, to_date, offset, limit) -> url
SearchURLBuilder = Callable[[str, datetime, datetime, int, int], str]
# (keyword, from_date, to_date, limit) -> url
FirstURLBuilder = Callable[[str, datetime, datetime, int], str]
# (expected, actual, keyword) -> True to stop paging
ShortPageHook = Callable[[int, int, str], bool]


def stop_on_short_page(expected: int, actual: int, keyword: str) -> bool:
    """Default short page policy: a page with fewer results is the last one."""
    logger.info(
        "Found less articles than expected (%d of %d), stopped scraping for keyword %s",
        actual, expected, keyword,
    )
    return True


def continue_on_short_page(expected: int, actual: int, keyword: str) -> bool:
    """For providers that under-fill pages although more results follow."""
    logger.debug(
        "Found less articles than expected (%d of %d) for keyword %s, continuing",
        actual, expected, keyword,
    )
    return False


def first_href(element: Tag, selector: str, base_url: str) -> Optional[str]:
    """Absolute href of the first element matching ``selector``."""
    for link in element.select(selector):
        href = link.get("href")
        if href:
            return urljoin(base_url, href.strip())
    return None


@dataclass
class SearchResultRules:
    """How to read (url, title) pairs from a search result page."""
    results_selector: str
    url_selector: str
    title_selector: str
    # Overrides for providers with unusual result markup
    url_extractor: Optional[Callable[[Tag, str], Optional[str]]] = None
    title_extractor: Optional[Callable[[Tag], str]] = None

    def select_results(self, page: BeautifulSoup) -> List[Tag]:
        return page.select(self.results_selector)

    def extract_url(self, element: Tag, base_url: str) -> Optional[str]:
        if self.url_extractor is not None:
            return self.url_extractor(element, base_url)
        return first_href(element, self.url_selector, base_url)

    def extract_title(self, element: Tag) -> str:
        if self.title_extractor is not None:
            return self.title_extractor(element)
        return " ".join(
            e.get_text(" ", strip=True) for e in element.select(self.title_selector)
        ).strip()


class HtmlSearchStrategy:
    """Common parts of the HTML search strategies."""

    def __init__(
        self,
        fetcher: DocumentFetcher,
        rules: SearchResultRules,
        page_size: int,
        user_agent: Optional[str] = None,
        max_pages: Optional[int] = None,
    ):
        if page_size < 1:
            raise ValueError("page_size must be at least 1")
        self.fetcher = fetcher
        self.rules = rules
        self.page_size = page_size
        self.user_agent = user_agent
        self.max_pages = max_pages

    async def _fetch_page(self, url: str, keyword: str) -> Optional[BeautifulSoup]:
        try:
            return await self.fetcher.fetch_document(url, user_agent=self.user_agent)
        except FetchError as e:
            logger.error("Error when processing url %s for keyword %s: %s", url, keyword, e.cause)
            return None

    def _collect(
        self,
        elements: Sequence[Tag],
        page_url: str,
        keyword: str,
        articles: ArticleMap,
    ) -> None:
        for element in elements:
            url = self.rules.extract_url(element, page_url)
            if not url:
                logger.debug("Search result without url on %s, skipped", page_url)
                continue
            title = self.rules.extract_title(element)
            merge_article(articles, url, title, keyword)

    def _page_limit_reached(self, pages: int, keyword: str) -> bool:
        if self.max_pages is not None and pages >= self.max_pages:
            logger.warning(
                "Reached page limit of %d, stopped scraping for keyword %s",
                self.max_pages, keyword,
            )
            return True
        return False

    async def search_keyword(
        self,
        keyword: str,
        from_date: datetime,
        to_date: datetime,
        articles: ArticleMap,
    ) -> int:
        raise NotImplementedError

    async def discover(
        self,
        keywords: Sequence[str],
        from_date: datetime,
        to_date: datetime,
    ) -> ArticleMap:
        """
        Search every keyword and merge the results into one map.

        Returns:
            URL -> Article, keyword sets unioned for articles found repeatedly
        """
        articles: ArticleMap = {}
        for keyword in keywords:
            logger.info("Start scraping for keyword %s", keyword)
            pages = await self.search_keyword(keyword, from_date, to_date, articles)
            logger.info("Scraped %d page(s) for keyword %s", pages, keyword)
        return articles


class PredictiveStrategy(HtmlSearchStrategy):
    """
    Pagination whose page addresses can be computed in advance.
    """

    def __init__(
        self,
        fetcher: DocumentFetcher,
        search_url: SearchURLBuilder,
        rules: SearchResultRules,
        page_size: int,
        short_page_hook: ShortPageHook = stop_on_short_page,
        user_agent: Optional[str] = None,
        max_pages: Optional[int] = None,
    ):
        super().__init__(fetcher, rules, page_size, user_agent, max_pages)
        self.search_url = search_url
        self.short_page_hook = short_page_hook

    async def search_keyword(
        self,
        keyword: str,
        from_date: datetime,
        to_date: datetime,
        articles: ArticleMap,
    ) -> int:
        """
        Walk the result pages of one keyword.

        Returns:
            Number of pages requested
        """
        offset = 0
        pages = 0

        while not self._page_limit_reached(pages, keyword):
            url = self.search_url(keyword, from_date, to_date, offset, self.page_size)
            pages += 1

            page = await self._fetch_page(url, keyword)
            if page is None:
                break

            elements = self.rules.select_results(page)
            if not elements:
                logger.info("No more articles found, stopped scraping for keyword %s", keyword)
                break

            self._collect(elements, url, keyword, articles)

            if len(elements) < self.page_size and self.short_page_hook(
                self.page_size, len(elements), keyword
            ):
                break

            offset += self.page_size

        return pages


class ReactiveStrategy(HtmlSearchStrategy):
    """
    Pagination that follows the "next" link of each result page.
    """

    def __init__(
        self,
        fetcher: DocumentFetcher,
        first_url: FirstURLBuilder,
        next_page_selector: str,
        rules: SearchResultRules,
        page_size: int,
        next_url: Optional[Callable[[str], str]] = None,
        user_agent: Optional[str] = None,
        max_pages: Optional[int] = None,
    ):
        super().__init__(fetcher, rules, page_size, user_agent, max_pages)
        self.first_url = first_url
        self.next_page_selector = next_page_selector
        self.next_url = next_url

    def get_next_url(self, page: BeautifulSoup, page_url: str) -> Optional[str]:
        """Absolute address of the next result page, None on the last page."""
        url = first_href(page, self.next_page_selector, page_url)
        if url is None:
            return None
        if self.next_url is not None:
            return self.next_url(url)
        return url

    async def search_keyword(
        self,
        keyword: str,
        from_date: datetime,
        to_date: datetime,
        articles: ArticleMap,
    ) -> int:
        url: Optional[str] = self.first_url(keyword, from_date, to_date, self.page_size)
        pages = 0

        while url is not None and not self._page_limit_reached(pages, keyword):
            pages += 1

            page = await self._fetch_page(url, keyword)
            if page is None:
                break

            elements = self.rules.select_results(page)
            if not elements:
                logger.info("No more articles found, stopped scraping for keyword %s", keyword)
                break

            self._collect(elements, url, keyword, articles)

            next_url = self.get_next_url(page, url)
            if next_url is None:
                logger.info("No next page link found, stopped scraping for keyword %s", keyword)
            elif next_url == url:
                logger.info("Next page link points to the current page, stopped scraping for keyword %s", keyword)
                next_url = None
            url = next_url

        return pages
