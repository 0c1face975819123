"""
Concurrent population of discovered articles.
"""
import asyncio
import logging
import random
from typing import Awaitable, Callable, Optional

from newsscraper.crawler.article import Article, ArticleMap
from newsscraper.crawler.exceptions import FetchError
from newsscraper.crawler.extraction import ArticleExtractor, html_to_text
from newsscraper.crawler.fetch import DocumentFetcher

logger = logging.getLogger(__name__)

BeforePopulateHook = Callable[[Article], Awaitable[None]]


def jittered_delay(max_seconds: float) -> BeforePopulateHook:
    """
    Build a hook sleeping a random time in [0, max_seconds] before each fetch.

    Used for providers that throttle clients requesting pages in bursts.
    """
    async def delay(article: Article) -> None:
        await asyncio.sleep(random.uniform(0, max_seconds))

    return delay


def fixed_delay(seconds: float) -> BeforePopulateHook:
    async def delay(article: Article) -> None:
        await asyncio.sleep(seconds)

    return delay


class Populator:
    """
    Fills the missing fields of discovered articles.

    At most ``workers`` article pages are fetched at the same time. One
    failing article never affects the others.
    """

    def __init__(
        self,
        fetcher: DocumentFetcher,
        extractor: Optional[ArticleExtractor] = None,
        workers: int = 32,
        before_populate: Optional[BeforePopulateHook] = None,
        user_agent: Optional[str] = None,
    ):
        if workers < 1:
            raise ValueError("workers must be at least 1")
        self.fetcher = fetcher
        self.extractor = extractor
        self.workers = workers
        self.before_populate = before_populate
        self.user_agent = user_agent

    async def populate(self, articles: ArticleMap) -> ArticleMap:
        """
        Populate every article of ``articles`` in place.

        Returns once all articles were processed.

        Args:
            articles: URL -> Article map, typically the output of a pre-filter

        Returns:
            The same map
        """
        if not articles:
            return articles

        semaphore = asyncio.Semaphore(self.workers)

        async def guarded(article: Article) -> None:
            async with semaphore:
                try:
                    await self.populate_article(article)
                except Exception:
                    logger.exception("Unexpected error populating article %s", article.url)

        await asyncio.gather(*(guarded(a) for a in articles.values()))
        return articles

    async def populate_article(self, article: Article) -> None:
        """
        Populate a single article.

        Body text is derived from body HTML that came with the search result
        before any page is requested. The article page is only fetched when
        fields are still missing and an extractor is configured.
        """
        if article.full_text is None and article.full_text_html is not None:
            article.fill(full_text=html_to_text(article.full_text_html))

        if article.is_complete() or self.extractor is None:
            return

        if self.before_populate is not None:
            await self.before_populate(article)

        try:
            soup = await self.fetcher.fetch_document(article.url, user_agent=self.user_agent)
        except FetchError as e:
            logger.warning("Unable to fetch article %s: %s", article.url, e.cause)
            return

        filled = self.extractor.populate(article, soup)
        logger.debug("Populated %s for article %s", ", ".join(filled) or "nothing", article.url)
