"""
Acquisition pipeline across providers.

For every provider: discover candidates, drop unwanted URLs, populate the
remaining articles and finally filter on the populated records.
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Protocol, Sequence

from newsscraper.crawler.article import ArticleMap, RunResult
from newsscraper.crawler.exceptions import ConfigurationError
from newsscraper.crawler.extraction import ArticleExtractor
from newsscraper.crawler.fetch import DocumentFetcher
from newsscraper.crawler.filters import (
    PostPopulationFilter,
    PrePopulationFilter,
    apply_post_filter,
    apply_pre_filter,
)
from newsscraper.crawler.populator import BeforePopulateHook, Populator

DEFAULT_WORKERS = 32

PostFilterFactory = Callable[[datetime, datetime], Optional[PostPopulationFilter]]


class DiscoveryStrategy(Protocol):
    async def discover(
        self,
        keywords: Sequence[str],
        from_date: datetime,
        to_date: datetime,
    ) -> ArticleMap:
        ...


@dataclass
class Provider:
    """A news source and everything needed to acquire its articles."""
    name: str
    display_name: str
    strategy: DiscoveryStrategy
    fetcher: DocumentFetcher
    extractor: Optional[ArticleExtractor] = None
    pre_filter: Optional[PrePopulationFilter] = None
    # Called with the searched range, for sources that cannot search by date
    post_filter_factory: Optional[PostFilterFactory] = None
    before_populate: Optional[BeforePopulateHook] = None
    user_agent: Optional[str] = None
    workers: Optional[int] = None


class AcquisitionOrchestrator:
    """
    Runs the acquisition pipeline for a set of providers.

    Providers run concurrently and independently: an error escaping one
    provider's pipeline costs that provider's results only.
    """

    def __init__(
        self,
        providers: Iterable[Provider],
        settings=None,
        logger: Optional[logging.Logger] = None,
    ):
        self.providers: Dict[str, Provider] = {p.name: p for p in providers}
        self.workers = settings.POPULATE_WORKERS if settings is not None else DEFAULT_WORKERS
        self.logger = logger or logging.getLogger(__name__)

    def select(self, provider_names: Optional[Sequence[str]] = None) -> List[Provider]:
        """
        Look up providers by name; None selects all of them.

        Raises:
            ConfigurationError: if a name is unknown
        """
        if provider_names is None:
            return list(self.providers.values())

        unknown = [n for n in provider_names if n not in self.providers]
        if unknown:
            raise ConfigurationError(
                f"Unknown provider(s): {', '.join(unknown)}. "
                f"Available: {', '.join(sorted(self.providers))}"
            )
        return [self.providers[n] for n in dict.fromkeys(provider_names)]

    async def acquire(
        self,
        provider: Provider,
        keywords: Sequence[str],
        from_date: datetime,
        to_date: datetime,
    ) -> ArticleMap:
        """
        Run the full pipeline for one provider.

        Returns:
            URL -> Article of the articles passing both filters
        """
        log = self.logger
        log.info("Start fetching articles from %s", provider.display_name)

        discovered = await provider.strategy.discover(keywords, from_date, to_date)
        log.info("%s: discovered %d article(s)", provider.display_name, len(discovered))

        candidates = apply_pre_filter(discovered, provider.pre_filter)
        log.info(
            "%s: %d article(s) left after pre-population filter",
            provider.display_name, len(candidates),
        )

        populator = Populator(
            provider.fetcher,
            extractor=provider.extractor,
            workers=provider.workers or self.workers,
            before_populate=provider.before_populate,
            user_agent=provider.user_agent,
        )
        await populator.populate(candidates)

        post_filter = None
        if provider.post_filter_factory is not None:
            post_filter = provider.post_filter_factory(from_date, to_date)
        result = apply_post_filter(candidates, post_filter)
        log.info(
            "%s: %d article(s) left after post-population filter",
            provider.display_name, len(result),
        )
        return result

    async def _acquire_contained(
        self,
        provider: Provider,
        keywords: Sequence[str],
        from_date: datetime,
        to_date: datetime,
    ) -> ArticleMap:
        try:
            return await self.acquire(provider, keywords, from_date, to_date)
        except Exception:
            self.logger.exception("Fetching articles from %s failed", provider.display_name)
            return {}

    async def run(
        self,
        keywords: Sequence[str],
        from_date: datetime,
        to_date: datetime,
        provider_names: Optional[Sequence[str]] = None,
    ) -> RunResult:
        """
        Acquire articles from the selected providers concurrently.

        Args:
            keywords: Search keywords, each searched separately
            from_date: Start of the searched publication range
            to_date: End of the searched publication range
            provider_names: Providers to run, all when None

        Returns:
            Provider name -> URL -> Article

        Raises:
            ConfigurationError: for unknown provider names, before any request
        """
        selected = self.select(provider_names)
        results = await asyncio.gather(*(
            self._acquire_contained(p, keywords, from_date, to_date) for p in selected
        ))
        return {p.name: articles for p, articles in zip(selected, results)}
