"""
Crawler service for managing article searches.
"""
import asyncio
import logging
import uuid
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Set

import httpx

from newsscraper.core.config import Settings, get_settings
from newsscraper.core.database import Database, database as default_database
from newsscraper.crawler.article import RunResult
from newsscraper.crawler.fetch import DocumentFetcher, FetcherConfig
from newsscraper.crawler.orchestrator import AcquisitionOrchestrator, Provider
from newsscraper.crawler.providers import API_KEYS, PROVIDERS, build_providers
from newsscraper.services.exporter import Exporter

logger = logging.getLogger(__name__)


class SearchStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class SearchTask:
    """Represents a search run with its state."""

    def __init__(
        self,
        task_id: str,
        keywords: Sequence[str],
        from_date: datetime,
        to_date: datetime,
        providers: Sequence[str],
        export: bool = False,
    ):
        self.task_id = task_id
        self.keywords = list(keywords)
        self.from_date = from_date
        self.to_date = to_date
        self.providers = list(providers)
        self.export = export
        self.status = SearchStatus.PENDING
        self.article_counts: Dict[str, int] = {}
        self.articles_exported = 0
        self.result: Optional[RunResult] = None
        self.created_at = datetime.now(timezone.utc)
        self.started_at: Optional[datetime] = None
        self.completed_at: Optional[datetime] = None
        self.error_message: Optional[str] = None

    @property
    def total_articles(self) -> int:
        return sum(self.article_counts.values())

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "task_id": self.task_id,
            "keywords": self.keywords,
            "from_date": self.from_date,
            "to_date": self.to_date,
            "providers": self.providers,
            "export": self.export,
            "status": self.status.value,
            "article_counts": self.article_counts,
            "total_articles": self.total_articles,
            "articles_exported": self.articles_exported,
            "created_at": self.created_at,
            "started_at": self.started_at,
            "completed_at": self.completed_at,
            "error_message": self.error_message,
        }


class CrawlerService:
    """
    Service for running article searches in the background.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        database: Optional[Database] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or get_settings()
        self.database = database or default_database
        self._transport = transport
        self._tasks: Dict[str, SearchTask] = {}
        # Keeps background runs referenced until they finish
        self._running: Set[asyncio.Task] = set()

    def create_fetcher(self) -> DocumentFetcher:
        return DocumentFetcher(FetcherConfig.from_settings(self.settings), transport=self._transport)

    def list_providers(self) -> List[Dict[str, Any]]:
        """
        Describe every known provider.

        Returns:
            One dict per provider with its name, display name and whether it
            can be used with the current settings
        """
        fetcher = self.create_fetcher()
        enabled = self.settings.enabled_providers
        providers = []
        for name, factory in PROVIDERS.items():
            provider = factory(fetcher, self.settings)
            key_setting = API_KEYS.get(name)
            providers.append({
                "name": name,
                "display_name": provider.display_name,
                "requires_api_key": key_setting is not None,
                "available": key_setting is None or bool(getattr(self.settings, key_setting)),
                "enabled": enabled is None or name in enabled,
            })
        return providers

    async def run(
        self,
        fetcher: DocumentFetcher,
        providers: Sequence[Provider],
        keywords: Sequence[str],
        from_date: datetime,
        to_date: datetime,
    ) -> RunResult:
        """Run the acquisition pipeline with an unstarted fetcher."""
        async with fetcher:
            orchestrator = AcquisitionOrchestrator(providers, settings=self.settings)
            return await orchestrator.run(keywords, from_date, to_date)

    def start_search(
        self,
        keywords: Sequence[str],
        from_date: datetime,
        to_date: datetime,
        provider_names: Optional[Sequence[str]] = None,
        export: bool = False,
    ) -> SearchTask:
        """
        Start a search in the background.

        Tasks that finished longer than SEARCH_TASK_MAX_AGE_HOURS ago are
        dropped first.

        Args:
            keywords: Search keywords
            from_date: Start of the publication range
            to_date: End of the publication range
            provider_names: Providers to search, the enabled ones when None
            export: Write the results to the export database

        Returns:
            SearchTask object

        Raises:
            ConfigurationError: If a provider is unknown or lacks its API key
        """
        fetcher = self.create_fetcher()
        providers = build_providers(fetcher, self.settings, provider_names)
        self.cleanup_old_tasks()

        task = SearchTask(
            task_id=str(uuid.uuid4()),
            keywords=keywords,
            from_date=from_date,
            to_date=to_date,
            providers=[p.name for p in providers],
            export=export,
        )
        self._tasks[task.task_id] = task

        background = asyncio.create_task(self._run_search(task, fetcher, providers))
        self._running.add(background)
        background.add_done_callback(self._running.discard)

        return task

    async def _run_search(
        self,
        task: SearchTask,
        fetcher: DocumentFetcher,
        providers: Sequence[Provider],
    ) -> None:
        task.status = SearchStatus.RUNNING
        task.started_at = datetime.now(timezone.utc)

        try:
            result = await self.run(fetcher, providers, task.keywords, task.from_date, task.to_date)
            task.result = result
            task.article_counts = {name: len(articles) for name, articles in result.items()}

            if task.export:
                task.articles_exported = await Exporter(self.database).export(result)

            task.status = SearchStatus.COMPLETED

        except Exception as e:
            logger.exception("Search task %s failed", task.task_id)
            task.status = SearchStatus.FAILED
            task.error_message = str(e)

        finally:
            task.completed_at = datetime.now(timezone.utc)

    async def wait(self) -> None:
        """Wait for all background searches to finish."""
        if self._running:
            await asyncio.gather(*self._running, return_exceptions=True)

    def get_task(self, task_id: str) -> Optional[SearchTask]:
        return self._tasks.get(task_id)

    def cleanup_old_tasks(self, max_age_hours: Optional[float] = None) -> int:
        """
        Remove finished tasks together with their results.

        Args:
            max_age_hours: Maximum age in hours, SEARCH_TASK_MAX_AGE_HOURS when None

        Returns:
            Number of tasks removed
        """
        if max_age_hours is None:
            max_age_hours = self.settings.SEARCH_TASK_MAX_AGE_HOURS
        cutoff = datetime.now(timezone.utc) - timedelta(hours=max_age_hours)
        to_remove = [
            task_id for task_id, task in self._tasks.items()
            if task.completed_at and task.completed_at < cutoff
        ]
        for task_id in to_remove:
            del self._tasks[task_id]
        if to_remove:
            logger.info("Removed %d finished search task(s)", len(to_remove))
        return len(to_remove)


_crawler_service: Optional[CrawlerService] = None


def get_crawler_service() -> CrawlerService:
    """Dependency for FastAPI returning the shared service."""
    global _crawler_service
    if _crawler_service is None:
        _crawler_service = CrawlerService()
    return _crawler_service
