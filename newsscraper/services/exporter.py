"""
Export of acquired articles into the article database.
"""
import logging
from typing import Dict, Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from newsscraper.core.database import Database
from newsscraper.crawler.article import Article, RunResult
from newsscraper.models.article import ArticleKeyword, ArticleRecord

logger = logging.getLogger(__name__)

# Article attribute -> column filled when still empty
EXPORTED_FIELDS = ("subtitle", "publication_date", "full_text", "full_text_html")


class Exporter:
    """
    Writes the articles of a run into the ``article`` and
    ``article_keywords`` tables.
    """

    def __init__(self, database: Database):
        self.database = database

    async def reset(self) -> None:
        """Remove all exported articles."""
        async with self.database.session() as session:
            await session.execute(delete(ArticleKeyword))
            await session.execute(delete(ArticleRecord))
        logger.info("Cleared exported articles")

    async def _find(self, session: AsyncSession, url: str) -> Optional[ArticleRecord]:
        result = await session.execute(select(ArticleRecord).where(ArticleRecord.url == url))
        return result.scalar_one_or_none()

    @staticmethod
    def _merge(record: ArticleRecord, article: Article) -> None:
        # Existing values win, like during population
        if not record.title and article.title:
            record.title = article.title
        for name in EXPORTED_FIELDS:
            if getattr(record, name) is None:
                setattr(record, name, getattr(article, name))

        known = record.keyword_set
        for keyword in sorted(article.keywords - known):
            record.keywords.append(ArticleKeyword(keyword=keyword))

    async def export(
        self,
        run_result: RunResult,
        provider_names: Optional[Sequence[str]] = None,
        reset: bool = False,
    ) -> int:
        """
        Export articles grouped by provider.

        An article whose URL was exported before is completed instead of
        duplicated: empty columns are filled and keywords are unioned.

        Args:
            run_result: Provider name -> URL -> Article
            provider_names: Providers to export, all of ``run_result`` when None
            reset: Empty both tables first

        Returns:
            Number of articles written
        """
        if reset:
            await self.reset()

        names = list(provider_names) if provider_names is not None else list(run_result)
        written = 0

        async with self.database.session() as session:
            # Records touched in this export; the session does not autoflush
            records: Dict[str, ArticleRecord] = {}

            for name in names:
                articles = run_result.get(name, {})
                logger.info("Exporting %d article(s) from %s", len(articles), name)

                for url, article in articles.items():
                    record = records.get(url)
                    if record is None:
                        record = await self._find(session, url)
                    if record is None:
                        record = ArticleRecord(url=url, title=article.title or "", source=name)
                        record.keywords = []
                        session.add(record)
                    records[url] = record
                    self._merge(record, article)
                    written += 1

        logger.info("Exported %d article(s)", written)
        return written
