"""
Unit tests for concurrent article population.
"""
import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest

from conftest import MockNewsServer, article_page
from newsscraper.crawler.article import Article
from newsscraper.crawler.extraction import ArticleExtractor, ExtractionRules
from newsscraper.crawler.fetch import DocumentFetcher
from newsscraper.crawler.populator import Populator, fixed_delay, jittered_delay

EXTRACTOR = ArticleExtractor(ExtractionRules(
    subtitle_selector="article p.intro",
    full_text_selector="article div.body",
    publication_date_selector="article span.date",
    publication_date_formats=["%d.%m.%Y %H:%M Uhr"],
))


def article_map(*urls):
    return {url: Article(url=url, title=f"Title {url}") for url in urls}


class TestPopulator:
    """Tests for Populator."""

    @pytest.mark.asyncio
    async def test_fills_missing_fields(self, server: MockNewsServer):
        server.add("http://news.test/a", article_page())
        articles = article_map("http://news.test/a")

        async with DocumentFetcher(transport=server.transport()) as fetcher:
            await Populator(fetcher, EXTRACTOR).populate(articles)

        article = articles["http://news.test/a"]
        assert article.subtitle == "A subtitle"
        assert article.full_text == "First paragraph. Second paragraph."
        assert article.publication_date == datetime(2014, 1, 5, 10, 30, tzinfo=timezone.utc)
        assert article.title == "Title http://news.test/a"

    @pytest.mark.asyncio
    async def test_present_fields_are_not_overwritten(self, server: MockNewsServer):
        server.add("http://news.test/a", article_page(subtitle="From page"))
        articles = {"http://news.test/a": Article(url="http://news.test/a", title="T", subtitle="From search")}

        async with DocumentFetcher(transport=server.transport()) as fetcher:
            await Populator(fetcher, EXTRACTOR).populate(articles)

        assert articles["http://news.test/a"].subtitle == "From search"
        assert articles["http://news.test/a"].full_text is not None

    @pytest.mark.asyncio
    async def test_complete_article_is_not_fetched(self, server: MockNewsServer):
        article = Article(
            url="http://news.test/a",
            title="T",
            subtitle="S",
            publication_date=datetime(2014, 1, 5, tzinfo=timezone.utc),
            full_text="Body",
            full_text_html="<p>Body</p>",
        )

        async with DocumentFetcher(transport=server.transport()) as fetcher:
            await Populator(fetcher, EXTRACTOR).populate({article.url: article})

        assert server.requests == []

    @pytest.mark.asyncio
    async def test_text_derived_from_delivered_html(self, server: MockNewsServer):
        """Test body HTML from an API result becomes full text without a request."""
        article = Article(
            url="http://news.test/a",
            title="T",
            subtitle="S",
            publication_date=datetime(2014, 1, 5, tzinfo=timezone.utc),
            full_text_html="<p>Body from API</p>",
        )

        async with DocumentFetcher(transport=server.transport()) as fetcher:
            await Populator(fetcher, EXTRACTOR).populate({article.url: article})

        assert article.full_text == "Body from API"
        assert server.requests == []

    @pytest.mark.asyncio
    async def test_no_extractor_means_no_requests(self, server: MockNewsServer):
        articles = article_map("http://news.test/a")

        async with DocumentFetcher(transport=server.transport()) as fetcher:
            await Populator(fetcher, extractor=None).populate(articles)

        assert server.requests == []
        assert articles["http://news.test/a"].full_text is None

    @pytest.mark.asyncio
    async def test_failures_are_isolated(self, server: MockNewsServer):
        server.add("http://news.test/ok", article_page())
        server.fail("http://news.test/down")
        articles = article_map("http://news.test/ok", "http://news.test/down", "http://news.test/missing")

        async with DocumentFetcher(transport=server.transport()) as fetcher:
            await Populator(fetcher, EXTRACTOR).populate(articles)

        assert len(articles) == 3
        assert articles["http://news.test/ok"].full_text is not None
        assert articles["http://news.test/down"].full_text is None
        assert articles["http://news.test/missing"].full_text is None

    @pytest.mark.asyncio
    async def test_unexpected_extractor_error_is_contained(self, server: MockNewsServer, caplog):
        server.add("http://news.test/a", article_page())
        server.add("http://news.test/b", article_page())

        class ExplodingExtractor(ArticleExtractor):
            def populate(self, article, soup):
                if article.url.endswith("/a"):
                    raise KeyError("boom")
                return super().populate(article, soup)

        articles = article_map("http://news.test/a", "http://news.test/b")
        async with DocumentFetcher(transport=server.transport()) as fetcher:
            await Populator(fetcher, ExplodingExtractor(EXTRACTOR.rules)).populate(articles)

        assert articles["http://news.test/b"].full_text is not None
        assert "http://news.test/a" in caplog.text

    @pytest.mark.asyncio
    async def test_before_populate_hook_runs_before_fetch(self, server: MockNewsServer):
        server.add("http://news.test/a", article_page())
        seen = []

        async def hook(article):
            seen.append((article.url, len(server.requests)))

        async with DocumentFetcher(transport=server.transport()) as fetcher:
            await Populator(fetcher, EXTRACTOR, before_populate=hook).populate(article_map("http://news.test/a"))

        assert seen == [("http://news.test/a", 0)]

    @pytest.mark.asyncio
    async def test_worker_bound(self):
        server = MockNewsServer(delay=0.02)
        urls = [f"http://news.test/{i}" for i in range(12)]
        for url in urls:
            server.add(url, article_page())
        articles = article_map(*urls)

        async with DocumentFetcher(transport=server.transport()) as fetcher:
            await Populator(fetcher, EXTRACTOR, workers=3).populate(articles)

        assert len(server.requests) == 12
        assert 1 <= server.max_in_flight <= 3
        assert all(a.full_text is not None for a in articles.values())

    @pytest.mark.asyncio
    async def test_empty_map(self, server: MockNewsServer):
        async with DocumentFetcher(transport=server.transport()) as fetcher:
            assert await Populator(fetcher, EXTRACTOR).populate({}) == {}

    def test_workers_must_be_positive(self):
        with pytest.raises(ValueError):
            Populator(DocumentFetcher(), EXTRACTOR, workers=0)


class TestDelays:
    """Tests for the delay hooks."""

    @pytest.mark.asyncio
    async def test_jittered_delay_stays_in_range(self):
        article = Article(url="http://news.test/a", title="T")
        with patch("newsscraper.crawler.populator.asyncio.sleep", new_callable=AsyncMock) as sleep:
            await jittered_delay(4.0)(article)

        delay = sleep.await_args.args[0]

        assert 0 <= delay <= 4.0

    @pytest.mark.asyncio
    async def test_fixed_delay(self):
        article = Article(url="http://news.test/a", title="T")
        loop = asyncio.get_running_loop()
        start = loop.time()
        await fixed_delay(0.01)(article)
        assert loop.time() - start >= 0.009
