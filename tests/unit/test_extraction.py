"""
Unit tests for article page extraction and date parsing.
"""
import logging
from datetime import datetime, timezone

import pytest
from bs4 import BeautifulSoup

from conftest import article_page
from newsscraper.crawler.article import Article
from newsscraper.crawler.exceptions import DateParseError
from newsscraper.crawler.extraction import (
    ArticleExtractor,
    DateSource,
    ExtractionRules,
    date_from_sources,
    html_to_text,
    own_text,
    parse_publication_date,
)

ARTICLE_RULES = ExtractionRules(
    subtitle_selector="article p.intro",
    full_text_selector="article div.body",
    publication_date_selector="article span.date",
    publication_date_formats=["%d.%m.%Y %H:%M Uhr"],
    languages=["de"],
)


def soup_of(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


class TestParsePublicationDate:
    """Tests for parse_publication_date."""

    def test_strptime_format(self):
        value = parse_publication_date("05.01.2014 10:30 Uhr", ["%d.%m.%Y %H:%M Uhr"])
        assert value == datetime(2014, 1, 5, 10, 30, tzinfo=timezone.utc)

    def test_whitespace_is_collapsed(self):
        value = parse_publication_date("  05.01.2014\n   10:30 Uhr ", ["%d.%m.%Y %H:%M Uhr"])
        assert value == datetime(2014, 1, 5, 10, 30, tzinfo=timezone.utc)

    def test_iso_fallback(self):
        value = parse_publication_date("2014-01-05T10:30:00Z")
        assert value == datetime(2014, 1, 5, 10, 30, tzinfo=timezone.utc)

    def test_iso_offset_is_converted_to_utc(self):
        value = parse_publication_date("2014-01-05T11:30:00+01:00")
        assert value == datetime(2014, 1, 5, 10, 30, tzinfo=timezone.utc)

    def test_localized_month_names(self):
        value = parse_publication_date("5. Januar 2014, 10:30", ["%d. %B %Y, %H:%M"], ["de"])
        assert value == datetime(2014, 1, 5, 10, 30, tzinfo=timezone.utc)

    def test_garbage_raises(self):
        with pytest.raises(DateParseError):
            parse_publication_date("xyzzy plugh", ["%d.%m.%Y"])

    def test_empty_raises(self):
        with pytest.raises(DateParseError):
            parse_publication_date("   ")


class TestArticleExtractor:
    """Tests for ArticleExtractor."""

    def test_populate_fills_all_fields(self):
        article = Article(url="http://news.test/a", title="T")
        filled = ArticleExtractor(ARTICLE_RULES).populate(article, soup_of(article_page()))

        assert set(filled) == {"subtitle", "full_text", "full_text_html", "publication_date"}
        assert article.subtitle == "A subtitle"
        assert article.full_text == "First paragraph. Second paragraph."
        assert "<p>First paragraph.</p>" in article.full_text_html
        assert article.publication_date == datetime(2014, 1, 5, 10, 30, tzinfo=timezone.utc)

    def test_populate_keeps_present_fields(self):
        article = Article(url="http://news.test/a", title="T", subtitle="From search")
        ArticleExtractor(ARTICLE_RULES).populate(article, soup_of(article_page()))
        assert article.subtitle == "From search"

    def test_missing_elements_stay_none(self):
        article = Article(url="http://news.test/a", title="T")
        filled = ArticleExtractor(ARTICLE_RULES).populate(article, soup_of("<html><body></body></html>"))
        assert filled == []
        assert article.missing_fields() == [
            "subtitle", "publication_date", "full_text", "full_text_html",
        ]

    def test_unparseable_date_is_logged_and_left_empty(self, caplog):
        article = Article(url="http://news.test/a", title="T")
        page = article_page(date="xyzzy ???")

        with caplog.at_level(logging.WARNING, logger="newsscraper"):
            ArticleExtractor(ARTICLE_RULES).populate(article, soup_of(page))

        assert article.publication_date is None
        assert article.full_text is not None
        assert "http://news.test/a" in caplog.text

    def test_failing_date_extractor_keeps_extracted_fields(self):
        def broken_date(soup):
            raise ValueError("unexpected date markup")

        rules = ExtractionRules(
            subtitle_selector="article p.intro",
            full_text_selector="article div.body",
            date_extractor=broken_date,
        )
        article = Article(url="http://news.test/a", title="T")

        with pytest.raises(ValueError):
            ArticleExtractor(rules).populate(article, soup_of(article_page()))

        assert article.subtitle == "A subtitle"
        assert article.full_text == "First paragraph. Second paragraph."
        assert article.full_text_html is not None
        assert article.publication_date is None

    def test_scripts_are_removed(self):
        article = Article(url="http://news.test/a", title="T")
        page = article_page(body="<p>Text</p><script>var x = 1;</script>")
        ArticleExtractor(ARTICLE_RULES).populate(article, soup_of(page))
        assert article.full_text == "Text"

    def test_date_from_attribute(self):
        rules = ExtractionRules(
            publication_date_selector="time",
            publication_date_formats=["%Y-%m-%d %H:%M:%S"],
            date_attribute="datetime",
        )
        soup = soup_of('<time datetime="2014-01-05 10:30:00">5. Januar</time>')
        value = ArticleExtractor(rules).extract_publication_date(soup)
        assert value == datetime(2014, 1, 5, 10, 30, tzinfo=timezone.utc)

    def test_date_from_own_text(self):
        rules = ExtractionRules(
            publication_date_selector="span.ts",
            publication_date_formats=["%H:%M %Z, %d %B %Y"],
            date_own_text=True,
        )
        soup = soup_of('<span class="ts"><span>PUBLISHED:</span> 10:30 GMT, 5 January 2014</span>')
        value = ArticleExtractor(rules).extract_publication_date(soup)
        assert value == datetime(2014, 1, 5, 10, 30, tzinfo=timezone.utc)


class TestDateSources:
    """Tests for date_from_sources."""

    def test_first_matching_source_wins(self):
        extract = date_from_sources([
            DateSource("time[datetime]", attribute="datetime", formats=["%Y-%m-%d %H:%M:%S"]),
            DateSource("span.date", formats=["%d.%m.%Y"]),
        ])
        soup = soup_of('<span class="date">01.02.2014</span>')
        assert extract(soup) == datetime(2014, 2, 1, tzinfo=timezone.utc)

    def test_prefix_is_stripped(self):
        extract = date_from_sources([
            DateSource("p.updated", own_text=True, strip_prefix="Last updated at ",
                       formats=["%H:%M %d %B %Y"]),
        ])
        soup = soup_of('<p class="updated">Last updated at 10:30 5 January 2014</p>')
        assert extract(soup) == datetime(2014, 1, 5, 10, 30, tzinfo=timezone.utc)

    def test_no_source_matches(self):
        extract = date_from_sources([DateSource("time")])
        assert extract(soup_of("<p>nothing</p>")) is None


class TestHelpers:
    """Tests for text helpers."""

    def test_own_text_ignores_children(self):
        link = soup_of('<a><strong>Overline</strong> Headline <span>Dept</span></a>').a
        assert own_text(link) == "Headline"

    def test_html_to_text(self):
        assert html_to_text("<p>One</p><p>Two</p>") == "One Two"
        assert html_to_text(None) is None
        assert html_to_text("<p> </p>") is None
