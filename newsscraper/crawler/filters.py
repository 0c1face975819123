"""
Filters applied before and after article population.

Pre-population filters only see the URL, so unwanted articles can be
dropped before any network call is spent on them. Post-population filters
see the whole article and run once all fields are filled.
"""
import re
from datetime import date, datetime, time, timezone
from typing import Callable, Optional, Pattern, Union

from newsscraper.crawler.article import Article, ArticleMap, ensure_utc

PrePopulationFilter = Callable[[str], bool]
PostPopulationFilter = Callable[[Optional[Article]], bool]

# A date, or a datetime at 00:00:00, bounds by whole days
DateBound = Union[date, datetime]


def _start_of(bound: Optional[DateBound]) -> Optional[datetime]:
    if bound is None:
        return None
    if not isinstance(bound, datetime):
        return datetime.combine(bound, time.min, tzinfo=timezone.utc)
    return ensure_utc(bound)


def _end_of(bound: Optional[DateBound]) -> Optional[datetime]:
    if bound is None:
        return None
    if not isinstance(bound, datetime):
        return datetime.combine(bound, time.max, tzinfo=timezone.utc)
    bound = ensure_utc(bound)
    if bound.time() == time.min:
        return datetime.combine(bound.date(), time.max, tzinfo=timezone.utc)
    return bound


class URLSuffixFilter:
    """Rejects URLs ending in one of the given suffixes."""

    def __init__(self, *bad_suffixes: str):
        self.bad_suffixes = tuple(bad_suffixes)

    def __call__(self, url: str) -> bool:
        return not url.endswith(self.bad_suffixes)


class URLPrefixFilter:
    """Rejects URLs starting with one of the given prefixes."""

    def __init__(self, *bad_prefixes: str):
        self.bad_prefixes = tuple(bad_prefixes)

    def __call__(self, url: str) -> bool:
        return not url.startswith(self.bad_prefixes)


class URLPatternFilter:
    """Rejects URLs fully matching one of the given regular expressions."""

    def __init__(self, *bad_patterns: str):
        # dict.fromkeys drops repeated patterns but keeps their order
        self._patterns: list[Pattern] = [
            re.compile(p) for p in dict.fromkeys(bad_patterns)
        ]

    def __call__(self, url: str) -> bool:
        return not any(p.fullmatch(url) for p in self._patterns)


class PublicationDateFilter:
    """
    Keeps articles published within [earliest, latest].

    Both bounds are inclusive and optional. A ``date`` bound covers its
    whole day, and so does a ``latest`` datetime at midnight: [Jan 1, Jan 31]
    keeps an article from Jan 31 23:59. Articles without a publication
    date are rejected when ``reject_missing`` is set and kept otherwise.
    Useful for providers whose search cannot be restricted by date.
    """

    def __init__(
        self,
        earliest: Optional[DateBound],
        latest: Optional[DateBound],
        reject_missing: bool,
    ):
        self.earliest = _start_of(earliest)
        self.latest = _end_of(latest)
        self.reject_missing = reject_missing

    def __call__(self, article: Optional[Article]) -> bool:
        if article is None:
            return False

        published = ensure_utc(article.publication_date)
        if published is None:
            return not self.reject_missing

        if self.earliest is not None and published < self.earliest:
            return False
        if self.latest is not None and published > self.latest:
            return False
        return True


def all_of(*predicates: Optional[Callable]) -> Callable:
    """Combine predicates; an item is kept only if every predicate keeps it."""
    active = [p for p in predicates if p is not None]

    def combined(item) -> bool:
        return all(p(item) for p in active)

    return combined


def apply_pre_filter(
    articles: ArticleMap,
    predicate: Optional[PrePopulationFilter],
) -> ArticleMap:
    """Return a new map with the articles whose URL passes ``predicate``."""
    if predicate is None:
        return dict(articles)
    return {url: article for url, article in articles.items() if predicate(url)}


def apply_post_filter(
    articles: ArticleMap,
    predicate: Optional[PostPopulationFilter],
) -> ArticleMap:
    """Return a new map with the articles passing ``predicate``.

    Entries without an article are dropped regardless of the predicate.
    """
    if predicate is None:
        return {url: a for url, a in articles.items() if a is not None}
    return {
        url: article
        for url, article in articles.items()
        if article is not None and predicate(article)
    }


def date_range_filter_factory(reject_missing: bool) -> Callable[
    [Optional[DateBound], Optional[DateBound]], PostPopulationFilter
]:
    """Build a post-filter factory that restricts to the searched date range."""
    def factory(from_date: Optional[DateBound], to_date: Optional[DateBound]):
        return PublicationDateFilter(from_date, to_date, reject_missing=reject_missing)

    return factory

