"""
Uniform article record shared by every provider.

An article is identified by its URL. Discovering the same URL again only
grows its keyword set; population fills empty fields and never overwrites.
"""
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

POPULATED_FIELDS = ("subtitle", "publication_date", "full_text", "full_text_html")


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Return an aware UTC datetime; naive values are taken to be UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def day_range(first_day: date, last_day: date) -> Tuple[datetime, datetime]:
    """Start of ``first_day`` and end of ``last_day`` in UTC, both inclusive."""
    return (
        datetime.combine(first_day, time.min, tzinfo=timezone.utc),
        datetime.combine(last_day, time(23, 59, 59), tzinfo=timezone.utc),
    )


def _clean(value: Any) -> Any:
    # Empty strings carry no information and are stored as None
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


@dataclass
class Article:
    """A news article found by a provider search."""
    url: str
    title: str
    subtitle: Optional[str] = None
    publication_date: Optional[datetime] = None
    full_text: Optional[str] = None
    full_text_html: Optional[str] = None
    keywords: Set[str] = field(default_factory=set)

    def __post_init__(self):
        self.keywords = set(self.keywords)
        self.subtitle = _clean(self.subtitle)
        self.full_text = _clean(self.full_text)
        self.full_text_html = _clean(self.full_text_html)
        self.publication_date = ensure_utc(self.publication_date)

    def add_keyword(self, keyword: Optional[str]) -> None:
        """Add a keyword this article was found by."""
        if keyword:
            self.keywords.add(keyword)

    def add_keywords(self, keywords: Iterable[str]) -> None:
        for keyword in keywords:
            self.add_keyword(keyword)

    def fill(self, **values: Any) -> List[str]:
        """
        Set fields that are still empty.

        Fields that already hold a value are left untouched, so populating
        an article twice yields the same values.

        Returns:
            Names of the fields that were set by this call
        """
        filled = []
        for name, value in values.items():
            if name not in POPULATED_FIELDS:
                raise AttributeError(f"{name} is not a populatable article field")
            if getattr(self, name) is not None:
                continue
            value = _clean(value)
            if name == "publication_date":
                value = ensure_utc(value)
            if value is not None:
                setattr(self, name, value)
                filled.append(name)
        return filled

    def missing_fields(self) -> List[str]:
        """Names of populatable fields that are still empty."""
        return [name for name in POPULATED_FIELDS if getattr(self, name) is None]

    def is_complete(self) -> bool:
        return not self.missing_fields()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "url": self.url,
            "title": self.title,
            "subtitle": self.subtitle,
            "publication_date": (
                self.publication_date.isoformat() if self.publication_date else None
            ),
            "full_text": self.full_text,
            "full_text_html": self.full_text_html,
            "keywords": sorted(self.keywords),
        }


# URL -> Article, one map per provider
ArticleMap = Dict[str, Article]

# Provider name -> ArticleMap
RunResult = Dict[str, ArticleMap]


def merge_article(
    articles: ArticleMap,
    url: str,
    title: str,
    keyword: Optional[str] = None,
) -> Article:
    """
    Record a discovered (url, title) pair in ``articles``.

    A URL already present gets ``keyword`` added to its keyword set;
    a new URL creates a fresh article.
    """
    existing = articles.get(url)
    if existing is not None:
        existing.add_keyword(keyword)
        return existing

    article = Article(url=url, title=title)
    article.add_keyword(keyword)
    articles[url] = article
    return article


def merge_discovered(
    articles: ArticleMap,
    article: Article,
    keyword: Optional[str] = None,
) -> Article:
    """Like merge_article, for articles that arrive partially populated."""
    existing = articles.get(article.url)
    if existing is not None:
        existing.add_keyword(keyword)
        existing.add_keywords(article.keywords)
        return existing

    article.add_keyword(keyword)
    articles[article.url] = article
    return article
