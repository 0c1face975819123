"""
Article page extraction driven by per-provider selector rules.

Each provider describes where the subtitle, body and publication date live
on its article pages; the extractor turns a fetched page into field values.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional, Sequence

import dateparser
from bs4 import BeautifulSoup, Tag

from newsscraper.crawler.article import Article, ensure_utc
from newsscraper.crawler.exceptions import DateParseError

logger = logging.getLogger(__name__)

DateExtractor = Callable[[BeautifulSoup], Optional[datetime]]


@dataclass
class ExtractionRules:
    """Where to find article fields on a provider's article pages."""
    subtitle_selector: Optional[str] = None
    full_text_selector: Optional[str] = None
    publication_date_selector: Optional[str] = None
    # strptime directives, tried in order
    publication_date_formats: List[str] = field(default_factory=list)
    # Languages of the provider (e.g. "de"), used for month and day names
    languages: List[str] = field(default_factory=lambda: ["en"])
    # Read the date from this attribute instead of the element text
    date_attribute: Optional[str] = None
    # Use only the element's own text, ignoring nested labels
    date_own_text: bool = False
    # Replaces selector based date extraction entirely
    date_extractor: Optional[DateExtractor] = None
    # Elements to remove before extracting anything
    remove_selectors: List[str] = field(default_factory=lambda: [
        "script", "style", "noscript",
    ])


def own_text(element: Tag) -> str:
    """Text directly inside ``element``, without nested elements."""
    return "".join(element.find_all(string=True, recursive=False)).strip()


def parse_publication_date(
    text: str,
    formats: Sequence[str] = (),
    languages: Sequence[str] = ("en",),
) -> datetime:
    """
    Parse a publication date string.

    The configured formats are tried first, then ISO 8601, then a
    language-aware parse that understands localized month names.

    Raises:
        DateParseError: if no interpretation of ``text`` succeeds
    """
    text = " ".join((text or "").split())
    if not text:
        raise DateParseError(text, formats)

    for fmt in formats:
        try:
            return ensure_utc(datetime.strptime(text, fmt))
        except ValueError:
            continue

    try:
        return ensure_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))
    except ValueError:
        pass

    parsed = dateparser.parse(
        text,
        date_formats=list(formats) or None,
        languages=list(languages) or None,
        settings={"RETURN_AS_TIMEZONE_AWARE": False},
    )
    if parsed is None:
        raise DateParseError(text, formats)
    return ensure_utc(parsed)


class ArticleExtractor:
    """
    Extracts article fields from a fetched article page.
    """

    def __init__(self, rules: ExtractionRules):
        self.rules = rules

    def prepare(self, soup: BeautifulSoup) -> BeautifulSoup:
        """Remove unwanted elements from the soup."""
        for selector in self.rules.remove_selectors:
            for element in soup.select(selector):
                element.decompose()
        return soup

    def _select(self, soup: BeautifulSoup, selector: Optional[str]) -> List[Tag]:
        if not selector:
            return []
        return soup.select(selector)

    def extract_subtitle(self, soup: BeautifulSoup) -> Optional[str]:
        elements = self._select(soup, self.rules.subtitle_selector)
        return " ".join(e.get_text(" ", strip=True) for e in elements) or None

    def extract_full_text(self, soup: BeautifulSoup) -> Optional[str]:
        elements = self._select(soup, self.rules.full_text_selector)
        return " ".join(e.get_text(" ", strip=True) for e in elements) or None

    def extract_full_text_html(self, soup: BeautifulSoup) -> Optional[str]:
        elements = self._select(soup, self.rules.full_text_selector)
        return "\n".join(e.decode_contents().strip() for e in elements) or None

    def extract_publication_date(self, soup: BeautifulSoup) -> Optional[datetime]:
        """
        Extract the publication date.

        Returns None when the page has no date element at all.

        Raises:
            DateParseError: if a date element exists but cannot be parsed
        """
        if self.rules.date_extractor is not None:
            return ensure_utc(self.rules.date_extractor(soup))

        elements = self._select(soup, self.rules.publication_date_selector)
        if not elements:
            return None

        if self.rules.date_attribute:
            text = elements[0].get(self.rules.date_attribute, "")
        elif self.rules.date_own_text:
            text = own_text(elements[0])
        else:
            text = " ".join(e.get_text(" ", strip=True) for e in elements)

        return parse_publication_date(
            text,
            self.rules.publication_date_formats,
            self.rules.languages,
        )

    def populate(self, article: Article, soup: BeautifulSoup) -> List[str]:
        """
        Fill the empty fields of ``article`` from its page.

        Each field is filled as soon as it is extracted, so an error in a
        later field keeps the earlier ones. A date that cannot be parsed
        leaves the field empty.

        Returns:
            Names of the fields that were filled
        """
        self.prepare(soup)
        filled: List[str] = []

        if article.subtitle is None:
            filled += article.fill(subtitle=self.extract_subtitle(soup))
        if article.full_text is None:
            filled += article.fill(full_text=self.extract_full_text(soup))
        if article.full_text_html is None:
            filled += article.fill(full_text_html=self.extract_full_text_html(soup))
        if article.publication_date is None:
            try:
                filled += article.fill(publication_date=self.extract_publication_date(soup))
            except DateParseError as e:
                logger.warning(
                    "Unable to parse publication date for article with url %s: %s",
                    article.url, e,
                )

        return filled


def html_to_text(html: Optional[str]) -> Optional[str]:
    """Plain text of an HTML fragment."""
    if not html:
        return None
    return BeautifulSoup(html, "html.parser").get_text(" ", strip=True) or None


@dataclass
class DateSource:
    """One place a publication date may be read from."""
    selector: str
    attribute: Optional[str] = None
    formats: List[str] = field(default_factory=list)
    own_text: bool = False
    # Removed from the text before parsing, e.g. a "Last updated at" label
    strip_prefix: Optional[str] = None


def date_from_sources(
    sources: Sequence[DateSource],
    languages: Sequence[str] = ("en",),
) -> DateExtractor:
    """
    Build a date extractor trying several page locations in order.

    The first source with a matching element decides; later sources are
    only consulted when earlier ones match nothing.
    """
    def extract(soup: BeautifulSoup) -> Optional[datetime]:
        for source in sources:
            element = soup.select_one(source.selector)
            if element is None:
                continue
            if source.attribute:
                text = element.get(source.attribute, "")
            elif source.own_text:
                text = own_text(element)
            else:
                text = element.get_text(" ", strip=True)
            if source.strip_prefix and text.startswith(source.strip_prefix):
                text = text[len(source.strip_prefix):]
            return parse_publication_date(text, source.formats, languages)
        return None

    return extract
