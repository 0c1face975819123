"""
Error types raised by the acquisition pipeline.

Transport and parse errors are always contained at the page or article
level; only ConfigurationError is allowed to stop a run.
"""
from typing import Optional


class NewsScraperError(Exception):
    """Base exception for all newsscraper errors."""
    pass


class FetchError(NewsScraperError):
    """A single HTTP round trip failed (DNS, connect, timeout, non-2xx)."""

    def __init__(
        self,
        url: str,
        cause: str,
        status_code: Optional[int] = None,
    ):
        self.url = url
        self.cause = cause
        self.status_code = status_code
        super().__init__(f"Fetching {url} failed: {cause}")


class ParseError(NewsScraperError):
    """Markup or JSON could not be turned into the expected structure."""
    pass


class DateParseError(ParseError):
    """A publication date string did not match any configured format."""

    def __init__(self, text: str, formats=None):
        self.text = text
        self.formats = list(formats or [])
        super().__init__(f"Unable to parse publication date {text!r}")


class ConfigurationError(NewsScraperError):
    """Invalid or missing configuration; fatal at startup."""
    pass
