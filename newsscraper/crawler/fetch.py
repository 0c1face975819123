"""
HTTP fetch client used by every search strategy and the populator.

One GET per call, bounded by a timeout, no retries. Transport failures are
reported as a FetchError instead of escaping as arbitrary exceptions.
"""
from dataclasses import dataclass, field
from typing import Dict, Optional

import httpx
from bs4 import BeautifulSoup

from newsscraper.crawler.exceptions import FetchError

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


@dataclass
class FetcherConfig:
    """Configuration for fetch behavior."""
    # Timeout settings
    request_timeout_seconds: float = 60.0
    connect_timeout_seconds: float = 10.0

    user_agent: str = DEFAULT_USER_AGENT
    headers: Dict[str, str] = field(default_factory=lambda: {
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "en;q=0.9,de;q=0.8",
    })

    @classmethod
    def from_settings(cls, settings) -> "FetcherConfig":
        return cls(
            request_timeout_seconds=settings.FETCH_TIMEOUT_SECONDS,
            connect_timeout_seconds=settings.CONNECT_TIMEOUT_SECONDS,
            user_agent=settings.USER_AGENT,
        )


@dataclass
class FetchResult:
    """Result of a single fetch."""
    url: str
    success: bool
    status_code: Optional[int] = None
    content: bytes = b""
    encoding: Optional[str] = None
    error: Optional[FetchError] = None

    @property
    def text(self) -> str:
        return self.content.decode(self.encoding or "utf-8", errors="replace")

    def raise_for_error(self) -> None:
        if not self.success:
            raise self.error or FetchError(self.url, "unknown error", self.status_code)


def normalize_url(url: str) -> str:
    """Encode literal spaces, which some search URL templates contain."""
    return url.strip().replace(" ", "%20")


class DocumentFetcher:
    """
    Async HTTP client for search pages, API responses and article pages.
    """

    def __init__(
        self,
        config: Optional[FetcherConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config or FetcherConfig()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def start(self) -> None:
        """Create the underlying connection pool."""
        if self._client is not None:
            return
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(
                self.config.request_timeout_seconds,
                connect=self.config.connect_timeout_seconds,
            ),
            follow_redirects=True,
            transport=self._transport,
        )

    async def close(self) -> None:
        """Close the client and release resources."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _get_headers(
        self,
        user_agent: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Dict[str, str]:
        merged = dict(self.config.headers)
        merged["User-Agent"] = user_agent or self.config.user_agent
        if headers:
            merged.update(headers)
        return merged

    async def fetch(
        self,
        url: str,
        user_agent: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> FetchResult:
        """
        Fetch a URL once.

        Args:
            url: The URL to fetch
            user_agent: Overrides the configured User-Agent header
            headers: Extra request headers
            timeout: Overrides the configured request timeout, in seconds

        Returns:
            FetchResult with the response body or the FetchError describing
            why no body is available
        """
        if not self._client:
            raise RuntimeError("Fetcher not started. Use 'async with' or call start()")

        url = normalize_url(url)
        request_options = {"headers": self._get_headers(user_agent, headers)}
        if timeout is not None:
            request_options["timeout"] = httpx.Timeout(
                timeout, connect=self.config.connect_timeout_seconds
            )

        try:
            response = await self._client.get(url, **request_options)
        except httpx.TimeoutException as e:
            return FetchResult(
                url=url,
                success=False,
                error=FetchError(url, f"Timeout: {e}"),
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            return FetchResult(
                url=url,
                success=False,
                error=FetchError(url, f"Request error: {e}"),
            )

        if not response.is_success:
            return FetchResult(
                url=url,
                success=False,
                status_code=response.status_code,
                error=FetchError(url, f"HTTP {response.status_code}", response.status_code),
            )

        return FetchResult(
            url=str(response.url),
            success=True,
            status_code=response.status_code,
            content=response.content,
            encoding=response.encoding,
        )

    async def fetch_bytes(self, url: str, **kwargs) -> bytes:
        """Fetch a URL and return the raw body, raising FetchError on failure."""
        result = await self.fetch(url, **kwargs)
        result.raise_for_error()
        return result.content

    async def fetch_document(self, url: str, **kwargs) -> BeautifulSoup:
        """Fetch a URL and parse it as HTML, raising FetchError on failure."""
        result = await self.fetch(url, **kwargs)
        result.raise_for_error()
        return BeautifulSoup(result.content, "html.parser", from_encoding=result.encoding)
