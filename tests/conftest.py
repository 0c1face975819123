"""
Shared test helpers: an in-process news server on top of httpx.MockTransport.
"""
import asyncio
from typing import Dict, List, Optional, Tuple

import httpx
import pytest

from newsscraper.core.config import Settings


class MockNewsServer:
    """
    Serves canned responses by exact URL and records every request.

    Unknown URLs answer 404. URLs registered with ``fail`` raise a connection
    error instead of answering.
    """

    def __init__(self, delay: float = 0.0):
        self.routes: Dict[str, Tuple[int, bytes, str]] = {}
        self.failing: set = set()
        self.requests: List[httpx.Request] = []
        self.delay = delay
        self.in_flight = 0
        self.max_in_flight = 0

    def add(
        self,
        url: str,
        body: str,
        status_code: int = 200,
        content_type: str = "text/html; charset=utf-8",
    ) -> None:
        self.routes[url] = (status_code, body.encode("utf-8"), content_type)

    def add_json(self, url: str, body: str) -> None:
        self.add(url, body, content_type="application/json")

    def fail(self, url: str) -> None:
        self.failing.add(url)

    @property
    def requested_urls(self) -> List[str]:
        return [str(r.url) for r in self.requests]

    def count(self, url: str) -> int:
        return self.requested_urls.count(url)

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            url = str(request.url)
            if url in self.failing:
                raise httpx.ConnectError("connection refused", request=request)
            if url not in self.routes:
                return httpx.Response(404, content=b"not found", request=request)
            status_code, body, content_type = self.routes[url]
            return httpx.Response(
                status_code,
                content=body,
                headers={"content-type": content_type},
                request=request,
            )
        finally:
            self.in_flight -= 1

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def result_page(items: List[Tuple[str, str]], next_href: Optional[str] = None) -> str:
    """Search result page listing (url, title) pairs."""
    entries = "\n".join(
        f'<li class="result"><h3><a href="{url}">{title}</a></h3></li>'
        for url, title in items
    )
    pagination = ""
    if next_href is not None:
        pagination = f'<div class="pagination"><a class="next" href="{next_href}">next</a></div>'
    return f"<html><body><ul class=\"results\">{entries}</ul>{pagination}</body></html>"


def article_page(
    subtitle: str = "A subtitle",
    body: str = "<p>First paragraph.</p><p>Second paragraph.</p>",
    date: str = "05.01.2014 10:30 Uhr",
) -> str:
    """Article page matching ``ARTICLE_RULES`` in the tests."""
    return f"""
    <html><body>
      <article>
        <p class="intro">{subtitle}</p>
        <span class="date">{date}</span>
        <div class="body">{body}</div>
      </article>
    </body></html>
    """


@pytest.fixture
def server() -> MockNewsServer:
    return MockNewsServer()


@pytest.fixture
def settings() -> Settings:
    """Settings independent of the environment and any .env file."""
    return Settings(
        _env_file=None,
        ENABLED_PROVIDERS="ALL",
        GUARDIAN_API_KEY="guardian-key",
        ZEIT_API_KEY="zeit-key",
        POPULATE_WORKERS=4,
        DATABASE_URL="sqlite+aiosqlite://",
    )
