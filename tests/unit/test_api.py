"""
Unit tests for the crawler service and its API endpoints.
"""
import json
import time
from datetime import datetime, timedelta, timezone

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import select

from newsscraper.api.crawler import router
from newsscraper.core.database import Database
from newsscraper.crawler.exceptions import ConfigurationError
from newsscraper.main import create_app
from newsscraper.models.article import ArticleRecord
from newsscraper.services.crawler import (
    CrawlerService,
    SearchStatus,
    SearchTask,
    get_crawler_service,
)

FROM = datetime(2014, 1, 1, tzinfo=timezone.utc)
TO = datetime(2014, 1, 31, 23, 59, 59, tzinfo=timezone.utc)

GUARDIAN_RESPONSE = {
    "response": {
        "status": "ok",
        "total": 1,
        "results": [{
            "webUrl": "http://www.theguardian.com/world/2014/jan/05/snowden",
            "webTitle": "Snowden",
            "webPublicationDate": "2014-01-05T10:30:00Z",
            "fields": {"trailText": "Trail", "body": "<p>Body</p>"},
        }],
    }
}


def news_transport() -> httpx.MockTransport:
    """Answers Guardian searches with one article and everything else with 404."""
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "content.guardianapis.com":
            return httpx.Response(200, content=json.dumps(GUARDIAN_RESPONSE).encode(),
                                  headers={"content-type": "application/json"})
        return httpx.Response(404, request=request)

    return httpx.MockTransport(handler)


@pytest_asyncio.fixture
async def database():
    db = Database(url="sqlite+aiosqlite://", echo=False)
    await db.connect()
    await db.create_all()
    yield db
    await db.disconnect()


class TestCrawlerService:
    """Tests for CrawlerService."""

    @pytest.mark.asyncio
    async def test_search_completes_and_exports(self, settings, database):
        service = CrawlerService(settings, database, transport=news_transport())

        task = service.start_search(["Snowden"], FROM, TO, ["guardian", "telegraph"], export=True)
        await service.wait()

        assert task.status == SearchStatus.COMPLETED
        assert task.providers == ["guardian", "telegraph"]
        assert task.article_counts == {"guardian": 1, "telegraph": 0}
        assert task.articles_exported == 1

        async with database.session() as session:
            records = (await session.execute(select(ArticleRecord))).scalars().all()
        assert [r.full_text for r in records] == ["Body"]

    @pytest.mark.asyncio
    async def test_configuration_errors_surface_immediately(self, settings, database):
        service = CrawlerService(settings, database, transport=news_transport())

        with pytest.raises(ConfigurationError):
            service.start_search(["Snowden"], FROM, TO, ["bild"])

        assert service._tasks == {}

    def test_list_providers(self, settings):
        settings.ZEIT_API_KEY = None
        settings.ENABLED_PROVIDERS = "guardian,zeit"
        providers = {p["name"]: p for p in CrawlerService(settings).list_providers()}

        assert len(providers) == 12
        assert providers["zeit"]["requires_api_key"] is True
        assert providers["zeit"]["available"] is False
        assert providers["guardian"]["enabled"] is True
        assert providers["welt"]["enabled"] is False
        assert providers["welt"]["available"] is True

    def test_cleanup_old_tasks(self, settings):
        service = CrawlerService(settings)
        old = SearchTask("old", ["a"], FROM, TO, ["welt"])
        old.completed_at = datetime(2014, 1, 1, tzinfo=timezone.utc)
        running = SearchTask("running", ["a"], FROM, TO, ["welt"])
        service._tasks = {"old": old, "running": running}

        assert service.cleanup_old_tasks() == 1
        assert service.get_task("old") is None
        assert service.get_task("running") is running

    @pytest.mark.asyncio
    async def test_start_search_drops_expired_tasks(self, settings, database):
        settings.SEARCH_TASK_MAX_AGE_HOURS = 1
        service = CrawlerService(settings, database, transport=news_transport())
        expired = SearchTask("expired", ["a"], FROM, TO, ["welt"])
        expired.completed_at = datetime.now(timezone.utc) - timedelta(hours=2)
        recent = SearchTask("recent", ["a"], FROM, TO, ["welt"])
        recent.completed_at = datetime.now(timezone.utc)
        service._tasks = {"expired": expired, "recent": recent}

        task = service.start_search(["Snowden"], FROM, TO, ["guardian"])
        await service.wait()

        assert set(service._tasks) == {"recent", task.task_id}


class TestCrawlerAPI:
    """Tests for the /crawler endpoints."""

    @pytest.fixture
    def service(self, settings):
        return CrawlerService(settings, Database(url="sqlite+aiosqlite://"), transport=news_transport())

    @pytest.fixture
    def client(self, service):
        app = FastAPI()
        app.include_router(router, prefix="/api/v1")
        app.dependency_overrides[get_crawler_service] = lambda: service
        with TestClient(app) as client:
            yield client

    def test_providers(self, client):
        response = client.get("/api/v1/crawler/providers")
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 12
        assert {p["name"] for p in data["providers"]} >= {"guardian", "welt"}

    def test_search_and_results(self, client):
        response = client.post("/api/v1/crawler/search", json={
            "keywords": ["Snowden"],
            "from_date": "2014-01-01",
            "to_date": "2014-01-31",
            "providers": ["guardian"],
        })
        assert response.status_code == 200
        task_id = response.json()["task_id"]

        deadline = time.monotonic() + 5
        while time.monotonic() < deadline:
            status = client.get(f"/api/v1/crawler/status/{task_id}").json()
            if status["status"] in ("completed", "failed"):
                break
            time.sleep(0.01)

        assert status["status"] == "completed"
        assert status["to_date"].startswith("2014-01-31T23:59:59")

        results = client.get(f"/api/v1/crawler/results/{task_id}").json()
        assert results["total"] == 1
        article = results["articles"]["guardian"][0]
        assert article["full_text"] == "Body"
        assert article["keywords"] == ["Snowden"]

    def test_unknown_provider_is_bad_request(self, client):
        response = client.post("/api/v1/crawler/search", json={
            "keywords": ["Snowden"],
            "from_date": "2014-01-01",
            "to_date": "2014-01-31",
            "providers": ["bild"],
        })
        assert response.status_code == 400
        assert "bild" in response.json()["detail"]

    def test_invalid_range_is_rejected(self, client):
        response = client.post("/api/v1/crawler/search", json={
            "keywords": ["Snowden"],
            "from_date": "2014-02-01",
            "to_date": "2014-01-31",
        })
        assert response.status_code == 422

    def test_blank_keywords_are_rejected(self, client):
        response = client.post("/api/v1/crawler/search", json={
            "keywords": ["  "],
            "from_date": "2014-01-01",
            "to_date": "2014-01-31",
        })
        assert response.status_code == 422

    def test_unknown_task(self, client):
        assert client.get("/api/v1/crawler/status/nope").status_code == 404
        assert client.get("/api/v1/crawler/results/nope").status_code == 404

    def test_results_before_completion(self, client, service):
        task = SearchTask("pending", ["Snowden"], FROM, TO, ["guardian"])
        service._tasks[task.task_id] = task

        response = client.get("/api/v1/crawler/results/pending")

        assert response.status_code == 409


def test_health():
    client = TestClient(create_app())
    assert client.get("/health").json() == {"status": "healthy", "database": False}
