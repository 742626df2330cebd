import os
import tempfile

# Must be set before horrorhub.database is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="horrorhub-logs-"))

import httpx
import pytest
from fastapi.testclient import TestClient

import horrorhub.models  # noqa: F401
from horrorhub.database import Base, SessionLocal, engine
from horrorhub.models.user import User
from horrorhub.services.content_sync import SyncSettings
from horrorhub.services.usage_ledger import UsageLedger
from horrorhub.services.watchmode_client import WatchmodeClient


ADMIN_KEY = "admin-key"
USER_KEY = "user-key"


@pytest.fixture(autouse=True)
def tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def users(db):
    admin = User(username="admin", role="admin", api_key=ADMIN_KEY)
    user = User(username="viewer", role="user", api_key=USER_KEY)
    db.add_all([admin, user])
    db.commit()
    return admin, user


@pytest.fixture
def admin_headers(users):
    return {"X-Api-Key": ADMIN_KEY}


@pytest.fixture
def user_headers(users):
    return {"X-Api-Key": USER_KEY}


@pytest.fixture
def client():
    from horrorhub.main import app
    test_client = TestClient(app)
    yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def ledger(db):
    return UsageLedger(db, monthly_limit=1000)


@pytest.fixture
def settings():
    return SyncSettings()


class FakeWatchmode:
    """
    Routes Watchmode paths to canned payloads and records every call.

    titles: list-titles entries; details/sources: keyed by title id.
    """

    def __init__(self, titles=None, details=None, sources=None, releases=None, total_pages=1, search_results=None):
        self.titles = titles or []
        self.details = details or {}
        self.sources = sources or {}
        self.releases = releases or []
        self.total_pages = total_pages
        self.search_results = search_results or []
        self.calls = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.calls.append((path, dict(request.url.params)))

        if path.endswith("/list-titles/"):
            return httpx.Response(200, json={
                "titles": self.titles,
                "total_results": len(self.titles),
                "total_pages": self.total_pages,
            })
        if path.endswith("/autocomplete-search/"):
            return httpx.Response(200, json={"title_results": self.search_results})
        if path.endswith("/search/"):
            value = request.url.params.get("search_value")
            matches = [t for t in self.search_results if t.get("imdb_id") == value]
            return httpx.Response(200, json={"title_results": matches, "people_results": []})
        if path.endswith("/releases/"):
            return httpx.Response(200, json={"releases": self.releases})
        if path.endswith("/details/"):
            title_id = int(path.split("/")[-3])
            if title_id not in self.details:
                return httpx.Response(404, json={"success": False})
            return httpx.Response(200, json=self.details[title_id])
        if path.endswith("/sources/") and "/title/" in path:
            title_id = int(path.split("/")[-3])
            return httpx.Response(200, json=self.sources.get(title_id, []))
        if path.endswith("/genres/"):
            return httpx.Response(200, json=[{"id": 11, "name": "Horror"}])
        if path.endswith("/sources/"):
            return httpx.Response(200, json=[{"id": 203, "name": "Netflix"}])
        return httpx.Response(404, json={})

    def paths(self):
        return [path for path, _ in self.calls]


def horror_title(title_id, title, year, **extra):
    details = {
        "id": title_id,
        "title": title,
        "year": year,
        "type": "movie",
        "genres": [11],
        "critic_score": 80,
        "user_rating": 7.0,
        "plot_overview": f"{title} plot",
        "poster": "https://cdn.example.com/w185/poster.jpg",
        "imdb_id": f"tt{title_id:07d}",
    }
    details.update(extra)
    return details


def netflix_source(**extra):
    source = {
        "source_id": 203,
        "name": "Netflix",
        "type": "sub",
        "region": "US",
        "web_url": "https://www.netflix.com/title/1",
    }
    source.update(extra)
    return source


@pytest.fixture
def make_watchmode_client():
    def _make(fake, ledger=None):
        return WatchmodeClient("test-key", ledger=ledger, transport=httpx.MockTransport(fake))
    return _make
