# tests/conftest.py
import os

# vor dem Import von app.* setzen: keine echte DB-Datei, kein Auto-Refresh
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["NEWS_REFRESH_SECONDS"] = "0"

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.config import Settings
from app.core.providers import GuardianAdapter, NewsApiAdapter, NyTimesAdapter, ProviderClient
from app.database import Base
from app import models_sql  # noqa: F401

NEWSAPI_URL = NewsApiAdapter.search_url
GUARDIAN_SEARCH_URL = GuardianAdapter.search_url
GUARDIAN_BASE_URL = GuardianAdapter.base_url + "/"
NYT_URL = NyTimesAdapter.search_url

TEST_SETTINGS = Settings(
    database_url="sqlite://",
    newsapi_api_key="newsapi-secret",
    guardian_api_key="guardian-secret",
    nytimes_api_key="nyt-secret",
    http_timeout=5,
    http_retries=0,
    max_workers=3,
)


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=None, json_error=False):
        self.status_code = status_code
        self._payload = payload
        self._json_error = json_error
        self.text = text if text is not None else ("" if payload is None else str(payload))

    def json(self):
        if self._json_error:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._payload


class FakeSession:
    """
    Ersetzt requests.Session: Antworten per URL-Präfix, alle Aufrufe werden mitgeschrieben.
    Ein Routen-Wert kann eine Response, eine Exception oder ein Callable(url, params) sein.
    """

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, dict(params or {})))
        # längstes Präfix zuerst (Guardian-Suche vor Guardian-Direktabruf)
        for prefix in sorted(self.routes, key=len, reverse=True):
            if url.startswith(prefix):
                resp = self.routes[prefix]
                if isinstance(resp, Exception):
                    raise resp
                if callable(resp):
                    return resp(url, params)
                return resp
        raise AssertionError(f"unexpected GET {url}")

    def params_for(self, prefix):
        return [params for url, params in self.calls if url.startswith(prefix)]


def newsapi_item(i, **extra):
    item = {
        "source": {"id": None, "name": "Example"},
        "author": f"Author {i}",
        "title": f"NewsAPI story {i}",
        "description": f"Description {i}",
        "url": f"https://news.example.com/{i}",
        "urlToImage": f"https://news.example.com/{i}.jpg",
        "publishedAt": "2024-11-24T10:00:00Z",
        "content": f"Content {i}",
    }
    item.update(extra)
    return item


def newsapi_payload(items):
    return {"status": "ok", "totalResults": len(items), "articles": items}


def guardian_item(i, **extra):
    item = {
        "id": f"world/2024/nov/24/story-{i}",
        "sectionName": "World news",
        "webPublicationDate": "2024-11-24T08:30:00Z",
        "webTitle": f"Guardian story {i}",
        "webUrl": f"https://www.theguardian.com/world/2024/nov/24/story-{i}",
        "pillarName": "News",
    }
    item.update(extra)
    return item


def guardian_payload(items):
    return {"response": {
        "status": "ok", "total": len(items), "currentPage": 1, "pages": 1, "results": items,
    }}


def nyt_item(i, **extra):
    item = {
        "abstract": f"NYT abstract {i}",
        "web_url": f"https://www.nytimes.com/2024/11/24/story-{i}.html",
        "snippet": f"Snippet {i}",
        "lead_paragraph": f"Lead {i}",
        "print_section": "A",
        "multimedia": [{"url": f"images/2024/11/24/{i}.jpg"}],
        "headline": {"main": f"NYT headline {i}"},
        "pub_date": "2024-11-24T05:00:00+0000",
        "byline": {"original": f"By Writer {i}"},
    }
    item.update(extra)
    return item


def nyt_payload(items, hits=None):
    return {"status": "OK", "response": {
        "docs": items, "meta": {"hits": len(items) if hits is None else hits, "offset": 0},
    }}


def default_routes(newsapi_items=None, guardian_items=None, nyt_items=None):
    return {
        NEWSAPI_URL: FakeResponse(payload=newsapi_payload(newsapi_items or [])),
        GUARDIAN_SEARCH_URL: FakeResponse(payload=guardian_payload(guardian_items or [])),
        NYT_URL: FakeResponse(payload=nyt_payload(nyt_items or [])),
    }


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def db(engine):
    Session = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = Session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_client():
    def _make(routes=None):
        session = FakeSession(routes)
        return ProviderClient(TEST_SETTINGS, session=session), session
    return _make
