# tests/test_aggregator.py
import pytest
from sqlalchemy.exc import DataError

from app.core import aggregator
from app.core.aggregator import aggregate_and_store, query_provider, query_provider_by_id
from app.core.providers import ProviderQuery
from app.errors import ClientInputError, NotFoundError, ProviderError
from app.repositories.articles import count_articles, get_article_by_url, upsert_article_by_url
from app.schemas import Article as ArticleSchema

from conftest import (
    GUARDIAN_SEARCH_URL, NEWSAPI_URL, NYT_URL,
    FakeResponse, default_routes, guardian_item, newsapi_item, newsapi_payload, nyt_item,
)


def _routes():
    return default_routes(
        newsapi_items=[newsapi_item(i) for i in range(3)],
        guardian_items=[guardian_item(i) for i in range(2)],
        nyt_items=[nyt_item(i) for i in range(4)],
    )


def test_bulk_fetch_stores_all_providers(db, make_client):
    client, session = make_client(_routes())
    summary = aggregate_and_store(db, client)
    assert summary.stored == {"NewsAPI": 3, "Guardian": 2, "New York Times": 4}
    assert summary.total == 9
    assert summary.failed_providers == {}
    assert count_articles(db) == 9
    assert len(session.calls) == 3


def test_bulk_fetch_is_idempotent(db, make_client):
    client, _ = make_client(_routes())
    aggregate_and_store(db, client)
    aggregate_and_store(db, client)
    assert count_articles(db) == 9


def test_refetch_updates_existing_row(db, make_client):
    client, _ = make_client(_routes())
    aggregate_and_store(db, client)

    routes = _routes()
    routes[NEWSAPI_URL] = FakeResponse(payload=newsapi_payload([newsapi_item(0, title="Updated title")]))
    client, _ = make_client(routes)
    aggregate_and_store(db, client)

    db.expire_all()
    row = get_article_by_url(db, "https://news.example.com/0")
    assert row.title == "Updated title"
    assert count_articles(db) == 9


def test_same_url_from_two_providers_is_one_row(db, make_client):
    shared = "https://shared.example.com/story"
    routes = default_routes(
        newsapi_items=[newsapi_item(1, url=shared)],
        nyt_items=[nyt_item(1, web_url=shared)],
    )
    client, _ = make_client(routes)
    aggregate_and_store(db, client)
    assert count_articles(db) == 1
    # NYT wird nach NewsAPI verarbeitet -> last write wins
    assert get_article_by_url(db, shared).source == "New York Times"


def test_failing_provider_does_not_block_others(db, make_client):
    routes = _routes()
    routes[GUARDIAN_SEARCH_URL] = FakeResponse(status_code=500, text="boom")
    client, _ = make_client(routes)
    summary = aggregate_and_store(db, client)
    assert "Guardian" in summary.failed_providers
    assert summary.stored == {"NewsAPI": 3, "New York Times": 4}
    assert count_articles(db) == 7


def test_bad_items_are_skipped(db, make_client):
    routes = _routes()
    routes[NEWSAPI_URL] = FakeResponse(payload=newsapi_payload([
        newsapi_item(1), "garbage", newsapi_item(2, url=None),
    ]))
    client, _ = make_client(routes)
    summary = aggregate_and_store(db, client)
    assert summary.stored["NewsAPI"] == 1
    assert summary.skipped_items == 2
    assert count_articles(db, source="NewsAPI") == 1


def test_query_unknown_source_never_calls_http(make_client):
    client, session = make_client(_routes())
    with pytest.raises(ClientInputError):
        query_provider(client, "bogus", ProviderQuery())
    assert session.calls == []


def test_query_missing_source_is_client_error(make_client):
    client, session = make_client(_routes())
    with pytest.raises(ClientInputError):
        query_provider(client, None)
    assert session.calls == []


def test_query_is_read_through(db, make_client):
    client, _ = make_client(_routes())
    page = query_provider(client, "guardian", ProviderQuery(keyword="x"))
    assert page.source == "guardian"
    assert [a.title for a in page.articles] == ["Guardian story 0", "Guardian story 1"]
    assert count_articles(db) == 0


def test_query_empty_result(make_client):
    client, _ = make_client(default_routes())
    page = query_provider(client, "newyorktimes")
    assert page.articles == []
    assert page.pagination.total == 0


def test_query_surfaces_provider_error(make_client):
    routes = _routes()
    routes[NYT_URL] = FakeResponse(status_code=429, text="rate limited")
    client, _ = make_client(routes)
    with pytest.raises(ProviderError) as exc:
        query_provider(client, "newyorktimes")
    assert "rate limited" in exc.value.error


def test_lookup_by_id(make_client):
    routes = default_routes(nyt_items=[nyt_item(1), nyt_item(2)])
    client, _ = make_client(routes)
    art = query_provider_by_id(client, "nyt", "story-1")
    assert art.source == "New York Times"
    assert art.title == "NYT headline 1"


def test_lookup_by_id_not_found(make_client):
    client, _ = make_client(default_routes())
    with pytest.raises(NotFoundError):
        query_provider_by_id(client, "newsapi", "nothing-here")


def test_refresh_script_prints_summary(engine, make_client, monkeypatch, capsys):
    from sqlalchemy.orm import sessionmaker
    from app.scripts import refresh_articles as script

    client, _ = make_client(_routes())
    monkeypatch.setattr(script, "engine", engine)
    monkeypatch.setattr(script, "SessionLocal", sessionmaker(bind=engine))
    monkeypatch.setattr(script, "ProviderClient", lambda: client)

    script.refresh_articles()

    out = capsys.readouterr().out
    assert "Fertig: 9 Artikel" in out
    assert "Guardian: 2" in out


def test_single_upsert_requires_url(db):
    assert upsert_article_by_url(db, ArticleSchema(source="NewsAPI", title="no url")) is False
    art = ArticleSchema(source="Guardian", title="first", url="https://x.example.com/1")
    assert upsert_article_by_url(db, art) is True
    assert upsert_article_by_url(db, art.model_copy(update={"title": "second"})) is True
    db.expire_all()
    assert count_articles(db) == 1
    assert get_article_by_url(db, "https://x.example.com/1").title == "second"


def test_out_of_range_date_does_not_abort_bulk_fetch(db, make_client):
    routes = _routes()
    routes[NEWSAPI_URL] = FakeResponse(payload=newsapi_payload([
        newsapi_item(1, publishedAt="0001-01-01T00:00:00+05:00"), newsapi_item(2),
    ]))
    client, _ = make_client(routes)
    summary = aggregate_and_store(db, client)
    assert summary.stored == {"NewsAPI": 2, "Guardian": 2, "New York Times": 4}
    assert count_articles(db) == 8
    assert get_article_by_url(db, "https://news.example.com/1").published_at is None


def test_storage_error_for_one_provider_does_not_block_others(db, make_client, monkeypatch):
    real_upsert = aggregator.bulk_upsert_articles

    def failing_for_guardian(session, items):
        if items and items[0].source == "Guardian":
            raise DataError("INSERT INTO articles ...", {}, Exception("value too long for type character varying(1024)"))
        return real_upsert(session, items)

    monkeypatch.setattr(aggregator, "bulk_upsert_articles", failing_for_guardian)
    client, _ = make_client(_routes())
    summary = aggregate_and_store(db, client)

    assert summary.stored == {"NewsAPI": 3, "New York Times": 4}
    assert summary.failed_providers == {"Guardian": "Storage error: DataError"}
    assert count_articles(db) == 7
    assert count_articles(db, source="Guardian") == 0
