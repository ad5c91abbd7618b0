# ============================
# 📁 app/core/aggregator.py
# (Anbieter abfragen, normalisieren, speichern bzw. direkt zurückgeben)

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.normalize import normalize
from app.core.providers import ProviderClient, ProviderQuery, RawProviderResponse
from app.core.sources import ALL_PROVIDERS, Provider, parse_source
from app.errors import NotFoundError, ProviderError
from app.repositories.articles import bulk_upsert_articles
from app.schemas import Article as ArticleSchema, Pagination, ProviderPage

logger = logging.getLogger(__name__)


@dataclass
class AggregationSummary:
    stored: dict[str, int] = field(default_factory=dict)
    failed_providers: dict[str, str] = field(default_factory=dict)
    skipped_items: int = 0

    @property
    def total(self) -> int:
        return sum(self.stored.values())


def _fetch_or_error(client: ProviderClient, provider: Provider, query: ProviderQuery):
    """Liefert die Antwort oder den ProviderError, damit ein Anbieter die anderen nicht blockiert."""
    try:
        return client.fetch(provider, query)
    except ProviderError as e:
        return e


def fetch_concurrently(
    client: ProviderClient,
    requests_: list[tuple[Provider, ProviderQuery]],
    max_workers: int | None = None,
) -> list[RawProviderResponse | ProviderError]:
    """
    Parallele Abrufe; das Ergebnis folgt der Reihenfolge von requests_,
    nicht der Reihenfolge, in der die Antworten eintreffen.
    """
    if not requests_:
        return []
    workers = max(1, min(max_workers or client.settings.max_workers, len(requests_)))
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [pool.submit(_fetch_or_error, client, p, q) for p, q in requests_]
        return [f.result() for f in futures]


def _normalize_items(response: RawProviderResponse, summary: AggregationSummary | None = None) -> list[ArticleSchema]:
    """Normalisiert alle Items; kaputte Einträge werden geloggt und übersprungen."""
    provider = response.provider
    articles: list[ArticleSchema] = []
    for idx, item in enumerate(response.items):
        try:
            art = normalize(item, provider)
        except (TypeError, ValueError, AttributeError, OverflowError) as e:
            logger.error(
                "[AGGREGATE] Fehler beim Umwandeln eines Eintrags aus %s (Index %s): %s – Eintrag wird übersprungen.",
                provider.display_name, idx, e
            )
            if summary is not None:
                summary.skipped_items += 1
            continue
        articles.append(art)
    return articles


def aggregate_and_store(db: Session, client: ProviderClient) -> AggregationSummary:
    """
    Fragt alle Anbieter mit Default-Parametern ab und speichert die Artikel (Upsert per URL).
    Ein ausgefallener Anbieter oder ein kaputter Eintrag blockiert die übrigen nicht.
    """
    summary = AggregationSummary()
    results = fetch_concurrently(client, [(p, ProviderQuery()) for p in ALL_PROVIDERS])

    for provider, result in zip(ALL_PROVIDERS, results):
        name = provider.display_name
        if isinstance(result, ProviderError):
            logger.error("[AGGREGATE] %s übersprungen: %s", name, result.error or result.message)
            summary.failed_providers[name] = result.error or result.message
            continue

        articles = _normalize_items(result, summary)
        valid = [a for a in articles if a.url]
        if len(valid) < len(articles):
            logger.info("[AGGREGATE] %d Artikel ohne URL aus %s übersprungen", len(articles) - len(valid), name)
            summary.skipped_items += len(articles) - len(valid)

        try:
            summary.stored[name] = bulk_upsert_articles(db, valid)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("[AGGREGATE] Speichern für %s fehlgeschlagen: %s", name, e)
            summary.failed_providers[name] = f"Storage error: {e.__class__.__name__}"
            continue
        logger.info("[AGGREGATE] Import für %s abgeschlossen: %d Artikel", name, summary.stored[name])

    return summary


def _to_page(response: RawProviderResponse) -> ProviderPage:
    return ProviderPage(
        source=response.provider.value,
        articles=_normalize_items(response),
        pagination=Pagination(
            current_page=response.current_page,
            total_pages=response.total_pages,
            total=response.total,
        ),
    )


def query_provider(client: ProviderClient, source, query: ProviderQuery | None = None) -> ProviderPage:
    """Genau ein Anbieter, read-through. Unbekannte Quelle -> ClientInputError (ohne HTTP)."""
    provider = parse_source(source)
    return _to_page(client.fetch(provider, query or ProviderQuery()))


def query_providers(client: ProviderClient, sources, query: ProviderQuery | None = None) -> list[ProviderPage | ProviderError]:
    """Mehrere Anbieter parallel; Ergebnisliste in Reihenfolge von sources."""
    providers = [parse_source(s) for s in sources]
    query = query or ProviderQuery()
    results = fetch_concurrently(client, [(p, query) for p in providers])
    return [r if isinstance(r, ProviderError) else _to_page(r) for r in results]


def query_provider_by_id(client: ProviderClient, source, article_id: str) -> ArticleSchema:
    provider = parse_source(source)
    item = client.fetch_one(provider, article_id)
    if item is None:
        raise NotFoundError("Article not found.")
    return normalize(item, provider)
