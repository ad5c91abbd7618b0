# app/core/feed.py
"""
Personalisierter Feed aus den gespeicherten Präferenzen eines Nutzers.

Ablauf:
- news_sources muss eine nicht-leere Liste bekannter Quellen sein
- pro Quelle eine Einzelquellen-Abfrage (parallel), Kategorien/Autoren
  kommagetrennt als Suchbegriff bzw. Autorenfilter
- Ergebnisse in der gespeicherten Reihenfolge aneinanderhängen,
  KEINE Entduplizierung über Quellen hinweg
- Seite [(page-1)*per_page, page*per_page) ausschneiden
"""
from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from app.core.aggregator import query_providers
from app.core.providers import ProviderClient, ProviderQuery
from app.core.sources import Provider, lookup_source
from app.errors import ClientInputError, ProviderError
from app.repositories.preferences import get_preference_by_user_id
from app.schemas import Article as ArticleSchema, PagedArticles

logger = logging.getLogger(__name__)

DEFAULT_PER_PAGE = 10
DEFAULT_PAGE = 1
MULTI_VALUE_SEPARATOR = ", "


def resolve_sources(raw) -> list[Provider]:
    if not raw or not isinstance(raw, list):
        raise ClientInputError("Invalid or missing news sources")
    providers = []
    for value in raw:
        provider = lookup_source(value)
        if provider is None:
            raise ClientInputError("Invalid or missing news sources", f"Unknown news source '{value}'")
        # Alias und kanonischer Name zählen als eine Quelle
        if provider not in providers:
            providers.append(provider)
    return providers


def _join(values) -> str | None:
    if not values or not isinstance(values, list):
        return None
    cleaned = [str(v).strip() for v in values if v is not None and str(v).strip()]
    return MULTI_VALUE_SEPARATOR.join(cleaned) or None


def paginate(items: list, page: int, per_page: int) -> list:
    start = (page - 1) * per_page
    return items[start:start + per_page]


def build_feed(
    db: Session,
    client: ProviderClient,
    user_id: int,
    page: int = DEFAULT_PAGE,
    per_page: int = DEFAULT_PER_PAGE,
) -> PagedArticles:
    pref = get_preference_by_user_id(db, user_id)
    if pref is None:
        raise ClientInputError("User preferences not set")

    providers = resolve_sources(pref.news_sources)
    query = ProviderQuery(keyword=_join(pref.categories), author=_join(pref.authors))

    articles: list[ArticleSchema] = []
    for provider, result in zip(providers, query_providers(client, providers, query)):
        if isinstance(result, ProviderError):
            # Anbieter fällt aus -> Feed trotzdem aus den übrigen Quellen bauen
            logger.warning("[FEED] %s für Nutzer %s übersprungen: %s",
                           provider.display_name, user_id, result.error or result.message)
            continue
        articles.extend(result.articles)

    return PagedArticles(
        data=paginate(articles, page, per_page),
        total=len(articles),
        per_page=per_page,
        current_page=page,
    )
