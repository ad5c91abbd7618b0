# ============================
# 📁 app/api/routes.py
# (Artikel-Endpunkte: Einzelquelle, Einzelartikel, Bulk-Abruf, gespeicherte Artikel)

from fastapi import APIRouter, Query, Depends
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from app.api.deps import get_provider_client, get_current_user_id
from app.core.aggregator import aggregate_and_store, query_provider, query_provider_by_id
from app.core.providers import ProviderClient, ProviderQuery
from app.core.sources import lookup_source
from app.database import get_db
from app.repositories.articles import count_articles, get_articles
from app.schemas import Article as ArticleSchema, PagedArticles


router = APIRouter()

MAX_PAGE_SIZE = 100


# -----------------------------
# Anbieter direkt abfragen (read-through, nichts wird gespeichert)
# -----------------------------
@router.get("/articles")
def list_articles(
    source: str | None = Query(None),
    keyword: str | None = Query(None),
    category: str | None = Query(None),
    author: str | None = Query(None),
    date: str | None = Query(None),
    page: int | None = Query(None, ge=1),
    pagesize: int | None = Query(None, ge=1, le=MAX_PAGE_SIZE),
    client: ProviderClient = Depends(get_provider_client),
):
    query = ProviderQuery(
        keyword=keyword, category=category, author=author,
        date=date, page=page, page_size=pagesize,
    )
    result = query_provider(client, source, query)
    return {
        "message": "Articles fetched successfully",
        "source": result.source,
        "data": jsonable_encoder(result.articles),
        "pagination": result.pagination.model_dump(),
    }


# -----------------------------
# Alle Anbieter abrufen und speichern (Upsert per URL)
# -----------------------------
@router.get("/articles/fetch")
def fetch_all_articles(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    client: ProviderClient = Depends(get_provider_client),
):
    summary = aggregate_and_store(db, client)
    return {
        "status": "success",
        "message": "Articles fetched and stored successfully.",
        "articles_fetched": summary.total,
        "providers": summary.stored,
        "failed_providers": summary.failed_providers,
        "skipped_items": summary.skipped_items,
    }


# -----------------------------
# Gespeicherte Artikel (aus der DB)
# -----------------------------
@router.get("/articles/stored", response_model=PagedArticles)
def stored_articles(
    source: str | None = Query(None),
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
):
    # ?source=guardian -> "Guardian" wie in der Spalte gespeichert
    provider = lookup_source(source) if source else None
    source_name = provider.display_name if provider else source
    items = get_articles(db, source=source_name, limit=per_page, offset=(page - 1) * per_page)
    return PagedArticles(
        data=[ArticleSchema.model_validate(a) for a in items],
        total=count_articles(db, source=source_name),
        per_page=per_page,
        current_page=page,
    )


# -----------------------------
# Einzelartikel (Guardian direkt, NewsAPI/NYT per Suche)
# -----------------------------
@router.get("/articles/{article_id:path}")
def show_article(
    article_id: str,
    source: str | None = Query(None),
    client: ProviderClient = Depends(get_provider_client),
):
    article = query_provider_by_id(client, source, article_id)
    return jsonable_encoder(article)
