import logging

from sqlalchemy.orm import Session
from sqlalchemy import select, func
from datetime import datetime, timezone
from app.models_sql import ArticleORM
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.dialects.postgresql import insert as pg_insert

logger = logging.getLogger(__name__)

# Felder, die bei erneutem Abruf überschrieben werden (last-write-wins)
UPDATE_FIELDS = (
    "source", "title", "description", "content", "author",
    "category", "published_at", "url_to_image",
)


def _utc_aware(dt):
    """Hilfsfunktion: published_at konsistent in UTC speichern."""
    if not isinstance(dt, datetime):
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _row(a) -> dict:
    return {
        "source": getattr(a, "source", "") or "",
        "title": getattr(a, "title", "") or "",
        "description": getattr(a, "description", "") or "",
        "content": getattr(a, "content", "") or "",
        "author": getattr(a, "author", "") or "",
        "category": getattr(a, "category", None) or "General",
        "published_at": _utc_aware(getattr(a, "published_at", None)),
        "url": a.url,
        "url_to_image": getattr(a, "url_to_image", "") or "",
    }


def _upsert_rows(db: Session, rows: list[dict]) -> int:
    dialect = db.get_bind().dialect.name
    if dialect == "sqlite":
        insert = sqlite_insert
    elif dialect == "postgresql":
        insert = pg_insert
    else:
        return _merge_rows(db, rows)

    stmt = insert(ArticleORM.__table__).values(rows)
    stmt = stmt.on_conflict_do_update(
        index_elements=["url"],
        set_={
            **{name: stmt.excluded[name] for name in UPDATE_FIELDS},
            "updated_at": func.now(),
        },
    )
    db.execute(stmt)
    db.commit()
    return len(rows)


def _merge_rows(db: Session, rows: list[dict]) -> int:
    # Fallback für Dialekte ohne ON CONFLICT: read-modify-write über den Unique-Key
    for row in rows:
        existing = db.execute(select(ArticleORM).where(ArticleORM.url == row["url"])).scalar_one_or_none()
        if existing is None:
            db.add(ArticleORM(**row))
        else:
            for name in UPDATE_FIELDS:
                setattr(existing, name, row[name])
    db.commit()
    return len(rows)


def upsert_article_by_url(db: Session, article) -> bool:
    """Einzelnen Artikel anlegen oder aktualisieren. False, wenn keine URL vorhanden ist."""
    if not getattr(article, "url", None):
        return False
    _upsert_rows(db, [_row(article)])
    return True


def bulk_upsert_articles(db: Session, items) -> int:
    """
    Persistiert normalisierte Artikel, Schlüssel ist die URL.
    Bei Konflikt (gleiche URL) werden alle übrigen Felder überschrieben.
    Liefert die Anzahl geschriebener (eingefügter oder aktualisierter) Zeilen.
    """
    # URL-Entduplizierung innerhalb des Batches, der letzte gewinnt
    by_url = {}
    for a in items:
        if not getattr(a, "url", None):
            continue
        by_url[a.url] = a

    rows = [_row(a) for a in by_url.values()]
    if not rows:
        return 0

    count = _upsert_rows(db, rows)
    logger.info("[STORE] %d Artikel geschrieben", count)
    return count


def count_articles(db: Session, source: str | None = None) -> int:
    stmt = select(func.count()).select_from(ArticleORM)
    if source:
        stmt = stmt.where(ArticleORM.source == source)
    return db.execute(stmt).scalar_one()


def get_article_by_url(db: Session, url: str) -> ArticleORM | None:
    return db.execute(select(ArticleORM).where(ArticleORM.url == url)).scalar_one_or_none()


def get_articles(db: Session, source: str | None = None, limit: int | None = None, offset: int = 0):
    q = db.query(ArticleORM)
    if source:
        q = q.filter(ArticleORM.source == source)
    q = q.order_by(ArticleORM.published_at.desc(), ArticleORM.id.desc())
    if offset: q = q.offset(offset)
    if limit:  q = q.limit(limit)
    return q.all()
