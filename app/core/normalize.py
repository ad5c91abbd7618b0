# app/core/normalize.py
"""
Abbildung der Anbieter-Rohdaten auf das kanonische Article-Schema.

Eine Funktion pro Anbieter, ausgewählt über NORMALIZERS[Provider].
Alles hier ist rein (kein I/O); fehlende Felder bekommen die Defaults
aus app/schemas.py ("" bzw. "General" bzw. None beim Datum).
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable
from urllib.parse import urljoin

from dateutil import parser as date_parse

from app.core.clean_utils import clean_html
from app.core.sources import Provider, lookup_source
from app.errors import UnsupportedSourceError
from app.schemas import Article as ArticleSchema

DEFAULT_CATEGORY = "General"
NYT_BASE_URL = "https://www.nytimes.com/"


def _parse_utc(dt_str) -> datetime | None:
    """Versucht, ein Datumsstring tz-aware zu parsen. Sonst None (nie 'jetzt')."""
    if not dt_str or not isinstance(dt_str, str):
        return None
    try:
        dt = date_parse.parse(dt_str)
        # Wenn ohne tzinfo -> als UTC interpretieren
        return dt.astimezone(timezone.utc) if dt.tzinfo else dt.replace(tzinfo=timezone.utc)
    except (ValueError, OverflowError):
        return None


def _text(value) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _first(*values) -> str:
    for v in values:
        if isinstance(v, str) and v.strip():
            return v
    return ""


def _nested(data: dict, *keys):
    cur = data
    for k in keys:
        if not isinstance(cur, dict):
            return None
        cur = cur.get(k)
    return cur


def normalize_newsapi(data: dict) -> ArticleSchema:
    return ArticleSchema(
        source=Provider.NEWSAPI.display_name,
        title=_text(data.get("title")),
        description=_text(data.get("description")),
        content=_text(data.get("content")),
        author=_text(data.get("author")),
        category=_first(data.get("category")) or DEFAULT_CATEGORY,
        published_at=_parse_utc(data.get("publishedAt")),
        url=_text(data.get("url")),
        url_to_image=_text(data.get("urlToImage")),
    )


def normalize_guardian(data: dict) -> ArticleSchema:
    fields = data.get("fields") or {}
    return ArticleSchema(
        source=Provider.GUARDIAN.display_name,
        title=_text(data.get("webTitle")),
        description=clean_html(fields.get("trailText")),
        content=_text(fields.get("bodyText")),
        author=_text(fields.get("byline")),
        category=_first(data.get("pillarName"), data.get("sectionName")) or DEFAULT_CATEGORY,
        published_at=_parse_utc(data.get("webPublicationDate")),
        url=_text(data.get("webUrl")),
        url_to_image=_text(fields.get("thumbnail")),
    )


def _nyt_image(data: dict) -> str:
    media = data.get("multimedia")
    url = None
    if isinstance(media, list):
        # erstes Medien-Element gilt als Bild
        if media and isinstance(media[0], dict):
            url = media[0].get("url")
    elif isinstance(media, dict):
        url = _nested(media, "default", "url")
    if not url or not isinstance(url, str):
        return ""
    # ältere Antworten liefern relative Pfade ("images/2024/...")
    return urljoin(NYT_BASE_URL, url)


def normalize_nytimes(data: dict) -> ArticleSchema:
    return ArticleSchema(
        source=Provider.NYTIMES.display_name,
        title=_first(_nested(data, "headline", "main"), data.get("abstract")),
        description=_text(data.get("snippet")),
        content=_text(data.get("lead_paragraph")),
        author=_first(_nested(data, "byline", "original")),
        category=_first(data.get("print_section"), data.get("section_name")) or DEFAULT_CATEGORY,
        published_at=_parse_utc(data.get("pub_date")),
        url=_text(data.get("web_url")),
        url_to_image=_nyt_image(data),
    )


NORMALIZERS: dict[Provider, Callable[[dict], ArticleSchema]] = {
    Provider.NEWSAPI: normalize_newsapi,
    Provider.GUARDIAN: normalize_guardian,
    Provider.NYTIMES: normalize_nytimes,
}


def normalize(raw_item: dict, provider) -> ArticleSchema:
    """Rohdaten eines Anbieters -> Article. Unbekannter Anbieter ist ein Programmierfehler."""
    resolved = lookup_source(provider)
    if resolved is None or resolved not in NORMALIZERS:
        raise UnsupportedSourceError(f"Unsupported API source: {provider}")
    if not isinstance(raw_item, dict):
        raise TypeError(f"Expected a JSON object for {resolved.display_name}, got {type(raw_item).__name__}")
    return NORMALIZERS[resolved](raw_item)
