# ============================
# 📁 app/core/providers.py
# (HTTP-Adapter für NewsAPI, Guardian und New York Times)

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from urllib.parse import quote

import requests
from dateutil import parser as date_parse
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from app.config import Settings, settings as default_settings
from app.core.clean_utils import redact_secrets
from app.core.sources import Provider
from app.errors import ClientInputError, ProviderError

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "User-Agent": "NewsAggregator/1.0 (+https://example.com)",
    "Accept": "application/json",
}

SUCCESS = "success"
CLIENT_ERROR = "client_error"
SERVER_ERROR = "server_error"


def status_class(status_code: int) -> str:
    if 200 <= status_code < 300:
        return SUCCESS
    if 400 <= status_code < 500:
        return CLIENT_ERROR
    return SERVER_ERROR


@dataclass
class ProviderQuery:
    """Generische Anfrage, die jeder Adapter in sein eigenes Vokabular übersetzt."""
    keyword: str | None = None
    category: str | None = None
    author: str | None = None
    date: str | None = None
    page: int | None = None        # 1-basiert
    page_size: int | None = None


@dataclass
class RawProviderResponse:
    provider: Provider
    status_code: int
    payload: dict
    items: list[dict] = field(default_factory=list)
    current_page: int = 1
    total: int | None = None
    total_pages: int | None = None

    @property
    def status_class(self) -> str:
        return status_class(self.status_code)


def _blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _parse_query_date(value: str):
    try:
        return date_parse.parse(value).date()
    except (ValueError, OverflowError) as e:
        raise ClientInputError("Invalid date parameter.", f"Could not parse date '{value}': {e}")


def _pages(total: int | None, page_size: int) -> int | None:
    if total is None or page_size <= 0:
        return None
    return int(math.ceil(total / page_size))


def _as_int(value) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class ProviderAdapter(ABC):
    """Übersetzt ProviderQuery -> Query-String und zieht Items aus dem Anbieter-Envelope."""

    provider: Provider
    search_url: str
    api_key_param: str

    def __init__(self, api_key: str = ""):
        self.api_key = api_key

    def auth_params(self) -> dict:
        return {self.api_key_param: self.api_key}

    @abstractmethod
    def build_params(self, query: ProviderQuery) -> dict:
        ...

    @abstractmethod
    def extract(self, payload: dict, query: ProviderQuery) -> RawProviderResponse:
        """Liefert items + Pagination; wirft KeyError/TypeError bei unerwarteter Form."""

    def lookup_request(self, article_id: str) -> tuple[str, dict]:
        # Standard: Suche mit der ID als Suchbegriff, erster Treffer gewinnt
        return self.search_url, {"q": article_id, **self.auth_params()}

    def extract_one(self, payload: dict) -> dict | None:
        items = self.extract(payload, ProviderQuery()).items
        return items[0] if items else None

    def lookup_not_found(self, status_code: int) -> bool:
        return False


class NewsApiAdapter(ProviderAdapter):
    provider = Provider.NEWSAPI
    search_url = "https://newsapi.org/v2/everything"
    api_key_param = "apiKey"
    default_query = "technology"
    default_page_size = 100

    def build_params(self, query: ProviderQuery) -> dict:
        # q ist bei NewsAPI Pflicht -> Kategorie oder "technology" als Fallback
        q = query.keyword if not _blank(query.keyword) else query.category
        params = {
            "q": q if not _blank(q) else self.default_query,
            "page": query.page or 1,
            "pageSize": query.page_size or self.default_page_size,
        }
        if not _blank(query.author):
            params["authors"] = query.author
        if not _blank(query.date):
            params["from"] = _parse_query_date(query.date).isoformat()
        params.update(self.auth_params())
        return params

    def extract(self, payload: dict, query: ProviderQuery) -> RawProviderResponse:
        items = payload["articles"]
        total = _as_int(payload.get("totalResults"))
        return RawProviderResponse(
            provider=self.provider,
            status_code=200,
            payload=payload,
            items=list(items or []),
            current_page=query.page or 1,
            total=total,
            total_pages=_pages(total, query.page_size or self.default_page_size),
        )


class GuardianAdapter(ProviderAdapter):
    provider = Provider.GUARDIAN
    search_url = "https://content.guardianapis.com/search"
    base_url = "https://content.guardianapis.com"
    api_key_param = "api-key"
    default_page_size = 10
    show_fields = "trailText,byline,thumbnail,bodyText"

    def build_params(self, query: ProviderQuery) -> dict:
        params = {
            "page": query.page or 1,
            "page-size": query.page_size or self.default_page_size,
            "show-fields": self.show_fields,
        }
        if not _blank(query.keyword):
            params["q"] = query.keyword
        if not _blank(query.category):
            params["section"] = query.category
        if not _blank(query.date):
            params["from-date"] = _parse_query_date(query.date).isoformat()
        params.update(self.auth_params())
        return params

    def extract(self, payload: dict, query: ProviderQuery) -> RawProviderResponse:
        # Guardian verpackt alles in "response"
        body = payload["response"]
        total = _as_int(body.get("total"))
        return RawProviderResponse(
            provider=self.provider,
            status_code=200,
            payload=payload,
            items=list(body.get("results") or []),
            current_page=_as_int(body.get("currentPage")) or query.page or 1,
            total=total,
            total_pages=_as_int(body.get("pages")),
        )

    def lookup_request(self, article_id: str) -> tuple[str, dict]:
        # Guardian kann direkt per ID abrufen (z.B. "world/2024/nov/20/...")
        path = quote(article_id.strip("/"), safe="/")
        return f"{self.base_url}/{path}", {"show-fields": self.show_fields, **self.auth_params()}

    def extract_one(self, payload: dict) -> dict | None:
        return payload["response"].get("content") or None

    def lookup_not_found(self, status_code: int) -> bool:
        return status_code == 404


class NyTimesAdapter(ProviderAdapter):
    provider = Provider.NYTIMES
    search_url = "https://api.nytimes.com/svc/search/v2/articlesearch.json"
    api_key_param = "api-key"
    page_size = 10  # fest vorgegeben durch die API

    def build_params(self, query: ProviderQuery) -> dict:
        params = {}
        if not _blank(query.keyword):
            params["q"] = query.keyword
        if not _blank(query.category):
            params["fq"] = f'news_desk:("{query.category}")'
        if not _blank(query.date):
            params["begin_date"] = _parse_query_date(query.date).strftime("%Y%m%d")
        # NYT zählt Seiten ab 0
        if query.page and query.page > 1:
            params["page"] = query.page - 1
        params.update(self.auth_params())
        return params

    def extract(self, payload: dict, query: ProviderQuery) -> RawProviderResponse:
        body = payload["response"]
        meta = body.get("meta") or {}
        total = _as_int(meta.get("hits"))
        return RawProviderResponse(
            provider=self.provider,
            status_code=200,
            payload=payload,
            items=list(body.get("docs") or []),
            current_page=query.page or 1,
            total=total,
            total_pages=_pages(total, self.page_size),
        )


ADAPTERS: dict[Provider, type[ProviderAdapter]] = {
    Provider.NEWSAPI: NewsApiAdapter,
    Provider.GUARDIAN: GuardianAdapter,
    Provider.NYTIMES: NyTimesAdapter,
}


def build_session(retries: int = 2) -> requests.Session:
    session = requests.Session()
    retry = Retry(
        total=retries,
        backoff_factor=0.6,
        status_forcelist=[429, 500, 502, 503, 504],
        allowed_methods=["GET"],
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    session.headers.update(DEFAULT_HEADERS)
    return session


class ProviderClient:
    """
    Ein GET pro Anbieter-Aufruf, mit Timeout und Retry.
    Fehler werden als ProviderError (network / http_status / malformed_json) gemeldet.
    """

    def __init__(self, settings: Settings | None = None, session: requests.Session | None = None):
        self.settings = settings or default_settings
        self.timeout = self.settings.http_timeout
        self.session = session if session is not None else build_session(self.settings.http_retries)
        keys = {
            Provider.NEWSAPI: self.settings.newsapi_api_key,
            Provider.GUARDIAN: self.settings.guardian_api_key,
            Provider.NYTIMES: self.settings.nytimes_api_key,
        }
        self.adapters: dict[Provider, ProviderAdapter] = {
            p: cls(api_key=keys[p]) for p, cls in ADAPTERS.items()
        }

    def _secrets(self) -> list[str]:
        return [a.api_key for a in self.adapters.values() if a.api_key]

    def _get(self, provider: Provider, url: str, params: dict, *, allow_not_found: bool = False):
        """GET + JSON-Dekodierung. Liefert (status_code, payload); payload None bei erlaubtem 404."""
        adapter = self.adapters[provider]
        try:
            resp = self.session.get(url, params=params, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            logger.error("[PROVIDER] Timeout bei %s (%s)", provider.display_name, url)
            raise ProviderError(
                "Failed to fetch articles",
                provider=provider.value,
                reason=ProviderError.NETWORK,
                body=redact_secrets(f"Timeout after {self.timeout}s: {e}", self._secrets()),
            )
        except requests.RequestException as e:
            logger.error("[PROVIDER] HTTP-Fehler bei %s (%s): %s",
                         provider.display_name, url, redact_secrets(str(e), self._secrets()))
            raise ProviderError(
                "Failed to fetch articles",
                provider=provider.value,
                reason=ProviderError.NETWORK,
                body=redact_secrets(str(e), self._secrets()),
            )

        if allow_not_found and adapter.lookup_not_found(resp.status_code):
            return resp.status_code, None

        if status_class(resp.status_code) != SUCCESS:
            body = redact_secrets((resp.text or "")[:2000], self._secrets())
            logger.warning("[PROVIDER] %s antwortet mit HTTP %s: %s",
                           provider.display_name, resp.status_code, body[:200])
            raise ProviderError(
                "Failed to fetch articles",
                provider=provider.value,
                reason=ProviderError.HTTP_STATUS,
                upstream_status=resp.status_code,
                body=body,
            )

        try:
            payload = resp.json()
        except ValueError as e:
            logger.error("[PROVIDER] Ungültiges JSON von %s: %s", provider.display_name, e)
            raise ProviderError(
                "Failed to fetch articles",
                provider=provider.value,
                reason=ProviderError.MALFORMED_JSON,
                body=f"Invalid JSON: {e}",
            )
        if not isinstance(payload, dict):
            raise ProviderError(
                "Failed to fetch articles",
                provider=provider.value,
                reason=ProviderError.MALFORMED_JSON,
                body="Expected a JSON object",
            )
        return resp.status_code, payload

    def _malformed(self, provider: Provider, e: Exception) -> ProviderError:
        logger.error("[PROVIDER] Unerwartete Antwortstruktur von %s: %r", provider.display_name, e)
        return ProviderError(
            "Failed to fetch articles",
            provider=provider.value,
            reason=ProviderError.MALFORMED_JSON,
            body=f"Unexpected response shape: missing {e}",
        )

    def fetch(self, provider: Provider, query: ProviderQuery | None = None) -> RawProviderResponse:
        query = query or ProviderQuery()
        adapter = self.adapters[provider]
        params = adapter.build_params(query)
        logger.info("[PROVIDER] Abruf %s (page=%s)", provider.display_name, query.page or 1)

        status, payload = self._get(provider, adapter.search_url, params)
        try:
            result = adapter.extract(payload, query)
        except (KeyError, TypeError, AttributeError) as e:
            raise self._malformed(provider, e)
        result.status_code = status
        logger.info("[PROVIDER] %s lieferte %d Einträge", provider.display_name, len(result.items))
        return result

    def fetch_one(self, provider: Provider, article_id: str) -> dict | None:
        """Einzelartikel; None, wenn der Anbieter nichts findet."""
        adapter = self.adapters[provider]
        url, params = adapter.lookup_request(article_id)
        _, payload = self._get(provider, url, params, allow_not_found=True)
        if payload is None:
            return None
        try:
            return adapter.extract_one(payload)
        except (KeyError, TypeError, AttributeError) as e:
            raise self._malformed(provider, e)
