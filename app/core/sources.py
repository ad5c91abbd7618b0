# app/core/sources.py
"""
Geschlossene Aufzählung der angebundenen Anbieter.

Alles, was von außen als Freitext kommt (Query-Parameter ?source=...,
gespeicherte news_sources einer Präferenz), läuft über parse_source().
Tippfehler landen damit als ClientInputError an der Grenze und nicht erst
in einem Adapter.
"""
from __future__ import annotations

from enum import Enum

from app.errors import ClientInputError


class Provider(str, Enum):
    NEWSAPI = "newsapi"
    GUARDIAN = "guardian"
    NYTIMES = "newyorktimes"

    @property
    def display_name(self) -> str:
        return DISPLAY_NAMES[self]


# Anzeigename, wie er in Article.source gespeichert wird
DISPLAY_NAMES: dict[Provider, str] = {
    Provider.NEWSAPI: "NewsAPI",
    Provider.GUARDIAN: "Guardian",
    Provider.NYTIMES: "New York Times",
}

# Zusätzliche Schreibweisen, die ältere Clients schicken ("nyt" bei /articles/{id})
ALIASES: dict[str, Provider] = {
    "nyt": Provider.NYTIMES,
    "nytimes": Provider.NYTIMES,
}

# Reihenfolge für den Bulk-Abruf
ALL_PROVIDERS: tuple[Provider, ...] = (Provider.NEWSAPI, Provider.GUARDIAN, Provider.NYTIMES)


def lookup_source(value) -> Provider | None:
    """Liefert den Provider zu einem Diskriminator oder None."""
    if isinstance(value, Provider):
        return value
    if not isinstance(value, str):
        return None
    key = value.strip().lower()
    if not key:
        return None
    try:
        return Provider(key)
    except ValueError:
        return ALIASES.get(key)


def parse_source(value: str | None) -> Provider:
    """Wie lookup_source(), wirft aber ClientInputError bei fehlender/unbekannter Quelle."""
    if value is None or not str(value).strip():
        raise ClientInputError("Source parameter is required.")
    provider = lookup_source(value)
    if provider is None:
        valid = ", ".join(p.value for p in Provider)
        raise ClientInputError("Invalid source parameter.", f"Unknown source '{value}'. Valid values: {valid}")
    return provider
