from pydantic import BaseModel, Field, field_validator
from datetime import datetime

from app.core.sources import lookup_source


class Article(BaseModel):
    id: int | None = None
    source: str
    title: str = ""
    description: str = ""
    content: str = ""
    author: str = ""
    category: str = "General"
    published_at: datetime | None = None
    url: str = ""
    url_to_image: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True  # SQLAlchemy -> Pydantic

    @field_validator("description", "content", "author", "url_to_image", "title", "url", mode="before")
    @classmethod
    def _none_to_empty(cls, v):
        # NULL-Spalten aus der DB wieder auf "" abbilden
        return "" if v is None else v

    @field_validator("category", mode="before")
    @classmethod
    def _default_category(cls, v):
        return v or "General"


class Pagination(BaseModel):
    current_page: int
    total_pages: int | None = None
    total: int | None = None


class ProviderPage(BaseModel):
    """Ergebnis einer Einzelquellen-Abfrage (read-through, nicht gespeichert)."""
    source: str
    articles: list[Article]
    pagination: Pagination


class PagedArticles(BaseModel):
    data: list[Article]
    total: int
    per_page: int
    current_page: int


class PreferencesIn(BaseModel):
    news_sources: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)
    authors: list[str] = Field(default_factory=list)

    @field_validator("news_sources")
    @classmethod
    def _known_sources(cls, values: list[str]) -> list[str]:
        normalized = []
        for v in values:
            provider = lookup_source(v)
            if provider is None:
                raise ValueError(f"Unknown news source '{v}'")
            if provider.value not in normalized:
                normalized.append(provider.value)
        return normalized

    @field_validator("categories", "authors")
    @classmethod
    def _strip_blank(cls, values: list[str]) -> list[str]:
        return [v.strip() for v in values if v and v.strip()]


class PreferencesOut(BaseModel):
    news_sources: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)
    authors: list[str] = Field(default_factory=list)

    class Config:
        from_attributes = True

    @field_validator("news_sources", "categories", "authors", mode="before")
    @classmethod
    def _none_to_list(cls, v):
        return v or []
