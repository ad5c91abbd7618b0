# app/errors.py
"""
Fehler-Taxonomie der Aggregations-Pipeline.

Jede Klasse trägt ihren HTTP-Status, damit die Exception-Handler in
app/main.py sie ohne weitere Fallunterscheidung in {message, error}
übersetzen können.
"""
from __future__ import annotations


class AggregatorError(Exception):
    status_code: int = 500

    def __init__(self, message: str, error: str | None = None):
        super().__init__(message)
        self.message = message
        self.error = error

    def to_payload(self) -> dict:
        payload = {"message": self.message}
        if self.error:
            payload["error"] = self.error
        return payload


class ClientInputError(AggregatorError):
    """Unbekannte/fehlende Quelle oder ungültige Präferenzen (400)."""

    status_code = 400


class NotFoundError(AggregatorError):
    status_code = 404


class ProviderError(AggregatorError):
    """
    Fehler beim Abruf eines externen Anbieters.

    reason ist einer von NETWORK, HTTP_STATUS, MALFORMED_JSON.
    """

    NETWORK = "network"
    HTTP_STATUS = "http_status"
    MALFORMED_JSON = "malformed_json"

    status_code = 500

    def __init__(
        self,
        message: str,
        *,
        provider: str,
        reason: str,
        upstream_status: int | None = None,
        body: str | None = None,
    ):
        detail = body if body else None
        if upstream_status is not None:
            detail = f"HTTP {upstream_status}: {body or ''}".strip()
        super().__init__(message, detail)
        self.provider = provider
        self.reason = reason
        self.upstream_status = upstream_status
        self.body = body


class UnsupportedSourceError(AggregatorError):
    """Vertragsverletzung: Normalizer mit unbekanntem Anbieter aufgerufen."""

    status_code = 500
