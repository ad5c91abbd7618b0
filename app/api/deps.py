# app/api/deps.py

from functools import lru_cache

from fastapi import HTTPException, Request

from app.config import settings
from app.core.providers import ProviderClient


@lru_cache(maxsize=1)
def get_provider_client() -> ProviderClient:
    # eine Session (Connection-Pool) für alle Requests
    return ProviderClient(settings)


def get_current_user_id(request: Request) -> int:
    """
    Nutzer-ID vom vorgelagerten Auth-Gateway (Header, Default X-User-Id).
    Der Dienst vertraut dieser Identität und prüft nichts weiter.
    """
    raw = request.headers.get(settings.auth_user_header)
    if not raw:
        raise HTTPException(status_code=401, detail="Unauthenticated.")
    try:
        return int(raw)
    except ValueError:
        raise HTTPException(status_code=401, detail="Unauthenticated.")
