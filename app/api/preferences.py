# app/api/preferences.py
# (Präferenzen speichern/lesen + personalisierter Feed, nur für angemeldete Nutzer)

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_current_user_id, get_provider_client
from app.core.feed import DEFAULT_PAGE, DEFAULT_PER_PAGE, build_feed
from app.core.providers import ProviderClient
from app.database import get_db
from app.errors import NotFoundError
from app.repositories.preferences import get_preference_by_user_id, upsert_preference
from app.schemas import PagedArticles, PreferencesIn, PreferencesOut

router = APIRouter(prefix="/user")


@router.post("/preferences")
def store_preferences(
    prefs: PreferencesIn,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    pref = upsert_preference(db, user_id, prefs)
    return {
        "message": "Preferences saved successfully",
        "data": {"user_id": pref.user_id, **PreferencesOut.model_validate(pref).model_dump()},
    }


@router.get("/preferences")
def show_preferences(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    pref = get_preference_by_user_id(db, user_id)
    if pref is None:
        raise NotFoundError("No preferences found")
    return {"data": PreferencesOut.model_validate(pref).model_dump()}


@router.get("/personalized-feed", response_model=PagedArticles)
def personalized_feed(
    page: int = Query(DEFAULT_PAGE, ge=1),
    per_page: int = Query(DEFAULT_PER_PAGE, ge=1, le=100),
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    client: ProviderClient = Depends(get_provider_client),
):
    return build_feed(db, client, user_id, page=page, per_page=per_page)
