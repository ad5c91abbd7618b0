from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models_sql import UserPreferenceORM


def get_preference_by_user_id(db: Session, user_id: int) -> UserPreferenceORM | None:
    stmt = select(UserPreferenceORM).where(UserPreferenceORM.user_id == user_id)
    return db.execute(stmt).scalar_one_or_none()


def upsert_preference(db: Session, user_id: int, prefs) -> UserPreferenceORM:
    """Eine Präferenz-Zeile pro Nutzer; bestehende Werte werden komplett ersetzt."""
    pref = get_preference_by_user_id(db, user_id)
    if pref is None:
        pref = UserPreferenceORM(user_id=user_id)
        db.add(pref)
    pref.news_sources = list(prefs.news_sources or [])
    pref.categories = list(prefs.categories or [])
    pref.authors = list(prefs.authors or [])
    db.commit()
    db.refresh(pref)
    return pref
