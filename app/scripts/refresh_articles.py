# app/scripts/refresh_articles.py

from app.core.aggregator import aggregate_and_store
from app.core.providers import ProviderClient
from app.database import Base, SessionLocal, engine
from app import models_sql  # noqa: F401


def refresh_articles() -> None:
    """
    Einmaliger Abruf aller Anbieter mit Speicherung (wie /articles/fetch),
    z.B. per Cronjob ohne laufenden API-Server.
    """
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        summary = aggregate_and_store(db, ProviderClient())

        print(f"Fertig: {summary.total} Artikel gespeichert/aktualisiert.")
        for source, count in summary.stored.items():
            print(f"  {source}: {count}")
        for source, error in summary.failed_providers.items():
            print(f"  {source}: FEHLER {error}")
        if summary.skipped_items:
            print(f"  {summary.skipped_items} Einträge übersprungen")

    finally:
        db.close()


if __name__ == "__main__":
    refresh_articles()
