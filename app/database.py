from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from app.config import settings

DATABASE_URL = settings.database_url

class Base(DeclarativeBase):
    pass

# Für SQLite + FastAPI Threading:
connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(
    DATABASE_URL,
    connect_args=connect_args,
    pool_pre_ping=True,
)

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)

# FastAPI-Dependency:
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
