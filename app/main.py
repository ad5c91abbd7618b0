# ============================
# 📁 app/main.py

import logging

from fastapi import FastAPI, Request
from fastapi.responses import ORJSONResponse
from starlette.middleware.gzip import GZipMiddleware
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder

from fastapi_utils.tasks import repeat_every

# API-Router
from app.api.routes import router as api_router
from app.api.preferences import router as preferences_router
from app.api.deps import get_provider_client

from app.config import settings
from app.errors import AggregatorError

# Aggregation (alle Anbieter abrufen + Upsert)
from app.core.aggregator import aggregate_and_store

# ORM / DB
from app.database import Base, engine, SessionLocal
from app import models_sql  # noqa: F401  sicherstellen, dass die Models registriert sind

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


app = FastAPI(title="News Aggregator API", default_response_class=ORJSONResponse)

# --- GZip (Antworten ab 1 KB komprimieren) ---
app.add_middleware(GZipMiddleware, minimum_size=1024)

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Fehler immer als {message, error}, nie als Stacktrace ---
@app.exception_handler(AggregatorError)
async def aggregator_error_handler(request: Request, exc: AggregatorError):
    if exc.status_code >= 500:
        logger.error("[API] %s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.error or exc.message)
    return ORJSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return ORJSONResponse(status_code=exc.status_code, content={"message": str(exc.detail)})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return ORJSONResponse(
        status_code=422,
        content={"message": "The given data was invalid.", "errors": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("[API] Unerwarteter Fehler bei %s %s", request.method, request.url.path)
    return ORJSONResponse(
        status_code=500,
        content={"message": "An error occurred while processing the request", "error": "Internal server error"},
    )


@app.get("/health")
def health():
    return {"status": "ok"}


# --- Router ---
app.include_router(api_router)
app.include_router(preferences_router)


# --- Tabellen anlegen (einmalig beim Start, falls keine Migrationen verwendet werden) ---
@app.on_event("startup")
def create_tables() -> None:
    Base.metadata.create_all(bind=engine)
    logger.info("[INFO] 📦 Datenbanktabellen geprüft/erstellt.")


def run_refresh() -> None:
    logger.info("[INFO] ⏱ Auto-Refresh gestartet...")
    with SessionLocal() as db:
        summary = aggregate_and_store(db, get_provider_client())
    logger.info("[INFO] ✅ %d Artikel gespeichert/aktualisiert (%s).", summary.total, summary.stored)


# --- Geplanter Refresh-Job (nur wenn NEWS_REFRESH_SECONDS > 0) ---
if settings.refresh_seconds > 0:
    @app.on_event("startup")
    @repeat_every(seconds=settings.refresh_seconds)
    def scheduled_refresh() -> None:
        run_refresh()
