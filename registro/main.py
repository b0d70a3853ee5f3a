from fastapi import FastAPI, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy import text

from registro.db.base import get_db
from registro.core.config import settings
from registro.core.logger import setup_logging
from registro.routers import emociones as emociones_router
from registro.routers import estadisticas as estadisticas_router
from registro.core.errors import (
    RegistroException,
    registro_exception_handler,
    validation_exception_handler,
    datastore_exception_handler,
    unhandled_exception_handler,
)

setup_logging(settings.LOG_LEVEL)

app = FastAPI(
    title="Registro Emocional API",
    description=(
        "**Remote store for the emotion map**\n\n"
        "Accepts one snapshot per user and day (upsert) and serves day reads, "
        "history, aggregate statistics and a full export.\n\n"
        "All error responses follow the `{code, message, details}` envelope."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Exception handlers (most specific first) ---
app.add_exception_handler(RegistroException, registro_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(SQLAlchemyError, datastore_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# --- Routers ---
app.include_router(emociones_router.router)
app.include_router(estadisticas_router.router)


@app.get("/health", tags=["health"], summary="Health check")
def health(db: Session = Depends(get_db)):
    """
    Returns `{"status": "ok", "database": "conectado"}` when both the API and
    the database are reachable. Returns HTTP 503 if the DB is down.
    The device client also uses this endpoint as its connectivity probe.

    The datastore field is `database`; older clients that read `mongodb`
    must switch to it.
    """
    try:
        db.execute(text("SELECT 1"))
        db_status = "conectado"
    except Exception:
        db_status = "desconectado"

    if db_status != "conectado":
        return JSONResponse(
            status_code=503,
            content={"status": "error", "database": db_status},
        )
    return {"status": "ok", "database": db_status, "env": settings.APP_ENV}
