from pathlib import Path

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from fluentify.ai import openai_client
from fluentify.db.base import engine
from fluentify.db.session import get_db
from fluentify.core.clock import isoformat, utc_now
from fluentify.core.config import is_production

router = APIRouter(tags=["system"])

# Mounted only when ENABLE_DEBUG_ROUTES=1
debug_router = APIRouter(prefix="/debug", tags=["debug"])


@router.get("/")
def root():
    return {"status": "Backend is running"}


@router.get("/health")
def health(db: Session = Depends(get_db)):
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        print("[DB] health check failed:", repr(exc), flush=True)
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "database": "disconnected", "error": str(exc.__class__.__name__)},
        )
    return {"status": "healthy", "database": "connected", "timestamp": isoformat(utc_now())}


@router.get("/db-check")
def db_check(db: Session = Depends(get_db)):
    backend = engine.url.get_backend_name()
    try:
        if backend == "sqlite":
            version = db.execute(text("SELECT sqlite_version()")).scalar()
        else:
            version = db.execute(text("SELECT version()")).scalar()
    except SQLAlchemyError as exc:
        print("[DB] db-check failed:", repr(exc), flush=True)
        return JSONResponse(
            status_code=500,
            content={"status": "DB connection failed", "error": str(exc.__class__.__name__)},
        )
    return {
        "status": f"Connected to {backend}",
        "time": isoformat(utc_now()),
        "version": version,
        "environment": "production" if is_production() else "development",
    }


def _sqlite_file_info(database: str | None) -> dict:
    if not database or database == ":memory:":
        return {"sqlitePath": ":memory:", "sqliteExists": False, "sqliteSizeBytes": 0}
    path = Path(database).resolve()
    size = path.stat().st_size if path.is_file() else 0
    return {"sqlitePath": str(path), "sqliteExists": path.is_file(), "sqliteSizeBytes": size}


@debug_router.get("/diagnostics/db")
def db_diagnostics():
    """Connection details for deployment debugging; the password is always masked."""
    url = engine.url
    backend = url.get_backend_name()
    info = {"backend": backend, "url": url.render_as_string(hide_password=True)}
    if backend == "sqlite":
        info.update(_sqlite_file_info(url.database))
    else:
        info.update(host=url.host, port=url.port, database=url.database, driver=url.drivername)
    return info


@debug_router.get("/diagnostics/ai")
def ai_diagnostics():
    return openai_client.status()
