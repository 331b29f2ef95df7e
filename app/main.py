import logging
import os
from datetime import datetime
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError

from app import db as app_db
from app import models as _models  # noqa: F401 - register SQLAlchemy models before create_all
from app.bootstrap import ensure_seed_templates
from app.config import get_settings
from app.routers import assistant, moc_requests, risks, workflow_config
from app.utils.jsonx import MalformedBodyError

try:
    from emoc_workflow import get_runtime_version
except ModuleNotFoundError:  # pragma: no cover - compatibility for non-editable local runs
    from src.emoc_workflow import get_runtime_version


def _sqlite_path_from_url(database_url: str) -> Path | None:
    url = (database_url or "").strip()
    if not url.startswith("sqlite:///"):
        return None
    return Path(url[len("sqlite:///") :])


def _backup_sqlite_journal(db_path: Path) -> None:
    ts = datetime.utcnow().strftime("%Y%m%d_%H%M%S")
    backup_dir = get_settings().runtime_dir / "db_recovery"
    backup_dir.mkdir(parents=True, exist_ok=True)
    for p in (Path(str(db_path) + "-journal"), Path(str(db_path) + "-wal")):
        if p.exists():
            os.replace(str(p), str(backup_dir / f"{p.name}.{ts}"))


def _initialize_db_schema(database_url: str) -> None:
    active_engine = app_db.configure_database(database_url)
    app_db.Base.metadata.create_all(bind=active_engine)
    with app_db.SessionLocal() as db:
        ensure_seed_templates(db)


def _init_db_with_recovery(settings) -> None:
    """Create tables and seed templates, recovering once from a stale SQLite journal."""
    logger = logging.getLogger(__name__)
    try:
        _initialize_db_schema(settings.database_url)
        return
    except OperationalError as e:
        db_path = _sqlite_path_from_url(settings.database_url)
        if "disk i/o error" not in str(e).lower() or not db_path:
            raise

    logger.warning("SQLite disk I/O error detected. Moving journal files aside and retrying: %s", db_path)
    _backup_sqlite_journal(db_path)
    try:
        _initialize_db_schema(settings.database_url)
    except OperationalError:
        ts = datetime.utcnow().strftime("%Y%m%d_%H%M%S")
        fallback_db = settings.runtime_dir / "db_recovery" / f"emoc_fallback_{ts}.db"
        fallback_url = f"sqlite:///{fallback_db.as_posix()}"
        logger.warning("Journal recovery failed. Falling back to fresh SQLite database: %s", fallback_url)
        os.environ["DATABASE_URL"] = fallback_url
        get_settings.cache_clear()
        _initialize_db_schema(fallback_url)


def create_app() -> FastAPI:
    # Respect runtime env overrides (tests, temporary runs).
    get_settings.cache_clear()
    settings = get_settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app = FastAPI(title=settings.app_name)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins or ["http://127.0.0.1", "http://localhost"],
        allow_origin_regex=settings.cors_allow_origin_regex,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _init_db_with_recovery(settings)

    @app.exception_handler(MalformedBodyError)
    async def malformed_body(request: Request, exc: MalformedBodyError):
        return JSONResponse(status_code=400, content={"error": "invalid_payload", "errors": {"payload": str(exc)}})

    app.include_router(risks.router)
    app.include_router(workflow_config.router)
    app.include_router(moc_requests.router)
    app.include_router(assistant.router)

    @app.get("/healthz")
    def healthz():
        return {"status": "ok"}

    @app.get("/api/health")
    def api_health():
        return {"status": "ok", "version": get_runtime_version(), "env": settings.app_env}

    return app


app = create_app()
