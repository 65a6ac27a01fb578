# rxprint/main.py
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from rxprint.core.config import settings
from rxprint.api.router import api_router
from rxprint.api.exception_handlers import register_exception_handlers
from rxprint.services.record_store import build_record_store

logger = logging.getLogger(__name__)


def _lifespan(kind: str):

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # tables are created on startup, never at import
        if kind == "sql":
            import rxprint.db.init_db as db_setup
            from rxprint.db.session import engine

            db_setup.init_db(engine)
        yield

    return lifespan


def create_app(record_store: Optional[str] = None) -> FastAPI:
    """
    `record_store` overrides settings.RECORD_STORE ("sql" or "memory").
    Memory mode keeps one store for the life of the app.
    """
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    kind = (record_store or settings.RECORD_STORE).strip().lower()
    if kind not in ("sql", "memory"):
        raise ValueError(
            f"Unknown RECORD_STORE '{kind}' (expected sql or memory)")

    app = FastAPI(
        title=settings.PROJECT_NAME,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=_lifespan(kind),
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    app.include_router(api_router, prefix=settings.API_V1_STR)

    if kind == "memory":
        app.state.record_store = build_record_store("memory")
        logger.warning("Using in-memory record store; nothing is persisted")
    else:
        app.state.record_store = None

    # Media mount (letterhead background for the HTML print view)
    media_root = Path(settings.STORAGE_DIR).resolve()
    media_root.mkdir(parents=True, exist_ok=True)
    app.mount(settings.MEDIA_URL,
              StaticFiles(directory=str(media_root)),
              name="media")

    # Health
    @app.get("/")
    def root():
        return {
            "message": f"{settings.PROJECT_NAME} API running",
            "version": "v1",
            "record_store": kind,
        }

    return app


app = create_app()
