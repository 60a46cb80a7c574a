import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from app.config import Settings, get_settings
from app.core.constants import ROOT_BANNER
from app.core.errors import register_exception_handlers
from app.database import build_engine, build_session_factory, init_db
from app.routers import health_router, products_router

logger = logging.getLogger(__name__)

_DEFAULT_CORS_ORIGINS = [
    "http://127.0.0.1:5173",
    "http://localhost:5173",
    "http://localhost:3000",
]


def _allowed_origins(settings: Settings) -> list[str]:
    raw = settings.CORS_ALLOWED_ORIGINS or ""
    origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
    return origins or list(_DEFAULT_CORS_ORIGINS)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    engine = build_engine(settings.DATABASE_URL)
    init_db(engine)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        logger.info("Connected to database: %s", engine.url.render_as_string(hide_password=True))
        try:
            yield
        finally:
            engine.dispose()

    app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)

    cors_origins = _allowed_origins(settings)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials="*" not in cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(products_router)

    @app.get("/", response_class=PlainTextResponse)
    def root():
        return ROOT_BANNER

    return app


__all__ = ["create_app"]
