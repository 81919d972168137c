import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sfstack.adapters.sqlite.data_migrations import apply_migrations
from sfstack.api.deps import get_settings
from sfstack.api.routes import auth, user
from sfstack.app_shell.config import AppConfig, get_config

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Bring the database schema up to date before serving (fail-fast)."""
    settings = app.dependency_overrides.get(get_settings, get_settings)()
    try:
        applied = apply_migrations(str(settings.db_path))
    except Exception:
        logger.critical("Database migration failed for %s", settings.db_path, exc_info=True)
        raise
    logger.info("Database ready at %s (%d migrations applied)", settings.db_path, len(applied))
    if settings.general.initial_admin_registration:
        logger.info("Initial admin registration is enabled")

    yield


def create_app(settings: AppConfig | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    cfg = settings or get_config()

    application = FastAPI(
        title=f"{cfg.general.name} API",
        description=cfg.general.description,
        version=cfg.general.version,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # --- Routers ---
    application.include_router(auth.router, prefix="/api/auth", tags=["Auth"])
    application.include_router(user.router, prefix="/api/user", tags=["User"])

    # CORS (Allow Frontend)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.server.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @application.get("/health")
    def health_check() -> dict[str, Any]:
        """Health check endpoint."""
        return {"status": "ok", "service": "api"}

    return application


# Module-level instance used by uvicorn and tests.
app = create_app()
