"""FastAPI application factory and main app.

This module creates the FastAPI application with all routers and
dependency injection configured. Web routes are thin proxies to core
APIs; every route except health, the login API and static files sits
behind the password gate.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import Depends, FastAPI
from fastapi.staticfiles import StaticFiles

from web.deps import require_auth
from web.routers import ai, auth, config, gui, health, images, pdf, sites, wordpress
from wp_image_renamer import __version__
from wp_image_renamer.config import configure_logging, get_settings
from wp_image_renamer.db import create_all_tables, get_engine, get_session_factory
from wp_image_renamer.sites.service import CredentialCache

STATIC_DIR = Path(__file__).parent / "static"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan context manager.

    Configures logging, initializes database tables and the in-memory
    credential cache on startup.
    """
    settings = get_settings()
    configure_logging(settings)
    engine = get_engine(settings.db_url)
    create_all_tables(engine)
    app.state.session_factory = get_session_factory(engine)
    app.state.credential_cache = CredentialCache()
    yield
    engine.dispose()


def include_routers(application: FastAPI) -> None:
    """Mount static files and every router on an application."""
    gated = [Depends(require_auth)]

    application.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")

    application.include_router(health.router, tags=["health"])
    application.include_router(
        config.router, prefix="/config", tags=["config"], dependencies=gated
    )
    application.include_router(auth.router, prefix="/api/auth", tags=["auth"])
    application.include_router(
        wordpress.router,
        prefix="/api/wordpress",
        tags=["wordpress"],
        dependencies=gated,
    )
    application.include_router(
        ai.router, prefix="/api/ai", tags=["ai"], dependencies=gated
    )
    application.include_router(
        pdf.router, prefix="/api/pdf", tags=["pdf"], dependencies=gated
    )
    application.include_router(
        sites.router, prefix="/api/sites", tags=["sites"], dependencies=gated
    )
    application.include_router(
        images.router, prefix="/api/sites", tags=["images"], dependencies=gated
    )
    application.include_router(gui.router, prefix="/ui", tags=["gui"])


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application.
    """
    application = FastAPI(
        title="WordPress Image Renamer API",
        description="SEO renaming of images for WordPress sites: page "
        "assignment, LLM naming, media upload and Elementor replacement",
        version=__version__,
        lifespan=lifespan,
    )
    include_routers(application)
    return application


# Create the default application instance
app = create_app()
