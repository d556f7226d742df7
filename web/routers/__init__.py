"""Router modules for FastAPI web API."""

from web.routers import ai, auth, config, gui, health, images, pdf, sites, wordpress

__all__ = [
    "ai",
    "auth",
    "config",
    "gui",
    "health",
    "images",
    "pdf",
    "sites",
    "wordpress",
]
