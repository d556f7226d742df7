"""FastAPI web application for WordPress Image Renamer.

This module provides the HTTP API and the server-rendered GUI over the
core services.

All business logic is delegated to core modules in wp_image_renamer/.
"""

from web.app import app, create_app

__all__ = ["app", "create_app"]
