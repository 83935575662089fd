"""Router modules for FastAPI web API."""

from web.routers import build, config, health, options

__all__ = ["build", "config", "health", "options"]
