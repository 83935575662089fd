"""FastAPI web application for the BrewTroller Build Bot.

This module provides the HTTP API over the core services.
All business logic is delegated to core modules in brewtroller_buildbot/.
"""

from web.app import create_app

__all__ = ["create_app"]
