"""FastAPI application factory.

This module creates the FastAPI application with all routers and
the shared services (options cache, build pipeline, refresher) attached
to app.state.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.concurrency import run_in_threadpool

from brewtroller_buildbot import APP_NAME, __version__
from brewtroller_buildbot.builds.pipeline import BuildPipeline
from brewtroller_buildbot.config import Settings, get_settings
from brewtroller_buildbot.mirror.refresher import RepositoryRefresher
from brewtroller_buildbot.options.cache import OptionsCache
from web.routers import build, config, health, options

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan context manager.

    Clones the mirror and fills the options cache before serving, then
    keeps refreshing in the background until shutdown. A failed bootstrap
    aborts startup; a failed first refresh leaves the cache empty until the
    next cycle.
    """
    refresher: RepositoryRefresher = app.state.refresher
    await run_in_threadpool(refresher.bootstrap)
    try:
        await run_in_threadpool(refresher.refresh_once)
    except Exception as e:
        refresher.last_error = str(e)
        logger.exception("Initial repository refresh failed")
    refresher.start(refresh_now=False)
    try:
        yield
    finally:
        await run_in_threadpool(refresher.stop)


def create_app(settings: Settings | None = None, manage_mirror: bool = True) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Settings to use; loaded from the environment if None.
        manage_mirror: Run the repository refresher for the app's lifetime.
            Disable to serve a cache populated by other means.

    Returns:
        Configured FastAPI application.
    """
    if settings is None:
        settings = get_settings()

    application = FastAPI(
        title=f"{APP_NAME} API",
        description="Compile BrewTroller firmware for a board, version and option set",
        version=__version__,
        lifespan=lifespan if manage_mirror else None,
    )

    cache = OptionsCache()
    application.state.settings = settings
    application.state.cache = cache
    application.state.pipeline = BuildPipeline(settings, cache)
    application.state.refresher = RepositoryRefresher(settings, cache)

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    # Include routers
    application.include_router(health.router, tags=["health"])
    application.include_router(options.router, tags=["options"])
    application.include_router(build.router, tags=["build"])
    application.include_router(config.router, prefix="/config", tags=["config"])

    return application
