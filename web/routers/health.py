"""Service identity and health endpoints."""

from typing import Any

from fastapi import APIRouter, Depends

from brewtroller_buildbot import __version__
from brewtroller_buildbot.config import Settings
from brewtroller_buildbot.mirror.refresher import RepositoryRefresher
from brewtroller_buildbot.options.cache import OptionsCache
from brewtroller_buildbot.responses import home_body
from web.deps import get_app_settings, get_cache, get_refresher

router = APIRouter()


@router.get("/")
def root(settings: Settings = Depends(get_app_settings)) -> dict[str, str]:
    """Root endpoint.

    Returns:
        App name and version, plus the build host in debug mode.
    """
    return home_body(settings.debug)


@router.get("/health")
def health(
    cache: OptionsCache = Depends(get_cache),
    refresher: RepositoryRefresher = Depends(get_refresher),
) -> dict[str, Any]:
    """Health check endpoint.

    Returns:
        Health status with version, cache size and refresher state.
    """
    updated_at = cache.updated_at
    last_refresh = refresher.last_refresh
    return {
        "status": "ok",
        "version": __version__,
        "versions_cached": len(cache),
        "cache_updated_at": updated_at.isoformat() if updated_at else None,
        "refresher_running": refresher.is_running,
        "last_refresh": last_refresh.isoformat() if last_refresh else None,
        "last_refresh_error": refresher.last_error,
    }
