"""Configuration endpoints."""

from typing import Any

from fastapi import APIRouter, Depends

from brewtroller_buildbot.config import Settings
from web.deps import get_app_settings

router = APIRouter()


@router.get("")
def get_config(settings: Settings = Depends(get_app_settings)) -> dict[str, Any]:
    """Get effective configuration.

    Returns:
        Current configuration as JSON.
    """
    return {
        "debug": settings.debug,
        "log_level": settings.log_level,
        "git_url": settings.git_url,
        "options_file_name": settings.options_file_name,
        "mirror_dir": str(settings.mirror_dir),
        "workspace_root": str(settings.workspace_root) if settings.workspace_root else None,
        "poll_period": settings.poll_period,
        "git_timeout": settings.git_timeout,
        "configure_timeout": settings.configure_timeout,
        "build_timeout": settings.build_timeout,
        "request_timeout": settings.request_timeout,
    }
