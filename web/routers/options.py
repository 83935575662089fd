"""Version and build option endpoints.

- GET /options - Every known version with its option descriptors
- GET /versions - The version choice as a selectable option
"""

from typing import Any

from fastapi import APIRouter, Depends

from brewtroller_buildbot.options.cache import OptionsCache
from brewtroller_buildbot.options.manifest import version_selector
from web.deps import get_cache

router = APIRouter()


@router.get("/options")
def get_options(cache: OptionsCache = Depends(get_cache)) -> dict[str, list[dict[str, Any]]]:
    """Get the options cache.

    Returns:
        Mapping of version tag to its option descriptors, from one
        complete cache snapshot.
    """
    return cache.snapshot()


@router.get("/versions")
def get_versions(cache: OptionsCache = Depends(get_cache)) -> list[dict[str, Any]]:
    """Get the firmware version selector.

    Returns:
        A one-element list holding the BuildVersion radio option.
    """
    return [version_selector(cache.versions())]
