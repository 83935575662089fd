"""Local mirror of the upstream BrewTroller repository.

This module handles:
- Reader/writer locking of the shared mirror
- Git operations against the mirror and build workspaces
- The background refresher that keeps the mirror and the options cache current
"""

from brewtroller_buildbot.mirror.lock import mirror_lock
from brewtroller_buildbot.mirror.refresher import (
    MirrorBootstrapError,
    RepositoryRefresher,
)

__all__ = ["MirrorBootstrapError", "RepositoryRefresher", "mirror_lock"]
