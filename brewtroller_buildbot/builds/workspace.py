"""Disposable build workspaces.

Each build request gets its own directory:

    <root>/<request-id>-XXXXXXXX/
        build-settings.json   raw request, kept for the life of the build
        source/               clone of the mirror at the requested version
        build/                cmake build directory

The directory is removed when the request completes, whatever the outcome.
"""

from __future__ import annotations

import logging
import re
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

SETTINGS_FILE_NAME = "build-settings.json"
ARTIFACT_SUBDIR = "src"
ARTIFACT_TEMPLATE = "BrewTroller-{board}.hex"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]")


def request_id(remote_addr: str) -> str:
    """Derive a path-safe request prefix from the caller's address.

    ``192.168.1.5:51234`` becomes ``192_168_1_5-51234``.
    """
    rid = remote_addr.replace(".", "_").replace(":", "-")
    return _UNSAFE_CHARS.sub("_", rid) or "unknown"


def artifact_name(board: str) -> str:
    """Name of the firmware image the build produces for a board."""
    return ARTIFACT_TEMPLATE.format(board=board)


@dataclass
class BuildWorkspace:
    """Paths of one build's private workspace."""

    request_id: str
    root: Path

    @property
    def source_dir(self) -> Path:
        return self.root / "source"

    @property
    def build_dir(self) -> Path:
        return self.root / "build"

    @property
    def settings_path(self) -> Path:
        return self.root / SETTINGS_FILE_NAME

    def artifact_path(self, board: str) -> Path:
        return self.build_dir / ARTIFACT_SUBDIR / artifact_name(board)

    def save_request(self, raw: bytes) -> Path:
        """Persist the raw request as the build's settings record."""
        self.settings_path.write_bytes(raw)
        return self.settings_path


def create_workspace(root: Path | None, remote_addr: str) -> BuildWorkspace:
    """Create a unique workspace directory.

    The caller owns the directory and must remove_workspace() it.

    Args:
        root: Parent directory (system temp dir if None).
        remote_addr: Caller address, embedded in the directory name.

    Returns:
        The new BuildWorkspace.

    Raises:
        OSError: If the directory cannot be created.
    """
    rid = request_id(remote_addr)
    if root is not None:
        root.mkdir(parents=True, exist_ok=True)
    path = Path(tempfile.mkdtemp(prefix=f"{rid}-", dir=root))
    logger.debug("Created workspace %s", path)
    return BuildWorkspace(request_id=rid, root=path)


def remove_workspace(path: Path) -> None:
    """Recursively remove a workspace, logging rather than raising on failure."""
    try:
        shutil.rmtree(path)
        logger.debug("Removed workspace %s", path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning("Failed to remove workspace %s: %s", path, e)


__all__ = [
    "ARTIFACT_SUBDIR",
    "ARTIFACT_TEMPLATE",
    "SETTINGS_FILE_NAME",
    "BuildWorkspace",
    "artifact_name",
    "create_workspace",
    "remove_workspace",
    "request_id",
]
