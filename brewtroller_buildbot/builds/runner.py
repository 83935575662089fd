"""Build runner for the cmake configure and make steps.

This module handles:
- Composing the cmake and make commands
- Executing them inside the workspace build directory
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from brewtroller_buildbot.process import CommandResult, run_command

if TYPE_CHECKING:
    from brewtroller_buildbot.builds.workspace import BuildWorkspace

logger = logging.getLogger(__name__)


def compose_configure_command(source_dir: Path, flags: list[str]) -> list[str]:
    """Compose the cmake command configuring a build of source_dir.

    Args:
        source_dir: Checked-out source tree.
        flags: ``-DNAME=value`` flags.

    Returns:
        Command as list of strings suitable for subprocess.
    """
    return ["cmake", *flags, str(source_dir)]


def compose_build_command() -> list[str]:
    """Compose the make command."""
    return ["make"]


def run_configure(
    workspace: BuildWorkspace,
    flags: list[str],
    timeout: float | None = None,
) -> CommandResult:
    """Run cmake in the workspace build directory.

    Returns:
        CommandResult; a non-zero exit is reported, not raised.
    """
    workspace.build_dir.mkdir(parents=True, exist_ok=True)
    cmd = compose_configure_command(workspace.source_dir, flags)
    logger.info("Configuring %s", workspace.root)
    return run_command(cmd, cwd=workspace.build_dir, timeout=timeout)


def run_build(workspace: BuildWorkspace, timeout: float | None = None) -> CommandResult:
    """Run make in the workspace build directory.

    Returns:
        CommandResult; a non-zero exit is reported, not raised.
    """
    logger.info("Building %s", workspace.root)
    return run_command(compose_build_command(), cwd=workspace.build_dir, timeout=timeout)


__all__ = [
    "compose_build_command",
    "compose_configure_command",
    "run_build",
    "run_configure",
]
