"""Build pipeline.

This module provides the per-request build API:
- BuildPipeline.run(): validate a request, stage a workspace, build, and
  return the firmware image

Validation happens before any workspace exists. Once a workspace is
created it is removed on every exit path. The shared mirror is read only
while cloning from it, under the shared mirror lock.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

from brewtroller_buildbot.builds.flags import translate_options
from brewtroller_buildbot.builds.models import (
    BuildOutcome,
    BuildRequest,
    BuildRequestError,
    BuildServerError,
    parse_build_request,
)
from brewtroller_buildbot.builds.runner import run_build, run_configure
from brewtroller_buildbot.builds.workspace import (
    BuildWorkspace,
    artifact_name,
    create_workspace,
    remove_workspace,
)
from brewtroller_buildbot.mirror import git
from brewtroller_buildbot.mirror.lock import mirror_lock
from brewtroller_buildbot.process import CommandError, CommandResult

if TYPE_CHECKING:
    from brewtroller_buildbot.config import Settings
    from brewtroller_buildbot.options.cache import OptionsCache

logger = logging.getLogger(__name__)


class Deadline:
    """Overall time budget of one request."""

    def __init__(self, seconds: float) -> None:
        self.seconds = seconds
        self._expires = time.monotonic() + seconds

    def remaining(self) -> float:
        return self._expires - time.monotonic()

    def timeout(self, step_limit: float) -> float:
        """Timeout for the next step: its own limit, capped by what is left.

        Raises:
            BuildServerError: If the deadline has already passed.
        """
        remaining = self.remaining()
        if remaining <= 0:
            raise BuildServerError(
                f"Build request exceeded its {self.seconds:g}s deadline"
            )
        return min(step_limit, remaining)


class BuildPipeline:
    """Turn build requests into firmware images.

    Stateless between requests; any number of run() calls may proceed
    concurrently, each in its own workspace.
    """

    def __init__(self, settings: Settings, cache: OptionsCache) -> None:
        self.settings = settings
        self.cache = cache

    def validate(self, body: bytes) -> tuple[BuildRequest, list[str]]:
        """Parse a request and compute its configure flags.

        Raises:
            BuildRequestError: If the request is malformed, names an unknown
                version or carries unsupported options.
        """
        request = parse_build_request(body)
        if not self.cache.contains(request.version):
            raise BuildRequestError(f"Build Version {request.version} is invalid!")
        return request, translate_options(request.options)

    def run(self, body: bytes, remote_addr: str) -> BuildOutcome:
        """Build the firmware described by a raw request body.

        Args:
            body: Request body (JSON object of build options).
            remote_addr: Caller address, used to name the workspace.

        Returns:
            BuildOutcome carrying the artifact.

        Raises:
            BuildRequestError: For invalid requests (HTTP 400).
            BuildServerError: For failures while building (HTTP 500).
        """
        request, flags = self.validate(body)
        deadline = Deadline(self.settings.request_timeout)

        try:
            workspace = create_workspace(self.settings.workspace_root, remote_addr)
        except OSError as e:
            raise BuildServerError(f"Could not create build workspace: {e}") from e

        try:
            return self._build_in(workspace, request, flags, deadline)
        finally:
            remove_workspace(workspace.root)

    def _build_in(
        self,
        workspace: BuildWorkspace,
        request: BuildRequest,
        flags: list[str],
        deadline: Deadline,
    ) -> BuildOutcome:
        logger.info(
            "Building %s for board %s in %s",
            request.version,
            request.board,
            workspace.root,
        )
        try:
            workspace.save_request(request.raw)
        except OSError as e:
            raise BuildServerError(f"Could not save build settings: {e}") from e

        self._stage_source(workspace, request.version, deadline)

        configure = self._run_step(
            "cmake",
            lambda timeout: run_configure(workspace, flags, timeout),
            deadline.timeout(self.settings.configure_timeout),
        )
        build = self._run_step(
            "make",
            lambda timeout: run_build(workspace, timeout),
            deadline.timeout(self.settings.build_timeout),
        )

        artifact_path = workspace.artifact_path(request.board)
        try:
            artifact = artifact_path.read_bytes()
        except OSError as e:
            raise BuildServerError(
                f"No firmware image for board {request.board}: {e}",
                context=[build.output],
            ) from e

        logger.info(
            "Built %s (%d bytes) for %s",
            artifact_path.name,
            len(artifact),
            request.version,
        )
        return BuildOutcome(
            request_id=workspace.request_id,
            workspace=workspace.root,
            raw_request=request.raw,
            artifact_name=artifact_name(request.board),
            artifact=artifact,
            configure_output=configure.output,
            build_output=build.output,
            flags=flags,
        )

    def _stage_source(
        self,
        workspace: BuildWorkspace,
        version: str,
        deadline: Deadline,
    ) -> None:
        """Clone the mirror into the workspace and check out the version."""
        git_timeout = self.settings.git_timeout
        try:
            with mirror_lock(
                self.settings.lock_path,
                exclusive=False,
                timeout=deadline.timeout(self.settings.lock_timeout),
            ):
                git.clone(
                    self.settings.mirror_dir,
                    workspace.source_dir,
                    timeout=deadline.timeout(git_timeout),
                )
            git.checkout(
                workspace.source_dir,
                version,
                timeout=deadline.timeout(git_timeout),
            )
        except TimeoutError as e:
            raise BuildServerError(f"Source mirror unavailable: {e}") from e
        except (git.GitError, CommandError) as e:
            raise BuildServerError(str(e), context=[e.output]) from e

    def _run_step(
        self,
        name: str,
        step: Callable[[float], CommandResult],
        timeout: float,
    ) -> CommandResult:
        try:
            result = step(timeout)
        except CommandError as e:
            raise BuildServerError(f"{name} failed: {e}", context=[e.output]) from e
        if not result.ok:
            logger.error("%s exited with %d", name, result.exit_code)
            raise BuildServerError(
                f"{name} failed with exit code {result.exit_code}",
                context=[result.output],
            )
        return result


__all__ = ["BuildPipeline", "Deadline"]
