"""Repository refresher.

This module handles:
- Bootstrapping the local mirror (clone with retry and backoff)
- Periodically syncing the mirror with upstream
- Rebuilding the options cache from the options file at every version tag

The mirror is shared with in-flight builds, which clone from it. Every
mutation happens under the exclusive mirror lock; builds take it shared.
"""

from __future__ import annotations

import logging
import shutil
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

from brewtroller_buildbot.mirror import git
from brewtroller_buildbot.mirror.lock import mirror_lock
from brewtroller_buildbot.options.manifest import (
    VERSION_TAG_GLOB,
    OptionsFileError,
    is_version_tag,
    load_options_file,
    version_key,
)
from brewtroller_buildbot.process import CommandError
from brewtroller_buildbot.types import OptionsManifest

if TYPE_CHECKING:
    from brewtroller_buildbot.config import Settings
    from brewtroller_buildbot.options.cache import OptionsCache

logger = logging.getLogger(__name__)


class MirrorBootstrapError(Exception):
    """Raised when the local mirror cannot be created."""

    def __init__(self, message: str, code: str = "mirror_bootstrap_failed") -> None:
        super().__init__(message)
        self.code = code


class RepositoryRefresher:
    """Keep the local mirror and the options cache in step with upstream.

    Call bootstrap() once, then either refresh_once() directly or start()
    to refresh in a background thread every poll period until stop().
    """

    def __init__(self, settings: Settings, cache: OptionsCache) -> None:
        self.settings = settings
        self.cache = cache
        self.last_refresh: datetime | None = None
        self.last_error: str | None = None
        self._branch: str | None = None
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def mirror_dir(self) -> Path:
        return self.settings.mirror_dir

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def bootstrap(self) -> None:
        """Replace any stale mirror with a fresh clone of upstream.

        Retries with exponential backoff. Startup must not continue without
        a mirror, so the last failure is raised.

        Raises:
            MirrorBootstrapError: If every clone attempt fails.
        """
        attempts = self.settings.bootstrap_attempts
        delay = self.settings.bootstrap_backoff

        for attempt in range(1, attempts + 1):
            try:
                self._clone_mirror()
                return
            except (CommandError, git.GitError, MirrorBootstrapError, OSError) as e:
                output = getattr(e, "output", "")
                logger.error(
                    "Mirror clone attempt %d/%d failed: %s%s",
                    attempt,
                    attempts,
                    e,
                    f"\n{output}" if output else "",
                )
                if attempt == attempts:
                    raise MirrorBootstrapError(
                        f"Could not clone {self.settings.git_url} into "
                        f"{self.mirror_dir} after {attempts} attempt(s): {e}"
                    ) from e
            if self._stop.wait(delay):
                raise MirrorBootstrapError("Stopped during mirror bootstrap")
            delay *= 2

    def _clone_mirror(self) -> None:
        with mirror_lock(self.settings.lock_path, exclusive=True):
            if self.mirror_dir.exists():
                logger.info("Removing stale mirror %s", self.mirror_dir)
                shutil.rmtree(self.mirror_dir)
            self.mirror_dir.parent.mkdir(parents=True, exist_ok=True)

            logger.info("Cloning %s into %s", self.settings.git_url, self.mirror_dir)
            git.clone(
                self.settings.git_url,
                self.mirror_dir,
                timeout=self.settings.git_timeout,
            )
            if not self.mirror_dir.is_dir():
                raise MirrorBootstrapError(
                    f"Could not create local source copy at {self.mirror_dir}"
                )
            self._branch = git.current_branch(
                self.mirror_dir, timeout=self.settings.git_timeout
            )

    def refresh_once(self) -> OptionsManifest:
        """Sync the mirror and rebuild the options cache.

        Returns:
            The manifest the cache now holds.
        """
        timeout = self.settings.git_timeout
        options_name = self.settings.options_file_name
        manifest: OptionsManifest = {}

        with mirror_lock(self.settings.lock_path, exclusive=True):
            if self._branch is None:
                self._branch = git.current_branch(self.mirror_dir, timeout=timeout)

            # Tags deleted upstream would otherwise linger forever.
            git.delete_all_tags(self.mirror_dir, timeout=timeout)
            try:
                git.pull(self.mirror_dir, timeout=timeout)
            except git.GitError as e:
                logger.warning("Pull failed, using local history: %s\n%s", e, e.output)

            tags = [
                tag
                for tag in git.list_tags(
                    self.mirror_dir, VERSION_TAG_GLOB, timeout=timeout
                )
                if is_version_tag(tag)
            ]
            tags.sort(key=version_key)

            try:
                for tag in tags:
                    try:
                        git.checkout(self.mirror_dir, tag, timeout=timeout)
                    except git.GitError as e:
                        logger.debug("Skipping %s: checkout failed: %s", tag, e)
                        continue
                    try:
                        manifest[tag] = load_options_file(self.mirror_dir / options_name)
                    except OptionsFileError as e:
                        logger.debug("Skipping %s: %s", tag, e)
            finally:
                if tags and self._branch != "HEAD":
                    git.checkout(self.mirror_dir, self._branch, timeout=timeout)

        self.cache.replace(manifest)
        self.last_refresh = datetime.now(timezone.utc)
        self.last_error = None
        logger.info(
            "Refreshed %s: %d of %d version tag(s) usable",
            self.settings.git_url,
            len(manifest),
            len(tags),
        )
        return manifest

    def start(self, refresh_now: bool = True) -> None:
        """Start refreshing in a background thread.

        Args:
            refresh_now: Refresh immediately rather than after one poll period.
        """
        if self.is_running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run,
            args=(refresh_now,),
            name="repository-refresher",
            daemon=True,
        )
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        """Signal the background thread to stop and wait for it."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def _run(self, refresh_now: bool) -> None:
        logger.info(
            "Repository refresher started (poll period %ss)",
            self.settings.poll_period,
        )
        if not refresh_now and self._stop.wait(self.settings.poll_period):
            return
        while not self._stop.is_set():
            try:
                self.refresh_once()
            except Exception as e:
                # Keep serving the previous cache; the next cycle may succeed.
                self.last_error = str(e)
                logger.exception("Repository refresh failed")
            if self._stop.wait(self.settings.poll_period):
                break
        logger.info("Repository refresher stopped")


__all__ = ["MirrorBootstrapError", "RepositoryRefresher"]
