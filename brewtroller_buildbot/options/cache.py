"""The process-wide Version/Options Cache.

The cache holds one OptionsManifest. It is only ever replaced as a whole:
readers see either the table before a refresh or the table after it,
never a mix. Published tables are private copies, so nothing outside the
cache can mutate them.
"""

from __future__ import annotations

import copy
import logging
import threading
from collections.abc import Mapping, Sequence
from datetime import datetime, timezone

from brewtroller_buildbot.options.manifest import is_version_tag, version_key
from brewtroller_buildbot.types import OptionDescriptor, OptionsManifest

logger = logging.getLogger(__name__)


class OptionsCache:
    """Mapping of known firmware versions to their option descriptors.

    Readers and the writer share one plain mutex rather than a
    reader/writer lock. It guards only a reference swap; the deep copy a
    reader takes happens after release, so readers never wait on each
    other for longer than that swap.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._manifest: OptionsManifest = {}
        self._updated_at: datetime | None = None

    def replace(self, manifest: Mapping[str, Sequence[OptionDescriptor]]) -> None:
        """Atomically swap in a new manifest.

        An empty manifest is valid; it makes every version unknown.
        """
        fresh: OptionsManifest = {
            version: copy.deepcopy(list(options))
            for version, options in manifest.items()
        }
        with self._lock:
            self._manifest = fresh
            self._updated_at = datetime.now(timezone.utc)
        logger.info("Options cache replaced: %d version(s)", len(fresh))

    def snapshot(self) -> OptionsManifest:
        """Return a copy of one complete manifest."""
        with self._lock:
            manifest = self._manifest
        # Published manifests are never mutated, so copying outside the lock is safe.
        return copy.deepcopy(manifest)

    def contains(self, version: str) -> bool:
        with self._lock:
            return version in self._manifest

    def versions(self) -> list[str]:
        """Return the known versions, oldest first."""
        with self._lock:
            versions = list(self._manifest)
        tags = sorted((v for v in versions if is_version_tag(v)), key=version_key)
        return tags + sorted(v for v in versions if not is_version_tag(v))

    @property
    def updated_at(self) -> datetime | None:
        """Time of the last replace, or None before the first one."""
        with self._lock:
            return self._updated_at

    def __len__(self) -> int:
        with self._lock:
            return len(self._manifest)


__all__ = ["OptionsCache"]
