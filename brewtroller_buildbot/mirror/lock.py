"""Reader/writer lock for the shared mirror.

The refresher mutates the mirror (tag deletion, pull, per-tag checkout)
while holding the lock exclusively. Builds clone from the mirror while
holding it shared, so any number of clones can run together but never
against a mirror in mid-mutation.
"""

from __future__ import annotations

import fcntl
import logging
import os
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

logger = logging.getLogger(__name__)

# Poll interval while waiting for a lock with a timeout (seconds)
LOCK_POLL_INTERVAL = 0.1


@contextmanager
def mirror_lock(
    lock_path: Path,
    exclusive: bool,
    timeout: float | None = None,
) -> Iterator[None]:
    """Acquire the mirror lock.

    Uses an flock() on a lock file kept beside the mirror. Each acquisition
    opens its own descriptor, so threads of one process exclude each other
    just like separate processes do.

    Args:
        lock_path: Lock file path.
        exclusive: Take the write lock if True, the read lock otherwise.
        timeout: Lock acquisition timeout in seconds (None = blocking).

    Yields:
        None when lock is acquired.

    Raises:
        TimeoutError: If lock cannot be acquired within timeout.
    """
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    mode = "exclusive" if exclusive else "shared"
    operation = fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH

    logger.debug("Acquiring %s mirror lock", mode)

    fd = os.open(str(lock_path), os.O_RDWR | os.O_CREAT, 0o600)
    lock_acquired = False
    try:
        if timeout is not None:
            start = time.monotonic()
            while True:
                try:
                    fcntl.flock(fd, operation | fcntl.LOCK_NB)
                    lock_acquired = True
                    break
                except BlockingIOError:
                    if time.monotonic() - start >= timeout:
                        raise TimeoutError(
                            f"Timeout waiting for {mode} mirror lock"
                        ) from None
                    time.sleep(LOCK_POLL_INTERVAL)
        else:
            fcntl.flock(fd, operation)
            lock_acquired = True

        logger.debug("%s mirror lock acquired", mode.capitalize())
        yield
    finally:
        if lock_acquired:
            fcntl.flock(fd, fcntl.LOCK_UN)
            logger.debug("%s mirror lock released", mode.capitalize())
        os.close(fd)


__all__ = ["mirror_lock"]
