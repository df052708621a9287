"""
Exclusive advisory file lock.

Wraps a read-decide-write sequence on shared state so two runs on the same
host cannot both see the same ledger and both reboot. The lock lives in a
sidecar ``<name>.lock`` file that is never deleted: removing it while
another process waits on it would hand out two locks.

    with exclusive_lock(ledger_path):
        ...  # read, decide, append
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from rebootctl.core.errors import StorageError

logger = logging.getLogger(__name__)

LOCK_SUFFIX = ".lock"


def lock_path_for(path: Path) -> Path:
    """Sidecar lock file for a state file."""
    return path.with_name(path.name + LOCK_SUFFIX)


@contextmanager
def exclusive_lock(path: Path) -> Iterator[Path]:
    """Hold an exclusive lock guarding ``path`` for the duration of the block.

    Blocks until the lock is available (on Windows, ``msvcrt`` gives up after
    roughly ten seconds).

    Raises:
        StorageError: If the lock file cannot be created or locked.
    """
    lock_file = lock_path_for(path)
    try:
        lock_file.parent.mkdir(parents=True, exist_ok=True)
        fh = lock_file.open("a+b")
    except OSError as e:
        raise StorageError(f"Cannot open lock file {lock_file}: {e}") from e

    try:
        try:
            _acquire(fh)
        except OSError as e:
            raise StorageError(f"Cannot lock {lock_file}: {e}") from e
        logger.debug("Acquired lock %s", lock_file)
        try:
            yield lock_file
        finally:
            try:
                _release(fh)
            except OSError as e:
                logger.warning("Failed to release lock %s: %s", lock_file, e)
            else:
                logger.debug("Released lock %s", lock_file)
    finally:
        fh.close()


if sys.platform == "win32":
    import msvcrt

    def _acquire(fh) -> None:
        fh.seek(0)
        msvcrt.locking(fh.fileno(), msvcrt.LK_LOCK, 1)

    def _release(fh) -> None:
        fh.seek(0)
        msvcrt.locking(fh.fileno(), msvcrt.LK_UNLCK, 1)

else:
    import fcntl

    def _acquire(fh) -> None:
        fcntl.flock(fh.fileno(), fcntl.LOCK_EX)

    def _release(fh) -> None:
        fcntl.flock(fh.fileno(), fcntl.LOCK_UN)
