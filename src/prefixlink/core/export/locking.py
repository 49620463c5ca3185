"""Exclusive per-prefix locking and atomic manifest writes.

An exporter holds an exclusive ``flock`` on a lock file beside its own
manifest for the whole export, so two processes exporting the same prefix
serialise instead of interleaving. Readers never lock: the manifest is
written to a temporary file in the same directory and moved into place with
``os.replace``, so a reader sees either no manifest or a complete one.
"""

from __future__ import annotations

import fcntl
import logging
import os
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

logger = logging.getLogger(__name__)

LOCK_SUFFIX = ".lock"


def lock_path_for(path: Path) -> Path:
    return path.with_name(path.name + LOCK_SUFFIX)


@contextmanager
def exclusive_lock(path: Path) -> Iterator[Path]:
    """Hold an exclusive lock guarding *path* for the duration of the block.

    The lock file (``<path>.lock``) and its parent directory are created if
    needed. The lock is released on every exit path.
    """
    lock_file = lock_path_for(path)
    lock_file.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(lock_file, os.O_RDWR | os.O_CREAT, 0o644)
    try:
        fcntl.flock(fd, fcntl.LOCK_EX)
        logger.debug("Acquired export lock %s", lock_file)
        try:
            yield lock_file
        finally:
            fcntl.flock(fd, fcntl.LOCK_UN)
            logger.debug("Released export lock %s", lock_file)
    finally:
        os.close(fd)


def atomic_write(path: Path, data: bytes) -> None:
    """Write *data* to *path* so readers never observe a partial file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=path.name + ".", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        os.chmod(tmp_name, 0o644)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise
