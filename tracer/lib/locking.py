"""
Lock management for story files.

A story is read, mutated in memory and rewritten in full. Two invocations
editing the same story would otherwise race and the later snapshot would
drop the earlier one's additions, so edits hold an exclusive flock per
story ID.
"""

import fcntl
import os
import time
from contextlib import contextmanager
from pathlib import Path

from tracer.lib.constants import DIR_PERM, LOCKS_DIR_NAME
from tracer.lib.errors import LockTimeout, StorageError

POLL_INTERVAL = 0.1


@contextmanager
def _acquire_lock(lock_file: Path, timeout: float, lock_name: str):
    """
    Internal helper to acquire a file lock.

    Args:
        lock_file: Path to the lock file
        timeout: Seconds to wait for lock
        lock_name: Human-readable name for error messages

    Raises:
        LockTimeout: if another process holds the lock past `timeout`
        StorageError: if the lock file cannot be created, opened or locked
    """
    try:
        lock_file.parent.mkdir(mode=DIR_PERM, parents=True, exist_ok=True)
        fd = open(lock_file, 'w')
    except OSError as e:
        raise StorageError(f"Could not open {lock_name} at {lock_file}: {e}") from e

    start = time.monotonic()

    while True:
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
            break
        except BlockingIOError:
            if time.monotonic() - start > timeout:
                fd.close()
                raise LockTimeout(f"Could not acquire {lock_name} within {timeout}s")
            time.sleep(POLL_INTERVAL)
        except OSError as e:
            fd.close()
            raise StorageError(f"Could not acquire {lock_name} at {lock_file}: {e}") from e

    try:
        try:
            fd.write(f"{os.getpid()}\n")
            fd.flush()
        except OSError as e:
            raise StorageError(f"Could not write {lock_file}: {e}") from e
        yield
    finally:
        # Lock files are never deleted: unlinking would let two processes
        # hold "exclusive" locks on different inodes with the same path.
        fcntl.flock(fd, fcntl.LOCK_UN)
        fd.close()


def story_lock_path(stories_dir: Path, story_id: str) -> Path:
    return stories_dir / LOCKS_DIR_NAME / f"{story_id}.lock"


@contextmanager
def story_lock(stories_dir: Path, story_id: str, timeout: float = 30):
    """Acquire the per-story lock, yield, release on exit."""
    lock_file = story_lock_path(stories_dir, story_id)
    with _acquire_lock(lock_file, timeout, f"lock for story {story_id}"):
        yield
