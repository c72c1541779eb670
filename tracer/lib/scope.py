"""
Storage scope resolution.

A scope is where tracer keeps its config and stories: `<gitRoot>/.tracer`
when running inside a repository, `~/.tracer` otherwise.
"""

import logging
import os
import secrets
from dataclasses import dataclass
from pathlib import Path

from tracer.git.client import GitOperations
from tracer.lib.constants import CONFIG_DIR_NAME, DIR_PERM, FILE_PERM
from tracer.lib.errors import (
    DirectoryNotWritable,
    GitError,
    ScopeUnavailable,
    StorageError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Scope:
    """Resolved storage location."""
    path: Path
    is_repo_local: bool


class DirectoryResolver:
    """Locates the effective scope and checks it can be written to."""

    def __init__(self, git: GitOperations, home: Path | None = None):
        self.git = git
        self._home = home

    def home_dir(self) -> Path:
        if self._home is not None:
            return self._home
        try:
            return Path.home()
        except (RuntimeError, KeyError) as e:
            raise ScopeUnavailable(f"cannot determine home directory: {e}") from e

    def repo_scope(self) -> Scope | None:
        """Repository-local scope, or None outside a git repository."""
        try:
            root = self.git.get_git_root()
        except GitError:
            return None
        if not root:
            return None
        return Scope(Path(root) / CONFIG_DIR_NAME, True)

    def global_scope(self) -> Scope:
        return Scope(self.home_dir() / CONFIG_DIR_NAME, False)

    def resolve_scope(self) -> Scope:
        """Repository-local scope when available, else global."""
        scope = self.repo_scope()
        if scope is None:
            scope = self.global_scope()
        logger.debug(f"Resolved scope: {scope.path} (repo_local={scope.is_repo_local})")
        return scope

    def ensure_writable(self, path: Path) -> None:
        """Create `path` if needed and prove it accepts writes.

        Raises DirectoryNotWritable on permission failure. Callers must not
        fall back to another scope when this fails.

        The probe is not atomic with the caller's real write; a permission
        change in between is still possible.
        """
        try:
            path.mkdir(mode=DIR_PERM, parents=True, exist_ok=True)
        except PermissionError as e:
            raise DirectoryNotWritable(path, str(e)) from e
        except OSError as e:
            raise StorageError(f"failed to create directory {path}: {e}") from e

        probe = path / f".write-probe-{os.getpid()}-{secrets.token_hex(4)}"
        try:
            fd = os.open(probe, os.O_WRONLY | os.O_CREAT | os.O_EXCL, FILE_PERM)
            os.close(fd)
            probe.unlink()
        except PermissionError as e:
            raise DirectoryNotWritable(path, str(e)) from e
        except OSError as e:
            raise StorageError(f"write probe failed in {path}: {e}") from e


def write_private_file(path: Path, content: str) -> None:
    """Write `content` to `path` with 0600 permissions.

    Existing files are tightened to 0600 as well.
    """
    try:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, FILE_PERM)
        with os.fdopen(fd, "w") as f:
            f.write(content)
        os.chmod(path, FILE_PERM)
    except PermissionError as e:
        raise DirectoryNotWritable(path.parent, str(e)) from e
    except OSError as e:
        raise StorageError(f"failed to write {path}: {e}") from e
