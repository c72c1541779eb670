"""Git collaborator used by the config, story and commit layers.

Components receive a GitOperations object in their constructor instead of
reaching for a module-level client, so tests can hand in a fake.
"""

import logging
from pathlib import Path
from typing import Protocol, runtime_checkable

from tracer.git.runner import DEFAULT_TIMEOUT, GitResult, run_git
from tracer.git.status import parse_name_status
from tracer.lib.errors import GitError

logger = logging.getLogger(__name__)


@runtime_checkable
class GitOperations(Protocol):
    """Operations tracer needs from git."""

    def init(self) -> None: ...

    def set_config(self, key: str, value: str) -> None: ...

    def get_config(self, key: str) -> str: ...

    def unset_config(self, key: str) -> None: ...

    def parse_revision(self, rev: str) -> str: ...

    def commit(self, message: str) -> None: ...

    def get_current_head(self) -> str: ...

    def get_author(self) -> str: ...

    def get_changed_files(self) -> list[str]: ...

    def get_changed_file_statuses(self) -> list[tuple[str, str]]: ...

    def get_diffs(self) -> list[str]: ...

    def get_git_root(self) -> str: ...

    def create_branch(self, branch: str) -> None: ...

    def switch_branch(self, branch: str) -> None: ...

    def branch_exists(self, branch: str) -> bool: ...


class Git:
    """GitOperations backed by the git CLI.

    Every call goes through run_git, so a hung git process is bounded by
    `timeout` seconds.
    """

    def __init__(self, cwd: Path | None = None, timeout: int = DEFAULT_TIMEOUT):
        self.cwd = cwd
        self.timeout = timeout

    def _run(self, args: list[str], cwd: Path | None = None) -> GitResult:
        return run_git(args, cwd if cwd is not None else self.cwd, timeout=self.timeout)

    def _check(self, args: list[str], action: str, cwd: Path | None = None) -> str:
        result = self._run(args, cwd)
        if not result.success:
            raise GitError(f"{action} failed: {result.stderr.strip() or 'unknown error'}")
        return result.stdout.strip()

    def _config_dir(self) -> Path | None:
        # Config keys are project-scoped: written to the repository when there
        # is one, otherwise relative to the home directory.
        try:
            return Path(self.get_git_root())
        except GitError:
            return Path.home()

    def init(self) -> None:
        """Verify the working directory is inside a git repository."""
        result = self._run(["rev-parse", "--is-inside-work-tree"])
        if not result.success:
            raise GitError(f"not in a git repository: {result.stderr.strip()}")

    def set_config(self, key: str, value: str) -> None:
        self._check(["config", key, value], f"git config {key}", cwd=self._config_dir())

    def get_config(self, key: str) -> str:
        """Return a config value, or "" when the key is unset."""
        result = self._run(["config", key], cwd=self._config_dir())
        if result.success:
            return result.stdout.strip()
        # git config exits 1 for a missing key
        if result.returncode == 1 and not result.timed_out:
            return ""
        raise GitError(f"git config {key} failed: {result.stderr.strip()}")

    def unset_config(self, key: str) -> None:
        result = self._run(["config", "--unset", key], cwd=self._config_dir())
        # exit 5: key was not set
        if not result.success and result.returncode != 5:
            raise GitError(f"git config --unset {key} failed: {result.stderr.strip()}")

    def parse_revision(self, rev: str) -> str:
        return self._check(["rev-parse", rev], f"git rev-parse {rev}")

    def commit(self, message: str) -> None:
        self._check(["commit", "-m", message], "git commit")

    def get_current_head(self) -> str:
        return self.parse_revision("HEAD")

    def get_author(self) -> str:
        return self._check(["config", "user.name"], "git config user.name")

    def get_changed_files(self) -> list[str]:
        """Files touched by the HEAD commit."""
        output = self._check(
            ["diff-tree", "--no-commit-id", "--name-only", "-r", "--root", "HEAD"],
            "git diff-tree",
        )
        return [line.strip() for line in output.splitlines() if line.strip()]

    def get_changed_file_statuses(self) -> list[tuple[str, str]]:
        """(path, added|modified|deleted) for each file in the HEAD commit."""
        output = self._check(
            ["diff-tree", "--no-commit-id", "--name-status", "-r", "--root", "-M", "HEAD"],
            "git diff-tree",
        )
        return parse_name_status(output)

    def get_diffs(self) -> list[str]:
        """Staged diff, one chunk per file."""
        output = self._check(["diff", "--cached"], "git diff --cached")
        if not output:
            return []
        chunks = output.split("\ndiff --git ")
        return [chunks[0]] + [f"diff --git {c}" for c in chunks[1:]]

    def get_git_root(self) -> str:
        result = self._run(["rev-parse", "--show-toplevel"])
        if not result.success or not result.stdout.strip():
            raise GitError("not in a git repository")
        return result.stdout.strip()

    def create_branch(self, branch: str) -> None:
        self._check(["checkout", "-b", branch], f"git checkout -b {branch}")

    def switch_branch(self, branch: str) -> None:
        self._check(["checkout", branch], f"git checkout {branch}")

    def branch_exists(self, branch: str) -> bool:
        result = self._run(["show-ref", "--verify", "--quiet", f"refs/heads/{branch}"])
        if result.success:
            return True
        if result.returncode == 1 and not result.timed_out:
            return False
        raise GitError(f"git show-ref {branch} failed: {result.stderr.strip()}")
