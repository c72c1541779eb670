"""Shared fixtures: an in-memory git double and temporary scopes."""

import hashlib

import pytest

from tracer.git.status import STATUS_MODIFIED
from tracer.lib.context import build_context
from tracer.lib.errors import GitError


class FakeGit:
    """In-memory GitOperations.

    Set `fail[method_name] = exc` to make a method raise.
    """

    def __init__(self, root=None, config=None, author="alice"):
        self.root = root
        self.config = dict(config or {})
        self.author = author
        self.head = ""
        self.commits = []
        self.changed = [("main.go", STATUS_MODIFIED)]
        self.diffs = []
        self.branches = {"main"}
        self.current_branch = "main"
        self.fail = {}

    def _maybe_fail(self, name):
        if name in self.fail:
            raise self.fail[name]

    def init(self):
        self._maybe_fail("init")
        if self.root is None:
            raise GitError("not in a git repository")

    def set_config(self, key, value):
        self._maybe_fail("set_config")
        self.config[key] = value

    def get_config(self, key):
        self._maybe_fail("get_config")
        return self.config.get(key, "")

    def unset_config(self, key):
        self._maybe_fail("unset_config")
        self.config.pop(key, None)

    def parse_revision(self, rev):
        self._maybe_fail("parse_revision")
        if rev == "HEAD" and self.head:
            return self.head
        raise GitError(f"git rev-parse {rev} failed: unknown revision")

    def commit(self, message):
        self._maybe_fail("commit")
        self.commits.append(message)
        self.head = hashlib.sha1(f"{len(self.commits)}:{message}".encode()).hexdigest()

    def get_current_head(self):
        self._maybe_fail("get_current_head")
        return self.parse_revision("HEAD")

    def get_author(self):
        self._maybe_fail("get_author")
        return self.author

    def get_changed_files(self):
        self._maybe_fail("get_changed_files")
        return [path for path, _ in self.changed]

    def get_changed_file_statuses(self):
        self._maybe_fail("get_changed_file_statuses")
        return list(self.changed)

    def get_diffs(self):
        self._maybe_fail("get_diffs")
        return list(self.diffs)

    def get_git_root(self):
        self._maybe_fail("get_git_root")
        if self.root is None:
            raise GitError("not in a git repository")
        return str(self.root)

    def create_branch(self, branch):
        self._maybe_fail("create_branch")
        self.branches.add(branch)
        self.current_branch = branch

    def switch_branch(self, branch):
        self._maybe_fail("switch_branch")
        if branch not in self.branches:
            raise GitError(f"git checkout {branch} failed: no such branch")
        self.current_branch = branch

    def branch_exists(self, branch):
        self._maybe_fail("branch_exists")
        return branch in self.branches


@pytest.fixture
def home(tmp_path):
    path = tmp_path / "home"
    path.mkdir()
    return path


@pytest.fixture
def repo(tmp_path):
    path = tmp_path / "repo"
    path.mkdir()
    return path


@pytest.fixture
def git(repo):
    return FakeGit(root=repo)


@pytest.fixture
def ctx(git, home):
    return build_context(git, home=home)
