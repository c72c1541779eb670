"""
Configure, init and clean operations.

These are the writes behind `tracer init`, `tracer configure` and
`tracer configure clean`. Validation runs before anything is written.
"""

import logging
import shutil
from dataclasses import replace
from pathlib import Path

from tracer.git.client import GitOperations
from tracer.lib.config import Config, ConfigResolver, config_path
from tracer.lib.constants import (
    KEY_CURRENT_PAIR,
    KEY_CURRENT_PROJECT,
    project_user_key,
)
from tracer.lib.errors import GitError, NotConfiguredError, StorageError, ValidationError

logger = logging.getLogger(__name__)

CONFIGURE_PROJECT_COMMAND = "tracer configure --project <name>"
CONFIGURE_USER_COMMAND = "tracer configure --user <name>"


def current_project(git: GitOperations, cfg: Config | None = None) -> str:
    """Project name from git config, falling back to Config.git_repo."""
    project = git.get_config(KEY_CURRENT_PROJECT)
    if not project and cfg is not None:
        project = cfg.git_repo
    return project


def require_project_and_user(cfg: Config) -> None:
    if not cfg.git_repo:
        raise NotConfiguredError("project", CONFIGURE_PROJECT_COMMAND)
    if not cfg.author_name:
        raise NotConfiguredError("user", CONFIGURE_USER_COMMAND)


def init_tracer(git: GitOperations, config: ConfigResolver) -> Path:
    """Create the scope's config.yaml seeded from the repository and git user."""
    cfg = config.load()

    if not cfg.git_repo:
        try:
            cfg.git_repo = Path(git.get_git_root()).name
        except GitError:
            logger.debug("Not in a git repository, leaving git_repo empty")
    if not cfg.author_name:
        cfg.author_name = git.get_config("user.name")
    if not cfg.author_email:
        cfg.author_email = git.get_config("user.email")

    return config.save(cfg)


def configure_project(git: GitOperations, config: ConfigResolver, name: str) -> Config:
    if not name:
        raise ValidationError("project name cannot be empty")

    cfg = config.load()
    git.set_config(KEY_CURRENT_PROJECT, name)
    cfg.git_repo = name
    config.save(cfg)
    return cfg


def configure_user(git: GitOperations, config: ConfigResolver, username: str) -> Config:
    if not username:
        raise ValidationError("username cannot be empty")

    project = git.get_config(KEY_CURRENT_PROJECT)
    if not project:
        raise NotConfiguredError("project", CONFIGURE_PROJECT_COMMAND)

    cfg = config.load()
    git.set_config(project_user_key(project), username)
    cfg.author_name = username
    if not cfg.git_repo:
        cfg.git_repo = project
    config.save(cfg)
    return cfg


def configure_jira(
    config: ConfigResolver,
    host: str,
    token: str = "",
    project: str = "",
    user: str = "",
) -> Config:
    """Set Jira connection settings. Empty optional values keep the old ones."""
    if not host:
        raise ValidationError("host cannot be empty")

    cfg = config.load()
    cfg.jira_host = host
    if token:
        cfg.jira_token = token
    if project:
        cfg.jira_project = project
    if user:
        cfg.jira_user = user
    config.save(cfg)
    return cfg


def describe_config(cfg: Config) -> list[tuple[str, str]]:
    """Display rows for `tracer configure show`. The token is masked."""
    return [
        ("Project", cfg.git_repo),
        ("User", cfg.author_name),
        ("Email", cfg.author_email),
        ("Branch", cfg.git_branch),
        ("Remote", cfg.git_remote),
        ("Pair", cfg.pair_name),
        ("Jira Host", cfg.jira_host),
        ("Jira Project", cfg.jira_project),
        ("Jira User", cfg.jira_user),
        ("Jira Token", "[CONFIGURED]" if cfg.jira_token else "[NOT CONFIGURED]"),
    ]


def clean_git(git: GitOperations) -> None:
    """Remove project, user and pair keys from git config."""
    project = git.get_config(KEY_CURRENT_PROJECT)
    if project:
        git.unset_config(project_user_key(project))
    git.unset_config(KEY_CURRENT_PROJECT)
    git.unset_config(KEY_CURRENT_PAIR)


def _remove_tree(path: Path) -> None:
    try:
        shutil.rmtree(path)
        logger.info(f"Removed {path}")
    except FileNotFoundError:
        pass
    except OSError as e:
        raise StorageError(f"failed to remove {path}: {e}") from e


def _remove_file(path: Path) -> None:
    try:
        path.unlink()
        logger.info(f"Removed {path}")
    except FileNotFoundError:
        pass
    except OSError as e:
        raise StorageError(f"failed to remove {path}: {e}") from e


def _scopes(config: ConfigResolver):
    repo = config.dirs.repo_scope()
    if repo is not None:
        yield repo
    yield config.dirs.global_scope()


def clean_stories(config: ConfigResolver) -> None:
    """Delete story directories in both the repository and global scopes."""
    story_dir = Path(config.load().story_dir)
    if story_dir.is_absolute():
        _remove_tree(story_dir)
        return
    for scope in _scopes(config):
        _remove_tree(scope.path / story_dir)


def clean_jira(config: ConfigResolver) -> Config:
    cfg = replace(config.load(), jira_host="", jira_token="", jira_project="", jira_user="")
    config.save(cfg)
    return cfg


def clean_all(git: GitOperations, config: ConfigResolver) -> None:
    """Remove config files, stories and git keys in every scope."""
    clean_stories(config)
    for scope in _scopes(config):
        _remove_file(config_path(scope))
    clean_git(git)
