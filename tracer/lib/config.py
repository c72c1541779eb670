"""
Configuration loading for tracer.

Config lives in `<scope>/config.yaml`. Loading prefers the repository-local
file, then the global one, then compiled-in defaults. A file that is missing
falls through; a file that exists but cannot be read or parsed is an error.
"""

import logging
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path

import yaml

from tracer.lib import validate
from tracer.lib.constants import (
    CONFIG_FILE_NAME,
    DEFAULT_GIT_BRANCH,
    DEFAULT_GIT_REMOTE,
    DEFAULT_PAIR_FILE,
    DEFAULT_STORY_DIR,
)
from tracer.lib.errors import ConfigError
from tracer.lib.scope import DirectoryResolver, Scope, write_private_file

logger = logging.getLogger(__name__)


@dataclass
class Config:
    """Effective tracer configuration. All fields are plain strings."""
    git_repo: str = ""
    git_branch: str = ""
    git_remote: str = ""
    story_dir: str = ""
    pair_file: str = ""
    author_name: str = ""
    author_email: str = ""
    pair_name: str = ""
    jira_host: str = ""
    jira_token: str = ""
    jira_project: str = ""
    jira_user: str = ""


FIELD_NAMES = tuple(f.name for f in fields(Config))

DEFAULTS = {
    "git_branch": DEFAULT_GIT_BRANCH,
    "git_remote": DEFAULT_GIT_REMOTE,
    "story_dir": DEFAULT_STORY_DIR,
    "pair_file": DEFAULT_PAIR_FILE,
}


def apply_defaults(cfg: Config) -> Config:
    """Return a copy of `cfg` with empty defaulted fields filled in.

    Non-empty fields are never touched, so applying twice is a no-op.
    """
    missing = {k: v for k, v in DEFAULTS.items() if not getattr(cfg, k)}
    return replace(cfg, **missing)


def default_config() -> Config:
    return apply_defaults(Config())


def config_from_dict(data: dict, source: str = "config") -> Config:
    """Build a Config from parsed YAML, ignoring unknown keys."""
    values = {}
    for key, value in data.items():
        if key not in FIELD_NAMES:
            logger.warning(f"Ignoring unknown config key '{key}' in {source}")
            continue
        if value is None:
            value = ""
        elif isinstance(value, (int, float)) and not isinstance(value, bool):
            value = str(value)
        values[key] = value

    try:
        validate.validate(values, "config")
    except validate.SchemaValidationError as e:
        raise ConfigError(f"invalid config in {source}: {e}") from None

    return Config(**values)


def config_to_yaml(cfg: Config) -> str:
    return yaml.safe_dump(asdict(cfg), sort_keys=False, default_flow_style=False)


def config_path(scope: Scope) -> Path:
    return scope.path / CONFIG_FILE_NAME


def load_config_file(path: Path) -> Config | None:
    """Load one config file.

    Returns None if the file does not exist.

    Raises:
        ConfigError: if the file exists but is unreadable, is not valid YAML,
            or is not a mapping of strings.
    """
    try:
        text = path.read_text()
    except FileNotFoundError:
        return None
    except OSError as e:
        raise ConfigError(f"failed to read config {path}: {e}") from e

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(f"failed to parse config {path}: {e}") from e

    if data is None:
        return Config()
    if not isinstance(data, dict):
        raise ConfigError(f"config {path} must be a mapping, got {type(data).__name__}")

    return config_from_dict(data, str(path))


class ConfigResolver:
    """Loads and saves the effective Config for the current scope."""

    def __init__(self, dirs: DirectoryResolver):
        self.dirs = dirs

    def candidate_paths(self) -> list[Path]:
        """Config files in lookup order: repository-local, then global."""
        paths = []
        repo = self.dirs.repo_scope()
        if repo is not None:
            paths.append(config_path(repo))
        paths.append(config_path(self.dirs.global_scope()))
        return paths

    def load(self) -> Config:
        """Load the effective config with defaults applied."""
        for path in self.candidate_paths():
            cfg = load_config_file(path)
            if cfg is not None:
                logger.debug(f"Loaded config from {path}")
                return apply_defaults(cfg)
        logger.debug("No config file found, using defaults")
        return default_config()

    def save(self, cfg: Config) -> Path:
        """Write `cfg` to the resolved scope (repository-local when available).

        Raises:
            DirectoryNotWritable: if the scope directory rejects writes.
        """
        scope = self.dirs.resolve_scope()
        self.dirs.ensure_writable(scope.path)
        path = config_path(scope)
        write_private_file(path, config_to_yaml(cfg))
        logger.info(f"Saved config to {path}")
        return path

    def stories_dir(self, cfg: Config | None = None) -> Path:
        """Directory holding story files for the resolved scope."""
        if cfg is None:
            cfg = self.load()
        story_dir = Path(cfg.story_dir or DEFAULTS["story_dir"])
        if story_dir.is_absolute():
            return story_dir
        return self.dirs.resolve_scope().path / story_dir
