"""Shared constants for tracer."""

import re

# Storage scope
CONFIG_DIR_NAME = ".tracer"
CONFIG_FILE_NAME = "config.yaml"

# Config defaults
DEFAULT_GIT_BRANCH = "main"
DEFAULT_GIT_REMOTE = "origin"
DEFAULT_STORY_DIR = "stories"
DEFAULT_PAIR_FILE = "pair.json"

# Story files
STORY_EXT = ".json"
LEGACY_STORY_EXTS = (".yaml", ".yml")
LOCKS_DIR_NAME = ".locks"

# Permissions
DIR_PERM = 0o755
FILE_PERM = 0o600

# Git config keys
KEY_CURRENT_PROJECT = "current.project"
KEY_CURRENT_PAIR = "current.pair"


def project_user_key(project: str) -> str:
    return f"{project}.user"


def current_story_key(project: str) -> str:
    return f"{project}.current.story"


# Conventional commit types accepted by `tracer commit`
COMMIT_TYPES = ("feat", "fix", "docs", "style", "refactor", "test", "chore")

# Story IDs are hex tokens (or the timestamp fallback); keep them path-safe
STORY_ID_PATTERN = re.compile(r'^[A-Za-z0-9_-]+$')
