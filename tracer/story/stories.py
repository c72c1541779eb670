"""
Story CRUD operations.

Stories are stored as one JSON file per story in the resolved scope:
  <scope>/stories/<id>.json

Lock-free save() is last-writer-wins: two processes that load the same
story, mutate it and save will lose the first writer's additions. Use
StoryStore.edit() for read-modify-write, which holds the per-story lock.
"""

import json
import logging
import re
import secrets
import time
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, Optional

import yaml

from tracer.git.client import GitOperations
from tracer.lib.config import ConfigResolver
from tracer.lib.constants import (
    KEY_CURRENT_PROJECT,
    LEGACY_STORY_EXTS,
    STORY_EXT,
    STORY_ID_PATTERN,
    current_story_key,
)
from tracer.lib.errors import (
    GitError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from tracer.lib.locking import story_lock
from tracer.lib.scope import write_private_file
from tracer.lib.validate import SchemaValidationError, validate, validate_before_write
from tracer.story.fsm import STATUS_OPEN
from tracer.story.models import Story, utc_now

logger = logging.getLogger(__name__)


def generate_story_id() -> str:
    """128-bit random hex ID.

    Falls back to a timestamp-derived ID if the entropy source fails. The
    fallback is not guaranteed unique under rapid repeated failures.
    """
    try:
        return secrets.token_hex(16)
    except (OSError, NotImplementedError) as e:
        logger.warning(f"Entropy source unavailable ({e}), using timestamp-derived story ID")
        return f"{time.time_ns():032x}"


def new_story(title: str, description: str, author: str) -> Story:
    """Create a new open story in memory. Call StoryStore.save() to persist."""
    if not title:
        raise ValidationError("title cannot be empty")

    now = utc_now()
    return Story(
        id=generate_story_id(),
        title=title,
        description=description,
        status=STATUS_OPEN,
        created_at=now,
        updated_at=now,
        author=author,
        tags=[],
    )


def slugify(text: str) -> str:
    """Lowercase, collapse runs of non-alphanumerics into single dashes."""
    return re.sub(r'[^a-z0-9]+', '-', text.lower()).strip('-')


def feature_branch_name(project: str, number: int, title: str) -> str:
    if project:
        return f"features/{project}-{number}-{slugify(title)}"
    return f"features/{number}-{slugify(title)}"


def new_story_with_number(
    git: GitOperations,
    title: str,
    description: str,
    author: str,
    number: int,
) -> Story:
    """Create a numbered story and check out its feature branch.

    The branch is created if missing, otherwise switched to. Branch errors
    (e.g. not in a repository) are logged and do not prevent the story
    from being created.
    """
    if number <= 0:
        raise ValidationError("number must be greater than 0")
    if not title:
        raise ValidationError("title is required when creating a story with a number")

    story = new_story(title, description, author)
    story.number = number

    try:
        project = git.get_config(KEY_CURRENT_PROJECT)
        branch = feature_branch_name(project, number, title)
        if git.branch_exists(branch):
            git.switch_branch(branch)
            logger.info(f"Switched to existing branch {branch}")
        else:
            git.create_branch(branch)
            logger.info(f"Created branch {branch}")
    except GitError as e:
        logger.warning(f"Could not set up feature branch for story {story.id}: {e}")

    return story


def _check_id(story_id: str) -> None:
    if not story_id or not STORY_ID_PATTERN.match(story_id):
        raise ValidationError(f"invalid story ID '{story_id}'")


class StoryStore:
    """Persists stories under the scope resolved by ConfigResolver."""

    def __init__(self, config: ConfigResolver, lock_timeout: float = 30):
        self.config = config
        self.lock_timeout = lock_timeout

    def stories_dir(self) -> Path:
        return self.config.stories_dir()

    def path_for(self, story_id: str, stories_dir: Path | None = None) -> Path:
        _check_id(story_id)
        return (stories_dir or self.stories_dir()) / f"{story_id}{STORY_EXT}"

    def save(self, story: Story) -> Path:
        """Write the full story snapshot with 0600 permissions."""
        stories_dir = self.stories_dir()
        self.config.dirs.ensure_writable(stories_dir)

        path = stories_dir / story.filename
        data = story.to_dict()
        validate_before_write(data, "story", path)
        write_private_file(path, json.dumps(data, indent=2) + "\n")
        logger.debug(f"Saved story {story.id} to {path}")
        return path

    def _read(self, path: Path) -> Story:
        try:
            data = json.loads(path.read_text())
            validate(data, "story")
            return Story.from_dict(data)
        except FileNotFoundError:
            raise NotFoundError(f"story {path.stem} not found") from None
        except (OSError, json.JSONDecodeError, SchemaValidationError, KeyError, ValueError) as e:
            raise StorageError(f"failed to load story {path.stem}: {e}") from e

    def load(self, story_id: str) -> Story:
        """Load a story by ID.

        Raises:
            NotFoundError: if no story file exists for `story_id`.
            StorageError: if the file is unreadable or corrupt.
        """
        return self._read(self.path_for(story_id))

    def exists(self, story_id: str) -> bool:
        return self.path_for(story_id).exists()

    def list_stories(self) -> list[Story]:
        """All stories, ordered by creation time.

        Returns [] when the stories directory does not exist. Any story that
        fails to load aborts the listing rather than being silently dropped.
        """
        stories_dir = self.stories_dir()
        if not stories_dir.exists():
            return []

        stories = []
        for f in sorted(stories_dir.glob(f"*{STORY_EXT}")):
            stories.append(self._read(f))

        legacy = [f for ext in LEGACY_STORY_EXTS for f in stories_dir.glob(f"*{ext}")]
        if legacy:
            logger.warning(
                f"{len(legacy)} legacy story file(s) in {stories_dir} are not listed; "
                "run 'tracer story migrate' to convert them"
            )

        stories.sort(key=lambda s: (s.created_at, s.id))
        return stories

    @contextmanager
    def edit(self, story_id: str) -> Iterator[Story]:
        """Load, yield for mutation, then save, all under the story's lock.

        Nothing is written if the body raises.
        """
        _check_id(story_id)
        stories_dir = self.stories_dir()
        with story_lock(stories_dir, story_id, timeout=self.lock_timeout):
            story = self.load(story_id)
            yield story
            self.save(story)

    def find_by_commit(self, commit_hash: str) -> list[Story]:
        return [s for s in self.list_stories() if s.has_commit(commit_hash)]

    def find_by_author(self, author: str) -> list[Story]:
        return [s for s in self.list_stories() if s.author == author]

    def migrate_legacy_stories(self) -> list[str]:
        """Convert legacy <id>.yaml story files to canonical <id>.json.

        Files whose JSON counterpart already exists are left alone. Returns
        the IDs that were converted.
        """
        stories_dir = self.stories_dir()
        if not stories_dir.exists():
            return []

        migrated = []
        for ext in LEGACY_STORY_EXTS:
            for legacy in sorted(stories_dir.glob(f"*{ext}")):
                target = stories_dir / f"{legacy.stem}{STORY_EXT}"
                if target.exists():
                    logger.warning(f"Skipping {legacy.name}: {target.name} already exists")
                    continue
                try:
                    data = yaml.safe_load(legacy.read_text())
                    story = Story.from_dict(_normalize_legacy(data))
                except (OSError, yaml.YAMLError, KeyError, TypeError, ValueError) as e:
                    raise StorageError(f"failed to migrate {legacy.name}: {e}") from e
                self.save(story)
                legacy.unlink()
                migrated.append(story.id)
                logger.info(f"Migrated {legacy.name} -> {story.filename}")
        return migrated


def _normalize_legacy(data: dict) -> dict:
    """YAML parses timestamps into datetimes; the JSON form wants strings."""
    if not isinstance(data, dict):
        raise TypeError("legacy story must be a mapping")

    def fix(value):
        if isinstance(value, datetime):
            return value.isoformat()
        if isinstance(value, dict):
            return {k: fix(v) for k, v in value.items()}
        if isinstance(value, list):
            return [fix(v) for v in value]
        return value

    data = fix(data)
    data.setdefault("status", STATUS_OPEN)
    for key in ("commits", "files"):
        for entry in data.get(key) or []:
            entry.setdefault("timestamp", data.get("updated_at") or data["created_at"])
    return data


def in_window(ts: datetime, since: Optional[datetime], until: Optional[datetime]) -> bool:
    """Inclusive time-window check; None bounds are open."""
    if since is not None and ts < since:
        return False
    if until is not None and ts > until:
        return False
    return True


def story_activity(
    story: Story,
    since: Optional[datetime] = None,
    until: Optional[datetime] = None,
) -> tuple[list, list]:
    """Commits and file changes recorded within [since, until].

    Defaults to the story's lifetime: created_at .. now.
    """
    since = since or story.created_at
    until = until or utc_now()
    commits = [c for c in story.commits if in_window(c.timestamp, since, until)]
    files = [f for f in story.files if in_window(f.timestamp, since, until)]
    return commits, files


def get_current_story_id(git: GitOperations, project: str) -> str:
    """Active story pointer for `project`, or "" if unset."""
    if not project:
        return ""
    return git.get_config(current_story_key(project))


def set_current_story_id(git: GitOperations, project: str, story_id: str) -> None:
    if not project:
        raise ValidationError("project name cannot be empty")
    _check_id(story_id)
    git.set_config(current_story_key(project), story_id)


def clear_current_story_id(git: GitOperations, project: str) -> None:
    if project:
        git.unset_config(current_story_key(project))
