"""
Data models for stories.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from tracer.lib.constants import STORY_EXT


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _format_ts(ts: datetime) -> str:
    return ts.isoformat()


def _parse_ts(value: str) -> datetime:
    ts = datetime.fromisoformat(value)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


@dataclass(frozen=True)
class Commit:
    """A git commit attributed to a story. Write-once."""
    hash: str
    message: str
    author: str
    timestamp: datetime

    def to_dict(self) -> dict:
        return {
            "hash": self.hash,
            "message": self.message,
            "author": self.author,
            "timestamp": _format_ts(self.timestamp),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Commit":
        return cls(
            hash=data["hash"],
            message=data["message"],
            author=data["author"],
            timestamp=_parse_ts(data["timestamp"]),
        )


@dataclass(frozen=True)
class FileChange:
    """A file touched while the story was active. Write-once."""
    path: str
    status: str                                # added, modified, deleted
    timestamp: datetime

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "status": self.status,
            "timestamp": _format_ts(self.timestamp),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "FileChange":
        return cls(
            path=data["path"],
            status=data["status"],
            timestamp=_parse_ts(data["timestamp"]),
        )


@dataclass
class Story:
    """A unit of tracked development work.

    `commits` and `files` are append-only: entries are added through
    add_commit()/add_file() and never removed or rewritten.
    """
    id: str                                    # 32 hex chars
    title: str
    description: str
    status: str                                # open, in_progress, closed
    created_at: datetime
    updated_at: datetime
    author: str
    tags: list[str] = field(default_factory=list)
    jira_key: Optional[str] = None
    number: int = 0                            # set by new_story_with_number
    commits: list[Commit] = field(default_factory=list)
    files: list[FileChange] = field(default_factory=list)

    def __setattr__(self, name, value):
        if name == "id" and "id" in self.__dict__ and self.__dict__["id"] != value:
            raise AttributeError("story id is immutable")
        super().__setattr__(name, value)

    @property
    def filename(self) -> str:
        """Derived file name; not serialized."""
        return f"{self.id}{STORY_EXT}"

    def touch(self) -> None:
        """Advance updated_at, never moving it backwards."""
        now = utc_now()
        if now > self.updated_at:
            self.updated_at = now

    def has_commit(self, commit_hash: str) -> bool:
        return any(c.hash == commit_hash for c in self.commits)

    def add_commit(self, commit_hash: str, message: str, author: str, timestamp: datetime) -> bool:
        """Append a commit record.

        Returns False (and changes nothing) if the hash is already linked,
        which makes re-running a link idempotent.
        """
        if self.has_commit(commit_hash):
            return False
        self.commits.append(Commit(commit_hash, message, author, timestamp))
        self.touch()
        return True

    def add_file(self, path: str, status: str) -> None:
        self.files.append(FileChange(path, status, utc_now()))
        self.touch()

    def add_tag(self, tag: str) -> None:
        # Tags are an ordered set
        if tag and tag not in self.tags:
            self.tags.append(tag)
            self.touch()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "number": self.number,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "created_at": _format_ts(self.created_at),
            "updated_at": _format_ts(self.updated_at),
            "author": self.author,
            "tags": list(self.tags),
            "jira_key": self.jira_key,
            "commits": [c.to_dict() for c in self.commits],
            "files": [f.to_dict() for f in self.files],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Story":
        return cls(
            id=data["id"],
            number=data.get("number", 0),
            title=data["title"],
            description=data.get("description", ""),
            status=data["status"],
            created_at=_parse_ts(data["created_at"]),
            updated_at=_parse_ts(data["updated_at"]),
            author=data.get("author", ""),
            tags=list(data.get("tags") or []),
            jira_key=data.get("jira_key"),
            commits=[Commit.from_dict(c) for c in data.get("commits") or []],
            files=[FileChange.from_dict(f) for f in data.get("files") or []],
        )
