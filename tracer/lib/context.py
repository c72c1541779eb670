"""
Collaborators shared by every command.

Built once per CLI invocation and handed to command handlers, so tests can
construct one around a fake git and a temporary home directory.
"""

from dataclasses import dataclass
from pathlib import Path

from tracer.git.client import Git, GitOperations
from tracer.lib.config import ConfigResolver
from tracer.lib.scope import DirectoryResolver
from tracer.story.stories import StoryStore


@dataclass
class Context:
    git: GitOperations
    dirs: DirectoryResolver
    config: ConfigResolver
    store: StoryStore


def build_context(git: GitOperations | None = None, home: Path | None = None) -> Context:
    git = git if git is not None else Git()
    dirs = DirectoryResolver(git, home=home)
    config = ConfigResolver(dirs)
    return Context(git=git, dirs=dirs, config=config, store=StoryStore(config))
