"""
Story tracking for tracer.

Stories are persisted units of development work with an append-only log
of the commits and files attributed to them.
"""

from tracer.story.fsm import StoryLifecycle
from tracer.story.models import Commit, FileChange, Story
from tracer.story.stories import (
    StoryStore,
    generate_story_id,
    get_current_story_id,
    new_story,
    new_story_with_number,
    set_current_story_id,
    story_activity,
)

__all__ = [
    "Commit",
    "FileChange",
    "Story",
    "StoryLifecycle",
    "StoryStore",
    "generate_story_id",
    "get_current_story_id",
    "new_story",
    "new_story_with_number",
    "set_current_story_id",
    "story_activity",
]
