"""
tracer story - Create, inspect and move stories through their lifecycle.
"""

from datetime import datetime, timezone

from tracer.lib.context import Context
from tracer.lib.errors import NotConfiguredError, ValidationError
from tracer.lib.settings import CONFIGURE_USER_COMMAND, current_project
from tracer.story.fsm import StoryLifecycle
from tracer.story.models import Story
from tracer.story.stories import (
    clear_current_story_id,
    get_current_story_id,
    new_story,
    new_story_with_number,
    set_current_story_id,
    story_activity,
)


def parse_time(value: str, flag: str) -> datetime:
    """Parse an ISO-8601 / RFC 3339 timestamp. Naive values are UTC."""
    try:
        ts = datetime.fromisoformat(value)
    except ValueError:
        raise ValidationError(f"invalid {flag} time format: {value}") from None
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def resolve_story_id(args, ctx: Context) -> str:
    """Story ID from args, falling back to the active story."""
    story_id = getattr(args, "id", None)
    if story_id:
        return story_id

    current = get_current_story_id(ctx.git, current_project(ctx.git, ctx.config.load()))
    if current:
        return current

    raise ValidationError("No story specified. Use 'tracer story use <id>' to set the active story")


def _print_summary(story: Story) -> None:
    print(f"ID: {story.id}")
    print(f"Title: {story.title}")
    if story.description:
        print(f"Description: {story.description}")
    print(f"Status: {story.status}")
    print(f"Author: {story.author}")
    if story.tags:
        print(f"Tags: {', '.join(story.tags)}")
    print(f"Created: {story.created_at.isoformat()}")
    print("---")


def cmd_story_new(args, ctx: Context) -> int:
    cfg = ctx.config.load()
    author = cfg.author_name or ctx.git.get_config("user.name")
    if not author:
        raise NotConfiguredError("user", CONFIGURE_USER_COMMAND)

    if args.number:
        story = new_story_with_number(ctx.git, args.title, args.description, author, args.number)
    else:
        story = new_story(args.title, args.description, author)
    for tag in args.tags or []:
        story.add_tag(tag)

    ctx.store.save(story)

    if args.use:
        set_current_story_id(ctx.git, current_project(ctx.git, cfg), story.id)

    print(f"Created new story: {story.id}")
    if story.number:
        print(f"Number: {story.number}")
    print(f"Title: {story.title}")
    if story.description:
        print(f"Description: {story.description}")
    if story.tags:
        print(f"Tags: {', '.join(story.tags)}")
    print(f"Author: {story.author}")
    print(f"Status: {story.status}")
    if args.use:
        print("Set as active story")
    return 0


def cmd_story_list(args, ctx: Context) -> int:
    stories = ctx.store.list_stories()
    if not stories:
        print("No stories found")
        return 0

    current = get_current_story_id(ctx.git, current_project(ctx.git, ctx.config.load()))
    for story in stories:
        marker = "*" if story.id == current else " "
        print(f"{marker} {story.id}  {story.status:<11}  {story.title}")
    return 0


def cmd_story_show(args, ctx: Context) -> int:
    story = ctx.store.load(resolve_story_id(args, ctx))

    print(f"Story: {story.title} ({story.id})")
    if story.number:
        print(f"Number:  {story.number}")
    print(f"Status:  {story.status}")
    print(f"Author:  {story.author}")
    if story.jira_key:
        print(f"Jira:    {story.jira_key}")
    if story.tags:
        print(f"Tags:    {', '.join(story.tags)}")
    print(f"Created: {story.created_at.isoformat()}")
    print(f"Updated: {story.updated_at.isoformat()}")
    if story.description:
        print(f"\n{story.description}")
    print(f"\nCommits: {len(story.commits)}  Files: {len(story.files)}")
    return 0


def cmd_story_transition(args, ctx: Context) -> int:
    """start / close / reopen."""
    story_id = resolve_story_id(args, ctx)
    with ctx.store.edit(story_id) as story:
        status = StoryLifecycle(story).apply(args.trigger)
    print(f"Story {story_id} is now {status}")
    return 0


def cmd_story_use(args, ctx: Context) -> int:
    project = current_project(ctx.git, ctx.config.load())

    if args.clear:
        clear_current_story_id(ctx.git, project)
        print("Cleared active story")
        return 0

    if not args.id:
        current = get_current_story_id(ctx.git, project)
        if current:
            print(f"Active story: {current}")
        else:
            print("No active story")
        return 0

    # Reject pointers to stories that do not exist.
    story = ctx.store.load(args.id)
    set_current_story_id(ctx.git, project, story.id)
    print(f"Active story: {story.id} ({story.title})")
    return 0


def cmd_story_by(args, ctx: Context) -> int:
    if not args.author:
        raise ValidationError("author cannot be empty")

    stories = ctx.store.find_by_author(args.author)
    if not stories:
        print(f"No stories found for author {args.author}")
        return 0

    print(f"Stories by {args.author}:\n")
    for story in stories:
        _print_summary(story)
    return 0


def cmd_story_after_hash(args, ctx: Context) -> int:
    if not args.hash:
        raise ValidationError("commit hash is required")

    stories = ctx.store.find_by_commit(args.hash)
    if not stories:
        print(f"No stories found modified after commit {args.hash}")
        return 0

    print(f"Stories modified after commit {args.hash}:\n")
    for story in stories:
        _print_summary(story)
    return 0


def cmd_story_files(args, ctx: Context) -> int:
    story = ctx.store.load(resolve_story_id(args, ctx))
    if not story.files:
        print(f"No files found for story {story.id}")
        return 0

    print(f"Files for story {story.id} ({story.title}):\n")
    for change in story.files:
        print(f"Path: {change.path}")
        print(f"Status: {change.status}")
        print(f"Modified: {change.timestamp.isoformat()}")
        print("---")
    return 0


def cmd_story_commits(args, ctx: Context) -> int:
    story = ctx.store.load(resolve_story_id(args, ctx))
    if not story.commits:
        print(f"No commits found for story {story.id}")
        return 0

    print(f"Commits for story {story.id} ({story.title}):\n")
    for commit in story.commits:
        print(f"Hash: {commit.hash}")
        print(f"Author: {commit.author}")
        print(f"Date: {commit.timestamp.isoformat()}")
        print(f"Message: {commit.message}")
        print("---")
    return 0


def _print_activity(story: Story, heading: str, since: datetime, until: datetime) -> None:
    commits, files = story_activity(story, since, until)

    print(f"{heading}: {story.title} ({story.id})\n")
    print(f"Time Range: {since.isoformat()} to {until.isoformat()}\n")

    if commits:
        print("Commits:")
        for commit in commits:
            print(f"  {commit.timestamp.isoformat()}")
            print(f"  Hash: {commit.hash}")
            print(f"  Author: {commit.author}")
            print(f"  Message: {commit.message}")
            print("  ---")
    if files:
        print("\nFile Changes:")
        for change in files:
            print(f"  {change.timestamp.isoformat()}")
            print(f"  Path: {change.path}")
            print(f"  Status: {change.status}")
            print("  ---")
    if not commits and not files:
        print("No activity in this time range")


def cmd_story_diary(args, ctx: Context) -> int:
    """Activity between --since (default: creation) and --until (default: now)."""
    story = ctx.store.load(resolve_story_id(args, ctx))
    since = parse_time(args.since, "since") if args.since else story.created_at
    until = parse_time(args.until, "until") if args.until else datetime.now(timezone.utc)
    _print_activity(story, "Story Diary", since, until)
    return 0


def cmd_story_diff(args, ctx: Context) -> int:
    """Changes between --from (default: creation) and --to (default: last update)."""
    story = ctx.store.load(resolve_story_id(args, ctx))
    since = parse_time(args.from_time, "from") if args.from_time else story.created_at
    until = parse_time(args.to_time, "to") if args.to_time else story.updated_at
    _print_activity(story, "Story Changes", since, until)
    return 0


def cmd_story_tag(args, ctx: Context) -> int:
    story_id = resolve_story_id(args, ctx)
    with ctx.store.edit(story_id) as story:
        for tag in args.tags:
            story.add_tag(tag)
    print(f"Tags: {', '.join(story.tags)}")
    return 0


def cmd_story_migrate(args, ctx: Context) -> int:
    migrated = ctx.store.migrate_legacy_stories()
    if not migrated:
        print("No legacy story files to migrate")
        return 0
    for story_id in migrated:
        print(f"Migrated {story_id}")
    print(f"\n{len(migrated)} story file(s) migrated")
    return 0
