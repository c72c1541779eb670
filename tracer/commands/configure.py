"""
tracer configure - Project/user settings, show, and clean.
"""

from tracer.lib.context import Context
from tracer.lib.errors import ValidationError
from tracer.lib.settings import (
    clean_all,
    clean_git,
    clean_jira,
    clean_stories,
    configure_project,
    configure_user,
    describe_config,
)

CLEAN_TARGETS = ("git", "stories", "jira", "all")


def cmd_configure(args, ctx: Context) -> int:
    """Set the project and/or user name."""
    if args.project is None and args.user is None:
        print("ERROR: Nothing to configure. Use --project and/or --user")
        return 2

    # Project first: configure_user needs it in git config.
    if args.project is not None:
        configure_project(ctx.git, ctx.config, args.project)
        print(f"Project set to: {args.project}")
    if args.user is not None:
        configure_user(ctx.git, ctx.config, args.user)
        print(f"User set to: {args.user}")
    return 0


def cmd_configure_show(args, ctx: Context) -> int:
    cfg = ctx.config.load()
    print("Current Configuration:")
    width = max(len(label) for label, _ in describe_config(cfg))
    for label, value in describe_config(cfg):
        print(f"  {label + ':':<{width + 1}} {value}")
    return 0


def cmd_configure_clean(args, ctx: Context) -> int:
    target = args.target
    if target == "git":
        clean_git(ctx.git)
        print("Git configurations have been removed")
    elif target == "stories":
        clean_stories(ctx.config)
        print("Story configurations have been removed")
    elif target == "jira":
        clean_jira(ctx.config)
        print("Jira configurations have been removed")
    elif target == "all":
        clean_all(ctx.git, ctx.config)
        print("All configurations have been removed")
    else:
        raise ValidationError(f"unknown clean target '{target}'. Must be one of: {', '.join(CLEAN_TARGETS)}")
    return 0
