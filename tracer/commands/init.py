"""
tracer init - Create the config file for the current scope.
"""

from tracer.lib.context import Context
from tracer.lib.settings import init_tracer


def cmd_init(args, ctx: Context) -> int:
    path = init_tracer(ctx.git, ctx.config)
    cfg = ctx.config.load()

    print(f"Initialized tracer config at {path}")
    print(f"  Project: {cfg.git_repo or '(not set)'}")
    print(f"  User:    {cfg.author_name or '(not set)'}")
    if not cfg.git_repo or not cfg.author_name:
        print("\nRun 'tracer configure --project <name> --user <name>' to finish setup.")
    return 0
