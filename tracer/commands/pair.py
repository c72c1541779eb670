"""
tracer pair - Pair programming sessions.
"""

from tracer.lib.context import Context
from tracer.lib.pair import current_pair, start_pair, stop_pair


def cmd_pair_start(args, ctx: Context) -> int:
    start_pair(ctx.git, ctx.config, args.partner)
    print(f"Started pair programming session with {args.partner}")
    return 0


def cmd_pair_stop(args, ctx: Context) -> int:
    stop_pair(ctx.git, ctx.config)
    print("Stopped pair programming session")
    return 0


def cmd_pair_status(args, ctx: Context) -> int:
    partner = current_pair(ctx.git)
    if not partner:
        print("No active pair programming session")
    else:
        print(f"Current pair: {partner}")
    return 0
