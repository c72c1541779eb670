"""
tracer commit - Conventional commit linked to the active story.
"""

import sys
from functools import partial

from tracer.integrations.llm import generate_commit_message
from tracer.lib.context import Context
from tracer.workflow.commit_link import CommitLinker
from tracer.workflow.message import CommitRequest


def cmd_commit(args, ctx: Context) -> int:
    request = CommitRequest(
        type=args.type,
        summary=args.message or "",
        scope=args.scope or "",
        body=args.body or "",
        breaking=args.breaking,
        include_jira=args.jira,
        generate=args.generate,
    )

    generator = None
    if args.generate:
        generator = partial(generate_commit_message, url=args.llm_url)

    linker = CommitLinker(ctx.git, ctx.config, ctx.store, generate_message=generator)
    result = linker.run(request)

    if result.commit_hash:
        print(f"Created commit {result.commit_hash[:12]}")
    else:
        print("Created commit")
    print(result.message)

    if result.warning is not None:
        print(f"\nWARNING: {result.warning}", file=sys.stderr)
    elif result.linked:
        print(f"\nLinked to story {result.story_id} ({len(result.files)} file(s))")
    return 0
