#!/usr/bin/env python3
"""tracer CLI entrypoint."""

import argparse
import logging
import sys

from tracer import __version__
from tracer.commands import commit as cmd_commit_module
from tracer.commands import configure as cmd_configure_module
from tracer.commands import init as cmd_init_module
from tracer.commands import jira as cmd_jira_module
from tracer.commands import pair as cmd_pair_module
from tracer.commands import story as cmd_story_module
from tracer.integrations.llm import DEFAULT_LLM_URL
from tracer.lib.constants import COMMIT_TYPES
from tracer.lib.context import build_context
from tracer.lib.errors import TracerError, exit_code

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='tracer', description='Track commits and file changes against stories')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable debug logging')
    subparsers = parser.add_subparsers(dest='command', required=True)

    # tracer init
    p_init = subparsers.add_parser('init', help='Create config for the current repository (or globally)')
    p_init.set_defaults(func=cmd_init_module.cmd_init)

    # tracer configure
    p_configure = subparsers.add_parser('configure', help='Configure project and user')
    p_configure.add_argument('--project', '-p', help='Set the project name')
    p_configure.add_argument('--user', '-u', help='Set the user name')
    p_configure.set_defaults(func=cmd_configure_module.cmd_configure)
    configure_sub = p_configure.add_subparsers(dest='configure_cmd')

    p_configure_show = configure_sub.add_parser('show', help='Show current configuration')
    p_configure_show.set_defaults(func=cmd_configure_module.cmd_configure_show)

    p_configure_clean = configure_sub.add_parser('clean', help='Remove configuration')
    p_configure_clean.add_argument('target', choices=cmd_configure_module.CLEAN_TARGETS, help='What to remove')
    p_configure_clean.set_defaults(func=cmd_configure_module.cmd_configure_clean)

    # tracer story
    p_story = subparsers.add_parser('story', help='Manage stories')
    story_sub = p_story.add_subparsers(dest='story_cmd', required=True)

    p_story_new = story_sub.add_parser('new', help='Create a story')
    p_story_new.add_argument('--title', '-t', required=True, help='Story title')
    p_story_new.add_argument('--description', '-d', default='', help='Story description')
    p_story_new.add_argument('--tags', nargs='*', default=[], help='Story tags')
    p_story_new.add_argument('--number', '-n', type=int, default=0, help='Story number (creates a feature branch)')
    p_story_new.add_argument('--use', action='store_true', help='Make the new story the active story')
    p_story_new.set_defaults(func=cmd_story_module.cmd_story_new)

    p_story_list = story_sub.add_parser('list', help='List stories')
    p_story_list.set_defaults(func=cmd_story_module.cmd_story_list)

    p_story_show = story_sub.add_parser('show', help='Show story details')
    p_story_show.add_argument('id', nargs='?', help='Story ID (uses active story if not specified)')
    p_story_show.set_defaults(func=cmd_story_module.cmd_story_show)

    for trigger, help_text in (
        ('start', 'Mark story in progress'),
        ('close', 'Close story'),
        ('reopen', 'Reopen a closed story'),
    ):
        p = story_sub.add_parser(trigger, help=help_text)
        p.add_argument('id', nargs='?', help='Story ID (uses active story if not specified)')
        p.set_defaults(func=cmd_story_module.cmd_story_transition, trigger=trigger)

    p_story_use = story_sub.add_parser('use', help='Set/show the active story')
    p_story_use.add_argument('id', nargs='?', help='Story ID to use')
    p_story_use.add_argument('--clear', action='store_true', help='Clear the active story')
    p_story_use.set_defaults(func=cmd_story_module.cmd_story_use)

    p_story_by = story_sub.add_parser('by', help='List stories by author')
    p_story_by.add_argument('--author', '-a', required=True, help='Story author')
    p_story_by.set_defaults(func=cmd_story_module.cmd_story_by)

    p_story_after = story_sub.add_parser('after-hash', help='List stories containing a commit')
    p_story_after.add_argument('--hash', required=True, help='Commit hash')
    p_story_after.set_defaults(func=cmd_story_module.cmd_story_after_hash)

    p_story_files = story_sub.add_parser('files', help='List files changed for a story')
    p_story_files.add_argument('--id', '-i', help='Story ID (uses active story if not specified)')
    p_story_files.set_defaults(func=cmd_story_module.cmd_story_files)

    p_story_commits = story_sub.add_parser('commits', help='List commits for a story')
    p_story_commits.add_argument('--id', '-i', help='Story ID (uses active story if not specified)')
    p_story_commits.set_defaults(func=cmd_story_module.cmd_story_commits)

    p_story_diary = story_sub.add_parser('diary', help='Show story activity in a time range')
    p_story_diary.add_argument('--id', '-i', help='Story ID (uses active story if not specified)')
    p_story_diary.add_argument('--since', help='Start time (ISO 8601)')
    p_story_diary.add_argument('--until', help='End time (ISO 8601)')
    p_story_diary.set_defaults(func=cmd_story_module.cmd_story_diary)

    p_story_diff = story_sub.add_parser('diff', help='Show story changes between two points')
    p_story_diff.add_argument('--id', '-i', help='Story ID (uses active story if not specified)')
    p_story_diff.add_argument('--from', dest='from_time', help='Start point (ISO 8601)')
    p_story_diff.add_argument('--to', dest='to_time', help='End point (ISO 8601)')
    p_story_diff.set_defaults(func=cmd_story_module.cmd_story_diff)

    p_story_tag = story_sub.add_parser('tag', help='Add tags to a story')
    p_story_tag.add_argument('tags', nargs='+', help='Tags to add')
    p_story_tag.add_argument('--id', '-i', help='Story ID (uses active story if not specified)')
    p_story_tag.set_defaults(func=cmd_story_module.cmd_story_tag)

    p_story_migrate = story_sub.add_parser('migrate', help='Convert legacy YAML story files to JSON')
    p_story_migrate.set_defaults(func=cmd_story_module.cmd_story_migrate)

    # tracer commit
    p_commit = subparsers.add_parser('commit', help='Create a conventional commit linked to the active story')
    p_commit.add_argument('--type', required=True, help=f"Commit type ({', '.join(COMMIT_TYPES)})")
    p_commit.add_argument('--message', '-m', help='Commit summary')
    p_commit.add_argument('--scope', '-s', help='Commit scope')
    p_commit.add_argument('--body', '-b', help='Commit body')
    p_commit.add_argument('--breaking', action='store_true', help='Mark as a breaking change')
    p_commit.add_argument('--jira', action='store_true', help='Add the Jira issue URL footer')
    p_commit.add_argument('--generate', '-g', action='store_true', help='Generate the message from staged changes')
    p_commit.add_argument('--llm-url', default=DEFAULT_LLM_URL, help='LLM generate endpoint')
    p_commit.set_defaults(func=cmd_commit_module.cmd_commit)

    # tracer jira
    p_jira = subparsers.add_parser('jira', help='Jira integration')
    jira_sub = p_jira.add_subparsers(dest='jira_cmd', required=True)

    p_jira_configure = jira_sub.add_parser('configure', help='Configure Jira settings')
    p_jira_configure.add_argument('--host', required=True, help='Jira host')
    p_jira_configure.add_argument('--token', help='Jira API token')
    p_jira_configure.add_argument('--project', help='Default Jira project key')
    p_jira_configure.add_argument('--user', help='Jira username/email')
    p_jira_configure.set_defaults(func=cmd_jira_module.cmd_jira_configure)

    p_jira_create = jira_sub.add_parser('create', help='Create a Jira issue')
    p_jira_create.add_argument('--title', required=True, help='Issue title')
    p_jira_create.add_argument('--description', help='Issue description')
    p_jira_create.add_argument('--type', default='Story', help='Issue type')
    p_jira_create.add_argument('--priority', help='Issue priority')
    p_jira_create.set_defaults(func=cmd_jira_module.cmd_jira_create)

    p_jira_update = jira_sub.add_parser('update', help='Update a Jira issue')
    p_jira_update.add_argument('--issue', required=True, help='Issue key')
    p_jira_update.add_argument('--status', help='Transition to this status')
    p_jira_update.add_argument('--assignee', help='New assignee')
    p_jira_update.set_defaults(func=cmd_jira_module.cmd_jira_update)

    p_jira_link = jira_sub.add_parser('link', help='Link a story to a Jira issue')
    p_jira_link.add_argument('--story', required=True, help='Story ID')
    p_jira_link.add_argument('--issue', required=True, help='Issue key')
    p_jira_link.set_defaults(func=cmd_jira_module.cmd_jira_link)

    # tracer pair
    p_pair = subparsers.add_parser('pair', help='Pair programming sessions')
    pair_sub = p_pair.add_subparsers(dest='pair_cmd', required=True)

    p_pair_start = pair_sub.add_parser('start', help='Start a session')
    p_pair_start.add_argument('partner', help='Partner name')
    p_pair_start.set_defaults(func=cmd_pair_module.cmd_pair_start)

    p_pair_stop = pair_sub.add_parser('stop', help='Stop the session')
    p_pair_stop.set_defaults(func=cmd_pair_module.cmd_pair_stop)

    p_pair_status = pair_sub.add_parser('status', help='Show the current partner')
    p_pair_status.set_defaults(func=cmd_pair_module.cmd_pair_status)

    return parser


def main(argv=None, ctx=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    try:
        if ctx is None:
            ctx = build_context()
        return args.func(args, ctx)
    except TracerError as e:
        logger.debug(f"{args.command} failed", exc_info=True)
        print(f"ERROR: {e}", file=sys.stderr)
        return exit_code(e)


if __name__ == '__main__':
    sys.exit(main())
