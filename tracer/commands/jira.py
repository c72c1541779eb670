"""
tracer jira - Configure Jira and manage linked issues.
"""

from tracer.integrations.jira import JiraClient, link_story_to_issue
from tracer.lib.context import Context
from tracer.lib.settings import configure_jira


def cmd_jira_configure(args, ctx: Context) -> int:
    cfg = configure_jira(ctx.config, args.host, args.token or "", args.project or "", args.user or "")
    print("Jira configuration updated:")
    print(f"Host: {cfg.jira_host}")
    print(f"Project: {cfg.jira_project}")
    print(f"User: {cfg.jira_user}")
    print(f"Token: {'[CONFIGURED]' if cfg.jira_token else '[NOT CONFIGURED]'}")
    return 0


def cmd_jira_create(args, ctx: Context) -> int:
    client = JiraClient(ctx.config.load())
    issue = client.create_issue(args.title, args.description or "", args.type, args.priority or "")
    print(f"Created Jira issue: {issue.key}")
    print(f"URL: {client.browse_url(issue.key)}")
    return 0


def cmd_jira_update(args, ctx: Context) -> int:
    client = JiraClient(ctx.config.load())
    client.update_issue(args.issue, status=args.status or "", assignee=args.assignee or "")
    print(f"Updated Jira issue: {args.issue}")
    print(f"URL: {client.browse_url(args.issue)}")
    return 0


def cmd_jira_link(args, ctx: Context) -> int:
    client = JiraClient(ctx.config.load())
    story = link_story_to_issue(client, ctx.store, args.story, args.issue)
    print(f"Linked story {story.id} to Jira issue {story.jira_key}")
    print(f"URL: {client.browse_url(story.jira_key)}")
    return 0
