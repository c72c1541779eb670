"""Conventional-commit message composition.

    type(scope)!: summary

    body

    Jira: https://<host>/browse/<KEY>

    BREAKING CHANGE: summary
"""

from dataclasses import dataclass

from tracer.lib.constants import COMMIT_TYPES
from tracer.lib.errors import ValidationError


@dataclass
class CommitRequest:
    """What the user asked to commit."""
    type: str
    summary: str = ""
    scope: str = ""
    body: str = ""
    breaking: bool = False
    include_jira: bool = False
    generate: bool = False                     # ask the LLM when summary is empty


def validate_commit_type(commit_type: str) -> None:
    if commit_type not in COMMIT_TYPES:
        raise ValidationError(
            f"invalid commit type: {commit_type}. Must be one of: {', '.join(COMMIT_TYPES)}"
        )


def validate_request(request: CommitRequest) -> None:
    validate_commit_type(request.type)
    if not request.summary and not request.generate:
        raise ValidationError("commit message cannot be empty")


def build_commit_message(commit_type: str, scope: str, summary: str, body: str, breaking: bool) -> str:
    header = commit_type
    if scope:
        header += f"({scope})"
    if breaking:
        header += "!"
    header += f": {summary}"

    if body:
        return f"{header}\n\n{body}"
    return header


def jira_browse_url(host: str, issue_key: str) -> str:
    host = host.rstrip("/")
    if not host.startswith(("http://", "https://")):
        host = f"https://{host}"
    return f"{host}/browse/{issue_key}"


def add_jira_footer(message: str, host: str, issue_key: str) -> str:
    if not host or not issue_key:
        return message
    return f"{message}\n\nJira: {jira_browse_url(host, issue_key)}"


def add_breaking_change(message: str, summary: str, body: str, breaking: bool) -> str:
    """Append the BREAKING CHANGE footer.

    The summary is repeated in the footer unless the body already mentions
    "breaking change", in which case the footer is left as a bare marker.
    """
    if not breaking:
        return message
    if "breaking change" in body.lower():
        return f"{message}\n\nBREAKING CHANGE:"
    return f"{message}\n\nBREAKING CHANGE: {summary}"


def header_description(message: str) -> str:
    """Description part of a `type(scope): description` header."""
    header = message.split("\n", 1)[0]
    _, colon, description = header.partition(":")
    if not colon:
        return header.strip()
    return description.strip()


def mark_breaking(message: str) -> str:
    """Insert the `!` marker before the header's colon."""
    header, newline, rest = message.partition("\n")
    prefix, colon, description = header.partition(":")
    if not colon or prefix.endswith("!"):
        return message
    return f"{prefix}!:{description}{newline}{rest}"
