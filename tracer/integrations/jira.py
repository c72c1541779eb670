"""Jira REST client.

Covers the handful of calls tracer needs: create, fetch, transition and
assign issues. Uses basic auth (user + API token) against the v2 REST API.
"""

import base64
import json
import logging
from dataclasses import dataclass
from typing import Optional
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from tracer.lib.config import Config
from tracer.lib.errors import ExternalServiceError, ValidationError
from tracer.story.models import Story
from tracer.story.stories import StoryStore
from tracer.workflow.message import jira_browse_url

logger = logging.getLogger(__name__)

JIRA_TIMEOUT_SECONDS = 30
API_PREFIX = "/rest/api/2"


@dataclass
class JiraIssue:
    key: str
    summary: str = ""
    status: str = ""
    assignee: Optional[str] = None

    @classmethod
    def from_api(cls, data: dict) -> "JiraIssue":
        fields = data.get("fields") or {}
        status = (fields.get("status") or {}).get("name", "")
        assignee = (fields.get("assignee") or {}).get("name")
        return cls(
            key=data["key"],
            summary=fields.get("summary", ""),
            status=status,
            assignee=assignee,
        )


class JiraClient:
    """Thin wrapper over the Jira REST API.

    Raises ValidationError at construction when host or token is missing,
    and ExternalServiceError for any HTTP or transport failure.
    """

    def __init__(self, cfg: Config, timeout: float = JIRA_TIMEOUT_SECONDS):
        if not cfg.jira_host:
            raise ValidationError("JIRA host is required")
        if not cfg.jira_token:
            raise ValidationError("JIRA token is required")

        self.cfg = cfg
        self.timeout = timeout
        host = cfg.jira_host.rstrip("/")
        if not host.startswith(("http://", "https://")):
            host = f"https://{host}"
        self.base_url = host + API_PREFIX
        credentials = f"{cfg.jira_user}:{cfg.jira_token}".encode()
        self._auth = "Basic " + base64.b64encode(credentials).decode()

    def _request(self, method: str, path: str, payload: dict | None = None) -> dict:
        url = f"{self.base_url}{path}"
        data = json.dumps(payload).encode() if payload is not None else None
        req = Request(
            url,
            data=data,
            method=method,
            headers={
                "Authorization": self._auth,
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
        )
        logger.debug(f"Jira {method} {url}")
        try:
            with urlopen(req, timeout=self.timeout) as response:
                body = response.read()
        except HTTPError as e:
            raise ExternalServiceError(f"Jira {method} {path} returned HTTP {e.code}") from e
        except (URLError, TimeoutError, OSError) as e:
            raise ExternalServiceError(f"Jira {method} {path} failed: {e}") from e

        if not body:
            return {}
        try:
            return json.loads(body)
        except json.JSONDecodeError as e:
            raise ExternalServiceError(f"Jira {method} {path} returned invalid JSON") from e

    def browse_url(self, issue_key: str) -> str:
        return jira_browse_url(self.cfg.jira_host, issue_key)

    def create_issue(
        self,
        title: str,
        description: str = "",
        issue_type: str = "Story",
        priority: str = "",
    ) -> JiraIssue:
        if not title:
            raise ValidationError("title cannot be empty")
        if not self.cfg.jira_project:
            raise ValidationError("JIRA project is required")

        fields = {
            "project": {"key": self.cfg.jira_project},
            "issuetype": {"name": issue_type},
            "summary": title,
            "description": description,
        }
        if priority:
            fields["priority"] = {"name": priority}

        data = self._request("POST", "/issue", {"fields": fields})
        if "key" not in data:
            raise ExternalServiceError("Jira create issue response has no key")
        logger.info(f"Created Jira issue {data['key']}")
        return JiraIssue(key=data["key"], summary=title)

    def get_issue(self, issue_key: str) -> JiraIssue:
        if not issue_key:
            raise ValidationError("issue key cannot be empty")
        data = self._request("GET", f"/issue/{issue_key}")
        if "key" not in data:
            raise ExternalServiceError(f"Jira issue {issue_key} response has no key")
        return JiraIssue.from_api(data)

    def transition_issue(self, issue_key: str, status: str) -> None:
        """Move the issue to `status` using the matching named transition."""
        data = self._request("GET", f"/issue/{issue_key}/transitions")
        transition_id = None
        for t in data.get("transitions", []):
            if t.get("name") == status:
                transition_id = t.get("id")
                break
        if transition_id is None:
            raise ExternalServiceError(f"status transition to '{status}' not available")
        self._request("POST", f"/issue/{issue_key}/transitions", {"transition": {"id": transition_id}})

    def update_issue(self, issue_key: str, status: str = "", assignee: str = "") -> None:
        # Fails fast if the issue does not exist.
        self.get_issue(issue_key)

        if status:
            self.transition_issue(issue_key, status)
        if assignee:
            self._request("PUT", f"/issue/{issue_key}", {"fields": {"assignee": {"name": assignee}}})
        logger.info(f"Updated Jira issue {issue_key}")


def link_story_to_issue(client: JiraClient, store: StoryStore, story_id: str, issue_key: str) -> Story:
    """Record `issue_key` on the story after confirming the issue exists."""
    issue = client.get_issue(issue_key)
    with store.edit(story_id) as story:
        story.jira_key = issue.key
        story.touch()
    logger.info(f"Linked story {story_id} to Jira issue {issue.key}")
    return story
