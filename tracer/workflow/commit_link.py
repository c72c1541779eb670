"""
Commit-to-story linking.

Steps, in order:
  1. compose  - build the conventional-commit message
  2. commit   - git commit; failure here is fatal and nothing else has changed
  3. resolve  - read the active story pointer for the project
  4. link     - append the commit and its files to the story and save

Once step 2 succeeds the commit stands. Failures in steps 3-4 are returned
as a TrackingWarning on the result, never raised, so callers can tell
"nothing was committed" apart from "committed but not tracked".
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from tracer.git.client import GitOperations
from tracer.git.status import STATUS_MODIFIED
from tracer.lib.config import Config, ConfigResolver
from tracer.lib.errors import (
    ExternalServiceError,
    GitError,
    TracerError,
    TrackingWarning,
)
from tracer.lib.settings import current_project
from tracer.story.models import utc_now
from tracer.story.stories import StoryStore, get_current_story_id
from tracer.workflow.message import (
    CommitRequest,
    add_breaking_change,
    add_jira_footer,
    build_commit_message,
    header_description,
    mark_breaking,
    validate_request,
)

logger = logging.getLogger(__name__)

MessageGenerator = Callable[[list[str]], str]


@dataclass
class CommitResult:
    """Outcome of CommitLinker.run()."""
    message: str
    commit_hash: str = ""
    story_id: Optional[str] = None
    linked: bool = False
    files: list[tuple[str, str]] = field(default_factory=list)
    warning: Optional[TrackingWarning] = None

    @property
    def tracked(self) -> bool:
        return self.linked and self.warning is None


class CommitLinker:
    """Creates a commit and records it on the active story.

    Args:
        git: Git collaborator
        config: Config resolver for the current scope
        store: Story store the active story lives in
        generate_message: Optional LLM-backed generator used when the
            request has no summary and asks for generation
        detailed_status: Record per-file added/modified/deleted from git.
            When False every file is recorded as "modified".
    """

    def __init__(
        self,
        git: GitOperations,
        config: ConfigResolver,
        store: StoryStore,
        generate_message: MessageGenerator | None = None,
        detailed_status: bool = True,
    ):
        self.git = git
        self.config = config
        self.store = store
        self.generate_message = generate_message
        self.detailed_status = detailed_status

    # Step 1

    def compose(self, request: CommitRequest, cfg: Config) -> str:
        validate_request(request)

        summary = request.summary
        if summary:
            message = build_commit_message(
                request.type, request.scope, summary, request.body, request.breaking
            )
        else:
            message = self._generate()
            summary = header_description(message)
            if request.breaking:
                message = mark_breaking(message)

        if request.include_jira:
            issue_key = self._jira_issue_key(cfg)
            message = add_jira_footer(message, cfg.jira_host, issue_key)

        return add_breaking_change(message, summary, request.body, request.breaking)

    def _generate(self) -> str:
        if self.generate_message is None:
            raise ExternalServiceError("no commit message generator configured")
        diffs = self.git.get_diffs()
        try:
            message = self.generate_message(diffs)
        except ExternalServiceError:
            raise
        except Exception as e:
            raise ExternalServiceError(f"commit message generation failed: {e}") from e
        if not message:
            raise ExternalServiceError("commit message generator returned an empty message")
        return message

    def _jira_issue_key(self, cfg: Config) -> str:
        """Issue key for the Jira footer, or "" when it cannot be resolved."""
        if not cfg.jira_host or not cfg.jira_project:
            return ""
        try:
            story_id = get_current_story_id(self.git, current_project(self.git, cfg))
        except GitError as e:
            logger.warning(f"Could not read active story for Jira footer: {e}")
            return ""
        if not story_id:
            return ""

        try:
            story = self.store.load(story_id)
            if story.jira_key:
                return story.jira_key
        except TracerError as e:
            logger.debug(f"Active story {story_id} not loadable for Jira footer: {e}")
        return f"{cfg.jira_project}-{story_id}"

    # Steps 2-4

    def run(self, request: CommitRequest) -> CommitResult:
        """Compose, commit, then link the commit to the active story.

        Raises:
            ValidationError / ExternalServiceError / ConfigError: before or
                during the commit itself. Nothing was committed.

        Tracking problems after the commit are reported in
        CommitResult.warning.
        """
        cfg = self.config.load()
        message = self.compose(request, cfg)

        self.git.commit(message)
        result = CommitResult(message=message)
        logger.info("Commit created")

        try:
            result.commit_hash = self.git.get_current_head()
        except GitError as e:
            return self._warn(result, "commit created but its hash could not be read", e)

        try:
            self._link(result, cfg)
        except (TracerError, OSError) as e:
            return self._warn(result, f"commit {result.commit_hash[:12]} not tracked: {e}", e)

        return result

    def _link(self, result: CommitResult, cfg: Config) -> None:
        project = current_project(self.git, cfg)
        story_id = get_current_story_id(self.git, project)
        if not story_id:
            self._warn(result, f"commit {result.commit_hash[:12]} not tracked: no active story")
            return
        result.story_id = story_id

        try:
            author = self.git.get_author()
        except GitError:
            author = cfg.author_name

        files = self._changed_files()

        with self.store.edit(story_id) as story:
            added = story.add_commit(result.commit_hash, result.message, author, utc_now())
            if not added:
                logger.info(f"Commit {result.commit_hash[:12]} already linked to story {story_id}")
            else:
                for path, status in files:
                    story.add_file(path, status)
                result.files = files

        result.linked = True
        logger.info(f"Linked commit {result.commit_hash[:12]} to story {story_id}")

    def _changed_files(self) -> list[tuple[str, str]]:
        try:
            if self.detailed_status:
                return self.git.get_changed_file_statuses()
            return [(path, STATUS_MODIFIED) for path in self.git.get_changed_files()]
        except GitError as e:
            logger.warning(f"Could not list changed files, linking commit only: {e}")
            return []

    def _warn(self, result: CommitResult, message: str, cause: BaseException | None = None) -> CommitResult:
        logger.warning(message)
        result.warning = TrackingWarning(message, cause)
        return result
