"""Tests for tracer.workflow.commit_link module."""

import errno
import fcntl

import pytest

from tracer.git.status import STATUS_ADDED, STATUS_DELETED, STATUS_MODIFIED
from tracer.lib.config import Config
from tracer.lib.errors import (
    ExternalServiceError,
    GitError,
    StorageError,
    TracerError,
    TrackingWarning,
    ValidationError,
)
from tracer.story.stories import new_story, set_current_story_id
from tracer.workflow.commit_link import CommitLinker
from tracer.workflow.message import CommitRequest


@pytest.fixture
def active_story(ctx, git):
    git.config["current.project"] = "myproj"
    story = new_story("Add auth", "impl OAuth2", "alice")
    ctx.store.save(story)
    set_current_story_id(git, "myproj", story.id)
    return story


def linker_for(ctx, **kwargs):
    return CommitLinker(ctx.git, ctx.config, ctx.store, **kwargs)


class TestCommitAndLink:
    """Happy path."""

    def test_links_commit_and_files(self, ctx, git, active_story):
        git.changed = [("auth.go", STATUS_ADDED), ("main.go", STATUS_MODIFIED), ("old.go", STATUS_DELETED)]

        result = linker_for(ctx).run(CommitRequest(type="feat", scope="auth", summary="add login"))

        assert result.tracked
        assert result.warning is None
        assert result.commit_hash == git.head
        assert result.story_id == active_story.id
        assert git.commits == ["feat(auth): add login"]

        story = ctx.store.load(active_story.id)
        assert [c.hash for c in story.commits] == [git.head]
        assert story.commits[0].author == "alice"
        assert story.commits[0].message == "feat(auth): add login"
        assert [(f.path, f.status) for f in story.files] == git.changed

    def test_simple_status_records_modified(self, ctx, git, active_story):
        git.changed = [("auth.go", STATUS_ADDED)]
        linker_for(ctx, detailed_status=False).run(CommitRequest(type="feat", summary="x"))
        story = ctx.store.load(active_story.id)
        assert [(f.path, f.status) for f in story.files] == [("auth.go", STATUS_MODIFIED)]

    def test_author_falls_back_to_config(self, ctx, git, active_story):
        ctx.config.save(Config(author_name="carol"))
        git.fail["get_author"] = GitError("git config user.name failed")
        linker_for(ctx).run(CommitRequest(type="fix", summary="y"))
        assert ctx.store.load(active_story.id).commits[0].author == "carol"

    def test_changed_files_failure_still_links_commit(self, ctx, git, active_story, caplog):
        git.fail["get_changed_file_statuses"] = GitError("diff-tree failed")
        result = linker_for(ctx).run(CommitRequest(type="fix", summary="y"))
        assert result.tracked
        story = ctx.store.load(active_story.id)
        assert len(story.commits) == 1
        assert story.files == []
        assert "Could not list changed files" in caplog.text

    def test_project_from_config_when_git_key_unset(self, ctx, git):
        ctx.config.save(Config(git_repo="cfgproj"))
        story = new_story("Title", "", "alice")
        ctx.store.save(story)
        set_current_story_id(git, "cfgproj", story.id)

        result = linker_for(ctx).run(CommitRequest(type="chore", summary="z"))
        assert result.story_id == story.id
        assert result.linked


class TestFatalFailures:
    """Nothing is committed or tracked."""

    def test_invalid_type(self, ctx, git, active_story):
        with pytest.raises(ValidationError):
            linker_for(ctx).run(CommitRequest(type="feature", summary="x"))
        assert git.commits == []

    def test_commit_failure_propagates(self, ctx, git, active_story):
        git.fail["commit"] = GitError("git commit failed: nothing to commit")
        with pytest.raises(GitError, match="nothing to commit"):
            linker_for(ctx).run(CommitRequest(type="feat", summary="x"))
        assert ctx.store.load(active_story.id).commits == []

    def test_generator_error_is_external_service_error(self, ctx, git):
        def broken(diffs):
            raise ConnectionError("refused")

        with pytest.raises(ExternalServiceError, match="commit message generation failed"):
            linker_for(ctx, generate_message=broken).run(CommitRequest(type="feat", generate=True))
        assert git.commits == []

    def test_generate_without_generator(self, ctx, git):
        with pytest.raises(ExternalServiceError):
            linker_for(ctx).run(CommitRequest(type="feat", generate=True))
        assert git.commits == []


class TestTrackingFailures:
    """Commit stands; tracking problems come back as a warning."""

    def test_save_failure_after_commit(self, ctx, git, active_story, monkeypatch):
        def failing_save(story):
            raise StorageError("disk full")

        monkeypatch.setattr(ctx.store, "save", failing_save)

        result = linker_for(ctx).run(CommitRequest(type="feat", summary="add login"))

        assert result.commit_hash == git.head
        assert git.commits == ["feat: add login"]
        assert isinstance(result.warning, TrackingWarning)
        assert not isinstance(result.warning, TracerError)
        assert isinstance(result.warning.cause, StorageError)
        assert not result.tracked

    def test_no_active_story(self, ctx, git, caplog):
        git.config["current.project"] = "myproj"
        result = linker_for(ctx).run(CommitRequest(type="feat", summary="x"))
        assert result.commit_hash == git.head
        assert result.story_id is None
        assert "no active story" in str(result.warning)
        assert "not tracked" in caplog.text

    def test_pointer_to_missing_story(self, ctx, git):
        git.config["current.project"] = "myproj"
        set_current_story_id(git, "myproj", "0" * 32)
        result = linker_for(ctx).run(CommitRequest(type="feat", summary="x"))
        assert result.commit_hash == git.head
        assert isinstance(result.warning, TrackingWarning)
        assert not result.linked

    def test_head_unreadable(self, ctx, git, active_story):
        git.fail["get_current_head"] = GitError("rev-parse failed")
        result = linker_for(ctx).run(CommitRequest(type="feat", summary="x"))
        assert git.commits == ["feat: x"]
        assert result.commit_hash == ""
        assert isinstance(result.warning, TrackingWarning)

    def test_lock_failure_after_commit(self, ctx, git, active_story, monkeypatch):
        def no_locks(fd, operation):
            raise OSError(errno.ENOLCK, "No locks available")

        monkeypatch.setattr(fcntl, "flock", no_locks)

        result = linker_for(ctx).run(CommitRequest(type="feat", summary="x"))

        assert git.commits == ["feat: x"]
        assert result.commit_hash == git.head
        assert isinstance(result.warning, TrackingWarning)
        assert isinstance(result.warning.cause, StorageError)
        assert "No locks available" in str(result.warning)
        assert not result.linked

    def test_unusable_locks_dir_after_commit(self, ctx, git, active_story):
        (ctx.store.stories_dir() / ".locks").write_text("not a directory")

        result = linker_for(ctx).run(CommitRequest(type="feat", summary="x"))

        assert git.commits == ["feat: x"]
        assert isinstance(result.warning, TrackingWarning)
        assert isinstance(result.warning.cause, StorageError)
        assert ctx.store.load(active_story.id).commits == []

    def test_relinking_same_hash_is_noop(self, ctx, git, active_story):
        linker = linker_for(ctx)
        result = linker.run(CommitRequest(type="feat", summary="x"))

        # Simulate a retry of the link step for the same HEAD.
        git.commit = lambda message: git.commits.append(message)
        again = linker.run(CommitRequest(type="feat", summary="x"))

        assert again.commit_hash == result.commit_hash
        story = ctx.store.load(active_story.id)
        assert len(story.commits) == 1
        assert len(story.files) == 1


class TestCompose:
    """Message composition inside the linker."""

    def test_jira_footer_uses_linked_issue(self, ctx, git, active_story):
        ctx.config.save(Config(jira_host="jira.example.com", jira_project="PROJ"))
        with ctx.store.edit(active_story.id) as story:
            story.jira_key = "PROJ-42"

        result = linker_for(ctx).run(CommitRequest(type="feat", summary="x", include_jira=True))
        assert result.message == "feat: x\n\nJira: https://jira.example.com/browse/PROJ-42"

    def test_jira_footer_falls_back_to_project_and_story(self, ctx, git, active_story):
        ctx.config.save(Config(jira_host="jira.example.com", jira_project="PROJ"))
        message = linker_for(ctx).compose(
            CommitRequest(type="feat", summary="x", include_jira=True), ctx.config.load()
        )
        assert message.endswith(f"/browse/PROJ-{active_story.id}")

    def test_jira_footer_skipped_without_jira_config(self, ctx, git, active_story):
        message = linker_for(ctx).compose(
            CommitRequest(type="feat", summary="x", include_jira=True), ctx.config.load()
        )
        assert message == "feat: x"

    def test_jira_then_breaking_footer(self, ctx, git, active_story):
        ctx.config.save(Config(jira_host="jira.example.com", jira_project="PROJ"))
        message = linker_for(ctx).compose(
            CommitRequest(type="feat", summary="drop v1", breaking=True, include_jira=True),
            ctx.config.load(),
        )
        header, jira, breaking = message.split("\n\n")
        assert header == "feat!: drop v1"
        assert jira.startswith("Jira: ")
        assert breaking == "BREAKING CHANGE: drop v1"

    def test_generated_message(self, ctx, git):
        git.diffs = ["diff --git a/a b/a\n+x"]
        seen = []

        def generator(diffs):
            seen.extend(diffs)
            return "feat: generated"

        result = linker_for(ctx, generate_message=generator).run(CommitRequest(type="feat", generate=True))
        assert seen == git.diffs
        assert git.commits == ["feat: generated"]
        assert result.message == "feat: generated"

    def test_generated_breaking_change(self, ctx, git):
        result = linker_for(ctx, generate_message=lambda diffs: "feat(api): drop v1 endpoints").run(
            CommitRequest(type="feat", generate=True, breaking=True)
        )
        assert result.message == "feat(api)!: drop v1 endpoints\n\nBREAKING CHANGE: drop v1 endpoints"
        assert git.commits == [result.message]
