"""Tests for tracer.lib.settings and tracer.lib.pair modules."""

from dataclasses import replace

import pytest

from tracer.lib.config import Config
from tracer.lib.errors import NotConfiguredError, ValidationError
from tracer.lib.pair import current_pair, start_pair, stop_pair
from tracer.lib.settings import (
    clean_all,
    clean_git,
    clean_jira,
    clean_stories,
    configure_jira,
    configure_project,
    configure_user,
    current_project,
    describe_config,
    init_tracer,
    require_project_and_user,
)
from tracer.story.stories import new_story


def all_files(path):
    return sorted(p for p in path.rglob("*") if p.is_file())


class TestConfigureProject:
    """configure --project."""

    def test_sets_git_key_and_config(self, ctx, git):
        cfg = configure_project(git, ctx.config, "myproj")
        assert cfg.git_repo == "myproj"
        assert git.config["current.project"] == "myproj"
        assert ctx.config.load().git_repo == "myproj"

    def test_empty_name_writes_nothing(self, ctx, git, tmp_path):
        before = all_files(tmp_path)
        with pytest.raises(ValidationError, match="cannot be empty"):
            configure_project(git, ctx.config, "")
        assert all_files(tmp_path) == before
        assert "current.project" not in git.config


class TestConfigureUser:
    """configure --user."""

    def test_requires_project(self, ctx, git):
        with pytest.raises(NotConfiguredError, match="tracer configure --project"):
            configure_user(git, ctx.config, "alice")

    def test_empty_username(self, ctx, git):
        with pytest.raises(ValidationError, match="username cannot be empty"):
            configure_user(git, ctx.config, "")

    def test_sets_project_scoped_user(self, ctx, git):
        configure_project(git, ctx.config, "myproj")
        cfg = configure_user(git, ctx.config, "alice")
        assert git.config["myproj.user"] == "alice"
        assert cfg.author_name == "alice"
        assert ctx.config.load().author_name == "alice"


class TestRequireProjectAndUser:
    def test_missing_project(self):
        with pytest.raises(NotConfiguredError, match="project not configured"):
            require_project_and_user(Config(author_name="alice"))

    def test_missing_user(self):
        with pytest.raises(NotConfiguredError, match="tracer configure --user"):
            require_project_and_user(Config(git_repo="myproj"))

    def test_configured(self):
        require_project_and_user(Config(git_repo="myproj", author_name="alice"))


class TestCurrentProject:
    def test_prefers_git_key(self, git):
        git.config["current.project"] = "fromgit"
        assert current_project(git, Config(git_repo="fromcfg")) == "fromgit"

    def test_falls_back_to_config(self, git):
        assert current_project(git, Config(git_repo="fromcfg")) == "fromcfg"


class TestInit:
    """tracer init."""

    def test_seeds_from_repository_and_git_user(self, ctx, git, repo):
        git.config["user.name"] = "alice"
        git.config["user.email"] = "alice@example.com"

        path = init_tracer(git, ctx.config)

        assert path == repo / ".tracer" / "config.yaml"
        cfg = ctx.config.load()
        assert cfg.git_repo == repo.name
        assert cfg.author_name == "alice"
        assert cfg.author_email == "alice@example.com"
        assert cfg.git_branch == "main"

    def test_keeps_existing_values(self, ctx, git):
        ctx.config.save(Config(git_repo="custom", author_name="bob"))
        git.config["user.name"] = "alice"
        init_tracer(git, ctx.config)
        cfg = ctx.config.load()
        assert cfg.git_repo == "custom"
        assert cfg.author_name == "bob"


class TestConfigureJira:
    def test_host_required(self, ctx):
        with pytest.raises(ValidationError, match="host cannot be empty"):
            configure_jira(ctx.config, "")

    def test_empty_optionals_keep_old_values(self, ctx):
        configure_jira(ctx.config, "jira.example.com", token="t0k3n", project="PROJ", user="alice")
        cfg = configure_jira(ctx.config, "jira2.example.com")
        assert cfg.jira_host == "jira2.example.com"
        assert cfg.jira_token == "t0k3n"
        assert cfg.jira_project == "PROJ"
        assert cfg.jira_user == "alice"

    def test_token_masked_in_description(self):
        rows = dict(describe_config(Config(jira_token="secret")))
        assert rows["Jira Token"] == "[CONFIGURED]"
        assert "secret" not in rows.values()
        assert dict(describe_config(Config()))["Jira Token"] == "[NOT CONFIGURED]"


class TestClean:
    """configure clean git|stories|jira|all."""

    def test_clean_git(self, git):
        git.config.update({
            "current.project": "myproj",
            "myproj.user": "alice",
            "current.pair": "bob",
            "user.name": "alice",
        })
        clean_git(git)
        assert git.config == {"user.name": "alice"}

    def test_clean_stories(self, ctx):
        ctx.store.save(new_story("Title", "", "alice"))
        clean_stories(ctx.config)
        assert not ctx.store.stories_dir().exists()
        assert ctx.store.list_stories() == []

    def test_clean_jira(self, ctx):
        configure_jira(ctx.config, "jira.example.com", token="t0k3n", project="PROJ", user="alice")
        ctx.config.save(replace(ctx.config.load(), git_repo="myproj"))
        cfg = clean_jira(ctx.config)
        assert (cfg.jira_host, cfg.jira_token, cfg.jira_project, cfg.jira_user) == ("", "", "", "")
        assert ctx.config.load().git_repo == "myproj"

    def test_clean_all(self, ctx, git, repo, home):
        configure_project(git, ctx.config, "myproj")
        ctx.store.save(new_story("Title", "", "alice"))
        (home / ".tracer").mkdir()
        (home / ".tracer" / "config.yaml").write_text("git_repo: global\n")

        clean_all(git, ctx.config)

        assert not (repo / ".tracer" / "config.yaml").exists()
        assert not (home / ".tracer" / "config.yaml").exists()
        assert not ctx.store.stories_dir().exists()
        assert "current.project" not in git.config


class TestPair:
    """Pair programming sessions."""

    def test_start_and_stop(self, ctx, git):
        start_pair(git, ctx.config, "bob")
        assert current_pair(git) == "bob"
        assert ctx.config.load().pair_name == "bob"

        stop_pair(git, ctx.config)
        assert current_pair(git) == ""
        assert ctx.config.load().pair_name == ""

    def test_partner_required(self, ctx, git):
        with pytest.raises(ValidationError, match="partner name cannot be empty"):
            start_pair(git, ctx.config, "")
        assert current_pair(git) == ""
