"""Tests for tracer.lib.config module."""

import stat

import pytest
import yaml

from tracer.lib.config import (
    Config,
    ConfigResolver,
    apply_defaults,
    config_from_dict,
    default_config,
    load_config_file,
)
from tracer.lib.errors import ConfigError
from tracer.lib.scope import DirectoryResolver
from conftest import FakeGit


def write_config(scope_dir, data):
    scope_dir.mkdir(parents=True, exist_ok=True)
    (scope_dir / "config.yaml").write_text(yaml.safe_dump(data))


class TestDefaults:
    """Compiled-in defaults."""

    def test_default_values(self):
        cfg = default_config()
        assert cfg.git_branch == "main"
        assert cfg.git_remote == "origin"
        assert cfg.story_dir == "stories"
        assert cfg.pair_file == "pair.json"
        assert cfg.git_repo == ""

    def test_apply_defaults_does_not_mutate_input(self):
        cfg = Config(git_repo="myproj")
        result = apply_defaults(cfg)
        assert cfg.git_branch == ""
        assert result.git_branch == "main"
        assert result.git_repo == "myproj"

    def test_apply_defaults_keeps_set_values(self):
        cfg = apply_defaults(Config(git_branch="develop"))
        assert cfg.git_branch == "develop"

    def test_apply_defaults_idempotent(self):
        once = apply_defaults(Config())
        assert apply_defaults(once) == once


class TestConfigFromDict:
    """Parsing of loaded YAML mappings."""

    def test_unknown_key_ignored_with_warning(self, caplog):
        cfg = config_from_dict({"git_repo": "x", "colour": "blue"}, "test.yaml")
        assert cfg.git_repo == "x"
        assert "Ignoring unknown config key 'colour'" in caplog.text

    def test_null_becomes_empty(self):
        assert config_from_dict({"jira_host": None}).jira_host == ""

    def test_numbers_coerced_to_string(self):
        assert config_from_dict({"jira_project": 123}).jira_project == "123"

    def test_non_string_value_rejected(self):
        with pytest.raises(ConfigError, match="invalid config"):
            config_from_dict({"git_repo": ["a", "b"]})


class TestLoadConfigFile:
    """Strict single-file loading."""

    def test_missing_file_returns_none(self, tmp_path):
        assert load_config_file(tmp_path / "config.yaml") is None

    def test_empty_file_is_empty_config(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert load_config_file(path) == Config()

    def test_malformed_yaml_raises(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("git_repo: [unclosed\n")
        with pytest.raises(ConfigError, match="failed to parse"):
            load_config_file(path)

    def test_non_mapping_raises(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="must be a mapping"):
            load_config_file(path)


class TestConfigResolver:
    """Scope lookup order and saving."""

    def test_fresh_scope_returns_defaults(self, repo, home):
        cfg = ConfigResolver(DirectoryResolver(FakeGit(root=repo), home=home)).load()
        assert cfg.git_branch == "main"
        assert cfg.git_remote == "origin"
        assert cfg.story_dir == "stories"
        assert cfg.pair_file == "pair.json"

    def test_repo_config_wins_over_global(self, repo, home):
        write_config(repo / ".tracer", {"git_repo": "local"})
        write_config(home / ".tracer", {"git_repo": "global"})
        cfg = ConfigResolver(DirectoryResolver(FakeGit(root=repo), home=home)).load()
        assert cfg.git_repo == "local"

    def test_falls_back_to_global(self, repo, home):
        write_config(home / ".tracer", {"git_repo": "global"})
        cfg = ConfigResolver(DirectoryResolver(FakeGit(root=repo), home=home)).load()
        assert cfg.git_repo == "global"

    def test_global_only_outside_repository(self, repo, home):
        write_config(repo / ".tracer", {"git_repo": "local"})
        write_config(home / ".tracer", {"git_repo": "global"})
        cfg = ConfigResolver(DirectoryResolver(FakeGit(root=None), home=home)).load()
        assert cfg.git_repo == "global"

    def test_loaded_config_gets_defaults(self, repo, home):
        write_config(repo / ".tracer", {"git_repo": "local"})
        cfg = ConfigResolver(DirectoryResolver(FakeGit(root=repo), home=home)).load()
        assert cfg.git_branch == "main"

    def test_corrupt_repo_config_does_not_fall_through(self, repo, home):
        (repo / ".tracer").mkdir()
        (repo / ".tracer" / "config.yaml").write_text("{{{")
        write_config(home / ".tracer", {"git_repo": "global"})
        with pytest.raises(ConfigError):
            ConfigResolver(DirectoryResolver(FakeGit(root=repo), home=home)).load()

    def test_save_writes_private_file_in_repo_scope(self, repo, home):
        resolver = ConfigResolver(DirectoryResolver(FakeGit(root=repo), home=home))
        path = resolver.save(Config(git_repo="myproj", jira_token="secret"))

        assert path == repo / ".tracer" / "config.yaml"
        assert stat.S_IMODE(path.stat().st_mode) == 0o600
        assert resolver.load().git_repo == "myproj"
        assert not (home / ".tracer").exists()

    def test_stories_dir_relative_to_scope(self, repo, home):
        resolver = ConfigResolver(DirectoryResolver(FakeGit(root=repo), home=home))
        assert resolver.stories_dir() == repo / ".tracer" / "stories"

    def test_stories_dir_absolute(self, repo, home, tmp_path):
        resolver = ConfigResolver(DirectoryResolver(FakeGit(root=repo), home=home))
        target = tmp_path / "elsewhere"
        assert resolver.stories_dir(Config(story_dir=str(target))) == target
