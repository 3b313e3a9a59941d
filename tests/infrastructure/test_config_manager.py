#!/usr/bin/env python3
"""Tests for ConfigManager and rule settings parsing."""

import pytest
import yaml

from fmdecorator.core.constants import ErrorCode
from fmdecorator.infrastructure.config_manager import (
    ConfigManager,
    ConfigSource,
    ConfigurationError,
    parse_frontmatter_criteria,
    parse_match_tokens,
    rule_config_from_dict,
    rule_from_dict,
    rules_from_list,
    update_frontmatter_criteria,
)
from fmdecorator.rules.models import (
    FileFunctionConfig,
    IndividualConfig,
    UnrecognizedConfig,
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep FMDECORATOR_* variables from the outer shell out of the tests."""
    import os

    for key in list(os.environ):
        if key.startswith("FMDECORATOR_"):
            monkeypatch.delenv(key)


@pytest.fixture
def settings_file(tmp_path, sample_settings):
    path = tmp_path / "fmdecorator.yaml"
    path.write_text(yaml.safe_dump(sample_settings))
    return path


class TestParseMatchTokens:
    """Tests for parse_match_tokens."""

    def test_lines(self):
        """One token per line, blanks dropped."""
        assert parse_match_tokens("work\n\n!archive\n") == ("work", "!archive")

    def test_empty(self):
        """Empty text yields no tokens."""
        assert parse_match_tokens("") == ()

    def test_whitespace_kept(self):
        """Tokens are not trimmed."""
        assert parse_match_tokens(" a ") == (" a ",)


class TestFrontmatterCriteria:
    """Tests for frontmatter criteria parsing."""

    def test_json(self):
        """JSON objects parse to criteria."""
        assert parse_frontmatter_criteria('{"status": ["todo", "doing"], "publish": true}') == {
            "status": ["todo", "doing"],
            "publish": True,
        }

    def test_blank(self):
        """Blank text means no criteria."""
        assert parse_frontmatter_criteria("  \n") == {}

    def test_invalid_json(self):
        """Unparseable text raises with an 'Invalid JSON' message."""
        with pytest.raises(ConfigurationError) as exc_info:
            parse_frontmatter_criteria('{"status": ')

        assert exc_info.value.message.startswith("Invalid JSON")
        assert exc_info.value.error_code == ErrorCode.INVALID_INPUT

    @pytest.mark.parametrize("text", ['["a"]', '"a"', '{"k": {"n": 1}}', '{"k": [{"n": 1}]}'])
    def test_wrong_shape(self, text):
        """Only key -> scalar or list of scalars is accepted."""
        with pytest.raises(ConfigurationError):
            parse_frontmatter_criteria(text)

    def test_update_keeps_tokens(self):
        """Updating criteria keeps the other fields."""
        config = IndividualConfig(tags=("work",), frontmatter={"a": "1"})

        updated = update_frontmatter_criteria(config, '{"b": "2"}')

        assert updated.tags == ("work",)
        assert dict(updated.frontmatter) == {"b": "2"}

    def test_update_error_leaves_config(self):
        """A parse error leaves the previous config untouched."""
        config = IndividualConfig(frontmatter={"a": "1"})

        with pytest.raises(ConfigurationError):
            update_frontmatter_criteria(config, "{oops")

        assert dict(config.frontmatter) == {"a": "1"}


class TestRuleParsing:
    """Tests for rule settings parsing."""

    def test_individual(self):
        """Individual configs keep their token lists."""
        config = rule_config_from_dict(
            {"type": "individual", "tags": ["a"], "paths": ["p/"], "frontmatter": {"s": "x"}}
        )

        assert config == IndividualConfig(tags=("a",), paths=("p/",), frontmatter={"s": "x"})

    def test_function_file(self):
        """Function-file configs accept filePath or file_path."""
        assert rule_config_from_dict({"type": "function-file", "filePath": "a.py"}) == (
            FileFunctionConfig("a.py")
        )
        assert rule_config_from_dict({"type": "function-file", "file_path": "b.py"}) == (
            FileFunctionConfig("b.py")
        )

    def test_unknown_type(self):
        """Unknown types are kept as UnrecognizedConfig."""
        config = rule_config_from_dict({"type": "regex", "pattern": ".*"})

        assert config == UnrecognizedConfig(type="regex", options={"pattern": ".*"})

    def test_tokens_must_be_list(self):
        """A string where a list is expected is rejected."""
        with pytest.raises(ConfigurationError):
            rule_config_from_dict({"type": "individual", "tags": "work"})

    def test_rule_from_dict(self, sample_settings):
        """Persisted entries become Rules."""
        rule = rule_from_dict(sample_settings["rules"][0])

        assert rule.id == "1"
        assert rule.name == "Work notes"
        assert rule.class_name == "is-work"
        assert rule.config.tags == ("work", "!archive")

    def test_rule_defaults(self):
        """Missing fields get defaults."""
        rule = rule_from_dict({"id": 5})

        assert rule.id == "5"
        assert rule.enabled is True
        assert rule.class_name == ""
        assert isinstance(rule.config, UnrecognizedConfig)

    def test_rule_requires_id(self):
        """Entries without an id are rejected."""
        with pytest.raises(ConfigurationError):
            rule_from_dict({"name": "x"})

    @pytest.mark.parametrize("value", ["false", 0, None])
    def test_enabled_must_be_bool(self, value):
        """Only true or false are accepted for 'enabled'."""
        with pytest.raises(ConfigurationError):
            rule_from_dict({"id": "1", "enabled": value})

    def test_enabled_false(self):
        """A boolean false disables the rule."""
        assert rule_from_dict({"id": "1", "enabled": False}).enabled is False

    def test_duplicate_ids(self):
        """Rule ids must be unique."""
        with pytest.raises(ConfigurationError) as exc_info:
            rules_from_list([{"id": "1"}, {"id": "1"}])

        assert "Duplicate" in exc_info.value.message

    def test_none_list(self):
        """No rules configured means an empty list."""
        assert rules_from_list(None) == []

    def test_round_trip(self, sample_settings):
        """Rules serialize back to their persisted form."""
        rules = rules_from_list(sample_settings["rules"])

        assert [r.to_dict()["config"] for r in rules[:2]] == [
            sample_settings["rules"][0]["config"],
            sample_settings["rules"][1]["config"],
        ]


class TestConfigManager:
    """Tests for ConfigManager."""

    def test_defaults(self):
        """Compiled defaults are always present."""
        config = ConfigManager()

        assert config.get("fmdecorator.vault") == "."
        assert config.get("fmdecorator.logging.level") == "INFO"
        assert config.get("fmdecorator.loader.background") is True
        assert config.get("missing.key", default=3) == 3

    def test_load_file(self, settings_file):
        """Settings files override defaults."""
        config = ConfigManager(str(settings_file))

        assert len(config.load_rules()) == 3
        assert config.load_rules()[1].config == FileFunctionConfig("rules/status.py")

    def test_scoped_file(self, tmp_path):
        """Files may nest settings under 'fmdecorator'."""
        path = tmp_path / "scoped.yaml"
        path.write_text("fmdecorator:\n  vault: /notes\n")

        assert ConfigManager(str(path)).get("fmdecorator.vault") == "/notes"

    def test_missing_file(self, tmp_path):
        """A missing file raises NOT_FOUND."""
        with pytest.raises(ConfigurationError) as exc_info:
            ConfigManager(str(tmp_path / "nope.yaml"))

        assert exc_info.value.error_code == ErrorCode.NOT_FOUND

    def test_invalid_yaml(self, tmp_path):
        """Malformed YAML raises ConfigurationError."""
        path = tmp_path / "bad.yaml"
        path.write_text("rules: [\n")

        with pytest.raises(ConfigurationError):
            ConfigManager(str(path))

    def test_non_mapping_file(self, tmp_path):
        """A top-level list is rejected."""
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ConfigurationError):
            ConfigManager(str(path))

    def test_environment(self, monkeypatch):
        """FMDECORATOR_* variables override files."""
        monkeypatch.setenv("FMDECORATOR_LOGGING_LEVEL", "DEBUG")
        monkeypatch.setenv("FMDECORATOR_LOADER_BACKGROUND", "no")

        config = ConfigManager()

        assert config.get("fmdecorator.logging.level") == "DEBUG"
        assert config.get("fmdecorator.loader.background") is False

    def test_env_value_parsing(self):
        """Environment values become bools, ints or strings."""
        config = ConfigManager()

        assert config._parse_env_value("yes") is True
        assert config._parse_env_value("FALSE") is False
        assert config._parse_env_value("42") == 42
        assert config._parse_env_value("notes") == "notes"

    def test_precedence(self, settings_file):
        """CLI values beat file values; runtime beats CLI."""
        config = ConfigManager(str(settings_file))
        config.set("fmdecorator.vault", "/cli", ConfigSource.CLI_ARGS)

        assert config.get("fmdecorator.vault") == "/cli"

        config.set("fmdecorator.vault", "/runtime")
        assert config.get("fmdecorator.vault") == "/runtime"


    def test_get_all_merges(self, settings_file):
        """Merged config combines nested sections."""
        config = ConfigManager(str(settings_file))
        config.set("fmdecorator.logging.file", "/tmp/x.log")

        merged = config.get_all()["fmdecorator"]
        assert merged["logging"] == {"level": "INFO", "file": "/tmp/x.log"}
        assert len(merged["rules"]) == 3

    def test_watchers(self):
        """Watchers receive the merged config on change."""
        config = ConfigManager()
        seen = []
        config.add_watcher(seen.append)

        config.load_dict({"fmdecorator": {"vault": "/w"}})
        config.remove_watcher(seen.append)
        config.set("fmdecorator.vault", "/ignored")

        assert len(seen) == 1
        assert seen[0]["fmdecorator"]["vault"] == "/w"

    def test_reload(self, settings_file, sample_settings):
        """Reload re-reads files."""
        config = ConfigManager(str(settings_file))
        sample_settings["rules"] = sample_settings["rules"][:1]
        settings_file.write_text(yaml.safe_dump(sample_settings))

        config.reload()

        assert [r.id for r in config.load_rules()] == ["1"]

    def test_reload_error_keeps_values(self, settings_file):
        """A broken file on reload raises and keeps earlier values."""
        config = ConfigManager(str(settings_file))
        settings_file.write_text("rules: [\n")

        with pytest.raises(ConfigurationError):
            config.reload()

        assert len(config.load_rules()) == 3

    def test_defaults_not_shared(self):
        """Changing one manager's defaults does not leak into another."""
        ConfigManager().set("fmdecorator.vault", "/changed", ConfigSource.COMPILED_DEFAULTS)

        assert ConfigManager().get("fmdecorator.vault") == "."
        assert ConfigManager.DEFAULT_CONFIG["fmdecorator"]["vault"] == "."

    def test_load_dict_copies(self):
        """Later edits to a loaded dict do not change the configuration."""
        data = {"fmdecorator": {"logging": {"level": "DEBUG"}}}
        config = ConfigManager()
        config.load_dict(data)
        data["fmdecorator"]["logging"]["level"] = "ERROR"

        assert config.get("fmdecorator.logging.level") == "DEBUG"
