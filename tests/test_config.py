"""Tests for layered configuration and alias persistence."""

import pytest

from linear_cli.config import (
    Config,
    ensure_line,
    load_config,
    parse_config_text,
    remove_alias,
    save_alias,
    write_fields,
)
from linear_cli.exceptions import AliasNotFound, ConfigurationError, NoConfigFile


@pytest.fixture
def dirs(tmp_path):
    cwd = tmp_path / "project"
    home = tmp_path / "home"
    cwd.mkdir()
    home.mkdir()
    return cwd, home


class TestParseConfigText:
    def test_fields_and_aliases(self):
        text = (
            "# comment\n"
            "api_key = abc\n"
            "team=ENG\n"
            "not a setting\n"
            "\n"
            "[aliases]\n"
            "core=Core Platform\n"
            "[other]\n"
            "ignored=value\n"
        )
        fields, aliases = parse_config_text(text)

        assert fields == {"api_key": "abc", "team": "ENG", "ignored": "value"}
        assert aliases == {"CORE": "Core Platform"}

    def test_value_may_contain_equals(self):
        fields, _ = parse_config_text("agent_command=run --mode=plan\n")
        assert fields["agent_command"] == "run --mode=plan"


class TestLoadConfig:
    def test_local_overrides_global_field_by_field(self, dirs):
        """Local team wins; api key falls through to global, not to the environment."""
        cwd, home = dirs
        (home / ".linear").write_text("api_key=G\nteam=GT\n")
        (cwd / ".linear").write_text("team=LT\n")

        config = load_config(cwd=cwd, home=home, environ={"LINEAR_API_KEY": "E"})

        assert config.team_key == "LT"
        assert config.api_key == "G"
        assert config.config_file == cwd / ".linear"

    def test_environment_fallback(self, dirs):
        cwd, home = dirs
        config = load_config(
            cwd=cwd, home=home, environ={"LINEAR_API_KEY": "E", "LINEAR_TEAM": "ET"}
        )

        assert config.api_key == "E"
        assert config.team_key == "ET"
        assert config.config_file is None

    def test_aliases_layer_local_over_global(self, dirs):
        cwd, home = dirs
        (home / ".linear").write_text("[aliases]\nA=Global A\nB=Global B\n")
        (cwd / ".linear").write_text("[aliases]\nB=Local B\n")

        config = load_config(cwd=cwd, home=home, environ={})

        assert config.aliases == {"A": "Global A", "B": "Local B"}

    def test_optional_fields(self, dirs):
        cwd, home = dirs
        (cwd / ".linear").write_text(
            "default_project=Core\ndefault_milestone=Beta\nagent_command=claude --plan\n"
        )
        config = load_config(cwd=cwd, home=home, environ={})

        assert config.default_project == "Core"
        assert config.default_milestone == "Beta"
        assert config.agent_command == "claude --plan"

    def test_require_auth(self):
        with pytest.raises(ConfigurationError, match="Not logged in"):
            Config().require_auth()
        with pytest.raises(ConfigurationError, match="No team configured"):
            Config(api_key="key").require_auth()
        Config(api_key="key", team_key="ENG").require_auth()


class TestAliasLookup:
    def test_resolve_alias_is_case_insensitive(self):
        config = Config(aliases={"CORE": "Core Platform"})

        assert config.resolve_alias("core") == "Core Platform"
        assert config.resolve_alias("Something else") == "Something else"
        assert config.resolve_alias(None) is None

    def test_find_alias_prefers_longest_prefix(self):
        config = Config(aliases={"CORE": "Core", "CP": "Core Platform", "X": "Platform"})

        assert config.find_alias_for("Core Platform v2") == "CP"
        assert config.find_alias_for("Core tools") == "CORE"
        assert config.find_alias_for("My Platform") is None


class TestSaveAlias:
    def test_inserts_after_last_alias_and_preserves_lines(self, tmp_path):
        path = tmp_path / ".linear"
        original = (
            "# Linear CLI configuration\n"
            "api_key=abc\n"
            "team=ENG\n"
            "\n"
            "[aliases]\n"
            "ONE=First\n"
            "TWO=Second\n"
            "\n"
            "# trailing note\n"
        )
        path.write_text(original)
        config = Config(config_file=path, aliases={"ONE": "First", "TWO": "Second"})

        updated = save_alias(config, "three", "Third Project")

        assert path.read_text() == original.replace(
            "TWO=Second\n", "TWO=Second\nTHREE=Third Project\n"
        )
        assert updated.aliases["THREE"] == "Third Project"

    def test_updates_existing_alias_in_place(self, tmp_path):
        path = tmp_path / ".linear"
        path.write_text("team=ENG\n\n[aliases]\nONE=First\nTWO=Second\n")
        config = Config(config_file=path)

        save_alias(config, "one", "Renamed")

        assert path.read_text() == "team=ENG\n\n[aliases]\nONE=Renamed\nTWO=Second\n"

    def test_appends_section_when_missing(self, tmp_path):
        path = tmp_path / ".linear"
        path.write_text("api_key=abc\nteam=ENG\n")

        save_alias(Config(config_file=path), "core", "Core Platform")

        assert path.read_text() == "api_key=abc\nteam=ENG\n\n[aliases]\nCORE=Core Platform\n"

    def test_requires_config_file(self):
        with pytest.raises(NoConfigFile):
            save_alias(Config(), "core", "Core Platform")

    def test_round_trip_through_load(self, dirs):
        cwd, home = dirs
        (cwd / ".linear").write_text("team=ENG\n")
        config = load_config(cwd=cwd, home=home, environ={})

        save_alias(config, "web", "Website Relaunch")

        assert load_config(cwd=cwd, home=home, environ={}).aliases == {
            "WEB": "Website Relaunch"
        }


class TestRemoveAlias:
    def test_removes_only_that_alias(self, tmp_path):
        path = tmp_path / ".linear"
        path.write_text("team=ENG\n[aliases]\nONE=First\nTWO=Second\nTHREE=Third\n")
        config = Config(config_file=path, aliases={"ONE": "First", "TWO": "Second"})

        updated = remove_alias(config, "two")

        assert path.read_text() == "team=ENG\n[aliases]\nONE=First\nTHREE=Third\n"
        assert "TWO" not in updated.aliases

    def test_missing_alias(self, tmp_path):
        path = tmp_path / ".linear"
        path.write_text("team=ENG\n[aliases]\nONE=First\n")

        with pytest.raises(AliasNotFound, match="Alias not found: nope"):
            remove_alias(Config(config_file=path), "nope")

    def test_removes_shadowed_global_definition(self, dirs):
        cwd, home = dirs
        (home / ".linear").write_text("api_key=k\n[aliases]\nV2=Old Global Target\n")
        (cwd / ".linear").write_text("team=ENG\n")
        config = save_alias(load_config(cwd=cwd, home=home, environ={}), "v2", "Version 2")

        updated = remove_alias(config, "V2")

        assert updated.resolve_alias("v2") == "v2"
        assert load_config(cwd=cwd, home=home, environ={}).resolve_alias("v2") == "v2"
        assert (home / ".linear").read_text() == "api_key=k\n[aliases]\n"

    def test_global_alias_removable_while_local_file_exists(self, dirs):
        cwd, home = dirs
        (home / ".linear").write_text("[aliases]\nV2=Version 2\n")
        (cwd / ".linear").write_text("team=ENG\n")
        config = load_config(cwd=cwd, home=home, environ={})
        assert config.resolve_alias("v2") == "Version 2"

        remove_alias(config, "v2")

        assert "V2" not in load_config(cwd=cwd, home=home, environ={}).aliases
        assert (cwd / ".linear").read_text() == "team=ENG\n"

    def test_requires_config_file(self):
        with pytest.raises(NoConfigFile, match="Run 'linear login' first"):
            remove_alias(Config(), "one")


class TestWriteFields:
    def test_creates_file(self, tmp_path):
        path = tmp_path / ".linear"
        write_fields(path, {"api_key": "abc", "team": "ENG"})

        assert path.read_text() == "# Linear CLI configuration\napi_key=abc\nteam=ENG\n"

    def test_updates_keys_and_keeps_aliases(self, tmp_path):
        path = tmp_path / ".linear"
        path.write_text("api_key=old\n\n[aliases]\nONE=First\n")

        write_fields(path, {"api_key": "new", "team": "ENG"})

        assert path.read_text() == "api_key=new\nteam=ENG\n\n[aliases]\nONE=First\n"


class TestEnsureLine:
    def test_appends_once(self, tmp_path):
        path = tmp_path / ".gitignore"
        path.write_text("node_modules")

        assert ensure_line(path, ".linear") is True
        assert ensure_line(path, ".linear") is False
        assert path.read_text() == "node_modules\n.linear\n"

    def test_creates_missing_file(self, tmp_path):
        path = tmp_path / ".worktreeinclude"

        assert ensure_line(path, ".linear") is True
        assert path.read_text() == ".linear\n"
