import tomllib
from pathlib import Path

import pytest

from voido.errors import StartupError
from voido.shared import log_msg, log_path
from voido.voido_env import (
    DEFAULT_COLUMNS,
    VoidoConfig,
    VoidoEnvironment,
    render_config,
)


@pytest.mark.unit
class TestHome:
    def test_voido_home_wins(self, monkeypatch, tmp_path):
        monkeypatch.setenv("VOIDO_HOME", str(tmp_path / "custom"))
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
        assert VoidoEnvironment().home == tmp_path / "custom"

    def test_xdg_config_home(self, monkeypatch, tmp_path):
        monkeypatch.delenv("VOIDO_HOME", raising=False)
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
        assert VoidoEnvironment().home == tmp_path / "xdg" / "voido"

    def test_default_under_dot_config(self, monkeypatch, tmp_path):
        monkeypatch.delenv("VOIDO_HOME", raising=False)
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        monkeypatch.setenv("HOME", str(tmp_path))
        assert VoidoEnvironment().home == tmp_path / ".config" / "voido"

    def test_paths(self, tmp_path):
        env = VoidoEnvironment(tmp_path)
        assert env.db_path == tmp_path / "todos.db"
        assert env.config_path == tmp_path / "config.toml"
        assert env.log_dir == tmp_path / "logs"


@pytest.mark.unit
class TestEnsure:
    def test_creates_home_and_config(self, tmp_path):
        env = VoidoEnvironment(tmp_path / "new" / "home")
        created = []

        env.ensure(init_config=True, init_db_fn=created.append)

        assert env.home.is_dir()
        assert env.config_path.exists()
        assert created == [env.db_path]

    def test_home_is_a_file(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        with pytest.raises(StartupError):
            VoidoEnvironment(blocker).ensure()

    def test_database_is_a_directory(self, tmp_path):
        env = VoidoEnvironment(tmp_path)
        env.db_path.mkdir()
        with pytest.raises(StartupError):
            env.ensure()


@pytest.mark.unit
class TestConfig:
    def test_template_round_trips(self):
        data = tomllib.loads(render_config(VoidoConfig()))
        assert VoidoConfig.model_validate(data) == VoidoConfig()

    def test_defaults(self, test_env):
        config = test_env.load_config()
        assert config.ui.theme == "dark"
        assert config.ui.columns == DEFAULT_COLUMNS
        assert config.ui.confirm_import is True

    def test_missing_keys_are_filled_in(self, tmp_path):
        env = VoidoEnvironment(tmp_path)
        env.config_path.write_text('[ui]\ntheme = "light"\n', encoding="utf-8")

        config = env.load_config()

        assert config.ui.theme == "light"
        assert config.export.json_name == "Voido - Todos.json"
        text = env.config_path.read_text(encoding="utf-8")
        assert "columns = [" in text
        assert 'theme = "light"' in text
        assert any("Updated" in m for m in env.config_messages)

    def test_invalid_value_falls_back_to_defaults(self, tmp_path):
        env = VoidoEnvironment(tmp_path)
        env.config_path.write_text('[ui]\ntheme = "purple"\n', encoding="utf-8")

        config = env.load_config()

        assert config.ui.theme == "dark"
        assert any("Config error" in m for m in env.config_messages)

    def test_broken_toml(self, tmp_path):
        env = VoidoEnvironment(tmp_path)
        env.config_path.write_text("[ui\n", encoding="utf-8")

        config = env.load_config()

        assert config == VoidoConfig()
        assert tomllib.loads(env.config_path.read_text(encoding="utf-8"))

    def test_custom_columns(self, tmp_path):
        env = VoidoEnvironment(tmp_path)
        env.config_path.write_text(
            '[ui]\ncolumns = ["ID", "TODO", "STATUS"]\n', encoding="utf-8"
        )
        assert env.config.ui.columns == ["ID", "TODO", "STATUS"]

    def test_config_without_a_home_is_not_written(self, tmp_path):
        env = VoidoEnvironment(tmp_path / "missing")
        assert env.config == VoidoConfig()
        assert not Path(tmp_path / "missing").exists()


@pytest.mark.unit
class TestLogging:
    def test_entries_land_in_todays_log(self, voido_home):
        log_msg("hello from the tests")

        (path,) = (voido_home / "logs").glob("log_*.md")
        text = path.read_text(encoding="utf-8")
        assert "TestLogging.test_entries_land_in_todays_log" in text
        assert "hello from the tests" in text

    def test_relative_paths_are_under_home(self, voido_home):
        assert log_path("bug", "extra/bugs.md") == voido_home / "extra" / "bugs.md"
        assert log_path("bug").parent == voido_home / "logs"
        assert log_path("bug").name.startswith("bug_")
