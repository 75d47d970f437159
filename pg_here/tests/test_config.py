"""Tests for configuration loading and precedence."""

from argparse import Namespace
from pathlib import Path

import pytest

from pg_here import config as config_module
from pg_here.config import Config
from pg_here.errors import ConfigError

TOML = """
verbose = true

[server]
port = 6000
username = "app"
database = "appdb"
version = "16"

[paths]
project_dir = "/srv/pg/proj"
pg_ctl = "/opt/pg/bin/pg_ctl"
"""


@pytest.fixture(autouse=True)
def no_default_config(monkeypatch):
    monkeypatch.setattr(config_module, "CONFIG_SEARCH_PATHS", [])


@pytest.fixture
def config_file(tmp_path) -> Path:
    path = tmp_path / "pg_here.toml"
    path.write_text(TOML)
    return path


class TestLoad:
    def test_defaults(self):
        config = Config.load(env={})
        assert config.server.port == 55432
        assert config.server.username == "postgres"
        assert config.server.database == "postgres"
        assert config.paths.pg_ctl is None
        assert config.validate() == []

    def test_default_project_dir(self, tmp_path):
        config = Config.load(env={})
        assert config.paths.resolve_project_dir(tmp_path) == tmp_path / "pg_projects" / "default"

    def test_from_file(self, config_file):
        config = Config.load(str(config_file), env={})
        assert config.server.port == 6000
        assert config.server.username == "app"
        assert config.server.password == "postgres"
        assert config.server.version == "16"
        assert config.paths.project_dir == "/srv/pg/proj"
        assert config.verbose

    def test_search_path(self, monkeypatch, config_file):
        monkeypatch.setattr(config_module, "CONFIG_SEARCH_PATHS", [config_file])
        assert Config.load(env={}).server.port == 6000

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            Config.load(str(tmp_path / "nope.toml"), env={})

    def test_invalid_toml(self, tmp_path):
        bad = tmp_path / "bad.toml"
        bad.write_text("[server\nport = ")
        with pytest.raises(ConfigError, match="Invalid TOML"):
            Config.load(str(bad), env={})


class TestPrecedence:
    def test_env_over_file(self, config_file):
        env = {"PG_PROJECT": "/env/proj", "PG_CTL": "/env/pg_ctl", "PG_HERE_PORT": "7000"}
        config = Config.load(str(config_file), env=env)
        assert config.paths.project_dir == "/env/proj"
        assert config.paths.pg_ctl == "/env/pg_ctl"
        assert config.server.port == 7000

    def test_args_over_env(self, config_file):
        config = Config.load(str(config_file), env={"PG_HERE_PORT": "7000"})
        config.override_from_args(Namespace(port=8000, project="/cli/proj", username=None))
        assert config.server.port == 8000
        assert config.paths.project_dir == "/cli/proj"
        assert config.server.username == "app"

    def test_bad_env_port(self):
        with pytest.raises(ConfigError, match="PG_HERE_PORT"):
            Config.load(env={"PG_HERE_PORT": "high"})


class TestValidate:
    def test_port_range(self):
        config = Config.load(env={})
        config.server.port = 70000
        assert any("Port" in e for e in config.validate())

    def test_missing_pg_ctl_path(self, tmp_path):
        config = Config.load(env={"PG_CTL": str(tmp_path / "bin" / "pg_ctl")})
        assert any("pg_ctl not found" in e for e in config.validate())

    def test_summary(self, config_file):
        summary = Config.load(str(config_file), env={}).summary()
        assert f"Config: {config_file}" in summary
        assert "app@localhost:6000/appdb" in summary
