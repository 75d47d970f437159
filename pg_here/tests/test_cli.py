"""Tests for the pg-here command line."""

import pytest

from pg_here import cli
from pg_here import config as config_module
from pg_here.snapshot import CloneEngine

from .mocks import COPY_STRATEGY, MockPgCtl


@pytest.fixture
def engine(monkeypatch):
    mock = MockPgCtl()
    monkeypatch.setattr(cli, "build_engine", lambda config, project_dir: mock)
    monkeypatch.setattr(cli, "build_clone_engine", lambda: CloneEngine([COPY_STRATEGY]))
    monkeypatch.setattr(config_module, "CONFIG_SEARCH_PATHS", [])
    for var in ("PG_PROJECT", "PG_CTL", "PG_VERSION", "PG_HERE_PORT"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("COLUMNS", "300")
    return mock


@pytest.fixture
def project(tmp_path, engine, capsys):
    path = tmp_path / "proj"
    assert cli.run(["init", str(path)]) == 0
    capsys.readouterr()
    return path


def run(argv, capsys):
    code = cli.run(argv)
    out, err = capsys.readouterr()
    return code, out, err


class TestInit:
    def test_prints_current_instance(self, tmp_path, engine, capsys):
        code, out, _ = run(["init", str(tmp_path / "p")], capsys)
        assert code == 0
        assert out.strip() == "inst_active"
        assert engine.actions == ["initdb", "start"]

    def test_rerun_does_not_restart(self, project, engine, capsys):
        engine.reset()
        code, out, _ = run(["init", str(project)], capsys)
        assert code == 0
        assert out.strip() == "inst_active"
        assert engine.calls == []

    def test_default_project_dir(self, tmp_path, engine, capsys, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert run(["init"], capsys)[0] == 0
        assert (tmp_path / "pg_projects" / "default" / "current").is_symlink()

    def test_project_from_env(self, tmp_path, engine, capsys, monkeypatch):
        monkeypatch.setenv("PG_PROJECT", str(tmp_path / "from_env"))
        assert run(["init"], capsys)[0] == 0
        assert (tmp_path / "from_env" / "current").is_symlink()


class TestSnapshotRevertList:
    def test_snapshot_then_list(self, project, capsys):
        code, out, _ = run(["snapshot", str(project)], capsys)
        snap = out.strip()
        assert code == 0
        assert snap.startswith("snap_")

        code, out, _ = run(["list", str(project)], capsys)
        assert code == 0
        assert out.split() == [snap]

    def test_list_long(self, project, capsys):
        run(["snapshot", str(project)], capsys)
        code, out, _ = run(["list", "--long", str(project)], capsys)
        assert code == 0
        assert "snap_" in out

    def test_revert(self, project, capsys):
        snap = run(["snapshot", str(project)], capsys)[1].strip()

        code, out, _ = run(["revert", str(project), snap], capsys)

        inst = out.strip()
        assert code == 0
        assert inst.startswith("inst_") and inst != "inst_active"
        assert (project / "current").resolve().name == inst

    def test_revert_with_snap_flag(self, project, capsys):
        snap = run(["snapshot", str(project)], capsys)[1].strip()
        code, _, _ = run(["revert", str(project), "--snap", snap], capsys)
        assert code == 0

    def test_revert_project_and_short_snap_flag(self, project, capsys):
        snap = run(["snapshot", str(project)], capsys)[1].strip()
        code, _, _ = run(["revert", str(project), "-s", snap], capsys)
        assert code == 0
        assert (project / "current").resolve().name.startswith("inst_2")

    def test_revert_lone_positional_is_project(self, project, engine, capsys):
        run(["snapshot", str(project)], capsys)
        engine.reset()

        code, out, err = run(["revert", str(project)], capsys)

        assert code == 1
        assert out == ""
        assert "Revert requires a snapName" in err
        assert "does not exist" not in err
        assert engine.calls == []
        assert (project / "current").resolve().name == "inst_active"

    def test_revert_requires_name(self, project, engine, capsys):
        engine.reset()
        code, out, err = run(["revert", str(project), "--snap", ""], capsys)
        assert code == 1
        assert out == ""
        assert "snapName" in err
        assert engine.calls == []

    def test_revert_unknown_snapshot(self, project, engine, capsys):
        engine.reset()
        code, _, err = run(["revert", str(project), "snap_19990101_000000"], capsys)
        assert code == 1
        assert "Snapshot not found" in err
        assert engine.calls == []

    def test_current_directory_rejected(self, tmp_path, engine, capsys):
        (tmp_path / "bad" / "current").mkdir(parents=True)
        code, out, err = run(["snapshot", str(tmp_path / "bad")], capsys)
        assert code == 1
        assert out == ""
        assert "Expected" in err
        assert engine.calls == []

    def test_engine_failure_exit_code(self, project, engine, capsys):
        engine.force_failure("stop")
        code, _, err = run(["snapshot", str(project)], capsys)
        assert code == 1
        assert "pg_ctl failed" in err


class TestMisc:
    def test_status(self, project, capsys):
        code, out, _ = run(["status", str(project)], capsys)
        assert code == 0
        assert "inst_active" in out

    def test_stop(self, project, engine, capsys):
        code, _, _ = run(["stop", str(project)], capsys)
        assert code == 0
        assert engine.actions[-1] == "stop"

    def test_no_command_prints_help(self, capsys):
        code, out, _ = run([], capsys)
        assert code == 0
        assert "snapshot" in out

    def test_bad_config_file(self, tmp_path, engine, capsys):
        code, _, err = run(["list", "--config", str(tmp_path / "none.toml")], capsys)
        assert code == 1
        assert "Config file not found" in err
