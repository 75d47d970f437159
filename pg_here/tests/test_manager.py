"""Tests for SnapshotManager: bootstrap, snapshot, revert, list, status."""

import pytest

from pg_here.errors import (
    CloneFailure,
    EngineControlFailure,
    InvariantViolation,
    Phase,
    PreconditionFailure,
)
from pg_here.snapshot import CloneEngine, SnapshotManager, Step

from .mocks import FAILING_STRATEGY, MockPgCtl, read_marker, write_marker


class TestBootstrap:
    def test_creates_layout_and_pointer(self, project_dir, engine, clone_engine):
        mgr = SnapshotManager(project_dir, engine=engine, clone_engine=clone_engine)
        result = mgr.bootstrap()

        assert result.name == "inst_active"
        assert result.steps == [Step.REPOINT]
        assert result.initialised
        assert Step.INIT not in result.steps
        assert (project_dir / "snaps").is_dir()
        assert (project_dir / "current").is_symlink()
        assert mgr.pointer.target() == (project_dir / "instances" / "inst_active").resolve()
        assert engine.actions == ["initdb"]

    def test_idempotent(self, manager, engine):
        result = manager.bootstrap()
        assert result.name == "inst_active"
        assert result.steps == []
        assert not result.initialised
        assert engine.calls == []

    def test_existing_cluster_not_reinitialised(self, project_dir, engine, clone_engine):
        active = project_dir / "instances" / "inst_active"
        active.mkdir(parents=True)
        (active / "PG_VERSION").write_text("16\n")

        result = SnapshotManager(project_dir, engine, clone_engine).bootstrap()

        assert result.steps == [Step.REPOINT]
        assert not result.initialised
        assert "initdb" not in engine.actions

    def test_refuses_directory_current(self, project_dir, engine, clone_engine):
        (project_dir / "current").mkdir(parents=True)
        with pytest.raises(InvariantViolation):
            SnapshotManager(project_dir, engine, clone_engine).bootstrap()
        assert engine.calls == []

    def test_reports_current_instance_after_revert(self, manager):
        manager.snapshot()
        snap = manager.list_snapshots()[0].name
        reverted = manager.revert(snap)
        assert manager.bootstrap().name == reverted.name


class TestSnapshot:
    def test_stop_clone_start(self, manager, engine):
        active = manager.layout.bootstrap_instance.resolve()
        write_marker(active, "hello")

        result = manager.snapshot()

        assert result.name.startswith("snap_")
        assert result.steps == [Step.STOP, Step.CLONE, Step.START]
        assert engine.calls == [("stop", active), ("start", active)]
        assert read_marker(manager.layout.snapshot_path(result.name)) == "hello"
        assert engine.is_running(manager.layout.current_path)

    def test_current_unchanged(self, manager):
        before = manager.pointer.target()
        manager.snapshot()
        assert manager.pointer.target() == before

    def test_snapshot_is_a_directory_not_a_link(self, manager):
        result = manager.snapshot()
        path = manager.layout.snapshot_path(result.name)
        assert path.is_dir() and not path.is_symlink()

    def test_requires_init(self, project_dir, engine, clone_engine):
        mgr = SnapshotManager(project_dir, engine, clone_engine)
        with pytest.raises(PreconditionFailure, match="does not exist"):
            mgr.snapshot()
        assert engine.calls == []

    def test_directory_current_fails_before_engine(self, project_dir, engine, clone_engine):
        (project_dir / "current").mkdir(parents=True)
        mgr = SnapshotManager(project_dir, engine, clone_engine)

        with pytest.raises(InvariantViolation, match="Expected .*current to be a symlink"):
            mgr.snapshot()

        assert engine.calls == []
        assert mgr.list_snapshots() == []

    def test_stop_failure_aborts(self, manager, engine):
        engine.force_failure("stop")
        with pytest.raises(EngineControlFailure) as exc:
            manager.snapshot()

        assert exc.value.phase is Phase.STOP
        assert engine.actions == ["stop"]
        assert manager.list_snapshots() == []

    def test_clone_failure_leaves_engine_stopped(self, project_dir, engine):
        mgr = SnapshotManager(project_dir, engine, CloneEngine([FAILING_STRATEGY]))
        mgr.bootstrap()
        engine.start(mgr.layout.current_path)
        engine.reset()

        with pytest.raises(CloneFailure):
            mgr.snapshot()

        assert engine.actions == ["stop"]
        assert not engine.is_running(mgr.layout.current_path)

    def test_start_failure_keeps_snapshot(self, manager, engine):
        engine.force_failure("start")
        with pytest.raises(EngineControlFailure) as exc:
            manager.snapshot()

        assert exc.value.phase is Phase.START
        assert len(manager.list_snapshots()) == 1

    def test_same_second_snapshots_are_distinct(self, manager):
        names = [manager.snapshot().name for _ in range(3)]
        assert len(set(names)) == 3
        assert [s.name for s in manager.list_snapshots()] == sorted(names)


class TestRevert:
    @pytest.fixture
    def snap(self, manager):
        write_marker(manager.pointer.target(), "A")
        name = manager.snapshot().name
        write_marker(manager.pointer.target(), "B")
        return name

    def test_current_moves_to_new_instance(self, manager, engine, snap):
        old = manager.pointer.target()
        engine.reset()

        result = manager.revert(snap)

        new = manager.pointer.target()
        assert result.name.startswith("inst_")
        assert new.name == result.name
        assert new != old
        assert result.steps == [Step.STOP, Step.CLONE, Step.REPOINT, Step.START]
        assert engine.calls == [("stop", old), ("start", new)]
        assert read_marker(new) == "A"

    def test_old_instance_kept(self, manager, snap):
        old = manager.pointer.target()
        manager.revert(snap)
        assert read_marker(old) == "B"

    def test_snapshot_never_modified(self, manager, snap):
        snap_path = manager.layout.snapshot_path(snap)
        first = manager.revert(snap)
        write_marker(manager.pointer.target(), "C")
        second = manager.revert(snap)

        assert read_marker(snap_path) == "A"
        assert read_marker(manager.layout.instance_path(first.name)) == "C"
        assert read_marker(manager.layout.instance_path(second.name)) == "A"
        assert first.name != second.name

    def test_missing_snapshot_checked_before_stop(self, manager, engine):
        with pytest.raises(PreconditionFailure, match="Snapshot not found"):
            manager.revert("snap_19990101_000000")
        assert engine.calls == []

    @pytest.mark.parametrize("name", ["", "../instances/inst_active", "snaps/x", ".."])
    def test_bad_names_rejected(self, manager, engine, name):
        with pytest.raises(PreconditionFailure):
            manager.revert(name)
        assert engine.calls == []

    def test_directory_current_fails_before_engine(self, project_dir, engine, clone_engine):
        (project_dir / "snaps" / "snap_20260101_000000").mkdir(parents=True)
        (project_dir / "current").mkdir()
        mgr = SnapshotManager(project_dir, engine, clone_engine)

        with pytest.raises(InvariantViolation):
            mgr.revert("snap_20260101_000000")
        assert engine.calls == []

    def test_clone_failure_keeps_pointer(self, manager, engine, snap):
        old = manager.pointer.target()
        manager.clone_engine = CloneEngine([FAILING_STRATEGY])
        engine.reset()

        with pytest.raises(CloneFailure):
            manager.revert(snap)

        assert manager.pointer.target() == old
        assert engine.actions == ["stop"]
        assert [i.name for i in manager.layout.list_instances()] == ["inst_active"]

    def test_start_failure_after_repoint(self, manager, engine, snap):
        engine.force_failure("start")
        with pytest.raises(EngineControlFailure):
            manager.revert(snap)
        assert manager.pointer.target().name != "inst_active"


class TestListAndStatus:
    def test_list_empty(self, manager):
        assert manager.list_snapshots() == []

    def test_list_reads_filesystem(self, manager):
        (manager.layout.snaps_dir / "snap_20200101_000000").mkdir()
        assert [s.name for s in manager.list_snapshots()] == ["snap_20200101_000000"]

    def test_status(self, manager):
        manager.snapshot()
        status = manager.status()
        assert status.current_is_symlink
        assert status.current_name == "inst_active"
        assert len(status.snapshots) == 1
        assert [i.name for i in status.instances if i.is_current] == ["inst_active"]

    def test_status_uninitialised(self, tmp_path):
        status = SnapshotManager(tmp_path / "p", engine=MockPgCtl()).status()
        assert not status.current_exists
        assert status.current_name is None
