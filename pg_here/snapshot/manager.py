"""
Snapshot manager - high-level snapshot / revert / list operations.
"""

import logging
from pathlib import Path
from typing import Any, Callable, List, Optional

from ..errors import PreconditionFailure
from .clone import CloneEngine
from .layout import ProjectLayout
from .lifecycle import LifecycleResult, LifecycleRun, Step
from .models import BOOTSTRAP_INSTANCE, SNAPSHOT_PREFIX, ProjectStatus, SnapshotInfo
from .pointer import CurrentPointer

logger = logging.getLogger(__name__)


class SnapshotManager:
    """
    Snapshot operations for one project directory.

    The engine is anything with `stop(data_dir, mode)`, `start(data_dir)`
    and `initdb(data_dir)` that block until done (see engine.PgCtl).
    """

    def __init__(
        self,
        project_dir: Path,
        engine,
        clone_engine: Optional[CloneEngine] = None,
    ):
        """
        Initialize snapshot manager.

        Args:
            project_dir: Project root holding instances/, snaps/ and current
            engine: Engine controller (PgCtl or compatible)
            clone_engine: Clone engine (platform default strategies if None)
        """
        self.layout = ProjectLayout(project_dir)
        self.engine = engine
        self.clone_engine = clone_engine or CloneEngine()
        self.pointer = CurrentPointer(self.layout.current_path)

    @property
    def project_dir(self) -> Path:
        return self.layout.project_dir

    # =========================================================================
    # Core Operations
    # =========================================================================

    def snapshot(self) -> LifecycleResult:
        """
        Stop the engine, clone the current instance into snaps/, restart.

        If the clone fails the engine is left stopped: the state of the
        destination is unknown and a restart could hide that.

        Returns:
            LifecycleResult naming the new snapshot
        """
        self.layout.ensure_layout()
        self.pointer.assert_is_symlink()

        current = self.layout.current_path
        name = self.layout.new_snapshot_name()
        destination = self.layout.snapshot_path(name)

        run = LifecycleRun("snapshot")
        self._step(run, Step.STOP, lambda: self.engine.stop(current, mode="fast"))
        self._step(run, Step.CLONE, lambda: self.clone_engine.clone(current, destination))
        self._step(run, Step.START, lambda: self.engine.start(current))
        run.advance(Step.COMPLETE, {"name": name})

        logger.info("Snapshot %s created", name)
        return LifecycleResult("snapshot", name, str(destination), run.completed_steps)

    def revert(self, snap_name: str) -> LifecycleResult:
        """
        Clone a snapshot into a new instance and make it current.

        The snapshot itself is only ever read, so reverting to it any
        number of times yields identical, independent instances.

        Returns:
            LifecycleResult naming the new instance
        """
        if not snap_name:
            raise PreconditionFailure("Revert requires a snapName (e.g. snap_YYYYMMDD_HHMMSS)")

        self.layout.ensure_layout()
        self.pointer.assert_is_symlink()
        source = self._snapshot_source(snap_name)

        current = self.layout.current_path
        name = self.layout.new_instance_name()
        destination = self.layout.instance_path(name)

        run = LifecycleRun("revert")
        self._step(run, Step.STOP, lambda: self.engine.stop(current, mode="fast"))
        self._step(run, Step.CLONE, lambda: self.clone_engine.clone(source, destination))
        self._step(run, Step.REPOINT, lambda: self.pointer.repoint(destination))
        self._step(run, Step.START, lambda: self.engine.start(current))
        run.advance(Step.COMPLETE, {"name": name})

        logger.info("Reverted to %s as %s", snap_name, name)
        return LifecycleResult("revert", name, str(destination), run.completed_steps)

    def list_snapshots(self) -> List[SnapshotInfo]:
        """Snapshots sorted ascending by name (= chronological)."""
        return self.layout.list_snapshots()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def bootstrap(self) -> LifecycleResult:
        """
        First-run setup: layout, inst_active cluster, `current` link.

        Safe to call repeatedly; an existing `current` is left alone.
        """
        self.layout.ensure_layout()

        if self.pointer.exists():
            self.pointer.assert_is_symlink()
            target = self.pointer.target()
            return LifecycleResult("init", target.name, str(target), [])

        active = self.layout.bootstrap_instance
        initialised = False
        if not (active / "PG_VERSION").exists():
            logger.info("Initialising new cluster in %s", active)
            self.engine.initdb(active)
            initialised = True

        self.pointer.repoint(active)
        logger.info("Bootstrapped %s", self.project_dir)
        return LifecycleResult(
            "init", BOOTSTRAP_INSTANCE, str(active), [Step.REPOINT], initialised=initialised,
        )

    def status(self) -> ProjectStatus:
        """Read-only view of the project; never touches the engine."""
        return ProjectStatus(
            project_dir=self.project_dir,
            current_target=self.layout.current_target(),
            current_is_symlink=self.layout.current_path.is_symlink(),
            current_exists=self.pointer.exists(),
            instances=self.layout.list_instances(),
            snapshots=self.layout.list_snapshots(),
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _snapshot_source(self, snap_name: str) -> Path:
        if "/" in snap_name or "\\" in snap_name or snap_name in (".", ".."):
            raise PreconditionFailure(f"Invalid snapshot name: {snap_name}")
        if not snap_name.startswith(SNAPSHOT_PREFIX):
            logger.warning("Snapshot name %s does not start with %s", snap_name, SNAPSHOT_PREFIX)
        if not self.layout.has_snapshot(snap_name):
            raise PreconditionFailure(
                f"Snapshot not found: {self.layout.snapshot_path(snap_name)}"
            )
        return self.layout.snapshot_path(snap_name)

    @staticmethod
    def _step(run: LifecycleRun, step: Step, action: Callable[[], Any]):
        run.advance(step)
        try:
            action()
        except Exception as e:
            run.fail(e)
            logger.debug("%s failed at %s: %s", run.operation, step.name, e)
            if step is not Step.STOP:
                logger.warning("PostgreSQL is left stopped after a failed %s", step.name.lower())
            raise
