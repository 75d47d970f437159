"""
ProjectLayout - the on-disk skeleton of one project.

    <project>/
      instances/
        inst_active/             # bootstrap instance
        inst_<YYYYMMDD_HHMMSS>/  # created by revert
      snaps/
        snap_<YYYYMMDD_HHMMSS>/  # created by snapshot
      current -> instances/<name>

The filesystem is the only source of truth: paths are derived, never
stored, and listings are re-read on every call.
"""

import os
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from .models import (
    BOOTSTRAP_INSTANCE,
    INSTANCE_PREFIX,
    SNAPSHOT_PREFIX,
    InstanceInfo,
    SnapshotInfo,
    unique_name,
)

INSTANCES_DIR = "instances"
SNAPS_DIR = "snaps"
CURRENT_LINK = "current"


class ProjectLayout:
    """Path derivation and directory scans for a project root."""

    def __init__(self, project_dir: Path):
        self.project_dir = Path(os.path.abspath(project_dir))

    def __repr__(self) -> str:
        return f"ProjectLayout({str(self.project_dir)!r})"

    @property
    def instances_dir(self) -> Path:
        return self.project_dir / INSTANCES_DIR

    @property
    def snaps_dir(self) -> Path:
        return self.project_dir / SNAPS_DIR

    @property
    def current_path(self) -> Path:
        return self.project_dir / CURRENT_LINK

    @property
    def bootstrap_instance(self) -> Path:
        return self.instances_dir / BOOTSTRAP_INSTANCE

    def instance_path(self, name: str) -> Path:
        return self.instances_dir / name

    def snapshot_path(self, name: str) -> Path:
        return self.snaps_dir / name

    def ensure_layout(self) -> 'ProjectLayout':
        """
        Create instances/ and snaps/ if absent.

        Raises:
            OSError: a path component is not a directory, or creation
                is not permitted
        """
        self.instances_dir.mkdir(parents=True, exist_ok=True)
        self.snaps_dir.mkdir(parents=True, exist_ok=True)
        return self

    # =========================================================================
    # Naming
    # =========================================================================

    def new_snapshot_name(self, now: Optional[datetime] = None) -> str:
        return unique_name(SNAPSHOT_PREFIX, self.snaps_dir, now=now)

    def new_instance_name(self, now: Optional[datetime] = None) -> str:
        return unique_name(INSTANCE_PREFIX, self.instances_dir, now=now)

    # =========================================================================
    # Scans
    # =========================================================================

    def _scan(self, directory: Path, prefix: str) -> List[Path]:
        if not directory.is_dir():
            return []
        entries = [
            entry for entry in directory.iterdir()
            if entry.name.startswith(prefix) and entry.is_dir() and not entry.is_symlink()
        ]
        return sorted(entries, key=lambda p: p.name)

    def list_snapshots(self) -> List[SnapshotInfo]:
        """Snapshot directories sorted by name (= chronological)."""
        return [SnapshotInfo.from_path(p) for p in self._scan(self.snaps_dir, SNAPSHOT_PREFIX)]

    def list_instances(self) -> List[InstanceInfo]:
        current = self.current_target()
        return [
            InstanceInfo.from_path(p, current)
            for p in self._scan(self.instances_dir, INSTANCE_PREFIX)
        ]

    def current_target(self) -> Optional[Path]:
        """Resolved target of `current`, or None if it is not a symlink."""
        if not self.current_path.is_symlink():
            return None
        return self.current_path.resolve()

    def has_snapshot(self, name: str) -> bool:
        path = self.snapshot_path(name)
        return path.is_dir() and not path.is_symlink()
