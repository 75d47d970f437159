"""
Data models and naming for instances and snapshots.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional

SNAPSHOT_PREFIX = "snap_"
INSTANCE_PREFIX = "inst_"
BOOTSTRAP_INSTANCE = "inst_active"

TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"

# snap_20260109_143012 or snap_20260109_143012_01
_STAMP_RE = re.compile(r"_(\d{8}_\d{6})(?:_(\d{2}))?$")

MAX_COLLISION_SUFFIX = 99


def timestamp(now: Optional[datetime] = None) -> str:
    """Local time as YYYYMMDD_HHMMSS (one-second resolution)."""
    return (now or datetime.now()).strftime(TIMESTAMP_FORMAT)


def unique_name(
    prefix: str,
    parent: Path,
    now: Optional[datetime] = None,
    exists: Optional[Callable[[Path], bool]] = None,
) -> str:
    """
    Generate `<prefix><timestamp>` that does not exist under parent.

    Names created within the same second get a zero-padded counter
    (`_01`, `_02`, ...) so lexicographic order stays chronological.
    """
    exists = exists or (lambda p: p.exists() or p.is_symlink())
    base = f"{prefix}{timestamp(now)}"
    if not exists(parent / base):
        return base

    for counter in range(1, MAX_COLLISION_SUFFIX + 1):
        candidate = f"{base}_{counter:02d}"
        if not exists(parent / candidate):
            return candidate

    raise FileExistsError(f"No free name left for {base} under {parent}")


def parse_created_at(name: str) -> Optional[datetime]:
    """Recover the creation time encoded in a generated name."""
    match = _STAMP_RE.search(name)
    if not match:
        return None
    try:
        return datetime.strptime(match.group(1), TIMESTAMP_FORMAT)
    except ValueError:
        return None


@dataclass
class SnapshotInfo:
    """Summary info for listing snapshots."""
    name: str
    path: Path
    created_at: Optional[datetime] = None

    @classmethod
    def from_path(cls, path: Path) -> 'SnapshotInfo':
        return cls(name=path.name, path=path, created_at=parse_created_at(path.name))


@dataclass
class InstanceInfo:
    """Summary info for a cluster data directory under instances/."""
    name: str
    path: Path
    created_at: Optional[datetime] = None
    is_current: bool = False

    @property
    def is_bootstrap(self) -> bool:
        return self.name == BOOTSTRAP_INSTANCE

    @classmethod
    def from_path(cls, path: Path, current: Optional[Path] = None) -> 'InstanceInfo':
        return cls(
            name=path.name,
            path=path,
            created_at=parse_created_at(path.name),
            is_current=current is not None and path.resolve() == current,
        )


@dataclass
class ProjectStatus:
    """Point-in-time view of a project directory."""
    project_dir: Path
    current_target: Optional[Path]
    current_is_symlink: bool
    current_exists: bool = False
    instances: List[InstanceInfo] = field(default_factory=list)
    snapshots: List[SnapshotInfo] = field(default_factory=list)

    @property
    def current_name(self) -> Optional[str]:
        return self.current_target.name if self.current_target else None
