"""
Filesystem-clone snapshots for a project-local PostgreSQL.

A project directory holds one or more cluster data directories under
instances/, point-in-time clones under snaps/, and a `current` symlink
naming the active instance. Key features:

- Snapshot: stop, clone the current instance into snaps/, restart
- Revert: stop, clone a snapshot into a new instance, repoint, restart
- List: snapshot names in chronological order

Clones use copy-on-write (APFS clonefile, Linux reflinks), so they are
near-instant regardless of database size.
"""

from .models import SnapshotInfo, InstanceInfo, ProjectStatus, timestamp
from .layout import ProjectLayout
from .clone import CloneEngine, CloneStrategy, default_strategies
from .pointer import CurrentPointer
from .lifecycle import Step, LifecycleRun, LifecycleResult
from .manager import SnapshotManager

__all__ = [
    'SnapshotInfo',
    'InstanceInfo',
    'ProjectStatus',
    'timestamp',
    'ProjectLayout',
    'CloneEngine',
    'CloneStrategy',
    'default_strategies',
    'CurrentPointer',
    'Step',
    'LifecycleRun',
    'LifecycleResult',
    'SnapshotManager',
]
