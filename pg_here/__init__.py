"""
pg_here - Project-local PostgreSQL with copy-on-write snapshots

Each project directory keeps its cluster data directories under
instances/, immutable point-in-time copies under snaps/, and a
`current` symlink naming the live instance. Snapshots and reverts are
filesystem clones (APFS clonefile, btrfs/XFS reflinks), so they cost
almost nothing in time or space.

Usage:
    # As a command
    pg-here init
    pg-here snapshot
    pg-here revert snap_20260109_143012

    # Programmatically
    from pg_here import SnapshotManager, PgCtl, PgCtlConfig

    manager = SnapshotManager(project_dir, engine=PgCtl(PgCtlConfig()))
    result = manager.snapshot()
"""

__version__ = "0.1.0"

# Errors
from .errors import (
    CloneFailure,
    ConfigError,
    EngineControlFailure,
    InvariantViolation,
    Phase,
    PgHereError,
    PreconditionFailure,
)

# Snapshot core
from .snapshot import (
    CloneEngine,
    LifecycleResult,
    ProjectLayout,
    SnapshotInfo,
    SnapshotManager,
)

# Engine
from .engine import (
    PgCtl,
    PgCtlConfig,
    PgHereHandle,
    PgHereOptions,
    PostgresInstance,
    start_pg_here,
    stop_pg_here,
)

from .config import Config

__all__ = [
    # Version
    "__version__",
    # Errors
    "PgHereError",
    "Phase",
    "PreconditionFailure",
    "InvariantViolation",
    "EngineControlFailure",
    "CloneFailure",
    "ConfigError",
    # Snapshots
    "SnapshotManager",
    "SnapshotInfo",
    "LifecycleResult",
    "ProjectLayout",
    "CloneEngine",
    # Engine
    "PgCtl",
    "PgCtlConfig",
    "PostgresInstance",
    "PgHereOptions",
    "PgHereHandle",
    "start_pg_here",
    "stop_pg_here",
    # Config
    "Config",
]
