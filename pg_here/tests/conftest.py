"""
Shared fixtures for pg_here tests.
"""

from pathlib import Path

import pytest

from pg_here.snapshot import CloneEngine, SnapshotManager

from .mocks import COPY_STRATEGY, MockPgCtl


@pytest.fixture
def project_dir(tmp_path) -> Path:
    return tmp_path / "proj"


@pytest.fixture
def engine() -> MockPgCtl:
    return MockPgCtl()


@pytest.fixture
def clone_engine() -> CloneEngine:
    return CloneEngine([COPY_STRATEGY])


@pytest.fixture
def manager(project_dir, engine, clone_engine) -> SnapshotManager:
    """Bootstrapped project with the engine running on inst_active."""
    mgr = SnapshotManager(project_dir, engine=engine, clone_engine=clone_engine)
    mgr.bootstrap()
    engine.start(mgr.layout.current_path)
    engine.reset()
    return mgr
