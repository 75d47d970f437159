"""
Mock components for testing pg_here without PostgreSQL binaries.
"""

from .mock_engine import (
    COPY_STRATEGY,
    FAILING_STRATEGY,
    MISSING_STRATEGY,
    PARTIAL_STRATEGY,
    MockPgCtl,
    MockPostgresInstance,
    read_marker,
    write_marker,
)

__all__ = [
    'MockPgCtl',
    'MockPostgresInstance',
    'COPY_STRATEGY',
    'FAILING_STRATEGY',
    'MISSING_STRATEGY',
    'PARTIAL_STRATEGY',
    'read_marker',
    'write_marker',
]
