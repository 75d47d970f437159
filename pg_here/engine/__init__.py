"""
Database engine collaborator: pg_ctl control, the project-local
instance, and the start/stop/ensure-database API built on them.
"""

from .pg_ctl import PgCtl, PgCtlConfig, resolve_pg_ctl, compare_versions, installed_versions
from .instance import PostgresInstance, ConnectionInfo
from .server import PgHereOptions, PgHereHandle, start_pg_here, stop_pg_here, ensure_pg_here_database

__all__ = [
    'PgCtl',
    'PgCtlConfig',
    'resolve_pg_ctl',
    'compare_versions',
    'installed_versions',
    'PostgresInstance',
    'ConnectionInfo',
    'PgHereOptions',
    'PgHereHandle',
    'start_pg_here',
    'stop_pg_here',
    'ensure_pg_here_database',
]
