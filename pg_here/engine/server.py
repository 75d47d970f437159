"""
Programmatic entry point: start a project-local PostgreSQL and get a handle.

Usage:
    from pg_here import start_pg_here, PgHereOptions

    pg = start_pg_here(PgHereOptions(database="app"))
    print(pg.database_connection_string)
    ...
    pg.stop()
"""

import logging
import signal
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional
from urllib.parse import quote, urlsplit, urlunsplit

from .instance import (
    DEFAULT_DATABASE,
    DEFAULT_PASSWORD,
    DEFAULT_PORT,
    DEFAULT_USERNAME,
    PostgresInstance,
)

logger = logging.getLogger(__name__)

DEFAULT_SHUTDOWN_SIGNALS = ("SIGINT", "SIGTERM")


@dataclass
class PgHereOptions:
    """Options for start_pg_here()."""
    project_dir: Optional[Path] = None
    data_dir: Optional[Path] = None
    installation_dir: Optional[Path] = None
    postgres_version: Optional[str] = None
    port: int = DEFAULT_PORT
    username: str = DEFAULT_USERNAME
    password: str = DEFAULT_PASSWORD
    persistent: bool = True
    database: str = DEFAULT_DATABASE
    create_database_if_missing: Optional[bool] = None
    register_shutdown_handlers: bool = True
    shutdown_signals: List[str] = field(default_factory=lambda: list(DEFAULT_SHUTDOWN_SIGNALS))
    cleanup_on_shutdown: bool = False
    pg_ctl: Optional[str] = None
    log_file: Optional[str] = None


def create_pg_here_instance(options: Optional[PgHereOptions] = None) -> PostgresInstance:
    """Build (but do not start) the instance described by options."""
    options = options or PgHereOptions()
    root = Path(options.project_dir or Path.cwd()).resolve()
    data_dir = Path(options.data_dir or root / "pg_local" / "data").resolve()
    installation_dir = Path(options.installation_dir or root / "pg_local" / "bin").resolve()

    return PostgresInstance(
        data_dir=data_dir,
        installation_dir=installation_dir,
        port=options.port,
        username=options.username,
        password=options.password,
        version=options.postgres_version,
        persistent=options.persistent,
        pg_ctl=options.pg_ctl,
        log_file=options.log_file,
    )


def ensure_pg_here_database(instance: PostgresInstance, database: str) -> bool:
    """
    Create database if it does not exist yet.

    Returns:
        True if the database was created, False if nothing was done
    """
    if not database or database == DEFAULT_DATABASE:
        return False
    if instance.database_exists(database):
        return False
    instance.create_database(database)
    return True


def stop_pg_here(instance: PostgresInstance, cleanup: bool = False):
    """Best-effort stop (and optional cleanup); failures are only logged."""
    try:
        instance.stop()
    except Exception as e:
        logger.debug("stop failed during shutdown: %s", e)

    if cleanup:
        try:
            instance.cleanup()
        except Exception as e:
            logger.debug("cleanup failed during shutdown: %s", e)


def set_connection_database(connection_string: str, database: str) -> str:
    """Return connection_string with its database path replaced."""
    parts = urlsplit(connection_string)
    return urlunsplit(parts._replace(path=f"/{quote(database, safe='')}"))


def register_shutdown_handlers(
    stop: Callable[[], None],
    signals: List[str],
    exit_process: Callable[[int], None] = sys.exit,
) -> Callable[[], None]:
    """
    Stop once on the first of the given signals, then exit 0.

    Returns:
        A function that restores the previous handlers
    """
    stopping = False
    previous: Dict[signal.Signals, object] = {}

    def handler(signum, frame):
        nonlocal stopping
        if stopping:
            return
        stopping = True
        try:
            stop()
        finally:
            exit_process(0)

    for name in dict.fromkeys(signals):
        signum = signal.Signals[name]
        previous[signum] = signal.signal(signum, handler)

    def remove():
        for signum, old in previous.items():
            signal.signal(signum, old)
        previous.clear()

    return remove


class PgHereHandle:
    """A running instance plus the helpers to use and stop it."""

    def __init__(self, instance: PostgresInstance, database: str, cleanup_on_shutdown: bool = False):
        self.instance = instance
        self.database = database
        self.cleanup_on_shutdown = cleanup_on_shutdown
        self.connection_string = instance.connection_info.connection_string
        self.database_connection_string = set_connection_database(self.connection_string, database)
        self._remove_hooks: Callable[[], None] = lambda: None

    def remove_shutdown_hooks(self):
        self._remove_hooks()
        self._remove_hooks = lambda: None

    def stop(self, cleanup: Optional[bool] = None):
        self.remove_shutdown_hooks()
        stop_pg_here(
            self.instance,
            cleanup=self.cleanup_on_shutdown if cleanup is None else cleanup,
        )

    def cleanup(self):
        self.stop(cleanup=True)

    def ensure_database(self, database: Optional[str] = None) -> bool:
        return ensure_pg_here_database(self.instance, database or self.database)


def start_pg_here(
    options: Optional[PgHereOptions] = None,
    instance: Optional[PostgresInstance] = None,
) -> PgHereHandle:
    """
    Start the project-local PostgreSQL.

    Args:
        options: Startup options (defaults: ./pg_local, port 55432)
        instance: Pre-built instance to start instead of building one

    Returns:
        PgHereHandle for the running server
    """
    options = options or PgHereOptions()
    instance = instance or create_pg_here_instance(options)
    instance.start()

    database = options.database or DEFAULT_DATABASE
    should_create = options.create_database_if_missing
    if should_create is None:
        should_create = database != DEFAULT_DATABASE
    if should_create:
        ensure_pg_here_database(instance, database)

    handle = PgHereHandle(instance, database, options.cleanup_on_shutdown)
    if options.register_shutdown_handlers:
        handle._remove_hooks = register_shutdown_handlers(
            stop=lambda: stop_pg_here(instance, cleanup=options.cleanup_on_shutdown),
            signals=options.shutdown_signals,
        )
    return handle
