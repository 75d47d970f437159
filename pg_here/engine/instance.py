"""
PostgresInstance - a project-local PostgreSQL server.

Wraps pg_ctl/initdb for lifecycle and psycopg2 for the two catalog
operations callers need (database exists / create database).
"""

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from urllib.parse import quote

import psycopg2
from psycopg2 import sql

from .pg_ctl import PgCtl, PgCtlConfig, resolve_binary

logger = logging.getLogger(__name__)

DEFAULT_USERNAME = "postgres"
DEFAULT_PASSWORD = "postgres"
DEFAULT_PORT = 55432
DEFAULT_DATABASE = "postgres"
DEFAULT_HOST = "localhost"


@dataclass
class ConnectionInfo:
    """How to reach a running instance."""
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    username: str = DEFAULT_USERNAME
    password: str = DEFAULT_PASSWORD
    database: str = DEFAULT_DATABASE

    @property
    def connection_string(self) -> str:
        return (
            f"postgresql://{quote(self.username, safe='')}:{quote(self.password, safe='')}"
            f"@{self.host}:{self.port}/{quote(self.database, safe='')}"
        )


class PostgresInstance:
    """A PostgreSQL cluster living in a project directory."""

    def __init__(
        self,
        data_dir: Path,
        installation_dir: Optional[Path] = None,
        port: int = DEFAULT_PORT,
        username: str = DEFAULT_USERNAME,
        password: str = DEFAULT_PASSWORD,
        version: Optional[str] = None,
        persistent: bool = True,
        pg_ctl: Optional[str] = None,
        log_file: Optional[str] = None,
    ):
        """
        Args:
            data_dir: Cluster data directory (created by initdb if empty)
            installation_dir: pg_local/bin style directory holding <version>/bin/
            port: TCP port the server listens on
            username: Superuser created by initdb
            password: Superuser password
            version: Preferred PostgreSQL version (prefix match, e.g. "17")
            persistent: Keep the data directory on cleanup()
            pg_ctl: Explicit pg_ctl path (overrides installation_dir)
            log_file: Server log file passed to pg_ctl -l
        """
        self.data_dir = Path(data_dir)
        self.installation_dir = Path(installation_dir) if installation_dir else None
        self.port = port
        self.username = username
        self.password = password
        self.version = version
        self.persistent = persistent

        if pg_ctl is None:
            found = resolve_binary("pg_ctl", self.installation_dir, version)
            pg_ctl = str(found) if found else "pg_ctl"

        self.control = PgCtl(PgCtlConfig(
            pg_ctl=pg_ctl,
            port=port,
            log_file=log_file,
            username=username,
            password=password,
        ))

    @property
    def connection_info(self) -> ConnectionInfo:
        return ConnectionInfo(
            port=self.port,
            username=self.username,
            password=self.password,
        )

    @property
    def is_initialized(self) -> bool:
        return (self.data_dir / "PG_VERSION").exists()

    def postgres_version(self) -> str:
        """Major version recorded in the data directory ('' if uninitialised)."""
        try:
            return (self.data_dir / "PG_VERSION").read_text().strip()
        except OSError:
            return ""

    def start(self):
        """Initialise the data directory on first use, then start the server."""
        if not self.is_initialized:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            self.control.initdb(self.data_dir)
        self.control.start(self.data_dir)

    def stop(self):
        self.control.stop(self.data_dir, mode="fast")

    def is_running(self) -> bool:
        return self.control.is_running(self.data_dir)

    def cleanup(self):
        """Remove the data directory unless the instance is persistent."""
        if self.persistent:
            return
        if self.data_dir.exists():
            shutil.rmtree(self.data_dir)
            logger.info("Removed data directory %s", self.data_dir)

    # =========================================================================
    # Catalog operations
    # =========================================================================

    def connect(self, database: str = DEFAULT_DATABASE):
        """Open a psycopg2 connection to the given database."""
        info = self.connection_info
        return psycopg2.connect(
            host=info.host,
            port=info.port,
            user=info.username,
            password=info.password,
            dbname=database,
        )

    def database_exists(self, name: str) -> bool:
        conn = self.connect()
        try:
            with conn.cursor() as cur:
                cur.execute("SELECT 1 FROM pg_database WHERE datname = %s", (name,))
                return cur.fetchone() is not None
        finally:
            conn.close()

    def create_database(self, name: str):
        conn = self.connect()
        try:
            # CREATE DATABASE cannot run inside a transaction block
            conn.autocommit = True
            with conn.cursor() as cur:
                cur.execute(sql.SQL("CREATE DATABASE {}").format(sql.Identifier(name)))
        finally:
            conn.close()
        logger.info("Created database %s", name)
