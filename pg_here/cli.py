"""
CLI - Command-line interface for pg_here.

Snapshot workflow: init, snapshot, revert, list, status, stop.
Server workflow: up (start ./pg_local and print the connection string).
"""

import argparse
import logging
import signal
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from rich.console import Console

from .config import Config
from .engine.diagnostics import runtime_help
from .engine.pg_ctl import PgCtl, PgCtlConfig, resolve_pg_ctl
from .engine.server import PgHereOptions, start_pg_here
from .errors import EngineControlFailure, PgHereError, PreconditionFailure
from .snapshot import CloneEngine, SnapshotManager
from .ui import ConsoleUI, setup_logging

logger = logging.getLogger(__name__)

SERVER_LOG = "postgres.log"

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def _common_options() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "-p", "--project",
        help="Project directory (same as positional projectDir; env PG_PROJECT)"
    )
    common.add_argument(
        "--pg-ctl",
        dest="pg_ctl",
        help="Full path to pg_ctl (overrides PG_CTL)"
    )
    common.add_argument(
        "--config",
        help="Path to a pg_here.toml config file"
    )
    common.add_argument(
        "--log-file",
        dest="log_file",
        help=f"Server log file used on restart (default: <project>/{SERVER_LOG})"
    )
    common.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Show progress and debug logging"
    )
    return common


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    common = _common_options()
    parser = argparse.ArgumentParser(
        prog="pg-here",
        description="Project-local PostgreSQL with copy-on-write snapshots",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    pg-here up -d app                    # start ./pg_local, print connection string
    pg-here init                         # create ./pg_projects/default and start it
    pg-here snapshot
    pg-here snapshot /tmp/myproj
    pg-here list /tmp/myproj
    pg-here revert /tmp/myproj snap_20260109_143012

Defaults:
    projectDir: ./pg_projects/default
    pg_ctl:     PG_CTL, ./pg_local/bin/<version>/bin/pg_ctl, or PATH

Environment Variables:
    PG_PROJECT    Project directory
    PG_CTL        pg_ctl binary
    PG_VERSION    PostgreSQL version for `up`
    PG_HERE_PORT  Server port
        """,
    )
    sub = parser.add_subparsers(dest="command", metavar="command")

    for name, help_text in (
        ("init", "Create the project layout and start PostgreSQL on `current`"),
        ("snapshot", "Stop, clone the current instance into snaps/, restart"),
        ("list", "Print snapshot names, oldest first"),
        ("status", "Show current instance, instances and snapshots"),
        ("stop", "Stop PostgreSQL running on `current`"),
    ):
        cmd = sub.add_parser(name, parents=[common], help=help_text, description=help_text)
        cmd.add_argument("project_dir", nargs="?", metavar="projectDir")
        if name == "list":
            cmd.add_argument("-l", "--long", action="store_true", help="Show a table with creation times")
        if name == "init":
            cmd.add_argument("--port", type=int, help="Port for a newly created cluster")

    revert = sub.add_parser(
        "revert", parents=[common],
        help="Clone a snapshot into a new instance and make it current",
        description="Clone a snapshot into a new instance and make it current",
    )
    revert.add_argument("positionals", nargs="*", metavar="[projectDir] snapName")
    revert.add_argument(
        "-s", "--snap",
        help="Snapshot name to revert to (e.g. snap_20260109_143012)"
    )

    up = sub.add_parser(
        "up", parents=[common],
        help="Start ./pg_local PostgreSQL and print the connection string",
        description="Start ./pg_local PostgreSQL and print the connection string",
    )
    up.add_argument("--port", type=int, help="PostgreSQL port (default: 55432)")
    up.add_argument("-u", "--username", help="PostgreSQL username (default: postgres)")
    up.add_argument("-W", "--password", help="PostgreSQL password (default: postgres)")
    up.add_argument("-d", "--database", help="Database to use (created if missing)")
    up.add_argument("--pg-version", dest="pg_version", help="PostgreSQL version (e.g. 17 or 17.2.0)")

    return parser


def _revert_target(args) -> Tuple[Optional[str], Optional[str]]:
    """
    Split revert positionals into (projectDir, snapName).

    Positionals bind in order, so a lone argument is the project
    directory; `--snap` names the snapshot and wins over a second one.
    """
    positionals = list(args.positionals or [])
    if len(positionals) > 2:
        raise PreconditionFailure(f"Unexpected arguments: {' '.join(positionals[2:])}")
    project = positionals[0] if positionals else None
    if args.snap is not None:
        return project, args.snap
    snap_name = positionals[1] if len(positionals) == 2 else None
    return project, snap_name


def build_engine(config: Config, project_dir: Path) -> PgCtl:
    """pg_ctl controller for the snapshot commands."""
    return PgCtl(PgCtlConfig(
        pg_ctl=resolve_pg_ctl(Path.cwd(), config.paths.pg_ctl, version=config.server.version),
        port=config.server.port,
        log_file=config.paths.log_file or str(project_dir / SERVER_LOG),
        username=config.server.username,
        password=config.server.password,
    ))


def build_clone_engine() -> CloneEngine:
    return CloneEngine()


def _manager(config: Config, project_dir: Path) -> SnapshotManager:
    return SnapshotManager(
        project_dir,
        engine=build_engine(config, project_dir),
        clone_engine=build_clone_engine(),
    )


def cmd_init(config: Config, project_dir: Path, ui: ConsoleUI) -> int:
    manager = _manager(config, project_dir)
    result = manager.bootstrap()
    current = manager.layout.current_path
    if not manager.engine.is_running(current):
        manager.engine.start(current)
    ui.print_success(f"PostgreSQL running on {result.name} (port {config.server.port})")
    print(result.name)
    return EXIT_OK


def cmd_snapshot(config: Config, project_dir: Path, ui: ConsoleUI) -> int:
    result = _manager(config, project_dir).snapshot()
    ui.print_success(f"Snapshot created: {result.path}")
    print(result.name)
    return EXIT_OK


def cmd_revert(config: Config, project_dir: Path, snap_name: str, ui: ConsoleUI) -> int:
    result = _manager(config, project_dir).revert(snap_name)
    ui.print_success(f"Reverted to {snap_name}; current -> {result.name}")
    print(result.name)
    return EXIT_OK


def cmd_list(config: Config, project_dir: Path, long: bool) -> int:
    manager = SnapshotManager(project_dir, engine=None)
    manager.layout.ensure_layout()
    snapshots = manager.list_snapshots()
    if long:
        ConsoleUI(console=Console()).print_snapshots(snapshots)
    else:
        for snap in snapshots:
            print(snap.name)
    return EXIT_OK


def cmd_status(config: Config, project_dir: Path) -> int:
    status = SnapshotManager(project_dir, engine=None).status()
    ConsoleUI(console=Console()).print_status(status)
    return EXIT_OK


def cmd_stop(config: Config, project_dir: Path, ui: ConsoleUI) -> int:
    manager = _manager(config, project_dir)
    manager.pointer.assert_is_symlink()
    manager.engine.stop(manager.layout.current_path, mode="fast")
    ui.print_success("PostgreSQL stopped")
    return EXIT_OK


def cmd_up(config: Config, ui: ConsoleUI) -> int:
    root = Path.cwd()
    pg = start_pg_here(PgHereOptions(
        project_dir=root,
        installation_dir=config.paths.installation_dir(root),
        postgres_version=config.server.version,
        port=config.server.port,
        username=config.server.username,
        password=config.server.password,
        database=config.server.database,
        pg_ctl=config.paths.pg_ctl,
        log_file=config.paths.log_file or str(root / config.paths.pg_local / SERVER_LOG),
    ))
    version = pg.instance.postgres_version()
    ui.print(f"PostgreSQL {version or ''} running from {pg.instance.data_dir}", highlight=False)

    # connection string for tooling
    print(pg.database_connection_string, flush=True)

    # Ctrl-C (or SIGTERM) stops postgres through the handle's shutdown hooks
    while True:
        signal.pause()


def run(argv: Optional[List[str]] = None) -> int:
    """Parse argv, dispatch, and map errors to exit codes."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return EXIT_OK

    ui = ConsoleUI(quiet=not args.verbose)
    setup_logging(verbose=args.verbose)

    try:
        config = Config.load(args.config).override_from_args(args)
        errors = config.validate()
        if errors:
            for error in errors:
                ui.print_error(error)
            return EXIT_FAILURE

        if args.command == "up":
            logger.debug("Effective configuration:\n%s", config.summary())
            return cmd_up(config, ui)

        if args.command == "revert":
            project_arg, snap_name = _revert_target(args)
        else:
            project_arg, snap_name = args.project_dir, None

        if project_arg:
            config.paths.project_dir = project_arg
        project_dir = config.paths.resolve_project_dir()
        logger.debug("Effective configuration:\n%s", config.summary())

        if args.command == "revert":
            if not snap_name:
                ui.print_error("Revert requires a snapName (e.g. snap_YYYYMMDD_HHMMSS)")
                return EXIT_FAILURE
            return cmd_revert(config, project_dir, snap_name, ui)
        if args.command == "snapshot":
            return cmd_snapshot(config, project_dir, ui)
        if args.command == "list":
            return cmd_list(config, project_dir, args.long)
        if args.command == "status":
            return cmd_status(config, project_dir)
        if args.command == "init":
            return cmd_init(config, project_dir, ui)
        if args.command == "stop":
            return cmd_stop(config, project_dir, ui)

        ui.print_error(f"Unknown command: {args.command}")
        return EXIT_FAILURE

    except KeyboardInterrupt:
        ui.print_error("Interrupted by user")
        return EXIT_INTERRUPTED

    except EngineControlFailure as e:
        ui.print_error(str(e), runtime_help(e))
        return EXIT_FAILURE

    except PgHereError as e:
        ui.print_error(str(e))
        return EXIT_FAILURE

    except OSError as e:
        ui.print_error(f"{e.strerror or e}: {e.filename}" if e.filename else str(e))
        return EXIT_FAILURE


def main():
    """Main entry point."""
    sys.exit(run())


if __name__ == "__main__":
    main()
