"""
PgCtl - controls a PostgreSQL cluster through its pg_ctl binary.

Provides:
- Start / fast stop of a data directory (both wait for completion)
- Status check
- Cluster initialisation (initdb)
- pg_ctl discovery (override, PG_CTL, project-local install, PATH)
"""

import logging
import os
import re
import shutil
import subprocess
import tempfile
from dataclasses import dataclass
from functools import cmp_to_key
from pathlib import Path
from typing import List, Mapping, Optional

from ..errors import EngineControlFailure, Phase

logger = logging.getLogger(__name__)

VERSION_DIR_RE = re.compile(r"^\d+\.\d+(\.\d+)?$")

# pg_ctl status exit codes
STATUS_RUNNING = 0
STATUS_NOT_RUNNING = 3
STATUS_NO_DATA_DIR = 4


def compare_versions(a: str, b: str) -> int:
    """Comparator that sorts dotted versions newest first."""
    parts_a = [int(p) if p.isdigit() else 0 for p in a.split(".")]
    parts_b = [int(p) if p.isdigit() else 0 for p in b.split(".")]
    for i in range(max(len(parts_a), len(parts_b))):
        va = parts_a[i] if i < len(parts_a) else 0
        vb = parts_b[i] if i < len(parts_b) else 0
        if va != vb:
            return vb - va
    return 0


def installed_versions(bin_dir: Path) -> List[str]:
    """Version directories under pg_local/bin, newest first."""
    bin_dir = Path(bin_dir)
    if not bin_dir.is_dir():
        return []
    versions = [
        entry.name for entry in bin_dir.iterdir()
        if entry.is_dir() and VERSION_DIR_RE.match(entry.name)
    ]
    return sorted(versions, key=cmp_to_key(compare_versions))


def _version_matches(installed: str, requested: str) -> bool:
    requested = requested.lstrip(">=~^ ")
    return installed == requested or installed.startswith(requested + ".")


def resolve_binary(
    name: str,
    installation_dir: Optional[Path] = None,
    version: Optional[str] = None,
) -> Optional[Path]:
    """Find `<installation_dir>/<version>/bin/<name>`, newest matching version first."""
    if installation_dir is None:
        return None
    for candidate_version in installed_versions(installation_dir):
        if version and not _version_matches(candidate_version, version):
            continue
        candidate = Path(installation_dir) / candidate_version / "bin" / name
        if candidate.exists():
            return candidate
    return None


def resolve_pg_ctl(
    root_dir: Optional[Path] = None,
    override: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
    version: Optional[str] = None,
) -> str:
    """
    Locate pg_ctl.

    Order: explicit override, PG_CTL, ./pg_local/bin/<newest>/bin/pg_ctl,
    then plain `pg_ctl` from PATH.
    """
    env = os.environ if env is None else env
    if override:
        return override
    if env.get("PG_CTL"):
        return env["PG_CTL"]

    root = Path(root_dir) if root_dir else Path.cwd()
    local = resolve_binary("pg_ctl", root / "pg_local" / "bin", version)
    if local is not None:
        return str(local)

    return "pg_ctl"


@dataclass
class PgCtlConfig:
    """Configuration for the pg_ctl controller."""
    pg_ctl: str = "pg_ctl"
    port: Optional[int] = None
    log_file: Optional[str] = None
    username: str = "postgres"
    password: str = "postgres"


class PgCtl:
    """
    Starts and stops a local cluster.

    Every call blocks until pg_ctl exits; start and stop pass -w so
    that return means the server is ready, or fully flushed and gone.
    """

    def __init__(self, config: Optional[PgCtlConfig] = None):
        self.config = config or PgCtlConfig()

    @property
    def bin_dir(self) -> Optional[Path]:
        path = Path(self.config.pg_ctl)
        if path.parent != Path("."):
            return path.parent
        found = shutil.which(self.config.pg_ctl)
        return Path(found).parent if found else None

    def _run(self, args: List[str], phase: Phase, detach: bool = False) -> subprocess.CompletedProcess:
        cmd = [self.config.pg_ctl, *args]
        logger.debug("run: %s", " ".join(cmd))
        try:
            if detach:
                # the postmaster inherits our stdio; a pipe here would never close
                result = subprocess.run(
                    cmd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL, check=False,
                )
            else:
                result = subprocess.run(cmd, capture_output=True, text=True, check=False)
        except OSError as e:
            raise EngineControlFailure(
                f"Could not run {self.config.pg_ctl}: {e.strerror or e}",
                command=cmd, phase=phase,
            ) from e

        if result.returncode != 0:
            detail = (getattr(result, "stderr", None) or "").strip().splitlines()
            message = f"pg_ctl failed: {' '.join(cmd)}"
            if detail:
                message += f": {detail[-1]}"
            raise EngineControlFailure(
                message, exit_code=result.returncode, command=cmd, phase=phase,
            )
        return result

    def stop(self, data_dir: Path, mode: str = "fast"):
        """Stop the server and wait until it has exited."""
        self._run(["-D", str(data_dir), "stop", "-m", mode, "-w"], Phase.STOP)
        logger.info("Stopped PostgreSQL (%s)", data_dir)

    def start(self, data_dir: Path):
        """Start the server and wait until it accepts connections."""
        args = ["-D", str(data_dir), "start", "-w"]
        if self.config.log_file:
            args.extend(["-l", self.config.log_file])
        if self.config.port:
            args.extend(["-o", f"-p {self.config.port}"])
        self._run(args, Phase.START, detach=not self.config.log_file)
        logger.info("Started PostgreSQL (%s)", data_dir)

    def status(self, data_dir: Path) -> int:
        """Raw pg_ctl status exit code (0 running, 3 stopped, 4 no data dir)."""
        cmd = [self.config.pg_ctl, "-D", str(data_dir), "status"]
        try:
            return subprocess.run(cmd, capture_output=True, text=True, check=False).returncode
        except OSError:
            return STATUS_NO_DATA_DIR

    def is_running(self, data_dir: Path) -> bool:
        return self.status(data_dir) == STATUS_RUNNING

    def initdb(self, data_dir: Path):
        """
        Initialise a new cluster in data_dir.

        Uses the initdb binary that sits next to pg_ctl.
        """
        bin_dir = self.bin_dir
        initdb = str(bin_dir / "initdb") if bin_dir else "initdb"

        with tempfile.NamedTemporaryFile("w", suffix=".pw", delete=False) as pw:
            pw.write(self.config.password + "\n")
            pwfile = pw.name

        cmd = [
            initdb, "-D", str(data_dir),
            "-U", self.config.username,
            f"--pwfile={pwfile}",
            "--auth=scram-sha-256",
            "-E", "UTF8",
        ]
        logger.debug("run: %s", " ".join(cmd))
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, check=False)
        except OSError as e:
            raise EngineControlFailure(
                f"Could not run {initdb}: {e.strerror or e}", command=cmd, phase=Phase.BOOTSTRAP,
            ) from e
        finally:
            os.unlink(pwfile)

        if result.returncode != 0:
            tail = (result.stderr or "").strip().splitlines()
            raise EngineControlFailure(
                f"initdb failed for {data_dir}" + (f": {tail[-1]}" if tail else ""),
                exit_code=result.returncode, command=cmd, phase=Phase.BOOTSTRAP,
            )

        if self.config.port:
            with open(Path(data_dir) / "postgresql.auto.conf", "a") as f:
                f.write(f"port = {self.config.port}\n")
        logger.info("Initialised cluster in %s", data_dir)
