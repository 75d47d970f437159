"""
CloneEngine - copy-on-write directory clones.

Strategies are tried in order; the first one that exits 0 wins. On a
filesystem with reflink/clonefile support the clone is metadata-only
and near-instant regardless of data size. There is deliberately no
plain byte-copy fallback: if no strategy succeeds the clone fails.
"""

import logging
import os
import shutil
import subprocess
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from ..errors import CloneAttempt, CloneFailure, PreconditionFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CloneStrategy:
    """An external command that clones `source` to `destination`."""
    name: str
    argv: Sequence[str]

    def command(self, source: Path, destination: Path) -> List[str]:
        return [*self.argv, str(source), str(destination)]

    def run(self, source: Path, destination: Path) -> CloneAttempt:
        cmd = self.command(source, destination)
        logger.debug("clone: %s", " ".join(cmd))
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, check=False)
        except OSError as e:
            return CloneAttempt(strategy=self.name, exit_code=None, error=e.strerror or str(e))

        if result.returncode != 0 and result.stderr:
            logger.debug("%s stderr: %s", self.name, result.stderr.strip())
        return CloneAttempt(strategy=self.name, exit_code=result.returncode)


# macOS: APFS clonefile via cp -c, then ditto --clone
DARWIN_STRATEGIES = (
    CloneStrategy("cp -c", ("cp", "-cR")),
    CloneStrategy("ditto --clone", ("ditto", "--clone")),
)

# Linux: FICLONE reflinks (btrfs, XFS, bcachefs); -a also keeps owners and times
LINUX_STRATEGIES = (
    CloneStrategy("cp -R --reflink", ("cp", "-R", "--reflink=always")),
    CloneStrategy("cp -a --reflink", ("cp", "-a", "--reflink=always")),
)


def default_strategies(platform: Optional[str] = None) -> List[CloneStrategy]:
    platform = platform or sys.platform
    if platform == "darwin":
        return list(DARWIN_STRATEGIES)
    if platform.startswith("linux"):
        return list(LINUX_STRATEGIES)
    return []


def first_success(
    attempts: Sequence[Callable[[], CloneAttempt]],
    between: Optional[Callable[[CloneAttempt], None]] = None,
) -> List[CloneAttempt]:
    """
    Run attempts in order until one succeeds.

    Returns every attempt made; the last one succeeded iff any did.
    """
    made: List[CloneAttempt] = []
    for attempt in attempts:
        outcome = attempt()
        made.append(outcome)
        if outcome.succeeded:
            break
        if between is not None:
            between(outcome)
    return made


def resolve_source(source: Path) -> Path:
    """Follow a symlinked source so the physical directory is copied."""
    source = Path(source)
    if source.is_symlink():
        return Path(os.path.realpath(source))
    return source


class CloneEngine:
    """Clones a directory tree with the cheapest available strategy."""

    def __init__(self, strategies: Optional[Sequence[CloneStrategy]] = None):
        self.strategies = list(strategies) if strategies is not None else default_strategies()

    def clone(self, source: Path, destination: Path) -> Path:
        """
        Clone source into destination (which must not exist yet).

        Returns:
            The resolved source path that was cloned

        Raises:
            PreconditionFailure: source missing or destination exists
            CloneFailure: every strategy failed
        """
        real_source = resolve_source(source)
        destination = Path(destination)

        if not real_source.is_dir():
            raise PreconditionFailure(f"Clone source is not a directory: {real_source}")
        if destination.exists() or destination.is_symlink():
            raise PreconditionFailure(f"Refusing to overwrite existing directory: {destination}")

        started = time.monotonic()
        attempts = first_success(
            [lambda s=s: s.run(real_source, destination) for s in self.strategies],
            between=lambda _: self._discard_partial(destination),
        )

        if not attempts or not attempts[-1].succeeded:
            raise CloneFailure(str(real_source), str(destination), attempts)

        logger.info(
            "Cloned %s -> %s via %s in %.1fms",
            real_source, destination, attempts[-1].strategy,
            (time.monotonic() - started) * 1000,
        )
        return real_source

    @staticmethod
    def _discard_partial(destination: Path):
        # destination did not exist before this clone, so anything there
        # is output of the strategy that just failed
        if destination.is_symlink():
            destination.unlink()
        elif destination.exists():
            shutil.rmtree(destination)
