"""
CurrentPointer - the `current` symlink that names the active instance.
"""

import logging
import os
import uuid
from pathlib import Path

from ..errors import InvariantViolation, Phase, PreconditionFailure

logger = logging.getLogger(__name__)


class CurrentPointer:
    """
    Maintains `current -> instances/<name>`.

    `current` must always be a symlink. Anything else at that path is
    treated as data and is never removed or overwritten.
    """

    def __init__(self, current_path: Path):
        self.current_path = Path(current_path)

    def exists(self) -> bool:
        return self.current_path.is_symlink() or self.current_path.exists()

    def assert_is_symlink(self):
        """
        Precondition for every mutating operation.

        Raises:
            PreconditionFailure: `current` does not exist
            InvariantViolation: `current` exists but is not a symlink
        """
        if not self.exists():
            raise PreconditionFailure(
                f"{self.current_path} does not exist; run `pg-here init` first"
            )
        if not self.current_path.is_symlink():
            raise InvariantViolation(f"Expected {self.current_path} to be a symlink")

    def target(self) -> Path:
        """Resolved directory `current` points at."""
        self.assert_is_symlink()
        return Path(os.path.realpath(self.current_path))

    def repoint(self, target: Path) -> Path:
        """
        Point `current` at target.

        The new link is created beside `current` and renamed over it, so
        `current` is never observed missing while it is being replaced.

        Raises:
            InvariantViolation: `current` exists but is not a symlink
        """
        target = Path(target)

        if self.exists() and not self.current_path.is_symlink():
            raise InvariantViolation(
                f"Refusing to replace non-symlink current at {self.current_path}",
                phase=Phase.REPOINT,
            )

        tmp_link = self.current_path.with_name(f".{self.current_path.name}.{uuid.uuid4().hex[:8]}")
        os.symlink(target, tmp_link)
        try:
            os.replace(tmp_link, self.current_path)
        except OSError:
            os.unlink(tmp_link)
            raise

        logger.info("current -> %s", target)
        return target
