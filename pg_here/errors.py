"""
Error taxonomy for pg_here.

PreconditionFailure: raised before anything is mutated (safe to retry)
EngineControlFailure: pg_ctl / initdb exited nonzero
CloneFailure: every clone strategy failed
InvariantViolation: `current` exists but is not a symlink
ConfigError: unreadable or invalid configuration
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence


class Phase(str, Enum):
    """Where in an operation an error was raised."""
    PRECONDITION = "PRECONDITION"
    STOP = "STOP"
    CLONE = "CLONE"
    REPOINT = "REPOINT"
    START = "START"
    BOOTSTRAP = "BOOTSTRAP"
    CONFIG = "CONFIG"


class PgHereError(Exception):
    """Base class for every error pg_here raises on purpose."""

    phase: Phase = Phase.PRECONDITION

    def __init__(self, message: str, phase: Optional[Phase] = None):
        super().__init__(message)
        self.message = message
        if phase is not None:
            self.phase = phase

    def __str__(self) -> str:
        return self.message


class PreconditionFailure(PgHereError):
    """A required condition did not hold; nothing was touched."""

    phase = Phase.PRECONDITION


class InvariantViolation(PgHereError):
    """
    The `current` pointer is a real file or directory.

    Never auto-corrected: whatever sits at that path may be live data.
    """

    phase = Phase.PRECONDITION


class EngineControlFailure(PgHereError):
    """The engine control binary exited with a nonzero status."""

    phase = Phase.START

    def __init__(
        self,
        message: str,
        exit_code: Optional[int] = None,
        command: Sequence[str] = (),
        phase: Optional[Phase] = None,
    ):
        super().__init__(message, phase)
        self.exit_code = exit_code
        self.command = list(command)

    def __str__(self) -> str:
        if self.exit_code is None:
            return self.message
        return f"{self.message} (exit {self.exit_code})"


@dataclass
class CloneAttempt:
    """Outcome of one clone strategy."""
    strategy: str
    exit_code: Optional[int]
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0

    def describe(self) -> str:
        if self.error:
            return f"{self.strategy}: {self.error}"
        return f"{self.strategy} exit {self.exit_code}"


class CloneFailure(PgHereError):
    """
    All clone strategies were exhausted.

    The destination may exist in a partial state and must not be trusted.
    """

    phase = Phase.CLONE

    def __init__(self, source: str, destination: str, attempts: List[CloneAttempt]):
        self.source = source
        self.destination = destination
        self.attempts = list(attempts)
        detail = ", ".join(a.describe() for a in self.attempts) or "no strategies configured"
        super().__init__(f"Clone failed ({detail})")

    @property
    def exit_codes(self) -> List[Optional[int]]:
        return [a.exit_code for a in self.attempts]


class ConfigError(PgHereError):
    """Configuration file could not be read or holds invalid values."""

    phase = Phase.CONFIG
