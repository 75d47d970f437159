"""
Lifecycle steps for snapshot and revert.

snapshot:  INIT → STOP → CLONE → START → COMPLETE
revert:    INIT → STOP → CLONE → REPOINT → START → COMPLETE
                   ↓       ↓        ↓        ↓
                            FAILED

Each step is a blocking call; the next one only begins after the
previous one has fully finished. A failure stops the sequence where it
is: nothing is rolled back or restarted automatically.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from typing import Any, Dict, List, Optional


class Step(Enum):
    """Orchestration steps."""
    INIT = auto()
    STOP = auto()
    CLONE = auto()
    REPOINT = auto()
    START = auto()
    COMPLETE = auto()
    FAILED = auto()


# Valid step transitions
TRANSITIONS: Dict[Step, List[Step]] = {
    Step.INIT: [Step.STOP, Step.FAILED],
    Step.STOP: [Step.CLONE, Step.FAILED],
    Step.CLONE: [Step.REPOINT, Step.START, Step.FAILED],
    Step.REPOINT: [Step.START, Step.FAILED],
    Step.START: [Step.COMPLETE, Step.FAILED],
    Step.COMPLETE: [],
    Step.FAILED: [],
}

SNAPSHOT_STEPS = [Step.STOP, Step.CLONE, Step.START]
REVERT_STEPS = [Step.STOP, Step.CLONE, Step.REPOINT, Step.START]


class InvalidStepTransition(Exception):
    """Raised when a step is attempted out of order."""
    pass


@dataclass
class StepEvent:
    """Record of one step transition."""
    from_step: Step
    to_step: Step
    timestamp: datetime
    duration_ms: int
    metadata: Dict[str, Any] = field(default_factory=dict)


class LifecycleRun:
    """
    Tracks one snapshot/revert sequence.

    Ensures steps happen in a valid order and keeps their history.
    """

    def __init__(self, operation: str):
        self.operation = operation
        self._step = Step.INIT
        self._history: List[StepEvent] = []
        self._entered_at = datetime.now()
        self.failed_step: Optional[Step] = None
        self.error: Optional[BaseException] = None

    @property
    def step(self) -> Step:
        return self._step

    @property
    def history(self) -> List[StepEvent]:
        return self._history.copy()

    @property
    def completed_steps(self) -> List[Step]:
        """Steps that ran to completion, in order."""
        return [
            e.from_step for e in self._history
            if e.from_step is not Step.INIT and e.to_step is not Step.FAILED
        ]

    def can_transition(self, to_step: Step) -> bool:
        return to_step in TRANSITIONS.get(self._step, [])

    def advance(self, to_step: Step, metadata: Optional[Dict[str, Any]] = None):
        """
        Move to the next step.

        Raises:
            InvalidStepTransition: If the transition is not allowed
        """
        if not self.can_transition(to_step):
            raise InvalidStepTransition(
                f"Invalid transition: {self._step.name} → {to_step.name}. "
                f"Valid transitions: {[s.name for s in TRANSITIONS.get(self._step, [])]}"
            )

        now = datetime.now()
        self._history.append(StepEvent(
            from_step=self._step,
            to_step=to_step,
            timestamp=now,
            duration_ms=int((now - self._entered_at).total_seconds() * 1000),
            metadata=metadata or {},
        ))
        self._step = to_step
        self._entered_at = now

    def fail(self, error: BaseException):
        """Record the step in progress as failed."""
        self.failed_step = self._step
        self.error = error
        self.advance(Step.FAILED, {"error": str(error)})

    def is_terminal(self) -> bool:
        return self._step in (Step.COMPLETE, Step.FAILED)

    def format_history(self) -> str:
        return "\n".join(
            f"{e.from_step.name} → {e.to_step.name} ({e.duration_ms}ms)"
            for e in self._history
        )


@dataclass
class LifecycleResult:
    """Outcome of a completed operation."""
    operation: str
    name: str
    path: str
    steps: List[Step] = field(default_factory=list)
    initialised: bool = False   # bootstrap ran initdb
