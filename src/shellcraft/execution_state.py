"""State for the synthesize-execute-evaluate loop."""

from dataclasses import dataclass
from typing import Optional

from shellcraft.constants import MAX_ATTEMPTS
from shellcraft.executor import ExecutionResult


TERMINAL_STATUSES = frozenset({
    "DONE",
    "MAX_ATTEMPTS",
    "DECLINED",
    "DRY_RUN",
    "ABORTED_DANGEROUS",
    "ABORTED_ERROR",
})


@dataclass(frozen=True)
class ExecutionAttempt:
    """Outcome of one executed command. Only the latest one is kept."""
    command: str
    output: str
    succeeded: bool
    attempt_number: int


@dataclass
class LoopState:
    task: str
    attempt_number: int = 1
    max_attempts: int = MAX_ATTEMPTS
    previous_attempt: Optional[ExecutionAttempt] = None
    raw_response: Optional[str] = None
    last_command: Optional[str] = None
    last_result: Optional[ExecutionResult] = None
    attempts_executed: int = 0
    synthesis_calls: int = 0
    dangerous_pattern: Optional[str] = None
    error: Optional[str] = None
    # PENDING | SYNTHESIZING | SANITIZING | GATE_CHECKING | EXECUTING | EVALUATING
    # | RETRYING | DONE | MAX_ATTEMPTS | DECLINED | DRY_RUN
    # | ABORTED_DANGEROUS | ABORTED_ERROR
    status: str = "PENDING"

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
