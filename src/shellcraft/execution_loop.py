"""Synthesize -> sanitize -> gate -> execute -> evaluate loop.

Each phase is a node function that takes the LoopState and a LoopContext,
mutates the state and sets the next status. run_command_loop drives the nodes
until a terminal status is reached; execution_graph wraps the same nodes in a
LangGraph StateGraph for tracing.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Mapping, Optional

from shellcraft.constants import DEFAULT_LOCALE, DEFAULT_TIMEOUT_S, MAX_ATTEMPTS
from shellcraft.execution_state import ExecutionAttempt, LoopState
from shellcraft.executor import CommandExecutor, ExecutionResult, SpawnError
from shellcraft.model_client import BackendError, ModelClient, invoke_model
from shellcraft.prompts import build_prompts
from shellcraft.safety import find_dangerous_pattern
from shellcraft.sanitizer import clean_command_output

logger = logging.getLogger(__name__)


EXECUTE_QUESTION = "Execute this command?"
GOAL_QUESTION = "Did the command achieve the goal?"

# confirm(question, default) -> bool
ConfirmFn = Callable[[str, bool], bool]


def use_defaults(question: str, default: bool) -> bool:
    """Non-interactive confirm: always take the default answer."""
    return default


class LoopReporter:
    """Presentation hooks for the loop. The base class reports nothing."""

    def thinking(self, attempt_number: int, max_attempts: int) -> None:
        pass

    def prompts(self, system_text: str, user_text: str) -> None:
        pass

    def command(self, command: str) -> None:
        pass

    def dangerous(self, command: str, pattern: str) -> None:
        pass

    def dry_run(self, command: str) -> None:
        pass

    def declined(self, command: str) -> None:
        pass

    def executing(self, command: str) -> None:
        pass

    def result(self, result: ExecutionResult) -> None:
        pass

    def done(self, attempt: ExecutionAttempt) -> None:
        pass

    def max_attempts_reached(self, max_attempts: int) -> None:
        pass


@dataclass
class LoopContext:
    """Collaborators and flags for one loop run."""
    model_client: ModelClient
    executor: CommandExecutor = field(default_factory=CommandExecutor)
    confirm: ConfirmFn = use_defaults
    reporter: LoopReporter = field(default_factory=LoopReporter)
    locale: str = DEFAULT_LOCALE
    dry_run: bool = False
    debug: bool = False
    timeout: float = DEFAULT_TIMEOUT_S
    environment: Optional[Mapping[str, str]] = None


def synthesize_node(state: LoopState, ctx: LoopContext) -> LoopState:
    """
    Build the prompts and ask the model for a command.

    A BackendError is fatal: the state is marked ABORTED_ERROR and the error
    propagates. It never triggers another attempt.
    """
    state.status = "SYNTHESIZING"
    ctx.reporter.thinking(state.attempt_number, state.max_attempts)

    system_text, user_text = build_prompts(
        state.task,
        previous_attempt=state.previous_attempt,
        locale=ctx.locale,
        environment=ctx.environment,
    )
    if ctx.debug:
        ctx.reporter.prompts(system_text, user_text)

    state.synthesis_calls += 1
    try:
        state.raw_response = invoke_model(
            ctx.model_client, system_text, user_text, timeout=ctx.timeout
        )
    except BackendError as e:
        state.status = "ABORTED_ERROR"
        state.error = str(e)
        raise

    state.status = "SANITIZING"
    return state


def sanitize_node(state: LoopState, ctx: LoopContext) -> LoopState:
    """Reduce the raw reply to bare command text."""
    state.last_command = clean_command_output(state.raw_response or "")
    ctx.reporter.command(state.last_command)
    state.status = "GATE_CHECKING"
    return state


def gate_node(state: LoopState, ctx: LoopContext) -> LoopState:
    """
    Refuse dangerous commands, then honour dry-run and the execute prompt.

    A dangerous command ends the run with no ExecutionAttempt.
    """
    command = state.last_command or ""

    pattern = find_dangerous_pattern(command)
    if pattern is not None:
        logger.warning("Refusing dangerous command (matched %r): %s", pattern, command)
        state.dangerous_pattern = pattern
        state.status = "ABORTED_DANGEROUS"
        ctx.reporter.dangerous(command, pattern)
        return state

    if ctx.dry_run:
        state.status = "DRY_RUN"
        ctx.reporter.dry_run(command)
        return state

    if not ctx.confirm(EXECUTE_QUESTION, False):
        state.status = "DECLINED"
        ctx.reporter.declined(command)
        return state

    state.status = "EXECUTING"
    return state


def execute_node(state: LoopState, ctx: LoopContext) -> LoopState:
    """Run the command. A SpawnError is fatal and propagates."""
    ctx.reporter.executing(state.last_command or "")
    try:
        state.last_result = ctx.executor.execute(state.last_command or "")
    except SpawnError as e:
        state.status = "ABORTED_ERROR"
        state.error = str(e)
        raise

    state.attempts_executed += 1
    ctx.reporter.result(state.last_result)
    state.status = "EVALUATING"
    return state


def evaluate_node(state: LoopState, ctx: LoopContext) -> LoopState:
    """
    Record the attempt and decide between DONE and RETRYING.

    Failed runs always retry. Successful runs are confirmed by the user.
    """
    result = state.last_result
    attempt = ExecutionAttempt(
        command=state.last_command or "",
        output=result.output,
        succeeded=result.succeeded,
        attempt_number=state.attempt_number,
    )
    # Single slot: the newest attempt replaces the previous one
    state.previous_attempt = attempt

    if attempt.succeeded and ctx.confirm(GOAL_QUESTION, True):
        state.status = "DONE"
        ctx.reporter.done(attempt)
        return state

    logger.debug(
        "Attempt %d not accepted (succeeded=%s)", attempt.attempt_number, attempt.succeeded
    )
    state.status = "RETRYING"
    return state


def retry_node(state: LoopState, ctx: LoopContext) -> LoopState:
    """Advance the attempt counter, or stop once the budget is spent."""
    state.attempt_number += 1
    if state.attempt_number > state.max_attempts:
        state.status = "MAX_ATTEMPTS"
        ctx.reporter.max_attempts_reached(state.max_attempts)
        return state

    state.status = "SYNTHESIZING"
    return state


# Node to run for each non-terminal status
TRANSITIONS: Dict[str, Callable[[LoopState, LoopContext], LoopState]] = {
    "PENDING": synthesize_node,
    "SYNTHESIZING": synthesize_node,
    "SANITIZING": sanitize_node,
    "GATE_CHECKING": gate_node,
    "EXECUTING": execute_node,
    "EVALUATING": evaluate_node,
    "RETRYING": retry_node,
}


def run_command_loop(
    task: str,
    model_client: ModelClient,
    executor: Optional[CommandExecutor] = None,
    confirm: Optional[ConfirmFn] = None,
    reporter: Optional[LoopReporter] = None,
    locale: str = DEFAULT_LOCALE,
    max_attempts: int = MAX_ATTEMPTS,
    dry_run: bool = False,
    debug: bool = False,
    timeout: float = DEFAULT_TIMEOUT_S,
    environment: Optional[Mapping[str, str]] = None,
) -> LoopState:
    """
    Main loop.

    Logic:
    1. Ask the model for a command (first-attempt or retry prompt)
    2. Sanitize it and run the safety gate
    3. Dangerous -> stop; dry run -> stop; declined -> stop
    4. Execute and evaluate; stop on confirmed success
    5. Otherwise retry with the latest attempt, up to max_attempts

    Returns:
        Final LoopState (status is terminal)

    Raises:
        BackendError: If the model call fails
        SpawnError: If the shell cannot be started
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    ctx = LoopContext(
        model_client=model_client,
        executor=executor or CommandExecutor(),
        confirm=confirm or use_defaults,
        reporter=reporter or LoopReporter(),
        locale=locale,
        dry_run=dry_run,
        debug=debug,
        timeout=timeout,
        environment=environment,
    )
    state = LoopState(task=task, max_attempts=max_attempts)

    while not state.is_terminal:
        logger.debug("Attempt %d: %s", state.attempt_number, state.status)
        state = TRANSITIONS[state.status](state, ctx)

    logger.debug("Loop finished with %s after %d execution(s)", state.status, state.attempts_executed)
    return state
