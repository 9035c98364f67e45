"""LangGraph wrapper for the command loop - trace harness only.

This wraps the loop nodes from execution_loop in a LangGraph StateGraph
so that each phase is visible as a node in LangGraph Studio.

NO new orchestration logic. Same nodes, same transitions, same errors.
"""

from typing import Mapping, Optional
from typing_extensions import TypedDict

from langgraph.graph import StateGraph, END

from shellcraft.constants import DEFAULT_LOCALE, DEFAULT_TIMEOUT_S, MAX_ATTEMPTS
from shellcraft.execution_loop import (
    ConfirmFn,
    LoopContext,
    LoopReporter,
    evaluate_node,
    execute_node,
    gate_node,
    retry_node,
    sanitize_node,
    synthesize_node,
    use_defaults,
)
from shellcraft.execution_state import LoopState
from shellcraft.executor import CommandExecutor
from shellcraft.model_client import ModelClient


class CommandGraphState(TypedDict):
    """Graph state: the loop state plus the collaborators it runs with."""
    loop: LoopState
    context: LoopContext


# Which graph node handles each non-terminal status
STATUS_TO_NODE = {
    "SYNTHESIZING": "synthesize",
    "SANITIZING": "sanitize",
    "GATE_CHECKING": "gate",
    "EXECUTING": "execute",
    "EVALUATING": "evaluate",
    "RETRYING": "retry",
}

# Upper bound on node visits per attempt
_STEPS_PER_ATTEMPT = 6


# --- Graph Nodes ---

def node_synthesize(state: CommandGraphState) -> dict:
    """Ask the model for a command."""
    return {"loop": synthesize_node(state["loop"], state["context"])}


def node_sanitize(state: CommandGraphState) -> dict:
    """Strip formatting from the reply."""
    return {"loop": sanitize_node(state["loop"], state["context"])}


def node_gate(state: CommandGraphState) -> dict:
    """Safety gate, dry-run and execute confirmation."""
    return {"loop": gate_node(state["loop"], state["context"])}


def node_execute(state: CommandGraphState) -> dict:
    """Run the command via the shell."""
    return {"loop": execute_node(state["loop"], state["context"])}


def node_evaluate(state: CommandGraphState) -> dict:
    """Record the attempt and check the goal."""
    return {"loop": evaluate_node(state["loop"], state["context"])}


def node_retry(state: CommandGraphState) -> dict:
    """Advance the attempt counter."""
    return {"loop": retry_node(state["loop"], state["context"])}


# --- Conditional Edges ---

def route_by_status(state: CommandGraphState) -> str:
    """Pick the next node from the loop status, or end on a terminal one."""
    return STATUS_TO_NODE.get(state["loop"].status, "end")


# --- Graph Builder ---

def build_command_graph() -> StateGraph:
    """
    Build the command graph.

    Flow:
        synthesize -> sanitize -> gate -> (dangerous/dry-run/declined?) -> end
                                       -> execute -> evaluate -> (done?) -> end
                                                              -> retry -> (budget left?) -> synthesize
                                                                       -> end
    """
    graph = StateGraph(CommandGraphState)

    # Add nodes
    graph.add_node("synthesize", node_synthesize)
    graph.add_node("sanitize", node_sanitize)
    graph.add_node("gate", node_gate)
    graph.add_node("execute", node_execute)
    graph.add_node("evaluate", node_evaluate)
    graph.add_node("retry", node_retry)

    # Set entry point
    graph.set_entry_point("synthesize")

    # Every node routes on the status it leaves behind
    targets = {name: name for name in STATUS_TO_NODE.values()}
    targets["end"] = END
    for name in STATUS_TO_NODE.values():
        graph.add_conditional_edges(name, route_by_status, targets)

    return graph


def run_command_graph(
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
    Run the command graph and return the final state.

    This is the traced equivalent of run_command_loop().
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    compiled = build_command_graph().compile()

    initial_state: CommandGraphState = {
        "loop": LoopState(task=task, max_attempts=max_attempts, status="SYNTHESIZING"),
        "context": LoopContext(
            model_client=model_client,
            executor=executor or CommandExecutor(),
            confirm=confirm or use_defaults,
            reporter=reporter or LoopReporter(),
            locale=locale,
            dry_run=dry_run,
            debug=debug,
            timeout=timeout,
            environment=environment,
        ),
    }

    final_state = compiled.invoke(
        initial_state,
        config={"recursion_limit": _STEPS_PER_ATTEMPT * max_attempts + 5},
    )

    return final_state["loop"]


# Pre-compiled graph for Studio discovery
command_graph = build_command_graph().compile()
