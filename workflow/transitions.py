from __future__ import annotations  # Exhaustive transition table for the interview state machine

from types import MappingProxyType
from typing import FrozenSet, Mapping

from .models import WorkflowNode

N = WorkflowNode

# INTERVIEW -> THRESHOLD_CHECK crosses a round boundary: the round ends once a
# question is ready and the next answer re-enters at THRESHOLD_CHECK.
TRANSITIONS: Mapping[WorkflowNode, FrozenSet[WorkflowNode]] = MappingProxyType(
    {
        N.INTERVIEW: frozenset({N.THRESHOLD_CHECK, N.ERROR}),
        N.THRESHOLD_CHECK: frozenset({N.INTERVIEW, N.GENERATE_INSTANCES, N.ERROR}),
        N.GENERATE_INSTANCES: frozenset({N.CONTEXT_UPDATE, N.ERROR}),
        N.CONTEXT_UPDATE: frozenset({N.COMPLETE, N.ERROR}),
        N.COMPLETE: frozenset(),
        N.ERROR: frozenset(),
    }
)

SUSPENDS: FrozenSet[tuple[WorkflowNode, WorkflowNode]] = frozenset({(N.INTERVIEW, N.THRESHOLD_CHECK)})

ENTRY_NODES: FrozenSet[WorkflowNode] = frozenset({N.INTERVIEW, N.THRESHOLD_CHECK})

EXECUTABLE_NODES = tuple(node for node in WorkflowNode if not node.is_terminal)


class TransitionError(RuntimeError):  # A node requested an edge the table does not allow
    pass


def allowed(source: WorkflowNode, target: WorkflowNode) -> bool:
    return target in TRANSITIONS[source]


def check_transition(source: WorkflowNode, target: WorkflowNode) -> WorkflowNode:  # Validate a requested edge
    if not allowed(source, target):
        raise TransitionError(f"Illegal transition {source.value} -> {target.value}")
    return target


def suspends(source: WorkflowNode, target: WorkflowNode) -> bool:  # Edge ends the current round
    return (source, target) in SUSPENDS


def verify_table() -> None:  # Table must cover every node and only terminal nodes may be sinks
    missing = set(WorkflowNode) - set(TRANSITIONS)
    if missing:
        raise TransitionError(f"Transition table missing nodes: {sorted(node.value for node in missing)}")
    for node, targets in TRANSITIONS.items():
        if node.is_terminal and targets:
            raise TransitionError(f"Terminal node {node.value} must not have outgoing edges")
        if not node.is_terminal and not targets:
            raise TransitionError(f"Node {node.value} has no outgoing edges")
        if not node.is_terminal and N.ERROR not in targets:
            raise TransitionError(f"Node {node.value} cannot reach ERROR")
    for source, target in SUSPENDS:
        if target not in TRANSITIONS[source]:
            raise TransitionError(f"Suspension {source.value} -> {target.value} is not a declared edge")


__all__ = [
    "ENTRY_NODES",
    "EXECUTABLE_NODES",
    "SUSPENDS",
    "TRANSITIONS",
    "TransitionError",
    "allowed",
    "check_transition",
    "suspends",
    "verify_table",
]
