"""LangGraph wiring for one interview round."""
from __future__ import annotations

import logging
import operator
from typing import Annotated, Any, Callable, Dict, List, Mapping, Optional, TypedDict

from langgraph.graph import END, START, StateGraph

from observability import log_event, span

from .errors import PersistenceFailure, WorkflowError
from .models import ErrorInfo, InterviewSession, SessionStatus, WorkflowNode
from .nodes import NodeFn
from .ports import PersistentStore
from .transitions import (
    ENTRY_NODES,
    EXECUTABLE_NODES,
    TRANSITIONS,
    TransitionError,
    check_transition,
    suspends,
    verify_table,
)


class RoundState(TypedDict):
    """Graph state: the session being advanced, the node it asked for and node timings."""

    session: InterviewSession
    next_node: WorkflowNode
    spans: Annotated[List[Dict[str, Any]], operator.add]


def _route_entry(state: RoundState) -> str:
    stage = state["session"].stage
    if stage not in ENTRY_NODES:
        raise TransitionError(f"A round cannot start at {stage.value}")
    return stage.value


def _router(source: WorkflowNode) -> Callable[[RoundState], str]:
    def _route(state: RoundState) -> str:
        return check_transition(source, state["next_node"]).value

    return _route


def _path_map(source: WorkflowNode) -> Dict[str, str]:
    mapping: Dict[str, str] = {}
    for target in TRANSITIONS[source]:
        if target.is_terminal or suspends(source, target):
            mapping[target.value] = END
        else:
            mapping[target.value] = target.value
    return mapping


def instrument(node: WorkflowNode, fn: NodeFn, store: Optional[PersistentStore]) -> Callable[[RoundState], Dict[str, Any]]:
    """Wrap a node with logging, timing, failure capture and an audit row."""

    def _run(state: RoundState) -> Dict[str, Any]:
        session = state["session"].model_copy(deep=True)
        events: list[Dict[str, Any]] = []
        error: Optional[WorkflowError] = None
        log_event("node.start", session.id, user_id=session.user_id, tab_id=session.tab_id, node=node.value)
        with span(events, node.value) as record:
            try:
                next_node = fn(session)
            except WorkflowError as exc:
                error = exc
                next_node = WorkflowNode.ERROR
                session.status = SessionStatus.ERROR
                session.last_error = ErrorInfo(kind=exc.kind, message=exc.message)
            record["next"] = next_node.value
        session.stage = next_node
        session.touch()
        log_event(
            "node.end",
            session.id,
            level=logging.WARNING if error else logging.INFO,
            user_id=session.user_id,
            tab_id=session.tab_id,
            node=node.value,
            next_node=next_node.value,
            ms=record["ms"],
            outcome="error" if error else "ok",
            error_kind=error.kind if error else None,
        )
        if store is not None:
            _audit(store, session, node, next_node, record["ms"], error)
        return {"session": session, "next_node": next_node, "spans": events}

    return _run


def _audit(
    store: PersistentStore,
    session: InterviewSession,
    node: WorkflowNode,
    next_node: WorkflowNode,
    elapsed_ms: int,
    error: Optional[WorkflowError],
) -> None:
    try:
        store.record_execution(
            user_id=session.user_id,
            session_id=session.id,
            node_name=node.value,
            next_node=next_node.value,
            execution_ms=elapsed_ms,
            output={
                "exchanges": len(session.exchanges),
                "skills": len(session.skills),
                "workflows": len(session.workflows),
                "overall_score": session.metrics.overall_score,
                "instances": len(session.instances),
            },
            error_message=error.message if error else None,
        )
    except PersistenceFailure as exc:
        log_event("audit.failed", session.id, level=logging.WARNING, table="workflow_executions", error=exc.message)


def build_graph(nodes: Mapping[WorkflowNode, NodeFn], store: Optional[PersistentStore] = None):
    """Compile the round graph from the transition table.

    Every executable node gets conditional edges covering exactly its declared
    targets; terminal targets and the round-suspending edge route to ``END``.
    """

    verify_table()
    missing = [node.value for node in EXECUTABLE_NODES if node not in nodes]
    if missing:
        raise TransitionError(f"No implementation for nodes: {missing}")

    graph = StateGraph(RoundState)
    for node in EXECUTABLE_NODES:
        graph.add_node(node.value, instrument(node, nodes[node], store))
    graph.add_conditional_edges(START, _route_entry, {node.value: node.value for node in ENTRY_NODES})
    for node in EXECUTABLE_NODES:
        graph.add_conditional_edges(node.value, _router(node), _path_map(node))
    return graph.compile()


def run_round(graph: Any, session: InterviewSession) -> InterviewSession:
    """Drive ``session`` from its current stage to the next stable point."""

    result = graph.invoke({"session": session, "next_node": session.stage, "spans": []})
    advanced: InterviewSession = result["session"]
    spans = result.get("spans", [])
    log_event(
        "round.end",
        advanced.id,
        user_id=advanced.user_id,
        tab_id=advanced.tab_id,
        node=">".join(item["span"] for item in spans),
        next_node=advanced.stage.value,
        ms=sum(item["ms"] for item in spans),
        spans=spans,
    )
    return advanced


__all__ = ["RoundState", "build_graph", "instrument", "run_round"]
