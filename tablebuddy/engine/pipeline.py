"""
Load workflow - graph construction

    resolve_tokens -> [describe_schema -> fetch_record_values -> substitute_tokens]
                   -> validate_query -> fetch_rows

Any node may end the run early, on a terminal error or when its generation
has been superseded.
"""

from langgraph.graph import StateGraph, END
from loguru import logger

from tablebuddy.engine.context import EngineContext
from tablebuddy.engine.nodes import (
    resolve_tokens_node,
    describe_schema_node,
    fetch_record_values_node,
    substitute_tokens_node,
    validate_query_node,
    fetch_rows_node,
)
from tablebuddy.engine.state import LoadState


def _stopped(state: LoadState) -> bool:
    return bool(state.get("error") or state.get("superseded"))


def _route_after_tokens(state: LoadState) -> str:
    """Route after token resolution: record tokens need the two-phase lookup."""
    if _stopped(state):
        return "end"
    if state.get("has_record_tokens"):
        return "describe_schema"
    logger.debug("No record tokens, query goes straight to validation")
    return "validate_query"


def _continue_to(next_node: str):
    def route(state: LoadState) -> str:
        return "end" if _stopped(state) else next_node

    return route


def build_load_workflow(ctx: EngineContext):
    """
    Build the load workflow graph with context bound to nodes.
    """
    g = StateGraph(LoadState)

    async def resolve_tokens(s):
        return await resolve_tokens_node(s, ctx)

    async def describe_schema(s):
        return await describe_schema_node(s, ctx)

    async def fetch_record_values(s):
        return await fetch_record_values_node(s, ctx)

    async def substitute_tokens(s):
        return await substitute_tokens_node(s, ctx)

    async def validate_query(s):
        return await validate_query_node(s, ctx)

    async def fetch_rows(s):
        return await fetch_rows_node(s, ctx)

    g.add_node("resolve_tokens", resolve_tokens)
    g.add_node("describe_schema", describe_schema)
    g.add_node("fetch_record_values", fetch_record_values)
    g.add_node("substitute_tokens", substitute_tokens)
    g.add_node("validate_query", validate_query)
    g.add_node("fetch_rows", fetch_rows)

    g.set_entry_point("resolve_tokens")

    g.add_conditional_edges(
        "resolve_tokens",
        _route_after_tokens,
        {
            "describe_schema": "describe_schema",
            "validate_query": "validate_query",
            "end": END,
        },
    )
    for node, next_node in (
        ("describe_schema", "fetch_record_values"),
        ("fetch_record_values", "substitute_tokens"),
        ("substitute_tokens", "validate_query"),
        ("validate_query", "fetch_rows"),
    ):
        g.add_conditional_edges(
            node,
            _continue_to(next_node),
            {next_node: next_node, "end": END},
        )

    g.add_edge("fetch_rows", END)
    return g.compile()
