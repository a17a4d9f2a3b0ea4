"""
Load workflow nodes

Each node re-checks the generation it was started for after every await;
once a newer load has started, the node marks the state superseded and the
workflow ends without touching the table.
"""

from loguru import logger

from tablebuddy.engine.context import EngineContext
from tablebuddy.engine.state import LoadState
from tablebuddy.engine.utils import trace_step
from tablebuddy.services.messages import reduce_errors
from tablebuddy.services.table_service import fetch_table_cache
from tablebuddy.sql.tokens import build_merge_tokens, canonicalize, classify, substitute_simple_tokens
from tablebuddy.utils.errors import (
    FetchError,
    MissingContextObject,
    QuerySyntaxError,
    StaleGenerationError,
    TableEngineError,
)


def _superseded(state: LoadState) -> LoadState:
    logger.info(f"Load generation {state['generation']} superseded, discarding its results")
    state["superseded"] = True
    return state


def _failed(state: LoadState, ctx: EngineContext, title: str, error: TableEngineError) -> LoadState:
    if not ctx.coordinator.is_current(state["generation"]):
        return _superseded(state)
    logger.error(f"{title}: {error}")
    state["error"] = error
    state["error_title"] = title
    ctx.coordinator.fail(str(error), state["generation"])
    return state


def _message(error: Exception) -> str:
    return "; ".join(reduce_errors(error)) or error.__class__.__name__


@trace_step("resolve_tokens")
async def resolve_tokens_node(state: LoadState, ctx: EngineContext) -> LoadState:
    """
    Substitute the simple tokens and register the record tokens.
    """
    state = dict(state)
    generation = state["generation"]
    try:
        query = canonicalize(state["built_query"])
        query = substitute_simple_tokens(query, state.get("record_id"), state.get("user_id"))
        classification = classify(query)
        tokens = build_merge_tokens(classification.record_tokens, state.get("context_object_name"))
        state["has_record_tokens"] = ctx.coordinator.register(tokens, generation)
    except StaleGenerationError:
        return _superseded(state)
    except MissingContextObject as e:
        return _failed(state, ctx, "Missing Context Object", e)

    state["resolved_query"] = query
    return state


@trace_step("describe_schema")
async def describe_schema_node(state: LoadState, ctx: EngineContext) -> LoadState:
    """
    Look up the host object's schema to type every record token.
    """
    state = dict(state)
    generation = state["generation"]
    try:
        schema = await ctx.schema_service.describe(state["context_object_name"])
    except Exception as e:
        return _failed(state, ctx, "Schema Lookup Error", FetchError(_message(e)))

    try:
        state["fetch_fields"] = ctx.coordinator.apply_schema(schema, generation)
    except StaleGenerationError:
        return _superseded(state)
    return state


@trace_step("fetch_record_values")
async def fetch_record_values_node(state: LoadState, ctx: EngineContext) -> LoadState:
    """
    Read the typed token fields from the host record.
    """
    state = dict(state)
    generation = state["generation"]
    fetch_fields = state.get("fetch_fields") or []

    values = {}
    if fetch_fields:
        record_id = state.get("record_id")
        if not record_id:
            return _failed(
                state, ctx, "Missing Context Object",
                MissingContextObject("Record tokens can only be resolved on a record page."),
            )
        try:
            values = await ctx.record_service.get_fields(record_id, fetch_fields)
        except Exception as e:
            return _failed(state, ctx, "Record Lookup Error", FetchError(_message(e)))

    try:
        ctx.coordinator.apply_record(values, generation)
    except StaleGenerationError:
        return _superseded(state)
    return state


@trace_step("substitute_tokens")
async def substitute_tokens_node(state: LoadState, ctx: EngineContext) -> LoadState:
    """
    Substitute every occurrence of every resolved record token.
    """
    state = dict(state)
    try:
        state["resolved_query"] = ctx.coordinator.substitute(state["resolved_query"], state["generation"])
    except StaleGenerationError:
        return _superseded(state)
    state["warnings"] = list(ctx.coordinator.warnings)
    return state


@trace_step("validate_query")
async def validate_query_node(state: LoadState, ctx: EngineContext) -> LoadState:
    """
    Ask the query service to validate the resolved query. No fetch is
    attempted for an invalid query.
    """
    state = dict(state)
    generation = state["generation"]
    try:
        ctx.coordinator.begin_validation(generation)
    except StaleGenerationError:
        return _superseded(state)

    try:
        message = await ctx.query_service.validate(state["resolved_query"])
    except Exception as e:
        return _failed(state, ctx, "Invalid Query String", QuerySyntaxError(_message(e)))

    if not ctx.coordinator.is_current(generation):
        return _superseded(state)
    if message:
        return _failed(state, ctx, "Invalid Query String", QuerySyntaxError(message))

    ctx.coordinator.mark_ready(generation)
    logger.debug(f"Query validated: {state['resolved_query']}")
    return state


@trace_step("fetch_rows")
async def fetch_rows_node(state: LoadState, ctx: EngineContext) -> LoadState:
    """
    Execute the validated query.
    """
    state = dict(state)
    generation = state["generation"]
    try:
        cache = await fetch_table_cache(ctx.query_service, state["resolved_query"])
    except Exception as e:
        return _failed(state, ctx, "Fetch Error", FetchError(_message(e)))

    if not ctx.coordinator.is_current(generation):
        return _superseded(state)

    state["result"] = cache
    logger.info(f"Fetched {len(cache.rows)} row(s) for generation {generation}")
    return state
