"""
Table service helpers

Fetching and flattening query results, and persisting draft rows with
per-row error attribution.
"""

import asyncio
from typing import Any, Dict, List, Optional, Tuple

from loguru import logger

from tablebuddy.config.settings import settings
from tablebuddy.models.schema import TableCache
from tablebuddy.models.table import CommitSnapshot, RowError, SaveOutcome, TableError
from tablebuddy.services.messages import field_error_names, persistence_error_from_result, reduce_errors
from tablebuddy.services.protocols import QueryService, RecordService


def _flatten_object(prefix: str, obj: Dict[str, Any]) -> Dict[str, Any]:
    flat = {}
    for key, value in obj.items():
        flat_key = f"{prefix}_{key}"
        flat[flat_key] = value
        if isinstance(value, dict):
            flat.update(_flatten_object(flat_key, value))
    return flat


def flatten_query_result(
    rows: List[Dict[str, Any]],
    object_name: Optional[str] = None,
    identity_field: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """
    Flatten related-object values into underscore-joined keys.

    Nested values are kept alongside their flattened keys. List values are
    flattened per item as <key>_<index>. When the owning object is known, its
    identity is also exposed as <ObjectName>_Id.

    Example:
        >>> flatten_query_result([{"Id": "1", "Owner": {"Name": "Ann"}}], "Case")[0]["Owner_Name"]
        'Ann'
    """
    identity_field = identity_field or settings.identity_field
    flattened = []
    for row in rows:
        flat = dict(row)
        for key, value in row.items():
            if isinstance(value, dict):
                flat.update(_flatten_object(key, value))
            elif isinstance(value, list):
                for index, item in enumerate(value):
                    item_key = f"{key}_{index}"
                    flat[item_key] = item
                    if isinstance(item, dict):
                        flat.update(_flatten_object(item_key, item))
            if key == identity_field and object_name:
                flat[f"{object_name}_{identity_field}"] = value
        flattened.append(flat)
    return flattened


async def fetch_table_cache(query_service: QueryService, query: str) -> TableCache:
    """Execute a query and flatten its rows."""
    cache = await query_service.execute(query)
    rows = flatten_query_result(cache.rows, cache.object_name)
    logger.debug(f"Fetched {len(rows)} row(s), {len(cache.columns)} column(s) for {cache.object_name}")
    return TableCache(object_name=cache.object_name, columns=cache.columns, rows=rows)


def create_row_error(error: Any) -> RowError:
    """Attribute a persistence failure to its row and, where reported, its fields."""
    messages = reduce_errors(error) or ["Unknown error"]
    return RowError(
        title=f"{len(messages)} error(s) on this row",
        messages=messages,
        field_names=field_error_names(error),
    )


def create_table_error(row_errors: Dict[Any, RowError], row_number_map: Dict[Any, int]) -> TableError:
    """
    Summarize row errors for the table header.

    Each message is prefixed with its row number from the snapshot taken at
    save submission; the prefixed lines are sorted lexicographically.
    """
    table_messages = []
    for row_id, row_error in row_errors.items():
        row_error.row_number = row_number_map.get(row_id, 0)
        for message in row_error.messages:
            table_messages.append(f"Row {row_error.row_number}: {message}")
    return TableError(
        title=f"Found {len(row_errors)} error rows",
        messages=sorted(table_messages),
    )


async def update_draft_values(
    record_service: RecordService,
    snapshot: CommitSnapshot,
    identity_field: Optional[str] = None,
) -> SaveOutcome:
    """
    Persist every draft row concurrently, one request per row.

    A failing row never cancels the others; its error is attributed to it in
    the outcome.
    """
    identity_field = identity_field or settings.identity_field

    async def _save(record_input: Dict[str, Any]) -> Tuple[Any, Optional[RowError]]:
        fields = dict(record_input["fields"])
        row_id = fields.pop(identity_field)
        try:
            result = await record_service.update_record(row_id, fields)
        except Exception as e:
            logger.warning(f"Saving row {row_id} failed: {e!r}")
            return row_id, create_row_error(e)

        error = persistence_error_from_result(result)
        if error is not None:
            logger.warning(f"Saving row {row_id} was rejected: {error!r}")
            return row_id, create_row_error(error)
        return row_id, None

    results = await asyncio.gather(*(_save(record_input) for record_input in snapshot.record_inputs))

    outcome = SaveOutcome()
    for row_id, row_error in results:
        if row_error is None:
            outcome.successes.append(row_id)
        else:
            outcome.row_errors[row_id] = row_error
    outcome.summary = create_table_error(outcome.row_errors, snapshot.row_number_map)

    logger.info(
        f"Saved {len(outcome.successes)} of {len(snapshot.record_inputs)} row(s), "
        f"{len(outcome.row_errors)} failed"
    )
    return outcome
