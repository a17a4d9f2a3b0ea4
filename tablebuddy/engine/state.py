"""
Load pipeline state
"""

from typing import TypedDict, List, Optional

from tablebuddy.models.schema import TableCache
from tablebuddy.utils.errors import TableEngineError


class LoadState(TypedDict):
    """State for the load workflow"""
    generation: int
    trace_id: str
    object_name: Optional[str]  # Table object, from the configuration or the FROM clause
    context_object_name: Optional[str]  # Host record's object
    record_id: Optional[str]
    user_id: Optional[str]
    built_query: str
    resolved_query: Optional[str]
    has_record_tokens: bool
    fetch_fields: List[str]
    warnings: List[str]
    error: Optional[TableEngineError]
    error_title: Optional[str]
    superseded: bool
    result: Optional[TableCache]
