"""
Service layer - collaborator interfaces, message bus, table service helpers
"""

from tablebuddy.services.protocols import (
    StoredConfiguration,
    ConfigSummary,
    ConfigStore,
    SchemaService,
    RecordService,
    QueryService,
    Notifier,
    LoggingNotifier,
)
from tablebuddy.services.message_bus import MessageBus, BusMessage, Subscription
from tablebuddy.services.messages import reduce_errors, persistence_error_from_result, generate_uuid, is_record_id
from tablebuddy.services.table_service import (
    flatten_query_result,
    fetch_table_cache,
    create_row_error,
    create_table_error,
    update_draft_values,
)

__all__ = [
    "StoredConfiguration",
    "ConfigSummary",
    "ConfigStore",
    "SchemaService",
    "RecordService",
    "QueryService",
    "Notifier",
    "LoggingNotifier",
    "MessageBus",
    "BusMessage",
    "Subscription",
    "reduce_errors",
    "persistence_error_from_result",
    "generate_uuid",
    "is_record_id",
    "flatten_query_result",
    "fetch_table_cache",
    "create_row_error",
    "create_table_error",
    "update_draft_values",
]
