"""
Data models - configuration, schema wire models and engine state
"""

from tablebuddy.models.config import (
    TableConfiguration,
    FieldConfig,
    QuerySettings,
    DisplaySettings,
    ActionConfig,
    ActionsConfig,
    LookupDisplayConfig,
)
from tablebuddy.models.schema import FieldSchema, ObjectSchema, TableCache
from tablebuddy.models.table import (
    QueryDescriptor,
    MergeToken,
    ColumnDescriptor,
    RowError,
    TableError,
    SaveOutcome,
    CommitSnapshot,
)

__all__ = [
    "TableConfiguration",
    "FieldConfig",
    "QuerySettings",
    "DisplaySettings",
    "ActionConfig",
    "ActionsConfig",
    "LookupDisplayConfig",
    "FieldSchema",
    "ObjectSchema",
    "TableCache",
    "QueryDescriptor",
    "MergeToken",
    "ColumnDescriptor",
    "RowError",
    "TableError",
    "SaveOutcome",
    "CommitSnapshot",
]
