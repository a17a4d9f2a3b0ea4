"""
Column reconciliation - fetched column descriptors merged with configuration
overrides and schema metadata
"""

from dataclasses import replace
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from loguru import logger

from tablebuddy.config.constants import (
    ACTION_COLUMN_TYPE,
    COMPOUND_NAME_TYPE,
    CUSTOM_TYPE_PREFIX,
    RECORD_TYPE_ID_FIELD,
)
from tablebuddy.config.settings import settings
from tablebuddy.models.config import TableConfiguration
from tablebuddy.models.schema import ObjectSchema
from tablebuddy.models.table import ColumnDescriptor

RowActionsProvider = Callable[[Dict[str, Any]], List[Dict[str, Any]]]


def _supports_compound_name(schema: Optional[ObjectSchema], object_name: Optional[str]) -> bool:
    if schema is not None and schema.compound_name:
        return True
    return bool(object_name) and object_name in settings.compound_name_objects


def reconcile_columns(
    fetched_columns: Iterable[Union[ColumnDescriptor, Dict[str, Any]]],
    config: TableConfiguration,
    schema: Optional[ObjectSchema] = None,
    boundary: Optional[str] = None,
    object_name: Optional[str] = None,
    row_actions_provider: Optional[RowActionsProvider] = None,
) -> List[ColumnDescriptor]:
    """
    Apply configuration overrides to the fetched columns.

    Overrides are applied per column in a fixed order: label, sortable,
    editable, custom-type attributes, compound name, width, and finally the
    freeform typeAttributesOverride, which wins over everything injected
    before it. The record type id column is dropped. When row actions are
    configured a trailing action column is appended; its actions are
    computed per row by row_actions_provider.

    Args:
        fetched_columns: Column descriptors from the query service
        config: Table configuration
        schema: Table object's schema, when available
        boundary: Table instance boundary id stamped on custom cells
        object_name: Table object name
        row_actions_provider: Callable returning the actions for one row

    Returns:
        Reconciled column descriptors
    """
    object_name = object_name or config.object_name
    identity_field = settings.identity_field
    field_configs = config.field_config_map
    editable_fields = config.editable_field_set
    compound_name = _supports_compound_name(schema, object_name)

    columns: List[ColumnDescriptor] = []
    for fetched in fetched_columns or []:
        if isinstance(fetched, dict):
            column = ColumnDescriptor.from_dict(fetched)
        else:
            column = replace(fetched, type_attributes=dict(fetched.type_attributes))
        field_name = column.field_name or ""

        if field_name.lower() == RECORD_TYPE_ID_FIELD:
            continue

        field_config = field_configs.get(field_name)

        if field_config and field_config.label:
            column.label = field_config.label

        if field_config and field_config.sortable is True:
            column.sortable = True

        if editable_fields:
            column.editable = field_name in editable_fields

        if column.type.startswith(CUSTOM_TYPE_PREFIX):
            existing = column.type_attributes
            column.type_attributes = {
                **existing,
                "tableBoundary": boundary,
                "rowKeyAttribute": identity_field,
                "rowKeyValue": {"fieldName": identity_field},
                "isEditable": field_name in editable_fields,
                "objectApiName": existing.get("objectApiName") or object_name,
                "columnName": existing.get("columnName") or field_name,
                "fieldApiName": existing.get("fieldApiName") or field_name,
            }

        if column.type == COMPOUND_NAME_TYPE and compound_name:
            column.type_attributes["isCompoundName"] = True

        if field_config and field_config.width:
            column.initial_width = field_config.width

        if field_config and field_config.type_attributes_override:
            column.type_attributes = {
                **column.type_attributes,
                **field_config.type_attributes_override,
            }

        columns.append(column)

    if config.actions.row and row_actions_provider is not None:
        columns.append(
            ColumnDescriptor(
                field_name=None,
                type=ACTION_COLUMN_TYPE,
                type_attributes={
                    "rowActions": row_actions_provider,
                    "menuAlignment": "auto",
                },
            )
        )

    logger.debug(f"Reconciled {len(columns)} column(s) for {object_name}")
    return columns
