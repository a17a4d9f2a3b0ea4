"""
Table configuration models

The declarative JSON document that drives one table instance: which object
and fields to query, how to filter, sort and display them, which actions to
offer, and how related-record lookups render. Key names written by the
configuration builder (objectApiName, tableActions, lookupConfigs, lwc, ...)
are accepted alongside the canonical ones.
"""

import json
from typing import Any, Dict, FrozenSet, List, Optional

from pydantic import AliasChoices, BaseModel, Field, ValidationError, field_validator

from tablebuddy.utils.errors import ConfigurationParseError

_MODEL_CONFIG = {"populate_by_name": True, "frozen": True, "extra": "ignore"}

CHECKBOX_TYPES = ("none", "single", "multi")
ACTION_TYPES = ("builtin", "flow", "external-component")
_ACTION_TYPE_ALIASES = {"lwc": "external-component", "component": "external-component"}


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class FieldConfig(BaseModel):
    """Per-field display and editing configuration"""
    model_config = _MODEL_CONFIG

    field_name: str = Field(
        validation_alias=AliasChoices("fieldName", "field_name"),
        serialization_alias="fieldName",
    )
    label: Optional[str] = None
    visible: bool = True
    sortable: Optional[bool] = None
    editable: bool = False
    width: Optional[int] = None
    type_attributes_override: Optional[Dict[str, Any]] = Field(
        default=None,
        validation_alias=AliasChoices("typeAttributesOverride", "type_attributes_override"),
        serialization_alias="typeAttributesOverride",
    )

    @field_validator("visible", mode="before")
    @classmethod
    def _visible_unless_false(cls, value: Any) -> Any:
        return True if value is None else value

    @field_validator("editable", mode="before")
    @classmethod
    def _editable_only_if_true(cls, value: Any) -> Any:
        return False if value is None else value

    @field_validator("label", "width", mode="before")
    @classmethod
    def _blank_optional(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @property
    def column_key(self) -> str:
        """Flattened column name for this field ("Account.Name" -> "Account_Name")."""
        return self.field_name.replace(".", "_")


class QuerySettings(BaseModel):
    """Filter, limit and default sort for the compiled query"""
    model_config = _MODEL_CONFIG

    where_clause: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("whereClause", "where_clause"),
        serialization_alias="whereClause",
    )
    limit: Optional[int] = None
    default_sort_field: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("defaultSortField", "default_sort_field"),
        serialization_alias="defaultSortField",
    )
    default_sort_direction: str = Field(
        default="asc",
        validation_alias=AliasChoices("defaultSortDirection", "default_sort_direction"),
        serialization_alias="defaultSortDirection",
    )

    @field_validator("where_clause", "default_sort_field", "limit", mode="before")
    @classmethod
    def _blank_optional(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("default_sort_direction", mode="before")
    @classmethod
    def _normalize_direction(cls, value: Any) -> str:
        direction = str(value or "asc").lower()
        return direction if direction in ("asc", "desc") else "asc"


class DisplaySettings(BaseModel):
    """Toolbar, selection and inline-editing display options"""
    model_config = _MODEL_CONFIG

    show_search: bool = Field(
        default=False,
        validation_alias=AliasChoices("showSearch", "show_search"),
        serialization_alias="showSearch",
    )
    show_refresh: bool = Field(
        default=False,
        validation_alias=AliasChoices("showRefresh", "show_refresh"),
        serialization_alias="showRefresh",
    )
    show_record_count: bool = Field(
        default=False,
        validation_alias=AliasChoices("showRecordCount", "show_record_count"),
        serialization_alias="showRecordCount",
    )
    checkbox_type: str = Field(
        default="none",
        validation_alias=AliasChoices("checkboxType", "checkbox_type"),
        serialization_alias="checkboxType",
    )
    editable_fields: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("editableFields", "editable_fields"),
        serialization_alias="editableFields",
    )

    @field_validator("show_search", "show_refresh", "show_record_count", mode="before")
    @classmethod
    def _flag(cls, value: Any) -> bool:
        return value is True

    @field_validator("checkbox_type", mode="before")
    @classmethod
    def _normalize_checkbox_type(cls, value: Any) -> str:
        checkbox_type = str(value or "none").lower()
        return checkbox_type if checkbox_type in CHECKBOX_TYPES else "none"

    @field_validator("editable_fields", mode="before")
    @classmethod
    def _editable_list(cls, value: Any) -> Any:
        return [] if value is None else value

    @property
    def editable_field_set(self) -> FrozenSet[str]:
        return frozenset(self.editable_fields)


class ActionConfig(BaseModel):
    """A configured table, overflow or row action"""
    model_config = _MODEL_CONFIG

    label: str = ""
    type: str
    name: Optional[str] = None
    target: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("target", "flowApiName", "lwcName", "componentName"),
    )
    dialog_size: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("dialogSize", "dialog_size"),
        serialization_alias="dialogSize",
    )
    order: int = 0

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, value: Any) -> str:
        action_type = str(value or "").lower()
        action_type = _ACTION_TYPE_ALIASES.get(action_type, action_type)
        if action_type not in ACTION_TYPES:
            raise ValueError(
                f"Unsupported action type '{value}'. Supported: {', '.join(ACTION_TYPES)}"
            )
        return action_type


class ActionsConfig(BaseModel):
    """Action lists, each kept sorted by its declared order"""
    model_config = _MODEL_CONFIG

    table: List[ActionConfig] = Field(
        default_factory=list,
        validation_alias=AliasChoices("table", "tableActions"),
        serialization_alias="tableActions",
    )
    overflow: List[ActionConfig] = Field(
        default_factory=list,
        validation_alias=AliasChoices("overflow", "overflowActions"),
        serialization_alias="overflowActions",
    )
    row: List[ActionConfig] = Field(
        default_factory=list,
        validation_alias=AliasChoices("row", "rowActions"),
        serialization_alias="rowActions",
    )

    @field_validator("table", "overflow", "row", mode="before")
    @classmethod
    def _list_or_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("table", "overflow", "row")
    @classmethod
    def _sort_by_order(cls, value: List[ActionConfig]) -> List[ActionConfig]:
        return sorted(value, key=lambda action: action.order)


class LookupDisplayConfig(BaseModel):
    """Title/subtitle/icon used when rendering a related record"""
    model_config = _MODEL_CONFIG

    title_field: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("titleField", "title_field"),
        serialization_alias="titleField",
    )
    subtitle_field: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("subtitleField", "subtitle_field"),
        serialization_alias="subtitleField",
    )
    icon_name: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("iconName", "icon_name"),
        serialization_alias="iconName",
    )


class TableConfiguration(BaseModel):
    """
    Immutable table configuration.

    Loaded once per mount and replaced wholesale on re-configuration.

    Example:
        >>> config = TableConfiguration.from_dict({
        ...     "objectName": "Account",
        ...     "fields": [{"fieldName": "Name", "visible": True}],
        ...     "querySettings": {"limit": 10},
        ... })
        >>> config.object_name
        'Account'
    """
    model_config = _MODEL_CONFIG

    object_name: str = Field(
        validation_alias=AliasChoices("objectName", "objectApiName", "object_name"),
        serialization_alias="objectName",
    )
    fields: List[FieldConfig] = Field(default_factory=list)
    query_settings: QuerySettings = Field(
        default_factory=QuerySettings,
        validation_alias=AliasChoices("querySettings", "query_settings"),
        serialization_alias="querySettings",
    )
    display_settings: DisplaySettings = Field(
        default_factory=DisplaySettings,
        validation_alias=AliasChoices("displaySettings", "display_settings"),
        serialization_alias="displaySettings",
    )
    actions: ActionsConfig = Field(default_factory=ActionsConfig)
    lookup_display_config: Dict[str, LookupDisplayConfig] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("lookupDisplayConfig", "lookupConfigs", "lookup_display_config"),
        serialization_alias="lookupDisplayConfig",
    )

    @field_validator("fields", "lookup_display_config", "query_settings", "display_settings", "actions", mode="before")
    @classmethod
    def _null_to_default(cls, value: Any, info) -> Any:
        if value is None:
            return [] if info.field_name == "fields" else {}
        return value

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TableConfiguration":
        """
        Validate a configuration mapping.

        Raises:
            ConfigurationParseError: If the mapping does not match the schema
        """
        if not isinstance(data, dict):
            raise ConfigurationParseError(
                f"Configuration must be a JSON object, got {type(data).__name__}"
            )
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigurationParseError(f"Invalid configuration: {e}") from e

    @classmethod
    def from_json(cls, text: str) -> "TableConfiguration":
        """
        Parse serialized configuration JSON.

        Raises:
            ConfigurationParseError: If the text is not valid JSON or not a valid configuration
        """
        try:
            data = json.loads(text)
        except (json.JSONDecodeError, TypeError) as e:
            raise ConfigurationParseError(f"Configuration is not valid JSON: {e}") from e
        return cls.from_dict(data)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    @property
    def visible_fields(self) -> List[FieldConfig]:
        return [f for f in self.fields if f.visible]

    @property
    def editable_field_set(self) -> FrozenSet[str]:
        return self.display_settings.editable_field_set

    @property
    def field_config_map(self) -> Dict[str, FieldConfig]:
        """Field configuration keyed by flattened column name."""
        return {f.column_key: f for f in self.fields}

    def lookup_payload(self) -> Dict[str, Dict[str, Any]]:
        """Lookup display configuration as published to cell components."""
        return {
            object_name: lookup.model_dump(by_alias=True)
            for object_name, lookup in self.lookup_display_config.items()
        }
