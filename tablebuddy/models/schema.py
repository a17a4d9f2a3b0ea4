"""
Wire models for the schema metadata and query execution services.
"""

from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, Field

_MODEL_CONFIG = {"populate_by_name": True, "extra": "allow"}


class FieldSchema(BaseModel):
    """Metadata for one field of an object"""
    model_config = _MODEL_CONFIG

    data_type: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("dataType", "data_type"),
        serialization_alias="dataType",
    )
    label: Optional[str] = None
    updateable: bool = False
    deletable: bool = False


class ObjectSchema(BaseModel):
    """
    Result of describe(objectName).

    Example:
        >>> schema = ObjectSchema.model_validate({
        ...     "objectName": "Account",
        ...     "fields": {"Industry": {"dataType": "Picklist"}},
        ...     "iconUrl": "https://example.com/img/icon/t4v35/standard/account_120.png",
        ... })
        >>> schema.icon_name
        'standard:account'
    """
    model_config = _MODEL_CONFIG

    object_name: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("objectName", "objectApiName", "object_name"),
        serialization_alias="objectName",
    )
    label: Optional[str] = None
    fields: Dict[str, FieldSchema] = Field(default_factory=dict)
    updateable: bool = False
    deletable: bool = False
    compound_name: bool = Field(
        default=False,
        validation_alias=AliasChoices("compoundName", "compound_name"),
        serialization_alias="compoundName",
    )
    icon_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("iconUrl", "icon_url"),
        serialization_alias="iconUrl",
    )

    def data_type_of(self, field_name: str) -> Optional[str]:
        field = self.fields.get(field_name)
        return field.data_type if field else None

    def has_field(self, field_name: str) -> bool:
        return field_name in self.fields

    @property
    def icon_name(self) -> Optional[str]:
        """
        Card icon name derived from the icon URL.

        ".../standard/account_120.png" -> "standard:account"
        """
        if not self.icon_url:
            return None
        fragments = self.icon_url.rstrip("/").split("/")
        if len(fragments) < 2:
            return None
        icon_type = fragments[-2]
        icon = fragments[-1].replace("_120.png", "")
        return f"{icon_type}:{icon}"


class TableCache(BaseModel):
    """Result of execute(query): the owning object, column descriptors and rows"""
    model_config = _MODEL_CONFIG

    object_name: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("objectName", "objectApiName", "object_name"),
        serialization_alias="objectName",
    )
    columns: List[Dict[str, Any]] = Field(
        default_factory=list,
        validation_alias=AliasChoices("columns", "tableColumns"),
    )
    rows: List[Dict[str, Any]] = Field(
        default_factory=list,
        validation_alias=AliasChoices("rows", "tableData"),
    )
