"""
Table engine data models

Query descriptors, merge tokens, columns and save results shared by the
engine components.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class QueryDescriptor:
    """Compiled query before and after merge-token substitution"""
    built_query: str
    resolved_query: Optional[str] = None
    object_name: Optional[str] = None

    @property
    def executable_query(self) -> str:
        return self.resolved_query if self.resolved_query is not None else self.built_query

    def with_resolved(self, resolved_query: str) -> "QueryDescriptor":
        return replace(self, resolved_query=resolved_query)


@dataclass
class MergeToken:
    """
    A record-relative placeholder and its resolution.

    Attributes:
        raw_token: Token text as it appears in the query ("$CurrentRecord.Industry")
        source_field: Object-qualified field ("Account.Industry")
        resolved_field_name: Field path on the host record ("Industry")
        value: Record value, set once the record lookup arrives
        data_type: Schema data type, set once the schema lookup arrives
        value_loaded: True once the record lookup has supplied a value (which may be None)
    """
    raw_token: str
    source_field: str
    resolved_field_name: str
    value: Any = None
    data_type: Optional[str] = None
    value_loaded: bool = False

    @property
    def is_resolved(self) -> bool:
        return self.data_type is not None and self.value_loaded


@dataclass
class ColumnDescriptor:
    """A rendered column"""
    field_name: Optional[str]
    label: Optional[str] = None
    type: str = "text"
    sortable: bool = False
    editable: bool = False
    initial_width: Optional[int] = None
    type_attributes: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ColumnDescriptor":
        """Build from a fetched column descriptor (camelCase wire keys)."""
        return cls(
            field_name=data.get("fieldName"),
            label=data.get("label"),
            type=data.get("type") or "text",
            sortable=bool(data.get("sortable", False)),
            editable=bool(data.get("editable", False)),
            initial_width=data.get("initialWidth"),
            type_attributes=dict(data.get("typeAttributes") or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "fieldName": self.field_name,
            "label": self.label,
            "type": self.type,
            "sortable": self.sortable,
            "editable": self.editable,
            "typeAttributes": dict(self.type_attributes),
        }
        if self.initial_width is not None:
            data["initialWidth"] = self.initial_width
        return data


@dataclass
class RowError:
    """Errors attributed to one row after a save"""
    title: str
    messages: List[str]
    field_names: List[str] = field(default_factory=list)
    row_number: Optional[int] = None


@dataclass
class TableError:
    """Table-level save error summary"""
    title: str
    messages: List[str] = field(default_factory=list)


@dataclass
class SaveOutcome:
    """Result of persisting a batch of drafts: per-row successes and failures"""
    successes: List[Any] = field(default_factory=list)
    row_errors: Dict[Any, RowError] = field(default_factory=dict)
    summary: TableError = field(default_factory=lambda: TableError(title="Found 0 error rows"))

    @property
    def has_errors(self) -> bool:
        return bool(self.row_errors)


@dataclass
class CommitSnapshot:
    """
    Record inputs and display row numbers captured when a save is submitted.

    Attributes:
        record_inputs: One {"fields": {...}} input per draft row, identity included
        row_number_map: Row id -> one-based display position (0 when not displayed)
        patches: Row id -> field patch as submitted, used to tell later edits apart
    """
    record_inputs: List[Dict[str, Any]]
    row_number_map: Dict[Any, int]
    patches: Dict[Any, Dict[str, Any]] = field(default_factory=dict)
