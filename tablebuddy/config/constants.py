"""
Engine constants

Centralized constants used across the engine.
"""

from typing import FrozenSet

# ============================================================================
# Merge Tokens
# ============================================================================

CONTEXT_ID_TOKEN = "$recordId"
CURRENT_USER_TOKEN = "$CurrentUserId"
RECORD_TOKEN_PREFIX = "$CurrentRecord."
RECORD_TOKEN_SHORTHAND = "$record."

# Substituted as-is: booleans, numbers, temporal values
DIRECT_MERGE_DATA_TYPES: FrozenSet[str] = frozenset({
    "anytype",
    "boolean",
    "currency",
    "date",
    "datetime",
    "double",
    "integer",
    "long",
    "percent",
    "time",
})

# Substituted wrapped in single quotes: text-like, references, picklists
QUOTED_MERGE_DATA_TYPES: FrozenSet[str] = frozenset({
    "address",
    "combobox",
    "email",
    "id",
    "multipicklist",
    "phone",
    "picklist",
    "reference",
    "string",
    "text",
    "textarea",
    "url",
})

# ============================================================================
# Query Keywords
# ============================================================================

RESERVED_KEYWORDS = ("select", "from", "where", "limit")

# ============================================================================
# Columns
# ============================================================================

RECORD_TYPE_ID_FIELD = "recordtypeid"
CUSTOM_TYPE_PREFIX = "custom"
COMPOUND_NAME_TYPE = "customName"
ACTION_COLUMN_TYPE = "action"

# ============================================================================
# Actions
# ============================================================================

MODAL_SIZES: FrozenSet[str] = frozenset({"small", "medium", "large"})
DEFAULT_MODAL_SIZE = "medium"

EDIT_ROW_ACTION = "edit_row"
DELETE_ROW_ACTION = "delete_row"
FLOW_ACTION = "custom_flow"
COMPONENT_ACTION = "custom_component"

# Registry keys for the built-in presentation collaborators
EDIT_FORM_COMPONENT = "edit_row"
DELETE_FORM_COMPONENT = "delete_row"
FLOW_COMPONENT = "flow"

# Outcome statuses signaling a committed change (triggers a refetch)
COMMITTED_STATUSES: FrozenSet[str] = frozenset({"saved", "deleted", "finished", "completed"})

# ============================================================================
# Message Bus Topics
# ============================================================================

TOPIC_LOOKUP_CONFIG_LOAD = "lookupconfigload"
TOPIC_ROW_SELECTED = "rowselected"
TOPIC_SET_DRAFT_VALUE = "setdraftvalue"
TOPIC_CANCEL_DRAFT = "canceldraft"
