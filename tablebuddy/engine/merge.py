"""
Merge resolution coordinator

Drives the two-phase lookup needed before record tokens can be substituted:
the host object's schema supplies each token's data type, then the host
record supplies its value. Every transition is stamped with the generation
it was computed for; results for a superseded generation are rejected.

    NONE -> AWAITING_SCHEMA -> AWAITING_RECORD -> RESOLVED -> VALIDATING -> READY
    (any) -> ERROR
"""

from enum import Enum
import re
from typing import Any, Dict, List, Optional

from loguru import logger

from tablebuddy.config.constants import DIRECT_MERGE_DATA_TYPES, QUOTED_MERGE_DATA_TYPES
from tablebuddy.models.schema import ObjectSchema
from tablebuddy.models.table import MergeToken
from tablebuddy.utils.errors import StaleGenerationError, TableEngineError


class MergeState(str, Enum):
    NONE = "none"
    AWAITING_SCHEMA = "awaiting_schema"
    AWAITING_RECORD = "awaiting_record"
    RESOLVED = "resolved"
    VALIDATING = "validating"
    READY = "ready"
    ERROR = "error"


def format_merge_value(value: Any, data_type: str) -> Optional[str]:
    """
    Render a record value as query text for its data type.

    Returns None when the data type belongs to neither substitution class.

    Examples:
        >>> format_merge_value("Tech", "string")
        "'Tech'"
        >>> format_merge_value(42, "integer")
        '42'
        >>> format_merge_value(True, "boolean")
        'true'
    """
    data_type = (data_type or "").lower()
    if value is None:
        if data_type in DIRECT_MERGE_DATA_TYPES or data_type in QUOTED_MERGE_DATA_TYPES:
            return "null"
        return None
    if data_type in DIRECT_MERGE_DATA_TYPES:
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)
    if data_type in QUOTED_MERGE_DATA_TYPES:
        text = str(value).replace("\\", "\\\\").replace("'", "\\'")
        return f"'{text}'"
    return None


def _token_pattern(raw_token: str) -> re.Pattern:
    # Whole tokens only: $CurrentRecord.Owner must not match $CurrentRecord.OwnerId
    return re.compile(re.escape(raw_token) + r"(?!\w|\.\w)")


def _record_value(values: Dict[str, Any], field_path: str) -> Any:
    if field_path in values:
        return values[field_path]
    current: Any = values
    for part in field_path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
    return current


class MergeResolutionCoordinator:
    """
    Owns the merge tokens of the current configuration generation.

    The pipeline calls reset() at the start of every chain, then drives the
    transitions in order. Tokens are never shared across generations.
    """

    def __init__(self):
        self.state = MergeState.NONE
        self.generation = 0
        self.warnings: List[str] = []
        self.error: Optional[str] = None
        self._tokens: Dict[str, MergeToken] = {}

    @property
    def tokens(self) -> Dict[str, MergeToken]:
        return dict(self._tokens)

    def reset(self, generation: int) -> None:
        self.state = MergeState.NONE
        self.generation = generation
        self.warnings = []
        self.error = None
        self._tokens = {}

    def is_current(self, generation: int) -> bool:
        return generation == self.generation

    def _check(self, generation: int, *expected: MergeState) -> None:
        if not self.is_current(generation):
            raise StaleGenerationError(
                f"Generation {generation} superseded by {self.generation}"
            )
        if expected and self.state not in expected:
            raise TableEngineError(
                f"Invalid merge transition from {self.state.value}, "
                f"expected one of {[s.value for s in expected]}"
            )

    def _transition(self, state: MergeState) -> None:
        logger.debug(f"Merge state {self.state.value} -> {state.value} (generation {self.generation})")
        self.state = state

    def _warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)

    def register(self, tokens: Dict[str, MergeToken], generation: int) -> bool:
        """
        Register record tokens found in the query.

        Returns:
            True when a schema lookup is needed, False when there is nothing to resolve
        """
        self._check(generation, MergeState.NONE)
        self._tokens = dict(tokens)
        if self._tokens:
            self._transition(MergeState.AWAITING_SCHEMA)
            return True
        return False

    def apply_schema(self, schema: ObjectSchema, generation: int) -> List[str]:
        """
        Record each token's data type from the host object's schema.

        Returns:
            Unique host record fields to fetch, in token order
        """
        self._check(generation, MergeState.AWAITING_SCHEMA)

        lowered = {name.lower(): name for name in schema.fields}
        fetch_fields: List[str] = []
        for token in self._tokens.values():
            field_name = token.resolved_field_name
            if not schema.has_field(field_name):
                field_name = lowered.get(field_name.lower(), field_name)
            data_type = schema.data_type_of(field_name)
            if data_type is None:
                self._warn(
                    f"Field {token.source_field} not found in schema, {token.raw_token} left unsubstituted"
                )
                continue
            token.data_type = data_type.lower()
            token.resolved_field_name = field_name
            if field_name not in fetch_fields:
                fetch_fields.append(field_name)

        self._transition(MergeState.AWAITING_RECORD)
        return fetch_fields

    def apply_record(self, values: Dict[str, Any], generation: int) -> None:
        """Record the host record's field values for every typed token."""
        self._check(generation, MergeState.AWAITING_RECORD)
        values = values or {}
        for token in self._tokens.values():
            if token.data_type is None:
                continue
            token.value = _record_value(values, token.resolved_field_name)
            token.value_loaded = True
        self._transition(MergeState.RESOLVED)

    def substitute(self, query: str, generation: int) -> str:
        """
        Replace every occurrence of every resolved token in the query.

        Tokens whose data type is unknown, or which lack either a data type
        or a value, are left in place and reported as warnings.
        """
        self._check(generation, MergeState.RESOLVED)
        for token in self._tokens.values():
            if not token.is_resolved:
                continue
            replacement = format_merge_value(token.value, token.data_type)
            if replacement is None:
                self._warn(
                    f"Data type '{token.data_type}' of {token.source_field} is not substitutable, "
                    f"{token.raw_token} left unsubstituted"
                )
                continue
            query = _token_pattern(token.raw_token).sub(lambda _: replacement, query)
        return query

    def begin_validation(self, generation: int) -> None:
        self._check(generation, MergeState.NONE, MergeState.RESOLVED)
        self._transition(MergeState.VALIDATING)

    def mark_ready(self, generation: int) -> None:
        self._check(generation, MergeState.VALIDATING)
        self._transition(MergeState.READY)

    def fail(self, message: str, generation: int) -> None:
        self._check(generation)
        self.error = message
        self._transition(MergeState.ERROR)
