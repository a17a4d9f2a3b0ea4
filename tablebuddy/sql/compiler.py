"""
Query compilation - configuration to executable query string

Builds SELECT <fields> FROM <object> [WHERE ...] [LIMIT n] from a table
configuration, and normalizes the reserved keywords so the rest of the
pipeline can rely on their casing.
"""

import re
from typing import Optional

from loguru import logger

from tablebuddy.config.constants import RESERVED_KEYWORDS
from tablebuddy.config.settings import settings
from tablebuddy.models.config import TableConfiguration
from tablebuddy.models.table import QueryDescriptor
from tablebuddy.sql.analysis import extract_object_name

# Not preceded by "." or "$" so token and relationship paths stay untouched
_KEYWORD_PATTERN = re.compile(
    r"(?<![\w.$])(" + "|".join(RESERVED_KEYWORDS) + r")\b",
    flags=re.IGNORECASE,
)


def _is_inside_string_literal(sql: str, position: int) -> bool:
    """
    Check if a position in SQL is inside a string literal.

    Handles both single quotes (') and double quotes (").
    A backslash escapes the character after it, so a quote is escaped only
    when preceded by an odd run of backslashes.

    Examples:
        >>> sql = "SELECT Id FROM Account WHERE Name = 'select from'"
        >>> _is_inside_string_literal(sql, 15)
        False
        >>> _is_inside_string_literal(sql, 38)
        True
    """
    single_quote_count = 0
    double_quote_count = 0
    i = 0

    while i < position:
        char = sql[i]

        if char == "\\":
            i += 2
            continue

        if char == "'":
            single_quote_count += 1
        elif char == '"':
            double_quote_count += 1

        i += 1

    return (single_quote_count % 2) == 1 or (double_quote_count % 2) == 1


def normalize_keywords(query: Optional[str]) -> Optional[str]:
    """
    Upper-case the reserved keywords (select/from/where/limit).

    Matching is case-insensitive and skips string literals. Normalizing an
    already-normalized query returns it unchanged.

    Examples:
        >>> normalize_keywords("select Name from Account where Type = 'from' limit 5")
        "SELECT Name FROM Account WHERE Type = 'from' LIMIT 5"
    """
    if not query:
        return query

    def _upper(match: re.Match) -> str:
        if _is_inside_string_literal(query, match.start()):
            return match.group(0)
        return match.group(0).upper()

    return _KEYWORD_PATTERN.sub(_upper, query)


def compile_query(config: TableConfiguration, identity_field: Optional[str] = None) -> QueryDescriptor:
    """
    Compile a table configuration into a query descriptor.

    Visible fields keep configuration order, duplicates are dropped, and the
    identity field is prepended unless already present.

    Args:
        config: Table configuration
        identity_field: Row identity field (defaults to settings.identity_field)

    Returns:
        QueryDescriptor with built_query set

    Examples:
        >>> config = TableConfiguration.from_dict({
        ...     "objectName": "Account",
        ...     "fields": [{"fieldName": "Name", "visible": True}],
        ...     "querySettings": {"limit": 10},
        ... })
        >>> compile_query(config).built_query
        'SELECT Id, Name FROM Account LIMIT 10'
    """
    identity_field = identity_field or settings.identity_field

    field_names = []
    seen = set()
    for field_config in config.visible_fields:
        key = field_config.field_name.lower()
        if key in seen:
            continue
        seen.add(key)
        field_names.append(field_config.field_name)

    if identity_field.lower() not in seen:
        field_names.insert(0, identity_field)

    query = f"SELECT {', '.join(field_names)} FROM {config.object_name}"

    query_settings = config.query_settings
    if query_settings.where_clause:
        query += f" WHERE {query_settings.where_clause}"
    if query_settings.limit:
        query += f" LIMIT {query_settings.limit}"

    query = normalize_keywords(query)
    logger.debug(f"Compiled query: {query}")
    return QueryDescriptor(built_query=query, object_name=config.object_name)


def from_raw_query(query: str) -> QueryDescriptor:
    """
    Build a descriptor from an externally supplied query string.

    The owning object is read from the FROM clause when the query parses.
    """
    normalized = normalize_keywords(query.strip())
    return QueryDescriptor(built_query=normalized, object_name=extract_object_name(normalized))


def finalize(descriptor: QueryDescriptor, resolved_query: str) -> QueryDescriptor:
    """Re-assemble the descriptor with the substituted query."""
    return descriptor.with_resolved(normalize_keywords(resolved_query))
