"""
Query analysis utilities using sqlglot.

This module provides wrapper functions around sqlglot to:
- Parse a query into an Abstract Syntax Tree (AST)
- Read the owning object out of the FROM clause
- Validate queries locally, before they reach the remote query service
"""

from typing import Optional

import sqlglot
from loguru import logger
from sqlglot import exp
from sqlglot.errors import SqlglotError

from tablebuddy.config.settings import settings


def parse_query(query: str, dialect: Optional[str] = None) -> exp.Expression:
    """
    Parse a query into a sqlglot AST.

    Args:
        query: Query string
        dialect: sqlglot dialect (defaults to settings.sql_dialect, empty = sqlglot default)

    Returns:
        sqlglot Expression (AST root)

    Raises:
        sqlglot.errors.SqlglotError: If the query cannot be tokenized or parsed

    Example:
        >>> ast = parse_query("SELECT Id, Name FROM Account LIMIT 10")
        >>> type(ast).__name__
        'Select'
    """
    read = dialect if dialect is not None else (settings.sql_dialect or None)
    parsed = sqlglot.parse_one(query, read=read)
    logger.debug(f"Parsed query into AST: {type(parsed).__name__}")
    return parsed


def extract_object_name(query: str) -> Optional[str]:
    """
    Return the object named in the FROM clause, or None when the query
    cannot be parsed (unresolved merge tokens, dialect-specific literals).

    Example:
        >>> extract_object_name("SELECT Id FROM Contact WHERE LastName = 'Smith'")
        'Contact'
    """
    if not query:
        return None
    try:
        ast = parse_query(query)
    except SqlglotError as e:
        logger.debug(f"Could not read object name from query: {e}")
        return None

    table = ast.find(exp.Table)
    return table.name if table is not None else None


class SqlglotQueryValidator:
    """
    Local query validator.

    Reports parse errors, non-SELECT statements and queries without a FROM
    object. Returns None for a valid query, mirroring the remote
    validate(queryString) -> errorMessage|null contract.
    """

    def __init__(self, dialect: Optional[str] = None):
        self.dialect = dialect

    def check(self, query: str) -> Optional[str]:
        if not query or not query.strip():
            return "Query string is empty"
        try:
            ast = parse_query(query, dialect=self.dialect)
        except SqlglotError as e:
            logger.warning(f"Query failed local validation: {e}")
            return str(e)

        if not isinstance(ast, exp.Select):
            return f"Only SELECT queries are supported, got {type(ast).__name__}"
        if ast.find(exp.Table) is None:
            return "Query has no FROM object"
        return None

    async def validate(self, query: str) -> Optional[str]:
        return self.check(query)
