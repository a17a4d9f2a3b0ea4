"""
Shared utilities - logging and error kinds
"""

from tablebuddy.utils.errors import (
    TableEngineError,
    ConfigurationNotFound,
    ConfigurationParseError,
    MissingContextObject,
    QuerySyntaxError,
    FetchError,
    UnknownComponentError,
    StaleGenerationError,
    PersistenceError,
    PersistenceFieldError,
    PersistenceGeneralError,
)

__all__ = [
    "TableEngineError",
    "ConfigurationNotFound",
    "ConfigurationParseError",
    "MissingContextObject",
    "QuerySyntaxError",
    "FetchError",
    "UnknownComponentError",
    "StaleGenerationError",
    "PersistenceError",
    "PersistenceFieldError",
    "PersistenceGeneralError",
]
