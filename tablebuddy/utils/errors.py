"""
Custom error classes for the table engine
"""

from typing import Dict, List, Optional


class TableEngineError(Exception):
    """Base exception for table engine errors"""
    pass


class ConfigurationNotFound(TableEngineError):
    """No stored configuration exists for the requested name"""
    pass


class ConfigurationParseError(TableEngineError):
    """Stored configuration JSON is malformed or does not match the schema"""
    pass


class MissingContextObject(TableEngineError):
    """A record-relative token was used without a host record or object"""
    pass


class QuerySyntaxError(TableEngineError):
    """Query validation reported a syntax or semantic error"""
    pass


class FetchError(TableEngineError):
    """Query execution failed"""
    pass


class UnknownComponentError(TableEngineError):
    """An action names a presentation component that is not registered"""
    pass


class StaleGenerationError(TableEngineError):
    """A result arrived for a configuration generation that has been superseded"""
    pass


class PersistenceError(TableEngineError):
    """
    Row-level persistence failure.

    Attributes:
        message: Top-level error message
        field_errors: Field name -> list of messages for that field
        page_errors: Messages not attributed to any field
    """

    def __init__(
        self,
        message: str = "",
        field_errors: Optional[Dict[str, List[str]]] = None,
        page_errors: Optional[List[str]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.field_errors = dict(field_errors or {})
        self.page_errors = list(page_errors or [])


class PersistenceFieldError(PersistenceError):
    """Persistence failure attributed to specific fields of a row"""
    pass


class PersistenceGeneralError(PersistenceError):
    """Persistence failure for a row without field detail"""
    pass
