"""
Query layer - token resolution, compilation and local analysis
"""

from tablebuddy.sql.tokens import (
    TokenClassification,
    canonicalize,
    classify,
    substitute_simple_tokens,
    build_merge_tokens,
)
from tablebuddy.sql.compiler import (
    normalize_keywords,
    compile_query,
    from_raw_query,
    finalize,
)
from tablebuddy.sql.analysis import parse_query, extract_object_name, SqlglotQueryValidator

__all__ = [
    "TokenClassification",
    "canonicalize",
    "classify",
    "substitute_simple_tokens",
    "build_merge_tokens",
    "normalize_keywords",
    "compile_query",
    "from_raw_query",
    "finalize",
    "parse_query",
    "extract_object_name",
    "SqlglotQueryValidator",
]
