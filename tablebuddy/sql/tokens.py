"""
Merge token resolution - placeholder extraction and classification

Three token families can appear in a query string:
- $recordId: the host record's id
- $CurrentUserId: the running user's id
- $CurrentRecord.<fieldPath>: a field value read from the host record
  ($record.<fieldPath> is shorthand, rewritten to the canonical form first)

The first two are substituted directly. Record tokens need the host object's
schema and the record's values, and are handed to the merge coordinator.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from loguru import logger

from tablebuddy.config.constants import (
    CONTEXT_ID_TOKEN,
    CURRENT_USER_TOKEN,
    RECORD_TOKEN_PREFIX,
)
from tablebuddy.models.table import MergeToken
from tablebuddy.utils.errors import MissingContextObject

_SHORTHAND_PATTERN = re.compile(r"\$record\.")
_RECORD_TOKEN_PATTERN = re.compile(r"\$CurrentRecord\.\w+(?:\.\w+)*")
_CONTEXT_ID_PATTERN = re.compile(re.escape(CONTEXT_ID_TOKEN) + r"\b")
_CURRENT_USER_PATTERN = re.compile(re.escape(CURRENT_USER_TOKEN) + r"\b")


@dataclass
class TokenClassification:
    """Tokens found in a query, in first-seen order"""
    simple_tokens: List[str] = field(default_factory=list)
    record_tokens: List[str] = field(default_factory=list)

    @property
    def has_record_tokens(self) -> bool:
        return bool(self.record_tokens)


def canonicalize(query: str) -> str:
    """
    Rewrite $record.<field> shorthand to $CurrentRecord.<field>.

    The canonical prefix does not contain the shorthand, so rewriting an
    already-canonical query is a no-op.

    Examples:
        >>> canonicalize("WHERE Industry = $record.Industry")
        'WHERE Industry = $CurrentRecord.Industry'
    """
    if not query:
        return query
    return _SHORTHAND_PATTERN.sub(lambda _: RECORD_TOKEN_PREFIX, query)


def _unique(values: Iterable[str]) -> List[str]:
    seen = set()
    ordered = []
    for value in values:
        if value not in seen:
            seen.add(value)
            ordered.append(value)
    return ordered


def classify(query: str) -> TokenClassification:
    """
    Extract and classify the merge tokens in a query.

    Examples:
        >>> result = classify("WHERE OwnerId = $CurrentUserId AND Type = $record.Type")
        >>> result.simple_tokens
        ['$CurrentUserId']
        >>> result.record_tokens
        ['$CurrentRecord.Type']
    """
    if not query:
        return TokenClassification()
    query = canonicalize(query)

    simple_tokens = []
    if _CONTEXT_ID_PATTERN.search(query):
        simple_tokens.append(CONTEXT_ID_TOKEN)
    if _CURRENT_USER_PATTERN.search(query):
        simple_tokens.append(CURRENT_USER_TOKEN)

    record_tokens = _unique(_RECORD_TOKEN_PATTERN.findall(query))
    return TokenClassification(simple_tokens=simple_tokens, record_tokens=record_tokens)


def substitute_simple_tokens(
    query: str,
    record_id: Optional[str] = None,
    user_id: Optional[str] = None,
) -> str:
    """
    Replace $recordId and $CurrentUserId with single-quoted ids.

    Raises:
        MissingContextObject: If a token is used but its id is not available
    """
    if _CONTEXT_ID_PATTERN.search(query):
        if not record_id:
            raise MissingContextObject(f"{CONTEXT_ID_TOKEN} can only be used on a record page.")
        query = _CONTEXT_ID_PATTERN.sub(lambda _: f"'{record_id}'", query)

    if _CURRENT_USER_PATTERN.search(query):
        if not user_id:
            raise MissingContextObject(f"{CURRENT_USER_TOKEN} requires a current user.")
        query = _CURRENT_USER_PATTERN.sub(lambda _: f"'{user_id}'", query)

    return query


def build_merge_tokens(record_tokens: List[str], object_name: Optional[str]) -> Dict[str, MergeToken]:
    """
    Create merge tokens for record-relative placeholders.

    Args:
        record_tokens: Canonical record tokens ("$CurrentRecord.Industry")
        object_name: Host record's object name

    Returns:
        Dict mapping token text to its MergeToken

    Raises:
        MissingContextObject: If tokens are present but there is no host object
    """
    if not record_tokens:
        return {}
    if not object_name:
        raise MissingContextObject(
            f"{RECORD_TOKEN_PREFIX.rstrip('.')} can only be used on a record page."
        )

    tokens = {}
    for raw_token in record_tokens:
        field_name = raw_token[len(RECORD_TOKEN_PREFIX):]
        tokens[raw_token] = MergeToken(
            raw_token=raw_token,
            source_field=f"{object_name}.{field_name}",
            resolved_field_name=field_name,
        )
    logger.debug(f"Registered {len(tokens)} merge token(s) against {object_name}: {list(tokens)}")
    return tokens
