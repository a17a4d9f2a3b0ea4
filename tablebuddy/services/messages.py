"""
Error reduction and boundary helpers

Externally reported errors come in several shapes (record-error payloads with
field and page errors, plain bodies with a message, exceptions, bare strings).
This module is the ONLY place that knows those shapes: everything else works
with the flat message lists it returns.
"""

import re
import uuid
from typing import Any, Dict, List, Optional

from tablebuddy.utils.errors import PersistenceError, PersistenceFieldError, PersistenceGeneralError

_RECORD_ID_PATTERN = re.compile(r"[a-zA-Z0-9]{15}|[a-zA-Z0-9]{18}")


def generate_uuid() -> str:
    """Unique boundary id for one table instance."""
    return str(uuid.uuid4())


def is_record_id(value: Optional[str]) -> bool:
    """
    Check whether a string looks like a 15 or 18 character record id.

    Examples:
        >>> is_record_id("001000000000001AAA")
        True
        >>> is_record_id("not-an-id")
        False
    """
    if not value or not isinstance(value, str):
        return False
    return _RECORD_ID_PATTERN.search(value) is not None


def _record_error_message(output: Dict[str, Any]) -> str:
    errors = output.get("errors") or []
    if errors and "_" in (errors[0].get("errorCode") or ""):
        return errors[0].get("message") or ""
    field_errors = output.get("fieldErrors") or {}
    if not errors and field_errors:
        first_field = next(iter(field_errors))
        first = field_errors[first_field] or [{}]
        return first[0].get("message") or ""
    return ""


def _persistence_messages(error: PersistenceError) -> List[str]:
    messages = []
    for field_messages in error.field_errors.values():
        messages.extend(field_messages)
    messages.extend(error.page_errors)
    if not messages and error.message:
        messages.append(error.message)
    return messages


def _messages_from(error: Any) -> List[str]:
    if isinstance(error, PersistenceError):
        return _persistence_messages(error)
    if isinstance(error, str):
        return [error]
    if isinstance(error, dict):
        body = error.get("body")
        if isinstance(body, list):
            return [e.get("message") for e in body if isinstance(e, dict)]
        if isinstance(body, dict):
            enhanced_type = (body.get("enhancedErrorType") or "").lower()
            if enhanced_type == "recorderror" and body.get("output"):
                return [_record_error_message(body["output"])]
            if isinstance(body.get("message"), str):
                message = body["message"]
                if isinstance(body.get("stackTrace"), str):
                    message += f"\n{body['stackTrace']}"
                return [message]
            page_errors = body.get("pageErrors") or []
            if page_errors:
                return [page_errors[0].get("message")]
        if isinstance(error.get("message"), str):
            return [error["message"]]
        return [error.get("statusText")]
    if isinstance(error, Exception):
        message = getattr(error, "message", None)
        return [message if isinstance(message, str) and message else str(error)]
    return [str(error)]


def reduce_errors(errors: Any) -> List[str]:
    """
    Reduce one error or a list of errors to a flat list of readable messages.

    Shapes are tried in a fixed priority order: list bodies, record-error
    output, body message (with stack trace), page errors, persistence field
    and page errors, exception message, status text. Empty messages are
    dropped.

    Examples:
        >>> reduce_errors({"body": {"message": "Insufficient access"}})
        ['Insufficient access']
        >>> reduce_errors([ValueError("boom"), None, "plain"])
        ['boom', 'plain']
    """
    if not isinstance(errors, list):
        errors = [errors]

    messages = []
    for error in errors:
        if not error:
            continue
        messages.extend(_messages_from(error))
    return [message for message in messages if message]


def persistence_error_from_result(result: Any) -> Optional[PersistenceError]:
    """
    Read a failure out of an update result.

    A record service may report a row failure by returning
    {"errorFields": [...], "message": "..."} instead of raising. errorFields
    may also map each field to its own message(s). Any other result is a
    success.

    Examples:
        >>> persistence_error_from_result({"id": "003000000000001AAA"}) is None
        True
        >>> persistence_error_from_result({"errorFields": ["Name"], "message": "Required"}).field_errors
        {'Name': []}
    """
    if not isinstance(result, dict) or not ("errorFields" in result or "message" in result):
        return None

    message = result.get("message") or ""
    error_fields = result.get("errorFields") or []
    if isinstance(error_fields, dict):
        field_errors = {
            name: [messages] if isinstance(messages, str) else list(messages or [])
            for name, messages in error_fields.items()
        }
    else:
        field_errors = {name: [] for name in error_fields}

    if field_errors:
        return PersistenceFieldError(message, field_errors=field_errors)
    return PersistenceGeneralError(message)


def field_error_names(error: Any) -> List[str]:
    """Names of the fields an error is attributed to (empty for row-level errors)."""
    if isinstance(error, PersistenceError):
        return list(error.field_errors)
    if isinstance(error, dict):
        body = error.get("body")
        if isinstance(body, dict):
            output = body.get("output") or {}
            return list((output.get("fieldErrors") or {}).keys())
    return []
