"""Detect upstream authorization failures.

The CRM reports a stale token inconsistently: sometimes as an HTTP 401, more
often as a 200 whose body carries a failure message. Both shapes are funnelled
through this module so the keyword matching can change in one place.
"""
from __future__ import annotations

import re
from typing import Any, Iterable, Optional

from .errors import ProviderUnauthorized

_ERROR_PATTERN = re.compile(
    r"unauthorized|invalid token|token invalid|token expired|expire token|access token",
    re.IGNORECASE,
)
_RESPONSE_PATTERN = re.compile(
    r"unauthorized|invalid token|token invalid|token expired|expire token",
    re.IGNORECASE,
)
_ERROR_BODY_FIELDS = ("message", "Message", "response")
_RESPONSE_BODY_FIELDS = ("message", "Message", "response", "result", "flag")


def _join_fields(payload: Any, fields: Iterable[str], *, separator: str) -> str:
    if not isinstance(payload, dict):
        return ""
    parts = [str(payload[name]) for name in fields if payload.get(name) not in (None, "")]
    return separator.join(parts)


def _status_of(exc: BaseException) -> Optional[int]:
    status = getattr(exc, "status_code", None)
    if isinstance(status, int):
        return status
    response = getattr(exc, "response", None)
    status = getattr(response, "status_code", None)
    return status if isinstance(status, int) else None


def _body_of(exc: BaseException) -> Any:
    payload = getattr(exc, "payload", None)
    if payload is not None:
        return payload
    response = getattr(exc, "response", None)
    if response is None:
        return None
    try:
        return response.json()
    except (ValueError, RuntimeError):
        return None


def error_text(exc: BaseException) -> str:
    """Lower-cased exception message joined with the body's message fields."""
    parts = [str(exc), _join_fields(_body_of(exc), _ERROR_BODY_FIELDS, separator=" | ")]
    return " | ".join(part for part in parts if part).lower()


def is_unauthorized(exc: BaseException) -> bool:
    """Return True when ``exc`` means the token should be refreshed and the call retried."""
    if isinstance(exc, ProviderUnauthorized):
        return True
    if _status_of(exc) == 401:
        return True
    return bool(_ERROR_PATTERN.search(error_text(exc)))


def raise_if_unauthorized_response(payload: Any, *, status_code: int = 200) -> None:
    """Raise :class:`ProviderUnauthorized` when a successful response reports a bad token."""
    joined = _join_fields(payload, _RESPONSE_BODY_FIELDS, separator=" ")
    if joined and _RESPONSE_PATTERN.search(joined):
        message = payload.get("message") or payload.get("Message") or "Provider token unauthorized"
        raise ProviderUnauthorized(str(message), status_code=status_code, payload=payload)
