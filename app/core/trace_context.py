"""Per-request trace id, stored in a ContextVar so concurrent requests never mix."""
from __future__ import annotations

import contextvars
import re
import uuid
from typing import Optional

MAX_TRACE_ID_LENGTH = 64
_VALID_TRACE_ID = re.compile(r"^[A-Za-z0-9._-]+$")

_trace_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "trace_id", default=None
)


def get_trace_id() -> Optional[str]:
    return _trace_id_var.get()


def set_trace_id(trace_id: Optional[str]) -> contextvars.Token:
    return _trace_id_var.set(trace_id or None)


def reset_trace_id(token: contextvars.Token) -> None:
    _trace_id_var.reset(token)


def resolve_trace_id(header_value: Optional[str]) -> str:
    """
    Reuse a caller-supplied trace id when it is safe to log, else mint one.

    Accepted ids are at most 64 characters of ``[A-Za-z0-9._-]``; anything
    else (including header injection attempts) is replaced by a fresh uuid4.
    """
    candidate = (header_value or "").strip()
    if candidate and len(candidate) <= MAX_TRACE_ID_LENGTH and _VALID_TRACE_ID.match(candidate):
        return candidate
    return uuid.uuid4().hex
