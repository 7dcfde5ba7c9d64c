"""Per-request context stored in contextvars.

Every request gets an id, and once authenticated the employee id, so log
lines emitted anywhere below a route carry them without explicit passing.
"""

from contextvars import ContextVar
from typing import Any
from uuid import UUID, uuid4


request_id_var: ContextVar[str] = ContextVar("request_id", default="")
user_id_var: ContextVar[str | None] = ContextVar("user_id", default=None)
trace_id_var: ContextVar[str | None] = ContextVar("trace_id", default=None)


def get_request_id() -> str:
    return request_id_var.get()


def set_request_id(request_id: str | None = None) -> str:
    """Set the request id, generating a uuid4 when none is given.

    Returns:
        The request id that was set.
    """
    rid = request_id or str(uuid4())
    request_id_var.set(rid)
    return rid


def get_user_id() -> str | None:
    return user_id_var.get()


def set_user_id(user_id: str | UUID | None) -> None:
    """Bind the authenticated employee to the current request."""
    user_id_var.set(str(user_id) if user_id is not None else None)


def set_trace_id(trace_id: str | None) -> None:
    trace_id_var.set(trace_id)


def get_context() -> dict[str, Any]:
    """Non-empty context values, merged into every log event."""
    values = {
        "request_id": get_request_id(),
        "user_id": get_user_id(),
        "trace_id": trace_id_var.get(),
    }
    return {key: value for key, value in values.items() if value}


def clear_context() -> None:
    request_id_var.set("")
    user_id_var.set(None)
    trace_id_var.set(None)
