"""Request and progression-session context using contextvars.

Every request gets a request id; once the student and the course are known
the progression layer binds ``user_id`` / ``course_id`` / ``lesson_id`` so
that every log line emitted while handling an engagement event can be traced
back to the lesson visit that produced it.
"""

from contextvars import ContextVar
from typing import Any
from uuid import UUID, uuid4


request_id_var: ContextVar[str] = ContextVar("request_id", default="")
trace_id_var: ContextVar[str | None] = ContextVar("trace_id", default=None)
user_id_var: ContextVar[str | None] = ContextVar("user_id", default=None)
course_id_var: ContextVar[str | None] = ContextVar("course_id", default=None)
lesson_id_var: ContextVar[str | None] = ContextVar("lesson_id", default=None)

# Optional vars reported by get_context(), in log-field order
_OPTIONAL_VARS: dict[str, ContextVar[str | None]] = {
    "trace_id": trace_id_var,
    "user_id": user_id_var,
    "course_id": course_id_var,
    "lesson_id": lesson_id_var,
}


def _as_str(value: str | UUID | None) -> str | None:
    return str(value) if value is not None else None


def generate_request_id() -> str:
    """Generate a new unique request ID."""
    return str(uuid4())


def get_request_id() -> str:
    """Get the current request ID."""
    return request_id_var.get()


def set_request_id(request_id: str | None = None) -> str:
    """Set the request ID for the current context.

    Args:
        request_id: Optional request ID. If not provided, generates a new one.

    Returns:
        The request ID that was set.
    """
    rid = request_id or generate_request_id()
    request_id_var.set(rid)
    return rid


def set_trace_id(trace_id: str | None) -> None:
    """Set the trace ID from distributed tracing headers."""
    trace_id_var.set(trace_id)


def set_user_id(user_id: str | UUID | None) -> None:
    """Set the user ID for the current context."""
    user_id_var.set(_as_str(user_id))


def bind_progression_context(
    course_id: str | UUID | None,
    lesson_id: str | UUID | None = None,
) -> None:
    """Bind the course (and optionally the lesson) being worked on."""
    course_id_var.set(_as_str(course_id))
    lesson_id_var.set(_as_str(lesson_id))


def get_context() -> dict[str, Any]:
    """Get all non-empty context variables as a dictionary."""
    context: dict[str, Any] = {}

    request_id = get_request_id()
    if request_id:
        context["request_id"] = request_id

    for name, var in _OPTIONAL_VARS.items():
        value = var.get()
        if value:
            context[name] = value

    return context


def clear_context() -> None:
    """Clear all context variables.

    Called at the end of each request to prevent context leakage between
    requests.
    """
    request_id_var.set("")
    for var in _OPTIONAL_VARS.values():
        var.set(None)

