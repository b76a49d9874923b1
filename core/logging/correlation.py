"""
Correlation ids for the command pipeline.

One inbound command runs under one correlation id. The id travels with the
log lines of resolution, evidence, consensus and execution, goes out as the
`x-correlation-id` header on MCP calls and is stamped on every published
order, so a single command can be followed end to end.
"""

import uuid
import contextvars
from typing import Optional, Dict, Any
from datetime import datetime, timezone

_correlation_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    'command_correlation_id', default=None
)

# Extra fields bound next to the id (session, user, request path, ...)
_correlation_context: contextvars.ContextVar[Dict[str, Any]] = contextvars.ContextVar(
    'command_correlation_context', default={}
)


class CorrelationIdManager:
    """Reads and writes the correlation scope of the current task"""

    @staticmethod
    def generate_correlation_id() -> str:
        return uuid.uuid4().hex

    @staticmethod
    def set_correlation_id(correlation_id: str) -> str:
        _correlation_id.set(correlation_id)
        return correlation_id

    @staticmethod
    def get_correlation_id() -> Optional[str]:
        return _correlation_id.get()

    @staticmethod
    def ensure_correlation_id() -> str:
        """Current id, or a fresh one bound to the scope when there is none."""
        return _correlation_id.get() or CorrelationIdManager.set_correlation_id(
            CorrelationIdManager.generate_correlation_id()
        )

    @staticmethod
    def set_correlation_context(**fields) -> Dict[str, Any]:
        merged = {**_correlation_context.get(), **fields}
        _correlation_context.set(merged)
        return merged

    @staticmethod
    def get_correlation_context() -> Dict[str, Any]:
        return dict(_correlation_context.get())

    @staticmethod
    def clear_correlation() -> None:
        _correlation_id.set(None)
        _correlation_context.set({})


def create_correlation_context(
    component: str,
    stage: str,
    user_id: Optional[str] = None,
    session_id: Optional[str] = None,
    **extra
) -> str:
    """
    Bind the command's session and user to the current correlation scope.

    An id adopted from the caller (for example by the HTTP middleware) is
    kept; otherwise a new one is started.

    Args:
        component: Pipeline component entering the scope
        stage: Step being run, e.g. "process_command"
        user_id: Caller's user id
        session_id: Conversation the command belongs to

    Returns:
        The correlation id in effect
    """
    correlation_id = CorrelationIdManager.ensure_correlation_id()

    fields: Dict[str, Any] = {
        "component": component,
        "stage": stage,
        "received_at": datetime.now(timezone.utc).isoformat(),
    }
    if user_id:
        fields["user_id"] = user_id
    if session_id:
        fields["session_id"] = session_id

    CorrelationIdManager.set_correlation_context(**fields, **extra)
    return correlation_id
