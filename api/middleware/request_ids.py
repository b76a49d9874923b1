from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from uuid import uuid4

from core.logging.correlation import CorrelationIdManager

CORRELATION_HEADER = "x-correlation-id"


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Opens a fresh correlation scope for every HTTP request.

    A caller-supplied `x-correlation-id` (e.g. from the MCP host) is adopted
    so the command can be traced across agents; otherwise one is generated.
    Both ids are echoed back on the response.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = uuid4().hex
        request.state.request_id = request_id

        CorrelationIdManager.clear_correlation()
        incoming = request.headers.get(CORRELATION_HEADER)
        correlation_id = CorrelationIdManager.set_correlation_id(
            incoming or CorrelationIdManager.generate_correlation_id()
        )
        CorrelationIdManager.set_correlation_context(
            request_id=request_id,
            route=f"{request.method} {request.url.path}",
            adopted=incoming is not None,
        )

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Correlation-ID"] = correlation_id
        return response
