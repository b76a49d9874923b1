from datetime import datetime, timezone

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from core.logging import get_api_logger
from core.logging.correlation import CorrelationIdManager
from core.utils.exceptions import SwarmCommandException, create_error_context

logger = get_api_logger("api.middleware.error_handling")

GENERIC_MESSAGE = "An unexpected error occurred"


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Turns anything that escapes a route into a structured 500.

    The command agent already answers pipeline failures with a
    `success=False` response, so reaching this point means a bug or a broken
    dependency. Only our own exceptions have their message passed through.
    """

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as e:
            logger.error(
                "Unhandled API exception",
                exc_info=True,
                **create_error_context(e, f"{request.method} {request.url.path}"),
            )
            return JSONResponse(
                status_code=500,
                content={
                    "error": "internal_error",
                    "message": e.message if isinstance(e, SwarmCommandException) else GENERIC_MESSAGE,
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                    "path": request.url.path,
                    "correlation_id": CorrelationIdManager.get_correlation_id(),
                },
            )
