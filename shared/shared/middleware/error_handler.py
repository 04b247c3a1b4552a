import logging
from collections.abc import Awaitable, Callable

from fastapi import Request, status
from fastapi.responses import JSONResponse, Response

logger = logging.getLogger(__name__)


def _envelope(request: Request, status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {"code": code, "message": message},
            "request_id": getattr(request.state, "request_id", None),
        },
    )


async def error_envelope_middleware(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """Last-resort handler: unhandled exceptions become a JSON 500 envelope.

    HTTPExceptions never reach here; FastAPI's own handler renders them.
    """
    try:
        return await call_next(request)
    except Exception:
        logger.exception(
            "Unhandled exception on %s %s request_id=%s",
            request.method,
            request.url.path,
            getattr(request.state, "request_id", None),
        )
        return _envelope(
            request,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "internal_error",
            "An unexpected error occurred",
        )
