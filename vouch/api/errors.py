"""Single mapping from ``ErrorKind`` to HTTP responses."""

import structlog
from fastapi import FastAPI, status
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from vouch.core.errors import AuthError, ErrorKind

logger = structlog.get_logger(__name__)

ERROR_STATUS: dict[ErrorKind, int] = {
    ErrorKind.INVALID_ALGORITHM: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.TOKEN_INVALID: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.USER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.TOKEN_NOT_FOUND: status.HTTP_400_BAD_REQUEST,
    ErrorKind.ALREADY_ACTIVATED: status.HTTP_400_BAD_REQUEST,
    ErrorKind.EXPIRED: status.HTTP_400_BAD_REQUEST,
    ErrorKind.USER_EXISTS: status.HTTP_400_BAD_REQUEST,
    ErrorKind.BAD_CREDENTIALS: status.HTTP_403_FORBIDDEN,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
}


def error_response(error: AuthError) -> JSONResponse:
    """Render an ``AuthError`` as ``{"error", "error_description"}``."""
    return JSONResponse(
        {"error": error.kind.value, "error_description": error.message},
        status_code=ERROR_STATUS[error.kind],
    )


class JSONErrorReporter:
    """Error sink for the authentication filter."""

    def report(self, request: Request, error: AuthError) -> Response:
        return error_response(error)


async def _handle_auth_error(_request: Request, exc: AuthError) -> Response:
    if ERROR_STATUS[exc.kind] >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("request_failed", kind=exc.kind.value, reason=exc.message)
    return error_response(exc)


def register_error_handlers(app: FastAPI) -> None:
    """Install the ``AuthError`` boundary handler on ``app``."""
    app.add_exception_handler(AuthError, _handle_auth_error)
