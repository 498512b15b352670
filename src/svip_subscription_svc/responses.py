import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

GENERIC_ERROR_MESSAGE = 'Internal server error'


def envelope(code: int, message: str, data: Any = None, **extra: Any) -> Dict[str, Any]:
    body = {"code": code, "message": message, "data": [] if data is None else data}
    body.update(extra)
    return body


def success(data: Any = None, message: str = 'success') -> Dict[str, Any]:
    return envelope(status.HTTP_200_OK, message, data)


class ApiError(Exception):
    """
    An error that should reach the client as an envelope.

    `internal` marks messages coming from Stripe or the database; those are
    replaced by a generic message in production.
    """

    def __init__(
        self,
        status_code: int,
        message: str,
        error: Optional[str] = None,
        internal: bool = False,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.error = error
        self.internal = internal


def register_exception_handlers(app: FastAPI, expose_errors: bool) -> None:
    """Translate every failure into the `{code, message, data}` envelope with a matching HTTP status."""

    @app.exception_handler(ApiError)
    async def handle_api_error(request: Request, exc: ApiError) -> JSONResponse:
        message = exc.message
        extra = {}
        if exc.internal and not expose_errors:
            message = GENERIC_ERROR_MESSAGE
        if exc.error is not None and expose_errors:
            extra["error"] = exc.error
        return JSONResponse(status_code=exc.status_code, content=envelope(exc.status_code, message, **extra))

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        logging.warning(f"Rejected request to {request.url.path}: {exc.errors()}")
        code = status.HTTP_400_BAD_REQUEST
        return JSONResponse(status_code=code, content=envelope(code, 'Invalid request body'))

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logging.error(exc, exc_info=True)
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
        message = str(exc) if expose_errors else GENERIC_ERROR_MESSAGE
        return JSONResponse(status_code=code, content=envelope(code, message))
