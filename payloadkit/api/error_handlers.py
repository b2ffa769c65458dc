"""Error Handlers: global exception handlers that answer with the ErrorJSON envelope.

Invariants:
    - PayloadError → envelope with the error's message, http_status and headers
    - RequestValidationError → 400 envelope "Invalid request data"
    - Exception (catch-all) → 500 envelope, never leaks internal details
    - Every response body has the shape {"error": true, "message": ...}

Design Decisions:
    - Three-layer handler: codec (PayloadError), validation (Pydantic), catch-all (Exception)
    - Handlers write through Parser.error_json so error responses share the encoder path
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from starlette.responses import Response

from payloadkit.core.errors import PayloadError
from payloadkit.infrastructure.response_recorder import ResponseRecorder
from payloadkit.parser import Parser

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "An unexpected error occurred"
VALIDATION_ERROR_MESSAGE = "Invalid request data"


def register_error_handlers(app: FastAPI, parser: Parser | None = None) -> None:
    """Register all global error handlers on the FastAPI app."""
    parser = parser or Parser.from_settings()
    _register_payload_error_handler(app, parser)
    _register_validation_error_handler(app, parser)
    _register_generic_error_handler(app, parser)


def _error_response(
    parser: Parser, err: BaseException | str, status_code: int,
    headers: dict[str, str] | None = None,
) -> Response:
    recorder = ResponseRecorder()
    for name, value in (headers or {}).items():
        recorder.headers[name] = value
    parser.error_json(recorder, err, status_code)
    return recorder.to_response()


def _register_payload_error_handler(app: FastAPI, parser: Parser) -> None:
    """Register codec error handler."""

    @app.exception_handler(PayloadError)
    async def payload_error_handler(request: Request, exc: PayloadError):
        """Handle all decode/encode errors."""
        log = logger.error if exc.http_status >= 500 else logger.warning
        log(
            f"PayloadError: {exc.message}",
            extra={**exc.log_extra(), "path": request.url.path},
        )
        return _error_response(parser, exc, exc.http_status, exc.headers)


def _register_validation_error_handler(app: FastAPI, parser: Parser) -> None:
    """Register Pydantic validation error handler."""

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError,
    ):
        """Handle FastAPI parameter validation errors."""
        logger.warning(
            f"Validation error on {request.url.path}: {exc.errors()}",
            extra={"path": request.url.path},
        )
        return _error_response(
            parser, VALIDATION_ERROR_MESSAGE, status.HTTP_400_BAD_REQUEST,
        )


def _register_generic_error_handler(app: FastAPI, parser: Parser) -> None:
    """Register catch-all error handler."""

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        """Catch-all, never leaks internal details."""
        logger.error(
            f"Unhandled exception on {request.url.path}: {exc}",
            exc_info=True,
            extra={"path": request.url.path},
        )
        return _error_response(
            parser, GENERIC_ERROR_MESSAGE, status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
