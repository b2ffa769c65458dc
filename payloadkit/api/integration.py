"""Starlette Integration: async body reading and response building for route handlers.

Invariants:
    - Content-Type and target are checked before the first body chunk is awaited
    - Body chunks are counted as they arrive; reading stops once the limit is crossed
    - A declared Content-Length above the limit fails without reading
    - Responses are produced by Parser.write_json through a ResponseRecorder

Design Decisions:
    - Buffer-then-decode: the synchronous decoder runs on an in-memory stream that is
      already bounded by max_bytes
    - json_body() returns a FastAPI dependency so routes declare `Depends(json_body(Model))`
    - setup_app() mirrors application startup: logging first, then handlers
"""

import io
from typing import Any

from fastapi import FastAPI
from starlette.requests import Request
from starlette.responses import Response

from payloadkit.api.error_handlers import register_error_handlers
from payloadkit.config import Settings, get_settings
from payloadkit.core import decoder
from payloadkit.core.errors import BodyTooLargeError
from payloadkit.core.http_types import HeaderValues, JSONRequest
from payloadkit.infrastructure.observability import setup_logging
from payloadkit.infrastructure.response_recorder import ResponseRecorder
from payloadkit.parser import Parser


async def read_capped_body(request: Request, max_bytes: int) -> bytes:
    """Collect the request body, failing as soon as it exceeds max_bytes."""
    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > max_bytes:
        raise BodyTooLargeError(max_bytes)
    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > max_bytes:
            raise BodyTooLargeError(max_bytes)
    return bytes(body)


async def read_json(parser: Parser, request: Request, target: Any) -> Any:
    """Async counterpart of Parser.read_json for Starlette requests."""
    decoder.ensure_target(target)
    decoder.ensure_json_content_type(request.headers)
    body = await read_capped_body(request, parser.max_bytes)
    return parser.read_json(None, JSONRequest(io.BytesIO(body), request.headers), target)


def json_body(target: Any, parser: Parser | None = None):
    """FastAPI dependency factory decoding the request body into target."""

    async def dependency(request: Request) -> Any:
        return await read_json(parser or Parser.from_settings(), request, target)

    return dependency


def json_response(
    payload: Any,
    status_code: int = 200,
    headers: HeaderValues | None = None,
    parser: Parser | None = None,
) -> Response:
    """Encode payload with Parser.write_json and return it as a Starlette Response."""
    recorder = ResponseRecorder()
    (parser or Parser()).write_json(recorder, status_code, payload, headers)
    return recorder.to_response()


def setup_app(app: FastAPI, settings: Settings | None = None) -> Parser:
    """Configure logging and error handlers for app from settings; returns the shared Parser."""
    settings = settings or get_settings()
    setup_logging(settings.log_level, settings.log_format)
    parser = Parser.from_settings(settings)
    register_error_handlers(app, parser)
    return parser
