"""Parser: ReadJSON / WriteJSON / ErrorJSON over one configuration.

Invariants:
    - Effective body limit resolved once per call (max_json_size <= 0 means 1 MiB)
    - read_json never closes request.body
    - A rejected body adds the error's headers (e.g. Connection: close) to the response sink
    - error_json always sends {"error": true, "message": str(err)} with data absent
    - No state is kept between calls; one Parser may serve concurrent requests

Design Decisions:
    - Errors raised, not returned: callers catch PayloadError (or a subclass) at the boundary
    - Parser is a plain dataclass: construct directly or via Parser.from_settings()
"""

import logging
from dataclasses import dataclass
from typing import Any

from payloadkit.config import Settings, get_settings
from payloadkit.core import decoder, encoder
from payloadkit.core.domain_types import effective_max_size
from payloadkit.core.errors import PayloadError
from payloadkit.core.http_types import HeaderValues, RequestLike, ResponseSink
from payloadkit.schemas.envelope import JSONResponse

logger = logging.getLogger(__name__)

DEFAULT_ERROR_STATUS = 400


@dataclass
class Parser:
    """JSON request decoder and response encoder."""
    max_json_size: int = 0
    allow_unknown_fields: bool = False

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "Parser":
        settings = settings or get_settings()
        return cls(
            max_json_size=settings.max_json_size,
            allow_unknown_fields=settings.allow_unknown_fields,
        )

    @property
    def max_bytes(self) -> int:
        return effective_max_size(self.max_json_size)

    def read_json(
        self, response: ResponseSink | None, request: RequestLike, target: Any,
    ) -> Any:
        """Decode the request body into target.

        Returns the populated target: the same object for model, dict and list
        instances, a new value when target is a type.

        Raises:
            UnsupportedMediaTypeError, BodyTooLargeError, EmptyBodyError,
            SyntaxOrTypeError, UnknownFieldError, TrailingDataError, NilTargetError
        """
        try:
            return decoder.decode(
                request.body,
                request.headers,
                target,
                max_bytes=self.max_bytes,
                allow_unknown_fields=self.allow_unknown_fields,
            )
        except PayloadError as exc:
            logger.debug(f"Rejected JSON body: {exc.message}", extra=exc.log_extra())
            if response is not None:
                for name, value in exc.headers.items():
                    response.headers[name] = value
            raise

    def write_json(
        self,
        response: ResponseSink,
        status_code: int,
        payload: Any,
        headers: HeaderValues | None = None,
    ) -> None:
        """Encode payload and write it with status_code.

        Raises:
            UnmarshalableError: payload has no JSON representation (nothing written).
        """
        encoder.write_json(response, status_code, payload, headers)

    def error_json(
        self,
        response: ResponseSink,
        err: BaseException | str,
        status_code: int = DEFAULT_ERROR_STATUS,
    ) -> None:
        """Write the error envelope for err (default status 400)."""
        payload = JSONResponse(error=True, message=str(err))
        self.write_json(response, status_code, payload)
