"""Response Recorder: in-memory ResponseSink, convertible to a Starlette Response.

Invariants:
    - write_header commits a snapshot of headers; later header mutations are not sent
    - write_header is effective once; repeated calls are logged and ignored
    - write without a prior write_header commits status 200 first

Design Decisions:
    - Starlette MutableHeaders for the header bag: case-insensitive and multi-valued
    - to_response copies raw header pairs so duplicate header names survive the conversion
"""

import json
import logging

from starlette.datastructures import MutableHeaders
from starlette.responses import Response

logger = logging.getLogger(__name__)


class ResponseRecorder:
    """Collects headers, status and body written through the ResponseSink protocol."""

    def __init__(self) -> None:
        self.headers = MutableHeaders()
        self.status_code = 200
        self.body = bytearray()
        self.wrote_header = False
        self.committed_headers = MutableHeaders()

    def write_header(self, status_code: int) -> None:
        if self.wrote_header:
            logger.warning(
                f"Superfluous write_header({status_code}); status already {self.status_code}",
                extra={"status_code": status_code},
            )
            return
        self.status_code = status_code
        self.committed_headers = MutableHeaders(raw=list(self.headers.raw))
        self.wrote_header = True

    def write(self, data: bytes) -> int:
        if not self.wrote_header:
            self.write_header(200)
        self.body.extend(data)
        return len(data)

    def json(self):
        """Decode the recorded body (test and debugging helper)."""
        return json.loads(bytes(self.body))

    def to_response(self) -> Response:
        """Build the Starlette Response that replays what was recorded."""
        response = Response(content=bytes(self.body), status_code=self.status_code)
        response.raw_headers.extend(
            (name, value)
            for name, value in self.committed_headers.raw
            if name != b"content-length"
        )
        return response
