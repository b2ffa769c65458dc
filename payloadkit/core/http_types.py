"""HTTP Shapes: the request and response surfaces the codec depends on.

Invariants:
    - RequestLike.body is read at most once and never closed by the codec
    - ResponseSink operations are invoked in order: headers, write_header, write
    - Header lookups are case-insensitive (caller's mapping must guarantee it)

Design Decisions:
    - typing.Protocol over base classes: Starlette objects and test doubles satisfy it structurally
"""

import io
from dataclasses import dataclass, field
from typing import BinaryIO, Iterable, Iterator, Mapping, Protocol, Sequence

from starlette.datastructures import Headers, MutableHeaders


class HeaderLookup(Protocol):
    def get(self, key: str, default: str | None = None) -> str | None: ...


class RequestLike(Protocol):
    """Inbound request: a single-read body plus header lookup."""
    body: BinaryIO
    headers: HeaderLookup


class ResponseSink(Protocol):
    """Outbound response: header set, status line, body write."""
    headers: MutableHeaders

    def write_header(self, status_code: int) -> None: ...

    def write(self, data: bytes) -> int: ...


@dataclass
class JSONRequest:
    """Concrete RequestLike over any binary stream."""
    body: BinaryIO
    headers: Headers = field(default_factory=Headers)

    @classmethod
    def from_bytes(
        cls, data: bytes, content_type: str | None = "application/json",
    ) -> "JSONRequest":
        """Build a request around an in-memory body."""
        raw = {} if content_type is None else {"content-type": content_type}
        return cls(body=io.BytesIO(data), headers=Headers(raw))


HeaderValues = Mapping[str, str | Sequence[str]] | Headers


def iter_header_items(headers: HeaderValues) -> Iterator[tuple[str, str]]:
    """Flatten a single- or multi-valued header mapping into (name, value) pairs."""
    if isinstance(headers, Headers):
        yield from headers.items()
        return
    for name, value in headers.items():
        if isinstance(value, str):
            yield name, value
        else:
            values: Iterable[str] = value
            for item in values:
                yield name, item
