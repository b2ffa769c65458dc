"""JSON Encoder: serialize a payload and write it to a response sink.

Invariants:
    - Serialization happens before the sink is touched; a failed encode writes nothing
    - Order on the sink: caller headers appended, Content-Type set, write_header, one write
    - Content-Type is always application/json, whatever the caller supplied
    - Same payload, status and headers produce identical bytes
    - Non-finite floats encode as null so output is always valid JSON

Design Decisions:
    - pydantic_core.to_json over json.dumps: models, dataclasses, UUIDs and datetimes encode natively
"""

from typing import Any

from pydantic_core import PydanticSerializationError, to_json

from payloadkit.core.domain_types import JSON_MEDIA_TYPE
from payloadkit.core.errors import UnmarshalableError
from payloadkit.core.http_types import HeaderValues, ResponseSink, iter_header_items


def marshal(payload: Any) -> bytes:
    """Encode payload as compact JSON bytes, or raise UnmarshalableError."""
    try:
        return to_json(payload, inf_nan_mode="null")
    except (PydanticSerializationError, TypeError, ValueError) as exc:
        # circular references surface as plain ValueError
        raise UnmarshalableError(str(exc)) from exc


def write_json(
    response: ResponseSink,
    status_code: int,
    payload: Any,
    headers: HeaderValues | None = None,
) -> None:
    """Serialize payload and write headers, status and body to the sink."""
    body = marshal(payload)
    if headers:
        for name, value in iter_header_items(headers):
            response.headers.append(name, value)
    response.headers["content-type"] = JSON_MEDIA_TYPE
    response.write_header(status_code)
    response.write(body)
