"""Parser: ReadJSON / WriteJSON / ErrorJSON behaviour end to end.

Tests cover:
    - read_json accepts one well-formed object and rejects every malformed variant
    - read_json rejects unknown keys unless allow_unknown_fields is set
    - read_json rejects JSON values of the wrong type instead of coercing them
    - unknown keys and bad types are reported before trailing data
    - deeply nested bodies fail as badly-formed JSON
    - read_json fails on a missing target and on a non-JSON content type
    - write_json sends caller headers, content type, status and body
    - write_json refuses payloads with no JSON representation
    - error_json produces the error envelope with the requested status
"""

import io
import json
import threading

import pytest
from pydantic import BaseModel

from payloadkit.config import Settings
from payloadkit.core.domain_types import DEFAULT_MAX_JSON_SIZE, ErrorKind
from payloadkit.core.errors import (
    BodyTooLargeError,
    DecodeError,
    EmptyBodyError,
    NilTargetError,
    SyntaxOrTypeError,
    TrailingDataError,
    UnknownFieldError,
    UnmarshalableError,
    UnsupportedMediaTypeError,
)
from payloadkit.core.http_types import JSONRequest
from payloadkit.infrastructure.response_recorder import ResponseRecorder
from payloadkit.parser import Parser
from payloadkit.schemas.envelope import JSONResponse


class Decoded(BaseModel):
    foo: str = ""


class Counter(BaseModel):
    count: int = 0
    enabled: bool = False


# name, body, expected error (None = success), max size, allow unknown, content type
JSON_CASES = [
    ("good json", '{"foo": "bar"}', None, 1024, False, None),
    ("badly formatted json", '{"foo":"}', SyntaxOrTypeError, 1024, False, None),
    ("incorrect type", '{"foo": 1}', SyntaxOrTypeError, 1024, False, None),
    ("non-string key", "{1: 1}", SyntaxOrTypeError, 1024, False, None),
    ("two json files", '{"foo": "bar"}{"alpha": "beta"}', TrailingDataError, 1024, False, None),
    ("empty body", "", EmptyBodyError, 1024, False, None),
    ("syntax error in json", '{"foo": 1"}', SyntaxOrTypeError, 1024, False, None),
    ("unknown field in json", '{"fooo": "bar"}', UnknownFieldError, 1024, False, None),
    ("incorrect type for field", '{"foo": 10.2}', SyntaxOrTypeError, 1024, False, None),
    ("allow unknown field in json", '{"fooo": "bar"}', None, 1024, True, None),
    ("missing field name", '{jack: "bar"}', SyntaxOrTypeError, 1024, False, None),
    ("file too large", '{"foo": "bar"}', BodyTooLargeError, 5, False, None),
    ("not json", "Hello, world", SyntaxOrTypeError, 1024, False, None),
    ("wrong header", '{"foo": "bar"}', UnsupportedMediaTypeError, 1024, False, "application/xml"),
]


@pytest.mark.parametrize(
    "name, body, expected, max_size, allow_unknown, content_type",
    JSON_CASES,
    ids=[case[0] for case in JSON_CASES],
)
def test_read_json_table(name, body, expected, max_size, allow_unknown, content_type, recorder):
    parser = Parser(max_json_size=max_size, allow_unknown_fields=allow_unknown)
    request = JSONRequest.from_bytes(body.encode(), content_type or "application/json")
    target = Decoded()

    if expected is None:
        assert parser.read_json(recorder, request, target) is target
    else:
        with pytest.raises(expected):
            parser.read_json(recorder, request, target)


# (body, expected error) decoded into Counter
TYPED_CASES = [
    ('{"count": 5, "enabled": true}', None),
    ('{"count": "5"}', SyntaxOrTypeError),
    ('{"count": 5.0}', SyntaxOrTypeError),
    ('{"count": null}', SyntaxOrTypeError),
    ('{"enabled": "true"}', SyntaxOrTypeError),
    ('{"enabled": 1}', SyntaxOrTypeError),
    ('{"count": 1}{"count": 2}', TrailingDataError),
    ('{"count": "1"}{"count": 2}', SyntaxOrTypeError),
    ('{"counter": 1}{"count": 2}', UnknownFieldError),
]


@pytest.mark.parametrize("body, expected", TYPED_CASES)
def test_read_json_typed_table(parser, body, expected):
    request = JSONRequest.from_bytes(body.encode())
    if expected is None:
        decoded = parser.read_json(None, request, Counter)
        assert (decoded.count, decoded.enabled) == (5, True)
    else:
        with pytest.raises(expected):
            parser.read_json(None, request, Counter)


# ─── Concrete scenarios ─────────────────────────────────────────

def test_good_json_populates_target():
    target = Decoded()
    Parser(max_json_size=1024).read_json(
        None, JSONRequest.from_bytes(b'{"foo": "bar"}'), target,
    )
    assert target.foo == "bar"


def test_model_class_target_returns_new_instance(parser):
    decoded = parser.read_json(None, JSONRequest.from_bytes(b'{"foo": "bar"}'), Decoded)
    assert isinstance(decoded, Decoded)
    assert decoded.foo == "bar"


def test_allowed_unknown_field_leaves_target_unchanged():
    target = Decoded()
    Parser(allow_unknown_fields=True).read_json(
        None, JSONRequest.from_bytes(b'{"fooo": "bar"}'), target,
    )
    assert target.foo == ""


def test_unknown_field_error_names_the_key(parser):
    with pytest.raises(UnknownFieldError) as exc_info:
        parser.read_json(None, JSONRequest.from_bytes(b'{"fooo": "bar"}'), Decoded())
    assert exc_info.value.key == "fooo"
    assert "fooo" in str(exc_info.value)


def test_trailing_data_rejected_even_when_each_document_parses(parser):
    body = b'{"foo": "bar"}{"foo": "baz"}'
    with pytest.raises(TrailingDataError) as exc_info:
        parser.read_json(None, JSONRequest.from_bytes(body), Decoded())
    assert exc_info.value.kind is ErrorKind.TRAILING_DATA


def test_trailing_whitespace_is_accepted(parser):
    decoded = parser.read_json(None, JSONRequest.from_bytes(b'{"foo": "bar"}\n\n  '), Decoded)
    assert decoded.foo == "bar"


def test_body_too_large_sets_connection_close_on_sink(recorder):
    parser = Parser(max_json_size=5)
    with pytest.raises(BodyTooLargeError) as exc_info:
        parser.read_json(recorder, JSONRequest.from_bytes(b'{"foo": "bar"}'), Decoded())
    assert exc_info.value.limit == 5
    assert recorder.headers["connection"] == "close"


def test_body_of_exactly_the_limit_is_accepted():
    body = b'{"foo": "bar"}'
    decoded = Parser(max_json_size=len(body)).read_json(
        None, JSONRequest.from_bytes(body), Decoded,
    )
    assert decoded.foo == "bar"


def test_oversized_invalid_json_still_reports_size():
    with pytest.raises(BodyTooLargeError):
        Parser(max_json_size=4).read_json(
            None, JSONRequest.from_bytes(b"not json at all"), Decoded(),
        )


def test_zero_and_negative_limits_use_default():
    assert Parser(max_json_size=0).max_bytes == DEFAULT_MAX_JSON_SIZE
    assert Parser(max_json_size=-10).max_bytes == DEFAULT_MAX_JSON_SIZE
    assert Parser(max_json_size=10).max_bytes == 10


def test_nil_target_fails(parser):
    request = JSONRequest.from_bytes(b'{"foo": "bar"}')
    with pytest.raises(NilTargetError):
        parser.read_json(None, request, None)
    assert request.body.tell() == 0


def test_wrong_content_type_fails_before_reading_body(parser):
    request = JSONRequest.from_bytes(b'{"foo": "bar"}', "text/plain")
    with pytest.raises(UnsupportedMediaTypeError):
        parser.read_json(None, request, Decoded())
    assert request.body.tell() == 0


def test_content_type_with_charset_is_accepted(parser):
    request = JSONRequest.from_bytes(b'{"foo": "bar"}', "Application/JSON; charset=utf-8")
    assert parser.read_json(None, request, Decoded).foo == "bar"


def test_missing_content_type_is_accepted(parser):
    request = JSONRequest.from_bytes(b'{"foo": "bar"}', None)
    assert parser.read_json(None, request, Decoded).foo == "bar"


def test_read_json_does_not_close_body(parser):
    request = JSONRequest.from_bytes(b'{"foo": "bar"}')
    parser.read_json(None, request, Decoded())
    assert not request.body.closed
    request.body.close()


def test_every_decode_failure_is_a_decode_error(parser):
    for body in (b"", b"{", b'{"x": 1}', b"[] []"):
        with pytest.raises(DecodeError):
            parser.read_json(None, JSONRequest.from_bytes(body), Decoded())


def test_from_settings_copies_decoder_options():
    parser = Parser.from_settings(Settings(max_json_size=2048, allow_unknown_fields=True))
    assert parser.max_json_size == 2048
    assert parser.allow_unknown_fields is True


# ─── write_json ─────────────────────────────────────────────────

def test_write_json_valid_payload(parser, recorder):
    parser.write_json(
        recorder, 200, JSONResponse(error=False, message="foo"), {"FOO": "BAR"},
    )
    assert recorder.status_code == 200
    assert recorder.committed_headers["foo"] == "BAR"
    assert recorder.committed_headers["content-type"] == "application/json"
    assert json.loads(bytes(recorder.body)) == {"error": False, "message": "foo"}


@pytest.mark.parametrize(
    "payload",
    [object(), lambda: None, {"lock": threading.Lock()}],
    ids=["object", "function", "lock"],
)
def test_write_json_unmarshalable_payload_writes_nothing(parser, recorder, payload):
    with pytest.raises(UnmarshalableError):
        parser.write_json(recorder, 200, payload, {"FOO": "BAR"})
    assert recorder.wrote_header is False
    assert bytes(recorder.body) == b""
    assert "foo" not in recorder.headers


def test_write_json_is_idempotent(parser):
    payload = {"b": [1, 2, {"c": None}], "a": "x"}
    first, second = ResponseRecorder(), ResponseRecorder()
    parser.write_json(first, 201, payload, {"X-Trace": ["1", "2"]})
    parser.write_json(second, 201, payload, {"X-Trace": ["1", "2"]})
    assert first.status_code == second.status_code == 201
    assert bytes(first.body) == bytes(second.body)
    assert first.committed_headers.raw == second.committed_headers.raw


# ─── error_json ─────────────────────────────────────────────────

def test_error_json_with_status(parser, recorder):
    parser.error_json(recorder, Exception("some error"), 503)

    assert recorder.status_code == 503
    payload = json.loads(bytes(recorder.body))
    assert payload == {"error": True, "message": "some error"}
    assert "data" not in payload


def test_error_json_defaults_to_bad_request(parser, recorder):
    parser.error_json(recorder, "nope")
    assert recorder.status_code == 400
    assert recorder.json() == {"error": True, "message": "nope"}


def test_error_json_uses_payload_error_message(parser, recorder):
    err = EmptyBodyError()
    parser.error_json(recorder, err, err.http_status)
    assert recorder.json()["message"] == "body must not be empty"


def test_read_json_from_non_seekable_stream(parser):
    class OneShot(io.RawIOBase):
        def __init__(self, data):
            self._data = data

        def readable(self):
            return True

        def read(self, size=-1):
            if size is None or size < 0:
                size = len(self._data)
            chunk, self._data = self._data[:size], self._data[size:]
            return chunk

    request = JSONRequest(body=OneShot(b'{"foo": "stream"}'))
    assert parser.read_json(None, request, Decoded).foo == "stream"


@pytest.mark.parametrize("target", [{}, [], Decoded], ids=["dict", "list", "model"])
def test_deeply_nested_body_is_badly_formed(parser, target):
    body = b"[" * 200_000 + b"]" * 200_000
    with pytest.raises(SyntaxOrTypeError) as exc_info:
        parser.read_json(None, JSONRequest.from_bytes(body), target)
    assert "nesting too deep" in str(exc_info.value)
