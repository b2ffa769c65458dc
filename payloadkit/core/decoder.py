"""JSON Decoder: content-type gate, bounded read, single-document parse, target binding.

Invariants:
    - Content-Type (when present and non-empty) must be application/json, checked before any read
    - Body read through LimitedReader: oversized bodies fail while streaming
    - Check order after reading: syntax, unknown keys, value types, then trailing data
    - Exactly one top-level JSON value; any non-whitespace remainder is TrailingDataError
    - Values are validated strictly: "5" is not an int, 1 is not a bool, 5.0 is not an int
    - Unknown keys rejected recursively (nested models, containers, unions) unless allowed
    - NaN / Infinity constants and over-deep nesting are SyntaxOrTypeError, never a crash
    - The body stream is never closed here

Design Decisions:
    - json.JSONDecoder.raw_decode over json.loads: returns the end offset for the trailing check
    - Binding through pydantic strict JSON validation of the parsed document text, so JSON
      strings still become datetimes, UUIDs and enums
    - Unknown keys found by walking annotations, not by model_config: allow/forbid is per call
"""

import dataclasses
import json
import types
from typing import Any, Annotated, BinaryIO, Union, get_args, get_origin, get_type_hints, is_typeddict

from pydantic import AliasChoices, AliasPath, BaseModel, TypeAdapter, ValidationError

from payloadkit.core.domain_types import JSON_MEDIA_TYPE, JSON_WHITESPACE
from payloadkit.core.errors import (
    EmptyBodyError,
    NilTargetError,
    SyntaxOrTypeError,
    TrailingDataError,
    UnknownFieldError,
    UnsupportedMediaTypeError,
)
from payloadkit.core.http_types import HeaderLookup
from payloadkit.core.limited_reader import LimitedReader

NESTING_TOO_DEEP = "body contains badly-formed JSON: nesting too deep"


# ─── Preflight ───────────────────────────────────────────────────

def ensure_target(target: Any) -> None:
    """Reject a missing destination before the body is touched."""
    if target is None:
        raise NilTargetError()


def ensure_json_content_type(headers: HeaderLookup) -> None:
    """Raise unless Content-Type is absent or names application/json."""
    content_type = headers.get("content-type")
    if not content_type:
        return
    media_type = content_type.split(";", 1)[0].strip().lower()
    if media_type != JSON_MEDIA_TYPE:
        raise UnsupportedMediaTypeError(content_type)


# ─── Parse ───────────────────────────────────────────────────────

def _reject_constant(constant: str) -> Any:
    raise ValueError(f"invalid JSON constant {constant}")


_decoder = json.JSONDecoder(parse_constant=_reject_constant)


def parse_first_document(raw: bytes) -> tuple[Any, str, int]:
    """Parse the first JSON value in raw; returns (value, text, end offset)."""
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise SyntaxOrTypeError(
            f"body contains badly-formed JSON (at character {exc.start + 1})",
            offset=exc.start + 1,
        ) from exc

    start = len(text) - len(text.lstrip(JSON_WHITESPACE))
    if start == len(text):
        raise EmptyBodyError()

    try:
        value, end = _decoder.raw_decode(text, start)
    except json.JSONDecodeError as exc:
        if exc.pos >= len(text):
            raise SyntaxOrTypeError("body contains badly-formed JSON") from exc
        raise SyntaxOrTypeError(
            f"body contains badly-formed JSON (at character {exc.pos + 1})",
            offset=exc.pos + 1,
        ) from exc
    except ValueError as exc:
        raise SyntaxOrTypeError(f"body contains badly-formed JSON: {exc}") from exc
    except RecursionError as exc:
        raise SyntaxOrTypeError(NESTING_TOO_DEEP) from exc
    return value, text, end


def ensure_single_document(text: str, end: int) -> None:
    """Raise TrailingDataError if anything but whitespace follows offset end."""
    rest = text[end:]
    if rest.strip(JSON_WHITESPACE):
        offset = end + len(rest) - len(rest.lstrip(JSON_WHITESPACE))
        raise TrailingDataError(offset=offset + 1)


def parse_single_document(raw: bytes) -> Any:
    """Parse exactly one JSON value from raw bytes."""
    value, text, end = parse_first_document(raw)
    ensure_single_document(text, end)
    return value


# ─── Unknown keys ────────────────────────────────────────────────

def _alias_keys(alias: Any) -> list[tuple[str, bool]]:
    """Top-level JSON keys an alias accepts, flagged True when the value sits at that key."""
    if isinstance(alias, str):
        return [(alias, True)]
    if isinstance(alias, AliasPath):
        first = alias.path[0] if alias.path else None
        if not isinstance(first, str):
            return []
        return [(first, len(alias.path) == 1)]
    if isinstance(alias, AliasChoices):
        return [key for choice in alias.choices for key in _alias_keys(choice)]
    return []


def _accepted_keys(model: type[BaseModel]) -> dict[str, str | None]:
    """Map every accepted JSON key to its field name.

    None marks a key that only leads into an AliasPath; its value is not the
    field's shape, so it is accepted without descending.
    """
    keys: dict[str, str | None] = {}
    for name, info in model.model_fields.items():
        keys[name] = name
        for alias in (info.alias, info.validation_alias):
            for key, direct in _alias_keys(alias):
                if direct or key not in keys:
                    keys[key] = name if direct else None
    return keys


def _is_model_type(shape: Any) -> bool:
    return get_origin(shape) is None and isinstance(shape, type) and issubclass(shape, BaseModel)


def _is_record(shape: Any) -> bool:
    """Dataclass or TypedDict type: keys come from its type hints."""
    if get_origin(shape) is not None or not isinstance(shape, type):
        return False
    return dataclasses.is_dataclass(shape) or is_typeddict(shape)


def _same_container(member: Any, value: Any) -> bool:
    """Whether a union member could accept this JSON value's container kind."""
    origin = get_origin(member)
    if origin is Annotated:
        return _same_container(get_args(member)[0], value)
    if isinstance(value, dict):
        if origin is not None:
            return origin is dict
        return _is_model_type(member) or _is_record(member)
    if isinstance(value, list):
        return origin in (list, set, frozenset, tuple)
    return False


def _join(key: str | int, rest: str | None) -> str:
    return str(key) if rest is None else f"{key}.{rest}"


def find_unknown_key(shape: Any, value: Any) -> str | None:
    """Return the dotted path of the first key `shape` does not declare, if any."""
    origin = get_origin(shape)
    if origin is Annotated:
        return find_unknown_key(get_args(shape)[0], value)

    if origin is Union or origin is types.UnionType:
        results = [
            find_unknown_key(member, value)
            for member in get_args(shape)
            if _same_container(member, value)
        ]
        if not results or None in results:
            return None
        return results[0]

    if _is_model_type(shape):
        if not isinstance(value, dict) or shape.model_config.get("extra") == "allow":
            return None
        accepted = _accepted_keys(shape)
        for key, item in value.items():
            if key not in accepted:
                return key
            name = accepted[key]
            if name is None:
                continue
            nested = find_unknown_key(shape.model_fields[name].annotation, item)
            if nested is not None:
                return _join(key, nested)
        return None

    if _is_record(shape):
        if not isinstance(value, dict):
            return None
        hints = get_type_hints(shape, include_extras=True)
        for key, item in value.items():
            if key not in hints:
                return key
            nested = find_unknown_key(hints[key], item)
            if nested is not None:
                return _join(key, nested)
        return None

    args = get_args(shape)
    if origin in (list, set, frozenset) and isinstance(value, list) and args:
        for index, item in enumerate(value):
            nested = find_unknown_key(args[0], item)
            if nested is not None:
                return _join(index, nested)
    elif origin is tuple and isinstance(value, list) and args:
        if len(args) == 2 and args[1] is Ellipsis:
            members = [args[0]] * len(value)
        else:
            members = list(args)
        for index, (member, item) in enumerate(zip(members, value)):
            nested = find_unknown_key(member, item)
            if nested is not None:
                return _join(index, nested)
    elif origin is dict and isinstance(value, dict) and len(args) == 2:
        for key, item in value.items():
            nested = find_unknown_key(args[1], item)
            if nested is not None:
                return _join(key, nested)
    return None


# ─── Bind ────────────────────────────────────────────────────────

def _location(loc: tuple) -> str:
    return ".".join(str(part) for part in loc)


def _map_validation_error(exc: ValidationError) -> SyntaxOrTypeError | UnknownFieldError:
    """Classify the first pydantic error as an unknown key or a type error."""
    first = exc.errors()[0]
    loc = _location(first["loc"])
    if first["type"] == "extra_forbidden":
        return UnknownFieldError(loc)
    if first["type"] == "json_invalid":
        return SyntaxOrTypeError(f"body contains badly-formed JSON: {first['msg']}")
    if first["type"] == "missing":
        return SyntaxOrTypeError(f'body is missing required field "{loc}"', field=loc)
    if not loc:
        return SyntaxOrTypeError(f"body contains incorrect JSON type: {first['msg']}")
    return SyntaxOrTypeError(
        f'body contains incorrect JSON type for field "{loc}": {first["msg"]}', field=loc,
    )


def _shape_of(target: Any) -> Any:
    if isinstance(target, BaseModel):
        if target.model_config.get("frozen"):
            raise NilTargetError("target instance is frozen")
        return type(target)
    if isinstance(target, type) or get_origin(target) is not None:
        return target
    raise NilTargetError(
        f"target must be a model, type, dict or list, not {type(target).__name__}",
    )


def _validate_document(shape: Any, document: str) -> Any:
    try:
        if _is_model_type(shape):
            return shape.model_validate_json(document, strict=True)
        return TypeAdapter(shape).validate_json(document, strict=True)
    except ValidationError as exc:
        raise _map_validation_error(exc) from exc


def bind(
    target: Any,
    data: Any,
    allow_unknown_fields: bool = False,
    document: str | None = None,
) -> Any:
    """Validate parsed JSON against the target's shape and populate it.

    Model classes and other types return a new value; model, dict and list
    instances are populated in place and returned. `document` is the JSON
    text data was parsed from; when omitted, data is re-encoded.
    """
    ensure_target(target)

    if isinstance(target, dict):
        if not isinstance(data, dict):
            raise SyntaxOrTypeError("body contains incorrect JSON type: expected an object")
        target.update(data)
        return target
    if isinstance(target, list):
        if not isinstance(data, list):
            raise SyntaxOrTypeError("body contains incorrect JSON type: expected an array")
        target[:] = data
        return target

    shape = _shape_of(target)
    try:
        if not allow_unknown_fields:
            unknown = find_unknown_key(shape, data)
            if unknown is not None:
                raise UnknownFieldError(unknown)
        if document is None:
            document = json.dumps(data)
        decoded = _validate_document(shape, document)
    except RecursionError as exc:
        raise SyntaxOrTypeError(NESTING_TOO_DEEP) from exc

    if isinstance(target, BaseModel):
        for name in decoded.model_fields_set:
            try:
                setattr(target, name, getattr(decoded, name))
            except ValidationError as exc:
                raise NilTargetError(f'target field "{name}" cannot be assigned') from exc
        return target
    return decoded


def decode(
    body: BinaryIO,
    headers: HeaderLookup,
    target: Any,
    max_bytes: int,
    allow_unknown_fields: bool = False,
) -> Any:
    """Run the full decode pipeline; see module invariants for the order."""
    ensure_target(target)
    ensure_json_content_type(headers)
    raw = LimitedReader(body, max_bytes).read_all()
    data, text, end = parse_first_document(raw)
    result = bind(target, data, allow_unknown_fields, document=text[:end])
    ensure_single_document(text, end)
    return result
