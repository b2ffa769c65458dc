"""Domain Types: constants and enums shared by the decoder and encoder.

Invariants:
    - DEFAULT_MAX_JSON_SIZE is 1 MiB (1_048_576 bytes)
    - A configured size <= 0 always resolves to DEFAULT_MAX_JSON_SIZE
    - All error kinds encoded as Enums, no raw string matching

Design Decisions:
    - str Enums: error codes serialize to JSON and log records without custom encoders
"""

from enum import Enum


# ─── Limits ──────────────────────────────────────────────────────

DEFAULT_MAX_JSON_SIZE = 1_048_576
JSON_MEDIA_TYPE = "application/json"
JSON_WHITESPACE = " \t\n\r"


def effective_max_size(max_json_size: int | None) -> int:
    """Return the configured size, or the default when unset/zero/negative."""
    if max_json_size is None or max_json_size <= 0:
        return DEFAULT_MAX_JSON_SIZE
    return max_json_size


# ─── Enums ───────────────────────────────────────────────────────

class ErrorKind(str, Enum):
    """Classified failure modes. Values double as machine error codes."""
    # decode path
    UNSUPPORTED_MEDIA_TYPE = "UNSUPPORTED_MEDIA_TYPE"
    BODY_TOO_LARGE = "BODY_TOO_LARGE"
    EMPTY_BODY = "EMPTY_BODY"
    SYNTAX_OR_TYPE = "SYNTAX_OR_TYPE"
    UNKNOWN_FIELD = "UNKNOWN_FIELD"
    TRAILING_DATA = "TRAILING_DATA"
    NIL_TARGET = "NIL_TARGET"
    # encode path
    UNMARSHALABLE = "UNMARSHALABLE"
