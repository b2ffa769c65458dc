"""Response Envelope: the fixed {error, message, data} wire shape.

Invariants:
    - error=True signals failure; message is always present
    - data is omitted from the serialized form when None (never emitted as null)

Design Decisions:
    - Wrap-mode model_serializer: omission applies to the envelope only, nested nulls in data survive
"""

from typing import Any

from pydantic import BaseModel, model_serializer


class JSONResponse(BaseModel):
    """Envelope shared by success and error responses."""
    error: bool = False
    message: str = ""
    data: Any = None

    @model_serializer(mode="wrap")
    def _omit_absent_data(self, handler):
        serialized = handler(self)
        if self.data is None:
            serialized.pop("data", None)
        return serialized
