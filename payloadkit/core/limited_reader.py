"""Bounded Reader: a byte-budget decorator around a binary stream.

Invariants:
    - Total bytes handed out never exceed the limit
    - The first read that would cross the limit raises BodyTooLargeError
    - A body of exactly `limit` bytes is accepted
    - The wrapped stream is never closed

Design Decisions:
    - Reads ask the source for at most remaining + 1 bytes: one extra byte proves overflow
      without pulling the rest of an oversized body into memory
"""

from typing import BinaryIO

from payloadkit.core.errors import BodyTooLargeError

CHUNK_SIZE = 64 * 1024


class LimitedReader:
    """Counting reader that fails once its byte budget is exhausted."""

    def __init__(self, source: BinaryIO, limit: int):
        self._source = source
        self.limit = limit
        self.consumed = 0

    @property
    def remaining(self) -> int:
        return self.limit - self.consumed

    def read(self, size: int = -1) -> bytes:
        """Read up to `size` bytes (all remaining budget when negative)."""
        if size is None or size < 0 or size > self.remaining:
            size = self.remaining + 1
        data = self._source.read(size) or b""
        self.consumed += len(data)
        if self.consumed > self.limit:
            raise BodyTooLargeError(self.limit)
        return data

    def read_all(self, chunk_size: int = CHUNK_SIZE) -> bytes:
        """Drain the source chunk by chunk, enforcing the limit as bytes arrive."""
        chunks: list[bytes] = []
        while True:
            chunk = self.read(min(chunk_size, self.remaining + 1))
            if not chunk:
                return b"".join(chunks)
            chunks.append(chunk)
