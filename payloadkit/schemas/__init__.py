"""Pydantic Schemas: response envelope shared by success and error responses.

Invariants:
    - Schemas describe wire shapes only; no IO happens here
"""
