"""payloadkit: JSON request decoding and response encoding for HTTP handlers.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)

Design Decisions:
    - Empty __init__.py: callers import from payloadkit.parser, payloadkit.core.errors, etc.
"""
