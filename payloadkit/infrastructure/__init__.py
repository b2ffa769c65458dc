"""Infrastructure Layer: logging and response sinks.

Invariants:
    - Infrastructure never imports from api/
"""
