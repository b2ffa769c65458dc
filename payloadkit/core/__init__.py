"""Core Layer: decoding, encoding and error taxonomy.

Invariants:
    - No module in core/ imports from api/, infrastructure/ or config
    - Streams are read through caller-supplied objects only; core never opens sockets or files
"""
