"""API Layer: FastAPI/Starlette integration for the codec.

Invariants:
    - Starlette Request/Response objects stay in this package; core/ works on protocols only
    - No routes are defined here; applications mount their own
"""
