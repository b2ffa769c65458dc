"""Root conftest: shared test configuration.

Invariants:
    - PAYLOADKIT_* variables from the developer's shell never leak into tests
    - get_settings() cache is cleared around every test
"""

import os

import pytest

from payloadkit.config import get_settings
from payloadkit.infrastructure.response_recorder import ResponseRecorder
from payloadkit.parser import Parser

for _key in [k for k in os.environ if k.startswith("PAYLOADKIT_")]:
    del os.environ[_key]


@pytest.fixture(autouse=True)
def _fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def parser():
    return Parser()


@pytest.fixture
def recorder():
    return ResponseRecorder()
