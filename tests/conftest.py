"""Shared test fixtures."""

import pytest

from exemplars.core.recorder import set_global_recorder


@pytest.fixture(autouse=True)
def clear_global_recorder():
    """Leave no global recorder behind between tests."""
    set_global_recorder(None)
    yield
    set_global_recorder(None)
