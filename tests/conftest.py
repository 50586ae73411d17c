"""Shared pytest fixtures for asyncvalue tests."""

import pytest

import asyncvalue
from asyncvalue import _scheduling


@pytest.fixture(autouse=True)
def reset_module_state():
    """Restore process-wide configuration so tests don't leak into each other."""
    debug = asyncvalue.is_debug()
    yield
    asyncvalue.set_scheduler(None)
    asyncvalue.set_error_handler(None)
    asyncvalue.set_debug(debug)
    _scheduling._parked.clear()


@pytest.fixture
def scheduler():
    return asyncvalue.ManualScheduler()
