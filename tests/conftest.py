"""Pytest configuration for the UDP fan tests."""

from __future__ import annotations

import asyncio
import inspect
import sys
from pathlib import Path

import pytest

root_path = Path(__file__).resolve().parent.parent
if str(root_path) not in sys.path:
    sys.path.insert(0, str(root_path))

from tests.fakes import FakeFanBoard, FakeMonotonic, RecordingSleep  # noqa: E402


@pytest.fixture
def board() -> FakeFanBoard:
    """Provide a fan board simulator that starts switched off."""

    return FakeFanBoard()


@pytest.fixture
def clock() -> FakeMonotonic:
    """Provide a controllable monotonic clock."""

    return FakeMonotonic()


@pytest.fixture
def sleep() -> RecordingSleep:
    """Provide a sleep double that records delays."""

    return RecordingSleep()


def pytest_configure(config: pytest.Config) -> None:
    """Register markers used throughout the test suite."""

    config.addinivalue_line(
        "markers", "asyncio: mark coroutine tests to execute via asyncio loop"
    )


def pytest_pyfunc_call(pyfuncitem: pytest.Function) -> bool | None:
    """Execute coroutine tests within a dedicated event loop."""

    test_function = pyfuncitem.obj
    if not inspect.iscoroutinefunction(test_function):
        return None

    funcargs = pyfuncitem.funcargs
    testargs = {arg: funcargs[arg] for arg in pyfuncitem._fixtureinfo.argnames}
    loop = asyncio.new_event_loop()
    try:
        asyncio.set_event_loop(loop)
        loop.run_until_complete(test_function(**testargs))
    finally:
        asyncio.set_event_loop(None)
        loop.close()
    return True
