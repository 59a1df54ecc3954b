"""Shared fixtures for sagaflow tests.

Most tests drive a SimulationRuntime so that timing is virtual and exact.
"""

from __future__ import annotations

import logging
from typing import Any

import pytest

from sagaflow import SimulationRuntime, Store


def counter_reducer(state: dict[str, Any], action: Any) -> dict[str, Any]:
    if isinstance(action, dict) and action.get("type") == "INCREMENT":
        return {**state, "count": state["count"] + action.get("by", 1)}
    if isinstance(action, dict) and action.get("type") == "LOGIN_SUCCESS":
        return {**state, "user": action["payload"]}
    return state


@pytest.fixture
def store() -> Store:
    return Store(counter_reducer, {"count": 0, "user": None}, record=True)


@pytest.fixture
def runtime(store: Store) -> SimulationRuntime:
    return SimulationRuntime(store)


@pytest.fixture
def caplog_warning(caplog: pytest.LogCaptureFixture) -> pytest.LogCaptureFixture:
    """Capture scheduler warnings."""
    caplog.set_level(logging.WARNING, logger="sagaflow")
    return caplog
