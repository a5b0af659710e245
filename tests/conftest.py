"""Shared fixtures for exposecontroller tests."""

import threading
from typing import List, Tuple

import pytest

from exposecontroller.exceptions import ExposeError
from exposecontroller.models import Resource, ServicePort
from exposecontroller.strategy import ExposeStrategy


class RecordingStrategy(ExposeStrategy):
    """Exposure strategy that records calls instead of touching a cluster."""

    name = "recording"

    def __init__(self, fail_on: Tuple[str, ...] = ()) -> None:
        self.calls: List[Tuple[str, Resource]] = []
        self.fail_on = fail_on
        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()

    def _record(self, action: str, resource: Resource) -> None:
        with self._lock:
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            self.calls.append((action, resource))
            if action in self.fail_on:
                raise ExposeError(action, resource.key, "boom")
        finally:
            with self._lock:
                self.in_flight -= 1

    def add(self, resource: Resource) -> None:
        self._record("add", resource)

    def remove(self, resource: Resource) -> None:
        self._record("remove", resource)

    def actions(self) -> List[Tuple[str, str]]:
        return [(action, resource.key) for action, resource in self.calls]


@pytest.fixture
def strategy():
    """A strategy that records every call."""
    return RecordingStrategy()


@pytest.fixture
def exposed_service():
    """A Service carrying the expose label."""
    return Resource(
        namespace="ns1",
        name="svc1",
        labels={"expose": "true", "app": "web"},
        ports=[ServicePort(name="http", port=8080)],
    )


@pytest.fixture
def plain_service():
    """The same Service without the expose label."""
    return Resource(
        namespace="ns1",
        name="svc1",
        labels={"app": "web"},
        ports=[ServicePort(name="http", port=8080)],
    )


@pytest.fixture
def make_strategy():
    """Factory for recording strategies, optionally failing some actions."""
    return RecordingStrategy
