"""Pytest configuration and shared fixtures."""

import pytest
from typing import Any, Iterable

from wbp_app.channel.transport import LocalMessageChannel
from wbp_app.config.defaults import GateParams, ViewParams
from wbp_app.errors import StoreUnavailableError
from wbp_app.persistence.memory_store import InMemoryStore

T0 = 1_700_000_000_000
GRANT_DURATION_MS = 30 * 60 * 1000


class FakeClock:
    """Manually advanced epoch-millisecond clock."""

    def __init__(self, now: int = T0):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now


class FlakyStore(InMemoryStore):
    """In-memory store whose reads and writes can be made to fail."""

    def __init__(self, initial=None):
        super().__init__(initial)
        self.available = True

    async def get(self, keys: Iterable[str]) -> dict[str, Any]:
        if not self.available:
            raise StoreUnavailableError("store offline", operation="get", keys=list(keys))
        return await super().get(keys)

    async def set(self, items: dict[str, Any]) -> None:
        if not self.available:
            raise StoreUnavailableError("store offline", operation="set", keys=list(items))
        await super().set(items)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def flaky_store() -> FlakyStore:
    return FlakyStore()


@pytest.fixture
def channel() -> LocalMessageChannel:
    return LocalMessageChannel(request_timeout_ms=1000)


@pytest.fixture
def gate_params() -> GateParams:
    return GateParams(grant_duration_ms=GRANT_DURATION_MS, reconciliation_period_ms=60000)


@pytest.fixture
def fast_gate_params() -> GateParams:
    """Short real-time windows for scheduler-driven tests."""
    return GateParams(grant_duration_ms=200, reconciliation_period_ms=50)


@pytest.fixture
def fast_view_params() -> ViewParams:
    return ViewParams(countdown_interval_ms=20)
