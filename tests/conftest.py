from datetime import datetime, timedelta, timezone
from typing import Any, Callable, List, Tuple

import pytest

from krishimitr.core.config import Settings
from krishimitr.infrastructure.storage import InMemoryStore
from krishimitr.services.auth.session_store import SessionStore


class FakeClock:
    """Controllable clock: call for a datetime, .time() for epoch seconds."""

    def __init__(self, start: datetime = datetime(2026, 1, 1, 6, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def time(self) -> float:
        return self.now.timestamp()

    def advance(self, seconds: float):
        self.now = self.now + timedelta(seconds=seconds)


class FakeTimerHandle:
    def __init__(self, delay: float, callback: Callable, args: Tuple[Any, ...]):
        self.delay = delay
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self):
        self.cancelled = True

    def fire(self):
        self.callback(*self.args)


class FakeLoop:
    """Collects call_later timers so tests can fire them one by one."""

    def __init__(self):
        self.timers: List[FakeTimerHandle] = []

    def call_later(self, delay: float, callback: Callable, *args) -> FakeTimerHandle:
        handle = FakeTimerHandle(delay, callback, args)
        self.timers.append(handle)
        return handle

    @property
    def pending(self) -> List[FakeTimerHandle]:
        return [handle for handle in self.timers if not handle.cancelled]

    def run_next(self) -> FakeTimerHandle:
        handle = self.pending[0]
        self.timers.remove(handle)
        handle.fire()
        return handle


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        environment="test",
        storage_backend="memory",
        payment_processing_delay_seconds=0.01,
        payment_success_delay_seconds=0.01,
        checkout_key_id="rzp_test_key",
        checkout_key_secret="test-secret",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def session_store(memory_store, test_settings, clock) -> SessionStore:
    return SessionStore(memory_store, config=test_settings, clock=clock)


@pytest.fixture
def fake_loop() -> FakeLoop:
    return FakeLoop()
