from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

import pytest

from aggregation.aggregator import DOMAINS, Aggregator
from aggregation.cache import CacheStore

NOW = datetime(2024, 9, 7, 20, 0, tzinfo=timezone.utc)


class FakeClock:
    """Drives both the cache (milliseconds) and the aggregator (wall clock)."""

    def __init__(self, start: datetime = NOW):
        self.start = start
        self.elapsed_ms = 0.0

    def advance(self, seconds: float) -> None:
        self.elapsed_ms += seconds * 1000

    def ms(self) -> float:
        return self.elapsed_ms

    def now(self) -> datetime:
        return self.start + timedelta(milliseconds=self.elapsed_ms)


class FakeClient:
    """Records calls and answers from a queue of payloads or exceptions."""

    def __init__(self, name: str):
        self.name = name
        self.calls: List[tuple] = []
        self.responses: List[Any] = []
        self.closed = False

    def respond(self, *payloads: Any) -> None:
        self.responses.extend(payloads)

    async def _answer(self, method: str, *args: Any) -> Any:
        self.calls.append((method, *args))
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response

    def __getattr__(self, method: str):
        if method.startswith("_"):
            raise AttributeError(method)

        async def call(*args: Any) -> Any:
            return await self._answer(method, *args)

        return call

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def clients() -> Dict[str, FakeClient]:
    return {domain: FakeClient(domain) for domain in DOMAINS}


@pytest.fixture
def aggregator(clients, clock) -> Aggregator:
    caches = {domain: CacheStore(domain, clock=clock.ms) for domain in DOMAINS}
    return Aggregator(clients, caches=caches, now=clock.now)
