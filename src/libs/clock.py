"""
Injectable time sources.

Services take a ``clock`` callable returning epoch seconds so expiry and
window arithmetic can be driven deterministically from tests.
"""

import time
from datetime import UTC, datetime
from typing import Callable

Clock = Callable[[], float]


def system_clock() -> float:
    return time.time()


def utcnow() -> datetime:
    """Naive UTC datetime, matching the DateTime columns of the entities"""
    return datetime.now(UTC).replace(tzinfo=None)


def to_naive_utc(epoch_seconds: float) -> datetime:
    return datetime.fromtimestamp(epoch_seconds, UTC).replace(tzinfo=None)


class FrozenClock:
    """Manually advanced clock for tests and scripted scenarios"""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds
