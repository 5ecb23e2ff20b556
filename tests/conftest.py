import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Dict, List, Optional

import pytest


ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from upload_rotator import failure_logger
from upload_rotator.types import Credential, PendingAsset, QuotaSnapshot


@pytest.fixture(autouse=True)
def quiet_failure_logger(monkeypatch: pytest.MonkeyPatch) -> logging.Logger:
    """Keep tests from writing logs/failures.log into the working tree."""
    logger = logging.getLogger("upload_rotator.failures.test")
    logger.propagate = False
    if not logger.handlers:
        logger.addHandler(logging.NullHandler())
    monkeypatch.setattr(failure_logger, "_failure_logger", logger)
    return logger


class FakeClock:
    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    def __init__(self, clock: Optional[FakeClock] = None):
        self.calls: List[float] = []
        self._clock = clock

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        if self._clock is not None:
            self._clock.advance(seconds)


class FakeProbe:
    """Returns scripted snapshots keyed by credential name."""

    def __init__(self, quotas: Dict[str, int], clock: FakeClock, period: float = 100.0):
        self.quotas = quotas
        self.clock = clock
        self.period = period
        self.calls: List[str] = []

    async def probe(self, credential: Credential) -> QuotaSnapshot:
        self.calls.append(credential.name)
        remaining = self.quotas.get(credential.name, -1)
        capacity = 10 if remaining >= 0 else -1
        return QuotaSnapshot(
            remaining=remaining,
            capacity=capacity,
            valid_until=self.clock() + self.period,
        )


class StagedAsset:
    """PendingAsset factory that records whether cleanup ran."""

    def __init__(
        self,
        name: str = "song.mp3",
        content_type: Optional[str] = "audio/mpeg",
        payload: bytes = b"ID3audio",
        fail_on_stage: Optional[Exception] = None,
    ):
        self.name = name
        self.content_type = content_type
        self.payload = payload
        self.fail_on_stage = fail_on_stage
        self.staged = 0
        self.released = 0

    @asynccontextmanager
    async def stage(self):
        if self.fail_on_stage is not None:
            raise self.fail_on_stage
        self.staged += 1
        try:
            yield self.payload
        finally:
            self.released += 1

    def pending(self) -> PendingAsset:
        return PendingAsset(name=self.name, content_type=self.content_type, stage=self.stage)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def key_a() -> Credential:
    return Credential(key="key-aaaa-1111", name="primary", priority=1)


@pytest.fixture
def key_b() -> Credential:
    return Credential(key="key-bbbb-2222", name="backup", priority=2)
