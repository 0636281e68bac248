import random
from datetime import datetime, timedelta

import pytest

from core.database import MemoryStore
from services import AppContext
from services.progress_service import ProgressService
from services.storage_service import StorageService
from utils.datetime_utils import Clock


class FixedClock(Clock):
    """Clock that stays at a given moment until moved explicitly."""

    def __init__(self, current: datetime, timezone: str = "UTC"):
        super().__init__(timezone)
        self.current = self.localize(current)

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current = self.current + timedelta(**kwargs)


class ScriptedRandom(random.Random):
    """Returns pre-recorded indexes from randrange."""

    def __init__(self, values):
        super().__init__(0)
        self.values = list(values)

    def randrange(self, start, stop=None, step=1):
        upper = start if stop is None else stop
        value = self.values.pop(0)
        assert 0 <= value < upper, f"scripted value {value} out of range {upper}"
        return value


@pytest.fixture
def clock():
    # Monday morning
    return FixedClock(datetime(2024, 1, 1, 9, 30))


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def storage(store, clock):
    return StorageService(store, clock)


@pytest.fixture
def progress(storage, clock):
    return ProgressService(storage, clock)


@pytest.fixture
def app(store, clock, tmp_path):
    return AppContext(store, clock=clock, rng=random.Random(42), export_dir=tmp_path / "exports")
