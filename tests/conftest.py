import os

from datetime import datetime, timedelta, timezone

import pytest

from secvault.crypto.hash import Key
from secvault.errors import SourceNotFoundError, StorageError
from secvault.utils.helper import MIN_TIME

T0 = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class StepClock:
    """Returns T0, T0+step, T0+2*step, ..."""

    def __init__(self, start: datetime = T0, step: timedelta = timedelta(seconds=1)):
        self.now = start
        self.step = step

    def __call__(self) -> datetime:
        now = self.now
        self.now = now + self.step
        return now


class SequentialIds:
    def __init__(self, prefix: str = "id"):
        self.prefix = prefix
        self.n = 0

    def __call__(self) -> str:
        self.n += 1
        return f"{self.prefix}-{self.n}"


class MemoryStorage:
    """In-memory Storage with a settable last-modified marker."""

    def __init__(self, data: bytes | None = None, updated: datetime = MIN_TIME):
        self.data = data
        self.updated_at = updated
        self.saves = 0
        self.fail_save = False
        self.fail_load: Exception | None = None

    def save(self, data: bytes) -> None:
        if self.fail_save:
            raise StorageError("disk full")
        self.data = data
        self.saves += 1

    def load(self) -> bytes:
        if self.fail_load is not None:
            raise self.fail_load
        if self.data is None:
            raise SourceNotFoundError()
        return self.data

    def updated(self) -> datetime:
        return self.updated_at


def random_key() -> Key:
    return Key(value=os.urandom(32), salt=os.urandom(16))


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def ids():
    return SequentialIds()


@pytest.fixture
def key():
    return random_key()


@pytest.fixture
def storage_key():
    return random_key()


@pytest.fixture
def storage():
    return MemoryStorage()
