import itertools
import time
from dataclasses import replace
from datetime import datetime

import pytest

from brightx_module.config import settings as base_settings
from brightx_module.errors import StorageWriteError
from brightx_module.schemas import StudentCreate
from brightx_module.storage import MemoryStorage
from brightx_module.store import StateStore


NOW = datetime(2024, 10, 15, 9, 30, 0)


class FakeMonotonic:
    def __init__(self) -> None:
        self.value = 100.0

    def __call__(self) -> float:
        return self.value


@pytest.fixture
def settings():
    return replace(base_settings, current_year=2024, admin_password="letmein", jwt_secret="x" * 32)


@pytest.fixture
def backend():
    return MemoryStorage()


@pytest.fixture
def monotonic():
    return FakeMonotonic()


@pytest.fixture
def make_store(backend, settings, monotonic):
    def factory(storage=None) -> StateStore:
        counter = itertools.count(1)
        return StateStore(
            storage if storage is not None else backend,
            settings=settings,
            id_factory=lambda: f"id{next(counter)}",
            clock=lambda: NOW,
            monotonic=monotonic,
        )

    return factory


@pytest.fixture
def store(make_store):
    return make_store()


@pytest.fixture
def admit(store):
    def _admit(name: str, student_class: str = "Class 5", **extra):
        return store.admit_student(StudentCreate(name=name, student_class=student_class, **extra))

    return _admit


class FailingStorage:
    def __init__(self, inner):
        self.inner = inner
        self.fail = False

    def read(self, key):
        return self.inner.read(key)

    def write(self, key, value):
        if self.fail:
            raise StorageWriteError("quota exceeded")
        self.inner.write(key, value)


class SlowStorage(MemoryStorage):
    def write(self, key, value):
        time.sleep(0.002)
        super().write(key, value)
