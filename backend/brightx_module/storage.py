"""Whole-state persistence: the entire application state is one JSON blob under one key."""

import logging
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from .errors import StorageWriteError
from .models import StorageEntry
from .schemas import AppState


logger = logging.getLogger(__name__)


class StorageBackend(Protocol):
    def read(self, key: str) -> str | None: ...

    def write(self, key: str, value: str) -> None: ...


class MemoryStorage:
    def __init__(self) -> None:
        self.items: dict[str, str] = {}

    def read(self, key: str) -> str | None:
        return self.items.get(key)

    def write(self, key: str, value: str) -> None:
        self.items[key] = value


class SqlStorage:
    """Key/value table backed by SQLAlchemy; every write is one committed upsert."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self.session_factory = session_factory

    def read(self, key: str) -> str | None:
        db: Session = self.session_factory()
        try:
            entry = db.get(StorageEntry, key)
            return entry.value if entry else None
        finally:
            db.close()

    def write(self, key: str, value: str) -> None:
        db: Session = self.session_factory()
        try:
            entry = db.get(StorageEntry, key)
            if entry is None:
                db.add(StorageEntry(key=key, value=value))
            else:
                entry.value = value
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error(f"Storage write failed for {key}: {exc}")
            raise StorageWriteError(f"Could not persist state: {exc}") from exc
        finally:
            db.close()


def dump_state(state: AppState) -> str:
    return state.model_dump_json(by_alias=True)


def load_state(backend: StorageBackend, key: str) -> AppState:
    raw = backend.read(key)
    if not raw:
        return AppState()
    # absent collections default to empty lists
    return AppState.model_validate_json(raw)


def save_state(backend: StorageBackend, key: str, state: AppState) -> None:
    backend.write(key, dump_state(state))
