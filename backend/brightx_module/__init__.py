from fastapi import FastAPI

from .config import Settings, settings as default_settings
from .database import Base, SessionLocal, engine
from .middleware import install_error_handlers
from .routes import router
from .security import AdminSession
from .storage import SqlStorage, StorageBackend
from .store import StateStore


def init_brightx_module(
    app: FastAPI,
    backend: StorageBackend | None = None,
    settings: Settings = default_settings,
) -> StateStore:
    if backend is None:
        Base.metadata.create_all(bind=engine)
        backend = SqlStorage(SessionLocal)
    store = StateStore(backend, settings=settings)
    app.state.brightx_store = store
    app.state.brightx_session = AdminSession(store)
    install_error_handlers(app)
    return store


__all__ = ["router", "init_brightx_module", "StateStore"]
