import os

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker


DB_PATH = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "brightx_learn.db")
DATABASE_URL = os.getenv("BRIGHTX_DATABASE_URL", f"sqlite:///{DB_PATH}")

Base = declarative_base()


def make_engine(url: str = DATABASE_URL) -> Engine:
    # request handlers share the engine across threadpool workers
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args, future=True)


def make_session_factory(bind: Engine) -> sessionmaker:
    return sessionmaker(bind=bind, autoflush=False, autocommit=False, expire_on_commit=False, future=True)


engine = make_engine()
SessionLocal = make_session_factory(engine)
