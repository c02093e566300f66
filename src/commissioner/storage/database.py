"""Database helpers for Commissioner."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from commissioner.config import get_settings

SessionFactory = Callable[[], Session]

__all__ = ["engine", "SessionLocal", "SessionFactory", "build_engine", "get_session", "init_db"]


def build_engine(url: str) -> Engine:
    """Create an engine; in-memory SQLite shares one connection across threads."""

    url = str(url)
    if url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(
            url,
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    if url.startswith("sqlite"):
        return create_engine(url, future=True, echo=False, connect_args={"check_same_thread": False})
    return create_engine(url, future=True, echo=False)


def make_session_factory(bind: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=bind, class_=Session, expire_on_commit=False, autoflush=False)


engine = build_engine(get_settings().database_url)
SessionLocal = make_session_factory(engine)


@contextmanager
def get_session(factory: SessionFactory | None = None) -> Iterator[Session]:
    """Provide a transactional scope around a series of operations."""

    session = (factory or SessionLocal)()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(bind: Engine | None = None) -> None:
    """Create all tables that do not exist yet."""

    from commissioner.storage.models import Base

    Base.metadata.create_all(bind=bind or engine)
