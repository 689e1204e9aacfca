from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from .config import get_settings


def make_engine(database_url: Optional[str] = None, **kwargs) -> Engine:
    url = database_url or get_settings().database_url
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, echo=False, connect_args=connect_args, **kwargs)


engine = make_engine()


def init_db(bind: Optional[Engine] = None) -> None:
    SQLModel.metadata.create_all(bind or engine)


@contextmanager
def session_scope(bind: Optional[Engine] = None) -> Iterator[Session]:
    session = Session(bind or engine)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
