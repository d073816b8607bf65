from __future__ import annotations

from typing import Any

from sqlmodel import Session, SQLModel, create_engine

from ..models import db as _db_models  # noqa: F401 - ensure models register with metadata
from .config import get_settings


def create_engine_for_url(database_url: str):
    connect_args: dict[str, Any] = {}
    options: dict[str, Any] = {}
    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
    else:
        # Conflicts surface as SQLSTATE 40001 under serializable isolation.
        options["isolation_level"] = "SERIALIZABLE"
    return create_engine(database_url, echo=False, connect_args=connect_args, **options)


settings = get_settings()
engine = create_engine_for_url(settings.database_url)


def init_db() -> None:
    SQLModel.metadata.create_all(engine)


def new_session() -> Session:
    # Objects handed back from a committed unit of work stay readable.
    return Session(engine, expire_on_commit=False)


def set_engine(new_engine) -> None:
    global engine
    engine = new_engine
