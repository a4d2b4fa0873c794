"""Ledger store handle and per-request sessions."""
from __future__ import annotations

from collections.abc import Generator

from fastapi import Depends, Request
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from crowdfund.models.base import Base


def _sqlite_on_connect(dbapi_connection, connection_record) -> None:  # pragma: no cover
    # Hand transaction control to SQLAlchemy so the "begin" hook below decides how BEGIN is issued.
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _sqlite_begin_immediate(connection) -> None:  # pragma: no cover
    # SQLite ignores FOR UPDATE; taking the write lock at BEGIN serializes ledger units instead.
    connection.exec_driver_sql("BEGIN IMMEDIATE")


class Database:
    """One engine plus the session factory bound to it.

    The application builds a single instance at startup and keeps it on
    ``app.state.database``; scripts and background jobs receive it explicitly.
    On SQLite every transaction starts with ``BEGIN IMMEDIATE`` and foreign
    keys are enforced, so ledger rows get their ``SET NULL`` on campaign
    deletion and concurrent payments are applied one after another.
    """

    def __init__(self, url: str, *, echo: bool = False) -> None:
        self.url = url
        connect_args: dict[str, object] = {}
        if url.startswith("sqlite"):
            connect_args = {"check_same_thread": False, "timeout": 30}
        self.engine: Engine = create_engine(url, future=True, echo=echo, connect_args=connect_args)
        if self.engine.dialect.name == "sqlite":
            event.listen(self.engine, "connect", _sqlite_on_connect)
            event.listen(self.engine, "begin", _sqlite_begin_immediate)
        self.sessionmaker: sessionmaker[Session] = sessionmaker(
            bind=self.engine,
            autoflush=False,
            expire_on_commit=False,
            future=True,
        )

    def session(self) -> Session:
        return self.sessionmaker()

    def create_all(self) -> None:
        Base.metadata.create_all(bind=self.engine)

    def dispose(self) -> None:
        self.engine.dispose()


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_db(database: Database = Depends(get_database)) -> Generator[Session, None, None]:
    """Provide a database session for FastAPI dependencies."""

    session = database.session()
    try:
        yield session
    finally:
        session.close()


__all__ = ["Database", "get_database", "get_db"]
