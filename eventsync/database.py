"""
Database handle: engine, session factory and the declarative base.

The handle is constructed explicitly and attached to the application state,
so each app (and each test) owns its own pool.
"""
from typing import Any, Dict, Iterator, Optional

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .logging_config import db_logger

Base = declarative_base()


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Owns the connection pool for one database URL."""

    def __init__(
        self,
        url: str,
        pool_size: int = 5,
        max_overflow: int = 10,
        echo: bool = False,
        **engine_kwargs: Any,
    ):
        self.url = url
        self.pool_size = pool_size
        self.max_overflow = max_overflow
        self.echo = echo
        self.engine_kwargs = engine_kwargs
        self.engine: Optional[Engine] = None
        self.SessionLocal: Optional[sessionmaker] = None

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    def open(self) -> "Database":
        """Create the engine and session factory. Idempotent."""
        if self.engine is not None:
            return self

        kwargs: Dict[str, Any] = {"echo": self.echo, "pool_pre_ping": True}
        if self.is_sqlite:
            kwargs["connect_args"] = {"check_same_thread": False}
        else:
            kwargs["pool_size"] = self.pool_size
            kwargs["max_overflow"] = self.max_overflow
        kwargs.update(self.engine_kwargs)

        self.engine = create_engine(self.url, **kwargs)
        if self.is_sqlite:
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)

        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)
        db_logger.info("Database opened", dialect=self.engine.dialect.name)
        return self

    def close(self) -> None:
        """Dispose of the pool."""
        if self.engine is None:
            return
        self.engine.dispose()
        self.engine = None
        self.SessionLocal = None
        db_logger.info("Database closed")

    def create_all(self) -> None:
        # Importing the models registers their tables on Base.metadata
        from . import models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)

    def drop_all(self) -> None:
        Base.metadata.drop_all(bind=self.engine)

    def session(self) -> Session:
        if self.SessionLocal is None:
            raise RuntimeError("Database is not open")
        return self.SessionLocal()


def get_db(request: Request) -> Iterator[Session]:
    """Yield a request-scoped session from the application's database."""
    db = request.app.state.database.session()
    try:
        yield db
    finally:
        db.close()
