"""
Database engine, session scope and declarative base
"""
import logging
from contextlib import contextmanager
from typing import Iterator

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from app.core.config import Settings
from app.core.exceptions import StorageError

logger = logging.getLogger(__name__)

Base = declarative_base()


class Database:
    """
    Process-scoped engine and session factory.

    Created on startup, disposed on shutdown and handed to the services that
    need it, so nothing reaches for a global connection pool.
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self.session_factory = sessionmaker(bind=engine, expire_on_commit=False)
        if engine.dialect.name == "sqlite":
            event.listen(engine, "connect", _enable_sqlite_foreign_keys)

    @classmethod
    def from_url(cls, url: str, **engine_kwargs) -> "Database":
        return cls(create_engine(url, **engine_kwargs))

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        engine_kwargs = {
            "echo": settings.DB_ECHO,
            "pool_pre_ping": settings.DB_POOL_PRE_PING,
        }
        if not settings.DATABASE_URL.startswith("sqlite"):
            engine_kwargs["pool_size"] = settings.DB_POOL_SIZE
            engine_kwargs["max_overflow"] = settings.DB_MAX_OVERFLOW
        return cls.from_url(settings.DATABASE_URL, **engine_kwargs)

    @contextmanager
    def session(self) -> Iterator[Session]:
        """
        One transaction: commit on normal exit, rollback on any exception.

        Database errors are re-raised as StorageError.
        """
        db = self.session_factory()
        try:
            yield db
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception("Transaction rolled back after database error")
            raise StorageError(str(e)) from e
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def create_all(self) -> None:
        Base.metadata.create_all(self.engine)

    def dispose(self) -> None:
        self.engine.dispose()


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores ON DELETE CASCADE unless this is set per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def get_database(request: Request) -> Database:
    """FastAPI dependency returning the database created at startup"""
    return request.app.state.database
