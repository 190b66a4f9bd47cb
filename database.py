"""
Progress database access.

Engine and session handling for the learning progress store. SQLite is the
default for local runs; any other SQLAlchemy URL gets a pooled engine.
"""

from contextlib import contextmanager
from typing import Any, Generator, Optional
from sqlalchemy import create_engine, text, Engine
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool
from config import Settings, get_settings
import logging

logger = logging.getLogger(__name__)


class DatabaseManager:
    """
    Lazily builds the engine and session factory for one database URL.

    Used by SqlProgressStore, which opens a `session_scope()` per read or
    write from a worker thread.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._engine: Engine | None = None
        self._session_factory: sessionmaker | None = None

    @property
    def url(self) -> str:
        return str(self.settings.database_url)

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            logger.info(f"Creating database engine for: {self._mask_password(self.url)}")
            self._engine = create_engine(self.url, **self._engine_options())
        return self._engine

    @property
    def session_factory(self) -> sessionmaker:
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self.engine, autocommit=False, autoflush=False)
        return self._session_factory

    def _engine_options(self) -> dict[str, Any]:
        options: dict[str, Any] = {"echo": self.settings.log_level == "DEBUG"}
        if self.is_sqlite:
            # sessions are opened from executor threads
            options["connect_args"] = {"check_same_thread": False}
        else:
            options.update(
                poolclass=QueuePool,
                pool_size=self.settings.db_pool_size,
                max_overflow=self.settings.db_max_overflow,
                pool_timeout=self.settings.db_pool_timeout,
                pool_pre_ping=True,
            )
        return options

    def create_tables(self) -> None:
        """Create the progress tables if they do not exist."""
        from shared.models.entities import Base

        Base.metadata.create_all(self.engine)

    def get_session(self) -> Session:
        return self.session_factory()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """
        Commit on success, roll back and re-raise on failure, always close.

            with db_manager.session_scope() as db:
                ProgressRepository(db).upsert(...)
        """
        session = self.get_session()
        try:
            yield session
            session.commit()
        except Exception as e:
            session.rollback()
            logger.error(f"Database transaction failed: {e}")
            raise
        finally:
            session.close()

    def health_check(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return False
        return True

    def close(self):
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("Database engine closed")

    @staticmethod
    def _mask_password(url: str) -> str:
        try:
            return make_url(url).render_as_string(hide_password=True)
        except ArgumentError:
            return url


_db_manager: DatabaseManager | None = None


def get_db_manager() -> DatabaseManager:
    """Process-wide DatabaseManager built from get_settings()."""
    global _db_manager
    if _db_manager is None:
        _db_manager = DatabaseManager()
    return _db_manager


def reset_db_manager():
    global _db_manager
    if _db_manager:
        _db_manager.close()
    _db_manager = None
