"""
Database session management for Dubcast.

This module provides database connection management and session handling.
"""

from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from dubcast import settings


class DatabaseManager:
    """Database connection manager."""

    def __init__(self, database_url: Optional[str] = None):
        self.database_url = database_url
        self.engine = None
        self.SessionLocal = None
        self._initialized = False

    def initialize(self):
        """Initialize database connection."""
        if self._initialized:
            return

        database_url = self.database_url or settings.get_database_url()

        if database_url.startswith("sqlite"):
            engine_kwargs = {"connect_args": {"check_same_thread": False}}
            if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
                # One shared connection, or each session would see its own empty database
                engine_kwargs["poolclass"] = StaticPool
        else:
            engine_kwargs = {
                "pool_size": settings.get_database_pool_size(),
                "max_overflow": settings.get_database_max_overflow(),
            }

        self.engine = create_engine(
            database_url,
            echo=settings.get_database_echo(),
            **engine_kwargs
        )
        # Rows are read after commit when returned from the registry
        self.SessionLocal = sessionmaker(
            autocommit=False, autoflush=False, expire_on_commit=False, bind=self.engine
        )
        self._initialized = True

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """
        Context manager for database session.

        Automatically handles commit, rollback, and close.

        Usage:
            with db_manager.session() as db:
                # ... database operations ...
                # Commit happens automatically on success

        Yields:
            Session: Database session
        """
        if not self._initialized:
            self.initialize()

        db = self.SessionLocal()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def create_tables(self):
        """Create all tables."""
        if not self._initialized:
            self.initialize()
        from dubcast.db.models import Base
        Base.metadata.create_all(bind=self.engine)

    def check_connection(self) -> bool:
        """
        Check if database connection is available.

        Returns:
            bool: True if connection successful, False otherwise
        """
        if not self._initialized:
            try:
                self.initialize()
            except Exception:
                return False

        if not self.engine:
            return False

        try:
            with self.engine.connect() as connection:
                connection.execute(text("SELECT 1"))
            return True
        except Exception:
            return False

    def close(self):
        """Close database connections."""
        if self.engine:
            self.engine.dispose()
        self._initialized = False


