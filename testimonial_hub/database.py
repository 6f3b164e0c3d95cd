"""Database configuration and session management."""

import logging
import threading
from collections.abc import Generator
from typing import Any

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base

logger = logging.getLogger(__name__)

Base: Any = declarative_base()


class Database:
    """Process-wide database handle owned by the application lifespan.

    The engine is created on first use. Concurrent first callers share a single
    connection-establishment attempt; later callers reuse the cached engine.
    """

    def __init__(self, url: str, **engine_kwargs: Any) -> None:
        self.url = url
        self._engine_kwargs = engine_kwargs
        self._engine: Engine | None = None
        self._lock = threading.Lock()

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            with self._lock:
                if self._engine is None:
                    self._engine = self._create_engine()
        return self._engine

    def _create_engine(self) -> Engine:
        logger.info("Initializing database engine")
        kwargs = dict(self._engine_kwargs)
        if self.url.startswith("sqlite"):
            kwargs.setdefault("connect_args", {"check_same_thread": False})
        else:
            kwargs.setdefault("pool_size", 5)
            kwargs.setdefault("max_overflow", 10)
        return create_engine(self.url, pool_pre_ping=True, **kwargs)

    def session(self) -> Session:
        """Open a new ORM session bound to the shared engine."""
        return Session(bind=self.engine, autoflush=False)

    def create_all(self) -> None:
        """Create all tables registered on the declarative base."""
        # Import all models here so they are registered with Base.metadata
        from testimonial_hub import models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)

    def dispose(self) -> None:
        with self._lock:
            if self._engine is not None:
                self._engine.dispose()
                self._engine = None


def get_db(request: Request) -> Generator[Session, None, None]:
    """Dependency that provides a database session."""
    db = request.app.state.database.session()
    try:
        yield db
    finally:
        db.close()
