"""
Database session management

Every connection carries the store timeout so no record store call can
block indefinitely: the pool wait, the SQLite busy wait, and the
PostgreSQL connect/statement timeouts are all bounded by
settings.STORE_TIMEOUT_SECONDS.
"""
from typing import Any, Dict

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import sessionmaker
from leave_scope.core.config import settings
from leave_scope.db.base import Base


def engine_options(database_url: str, timeout_seconds: float) -> Dict[str, Any]:
    """Build create_engine keyword arguments that bound every store call"""
    url = make_url(database_url)
    options: Dict[str, Any] = {"pool_pre_ping": True, "echo": False}

    if url.get_backend_name() == "sqlite":
        options["connect_args"] = {"check_same_thread": False, "timeout": timeout_seconds}
        # In-memory SQLite uses a singleton pool that has no wait queue
        if url.database not in (None, "", ":memory:"):
            options["pool_timeout"] = timeout_seconds
        return options

    options["pool_timeout"] = timeout_seconds
    if url.get_backend_name() == "postgresql":
        options["connect_args"] = {
            "connect_timeout": max(1, int(timeout_seconds)),
            "options": f"-c statement_timeout={int(timeout_seconds * 1000)}",
        }
    return options


def build_engine(database_url: str = settings.DATABASE_URL) -> Engine:
    return create_engine(database_url, **engine_options(database_url, settings.STORE_TIMEOUT_SECONDS))


engine = build_engine()

# Create all tables automatically on startup for SQLite
if "sqlite" in settings.DATABASE_URL:
    import leave_scope.models  # noqa: F401  (registers tables)
    Base.metadata.create_all(bind=engine)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """Dependency for getting database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
