"""Engine, session factory and the FastAPI session dependency."""

from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from realty_contracts.config import settings

DATABASE_URL = settings.database_url


def _build_engine(url: str):
    if not url.startswith("sqlite"):
        return create_engine(url, echo=settings.database_echo, pool_pre_ping=True)

    options = {"connect_args": {"check_same_thread": False}}
    if ":memory:" in url or url.rstrip("/") == "sqlite:":
        # One shared connection, otherwise each checkout sees an empty database
        options["poolclass"] = StaticPool
    sqlite_engine = create_engine(url, echo=settings.database_echo, **options)

    @event.listens_for(sqlite_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return sqlite_engine


engine = _build_engine(DATABASE_URL)

# Services flush explicitly before reading generated ids
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Yield a request-scoped session and always close it."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


__all__ = [
    "engine",
    "SessionLocal",
    "get_db",
]
