"""
Database engine and session management.

Supports PostgreSQL (production) and SQLite (development) via DATABASE_URL.
Uses SQLAlchemy with connection pooling and health checks.
"""

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session, DeclarativeBase
from sqlalchemy.pool import StaticPool

from cafe_directory.config import settings
from cafe_directory.logging_config import get_logger
from cafe_directory.exceptions import DatabaseConnectionError

logger = get_logger(__name__)


class Base(DeclarativeBase):
    """Base class for all ORM models."""
    pass


def _is_sqlite(url: str) -> bool:
    """Check if the database URL is SQLite."""
    return url.startswith("sqlite")


def _redact(url: str) -> str:
    return url.split("@")[-1] if "@" in url else url


def create_db_engine(database_url: str | None = None) -> Engine:
    """
    Create a SQLAlchemy engine based on the database URL.

    Args:
        database_url: Override the URL from settings. Useful for testing.

    Returns:
        SQLAlchemy Engine instance

    Raises:
        DatabaseConnectionError: no URL configured, or the connection check fails.
    """
    url = database_url or settings.database.url
    if not url:
        raise DatabaseConnectionError(message="No database URL configured")
    logger.info("Creating database engine: %s", "SQLite" if _is_sqlite(url) else "PostgreSQL")

    try:
        if _is_sqlite(url):
            # SQLite: StaticPool so every session shares the one connection
            engine = create_engine(
                url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
                echo=False,
            )

            @event.listens_for(engine, "connect")
            def _set_sqlite_pragma(dbapi_conn, connection_record):
                cursor = dbapi_conn.cursor()
                if ":memory:" not in url:
                    cursor.execute("PRAGMA journal_mode=WAL")
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()
        else:
            engine = create_engine(
                url,
                pool_size=10,
                max_overflow=20,
                pool_pre_ping=True,  # Health check before using connection
                echo=False,
            )

        # Verify connection
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("Database connection verified successfully")

        return engine

    except Exception as e:
        raise DatabaseConnectionError(
            message=f"Failed to connect to database: {e}",
            details={"url": _redact(url)},  # Hide credentials
        ) from e


def create_session_factory(engine: Engine | None = None) -> sessionmaker[Session]:
    """
    Create a session factory bound to the given engine.

    Objects are not expired on commit so records can be read after the
    session that loaded them has closed.
    """
    if engine is None:
        engine = create_db_engine()
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


def init_db(engine: Engine | None = None) -> None:
    """
    Initialize the database: create all tables.

    Args:
        engine: SQLAlchemy engine. If None, creates one from settings.
    """
    if engine is None:
        engine = create_db_engine()

    # Import all models so they register with Base.metadata
    import cafe_directory.data.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created successfully")
