"""
Storage access behind one interface, with a live and a null implementation.

The app picks an implementation once at startup (``create_store``). Without a
configured database the NullCafeStore keeps every read endpoint working with
empty results, while writes fail with StorageNotConfiguredError.
"""

import abc
from typing import Collection, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from cafe_directory.config import Settings, settings as default_settings
from cafe_directory.data.database import create_db_engine, create_session_factory, init_db
from cafe_directory.data.repository import CafeRepository
from cafe_directory.exceptions import DatabaseError, DatabaseConnectionError, StorageNotConfiguredError
from cafe_directory.logging_config import get_logger
from cafe_directory.records import CafeCandidate, CafeRecord, ImportLogRecord, ImportOutcome, SearchCriteria

logger = get_logger(__name__)


class CafeStore(abc.ABC):
    """Everything the search and import pipelines need from storage."""

    name: str = ""

    @abc.abstractmethod
    def get_by_slug(self, slug: str) -> Optional[CafeRecord]:
        ...

    @abc.abstractmethod
    def find_candidates(self, criteria: SearchCriteria, limit: int, offset: int = 0) -> list[CafeRecord]:
        """Rows matching ``criteria`` ordered by rating desc, name asc."""
        ...

    @abc.abstractmethod
    def count(self, criteria: SearchCriteria) -> int:
        ...

    @abc.abstractmethod
    def count_all(self) -> int:
        ...

    @abc.abstractmethod
    def upsert_cafe(self, candidate: CafeCandidate, fields: Optional[Collection[str]] = None) -> bool:
        """
        Insert or overwrite by slug. Returns True when a new cafe was created.

        With ``fields`` set, an existing cafe only has those columns replaced.
        """
        ...

    @abc.abstractmethod
    def add_import_log(self, filename: str, outcome: ImportOutcome, max_errors: int = 10) -> None:
        ...

    @abc.abstractmethod
    def list_import_logs(self, limit: int = 20) -> list[ImportLogRecord]:
        ...

    @abc.abstractmethod
    def city_counts(self, limit: int = 50) -> list[tuple[str, int]]:
        ...

    @abc.abstractmethod
    def list_by_city(self, city: str, limit: int = 24) -> tuple[list[CafeRecord], int]:
        """Top cafes of a city plus the city's total cafe count."""
        ...

    @abc.abstractmethod
    def area_counts(self, city: str) -> list[tuple[str, int]]:
        ...


class DatabaseCafeStore(CafeStore):
    """SQLAlchemy-backed store. One session per call, committed per write."""

    name = "database"

    def __init__(self, session_factory: sessionmaker[Session]):
        self.session_factory = session_factory

    def _read(self, fn):
        try:
            with self.session_factory() as session:
                return fn(CafeRepository(session))
        except SQLAlchemyError as e:
            logger.error("Database read failed: %s", e, exc_info=True)
            raise DatabaseError(message=f"Database read failed: {e}") from e

    def _write(self, fn):
        try:
            with self.session_factory() as session:
                result = fn(CafeRepository(session))
                session.commit()
                return result
        except SQLAlchemyError as e:
            logger.error("Database write failed: %s", e, exc_info=True)
            raise DatabaseError(message=f"Database write failed: {e}") from e

    def get_by_slug(self, slug: str) -> Optional[CafeRecord]:
        def fn(repo: CafeRepository):
            cafe = repo.get_by_slug(slug)
            return CafeRecord.model_validate(cafe) if cafe else None
        return self._read(fn)

    def find_candidates(self, criteria: SearchCriteria, limit: int, offset: int = 0) -> list[CafeRecord]:
        return self._read(lambda repo: [
            CafeRecord.model_validate(cafe) for cafe in repo.search(criteria, limit=limit, offset=offset)
        ])

    def count(self, criteria: SearchCriteria) -> int:
        return self._read(lambda repo: repo.count(criteria))

    def count_all(self) -> int:
        return self._read(lambda repo: repo.count_all())

    def upsert_cafe(self, candidate: CafeCandidate, fields: Optional[Collection[str]] = None) -> bool:
        return self._write(lambda repo: repo.upsert_cafe(candidate, fields=fields)[1])

    def add_import_log(self, filename: str, outcome: ImportOutcome, max_errors: int = 10) -> None:
        self._write(lambda repo: repo.add_import_log(filename, outcome, max_errors=max_errors))

    def list_import_logs(self, limit: int = 20) -> list[ImportLogRecord]:
        return self._read(lambda repo: [
            ImportLogRecord.model_validate(log) for log in repo.list_import_logs(limit=limit)
        ])

    def city_counts(self, limit: int = 50) -> list[tuple[str, int]]:
        return self._read(lambda repo: repo.city_counts(limit=limit))

    def list_by_city(self, city: str, limit: int = 24) -> tuple[list[CafeRecord], int]:
        return self._read(lambda repo: (
            [CafeRecord.model_validate(cafe) for cafe in repo.list_by_city(city, limit=limit)],
            repo.count_by_city(city),
        ))

    def area_counts(self, city: str) -> list[tuple[str, int]]:
        return self._read(lambda repo: repo.area_counts(city))


class NullCafeStore(CafeStore):
    """Stand-in when no database is configured: empty reads, refused writes."""

    name = "null"

    def get_by_slug(self, slug: str) -> Optional[CafeRecord]:
        return None

    def find_candidates(self, criteria: SearchCriteria, limit: int, offset: int = 0) -> list[CafeRecord]:
        return []

    def count(self, criteria: SearchCriteria) -> int:
        return 0

    def count_all(self) -> int:
        return 0

    def upsert_cafe(self, candidate: CafeCandidate, fields: Optional[Collection[str]] = None) -> bool:
        raise StorageNotConfiguredError("upsert_cafe")

    def add_import_log(self, filename: str, outcome: ImportOutcome, max_errors: int = 10) -> None:
        raise StorageNotConfiguredError("add_import_log")

    def list_import_logs(self, limit: int = 20) -> list[ImportLogRecord]:
        return []

    def city_counts(self, limit: int = 50) -> list[tuple[str, int]]:
        return []

    def list_by_city(self, city: str, limit: int = 24) -> tuple[list[CafeRecord], int]:
        return [], 0

    def area_counts(self, city: str) -> list[tuple[str, int]]:
        return []


def create_store(app_settings: Settings | None = None) -> CafeStore:
    """
    Select the storage implementation for this process.

    No database URL (or DATABASE_ENABLED=false) → NullCafeStore.
    A configured database that cannot be reached also degrades to the null
    store, logged as an error, so the read endpoints still respond.
    """
    app_settings = app_settings or default_settings
    if not app_settings.database.configured:
        logger.warning("No database configured: using the null store (reads empty, writes refused)")
        return NullCafeStore()

    try:
        engine = create_db_engine(app_settings.database.url)
        init_db(engine)
    except DatabaseConnectionError as e:
        logger.error("Database unavailable (%s): falling back to the null store", e.message)
        return NullCafeStore()

    return DatabaseCafeStore(create_session_factory(engine))
